"""Manifold Markets API client."""

from manifold_tools.clients.manifold.client import ManifoldClient
from manifold_tools.clients.manifold.exceptions import ManifoldAPIError, ManifoldError
from manifold_tools.clients.manifold.models import (
    Answer,
    BetRequest,
    BetResponse,
    Market,
    MarketProbs,
    User,
    UserPortfolio,
)

__all__ = [
    "Answer",
    "BetRequest",
    "BetResponse",
    "ManifoldAPIError",
    "ManifoldClient",
    "ManifoldError",
    "Market",
    "MarketProbs",
    "User",
    "UserPortfolio",
]
