"""Bankroll state used by the risk manager.

``Portfolio`` holds the cash balance and the value of open positions.  In
replay it is simulated and never moves; ``LivePortfolio`` refreshes both
figures from the Manifold API at the start of every trading cycle.
"""

import logging
from decimal import Decimal

from manifold_tools.clients.manifold.client import ManifoldClient
from manifold_tools.clients.manifold.exceptions import ManifoldAPIError
from manifold_tools.core.models import ZERO

logger = logging.getLogger(__name__)


class Portfolio:
    """Cash balance plus invested value.

    Args:
        balance: Cash balance in mana.
        investment_value: Current value of open positions in mana.

    """

    def __init__(self, balance: Decimal = ZERO, investment_value: Decimal = ZERO) -> None:
        """Initialize the portfolio.

        Args:
            balance: Cash balance in mana.
            investment_value: Current value of open positions in mana.

        """
        self.balance = balance
        self.investment_value = investment_value

    @property
    def total_value(self) -> Decimal:
        """Return balance plus invested value."""
        return self.balance + self.investment_value


class LivePortfolio(Portfolio):
    """Portfolio refreshed from the authenticated Manifold account.

    Args:
        client: Authenticated Manifold client.

    """

    def __init__(self, client: ManifoldClient) -> None:
        """Initialize an empty live portfolio.

        Args:
            client: Authenticated Manifold client.

        """
        super().__init__()
        self._client = client
        self.user_id = ""

    async def refresh(self) -> None:
        """Fetch the latest balance and invested value.

        A failed portfolio lookup is not fatal: the invested value is reset
        to zero and the cash balance alone is used as the total.

        Raises:
            ManifoldAPIError: When the authenticated user cannot be fetched.

        """
        user = await self._client.get_me()
        self.user_id = user.id
        self.balance = user.balance
        try:
            metrics = await self._client.get_user_portfolio(user.id)
        except ManifoldAPIError:
            logger.warning("Portfolio lookup failed, using balance only", exc_info=True)
            self.investment_value = ZERO
            return
        self.investment_value = metrics.investment_value
        logger.info(
            "Portfolio refreshed: balance=%.2f invested=%.2f total=%.2f",
            self.balance,
            self.investment_value,
            self.total_value,
        )
