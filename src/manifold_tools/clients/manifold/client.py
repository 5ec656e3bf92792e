"""Typed async facade for the Manifold prediction market API.

Compose the low-level ``ManifoldAPI`` transport with parsing into the
frozen dataclasses of ``models``.  Every public method is async and
returns typed values; float fields from the JSON payloads are converted
through ``Decimal(str(value))``.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from manifold_tools.clients.manifold._api import ManifoldAPI
from manifold_tools.clients.manifold._constants import (
    DEFAULT_BASE_URL,
    HTTP_BAD_REQUEST,
    MAX_PROBS_BATCH,
)
from manifold_tools.clients.manifold.exceptions import ManifoldAPIError
from manifold_tools.clients.manifold.models import (
    Answer,
    BetRequest,
    BetResponse,
    Market,
    MarketProbs,
    User,
    UserPortfolio,
)

logger = logging.getLogger(__name__)

_ZERO = Decimal(0)


class ManifoldClient:
    """Typed async client for Manifold markets.

    Without an API key the client is read-only: ``get_me``,
    ``get_user_portfolio`` and ``place_bet`` raise ``ManifoldAPIError``.

    Args:
        api_key: Manifold API key.
        base_url: Base URL for the v0 API.
        timeout: Request timeout in seconds.

    """

    def __init__(
        self,
        api_key: str = "",
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the Manifold client.

        Args:
            api_key: Manifold API key.
            base_url: Base URL for the v0 API.
            timeout: Request timeout in seconds.

        """
        self._api = ManifoldAPI(base_url=base_url, api_key=api_key, timeout=timeout)

    @property
    def authenticated(self) -> bool:
        """Return True when the client can call user and betting endpoints."""
        return self._api.authenticated

    async def search_markets(
        self,
        term: str = "",
        *,
        filter_: str = "open",
        contract_type: str = "ALL",
        sort: str = "liquidity",
        limit: int = 100,
    ) -> list[Market]:
        """Search markets and parse the results.

        Args:
            term: Free-text search term.
            filter_: Market state filter.
            contract_type: Outcome type filter (``BINARY``, ``MULTIPLE_CHOICE``, ``ALL``).
            sort: Sort order.
            limit: Maximum number of markets to return.

        Returns:
            Typed markets in the order the provider returned them.

        """
        raw_markets = await self._api.search_markets(
            term=term,
            filter_=filter_,
            contract_type=contract_type,
            sort=sort,
            limit=limit,
        )
        return [_parse_market(raw) for raw in raw_markets]

    async def get_market(self, market_id: str) -> Market:
        """Fetch one market with answers and per-answer resolutions.

        Args:
            market_id: Provider market identifier.

        Returns:
            The fully detailed market.

        """
        return _parse_market(await self._api.get_market(market_id))

    async def get_market_probs(self, market_ids: list[str]) -> dict[str, MarketProbs]:
        """Fetch current probabilities for up to 100 markets.

        Args:
            market_ids: Market identifiers to look up.

        Returns:
            Mapping of market id to its probabilities.  Markets the provider
            does not know are absent.

        Raises:
            ValueError: If more than 100 ids are requested.

        """
        if len(market_ids) > MAX_PROBS_BATCH:
            msg = f"At most {MAX_PROBS_BATCH} market ids per call, got {len(market_ids)}"
            raise ValueError(msg)
        if not market_ids:
            return {}
        raw = await self._api.get_market_probs(market_ids)
        result: dict[str, MarketProbs] = {}
        for market_id, entry in raw.items():
            prob = entry.get("prob")
            answer_probs = entry.get("answerProbs") or {}
            result[market_id] = MarketProbs(
                prob=None if prob is None else _safe_decimal(prob),
                answer_probs={aid: _safe_decimal(p) for aid, p in answer_probs.items()},
            )
        return result

    async def get_me(self) -> User:
        """Fetch the authenticated user.

        Raises:
            ManifoldAPIError: When no API key is configured or the call fails.

        """
        self._require_auth()
        raw = await self._api.get_me()
        return User(
            id=str(raw.get("id", "")),
            username=str(raw.get("username", "")),
            balance=_safe_decimal(raw.get("balance")),
        )

    async def get_user_portfolio(self, user_id: str) -> UserPortfolio:
        """Fetch portfolio metrics for a user.

        Args:
            user_id: Provider user identifier.

        Raises:
            ManifoldAPIError: When no API key is configured or the call fails.

        """
        self._require_auth()
        raw = await self._api.get_user_portfolio(user_id)
        return UserPortfolio(
            investment_value=_safe_decimal(raw.get("investmentValue")),
            balance=_safe_decimal(raw.get("balance")),
        )

    async def place_bet(self, request: BetRequest) -> BetResponse:
        """Place a market or limit bet.

        Args:
            request: Typed bet request.

        Returns:
            Typed bet response with the provider bet id.

        Raises:
            ManifoldAPIError: When no API key is configured or the bet is rejected.

        """
        self._require_auth()
        payload: dict[str, Any] = {
            "amount": request.amount,
            "contractId": request.contract_id,
            "outcome": request.outcome,
        }
        if request.answer_id:
            payload["answerId"] = request.answer_id
        if request.limit_prob is not None:
            payload["limitProb"] = float(request.limit_prob)
        logger.debug("POST /bet %s", payload)
        raw = await self._api.place_bet(payload)
        return BetResponse(
            bet_id=str(raw.get("betId", raw.get("id", ""))),
            amount=_safe_decimal(raw.get("amount")),
            shares=_safe_decimal(raw.get("shares")),
            is_filled=bool(raw.get("isFilled", True)),
        )

    def _require_auth(self) -> None:
        """Raise an error if the client has no API key.

        Raises:
            ManifoldAPIError: When no API key was provided at init.

        """
        if not self._api.authenticated:
            raise ManifoldAPIError(
                msg="Authentication required. Provide a Manifold API key.",
                status_code=401,
            )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._api.close()

    async def __aenter__(self) -> "ManifoldClient":
        """Enter async context manager."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager."""
        await self.close()


def _parse_market(raw: dict[str, Any]) -> Market:
    """Convert a raw market dictionary into a typed Market.

    ``LiteMarket`` payloads from search carry no answers; ``FullMarket``
    payloads from ``/market/{id}`` carry answers with resolutions.

    Args:
        raw: Market dictionary from the API.

    Returns:
        Typed Market dataclass.

    """
    answers = tuple(
        Answer(
            id=str(a.get("id", "")),
            text=str(a.get("text", "")),
            probability=_safe_decimal(a.get("probability")),
            resolution=str(a.get("resolution") or ""),
        )
        for a in raw.get("answers") or []
    )
    pool: dict[str, Any] = raw.get("pool") or {}
    close_time = raw.get("closeTime")
    return Market(
        id=str(raw.get("id", "")),
        question=str(raw.get("question", "")),
        outcome_type=str(raw.get("outcomeType", "")),
        probability=_safe_decimal(raw.get("probability")),
        answers=answers,
        volume=_safe_decimal(raw.get("volume")),
        volume_24h=_safe_decimal(raw.get("volume24Hours")),
        total_liquidity=_safe_decimal(raw.get("totalLiquidity")),
        pool_yes=_safe_decimal(pool.get("YES")),
        pool_no=_safe_decimal(pool.get("NO")),
        created_time=int(raw.get("createdTime") or 0),
        close_time=None if close_time is None else int(close_time),
        is_resolved=bool(raw.get("isResolved", False)),
        resolution=str(raw.get("resolution") or ""),
        creator_id=str(raw.get("creatorId", "")),
        url=str(raw.get("url", "")),
        mechanism=str(raw.get("mechanism", "")),
    )


def _safe_decimal(value: Any) -> Decimal:
    """Convert a value to Decimal, returning zero for None/empty strings.

    Raise ``ManifoldAPIError`` for values that are present but cannot be
    parsed, rather than silently substituting zero for corrupt data.

    Args:
        value: Value to convert (string, float, int, or None).

    Returns:
        Decimal representation, or ``Decimal("0")`` for None/empty.

    Raises:
        ManifoldAPIError: If the value is non-empty but malformed.

    """
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return _ZERO
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        msg = f"Cannot convert {value!r} to Decimal"
        raise ManifoldAPIError(msg=msg, status_code=HTTP_BAD_REQUEST) from exc
