"""Async HTTP transport for the Manifold v0 REST API.

Wrap ``httpx.AsyncClient`` with the provider's base URL, API-key
authentication and structured error handling.  Methods return parsed
JSON; conversion into typed models happens in ``ManifoldClient``.
"""

from typing import Any

import httpx

from manifold_tools.clients.manifold._constants import DEFAULT_BASE_URL, HTTP_BAD_REQUEST
from manifold_tools.clients.manifold.exceptions import ManifoldAPIError


class ManifoldAPI:
    """Low-level async client for the Manifold v0 API.

    Args:
        base_url: Base URL for the API, including the ``/v0`` prefix.
        api_key: Manifold API key; required only for authenticated calls.
        timeout: Request timeout in seconds.

    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_key: str = "",
        timeout: float = 30.0,
    ) -> None:
        """Initialize the API transport.

        Args:
            base_url: Base URL for the API, including the ``/v0`` prefix.
            api_key: Manifold API key; required only for authenticated calls.
            timeout: Request timeout in seconds.

        """
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        headers = {"Authorization": f"Key {api_key}"} if api_key else {}
        self._http_client = httpx.AsyncClient(timeout=timeout, headers=headers)

    @property
    def authenticated(self) -> bool:
        """Return True when an API key was configured."""
        return bool(self._api_key)

    async def search_markets(
        self,
        *,
        term: str = "",
        filter_: str = "open",
        contract_type: str = "ALL",
        sort: str = "liquidity",
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        """Search markets.

        Args:
            term: Free-text search term (empty matches everything).
            filter_: Market state filter (``open``, ``closed``, ``resolved``, ``all``).
            contract_type: Outcome type filter (``BINARY``, ``MULTIPLE_CHOICE``, ``ALL``).
            sort: Sort order (``liquidity``, ``newest``, ``score`` ...).
            limit: Maximum number of markets to return.

        Returns:
            List of ``LiteMarket`` dictionaries.

        Raises:
            ManifoldAPIError: When the API returns an error response.

        """
        params: dict[str, str | int] = {
            "term": term,
            "filter": filter_,
            "contractType": contract_type,
            "sort": sort,
            "limit": limit,
        }
        return await self._request("GET", "/search-markets", params=params)

    async def get_market(self, market_id: str) -> dict[str, Any]:
        """Fetch one market with full detail (answers, resolutions).

        Raises:
            ManifoldAPIError: When the API returns an error response.

        """
        return await self._request("GET", f"/market/{market_id}")

    async def get_market_probs(self, market_ids: list[str]) -> dict[str, Any]:
        """Fetch current probabilities for several markets in one call.

        Args:
            market_ids: Market identifiers to look up.

        Returns:
            Mapping of market id to ``{"prob": ..., "answerProbs": {...}}``.

        Raises:
            ManifoldAPIError: When the API returns an error response.

        """
        params = [("ids", market_id) for market_id in market_ids]
        return await self._request("GET", "/market-probs", params=params)

    async def get_me(self) -> dict[str, Any]:
        """Fetch the authenticated user.

        Raises:
            ManifoldAPIError: When the API returns an error response.

        """
        return await self._request("GET", "/me")

    async def get_user_portfolio(self, user_id: str) -> dict[str, Any]:
        """Fetch portfolio metrics for a user.

        Raises:
            ManifoldAPIError: When the API returns an error response.

        """
        return await self._request("GET", "/get-user-portfolio", params={"userId": user_id})

    async def place_bet(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Place a bet.

        Args:
            payload: JSON body for ``POST /bet``.

        Returns:
            The created bet.

        Raises:
            ManifoldAPIError: When the API returns an error response.

        """
        return await self._request("POST", "/bet", json=payload)

    async def _request(
        self,
        method: str,
        path: str,
        params: Any = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and return parsed JSON.

        Args:
            method: HTTP method.
            path: Request path relative to base_url.
            params: Query parameters (mapping or list of pairs).
            json: JSON request body.

        Returns:
            Parsed JSON response.

        Raises:
            ManifoldAPIError: When the request fails or the API returns an error.

        """
        url = f"{self.base_url}{path}"
        try:
            response = await self._http_client.request(method, url, params=params, json=json)
        except httpx.HTTPError as exc:
            raise ManifoldAPIError(
                msg=f"HTTP request failed: {exc}",
                status_code=HTTP_BAD_REQUEST,
            ) from exc

        if response.status_code >= HTTP_BAD_REQUEST:
            self._handle_error(response)

        try:
            result: Any = response.json()
        except ValueError as exc:
            raise ManifoldAPIError(
                msg=f"Invalid JSON in response to {method} {path}",
                status_code=HTTP_BAD_REQUEST,
            ) from exc
        return result

    @staticmethod
    def _handle_error(response: httpx.Response) -> None:
        """Raise a ManifoldAPIError from an error response.

        Args:
            response: HTTP response with a non-2xx status code.

        Raises:
            ManifoldAPIError: Always raised with status code and message.

        """
        try:
            data = response.json()
            msg: str = data.get("message", f"HTTP {response.status_code}")
        except (ValueError, AttributeError):
            msg = f"HTTP {response.status_code}"
        raise ManifoldAPIError(msg=msg, status_code=response.status_code)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http_client.aclose()
