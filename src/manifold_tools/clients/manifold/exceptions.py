"""Exception hierarchy for Manifold client errors.

A base exception class with a specialised API error that carries the
status code and message returned by the provider.
"""

from manifold_tools.clients.manifold._constants import HTTP_FORBIDDEN, HTTP_NOT_FOUND

_PERMANENT_STATUS_CODES = frozenset({HTTP_FORBIDDEN, HTTP_NOT_FOUND})
_PERMANENT_MARKERS = ("resolved", "closed")


class ManifoldError(Exception):
    """Base exception for all Manifold client errors."""


class ManifoldAPIError(ManifoldError):
    """Error returned by a Manifold API call.

    Carry a human-readable message and an HTTP status code so callers
    can distinguish transient failures from permanent rejections.

    Args:
        msg: Human-readable description of the error.
        status_code: HTTP status code from the API response.

    """

    def __init__(self, msg: str, status_code: int) -> None:
        """Initialize Manifold API error.

        Args:
            msg: Human-readable description of the error.
            status_code: HTTP status code from the API response.

        """
        super().__init__(f"[{status_code}] {msg}")
        self.msg = msg
        self.status_code = status_code

    @property
    def is_permanent(self) -> bool:
        """Return True when retrying the same request can never succeed.

        A market that is resolved or closed, a forbidden request, and an
        unknown market are all permanent.  Anything else (timeouts, rate
        limits, server errors) is treated as transient.
        """
        if self.status_code in _PERMANENT_STATUS_CODES:
            return True
        lowered = self.msg.lower()
        return any(marker in lowered for marker in _PERMANENT_MARKERS)
