"""Shared constants for the Manifold API client."""

HTTP_BAD_REQUEST = 400
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404

DEFAULT_BASE_URL = "https://api.manifold.markets/v0"
MAX_PROBS_BATCH = 100
