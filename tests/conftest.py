"""Shared test configuration and fixtures."""

import os
from collections.abc import Iterator
from unittest.mock import patch

import pytest

_ISOLATED_ENV_VARS = (
    "MANIFOLD_API_KEY",
    "MANIFOLD_BASE_URL",
    "MANIFOLD_CONFIG_PATH",
    "MANIFOLD_DB_URL",
    "MANIFOLD_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolate_manifold_env() -> Iterator[None]:  # pyright: ignore[reportUnusedFunction]
    """Hide developer ``MANIFOLD_*`` variables from the packaged settings.

    ``settings.yaml`` reads the API key, base URL, database URL and an
    optional override file from the environment.  A developer shell (or a
    ``.env`` file picked up by ``load_dotenv``) could otherwise point tests
    at a real account or database.
    """
    with patch.dict(os.environ, {}):
        for name in _ISOLATED_ENV_VARS:
            os.environ.pop(name, None)
        with patch("manifold_tools.core.config.load_dotenv"):
            yield
