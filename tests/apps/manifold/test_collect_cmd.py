"""Tests for the collect CLI command."""

from unittest.mock import AsyncMock, patch

from typer.testing import CliRunner

from manifold_tools.apps.manifold.cli import app
from manifold_tools.clients.manifold.exceptions import ManifoldAPIError

_CMD = "manifold_tools.apps.manifold.cli.collect_cmd"
_WRITTEN = 42
_STATUS_SERVER_ERROR = 503


class TestCollectCommand:
    """Tests for the collect CLI command."""

    def test_reports_snapshot_count(self) -> None:
        """Run one collection and print the number of stored snapshots."""
        repo = AsyncMock()
        with (
            patch(f"{_CMD}.build_client", return_value=AsyncMock()),
            patch(f"{_CMD}.build_repository", return_value=repo),
            patch(f"{_CMD}.MarketCollector") as mock_cls,
        ):
            mock_cls.return_value.collect = AsyncMock(return_value=_WRITTEN)
            result = CliRunner().invoke(app, ["collect"])

        assert result.exit_code == 0
        assert f"Stored {_WRITTEN} market snapshots." in result.output
        repo.init_db.assert_awaited_once()
        repo.close.assert_awaited_once()

    def test_api_error_exits(self) -> None:
        """Exit with an error when the scan fails."""
        with (
            patch(f"{_CMD}.build_client", return_value=AsyncMock()),
            patch(f"{_CMD}.build_repository", return_value=AsyncMock()),
            patch(f"{_CMD}.MarketCollector") as mock_cls,
        ):
            mock_cls.return_value.collect = AsyncMock(
                side_effect=ManifoldAPIError("unavailable", _STATUS_SERVER_ERROR)
            )
            result = CliRunner().invoke(app, ["collect"])

        assert result.exit_code == 1
        assert "collection failed" in result.output
