"""Tests for typed bot configuration."""

from datetime import timedelta
from decimal import Decimal
from pathlib import Path

import pytest

from manifold_tools.apps.manifold_bot.config import (
    BotConfig,
    RiskConfig,
    load_bot_config,
    parse_duration,
)
from manifold_tools.core.config import ConfigError, ConfigLoader


class TestParseDuration:
    """Tests for parse_duration."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("30s", timedelta(seconds=30)),
            ("5m", timedelta(minutes=5)),
            ("1h", timedelta(hours=1)),
            ("2d", timedelta(days=2)),
            (90, timedelta(seconds=90)),
            ("45", timedelta(seconds=45)),
        ],
    )
    def test_valid(self, value: object, expected: timedelta) -> None:
        """Parse suffixed strings and plain seconds."""
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["", "5x", "-5m", "0s", "1.5h", True])
    def test_invalid(self, value: object) -> None:
        """Reject malformed or non-positive durations."""
        with pytest.raises(ConfigError):
            parse_duration(value)


class TestRiskConfig:
    """Tests for RiskConfig validation."""

    def test_defaults(self) -> None:
        """Use the documented default limits."""
        config = RiskConfig()
        assert config.kelly_fraction == Decimal("0.25")
        assert config.max_position_pct == Decimal("0.05")
        assert config.max_market_exposure_pct == Decimal("0.10")
        assert config.max_total_exposure == Decimal("0.50")
        assert config.max_drawdown_pct == Decimal("0.20")
        assert config.min_bet_amount == Decimal(1)
        assert config.min_edge == Decimal("0.05")

    def test_rejects_fraction_above_one(self) -> None:
        """Raise ValueError for a fraction above one."""
        with pytest.raises(ValueError, match="max_position_pct"):
            RiskConfig(max_position_pct=Decimal("1.5"))

    def test_rejects_negative_minimum(self) -> None:
        """Raise ValueError for a negative minimum bet."""
        with pytest.raises(ValueError, match="non-negative"):
            RiskConfig(min_bet_amount=Decimal(-1))


class TestLoadBotConfig:
    """Tests for load_bot_config."""

    def test_packaged_defaults(self) -> None:
        """Build the default configuration from the packaged settings."""
        config = load_bot_config(ConfigLoader())
        assert config == BotConfig()

    def test_overrides(self, tmp_path: Path) -> None:
        """Apply overrides from a settings file."""
        (tmp_path / "settings.yaml").write_text("""
risk:
  min_edge: 0.08
strategy:
  arbitrage:
    enabled: "false"
    max_markets_per_cycle: 5
  marketmaking:
    enabled: true
schedule:
  scan_interval: 2m
  scan_limit: 50
collector:
  min_liquidity: 100
""")
        config = load_bot_config(ConfigLoader(config_dir=tmp_path))
        assert config.risk.min_edge == Decimal("0.08")
        assert config.risk.kelly_fraction == Decimal("0.25")
        assert not config.arbitrage.enabled
        assert config.arbitrage.max_markets_per_cycle == 5  # noqa: PLR2004
        assert config.marketmaking.enabled
        assert config.schedule.scan_interval == timedelta(minutes=2)
        assert config.schedule.snapshot_interval == timedelta(minutes=15)
        assert config.schedule.scan_limit == 50  # noqa: PLR2004
        assert config.collector.min_liquidity == Decimal(100)

    def test_invalid_risk_raises_config_error(self, tmp_path: Path) -> None:
        """Wrap risk validation failures as ConfigError."""
        (tmp_path / "settings.yaml").write_text("risk:\n  max_drawdown_pct: 2\n")
        with pytest.raises(ConfigError, match="max_drawdown_pct"):
            load_bot_config(ConfigLoader(config_dir=tmp_path))

    def test_non_numeric_value_raises(self, tmp_path: Path) -> None:
        """Reject a non-numeric threshold."""
        (tmp_path / "settings.yaml").write_text("risk:\n  min_edge: lots\n")
        with pytest.raises(ConfigError, match="min_edge"):
            load_bot_config(ConfigLoader(config_dir=tmp_path))

    def test_invalid_duration_raises(self, tmp_path: Path) -> None:
        """Reject an unparseable schedule interval."""
        (tmp_path / "settings.yaml").write_text("schedule:\n  scan_interval: soon\n")
        with pytest.raises(ConfigError, match="Invalid duration"):
            load_bot_config(ConfigLoader(config_dir=tmp_path))
