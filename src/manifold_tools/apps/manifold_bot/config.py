"""Typed configuration for the Manifold trading bot.

Translate the ``risk``, ``strategy``, ``schedule`` and ``collector``
sections read by ``ConfigLoader`` into frozen dataclasses.  Defaults match
the packaged ``settings.yaml`` so a partial override file only needs the
keys it changes.
"""

import re
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from manifold_tools.core.config import ConfigError, ConfigLoader
from manifold_tools.core.models import ZERO

_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


@dataclass(frozen=True)
class RiskConfig:
    """Risk limits applied when sizing signals.

    Args:
        kelly_fraction: Fractional Kelly multiplier (0.25 = quarter Kelly).
        max_position_pct: Largest single bet as a fraction of total value.
        max_market_exposure_pct: Largest exposure to one market as a fraction
            of total value; zero disables the per-market cap.
        max_total_exposure: Largest total exposure as a fraction of total value.
        max_drawdown_pct: Drawdown from the high-water mark that halts trading.
        min_bet_amount: Smallest bet in mana worth placing.
        min_edge: Smallest edge a signal needs to be sized.

    Raises:
        ValueError: If a fraction is outside [0, 1] or a minimum is negative.

    """

    kelly_fraction: Decimal = Decimal("0.25")
    max_position_pct: Decimal = Decimal("0.05")
    max_market_exposure_pct: Decimal = Decimal("0.10")
    max_total_exposure: Decimal = Decimal("0.50")
    max_drawdown_pct: Decimal = Decimal("0.20")
    min_bet_amount: Decimal = Decimal(1)
    min_edge: Decimal = Decimal("0.05")

    def __post_init__(self) -> None:
        """Validate that fractions lie in [0, 1] and minimums are non-negative."""
        for name in (
            "kelly_fraction",
            "max_position_pct",
            "max_market_exposure_pct",
            "max_total_exposure",
            "max_drawdown_pct",
        ):
            value: Decimal = getattr(self, name)
            if not (ZERO <= value <= 1):
                msg = f"{name} must be between 0 and 1, got {value}"
                raise ValueError(msg)
        if self.min_bet_amount < ZERO or self.min_edge < ZERO:
            msg = "min_bet_amount and min_edge must be non-negative"
            raise ValueError(msg)


@dataclass(frozen=True)
class ArbitrageConfig:
    """Settings for the multiple-choice probability-sum arbitrage strategy."""

    enabled: bool = True
    min_liquidity: Decimal = Decimal(50)
    min_prob_sum_deviation: Decimal = Decimal("0.10")
    max_markets_per_cycle: int = 20
    max_close_days: int = 0


@dataclass(frozen=True)
class MispricingConfig:
    """Settings for the extreme-probability confirmation strategy."""

    enabled: bool = False
    extreme_threshold_high: Decimal = Decimal("0.95")
    extreme_threshold_low: Decimal = Decimal("0.05")
    min_market_age_days: int = 7
    min_volume: Decimal = Decimal(500)


@dataclass(frozen=True)
class TimeDecayConfig:
    """Settings for the deadline time-decay strategy."""

    enabled: bool = False
    min_time_elapsed_fraction: Decimal = Decimal("0.5")
    min_edge: Decimal = Decimal("0.05")
    min_volume: Decimal = Decimal(100)


@dataclass(frozen=True)
class MarketMakingConfig:
    """Settings for the two-sided limit-order strategy."""

    enabled: bool = False
    base_spread: Decimal = Decimal("0.05")
    min_liquidity: Decimal = Decimal(500)
    min_volume_24h: Decimal = Decimal(50)


@dataclass(frozen=True)
class ScheduleConfig:
    """Intervals of the periodic cycles.

    Args:
        scan_interval: Time between trading cycles.
        snapshot_interval: Time between collection cycles.
        performance_interval: Time between performance reports.
        order_cleanup_interval: Time between open-order cleanups.
        cache_ttl: Lifetime of cached market snapshots.
        scan_limit: Markets requested per contract type in each trading scan.

    """

    scan_interval: timedelta = timedelta(minutes=5)
    snapshot_interval: timedelta = timedelta(minutes=15)
    performance_interval: timedelta = timedelta(hours=1)
    order_cleanup_interval: timedelta = timedelta(minutes=10)
    cache_ttl: timedelta = timedelta(minutes=10)
    scan_limit: int = 200


@dataclass(frozen=True)
class CollectorConfig:
    """Settings for the market snapshot collector."""

    max_markets_per_scan: int = 500
    min_liquidity: Decimal = Decimal(20)


@dataclass(frozen=True)
class BotConfig:
    """Complete bot configuration."""

    risk: RiskConfig = field(default_factory=RiskConfig)
    arbitrage: ArbitrageConfig = field(default_factory=ArbitrageConfig)
    mispricing: MispricingConfig = field(default_factory=MispricingConfig)
    timedecay: TimeDecayConfig = field(default_factory=TimeDecayConfig)
    marketmaking: MarketMakingConfig = field(default_factory=MarketMakingConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    collector: CollectorConfig = field(default_factory=CollectorConfig)


def parse_duration(value: Any) -> timedelta:
    """Parse a duration such as ``"5m"``, ``"1h"``, ``"30s"`` or plain seconds.

    Args:
        value: String with an optional ``s``/``m``/``h``/``d`` suffix, or an
            integer number of seconds.

    Returns:
        The duration as a ``timedelta``.

    Raises:
        ConfigError: If the value is not a positive duration.

    """
    if isinstance(value, timedelta):
        return value
    match = _DURATION_PATTERN.match(str(value))
    if match is None or isinstance(value, bool):
        msg = f"Invalid duration: {value!r}"
        raise ConfigError(msg)
    seconds = int(match.group(1)) * _DURATION_UNITS[match.group(2)]
    if seconds <= 0:
        msg = f"Duration must be positive, got {value!r}"
        raise ConfigError(msg)
    return timedelta(seconds=seconds)


def _decimal(section: dict[str, Any], key: str, default: Decimal) -> Decimal:
    """Read a decimal value from a config section."""
    raw = section.get(key)
    if raw is None:
        return default
    try:
        return Decimal(str(raw))
    except InvalidOperation as exc:
        msg = f"{key} must be numeric, got {raw!r}"
        raise ConfigError(msg) from exc


def _int(section: dict[str, Any], key: str, default: int) -> int:
    """Read an integer value from a config section."""
    raw = section.get(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        msg = f"{key} must be an integer, got {raw!r}"
        raise ConfigError(msg) from exc


def _bool(section: dict[str, Any], key: str, *, default: bool) -> bool:
    """Read a boolean value, accepting env-substituted strings."""
    raw = section.get(key)
    if raw is None:
        return default
    if isinstance(raw, str):
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    return bool(raw)


def load_bot_config(loader: ConfigLoader) -> BotConfig:
    """Build a ``BotConfig`` from the loaded YAML settings.

    Args:
        loader: Configuration loader holding the merged settings.

    Returns:
        Typed bot configuration.

    Raises:
        ConfigError: If a value cannot be interpreted or fails validation.

    """
    risk = loader.get_section("risk")
    arb = loader.get_section("strategy.arbitrage")
    mis = loader.get_section("strategy.mispricing")
    td = loader.get_section("strategy.timedecay")
    mm = loader.get_section("strategy.marketmaking")
    sched = loader.get_section("schedule")
    coll = loader.get_section("collector")

    defaults = BotConfig()
    try:
        risk_config = RiskConfig(
            kelly_fraction=_decimal(risk, "kelly_fraction", defaults.risk.kelly_fraction),
            max_position_pct=_decimal(risk, "max_position_pct", defaults.risk.max_position_pct),
            max_market_exposure_pct=_decimal(
                risk, "max_market_exposure_pct", defaults.risk.max_market_exposure_pct
            ),
            max_total_exposure=_decimal(
                risk, "max_total_exposure", defaults.risk.max_total_exposure
            ),
            max_drawdown_pct=_decimal(risk, "max_drawdown_pct", defaults.risk.max_drawdown_pct),
            min_bet_amount=_decimal(risk, "min_bet_amount", defaults.risk.min_bet_amount),
            min_edge=_decimal(risk, "min_edge", defaults.risk.min_edge),
        )
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc

    sched_defaults = defaults.schedule
    return BotConfig(
        risk=risk_config,
        arbitrage=ArbitrageConfig(
            enabled=_bool(arb, "enabled", default=defaults.arbitrage.enabled),
            min_liquidity=_decimal(arb, "min_liquidity", defaults.arbitrage.min_liquidity),
            min_prob_sum_deviation=_decimal(
                arb, "min_prob_sum_deviation", defaults.arbitrage.min_prob_sum_deviation
            ),
            max_markets_per_cycle=_int(
                arb, "max_markets_per_cycle", defaults.arbitrage.max_markets_per_cycle
            ),
            max_close_days=_int(arb, "max_close_days", defaults.arbitrage.max_close_days),
        ),
        mispricing=MispricingConfig(
            enabled=_bool(mis, "enabled", default=defaults.mispricing.enabled),
            extreme_threshold_high=_decimal(
                mis, "extreme_threshold_high", defaults.mispricing.extreme_threshold_high
            ),
            extreme_threshold_low=_decimal(
                mis, "extreme_threshold_low", defaults.mispricing.extreme_threshold_low
            ),
            min_market_age_days=_int(
                mis, "min_market_age_days", defaults.mispricing.min_market_age_days
            ),
            min_volume=_decimal(mis, "min_volume", defaults.mispricing.min_volume),
        ),
        timedecay=TimeDecayConfig(
            enabled=_bool(td, "enabled", default=defaults.timedecay.enabled),
            min_time_elapsed_fraction=_decimal(
                td, "min_time_elapsed_fraction", defaults.timedecay.min_time_elapsed_fraction
            ),
            min_edge=_decimal(td, "min_edge", defaults.timedecay.min_edge),
            min_volume=_decimal(td, "min_volume", defaults.timedecay.min_volume),
        ),
        marketmaking=MarketMakingConfig(
            enabled=_bool(mm, "enabled", default=defaults.marketmaking.enabled),
            base_spread=_decimal(mm, "base_spread", defaults.marketmaking.base_spread),
            min_liquidity=_decimal(mm, "min_liquidity", defaults.marketmaking.min_liquidity),
            min_volume_24h=_decimal(mm, "min_volume_24h", defaults.marketmaking.min_volume_24h),
        ),
        schedule=ScheduleConfig(
            scan_interval=parse_duration(sched.get("scan_interval", sched_defaults.scan_interval)),
            snapshot_interval=parse_duration(
                sched.get("snapshot_interval", sched_defaults.snapshot_interval)
            ),
            performance_interval=parse_duration(
                sched.get("performance_interval", sched_defaults.performance_interval)
            ),
            order_cleanup_interval=parse_duration(
                sched.get("order_cleanup_interval", sched_defaults.order_cleanup_interval)
            ),
            cache_ttl=parse_duration(sched.get("cache_ttl", sched_defaults.cache_ttl)),
            scan_limit=_int(sched, "scan_limit", sched_defaults.scan_limit),
        ),
        collector=CollectorConfig(
            max_markets_per_scan=_int(
                coll, "max_markets_per_scan", defaults.collector.max_markets_per_scan
            ),
            min_liquidity=_decimal(coll, "min_liquidity", defaults.collector.min_liquidity),
        ),
    )
