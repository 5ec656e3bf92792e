"""Core constants and enums shared across the trading tools application.

Define the ``Decimal`` constants used in every probability and amount
calculation, the bet ``Outcome`` enum, and the market contract type names
returned by the Manifold API.
"""

from decimal import Decimal
from enum import Enum

ZERO = Decimal(0)
ONE = Decimal(1)

BINARY = "BINARY"
MULTIPLE_CHOICE = "MULTIPLE_CHOICE"


class Outcome(Enum):
    """Side of a bet: YES (market resolves true) or NO."""

    YES = "YES"
    NO = "NO"


def to_decimal(value: object) -> Decimal:
    """Convert a JSON or SQL numeric value into a ``Decimal``.

    Route every float through ``str`` so that ``0.1`` becomes
    ``Decimal("0.1")`` rather than its binary expansion.  Market data
    reaches the engine through this helper whether it came from the API
    or from the snapshot store.

    Args:
        value: Number, numeric string, or ``None``.

    Returns:
        The value as a ``Decimal``; ``ZERO`` for ``None``.

    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))
