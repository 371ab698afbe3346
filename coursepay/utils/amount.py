"""Amount utilities for gateway minor units.

The gateway takes and returns amounts as integers in the currency's
smallest unit (paise for INR). Locally amounts are ``Decimal`` with two
decimal places.
"""

from decimal import ROUND_HALF_UP, Decimal

MINOR_UNITS_PER_MAJOR = 100
TWO_PLACES = Decimal("0.01")


def quantize_amount(amount: Decimal | int | str) -> Decimal:
    """Round an amount to two decimal places.

    Example: 499 -> 499.00, 10.005 -> 10.01
    """
    return Decimal(str(amount)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal | int | str) -> int:
    """Convert a major-unit amount to gateway minor units.

    Example: Decimal("499.00") -> 49900
    """
    return int(quantize_amount(amount) * MINOR_UNITS_PER_MAJOR)


def from_minor_units(minor: int | str) -> Decimal:
    """Convert gateway minor units to a major-unit amount.

    Example: 49900 -> Decimal("499.00")
    """
    return quantize_amount(Decimal(int(minor)) / MINOR_UNITS_PER_MAJOR)
