"""Decimal rounding applied to every figure placed in an analytics result."""

from decimal import Decimal, ROUND_HALF_UP

TWO_PLACES = Decimal("0.01")


def round2(value: float) -> float:
    """Round half-up to 2 decimal places using the value's shortest decimal form.

    Binary-float rounding would turn 2.675 into 2.67; going through
    ``str`` keeps it at 2.68.
    """
    return float(Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP))
