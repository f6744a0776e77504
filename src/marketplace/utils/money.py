from decimal import ROUND_HALF_UP, Decimal


def to_minor_units(amount: float) -> int:
    """Convert a major-unit amount (dollars) to minor units (cents), rounding half up."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def round_money(amount: float) -> float:
    return float(Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
