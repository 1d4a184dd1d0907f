from decimal import ROUND_HALF_UP, Decimal


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (12.5 -> 13), unlike round()."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
