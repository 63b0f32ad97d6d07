# backend/utils/money.py
from decimal import Decimal, ROUND_HALF_UP

TWOPLACES = Decimal("0.01")


def money(v) -> Decimal:
    """Quantize a price-like value to two decimal places."""
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
