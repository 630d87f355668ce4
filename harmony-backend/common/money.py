# common/money.py
from decimal import Decimal, ROUND_HALF_UP

CENTS = Decimal("0.01")
UNIT = Decimal("1")


def to_decimal(value) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value) -> Decimal:
    """Quantize to paise, rounding half up (cash register behavior)."""
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def whole(value) -> int:
    """Round a currency aggregate to whole rupees for display, half up."""
    return int(to_decimal(value).quantize(UNIT, rounding=ROUND_HALF_UP))
