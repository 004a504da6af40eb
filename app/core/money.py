# app/core/money.py
"""
Rupee arithmetic helpers.

All money math runs on `Decimal`. Floats coming from JSON or the DB are
converted through `str()` so 0.1 stays 0.1, and every rounding to whole
rupees uses ROUND_HALF_UP (amounts are never negative, so "half up" and
"half away from zero" agree).
"""

from decimal import ROUND_HALF_UP, Decimal

ONE = Decimal("1")


def to_decimal(value: Decimal | float | int | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_rupees(value: Decimal) -> int:
    """Round to the nearest whole rupee, halves going up."""
    return int(value.quantize(ONE, rounding=ROUND_HALF_UP))


def format_inr(amount: Decimal | float | int) -> str:
    """
    Format with Indian digit grouping: last three digits, then pairs.

        >>> format_inr(1234567)
        '12,34,567'
        >>> format_inr(56650.5)
        '56,650.5'
    """
    value = to_decimal(amount).quantize(Decimal("0.001"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    whole, _, frac = f"{abs(value):f}".partition(".")
    frac = frac.rstrip("0")

    head, tail = whole[:-3], whole[-3:]
    groups: list[str] = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    groups.append(tail)

    text = ",".join(groups)
    return f"{sign}{text}.{frac}" if frac else f"{sign}{text}"
