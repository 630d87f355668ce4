# billing/totals.py
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from django.conf import settings

from common.exceptions import TotalsMismatch, ValidationError
from common.money import money, to_decimal


@dataclass
class LineIn:
    product_id: int
    product_name: str
    quantity: int
    rate: Decimal
    total: Optional[Decimal] = None  # as sent by the client, checked against quantity * rate


@dataclass
class LineOut:
    product_id: int
    product_name: str
    quantity: int
    rate: Decimal
    total: Decimal


@dataclass
class BillTotals:
    subtotal: Decimal
    gst: Decimal
    total: Decimal
    lines: List[LineOut] = field(default_factory=list)


def gst_rate() -> Decimal:
    return to_decimal(settings.BILLING.get("GST_RATE", Decimal("0.18")))


def _tolerance() -> Decimal:
    return to_decimal(settings.BILLING.get("TOTALS_TOLERANCE", Decimal("0.01")))


def _check(label, supplied, computed):
    if supplied is None:
        return
    if abs(money(supplied) - computed) > _tolerance():
        raise TotalsMismatch(
            f"{label} does not match the items: sent {money(supplied)}, expected {computed}",
            field=label,
            expected=str(computed),
            received=str(money(supplied)),
        )


def compute_bill_totals(lines, *, bill_type, subtotal=None, gst=None, total=None) -> BillTotals:
    """
    Recompute a bill from its lines and validate whatever totals the client sent.

    Line total = quantity * rate; subtotal = sum of lines; GST only on pakka
    bills (rate from settings.BILLING["GST_RATE"]); total = subtotal + gst.
    Values the client left out are filled in, values it sent must agree to
    within settings.BILLING["TOTALS_TOLERANCE"].
    """
    out = []
    running = Decimal("0.00")
    for ln in lines:
        rate = money(ln.rate)
        if rate < 0:
            raise ValidationError("Item rate cannot be negative", product_id=ln.product_id)
        line_total = money(rate * ln.quantity)
        _check(f"total for {ln.product_name or ln.product_id}", ln.total, line_total)
        out.append(LineOut(ln.product_id, ln.product_name, ln.quantity, rate, line_total))
        running += line_total

    computed_subtotal = money(running)
    if bill_type == "pakka":
        computed_gst = money(computed_subtotal * gst_rate())
    else:
        computed_gst = Decimal("0.00")
    computed_total = money(computed_subtotal + computed_gst)

    _check("subtotal", subtotal, computed_subtotal)
    _check("gst", gst, computed_gst)
    _check("total", total, computed_total)

    return BillTotals(subtotal=computed_subtotal, gst=computed_gst, total=computed_total, lines=out)
