# analytics/reports/sales_reports.py
"""
Sales and Udhaar (credit) report calculations.
"""
import logging
from typing import Any, Dict, List

from django.db.models import Count, F, Q
from django.db.models.functions import TruncDate
from django.utils import timezone

from billing.models import Bill
from common.money import whole

from .base import billable_bills, local_tz, money_sum, to_local_date, within

logger = logging.getLogger(__name__)

NO_DUE_DATE = "No Due Date"


def calculate_sales_report(date_from=None, date_to=None) -> Dict[str, Any]:
    """
    Per local calendar day, newest first, over every non-cancelled bill.

    Returns:
        rows: [{date (ISO), label (d/m/yyyy), total, count, cash, udhaar}]
        summary: totals across the rows
    """
    tz = local_tz()
    qs = within(billable_bills(), date_from, date_to)

    by_day = (
        qs.annotate(day=TruncDate("created_at", tzinfo=tz))
            .values("day")
            .annotate(
                day_total=money_sum(),
                bill_count=Count("id"),
                cash_sales=money_sum(filter=Q(payment_mode=Bill.PaymentMode.CASH)),
                udhaar_sales=money_sum(filter=Q(payment_mode=Bill.PaymentMode.UDHAAR)),
            )
            .order_by("-day")
    )

    rows: List[Dict[str, Any]] = []
    for row in by_day:
        d = to_local_date(row["day"], tz)
        rows.append({
            "date": d.isoformat(),
            "label": f"{d.day}/{d.month}/{d.year}",
            "total": whole(row["day_total"]),
            "count": row["bill_count"],
            "cash": whole(row["cash_sales"]),
            "udhaar": whole(row["udhaar_sales"]),
        })

    agg = qs.aggregate(
        total_sales=money_sum(),
        bill_count=Count("id"),
        cash_sales=money_sum(filter=Q(payment_mode=Bill.PaymentMode.CASH)),
        udhaar_sales=money_sum(filter=Q(payment_mode=Bill.PaymentMode.UDHAAR)),
    )
    logger.debug("Sales report: %s days, %s bills", len(rows), agg["bill_count"])
    return {
        "rows": rows,
        "summary": {
            "total": whole(agg["total_sales"]),
            "count": agg["bill_count"],
            "cash": whole(agg["cash_sales"]),
            "udhaar": whole(agg["udhaar_sales"]),
        },
    }


def calculate_udhaar_report() -> Dict[str, Any]:
    """
    Non-cancelled Udhaar bills by due date, earliest first; bills without a
    due date come last, then by creation time.
    """
    tz = local_tz()
    qs = Bill.objects.filter(payment_mode=Bill.PaymentMode.UDHAAR).exclude(status=Bill.Status.CANCELLED)

    rows = []
    for bill in qs.order_by(F("due_date").asc(nulls_last=True), "created_at", "id"):
        rows.append({
            "id": bill.pk,
            "billNumber": bill.bill_number,
            "customerName": bill.customer_name,
            "customerMobile": bill.customer_mobile,
            "amount": float(bill.total),
            "dueDate": bill.due_date.isoformat() if bill.due_date else NO_DUE_DATE,
            "status": bill.status,
            "createdAt": timezone.localtime(bill.created_at, tz).isoformat(),
            "isPending": bill.status == Bill.Status.PENDING,
        })

    agg = qs.aggregate(
        udhaar_total=money_sum(),
        pending_total=money_sum(filter=Q(status=Bill.Status.PENDING)),
        bill_count=Count("id"),
    )
    return {
        "rows": rows,
        "summary": {
            "totalUdhaar": whole(agg["udhaar_total"]),
            "pendingUdhaar": whole(agg["pending_total"]),
            # rounded once, after subtracting
            "completedUdhaar": whole(agg["udhaar_total"] - agg["pending_total"]),
            "totalBills": agg["bill_count"],
        },
    }
