# analytics/reports/dashboard.py
from typing import Any, Dict

from dateutil.relativedelta import relativedelta
from django.db.models import Q
from django.db.models.functions import TruncMonth
from django.utils import timezone

from billing.models import Bill
from catalog.models import Product
from common.money import whole

from .base import billable_bills, day_bounds, local_tz, money_sum, to_local_date

MONTHS_SHOWN = 6


def calculate_dashboard(now=None) -> Dict[str, Any]:
    """
    Headline figures for the shop dashboard.

    - todaySales / todayCashSales / todayUdhaarSales: non-cancelled bills
      created on the current local day
    - pendingUdhaarAmount: Udhaar bills still pending
    - totalBills: non-cancelled bills
    - monthlySalesData: six calendar months ending with the current one
    - totalProducts / lowStockCount: catalog size and items at or below alert
    """
    tz = local_tz()
    now = now or timezone.now()
    today = timezone.localtime(now, tz).date()
    start, end = day_bounds(today, tz)

    live = billable_bills()
    today_agg = live.filter(created_at__gte=start, created_at__lt=end).aggregate(
        total_sales=money_sum(),
        cash_sales=money_sum(filter=Q(payment_mode=Bill.PaymentMode.CASH)),
        udhaar_sales=money_sum(filter=Q(payment_mode=Bill.PaymentMode.UDHAAR)),
    )
    pending_udhaar = Bill.objects.filter(
        payment_mode=Bill.PaymentMode.UDHAAR, status=Bill.Status.PENDING
    ).aggregate(s=money_sum())["s"]

    return {
        "todaySales": whole(today_agg["total_sales"]),
        "todayCashSales": whole(today_agg["cash_sales"]),
        "todayUdhaarSales": whole(today_agg["udhaar_sales"]),
        "pendingUdhaarAmount": whole(pending_udhaar),
        "totalBills": live.count(),
        "monthlySalesData": monthly_sales(today, tz),
        "totalProducts": Product.objects.count(),
        "lowStockCount": Product.objects.low_stock().count(),
    }


def monthly_sales(today, tz=None, months=MONTHS_SHOWN):
    """Dense month series, oldest first, zero for months without bills."""
    tz = tz or local_tz()
    current = today.replace(day=1)
    starts = [current - relativedelta(months=n) for n in range(months - 1, -1, -1)]
    range_start, _ = day_bounds(starts[0], tz)
    range_end, _ = day_bounds(current + relativedelta(months=1), tz)

    rows = (
        billable_bills()
            .filter(created_at__gte=range_start, created_at__lt=range_end)
            .annotate(period=TruncMonth("created_at", tzinfo=tz))
            .values("period")
            .annotate(sales=money_sum())
            .order_by("period")
    )
    buckets = {}
    for row in rows:
        d = to_local_date(row["period"], tz)
        if d is not None:
            buckets[(d.year, d.month)] = row["sales"]

    return [
        {
            "month": m.strftime("%b"),
            "year": m.year,
            "sales": whole(buckets.get((m.year, m.month), 0)),
        }
        for m in starts
    ]
