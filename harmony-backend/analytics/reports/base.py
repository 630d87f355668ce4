# analytics/reports/base.py
"""
Shared helpers for the report calculations: local-time day bounds, date range
parsing and the money aggregate used everywhere.

Reports never read cached counters; every call aggregates the bill and product
tables directly. Cancelled bills never count toward a monetary figure.
"""
from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import Optional, Tuple

from dateutil.parser import parse as parse_datetime
from django.db.models import DecimalField, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from billing.models import Bill


MONEY = DecimalField(max_digits=14, decimal_places=2)


def local_tz():
    """Calendar days and months follow settings.TIME_ZONE (Asia/Kolkata by default)."""
    return timezone.get_current_timezone()


def day_bounds(day, tz=None):
    """[start, end) of a local calendar day as aware datetimes."""
    tz = tz or local_tz()
    start = timezone.make_aware(datetime.combine(day, time.min), tz)
    return start, start + timedelta(days=1)


def to_local_date(value, tz=None):
    """Normalise a TruncDate/TruncMonth result (date or aware datetime) to a local date."""
    if value is None:
        return None
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            value = value.astimezone(tz or local_tz())
        return value.date()
    return value


def money_sum(field="total", **kwargs):
    return Coalesce(Sum(field, output_field=MONEY, **kwargs), Decimal("0.00"), output_field=MONEY)


def billable_bills():
    """Every bill that counts toward sales: anything not cancelled."""
    return Bill.objects.exclude(status=Bill.Status.CANCELLED)


def parse_date_range(
    date_from: Optional[str],
    date_to: Optional[str],
    max_days: int = 366,
) -> Tuple[Optional[datetime], Optional[datetime], Optional[str]]:
    """
    Parse optional ``date_from``/``date_to`` (YYYY-MM-DD or ISO datetime).

    Bare dates expand to local day bounds; ``date_to`` is inclusive of its
    whole day. Either side may be omitted.

    Returns:
        Tuple of (date_from_dt, date_to_dt, error_message)
    """
    def _to_aware(val: Optional[str], end_of_day: bool) -> Optional[datetime]:
        if not val:
            return None
        dt = parse_datetime(val)
        if len(val.strip()) <= 10:
            # bare date: whole local day
            start, end = day_bounds(dt.date())
            return end - timedelta(microseconds=1) if end_of_day else start
        return timezone.make_aware(dt, local_tz()) if timezone.is_naive(dt) else dt

    try:
        df = _to_aware(date_from, end_of_day=False)
        dt_ = _to_aware(date_to, end_of_day=True)
    except (ValueError, OverflowError):
        return None, None, "Dates must be YYYY-MM-DD or ISO 8601 datetimes"

    if df and dt_:
        if df > dt_:
            return None, None, "date_from must be before or equal to date_to"
        if (dt_ - df).days > max_days:
            return None, None, f"Date range cannot exceed {max_days} days"

    return df, dt_, None


def within(qs, date_from=None, date_to=None, field="created_at"):
    if date_from:
        qs = qs.filter(**{f"{field}__gte": date_from})
    if date_to:
        qs = qs.filter(**{f"{field}__lte": date_to})
    return qs
