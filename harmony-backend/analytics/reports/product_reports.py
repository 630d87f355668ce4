# analytics/reports/product_reports.py
"""
Stock position and per-product sales.
"""
from decimal import Decimal
from typing import Any, Dict, Optional

from django.db.models import Count, ExpressionWrapper, F, Sum
from django.db.models.functions import Coalesce

from billing.models import Bill, BillItem
from catalog.models import Product
from common.money import whole

from .base import MONEY, money_sum, within

LOW_STOCK = "Low Stock"
IN_STOCK = "In Stock"


def calculate_stock_report() -> Dict[str, Any]:
    """Every product, lowest quantity first (ties by id), with stock value at buying price."""
    rows = []
    for p in Product.objects.order_by("quantity", "id"):
        rows.append({
            "id": p.pk,
            "name": p.name,
            "company": p.company,
            "category": p.category,
            "quantity": p.quantity,
            "quantityAlert": p.quantity_alert,
            "buyingPrice": float(p.buying_price),
            "sellingPriceCash": float(p.selling_price_cash),
            "sellingPriceUdhaar": float(p.selling_price_udhaar),
            "stockValue": float(p.buying_price * p.quantity),
            "status": LOW_STOCK if p.is_low_stock else IN_STOCK,
        })

    agg = Product.objects.aggregate(
        total_products=Count("id"),
        total_stock=Coalesce(Sum("quantity"), 0),
        total_value=Coalesce(
            Sum(ExpressionWrapper(F("quantity") * F("buying_price"), output_field=MONEY)),
            Decimal("0.00"),
            output_field=MONEY,
        ),
    )
    return {
        "rows": rows,
        "summary": {
            "totalProducts": agg["total_products"],
            "totalStock": agg["total_stock"],
            "lowStockProducts": Product.objects.low_stock().count(),
            "totalValue": whole(agg["total_value"]),
        },
    }


def calculate_product_sales(date_from=None, date_to=None, limit: Optional[int] = None) -> Dict[str, Any]:
    """
    Line items of non-cancelled bills grouped by product id (names are not
    unique). Each row is labelled with the most recent name snapshot.
    Sorted by sales value, highest first. billCount is the number of bill
    lines for the product, so a bill listing it twice counts twice.
    """
    items = within(
        BillItem.objects.exclude(bill__status=Bill.Status.CANCELLED),
        date_from,
        date_to,
        field="bill__created_at",
    )
    grouped = (
        items.values("product_id")
            .annotate(
                qty=Sum("quantity"),
                sales=money_sum(),
                lines=Count("id"),
            )
            .order_by("-sales", "product_id")
    )
    if limit:
        grouped = grouped[:limit]
    grouped = list(grouped)

    names = {}
    latest_first = (
        items.filter(product_id__in=[g["product_id"] for g in grouped])
            .order_by("product_id", "-bill__created_at", "-id")
            .values_list("product_id", "product_name")
    )
    for product_id, name in latest_first:
        names.setdefault(product_id, name)

    totals = items.aggregate(
        qty=Coalesce(Sum("quantity"), 0),
        sales=money_sum(),
        products=Count("product_id", distinct=True),
    )

    return {
        "rows": [
            {
                "productId": g["product_id"],
                "productName": names.get(g["product_id"], ""),
                "quantity": g["qty"],
                "totalSales": whole(g["sales"]),
                "billCount": g["lines"],
            }
            for g in grouped
        ],
        "summary": {
            "totalQuantity": totals["qty"],
            "totalSales": whole(totals["sales"]),
            "productCount": totals["products"],
        },
    }
