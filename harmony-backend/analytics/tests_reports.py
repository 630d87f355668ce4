"""
Report calculations: local-day bucketing, cancelled-bill exclusion, rounding
and ordering, plus the report endpoints.
"""
from datetime import date, datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIRequestFactory, force_authenticate

from analytics.reports.base import parse_date_range
from analytics.reports.dashboard import calculate_dashboard
from analytics.reports.product_reports import calculate_product_sales, calculate_stock_report
from analytics.reports.sales_reports import calculate_sales_report, calculate_udhaar_report
from analytics.views import DashboardView, ProductSalesReportView, SalesReportView
from billing import services
from billing.models import Bill
from catalog.models import Product

User = get_user_model()

IST = ZoneInfo("Asia/Kolkata")
UTC = ZoneInfo("UTC")


class ReportsTestBase(TestCase):
    """Provides shared fixtures for report tests."""

    def setUp(self):
        self.factory = APIRequestFactory()
        self.user = User.objects.create_user(username="reports-owner", password="test-pass")
        self.product = self.make_product("Carbendazim 50% WP", quantity=100, alert=20, buying="320.00")
        self._n = 0

    def make_product(self, name, quantity, alert=10, buying="100.00"):
        return Product.objects.create(
            name=name,
            company="Dhanuka Agritech",
            category="Fungicide",
            quantity=quantity,
            quantity_alert=alert,
            buying_price=Decimal(buying),
            selling_price_cash=Decimal("380.00"),
            selling_price_udhaar=Decimal("400.00"),
        )

    def bill(self, amount, mode="Cash", when=None, cancel=False, complete=False, due=None,
             product=None, quantity=1, name=None):
        self._n += 1
        item = {
            "product_id": (product or self.product).pk,
            "quantity": quantity,
            "rate": str(Decimal(amount) / quantity),
        }
        if name:
            item["product_name"] = name
        bill = services.create_bill(
            bill_number=f"KB-{self._n:03d}",
            customer={"name": "Ramesh Kumar", "mobile": "9876543210"},
            items=[item],
            payment_mode=mode,
            due_date=due,
        )
        if when is not None:
            Bill.objects.filter(pk=bill.pk).update(created_at=when)
        if complete:
            services.update_status(bill.pk, "completed")
        if cancel:
            services.update_status(bill.pk, "cancelled")
        return bill


class DashboardTests(ReportsTestBase):
    def setUp(self):
        super().setUp()
        self.now = datetime(2026, 10, 19, 12, 0, tzinfo=IST)
        self.bill("300.00", when=datetime(2026, 10, 19, 10, 0, tzinfo=IST))
        self.bill("400.00", mode="Udhaar", when=datetime(2026, 10, 19, 11, 0, tzinfo=IST))
        self.bill("500.00", when=datetime(2026, 10, 19, 9, 0, tzinfo=IST), cancel=True)
        self.bill("800.00", mode="Udhaar", when=datetime(2026, 8, 5, 15, 0, tzinfo=IST))
        # 20:00 UTC on the 18th is 01:30 on the 19th in India
        self.bill("1000.50", when=datetime(2026, 10, 18, 20, 0, tzinfo=UTC))
        # previous local day
        self.bill("70.00", when=datetime(2026, 10, 18, 23, 0, tzinfo=IST))

    def test_today_figures_use_local_day_and_skip_cancelled(self):
        data = calculate_dashboard(now=self.now)

        self.assertEqual(data["todaySales"], 1701)  # 1700.50 rounds half up
        self.assertEqual(data["todayCashSales"], 1301)
        self.assertEqual(data["todayUdhaarSales"], 400)
        self.assertEqual(data["pendingUdhaarAmount"], 1200)
        self.assertEqual(data["totalBills"], 5)
        self.assertEqual(data["totalProducts"], 1)
        self.assertEqual(data["lowStockCount"], 0)

    def test_monthly_series_is_dense_and_ends_with_current_month(self):
        months = calculate_dashboard(now=self.now)["monthlySalesData"]

        self.assertEqual([m["month"] for m in months], ["May", "Jun", "Jul", "Aug", "Sep", "Oct"])
        self.assertEqual({m["year"] for m in months}, {2026})
        self.assertEqual([m["sales"] for m in months], [0, 0, 0, 800, 0, 1771])

    def test_completed_udhaar_is_not_pending(self):
        self.bill("250.00", mode="Udhaar", when=datetime(2026, 10, 19, 8, 0, tzinfo=IST), complete=True)
        data = calculate_dashboard(now=self.now)
        self.assertEqual(data["pendingUdhaarAmount"], 1200)
        self.assertEqual(data["todayUdhaarSales"], 650)

    def test_dashboard_endpoint(self):
        request = self.factory.get("/api/v1/analytics/dashboard")
        force_authenticate(request, user=self.user)
        response = DashboardView.as_view()(request)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data["monthlySalesData"]), 6)
        self.assertEqual(response.data["totalBills"], 5)


class SalesReportTests(ReportsTestBase):
    def test_rows_per_local_day_newest_first(self):
        self.bill("300.00", when=datetime(2026, 10, 19, 10, 0, tzinfo=IST))
        self.bill("400.00", mode="Udhaar", when=datetime(2026, 10, 18, 20, 0, tzinfo=UTC))
        self.bill("999.00", when=datetime(2026, 10, 19, 9, 0, tzinfo=IST), cancel=True)
        self.bill("800.25", mode="Udhaar", when=datetime(2026, 8, 5, 15, 0, tzinfo=IST))

        report = calculate_sales_report()

        self.assertEqual(report["rows"], [
            {"date": "2026-10-19", "label": "19/10/2026", "total": 700, "count": 2, "cash": 300, "udhaar": 400},
            {"date": "2026-08-05", "label": "5/8/2026", "total": 800, "count": 1, "cash": 0, "udhaar": 800},
        ])
        self.assertEqual(report["summary"], {"total": 1500, "count": 3, "cash": 300, "udhaar": 1200})

    def test_date_range_filter(self):
        self.bill("300.00", when=datetime(2026, 10, 19, 10, 0, tzinfo=IST))
        self.bill("800.00", when=datetime(2026, 8, 5, 15, 0, tzinfo=IST))

        df, dt_, err = parse_date_range("2026-10-01", "2026-10-31")
        self.assertIsNone(err)
        report = calculate_sales_report(df, dt_)
        self.assertEqual([r["date"] for r in report["rows"]], ["2026-10-19"])

    def test_bad_range_is_400(self):
        request = self.factory.get("/api/v1/analytics/reports/sales", {"date_from": "2026-10-31", "date_to": "2026-10-01"})
        force_authenticate(request, user=self.user)
        response = SalesReportView.as_view()(request)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        request = self.factory.get("/api/v1/analytics/reports/sales", {"date_from": "not-a-date"})
        force_authenticate(request, user=self.user)
        response = SalesReportView.as_view()(request)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class UdhaarReportTests(ReportsTestBase):
    def test_sorted_by_due_date_with_undated_last(self):
        undated = self.bill("800.00", mode="Udhaar", when=datetime(2026, 10, 1, 10, 0, tzinfo=IST))
        late = self.bill("400.00", mode="Udhaar", due=date(2026, 11, 15))
        early = self.bill("250.00", mode="Udhaar", due=date(2026, 10, 25), complete=True)
        self.bill("999.00", mode="Udhaar", due=date(2026, 10, 1), cancel=True)
        self.bill("100.00")  # cash

        report = calculate_udhaar_report()

        self.assertEqual([r["billNumber"] for r in report["rows"]],
                         [early.bill_number, late.bill_number, undated.bill_number])
        first, _, last = report["rows"]
        self.assertEqual(first["dueDate"], "2026-10-25")
        self.assertFalse(first["isPending"])
        self.assertEqual(first["status"], "completed")
        self.assertEqual(last["dueDate"], "No Due Date")
        self.assertTrue(last["isPending"])
        self.assertEqual(last["amount"], 800.0)
        self.assertEqual(report["summary"], {
            "totalUdhaar": 1450,
            "pendingUdhaar": 1200,
            "completedUdhaar": 250,
            "totalBills": 3,
        })

    def test_completed_amount_rounds_after_subtracting(self):
        self.bill("49.80", mode="Udhaar", complete=True)
        self.bill("50.60", mode="Udhaar")

        summary = calculate_udhaar_report()["summary"]

        self.assertEqual(summary["totalUdhaar"], 100)
        self.assertEqual(summary["pendingUdhaar"], 51)
        self.assertEqual(summary["completedUdhaar"], 50)


class StockReportTests(ReportsTestBase):
    def test_rows_sorted_by_quantity_with_status_and_value(self):
        low = self.make_product("Zinc EDTA 12%", quantity=5, alert=15, buying="680.00")
        edge = self.make_product("Glyphosate 41% SL", quantity=10, alert=10, buying="520.00")

        report = calculate_stock_report()

        self.assertEqual([r["name"] for r in report["rows"]], [low.name, edge.name, self.product.name])
        self.assertEqual([r["status"] for r in report["rows"]], ["Low Stock", "Low Stock", "In Stock"])
        self.assertEqual(
            (report["rows"][0]["sellingPriceCash"], report["rows"][0]["sellingPriceUdhaar"]),
            (380.0, 400.0),
        )
        self.assertEqual(report["summary"], {
            "totalProducts": 3,
            "totalStock": 115,
            "lowStockProducts": 2,
            "totalValue": 5 * 680 + 10 * 520 + 100 * 320,
        })

    def test_ties_break_by_id(self):
        first = self.make_product("First", quantity=7)
        second = self.make_product("Second", quantity=7)
        names = [r["name"] for r in calculate_stock_report()["rows"]]
        self.assertEqual(names[:2], [first.name, second.name])


class ProductSalesReportTests(ReportsTestBase):
    def test_grouped_by_product_id_excluding_cancelled(self):
        other = self.make_product("NPK 19:19:19", quantity=100)
        self.bill("760.00", quantity=2, name="Carbendazim (old label)", when=datetime(2026, 10, 1, 10, 0, tzinfo=IST))
        self.bill("380.00", quantity=1, name="Carbendazim 50% WP", when=datetime(2026, 10, 2, 10, 0, tzinfo=IST))
        self.bill("5000.00", quantity=5, product=other)
        self.bill("380.00", quantity=1, cancel=True)

        report = calculate_product_sales()
        rows = report["rows"]

        self.assertEqual(rows, [
            {"productId": other.pk, "productName": "NPK 19:19:19", "quantity": 5, "totalSales": 5000, "billCount": 1},
            {"productId": self.product.pk, "productName": "Carbendazim 50% WP", "quantity": 3, "totalSales": 1140, "billCount": 2},
        ])
        self.assertEqual(report["summary"], {"totalQuantity": 8, "totalSales": 6140, "productCount": 2})

    def test_bill_count_counts_lines(self):
        services.create_bill(
            bill_number="KB-TWICE",
            customer={"name": "Ramesh Kumar", "mobile": "9876543210"},
            items=[
                {"product_id": self.product.pk, "quantity": 1, "rate": "380.00"},
                {"product_id": self.product.pk, "quantity": 2, "rate": "370.00"},
            ],
            payment_mode="Cash",
        )

        [row] = calculate_product_sales()["rows"]

        self.assertEqual((row["quantity"], row["totalSales"], row["billCount"]), (3, 1120, 2))

    def test_same_name_different_products_stay_apart(self):
        twin = self.make_product("Carbendazim 50% WP", quantity=10)
        self.bill("100.00", product=twin)
        self.bill("200.00")

        rows = calculate_product_sales()["rows"]
        self.assertEqual(len(rows), 2)
        self.assertEqual([r["totalSales"] for r in rows], [200, 100])

    def test_endpoint_limit(self):
        other = self.make_product("NPK 19:19:19", quantity=100)
        self.bill("100.00")
        self.bill("900.00", product=other)

        request = self.factory.get("/api/v1/analytics/reports/product-sales", {"limit": "1"})
        force_authenticate(request, user=self.user)
        response = ProductSalesReportView.as_view()(request)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([r["productId"] for r in response.data["rows"]], [other.pk])
