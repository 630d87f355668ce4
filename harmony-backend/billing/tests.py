import threading
from decimal import Decimal
from unittest import mock

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import connections
from django.test import TestCase, TransactionTestCase, skipUnlessDBFeature
from rest_framework import status
from rest_framework.test import APIRequestFactory, force_authenticate

from billing import services
from billing.models import AuditLog, Bill, BillItem
from billing.views import (
    AuditLogListView,
    BillDetailView,
    BillListCreateView,
    BillStatusView,
    PendingBillListView,
)
from catalog.models import Product
from common.exceptions import (
    BillNotFound,
    DuplicateBillNumber,
    EmptyBill,
    InsufficientStockError,
    InvalidStatus,
    InvalidTransition,
    TotalsMismatch,
    ValidationError,
)
from inventory import services as stock_services
from inventory.models import StockLedger


User = get_user_model()

CUSTOMER = {"name": "Ramesh Kumar", "mobile": "9876543210", "address": "Village Khanpur"}


def make_product(name, quantity, cash="380.00", udhaar="400.00"):
    return Product.objects.create(
        name=name,
        company="Dhanuka Agritech",
        category="Fungicide",
        quantity=quantity,
        quantity_alert=5,
        buying_price=Decimal("300.00"),
        selling_price_cash=Decimal(cash),
        selling_price_udhaar=Decimal(udhaar),
    )


class BillingTestBase(TestCase):
    def setUp(self):
        self.factory = APIRequestFactory()
        self.user = User.objects.create_user(username="billing-user", password="pass")
        self.a = make_product("A", 10)
        self.b = make_product("B", 5)

    def qty(self, product):
        product.refresh_from_db()
        return product.quantity

    def make_bill(self, number="KB-1", items=None, payment_mode="Cash", **kwargs):
        if items is None:
            items = [{"product_id": self.a.pk, "quantity": 3, "rate": "100.00"}]
        return services.create_bill(
            bill_number=number,
            customer=CUSTOMER,
            items=items,
            payment_mode=payment_mode,
            user=self.user,
            **kwargs,
        )


class CreateBillServiceTests(BillingTestBase):
    def test_create_debits_stock_and_snapshots_items(self):
        bill = self.make_bill(items=[
            {"product_id": self.a.pk, "quantity": 3, "rate": "100.00"},
            {"product_id": self.b.pk, "quantity": 2},
        ])

        self.assertEqual(bill.status, Bill.Status.PENDING)
        self.assertEqual(self.qty(self.a), 7)
        self.assertEqual(self.qty(self.b), 3)
        items = list(bill.items.all())
        self.assertEqual([(i.product_name, i.quantity, i.rate, i.total) for i in items], [
            ("A", 3, Decimal("100.00"), Decimal("300.00")),
            ("B", 2, Decimal("380.00"), Decimal("760.00")),  # catalog cash price
        ])
        self.assertEqual((bill.subtotal, bill.gst, bill.total), (Decimal("1060.00"), Decimal("0.00"), Decimal("1060.00")))
        self.assertEqual(StockLedger.objects.filter(ref_type=StockLedger.SALE, ref_id="KB-1").count(), 2)
        self.assertTrue(AuditLog.objects.filter(action="BILL_CREATED", bill=bill).exists())

    def test_udhaar_uses_udhaar_price_and_keeps_due_date(self):
        bill = self.make_bill(
            items=[{"product_id": self.a.pk, "quantity": 1}],
            payment_mode="Udhaar",
            due_date="2026-11-30",
        )
        self.assertEqual(bill.total, Decimal("400.00"))
        self.assertEqual(str(bill.due_date), "2026-11-30")
        self.assertTrue(bill.is_pending_udhaar)

    def test_cash_bill_drops_due_date(self):
        bill = self.make_bill(due_date="2026-11-30")
        self.assertIsNone(bill.due_date)

    def test_pakka_bill_adds_gst(self):
        bill = self.make_bill(
            items=[{"product_id": self.a.pk, "quantity": 2, "rate": "500.00"}],
            bill_type="pakka",
            gst="180.00",
            total="1180.00",
        )
        self.assertEqual((bill.subtotal, bill.gst, bill.total), (Decimal("1000.00"), Decimal("180.00"), Decimal("1180.00")))

    def test_totals_mismatch_persists_nothing(self):
        with self.assertRaises(TotalsMismatch):
            self.make_bill(total="999.00")
        self.assertFalse(Bill.objects.exists())
        self.assertEqual(self.qty(self.a), 10)

    def test_item_total_must_match_quantity_times_rate(self):
        with self.assertRaises(TotalsMismatch):
            self.make_bill(items=[{"product_id": self.a.pk, "quantity": 3, "rate": "100.00", "total": "250.00"}])

    def test_shortage_persists_nothing(self):
        with self.assertRaises(InsufficientStockError) as ctx:
            self.make_bill(items=[
                {"product_id": self.a.pk, "quantity": 2, "rate": "100.00"},
                {"product_id": self.b.pk, "quantity": 6, "rate": "100.00"},
            ])

        self.assertEqual((ctx.exception.available, ctx.exception.required), (5, 6))
        self.assertFalse(Bill.objects.exists())
        self.assertFalse(BillItem.objects.exists())
        self.assertEqual((self.qty(self.a), self.qty(self.b)), (10, 5))

    def test_empty_items_rejected(self):
        with self.assertRaises(EmptyBill):
            self.make_bill(items=[])

    def test_missing_customer_mobile_rejected(self):
        with self.assertRaises(ValidationError):
            services.create_bill(
                bill_number="KB-X",
                customer={"name": "Ramesh"},
                items=[{"product_id": self.a.pk, "quantity": 1}],
                payment_mode="Cash",
            )

    def test_duplicate_number_rejected_without_debit(self):
        self.make_bill()
        with self.assertRaises(DuplicateBillNumber):
            self.make_bill()
        self.assertEqual(Bill.objects.count(), 1)
        self.assertEqual(self.qty(self.a), 7)

    def test_duplicate_caught_by_unique_index_rolls_back_debit(self):
        self.make_bill()
        # first check misses (as in a race), the re-check after the insert fails sees it
        with mock.patch("billing.services.bill_number_taken", side_effect=[False, True]):
            with self.assertRaises(DuplicateBillNumber):
                self.make_bill()
        self.assertEqual(Bill.objects.count(), 1)
        self.assertEqual(self.qty(self.a), 7)


class StatusLifecycleTests(BillingTestBase):
    def test_complete_then_cancel_credits_once(self):
        bill = self.make_bill()
        services.update_status(bill.pk, "completed")
        self.assertEqual(self.qty(self.a), 7)

        services.update_status(bill.pk, "cancelled")
        self.assertEqual(self.qty(self.a), 10)

        # cancelling again is a no-op
        again = services.update_status(bill.pk, "cancelled")
        self.assertEqual(again.status, Bill.Status.CANCELLED)
        self.assertEqual(self.qty(self.a), 10)
        self.assertEqual(StockLedger.objects.filter(ref_type=StockLedger.CANCEL).count(), 1)

    def test_completed_cannot_go_back_to_pending(self):
        bill = self.make_bill()
        services.update_status(bill.pk, "completed")
        with self.assertRaises(InvalidTransition):
            services.update_status(bill.pk, "pending")
        bill.refresh_from_db()
        self.assertEqual(bill.status, Bill.Status.COMPLETED)

    def test_cancelled_cannot_be_reopened_by_default(self):
        bill = self.make_bill()
        services.update_status(bill.pk, "cancelled")
        with self.assertRaises(InvalidTransition):
            services.update_status(bill.pk, "pending")
        self.assertEqual(self.qty(self.a), 10)

    def test_reactivation_redebits_when_enabled(self):
        bill = self.make_bill()
        services.update_status(bill.pk, "cancelled")
        with self.settings(BILLING={**settings.BILLING, "ALLOW_REACTIVATION": True}):
            reopened = services.update_status(bill.pk, "pending")
        self.assertEqual(reopened.status, Bill.Status.PENDING)
        self.assertEqual(self.qty(self.a), 7)
        self.assertTrue(StockLedger.objects.filter(ref_type=StockLedger.REACTIVATE).exists())

    def test_reactivation_still_checks_stock(self):
        bill = self.make_bill(items=[{"product_id": self.b.pk, "quantity": 5}])
        services.update_status(bill.pk, "cancelled")
        self.make_bill(number="KB-2", items=[{"product_id": self.b.pk, "quantity": 4}])

        with self.settings(BILLING={**settings.BILLING, "ALLOW_REACTIVATION": True}):
            with self.assertRaises(InsufficientStockError):
                services.update_status(bill.pk, "completed")
        bill.refresh_from_db()
        self.assertEqual(bill.status, Bill.Status.CANCELLED)
        self.assertEqual(self.qty(self.b), 1)

    def test_unknown_status_and_missing_bill(self):
        bill = self.make_bill()
        with self.assertRaises(InvalidStatus):
            services.update_status(bill.pk, "archived")
        with self.assertRaises(BillNotFound):
            services.update_status(424242, "completed")

    def test_cancel_after_product_deleted_still_succeeds(self):
        bill = self.make_bill(items=[
            {"product_id": self.a.pk, "quantity": 1, "rate": "100.00"},
            {"product_id": self.b.pk, "quantity": 1, "rate": "100.00"},
        ])
        self.b.delete()
        services.update_status(bill.pk, "cancelled")
        self.assertEqual(self.qty(self.a), 10)


class DeleteBillTests(BillingTestBase):
    def test_delete_pending_restores_stock(self):
        bill = self.make_bill()
        self.assertTrue(services.delete_bill(bill.pk))
        self.assertEqual(self.qty(self.a), 10)
        self.assertFalse(Bill.objects.exists())
        self.assertFalse(BillItem.objects.exists())
        log = AuditLog.objects.get(action="BILL_DELETED")
        self.assertEqual(log.metadata["bill_number"], "KB-1")

    def test_delete_after_cancel_is_stock_neutral(self):
        bill = self.make_bill()
        services.update_status(bill.pk, "cancelled")
        self.assertFalse(services.delete_bill(bill.pk))
        self.assertEqual(self.qty(self.a), 10)

    def test_delete_missing(self):
        with self.assertRaises(BillNotFound):
            services.delete_bill(424242)


class StockConsistencyTests(BillingTestBase):
    def test_sequence_never_oversells(self):
        for n in range(1, 6):
            try:
                self.make_bill(number=f"KB-{n}", items=[{"product_id": self.b.pk, "quantity": 2}])
            except InsufficientStockError:
                pass
        self.assertEqual(self.qty(self.b), 1)
        self.assertEqual(Bill.objects.count(), 2)

    def test_lifecycle_returns_to_initial_stock(self):
        first = self.make_bill(number="KB-1")
        second = self.make_bill(number="KB-2", items=[{"product_id": self.a.pk, "quantity": 2}])
        services.update_status(first.pk, "completed")
        services.update_status(first.pk, "cancelled")
        services.delete_bill(first.pk)
        services.delete_bill(second.pk)
        self.assertEqual(self.qty(self.a), 10)


class ConcurrentCreateTests(TransactionTestCase):
    """Bills racing for the same stock, each in its own connection."""

    def setUp(self):
        self.product = make_product("Last carton", 4)

    def test_conditional_debit_refuses_to_go_negative(self):
        self.assertEqual(stock_services._apply_delta(self.product.pk, -5), 0)
        self.assertEqual(stock_services._apply_delta(self.product.pk, -4), 1)
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 0)

    @skipUnlessDBFeature("has_select_for_update")
    def test_two_bills_for_the_last_units_only_one_wins(self):
        barrier = threading.Barrier(2)
        outcomes = []

        def place(number):
            try:
                barrier.wait(timeout=5)
                services.create_bill(
                    bill_number=number,
                    customer=CUSTOMER,
                    items=[{"product_id": self.product.pk, "quantity": 4, "rate": "100.00"}],
                    payment_mode="Cash",
                )
                outcomes.append("created")
            except InsufficientStockError:
                outcomes.append("short")
            finally:
                connections.close_all()

        threads = [threading.Thread(target=place, args=(f"KB-R{n}",)) for n in (1, 2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        self.assertEqual(sorted(outcomes), ["created", "short"])
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 0)
        self.assertEqual(Bill.objects.count(), 1)
        self.assertEqual(StockLedger.objects.filter(ref_type=StockLedger.SALE).count(), 1)


class BillApiTests(BillingTestBase):
    def _post(self, payload):
        request = self.factory.post("/api/v1/bills/", payload, format="json")
        force_authenticate(request, user=self.user)
        return BillListCreateView.as_view()(request)

    def _payload(self, **overrides):
        payload = {
            "bill_number": "KB-100",
            "bill_type": "kaccha",
            "customer": CUSTOMER,
            "items": [{"product_id": self.a.pk, "product_name": "A", "quantity": 2, "rate": "400.00", "total": "800.00"}],
            "payment_mode": "Udhaar",
            "due_date": "2026-12-01",
            "subtotal": "800.00",
            "gst": "0.00",
            "total": "800.00",
        }
        payload.update(overrides)
        return payload

    def test_create_returns_bill(self):
        response = self._post(self._payload())

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["bill_number"], "KB-100")
        self.assertEqual(response.data["status"], "pending")
        self.assertEqual(response.data["customer"]["mobile"], "9876543210")
        self.assertEqual(response.data["total"], "800.00")
        self.assertEqual(response.data["created_by_name"], "billing-user")
        self.assertEqual(len(response.data["items"]), 1)
        self.assertEqual(self.qty(self.a), 8)

    def test_shortage_is_400_with_details(self):
        response = self._post(self._payload(
            items=[{"product_id": self.b.pk, "quantity": 6, "rate": "10.00"}],
            subtotal="60.00",
            total="60.00",
        ))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "insufficient_stock")
        self.assertEqual(response.data["product"], "B")
        self.assertEqual((response.data["available"], response.data["required"]), (5, 6))
        self.assertEqual(response.data["detail"], "Insufficient stock for B. Available: 5, Required: 6")

    def test_duplicate_is_409(self):
        self._post(self._payload())
        response = self._post(self._payload())
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "duplicate_bill_number")
        self.assertEqual(self.qty(self.a), 8)

    def test_empty_items_is_400(self):
        response = self._post(self._payload(items=[]))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "empty_bill")

    def test_list_filters_and_pending_feed(self):
        first = self.make_bill(number="KB-1")
        self.make_bill(number="KB-2")
        services.update_status(first.pk, "completed")

        request = self.factory.get("/api/v1/bills/", {"status": "completed"})
        force_authenticate(request, user=self.user)
        completed = BillListCreateView.as_view()(request)
        self.assertEqual([b["bill_number"] for b in completed.data], ["KB-1"])

        request = self.factory.get("/api/v1/bills/pending")
        force_authenticate(request, user=self.user)
        pending = PendingBillListView.as_view()(request)
        self.assertEqual([b["bill_number"] for b in pending.data], ["KB-2"])

        request = self.factory.get("/api/v1/bills/")
        force_authenticate(request, user=self.user)
        everything = BillListCreateView.as_view()(request)
        self.assertEqual([b["bill_number"] for b in everything.data], ["KB-2", "KB-1"])

    def test_status_patch(self):
        bill = self.make_bill()

        request = self.factory.patch(f"/api/v1/bills/{bill.pk}/status", {"status": "cancelled"}, format="json")
        force_authenticate(request, user=self.user)
        response = BillStatusView.as_view()(request, pk=bill.pk)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "cancelled")
        self.assertEqual(self.qty(self.a), 10)

        request = self.factory.patch(f"/api/v1/bills/{bill.pk}/status", {"status": "done"}, format="json")
        force_authenticate(request, user=self.user)
        response = BillStatusView.as_view()(request, pk=bill.pk)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "invalid_status")

        request = self.factory.patch(f"/api/v1/bills/{bill.pk}/status", {"status": "pending"}, format="json")
        force_authenticate(request, user=self.user)
        response = BillStatusView.as_view()(request, pk=bill.pk)
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "invalid_transition")

    def test_detail_and_delete(self):
        bill = self.make_bill()

        request = self.factory.get(f"/api/v1/bills/{bill.pk}")
        force_authenticate(request, user=self.user)
        response = BillDetailView.as_view()(request, pk=bill.pk)
        self.assertEqual(response.data["bill_number"], "KB-1")

        request = self.factory.delete(f"/api/v1/bills/{bill.pk}")
        force_authenticate(request, user=self.user)
        response = BillDetailView.as_view()(request, pk=bill.pk)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {"detail": "Bill deleted and stock restored"})

        request = self.factory.delete(f"/api/v1/bills/{bill.pk}")
        force_authenticate(request, user=self.user)
        response = BillDetailView.as_view()(request, pk=bill.pk)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["code"], "bill_not_found")

    def test_audit_log_feed(self):
        first = self.make_bill(number="KB-1")
        self.make_bill(number="KB-2")
        services.update_status(first.pk, "cancelled", user=self.user)

        request = self.factory.get("/api/v1/bills/audit-logs", {"bill_number": "KB-1"})
        force_authenticate(request, user=self.user)
        response = AuditLogListView.as_view()(request)
        self.assertEqual(
            [row["action"] for row in response.data],
            ["BILL_STATUS_CHANGED", "BILL_CREATED"],
        )
        self.assertEqual(response.data[0]["user_name"], "billing-user")

        request = self.factory.get("/api/v1/bills/audit-logs", {"action": "bill_created", "limit": "1"})
        force_authenticate(request, user=self.user)
        response = AuditLogListView.as_view()(request)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]["metadata"]["bill_number"], "KB-2")

        request = self.factory.get("/api/v1/bills/audit-logs", {"limit": "lots"})
        force_authenticate(request, user=self.user)
        response = AuditLogListView.as_view()(request)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
