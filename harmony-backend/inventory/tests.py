from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.test import TestCase

from catalog.models import Product
from common.exceptions import InsufficientStockError, ProductNotFound, StockMutationError, ValidationError
from inventory import services
from inventory.models import StockLedger


User = get_user_model()


def make_product(name="Carbendazim 50% WP", quantity=10, **extra):
    fields = {
        "company": "Dhanuka Agritech",
        "category": "Fungicide",
        "quantity_alert": 5,
        "buying_price": Decimal("320.00"),
        "selling_price_cash": Decimal("380.00"),
        "selling_price_udhaar": Decimal("400.00"),
    }
    fields.update(extra)
    return Product.objects.create(name=name, quantity=quantity, **fields)


class ValidateAndDebitTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="stock-user", password="pass")
        self.a = make_product("A", quantity=10)
        self.b = make_product("B", quantity=3)

    def test_debits_every_line_and_writes_ledger(self):
        entries = services.validate_and_debit(
            [{"product_id": self.a.pk, "quantity": 4}, {"product_id": self.b.pk, "quantity": 3}],
            ref_id="B-1",
            user=self.user,
        )

        self.a.refresh_from_db()
        self.b.refresh_from_db()
        self.assertEqual(self.a.quantity, 6)
        self.assertEqual(self.b.quantity, 0)
        self.assertEqual(len(entries), 2)
        row = StockLedger.objects.get(product=self.a)
        self.assertEqual(row.qty_delta, -4)
        self.assertEqual(row.balance_after, 6)
        self.assertEqual(row.ref_type, StockLedger.SALE)
        self.assertEqual(row.ref_id, "B-1")
        self.assertEqual(row.created_by, self.user)

    def test_shortage_on_any_line_debits_nothing(self):
        with self.assertRaises(InsufficientStockError) as ctx:
            services.validate_and_debit(
                [{"product_id": self.a.pk, "quantity": 2}, {"product_id": self.b.pk, "quantity": 5}]
            )

        err = ctx.exception
        self.assertEqual(err.product_name, "B")
        self.assertEqual(err.available, 3)
        self.assertEqual(err.required, 5)
        self.assertEqual(str(err), "Insufficient stock for B. Available: 3, Required: 5")
        self.a.refresh_from_db()
        self.b.refresh_from_db()
        self.assertEqual((self.a.quantity, self.b.quantity), (10, 3))
        self.assertFalse(StockLedger.objects.exists())

    def test_unknown_product_debits_nothing(self):
        with self.assertRaises(ProductNotFound):
            services.validate_and_debit(
                [{"product_id": self.a.pk, "quantity": 1}, {"product_id": 999999, "quantity": 1}]
            )
        self.a.refresh_from_db()
        self.assertEqual(self.a.quantity, 10)

    def test_repeated_product_is_validated_on_summed_quantity(self):
        with self.assertRaises(InsufficientStockError) as ctx:
            services.validate_and_debit(
                [{"product_id": self.b.pk, "quantity": 2}, {"product_id": self.b.pk, "quantity": 2}]
            )
        self.assertEqual(ctx.exception.required, 4)
        self.b.refresh_from_db()
        self.assertEqual(self.b.quantity, 3)

    def test_exact_quantity_empties_the_product(self):
        services.validate_and_debit([{"product_id": self.b.pk, "quantity": 3}])
        self.b.refresh_from_db()
        self.assertEqual(self.b.quantity, 0)

    def test_non_positive_quantity_rejected(self):
        with self.assertRaises(ValidationError):
            services.validate_and_debit([{"product_id": self.a.pk, "quantity": 0}])

    def test_failed_debit_after_validation_rolls_back_earlier_lines(self):
        real = services._apply_delta
        calls = []

        def flaky(product_id, delta):
            calls.append(product_id)
            if len(calls) == 2:
                return 0
            return real(product_id, delta)

        with mock.patch("inventory.services._apply_delta", side_effect=flaky):
            with self.assertRaises(StockMutationError) as ctx:
                services.validate_and_debit(
                    [{"product_id": self.a.pk, "quantity": 4}, {"product_id": self.b.pk, "quantity": 1}]
                )

        self.assertEqual(ctx.exception.product_id, self.b.pk)
        self.assertEqual(ctx.exception.detail, "Operation failed.")
        self.a.refresh_from_db()
        self.b.refresh_from_db()
        self.assertEqual((self.a.quantity, self.b.quantity), (10, 3))
        self.assertFalse(StockLedger.objects.exists())


class CreditTests(TestCase):
    def setUp(self):
        self.a = make_product("A", quantity=2)

    def test_credit_has_no_upper_bound(self):
        services.credit([{"product_id": self.a.pk, "quantity": 50}], ref_type=StockLedger.CANCEL, ref_id="B-9")
        self.a.refresh_from_db()
        self.assertEqual(self.a.quantity, 52)
        row = StockLedger.objects.get(product=self.a)
        self.assertEqual((row.qty_delta, row.ref_type, row.balance_after), (50, StockLedger.CANCEL, 52))

    def test_debit_then_credit_restores_quantity(self):
        lines = [{"product_id": self.a.pk, "quantity": 2}]
        services.validate_and_debit(lines)
        services.credit(lines, ref_type=StockLedger.CANCEL)
        self.a.refresh_from_db()
        self.assertEqual(self.a.quantity, 2)

    def test_deleted_product_is_skipped_with_warning(self):
        gone = make_product("Gone", quantity=1)
        gone_id = gone.pk
        gone.delete()

        with self.assertLogs("inventory.services", level="WARNING") as logs:
            entries = services.credit(
                [{"product_id": gone_id, "quantity": 3, "product_name": "Gone"},
                 {"product_id": self.a.pk, "quantity": 1}],
                ref_type=StockLedger.DELETE,
            )

        self.assertEqual(len(entries), 1)
        self.assertIn("no longer exists", logs.output[0])
        self.a.refresh_from_db()
        self.assertEqual(self.a.quantity, 3)


class SetQuantityTests(TestCase):
    def test_adjustment_is_logged_as_delta(self):
        p = make_product("A", quantity=10)
        row = services.set_quantity(p, 4, note="Recount")
        p.refresh_from_db()
        self.assertEqual(p.quantity, 4)
        self.assertEqual((row.qty_delta, row.balance_after, row.ref_type), (-6, 4, StockLedger.ADJUST))

    def test_unchanged_quantity_writes_nothing(self):
        p = make_product("A", quantity=10)
        self.assertIsNone(services.set_quantity(p, 10))
        self.assertFalse(StockLedger.objects.exists())

    def test_negative_quantity_rejected(self):
        p = make_product("A", quantity=10)
        with self.assertRaises(ValidationError):
            services.set_quantity(p, -1)
