from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIRequestFactory, force_authenticate

from billing.models import Bill
from catalog.models import Product
from catalog.views import (
    CategoryListView,
    LowStockView,
    ProductDetailView,
    ProductLedgerView,
    ProductListCreateView,
)
from inventory.models import StockLedger


User = get_user_model()

PAYLOAD = {
    "name": "Imidacloprid 17.8% SL",
    "company": "Bayer CropScience",
    "category": "Insecticide",
    "quantity": 12,
    "quantity_alert": 15,
    "buying_price": "850.00",
    "selling_price_cash": "950.00",
    "selling_price_udhaar": "1000.00",
}


class ProductApiTests(TestCase):
    def setUp(self):
        self.factory = APIRequestFactory()
        self.user = User.objects.create_user(username="catalog-user", password="pass")

    def _create(self, **overrides):
        request = self.factory.post("/api/v1/products/", {**PAYLOAD, **overrides}, format="json")
        force_authenticate(request, user=self.user)
        return ProductListCreateView.as_view()(request)

    def test_requires_authentication(self):
        request = self.factory.get("/api/v1/products/")
        response = ProductListCreateView.as_view()(request)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_create_logs_opening_stock(self):
        response = self._create()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["quantity"], 12)
        self.assertTrue(response.data["is_low_stock"])
        row = StockLedger.objects.get(product_id=response.data["id"])
        self.assertEqual((row.qty_delta, row.ref_type, row.created_by), (12, StockLedger.INITIAL, self.user))

    def test_create_rejects_negative_price_and_unknown_category(self):
        response = self._create(buying_price="-1.00", category="Seeds")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("buying_price", response.data)
        self.assertIn("category", response.data)
        self.assertFalse(Product.objects.exists())

    def test_quantity_edit_goes_through_ledger(self):
        product_id = self._create().data["id"]

        request = self.factory.patch(
            f"/api/v1/products/{product_id}", {"quantity": 40, "selling_price_cash": "960.00"}, format="json"
        )
        force_authenticate(request, user=self.user)
        response = ProductDetailView.as_view()(request, pk=product_id)

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["quantity"], 40)
        self.assertEqual(response.data["selling_price_cash"], "960.00")
        adjust = StockLedger.objects.get(product_id=product_id, ref_type=StockLedger.ADJUST)
        self.assertEqual((adjust.qty_delta, adjust.balance_after), (28, 40))

    def test_missing_product_is_404(self):
        request = self.factory.get("/api/v1/products/424242")
        force_authenticate(request, user=self.user)
        response = ProductDetailView.as_view()(request, pk=424242)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["code"], "product_not_found")

    def test_delete_keeps_ledger_history(self):
        product_id = self._create().data["id"]
        request = self.factory.delete(f"/api/v1/products/{product_id}")
        force_authenticate(request, user=self.user)
        response = ProductDetailView.as_view()(request, pk=product_id)

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Product.objects.filter(pk=product_id).exists())
        row = StockLedger.objects.get(ref_type=StockLedger.INITIAL)
        self.assertIsNone(row.product_id)
        self.assertEqual(row.product_name, PAYLOAD["name"])

    def test_search_filters_by_name_or_company(self):
        self._create()
        self._create(name="Glyphosate 41% SL", company="Excel Crop Care", category="Herbicide")

        request = self.factory.get("/api/v1/products/", {"q": "excel"})
        force_authenticate(request, user=self.user)
        response = ProductListCreateView.as_view()(request)

        self.assertEqual([p["name"] for p in response.data], ["Glyphosate 41% SL"])

    def test_low_stock_feed_and_categories(self):
        self._create()  # 12 <= 15
        self._create(name="NPK 19:19:19", company="IFFCO", category="Water Soluble", quantity=100, quantity_alert=25)

        request = self.factory.get("/api/v1/products/low-stock")
        force_authenticate(request, user=self.user)
        low = LowStockView.as_view()(request)
        self.assertEqual([p["name"] for p in low.data], [PAYLOAD["name"]])

        request = self.factory.get("/api/v1/products/categories")
        force_authenticate(request, user=self.user)
        cats = {c["value"]: c["product_count"] for c in CategoryListView.as_view()(request).data}
        self.assertEqual(len(cats), 6)
        self.assertEqual(cats["Insecticide"], 1)
        self.assertEqual(cats["Water Soluble"], 1)
        self.assertEqual(cats["PGR"], 0)

    def test_ledger_endpoint_lists_movements(self):
        product_id = self._create().data["id"]
        request = self.factory.get(f"/api/v1/products/{product_id}/ledger")
        force_authenticate(request, user=self.user)
        response = ProductLedgerView.as_view()(request, pk=product_id)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]["ref_type"], "INITIAL")
        self.assertEqual(response.data[0]["created_by_name"], "catalog-user")

    def test_ledger_limit_is_validated_and_clamped(self):
        product_id = self._create().data["id"]

        request = self.factory.get(f"/api/v1/products/{product_id}/ledger", {"limit": "abc"})
        force_authenticate(request, user=self.user)
        response = ProductLedgerView.as_view()(request, pk=product_id)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "validation_error")

        request = self.factory.get(f"/api/v1/products/{product_id}/ledger", {"limit": "-3"})
        force_authenticate(request, user=self.user)
        response = ProductLedgerView.as_view()(request, pk=product_id)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)


class SeedCatalogCommandTests(TestCase):
    def test_seed_is_idempotent_and_bills_debit_stock(self):
        call_command("seed_catalog", "--with-bills", stdout=StringIO())
        call_command("seed_catalog", "--with-bills", stdout=StringIO())

        self.assertEqual(Product.objects.count(), 6)
        self.assertEqual(Bill.objects.count(), 3)
        carbendazim = Product.objects.get(name="Carbendazim 50% WP")
        self.assertEqual(carbendazim.quantity, 40)
        udhaar = Bill.objects.get(bill_number="KB-DEMO-001")
        self.assertEqual(udhaar.total, Decimal("4400.00"))
