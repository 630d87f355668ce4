from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIRequestFactory, force_authenticate

from catalog.models import Product
from purchasing.models import CompanyPurchase, CompanyPurchaseLine
from purchasing.views import CompanyPurchaseDetailView, CompanyPurchaseListCreateView


User = get_user_model()


class CompanyPurchaseApiTests(TestCase):
    def setUp(self):
        self.factory = APIRequestFactory()
        self.user = User.objects.create_user(username="purchase-user", password="pass")
        self.product = Product.objects.create(
            name="NPK 19:19:19",
            company="IFFCO",
            category="Water Soluble",
            quantity=100,
            quantity_alert=25,
            buying_price=Decimal("450.00"),
            selling_price_cash=Decimal("520.00"),
            selling_price_udhaar=Decimal("550.00"),
        )

    def _create(self, payload):
        request = self.factory.post("/api/v1/purchases/", payload, format="json")
        force_authenticate(request, user=self.user)
        return CompanyPurchaseListCreateView.as_view()(request)

    def test_create_with_lines_leaves_stock_alone(self):
        response = self._create({
            "company_name": "IFFCO",
            "total_amount": "9000.00",
            "notes": "October stock",
            "lines": [{"product_id": self.product.pk, "product_name": "NPK 19:19:19", "quantity": 20, "rate": "450.00"}],
        })

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["created_by_name"], "purchase-user")
        self.assertEqual(response.data["lines"][0]["total"], "9000.00")
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 100)

    def test_company_name_and_non_negative_total_required(self):
        response = self._create({"company_name": "  ", "total_amount": "-5"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("company_name", response.data)
        self.assertIn("total_amount", response.data)
        self.assertFalse(CompanyPurchase.objects.exists())

    def test_put_replaces_lines(self):
        purchase_id = self._create({
            "company_name": "Aries Agro",
            "total_amount": "680.00",
            "lines": [{"product_name": "Zinc EDTA 12%", "quantity": 1, "rate": "680.00"}],
        }).data["id"]

        request = self.factory.put(f"/api/v1/purchases/{purchase_id}", {
            "company_name": "Aries Agro",
            "total_amount": "1360.00",
            "lines": [{"product_name": "Zinc EDTA 12%", "quantity": 2, "rate": "680.00"}],
        }, format="json")
        force_authenticate(request, user=self.user)
        response = CompanyPurchaseDetailView.as_view()(request, pk=purchase_id)

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["total_amount"], "1360.00")
        self.assertEqual(CompanyPurchaseLine.objects.filter(purchase_id=purchase_id).count(), 1)
        self.assertEqual(response.data["lines"][0]["quantity"], 2)

    def test_list_filter_and_delete(self):
        keep = self._create({"company_name": "IFFCO", "total_amount": "100.00"}).data["id"]
        drop = self._create({"company_name": "Bayer CropScience", "total_amount": "200.00"}).data["id"]

        request = self.factory.get("/api/v1/purchases/", {"company": "bayer"})
        force_authenticate(request, user=self.user)
        response = CompanyPurchaseListCreateView.as_view()(request)
        self.assertEqual([p["id"] for p in response.data], [drop])

        request = self.factory.delete(f"/api/v1/purchases/{drop}")
        force_authenticate(request, user=self.user)
        response = CompanyPurchaseDetailView.as_view()(request, pk=drop)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(list(CompanyPurchase.objects.values_list("id", flat=True)), [keep])

        request = self.factory.get(f"/api/v1/purchases/{drop}")
        force_authenticate(request, user=self.user)
        response = CompanyPurchaseDetailView.as_view()(request, pk=drop)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
