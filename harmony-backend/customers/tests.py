from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIRequestFactory, force_authenticate

from billing import services
from catalog.models import Product
from customers.models import Customer
from customers.views import CustomerBillsView, CustomerDetailView, CustomerListCreateView


User = get_user_model()


class CustomerApiTests(TestCase):
    def setUp(self):
        self.factory = APIRequestFactory()
        self.user = User.objects.create_user(username="customer-user", password="pass")
        self.ramesh = Customer.objects.create(name="Ramesh Kumar", mobile="9876543210", address="Village Khanpur")
        self.suresh = Customer.objects.create(name="Suresh Patel", mobile="9988776655")

    def test_search_by_name_or_mobile(self):
        request = self.factory.get("/api/v1/customers/", {"q": "99887"})
        force_authenticate(request, user=self.user)
        response = CustomerListCreateView.as_view()(request)
        self.assertEqual([c["name"] for c in response.data], ["Suresh Patel"])

        request = self.factory.get("/api/v1/customers/", {"q": "ramesh"})
        force_authenticate(request, user=self.user)
        response = CustomerListCreateView.as_view()(request)
        self.assertEqual([c["mobile"] for c in response.data], ["9876543210"])

    def test_create_requires_name_and_mobile(self):
        request = self.factory.post("/api/v1/customers/", {"name": "Mahesh"}, format="json")
        force_authenticate(request, user=self.user)
        response = CustomerListCreateView.as_view()(request)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("mobile", response.data)

        request = self.factory.post("/api/v1/customers/", {"name": "Mahesh", "mobile": " 9123456780 "}, format="json")
        force_authenticate(request, user=self.user)
        response = CustomerListCreateView.as_view()(request)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["mobile"], "9123456780")
        self.assertEqual(response.data["address"], "")

    def test_update_and_delete(self):
        request = self.factory.patch(f"/api/v1/customers/{self.suresh.pk}", {"address": "Mohanpur"}, format="json")
        force_authenticate(request, user=self.user)
        response = CustomerDetailView.as_view()(request, pk=self.suresh.pk)
        self.assertEqual(response.data["address"], "Mohanpur")

        request = self.factory.delete(f"/api/v1/customers/{self.suresh.pk}")
        force_authenticate(request, user=self.user)
        response = CustomerDetailView.as_view()(request, pk=self.suresh.pk)
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Customer.objects.filter(pk=self.suresh.pk).exists())

    def test_bills_match_on_mobile_snapshot(self):
        product = Product.objects.create(
            name="Carbendazim 50% WP",
            company="Dhanuka Agritech",
            category="Fungicide",
            quantity=10,
            buying_price=Decimal("320.00"),
            selling_price_cash=Decimal("380.00"),
            selling_price_udhaar=Decimal("400.00"),
        )
        for number, mobile in [("KB-1", self.ramesh.mobile), ("KB-2", self.suresh.mobile)]:
            services.create_bill(
                bill_number=number,
                customer={"name": "x", "mobile": mobile},
                items=[{"product_id": product.pk, "quantity": 1}],
                payment_mode="Cash",
            )

        request = self.factory.get(f"/api/v1/customers/{self.ramesh.pk}/bills")
        force_authenticate(request, user=self.user)
        response = CustomerBillsView.as_view()(request, pk=self.ramesh.pk)
        self.assertEqual([b["bill_number"] for b in response.data], ["KB-1"])

        request = self.factory.get("/api/v1/customers/424242/bills")
        force_authenticate(request, user=self.user)
        response = CustomerBillsView.as_view()(request, pk=424242)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
