# customers/views.py
from django.db.models import Q
from rest_framework import generics, permissions
from rest_framework.exceptions import NotFound

from billing.models import Bill
from billing.serializers import BillSerializer

from .models import Customer
from .serializers import CustomerSerializer


class CustomerListCreateView(generics.ListCreateAPIView):
    """
    GET  /api/v1/customers/?q=
    POST /api/v1/customers/
    """
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = CustomerSerializer
    pagination_class = None

    def get_queryset(self):
        qs = Customer.objects.all()
        q = (self.request.query_params.get("q") or "").strip()
        if q:
            qs = qs.filter(Q(name__icontains=q) | Q(mobile__icontains=q))
        return qs.order_by("name", "id")


class CustomerDetailView(generics.RetrieveUpdateDestroyAPIView):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = CustomerSerializer
    queryset = Customer.objects.all()


class CustomerBillsView(generics.ListAPIView):
    """
    GET /api/v1/customers/<id>/bills

    Bills whose customer snapshot carries this customer's mobile, newest first.
    """
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = BillSerializer
    pagination_class = None

    def get_queryset(self):
        customer = Customer.objects.filter(pk=self.kwargs["pk"]).first()
        if customer is None:
            raise NotFound("Customer not found.")
        return (
            Bill.objects.filter(customer_mobile=customer.mobile)
                .select_related("created_by")
                .prefetch_related("items")
                .order_by("-created_at", "-id")
        )
