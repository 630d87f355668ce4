# harmony-backend/billing/views.py
from rest_framework import generics, permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from common.exceptions import BillNotFound, InvalidStatus, ValidationError

from . import services
from .models import AuditLog, Bill
from .serializers import (
    AuditLogSerializer,
    BillCreateSerializer,
    BillSerializer,
    BillStatusSerializer,
)


def _bill_queryset():
    return Bill.objects.select_related("created_by").prefetch_related("items")


class BillListCreateView(generics.ListCreateAPIView):
    """
    GET  /api/v1/bills/?status=pending   newest first
    POST /api/v1/bills/                  create a bill and debit its stock
    """
    permission_classes = [permissions.IsAuthenticated]
    pagination_class = None

    def get_serializer_class(self):
        if self.request.method == "POST":
            return BillCreateSerializer
        return BillSerializer

    def get_queryset(self):
        qs = _bill_queryset()
        wanted = (self.request.query_params.get("status") or "").strip().lower()
        if wanted:
            if wanted not in Bill.Status.values:
                raise InvalidStatus(f"Invalid status: {wanted!r}", allowed=list(Bill.Status.values))
            qs = qs.filter(status=wanted)
        return qs.order_by("-created_at", "-id")

    def create(self, request, *args, **kwargs):
        ser = BillCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        bill = services.create_bill(
            bill_number=data["bill_number"],
            bill_type=data["bill_type"],
            customer=data["customer"],
            items=data["items"],
            payment_mode=data["payment_mode"],
            due_date=data.get("due_date"),
            subtotal=data.get("subtotal"),
            gst=data.get("gst"),
            total=data.get("total"),
            user=request.user,
        )
        return Response(BillSerializer(_bill_queryset().get(pk=bill.pk)).data, status=status.HTTP_201_CREATED)


class PendingBillListView(generics.ListAPIView):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = BillSerializer
    pagination_class = None

    def get_queryset(self):
        return _bill_queryset().filter(status=Bill.Status.PENDING).order_by("-created_at", "-id")


class BillDetailView(generics.RetrieveDestroyAPIView):
    """
    GET    /api/v1/bills/<id>
    DELETE /api/v1/bills/<id>   stock goes back unless the bill was cancelled
    """
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = BillSerializer

    def get_object(self):
        bill = _bill_queryset().filter(pk=self.kwargs["pk"]).first()
        if bill is None:
            raise BillNotFound()
        return bill

    def destroy(self, request, *args, **kwargs):
        restored = services.delete_bill(self.kwargs["pk"], user=request.user)
        detail = "Bill deleted and stock restored" if restored else "Bill deleted"
        return Response({"detail": detail}, status=status.HTTP_200_OK)


class BillStatusView(APIView):
    """PATCH /api/v1/bills/<id>/status  {"status": "completed"}"""
    permission_classes = [permissions.IsAuthenticated]

    def patch(self, request, pk):
        ser = BillStatusSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        bill = services.update_status(pk, ser.validated_data["status"].strip().lower(), user=request.user)
        return Response(BillSerializer(_bill_queryset().get(pk=bill.pk)).data)


class AuditLogListView(generics.ListAPIView):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = AuditLogSerializer
    pagination_class = None

    def get_queryset(self):
        qs = AuditLog.objects.select_related("user")
        action = (self.request.query_params.get("action") or "").strip().upper()
        bill_number = (self.request.query_params.get("bill_number") or "").strip()
        if action:
            qs = qs.filter(action=action)
        if bill_number:
            qs = qs.filter(metadata__bill_number=bill_number)
        try:
            limit = max(1, min(int(self.request.query_params.get("limit", 100)), 500))
        except (TypeError, ValueError):
            raise ValidationError("limit must be an integer")
        return qs.order_by("-created_at", "-id")[:limit]
