# purchasing/views.py
import logging

from django.db.models import Q
from rest_framework import generics, permissions, status
from rest_framework.exceptions import NotFound
from rest_framework.response import Response

from .models import CompanyPurchase
from .serializers import CompanyPurchaseSerializer

logger = logging.getLogger(__name__)


class CompanyPurchaseListCreateView(generics.ListCreateAPIView):
    """
    GET  /api/v1/purchases/?company=   newest first
    POST /api/v1/purchases/            { company_name, total_amount, lines?, payment_date?, notes? }
    """
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = CompanyPurchaseSerializer
    pagination_class = None

    def get_queryset(self):
        qs = CompanyPurchase.objects.select_related("created_by").prefetch_related("lines")
        company = (self.request.query_params.get("company") or "").strip()
        if company:
            qs = qs.filter(Q(company_name__icontains=company))
        return qs.order_by("-created_at", "-id")

    def perform_create(self, serializer):
        purchase = serializer.save()
        logger.info("Purchase %s from %s recorded (%s)", purchase.pk, purchase.company_name, purchase.total_amount)


class CompanyPurchaseDetailView(generics.RetrieveUpdateDestroyAPIView):
    """
    GET    /api/v1/purchases/<id>
    PUT    /api/v1/purchases/<id>   lines, when sent, replace the existing ones
    DELETE /api/v1/purchases/<id>
    """
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = CompanyPurchaseSerializer

    def get_object(self):
        purchase = (
            CompanyPurchase.objects.select_related("created_by")
                .prefetch_related("lines")
                .filter(pk=self.kwargs["pk"])
                .first()
        )
        if purchase is None:
            raise NotFound("Purchase not found.")
        return purchase

    def destroy(self, request, *args, **kwargs):
        purchase = self.get_object()
        logger.info("Purchase %s from %s deleted", purchase.pk, purchase.company_name)
        purchase.delete()
        return Response({"detail": "Deleted"}, status=status.HTTP_200_OK)
