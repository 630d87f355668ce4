# harmony-backend/catalog/views.py
import logging

from django.db.models import Count, Q
from rest_framework import generics, permissions
from rest_framework.response import Response
from rest_framework.views import APIView

from common.exceptions import ProductNotFound, ValidationError
from inventory.models import StockLedger
from inventory.serializers import StockLedgerSerializer

from .models import Product, ProductCategory
from .serializers import CategorySerializer, ProductSerializer

logger = logging.getLogger(__name__)


class ProductListCreateView(generics.ListCreateAPIView):
    """
    GET  /api/v1/products/?q=&category=   newest first
    POST /api/v1/products/
    """
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = ProductSerializer
    pagination_class = None

    def get_queryset(self):
        qs = Product.objects.all()
        query = (self.request.query_params.get("q") or "").strip()
        category = (self.request.query_params.get("category") or "").strip()
        if query:
            qs = qs.filter(
                Q(name__icontains=query)
                | Q(company__icontains=query)
                | Q(technical_name__icontains=query)
            )
        if category:
            qs = qs.filter(category=category)
        return qs.order_by("-created_at", "-id")

    def perform_create(self, serializer):
        product = serializer.save()
        logger.info("Product %s (%s) created with quantity %s", product.pk, product.name, product.quantity)


class ProductDetailView(generics.RetrieveUpdateDestroyAPIView):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = ProductSerializer

    def get_object(self):
        product = Product.objects.filter(pk=self.kwargs["pk"]).first()
        if product is None:
            raise ProductNotFound()
        return product

    def perform_destroy(self, instance):
        # no stock-safety check: bills keep their own snapshots
        logger.info("Product %s (%s) deleted with quantity %s", instance.pk, instance.name, instance.quantity)
        instance.delete()


class LowStockView(generics.ListAPIView):
    """Products at or below their alert threshold, lowest quantity first."""
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = ProductSerializer
    pagination_class = None

    def get_queryset(self):
        return Product.objects.low_stock().order_by("quantity", "id")


class CategoryListView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        counts = {
            row["category"]: row["n"]
            for row in Product.objects.order_by().values("category").annotate(n=Count("id"))
        }
        rows = [
            {"value": value, "label": label, "product_count": counts.get(value, 0)}
            for value, label in ProductCategory.choices
        ]
        return Response(CategorySerializer(rows, many=True).data)


class ProductLedgerView(generics.ListAPIView):
    """Stock movements for one product, newest first."""
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = StockLedgerSerializer
    pagination_class = None

    def get_queryset(self):
        if not Product.objects.filter(pk=self.kwargs["pk"]).exists():
            raise ProductNotFound()
        try:
            limit = max(1, min(int(self.request.query_params.get("limit", 200)), 1000))
        except (TypeError, ValueError):
            raise ValidationError("limit must be an integer")
        return (
            StockLedger.objects
                .filter(product_id=self.kwargs["pk"])
                .select_related("created_by")
                .order_by("-created_at", "-id")[:limit]
        )
