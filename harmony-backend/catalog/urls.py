# harmony-backend/catalog/urls.py
from django.urls import path

from .views import CategoryListView, LowStockView, ProductDetailView, ProductLedgerView, ProductListCreateView


app_name = "catalog"

urlpatterns = [
    path("", ProductListCreateView.as_view(), name="product-list"),
    path("low-stock", LowStockView.as_view(), name="low-stock"),
    path("categories", CategoryListView.as_view(), name="categories"),
    path("<int:pk>", ProductDetailView.as_view(), name="product-detail"),
    path("<int:pk>/ledger", ProductLedgerView.as_view(), name="product-ledger"),
]
