# purchasing/urls.py
from django.urls import path

from .views import CompanyPurchaseDetailView, CompanyPurchaseListCreateView


app_name = "purchasing"

urlpatterns = [
    path("", CompanyPurchaseListCreateView.as_view(), name="purchase-list"),
    path("<int:pk>", CompanyPurchaseDetailView.as_view(), name="purchase-detail"),
]
