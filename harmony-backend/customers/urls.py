# customers/urls.py

from django.urls import path

from .views import CustomerBillsView, CustomerDetailView, CustomerListCreateView

app_name = "customers"

urlpatterns = [
    path("", CustomerListCreateView.as_view(), name="customer-list"),
    path("<int:pk>", CustomerDetailView.as_view(), name="customer-detail"),
    path("<int:pk>/bills", CustomerBillsView.as_view(), name="customer-bills"),
]
