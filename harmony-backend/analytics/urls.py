# analytics/urls.py
from django.urls import path

from .views import DashboardView, ProductSalesReportView, SalesReportView, StockReportView, UdhaarReportView


app_name = "analytics"

urlpatterns = [
    path("dashboard", DashboardView.as_view(), name="dashboard"),
    path("reports/sales", SalesReportView.as_view(), name="report-sales"),
    path("reports/udhaar", UdhaarReportView.as_view(), name="report-udhaar"),
    path("reports/stock", StockReportView.as_view(), name="report-stock"),
    path("reports/product-sales", ProductSalesReportView.as_view(), name="report-product-sales"),
]
