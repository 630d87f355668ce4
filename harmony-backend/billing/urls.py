# harmony-backend/billing/urls.py
from django.urls import path

from .views import AuditLogListView, BillDetailView, BillListCreateView, BillStatusView, PendingBillListView


app_name = "billing"

urlpatterns = [
    path("", BillListCreateView.as_view(), name="bill-list"),
    path("pending", PendingBillListView.as_view(), name="bill-pending"),
    path("audit-logs", AuditLogListView.as_view(), name="audit-logs"),
    path("<int:pk>", BillDetailView.as_view(), name="bill-detail"),
    path("<int:pk>/status", BillStatusView.as_view(), name="bill-status"),
]
