# analytics/views.py
import logging

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .reports.base import parse_date_range
from .reports.dashboard import calculate_dashboard
from .reports.product_reports import calculate_product_sales, calculate_stock_report
from .reports.sales_reports import calculate_sales_report, calculate_udhaar_report

logger = logging.getLogger(__name__)


class BaseReportView(APIView):
    """
    Common plumbing for the read-only reports: authentication and the optional
    ``date_from``/``date_to`` query parameters.
    """
    permission_classes = [IsAuthenticated]

    def get_date_range(self, request, max_days=366):
        """
        Returns:
            Tuple of (date_from, date_to, error_response)
        """
        df, dt_, error_msg = parse_date_range(
            request.GET.get("date_from"), request.GET.get("date_to"), max_days=max_days
        )
        if error_msg:
            return None, None, Response({"detail": error_msg, "code": "invalid_date_range"}, status=status.HTTP_400_BAD_REQUEST)
        return df, dt_, None


class DashboardView(BaseReportView):
    """GET /api/v1/analytics/dashboard"""

    def get(self, request):
        return Response(calculate_dashboard())


class SalesReportView(BaseReportView):
    """GET /api/v1/analytics/reports/sales?date_from=&date_to="""

    def get(self, request):
        df, dt_, error = self.get_date_range(request)
        if error:
            return error
        return Response(calculate_sales_report(df, dt_))


class UdhaarReportView(BaseReportView):
    """GET /api/v1/analytics/reports/udhaar"""

    def get(self, request):
        return Response(calculate_udhaar_report())


class StockReportView(BaseReportView):
    """GET /api/v1/analytics/reports/stock"""

    def get(self, request):
        return Response(calculate_stock_report())


class ProductSalesReportView(BaseReportView):
    """GET /api/v1/analytics/reports/product-sales?date_from=&date_to=&limit="""

    def get(self, request):
        df, dt_, error = self.get_date_range(request)
        if error:
            return error
        raw_limit = request.GET.get("limit")
        try:
            limit = int(raw_limit) if raw_limit else None
        except ValueError:
            return Response({"detail": "limit must be an integer", "code": "validation_error"}, status=status.HTTP_400_BAD_REQUEST)
        if limit is not None and limit < 1:
            limit = None
        logger.debug("Product sales report requested (limit=%s)", limit)
        return Response(calculate_product_sales(df, dt_, limit=limit))
