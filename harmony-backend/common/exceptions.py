# common/exceptions.py
"""
Domain error taxonomy shared by the inventory and billing services.

Services raise these plain exceptions; the API layer never builds error
responses for them by hand. ``api_exception_handler`` (wired through
REST_FRAMEWORK["EXCEPTION_HANDLER"]) renders them as
``{"detail": ..., "code": ..., **extra}`` with the class' HTTP status.
"""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class HarmonyError(Exception):
    """Base class for errors raised by the domain services."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "error"
    default_detail = "Request could not be processed."

    def __init__(self, detail=None, **extra):
        self.detail = detail or self.default_detail
        self.extra = extra
        super().__init__(self.detail)

    def as_payload(self):
        payload = {"detail": self.detail, "code": self.default_code}
        payload.update(self.extra)
        return payload


class ValidationError(HarmonyError):
    default_code = "validation_error"
    default_detail = "Invalid input."


class EmptyBill(ValidationError):
    default_code = "empty_bill"
    default_detail = "A bill needs at least one item."


class InvalidStatus(ValidationError):
    default_code = "invalid_status"
    default_detail = "Invalid status."


class TotalsMismatch(ValidationError):
    default_code = "totals_mismatch"
    default_detail = "Bill totals do not match the items."


class InvalidTransition(HarmonyError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "invalid_transition"
    default_detail = "This status change is not allowed."


class NotFoundError(HarmonyError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"
    default_detail = "Not found."


class BillNotFound(NotFoundError):
    default_code = "bill_not_found"
    default_detail = "Bill not found."


class ProductNotFound(NotFoundError):
    default_code = "product_not_found"
    default_detail = "Product not found."


class DuplicateBillNumber(HarmonyError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "duplicate_bill_number"
    default_detail = "Bill number already exists."


class BillConflict(HarmonyError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "bill_conflict"
    default_detail = "Bill was changed by another request, reload and retry."


class InsufficientStockError(HarmonyError):
    """Shortage found while validating a debit. Carries product/available/required."""
    default_code = "insufficient_stock"

    def __init__(self, product_name, available, required):
        self.product_name = product_name
        self.available = int(available)
        self.required = int(required)
        super().__init__(
            f"Insufficient stock for {product_name}. Available: {self.available}, Required: {self.required}",
            product=product_name,
            available=self.available,
            required=self.required,
        )


class StockMutationError(HarmonyError):
    """
    A debit/credit failed after validation passed. The message stays generic on
    the wire; the details only go to the log.
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "operation_failed"
    default_detail = "Operation failed."

    def __init__(self, reason="", product_id=None):
        self.reason = reason
        self.product_id = product_id
        super().__init__()


def api_exception_handler(exc, context):
    if isinstance(exc, HarmonyError):
        if isinstance(exc, StockMutationError):
            view = context.get("view")
            logger.error(
                "Stock mutation failed in %s (product=%s): %s",
                type(view).__name__ if view else "?", exc.product_id, exc.reason,
            )
        return Response(exc.as_payload(), status=exc.status_code)
    return exception_handler(exc, context)
