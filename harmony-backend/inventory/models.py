# harmony-backend/inventory/models.py
from django.conf import settings
from django.db import models
from django.utils import timezone


class StockLedger(models.Model):
    """
    Immutable movement log for audit: every change in Product.quantity.
    """
    SALE = "SALE"
    CANCEL = "CANCEL"
    DELETE = "DELETE"
    REACTIVATE = "REACTIVATE"
    ADJUST = "ADJUST"
    INITIAL = "INITIAL"
    REF_TYPES = [
        (SALE, "Bill created"),
        (CANCEL, "Bill cancelled"),
        (DELETE, "Bill deleted"),
        (REACTIVATE, "Bill reactivated"),
        (ADJUST, "Catalog adjustment"),
        (INITIAL, "Opening stock"),
    ]

    # product rows may be deleted; the movement history stays
    product = models.ForeignKey(
        "catalog.Product", on_delete=models.SET_NULL, null=True, blank=True, related_name="ledger_entries"
    )
    product_name = models.CharField(max_length=200, blank=True)

    qty_delta = models.IntegerField()  # signed
    balance_after = models.IntegerField(null=True, blank=True)

    ref_type = models.CharField(max_length=20, choices=REF_TYPES)
    ref_id = models.CharField(max_length=64, blank=True)
    note = models.TextField(blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["product", "created_at"], name="ledger_product_created_idx"),
            models.Index(fields=["ref_type", "ref_id"], name="ledger_ref_idx"),
        ]

    def __str__(self):
        return f"Ledger p{self.product_id} {self.qty_delta} ({self.ref_type}#{self.ref_id})"
