# purchasing/models.py
from django.conf import settings
from django.db import models
from django.utils import timezone

from catalog.models import NON_NEGATIVE
from common.models import TimeStampedModel


class CompanyPurchase(TimeStampedModel):
    """
    Record of a purchase from a supplier company. Bookkeeping only: recording
    one does not change product stock.
    """
    company_name = models.CharField(max_length=200)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, validators=NON_NEGATIVE)
    payment_date = models.DateTimeField(default=timezone.now)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [models.Index(fields=["company_name"], name="purchase_company_idx")]

    def __str__(self):
        return f"{self.company_name} - {self.total_amount} ({self.payment_date:%Y-%m-%d})"


class CompanyPurchaseLine(models.Model):
    purchase = models.ForeignKey(CompanyPurchase, on_delete=models.CASCADE, related_name="lines")
    # weak reference, the catalog entry may not exist (or may be deleted later)
    product_id = models.BigIntegerField(null=True, blank=True)
    product_name = models.CharField(max_length=200)
    quantity = models.PositiveIntegerField()
    rate = models.DecimalField(max_digits=12, decimal_places=2, validators=NON_NEGATIVE)
    total = models.DecimalField(max_digits=12, decimal_places=2, validators=NON_NEGATIVE)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.product_name} x {self.quantity}"
