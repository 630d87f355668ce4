# harmony-backend/billing/models.py

from django.conf import settings
from django.db import models
from django.utils import timezone


class Bill(models.Model):
    class BillType(models.TextChoices):
        KACCHA = "kaccha", "Kaccha"
        PAKKA = "pakka", "Pakka (GST)"

    class PaymentMode(models.TextChoices):
        CASH = "Cash", "Cash"
        UDHAAR = "Udhaar", "Udhaar"

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"

    # uniqueness is enforced by the database, not only by the pre-check in services
    bill_number = models.CharField(max_length=64, unique=True)
    bill_type = models.CharField(max_length=10, choices=BillType.choices, default=BillType.KACCHA)

    # customer snapshot (not a reference to customers.Customer)
    customer_name = models.CharField(max_length=200)
    customer_mobile = models.CharField(max_length=20)
    customer_address = models.CharField(max_length=300, blank=True, default="")

    payment_mode = models.CharField(max_length=10, choices=PaymentMode.choices)
    due_date = models.DateField(null=True, blank=True)

    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    gst = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total = models.DecimalField(max_digits=12, decimal_places=2)

    status = models.CharField(max_length=12, choices=Status.choices, default=Status.PENDING, db_index=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="bills"
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["payment_mode", "status"], name="bill_mode_status_idx"),
        ]

    def __str__(self):
        return f"Bill {self.bill_number} - {self.customer_name} - {self.total} ({self.status})"

    @property
    def is_pending_udhaar(self):
        return self.payment_mode == self.PaymentMode.UDHAAR and self.status == self.Status.PENDING


class BillItem(models.Model):
    """
    Historical line snapshot. ``product_id`` is a plain reference: products can
    be deleted later without touching old bills.
    """
    bill = models.ForeignKey(Bill, on_delete=models.CASCADE, related_name="items")
    product_id = models.BigIntegerField(db_index=True)
    product_name = models.CharField(max_length=200)
    quantity = models.PositiveIntegerField()
    rate = models.DecimalField(max_digits=12, decimal_places=2)
    total = models.DecimalField(max_digits=12, decimal_places=2)
    position = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ["position", "id"]

    def __str__(self):
        return f"{self.product_name} x {self.quantity} @ {self.rate}"


class AuditLog(models.Model):
    SEVERITY_CHOICES = [
        ("info", "Info"),
        ("warning", "Warning"),
        ("critical", "Critical"),
    ]

    bill = models.ForeignKey(Bill, on_delete=models.SET_NULL, null=True, blank=True, related_name="audit_logs")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="bill_audit_logs"
    )
    action = models.CharField(max_length=64)
    severity = models.CharField(max_length=16, choices=SEVERITY_CHOICES, default="info")
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.action} @ {self.created_at}"

    @classmethod
    def record(cls, *, action, user=None, bill=None, severity="info", metadata=None):
        meta = dict(metadata or {})
        if bill is not None:
            meta.setdefault("bill_number", bill.bill_number)
        return cls.objects.create(
            action=action,
            user=user if getattr(user, "is_authenticated", False) else None,
            bill=bill if bill is not None and bill.pk else None,
            severity=severity,
            metadata=meta,
        )
