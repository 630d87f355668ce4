# harmony-backend/catalog/models.py

from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q
from decimal import Decimal

from common.models import TimeStampedModel


NON_NEGATIVE = [MinValueValidator(Decimal("0"))]


class ProductCategory(models.TextChoices):
    FUNGICIDE = "Fungicide", "Fungicide"
    INSECTICIDE = "Insecticide", "Insecticide"
    HERBICIDE = "Herbicide", "Herbicide"
    PGR = "PGR", "PGR"
    WATER_SOLUBLE = "Water Soluble", "Water Soluble"
    CHELATED_MICRONUTRIENT = "Chelated Micronutrient", "Chelated Micronutrient"


class ProductQuerySet(models.QuerySet):
    def low_stock(self):
        return self.filter(quantity__lte=F("quantity_alert"))


class Product(TimeStampedModel):
    """
    Catalog entry and the single source of truth for live stock.

    ``quantity`` is only written by inventory.services (debit/credit/set);
    bills keep their own snapshots of name and rate.
    """
    name = models.CharField(max_length=200)
    technical_name = models.CharField(max_length=200, blank=True, default="")
    company = models.CharField(max_length=200)
    category = models.CharField(max_length=40, choices=ProductCategory.choices)

    quantity = models.PositiveIntegerField(default=0)
    quantity_alert = models.PositiveIntegerField(default=10, help_text="Reorder threshold (low stock at or below)")

    buying_price = models.DecimalField(max_digits=12, decimal_places=2, validators=NON_NEGATIVE)
    selling_price_cash = models.DecimalField(max_digits=12, decimal_places=2, validators=NON_NEGATIVE)
    selling_price_udhaar = models.DecimalField(max_digits=12, decimal_places=2, validators=NON_NEGATIVE)

    objects = ProductQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(condition=Q(quantity__gte=0), name="product_quantity_non_negative"),
        ]
        indexes = [
            models.Index(fields=["category"], name="product_category_idx"),
            models.Index(fields=["name"], name="product_name_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.company}) – qty={self.quantity}"

    @property
    def is_low_stock(self):
        return self.quantity <= self.quantity_alert
