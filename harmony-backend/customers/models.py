# customers/models.py
from django.db import models

from common.models import TimeStampedModel


class Customer(TimeStampedModel):
    """
    Directory entry for a regular customer. Bills keep their own copy of the
    name/mobile/address, so editing a customer never rewrites old bills.
    """
    name = models.CharField(max_length=200)
    mobile = models.CharField(max_length=20, db_index=True)
    address = models.CharField(max_length=300, blank=True, default="")

    class Meta:
        ordering = ["name", "id"]

    def __str__(self):
        return f"{self.name} ({self.mobile})"
