# inventory/services.py
"""
Stock service: the only code allowed to change Product.quantity.

Debits are two-phase. Every requested line is validated against locked product
rows before any row is touched; the debits themselves are conditional atomic
updates (``quantity = quantity - n WHERE quantity >= n``) so two requests racing
on the same product can never take it below zero, whatever the backend's
locking support. Everything runs inside one transaction: a failure on any line
undoes the debits already applied in the same call.
"""
import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from catalog.models import Product
from common.exceptions import (
    InsufficientStockError,
    ProductNotFound,
    StockMutationError,
    ValidationError,
)

from .models import StockLedger

logger = logging.getLogger(__name__)


def _line_value(line, key, default=None):
    if isinstance(line, dict):
        return line.get(key, default)
    return getattr(line, key, default)


def merge_lines(lines):
    """
    Collapse request lines into ``{product_id: {"quantity", "product_name"}}``.

    A product listed twice is validated and debited on its summed quantity,
    keeping first-seen order.
    """
    merged = {}
    for line in lines:
        raw_id = _line_value(line, "product_id")
        try:
            product_id = int(raw_id)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid product id: {raw_id!r}")
        try:
            qty = int(_line_value(line, "quantity"))
        except (TypeError, ValueError):
            raise ValidationError("Item quantity must be a whole number", product_id=product_id)
        if qty <= 0:
            raise ValidationError("Item quantity must be greater than 0", product_id=product_id)

        entry = merged.get(product_id)
        if entry:
            entry["quantity"] += qty
        else:
            merged[product_id] = {"quantity": qty, "product_name": _line_value(line, "product_name") or ""}
    return merged


def _apply_delta(product_id, delta):
    """Atomic increment/decrement of one product row. Returns rows updated (0 or 1)."""
    qs = Product.objects.filter(pk=product_id)
    if delta < 0:
        qs = qs.filter(quantity__gte=-delta)
    return qs.update(quantity=F("quantity") + delta, updated_at=timezone.now())


def _record(product_id, product_name, delta, ref_type, ref_id, user, note):
    balance = Product.objects.filter(pk=product_id).values_list("quantity", flat=True).first()
    return StockLedger.objects.create(
        product_id=product_id,
        product_name=product_name,
        qty_delta=delta,
        balance_after=balance,
        ref_type=ref_type,
        ref_id=str(ref_id or ""),
        note=note,
        created_by=user if getattr(user, "is_authenticated", False) else None,
    )


@transaction.atomic
def validate_and_debit(lines, *, ref_type=StockLedger.SALE, ref_id="", user=None, note=""):
    """
    Validate every line, then debit every line.

    Raises:
        ProductNotFound: a line references a product that does not exist
        InsufficientStockError: some product has less on hand than requested;
            nothing has been debited
        StockMutationError: a debit was rejected after validation passed; the
            transaction rolls back the debits applied so far

    Returns the StockLedger rows written.
    """
    requested = merge_lines(lines)
    if not requested:
        return []

    # phase 1: lock (in id order, to avoid deadlocks between bills) and validate all
    locked = {
        p.pk: p
        for p in Product.objects.select_for_update().filter(pk__in=list(requested)).order_by("pk")
    }
    for product_id, req in requested.items():
        product = locked.get(product_id)
        if product is None:
            label = req["product_name"] or product_id
            raise ProductNotFound(f"Product {label} not found", product_id=product_id)
        if product.quantity < req["quantity"]:
            raise InsufficientStockError(product.name, product.quantity, req["quantity"])

    # phase 2: debit
    entries = []
    for product_id, req in requested.items():
        qty = req["quantity"]
        product = locked[product_id]
        if not _apply_delta(product_id, -qty):
            logger.error(
                "Debit of %s for product %s (%s) rejected after validation; rolling back %s #%s",
                qty, product_id, product.name, ref_type, ref_id,
            )
            raise StockMutationError(reason=f"debit of {qty} rejected after validation", product_id=product_id)
        entries.append(_record(product_id, product.name, -qty, ref_type, ref_id, user, note))
    return entries


@transaction.atomic
def credit(lines, *, ref_type, ref_id="", user=None, note=""):
    """
    Put stock back. No upper bound. A product deleted since the sale has nothing
    left to restore and is skipped with a warning.
    """
    entries = []
    for product_id, req in merge_lines(lines).items():
        qty = req["quantity"]
        if not _apply_delta(product_id, qty):
            logger.warning(
                "Product %s (%s) no longer exists; skipped credit of %s for %s #%s",
                product_id, req["product_name"], qty, ref_type, ref_id,
            )
            continue
        name = Product.objects.filter(pk=product_id).values_list("name", flat=True).first() or req["product_name"]
        entries.append(_record(product_id, name, qty, ref_type, ref_id, user, note))
    return entries


@transaction.atomic
def set_quantity(product, quantity, *, user=None, note=""):
    """
    Catalog adjustment: set an absolute on-hand count and log the difference.
    Returns the ledger row, or None when nothing changed.
    """
    try:
        quantity = int(quantity)
    except (TypeError, ValueError):
        raise ValidationError("Quantity must be a whole number")
    if quantity < 0:
        raise ValidationError("Quantity cannot be negative")

    locked = Product.objects.select_for_update().filter(pk=product.pk).first()
    if locked is None:
        raise ProductNotFound()

    delta = quantity - locked.quantity
    if delta == 0:
        return None
    Product.objects.filter(pk=locked.pk).update(quantity=quantity, updated_at=timezone.now())
    product.quantity = quantity
    return _record(locked.pk, locked.name, delta, StockLedger.ADJUST, locked.pk, user, note or "Catalog adjustment")


def record_opening_stock(product, *, user=None):
    """Ledger row for the quantity a product was created with."""
    if not product.quantity:
        return None
    return _record(product.pk, product.name, product.quantity, StockLedger.INITIAL, product.pk, user, "Opening stock")
