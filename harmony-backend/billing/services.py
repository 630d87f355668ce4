# billing/services.py
"""
Bill lifecycle: creation, status changes and deletion, each with its stock effect.

    create          validate + debit every item, persist bill      (one transaction)
    -> cancelled    credit every item once, persist status         (one transaction)
    delete          credit every item unless already cancelled     (one transaction)

The status row is claimed with a compare-and-set on the previous status while
the bill row is locked, so a bill is credited at most once per transition even
when two requests race.
"""
import logging

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from catalog.models import Product
from common.exceptions import (
    BillConflict,
    BillNotFound,
    DuplicateBillNumber,
    EmptyBill,
    InvalidStatus,
    InvalidTransition,
    ProductNotFound,
    ValidationError,
)
from inventory import services as stock
from inventory.models import StockLedger

from .models import AuditLog, Bill, BillItem
from .totals import LineIn, compute_bill_totals

logger = logging.getLogger(__name__)

Status = Bill.Status

ALLOWED_TRANSITIONS = {
    Status.PENDING: {Status.COMPLETED, Status.CANCELLED},
    Status.COMPLETED: {Status.CANCELLED},
    Status.CANCELLED: set(),
}


def bill_number_taken(bill_number):
    return Bill.objects.filter(bill_number=bill_number).exists()


def reactivation_allowed():
    return bool(settings.BILLING.get("ALLOW_REACTIVATION", False))


def _clean_customer(customer):
    customer = customer or {}
    name = (customer.get("name") or "").strip()
    mobile = (customer.get("mobile") or "").strip()
    if not name or not mobile:
        raise ValidationError("Customer name and mobile are required")
    return {
        "name": name,
        "mobile": mobile,
        "address": (customer.get("address") or "").strip(),
    }


def _build_lines(items, payment_mode):
    """
    Turn request items into LineIn. Name and rate default to the catalog's
    current values (rate by payment mode) when the client leaves them out.
    """
    ids = []
    for it in items:
        try:
            ids.append(int(it.get("product_id")))
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid product id: {it.get('product_id')!r}")
    catalog = Product.objects.in_bulk(ids)

    lines = []
    for product_id, it in zip(ids, items):
        try:
            quantity = int(it.get("quantity"))
        except (TypeError, ValueError):
            raise ValidationError("Item quantity must be a whole number", product_id=product_id)
        if quantity <= 0:
            raise ValidationError("Item quantity must be greater than 0", product_id=product_id)

        product = catalog.get(product_id)
        name = (it.get("product_name") or "").strip()
        rate = it.get("rate")
        if product is None and (not name or rate is None):
            raise ProductNotFound(f"Product {name or product_id} not found", product_id=product_id)
        if not name:
            name = product.name
        if rate is None:
            rate = product.selling_price_udhaar if payment_mode == Bill.PaymentMode.UDHAAR else product.selling_price_cash

        lines.append(LineIn(
            product_id=product_id,
            product_name=name,
            quantity=quantity,
            rate=rate,
            total=it.get("total"),
        ))
    return lines


def create_bill(
    *,
    bill_number,
    customer,
    items,
    payment_mode,
    bill_type=Bill.BillType.KACCHA,
    due_date=None,
    subtotal=None,
    gst=None,
    total=None,
    user=None,
):
    """
    Create a bill and debit its stock.

    Raises ValidationError/EmptyBill/TotalsMismatch for bad input,
    DuplicateBillNumber, ProductNotFound, InsufficientStockError (nothing is
    persisted or debited) and StockMutationError.
    """
    bill_number = (bill_number or "").strip()
    if not bill_number:
        raise ValidationError("Bill number is required")
    if not items:
        raise EmptyBill()
    customer = _clean_customer(customer)
    bill_type = bill_type or Bill.BillType.KACCHA
    if bill_type not in Bill.BillType.values:
        raise ValidationError(f"Invalid bill type: {bill_type!r}")
    if payment_mode not in Bill.PaymentMode.values:
        raise ValidationError(f"Invalid payment mode: {payment_mode!r}")
    if payment_mode != Bill.PaymentMode.UDHAAR:
        due_date = None

    # fast path only; the unique index below is what actually guarantees it
    if bill_number_taken(bill_number):
        raise DuplicateBillNumber(f"Bill number {bill_number} already exists")

    totals = compute_bill_totals(
        _build_lines(items, payment_mode),
        bill_type=bill_type,
        subtotal=subtotal,
        gst=gst,
        total=total,
    )

    try:
        with transaction.atomic():
            stock.validate_and_debit(
                totals.lines,
                ref_type=StockLedger.SALE,
                ref_id=bill_number,
                user=user,
                note=f"Bill {bill_number}",
            )
            bill = Bill.objects.create(
                bill_number=bill_number,
                bill_type=bill_type,
                customer_name=customer["name"],
                customer_mobile=customer["mobile"],
                customer_address=customer["address"],
                payment_mode=payment_mode,
                due_date=due_date,
                subtotal=totals.subtotal,
                gst=totals.gst,
                total=totals.total,
                status=Status.PENDING,
                created_by=user if getattr(user, "is_authenticated", False) else None,
            )
            BillItem.objects.bulk_create([
                BillItem(
                    bill=bill,
                    product_id=ln.product_id,
                    product_name=ln.product_name,
                    quantity=ln.quantity,
                    rate=ln.rate,
                    total=ln.total,
                    position=i,
                )
                for i, ln in enumerate(totals.lines)
            ])
            AuditLog.record(
                action="BILL_CREATED",
                user=user,
                bill=bill,
                metadata={"total": str(bill.total), "payment_mode": payment_mode, "items": len(totals.lines)},
            )
    except IntegrityError:
        if bill_number_taken(bill_number):
            raise DuplicateBillNumber(f"Bill number {bill_number} already exists")
        raise

    logger.info("Bill %s created (%s, %s, total=%s)", bill.bill_number, bill.bill_type, bill.payment_mode, bill.total)
    return bill


def update_status(bill_id, new_status, *, user=None):
    """
    Move a bill to ``new_status``.

    Setting the status a bill already has is a no-op (cancelling a cancelled
    bill never credits twice). Cancellation credits every item. Leaving
    ``cancelled`` is refused unless settings.BILLING["ALLOW_REACTIVATION"] is
    on, in which case the items are debited again.
    """
    if new_status not in Status.values:
        raise InvalidStatus(f"Invalid status: {new_status!r}", allowed=list(Status.values))

    with transaction.atomic():
        bill = Bill.objects.select_for_update().filter(pk=bill_id).first()
        if bill is None:
            raise BillNotFound()

        current = bill.status
        if new_status == current:
            return bill

        reactivating = current == Status.CANCELLED
        if reactivating and not reactivation_allowed():
            raise InvalidTransition(
                "A cancelled bill cannot be reopened",
                current=current,
                requested=new_status,
            )
        if not reactivating and new_status not in ALLOWED_TRANSITIONS[current]:
            raise InvalidTransition(
                f"Cannot change a {current} bill to {new_status}",
                current=current,
                requested=new_status,
            )

        claimed = Bill.objects.filter(pk=bill.pk, status=current).update(
            status=new_status, updated_at=timezone.now()
        )
        if not claimed:
            raise BillConflict()

        items = list(bill.items.all())
        if new_status == Status.CANCELLED:
            stock.credit(
                items,
                ref_type=StockLedger.CANCEL,
                ref_id=bill.bill_number,
                user=user,
                note=f"Bill {bill.bill_number} cancelled",
            )
        elif reactivating:
            stock.validate_and_debit(
                items,
                ref_type=StockLedger.REACTIVATE,
                ref_id=bill.bill_number,
                user=user,
                note=f"Bill {bill.bill_number} reopened as {new_status}",
            )

        bill.refresh_from_db()
        AuditLog.record(
            action="BILL_STATUS_CHANGED",
            user=user,
            bill=bill,
            severity="warning" if new_status == Status.CANCELLED else "info",
            metadata={"from": current, "to": new_status},
        )

    logger.info("Bill %s status %s -> %s", bill.bill_number, current, new_status)
    return bill


def delete_bill(bill_id, *, user=None):
    """
    Remove a bill. Stock is credited back unless the bill was already cancelled
    (cancellation restored it). Returns True when stock was restored.
    """
    with transaction.atomic():
        bill = Bill.objects.select_for_update().filter(pk=bill_id).first()
        if bill is None:
            raise BillNotFound()

        restore = bill.status != Status.CANCELLED
        if restore:
            stock.credit(
                list(bill.items.all()),
                ref_type=StockLedger.DELETE,
                ref_id=bill.bill_number,
                user=user,
                note=f"Bill {bill.bill_number} deleted",
            )

        deleted, _ = Bill.objects.filter(pk=bill.pk, status=bill.status).delete()
        if not deleted:
            raise BillConflict()

        AuditLog.record(
            action="BILL_DELETED",
            user=user,
            severity="warning",
            metadata={
                "bill_number": bill.bill_number,
                "status": bill.status,
                "total": str(bill.total),
                "stock_restored": restore,
            },
        )

    logger.info("Bill %s deleted (status=%s, stock_restored=%s)", bill.bill_number, bill.status, restore)
    return restore
