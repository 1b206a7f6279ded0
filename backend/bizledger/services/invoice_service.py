# Overview: Service-layer operations for invoices; issue, cancel with stock reversal, and partial payments.

"""
Invoice Lifecycle Service

WHY: An invoice is the only path by which stock leaves the shelf for a sale,
so issuing and cancelling one must keep the inventory ledger, the invoice
document, and the outstanding balance consistent with each other.

DESIGN PRINCIPLES:
- Validate every line before any stock moves
- The invoice lock and every involved product lock are held from
  validation through the last deduction (no check-then-act gap)
- Lines snapshot selling price, catalog cost price and tax rate at issue time
- A failed deduction restores already-deducted lines (MANUAL_ROLLBACK)
- Cancellation restores stock at the current average cost
  (INVOICE_CANCELLATION) and zeroes monetary totals; it is terminal
- A failed cancellation takes back the stock it already restored, so a
  retry starts from the pre-cancel state
- Outstanding never increases and never goes below zero; overpayment is
  rejected rather than clamped

STATUS LIFECYCLE:
    UNPAID -> PAID (outstanding reaches zero)
    UNPAID | PAID -> CANCELLED
"""

from __future__ import annotations

from datetime import date

from flask import current_app

from ..errors import ConflictError, LedgerError, NotFoundError, StorageFailure, ValidationError
from ..models import Invoice, InvoiceLine, InvoicePayment, ReversalReason
from ..models.invoicing import INVOICE_STATUS_CANCELLED, INVOICE_STATUS_PAID, INVOICE_STATUS_UNPAID
from ..money import apply_bps
from ..validation import coerce_int, optional_text
from bizledger.time_utils import epoch_millis, utcnow
from .concurrency import get_entity_locks, invoice_lock_key, product_lock_key
from .document_store import get_document_store, invoice_key, invoices_prefix, read_json, write_json
from .inventory_service import stock_in, stock_out
from .products_service import load_product
from .tenant_service import authorize


# Fresh numbers are retried this many times when a concurrent create wins the race
MAX_NUMBER_ATTEMPTS = 5

ISSUABLE_STATUSES = [INVOICE_STATUS_UNPAID, INVOICE_STATUS_PAID]


# =============================================================================
# INTERNAL LOAD / SAVE
# =============================================================================

def _load_invoice(tenant_id: str, invoice_number: str) -> Invoice:
    data = read_json(get_document_store(), invoice_key(tenant_id, invoice_number))
    if data is None:
        raise NotFoundError(f"Invoice {invoice_number} not found")
    try:
        return Invoice.from_dict(data)
    except (KeyError, TypeError, ValueError):
        raise StorageFailure(f"Failed to read invoice {invoice_number}")


def _save_invoice(invoice: Invoice) -> Invoice:
    write_json(
        get_document_store(),
        invoice_key(invoice.tenant_id, invoice.invoice_number),
        invoice.to_dict(),
    )
    return invoice


def _next_invoice_number(tenant_id: str) -> str:
    """INV-<millis>, with a numeric suffix if that number is already taken."""
    store = get_document_store()
    base = f"INV-{epoch_millis()}"
    candidate = base
    suffix = 1
    while store.exists(invoice_key(tenant_id, candidate)):
        candidate = f"{base}-{suffix}"
        suffix += 1
    return candidate


# =============================================================================
# INPUT VALIDATION
# =============================================================================

def _parse_customer(customer) -> tuple[str, str | None]:
    if isinstance(customer, str):
        customer = {"name": customer}
    if not isinstance(customer, dict):
        raise ValidationError("Customer details are required")

    name = optional_text(customer, "name")
    if not name:
        raise ValidationError("Customer name is required")
    tax_id = optional_text(customer, "tax_id") or optional_text(customer, "gstin") or None
    return name, tax_id.upper() if tax_id else None


def _parse_items(items) -> list[tuple[str, int]]:
    if not isinstance(items, list) or not items:
        raise ValidationError("Invoice must contain at least one item")

    parsed = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"Item {index + 1} is not an object")
        sku = optional_text(item, "sku")
        if not sku:
            raise ValidationError(f"Item {index + 1} is missing sku")
        if item.get("quantity") is None:
            raise ValidationError(f"Invalid quantity for item {sku}")
        quantity = coerce_int("quantity", item["quantity"])
        if quantity <= 0:
            raise ValidationError(f"Invalid quantity for item {sku}")
        parsed.append((sku, quantity))
    return parsed


def _parse_due_date(value) -> str | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(str(value).strip()[:10]).isoformat()
    except ValueError:
        raise ValidationError("due_date must be an ISO date (YYYY-MM-DD)")


def _parse_status(value) -> str:
    status = str(value or INVOICE_STATUS_UNPAID).strip().upper()
    if status not in ISSUABLE_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of {ISSUABLE_STATUSES}")
    return status


def _build_line(product, quantity: int) -> InvoiceLine:
    subtotal = quantity * product.selling_price_cents
    tax = apply_bps(subtotal, product.tax_rate_bps)
    return InvoiceLine(
        sku=product.sku,
        name=product.name,
        quantity=quantity,
        selling_price_cents=product.selling_price_cents,
        cost_price_cents=product.cost_price_cents,
        tax_rate_bps=product.tax_rate_bps,
        subtotal_cents=subtotal,
        tax_cents=tax,
        total_cents=subtotal + tax,
    )


# =============================================================================
# CREATE
# =============================================================================

def _rollback_deductions(tenant_id: str, invoice_number: str, deducted: list[InvoiceLine]) -> None:
    for line in reversed(deducted):
        try:
            stock_in(
                tenant_id,
                line.sku,
                quantity=line.quantity,
                note=f"Rollback for failed invoice {invoice_number}",
                reversal=ReversalReason.MANUAL_ROLLBACK,
            )
        except LedgerError:
            current_app.logger.exception(
                "Failed to restore %d of %s after aborted invoice %s",
                line.quantity, line.sku, invoice_number,
            )


def _issue_locked(
    tenant_id: str,
    invoice_number: str,
    customer_name: str,
    customer_tax_id: str | None,
    requested: list[tuple[str, int]],
    due_date: str | None,
    status: str,
) -> Invoice:
    # Phase 1: validate every line against current stock, no side effects.
    products = {}
    wanted: dict[str, int] = {}
    for sku, quantity in requested:
        if sku not in products:
            products[sku] = load_product(tenant_id, sku)
        wanted[sku] = wanted.get(sku, 0) + quantity

    for sku, quantity in wanted.items():
        product = products[sku]
        if quantity > product.stock_on_hand:
            raise ConflictError(
                f"Insufficient stock for {product.name}: only {product.stock_on_hand} units available",
                details={"sku": sku, "requested_quantity": quantity, "on_hand": product.stock_on_hand},
            )

    lines = [_build_line(products[sku], quantity) for sku, quantity in requested]

    subtotal = sum(line.subtotal_cents for line in lines)
    total_tax = sum(line.tax_cents for line in lines)
    cost_of_goods = sum(line.cost_of_goods_cents for line in lines)
    total = subtotal + total_tax

    issued_at = utcnow()
    invoice = Invoice(
        tenant_id=tenant_id,
        invoice_number=invoice_number,
        customer_name=customer_name,
        customer_tax_id=customer_tax_id,
        items=lines,
        subtotal_cents=subtotal,
        total_tax_cents=total_tax,
        total_amount_cents=total,
        gross_profit_cents=subtotal - cost_of_goods,
        outstanding_cents=total,
        status=INVOICE_STATUS_UNPAID,
        issued_at=issued_at,
        due_date=due_date,
    )
    if status == INVOICE_STATUS_PAID:
        invoice.status = INVOICE_STATUS_PAID
        invoice.outstanding_cents = 0
        invoice.paid_on = issued_at
        invoice.due_date = None

    # Phase 2: deduct stock line by line, undoing on failure.
    deducted: list[InvoiceLine] = []
    try:
        for line in lines:
            stock_out(
                tenant_id,
                line.sku,
                quantity=line.quantity,
                note=f"Invoice {invoice_number}",
                occurred_at=issued_at,
            )
            deducted.append(line)
        _save_invoice(invoice)
    except LedgerError:
        current_app.logger.warning(
            "Invoice %s aborted after %d of %d deductions; restoring stock",
            invoice_number, len(deducted), len(lines),
        )
        _rollback_deductions(tenant_id, invoice_number, deducted)
        raise

    return invoice


def create_invoice(tenant_id: str, customer, items, due_date=None, status=None) -> Invoice:
    """
    Issue an invoice and consume stock for every line.

    Args:
        tenant_id: Tenant issuing the invoice
        customer: {"name": ..., "tax_id": ...} or a plain name
        items: [{"sku": ..., "quantity": ...}, ...]
        due_date: Optional ISO date
        status: "UNPAID" (default) or "PAID" for an invoice settled at issue

    Returns:
        The persisted Invoice

    Raises:
        ValidationError: empty items, bad quantity, missing customer name
        NotFoundError: unknown SKU
        ConflictError: requested quantity exceeds stock on hand
    """
    tenant = authorize(tenant_id)

    customer_name, customer_tax_id = _parse_customer(customer)
    requested = _parse_items(items)
    due = _parse_due_date(due_date)
    requested_status = _parse_status(status)

    locks = get_entity_locks()
    sku_keys = [product_lock_key(tenant.tenant_id, sku) for sku, _ in requested]

    for _attempt in range(MAX_NUMBER_ATTEMPTS):
        invoice_number = _next_invoice_number(tenant.tenant_id)
        with locks.hold(invoice_lock_key(tenant.tenant_id, invoice_number), *sku_keys):
            # Another request may have taken this number between allocation and lock.
            if get_document_store().exists(invoice_key(tenant.tenant_id, invoice_number)):
                continue
            invoice = _issue_locked(
                tenant.tenant_id,
                invoice_number,
                customer_name,
                customer_tax_id,
                requested,
                due,
                requested_status,
            )

        current_app.logger.info(
            "Issued invoice %s for tenant %s (%d lines, total %d)",
            invoice.invoice_number, tenant.tenant_id, len(invoice.items), invoice.total_amount_cents,
        )
        return invoice

    raise StorageFailure("Could not allocate a unique invoice number")


# =============================================================================
# CANCEL
# =============================================================================

def _undo_restores(tenant_id: str, invoice_number: str, restored: list[InvoiceLine]) -> None:
    # Cancellation restores at the current average, so a stock_out undoes it exactly.
    for line in reversed(restored):
        try:
            stock_out(
                tenant_id,
                line.sku,
                quantity=line.quantity,
                note=f"Undo restore for failed cancellation of {invoice_number}",
            )
        except LedgerError:
            current_app.logger.exception(
                "Failed to take back %d of %s after aborted cancellation of %s",
                line.quantity, line.sku, invoice_number,
            )


def cancel_invoice(tenant_id: str, invoice_number: str) -> Invoice:
    """
    Cancel an invoice and return its stock to inventory.

    Restored quantities come back at the product's current average cost,
    so cancellation never moves WAC. Totals are zeroed; line items are kept
    for the audit trail.

    Raises:
        NotFoundError: invoice does not exist
        ConflictError: invoice is already cancelled
    """
    tenant = authorize(tenant_id)
    locks = get_entity_locks()

    with locks.hold(invoice_lock_key(tenant.tenant_id, invoice_number)):
        invoice = _load_invoice(tenant.tenant_id, invoice_number)
        if invoice.is_cancelled:
            raise ConflictError("Invoice is already cancelled")

        sku_keys = [product_lock_key(tenant.tenant_id, line.sku) for line in invoice.items]
        with locks.hold(*sku_keys):
            restored: list[InvoiceLine] = []
            try:
                for line in invoice.items:
                    try:
                        stock_in(
                            tenant.tenant_id,
                            line.sku,
                            quantity=line.quantity,
                            note=f"Cancelled invoice {invoice_number}",
                            reversal=ReversalReason.INVOICE_CANCELLATION,
                        )
                    except NotFoundError:
                        current_app.logger.warning(
                            "Product %s no longer exists; skipping stock restore for invoice %s",
                            line.sku, invoice_number,
                        )
                        continue
                    restored.append(line)

                invoice.subtotal_cents = 0
                invoice.total_tax_cents = 0
                invoice.total_amount_cents = 0
                invoice.gross_profit_cents = 0
                invoice.outstanding_cents = 0
                invoice.status = INVOICE_STATUS_CANCELLED
                invoice.cancelled_at = utcnow()
                _save_invoice(invoice)
            except LedgerError:
                current_app.logger.warning(
                    "Cancellation of %s aborted after %d of %d restores; taking stock back",
                    invoice_number, len(restored), len(invoice.items),
                )
                _undo_restores(tenant.tenant_id, invoice_number, restored)
                raise

    current_app.logger.info("Cancelled invoice %s for tenant %s", invoice_number, tenant.tenant_id)
    return invoice


# =============================================================================
# PAYMENTS
# =============================================================================

def record_payment(tenant_id: str, invoice_number: str, amount_cents) -> Invoice:
    """
    Apply a (possibly partial) payment to an invoice.

    Raises:
        NotFoundError: invoice does not exist
        ValidationError: invoice is cancelled, or amount is not positive
        ConflictError: nothing outstanding, or amount exceeds outstanding
    """
    tenant = authorize(tenant_id)

    if amount_cents is None:
        raise ValidationError("Missing required field: amount_cents")
    amount = coerce_int("amount_cents", amount_cents)

    with get_entity_locks().hold(invoice_lock_key(tenant.tenant_id, invoice_number)):
        invoice = _load_invoice(tenant.tenant_id, invoice_number)

        if invoice.is_cancelled:
            raise ValidationError("Cannot record payment for a cancelled invoice")
        if amount <= 0:
            raise ValidationError("Payment amount must be positive")
        if invoice.outstanding_cents <= 0:
            raise ConflictError("Invoice has no outstanding balance")
        if amount > invoice.outstanding_cents:
            raise ConflictError(
                "Payment exceeds outstanding balance",
                details={"amount_cents": amount, "outstanding_cents": invoice.outstanding_cents},
            )

        now = utcnow()
        invoice.outstanding_cents -= amount
        invoice.payments.append(InvoicePayment(amount_cents=amount, received_at=now))
        if invoice.outstanding_cents == 0:
            invoice.status = INVOICE_STATUS_PAID
            invoice.paid_on = now
        _save_invoice(invoice)

    current_app.logger.info(
        "Payment of %d recorded on invoice %s (outstanding %d)",
        amount, invoice_number, invoice.outstanding_cents,
    )
    return invoice


# =============================================================================
# READS
# =============================================================================

def get_invoice(tenant_id: str, invoice_number: str) -> Invoice:
    tenant = authorize(tenant_id)
    return _load_invoice(tenant.tenant_id, invoice_number)


def list_invoices(tenant_id: str) -> list[Invoice]:
    """All tenant invoices, newest first. Unreadable documents are logged and skipped."""
    tenant = authorize(tenant_id)
    return sorted(scan_invoices(tenant.tenant_id), key=lambda inv: inv.issued_at, reverse=True)


def scan_invoices(tenant_id: str) -> list[Invoice]:
    """Ungated scan used by reporting after it has passed the gate itself."""
    store = get_document_store()
    invoices = []
    for key in store.list_by_prefix(invoices_prefix(tenant_id)):
        try:
            invoices.append(Invoice.from_dict(read_json(store, key) or {}))
        except (StorageFailure, KeyError, TypeError, ValueError):
            current_app.logger.warning("Failed to read/parse invoice document %s", key)
    return invoices
