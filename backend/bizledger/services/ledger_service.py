# Overview: Service-layer operations for the stock movement ledger; append-only audit history.

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..errors import NotFoundError, StorageFailure
from ..models import MovementRecord, Product, ReversalReason
from ..models.inventory import MOVEMENT_ADJUSTMENT, MOVEMENT_STOCK_IN, MOVEMENT_STOCK_OUT
from .document_store import (
    decode_json,
    get_document_store,
    movements_key,
    movements_prefix,
    write_json,
)
"""
Movement Ledger Invariants (authoritative)

- One ordered history document per (tenant, SKU) at tenant/{t}/movements/{sku}.
- Append-only: records are never updated or deleted, even when the product is.
- Each record snapshots stock/average cost/value AFTER the change.
- A corrupt history never fails the owning stock operation: it is logged
  and replaced by a fresh history. Store read/write failures propagate.
- occurred_at is business time and drives reporting order.
"""


def _audit_note(movement_type: str, quantity: int, cost_per_unit_cents: int | None, note: str) -> str:
    if not note:
        if movement_type == MOVEMENT_ADJUSTMENT:
            note = "Manual stock adjustment"
        elif movement_type == MOVEMENT_STOCK_OUT:
            note = f"Sold {quantity} unit(s)"
        elif movement_type == MOVEMENT_STOCK_IN:
            note = "Stock added"

    if movement_type == MOVEMENT_STOCK_IN:
        prefix = f"Stock In of {quantity} unit(s)"
        if cost_per_unit_cents is not None:
            prefix += f" at cost {cost_per_unit_cents}"
    elif movement_type == MOVEMENT_STOCK_OUT:
        prefix = f"Stock Out of {quantity} unit(s)"
    else:
        prefix = f"Stock Adjustment of {quantity} unit(s)"
    return f"{prefix}: {note}" if note else prefix


def _read_history_for_append(tenant_id: str, sku: str) -> list[dict]:
    store = get_document_store()
    key = movements_key(tenant_id, sku)
    try:
        body = store.read(key)
    except NotFoundError:
        return []

    # Store errors above propagate; only undecodable content is replaced.
    try:
        history = decode_json(key, body)
    except StorageFailure:
        current_app.logger.warning("Corrupted movement history for %s, starting fresh.", sku)
        return []

    if not isinstance(history, list):
        current_app.logger.warning("Corrupted movement history for %s, starting fresh.", sku)
        return []
    return history


def append_movement(
    *,
    tenant_id: str,
    product: Product,
    movement_type: str,
    quantity: int,
    occurred_at: datetime,
    cost_per_unit_cents: int | None = None,
    note: str = "",
    reversal: ReversalReason | None = None,
) -> MovementRecord:
    """
    Append one movement record for an already-persisted product state.

    - No valuation logic here; `product` is the post-change state.
    - Caller holds the product lock, which also serializes this history.
    """
    record = MovementRecord(
        tenant_id=tenant_id,
        sku=product.sku,
        product_name=product.name,
        type=movement_type,
        quantity=quantity,
        cost_per_unit_cents=(
            cost_per_unit_cents if cost_per_unit_cents is not None else product.average_cost_cents
        ),
        note=_audit_note(movement_type, quantity, cost_per_unit_cents, note),
        reversal_reason=reversal.value if reversal is not None else None,
        occurred_at=occurred_at,
        stock_on_hand_after=product.stock_on_hand,
        average_cost_cents_after=product.average_cost_cents,
        inventory_value_cents_after=product.inventory_value_cents,
    )

    history = _read_history_for_append(tenant_id, product.sku)
    history.append(record.to_dict())
    write_json(get_document_store(), movements_key(tenant_id, product.sku), history)
    return record


def _parse_history(key: str, raw) -> list[MovementRecord]:
    if not isinstance(raw, list):
        raise StorageFailure(f"Corrupt movement history at {key}")
    records = []
    for entry in raw:
        try:
            records.append(MovementRecord.from_dict(entry))
        except (KeyError, TypeError, ValueError):
            current_app.logger.warning("Skipping malformed movement record in %s", key)
    return records


def _decode_history(key: str, body: bytes) -> list[MovementRecord]:
    try:
        return _parse_history(key, decode_json(key, body))
    except StorageFailure:
        current_app.logger.warning("Corrupted movement history at %s, ignoring.", key)
        return []


def list_movements(tenant_id: str, sku: str) -> list[MovementRecord]:
    """
    One product's history in append order.

    Empty when there is no history or its content is corrupt. Store read
    failures propagate so they are never mistaken for "no movements".
    """
    store = get_document_store()
    key = movements_key(tenant_id, sku)
    try:
        body = store.read(key)
    except NotFoundError:
        return []
    return _decode_history(key, body)


def list_all_movements(tenant_id: str) -> list[MovementRecord]:
    """
    Every product history for the tenant, newest first.

    Individual unreadable histories or records are logged and skipped; they
    never fail the aggregate read.
    """
    store = get_document_store()
    movements: list[MovementRecord] = []
    for key in store.list_by_prefix(movements_prefix(tenant_id)):
        try:
            movements.extend(_parse_history(key, decode_json(key, store.read(key))))
        except (StorageFailure, NotFoundError) as exc:
            current_app.logger.warning("Failed to read movement history %s: %s", key, exc)

    return sorted(movements, key=lambda m: m.occurred_at, reverse=True)
