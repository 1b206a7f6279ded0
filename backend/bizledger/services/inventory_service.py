# Overview: Service-layer operations for inventory; stock levels, weighted average cost and valuation.

# backend/bizledger/services/inventory_service.py

from datetime import datetime, timedelta

from flask import current_app

from ..errors import ConflictError, ValidationError
from ..models import MovementRecord, Product, ReversalReason
from ..models.inventory import MOVEMENT_ADJUSTMENT, MOVEMENT_STOCK_IN, MOVEMENT_STOCK_OUT
from ..money import div_round_half_up
from ..validation import coerce_datetime, coerce_int
from bizledger.time_utils import utcnow
from .concurrency import get_entity_locks, product_lock_key
from .ledger_service import append_movement, list_all_movements, list_movements
from .products_service import load_product, save_product
from .tenant_service import authorize
"""
Inventory Valuation Invariants & Time Semantics (authoritative)

Canonical time handling:
- All internal datetimes are UTC-naive (tzinfo=None).
- API accepts ISO-8601 with 'Z' or offsets; inputs are normalized to UTC-naive.
- occurred_at more than two minutes in the future is rejected.

Valuation model:
- Stock, average cost and value are stored on the product document and
  updated in place under the product lock; history lives in the movement
  ledger.
- inventory_value_cents == stock_on_hand * average_cost_cents at rest.

Business invariants:
- On-hand quantity may never go negative.
- STOCK_IN recomputes WAC as (stock*avg + qty*cost) / (stock + qty),
  nearest-cent rounding (half-up), unless it carries a ReversalReason.
- A reversal STOCK_IN restores quantity at the current average cost and
  never moves WAC, so undoing a sale cannot skew today's cost basis.
- STOCK_OUT and ADJUSTMENT never change WAC.

Audit:
- Every successful operation appends one movement record after the product
  is persisted, while the product lock is still held.
"""


def _parse_occurred_at(value) -> datetime:
    occurred_dt = coerce_datetime("occurred_at", value)
    if occurred_dt is None:
        return utcnow()

    now = utcnow()
    if occurred_dt > (now + timedelta(minutes=2)):
        raise ValidationError("occurred_at cannot be in the future")
    return occurred_dt


def _require_positive_quantity(value) -> int:
    if value is None:
        raise ValidationError("Quantity must be greater than zero")
    quantity = coerce_int("quantity", value)
    if quantity <= 0:
        raise ValidationError("Quantity must be greater than zero")
    return quantity


def _coerce_reversal(value) -> ReversalReason | None:
    if value is None or isinstance(value, ReversalReason):
        return value
    try:
        return ReversalReason(str(value).strip().upper())
    except ValueError:
        raise ValidationError(f"Invalid reversal reason: {value}")


def _apply_valuation(product: Product, stock_on_hand: int, average_cost_cents: int) -> None:
    product.stock_on_hand = stock_on_hand
    product.average_cost_cents = average_cost_cents
    product.inventory_value_cents = stock_on_hand * average_cost_cents


def weighted_average_cost_cents(
    current_qty: int, current_avg_cents: int, quantity: int, cost_per_unit_cents: int
) -> int:
    """Blend an incoming receipt into the current average; nearest cent, half-up."""
    total_qty = current_qty + quantity
    return div_round_half_up(
        current_qty * current_avg_cents + quantity * cost_per_unit_cents,
        total_qty,
    )


def stock_in(
    tenant_id: str,
    sku: str,
    *,
    quantity,
    cost_per_unit_cents=None,
    note: str = "",
    occurred_at=None,
    reversal: ReversalReason | str | None = None,
) -> Product:
    """
    Add stock to a product.

    A normal receipt requires a non-negative unit cost and recomputes WAC.
    A reversal (reversal=ReversalReason.*) restores quantity at the current
    average cost; any unit cost passed is ignored.

    Raises:
        ValidationError: non-positive quantity, missing/negative cost on a
            normal receipt, unknown reversal reason, future occurred_at
        NotFoundError: unknown tenant or SKU
        ForbiddenError: suspended tenant
    """
    tenant = authorize(tenant_id)

    quantity = _require_positive_quantity(quantity)
    reversal = _coerce_reversal(reversal)

    cost = None
    if cost_per_unit_cents is not None:
        cost = coerce_int("cost_per_unit_cents", cost_per_unit_cents)
    if reversal is None and (cost is None or cost < 0):
        raise ValidationError("Cost per unit is required and cannot be negative")

    occurred_dt = _parse_occurred_at(occurred_at)

    with get_entity_locks().hold(product_lock_key(tenant.tenant_id, sku)):
        product = load_product(tenant.tenant_id, sku)

        current_qty = product.stock_on_hand
        current_avg = product.average_cost_cents
        new_qty = current_qty + quantity

        if reversal is not None:
            new_avg = current_avg
            cost_used = current_avg
        else:
            new_avg = weighted_average_cost_cents(current_qty, current_avg, quantity, cost)
            cost_used = cost

        _apply_valuation(product, new_qty, new_avg)
        save_product(product)

        append_movement(
            tenant_id=tenant.tenant_id,
            product=product,
            movement_type=MOVEMENT_STOCK_IN,
            quantity=quantity,
            cost_per_unit_cents=cost_used,
            note=note or "",
            occurred_at=occurred_dt,
            reversal=reversal,
        )

    current_app.logger.info(
        "Stock in %s x%d for tenant %s (avg %d -> %d%s)",
        sku, quantity, tenant.tenant_id, current_avg, new_avg,
        f", reversal {reversal.value}" if reversal else "",
    )
    return product


def stock_out(
    tenant_id: str,
    sku: str,
    *,
    quantity,
    note: str = "",
    occurred_at=None,
) -> Product:
    """
    Deduct stock at the current weighted average cost.

    Raises:
        ValidationError: non-positive quantity
        ConflictError: quantity exceeds stock on hand
    """
    tenant = authorize(tenant_id)

    quantity = _require_positive_quantity(quantity)
    occurred_dt = _parse_occurred_at(occurred_at)

    with get_entity_locks().hold(product_lock_key(tenant.tenant_id, sku)):
        product = load_product(tenant.tenant_id, sku)

        if product.stock_on_hand < quantity:
            raise ConflictError(
                f"Insufficient stock: only {product.stock_on_hand} units available",
                details={"sku": sku, "requested_quantity": quantity, "on_hand": product.stock_on_hand},
            )

        _apply_valuation(product, product.stock_on_hand - quantity, product.average_cost_cents)
        save_product(product)

        append_movement(
            tenant_id=tenant.tenant_id,
            product=product,
            movement_type=MOVEMENT_STOCK_OUT,
            quantity=quantity,
            note=note or "",
            occurred_at=occurred_dt,
        )

    current_app.logger.info("Stock out %s x%d for tenant %s", sku, quantity, tenant.tenant_id)
    return product


def stock_adjustment(
    tenant_id: str,
    sku: str,
    *,
    quantity_delta,
    note: str = "",
    occurred_at=None,
) -> Product:
    """
    Manual correction of stock levels (shrink, recount, found goods).

    Value is recomputed at the existing average cost.

    Raises:
        ValidationError: zero or non-integer delta
        ConflictError: adjustment would make stock negative
    """
    tenant = authorize(tenant_id)

    if quantity_delta is None:
        raise ValidationError("Adjustment quantity must be non-zero")
    delta = coerce_int("quantity_delta", quantity_delta)
    if delta == 0:
        raise ValidationError("Adjustment quantity must be non-zero")

    occurred_dt = _parse_occurred_at(occurred_at)

    with get_entity_locks().hold(product_lock_key(tenant.tenant_id, sku)):
        product = load_product(tenant.tenant_id, sku)

        new_qty = product.stock_on_hand + delta
        if new_qty < 0:
            raise ConflictError(
                "Adjustment would make stock negative",
                details={"sku": sku, "quantity_delta": delta, "on_hand": product.stock_on_hand},
            )

        _apply_valuation(product, new_qty, product.average_cost_cents)
        save_product(product)

        append_movement(
            tenant_id=tenant.tenant_id,
            product=product,
            movement_type=MOVEMENT_ADJUSTMENT,
            quantity=delta,
            note=note or "",
            occurred_at=occurred_dt,
        )

    current_app.logger.info("Stock adjustment %s %+d for tenant %s", sku, delta, tenant.tenant_id)
    return product


def get_all_movements(tenant_id: str) -> list[MovementRecord]:
    """Aggregate movement history for the whole tenant, newest first."""
    tenant = authorize(tenant_id)
    return list_all_movements(tenant.tenant_id)


def get_movements(tenant_id: str, sku: str) -> list[MovementRecord]:
    """One product's movement history in the order it was written."""
    tenant = authorize(tenant_id)
    return list_movements(tenant.tenant_id, sku)
