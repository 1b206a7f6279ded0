# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

# backend/bizledger/routes/inventory.py
from flask import Blueprint, g, request

from ..decorators import json_payload, require_tenant
from ..errors import NotFoundError
from ..services import inventory_service

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.post("/<operation>/<sku>")
@require_tenant
def stock_operation(operation: str, sku: str):
    """
    Apply a stock operation to one product.

    Operations:
    - stock-in: {"quantity", "cost_per_unit_cents", "note"?, "occurred_at"?}
    - stock-out: {"quantity", "note"?, "occurred_at"?}
    - stock-adjustment: {"quantity_delta", "note"?, "occurred_at"?}

    Reversals are issued by invoice cancellation only and cannot be
    requested here.
    """
    payload = json_payload()
    note = payload.get("note") or ""
    occurred_at = payload.get("occurred_at")

    if operation == "stock-in":
        product = inventory_service.stock_in(
            g.tenant_id,
            sku,
            quantity=payload.get("quantity"),
            cost_per_unit_cents=payload.get("cost_per_unit_cents"),
            note=note,
            occurred_at=occurred_at,
        )
    elif operation == "stock-out":
        product = inventory_service.stock_out(
            g.tenant_id,
            sku,
            quantity=payload.get("quantity"),
            note=note,
            occurred_at=occurred_at,
        )
    elif operation == "stock-adjustment":
        product = inventory_service.stock_adjustment(
            g.tenant_id,
            sku,
            quantity_delta=payload.get("quantity_delta"),
            note=note,
            occurred_at=occurred_at,
        )
    else:
        raise NotFoundError(f"Unknown inventory operation: {operation}")

    return product.to_dict()


@inventory_bp.get("/movements")
@require_tenant
def list_movements():
    """
    Movement history.

    Query params:
    - sku: str (optional) - one product's history in append order;
      otherwise every product, newest first
    """
    sku = request.args.get("sku")
    if sku:
        movements = inventory_service.get_movements(g.tenant_id, sku)
    else:
        movements = inventory_service.get_all_movements(g.tenant_id)
    return {"items": [m.to_dict() for m in movements]}
