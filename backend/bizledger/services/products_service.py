# backend/bizledger/services/products_service.py
"""
Products Service with Multi-Tenant Support

MULTI-TENANT: All product operations are tenant-scoped.
- Every public function passes the tenant gate first
- Products live at tenant/{tenant_id}/products/{sku}
- SKUs are unique within a tenant, not globally

Catalog fields (name, prices, tax rate, reorder level) are edited here.
Valuation fields (stock_on_hand, average_cost_cents, inventory_value_cents)
are owned by inventory_service and rejected in patches.
"""
from __future__ import annotations

from flask import current_app

from ..errors import ConflictError, NotFoundError, StorageFailure, ValidationError
from ..models import Product
from ..validation import (
    optional_int,
    optional_text,
    reject_unknown_fields,
    require_int,
    require_non_negative_amount,
    require_text,
)
from bizledger.time_utils import epoch_millis, utcnow
from .concurrency import get_entity_locks, product_lock_key
from .document_store import get_document_store, product_key, products_prefix, read_json, write_json
from .tenant_service import authorize

PRODUCT_CREATE_FIELDS = {
    "sku", "name", "category", "cost_price_cents", "selling_price_cents",
    "tax_rate_bps", "reorder_level",
}
PRODUCT_MUTABLE_FIELDS = {
    "name", "category", "cost_price_cents", "selling_price_cents",
    "tax_rate_bps", "reorder_level",
}
VALUATION_FIELDS = {"stock_on_hand", "average_cost_cents", "inventory_value_cents"}

MAX_TAX_RATE_BPS = 10_000


def _validate_rate(value: int) -> int:
    if value < 0 or value > MAX_TAX_RATE_BPS:
        raise ValidationError(f"tax_rate_bps must be between 0 and {MAX_TAX_RATE_BPS}")
    return value


def _validate_reorder_level(value: int) -> int:
    if value < 0:
        raise ValidationError("reorder_level cannot be negative")
    return value


# =============================================================================
# INTERNAL LOAD / SAVE (caller has already passed the tenant gate)
# =============================================================================

def load_product(tenant_id: str, sku: str) -> Product:
    """Read a product document; NotFound if absent, StorageFailure if corrupt."""
    data = read_json(get_document_store(), product_key(tenant_id, sku))
    if data is None:
        raise NotFoundError(f"Product {sku} not found")
    try:
        return Product.from_dict(data)
    except (KeyError, TypeError, ValueError):
        raise StorageFailure(f"Failed to read product data for SKU {sku}")


def save_product(product: Product) -> Product:
    product.updated_at = utcnow()
    write_json(get_document_store(), product_key(product.tenant_id, product.sku), product.to_dict())
    return product


# =============================================================================
# CATALOG OPERATIONS
# =============================================================================

def create_product(tenant_id: str, payload: dict) -> Product:
    """
    Create a product in the tenant catalog.

    New products start with no stock, zero value, and an average cost equal
    to the catalog cost price. A SKU is generated when none is supplied.

    Raises:
        ValidationError: missing name/cost, negative or non-integer amounts
        ConflictError: SKU already exists in this tenant
    """
    tenant = authorize(tenant_id)

    if payload is None or not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    reject_unknown_fields(payload, PRODUCT_CREATE_FIELDS)

    name = require_text(payload, "name")
    cost_price = require_non_negative_amount("cost_price_cents", require_int(payload, "cost_price_cents"))
    selling_price = require_non_negative_amount(
        "selling_price_cents", optional_int(payload, "selling_price_cents", 0)
    )
    tax_rate = _validate_rate(optional_int(payload, "tax_rate_bps", 0))
    reorder_level = _validate_reorder_level(optional_int(payload, "reorder_level", 0))

    sku = optional_text(payload, "sku") or f"SKU{epoch_millis()}"
    key = product_key(tenant.tenant_id, sku)

    with get_entity_locks().hold(product_lock_key(tenant.tenant_id, sku)):
        store = get_document_store()
        if store.exists(key):
            raise ConflictError("Product SKU already exists in your catalog")

        now = utcnow()
        product = Product(
            tenant_id=tenant.tenant_id,
            sku=sku,
            name=name,
            category=optional_text(payload, "category"),
            cost_price_cents=cost_price,
            selling_price_cents=selling_price,
            tax_rate_bps=tax_rate,
            reorder_level=reorder_level,
            stock_on_hand=0,
            average_cost_cents=cost_price,
            inventory_value_cents=0,
            created_at=now,
            updated_at=now,
        )
        write_json(store, key, product.to_dict())

    current_app.logger.info("Created product %s for tenant %s", sku, tenant.tenant_id)
    return product


def get_product(tenant_id: str, sku: str) -> Product:
    tenant = authorize(tenant_id)
    return load_product(tenant.tenant_id, sku)


def list_products(tenant_id: str) -> list[Product]:
    """Tenant catalog, newest first. Unreadable documents are logged and skipped."""
    tenant = authorize(tenant_id)
    store = get_document_store()

    products = []
    for key in store.list_by_prefix(products_prefix(tenant.tenant_id)):
        try:
            products.append(Product.from_dict(read_json(store, key) or {}))
        except (StorageFailure, KeyError, TypeError, ValueError):
            current_app.logger.warning("Failed to read/parse product document %s", key)

    return sorted(products, key=lambda p: p.created_at, reverse=True)


def get_product_by_name(tenant_id: str, name: str) -> Product:
    """Case-insensitive exact name lookup."""
    wanted = (name or "").strip().lower()
    for product in list_products(tenant_id):
        if product.name.lower() == wanted:
            return product
    raise NotFoundError("Product not found")


def update_product(tenant_id: str, sku: str, patch: dict) -> Product:
    """
    Update catalog fields.

    Issued invoices are unaffected: they carry their own price snapshot.
    """
    tenant = authorize(tenant_id)

    if patch is None or not isinstance(patch, dict):
        raise ValidationError("Invalid JSON payload")
    touched_valuation = sorted(VALUATION_FIELDS & set(patch.keys()))
    if touched_valuation:
        raise ValidationError(
            f"Valuation fields are changed through stock operations only: {', '.join(touched_valuation)}"
        )
    reject_unknown_fields(patch, PRODUCT_MUTABLE_FIELDS)

    with get_entity_locks().hold(product_lock_key(tenant.tenant_id, sku)):
        product = load_product(tenant.tenant_id, sku)

        if "name" in patch:
            product.name = require_text(patch, "name")
        if "category" in patch:
            product.category = optional_text(patch, "category")
        if "cost_price_cents" in patch:
            product.cost_price_cents = require_non_negative_amount(
                "cost_price_cents", require_int(patch, "cost_price_cents")
            )
        if "selling_price_cents" in patch:
            product.selling_price_cents = require_non_negative_amount(
                "selling_price_cents", require_int(patch, "selling_price_cents")
            )
        if "tax_rate_bps" in patch:
            product.tax_rate_bps = _validate_rate(require_int(patch, "tax_rate_bps"))
        if "reorder_level" in patch:
            product.reorder_level = _validate_reorder_level(require_int(patch, "reorder_level"))

        return save_product(product)


def delete_product(tenant_id: str, sku: str) -> dict:
    """
    Hard-delete a product.

    The movement history document is kept: it is the audit trail.
    """
    tenant = authorize(tenant_id)

    with get_entity_locks().hold(product_lock_key(tenant.tenant_id, sku)):
        store = get_document_store()
        key = product_key(tenant.tenant_id, sku)
        if not store.exists(key):
            raise NotFoundError("Product not found")
        store.delete(key)

    current_app.logger.info("Deleted product %s for tenant %s", sku, tenant.tenant_id)
    return {"message": "Product deleted successfully", "sku": sku}
