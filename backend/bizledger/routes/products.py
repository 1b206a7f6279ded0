# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/bizledger/routes/products.py
"""
Product catalog routes with multi-tenant support.

MULTI-TENANT: Every route is scoped to the tenant in the request header
(g.tenant_id, set by @require_tenant). Stock levels are read-only here;
they change through /api/inventory.
"""
from flask import Blueprint, g, request

from ..decorators import json_payload, require_tenant
from ..services import products_service

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_tenant
def list_products():
    """
    List the tenant catalog, newest first.

    Query params:
    - name: str (optional) - exact, case-insensitive name lookup
    """
    name = request.args.get("name")
    if name:
        product = products_service.get_product_by_name(g.tenant_id, name)
        return {"items": [product.to_dict()]}

    products = products_service.list_products(g.tenant_id)
    return {"items": [p.to_dict() for p in products]}


@products_bp.post("")
@require_tenant
def create_product_route():
    product = products_service.create_product(g.tenant_id, json_payload())
    return product.to_dict(), 201


@products_bp.get("/<sku>")
@require_tenant
def get_product_route(sku: str):
    return products_service.get_product(g.tenant_id, sku).to_dict()


@products_bp.put("/<sku>")
@products_bp.patch("/<sku>")
@require_tenant
def update_product_route(sku: str):
    """Update catalog fields; valuation fields are rejected with 400."""
    product = products_service.update_product(g.tenant_id, sku, json_payload())
    return product.to_dict()


@products_bp.delete("/<sku>")
@require_tenant
def delete_product_route(sku: str):
    return products_service.delete_product(g.tenant_id, sku)
