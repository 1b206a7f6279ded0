# Overview: Flask API routes for customers operations; parses input and returns JSON responses.

# backend/bizledger/routes/customers.py
from flask import Blueprint, g

from ..decorators import json_payload, require_tenant
from ..services import customer_service

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_tenant
def list_customers():
    customers = customer_service.list_customers(g.tenant_id)
    return {"items": [c.to_dict() for c in customers]}


@customers_bp.post("")
@require_tenant
def create_customer_route():
    customer = customer_service.create_customer(g.tenant_id, json_payload())
    return customer.to_dict(), 201
