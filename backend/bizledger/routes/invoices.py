# Overview: Flask API routes for invoices operations; parses input and returns JSON responses.

# backend/bizledger/routes/invoices.py
"""
Invoice routes.

LIFECYCLE:
- POST /api/invoices               issue (consumes stock)
- POST /api/invoices/<n>/cancel    cancel (restores stock, zeroes totals)
- POST /api/invoices/<n>/payments  partial or full payment
"""
from flask import Blueprint, g

from ..decorators import json_payload, require_tenant
from ..services import invoice_service

invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.get("")
@require_tenant
def list_invoices():
    invoices = invoice_service.list_invoices(g.tenant_id)
    return {"items": [inv.to_dict() for inv in invoices]}


@invoices_bp.post("")
@require_tenant
def create_invoice_route():
    """
    Body:
    {
        "customer": {"name": "...", "tax_id": "..."},
        "items": [{"sku": "...", "quantity": 2}],
        "due_date": "2026-11-01",
        "status": "UNPAID" | "PAID"
    }
    """
    payload = json_payload()
    invoice = invoice_service.create_invoice(
        g.tenant_id,
        customer=payload.get("customer"),
        items=payload.get("items"),
        due_date=payload.get("due_date"),
        status=payload.get("status"),
    )
    return invoice.to_dict(), 201


@invoices_bp.get("/<invoice_number>")
@require_tenant
def get_invoice_route(invoice_number: str):
    return invoice_service.get_invoice(g.tenant_id, invoice_number).to_dict()


@invoices_bp.post("/<invoice_number>/cancel")
@require_tenant
def cancel_invoice_route(invoice_number: str):
    return invoice_service.cancel_invoice(g.tenant_id, invoice_number).to_dict()


@invoices_bp.post("/<invoice_number>/payments")
@require_tenant
def record_payment_route(invoice_number: str):
    payload = json_payload()
    invoice = invoice_service.record_payment(g.tenant_id, invoice_number, payload.get("amount_cents"))
    return invoice.to_dict()
