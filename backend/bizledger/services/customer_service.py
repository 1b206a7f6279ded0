# Overview: Service-layer operations for customers; tenant-scoped profiles with GSTIN validation.

from __future__ import annotations

import re

from flask import current_app

from ..errors import ConflictError, StorageFailure, ValidationError
from ..models import Customer
from ..validation import optional_text, reject_unknown_fields, require_text
from bizledger.time_utils import epoch_millis, utcnow
from .concurrency import customer_registry_lock_key, get_entity_locks
from .document_store import customer_key, customers_prefix, get_document_store, read_json, write_json
from .tenant_service import authorize


CUSTOMER_CREATE_FIELDS = {"name", "phone", "email", "address", "pincode", "tax_id", "gstin"}

# Indian GSTIN: state code, PAN, entity number, 'Z', checksum
GSTIN_PATTERN = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][1-9A-Z]Z[0-9A-Z]$")


def normalize_tax_id(value) -> str | None:
    """Upper-case and validate a GSTIN; None when blank."""
    if value is None or not str(value).strip():
        return None
    tax_id = str(value).strip().upper()
    if not GSTIN_PATTERN.match(tax_id):
        raise ValidationError("Invalid GSTIN format")
    return tax_id


def _scan_customers(tenant_id: str) -> list[Customer]:
    store = get_document_store()
    customers = []
    for key in store.list_by_prefix(customers_prefix(tenant_id)):
        try:
            customers.append(Customer.from_dict(read_json(store, key) or {}))
        except (StorageFailure, KeyError, TypeError, ValueError):
            current_app.logger.warning("Failed to read/parse customer document %s", key)
    return customers


def create_customer(tenant_id: str, payload: dict) -> Customer:
    """
    Register a customer profile.

    Raises:
        ValidationError: missing name/phone, malformed GSTIN
        ConflictError: GSTIN already registered to another customer
    """
    tenant = authorize(tenant_id)

    if payload is None or not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    reject_unknown_fields(payload, CUSTOMER_CREATE_FIELDS)

    name = require_text(payload, "name")
    phone = require_text(payload, "phone")
    tax_id = normalize_tax_id(payload.get("tax_id") or payload.get("gstin"))

    store = get_document_store()
    with get_entity_locks().hold(customer_registry_lock_key(tenant.tenant_id)):
        if tax_id:
            for existing in _scan_customers(tenant.tenant_id):
                if existing.tax_id == tax_id:
                    raise ConflictError("A customer with this GSTIN already exists")

        base = f"CUST-{epoch_millis()}"
        customer_id = base
        suffix = 1
        while store.exists(customer_key(tenant.tenant_id, customer_id)):
            customer_id = f"{base}-{suffix}"
            suffix += 1

        customer = Customer(
            tenant_id=tenant.tenant_id,
            customer_id=customer_id,
            name=name,
            phone=phone,
            email=optional_text(payload, "email"),
            address=optional_text(payload, "address"),
            pincode=optional_text(payload, "pincode"),
            tax_id=tax_id,
            created_at=utcnow(),
        )
        write_json(store, customer_key(tenant.tenant_id, customer_id), customer.to_dict())

    current_app.logger.info("Created customer %s for tenant %s", customer_id, tenant.tenant_id)
    return customer


def list_customers(tenant_id: str) -> list[Customer]:
    tenant = authorize(tenant_id)
    return sorted(_scan_customers(tenant.tenant_id), key=lambda c: c.created_at, reverse=True)
