"""
Multi-Tenant Service: Tenant Gate and Tenant Administration

WHY: Centralize tenant validation for reuse across services and routes.
Every core operation is scoped to a tenant, and a suspended tenant must not
be able to read or mutate anything.

SECURITY INVARIANTS:
1. authorize() runs before any other work in every core operation
2. A missing tenant is NOT_FOUND; a non-ACTIVE tenant is FORBIDDEN
3. No side effects happen before authorize() returns

USAGE:
    from bizledger.services.tenant_service import authorize

    tenant = authorize(tenant_id)
"""

from __future__ import annotations

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import current_app

from ..errors import ConflictError, ForbiddenError, NotFoundError, StorageFailure, ValidationError
from ..models import Tenant, TENANT_STATUS_ACTIVE
from ..models.tenancy import VALID_TENANT_STATUSES
from bizledger.time_utils import utcnow
from .document_store import (
    get_document_store,
    read_json,
    write_json,
    tenant_key,
    tenants_prefix,
)


def _load_tenant(tenant_id: str) -> Tenant | None:
    data = read_json(get_document_store(), tenant_key(tenant_id))
    if data is None:
        return None
    try:
        return Tenant.from_dict(data)
    except (KeyError, TypeError, ValueError):
        raise StorageFailure(f"Corrupt tenant record for {tenant_id}")


def authorize(tenant_id: str) -> Tenant:
    """
    Validate that a tenant exists and is ACTIVE.

    Args:
        tenant_id: The tenant identifier supplied by the caller

    Returns:
        The Tenant if valid and active

    Raises:
        ValidationError if tenant_id is blank
        NotFoundError if no tenant record exists
        ForbiddenError if the tenant is not ACTIVE
    """
    if tenant_id is None or not str(tenant_id).strip():
        raise ValidationError("Tenant ID is required")

    tenant = _load_tenant(str(tenant_id).strip())
    if tenant is None:
        raise NotFoundError("Tenant not found")

    if not tenant.is_active:
        current_app.logger.warning("Blocked operation for suspended tenant %s", tenant.tenant_id)
        raise ForbiddenError("Access denied: tenant account is suspended")

    return tenant


# =============================================================================
# TENANT ADMINISTRATION (CLI / provisioning; bypasses the gate)
# =============================================================================

def _validate_timezone(name: str) -> str:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown timezone: {name}")
    return name


def create_tenant(tenant_id: str, name: str, timezone: str = "UTC") -> Tenant:
    """Create an ACTIVE tenant. Conflict if the id is taken."""
    if not name or not str(name).strip():
        raise ValidationError("Tenant name is required")
    key = tenant_key(tenant_id)

    store = get_document_store()
    if store.exists(key):
        raise ConflictError("A tenant with this ID already exists")

    now = utcnow()
    tenant = Tenant(
        tenant_id=str(tenant_id).strip(),
        name=str(name).strip(),
        status=TENANT_STATUS_ACTIVE,
        timezone=_validate_timezone(timezone or "UTC"),
        created_at=now,
        updated_at=now,
    )
    write_json(store, key, tenant.to_dict())
    current_app.logger.info("Created tenant %s", tenant.tenant_id)
    return tenant


def get_tenant(tenant_id: str) -> Tenant:
    tenant = _load_tenant(tenant_id)
    if tenant is None:
        raise NotFoundError("Tenant not found")
    return tenant


def set_tenant_status(tenant_id: str, status: str) -> Tenant:
    new_status = (status or "").strip().upper()
    if new_status not in VALID_TENANT_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of {VALID_TENANT_STATUSES}")

    tenant = get_tenant(tenant_id)
    tenant.status = new_status
    tenant.updated_at = utcnow()
    write_json(get_document_store(), tenant_key(tenant.tenant_id), tenant.to_dict())
    current_app.logger.info("Tenant %s status set to %s", tenant.tenant_id, new_status)
    return tenant


def list_tenants() -> list[Tenant]:
    """All tenants sorted by name; unreadable records are logged and skipped."""
    store = get_document_store()
    tenants = []
    for key in store.list_by_prefix(tenants_prefix()):
        try:
            tenants.append(Tenant.from_dict(read_json(store, key) or {}))
        except (StorageFailure, KeyError, TypeError, ValueError):
            current_app.logger.warning("Skipping unreadable tenant record %s", key)
    return sorted(tenants, key=lambda t: t.name.lower())
