# Overview: Request decorators for API routes.

from functools import wraps
from flask import current_app, g, request

from .errors import ValidationError


def require_tenant(f):
    """
    Establish tenant context from the request header.

    MULTI-TENANT: Sets g.tenant_id from the configured tenant header
    (X-Tenant-Id by default). The services pass it through the tenant
    gate, which decides whether the tenant may operate.

    NOTE: No authentication happens here; the header is trusted as given.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        header = current_app.config["TENANT_HEADER"]
        tenant_id = (request.headers.get(header) or "").strip()
        if not tenant_id:
            raise ValidationError(f"Missing {header} header")
        g.tenant_id = tenant_id
        return f(*args, **kwargs)

    return decorated_function


def json_payload() -> dict:
    """Request body as a dict; anything else is a validation error."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload
