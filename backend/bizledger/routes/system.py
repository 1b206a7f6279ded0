# backend/bizledger/routes/system.py
"""
System health endpoint.

Checks that the document store answers a prefix scan and reports how many
entity locks are currently held or awaited.
"""

import time
from flask import Blueprint, current_app

from ..services.concurrency import get_entity_locks
from ..services.document_store import get_document_store, tenants_prefix
from bizledger.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_storage_health() -> dict:
    """
    Check document store connectivity with a cheap prefix listing.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        tenant_count = len(get_document_store().list_by_prefix(tenants_prefix()))
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"tenants": tenant_count},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Storage health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Storage error",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: storage healthy
    - 503: storage unhealthy
    """
    storage_health = check_storage_health()
    http_status = 200 if storage_health["status"] == "healthy" else 503

    return {
        "status": storage_health["status"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {
            "storage": storage_health,
            "locks": {"active": len(get_entity_locks().active_keys())},
        },
    }, http_status
