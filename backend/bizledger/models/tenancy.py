from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from bizledger.time_utils import to_utc_z, parse_iso_datetime, utcnow

TENANT_STATUS_ACTIVE = "ACTIVE"
TENANT_STATUS_SUSPENDED = "SUSPENDED"

VALID_TENANT_STATUSES = [TENANT_STATUS_ACTIVE, TENANT_STATUS_SUSPENDED]


@dataclass
class Tenant:
    """
    Multi-tenant root: an isolated business account.

    Every product, movement history, invoice and customer key is nested
    under the tenant id. Only ACTIVE tenants may operate.
    """
    tenant_id: str
    name: str
    status: str = TENANT_STATUS_ACTIVE
    timezone: str = "UTC"
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_active(self) -> bool:
        return self.status == TENANT_STATUS_ACTIVE

    def to_dict(self) -> dict:
        return {
            "tenant_id": self.tenant_id,
            "name": self.name,
            "status": self.status,
            "timezone": self.timezone,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Tenant":
        return cls(
            tenant_id=data["tenant_id"],
            name=data["name"],
            status=data.get("status", TENANT_STATUS_ACTIVE),
            timezone=data.get("timezone") or "UTC",
            created_at=parse_iso_datetime(data.get("created_at")) or utcnow(),
            updated_at=parse_iso_datetime(data.get("updated_at")) or utcnow(),
        )
