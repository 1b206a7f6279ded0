from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from bizledger.time_utils import to_utc_z, parse_iso_datetime, utcnow

CUSTOMER_STATUS_ENABLED = "ENABLED"


@dataclass
class Customer:
    """
    Customer profile.

    Peripheral to the ledger: invoices copy name and tax id at issue time
    instead of referencing the customer record.
    """
    tenant_id: str
    customer_id: str
    name: str
    phone: str
    email: str = ""
    address: str = ""
    pincode: str = ""
    tax_id: str | None = None
    status: str = CUSTOMER_STATUS_ENABLED
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "tenant_id": self.tenant_id,
            "customer_id": self.customer_id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "pincode": self.pincode,
            "tax_id": self.tax_id,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Customer":
        return cls(
            tenant_id=data["tenant_id"],
            customer_id=data["customer_id"],
            name=data["name"],
            phone=data.get("phone") or "",
            email=data.get("email") or "",
            address=data.get("address") or "",
            pincode=data.get("pincode") or "",
            tax_id=data.get("tax_id"),
            status=data.get("status", CUSTOMER_STATUS_ENABLED),
            created_at=parse_iso_datetime(data.get("created_at")) or utcnow(),
        )
