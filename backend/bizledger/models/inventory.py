from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime

from bizledger.time_utils import to_utc_z, parse_iso_datetime, utcnow


MOVEMENT_STOCK_IN = "STOCK_IN"
MOVEMENT_STOCK_OUT = "STOCK_OUT"
MOVEMENT_ADJUSTMENT = "ADJUSTMENT"

VALID_MOVEMENT_TYPES = [MOVEMENT_STOCK_IN, MOVEMENT_STOCK_OUT, MOVEMENT_ADJUSTMENT]


class ReversalReason(str, enum.Enum):
    """
    Why a stock-in restores quantity instead of receiving new goods.

    A stock-in carrying a reversal reason never moves the weighted average
    cost and does not require a unit cost.
    """
    INVOICE_CANCELLATION = "INVOICE_CANCELLATION"
    MANUAL_ROLLBACK = "MANUAL_ROLLBACK"


@dataclass
class Product:
    """
    Product master data and valuation state.

    MULTI-TENANT: Stored at tenant/{tenant_id}/products/{sku}; the SKU is
    unique within a tenant only.

    VALUATION INVARIANT:
    inventory_value_cents == stock_on_hand * average_cost_cents at rest.
    Only the inventory service writes the three valuation fields.
    """
    tenant_id: str
    sku: str
    name: str
    category: str = ""
    cost_price_cents: int = 0
    selling_price_cents: int = 0
    tax_rate_bps: int = 0
    reorder_level: int = 0
    stock_on_hand: int = 0
    average_cost_cents: int = 0
    inventory_value_cents: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_low_stock(self) -> bool:
        return self.stock_on_hand <= self.reorder_level

    def to_dict(self) -> dict:
        return {
            "tenant_id": self.tenant_id,
            "sku": self.sku,
            "name": self.name,
            "category": self.category,
            "cost_price_cents": self.cost_price_cents,
            "selling_price_cents": self.selling_price_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "reorder_level": self.reorder_level,
            "stock_on_hand": self.stock_on_hand,
            "average_cost_cents": self.average_cost_cents,
            "inventory_value_cents": self.inventory_value_cents,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        return cls(
            tenant_id=data["tenant_id"],
            sku=data["sku"],
            name=data["name"],
            category=data.get("category") or "",
            cost_price_cents=int(data.get("cost_price_cents") or 0),
            selling_price_cents=int(data.get("selling_price_cents") or 0),
            tax_rate_bps=int(data.get("tax_rate_bps") or 0),
            reorder_level=int(data.get("reorder_level") or 0),
            stock_on_hand=int(data.get("stock_on_hand") or 0),
            average_cost_cents=int(data.get("average_cost_cents") or 0),
            inventory_value_cents=int(data.get("inventory_value_cents") or 0),
            created_at=parse_iso_datetime(data.get("created_at")) or utcnow(),
            updated_at=parse_iso_datetime(data.get("updated_at")) or utcnow(),
        )


@dataclass(frozen=True)
class MovementRecord:
    """
    Immutable audit entry for one stock change.

    The *_after fields snapshot the product immediately after the change, so
    the valuation at any point can be read back without replaying history.
    """
    tenant_id: str
    sku: str
    product_name: str
    type: str
    quantity: int
    cost_per_unit_cents: int
    note: str
    occurred_at: datetime
    stock_on_hand_after: int
    average_cost_cents_after: int
    inventory_value_cents_after: int
    reversal_reason: str | None = None

    def to_dict(self) -> dict:
        return {
            "tenant_id": self.tenant_id,
            "sku": self.sku,
            "product_name": self.product_name,
            "type": self.type,
            "quantity": self.quantity,
            "cost_per_unit_cents": self.cost_per_unit_cents,
            "note": self.note,
            "reversal_reason": self.reversal_reason,
            "occurred_at": to_utc_z(self.occurred_at),
            "stock_on_hand_after": self.stock_on_hand_after,
            "average_cost_cents_after": self.average_cost_cents_after,
            "inventory_value_cents_after": self.inventory_value_cents_after,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MovementRecord":
        occurred_at = parse_iso_datetime(data.get("occurred_at"))
        if occurred_at is None:
            raise ValueError("movement record missing occurred_at")
        return cls(
            tenant_id=data["tenant_id"],
            sku=data["sku"],
            product_name=data.get("product_name") or "",
            type=data["type"],
            quantity=int(data["quantity"]),
            cost_per_unit_cents=int(data.get("cost_per_unit_cents") or 0),
            note=data.get("note") or "",
            reversal_reason=data.get("reversal_reason"),
            occurred_at=occurred_at,
            stock_on_hand_after=int(data["stock_on_hand_after"]),
            average_cost_cents_after=int(data["average_cost_cents_after"]),
            inventory_value_cents_after=int(data["inventory_value_cents_after"]),
        )
