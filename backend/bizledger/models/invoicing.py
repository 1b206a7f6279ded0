from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from bizledger.time_utils import to_utc_z, parse_iso_datetime, utcnow


INVOICE_STATUS_UNPAID = "UNPAID"
INVOICE_STATUS_PAID = "PAID"
INVOICE_STATUS_CANCELLED = "CANCELLED"

VALID_INVOICE_STATUSES = [
    INVOICE_STATUS_UNPAID,
    INVOICE_STATUS_PAID,
    INVOICE_STATUS_CANCELLED,
]


@dataclass
class InvoiceLine:
    """
    One invoiced product line.

    Prices, cost and tax rate are frozen from the product at issue time;
    later catalog edits never change an issued invoice.
    """
    sku: str
    name: str
    quantity: int
    selling_price_cents: int
    cost_price_cents: int
    tax_rate_bps: int
    subtotal_cents: int
    tax_cents: int
    total_cents: int

    @property
    def cost_of_goods_cents(self) -> int:
        return self.quantity * self.cost_price_cents

    def to_dict(self) -> dict:
        return {
            "sku": self.sku,
            "name": self.name,
            "quantity": self.quantity,
            "selling_price_cents": self.selling_price_cents,
            "cost_price_cents": self.cost_price_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "InvoiceLine":
        return cls(
            sku=data["sku"],
            name=data.get("name") or "",
            quantity=int(data["quantity"]),
            selling_price_cents=int(data.get("selling_price_cents") or 0),
            cost_price_cents=int(data.get("cost_price_cents") or 0),
            tax_rate_bps=int(data.get("tax_rate_bps") or 0),
            subtotal_cents=int(data.get("subtotal_cents") or 0),
            tax_cents=int(data.get("tax_cents") or 0),
            total_cents=int(data.get("total_cents") or 0),
        )


@dataclass
class InvoicePayment:
    amount_cents: int
    received_at: datetime

    def to_dict(self) -> dict:
        return {
            "amount_cents": self.amount_cents,
            "received_at": to_utc_z(self.received_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "InvoicePayment":
        return cls(
            amount_cents=int(data["amount_cents"]),
            received_at=parse_iso_datetime(data.get("received_at")) or utcnow(),
        )


@dataclass
class Invoice:
    """
    Sales invoice document.

    BALANCE INVARIANTS:
    - 0 <= outstanding_cents <= total_amount_cents
    - outstanding_cents never increases while status != CANCELLED
    - CANCELLED is terminal and carries zeroed monetary fields
    """
    tenant_id: str
    invoice_number: str
    customer_name: str
    customer_tax_id: str | None
    items: list[InvoiceLine]
    subtotal_cents: int
    total_tax_cents: int
    total_amount_cents: int
    gross_profit_cents: int
    outstanding_cents: int
    status: str = INVOICE_STATUS_UNPAID
    issued_at: datetime = field(default_factory=utcnow)
    due_date: str | None = None
    paid_on: datetime | None = None
    cancelled_at: datetime | None = None
    payments: list[InvoicePayment] = field(default_factory=list)

    @property
    def is_cancelled(self) -> bool:
        return self.status == INVOICE_STATUS_CANCELLED

    def to_dict(self) -> dict:
        return {
            "tenant_id": self.tenant_id,
            "invoice_number": self.invoice_number,
            "customer_name": self.customer_name,
            "customer_tax_id": self.customer_tax_id,
            "issued_at": to_utc_z(self.issued_at),
            "due_date": self.due_date,
            "paid_on": to_utc_z(self.paid_on),
            "cancelled_at": to_utc_z(self.cancelled_at),
            "items": [line.to_dict() for line in self.items],
            "subtotal_cents": self.subtotal_cents,
            "total_tax_cents": self.total_tax_cents,
            "total_amount_cents": self.total_amount_cents,
            "gross_profit_cents": self.gross_profit_cents,
            "outstanding_cents": self.outstanding_cents,
            "status": self.status,
            "payments": [p.to_dict() for p in self.payments],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Invoice":
        return cls(
            tenant_id=data["tenant_id"],
            invoice_number=data["invoice_number"],
            customer_name=data.get("customer_name") or "",
            customer_tax_id=data.get("customer_tax_id"),
            items=[InvoiceLine.from_dict(i) for i in data.get("items") or []],
            subtotal_cents=int(data.get("subtotal_cents") or 0),
            total_tax_cents=int(data.get("total_tax_cents") or 0),
            total_amount_cents=int(data.get("total_amount_cents") or 0),
            gross_profit_cents=int(data.get("gross_profit_cents") or 0),
            outstanding_cents=int(data.get("outstanding_cents") or 0),
            status=data.get("status", INVOICE_STATUS_UNPAID),
            issued_at=parse_iso_datetime(data.get("issued_at")) or utcnow(),
            due_date=data.get("due_date"),
            paid_on=parse_iso_datetime(data.get("paid_on")),
            cancelled_at=parse_iso_datetime(data.get("cancelled_at")),
            payments=[InvoicePayment.from_dict(p) for p in data.get("payments") or []],
        )
