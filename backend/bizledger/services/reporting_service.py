# Overview: Service-layer operations for reporting; read-only dashboard and export summaries.

from __future__ import annotations

import io
from datetime import datetime

from flask import current_app

from bizledger.time_utils import to_local, to_utc_z, utcnow
from .invoice_service import scan_invoices
from .products_service import list_products
from .tenant_service import authorize

STOCK_STATUS_LOW = "LOW STOCK"
STOCK_STATUS_OK = "OK"


def _same_month(issued_at: datetime, now_local: datetime, tz_name: str) -> bool:
    local = to_local(issued_at, tz_name)
    return local.year == now_local.year and local.month == now_local.month


def get_dashboard_summary(tenant_id: str, now: datetime | None = None) -> dict:
    """
    Current-month sales and profit, top products, and total receivables.

    "Current month" is evaluated in the tenant's timezone. Cancelled
    invoices are excluded everywhere; outstanding spans all months.
    """
    tenant = authorize(tenant_id)
    now_local = to_local(now or utcnow(), tenant.timezone)

    monthly_sales = 0
    monthly_profit = 0
    total_outstanding = 0
    sold_by_product: dict[str, int] = {}

    for invoice in scan_invoices(tenant.tenant_id):
        if invoice.is_cancelled:
            continue
        total_outstanding += invoice.outstanding_cents

        if not _same_month(invoice.issued_at, now_local, tenant.timezone):
            continue
        monthly_sales += invoice.total_amount_cents
        monthly_profit += invoice.gross_profit_cents
        for line in invoice.items:
            sold_by_product[line.name] = sold_by_product.get(line.name, 0) + line.quantity

    top_products = [
        {"name": name, "quantity": quantity}
        for name, quantity in sorted(sold_by_product.items(), key=lambda kv: (-kv[1], kv[0]))
    ]

    current_app.logger.debug("Dashboard summary built for tenant %s", tenant.tenant_id)
    return {
        "month": now_local.strftime("%Y-%m"),
        "monthly_sales_cents": monthly_sales,
        "monthly_profit_cents": monthly_profit,
        "total_outstanding_cents": total_outstanding,
        "top_products": top_products,
    }


def get_export_data(tenant_id: str) -> dict:
    """Flat sales and inventory tables for spreadsheet export."""
    tenant = authorize(tenant_id)

    invoices = sorted(
        (inv for inv in scan_invoices(tenant.tenant_id) if not inv.is_cancelled),
        key=lambda inv: inv.issued_at,
        reverse=True,
    )
    sales_report = [
        {
            "date": to_utc_z(inv.issued_at),
            "invoice_number": inv.invoice_number,
            "customer_name": inv.customer_name,
            "customer_tax_id": inv.customer_tax_id or "",
            "total_amount_cents": inv.total_amount_cents,
            "status": inv.status,
            "outstanding_cents": inv.outstanding_cents,
        }
        for inv in invoices
    ]

    inventory_report = [
        {
            "sku": product.sku,
            "name": product.name,
            "stock_on_hand": product.stock_on_hand,
            "average_cost_cents": product.average_cost_cents,
            "inventory_value_cents": product.inventory_value_cents,
            "status": STOCK_STATUS_LOW if product.is_low_stock else STOCK_STATUS_OK,
        }
        for product in list_products(tenant.tenant_id)
    ]

    return {"sales_report": sales_report, "inventory_report": inventory_report}


SALES_COLUMNS = [
    ("date", "Date"),
    ("invoice_number", "Invoice #"),
    ("customer_name", "Customer"),
    ("customer_tax_id", "GSTIN"),
    ("total_amount_cents", "Total (cents)"),
    ("status", "Status"),
    ("outstanding_cents", "Outstanding (cents)"),
]

INVENTORY_COLUMNS = [
    ("sku", "SKU"),
    ("name", "Product"),
    ("stock_on_hand", "Stock"),
    ("average_cost_cents", "Avg Cost (cents)"),
    ("inventory_value_cents", "Value (cents)"),
    ("status", "Status"),
]


def build_export_workbook(data: dict) -> bytes:
    """Render export data as an .xlsx workbook with Sales and Inventory sheets."""
    from openpyxl import Workbook

    wb = Workbook()
    sales = wb.active
    sales.title = "Sales"
    inventory = wb.create_sheet("Inventory")

    for sheet, columns, rows in (
        (sales, SALES_COLUMNS, data["sales_report"]),
        (inventory, INVENTORY_COLUMNS, data["inventory_report"]),
    ):
        sheet.append([label for _, label in columns])
        for row in rows:
            sheet.append([row.get(field) for field, _ in columns])

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
