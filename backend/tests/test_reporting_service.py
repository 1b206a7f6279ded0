# Overview: Pytest coverage for dashboard and export reporting behavior.

from datetime import datetime

import pytest

from bizledger.errors import ForbiddenError
from bizledger.models import Invoice, InvoiceLine
from bizledger.services import inventory_service, invoice_service, reporting_service, tenant_service
from bizledger.services.document_store import get_document_store, invoice_key, write_json


CUSTOMER = {"name": "Meera Stores"}


def _store_invoice(tenant_id, number, issued_at, total=5000, profit=1000, outstanding=5000, name="Widget"):
    invoice = Invoice(
        tenant_id=tenant_id,
        invoice_number=number,
        customer_name="Backfilled",
        customer_tax_id=None,
        items=[InvoiceLine(
            sku="SKU1", name=name, quantity=2, selling_price_cents=2500, cost_price_cents=2000,
            tax_rate_bps=0, subtotal_cents=total, tax_cents=0, total_cents=total,
        )],
        subtotal_cents=total,
        total_tax_cents=0,
        total_amount_cents=total,
        gross_profit_cents=profit,
        outstanding_cents=outstanding,
        issued_at=issued_at,
    )
    write_json(get_document_store(), invoice_key(tenant_id, number), invoice.to_dict())
    return invoice


class TestDashboardSummary:

    def test_current_month_totals(self, tenant_a, stocked_widget, gadget):
        first = invoice_service.create_invoice(
            tenant_a.tenant_id, CUSTOMER,
            [{"sku": "SKU1", "quantity": 2}, {"sku": "SKU2", "quantity": 5}],
        )
        second = invoice_service.create_invoice(tenant_a.tenant_id, CUSTOMER, [{"sku": "SKU1", "quantity": 1}])
        invoice_service.record_payment(tenant_a.tenant_id, second.invoice_number, 500)

        summary = reporting_service.get_dashboard_summary(tenant_a.tenant_id)

        assert summary["monthly_sales_cents"] == first.total_amount_cents + second.total_amount_cents
        assert summary["monthly_profit_cents"] == first.gross_profit_cents + second.gross_profit_cents
        assert summary["total_outstanding_cents"] == first.total_amount_cents + second.total_amount_cents - 500
        assert summary["top_products"] == [
            {"name": "Gadget", "quantity": 5},
            {"name": "Widget", "quantity": 3},
        ]

    def test_cancelled_invoices_excluded(self, tenant_a, stocked_widget):
        invoice = invoice_service.create_invoice(tenant_a.tenant_id, CUSTOMER, [{"sku": "SKU1", "quantity": 2}])
        invoice_service.cancel_invoice(tenant_a.tenant_id, invoice.invoice_number)

        summary = reporting_service.get_dashboard_summary(tenant_a.tenant_id)

        assert summary["monthly_sales_cents"] == 0
        assert summary["monthly_profit_cents"] == 0
        assert summary["total_outstanding_cents"] == 0
        assert summary["top_products"] == []

    def test_outstanding_spans_all_months(self, tenant_a):
        _store_invoice(tenant_a.tenant_id, "INV-OLD", datetime(2025, 11, 3, 10, 0), outstanding=4000)
        _store_invoice(tenant_a.tenant_id, "INV-NEW", datetime(2026, 2, 3, 10, 0), outstanding=5000)

        summary = reporting_service.get_dashboard_summary(tenant_a.tenant_id, now=datetime(2026, 2, 20, 12, 0))

        assert summary["month"] == "2026-02"
        assert summary["monthly_sales_cents"] == 5000
        assert summary["monthly_profit_cents"] == 1000
        assert summary["total_outstanding_cents"] == 9000

    def test_month_boundary_uses_tenant_timezone(self, db_session):
        tenant_service.create_tenant("mumbai", "Mumbai Traders", timezone="Asia/Kolkata")
        tenant_service.create_tenant("london", "London Traders", timezone="UTC")
        # 2026-01-31 20:00 UTC is 2026-02-01 01:30 in India
        issued = datetime(2026, 1, 31, 20, 0)
        _store_invoice("mumbai", "INV-1", issued)
        _store_invoice("london", "INV-1", issued)
        now = datetime(2026, 2, 10, 12, 0)

        assert reporting_service.get_dashboard_summary("mumbai", now=now)["monthly_sales_cents"] == 5000
        assert reporting_service.get_dashboard_summary("london", now=now)["monthly_sales_cents"] == 0

    def test_unreadable_invoice_skipped(self, tenant_a, stocked_widget):
        invoice_service.create_invoice(tenant_a.tenant_id, CUSTOMER, [{"sku": "SKU1", "quantity": 1}])
        get_document_store().write(invoice_key(tenant_a.tenant_id, "INV-BROKEN"), b"not json")

        summary = reporting_service.get_dashboard_summary(tenant_a.tenant_id)

        assert summary["monthly_sales_cents"] == 1770

    def test_suspended_tenant(self, suspended_tenant):
        with pytest.raises(ForbiddenError):
            reporting_service.get_dashboard_summary(suspended_tenant.tenant_id)


class TestExportData:

    def test_sales_and_inventory_reports(self, tenant_a, stocked_widget, gadget):
        kept = invoice_service.create_invoice(
            tenant_a.tenant_id, {"name": "Ravi", "tax_id": "27AAPFU0939F1ZV"}, [{"sku": "SKU1", "quantity": 6}]
        )
        dropped = invoice_service.create_invoice(tenant_a.tenant_id, CUSTOMER, [{"sku": "SKU2", "quantity": 1}])
        invoice_service.cancel_invoice(tenant_a.tenant_id, dropped.invoice_number)

        data = reporting_service.get_export_data(tenant_a.tenant_id)

        [row] = data["sales_report"]
        assert row["invoice_number"] == kept.invoice_number
        assert row["customer_name"] == "Ravi"
        assert row["customer_tax_id"] == "27AAPFU0939F1ZV"
        assert row["total_amount_cents"] == kept.total_amount_cents
        assert row["outstanding_cents"] == kept.total_amount_cents
        assert row["status"] == "UNPAID"
        assert row["date"].endswith("Z")

        by_sku = {r["sku"]: r for r in data["inventory_report"]}
        assert by_sku["SKU1"]["stock_on_hand"] == 4
        assert by_sku["SKU1"]["status"] == "LOW STOCK"
        assert by_sku["SKU1"]["inventory_value_cents"] == 4000
        assert by_sku["SKU2"]["stock_on_hand"] == 20
        assert by_sku["SKU2"]["status"] == "OK"

    def test_reorder_level_is_inclusive(self, tenant_a, stocked_widget):
        inventory_service.stock_out(tenant_a.tenant_id, "SKU1", quantity=5)

        [row] = reporting_service.get_export_data(tenant_a.tenant_id)["inventory_report"]
        assert row["stock_on_hand"] == 5
        assert row["status"] == "LOW STOCK"
