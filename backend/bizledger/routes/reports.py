# Overview: Flask API routes for reports operations; parses input and returns JSON responses.

# backend/bizledger/routes/reports.py
from flask import Blueprint, Response, g, request

from ..decorators import require_tenant
from ..errors import ValidationError
from ..services import reporting_service
from bizledger.time_utils import utcnow

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@reports_bp.get("/dashboard")
@require_tenant
def dashboard():
    """Current-month sales/profit, top products and total receivables."""
    return reporting_service.get_dashboard_summary(g.tenant_id)


@reports_bp.get("/export")
@require_tenant
def export():
    """
    Sales and inventory tables.

    Query params:
    - format: "json" (default) or "xlsx"
    """
    data = reporting_service.get_export_data(g.tenant_id)
    fmt = (request.args.get("format") or "json").lower()

    if fmt == "json":
        return data
    if fmt == "xlsx":
        filename = f"bizledger-{g.tenant_id}-{utcnow():%Y%m%d}.xlsx"
        return Response(
            reporting_service.build_export_workbook(data),
            mimetype=XLSX_MIMETYPE,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    raise ValidationError("format must be json or xlsx")
