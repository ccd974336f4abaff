# Overview: Flask API routes for sales reports and the dashboard; read-only.

from flask import Blueprint, Response, request, jsonify, g, current_app

from ..decorators import require_auth, require_role, require_store_access
from ..errors import StorageError
from ..models.auth import MANAGER_ROLES
from ..repositories import get_repository
from ..services import reporting_service, store_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/stores")


@reports_bp.get("/<int:store_id>/reports/sales")
@require_auth
@require_store_access
@require_role(*MANAGER_ROLES)
def sales_report_route(store_id: int):
    """
    Sales summary for ?period=today|week|month, or an explicit ?start=&end=.
    Explicit dates win over the named period.
    """
    try:
        start, end = reporting_service.parse_range(
            period=request.args.get("period"),
            start=request.args.get("start"),
            end=request.args.get("end"),
            tz_name=store_service.store_timezone(g.store),
        )
        report = reporting_service.aggregate_sales(get_repository(), store_id, start, end)
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400


@reports_bp.get("/<int:store_id>/reports/dashboard")
@require_auth
@require_store_access
def dashboard_route(store_id: int):
    report = reporting_service.dashboard_summary(
        get_repository(),
        store_id,
        tz_name=store_service.store_timezone(g.store),
        low_stock_threshold=current_app.config.get("LOW_STOCK_THRESHOLD", 10),
    )
    return jsonify(report), 200


@reports_bp.get("/<int:store_id>/reports/sales.csv")
@require_auth
@require_store_access
@require_role(*MANAGER_ROLES)
def sales_csv_route(store_id: int):
    """Completed sales for the same period/start/end parameters, as a CSV download."""
    try:
        start, end = reporting_service.parse_range(
            period=request.args.get("period"),
            start=request.args.get("start"),
            end=request.args.get("end"),
            tz_name=store_service.store_timezone(g.store),
        )
        body = reporting_service.export_sales_csv(get_repository(), store_id, start, end)
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    except StorageError:
        current_app.logger.exception("Failed to export sales for store %s", store_id)
        return jsonify({"error": "Failed to load sales, retry"}), 503

    filename = f"sales_{start:%Y%m%d}_{end:%Y%m%d}.csv"
    return Response(
        "\ufeff" + body,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
