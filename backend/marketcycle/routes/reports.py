# Overview: Flask API routes for reports; parses input and returns JSON or CSV responses.

"""
Expired products report routes.

Query params (GET routes):
- period: current_cycle | last_n_cycles | custom | all (default current_cycle)
- months: int, used by last_n_cycles (default REPORT_DEFAULT_MONTHS)
- date_from / date_to: YYYY-MM-DD, used by custom
- cycle_type / product / action: exact match, "all" = no filter
"""

from flask import Blueprint, Response, request, jsonify, current_app

from ..extensions import db
from ..services import expired_report_service
from ..validation import ValidationError
from ..decorators import require_actor
from marketcycle.time_utils import today

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/expired-products")
def expired_products_route():
    try:
        filters = expired_report_service.parse_filters(request.args)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify(expired_report_service.expired_products_report(filters))


@reports_bp.get("/expired-products/export")
def export_expired_products_route():
    """Filtered report as CSV (same filters as the JSON route)."""
    try:
        filters = expired_report_service.parse_filters(request.args)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    report = expired_report_service.build_report(
        expired_report_service.load_entries(),
        filters,
        today=today(),
    )
    body = expired_report_service.export_csv(report["items"])
    filename = f"produtos-vencidos-{today().isoformat()}.csv"

    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@reports_bp.post("/expired-products")
@require_actor
def record_expired_product_route():
    payload = request.get_json(silent=True) or {}
    try:
        entry = expired_report_service.record_expired_entry(payload)
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record expired product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(entry), 201
