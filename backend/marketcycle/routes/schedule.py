# Overview: Flask API routes for harvest plans and the monthly calendar.

from flask import Blueprint, request, jsonify

from ..extensions import db
from ..services import schedule_service
from ..validation import ValidationError, NotFoundError
from ..decorators import require_actor

schedule_bp = Blueprint("schedule", __name__, url_prefix="/api/suppliers")


@schedule_bp.get("/<int:supplier_id>/harvest-plans")
def list_plans_route(supplier_id: int):
    try:
        plans = schedule_service.list_plans(supplier_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"items": plans, "count": len(plans)})


@schedule_bp.post("/<int:supplier_id>/harvest-plans")
@require_actor
def create_plan_route(supplier_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        plan = schedule_service.create_plan(supplier_id, payload)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    return jsonify(plan), 201


@schedule_bp.get("/<int:supplier_id>/harvest-calendar")
def harvest_calendar_route(supplier_id: int):
    try:
        return jsonify({"months": schedule_service.monthly_calendar(supplier_id)})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
