# Overview: Flask API routes for markets; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..services import market_service
from ..validation import ValidationError, NotFoundError
from ..decorators import require_actor

markets_bp = Blueprint("markets", __name__, url_prefix="/api/markets")


@markets_bp.get("")
def list_markets_route():
    """
    Query params:
    - query: str (optional) - matches market or delivery point names
    - status: active | inactive | all (optional)
    """
    query = request.args.get("query")
    status = request.args.get("status")

    try:
        if query:
            markets = market_service.search_markets(query)
            if status and status != "all":
                markets = [m for m in markets if m["status"] == status]
        else:
            markets = market_service.list_markets(status)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"items": markets, "count": len(markets)})


@markets_bp.get("/stats")
def market_stats_route():
    return jsonify(market_service.market_stats())


@markets_bp.post("")
@require_actor
def create_market_route():
    payload = request.get_json(silent=True) or {}
    try:
        market = market_service.create_market(payload)
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create market")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("Market %s created (%s)", market["id"], market["market_type"])
    return jsonify(market), 201


@markets_bp.get("/<int:market_id>")
def get_market_route(market_id: int):
    try:
        return jsonify(market_service.get_market(market_id))
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@markets_bp.patch("/<int:market_id>")
@require_actor
def update_market_route(market_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        market = market_service.update_market(market_id, payload)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update market")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(market), 200
