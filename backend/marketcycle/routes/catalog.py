# Overview: Flask API routes for the reference catalog; parses input and returns JSON responses.

"""
Reference catalog routes.

Read routes are open to every client (suppliers browse the catalog and use
entries as templates). Write routes require an X-Actor identity.
"""
from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..models import ReferenceProduct
from ..services import catalog_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import require_actor

REFERENCE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "category", "unit", "reference_price_cents"},
    required_on_create={"name", "unit"},
)

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/catalog")


@catalog_bp.get("/products")
def list_reference_products_route():
    """
    List catalog entries.

    Query params:
    - search: str (optional) - substring of the name, case-insensitive
    - category: str (optional) - exact category ("all" = no filter)
    - include_inactive: bool (optional, default false)
    - page / per_page: int (optional) - pagination; omitted returns all items
    """
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"

    result = catalog_service.list_reference_products(
        search=request.args.get("search"),
        category=request.args.get("category"),
        include_inactive=include_inactive,
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )
    return jsonify(result)


@catalog_bp.post("/products")
@require_actor
def create_reference_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=ReferenceProduct, payload=payload, policy=REFERENCE_POLICY, partial=False)
        created = catalog_service.create_reference_product(patch=patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify(created), 201


@catalog_bp.get("/products/<int:reference_product_id>")
def get_reference_product_route(reference_product_id: int):
    try:
        return jsonify(catalog_service.get_reference_product(reference_product_id))
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@catalog_bp.post("/products/<int:reference_product_id>/deactivate")
@require_actor
def deactivate_reference_product_route(reference_product_id: int):
    try:
        return jsonify(catalog_service.deactivate_reference_product(reference_product_id))
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to deactivate reference product")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/products/<int:reference_product_id>/template")
def offer_template_route(reference_product_id: int):
    """
    Draft defaults for a new offer ("use as base").

    Price and expiry must still be reviewed for the cycle.
    """
    try:
        return jsonify(catalog_service.offer_template(reference_product_id))
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@catalog_bp.get("/categories")
def list_categories_route():
    return jsonify({"items": catalog_service.list_categories()})


@catalog_bp.get("/units")
def list_units_route():
    return jsonify({"items": catalog_service.list_units()})
