# backend/marketcycle/routes/cycles.py
"""
Cycle and offer routes.

- POST   /api/suppliers                          - Register a supplier
- GET    /api/suppliers/:id/cycles               - Cycle history
- POST   /api/suppliers/:id/cycles               - Open (or return) the current cycle
- GET    /api/suppliers/:id/cycles/current       - Current cycle
- GET    /api/suppliers/:id/storefront           - Current offers with status counts
- GET    /api/cycles/:id/products                - Offers of a cycle (?status=)
- POST   /api/cycles/:id/products                - Upsert an offer
- POST   /api/cycles/:id/drafts                  - Save an offer as draft (revision path)
- POST   /api/cycles/:id/reuse                   - Clone a previous cycle's offers as drafts
- POST   /api/cycles/:id/publish                 - Publish the cycle
- POST   /api/cycles/:id/next                    - Open the next cycle after publication
- GET    /api/products/:id                       - One offer
- DELETE /api/products/:id                       - Remove an offer (draft/rejected only)
- PATCH  /api/products/:id/status                - approve / reject / revert to draft

Error mapping:
    400 ValidationError, 404 NotFoundError,
    409 InvalidStateError (illegal transition) or ConflictError (stale version)

SECURITY: write routes require X-Actor; the identity stamped into
updated_by/published_by comes from the header, never from the body.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models import ProductInCycle
from ..services import cycle_service, lifecycle_service
from ..services.cycle_service import CYCLE_PRODUCT_FIELDS, READ_ONLY_FIELDS
from ..services.transitions import InvalidStateError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import require_actor

OFFER_POLICY = ModelValidationPolicy(
    writable_fields=CYCLE_PRODUCT_FIELDS | {"status"},
    extra_fields={"id", "expected_version"} | READ_ONLY_FIELDS,
)

cycles_bp = Blueprint("cycles", __name__, url_prefix="/api")


def _error_response(e: Exception):
    db.session.rollback()
    if isinstance(e, ValidationError):
        return jsonify({"error": str(e)}), 400
    if isinstance(e, NotFoundError):
        return jsonify({"error": str(e)}), 404
    if isinstance(e, (InvalidStateError, ConflictError)):
        return jsonify({"error": str(e)}), 409
    raise e


def _parse_offer(payload: dict) -> tuple[dict, int | None]:
    patch = validate_payload(model=ProductInCycle, payload=payload, policy=OFFER_POLICY, partial=True)
    # Serialized offers (reuse previews, GET results) may be posted back as-is
    for key in READ_ONLY_FIELDS:
        patch.pop(key, None)
    expected_version = patch.pop("expected_version", None)
    if expected_version is not None:
        try:
            expected_version = int(expected_version)
        except (TypeError, ValueError):
            raise ValidationError("expected_version must be an integer")
    return patch, expected_version


# =============================================================================
# Suppliers
# =============================================================================

@cycles_bp.post("/suppliers")
@require_actor
def create_supplier_route():
    data = request.get_json(silent=True) or {}
    try:
        supplier = cycle_service.create_supplier(data.get("name") or "")
    except (ValidationError, ConflictError) as e:
        return _error_response(e)
    return jsonify(supplier), 201


@cycles_bp.get("/suppliers/<int:supplier_id>/cycles")
def list_cycles_route(supplier_id: int):
    try:
        cycles = cycle_service.list_cycles(supplier_id)
    except NotFoundError as e:
        return _error_response(e)
    return jsonify({"items": cycles, "count": len(cycles)})


@cycles_bp.post("/suppliers/<int:supplier_id>/cycles")
@require_actor
def open_current_cycle_route(supplier_id: int):
    data = request.get_json(silent=True) or {}
    try:
        cycle = cycle_service.get_or_create_current_cycle(supplier_id, label=data.get("label"))
    except NotFoundError as e:
        return _error_response(e)
    return jsonify(cycle), 200


@cycles_bp.get("/suppliers/<int:supplier_id>/cycles/current")
def current_cycle_route(supplier_id: int):
    try:
        cycle_service.require_supplier(supplier_id)
    except NotFoundError as e:
        return _error_response(e)

    cycle = cycle_service.find_current_cycle(supplier_id)
    if cycle is None:
        return jsonify({"error": f"Supplier {supplier_id} has no open cycle"}), 404
    return jsonify(cycle_service.get_cycle(cycle.id))


@cycles_bp.get("/suppliers/<int:supplier_id>/storefront")
def storefront_route(supplier_id: int):
    """
    Query params:
    - status: all | draft | approved | rejected (default all)
    """
    try:
        return jsonify(cycle_service.supplier_storefront(supplier_id, request.args.get("status")))
    except (NotFoundError, ValidationError) as e:
        return _error_response(e)


# =============================================================================
# Cycle offers
# =============================================================================

@cycles_bp.get("/cycles/<int:cycle_id>")
def get_cycle_route(cycle_id: int):
    try:
        return jsonify(cycle_service.get_cycle(cycle_id))
    except NotFoundError as e:
        return _error_response(e)


@cycles_bp.get("/cycles/<int:cycle_id>/products")
def list_cycle_products_route(cycle_id: int):
    try:
        items = cycle_service.list_products(cycle_id, request.args.get("status"))
    except (NotFoundError, ValidationError) as e:
        return _error_response(e)
    return jsonify({"items": items, "count": len(items)})


@cycles_bp.post("/cycles/<int:cycle_id>/products")
@require_actor
def upsert_cycle_product_route(cycle_id: int):
    """
    Insert an offer (unknown or missing id) or replace the given fields.

    Request body: offer fields, optional "id" and "expected_version".
    Response: 201 with the offer when inserted, 200 when replaced.
    """
    payload = request.get_json(silent=True) or {}
    try:
        patch, expected_version = _parse_offer(payload)
        product_id = patch.get("id")
        existed = bool(product_id) and db.session.get(ProductInCycle, str(product_id)) is not None
        product = cycle_service.upsert_product(
            cycle_id,
            patch,
            actor=g.actor,
            expected_version=expected_version,
        )
    except (ValidationError, NotFoundError, InvalidStateError, ConflictError) as e:
        return _error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to upsert cycle product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(product), 200 if existed else 201


@cycles_bp.post("/cycles/<int:cycle_id>/drafts")
@require_actor
def save_draft_route(cycle_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch, expected_version = _parse_offer(payload)
        patch.pop("status", None)
        product = lifecycle_service.save_draft(
            cycle_id,
            patch,
            actor=g.actor,
            expected_version=expected_version,
        )
    except (ValidationError, NotFoundError, InvalidStateError, ConflictError) as e:
        return _error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to save draft")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(product), 200


@cycles_bp.post("/cycles/<int:cycle_id>/reuse")
@require_actor
def reuse_previous_cycle_route(cycle_id: int):
    """
    Clone a previous cycle's offers as drafts.

    Request body:
        {
            "previous_cycle_id": 3,     // required
            "only_approved": false,     // optional
            "merge": false              // insert the drafts into this cycle
        }

    Without merge the drafts are only returned, so the client can review
    them before inserting.
    """
    data = request.get_json(silent=True) or {}
    previous_cycle_id = data.get("previous_cycle_id")
    if not isinstance(previous_cycle_id, int) or isinstance(previous_cycle_id, bool):
        return jsonify({"error": "previous_cycle_id is required"}), 400

    try:
        cycle_service.require_cycle(cycle_id)
        drafts = lifecycle_service.reuse_from_previous(
            previous_cycle_id,
            only_approved=bool(data.get("only_approved", False)),
        )
        if data.get("merge"):
            drafts = lifecycle_service.merge_reused_drafts(cycle_id, drafts, actor=g.actor)
            current_app.logger.info(
                "Merged %d reused drafts from cycle %s into cycle %s (by %s)",
                len(drafts), previous_cycle_id, cycle_id, g.actor,
            )
    except (ValidationError, NotFoundError, InvalidStateError, ConflictError) as e:
        return _error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to reuse previous cycle")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"items": drafts, "count": len(drafts), "merged": bool(data.get("merge"))}), 200


@cycles_bp.post("/cycles/<int:cycle_id>/publish")
@require_actor
def publish_cycle_route(cycle_id: int):
    try:
        published_count = lifecycle_service.publish_cycle(cycle_id, actor=g.actor)
    except (ValidationError, NotFoundError, InvalidStateError) as e:
        return _error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to publish cycle")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("Cycle %s published with %d products by %s", cycle_id, published_count, g.actor)
    return jsonify({
        "cycle": cycle_service.get_cycle(cycle_id),
        "published_count": published_count,
        "products": lifecycle_service.list_published_products(cycle_id),
    }), 200


@cycles_bp.post("/cycles/<int:cycle_id>/next")
@require_actor
def open_next_cycle_route(cycle_id: int):
    """
    Request body:
        {"seed": true, "label": "Semana 4"}   // both optional
    """
    data = request.get_json(silent=True) or {}
    try:
        result = lifecycle_service.open_next_cycle(
            cycle_id,
            actor=g.actor,
            seed=bool(data.get("seed", True)),
            label=data.get("label"),
        )
    except (ValidationError, NotFoundError, InvalidStateError, ConflictError) as e:
        return _error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to open next cycle")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(result), 201


# =============================================================================
# Single offers
# =============================================================================

@cycles_bp.get("/products/<product_id>")
def get_cycle_product_route(product_id: str):
    try:
        return jsonify(cycle_service.get_product(product_id))
    except NotFoundError as e:
        return _error_response(e)


@cycles_bp.delete("/products/<product_id>")
@require_actor
def remove_cycle_product_route(product_id: str):
    try:
        cycle_service.remove_product(product_id)
    except (NotFoundError, InvalidStateError) as e:
        return _error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to remove product %s", product_id)
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("Product %s removed by %s", product_id, g.actor)
    return jsonify({"ok": True}), 200


@cycles_bp.patch("/products/<product_id>/status")
@require_actor
def set_product_status_route(product_id: str):
    """
    Request body:
        {"status": "approved" | "rejected" | "draft", "reason": "..."}

    Error responses:
        400: status missing
        404: product not found
        409: transition not allowed (e.g., rejected -> approved)
    """
    data = request.get_json(silent=True) or {}
    status = data.get("status")
    if not status:
        return jsonify({"error": "status is required"}), 400

    try:
        product = lifecycle_service.set_status(
            product_id,
            status,
            actor=g.actor,
            reason=data.get("reason"),
        )
    except (ValidationError, NotFoundError, InvalidStateError, ConflictError) as e:
        return _error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to change product status")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(product), 200
