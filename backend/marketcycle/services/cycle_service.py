# Overview: Service-layer operations for cycles and their offers; encapsulates business logic and database work.

"""
Cycle Store

Owns suppliers' cycles and the offers (ProductInCycle) inside them.

DESIGN:
- Callers only ever receive dicts (to_dict()), never live ORM rows, so no
  caller can mutate an offer without going through this module or the
  lifecycle service.
- Offer ids are client-visible uuid hex strings: upsert inserts when the id
  is unknown and replaces the provided fields when it is known.
- Status changes on replace go through transitions.require_transition().
- Optimistic concurrency: ProductInCycle.version_id is bumped by SQLAlchemy
  on every update; callers may pass expected_version to refuse writing over
  an edit they have not seen.
"""
from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Cycle, ProductInCycle, Supplier
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    enforce_rules_cycle_product,
)
from .catalog_service import default_conversion_factor, require_reference_product
from .transitions import (
    InvalidStateError,
    VALID_STATUSES,
    can_remove,
    require_cycle_open,
    require_transition,
    validate_status,
)
from marketcycle.time_utils import parse_iso_date, utcnow

CYCLE_PRODUCT_FIELDS = {
    "reference_product_id",
    "name",
    "unit",
    "conversion_factor",
    "price_cents",
    "expiry_date",
    "available_quantity",
    "certified",
    "family_farming",
    "description",
    "image_url",
}

# Present in to_dict() output; accepted on input and ignored
READ_ONLY_FIELDS = {
    "cycle_id",
    "position",
    "created_at",
    "updated_at",
    "updated_by",
    "version_id",
    "rejection_reason",
    "category",
}


def require_actor(actor: str | None) -> str:
    if actor is None or not str(actor).strip():
        raise ValidationError("actor is required")
    return str(actor).strip()


# =============================================================================
# Suppliers and cycles
# =============================================================================

def create_supplier(name: str) -> dict:
    if not name or not name.strip():
        raise ValidationError("Supplier name is required")
    name = name.strip()

    if db.session.query(Supplier).filter(func.lower(Supplier.name) == name.lower()).first():
        raise ConflictError(f"Supplier '{name}' already exists")

    supplier = Supplier(name=name, is_active=True)
    db.session.add(supplier)
    db.session.commit()
    return supplier.to_dict()


def require_supplier(supplier_id: int) -> Supplier:
    supplier = db.session.get(Supplier, supplier_id)
    if supplier is None:
        raise NotFoundError(f"Supplier {supplier_id} not found")
    return supplier


def require_cycle(cycle_id: int) -> Cycle:
    cycle = db.session.get(Cycle, cycle_id)
    if cycle is None:
        raise NotFoundError(f"Cycle {cycle_id} not found")
    return cycle


def get_cycle(cycle_id: int) -> dict:
    cycle = require_cycle(cycle_id)
    data = cycle.to_dict()
    data["product_count"] = len(cycle.products)
    return data


def list_cycles(supplier_id: int) -> list[dict]:
    require_supplier(supplier_id)
    cycles = (
        db.session.query(Cycle)
        .filter(Cycle.supplier_id == supplier_id)
        .order_by(Cycle.id.asc())
        .all()
    )
    return [c.to_dict() for c in cycles]


def find_current_cycle(supplier_id: int) -> Cycle | None:
    return (
        db.session.query(Cycle)
        .filter(Cycle.supplier_id == supplier_id, Cycle.is_published.is_(False))
        .order_by(Cycle.id.desc())
        .first()
    )


def open_cycle(
    supplier_id: int,
    *,
    label: str | None = None,
    seeded_from_cycle_id: int | None = None,
) -> Cycle:
    """
    Add a new current cycle to the session (no commit).

    Raises:
        NotFoundError: unknown supplier
        InvalidStateError: the supplier still has an unpublished cycle
    """
    require_supplier(supplier_id)
    current = find_current_cycle(supplier_id)
    if current is not None:
        raise InvalidStateError(
            f"Supplier {supplier_id} already has an open cycle ({current.id})"
        )

    cycle = Cycle(
        supplier_id=supplier_id,
        label=label,
        is_published=False,
        seeded_from_cycle_id=seeded_from_cycle_id,
    )
    db.session.add(cycle)
    db.session.flush()
    return cycle


def get_or_create_current_cycle(supplier_id: int, *, label: str | None = None) -> dict:
    require_supplier(supplier_id)
    cycle = find_current_cycle(supplier_id)
    if cycle is None:
        cycle = open_cycle(supplier_id, label=label)
        db.session.commit()
    return cycle.to_dict()


# =============================================================================
# Offers
# =============================================================================

def require_product(product_id: str) -> ProductInCycle:
    product = db.session.get(ProductInCycle, product_id) if product_id else None
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def get_product(product_id: str) -> dict:
    return require_product(product_id).to_dict()


def list_products(cycle_id: int, status: str | None = None) -> list[dict]:
    """
    Offers of a cycle in insertion order, optionally filtered by status.

    status=None or "all" returns every offer.
    """
    require_cycle(cycle_id)

    q = db.session.query(ProductInCycle).filter(ProductInCycle.cycle_id == cycle_id)
    if status is not None and status != "all":
        if status not in VALID_STATUSES:
            raise ValidationError(
                f"Unknown status filter '{status}'. Use one of: all, {', '.join(sorted(VALID_STATUSES))}"
            )
        q = q.filter(ProductInCycle.status == status)

    q = q.order_by(ProductInCycle.position.asc(), ProductInCycle.id.asc())
    return [p.to_dict() for p in q.all()]


def _normalize_offer_fields(data: dict) -> dict:
    """Keep known fields, reject unknown ones, coerce dates."""
    fields: dict = {}
    for key, value in data.items():
        if key in ("id", "status") or key in READ_ONLY_FIELDS:
            continue
        if key not in CYCLE_PRODUCT_FIELDS:
            raise ValidationError(f"Field not allowed: {key}")
        fields[key] = value

    if "expiry_date" in fields:
        try:
            fields["expiry_date"] = parse_iso_date(fields["expiry_date"])
        except ValueError:
            raise ValidationError("expiry_date must be an ISO-8601 date (YYYY-MM-DD)")

    if isinstance(fields.get("conversion_factor"), int) and not isinstance(fields["conversion_factor"], bool):
        fields["conversion_factor"] = float(fields["conversion_factor"])

    for key in ("name", "unit"):
        if isinstance(fields.get(key), str):
            fields[key] = fields[key].strip()

    return fields


def _next_position(cycle_id: int) -> int:
    current = (
        db.session.query(func.max(ProductInCycle.position))
        .filter(ProductInCycle.cycle_id == cycle_id)
        .scalar()
    )
    return (current or 0) + 1


def _build_new_offer(cycle: Cycle, product_id: str | None, fields: dict, status: str) -> ProductInCycle:
    if status != "draft":
        raise InvalidStateError("New offers always start as 'draft'")

    ref_id = fields.get("reference_product_id")
    if ref_id is not None:
        ref = require_reference_product(ref_id)
        fields.setdefault("name", ref.name)
        fields.setdefault("unit", ref.unit)
        fields.setdefault("price_cents", ref.reference_price_cents)

    if not fields.get("name"):
        raise ValidationError("name is required")
    if not fields.get("unit"):
        raise ValidationError("unit is required")
    if fields.get("conversion_factor") is None:
        fields["conversion_factor"] = default_conversion_factor(fields["unit"])

    enforce_rules_cycle_product(fields)

    product = ProductInCycle(
        cycle_id=cycle.id,
        position=_next_position(cycle.id),
        status="draft",
    )
    if product_id:
        product.id = product_id
    for key, value in fields.items():
        setattr(product, key, value)
    return product


def stage_upsert(
    cycle_id: int,
    data: dict,
    *,
    actor: str,
    expected_version: int | None = None,
) -> ProductInCycle:
    """
    Validate and apply an upsert to the session without committing.

    Raises before touching any row, so a failure leaves nothing half-applied.
    """
    actor = require_actor(actor)
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    cycle = require_cycle(cycle_id)
    require_cycle_open(cycle)

    product_id = data.get("id")
    if product_id is not None:
        product_id = str(product_id).strip() or None
    fields = _normalize_offer_fields(data)

    existing = db.session.get(ProductInCycle, product_id) if product_id else None

    if existing is None:
        status = data.get("status") or "draft"
        validate_status(status)
        product = _build_new_offer(cycle, product_id, fields, status)
        db.session.add(product)
    else:
        if existing.cycle_id != cycle.id:
            raise ConflictError(f"Product {product_id} belongs to cycle {existing.cycle_id}")
        if expected_version is not None and existing.version_id != expected_version:
            raise ConflictError(
                f"Product {product_id} was modified (version {existing.version_id}, expected {expected_version})"
            )

        new_status = data.get("status") or existing.status
        validate_status(new_status)
        require_transition(existing.status, new_status, product_id=existing.id)

        if fields.get("reference_product_id") is not None:
            require_reference_product(fields["reference_product_id"])
        if "name" in fields and not fields["name"]:
            raise ValidationError("name is required")
        if "unit" in fields and not fields["unit"]:
            raise ValidationError("unit is required")
        if "unit" in fields and fields.get("conversion_factor") is None:
            fields["conversion_factor"] = default_conversion_factor(fields["unit"])
        enforce_rules_cycle_product(fields)

        product = existing
        for key, value in fields.items():
            setattr(product, key, value)
        if new_status != product.status:
            product.status = new_status
            if new_status == "draft":
                product.rejection_reason = None

    product.updated_at = utcnow()
    product.updated_by = actor
    return product


def upsert_product(
    cycle_id: int,
    data: dict,
    *,
    actor: str,
    expected_version: int | None = None,
) -> dict:
    """
    Insert the offer if its id is unknown, otherwise replace the given fields.

    Args:
        cycle_id: current (unpublished) cycle
        data: offer fields; "id" selects the offer to replace
        actor: identity stamped in updated_by
        expected_version: optional version_id the caller last saw

    Raises:
        NotFoundError: unknown cycle or reference product
        ValidationError: invalid fields (e.g., conversion_factor <= 0)
        InvalidStateError: published cycle, non-draft insert, illegal status change
        ConflictError: stale expected_version, or id owned by another cycle
    """
    product = stage_upsert(cycle_id, data, actor=actor, expected_version=expected_version)
    db.session.commit()
    return product.to_dict()


def remove_product(product_id: str) -> None:
    """
    Remove an offer.

    Raises:
        NotFoundError: unknown id
        InvalidStateError: offer is approved, or its cycle is published
    """
    product = require_product(product_id)
    require_cycle_open(product.cycle)
    if not can_remove(product.status):
        raise InvalidStateError(
            f"Cannot remove product {product_id}: status is '{product.status}', revert it to 'draft' first"
        )

    db.session.delete(product)
    db.session.commit()


def supplier_storefront(supplier_id: int, status: str | None = None) -> dict:
    """
    The supplier's current offers with per-status counts (store tabs).

    Suppliers without an open cycle get an empty storefront.
    """
    supplier = require_supplier(supplier_id)
    cycle = find_current_cycle(supplier_id)

    counts = {"all": 0, **{s: 0 for s in sorted(VALID_STATUSES)}}
    if cycle is None:
        return {"supplier": supplier.to_dict(), "cycle": None, "items": [], "counts": counts}

    all_items = list_products(cycle.id)
    for item in all_items:
        counts["all"] += 1
        counts[item["status"]] += 1

    items = all_items if status in (None, "all") else list_products(cycle.id, status)
    return {
        "supplier": supplier.to_dict(),
        "cycle": cycle.to_dict(),
        "items": items,
        "counts": counts,
    }
