# Overview: Service-layer operations for the reference catalog; encapsulates business logic and database work.

"""
Catalog Service

Reference products are administrator-owned catalog facts. Suppliers only
read them, either to browse the catalog or to prefill a new offer
("use as base"): the template carries name, unit, conversion factor and
the reference price, and leaves price and expiry to be reviewed for the
cycle.
"""
from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import ReferenceProduct
from ..validation import ConflictError, NotFoundError, enforce_rules_reference_product

# Ratio of each selling unit to the canonical unit (kg for mass, l for volume)
UNIT_CONVERSION_FACTORS = {
    "kg": 1.0,
    "g": 0.001,
    "ton": 1000.0,
    "l": 1.0,
    "ml": 0.001,
    "dozen": 0.5,
    "hundred": 4.0,
    "unit": 0.1,
}

REFERENCE_MUTABLE_FIELDS = {"name", "category", "unit", "reference_price_cents", "is_active"}


def default_conversion_factor(unit: str | None) -> float:
    """Conversion factor for a known unit; unknown units default to 1."""
    if not unit:
        return 1.0
    return UNIT_CONVERSION_FACTORS.get(unit.strip().lower(), 1.0)


def list_units() -> list[dict]:
    return [{"unit": unit, "conversion_factor": factor} for unit, factor in UNIT_CONVERSION_FACTORS.items()]


def require_reference_product(reference_product_id: int) -> ReferenceProduct:
    product = db.session.get(ReferenceProduct, reference_product_id)
    if product is None:
        raise NotFoundError(f"Reference product {reference_product_id} not found")
    return product


def get_reference_product(reference_product_id: int) -> dict:
    return require_reference_product(reference_product_id).to_dict()


def create_reference_product(*, patch: dict) -> dict:
    """
    Create a catalog entry from a validated patch dict.

    Raises:
        ValidationError: name/unit missing or invalid price
        ConflictError: same name and unit already in the catalog
    """
    enforce_rules_reference_product(patch)

    name = patch["name"].strip()
    unit = patch["unit"].strip().lower()

    existing = (
        db.session.query(ReferenceProduct)
        .filter(func.lower(ReferenceProduct.name) == name.lower(), ReferenceProduct.unit == unit)
        .first()
    )
    if existing:
        raise ConflictError(f"Reference product '{name}' ({unit}) already exists")

    product = ReferenceProduct(name=name, unit=unit, is_active=True)
    for k, v in patch.items():
        if k in REFERENCE_MUTABLE_FIELDS and k not in ("name", "unit"):
            setattr(product, k, v)

    db.session.add(product)
    db.session.commit()
    return product.to_dict()


def deactivate_reference_product(reference_product_id: int) -> dict:
    product = require_reference_product(reference_product_id)
    product.is_active = False
    db.session.commit()
    return product.to_dict()


def list_reference_products(
    *,
    search: str | None = None,
    category: str | None = None,
    include_inactive: bool = False,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Catalog listing with optional name search, category filter and pagination.

    Args:
        search: case-insensitive substring of the product name
        category: exact category; None or "all" means every category
        include_inactive: include deactivated entries
        page: Page number (1-indexed). If None, returns all items.
        per_page: Items per page (default 20, max 100)
    """
    base_query = db.session.query(ReferenceProduct)

    if not include_inactive:
        base_query = base_query.filter(ReferenceProduct.is_active.is_(True))
    if search and search.strip():
        base_query = base_query.filter(ReferenceProduct.name.ilike(f"%{search.strip()}%"))
    if category and category != "all":
        base_query = base_query.filter(ReferenceProduct.category == category)

    base_query = base_query.order_by(ReferenceProduct.name.asc(), ReferenceProduct.id.asc())

    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    per_page = min(per_page or 20, 100)
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def list_categories() -> list[str]:
    rows = (
        db.session.query(ReferenceProduct.category)
        .filter(ReferenceProduct.category.isnot(None), ReferenceProduct.is_active.is_(True))
        .distinct()
        .order_by(ReferenceProduct.category.asc())
        .all()
    )
    return [row.category for row in rows]


def offer_template(reference_product_id: int) -> dict:
    """
    Draft defaults for a new offer based on a catalog entry.

    Inactive entries cannot be used as a base.
    """
    ref = require_reference_product(reference_product_id)
    if not ref.is_active:
        raise NotFoundError(f"Reference product {reference_product_id} is not active")

    return {
        "reference_product_id": ref.id,
        "name": ref.name,
        "category": ref.category,
        "unit": ref.unit,
        "conversion_factor": default_conversion_factor(ref.unit),
        "price_cents": ref.reference_price_cents,
        "expiry_date": None,
        "status": "draft",
    }
