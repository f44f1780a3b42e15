# Overview: Service-layer operations for markets; encapsulates business logic and database work.

"""
Market Service

Markets are administered centrally: each has a type, an administrator,
one or more delivery points and the reference products it offers.

FEE RULE: administrative_fee_bps is only meaningful for basket and lot
markets; direct_sale markets always store NULL, whatever the caller sends.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Market, MarketDeliveryPoint, ReferenceProduct
from ..validation import NotFoundError, ValidationError, enforce_rules_fee
from marketcycle.time_utils import utcnow

MARKET_TYPES = {"basket", "direct_sale", "lot"}
FEE_MARKET_TYPES = {"basket", "lot"}
MARKET_STATUSES = {"active", "inactive"}

MARKET_FIELDS = {
    "name",
    "market_type",
    "status",
    "administrator_id",
    "administrative_fee_bps",
    "delivery_points",
    "product_ids",
}


def _normalize_type(value) -> str:
    market_type = str(value or "").strip().lower().replace("-", "_").replace(" ", "_")
    if market_type not in MARKET_TYPES:
        raise ValidationError(f"market_type must be one of: {', '.join(sorted(MARKET_TYPES))}")
    return market_type


def _normalize_status(value) -> str:
    status = str(value or "").strip().lower()
    if status not in MARKET_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(sorted(MARKET_STATUSES))}")
    return status


def _normalize_administrator(value) -> int:
    if value is None or isinstance(value, bool):
        raise ValidationError("administrator_id is required")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("administrator_id must be an integer")


def _normalize_delivery_points(value) -> list[str]:
    if value is None:
        raise ValidationError("At least one delivery point is required")
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ValidationError("delivery_points must be a list of names")
    points = [str(p).strip() for p in value if p is not None and str(p).strip()]
    if not points:
        raise ValidationError("At least one delivery point is required")
    return points


def _load_products(product_ids) -> list[ReferenceProduct]:
    if product_ids is None:
        return []
    if not isinstance(product_ids, (list, tuple)):
        raise ValidationError("product_ids must be a list")

    products = []
    seen = set()
    for raw in product_ids:
        try:
            pid = int(raw)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid product id: {raw!r}")
        if pid in seen:
            continue
        seen.add(pid)
        product = db.session.get(ReferenceProduct, pid)
        if product is None:
            raise ValidationError(f"Reference product {pid} does not exist")
        products.append(product)
    return products


def _fee_for(market_type: str, fee) -> int | None:
    if market_type not in FEE_MARKET_TYPES:
        return None
    if isinstance(fee, str) and fee.strip():
        try:
            fee = int(fee.strip())
        except ValueError:
            raise ValidationError("administrative_fee_bps must be an integer")
    enforce_rules_fee(fee)
    return fee


def _check_fields(data: dict) -> None:
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    for key in data:
        if key not in MARKET_FIELDS:
            raise ValidationError(f"Field not allowed: {key}")


def _replace_delivery_points(market: Market, points: list[str]) -> None:
    market.delivery_points.clear()
    # Flush the removals so positions can be reused
    db.session.flush()
    for position, name in enumerate(points, start=1):
        market.delivery_points.append(MarketDeliveryPoint(name=name, position=position))


def require_market(market_id: int) -> Market:
    market = db.session.get(Market, market_id)
    if market is None:
        raise NotFoundError(f"Market {market_id} not found")
    return market


def get_market(market_id: int) -> dict:
    return require_market(market_id).to_dict()


def create_market(data: dict) -> dict:
    """
    Create a market.

    Required: name, market_type, administrator_id and at least one
    non-blank delivery point (blank entries are dropped).

    Raises:
        ValidationError: missing/invalid field or unknown product id
    """
    _check_fields(data)

    name = str(data.get("name") or "").strip()
    if not name:
        raise ValidationError("Market name is required")
    market_type = _normalize_type(data.get("market_type"))
    administrator_id = _normalize_administrator(data.get("administrator_id"))
    points = _normalize_delivery_points(data.get("delivery_points"))
    status = _normalize_status(data.get("status") or "active")
    fee = _fee_for(market_type, data.get("administrative_fee_bps"))
    products = _load_products(data.get("product_ids"))

    market = Market(
        name=name,
        market_type=market_type,
        status=status,
        administrator_id=administrator_id,
        administrative_fee_bps=fee,
    )
    for position, point in enumerate(points, start=1):
        market.delivery_points.append(MarketDeliveryPoint(name=point, position=position))
    market.products = products

    db.session.add(market)
    db.session.commit()
    return market.to_dict()


def update_market(market_id: int, patch: dict) -> dict:
    """
    Merge the provided fields into a market.

    Raises:
        NotFoundError: unknown market
        ValidationError: invalid field value
    """
    market = require_market(market_id)
    _check_fields(patch)

    # Validate everything before touching the row
    changes: dict = {}
    if "name" in patch:
        name = str(patch.get("name") or "").strip()
        if not name:
            raise ValidationError("Market name is required")
        changes["name"] = name
    if "market_type" in patch:
        changes["market_type"] = _normalize_type(patch["market_type"])
    if "status" in patch:
        changes["status"] = _normalize_status(patch["status"])
    if "administrator_id" in patch:
        changes["administrator_id"] = _normalize_administrator(patch["administrator_id"])

    market_type = changes.get("market_type", market.market_type)
    if "administrative_fee_bps" in patch:
        fee = _fee_for(market_type, patch["administrative_fee_bps"])
    else:
        fee = _fee_for(market_type, market.administrative_fee_bps)

    points = _normalize_delivery_points(patch["delivery_points"]) if "delivery_points" in patch else None
    products = _load_products(patch["product_ids"]) if "product_ids" in patch else None

    for key, value in changes.items():
        setattr(market, key, value)
    market.administrative_fee_bps = fee
    if points is not None:
        _replace_delivery_points(market, points)
    if products is not None:
        market.products = products
    market.updated_at = utcnow()

    db.session.commit()
    return market.to_dict()


def list_markets(status: str | None = None) -> list[dict]:
    q = db.session.query(Market)
    if status is not None and status != "all":
        q = q.filter(Market.status == _normalize_status(status))
    return [m.to_dict() for m in q.order_by(Market.id.asc()).all()]


def list_active_markets() -> list[dict]:
    return list_markets("active")


def search_markets(query: str | None) -> list[dict]:
    """
    Case-insensitive substring search over market names and delivery point
    names, in insertion order. An empty query returns every market.
    """
    markets = db.session.query(Market).order_by(Market.id.asc()).all()
    needle = (query or "").strip().casefold()
    if not needle:
        return [m.to_dict() for m in markets]

    return [
        m.to_dict()
        for m in markets
        if needle in m.name.casefold()
        or any(needle in dp.name.casefold() for dp in m.delivery_points)
    ]


def market_stats() -> dict:
    return {
        "total_markets": db.session.query(Market).count(),
        "active_markets": db.session.query(Market).filter(Market.status == "active").count(),
        "delivery_points": db.session.query(MarketDeliveryPoint).count(),
    }
