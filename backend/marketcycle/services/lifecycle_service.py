# Overview: Service-layer operations for offer lifecycle; encapsulates business logic and database work.

"""
Cycle Lifecycle Service

================================================================================
PURPOSE: Move offers through review and cycles through publication
================================================================================

OFFER STATES (see transitions.py):
    draft -> approved | rejected
    approved -> draft, rejected -> draft   (revision path, via save_draft)

CYCLE FLOW:
    1. Supplier fills the current cycle (drafts, possibly reused from the
       previous cycle)
    2. Offers are approved or rejected
    3. publish_cycle() freezes the cycle; only approved offers are published,
       the rest stays in history
    4. open_next_cycle() opens the following cycle, optionally seeded with
       drafts cloned from the published offers

RULES:
1. Every transition is checked by transitions.require_transition()
2. Published cycles are immutable
3. Validation happens before any mutation; a failed call changes nothing
================================================================================
"""

from __future__ import annotations

from ..extensions import db
from ..models import Cycle, ProductInCycle, new_product_id
from .cycle_service import (
    open_cycle,
    require_cycle,
    require_product,
    stage_upsert,
    require_actor,
)
from .transitions import InvalidStateError, require_cycle_open, require_transition
from ..validation import ValidationError
from marketcycle.time_utils import utcnow

# Fields copied from a previous offer into a reused draft
REUSED_FIELDS = (
    "reference_product_id",
    "name",
    "unit",
    "conversion_factor",
    "price_cents",
    "certified",
    "family_farming",
    "description",
    "image_url",
)


def _clone_as_draft(product: ProductInCycle) -> dict:
    draft = {field: getattr(product, field) for field in REUSED_FIELDS}
    draft.update({
        "id": new_product_id(),
        "cycle_id": None,
        "status": "draft",
        # Must be re-entered for the new cycle
        "expiry_date": None,
        "available_quantity": None,
    })
    return draft


def reuse_from_previous(previous_cycle_id: int, *, only_approved: bool = False) -> list[dict]:
    """
    Clone a previous cycle's offers as new drafts.

    Each draft gets a fresh id, status 'draft' and no expiry date; the price
    is kept as a reference default. Nothing is inserted: pass the result to
    merge_reused_drafts() to add the drafts to a cycle.

    Args:
        previous_cycle_id: cycle to copy from (published or not)
        only_approved: copy approved offers only

    Raises:
        NotFoundError: unknown cycle
    """
    cycle = require_cycle(previous_cycle_id)
    products = cycle.products
    if only_approved:
        products = [p for p in products if p.status == "approved"]
    return [_clone_as_draft(p) for p in products]


def merge_reused_drafts(cycle_id: int, drafts: list[dict], *, actor: str) -> list[dict]:
    """
    Insert reused drafts into a cycle, all or nothing.

    Raises whatever the first failing upsert raises; the session is rolled
    back so no draft is inserted in that case.
    """
    staged = []
    try:
        for draft in drafts:
            data = dict(draft)
            data["status"] = "draft"
            staged.append(stage_upsert(cycle_id, data, actor=actor))
    except Exception:
        db.session.rollback()
        raise

    db.session.commit()
    return [p.to_dict() for p in staged]


def approve_product(product_id: str, *, actor: str) -> dict:
    """
    Approve a draft offer (draft -> approved).

    Raises:
        NotFoundError: unknown product
        InvalidStateError: offer not in 'draft', or cycle published
    """
    actor = require_actor(actor)
    product = require_product(product_id)
    require_cycle_open(product.cycle)

    if product.status != "draft":
        raise InvalidStateError(
            f"Cannot approve product {product_id}: "
            f"current status is '{product.status}', must be 'draft'"
        )
    require_transition(product.status, "approved", product_id=product_id)

    product.status = "approved"
    product.rejection_reason = None
    product.updated_at = utcnow()
    product.updated_by = actor

    db.session.commit()
    return product.to_dict()


def reject_product(product_id: str, *, actor: str, reason: str | None = None) -> dict:
    """
    Reject a draft offer (draft -> rejected).

    Raises:
        NotFoundError: unknown product
        InvalidStateError: offer not in 'draft', or cycle published
    """
    actor = require_actor(actor)
    product = require_product(product_id)
    require_cycle_open(product.cycle)

    if product.status != "draft":
        raise InvalidStateError(
            f"Cannot reject product {product_id}: "
            f"current status is '{product.status}', must be 'draft'"
        )
    require_transition(product.status, "rejected", product_id=product_id)

    product.status = "rejected"
    product.rejection_reason = (reason or "").strip() or None
    product.updated_at = utcnow()
    product.updated_by = actor

    db.session.commit()
    return product.to_dict()


def save_draft(
    cycle_id: int,
    data: dict,
    *,
    actor: str,
    expected_version: int | None = None,
) -> dict:
    """
    Upsert an offer and leave it in 'draft', whatever its previous status.

    This is the explicit revision path: approved and rejected offers go back
    to draft. Calling it twice with the same data yields the same offer.
    """
    payload = dict(data or {})
    payload["status"] = "draft"
    product = stage_upsert(cycle_id, payload, actor=actor, expected_version=expected_version)
    db.session.commit()
    return product.to_dict()


def revert_to_draft(product_id: str, *, actor: str) -> dict:
    product = require_product(product_id)
    return save_draft(product.cycle_id, {"id": product.id}, actor=actor)


def set_status(product_id: str, status: str, *, actor: str, reason: str | None = None) -> dict:
    """Dispatch a requested status to the matching transition."""
    if status == "approved":
        return approve_product(product_id, actor=actor)
    if status == "rejected":
        return reject_product(product_id, actor=actor, reason=reason)
    if status == "draft":
        return revert_to_draft(product_id, actor=actor)
    raise ValidationError(f"Invalid status '{status}'. Must be one of: approved, draft, rejected")


def publish_cycle(cycle_id: int, *, actor: str) -> int:
    """
    Publish a cycle and return the number of approved offers published.

    Non-approved offers are not part of the published set but stay attached
    to the cycle as history.

    Raises:
        NotFoundError: unknown cycle
        InvalidStateError: already published, or no approved offers
    """
    actor = require_actor(actor)
    cycle = require_cycle(cycle_id)
    require_cycle_open(cycle)

    approved_count = (
        db.session.query(ProductInCycle)
        .filter(ProductInCycle.cycle_id == cycle.id, ProductInCycle.status == "approved")
        .count()
    )
    if approved_count == 0:
        raise InvalidStateError(f"Cannot publish cycle {cycle_id}: no approved products")

    cycle.is_published = True
    cycle.published_at = utcnow()
    cycle.published_by = actor

    db.session.commit()
    return approved_count


def list_published_products(cycle_id: int) -> list[dict]:
    cycle = require_cycle(cycle_id)
    if not cycle.is_published:
        raise InvalidStateError(f"Cycle {cycle_id} is not published")
    return [p.to_dict() for p in cycle.products if p.status == "approved"]


def open_next_cycle(
    published_cycle_id: int,
    *,
    actor: str,
    seed: bool = True,
    label: str | None = None,
) -> dict:
    """
    Open the supplier's next cycle after a publication.

    With seed=True the new cycle starts with drafts cloned from the
    published cycle's approved offers.

    Raises:
        NotFoundError: unknown cycle
        InvalidStateError: source cycle not published, or supplier already
            has an open cycle
    """
    actor = require_actor(actor)
    previous: Cycle = require_cycle(published_cycle_id)
    if not previous.is_published:
        raise InvalidStateError(f"Cycle {published_cycle_id} must be published before opening the next one")

    try:
        cycle = open_cycle(
            previous.supplier_id,
            label=label,
            seeded_from_cycle_id=previous.id if seed else None,
        )
        staged = []
        if seed:
            for draft in reuse_from_previous(previous.id, only_approved=True):
                staged.append(stage_upsert(cycle.id, draft, actor=actor))
    except Exception:
        db.session.rollback()
        raise

    db.session.commit()
    return {
        "cycle": cycle.to_dict(),
        "products": [p.to_dict() for p in staged],
    }
