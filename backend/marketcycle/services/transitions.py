# Overview: Single source of truth for offer status transitions.

"""
Offer Lifecycle Rules

STATE MACHINE:
    draft -> approved
    draft -> rejected
    approved -> draft   (edit for revision)
    rejected -> draft   (revised and resubmitted)

    draft:    Being prepared by the supplier; can be edited or removed
    approved: Reviewed; part of the published set when the cycle is published
    rejected: Refused in review; can be removed or revised back to draft

RULES:
1. rejected -> approved is forbidden (must go back through draft)
2. approved offers cannot be removed (revert to draft first)
3. Nothing in a published cycle changes

Every screen and route goes through require_transition(); no other module
compares status strings to decide whether a change is legal.
"""

from __future__ import annotations
from typing import Literal


VALID_STATUSES = {"draft", "approved", "rejected"}
OfferStatus = Literal["draft", "approved", "rejected"]

ALLOWED_TRANSITIONS = {
    ("draft", "approved"),
    ("draft", "rejected"),
    ("approved", "draft"),
    ("rejected", "draft"),
}

REMOVABLE_STATUSES = {"draft", "rejected"}


class InvalidStateError(ValueError):
    """
    Raised when an operation is illegal for the current lifecycle state.

    This is a domain error, not a technical error: nothing has been mutated
    when it is raised.
    """
    pass


def validate_status(status: str) -> None:
    """
    Raises:
        InvalidStateError: If status is not one of VALID_STATUSES
    """
    if status not in VALID_STATUSES:
        raise InvalidStateError(
            f"Invalid status '{status}'. Must be one of: {', '.join(sorted(VALID_STATUSES))}"
        )


def can_transition(from_status: str, to_status: str) -> bool:
    """
    Check if a status change is allowed.

    Same-state "transitions" are reported as allowed; callers that need a
    real change (approve, reject) check the source status themselves.
    """
    validate_status(from_status)
    validate_status(to_status)

    if from_status == to_status:
        return True

    return (from_status, to_status) in ALLOWED_TRANSITIONS


def require_transition(from_status: str, to_status: str, *, product_id: str | None = None) -> None:
    if not can_transition(from_status, to_status):
        subject = f"product {product_id}" if product_id else "product"
        raise InvalidStateError(
            f"Cannot move {subject} from '{from_status}' to '{to_status}'"
        )


def can_remove(status: str) -> bool:
    validate_status(status)
    return status in REMOVABLE_STATUSES


def require_cycle_open(cycle) -> None:
    """Published cycles are read-only."""
    if cycle.is_published:
        raise InvalidStateError(f"Cycle {cycle.id} is published and read-only")
