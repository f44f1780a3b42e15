# Overview: Service-layer operations for harvest schedules; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import HarvestPlan
from ..validation import ValidationError
from .cycle_service import require_supplier
from marketcycle.time_utils import parse_iso_date

PHASES = {"preparation", "planting", "harvest"}

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


def create_plan(supplier_id: int, data: dict) -> dict:
    """
    Register a planting/harvest plan for a supplier.

    Raises:
        NotFoundError: unknown supplier
        ValidationError: missing product or dates, harvest before planting,
            negative estimate or unknown phase
    """
    require_supplier(supplier_id)
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    product = str(data.get("product") or "").strip()
    if not product:
        raise ValidationError("product is required")

    try:
        planting = parse_iso_date(data.get("planting_date"))
        harvest = parse_iso_date(data.get("harvest_date"))
    except ValueError:
        raise ValidationError("planting_date/harvest_date must be ISO-8601 dates (YYYY-MM-DD)")
    if planting is None or harvest is None:
        raise ValidationError("planting_date and harvest_date are required")
    if harvest < planting:
        raise ValidationError("harvest_date cannot be before planting_date")

    estimated = data.get("estimated_kg")
    if estimated is not None:
        if isinstance(estimated, bool) or not isinstance(estimated, (int, float)) or estimated < 0:
            raise ValidationError("estimated_kg must be a number >= 0")
        estimated = float(estimated)

    phase = data.get("phase") or "preparation"
    if phase not in PHASES:
        raise ValidationError(f"phase must be one of: {', '.join(sorted(PHASES))}")

    plan = HarvestPlan(
        supplier_id=supplier_id,
        product=product,
        planting_date=planting,
        harvest_date=harvest,
        estimated_kg=estimated,
        status=(data.get("status") or None),
        phase=phase,
    )
    db.session.add(plan)
    db.session.commit()
    return plan.to_dict()


def list_plans(supplier_id: int) -> list[dict]:
    require_supplier(supplier_id)
    plans = (
        db.session.query(HarvestPlan)
        .filter(HarvestPlan.supplier_id == supplier_id)
        .order_by(HarvestPlan.planting_date.asc(), HarvestPlan.id.asc())
        .all()
    )
    return [p.to_dict() for p in plans]


def monthly_calendar(supplier_id: int) -> list[dict]:
    """
    Twelve month buckets; a plan shows up in the month it is planted and
    in the month it is harvested (once if both fall in the same month).
    Months are matched regardless of year.
    """
    require_supplier(supplier_id)
    plans = (
        db.session.query(HarvestPlan)
        .filter(HarvestPlan.supplier_id == supplier_id)
        .order_by(HarvestPlan.id.asc())
        .all()
    )

    calendar = []
    for month_number, month_name in enumerate(MONTH_NAMES, start=1):
        activities = []
        for plan in plans:
            is_planting = plan.planting_date.month == month_number
            is_harvest = plan.harvest_date.month == month_number
            if not (is_planting or is_harvest):
                continue
            activities.append({
                "plan_id": plan.id,
                "product": plan.product,
                "is_planting": is_planting,
                "is_harvest": is_harvest,
                "estimated_kg": plan.estimated_kg,
            })
        calendar.append({
            "month": month_number,
            "name": month_name,
            "activities": activities,
        })
    return calendar
