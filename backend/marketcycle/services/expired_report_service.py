# Overview: Service-layer operations for the expired products report; encapsulates business logic and database work.

"""
Expired Products Report

Filters the log of products withdrawn for expiry and aggregates quantity
and lost value.

FILTERS (combined with AND, order does not matter):
- period:
    current_cycle  same calendar month and year as today
    last_n_cycles  expiry within `months` months before today (inclusive)
    custom         inclusive [date_from, date_to]; a missing bound is open
    all            no period restriction
- cycle_type / product / action: exact match, "all" disables the filter

No filter combination raises: unknown period values behave like "all" and
an inverted custom range simply matches nothing.

The pure functions (filter_entries, build_report, filter_options,
export_csv) work on plain dicts so they can be used over any source.
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from datetime import date

from flask import current_app

from ..extensions import db
from ..models import ExpiredProductEntry
from ..validation import ValidationError
from marketcycle.time_utils import months_before, parse_iso_date, today as utc_today

PERIODS = {"current_cycle", "last_n_cycles", "custom", "all"}
CYCLE_TYPES = {"weekly", "biweekly", "monthly"}
ACTIONS = {"withdrawn", "discarded", "donated", "composted"}

CYCLE_TYPE_LABELS = {
    "weekly": "Semanal",
    "biweekly": "Quinzenal",
    "monthly": "Mensal",
}

ACTION_LABELS = {
    "withdrawn": "Retirado do estoque",
    "discarded": "Descartado",
    "donated": "Doado",
    "composted": "Compostagem",
}

CSV_COLUMNS = [
    "Produto",
    "Quantidade",
    "Data de Validade",
    "Ciclo",
    "Referência",
    "Ação Tomada",
    "Motivo",
    "Valor Original",
]

STATUS_OK = "ok"
STATUS_EMPTY = "empty"
STATUS_NO_DATA = "no_data"

# Upper bound for the "last N cycles" window (100 years)
MAX_REPORT_MONTHS = 1200


@dataclass(frozen=True)
class ReportFilters:
    period: str = "current_cycle"
    months: int = 3
    date_from: date | None = None
    date_to: date | None = None
    cycle_type: str = "all"
    product: str = "all"
    action: str = "all"

    def to_dict(self) -> dict:
        return {
            "period": self.period,
            "months": self.months,
            "date_from": self.date_from.isoformat() if self.date_from else None,
            "date_to": self.date_to.isoformat() if self.date_to else None,
            "cycle_type": self.cycle_type,
            "product": self.product,
            "action": self.action,
        }


def _entry_date(entry: dict) -> date | None:
    try:
        return parse_iso_date(entry.get("expiry_date"))
    except ValueError:
        return None


def _matches_period(expiry: date | None, filters: ReportFilters, today: date) -> bool:
    period = filters.period
    if period == "current_cycle":
        return expiry is not None and expiry.year == today.year and expiry.month == today.month
    if period == "last_n_cycles":
        start = months_before(today, max(filters.months, 0))
        return expiry is not None and start <= expiry <= today
    if period == "custom":
        if expiry is None:
            return filters.date_from is None and filters.date_to is None
        if filters.date_from is not None and expiry < filters.date_from:
            return False
        if filters.date_to is not None and expiry > filters.date_to:
            return False
        return True
    return True


def _matches_value(value, wanted: str | None) -> bool:
    return wanted in (None, "", "all") or value == wanted


def filter_entries(entries: list[dict], filters: ReportFilters, *, today: date) -> list[dict]:
    """Entries matching every filter, in their original order."""
    return [
        entry for entry in entries
        if _matches_period(_entry_date(entry), filters, today)
        and _matches_value(entry.get("cycle_type"), filters.cycle_type)
        and _matches_value(entry.get("product"), filters.product)
        and _matches_value(entry.get("action_taken"), filters.action)
    ]


def build_report(entries: list[dict], filters: ReportFilters, *, today: date) -> dict:
    """
    Filtered entries plus totals.

    status is "no_data" when the log itself is empty and "empty" when the
    log has entries but none match the filters.
    """
    items = filter_entries(entries, filters, today=today)

    if not entries:
        status = STATUS_NO_DATA
    elif not items:
        status = STATUS_EMPTY
    else:
        status = STATUS_OK

    return {
        "status": status,
        "filters": filters.to_dict(),
        "items": items,
        "count": len(items),
        "total_quantity": sum(e.get("quantity") or 0 for e in items),
        "total_value_cents": sum(e.get("original_value_cents") or 0 for e in items),
    }


def filter_options(entries: list[dict]) -> dict:
    """Distinct filter values present in the log, in first-seen order."""
    def _distinct(key):
        return list(dict.fromkeys(e.get(key) for e in entries if e.get(key) is not None))

    return {
        "cycle_types": _distinct("cycle_type"),
        "products": _distinct("product"),
        "actions": _distinct("action_taken"),
    }


def _format_quantity(quantity) -> str:
    if quantity is None:
        return ""
    return f"{quantity:g}" if isinstance(quantity, float) else str(quantity)


def format_brl(cents: int | None) -> str:
    """R$ with comma decimal separator: 5400 -> 'R$ 54,00'."""
    cents = cents or 0
    sign = "-" if cents < 0 else ""
    cents = abs(cents)
    return f"{sign}R$ {cents // 100},{cents % 100:02d}"


def export_csv(entries: list[dict]) -> str:
    """One CSV row per entry, with the report's Portuguese column headers."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for entry in entries:
        expiry = _entry_date(entry)
        writer.writerow([
            entry.get("product") or "",
            f"{_format_quantity(entry.get('quantity'))} {entry.get('unit') or ''}".strip(),
            expiry.strftime("%d/%m/%Y") if expiry else "",
            CYCLE_TYPE_LABELS.get(entry.get("cycle_type"), entry.get("cycle_type") or ""),
            entry.get("cycle_ref") or "",
            ACTION_LABELS.get(entry.get("action_taken"), entry.get("action_taken") or ""),
            entry.get("reason") or "",
            format_brl(entry.get("original_value_cents")),
        ])
    return buffer.getvalue()


# =============================================================================
# Database-backed helpers
# =============================================================================

def parse_filters(args) -> ReportFilters:
    """
    Build ReportFilters from request query args.

    Raises:
        ValidationError: malformed dates or months
    """
    default_months = current_app.config.get("REPORT_DEFAULT_MONTHS", 3)

    raw_months = args.get("months")
    try:
        months = int(raw_months) if raw_months not in (None, "") else default_months
    except (TypeError, ValueError):
        raise ValidationError("months must be an integer")
    if months < 0:
        raise ValidationError("months must be >= 0")
    if months > MAX_REPORT_MONTHS:
        raise ValidationError(f"months must be <= {MAX_REPORT_MONTHS}")

    try:
        date_from = parse_iso_date(args.get("date_from"))
        date_to = parse_iso_date(args.get("date_to"))
    except ValueError:
        raise ValidationError("date_from/date_to must be ISO-8601 dates (YYYY-MM-DD)")

    return ReportFilters(
        period=args.get("period") or "current_cycle",
        months=months,
        date_from=date_from,
        date_to=date_to,
        cycle_type=args.get("cycle_type") or "all",
        product=args.get("product") or "all",
        action=args.get("action") or "all",
    )


def load_entries() -> list[dict]:
    rows = (
        db.session.query(ExpiredProductEntry)
        .order_by(ExpiredProductEntry.expiry_date.desc(), ExpiredProductEntry.id.asc())
        .all()
    )
    return [row.to_dict() for row in rows]


def expired_products_report(filters: ReportFilters, today: date | None = None) -> dict:
    entries = load_entries()
    report = build_report(entries, filters, today=today or utc_today())
    report["options"] = filter_options(entries)
    return report


def record_expired_entry(data: dict) -> dict:
    """
    Append an entry to the expired products log.

    Raises:
        ValidationError: missing product/unit/date or unknown cycle type/action
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    product = str(data.get("product") or "").strip()
    unit = str(data.get("unit") or "").strip()
    if not product:
        raise ValidationError("product is required")
    if not unit:
        raise ValidationError("unit is required")

    try:
        expiry = parse_iso_date(data.get("expiry_date"))
    except ValueError:
        raise ValidationError("expiry_date must be an ISO-8601 date (YYYY-MM-DD)")
    if expiry is None:
        raise ValidationError("expiry_date is required")

    quantity = data.get("quantity")
    if isinstance(quantity, bool) or not isinstance(quantity, (int, float)) or quantity <= 0:
        raise ValidationError("quantity must be a number > 0")

    cycle_type = data.get("cycle_type")
    if cycle_type not in CYCLE_TYPES:
        raise ValidationError(f"cycle_type must be one of: {', '.join(sorted(CYCLE_TYPES))}")
    action = data.get("action_taken")
    if action not in ACTIONS:
        raise ValidationError(f"action_taken must be one of: {', '.join(sorted(ACTIONS))}")

    value = data.get("original_value_cents") or 0
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError("original_value_cents must be an integer >= 0")

    entry = ExpiredProductEntry(
        product=product,
        quantity=float(quantity),
        unit=unit,
        expiry_date=expiry,
        cycle_type=cycle_type,
        cycle_ref=(data.get("cycle_ref") or None),
        action_taken=action,
        reason=(data.get("reason") or None),
        supplier=(data.get("supplier") or None),
        original_value_cents=value,
    )
    db.session.add(entry)
    db.session.commit()
    return entry.to_dict()
