# Overview: Payload validation against model metadata plus the business rules for offers, catalog entries and fees.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable

from sqlalchemy import Boolean, Date, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from marketcycle.time_utils import parse_iso_date, parse_iso_datetime


# Maximum price: R$ 9.999.999,99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

# Administrative fee is stored in basis points (500 = 5%)
MAX_FEE_BPS = 10_000


class ValidationError(ValueError):
    """400-level input problem."""


class NotFoundError(LookupError):
    """404-level: a referenced id does not exist."""


class ConflictError(ValueError):
    """409-level conflict (e.g., stale version on upsert)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Which keys a client may send for one model.

    writable_fields: columns the client may set
    required_on_create: keys that must be present when partial=False
    extra_fields: non-column keys passed through untouched for the service
        (e.g. "id" on upsert, "expected_version")
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    extra_fields: set[str] = field(default_factory=set)


def _as_int(key: str, value: Any) -> int:
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be an integer")

    text = value.strip()
    # Cents are typed as plain digits; "12.5" and "1e3" are refused
    if not text or "." in text or "e" in text.lower():
        raise ValidationError(f"{key} must be a plain integer")
    try:
        return int(text)
    except ValueError:
        raise ValidationError(f"{key} must be a plain integer")


def _as_float(key: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        # Forms send "0,5"
        try:
            return float(value.strip().replace(",", "."))
        except ValueError:
            pass
    raise ValidationError(f"{key} must be a number")


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _as_datetime(key: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            parsed = parse_iso_datetime(value)
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed
    raise ValidationError(f"{key} must be an ISO-8601 datetime")


def _as_date(key: str, value: Any) -> date | None:
    if not isinstance(value, (date, str)):
        raise ValidationError(f"{key} must be a date")
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{key} must be an ISO-8601 date (YYYY-MM-DD)")


def _as_text(key: str, value: Any) -> str:
    return str(value).strip()


# First matching column type wins
_COERCERS: list[tuple[type, Callable[[str, Any], Any]]] = [
    (Boolean, _as_bool),
    (Integer, _as_int),
    (Float, _as_float),
    (DateTime, _as_datetime),
    (Date, _as_date),
    (String, _as_text),
    (Text, _as_text),
]


def _coerce(col, value: Any) -> Any:
    for coltype, coercer in _COERCERS:
        if isinstance(col.type, coltype):
            return coercer(col.key, value)
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Clean a JSON body against the model's columns and the policy.

    - keys outside writable_fields + extra_fields are refused
    - values are coerced by column type; NULL only where the column allows it
    - non-nullable text cannot be blank; String(n) lengths are enforced
    - partial=False also requires every key in required_on_create

    Returns the cleaned patch; extra_fields come back unchanged.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(k for k in policy.required_on_create if k not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = {c.key: c for c in model.__mapper__.columns}
    patch: dict = {}

    for key, raw in payload.items():
        if key in policy.extra_fields:
            patch[key] = raw
            continue
        if key not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {key}")
        col = columns.get(key)
        if col is None:
            raise ValidationError(f"Unknown field: {key}")

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
            continue

        value = _coerce(col, raw)

        if isinstance(value, str) and isinstance(col.type, (String, Text)):
            if value == "" and not col.nullable:
                raise ValidationError(f"{key} cannot be blank")
            length = getattr(col.type, "length", None)
            if length and len(value) > length:
                raise ValidationError(f"{key} exceeds max length {length}")

        patch[key] = value

    return patch


def _check_price(key: str, price) -> None:
    if not isinstance(price, int) or isinstance(price, bool):
        raise ValidationError(f"{key} must be an integer")
    if price < 0:
        raise ValidationError(f"{key} must be >= 0")
    if price > MAX_PRICE_CENTS:
        raise ValidationError(f"{key} cannot exceed {MAX_PRICE_CENTS} (R$ {MAX_PRICE_CENTS / 100:,.2f})")


def enforce_rules_reference_product(patch: dict) -> None:
    if not str(patch.get("name") or "").strip():
        raise ValidationError("name is required")
    if not str(patch.get("unit") or "").strip():
        raise ValidationError("unit is required")
    if patch.get("reference_price_cents") is not None:
        _check_price("reference_price_cents", patch["reference_price_cents"])


def enforce_rules_cycle_product(patch: dict) -> None:
    """
    Business rules for offers that SQLAlchemy metadata cannot express.
    Keep these small and centralized.
    """
    if "name" in patch and not str(patch["name"] or "").strip():
        raise ValidationError("name is required")

    if "conversion_factor" in patch:
        factor = patch["conversion_factor"]
        if factor is None or isinstance(factor, bool) or not isinstance(factor, (int, float)):
            raise ValidationError("conversion_factor must be a number")
        if factor <= 0:
            raise ValidationError("conversion_factor must be > 0")

    if patch.get("price_cents") is not None:
        _check_price("price_cents", patch["price_cents"])

    qty = patch.get("available_quantity")
    if qty is not None:
        if isinstance(qty, bool) or not isinstance(qty, (int, float)):
            raise ValidationError("available_quantity must be a number")
        if qty < 0:
            raise ValidationError("available_quantity must be >= 0")


def enforce_rules_fee(fee_bps) -> None:
    if fee_bps is None:
        return
    if not isinstance(fee_bps, int) or isinstance(fee_bps, bool):
        raise ValidationError("administrative_fee_bps must be an integer")
    if fee_bps < 0 or fee_bps > MAX_FEE_BPS:
        raise ValidationError(f"administrative_fee_bps must be between 0 and {MAX_FEE_BPS}")
