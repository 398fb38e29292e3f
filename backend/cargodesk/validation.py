from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .time_utils import parse_iso_date, parse_iso_datetime


# Largest single charge / transfer accepted (Numeric(12, 2) column headroom)
MAX_AMOUNT = Decimal("9999999999.99")
TWO_PLACES = Decimal("0.01")

DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 500


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def to_decimal(value: Any, field: str = "amount") -> Decimal:
    """
    Normalize a JSON number / numeric string into a 2-place Decimal.

    Floats go through str() so 0.1 stays 0.10 instead of 0.1000000000000000055.
    Booleans are rejected even though they are ints.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        dec = value
    else:
        try:
            dec = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError(f"{field} must be a number")
    if not dec.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    dec = dec.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    if abs(dec) > MAX_AMOUNT:
        raise ValidationError(f"{field} exceeds the maximum of {MAX_AMOUNT}")
    return dec


def to_non_negative_amount(value: Any, field: str = "amount") -> Decimal:
    dec = to_decimal(value, field)
    if dec < 0:
        raise ValidationError(f"{field} must be >= 0")
    return dec


def to_positive_amount(value: Any, field: str = "amount") -> Decimal:
    dec = to_decimal(value, field)
    if dec <= 0:
        raise ValidationError(f"{field} must be > 0")
    return dec


def money(value: Decimal | None) -> float:
    """JSON representation of a stored amount."""
    if value is None:
        return 0.0
    return float(Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP))


def require_fields(payload: dict | None, *fields: str) -> dict:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    missing = [f for f in fields if payload.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    return payload


def parse_pagination(page: Any, limit: Any) -> tuple[int, int]:
    """Clamp page >= 1 and 1 <= limit <= MAX_PAGE_LIMIT."""
    try:
        page = int(page) if page not in (None, "") else 1
        limit = int(limit) if limit not in (None, "") else DEFAULT_PAGE_LIMIT
    except (TypeError, ValueError):
        raise ValidationError("page and limit must be integers")
    if page < 1:
        page = 1
    if limit < 1:
        limit = 1
    if limit > MAX_PAGE_LIMIT:
        limit = MAX_PAGE_LIMIT
    return page, limit


def total_pages(total: int, limit: int) -> int:
    return (total + limit - 1) // limit if total else 0


def to_int_id(value: Any, field: str) -> int:
    """Strict id coercion for JSON bodies: 7 and "7" pass; 7.5, "7e0", true do not."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValidationError(f"{field} must be an integer")


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Numeric before Integer: money columns
    if isinstance(coltype, Numeric):
        dec = to_decimal(value, col.key)
        if dec < 0:
            raise ValidationError(f"{col.key} must be >= 0")
        return dec

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            if 'e' in stripped.lower() or '.' in stripped:
                raise ValidationError(f"{col.key} must be a plain integer")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        raise ValidationError(f"{col.key} must be an integer")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, Date):
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                d = parse_iso_date(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be a YYYY-MM-DD date")
            if d is None:
                raise ValidationError(f"{col.key} must be a YYYY-MM-DD date")
            return d
        raise ValidationError(f"{col.key} must be a date")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch
