# Overview: Operator (tenant) onboarding and lookup.

from __future__ import annotations

import logging
import re

from ..constants import OPERATOR_STATUS_ACTIVE, OPERATOR_STATUSES, PAYMENT_METHODS
from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Operator
from ..validation import parse_pagination, require_fields, total_pages

logger = logging.getLogger(__name__)

# Exactly three letters/digits, at least one uppercase letter
OPERATOR_CODE_RE = re.compile(r"^(?=.*[A-Z])[A-Za-z0-9]{3}$")

OPERATOR_MUTABLE_FIELDS = {"name", "phone", "address", "status", "payment_methods"}


def validate_operator_code(code) -> str:
    if not isinstance(code, str) or not OPERATOR_CODE_RE.match(code):
        raise ValidationError(
            "Operator code must be exactly 3 alphanumeric characters "
            "with at least one uppercase letter"
        )
    return code


def validate_payment_methods(methods) -> list[str]:
    if not isinstance(methods, list) or not methods:
        raise ValidationError("payment_methods must be a non-empty list")
    unknown = [m for m in methods if m not in PAYMENT_METHODS]
    if unknown:
        raise ValidationError(
            f"Unknown payment method(s): {', '.join(map(str, unknown))}. "
            f"Allowed: {', '.join(sorted(PAYMENT_METHODS))}"
        )
    # de-duplicate, keep client order
    return list(dict.fromkeys(methods))


def _validate_status(status: str) -> str:
    if status not in OPERATOR_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(sorted(OPERATOR_STATUSES))}")
    return status


def create_operator(data: dict) -> Operator:
    """
    Onboard a new tenant.

    Raises:
        ValidationError: missing fields, bad code or payment methods
        ConflictError: name or code already taken
    """
    data = require_fields(data, "name", "code", "phone")
    name = str(data["name"]).strip()
    code = validate_operator_code(data["code"])

    payment_methods = data.get("payment_methods")
    if payment_methods is None:
        payment_methods = sorted(PAYMENT_METHODS)
    else:
        payment_methods = validate_payment_methods(payment_methods)
    status = _validate_status(data.get("status") or OPERATOR_STATUS_ACTIVE)

    existing = db.session.query(Operator).filter(
        db.or_(Operator.name == name, Operator.code == code)
    ).first()
    if existing:
        raise ConflictError("Operator with this name or code already exists")

    operator = Operator(
        name=name,
        code=code,
        phone=str(data["phone"]).strip(),
        address=data.get("address"),
        status=status,
        payment_methods=payment_methods,
        booking_sequence=0,
    )
    db.session.add(operator)
    db.session.flush()

    logger.info("Operator %s (%s) created", operator.id, operator.code)
    return operator


def get_operator(operator_id: int) -> Operator:
    operator = db.session.query(Operator).filter_by(id=operator_id).first()
    if not operator:
        raise NotFoundError(f"Operator {operator_id} not found")
    return operator


def update_operator(operator_id: int, data: dict) -> Operator:
    """Code and booking_sequence are immutable after onboarding."""
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    for key in data:
        if key not in OPERATOR_MUTABLE_FIELDS:
            raise ValidationError(f"Field not allowed: {key}")

    operator = get_operator(operator_id)

    if "name" in data:
        name = str(data["name"] or "").strip()
        if not name:
            raise ValidationError("name cannot be blank")
        clash = db.session.query(Operator).filter(
            Operator.name == name, Operator.id != operator_id
        ).first()
        if clash:
            raise ConflictError("Operator with this name already exists")
        operator.name = name
    if "phone" in data:
        operator.phone = str(data["phone"] or "").strip()
    if "address" in data:
        operator.address = data["address"]
    if "status" in data:
        operator.status = _validate_status(data["status"])
    if "payment_methods" in data:
        operator.payment_methods = validate_payment_methods(data["payment_methods"])

    db.session.flush()
    return operator


def search_operators(query: str | None = None, *, page=1, limit=10) -> dict:
    page, limit = parse_pagination(page, limit)

    q = db.session.query(Operator)
    text = (query or "").strip()
    if text:
        q = q.filter(Operator.name.ilike(f"%{text}%"))

    total = q.count()
    operators = q.order_by(Operator.name.asc()).offset((page - 1) * limit).limit(limit).all()
    return {
        "page": page,
        "limit": limit,
        "total_records": total,
        "total_pages": total_pages(total, limit),
        "data": [o.to_dict() for o in operators],
    }
