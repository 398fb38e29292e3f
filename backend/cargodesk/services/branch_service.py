# Overview: Operator-scoped branch (booking office) management.

from __future__ import annotations

from ..constants import ACTIVE, RECORD_STATUSES
from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Booking, Branch
from ..validation import ModelValidationPolicy, parse_pagination, total_pages, validate_payload

BRANCH_POLICY = ModelValidationPolicy(
    writable_fields={"branch_code", "name", "address", "phone", "manager", "status"},
    required_on_create={"branch_code", "name"},
)


def _check_status(patch: dict) -> None:
    if "status" in patch and patch["status"] not in RECORD_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(sorted(RECORD_STATUSES))}")


def _check_code_free(operator_id: int, branch_code: str, exclude_id: int | None = None) -> None:
    q = db.session.query(Branch.id).filter(
        Branch.operator_id == operator_id,
        Branch.branch_code == branch_code,
    )
    if exclude_id is not None:
        q = q.filter(Branch.id != exclude_id)
    if q.first():
        raise ConflictError(f"Branch code '{branch_code}' already exists")


def create_branch(data: dict, *, operator_id: int) -> Branch:
    patch = validate_payload(model=Branch, payload=data, policy=BRANCH_POLICY, partial=False)
    _check_status(patch)
    _check_code_free(operator_id, patch["branch_code"])

    patch.setdefault("status", ACTIVE)
    branch = Branch(operator_id=operator_id, **patch)
    db.session.add(branch)
    db.session.flush()
    return branch


def get_branch(branch_id: int, *, operator_id: int) -> Branch:
    branch = db.session.query(Branch).filter_by(id=branch_id, operator_id=operator_id).first()
    if not branch:
        raise NotFoundError(f"Branch {branch_id} not found")
    return branch


def update_branch(branch_id: int, data: dict, *, operator_id: int) -> Branch:
    patch = validate_payload(model=Branch, payload=data, policy=BRANCH_POLICY, partial=True)
    _check_status(patch)

    branch = get_branch(branch_id, operator_id=operator_id)
    if "branch_code" in patch:
        _check_code_free(operator_id, patch["branch_code"], exclude_id=branch.id)

    for key, value in patch.items():
        setattr(branch, key, value)
    db.session.flush()
    return branch


def delete_branch(branch_id: int, *, operator_id: int) -> None:
    """Branches referenced by bookings are deactivated rather than removed."""
    branch = get_branch(branch_id, operator_id=operator_id)
    in_use = db.session.query(Booking.id).filter(
        db.or_(Booking.from_branch_id == branch.id, Booking.to_branch_id == branch.id)
    ).first()
    if in_use:
        raise ConflictError("Branch is used by bookings; set it Inactive instead")
    db.session.delete(branch)
    db.session.flush()


def list_branches(
    *,
    operator_id: int,
    query: str | None = None,
    status: str | None = None,
    page=1,
    limit=10,
) -> dict:
    page, limit = parse_pagination(page, limit)

    q = db.session.query(Branch).filter(Branch.operator_id == operator_id)
    text = (query or "").strip()
    if text:
        pattern = f"%{text}%"
        q = q.filter(db.or_(Branch.name.ilike(pattern), Branch.branch_code.ilike(pattern)))
    if status:
        q = q.filter(Branch.status == status)

    total = q.count()
    rows = q.order_by(Branch.name.asc()).offset((page - 1) * limit).limit(limit).all()
    return {
        "page": page,
        "limit": limit,
        "total_records": total,
        "total_pages": total_pages(total, limit),
        "data": [b.to_dict() for b in rows],
    }
