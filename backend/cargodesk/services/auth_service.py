# Overview: Password hashing, authentication and staff account management.

"""
Authentication and user accounts.

Every booking, delivery and cash transfer is attributed to a staff account;
those accounts are created and edited here.

MULTI-TENANT: Users belong to exactly one operator (operator_id). The mobile
number is the login identifier and is unique across all operators, so
login resolves the operator from the credentials alone.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters; upper, lower, digit and special char required
- Session tokens managed separately (see session_service.py)
- Changing a password or deactivating a user revokes that user's sessions
- Authentication refuses inactive users and inactive operators
- cargo_balance is never writable here; see ledger_service
"""

from __future__ import annotations

import logging
import re

import bcrypt
from flask import current_app, has_app_context

from ..constants import ACTIVE, INACTIVE, RECORD_STATUSES, ROLE_STAFF, ROLES
from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Branch, Operator, User
from ..time_utils import utcnow
from ..validation import parse_pagination, require_fields, total_pages
from .session_service import revoke_all_user_sessions

logger = logging.getLogger(__name__)

USER_MUTABLE_FIELDS = {"full_name", "mobile", "branch_id", "role", "status", "password"}


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError naming the first rule that fails.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def _bcrypt_rounds() -> int:
    # Tests lower BCRYPT_ROUNDS; outside an app context the default applies
    if has_app_context():
        return int(current_app.config.get("BCRYPT_ROUNDS", 12))
    return 12


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    The cost factor comes from the BCRYPT_ROUNDS config value (12 unless
    overridden). Password is validated for strength before hashing, so a
    weak password raises PasswordValidationError and is never stored.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=_bcrypt_rounds())
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise. bcrypt.checkpw()
    compares in constant time. An empty password, an empty hash or a hash
    bcrypt cannot parse never matches.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def _validate_role(role: str) -> str:
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(sorted(ROLES))}")
    return role


def _validate_status(status: str) -> str:
    if status not in RECORD_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(sorted(RECORD_STATUSES))}")
    return status


def _validate_branch(branch_id, operator_id: int) -> int | None:
    if branch_id is None:
        return None
    branch = db.session.query(Branch).filter_by(id=branch_id, operator_id=operator_id).first()
    if not branch:
        raise ValidationError("Branch does not belong to this operator")
    return branch.id


def _check_mobile_free(mobile: str, exclude_id: int | None = None) -> None:
    q = db.session.query(User.id).filter(User.mobile == mobile)
    if exclude_id is not None:
        q = q.filter(User.id != exclude_id)
    if q.first():
        raise ConflictError("A user with this mobile number already exists")


def create_user(
    *,
    operator_id: int,
    full_name: str,
    mobile: str,
    password: str,
    role: str = ROLE_STAFF,
    branch_id: int | None = None,
    is_superuser: bool = False,
) -> User:
    """
    Create a staff account with a zero cargo balance.

    MULTI-TENANT: the operator must exist and be active, and branch_id (when
    given) must be one of that operator's branches. The mobile number must be
    free across all operators.

    The user is flushed, not committed.

    Raises:
        NotFoundError: operator missing
        ValidationError: inactive operator, weak password, bad role/branch
        ConflictError: mobile already registered
    """
    operator = db.session.query(Operator).filter_by(id=operator_id).first()
    if not operator:
        raise NotFoundError(f"Operator {operator_id} not found")
    if not operator.is_active:
        raise ValidationError("Operator is not active")

    full_name = (full_name or "").strip()
    mobile = (mobile or "").strip()
    if not full_name or not mobile:
        raise ValidationError("full_name and mobile are required")

    _check_mobile_free(mobile)

    user = User(
        operator_id=operator_id,
        branch_id=_validate_branch(branch_id, operator_id),
        full_name=full_name,
        mobile=mobile,
        password_hash=hash_password(password),
        role=_validate_role(role),
        status=ACTIVE,
        is_superuser=bool(is_superuser),
        cargo_balance=0,
    )
    db.session.add(user)
    db.session.flush()

    logger.info("User %s created for operator %s", user.id, operator_id)
    return user


def create_user_from_payload(data: dict, *, operator_id: int) -> User:
    """JSON entry point for create_user; only USER_MUTABLE_FIELDS are accepted."""
    data = require_fields(data, "full_name", "mobile", "password")
    unknown = set(data) - USER_MUTABLE_FIELDS
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")
    return create_user(
        operator_id=operator_id,
        full_name=data["full_name"],
        mobile=str(data["mobile"]),
        password=data["password"],
        role=data.get("role") or ROLE_STAFF,
        branch_id=data.get("branch_id"),
    )


def get_user(user_id: int, *, operator_id: int) -> User:
    user = db.session.query(User).filter_by(id=user_id, operator_id=operator_id).first()
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    return user


def update_user(user_id: int, data: dict, *, operator_id: int) -> User:
    """
    Partial update of a staff account.

    Only USER_MUTABLE_FIELDS may be sent; cargo_balance and operator_id are
    refused. A new password goes through the same strength rules as on
    create.

    SECURITY: a password change or a move to Inactive revokes every live
    session of the user, in the same unit of work as the edit.

    Raises:
        ValidationError: unknown field, blank name/mobile, bad role/status/branch
        PasswordValidationError: weak password
        NotFoundError: no such user in this operator
        ConflictError: mobile already registered
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    for key in data:
        if key not in USER_MUTABLE_FIELDS:
            raise ValidationError(f"Field not allowed: {key}")

    user = get_user(user_id, operator_id=operator_id)

    if "full_name" in data:
        full_name = (data["full_name"] or "").strip()
        if not full_name:
            raise ValidationError("full_name cannot be blank")
        user.full_name = full_name
    if "mobile" in data:
        mobile = str(data["mobile"] or "").strip()
        if not mobile:
            raise ValidationError("mobile cannot be blank")
        _check_mobile_free(mobile, exclude_id=user.id)
        user.mobile = mobile
    if "branch_id" in data:
        user.branch_id = _validate_branch(data["branch_id"], operator_id)
    if "role" in data:
        user.role = _validate_role(data["role"])
    if "status" in data:
        user.status = _validate_status(data["status"])
    if "password" in data:
        user.password_hash = hash_password(data["password"])

    db.session.flush()

    if "password" in data:
        revoked = revoke_all_user_sessions(user.id, "Password changed")
        logger.info("Password changed for user %s; %s session(s) revoked", user.id, revoked)
    elif user.status == INACTIVE and "status" in data:
        revoked = revoke_all_user_sessions(user.id, "User account deactivated")
        logger.info("User %s deactivated; %s session(s) revoked", user.id, revoked)
    return user


def list_users(
    *,
    operator_id: int,
    query: str | None = None,
    page=1,
    limit=10,
) -> dict:
    """Paged users of one operator, by name; query matches name or mobile."""
    page, limit = parse_pagination(page, limit)

    q = db.session.query(User).filter(User.operator_id == operator_id)
    text = (query or "").strip()
    if text:
        pattern = f"%{text}%"
        q = q.filter(db.or_(User.full_name.ilike(pattern), User.mobile.ilike(pattern)))

    total = q.count()
    rows = q.order_by(User.full_name.asc()).offset((page - 1) * limit).limit(limit).all()
    return {
        "page": page,
        "limit": limit,
        "total_records": total,
        "total_pages": total_pages(total, limit),
        "data": [u.to_dict() for u in rows],
    }


def authenticate(mobile: str, password: str) -> User | None:
    """
    Authenticate user with mobile number and password.

    MULTI-TENANT: the mobile number is globally unique, so no operator is
    passed in; the user's operator must be active.

    Returns the User when credentials are valid and both the user and its
    operator are active, None otherwise. The caller gets no hint of which
    check failed. Stamps last_login_at on success.
    """
    user = db.session.query(User).filter(User.mobile == (mobile or "").strip()).first()
    if not user or not user.is_active:
        return None

    operator = db.session.query(Operator).filter_by(id=user.operator_id).first()
    if not operator or not operator.is_active:
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user
