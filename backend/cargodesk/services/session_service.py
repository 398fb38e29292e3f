# Overview: Opaque bearer session tokens carrying the operator context.

"""
Session Token Management

MULTI-TENANT: Sessions capture operator_id at creation time. This is the
tenant context for every authenticated request; it never changes for the
lifetime of the session, even if the user is later moved.

SECURITY FEATURES:
- 32-byte random tokens from the secrets module
- Only the SHA-256 hash of a token is stored
- 24-hour absolute timeout (SESSION_ABSOLUTE_TIMEOUT)
- 2-hour idle timeout (SESSION_IDLE_TIMEOUT)
- Revocable on logout, or automatically once the user or operator is deactivated
- Client user agent and IP address are recorded with the session
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import SessionToken, User
from ..time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)  # Maximum session length
SESSION_IDLE_TIMEOUT = timedelta(hours=2)        # Inactivity limit


@dataclass
class SessionContext:
    """
    What validate_session hands to the auth decorator.

    MULTI-TENANT: operator_id comes from the session record, not from the
    user row.
    """
    user: User
    session: SessionToken
    operator_id: int


def generate_token() -> str:
    """
    New plaintext bearer token: 64 hex characters (32 bytes of entropy).

    Sent to the client once and never stored.
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """SHA-256 hex digest of a token, as stored in session_tokens.token_hash."""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Open a session for a user and commit it.

    MULTI-TENANT: Captures the user's operator_id as the session's tenant.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.

    Raises:
        NotFoundError: unknown user
        ValidationError: the user's operator is inactive
    """
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise NotFoundError("User not found")

    operator = user.operator
    if not operator or not operator.is_active:
        raise ValidationError("Operator is not active")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user.id,
        operator_id=user.operator_id,  # MULTI-TENANT: tenant context for the session
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        user_agent=(user_agent or "")[:255] or None,
        ip_address=ip_address,
        is_revoked=False,
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a bearer token to a SessionContext.

    Returns None if:
    - the token is unknown, expired or revoked
    - the session has been idle longer than SESSION_IDLE_TIMEOUT (it is revoked)
    - the user or the operator has been deactivated (the session is revoked)

    Touches last_used_at on success. Every protected route goes through here.
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return None

    now = utcnow()

    # Absolute timeout
    if session.expires_at < now:
        return None

    # Idle timeout
    if now - session.last_used_at > SESSION_IDLE_TIMEOUT:
        _revoke(session, "Idle timeout")
        return None

    # SECURITY: deactivated users lose their sessions
    user = session.user
    if not user or not user.is_active:
        _revoke(session, "User account deactivated")
        return None

    # MULTI-TENANT: so do users of a deactivated operator
    operator = session.operator
    if not operator or not operator.is_active:
        _revoke(session, "Operator deactivated")
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(user=user, session=session, operator_id=session.operator_id)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """
    Revoke the live session behind a token.

    Returns True if a live session was revoked, False for an unknown or
    already revoked token.
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return False

    _revoke(session, reason)
    return True


def revoke_all_user_sessions(user_id: int, reason: str = "Revoke all sessions") -> int:
    """
    Revoke every live session of a user (password change, deactivation).

    Returns the number of sessions revoked. Changes are flushed, not
    committed: the caller commits them with the rest of its unit of work.
    """
    now = utcnow()

    sessions = db.session.query(SessionToken).filter_by(
        user_id=user_id,
        is_revoked=False,
    ).all()

    for session in sessions:
        session.is_revoked = True
        session.revoked_at = now
        session.revoked_reason = reason

    db.session.flush()
    return len(sessions)
