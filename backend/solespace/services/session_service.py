# Overview: Service-layer operations for guard sessions; encapsulates business logic and database work.

"""
Per-Guard Session Token Service

WHY: The browser carries one cookie, but each guard (user, employee,
shop_owner, super_admin) has its own slot inside it. Each slot holds an opaque
token backed by a guard_sessions row, so one guard can be logged out (or
force-logged-out) without touching the others.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute timeout (SESSION_ABSOLUTE_TIMEOUT_HOURS, default 24)
- Idle timeout (SESSION_IDLE_TIMEOUT_HOURS, default 2)
- Revocable on logout, forced logout, or account removal
- Tracks client IP and user agent for security monitoring

NOTE: Token validity only. Whether the principal behind a valid token may
still use the application is the guard's call (see solespace.guards).
"""

import secrets
import hashlib
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import GuardSession
from solespace.time_utils import utcnow


def _absolute_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24))


def _idle_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_IDLE_TIMEOUT_HOURS", 2))


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token put in the cookie session (never stored).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    WHY SHA-256 not bcrypt: Tokens are already high-entropy (unlike passwords).
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(
    guard: str,
    principal_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[GuardSession, str]:
    """
    Create a new session for a principal under one guard.

    Returns (session_record, plaintext_token).
    """
    plaintext_token = generate_token()
    now = utcnow()

    session = GuardSession(
        guard=guard,
        principal_id=principal_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _absolute_timeout(),
        user_agent=(user_agent or "")[:512] or None,
        ip_address=ip_address,
        is_revoked=False,
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def validate_session(guard: str, token: str | None) -> GuardSession | None:
    """
    Return the live session for (guard, token), or None.

    None if the token is unknown, belongs to another guard, is revoked,
    past its absolute expiry, or idle too long (idle sessions are revoked).

    Updates last_used_at on success.
    """
    if not token:
        return None

    now = utcnow()
    session = db.session.query(GuardSession).filter_by(
        token_hash=hash_token(token),
        guard=guard,
        is_revoked=False,
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    if now - session.last_used_at > _idle_timeout():
        session.is_revoked = True
        session.revoked_at = now
        session.revoked_reason = "Idle timeout"
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()
    return session


def revoke_session(guard: str, token: str | None, reason: str = "Logout") -> bool:
    """
    Revoke one session.

    Returns True if a live session was revoked, False if not found.
    """
    if not token:
        return False

    session = db.session.query(GuardSession).filter_by(
        token_hash=hash_token(token),
        guard=guard,
        is_revoked=False,
    ).first()

    if not session:
        return False

    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()
    return True


def revoke_all_principal_sessions(
    guard: str,
    principal_id: int,
    reason: str = "Revoke all sessions",
    *,
    commit: bool = True,
) -> int:
    """
    Revoke every live session of a principal under one guard.

    Returns count of sessions revoked.
    """
    now = utcnow()
    sessions = db.session.query(GuardSession).filter_by(
        guard=guard,
        principal_id=principal_id,
        is_revoked=False,
    ).all()

    for session in sessions:
        session.is_revoked = True
        session.revoked_at = now
        session.revoked_reason = reason

    if commit:
        db.session.commit()
    return len(sessions)


def cleanup_expired_sessions(older_than_days: int = 30) -> int:
    """
    Delete expired or revoked sessions created more than `older_than_days` ago.

    Returns count of sessions deleted. Run periodically
    (`flask maintenance cleanup-sessions`).
    """
    now = utcnow()
    cutoff = now - timedelta(days=older_than_days)

    deleted = db.session.query(GuardSession).filter(
        db.or_(
            GuardSession.expires_at < now,
            GuardSession.is_revoked.is_(True),
        ),
        GuardSession.created_at < cutoff,
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted
