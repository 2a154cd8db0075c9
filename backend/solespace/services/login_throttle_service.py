"""
Login Throttling Service

WHY: Prevent brute-force password attacks by limiting failed login attempts.
After too many failures, the identifier is temporarily locked.

SECURITY FEATURES:
- Tracks failed attempts per guard + email (guards never share a counter)
- Lockout after LOGIN_MAX_FAILED_ATTEMPTS failures within the window
- Lockout duration: LOGIN_LOCKOUT_MINUTES after the most recent failure
- Uses the security_events table for tracking
- A successful login resets the window
"""

from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SecurityEvent
from solespace.time_utils import utcnow


def _max_failed_attempts() -> int:
    return current_app.config.get("LOGIN_MAX_FAILED_ATTEMPTS", 10)


def _lockout_window() -> timedelta:
    return timedelta(minutes=current_app.config.get("LOGIN_LOCKOUT_MINUTES", 15))


def _last_success_at(guard: str, identifier: str):
    last = db.session.query(SecurityEvent).filter(
        SecurityEvent.guard == guard,
        SecurityEvent.identifier == identifier,
        SecurityEvent.event_type == SecurityEvent.LOGIN_SUCCEEDED,
    ).order_by(SecurityEvent.occurred_at.desc(), SecurityEvent.id.desc()).first()
    return last.occurred_at if last else None


def get_recent_failed_attempts(guard: str, identifier: str) -> int:
    """
    Count LOGIN_FAILED events for this guard + identifier within the window,
    ignoring failures that happened before the last successful login.
    """
    cutoff = utcnow() - _lockout_window()
    last_success = _last_success_at(guard, identifier)
    if last_success is not None and last_success > cutoff:
        cutoff = last_success

    return db.session.query(SecurityEvent).filter(
        SecurityEvent.guard == guard,
        SecurityEvent.identifier == identifier,
        SecurityEvent.event_type == SecurityEvent.LOGIN_FAILED,
        SecurityEvent.occurred_at >= cutoff,
    ).count()


def is_locked(guard: str, identifier: str) -> tuple[bool, int | None]:
    """
    Returns:
    - (True, seconds_remaining) if locked
    - (False, None) if not locked
    """
    if get_recent_failed_attempts(guard, identifier) < _max_failed_attempts():
        return False, None

    most_recent = db.session.query(SecurityEvent).filter(
        SecurityEvent.guard == guard,
        SecurityEvent.identifier == identifier,
        SecurityEvent.event_type == SecurityEvent.LOGIN_FAILED,
    ).order_by(SecurityEvent.occurred_at.desc(), SecurityEvent.id.desc()).first()

    if most_recent:
        lockout_end = most_recent.occurred_at + _lockout_window()
        now = utcnow()
        if now < lockout_end:
            return True, max(1, int((lockout_end - now).total_seconds()))

    return False, None


def record_event(
    guard: str,
    identifier: str,
    event_type: str,
    *,
    principal_id: int | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    event = SecurityEvent(
        guard=guard,
        identifier=identifier,
        principal_id=principal_id,
        event_type=event_type,
        reason=reason,
        ip_address=ip_address,
        user_agent=(user_agent or "")[:512] or None,
        occurred_at=utcnow(),
    )
    db.session.add(event)
    db.session.commit()
    return event


def record_failed_attempt(
    guard: str,
    identifier: str,
    *,
    principal_id: int | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    reason: str = "Invalid credentials",
) -> int:
    """
    Record a failed login attempt.

    Returns the total number of recent failed attempts.
    """
    record_event(
        guard,
        identifier,
        SecurityEvent.LOGIN_FAILED,
        principal_id=principal_id,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    return get_recent_failed_attempts(guard, identifier)


def record_successful_login(
    guard: str,
    identifier: str,
    principal_id: int,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    record_event(
        guard,
        identifier,
        SecurityEvent.LOGIN_SUCCEEDED,
        principal_id=principal_id,
        ip_address=ip_address,
        user_agent=user_agent,
    )


def get_lockout_status(guard: str, identifier: str) -> dict:
    locked, seconds_remaining = is_locked(guard, identifier)
    return {
        "locked": locked,
        "failed_attempts": get_recent_failed_attempts(guard, identifier),
        "max_attempts": _max_failed_attempts(),
        "seconds_until_unlock": seconds_remaining,
        "lockout_minutes": int(_lockout_window().total_seconds() / 60),
    }
