# Overview: Service-layer operations for the audit log; encapsulates business logic and database work.

"""
Audit Recorder

WHY: Administrative actions inside a shop (employee created, status changed,
deleted) must be attributable after the fact.

BEST-EFFORT: record_action runs AFTER the action has committed, in its own
commit/rollback boundary. Any failure while building or writing the entry is
logged and discarded; it never changes the outcome the caller already
reported.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import AuditLog


ACTION_EMPLOYEE_CREATED = "employee_created"
ACTION_EMPLOYEE_STATUS_CHANGED = "employee_status_changed"
ACTION_EMPLOYEE_UPDATED = "employee_updated"
ACTION_EMPLOYEE_DELETED = "employee_deleted"


class AuditWriteFailure(Exception):
    """The audit row could not be persisted. Never escapes record_action."""


def _write(entry: AuditLog) -> AuditLog:
    try:
        db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise AuditWriteFailure(str(exc)) from exc
    return entry


def record_action(
    *,
    shop_owner_id: int | None,
    actor_user_id: int | None,
    action: str,
    target_type: str | None = None,
    target_id: int | None = None,
    metadata: dict | None = None,
) -> AuditLog | None:
    """
    Append one audit entry.

    Returns the entry, or None when the write failed (already logged).
    """
    try:
        entry = AuditLog(
            shop_owner_id=shop_owner_id,
            actor_user_id=actor_user_id,
            action=action,
            target_type=target_type,
            target_id=target_id,
            meta=metadata or {},
        )
        return _write(entry)
    except AuditWriteFailure as exc:
        current_app.logger.warning(
            "Failed to write audit log %s for %s %s: %s", action, target_type, target_id, exc
        )
        return None
    except Exception:
        db.session.rollback()
        current_app.logger.exception(
            "Unexpected error writing audit log %s for %s %s", action, target_type, target_id
        )
        return None


def list_for_shop(shop_owner_id: int, *, action: str | None = None, limit: int = 100) -> list[AuditLog]:
    """Newest first, scoped to one shop."""
    query = db.session.query(AuditLog).filter(AuditLog.shop_owner_id == shop_owner_id)
    if action:
        query = query.filter(AuditLog.action == action)
    return query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
