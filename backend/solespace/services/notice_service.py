# Overview: Service-layer operations for one-time sealed notices; encapsulates business logic and database work.

"""
Sealed One-Time Notices

WHY: Flash messages ride in the signed cookie session, which the browser can
read. A provisioning result carries a temporary password, so it is parked in
the sealed_notices table instead and the cookie only holds an opaque token.

FLOW:
1. seal(...)  -> row with the secret field masked; returns the plaintext token
2. The token rides in the session until the next page read
3. claim(...) -> checks owner and expiry, unmasks, deletes the row

A notice is readable once, only by the guard + principal that sealed it, and
only until SEALED_NOTICE_TTL_MINUTES has passed.
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import timedelta
from typing import Callable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import SealedNotice
from . import session_service
from solespace.time_utils import utcnow


def _ttl() -> timedelta:
    return timedelta(minutes=current_app.config.get("SEALED_NOTICE_TTL_MINUTES", 10))


def _pad(token: str, length: int) -> bytes:
    return hashlib.shake_256(f"pad:{token}".encode("utf-8")).digest(length)


def _mask(token: str, data: bytes) -> bytes:
    return bytes(a ^ b for a, b in zip(data, _pad(token, len(data))))


def seal(
    guard: str,
    principal_id: int,
    category: str,
    payload: dict,
    secret_field: str | None = None,
) -> str:
    """
    Store `payload` for one later read by the same principal.

    `secret_field` (a top-level key of payload) is removed from the stored
    JSON and kept masked. Returns the plaintext token.
    """
    token = secrets.token_hex(32)
    stored = dict(payload)

    sealed_secret = None
    if secret_field is not None:
        secret = stored.pop(secret_field, None)
        if secret is not None:
            sealed_secret = _mask(token, str(secret).encode("utf-8")).hex()

    notice = SealedNotice(
        token_hash=session_service.hash_token(token),
        guard=guard,
        principal_id=principal_id,
        category=category,
        payload=stored,
        secret_field=secret_field if sealed_secret is not None else None,
        sealed_secret=sealed_secret,
        expires_at=utcnow() + _ttl(),
    )
    db.session.add(notice)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    return token


def claim(token: str | None, current_principal_id: Callable[[str], int | None]) -> dict | None:
    """
    Return the payload with its secret restored, and delete the notice.

    `current_principal_id(guard)` answers who is logged in on that guard.
    Unknown, expired or foreign notices answer None; the latter two are
    deleted as well.
    """
    if not token:
        return None

    notice = db.session.query(SealedNotice).filter_by(
        token_hash=session_service.hash_token(token)
    ).first()
    if notice is None:
        return None

    # Read everything before the delete commits and expires the instance
    guard, principal_id, category = notice.guard, notice.principal_id, notice.category
    expired = notice.expires_at < utcnow()
    payload = dict(notice.payload or {})
    secret_field, sealed_secret = notice.secret_field, notice.sealed_secret

    db.session.delete(notice)
    db.session.commit()

    if expired:
        return None

    if current_principal_id(guard) != principal_id:
        current_app.logger.warning(
            "Sealed notice %s claimed outside its %s session; discarded", category, guard
        )
        return None

    if secret_field and sealed_secret:
        payload[secret_field] = _mask(token, bytes.fromhex(sealed_secret)).decode("utf-8")
    return payload


def cleanup_expired() -> int:
    """Delete notices nobody claimed in time."""
    deleted = db.session.query(SealedNotice).filter(
        SealedNotice.expires_at < utcnow()
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted
