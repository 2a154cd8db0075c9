from __future__ import annotations

from ..extensions import db
from solespace.time_utils import to_utc_z


class SecurityEvent(db.Model):
    """
    Authentication event log, one row per login attempt / logout.

    WHY: Login throttling counts LOGIN_FAILED rows per guard + identifier, and
    forced logouts leave a trace for the operator.

    IMMUTABLE: Never update or delete except by retention cleanup.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_guard_identifier", "guard", "identifier", "event_type"),
        db.Index("ix_security_events_occurred", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    LOGIN_FAILED = "LOGIN_FAILED"
    LOGIN_SUCCEEDED = "LOGIN_SUCCEEDED"
    LOGOUT = "LOGOUT"
    FORCED_LOGOUT = "FORCED_LOGOUT"

    id = db.Column(db.Integer, primary_key=True)

    guard = db.Column(db.String(16), nullable=False)
    identifier = db.Column(db.String(255), nullable=False)  # normalized email
    principal_id = db.Column(db.Integer, nullable=True)  # Nullable for unknown emails

    event_type = db.Column(db.String(32), nullable=False, index=True)
    reason = db.Column(db.Text, nullable=True)

    # Client context
    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "guard": self.guard,
            "identifier": self.identifier,
            "principal_id": self.principal_id,
            "event_type": self.event_type,
            "reason": self.reason,
            "ip_address": self.ip_address,
            "occurred_at": to_utc_z(self.occurred_at),
        }


class AuditLog(db.Model):
    """
    Append-only log of administrative actions inside a shop.

    Written best-effort after the action commits; a failed write never
    affects the action itself (see audit_service).
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("ix_audit_logs_shop_created", "shop_owner_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    shop_owner_id = db.Column(db.Integer, db.ForeignKey("shop_owners.id"), nullable=True, index=True)
    actor_user_id = db.Column(db.Integer, nullable=True)

    action = db.Column(db.String(64), nullable=False, index=True)
    target_type = db.Column(db.String(64), nullable=True)
    target_id = db.Column(db.Integer, nullable=True)

    # "metadata" is reserved on declarative classes
    meta = db.Column("metadata", db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_owner_id": self.shop_owner_id,
            "actor_user_id": self.actor_user_id,
            "action": self.action,
            "target_type": self.target_type,
            "target_id": self.target_id,
            "metadata": self.meta or {},
            "created_at": to_utc_z(self.created_at),
        }


class SealedNotice(db.Model):
    """
    One-time notice kept server-side until the next page read claims it.

    WHY: The browser session is a signed (not encrypted) cookie. A secret such
    as a temporary password must never travel in it; the cookie carries only
    the opaque token that claims this row.

    SECURITY NOTES:
    - Token stored hashed (SHA-256), like guard session tokens
    - The secret field is stored masked with a pad derived from the token, so
      the row alone does not reveal it
    - Bound to the guard + principal that created it; deleted when claimed
    """
    __tablename__ = "sealed_notices"
    __table_args__ = (
        db.Index("ix_sealed_notices_expires", "expires_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    guard = db.Column(db.String(16), nullable=False)
    principal_id = db.Column(db.Integer, nullable=False)

    category = db.Column(db.String(64), nullable=False)
    payload = db.Column(db.JSON, nullable=False)

    secret_field = db.Column(db.String(64), nullable=True)
    sealed_secret = db.Column(db.String(512), nullable=True)

    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<SealedNotice id={self.id} guard={self.guard} category={self.category}>"
