from __future__ import annotations

from sqlalchemy.orm import declared_attr

from ..extensions import db
from solespace.time_utils import to_utc_z


class Guard:
    """
    Authentication guards. Each guard is bound to exactly one principal table
    and its own slot in the browser session.
    """
    USER = "user"
    EMPLOYEE = "employee"
    SHOP_OWNER = "shop_owner"
    SUPER_ADMIN = "super_admin"

    ALL = (USER, EMPLOYEE, SHOP_OWNER, SUPER_ADMIN)


class PrincipalMixin:
    """
    Columns every authenticatable account kind carries.

    The four kinds share no table: email uniqueness is per table and each
    kind defines its own status vocabulary (see lifecycle_service).
    """
    guard = ""

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=True)

    @declared_attr
    def created_at(cls):
        return db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def display_name(self) -> str:
        return self.email


class User(PrincipalMixin, db.Model):
    """
    Customer accounts and the login credential of every shop staff member.

    Staff Users are created only by employee provisioning and carry a system
    role, the owning shop, and force_password_change until first rotation.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_shop_owner_id", "shop_owner_id"),
        {"sqlite_autoincrement": True},
    )

    guard = Guard.USER

    STATUS_ACTIVE = "active"
    STATUS_SUSPENDED = "suspended"
    STATUS_INACTIVE = "inactive"
    STATUSES = (STATUS_ACTIVE, STATUS_SUSPENDED, STATUS_INACTIVE)

    name = db.Column(db.String(255), nullable=True)
    first_name = db.Column(db.String(255), nullable=False, default="")
    last_name = db.Column(db.String(255), nullable=False, default="")
    phone = db.Column(db.String(20), nullable=True)
    age = db.Column(db.Integer, nullable=True)
    address = db.Column(db.String(500), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=STATUS_ACTIVE, index=True)

    # Staff only: owning shop and assigned system role (see roles.SystemRole)
    shop_owner_id = db.Column(db.Integer, db.ForeignKey("shop_owners.id"), nullable=True)
    role = db.Column(db.String(32), nullable=True)
    position = db.Column(db.String(100), nullable=True)

    force_password_change = db.Column(db.Boolean, nullable=False, default=False)

    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)
    last_login_ip = db.Column(db.String(45), nullable=True)

    shop_owner = db.relationship("ShopOwner", backref=db.backref("staff_users", lazy=True))

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        full = f"{self.first_name} {self.last_name}".strip()
        return full or self.email

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.display_name,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "status": self.status,
            "role": self.role,
            "shop_owner_id": self.shop_owner_id,
            "position": self.position,
            "force_password_change": self.force_password_change,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class SuperAdmin(PrincipalMixin, db.Model):
    """Platform operators. Gate every /admin/* route."""
    __tablename__ = "super_admins"
    __table_args__ = {"sqlite_autoincrement": True}

    guard = Guard.SUPER_ADMIN

    STATUS_ACTIVE = "active"
    STATUS_SUSPENDED = "suspended"
    STATUS_INACTIVE = "inactive"
    STATUSES = (STATUS_ACTIVE, STATUS_SUSPENDED, STATUS_INACTIVE)

    name = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=STATUS_ACTIVE, index=True)

    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)
    last_login_ip = db.Column(db.String(45), nullable=True)

    @property
    def display_name(self) -> str:
        return self.name or self.email

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
            "last_login_ip": self.last_login_ip,
        }


class GuardSession(db.Model):
    """
    Server-side record behind a guard's slot in the browser session.

    WHY: The cookie only carries an opaque token per guard. Revoking the row
    logs that guard out everywhere without touching the other guards.

    SECURITY NOTES:
    - Tokens stored hashed (SHA-256), never in plaintext
    - Absolute and idle timeouts from config
    - A new token is issued on every login (session fixation)
    """
    __tablename__ = "guard_sessions"
    __table_args__ = (
        db.Index("ix_guard_sessions_principal", "guard", "principal_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    guard = db.Column(db.String(16), nullable=False)
    principal_id = db.Column(db.Integer, nullable=False)

    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)  # IPv6 max length

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "guard": self.guard,
            "principal_id": self.principal_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
            "revoked_at": to_utc_z(self.revoked_at) if self.revoked_at else None,
        }
