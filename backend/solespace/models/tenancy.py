from __future__ import annotations

from ..extensions import db
from .auth import Guard, PrincipalMixin
from solespace.time_utils import to_iso_date, to_utc_z


class ShopOwner(PrincipalMixin, db.Model):
    """
    Multi-tenant root: every tenant is a ShopOwner.

    WHY: Employees, staff Users and audit entries all hang off shop_owner_id.
    No tenant may read or mutate rows belonging to another.

    Status flow:
    1. pending  - self-registered, awaiting super admin review
    2. approved - may log in and manage the shop
    3. rejected - terminal; rejection_reason records why
    """
    __tablename__ = "shop_owners"
    __table_args__ = {"sqlite_autoincrement": True}

    guard = Guard.SHOP_OWNER

    STATUS_PENDING = "pending"
    STATUS_APPROVED = "approved"
    STATUS_REJECTED = "rejected"
    STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)

    BUSINESS_TYPES = ("retail", "repair", "both")
    REGISTRATION_TYPES = ("individual", "company")

    first_name = db.Column(db.String(255), nullable=False)
    last_name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(20), nullable=False)

    business_name = db.Column(db.String(255), nullable=False)
    business_address = db.Column(db.String(255), nullable=False)
    business_type = db.Column(db.String(16), nullable=False)
    registration_type = db.Column(db.String(16), nullable=False)

    # [{"day": "Monday", "open": "09:00", "close": "17:00"}, ...]
    operating_hours = db.Column(db.JSON, nullable=True)

    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING, index=True)
    rejection_reason = db.Column(db.Text, nullable=True)

    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    reviewed_by_admin_id = db.Column(db.Integer, db.ForeignKey("super_admins.id"), nullable=True)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    reviewed_by = db.relationship("SuperAdmin")

    def __repr__(self) -> str:
        return f"<ShopOwner id={self.id} business_name={self.business_name!r} status={self.status}>"

    @property
    def display_name(self) -> str:
        return self.business_name or self.email

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "business_name": self.business_name,
            "business_address": self.business_address,
            "business_type": self.business_type,
            "registration_type": self.registration_type,
            "operating_hours": self.operating_hours or [],
            "status": self.status,
            "rejection_reason": self.rejection_reason,
            "reviewed_at": to_utc_z(self.reviewed_at) if self.reviewed_at else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Employee(PrincipalMixin, db.Model):
    """
    Staff member scoped to exactly one ShopOwner.

    Never created on its own: employee provisioning inserts it together with
    the User that carries the staff member's login and system role. The two
    are linked by email.
    """
    __tablename__ = "employees"
    __table_args__ = (
        db.Index("ix_employees_shop_owner_status", "shop_owner_id", "status"),
        {"sqlite_autoincrement": True},
    )

    guard = Guard.EMPLOYEE

    STATUS_ACTIVE = "active"
    STATUS_INACTIVE = "inactive"
    STATUS_ON_LEAVE = "on_leave"
    STATUSES = (STATUS_ACTIVE, STATUS_INACTIVE, STATUS_ON_LEAVE)

    shop_owner_id = db.Column(db.Integer, db.ForeignKey("shop_owners.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(20), nullable=True)
    address = db.Column(db.String(255), nullable=True)

    position = db.Column(db.String(100), nullable=True)
    department = db.Column(db.String(100), nullable=True, index=True)
    branch = db.Column(db.String(100), nullable=True)
    functional_role = db.Column(db.String(32), nullable=True)

    salary = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    hire_date = db.Column(db.Date, nullable=True)

    status = db.Column(db.String(16), nullable=False, default=STATUS_ACTIVE, index=True)

    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    shop_owner = db.relationship("ShopOwner", backref=db.backref("employees", lazy=True))

    def __repr__(self) -> str:
        return f"<Employee id={self.id} email={self.email!r} shop_owner_id={self.shop_owner_id}>"

    @property
    def display_name(self) -> str:
        return self.name or self.email

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def belongs_to_shop(self, shop_owner_id: int) -> bool:
        return self.shop_owner_id == shop_owner_id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_owner_id": self.shop_owner_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "position": self.position,
            "department": self.department,
            "branch": self.branch,
            "functional_role": self.functional_role,
            "salary": str(self.salary) if self.salary is not None else None,
            "hire_date": to_iso_date(self.hire_date),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
