# Overview: Service-layer operations for account status; encapsulates business logic and database work.

"""
Account Status Lifecycle Service

================================================================================
PURPOSE: One status per principal, fixed transitions per principal kind
================================================================================

STATE MACHINES:

    ShopOwner:  pending -> approved        (terminal)
                pending -> rejected        (terminal, rejection_reason kept)

    Employee:   active <-> inactive <-> on_leave   (free)

    SuperAdmin: active <-> suspended       (free; never on yourself)

    User:       active <-> suspended <-> inactive  (free)

RULES:
1. Only the ACTIVE_STATUSES of a kind may authenticate
2. ShopOwner review happens exactly once
3. Each transition is a named operation; there is no generic setter
4. Suspending does NOT revoke sessions here: the guard notices the status on
   the next request, logs the principal out and shows why

================================================================================
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Employee, Guard, ShopOwner, SuperAdmin, User
from ..validation import ConflictError
from solespace.time_utils import utcnow


# Guard -> statuses allowed to authenticate
ACTIVE_STATUSES = {
    Guard.USER: frozenset({User.STATUS_ACTIVE}),
    Guard.EMPLOYEE: frozenset({Employee.STATUS_ACTIVE}),
    Guard.SHOP_OWNER: frozenset({ShopOwner.STATUS_APPROVED}),
    Guard.SUPER_ADMIN: frozenset({SuperAdmin.STATUS_ACTIVE}),
}

# (guard, status) -> message shown when that principal is refused
NOT_ACTIVE_MESSAGES = {
    (Guard.SHOP_OWNER, ShopOwner.STATUS_PENDING): "Your shop registration is still pending approval.",
    (Guard.SHOP_OWNER, ShopOwner.STATUS_REJECTED): "Your shop registration was rejected.",
    (Guard.SUPER_ADMIN, SuperAdmin.STATUS_SUSPENDED): (
        "Your account has been suspended. Please contact system administrator."
    ),
    (Guard.SUPER_ADMIN, SuperAdmin.STATUS_INACTIVE): (
        "Your account has been suspended. Please contact system administrator."
    ),
    (Guard.EMPLOYEE, Employee.STATUS_INACTIVE): (
        "Your employee account is inactive. Please contact your shop owner."
    ),
    (Guard.EMPLOYEE, Employee.STATUS_ON_LEAVE): (
        "Your employee account is on leave. Please contact your shop owner."
    ),
    (Guard.USER, User.STATUS_SUSPENDED): (
        "Your account has been suspended. Please contact support."
    ),
    (Guard.USER, User.STATUS_INACTIVE): (
        "Your account is inactive. Please contact support."
    ),
}

GENERIC_NOT_ACTIVE_MESSAGE = "Your account is not active."


class InvalidStatusTransition(ConflictError):
    """
    Raised when a status change is not allowed for the principal kind.

    Domain error: the request is well-formed but violates the lifecycle.
    """

    def __init__(self, kind: str, from_status: str | None, to_status: str):
        self.kind = kind
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Cannot change {kind} status from '{from_status}' to '{to_status}'")


def is_active(principal) -> bool:
    """True iff the principal's status is in its kind's active set."""
    if principal is None:
        return False
    if getattr(principal, "deleted_at", None) is not None:
        return False
    return principal.status in ACTIVE_STATUSES.get(principal.guard, frozenset())


def not_active_message(principal) -> str:
    """Kind- and status-specific explanation for a refused principal."""
    message = NOT_ACTIVE_MESSAGES.get((principal.guard, principal.status), GENERIC_NOT_ACTIVE_MESSAGE)
    if (
        principal.guard == Guard.SHOP_OWNER
        and principal.status == ShopOwner.STATUS_REJECTED
        and principal.rejection_reason
    ):
        message = f"{message} Reason: {principal.rejection_reason}"
    return message


def _set_status(principal, kind: str, to_status: str, allowed: tuple) -> str:
    if to_status not in allowed:
        raise InvalidStatusTransition(kind, principal.status, to_status)
    from_status = principal.status
    principal.status = to_status
    return from_status


# ----------------------------------------------------------------------
# ShopOwner
# ----------------------------------------------------------------------

def _review_shop_owner(shop_owner: ShopOwner, to_status: str, admin: SuperAdmin | None) -> None:
    if shop_owner.status != ShopOwner.STATUS_PENDING:
        raise InvalidStatusTransition("shop_owner", shop_owner.status, to_status)
    shop_owner.status = to_status
    shop_owner.reviewed_at = utcnow()
    shop_owner.reviewed_by_admin_id = admin.id if admin is not None else None


def approve_shop_owner(shop_owner: ShopOwner, admin: SuperAdmin | None = None) -> ShopOwner:
    """
    pending -> approved.

    Raises InvalidStatusTransition if the registration was already reviewed.
    """
    _review_shop_owner(shop_owner, ShopOwner.STATUS_APPROVED, admin)
    shop_owner.rejection_reason = None
    db.session.commit()

    current_app.logger.info(
        "Shop owner %s approved by admin %s", shop_owner.id, admin.id if admin else "cli"
    )
    return shop_owner


def reject_shop_owner(
    shop_owner: ShopOwner,
    reason: str | None = None,
    admin: SuperAdmin | None = None,
) -> ShopOwner:
    """
    pending -> rejected. The reason is kept and shown at login.

    Raises InvalidStatusTransition if the registration was already reviewed.
    """
    _review_shop_owner(shop_owner, ShopOwner.STATUS_REJECTED, admin)
    shop_owner.rejection_reason = (reason or "").strip() or None
    db.session.commit()

    current_app.logger.info(
        "Shop owner %s rejected by admin %s", shop_owner.id, admin.id if admin else "cli"
    )
    return shop_owner


# ----------------------------------------------------------------------
# Employee
# ----------------------------------------------------------------------

def set_employee_status(employee: Employee, status: str, *, commit: bool = True) -> str:
    """
    Move an employee among active / inactive / on_leave.

    Returns the previous status. Soft-deleted employees cannot change status.
    """
    if employee.is_deleted:
        raise InvalidStatusTransition("employee", "deleted", status)
    from_status = _set_status(employee, "employee", status, Employee.STATUSES)
    if commit:
        db.session.commit()
    return from_status


# ----------------------------------------------------------------------
# SuperAdmin
# ----------------------------------------------------------------------

def suspend_super_admin(target: SuperAdmin, acting_admin: SuperAdmin | None = None) -> SuperAdmin:
    """active -> suspended. An admin cannot suspend its own account."""
    if acting_admin is not None and acting_admin.id == target.id:
        raise ConflictError("You cannot suspend your own account.")
    _set_status(target, "super_admin", SuperAdmin.STATUS_SUSPENDED, SuperAdmin.STATUSES)
    db.session.commit()

    current_app.logger.info(
        "Super admin %s suspended by admin %s", target.id, acting_admin.id if acting_admin else "cli"
    )
    return target


def activate_super_admin(target: SuperAdmin, acting_admin: SuperAdmin | None = None) -> SuperAdmin:
    _set_status(target, "super_admin", SuperAdmin.STATUS_ACTIVE, SuperAdmin.STATUSES)
    db.session.commit()

    current_app.logger.info(
        "Super admin %s activated by admin %s", target.id, acting_admin.id if acting_admin else "cli"
    )
    return target


# ----------------------------------------------------------------------
# User
# ----------------------------------------------------------------------

def suspend_user(user: User, *, commit: bool = True) -> User:
    _set_status(user, "user", User.STATUS_SUSPENDED, User.STATUSES)
    if commit:
        db.session.commit()
    return user


def activate_user(user: User, *, commit: bool = True) -> User:
    _set_status(user, "user", User.STATUS_ACTIVE, User.STATUSES)
    if commit:
        db.session.commit()
    return user


def deactivate_user(user: User, *, commit: bool = True) -> User:
    _set_status(user, "user", User.STATUS_INACTIVE, User.STATUSES)
    if commit:
        db.session.commit()
    return user
