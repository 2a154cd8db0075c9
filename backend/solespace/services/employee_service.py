# Overview: Service-layer operations for employees; encapsulates business logic and database work.

"""
Employee management inside one shop: listing, edits, status changes and
soft delete.

MULTI-TENANT: Every lookup is scoped to the acting shop_owner_id. An employee
of another shop is indistinguishable from a missing one.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import Employee, Guard, ShopOwner, User
from ..validation import validate_form
from . import audit_service, lifecycle_service, provisioning_service, session_service
from solespace.time_utils import utcnow


def get_employee_for_shop(shop_owner_id: int, employee_id: int) -> Employee | None:
    """Live (not soft-deleted) employee of this shop, or None."""
    return db.session.query(Employee).filter(
        Employee.id == employee_id,
        Employee.shop_owner_id == shop_owner_id,
        Employee.deleted_at.is_(None),
    ).first()


def linked_user(employee: Employee) -> User | None:
    """The staff User created alongside the employee (same email, same shop)."""
    return db.session.query(User).filter(
        func.lower(User.email) == employee.email.lower(),
        User.shop_owner_id == employee.shop_owner_id,
    ).first()


def list_employees(shop_owner_id: int, *, status: str | None = None) -> list[dict]:
    """
    Employees of the shop (soft-deleted excluded), newest first, each with
    its linked User's id, role and status.
    """
    query = db.session.query(Employee).filter(
        Employee.shop_owner_id == shop_owner_id,
        Employee.deleted_at.is_(None),
    )
    if status:
        query = query.filter(Employee.status == status)
    employees = query.order_by(Employee.id.desc()).all()

    users = db.session.query(User).filter(User.shop_owner_id == shop_owner_id).all()
    users_by_email = {u.email.lower(): u for u in users}

    rows = []
    for employee in employees:
        row = employee.to_dict()
        user = users_by_email.get(employee.email.lower())
        row["user"] = {
            "id": user.id,
            "role": user.role,
            "status": user.status,
            "force_password_change": user.force_password_change,
        } if user else None
        rows.append(row)
    return rows


def change_status(shop_owner: ShopOwner, employee: Employee, status: str) -> Employee:
    """
    Suspend (inactive), activate or put on leave; audited as
    employee_status_changed {from, to}.
    """
    from_status = lifecycle_service.set_employee_status(employee, status)

    current_app.logger.info(
        "Shop %s moved employee %s from %s to %s", shop_owner.id, employee.id, from_status, status
    )
    audit_service.record_action(
        shop_owner_id=shop_owner.id,
        actor_user_id=shop_owner.id,
        action=audit_service.ACTION_EMPLOYEE_STATUS_CHANGED,
        target_type="employee",
        target_id=employee.id,
        metadata={"from": from_status, "to": status},
    )
    return employee


def soft_delete(shop_owner: ShopOwner, employee: Employee) -> Employee:
    """
    Mark the employee deleted, flip its User to inactive and revoke the
    sessions of both; audited as employee_deleted.
    """
    employee.deleted_at = utcnow()

    user = linked_user(employee)
    if user is not None:
        lifecycle_service.deactivate_user(user, commit=False)
        session_service.revoke_all_principal_sessions(
            Guard.USER, user.id, reason="Employee deleted", commit=False
        )
    session_service.revoke_all_principal_sessions(
        Guard.EMPLOYEE, employee.id, reason="Employee deleted", commit=False
    )
    db.session.commit()

    current_app.logger.info("Shop %s deleted employee %s", shop_owner.id, employee.id)
    audit_service.record_action(
        shop_owner_id=shop_owner.id,
        actor_user_id=shop_owner.id,
        action=audit_service.ACTION_EMPLOYEE_DELETED,
        target_type="employee",
        target_id=employee.id,
        metadata={
            "employee_email": employee.email,
            "user_id": user.id if user else None,
        },
    )
    return employee


# Always submitted; every other field is updated only when present
UPDATE_REQUIRED_FIELDS = ("name", "email", "role")
UPDATE_FIELDS = (
    "name", "email", "phone", "address", "position", "department", "branch",
    "functional_role", "salary", "hire_date",
)


def _update_rules(payload: dict) -> dict:
    return {
        name: rule for name, rule in provisioning_service.EMPLOYEE_RULES.items()
        if name != "status" and (name in UPDATE_REQUIRED_FIELDS or name in payload)
    }


def _ensure_email_free_for(email: str, employee: Employee, user: User | None) -> None:
    """Like provisioning's pre-check, ignoring the employee's own rows."""
    if db.session.query(Employee.id).filter(
        func.lower(Employee.email) == email, Employee.id != employee.id,
    ).first():
        raise provisioning_service.EmailAlreadyEmployee()

    query = db.session.query(User.id).filter(func.lower(User.email) == email)
    if user is not None:
        query = query.filter(User.id != user.id)
    if query.first():
        raise provisioning_service.EmailAlreadyUser()


def update_employee(shop_owner: ShopOwner, employee: Employee, payload: dict) -> Employee:
    """
    Edit an employee and keep its linked User in step (name, email, role,
    position, phone, address); audited as employee_updated {changed, assigned_role}.

    Raises ValidationError, EmailAlreadyEmployee / EmailAlreadyUser or
    TransactionFailure.
    """
    payload = payload or {}
    data = validate_form(payload, _update_rules(payload))

    user = linked_user(employee)
    _ensure_email_free_for(data["email"], employee, user)

    changed = sorted(
        name for name in UPDATE_FIELDS
        if name in data and getattr(employee, name) != data[name]
    )
    if user is not None and user.role != data["role"]:
        changed.append("role")
    for name in UPDATE_FIELDS:
        if name in data:
            setattr(employee, name, data[name])

    if user is not None:
        first_name, last_name = provisioning_service.split_name(employee.name)
        user.name = employee.name
        user.first_name = first_name
        user.last_name = last_name
        user.email = employee.email
        user.role = data["role"]
        user.position = employee.position
        user.phone = employee.phone or ""
        user.address = employee.address or ""

    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        current_app.logger.warning("Employee %s update hit a unique constraint: %s", employee.id, exc.orig)
        _ensure_email_free_for(data["email"], employee, linked_user(employee))
        raise provisioning_service.TransactionFailure("Unable to update employee. Please try again.") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Employee %s update failed", employee.id)
        raise provisioning_service.TransactionFailure("Unable to update employee. Please try again.") from exc

    current_app.logger.info("Shop %s updated employee %s", shop_owner.id, employee.id)
    audit_service.record_action(
        shop_owner_id=shop_owner.id,
        actor_user_id=shop_owner.id,
        action=audit_service.ACTION_EMPLOYEE_UPDATED,
        target_type="employee",
        target_id=employee.id,
        metadata={
            "changed": changed,
            "assigned_role": user.role if user else data["role"],
        },
    )
    return employee
