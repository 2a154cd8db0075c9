# Overview: Service-layer operations for employee provisioning; encapsulates business logic and database work.

"""
Employee Provisioning Workflow

================================================================================
PURPOSE: An approved ShopOwner creates a staff member = Employee + User, atomically
================================================================================

FLOW:
1. Validate the form (field -> [messages] on failure)
2. Uniqueness pre-check across BOTH stores
       employees.email taken -> EmailAlreadyEmployee
       users.email taken     -> EmailAlreadyUser
3. One transaction:
       INSERT employee (scoped to the acting shop)
       INSERT user     (temporary password, force_password_change, system role)
   Both or neither.
4. Post-commit, best-effort audit `employee_created`
5. Return the one-time temporary password to the caller

RULES (NON-NEGOTIABLE):
- The temporary password is never logged and never stored in cleartext
- The pre-check is advisory: unique constraints on employees.email and
  users.email are the backstop, and an IntegrityError at flush/commit maps
  back to the same uniqueness error
- An audit failure never undoes or changes the provisioning outcome

================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import Employee, ShopOwner, User
from ..roles import FunctionalRole, SystemRole, normalize_system_role
from ..validation import MAX_MONEY, FieldRule, UniquenessConflict, validate_form
from . import audit_service, auth_service
from solespace.time_utils import today


EMAIL_ALREADY_EMPLOYEE_MESSAGE = "This email is already registered as an employee"
EMAIL_ALREADY_USER_MESSAGE = "User account already exists for this email"
GENERIC_FAILURE_MESSAGE = "Unable to create employee. Please try again."

DEFAULT_POSITION = "Staff"
DEFAULT_DEPARTMENT = "General"


class EmailAlreadyEmployee(UniquenessConflict):
    def __init__(self):
        super().__init__("email", EMAIL_ALREADY_EMPLOYEE_MESSAGE)


class EmailAlreadyUser(UniquenessConflict):
    def __init__(self):
        super().__init__("email", EMAIL_ALREADY_USER_MESSAGE)


class TransactionFailure(Exception):
    """Storage failed mid-provisioning; nothing was persisted."""


@dataclass(frozen=True)
class ProvisioningResult:
    employee: Employee
    user: User
    temporary_password: str = field(repr=False)

    def flash_payload(self) -> dict:
        """One-time payload shown to the shop owner after the redirect."""
        return {
            "employee": {
                "id": self.employee.id,
                "name": self.employee.name,
                "email": self.employee.email,
            },
            "user_id": self.user.id,
            "temporary_password": self.temporary_password,
        }


def _upper(value: str) -> str:
    return value.upper()


def _lower(value: str) -> str:
    return value.lower()


EMPLOYEE_RULES = {
    "name": FieldRule(
        required=True, max_length=255,
        messages={"required": "Employee name is required"},
    ),
    "email": FieldRule(
        kind="email", required=True, max_length=255,
        messages={"required": "Email is required"},
    ),
    "phone": FieldRule(max_length=20),
    "address": FieldRule(max_length=255),
    "position": FieldRule(max_length=100, default=DEFAULT_POSITION),
    "department": FieldRule(max_length=100, default=DEFAULT_DEPARTMENT),
    "branch": FieldRule(max_length=100),
    "functional_role": FieldRule(
        normalize=_upper, choices=FunctionalRole.ALL,
        messages={"choices": "The selected functional role is invalid."},
    ),
    "salary": FieldRule(
        kind="decimal", min_value=Decimal("0"), max_value=MAX_MONEY, default=lambda: Decimal("0.00"),
        messages={
            "type": "Salary must be a valid number",
            "min": "Salary must be at least 0",
        },
    ),
    "hire_date": FieldRule(kind="date", default=today),
    "status": FieldRule(
        normalize=_lower, choices=Employee.STATUSES, default=Employee.STATUS_ACTIVE,
    ),
    "role": FieldRule(
        required=True, normalize=normalize_system_role, choices=SystemRole.ALL,
        messages={
            "required": "Role is required",
            "choices": "Role must be one of: " + ", ".join(SystemRole.ALL),
        },
    ),
}


def split_name(name: str) -> tuple[str, str]:
    """
    First whitespace-separated token, and the rest joined by single spaces.

    "Juan Dela Cruz" -> ("Juan", "Dela Cruz"); "Madonna" -> ("Madonna", "")
    """
    parts = (name or "").split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def _ensure_email_free(email: str) -> None:
    """Employee store is checked first, then the User store."""
    if db.session.query(Employee.id).filter(func.lower(Employee.email) == email).first():
        raise EmailAlreadyEmployee()
    if db.session.query(User.id).filter(func.lower(User.email) == email).first():
        raise EmailAlreadyUser()


def _create_user_account(shop_owner: ShopOwner, data: dict, password_hash: str) -> User:
    first_name, last_name = split_name(data["name"])
    user = User(
        name=data["name"],
        first_name=first_name,
        last_name=last_name,
        email=data["email"],
        phone=data.get("phone") or "",
        address=data.get("address") or "",
        shop_owner_id=shop_owner.id,
        role=data["role"],
        position=data.get("position"),
        password_hash=password_hash,
        status=User.STATUS_ACTIVE,
        force_password_change=True,
    )
    db.session.add(user)
    return user


def provision_employee(shop_owner: ShopOwner, payload: dict) -> ProvisioningResult:
    """
    Create an Employee and its User for `shop_owner`.

    Raises:
        ValidationError: form problems, per field
        EmailAlreadyEmployee / EmailAlreadyUser: email taken in either store
        TransactionFailure: storage failed; nothing persisted
    """
    data = validate_form(payload, EMPLOYEE_RULES)
    _ensure_email_free(data["email"])

    temporary_password = auth_service.generate_temporary_password()
    password_hash = auth_service.hash_password(temporary_password)

    try:
        employee = Employee(
            shop_owner_id=shop_owner.id,
            name=data["name"],
            email=data["email"],
            password_hash=password_hash,
            phone=data.get("phone") or "",
            address=data.get("address"),
            position=data["position"],
            department=data["department"],
            branch=data.get("branch"),
            functional_role=data.get("functional_role"),
            salary=data["salary"],
            hire_date=data["hire_date"],
            status=data["status"],
        )
        db.session.add(employee)
        db.session.flush()

        user = _create_user_account(shop_owner, data, password_hash)
        db.session.flush()

        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        current_app.logger.warning(
            "Provisioning for shop %s hit a unique constraint: %s", shop_owner.id, exc.orig
        )
        # Concurrent insert won the race; report it the same way as the pre-check
        _ensure_email_free(data["email"])
        raise TransactionFailure(GENERIC_FAILURE_MESSAGE) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Provisioning for shop %s failed", shop_owner.id)
        raise TransactionFailure(GENERIC_FAILURE_MESSAGE) from exc
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Shop %s provisioned employee %s with user %s (role %s)",
        shop_owner.id, employee.id, user.id, user.role,
    )

    audit_service.record_action(
        shop_owner_id=shop_owner.id,
        actor_user_id=shop_owner.id,
        action=audit_service.ACTION_EMPLOYEE_CREATED,
        target_type="employee",
        target_id=employee.id,
        metadata={
            "assigned_role": user.role,
            "employee_email": employee.email,
            "functional_role": employee.functional_role,
            "branch": employee.branch,
        },
    )

    return ProvisioningResult(employee=employee, user=user, temporary_password=temporary_password)
