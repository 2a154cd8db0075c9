# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Multi-Guard Authentication Service

WHY: Four account kinds log in through four independent guards. Each guard
looks up its own table; a principal of one kind can never satisfy another
guard. Every login attempt is recorded for throttling and attribution.

LOGIN ORDER (per guard):
1. Identifier locked by throttling          -> AccountLocked
2. Email not found (case-insensitive)       -> InvalidCredentials
3. Status not in the kind's active set      -> AccountNotActive(status)
4. Password mismatch                        -> InvalidCredentials
5. Success: last_login_at / last_login_ip for User and SuperAdmin

SECURITY NOTES:
- Passwords hashed with bcrypt (rounds from BCRYPT_LOG_ROUNDS)
- Unknown emails still pay for one bcrypt check so timing does not reveal
  which emails exist; the error is identical to a wrong password
- Temporary passwords come from `secrets`, never `random`
- Session tokens managed separately (see session_service.py)
"""

import secrets
import string

import bcrypt
from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Employee, Guard, ShopOwner, SuperAdmin, User
from ..validation import FieldRule, UniquenessConflict, ValidationError, validate_form
from . import lifecycle_service, login_throttle_service
from solespace.time_utils import utcnow


PRINCIPAL_MODELS = {
    Guard.USER: User,
    Guard.EMPLOYEE: Employee,
    Guard.SHOP_OWNER: ShopOwner,
    Guard.SUPER_ADMIN: SuperAdmin,
}

TEMPORARY_PASSWORD_ALPHABET = string.ascii_letters + string.digits

INVALID_CREDENTIALS_MESSAGE = "The provided credentials do not match our records."


class AuthError(Exception):
    """Base for every authentication refusal. `message` is safe to show."""

    status_code = 401

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidCredentials(AuthError):
    """Unknown email or wrong password. The two are indistinguishable."""

    def __init__(self):
        super().__init__(INVALID_CREDENTIALS_MESSAGE)


class AccountNotActive(AuthError):
    """Credentials belong to a principal whose status forbids login."""

    status_code = 403

    def __init__(self, status: str, message: str):
        self.status = status
        super().__init__(message)


class AccountLocked(AuthError):
    """Too many failed attempts for this guard + email."""

    status_code = 429

    def __init__(self, seconds_remaining: int):
        self.seconds_remaining = seconds_remaining
        minutes = max(1, (seconds_remaining + 59) // 60)
        super().__init__(
            f"Too many login attempts. Please try again in {minutes} minute{'s' if minutes != 1 else ''}."
        )


class Unauthenticated(AuthError):
    """No principal for the guard a route requires."""

    def __init__(self, guard: str):
        self.guard = guard
        super().__init__("Please login to continue.")


class PasswordValidationError(ValidationError):
    """Raised when a new password doesn't meet the rules for its account kind."""

    def __init__(self, message: str, field_name: str = "password"):
        super().__init__({field_name: [message]})


# ----------------------------------------------------------------------
# Password primitives
# ----------------------------------------------------------------------

def _log_rounds() -> int:
    return current_app.config.get("BCRYPT_LOG_ROUNDS", 12)


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Cost factor comes from BCRYPT_LOG_ROUNDS (12 in production, 4 in tests).
    """
    salt = bcrypt.gensalt(rounds=_log_rounds())
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str | None) -> bool:
    """
    Verify password against bcrypt hash.

    Returns False for a missing or malformed hash instead of raising.
    """
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


_dummy_hashes: dict[int, str] = {}


def _dummy_check(password: str) -> None:
    """Spend one bcrypt verification at the configured cost."""
    rounds = _log_rounds()
    if rounds not in _dummy_hashes:
        _dummy_hashes[rounds] = bcrypt.hashpw(
            secrets.token_hex(16).encode('utf-8'), bcrypt.gensalt(rounds=rounds)
        ).decode('utf-8')
    verify_password(password, _dummy_hashes[rounds])


def validate_password_strength(password: str, *, min_length: int = 8, field_name: str = "password") -> None:
    """
    Raises PasswordValidationError if the password is too short.

    Customer self-registration allows 6; every other account kind requires 8.
    """
    if password is None or len(password) < min_length:
        raise PasswordValidationError(
            f"Password must be at least {min_length} characters", field_name
        )


def generate_temporary_password(length: int | None = None) -> str:
    """
    Fresh alphanumeric password handed to a newly provisioned staff member.

    WHY secrets.choice: Cryptographically secure; the value is a credential.
    """
    if length is None:
        length = current_app.config.get("TEMPORARY_PASSWORD_LENGTH", 10)
    return "".join(secrets.choice(TEMPORARY_PASSWORD_ALPHABET) for _ in range(length))


# ----------------------------------------------------------------------
# Principal lookup
# ----------------------------------------------------------------------

def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def model_for_guard(guard: str):
    try:
        return PRINCIPAL_MODELS[guard]
    except KeyError:
        raise ValueError(f"Unknown guard '{guard}'")


def find_principal(guard: str, email: str):
    """Case-insensitive email lookup within the guard's own table."""
    model = model_for_guard(guard)
    normalized = normalize_email(email)
    if not normalized:
        return None
    query = db.session.query(model).filter(func.lower(model.email) == normalized)
    if model is Employee:
        query = query.filter(Employee.deleted_at.is_(None))
    return query.first()


def get_principal(guard: str, principal_id: int):
    return db.session.get(model_for_guard(guard), principal_id)


def list_users(status: str | None = None, search: str | None = None) -> list[User]:
    """
    Users for the admin area, newest first.

    `search` matches name, first/last name, email or phone, ignoring case.
    """
    query = db.session.query(User)
    if status:
        if status not in User.STATUSES:
            raise ValidationError({"status": ["The selected status is invalid."]})
        query = query.filter(User.status == status)

    term = (search or "").strip().lower()
    if term:
        query = query.filter(db.or_(*(
            func.lower(column).contains(term, autoescape=True)
            for column in (User.name, User.first_name, User.last_name, User.email, User.phone)
        )))
    return query.order_by(User.id.desc()).all()


def user_counts() -> dict:
    rows = db.session.query(User.status, func.count(User.id)).group_by(User.status).all()
    counts = {status: 0 for status in User.STATUSES}
    counts.update({status: count for status, count in rows})
    counts["total"] = sum(count for _, count in rows)
    return counts


# ----------------------------------------------------------------------
# Login
# ----------------------------------------------------------------------

def authenticate(
    guard: str,
    email: str,
    password: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
):
    """
    Check credentials against one guard's table.

    Returns the principal on success. Raises AccountLocked, InvalidCredentials
    or AccountNotActive (see module docstring for the order).

    Does NOT create the session; the caller does that through guards.login.
    """
    identifier = normalize_email(email)
    password = password or ""

    locked, seconds_remaining = login_throttle_service.is_locked(guard, identifier)
    if locked:
        current_app.logger.warning("Login refused for locked identifier on guard %s", guard)
        raise AccountLocked(seconds_remaining)

    principal = find_principal(guard, identifier)

    if principal is None:
        _dummy_check(password)
        login_throttle_service.record_failed_attempt(
            guard, identifier, ip_address=ip_address, user_agent=user_agent,
            reason="Unknown email",
        )
        raise InvalidCredentials()

    if not lifecycle_service.is_active(principal):
        login_throttle_service.record_failed_attempt(
            guard, identifier, principal_id=principal.id,
            ip_address=ip_address, user_agent=user_agent,
            reason=f"Status {principal.status}",
        )
        current_app.logger.info(
            "Login refused for %s %s with status %s", guard, principal.id, principal.status
        )
        raise AccountNotActive(principal.status, lifecycle_service.not_active_message(principal))

    if not verify_password(password, principal.password_hash):
        login_throttle_service.record_failed_attempt(
            guard, identifier, principal_id=principal.id,
            ip_address=ip_address, user_agent=user_agent,
        )
        raise InvalidCredentials()

    if isinstance(principal, (User, SuperAdmin)):
        principal.last_login_at = utcnow()
        principal.last_login_ip = ip_address
        db.session.commit()

    login_throttle_service.record_successful_login(
        guard, identifier, principal.id, ip_address=ip_address, user_agent=user_agent,
    )
    current_app.logger.info("Login succeeded for %s %s", guard, principal.id)
    return principal


# ----------------------------------------------------------------------
# Account creation and password change
# ----------------------------------------------------------------------

USER_REGISTRATION_RULES = {
    "name": FieldRule(
        required=True, min_length=3, max_length=255,
        messages={"required": "Name is required", "min": "Name must be at least 3 characters"},
    ),
    "email": FieldRule(
        kind="email", required=True, max_length=255,
        messages={"required": "Email is required"},
    ),
    "phone": FieldRule(
        required=True, min_length=10, max_length=15,
        messages={
            "required": "Phone number is required",
            "min": "Phone number must be at least 10 digits",
            "max": "Phone number must not exceed 15 digits",
        },
    ),
    "age": FieldRule(
        kind="integer", required=True, min_value=18, max_value=120,
        messages={
            "required": "Age is required",
            "min": "You must be at least 18 years old to register",
            "max": "Please enter a valid age",
        },
    ),
    "address": FieldRule(
        required=True, max_length=500,
        messages={"required": "Address is required"},
    ),
    "password": FieldRule(
        kind="password", required=True, min_length=6, confirmed=True,
        messages={
            "required": "Password is required",
            "min": "Password must be at least 6 characters",
            "confirmed": "Passwords do not match",
        },
    ),
}


def _email_taken(model, email: str) -> bool:
    return db.session.query(model.id).filter(func.lower(model.email) == email).first() is not None


def register_user(payload: dict) -> User:
    """
    Customer self-registration. Customers are active immediately.

    Raises ValidationError / UniquenessConflict.
    """
    data = validate_form(payload, USER_REGISTRATION_RULES)

    if _email_taken(User, data["email"]):
        raise UniquenessConflict("email", "This email is already registered")

    parts = data["name"].split(None, 1)
    user = User(
        name=data["name"],
        first_name=parts[0],
        last_name=parts[1] if len(parts) > 1 else "",
        email=data["email"],
        phone=data["phone"],
        age=data["age"],
        address=data["address"],
        password_hash=hash_password(data["password"]),
        status=User.STATUS_ACTIVE,
        force_password_change=False,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise UniquenessConflict("email", "This email is already registered")

    current_app.logger.info("User %s registered", user.id)
    return user


CURRENT_PASSWORD_INCORRECT_MESSAGE = "The current password is incorrect."


def change_password(
    principal,
    current_password: str,
    new_password: str,
    confirmation: str,
    *,
    incorrect_message: str = CURRENT_PASSWORD_INCORRECT_MESSAGE,
):
    """
    Rotate any principal's password (min 8, confirmed, different from the
    current one).

    For a User this also clears force_password_change: staff Users land here
    after their first login with a temporary password, and their linked
    Employee credential is rotated too so both guards agree.
    """
    if not verify_password(current_password or "", principal.password_hash):
        raise ValidationError({"current_password": [incorrect_message]})

    validate_password_strength(new_password, field_name="password")
    if new_password != confirmation:
        raise PasswordValidationError("Passwords do not match")
    if verify_password(new_password, principal.password_hash):
        raise PasswordValidationError("New password must be different from the current password")

    new_hash = hash_password(new_password)
    principal.password_hash = new_hash

    if isinstance(principal, User):
        principal.force_password_change = False
        if principal.shop_owner_id is not None:
            employee = db.session.query(Employee).filter(
                func.lower(Employee.email) == normalize_email(principal.email),
                Employee.shop_owner_id == principal.shop_owner_id,
            ).first()
            if employee is not None:
                employee.password_hash = new_hash

    db.session.commit()
    current_app.logger.info("%s %s changed password", principal.guard, principal.id)
    return principal


SUPER_ADMIN_RULES = {
    "name": FieldRule(required=True, max_length=255),
    "email": FieldRule(kind="email", required=True, max_length=255),
    "password": FieldRule(kind="password", required=True, min_length=8, confirmed=True),
}


def create_super_admin(payload: dict, *, require_confirmation: bool = True) -> SuperAdmin:
    """
    Create an active SuperAdmin (admin area or `flask admins create`).

    Raises ValidationError / UniquenessConflict.
    """
    rules = dict(SUPER_ADMIN_RULES)
    if not require_confirmation:
        rules["password"] = FieldRule(kind="password", required=True, min_length=8)
    data = validate_form(payload, rules)

    if _email_taken(SuperAdmin, data["email"]):
        raise UniquenessConflict("email", "The email has already been taken.")

    admin = SuperAdmin(
        name=data["name"],
        email=data["email"],
        password_hash=hash_password(data["password"]),
        status=SuperAdmin.STATUS_ACTIVE,
    )
    db.session.add(admin)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise UniquenessConflict("email", "The email has already been taken.")

    current_app.logger.info("Super admin %s created", admin.id)
    return admin


LOGIN_RULES = {
    "email": FieldRule(kind="email", required=True, messages={"required": "Email is required"}),
    "password": FieldRule(kind="password", required=True, messages={"required": "Password is required"}),
}
