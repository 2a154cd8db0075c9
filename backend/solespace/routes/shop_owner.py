# Overview: Flask routes for shop owners: registration, login, profile, and user access control.

"""
ShopOwner guard routes

- /shop/register-full       self-registration (pending until reviewed)
- /shop-owner/login         JSON login (200 / 401 / 403 / 422 / 429)
- /shop-owner/profile       own profile and password
- /shop-owner/...           employee management for the acting shop

MULTI-TENANT: Every employee route resolves the employee through the acting
shop owner's id; another shop's employee answers 404.
"""

from flask import Blueprint, abort, current_app, flash, jsonify, redirect, request, url_for

from ..decorators import require_guard
from ..guards import current_auth
from ..models import Employee, Guard, ShopOwner
from ..pages import flash_sealed, redirect_back, redirect_back_with_errors, render_page, request_data
from ..roles import FunctionalRole, SystemRole
from ..services import (
    audit_service, auth_service, employee_service, login_throttle_service, provisioning_service,
    shop_owner_service,
)
from ..services.auth_service import AccountLocked, AccountNotActive, AuthError
from ..services.lifecycle_service import InvalidStatusTransition
from ..services.provisioning_service import TransactionFailure
from ..validation import UniquenessConflict, ValidationError


shop_owner_bp = Blueprint("shop_owner", __name__)

STATUS_ACTIONS = {
    "suspend": Employee.STATUS_INACTIVE,
    "activate": Employee.STATUS_ACTIVE,
    "leave": Employee.STATUS_ON_LEAVE,
}


# ----------------------------------------------------------------------
# Registration
# ----------------------------------------------------------------------

@shop_owner_bp.get("/shop/register")
def register_page():
    return render_page("UserSide/ShopOwnerRegistration", {
        "business_types": list(ShopOwner.BUSINESS_TYPES),
        "registration_types": list(ShopOwner.REGISTRATION_TYPES),
    })


@shop_owner_bp.post("/shop/register-full")
def register():
    data = request_data()
    fallback = url_for("shop_owner.register_page")
    try:
        shop_owner_service.register_shop_owner(data)
    except (ValidationError, UniquenessConflict) as e:
        return redirect_back_with_errors(e.errors, fallback, data)
    except Exception:
        current_app.logger.exception("Shop registration failed")
        return redirect_back_with_errors(
            {"message": ["Registration failed. Please try again."]}, fallback, data
        )

    flash("Registration submitted. You can log in once your shop is approved.", "success")
    return redirect(url_for("shop_owner.login_page"))


# ----------------------------------------------------------------------
# Login / logout
# ----------------------------------------------------------------------

@shop_owner_bp.get("/shop-owner/login")
def login_page():
    return render_page("ShopOwner/Login")


@shop_owner_bp.post("/shop-owner/login")
def login():
    """
    JSON login.

    422 validation, 401 invalid credentials, 403 not approved,
    429 locked, 200 with the shop owner summary.
    """
    data = request_data()
    try:
        shop_owner = current_auth().attempt(Guard.SHOP_OWNER, data)
    except ValidationError as e:
        return jsonify({"success": False, "errors": e.errors}), 422
    except AccountLocked as e:
        status = login_throttle_service.get_lockout_status(
            Guard.SHOP_OWNER, auth_service.normalize_email(data.get("email"))
        )
        return jsonify({
            "success": False,
            "message": e.message,
            "retry_after_seconds": e.seconds_remaining,
            "failed_attempts": status["failed_attempts"],
            "max_attempts": status["max_attempts"],
            "lockout_minutes": status["lockout_minutes"],
        }), 429
    except AccountNotActive as e:
        return jsonify({"success": False, "message": e.message, "status": e.status}), 403
    except AuthError as e:
        return jsonify({"success": False, "message": e.message}), e.status_code
    except Exception:
        current_app.logger.exception("Shop owner login failed")
        return jsonify({"success": False, "message": "Login failed. Please try again."}), 500

    return jsonify({
        "success": True,
        "message": "Login successful",
        "shop_owner": {
            "id": shop_owner.id,
            "name": shop_owner.business_name,
            "email": shop_owner.email,
        },
    })


@shop_owner_bp.post("/shop-owner/logout")
@require_guard(Guard.SHOP_OWNER)
def logout(auth):
    auth.logout(Guard.SHOP_OWNER)
    return redirect(url_for("shop_owner.login_page"))


# ----------------------------------------------------------------------
# Profile
# ----------------------------------------------------------------------

@shop_owner_bp.get("/shop-owner/profile")
@require_guard(Guard.SHOP_OWNER)
def profile(auth):
    return render_page("ShopOwner/Profile", {"shop_owner": auth.principal(Guard.SHOP_OWNER).to_dict()})


@shop_owner_bp.post("/shop-owner/profile")
@require_guard(Guard.SHOP_OWNER)
def update_profile(auth):
    shop_owner = auth.principal(Guard.SHOP_OWNER)
    data = request_data()
    fallback = url_for("shop_owner.profile")
    try:
        shop_owner_service.update_profile(shop_owner, data)
    except (ValidationError, UniquenessConflict) as e:
        return redirect_back_with_errors(e.errors, fallback, data)
    except Exception:
        current_app.logger.exception("Profile update failed for shop owner %s", shop_owner.id)
        return redirect_back_with_errors({"message": ["Failed to update profile"]}, fallback, data)

    flash("Profile updated successfully", "success")
    return redirect(fallback)


@shop_owner_bp.post("/shop-owner/password")
@require_guard(Guard.SHOP_OWNER)
def change_password(auth):
    shop_owner = auth.principal(Guard.SHOP_OWNER)
    data = request_data()
    fallback = url_for("shop_owner.profile")
    try:
        auth_service.change_password(
            shop_owner,
            data.get("current_password"),
            data.get("password"),
            data.get("password_confirmation"),
            incorrect_message="Current password is incorrect",
        )
    except ValidationError as e:
        return redirect_back_with_errors(e.errors, fallback)
    except Exception:
        current_app.logger.exception("Password change failed for shop owner %s", shop_owner.id)
        return redirect_back_with_errors({"message": ["Failed to change password"]}, fallback)

    flash("Password changed successfully", "success")
    return redirect(fallback)


# ----------------------------------------------------------------------
# User access control
# ----------------------------------------------------------------------

@shop_owner_bp.get("/shop-owner/user-access-control")
@require_guard(Guard.SHOP_OWNER)
def user_access_control(auth):
    shop_owner = auth.principal(Guard.SHOP_OWNER)
    try:
        employees = employee_service.list_employees(shop_owner.id, status=request.args.get("status"))
    except Exception:
        current_app.logger.exception("Failed to list employees for shop %s", shop_owner.id)
        abort(500)

    return render_page("ShopOwner/UserAccessControl", {
        "shop_owner": shop_owner.to_dict(),
        "employees": employees,
        "system_roles": list(SystemRole.ALL),
        "functional_roles": list(FunctionalRole.ALL),
        "employee_statuses": list(Employee.STATUSES),
    })


@shop_owner_bp.post("/shop-owner/employees")
@require_guard(Guard.SHOP_OWNER)
def store_employee(auth):
    """
    Provision Employee + User. The temporary password is shown once as
    `employee_created` on the next page read; it is sealed server-side, never
    put in the cookie session.
    """
    shop_owner = auth.principal(Guard.SHOP_OWNER)
    data = request_data()
    fallback = url_for("shop_owner.user_access_control")

    try:
        result = provisioning_service.provision_employee(shop_owner, data)
    except (ValidationError, UniquenessConflict) as e:
        return redirect_back_with_errors(e.errors, fallback, data)
    except TransactionFailure:
        return redirect_back_with_errors(
            {"error": [provisioning_service.GENERIC_FAILURE_MESSAGE]}, fallback, data
        )
    except Exception:
        current_app.logger.exception("Employee provisioning failed for shop %s", shop_owner.id)
        return redirect_back_with_errors(
            {"error": [provisioning_service.GENERIC_FAILURE_MESSAGE]}, fallback, data
        )

    flash("Employee created successfully.", "success")
    try:
        flash_sealed(
            "employee_created", Guard.SHOP_OWNER, shop_owner.id, result.flash_payload(),
            secret_field="temporary_password",
        )
    except Exception:
        current_app.logger.exception("Could not seal the temporary password for employee %s", result.employee.id)
        flash("The temporary password could not be displayed. Delete the employee and create it again.", "warning")
    return redirect_back(fallback)


def _employee_or_404(shop_owner: ShopOwner, employee_id: int) -> Employee:
    employee = employee_service.get_employee_for_shop(shop_owner.id, employee_id)
    if employee is None:
        abort(404)
    return employee


@shop_owner_bp.post("/shop-owner/employees/<int:employee_id>/update")
@require_guard(Guard.SHOP_OWNER)
def update_employee(employee_id: int, auth):
    shop_owner = auth.principal(Guard.SHOP_OWNER)
    employee = _employee_or_404(shop_owner, employee_id)
    data = request_data()
    fallback = url_for("shop_owner.user_access_control")

    try:
        employee_service.update_employee(shop_owner, employee, data)
    except (ValidationError, UniquenessConflict) as e:
        return redirect_back_with_errors(e.errors, fallback, data)
    except TransactionFailure as e:
        return redirect_back_with_errors({"error": [str(e)]}, fallback, data)
    except Exception:
        current_app.logger.exception("Failed to update employee %s", employee_id)
        return redirect_back_with_errors({"error": ["Unable to update employee. Please try again."]}, fallback, data)

    flash("Employee updated successfully.", "success")
    return redirect_back(fallback)


@shop_owner_bp.post("/shop-owner/employees/<int:employee_id>/<action>")
@require_guard(Guard.SHOP_OWNER)
def change_employee_status(employee_id: int, action: str, auth):
    if action not in STATUS_ACTIONS:
        abort(404)

    shop_owner = auth.principal(Guard.SHOP_OWNER)
    employee = _employee_or_404(shop_owner, employee_id)
    fallback = url_for("shop_owner.user_access_control")

    try:
        employee_service.change_status(shop_owner, employee, STATUS_ACTIONS[action])
    except InvalidStatusTransition as e:
        return redirect_back_with_errors({"error": [str(e)]}, fallback)
    except Exception:
        current_app.logger.exception("Failed to %s employee %s", action, employee_id)
        return redirect_back_with_errors({"error": ["Unable to update employee. Please try again."]}, fallback)

    flash(f"Employee {employee.name} is now {employee.status.replace('_', ' ')}.", "success")
    return redirect_back(fallback)


@shop_owner_bp.route("/shop-owner/employees/<int:employee_id>/delete", methods=["POST", "DELETE"])
@require_guard(Guard.SHOP_OWNER)
def delete_employee(employee_id: int, auth):
    shop_owner = auth.principal(Guard.SHOP_OWNER)
    employee = _employee_or_404(shop_owner, employee_id)
    fallback = url_for("shop_owner.user_access_control")

    try:
        employee_service.soft_delete(shop_owner, employee)
    except Exception:
        current_app.logger.exception("Failed to delete employee %s", employee_id)
        return redirect_back_with_errors({"error": ["Unable to delete employee. Please try again."]}, fallback)

    flash("Employee deleted successfully.", "success")
    return redirect_back(fallback)


@shop_owner_bp.get("/shop-owner/audit-logs")
@require_guard(Guard.SHOP_OWNER)
def audit_logs(auth):
    shop_owner = auth.principal(Guard.SHOP_OWNER)
    try:
        limit = min(max(int(request.args.get("limit", 100)), 1), 500)
    except ValueError:
        limit = 100

    entries = audit_service.list_for_shop(shop_owner.id, action=request.args.get("action"), limit=limit)
    return render_page("ShopOwner/AuditLogs", {"logs": [e.to_dict() for e in entries]})
