# Overview: Flask routes for the super admin area; every route past login requires the super_admin guard.

"""
Super admin routes

- Shop registration review (approve / reject, once, from pending)
- User listing (status filter, search) and suspension
- Own profile and password
- Admin account management (create, suspend, activate; never yourself)

A suspended admin is logged out by require_guard on its next request.
"""

from flask import Blueprint, abort, current_app, flash, redirect, request, url_for

from ..decorators import require_guard
from ..extensions import db
from ..guards import current_auth
from ..models import Guard, ShopOwner, SuperAdmin, User
from ..pages import redirect_back, redirect_back_with_errors, render_page, request_data, safe_next
from ..services import auth_service, lifecycle_service, shop_owner_service
from ..services.auth_service import AuthError
from ..services.lifecycle_service import InvalidStatusTransition
from ..validation import ConflictError, FieldRule, UniquenessConflict, ValidationError, validate_form


admin_bp = Blueprint("admin", __name__, url_prefix="/admin")

REJECT_RULES = {
    "reason": FieldRule(max_length=500, messages={"max": "The reason may not be greater than 500 characters."}),
}


def _get_or_404(model, object_id: int):
    obj = db.session.get(model, object_id)
    if obj is None:
        abort(404)
    return obj


# ----------------------------------------------------------------------
# Login / logout
# ----------------------------------------------------------------------

@admin_bp.get("/login")
def login_page():
    return render_page("SuperAdmin/Login", {"next": safe_next(request.args.get("next"), "")})


@admin_bp.post("/login")
def login():
    data = request_data()
    fallback = url_for("admin.login_page")
    try:
        current_auth().attempt(Guard.SUPER_ADMIN, data)
    except ValidationError as e:
        return redirect_back_with_errors(e.errors, fallback, data)
    except AuthError as e:
        return redirect_back_with_errors({"email": [e.message]}, fallback, {"email": data.get("email")})
    except Exception:
        current_app.logger.exception("Super admin login failed")
        return redirect_back_with_errors({"message": ["Login failed. Please try again."]}, fallback)

    flash("Welcome back!", "success")
    return redirect(safe_next(
        data.get("next") or request.args.get("next"), url_for("admin.shop_registrations")
    ))


@admin_bp.post("/logout")
@require_guard(Guard.SUPER_ADMIN)
def logout(auth):
    auth.logout(Guard.SUPER_ADMIN)
    return redirect(url_for("admin.login_page"))


# ----------------------------------------------------------------------
# Own profile
# ----------------------------------------------------------------------

@admin_bp.get("/profile")
@require_guard(Guard.SUPER_ADMIN)
def profile(auth):
    admin = auth.principal(Guard.SUPER_ADMIN)
    return render_page("SuperAdmin/Profile", {"admin": admin.to_dict()})


@admin_bp.post("/password")
@require_guard(Guard.SUPER_ADMIN)
def update_password(auth):
    admin = auth.principal(Guard.SUPER_ADMIN)
    data = request_data()
    fallback = url_for("admin.profile")
    try:
        auth_service.change_password(
            admin,
            data.get("current_password"),
            data.get("password"),
            data.get("password_confirmation"),
            incorrect_message="Current password is incorrect.",
        )
    except ValidationError as e:
        return redirect_back_with_errors(e.errors, fallback)
    except Exception:
        current_app.logger.exception("Password change failed for admin %s", admin.id)
        return redirect_back_with_errors({"message": ["Failed to update password"]}, fallback)

    flash("Password updated successfully!", "success")
    return redirect(fallback)


# ----------------------------------------------------------------------
# Shop registrations
# ----------------------------------------------------------------------

@admin_bp.get("/shop-registrations")
@require_guard(Guard.SUPER_ADMIN)
def shop_registrations(auth):
    status = request.args.get("status") or None
    try:
        registrations = shop_owner_service.list_registrations(status)
    except ValidationError as e:
        return redirect_back_with_errors(e.errors, url_for("admin.shop_registrations"))

    return render_page("SuperAdmin/ShopRegistrations", {
        "registrations": [s.to_dict() for s in registrations],
        "counts": shop_owner_service.registration_counts(),
        "status": status,
    })


@admin_bp.post("/shop-registrations/<int:shop_owner_id>/approve")
@require_guard(Guard.SUPER_ADMIN)
def approve_shop_owner(shop_owner_id: int, auth):
    shop_owner = _get_or_404(ShopOwner, shop_owner_id)
    fallback = url_for("admin.shop_registrations")
    try:
        lifecycle_service.approve_shop_owner(shop_owner, auth.principal(Guard.SUPER_ADMIN))
    except InvalidStatusTransition:
        return redirect_back_with_errors(
            {"message": [f"This registration is already {shop_owner.status}."]}, fallback
        )
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to approve shop owner %s", shop_owner_id)
        return redirect_back_with_errors({"message": ["Failed to approve shop owner"]}, fallback)

    flash("Shop owner registration approved successfully!", "success")
    return redirect_back(fallback)


@admin_bp.post("/shop-registrations/<int:shop_owner_id>/reject")
@require_guard(Guard.SUPER_ADMIN)
def reject_shop_owner(shop_owner_id: int, auth):
    shop_owner = _get_or_404(ShopOwner, shop_owner_id)
    data = request_data()
    fallback = url_for("admin.shop_registrations")
    try:
        cleaned = validate_form(data, REJECT_RULES)
        lifecycle_service.reject_shop_owner(
            shop_owner, cleaned["reason"], auth.principal(Guard.SUPER_ADMIN)
        )
    except ValidationError as e:
        return redirect_back_with_errors(e.errors, fallback, data)
    except InvalidStatusTransition:
        return redirect_back_with_errors(
            {"message": [f"This registration is already {shop_owner.status}."]}, fallback
        )
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to reject shop owner %s", shop_owner_id)
        return redirect_back_with_errors({"message": ["Failed to reject shop owner"]}, fallback)

    flash("Shop owner registration rejected.", "success")
    return redirect_back(fallback)


# ----------------------------------------------------------------------
# Users
# ----------------------------------------------------------------------

@admin_bp.get("/users")
@require_guard(Guard.SUPER_ADMIN)
def users(auth):
    status = request.args.get("status") or None
    search = request.args.get("search") or None
    try:
        rows = auth_service.list_users(status, search)
    except ValidationError as e:
        return redirect_back_with_errors(e.errors, url_for("admin.users"))

    return render_page("SuperAdmin/UserManagement", {
        "users": [u.to_dict() for u in rows],
        "counts": auth_service.user_counts(),
        "status": status,
        "search": search or "",
    })


@admin_bp.post("/users/<int:user_id>/suspend")
@require_guard(Guard.SUPER_ADMIN)
def suspend_user(user_id: int, auth):
    user = _get_or_404(User, user_id)
    try:
        lifecycle_service.suspend_user(user)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to suspend user %s", user_id)
        return redirect_back_with_errors({"message": ["Failed to suspend user"]}, url_for("admin.users"))

    current_app.logger.info("User %s suspended by admin %s", user.id, auth.principal(Guard.SUPER_ADMIN).id)
    flash("User suspended successfully", "success")
    return redirect_back(url_for("admin.users"))


@admin_bp.post("/users/<int:user_id>/activate")
@require_guard(Guard.SUPER_ADMIN)
def activate_user(user_id: int, auth):
    user = _get_or_404(User, user_id)
    try:
        lifecycle_service.activate_user(user)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to activate user %s", user_id)
        return redirect_back_with_errors({"message": ["Failed to activate user"]}, url_for("admin.users"))

    current_app.logger.info("User %s activated by admin %s", user.id, auth.principal(Guard.SUPER_ADMIN).id)
    flash("User activated successfully", "success")
    return redirect_back(url_for("admin.users"))


# ----------------------------------------------------------------------
# Admins
# ----------------------------------------------------------------------

@admin_bp.get("/admins")
@require_guard(Guard.SUPER_ADMIN)
def admins(auth):
    rows = db.session.query(SuperAdmin).order_by(SuperAdmin.id.asc()).all()
    return render_page("SuperAdmin/AdminManagement", {"admins": [a.to_dict() for a in rows]})


@admin_bp.post("/admins")
@require_guard(Guard.SUPER_ADMIN)
def create_admin(auth):
    data = request_data()
    fallback = url_for("admin.admins")
    try:
        admin = auth_service.create_super_admin(data)
    except (ValidationError, UniquenessConflict) as e:
        return redirect_back_with_errors(e.errors, fallback, data)
    except Exception:
        current_app.logger.exception("Failed to create admin")
        return redirect_back_with_errors({"message": ["Failed to create admin account"]}, fallback, data)

    current_app.logger.info("Admin %s created by admin %s", admin.id, auth.principal(Guard.SUPER_ADMIN).id)
    flash("Admin account created successfully", "success")
    return redirect_back(fallback)


@admin_bp.post("/admins/<int:admin_id>/suspend")
@require_guard(Guard.SUPER_ADMIN)
def suspend_admin(admin_id: int, auth):
    target = _get_or_404(SuperAdmin, admin_id)
    fallback = url_for("admin.admins")
    try:
        lifecycle_service.suspend_super_admin(target, auth.principal(Guard.SUPER_ADMIN))
    except ConflictError as e:
        return redirect_back_with_errors({"message": [str(e)]}, fallback)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to suspend admin %s", admin_id)
        return redirect_back_with_errors({"message": ["Failed to suspend admin"]}, fallback)

    flash("Admin suspended successfully", "success")
    return redirect_back(fallback)


@admin_bp.post("/admins/<int:admin_id>/activate")
@require_guard(Guard.SUPER_ADMIN)
def activate_admin(admin_id: int, auth):
    target = _get_or_404(SuperAdmin, admin_id)
    fallback = url_for("admin.admins")
    try:
        lifecycle_service.activate_super_admin(target, auth.principal(Guard.SUPER_ADMIN))
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to activate admin %s", admin_id)
        return redirect_back_with_errors({"message": ["Failed to activate admin"]}, fallback)

    flash("Admin activated successfully", "success")
    return redirect_back(fallback)
