# Overview: Flask routes for customer and staff User accounts; form posts answer with redirects.

"""
User guard routes

Customers register themselves and are active immediately. Staff Users are
created by employee provisioning and must change their temporary password
before anything else (require_guard enforces the redirect).
"""

from flask import Blueprint, current_app, flash, redirect, request, url_for

from ..decorators import require_guard
from ..guards import current_auth
from ..models import Guard
from ..pages import redirect_back_with_errors, render_page, request_data, safe_next
from ..services import auth_service
from ..services.auth_service import AuthError
from ..validation import UniquenessConflict, ValidationError


user_auth_bp = Blueprint("user_auth", __name__, url_prefix="/user")


@user_auth_bp.get("/login")
def login_page():
    return render_page("UserSide/Login", {"next": safe_next(request.args.get("next"), "")})


@user_auth_bp.post("/login")
def login():
    data = request_data()
    fallback = url_for("user_auth.login_page")
    try:
        user = current_auth().attempt(Guard.USER, data)
    except ValidationError as e:
        return redirect_back_with_errors(e.errors, fallback, data)
    except AuthError as e:
        return redirect_back_with_errors({"email": [e.message]}, fallback, {"email": data.get("email")})
    except Exception:
        current_app.logger.exception("User login failed")
        return redirect_back_with_errors({"message": ["Login failed. Please try again."]}, fallback)

    if user.force_password_change:
        return redirect(url_for("user_auth.password_page"))

    flash("Welcome back!", "success")
    return redirect(safe_next(data.get("next") or request.args.get("next"), "/"))


@user_auth_bp.get("/register")
def register_page():
    return render_page("UserSide/Register")


@user_auth_bp.post("/register")
def register():
    data = request_data()
    fallback = url_for("user_auth.register_page")
    try:
        user = auth_service.register_user(data)
    except (ValidationError, UniquenessConflict) as e:
        return redirect_back_with_errors(e.errors, fallback, data)
    except Exception:
        current_app.logger.exception("User registration failed")
        return redirect_back_with_errors(
            {"message": ["Registration failed. Please try again."]}, fallback, data
        )

    current_auth().login(Guard.USER, user)
    flash("Registration successful! Welcome to SoleSpace.", "success")
    return redirect("/")


@user_auth_bp.post("/logout")
@require_guard(Guard.USER)
def logout(auth):
    auth.logout(Guard.USER)
    return redirect("/")


@user_auth_bp.get("/password")
@require_guard(Guard.USER)
def password_page(auth):
    user = auth.principal(Guard.USER)
    return render_page("UserSide/ChangePassword", {
        "force_password_change": user.force_password_change,
    })


@user_auth_bp.post("/password")
@require_guard(Guard.USER)
def change_password(auth):
    data = request_data()
    user = auth.principal(Guard.USER)
    fallback = url_for("user_auth.password_page")
    try:
        auth_service.change_password(
            user,
            data.get("current_password"),
            data.get("password"),
            data.get("password_confirmation"),
        )
    except ValidationError as e:
        return redirect_back_with_errors(e.errors, fallback)
    except Exception:
        current_app.logger.exception("Password change failed for user %s", user.id)
        return redirect_back_with_errors(
            {"message": ["Unable to change password. Please try again."]}, fallback
        )

    flash("Password updated successfully.", "success")
    return redirect(url_for("user_auth.profile"))


@user_auth_bp.get("/profile")
@require_guard(Guard.USER)
def profile(auth):
    return render_page("UserSide/Profile", {"user": auth.principal(Guard.USER).to_dict()})
