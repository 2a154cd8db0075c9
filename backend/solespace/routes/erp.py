# Overview: Flask routes for the Employee guard (ERP area).

from flask import Blueprint, current_app, flash, redirect, request, url_for

from ..decorators import require_guard
from ..guards import current_auth
from ..models import Guard
from ..pages import redirect_back_with_errors, render_page, request_data, safe_next
from ..services.auth_service import AuthError
from ..validation import ValidationError


erp_bp = Blueprint("erp", __name__, url_prefix="/erp")


@erp_bp.get("/login")
def login_page():
    return render_page("Erp/Login", {"next": safe_next(request.args.get("next"), "")})


@erp_bp.post("/login")
def login():
    data = request_data()
    fallback = url_for("erp.login_page")
    try:
        current_auth().attempt(Guard.EMPLOYEE, data)
    except ValidationError as e:
        return redirect_back_with_errors(e.errors, fallback, data)
    except AuthError as e:
        return redirect_back_with_errors({"email": [e.message]}, fallback, {"email": data.get("email")})
    except Exception:
        current_app.logger.exception("Employee login failed")
        return redirect_back_with_errors({"message": ["Login failed. Please try again."]}, fallback)

    flash("Welcome back!", "success")
    return redirect(safe_next(data.get("next") or request.args.get("next"), url_for("erp.profile")))


@erp_bp.post("/logout")
@require_guard(Guard.EMPLOYEE)
def logout(auth):
    auth.logout(Guard.EMPLOYEE)
    return redirect(url_for("erp.login_page"))


@erp_bp.get("/profile")
@require_guard(Guard.EMPLOYEE)
def profile(auth):
    employee = auth.principal(Guard.EMPLOYEE)
    return render_page("Erp/Profile", {
        "employee": employee.to_dict(),
        "shop": {
            "id": employee.shop_owner.id,
            "business_name": employee.shop_owner.business_name,
        },
    })
