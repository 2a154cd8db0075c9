# Overview: Route decorators that gate views behind one authentication guard.

from functools import wraps

from flask import flash, jsonify, redirect, request, url_for

from .guards import current_auth, login_url
from .models import Guard
from .services import lifecycle_service


UNAUTHENTICATED_MESSAGE = "Please login to continue."

# User-guard endpoints still reachable while force_password_change is set
PASSWORD_CHANGE_EXEMPT = frozenset({
    "user_auth.password_page",
    "user_auth.change_password",
    "user_auth.logout",
})


def _wants_json() -> bool:
    return request.is_json or request.accept_mimetypes.best == "application/json"


def _original_path() -> str:
    query = request.query_string.decode("utf-8", "replace")
    return request.path + (f"?{query}" if query else "")


def require_guard(guard: str):
    """
    Require an active principal on `guard`.

    - No principal: redirect to that guard's login with ?next=<path> and
      "Please login to continue." (401 JSON for JSON clients)
    - Principal no longer active (suspended, pending, on leave...): revoke the
      guard session, flash the kind/status explanation, redirect to login
    - User guard only: redirect to the password page while
      force_password_change is set

    The view receives the request's AuthContext as `auth`.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            auth = current_auth()
            principal = auth.principal(guard)

            if principal is None:
                if _wants_json():
                    return jsonify({"error": "Authentication required"}), 401
                flash(UNAUTHENTICATED_MESSAGE, "error")
                return redirect(login_url(guard, _original_path()))

            if not lifecycle_service.is_active(principal):
                message = lifecycle_service.not_active_message(principal)
                auth.logout(guard, reason=f"Status {principal.status}", forced=True)
                if _wants_json():
                    return jsonify({"error": message}), 403
                flash(message, "error")
                return redirect(login_url(guard))

            if (
                guard == Guard.USER
                and principal.force_password_change
                and request.endpoint not in PASSWORD_CHANGE_EXEMPT
            ):
                flash("Please change your temporary password to continue.", "warning")
                return redirect(url_for("user_auth.password_page"))

            kwargs["auth"] = auth
            return f(*args, **kwargs)

        return decorated_function
    return decorator
