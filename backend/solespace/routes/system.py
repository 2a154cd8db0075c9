# backend/solespace/routes/system.py
"""
System endpoints: health check, CSRF token, landing page.
"""

import time

from flask import Blueprint, current_app, jsonify

from ..csrf import get_csrf_token
from ..extensions import db
from ..models import GuardSession, ShopOwner
from ..pages import render_page
from solespace.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity with two cheap queries.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        pending_shops = db.session.query(ShopOwner).filter_by(status=ShopOwner.STATUS_PENDING).count()
        live_sessions = db.session.query(GuardSession).filter_by(is_revoked=False).count()
        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "pending_shop_registrations": pending_shops,
                "live_sessions": live_sessions,
            },
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200 {"status": "ok", ...}: database reachable
    - 503 {"status": "unhealthy", ...}: database check failed
    """
    database_health = check_database_health()
    healthy = database_health["status"] == "healthy"

    return {
        "status": "ok" if healthy else "unhealthy",
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {"database": database_health},
    }, 200 if healthy else 503


@system_bp.get("/csrf-token")
def csrf_token():
    return jsonify({"csrf_token": get_csrf_token()})


@system_bp.get("/")
def home():
    return render_page("UserSide/LandingPage")
