# Overview: Per-request authentication context for the four guards.

"""
Multi-guard authentication context

Each guard (user, employee, shop_owner, super_admin) owns one key in the
cookie session:

    session["auth"] = {"shop_owner": "<opaque token>", "user": "<token>"}

A token maps to a guard_sessions row (see session_service). One browser may
hold one identity per guard at the same time; guards never read each other's
slot.

AuthContext is created once per request (before_request), kept on flask.g and
handed to protected views as the `auth` keyword argument by require_guard
(see decorators.py).
"""

from __future__ import annotations

from flask import current_app, g, request, session, url_for

from .csrf import rotate_csrf_token
from .models import Guard, SecurityEvent
from .services import auth_service, login_throttle_service, session_service
from .validation import validate_form


SESSION_AUTH_KEY = "auth"

LOGIN_ENDPOINTS = {
    Guard.USER: "user_auth.login_page",
    Guard.EMPLOYEE: "erp.login_page",
    Guard.SHOP_OWNER: "shop_owner.login_page",
    Guard.SUPER_ADMIN: "admin.login_page",
}


def login_url(guard: str, next_path: str | None = None) -> str:
    if next_path:
        return url_for(LOGIN_ENDPOINTS[guard], next=next_path)
    return url_for(LOGIN_ENDPOINTS[guard])


def _client() -> tuple[str | None, str | None]:
    return request.remote_addr, request.headers.get("User-Agent")


class AuthContext:
    """
    Resolved principals for the current request, one lookup per guard.

    A principal is returned even when its status no longer allows access;
    deciding what to do about that is require_guard's job.
    """

    def __init__(self):
        self._resolved: dict[str, object] = {}

    def _slots(self) -> dict:
        return session.get(SESSION_AUTH_KEY) or {}

    def _store_slots(self, slots: dict) -> None:
        session[SESSION_AUTH_KEY] = slots
        session.modified = True

    def token(self, guard: str) -> str | None:
        return self._slots().get(guard)

    def principal(self, guard: str):
        if guard in self._resolved:
            return self._resolved[guard]

        principal = None
        token = self.token(guard)
        if token:
            record = session_service.validate_session(guard, token)
            if record is not None:
                principal = auth_service.get_principal(guard, record.principal_id)
            if principal is None:
                # Stale slot: expired, revoked, or principal gone
                slots = dict(self._slots())
                slots.pop(guard, None)
                self._store_slots(slots)

        self._resolved[guard] = principal
        return principal

    def check(self, guard: str) -> bool:
        return self.principal(guard) is not None

    def login(self, guard: str, principal) -> None:
        """
        Bind `principal` to `guard` with a fresh token.

        Any previous token of this guard is revoked (session identifier
        regeneration); the CSRF token is rotated. Other guards are untouched.
        """
        ip_address, user_agent = _client()
        previous = self.token(guard)
        if previous:
            session_service.revoke_session(guard, previous, reason="Session regenerated")

        _, token = session_service.create_session(
            guard, principal.id, user_agent=user_agent, ip_address=ip_address
        )
        slots = dict(self._slots())
        slots[guard] = token
        self._store_slots(slots)
        rotate_csrf_token()

        self._resolved[guard] = principal

    def attempt(self, guard: str, payload: dict):
        """
        Validate the login form, check credentials and log in on success.

        Raises ValidationError or an AuthError subclass.
        """
        data = validate_form(payload, auth_service.LOGIN_RULES)
        ip_address, user_agent = _client()
        principal = auth_service.authenticate(
            guard, data["email"], data["password"], ip_address=ip_address, user_agent=user_agent
        )
        self.login(guard, principal)
        return principal

    def logout(self, guard: str, *, reason: str = "Logout", forced: bool = False) -> None:
        """Revoke this guard's session and drop only its slot."""
        principal = self.principal(guard)
        token = self.token(guard)
        if token:
            session_service.revoke_session(guard, token, reason=reason)

        slots = dict(self._slots())
        slots.pop(guard, None)
        self._store_slots(slots)
        rotate_csrf_token()
        self._resolved[guard] = None

        if principal is not None:
            ip_address, user_agent = _client()
            login_throttle_service.record_event(
                guard,
                principal.email,
                SecurityEvent.FORCED_LOGOUT if forced else SecurityEvent.LOGOUT,
                principal_id=principal.id,
                reason=reason,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            if forced:
                current_app.logger.warning(
                    "Forced logout of %s %s: %s", guard, principal.id, reason
                )
            else:
                current_app.logger.info("Logout of %s %s", guard, principal.id)

    def summary(self) -> dict:
        """Per-guard identity shared with every page."""
        result = {}
        for guard in Guard.ALL:
            principal = self.principal(guard)
            result[guard] = {
                "id": principal.id,
                "name": principal.display_name,
                "email": principal.email,
                "status": principal.status,
            } if principal is not None else None
        return result


def init_auth_context() -> None:
    """before_request hook."""
    g.auth = AuthContext()


def current_auth() -> AuthContext:
    if "auth" not in g:
        g.auth = AuthContext()
    return g.auth
