# Overview: Pytest coverage for multi-guard login, logout and route gating.

"""
Multi-Guard Authentication Tests

SECURITY TESTS: Prove each guard authenticates only its own account kind and
that a principal whose status changes is pushed out on its next request.

Test Coverage:
- Invalid credentials: unknown email and wrong password are indistinguishable
- Status refusal: pending / rejected / suspended / on leave explained per kind
- Throttling: lock after repeated failures, per guard + email
- Sessions: regeneration on login, logout isolation between guards
- Gating: unauthenticated redirect with ?next, forced logout, forced password change
- CSRF: state-changing requests need the session token
"""

from urllib.parse import parse_qs, urlparse

from solespace.models import Guard, GuardSession, SecurityEvent, ShopOwner, SuperAdmin, User
from solespace.services import login_throttle_service
from solespace.services.auth_service import INVALID_CREDENTIALS_MESSAGE

from conftest import (
    PASSWORD, login_shop_owner, login_super_admin, login_user, make_shop_owner, make_super_admin,
    make_user,
)


def _location(response) -> str:
    return urlparse(response.headers["Location"]).path


def _next_param(response) -> str | None:
    query = parse_qs(urlparse(response.headers["Location"]).query)
    return query.get("next", [None])[0]


def _page_props(client, path):
    response = client.get(path)
    assert response.status_code == 200
    return response.get_json()["props"]


class TestInvalidCredentials:
    """Unknown email and wrong password produce the same answer."""

    def test_shop_owner_json_responses_identical(self, client, shop_owner):
        """Shop owner login: 401 with the same body for both failures."""
        unknown = login_shop_owner(client, email="nobody@shop.test")
        wrong = login_shop_owner(client, password="WrongPassword1")

        assert unknown.status_code == 401
        assert wrong.status_code == 401
        assert unknown.get_json() == wrong.get_json()
        assert unknown.get_json()["message"] == INVALID_CREDENTIALS_MESSAGE

    def test_user_form_errors_identical(self, client, customer):
        """User login: same field error for both failures."""
        login_user(client, email="nobody@mail.test")
        unknown_errors = _page_props(client, "/user/login")["errors"]

        login_user(client, password="WrongPassword1")
        wrong_errors = _page_props(client, "/user/login")["errors"]

        assert unknown_errors == wrong_errors == {"email": [INVALID_CREDENTIALS_MESSAGE]}

    def test_password_never_echoed_as_old_input(self, client, customer):
        """Failed login re-populates the email only."""
        login_user(client, password="WrongPassword1")
        props = _page_props(client, "/user/login")
        assert props["old"] == {"email": "customer@mail.test"}

    def test_email_lookup_is_case_insensitive(self, client, shop_owner):
        """Email comparison ignores case and surrounding spaces."""
        response = login_shop_owner(client, email="  OWNER@Shop.Test ")
        assert response.status_code == 200

    def test_guards_do_not_share_tables(self, client, customer):
        """A customer's credentials do not satisfy the shop owner guard."""
        response = login_shop_owner(client, email="customer@mail.test")
        assert response.status_code == 401

    def test_missing_fields_are_validation_errors(self, client):
        """Shop owner login with empty body answers 422 per field."""
        response = client.post("/shop-owner/login", json={})
        assert response.status_code == 422
        errors = response.get_json()["errors"]
        assert set(errors) == {"email", "password"}


class TestStatusRefusal:
    """Valid credentials of a non-active principal are refused with a reason."""

    def test_pending_shop_owner(self, client, db_session):
        """Pending registration: 403 with status and message."""
        make_shop_owner(db_session, status=ShopOwner.STATUS_PENDING)

        response = login_shop_owner(client)

        assert response.status_code == 403
        body = response.get_json()
        assert body["status"] == "pending"
        assert body["message"] == "Your shop registration is still pending approval."

    def test_rejected_shop_owner_sees_reason(self, client, db_session):
        """Rejected registration: message includes the stored reason."""
        make_shop_owner(db_session, status=ShopOwner.STATUS_REJECTED, rejection_reason="Invalid permit")

        response = login_shop_owner(client)

        assert response.status_code == 403
        assert "Invalid permit" in response.get_json()["message"]

    def test_suspended_super_admin(self, client, db_session):
        """Suspended admin sees the suspension message on the login page."""
        make_super_admin(db_session, status=SuperAdmin.STATUS_SUSPENDED)

        login_super_admin(client)
        props = _page_props(client, "/admin/login")

        assert props["errors"]["email"] == [
            "Your account has been suspended. Please contact system administrator."
        ]
        assert props["auth"]["super_admin"] is None

    def test_status_checked_before_password(self, client, db_session):
        """A suspended account with a wrong password still gets the status message."""
        make_super_admin(db_session, status=SuperAdmin.STATUS_SUSPENDED)

        login_super_admin(client, password="WrongPassword1")
        props = _page_props(client, "/admin/login")

        assert "suspended" in props["errors"]["email"][0]


class TestThrottling:
    """Repeated failures lock the guard + email pair."""

    def test_service_locks_after_max_failures(self, app, db_session):
        """Ten failures lock; the lock reports seconds remaining."""
        for _ in range(10):
            login_throttle_service.record_failed_attempt(Guard.SHOP_OWNER, "owner@shop.test")

        locked, seconds = login_throttle_service.is_locked(Guard.SHOP_OWNER, "owner@shop.test")

        assert locked is True
        assert 0 < seconds <= 15 * 60

    def test_counters_are_per_guard(self, app, db_session):
        """Failures on one guard never lock another guard."""
        for _ in range(10):
            login_throttle_service.record_failed_attempt(Guard.SHOP_OWNER, "owner@shop.test")

        locked, _ = login_throttle_service.is_locked(Guard.USER, "owner@shop.test")
        assert locked is False

    def test_success_resets_window(self, app, db_session):
        """Failures before a successful login no longer count."""
        for _ in range(9):
            login_throttle_service.record_failed_attempt(Guard.USER, "customer@mail.test")
        login_throttle_service.record_successful_login(Guard.USER, "customer@mail.test", 1)
        login_throttle_service.record_failed_attempt(Guard.USER, "customer@mail.test")

        assert login_throttle_service.get_recent_failed_attempts(Guard.USER, "customer@mail.test") == 1
        assert login_throttle_service.is_locked(Guard.USER, "customer@mail.test") == (False, None)

    def test_lockout_status_before_and_after_lock(self, app, db_session):
        for _ in range(3):
            login_throttle_service.record_failed_attempt(Guard.SHOP_OWNER, "owner@shop.test")

        status = login_throttle_service.get_lockout_status(Guard.SHOP_OWNER, "owner@shop.test")
        assert status == {
            "locked": False,
            "failed_attempts": 3,
            "max_attempts": 10,
            "seconds_until_unlock": None,
            "lockout_minutes": 15,
        }

        for _ in range(7):
            login_throttle_service.record_failed_attempt(Guard.SHOP_OWNER, "owner@shop.test")

        status = login_throttle_service.get_lockout_status(Guard.SHOP_OWNER, "owner@shop.test")
        assert status["locked"] is True
        assert status["seconds_until_unlock"] > 0

    def test_shop_owner_login_answers_429_when_locked(self, client, shop_owner):
        """Even the right password is refused while locked."""
        for _ in range(10):
            assert login_shop_owner(client, password="WrongPassword1").status_code == 401

        response = login_shop_owner(client)

        assert response.status_code == 429
        body = response.get_json()
        assert body["success"] is False
        assert body["retry_after_seconds"] > 0
        assert body["failed_attempts"] == 10
        assert body["max_attempts"] == 10
        assert body["lockout_minutes"] == 15

    def test_failed_attempts_recorded(self, client, shop_owner, db_session):
        """Every failed attempt leaves a LOGIN_FAILED security event."""
        login_shop_owner(client, password="WrongPassword1")
        login_shop_owner(client, email="ghost@shop.test")

        events = db_session.query(SecurityEvent).filter_by(
            guard=Guard.SHOP_OWNER, event_type=SecurityEvent.LOGIN_FAILED,
        ).all()
        assert {e.identifier for e in events} == {"owner@shop.test", "ghost@shop.test"}


class TestSessions:
    """Guard session lifecycle."""

    def test_login_regenerates_session(self, client, customer, db_session):
        """Logging in again revokes the previous token of that guard."""
        login_user(client)
        login_user(client)

        rows = db_session.query(GuardSession).filter_by(guard=Guard.USER, principal_id=customer.id).all()
        assert len(rows) == 2
        assert sorted(r.is_revoked for r in rows) == [False, True]
        revoked = next(r for r in rows if r.is_revoked)
        assert revoked.revoked_reason == "Session regenerated"

    def test_login_rotates_csrf_token(self, client, customer):
        """The CSRF token changes across login."""
        before = client.get("/csrf-token").get_json()["csrf_token"]
        login_user(client)
        after = client.get("/csrf-token").get_json()["csrf_token"]
        assert before != after

    def test_two_guards_in_one_browser(self, client, customer, shop_owner):
        """One browser may hold a user and a shop owner at once."""
        login_user(client)
        login_shop_owner(client)

        auth = _page_props(client, "/")["auth"]
        assert auth["user"]["id"] == customer.id
        assert auth["shop_owner"]["id"] == shop_owner.id
        assert auth["employee"] is None
        assert auth["super_admin"] is None

    def test_logout_is_isolated_per_guard(self, client, customer, shop_owner, db_session):
        """Logging out the user leaves the shop owner signed in."""
        login_user(client)
        login_shop_owner(client)

        response = client.post("/user/logout")
        assert response.status_code == 302

        assert client.get("/user/profile").status_code == 302
        assert client.get("/shop-owner/user-access-control").status_code == 200

        logout_event = db_session.query(SecurityEvent).filter_by(
            guard=Guard.USER, event_type=SecurityEvent.LOGOUT,
        ).one()
        assert logout_event.principal_id == customer.id

    def test_revoked_session_no_longer_authenticates(self, client, customer, db_session):
        """Revoking the row server-side ends the guard session."""
        login_user(client)
        for row in db_session.query(GuardSession).filter_by(guard=Guard.USER).all():
            row.is_revoked = True
        db_session.commit()

        assert client.get("/user/profile").status_code == 302


class TestRouteGating:
    """require_guard behavior."""

    def test_unauthenticated_redirects_with_next(self, client, db_session):
        """Protected page: redirect to the guard's login with ?next."""
        response = client.get("/shop-owner/user-access-control?status=active")

        assert response.status_code == 302
        assert _location(response) == "/shop-owner/login"
        assert _next_param(response) == "/shop-owner/user-access-control?status=active"

        props = _page_props(client, "/shop-owner/login")
        assert props["flash"]["error"] == "Please login to continue."

    def test_unauthenticated_json_client_gets_401(self, client, db_session):
        response = client.get("/admin/shop-registrations", headers={"Accept": "application/json"})
        assert response.status_code == 401

    def test_other_guard_does_not_satisfy(self, client, customer):
        """A logged-in customer is still unauthenticated for the admin area."""
        login_user(client)
        response = client.get("/admin/shop-registrations")
        assert response.status_code == 302
        assert _location(response) == "/admin/login"

    def test_suspended_admin_forced_out_mid_session(self, client, super_admin, db_session):
        """Suspension takes effect on the next request, with its message."""
        login_super_admin(client)
        assert client.get("/admin/shop-registrations").status_code == 200

        super_admin.status = SuperAdmin.STATUS_SUSPENDED
        db_session.commit()

        response = client.get("/admin/shop-registrations")
        assert response.status_code == 302
        assert _location(response) == "/admin/login"

        props = _page_props(client, "/admin/login")
        assert props["flash"]["error"] == (
            "Your account has been suspended. Please contact system administrator."
        )
        assert props["auth"]["super_admin"] is None

        forced = db_session.query(SecurityEvent).filter_by(event_type=SecurityEvent.FORCED_LOGOUT).one()
        assert forced.guard == Guard.SUPER_ADMIN

        # Reactivating does not restore the revoked session
        super_admin.status = SuperAdmin.STATUS_ACTIVE
        db_session.commit()
        assert client.get("/admin/shop-registrations").status_code == 302

    def test_suspended_user_forced_out(self, client, customer, db_session):
        login_user(client)

        customer.status = User.STATUS_SUSPENDED
        db_session.commit()

        response = client.get("/user/profile")
        assert _location(response) == "/user/login"
        props = _page_props(client, "/user/login")
        assert props["flash"]["error"] == "Your account has been suspended. Please contact support."


class TestForcedPasswordChange:
    """Staff Users with a temporary password must rotate it first."""

    def test_login_lands_on_password_page(self, client, db_session):
        make_user(db_session, force_password_change=True)

        response = login_user(client)

        assert _location(response) == "/user/password"

    def test_other_pages_redirect_to_password_page(self, client, db_session):
        make_user(db_session, force_password_change=True)
        login_user(client)

        response = client.get("/user/profile")
        assert response.status_code == 302
        assert _location(response) == "/user/password"

        assert client.get("/user/password").status_code == 200

    def test_change_password_clears_flag(self, client, db_session):
        user = make_user(db_session, force_password_change=True)
        login_user(client)

        response = client.post("/user/password", data={
            "current_password": PASSWORD,
            "password": "BrandNewPass1",
            "password_confirmation": "BrandNewPass1",
        })

        assert _location(response) == "/user/profile"
        db_session.refresh(user)
        assert user.force_password_change is False
        assert client.get("/user/profile").status_code == 200

    def test_new_password_must_differ(self, client, db_session):
        make_user(db_session, force_password_change=True)
        login_user(client)

        client.post("/user/password", data={
            "current_password": PASSWORD,
            "password": PASSWORD,
            "password_confirmation": PASSWORD,
        })

        props = _page_props(client, "/user/password")
        assert props["errors"]["password"] == ["New password must be different from the current password"]


class TestNextRedirect:
    """?next is honored only for same-origin paths."""

    def test_local_next_honored(self, client, customer):
        response = client.post("/user/login", data={
            "email": "customer@mail.test", "password": PASSWORD, "next": "/user/profile",
        })
        assert _location(response) == "/user/profile"

    def test_external_next_ignored(self, client, customer):
        response = client.post("/user/login", data={
            "email": "customer@mail.test", "password": PASSWORD, "next": "https://evil.example/phish",
        })
        assert response.headers["Location"] == "/"

    def test_protocol_relative_next_ignored(self, client, customer):
        response = client.post("/user/login", data={
            "email": "customer@mail.test", "password": PASSWORD, "next": "//evil.example",
        })
        assert response.headers["Location"] == "/"


class TestCsrf:
    """State-changing requests must carry the session's CSRF token."""

    def test_missing_token_rejected(self, app, client, customer, monkeypatch):
        monkeypatch.setitem(app.config, "CSRF_ENABLED", True)

        response = login_user(client)

        assert response.status_code == 419
        assert response.get_json() == {"error": "CSRF token mismatch"}

    def test_wrong_token_rejected(self, app, client, customer, monkeypatch):
        monkeypatch.setitem(app.config, "CSRF_ENABLED", True)
        client.get("/csrf-token")

        response = client.post(
            "/user/login",
            data={"email": "customer@mail.test", "password": PASSWORD},
            headers={"X-CSRF-TOKEN": "not-the-token"},
        )
        assert response.status_code == 419

    def test_header_token_accepted(self, app, client, customer, monkeypatch):
        monkeypatch.setitem(app.config, "CSRF_ENABLED", True)
        token = client.get("/csrf-token").get_json()["csrf_token"]

        response = client.post(
            "/user/login",
            data={"email": "customer@mail.test", "password": PASSWORD},
            headers={"X-CSRF-TOKEN": token},
        )
        assert response.status_code == 302

    def test_form_token_accepted(self, app, client, customer, monkeypatch):
        monkeypatch.setitem(app.config, "CSRF_ENABLED", True)
        token = client.get("/csrf-token").get_json()["csrf_token"]

        response = client.post("/user/login", data={
            "email": "customer@mail.test", "password": PASSWORD, "_token": token,
        })
        assert response.status_code == 302

    def test_json_body_token_accepted(self, app, client, shop_owner, monkeypatch):
        monkeypatch.setitem(app.config, "CSRF_ENABLED", True)
        token = client.get("/csrf-token").get_json()["csrf_token"]

        response = client.post("/shop-owner/login", json={
            "email": "owner@shop.test", "password": PASSWORD, "_token": token,
        })
        assert response.status_code == 200

    def test_safe_methods_skip_check(self, app, client, monkeypatch):
        monkeypatch.setitem(app.config, "CSRF_ENABLED", True)
        assert client.get("/health").status_code == 200
