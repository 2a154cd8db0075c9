# Overview: Pytest coverage for sealed one-time notices and the temporary password hand-off.

"""
Sealed Notice Tests

Test Coverage:
- The temporary password never travels in the cookie session
- A notice is readable once, by the principal that sealed it, before expiry
- The secret is stored masked, never as plaintext
- Expired notices are cleaned up by maintenance
"""

import json
from datetime import timedelta

from sqlalchemy.exc import OperationalError

from solespace.models import Guard, SealedNotice
from solespace.services import maintenance_service, notice_service
from solespace.time_utils import utcnow

from conftest import employee_form, login_shop_owner


def _cookie_session(app, client) -> dict:
    cookie = client.get_cookie(app.config["SESSION_COOKIE_NAME"])
    assert cookie is not None
    return app.session_interface.get_signing_serializer(app).loads(cookie.value)


def _owner(guard, principal_id):
    return lambda asked: principal_id if asked == guard else None


class TestTemporaryPasswordHandOff:
    def test_password_not_in_cookie_session(self, app, client, db_session, shop_owner):
        login_shop_owner(client)

        client.post("/shop-owner/employees", data=employee_form())
        session_data = _cookie_session(app, client)

        props = client.get("/shop-owner/user-access-control").get_json()["props"]
        password = props["flash"]["employee_created"]["temporary_password"]

        assert len(password) == 10
        assert password not in json.dumps(session_data, default=str)
        assert password not in repr(session_data)
        assert "employee_created" in session_data["_notices"]

    def test_second_read_is_empty_and_row_is_gone(self, client, db_session, shop_owner):
        login_shop_owner(client)
        client.post("/shop-owner/employees", data=employee_form())
        assert db_session.query(SealedNotice).count() == 1

        first = client.get("/shop-owner/user-access-control").get_json()["props"]
        second = client.get("/shop-owner/user-access-control").get_json()["props"]

        assert "temporary_password" in first["flash"]["employee_created"]
        assert "employee_created" not in second["flash"]
        assert db_session.query(SealedNotice).count() == 0

    def test_notice_dropped_after_logout(self, app, client, db_session, shop_owner):
        login_shop_owner(client)
        client.post("/shop-owner/employees", data=employee_form())

        client.post("/shop-owner/logout")
        props = client.get("/shop-owner/login").get_json()["props"]

        assert "employee_created" not in props["flash"]
        assert db_session.query(SealedNotice).count() == 0

    def test_sealing_failure_keeps_employee_and_warns(self, client, db_session, shop_owner, monkeypatch):
        def failing_seal(*args, **kwargs):
            raise OperationalError("INSERT INTO sealed_notices", {}, Exception("database is locked"))

        monkeypatch.setattr(notice_service, "seal", failing_seal)
        login_shop_owner(client)

        client.post("/shop-owner/employees", data=employee_form())

        props = client.get("/shop-owner/user-access-control").get_json()["props"]
        assert props["flash"]["success"] == "Employee created successfully."
        assert "could not be displayed" in props["flash"]["warning"]
        assert "employee_created" not in props["flash"]
        assert len(props["employees"]) == 1


class TestNoticeService:
    def test_secret_is_stored_masked(self, app, db_session):
        token = notice_service.seal(
            Guard.SHOP_OWNER, 1, "employee_created",
            {"user_id": 5, "temporary_password": "Abc123xyz9"}, secret_field="temporary_password",
        )

        row = db_session.query(SealedNotice).one()
        assert row.payload == {"user_id": 5}
        assert "Abc123xyz9" not in row.sealed_secret
        assert row.token_hash != token

        payload = notice_service.claim(token, _owner(Guard.SHOP_OWNER, 1))
        assert payload == {"user_id": 5, "temporary_password": "Abc123xyz9"}

    def test_claim_by_another_principal_is_refused(self, app, db_session):
        token = notice_service.seal(Guard.SHOP_OWNER, 1, "employee_created", {"temporary_password": "x1"},
                                    secret_field="temporary_password")

        assert notice_service.claim(token, _owner(Guard.SHOP_OWNER, 2)) is None
        assert notice_service.claim(token, _owner(Guard.SHOP_OWNER, 1)) is None

    def test_expired_notice_is_refused(self, app, db_session):
        token = notice_service.seal(Guard.SHOP_OWNER, 1, "employee_created", {"user_id": 5})
        row = db_session.query(SealedNotice).one()
        row.expires_at = utcnow() - timedelta(seconds=1)
        db_session.commit()

        assert notice_service.claim(token, _owner(Guard.SHOP_OWNER, 1)) is None

    def test_unknown_token(self, app, db_session):
        assert notice_service.claim("not-a-token", _owner(Guard.SHOP_OWNER, 1)) is None
        assert notice_service.claim(None, _owner(Guard.SHOP_OWNER, 1)) is None

    def test_cleanup_removes_only_expired(self, app, db_session):
        notice_service.seal(Guard.SHOP_OWNER, 1, "employee_created", {"user_id": 5})
        notice_service.seal(Guard.SHOP_OWNER, 1, "employee_created", {"user_id": 6})
        stale = db_session.query(SealedNotice).order_by(SealedNotice.id).first()
        stale.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()

        assert maintenance_service.cleanup_notices() == 1
        assert db_session.query(SealedNotice).count() == 1

    def test_ttl_from_config(self, app, db_session, monkeypatch):
        monkeypatch.setitem(app.config, "SEALED_NOTICE_TTL_MINUTES", 1)

        notice_service.seal(Guard.SHOP_OWNER, 1, "employee_created", {"user_id": 5})

        row = db_session.query(SealedNotice).one()
        assert row.expires_at <= utcnow() + timedelta(minutes=1)
