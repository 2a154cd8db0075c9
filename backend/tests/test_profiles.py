# Overview: Pytest coverage for shop owner and super admin profile and password routes.

import pytest

from solespace.models import ShopOwner
from solespace.services import auth_service, shop_owner_service
from solespace.validation import UniquenessConflict, ValidationError

from conftest import PASSWORD, login_shop_owner, login_super_admin


def _props(client, path):
    response = client.get(path)
    assert response.status_code == 200
    return response.get_json()["props"]


def profile_form(**overrides) -> dict:
    form = {
        "first_name": "Olivia",
        "last_name": "Owner-Reyes",
        "email": "owner@shop.test",
        "phone": "09179990000",
        "business_name": "Sole Repair & Co",
        "business_address": "9 New Address Ave",
    }
    form.update(overrides)
    return form


class TestShopOwnerProfile:
    def test_profile_page(self, client, shop_owner):
        login_shop_owner(client)

        props = _props(client, "/shop-owner/profile")

        assert props["shop_owner"]["id"] == shop_owner.id
        assert props["shop_owner"]["business_name"] == "Sole Repair Co"

    def test_profile_requires_shop_owner(self, client, db_session):
        response = client.get("/shop-owner/profile")
        assert response.status_code == 302
        assert "/shop-owner/login" in response.headers["Location"]

    def test_update_profile(self, client, db_session, shop_owner):
        login_shop_owner(client)

        response = client.post("/shop-owner/profile", data=profile_form())

        assert response.status_code == 302
        db_session.refresh(shop_owner)
        assert shop_owner.business_name == "Sole Repair & Co"
        assert shop_owner.business_address == "9 New Address Ave"
        assert shop_owner.last_name == "Owner-Reyes"
        assert shop_owner.status == ShopOwner.STATUS_APPROVED
        assert shop_owner.operating_hours == [{"day": "Monday", "open": "09:00", "close": "17:00"}]

        props = _props(client, "/shop-owner/profile")
        assert props["flash"]["success"] == "Profile updated successfully"

    def test_update_operating_hours(self, db_session, shop_owner):
        shop_owner_service.update_profile(shop_owner, profile_form(
            operating_hours=[{"day": "sunday", "open": "08:00", "close": "12:00"}],
        ))
        assert shop_owner.operating_hours == [{"day": "Sunday", "open": "08:00", "close": "12:00"}]

    def test_email_unique_among_shop_owners(self, db_session, shop_owner, other_shop_owner):
        with pytest.raises(UniquenessConflict) as exc_info:
            shop_owner_service.update_profile(shop_owner, profile_form(email="Other@Shop.test"))

        assert exc_info.value.errors == {"email": ["This email is already registered"]}
        db_session.refresh(shop_owner)
        assert shop_owner.email == "owner@shop.test"

    def test_validation_errors_flow_back(self, client, db_session, shop_owner):
        login_shop_owner(client)

        client.post("/shop-owner/profile", data=profile_form(business_name="", phone="1" * 21))

        props = _props(client, "/shop-owner/profile")
        assert set(props["errors"]) == {"business_name", "phone"}
        assert props["old"]["business_address"] == "9 New Address Ave"


class TestShopOwnerPassword:
    def test_change_password(self, client, db_session, shop_owner):
        login_shop_owner(client)

        client.post("/shop-owner/password", data={
            "current_password": PASSWORD,
            "password": "NewShopPass1",
            "password_confirmation": "NewShopPass1",
        })

        props = _props(client, "/shop-owner/profile")
        assert props["flash"]["success"] == "Password changed successfully"
        db_session.refresh(shop_owner)
        assert auth_service.verify_password("NewShopPass1", shop_owner.password_hash)
        assert login_shop_owner(client, password="NewShopPass1").status_code == 200

    def test_wrong_current_password(self, client, db_session, shop_owner):
        login_shop_owner(client)

        client.post("/shop-owner/password", data={
            "current_password": "WrongPassword1",
            "password": "NewShopPass1",
            "password_confirmation": "NewShopPass1",
        })

        props = _props(client, "/shop-owner/profile")
        assert props["errors"] == {"current_password": ["Current password is incorrect"]}
        db_session.refresh(shop_owner)
        assert auth_service.verify_password(PASSWORD, shop_owner.password_hash)

    @pytest.mark.parametrize("password,confirmation,message", [
        ("short1", "short1", "Password must be at least 8 characters"),
        ("NewShopPass1", "NewShopPass2", "Passwords do not match"),
        (PASSWORD, PASSWORD, "New password must be different from the current password"),
    ])
    def test_new_password_rules(self, db_session, shop_owner, password, confirmation, message):
        with pytest.raises(ValidationError) as exc_info:
            auth_service.change_password(shop_owner, PASSWORD, password, confirmation)
        assert exc_info.value.errors == {"password": [message]}


class TestSuperAdminProfile:
    @pytest.fixture
    def admin_client(self, client, super_admin):
        login_super_admin(client)
        return client

    def test_profile_shows_last_login(self, admin_client, super_admin):
        admin = _props(admin_client, "/admin/profile")["admin"]

        assert admin["id"] == super_admin.id
        assert admin["email"] == "admin@solespace.test"
        assert admin["status"] == "active"
        assert admin["last_login_at"] is not None
        assert admin["last_login_ip"] == "127.0.0.1"

    def test_update_password(self, admin_client, db_session, super_admin):
        response = admin_client.post("/admin/password", data={
            "current_password": PASSWORD,
            "password": "AdminPass99",
            "password_confirmation": "AdminPass99",
        })

        assert response.status_code == 302
        assert response.headers["Location"].endswith("/admin/profile")
        props = _props(admin_client, "/admin/profile")
        assert props["flash"]["success"] == "Password updated successfully!"
        db_session.refresh(super_admin)
        assert auth_service.verify_password("AdminPass99", super_admin.password_hash)

    def test_wrong_current_password(self, admin_client, db_session, super_admin):
        admin_client.post("/admin/password", data={
            "current_password": "WrongPassword1",
            "password": "AdminPass99",
            "password_confirmation": "AdminPass99",
        })

        props = _props(admin_client, "/admin/profile")
        assert props["errors"] == {"current_password": ["Current password is incorrect."]}

    def test_profile_requires_super_admin(self, client, shop_owner):
        login_shop_owner(client)

        response = client.get("/admin/profile")

        assert response.status_code == 302
        assert "/admin/login" in response.headers["Location"]
