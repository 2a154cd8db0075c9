# Overview: Pytest coverage for account status lifecycle behavior.

"""
Status Lifecycle Tests

- is_active is true iff the status is in the kind's active set
- ShopOwner review is one-directional and happens once
- Employee / User / SuperAdmin transitions are free within their vocabulary
- Refusal messages are kind- and status-specific
"""

import pytest

from solespace.models import Employee, ShopOwner, SuperAdmin, User
from solespace.services import lifecycle_service
from solespace.services.lifecycle_service import InvalidStatusTransition
from solespace.validation import ConflictError

from conftest import make_shop_owner, make_super_admin, make_user


class TestIsActive:
    @pytest.mark.parametrize("status,expected", [
        (ShopOwner.STATUS_PENDING, False),
        (ShopOwner.STATUS_APPROVED, True),
        (ShopOwner.STATUS_REJECTED, False),
    ])
    def test_shop_owner(self, db_session, status, expected):
        shop = make_shop_owner(db_session, status=status)
        assert lifecycle_service.is_active(shop) is expected

    @pytest.mark.parametrize("status,expected", [
        (User.STATUS_ACTIVE, True),
        (User.STATUS_SUSPENDED, False),
        (User.STATUS_INACTIVE, False),
    ])
    def test_user(self, db_session, status, expected):
        user = make_user(db_session, status=status)
        assert lifecycle_service.is_active(user) is expected

    @pytest.mark.parametrize("status,expected", [
        (SuperAdmin.STATUS_ACTIVE, True),
        (SuperAdmin.STATUS_SUSPENDED, False),
        (SuperAdmin.STATUS_INACTIVE, False),
    ])
    def test_super_admin(self, db_session, status, expected):
        admin = make_super_admin(db_session, status=status)
        assert lifecycle_service.is_active(admin) is expected

    @pytest.mark.parametrize("status,expected", [
        (Employee.STATUS_ACTIVE, True),
        (Employee.STATUS_INACTIVE, False),
        (Employee.STATUS_ON_LEAVE, False),
    ])
    def test_employee(self, status, expected):
        employee = Employee(email="e@shop.test", name="E", status=status)
        assert lifecycle_service.is_active(employee) is expected

    def test_soft_deleted_employee_is_never_active(self):
        from solespace.time_utils import utcnow
        employee = Employee(email="e@shop.test", name="E", status=Employee.STATUS_ACTIVE, deleted_at=utcnow())
        assert lifecycle_service.is_active(employee) is False

    def test_none_is_not_active(self):
        assert lifecycle_service.is_active(None) is False


class TestShopOwnerReview:
    def test_approve_from_pending(self, db_session, super_admin):
        shop = make_shop_owner(db_session, status=ShopOwner.STATUS_PENDING)

        lifecycle_service.approve_shop_owner(shop, super_admin)

        db_session.refresh(shop)
        assert shop.status == ShopOwner.STATUS_APPROVED
        assert shop.reviewed_by_admin_id == super_admin.id
        assert shop.reviewed_at is not None

    def test_reject_stores_reason(self, db_session):
        shop = make_shop_owner(db_session, status=ShopOwner.STATUS_PENDING)

        lifecycle_service.reject_shop_owner(shop, "  Blurry permit  ")

        db_session.refresh(shop)
        assert shop.status == ShopOwner.STATUS_REJECTED
        assert shop.rejection_reason == "Blurry permit"

    @pytest.mark.parametrize("terminal", [ShopOwner.STATUS_APPROVED, ShopOwner.STATUS_REJECTED])
    def test_review_is_terminal(self, db_session, terminal):
        shop = make_shop_owner(db_session, status=terminal)

        with pytest.raises(InvalidStatusTransition):
            lifecycle_service.approve_shop_owner(shop)
        with pytest.raises(InvalidStatusTransition):
            lifecycle_service.reject_shop_owner(shop, "late")

        db_session.refresh(shop)
        assert shop.status == terminal


class TestFreeTransitions:
    def test_employee_moves_among_statuses(self, db_session, shop_owner):
        employee = Employee(shop_owner_id=shop_owner.id, email="e@shop.test", name="E")
        db_session.add(employee)
        db_session.commit()

        assert lifecycle_service.set_employee_status(employee, Employee.STATUS_ON_LEAVE) == "active"
        assert lifecycle_service.set_employee_status(employee, Employee.STATUS_INACTIVE) == "on_leave"
        assert lifecycle_service.set_employee_status(employee, Employee.STATUS_ACTIVE) == "inactive"

    def test_employee_rejects_unknown_status(self, db_session, shop_owner):
        employee = Employee(shop_owner_id=shop_owner.id, email="e@shop.test", name="E")
        db_session.add(employee)
        db_session.commit()

        with pytest.raises(InvalidStatusTransition):
            lifecycle_service.set_employee_status(employee, "fired")

    def test_user_suspend_activate_deactivate(self, db_session, customer):
        lifecycle_service.suspend_user(customer)
        assert customer.status == User.STATUS_SUSPENDED
        lifecycle_service.activate_user(customer)
        assert customer.status == User.STATUS_ACTIVE
        lifecycle_service.deactivate_user(customer)
        assert customer.status == User.STATUS_INACTIVE

    def test_admin_cannot_suspend_itself(self, db_session, super_admin):
        with pytest.raises(ConflictError):
            lifecycle_service.suspend_super_admin(super_admin, super_admin)
        assert super_admin.status == SuperAdmin.STATUS_ACTIVE

    def test_admin_suspends_and_reactivates_another(self, db_session, super_admin):
        other = make_super_admin(db_session, email="other@solespace.test")

        lifecycle_service.suspend_super_admin(other, super_admin)
        assert other.status == SuperAdmin.STATUS_SUSPENDED

        lifecycle_service.activate_super_admin(other, super_admin)
        assert other.status == SuperAdmin.STATUS_ACTIVE


class TestNotActiveMessages:
    def test_pending_shop_owner(self, db_session):
        shop = make_shop_owner(db_session, status=ShopOwner.STATUS_PENDING)
        assert lifecycle_service.not_active_message(shop) == "Your shop registration is still pending approval."

    def test_rejected_shop_owner_includes_reason(self, db_session):
        shop = make_shop_owner(db_session, status=ShopOwner.STATUS_REJECTED, rejection_reason="Missing permit")
        message = lifecycle_service.not_active_message(shop)
        assert message.startswith("Your shop registration was rejected.")
        assert "Missing permit" in message

    def test_suspended_super_admin(self, db_session):
        admin = make_super_admin(db_session, status=SuperAdmin.STATUS_SUSPENDED)
        assert lifecycle_service.not_active_message(admin) == (
            "Your account has been suspended. Please contact system administrator."
        )

    def test_employee_on_leave(self):
        employee = Employee(email="e@shop.test", name="E", status=Employee.STATUS_ON_LEAVE)
        assert "on leave" in lifecycle_service.not_active_message(employee)
