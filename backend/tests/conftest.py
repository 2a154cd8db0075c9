"""
Pytest fixtures for SoleSpace backend tests.

Provides test database setup, one factory per principal kind, and login
helpers for each guard.
"""

import pytest
from solespace import create_app
from solespace.extensions import db
from solespace.models import ShopOwner, SuperAdmin, User
from solespace.services.auth_service import hash_password


PASSWORD = "Password123"

TEST_CONFIG = {
    'TESTING': True,
    'SECRET_KEY': 'test-secret-key',
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'BCRYPT_LOG_ROUNDS': 4,
    # Enabled explicitly by the CSRF tests
    'CSRF_ENABLED': False,
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


# ----------------------------------------------------------------------
# Principal factories
# ----------------------------------------------------------------------

def make_shop_owner(db_session, *, email="owner@shop.test", status=ShopOwner.STATUS_APPROVED,
                    business_name="Sole Repair Co", password=PASSWORD, rejection_reason=None):
    shop_owner = ShopOwner(
        first_name="Olivia",
        last_name="Owner",
        email=email,
        phone="09171234567",
        password_hash=hash_password(password),
        business_name=business_name,
        business_address="123 Test St",
        business_type="repair",
        registration_type="individual",
        operating_hours=[{"day": "Monday", "open": "09:00", "close": "17:00"}],
        status=status,
        rejection_reason=rejection_reason,
    )
    db_session.add(shop_owner)
    db_session.commit()
    return shop_owner


def make_super_admin(db_session, *, email="admin@solespace.test", status=SuperAdmin.STATUS_ACTIVE,
                     password=PASSWORD):
    admin = SuperAdmin(
        name="Platform Admin",
        email=email,
        password_hash=hash_password(password),
        status=status,
    )
    db_session.add(admin)
    db_session.commit()
    return admin


def make_user(db_session, *, email="customer@mail.test", status=User.STATUS_ACTIVE,
              password=PASSWORD, force_password_change=False):
    user = User(
        name="Carla Customer",
        first_name="Carla",
        last_name="Customer",
        email=email,
        phone="09170000000",
        age=30,
        address="1 Customer Way",
        password_hash=hash_password(password),
        status=status,
        force_password_change=force_password_change,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def shop_owner(db_session):
    """Approved shop owner (tenant A)."""
    return make_shop_owner(db_session)


@pytest.fixture(scope='function')
def other_shop_owner(db_session):
    """Approved shop owner (tenant B)."""
    return make_shop_owner(db_session, email="other@shop.test", business_name="Other Soles")


@pytest.fixture(scope='function')
def super_admin(db_session):
    return make_super_admin(db_session)


@pytest.fixture(scope='function')
def customer(db_session):
    return make_user(db_session)


def employee_form(**overrides) -> dict:
    form = {
        "name": "Juan Dela Cruz",
        "email": "juan@shop.test",
        "phone": "09179998888",
        "position": "Technician",
        "department": "Repairs",
        "branch": "Main",
        "functional_role": "SALES_STAFF",
        "salary": "15000.50",
        "hire_date": "2026-01-15",
        "role": "staff",
    }
    form.update(overrides)
    return form


# ----------------------------------------------------------------------
# Login helpers
# ----------------------------------------------------------------------

def login_shop_owner(client, email="owner@shop.test", password=PASSWORD):
    return client.post('/shop-owner/login', json={'email': email, 'password': password})


def login_super_admin(client, email="admin@solespace.test", password=PASSWORD):
    return client.post('/admin/login', data={'email': email, 'password': password})


def login_user(client, email="customer@mail.test", password=PASSWORD):
    return client.post('/user/login', data={'email': email, 'password': password})


def login_employee(client, email, password):
    return client.post('/erp/login', data={'email': email, 'password': password})
