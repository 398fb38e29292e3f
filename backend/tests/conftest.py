"""
Pytest fixtures for CargoDesk backend tests.

Provides an in-memory database, two operators (tenants) with branches,
users and a vehicle each, and helpers for authenticated API calls.
"""

from datetime import date
from decimal import Decimal

import pytest

from cargodesk import create_app
from cargodesk.extensions import db
from cargodesk.models import Branch, Operator, User, Vehicle
from cargodesk.services.auth_service import hash_password

PASSWORD = "Password123!"
BOOKING_DAY = date(2025, 6, 9)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'LOG_LEVEL': 'WARNING',
    })

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


def make_user(session, operator, mobile, *, full_name=None, role="staff", balance="0", branch=None,
              is_superuser=False):
    user = User(
        operator_id=operator.id,
        branch_id=branch.id if branch else None,
        full_name=full_name or f"User {mobile}",
        mobile=mobile,
        password_hash=hash_password(PASSWORD),
        role=role,
        status="Active",
        is_superuser=is_superuser,
        cargo_balance=Decimal(balance),
    )
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def operator_a(db_session):
    """Operator A (first tenant)."""
    operator = Operator(name="Alpha Logistics", code="ALP", phone="9000000001",
                        payment_methods=["cash", "UPI"])
    db_session.add(operator)
    db_session.commit()
    return operator


@pytest.fixture(scope='function')
def operator_b(db_session):
    """Operator B (second tenant). Accepts cash only."""
    operator = Operator(name="Beta Cargo", code="BT1", phone="9000000002",
                        payment_methods=["cash"])
    db_session.add(operator)
    db_session.commit()
    return operator


@pytest.fixture(scope='function')
def branch_a1(db_session, operator_a):
    branch = Branch(operator_id=operator_a.id, branch_code="HYD", name="Hyderabad")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def branch_a2(db_session, operator_a):
    branch = Branch(operator_id=operator_a.id, branch_code="BLR", name="Bengaluru")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def branch_b1(db_session, operator_b):
    branch = Branch(operator_id=operator_b.id, branch_code="CHN", name="Chennai")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def branch_b2(db_session, operator_b):
    branch = Branch(operator_id=operator_b.id, branch_code="MDU", name="Madurai")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def admin_a(db_session, operator_a, branch_a1):
    """Admin of operator A."""
    return make_user(db_session, operator_a, "9100000001", full_name="Asha Admin",
                     role="admin", branch=branch_a1)


@pytest.fixture(scope='function')
def staff_a(db_session, operator_a, branch_a1):
    """Staff member of operator A holding 100.00."""
    return make_user(db_session, operator_a, "9100000002", full_name="Ravi Staff",
                     balance="100.00", branch=branch_a1)


@pytest.fixture(scope='function')
def staff_a2(db_session, operator_a, branch_a2):
    """Second staff member of operator A holding 10.00."""
    return make_user(db_session, operator_a, "9100000003", full_name="Meena Staff",
                     balance="10.00", branch=branch_a2)


@pytest.fixture(scope='function')
def staff_b(db_session, operator_b, branch_b1):
    """Staff member of operator B holding 500.00."""
    return make_user(db_session, operator_b, "9200000001", full_name="Karan Beta",
                     balance="500.00", branch=branch_b1)


@pytest.fixture(scope='function')
def superuser(db_session, operator_a):
    return make_user(db_session, operator_a, "9999999999", full_name="Platform Root",
                     role="admin", is_superuser=True)


@pytest.fixture(scope='function')
def vehicle_a(db_session, operator_a):
    vehicle = Vehicle(
        operator_id=operator_a.id,
        vehicle_number="TS09AB1234",
        vehicle_type="Truck",
        capacity="10T",
        driver="Suresh",
        current_location="Hyderabad",
    )
    db_session.add(vehicle)
    db_session.commit()
    return vehicle


def booking_payload(from_branch, to_branch, **overrides) -> dict:
    """Minimal valid booking body; charges total 150.00."""
    payload = {
        "lr_type": "Paid",
        "payment_type": "cash",
        "sender_name": "Sender One",
        "sender_phone": "9300000001",
        "receiver_name": "Receiver One",
        "receiver_phone": "9300000002",
        "from_branch_id": from_branch.id,
        "to_branch_id": to_branch.id,
        "weight": "12.5",
        "quantity": 2,
        "value_of_goods": "5000",
        "freight_charge": "100.00",
        "loading_charge": "20.00",
        "unloading_charge": "20.00",
        "other_charge": "10.00",
    }
    payload.update(overrides)
    return payload


def get_auth_token(client, mobile: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'mobile': mobile,
        'password': password,
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
