import os, tempfile
from datetime import datetime, timedelta, timezone

# Configure the application before any routewise module is imported
_database = tempfile.NamedTemporaryFile(prefix="routewise-", suffix=".sqlite3", delete=False)
_database.close()
os.environ["DB_URL"] = f"sqlite:///{_database.name}"
os.environ["OPENOBSERVE_ENABLED"] = "false"
os.environ["JWT_SECRET"] = "test-access-secret"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret"

import pytest
from fastapi.testclient import TestClient

from routewise.main import app
from routewise.api import onboarding, organization
from routewise.src import argon2, jwt
from routewise.src.db import (
    BusType,
    ORMbase,
    Organization,
    Route,
    Tenant,
    TenantRole,
    Trip,
    User,
    engine,
    sessionMaker,
)
from routewise.src.enums import (
    ACType,
    AccountStatus,
    SeatingType,
    TenantStatus,
    TripStatus,
    UserRole,
)

PASSWORD = "password"
PASSWORD_HASH = argon2.makePassword(PASSWORD)


def pytest_sessionfinish(session, exitstatus):
    engine.dispose()
    if os.path.exists(_database.name):
        os.remove(_database.name)


@pytest.fixture(autouse=True)
def database():
    ORMbase.metadata.drop_all(engine)
    ORMbase.metadata.create_all(engine)
    yield


@pytest.fixture(autouse=True)
def no_redis(monkeypatch):
    # Requests of a test run one at a time, the per user mutex is not needed
    for module in (organization, onboarding):
        monkeypatch.setattr(module, "acquireLock", lambda *args, **kwargs: None)


def _add(record):
    session = sessionMaker()
    try:
        session.add(record)
        session.commit()
        session.refresh(record)
        return record
    finally:
        session.close()


@pytest.fixture
def add_record():
    """Insert an ORM record directly and return it detached."""
    return _add


@pytest.fixture
def make_user():
    def make(
        email_id="operator@routewise.in",
        role=UserRole.OPERATOR,
        status=AccountStatus.ACTIVE,
        full_name="Test Operator",
        tenant_id=None,
        tenant_role_id=None,
    ) -> User:
        return _add(
            User(
                email_id=email_id,
                password=PASSWORD_HASH,
                full_name=full_name,
                role=role,
                status=status,
                tenant_id=tenant_id,
                tenant_role_id=tenant_role_id,
            )
        )

    return make


@pytest.fixture
def make_tenant():
    def make(slug="kerala-travels", status=TenantStatus.ACTIVE, **permissions):
        tenant = _add(Tenant(name=slug.replace("-", " ").title(), slug=slug, status=status))
        role = _add(TenantRole(tenant_id=tenant.id, name="Staff", **permissions))
        return tenant, role

    return make


@pytest.fixture
def sign_in():
    """Open an admin console session and return the client holding its cookie."""

    def signIn(email_id="operator@routewise.in", password=PASSWORD) -> TestClient:
        client = TestClient(app)
        response = client.post(
            "/admin/auth/login", json={"email_id": email_id, "password": password}
        )
        assert response.status_code == 200, response.text
        return client

    return signIn


@pytest.fixture
def bearer():
    def header(user: User) -> dict:
        return {"Authorization": f"Bearer {jwt.makeTokens(user)['access_token']}"}

    return header


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def operator(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(email_id="admin@routewise.in", role=UserRole.ADMIN, full_name="Admin")


@pytest.fixture
def operator_client(operator, sign_in):
    return sign_in(operator.email_id)


@pytest.fixture
def other_client(make_user, sign_in):
    other = make_user(email_id="other@routewise.in", full_name="Other Operator")
    return sign_in(other.email_id)


@pytest.fixture
def organization_data():
    return {
        "name": "Kerala Travels",
        "address": "MG Road, Thiruvananthapuram",
        "phone_number": "+91 9496 801157",
        "email_id": "contact@keralatravels.in",
    }


@pytest.fixture
def make_fleet():
    """Create an organization with one bus type and one route for a user."""

    def make(user: User, origin="Trivandrum", destination="Kochi"):
        org = _add(
            Organization(
                user_id=user.id,
                name="Kerala Travels",
                address="MG Road, Thiruvananthapuram",
                phone_number="+91 9496 801157",
                email_id="contact@keralatravels.in",
                is_primary=True,
            )
        )
        busType = _add(
            BusType(
                user_id=user.id,
                organization_id=org.id,
                name="AC Seater",
                ac_type=ACType.AC,
                seating_type=SeatingType.SEATER,
                capacity=40,
                lower_seater_price=550,
                upper_seater_price=450,
                amenities=[1, 5],
            )
        )
        route = _add(
            Route(
                user_id=user.id,
                organization_id=org.id,
                name=f"{origin} -> {destination}",
                origin=origin,
                destination=destination,
                distance=205,
            )
        )
        return org, busType, route

    return make


@pytest.fixture
def make_trip():
    def make(
        busType: BusType,
        route: Route,
        departure: datetime | None = None,
        status=TripStatus.SCHEDULED,
        available_seats=40,
    ) -> Trip:
        departure = departure or datetime.now(timezone.utc) + timedelta(days=1)
        return _add(
            Trip(
                organization_id=route.organization_id,
                route_id=route.id,
                bus_type_id=busType.id,
                departure_time=departure,
                arrival_time=departure + timedelta(hours=5),
                base_fare=500,
                total_fare=550,
                available_seats=available_seats,
                total_seats=40,
                status=status,
            )
        )

    return make
