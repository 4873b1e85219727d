import os
import tempfile

# Configure the app before anything imports slotwise.config
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ALGORITHM"] = "HS256"
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(tempfile.gettempdir(), "slotwise-import.db")
os.environ["LOG_FILE"] = os.path.join(tempfile.gettempdir(), "slotwise-test.log")
os.environ["BUSINESS_TIMEZONE"] = "UTC"
os.environ["WORKDAY_START_HOUR"] = "9"
os.environ["WORKDAY_END_HOUR"] = "17"
for _name in ("TOKEN_AUDIENCE", "CUSTOMER_CANCEL_CUTOFF_HOURS", "DEFAULT_SERVICE_LIMIT"):
    os.environ.pop(_name, None)

from datetime import datetime, time, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from slotwise import config
from slotwise.database import Base, create_db_engine, create_session_factory, get_db
from slotwise.main import app
from slotwise.models.booking_model import Booking
from slotwise.models.service_model import Service
from slotwise.models.user_model import User


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'slotwise.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_token(sub, role="CUSTOMER", **claims):
    return jwt.encode({"sub": sub, "role": role, **claims}, config.SECRET_KEY, algorithm=config.ALGORITHM)


@pytest.fixture
def auth_headers():
    def _headers(sub, role="CUSTOMER"):
        return {"Authorization": f"Bearer {make_token(sub, role)}"}

    return _headers


@pytest.fixture
def booking_day():
    """A day a week from now, so every slot on it lies in the future."""
    return (datetime.now(timezone.utc) + timedelta(days=7)).date()


@pytest.fixture
def at(booking_day):
    def _at(hour, minute=0, day=None):
        return datetime.combine(day or booking_day, time(hour, minute), tzinfo=timezone.utc)

    return _at


# Seeding helpers use their own short-lived session so no transaction (and no
# SQLite write lock) stays open while the code under test runs.


@pytest.fixture
def make_user(session_factory):
    def _make_user(user_id, role="CUSTOMER", **fields):
        with session_factory() as session:
            session.add(User(id=user_id, role=role, name=fields.pop("name", user_id), **fields))
            session.commit()
        return user_id

    return _make_user


@pytest.fixture
def make_service(session_factory):
    def _make_service(provider_id, duration_minutes=60, category="GRASS_CUTTING", title="Lawn Mowing", base_price=500):
        with session_factory() as session:
            service = Service(
                provider_id=provider_id,
                title=title,
                category=category,
                base_price=base_price,
                duration_minutes=duration_minutes,
            )
            session.add(service)
            session.commit()
            return service.id

    return _make_service


@pytest.fixture
def make_booking(session_factory):
    def _make_booking(service_id, customer_id, provider_id, start_time, end_time, status="PENDING", payment_status="UNPAID"):
        with session_factory() as session:
            booking = Booking(
                service_id=service_id,
                customer_id=customer_id,
                provider_id=provider_id,
                start_time=start_time,
                end_time=end_time,
                status=status,
                payment_status=payment_status,
            )
            session.add(booking)
            session.commit()
            return booking.id

    return _make_booking


@pytest.fixture
def marketplace(make_user, make_service):
    """One provider offering a 60 minute service, and two customers."""
    provider_id = make_user("provider-1", role="PROVIDER", payment_qr_code="https://example.com/qr/juan", payment_notes="GCash: 09171234567")
    service_id = make_service(provider_id, duration_minutes=60)
    return {
        "provider_id": provider_id,
        "service_id": service_id,
        "customer_id": make_user("customer-1"),
        "other_customer_id": make_user("customer-2"),
    }
