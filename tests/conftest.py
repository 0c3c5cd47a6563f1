import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = ""
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BILLPLZ_X_SIGNATURE_KEY"] = "test-x-signature-key"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="sportify-logs-")

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core import redis as redis_module
from app.core.dependencies import get_db
from app.core.jwt import create_access_token
from app.core.security import hash_password
from app.db.session import Base
from app.main import app
from app.repositories.records import AdminRepository, AppointmentRepository, BookingRepository
from app.utils.billplz import compute_signature

X_SIGNATURE_KEY = "test-x-signature-key"

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


class FakePubSub:
    """Replays scripted ``get_message`` results, then drops the connection."""

    def __init__(self, messages):
        self.messages = list(messages)
        self.channels = []
        self.closed = False

    def subscribe(self, channel):
        self.channels.append(channel)

    def get_message(self, timeout=None):
        if not self.messages:
            raise RedisConnectionError("Connection closed by server.")
        return self.messages.pop(0)

    def close(self):
        self.closed = True


class FakeRedis:
    """Just enough of redis.Redis for the cache and change-feed helpers."""

    def __init__(self):
        self.store = {}
        self.published = []
        self.feed_messages = []
        self.pubsubs = []

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value

    def delete(self, key):
        self.store.pop(key, None)

    def publish(self, channel, message):
        self.published.append((channel, message))
        return 1

    def pubsub(self, ignore_subscribe_messages=False):
        pubsub = FakePubSub(self.feed_messages)
        self.pubsubs.append(pubsub)
        return pubsub


@pytest.fixture(scope="function")
def db():
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()

    yield session

    session.rollback()
    session.close()
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def client(db):
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    test_client = TestClient(app)

    yield test_client

    app.dependency_overrides.clear()
    test_client.close()


@pytest.fixture
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(redis_module, "_redis_client", fake)
    return fake


# ============================================================================
# IDENTITIES
# ============================================================================
@pytest.fixture
def admin(db):
    return AdminRepository(db).create(
        record_id="admin-1",
        name="Ops Admin",
        email="ops@sportify.com",
        password_hash=hash_password("secret123"),
        role="admin",
        is_active=True,
        permissions=["payments", "sessions"],
    )


@pytest.fixture
def admin_headers(admin):
    token = create_access_token({"sub": admin.id, "role": "admin"})
    return {"Authorization": f"Bearer {token}"}


def user_headers(user_id: str) -> dict:
    token = create_access_token({"sub": user_id, "role": "user"})
    return {"Authorization": f"Bearer {token}"}


# ============================================================================
# RECORDS
# ============================================================================
def slot_in(hours: float):
    """(date, "HH:MM") for a slot starting ``hours`` from now, to the minute."""
    start = datetime.now().replace(second=0, microsecond=0) + timedelta(hours=hours)
    return start.date(), start.strftime("%H:%M")


@pytest.fixture
def make_booking(db):
    def _make(booking_id="B1", hours_ahead=72, **overrides):
        booking_date, time_slot = slot_in(hours_ahead)
        fields = dict(
            booking_type="court",
            user_id="user-1",
            user_name="Aisyah",
            user_email="aisyah@example.com",
            venue_name="Arena Bangsar",
            venue_owner_id="owner-1",
            court_name="Court A",
            date=booking_date,
            time_slot=time_slot,
            total_price=Decimal("80.00"),
            status="pending",
            payment_status="unpaid",
        )
        fields.update(overrides)
        return BookingRepository(db).create(record_id=booking_id, **fields)

    return _make


@pytest.fixture
def make_appointment(db):
    def _make(appointment_id="C1", **overrides):
        session_date, time_slot = slot_in(-48)
        fields = dict(
            user_id="student-1",
            student_name="Daniel",
            coach_id="coach-1",
            coach_name="Coach Lim",
            date=session_date,
            time_slot=time_slot,
            duration=60,
            price=Decimal("100.00"),
            payment_amount=Decimal("100.00"),
            status="confirmed",
            payment_status="completed",
        )
        fields.update(overrides)
        return AppointmentRepository(db).create(record_id=appointment_id, **fields)

    return _make


def signed(payload: dict, key: str = X_SIGNATURE_KEY) -> dict:
    body = dict(payload)
    body["x_signature"] = compute_signature(body, key)
    return body
