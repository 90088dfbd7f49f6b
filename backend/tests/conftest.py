"""Shared pytest fixtures for test suite"""
import hashlib
import hmac
import json
import os
import sys
import time
from pathlib import Path
from typing import Any, Dict, Generator, Optional
from unittest.mock import patch

import fakeredis
import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

# Settings are read once at import time
TEST_JWT_SECRET = "test-supabase-jwt-secret-with-enough-length"
TEST_WEBHOOK_SECRET = "whsec_test_secret"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_JWT_SECRET"] = TEST_JWT_SECRET
os.environ["STRIPE_WEBHOOK_SECRET"] = TEST_WEBHOOK_SECRET
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_PUBLISHABLE_KEY"] = "pk_test_dummy"
os.environ["ENVIRONMENT"] = "test"
os.environ.pop("OTEL_EXPORTER_OTLP_ENDPOINT", None)

from app.main import app
from app.db.session import get_db
from app.db import redis as redis_module
from app.models import Base
from app.models.item import Item
from app.services.payment_provider import PaymentIntentResult, StripePaymentProvider, get_payment_provider


# SQLite in-memory database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"

# Create test engine with StaticPool for in-memory database
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Create test session factory
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

TEST_USER_ID = "11111111-1111-1111-1111-111111111111"
OTHER_USER_ID = "22222222-2222-2222-2222-222222222222"


class FakePaymentProvider(StripePaymentProvider):
    """Stripe provider with the API call replaced; webhook verification stays real"""

    def __init__(self, fail_with: Optional[Exception] = None):
        super().__init__(
            secret_key="sk_test_dummy",
            webhook_secret=TEST_WEBHOOK_SECRET,
            api_version="2023-10-16",
        )
        self.fail_with = fail_with
        self.calls = []

    def create_payment_intent(self, amount, currency, description, metadata):
        self.calls.append({
            "amount": amount,
            "currency": currency,
            "description": description,
            "metadata": metadata,
        })
        if self.fail_with:
            raise self.fail_with
        intent_id = f"pi_test_{len(self.calls)}"
        return PaymentIntentResult(
            id=intent_id,
            client_secret=f"{intent_id}_secret_abc",
            status="requires_payment_method",
        )


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh SQLite in-memory database session for each test"""
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def mock_redis():
    """Mock Redis client using fakeredis"""
    fake_redis = fakeredis.FakeStrictRedis(decode_responses=True)
    with patch.object(redis_module, "_client", fake_redis):
        yield fake_redis


@pytest.fixture(scope="function")
def fake_provider() -> FakePaymentProvider:
    return FakePaymentProvider()


@pytest.fixture(scope="function")
def client(db_session: Session, mock_redis, fake_provider) -> Generator[TestClient, None, None]:
    """FastAPI test client with test database, mocked Redis and a fake payment provider"""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close session here, handled by fixture

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_provider] = lambda: fake_provider

    try:
        # Disable OpenTelemetry and table creation on the app engine
        with patch("app.main.initialize_otel", return_value=False):
            with patch("app.main.setup_otel_logging", return_value=False):
                with patch("app.main.instrument_sqlalchemy"):
                    with patch("app.main.init_db"):
                        with TestClient(app) as test_client:
                            yield test_client
    finally:
        app.dependency_overrides.clear()


def make_access_token(user_id: str = TEST_USER_ID, **overrides) -> str:
    """Supabase-style HS256 access token"""
    claims = {
        "sub": user_id,
        "aud": "authenticated",
        "role": "authenticated",
        "exp": int(time.time()) + 3600,
    }
    claims.update(overrides)
    return jwt.encode(claims, TEST_JWT_SECRET, algorithm="HS256")


@pytest.fixture(scope="function")
def auth_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_access_token()}"}


@pytest.fixture(scope="function")
def other_auth_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_access_token(OTHER_USER_ID)}"}


@pytest.fixture(scope="function")
def test_item(db_session: Session) -> Item:
    """Item owned by the test user"""
    item = Item(user_id=TEST_USER_ID, title="Vintage bike")
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


@pytest.fixture(scope="function")
def other_item(db_session: Session) -> Item:
    """Item owned by somebody else"""
    item = Item(user_id=OTHER_USER_ID, title="Record player")
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


def sign_webhook_payload(payload: str, secret: str = TEST_WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """Build a ``stripe-signature`` header the way Stripe signs events (v1 scheme)"""
    timestamp = timestamp or int(time.time())
    signed_payload = f"{timestamp}.{payload}"
    signature = hmac.new(secret.encode("utf-8"), signed_payload.encode("utf-8"), hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def make_event(event_type: str, data_object: Dict[str, Any], event_id: str = "evt_test_1") -> str:
    return json.dumps({
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {"object": data_object},
    })


def make_signed_event(event_type: str, data_object: Dict[str, Any], event_id: str = "evt_test_1"):
    """Serialized event plus a valid signature header for it"""
    payload = make_event(event_type, data_object, event_id)
    return payload, sign_webhook_payload(payload)
