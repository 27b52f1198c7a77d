# founderhq/conftest.py
import sys
import os
import pytest
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock

# Add repo root to PYTHONPATH so `founderhq.*` imports resolve
REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

TEST_JWT_SECRET = "test-jwt-secret"
TEST_AUDIENCE = "authenticated"

# Settings are read once at import time
os.environ["ENV"] = "test"
os.environ["AUTH_JWT_SECRET"] = TEST_JWT_SECRET
os.environ["AUTH_JWT_AUDIENCE"] = TEST_AUDIENCE
os.environ["AI_API_KEY"] = "test-ai-key"
os.environ.pop("STRIPE_SECRET_KEY", None)
os.environ.pop("TEST_DATABASE_URL", None)

import jwt
from fastapi.testclient import TestClient
from sqlalchemy import insert

from founderhq.core.config import settings
from founderhq.core.database import (
    create_all_tables,
    drop_all_tables,
    get_db_session,
    get_session_factory,
    init_engine,
    user_subscriptions,
)


class FakeClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_token(user_id: str, *, secret: str = TEST_JWT_SECRET, expires_in: int = 3600, **claims) -> str:
    payload = {
        "sub": user_id,
        "aud": TEST_AUDIENCE,
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(user_id: str) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


def insert_subscription(
    user_id: str,
    plan: str = "free",
    status: str = "active",
    *,
    created_at: datetime = None,
    customer_id: str = None,
    subscription_id: str = None,
    current_period_end: datetime = None,
) -> None:
    now = datetime.now(timezone.utc)
    with get_db_session() as session:
        session.execute(
            insert(user_subscriptions).values(
                user_id=user_id,
                plan=plan,
                status=status,
                stripe_customer_id=customer_id,
                stripe_subscription_id=subscription_id,
                current_period_end=current_period_end,
                created_at=created_at or now,
                updated_at=now,
            )
        )


def insert_rows(table, user_id: str, count: int, **values) -> None:
    """Insert `count` rows owned by user_id; `values` fills the required columns."""
    now = datetime.now(timezone.utc)
    with get_db_session() as session:
        for i in range(count):
            row = {"user_id": user_id, "created_at": now}
            for key, value in values.items():
                row[key] = value.format(i=i) if isinstance(value, str) else value
            session.execute(insert(table).values(**row))


@pytest.fixture(scope="function", autouse=True)
def db():
    """
    Fresh in-memory SQLite database per test.

    One shared connection (StaticPool) keeps the schema alive across sessions.
    """
    engine = init_engine("sqlite://")
    create_all_tables()
    yield engine
    drop_all_tables()


@pytest.fixture(scope="function", autouse=True)
def test_settings(monkeypatch):
    """Pin auth and disable billing unless a test turns it on."""
    monkeypatch.setattr(settings, "AUTH_JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setattr(settings, "AUTH_JWT_AUDIENCE", TEST_AUDIENCE)
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", None)
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", None)
    monkeypatch.setattr(settings, "STRIPE_PRICE_PRO_MONTHLY", "price_month")
    monkeypatch.setattr(settings, "STRIPE_PRICE_PRO_YEARLY", "price_year")
    monkeypatch.setattr(settings, "TRIAL_DAYS", 7)
    yield settings


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def resolver(clock):
    from founderhq.features.subscriptions.cache import PlanCache
    from founderhq.features.subscriptions.service import SubscriptionResolver

    return SubscriptionResolver(get_session_factory(), PlanCache(ttl_seconds=60, clock=clock))


@pytest.fixture
def guard():
    from founderhq.features.enforcement.guard import PlanGuard

    return PlanGuard(get_session_factory())


@pytest.fixture
def fake_ai():
    """AI client double; tests set fake_ai.complete.return_value."""
    from founderhq.features.ai.client import AIClient

    client = AIClient(api_key="test-ai-key")
    client.complete = AsyncMock(return_value={"ideas": [{"title": "Idea", "description": "d"}]})
    return client


@pytest.fixture
def app(resolver, fake_ai):
    from founderhq.main import create_app

    return create_app(resolver=resolver, ai_client=fake_ai)


@pytest.fixture
def client(app):
    return TestClient(app)
