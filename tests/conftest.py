"""
Pytest configuration and fixtures for testing
"""
import os

# Settings are read at import time; keep the limiter out of the way of tests
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "0")
os.environ.setdefault("AUTH_MODE", "none")

import hashlib
import hmac
import time

import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from database import Base, build_session_factory

# Create in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite+aiosqlite://"

WEBHOOK_SECRET = "whsec_test_secret"


class FakeTextGenerator:
    """Stands in for the OpenAI client; records every call."""

    def __init__(self, reply: str = "[]", error: Exception = None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def generate(self, prompt: str, max_tokens: int) -> str:
        self.calls.append({"prompt": prompt, "max_tokens": max_tokens})
        if self.error is not None:
            raise self.error
        return self.reply

    async def aclose(self) -> None:
        pass


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Build a Stripe-Signature header value for a raw payload."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode() + payload
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


@pytest.fixture
async def test_engine():
    """
    Fresh in-memory database per test.
    StaticPool keeps every session on the same connection, so the tables are shared.
    """
    import database_models  # noqa: F401

    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return build_session_factory(test_engine)


@pytest.fixture
async def test_db(session_factory):
    """An isolated AsyncSession for service-level tests."""
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


@pytest.fixture
def text_generator():
    return FakeTextGenerator()


@pytest.fixture
async def async_client(session_factory, text_generator):
    """
    Async HTTP client against the app with every startup-built client replaced:
    test database, fake text generator, known webhook secret, test Stripe
    config and the unverified header-based identity resolver.
    """
    from main import app
    from auth import NoAuthResolver, get_identity_resolver
    from database import get_db
    from dependencies import get_billing_service, get_payment_verifier, get_text_generator
    from services.billing_service import BillingService
    from services.payment_events import PaymentEventVerifier

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_text_generator] = lambda: text_generator
    app.dependency_overrides[get_payment_verifier] = lambda: PaymentEventVerifier(WEBHOOK_SECRET)
    app.dependency_overrides[get_billing_service] = lambda: BillingService(
        "sk_test_123", "price_pro_monthly", "http://localhost:5173"
    )
    app.dependency_overrides[get_identity_resolver] = lambda: NoAuthResolver("default-user")

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
