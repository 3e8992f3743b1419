"""
Pytest configuration and fixtures for testing
"""
import hashlib
import hmac
import json
import os
import time

# Settings are read at import time, so the environment must be in place first
os.environ["STRIPE_SECRET_KEY"] = "sk_test_clientzap"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_clientzap"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-for-clientzap"
os.environ["RATE_LIMIT_PER_MINUTE"] = "100000"
os.environ.pop("REDIS_URL", None)
os.environ.pop("STRIPE_MONTHLY_PRICE_ID", None)
os.environ.pop("STRIPE_YEARLY_PRICE_ID", None)

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from database import Base, get_db
from auth_utils import hash_password, create_jwt
from crud.user import UserRepository

WEBHOOK_SECRET = os.environ["STRIPE_WEBHOOK_SECRET"]


@pytest.fixture
async def test_engine(tmp_path):
    """
    A throwaway SQLite database per test.

    This fixture:
    - Creates all tables before the test runs
    - Yields the engine
    - Drops all tables and disposes the engine afterwards
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        future=True,
    )
    async with engine.begin() as conn:
        # Import models to ensure they're registered with Base
        import database_models  # noqa: F401
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest.fixture
async def test_db(session_factory):
    """Fixture that provides a clean AsyncSession for each test."""
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@pytest.fixture
async def client(session_factory):
    """HTTP client for the app with get_db pointed at the test database."""
    from main import app

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
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(test_db):
    """Factory creating committed users with arbitrary subscription fields."""
    counter = {"n": 0}

    async def _make_user(**fields):
        counter["n"] += 1
        n = counter["n"]
        user_repo = UserRepository(test_db)
        user = await user_repo.create_user({
            "email": fields.pop("email", f"freelancer{n}@example.com"),
            "username": fields.pop("username", f"freelancer{n}"),
            "hashed_password": hash_password("CorrectHorse42!"),
        })
        if fields:
            user = await user_repo.update_user(user, fields)
        await test_db.commit()
        return user

    return _make_user


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_jwt(str(user.id))}"}


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Build a Stripe-Signature header the way Stripe does."""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def make_event(event_type: str, obj: dict, created: int = None, event_id: str = None) -> dict:
    return {
        "id": event_id or f"evt_{event_type.replace('.', '_')}",
        "object": "event",
        "type": event_type,
        "created": created or int(time.time()),
        "data": {"object": obj},
    }


def encode_event(event: dict) -> str:
    return json.dumps(event)
