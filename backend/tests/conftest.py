"""Shared test fixtures for all test groups."""

import os

# Settings are lru_cached; the session secret must be in place before first use.
os.environ.setdefault("JWT_SECRET", "test-session-secret-0123456789abcdef0123456789")
os.environ.setdefault("STRIPE_MONTHLY_PRICE_ID", "price_test_monthly")
os.environ.setdefault("STRIPE_YEARLY_PRICE_ID", "price_test_yearly")
os.environ.setdefault("FRONTEND_URL", "http://localhost:5173")

from datetime import UTC, datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from agent_manager.db.base import Base
from agent_manager.db.models import GenerationRecord, Subscription, User
from agent_manager.domain.providers import AIProvider
from tests.fakes import FakeAdapter


@pytest.fixture
def fake_adapters():
    return {provider: FakeAdapter(provider) for provider in AIProvider}


@pytest.fixture
async def engine(tmp_path) -> AsyncEngine:
    """Temporary SQLite database with all tables.

    Sets the global session factory in the pytest-asyncio event loop so route
    handlers and services using get_session_factory() share it.
    """
    import agent_manager.db.base as db_mod

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)

    import agent_manager.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    db_mod._engine = engine
    db_mod._session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    yield engine

    db_mod._engine = None
    db_mod._session_factory = None
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncSession:
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(session_factory):
    """Factory: persist a User, optionally with a Subscription and N generations."""

    async def _make_user(
        email: str = "ada@example.com",
        *,
        plan: str | None = None,
        status: str = "active",
        generations: int = 0,
        name: str | None = "Ada Lovelace",
        created_at: datetime | None = None,
    ) -> User:
        async with session_factory() as session:
            user = User(email=email, name=name, google_id=f"google-{email}")
            session.add(user)
            await session.flush()

            if plan is not None:
                session.add(
                    Subscription(
                        user_id=user.id,
                        plan=plan,
                        status=status,
                        stripe_customer_id=f"cus_{user.id[:8]}",
                        stripe_subscription_id=f"sub_{user.id[:8]}",
                        stripe_price_id=f"price_test_{plan}",
                        cancel_at_period_end=False,
                    )
                )

            for _ in range(generations):
                session.add(
                    GenerationRecord(
                        user_id=user.id,
                        agent_type="custom",
                        ai_provider="gemini",
                        description="seeded generation",
                        created_at=created_at or datetime.now(UTC),
                    )
                )

            await session.commit()
            return user

    return _make_user
