"""API-specific test fixtures."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from agent_manager.api.deps import (
    get_google_oauth_client,
    get_orchestrator,
    get_stripe_gateway,
    get_subscription_sync,
    get_usage_monitor,
)
from agent_manager.core.auth import create_session_token
from agent_manager.services.generation_service import GenerationOrchestrator
from agent_manager.services.subscription_sync import SubscriptionSync
from tests.fakes import FakeAdvisor


def auth_headers(user) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_session_token(user.id)}"}


@pytest.fixture
def fake_advisor():
    return FakeAdvisor()


@pytest.fixture
def orchestrator(fake_adapters, fake_advisor):
    return GenerationOrchestrator(fake_adapters, advisor=fake_advisor)


@pytest.fixture
def stripe_gateway():
    gateway = MagicMock()
    gateway.webhook_secret = "whsec_test_dummy"
    gateway.create_customer = AsyncMock(return_value="cus_new")
    gateway.create_checkout_session = AsyncMock(
        return_value=MagicMock(id="cs_test_123", url="https://checkout.stripe.com/c/cs_test_123")
    )
    gateway.retrieve_subscription = AsyncMock()
    gateway.set_cancel_at_period_end = AsyncMock()
    return gateway


@pytest.fixture
def usage_monitor():
    monitor = MagicMock()
    monitor.check_and_alert_high_usage = AsyncMock(return_value=None)
    return monitor


@pytest.fixture
def oauth_client():
    client = MagicMock()
    client.authorization_url.return_value = "https://accounts.google.com/o/oauth2/v2/auth?client_id=test"
    client.exchange_code = AsyncMock()
    return client


@pytest.fixture
def app(engine, session_factory, orchestrator, stripe_gateway, usage_monitor, oauth_client):
    """Application with SDK-backed services replaced by fakes.

    The engine fixture has already set the global session factory in this loop;
    ASGITransport does not run the lifespan, so init_db is never called.
    """
    from agent_manager.main import create_app

    app = create_app()
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_stripe_gateway] = lambda: stripe_gateway
    app.dependency_overrides[get_subscription_sync] = lambda: SubscriptionSync(session_factory, stripe_gateway)
    app.dependency_overrides[get_usage_monitor] = lambda: usage_monitor
    app.dependency_overrides[get_google_oauth_client] = lambda: oauth_client
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
