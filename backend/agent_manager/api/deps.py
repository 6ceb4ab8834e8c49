"""FastAPI dependency providers for injected services.

SDK-backed services are built once per process from Settings; tests replace any
of them through app.dependency_overrides.
"""

from datetime import timedelta
from functools import lru_cache

from fastapi import Depends

from agent_manager.core.config import get_settings
from agent_manager.core.google_oauth import GoogleOAuthClient
from agent_manager.db.base import get_session_factory
from agent_manager.domain.providers import AIProvider
from agent_manager.llm import build_vendor_adapters
from agent_manager.services.billing_gateway import StripeGateway
from agent_manager.services.generation_service import GenerationOrchestrator
from agent_manager.services.notifications import EmailNotifier
from agent_manager.services.subscription_sync import SubscriptionSync
from agent_manager.services.usage_monitor import UsageAlertMonitor


@lru_cache
def get_orchestrator() -> GenerationOrchestrator:
    adapters = build_vendor_adapters(get_settings())
    return GenerationOrchestrator(adapters, advisor=adapters[AIProvider.GEMINI])


@lru_cache
def get_stripe_gateway() -> StripeGateway:
    settings = get_settings()
    return StripeGateway(settings.stripe_secret_key, settings.stripe_webhook_secret)


@lru_cache
def get_google_oauth_client() -> GoogleOAuthClient:
    settings = get_settings()
    return GoogleOAuthClient(
        settings.google_client_id,
        settings.google_client_secret,
        settings.google_redirect_uri,
    )


@lru_cache
def get_email_notifier() -> EmailNotifier:
    return EmailNotifier(get_settings())


def get_subscription_sync(gateway: StripeGateway = Depends(get_stripe_gateway)) -> SubscriptionSync:
    return SubscriptionSync(get_session_factory(), gateway)


def get_usage_monitor(notifier: EmailNotifier = Depends(get_email_notifier)) -> UsageAlertMonitor:
    settings = get_settings()
    return UsageAlertMonitor(
        get_session_factory(),
        notifier,
        threshold=settings.usage_alert_threshold,
        window=timedelta(days=settings.usage_alert_window_days),
    )
