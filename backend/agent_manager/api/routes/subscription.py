"""Subscription routes: Stripe Checkout, status, cancel/reactivate, webhooks."""

from datetime import UTC, datetime, timedelta

import stripe
import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import select

from agent_manager.api.deps import get_stripe_gateway, get_subscription_sync
from agent_manager.core.auth import require_auth
from agent_manager.core.config import get_settings
from agent_manager.db.base import get_session_factory
from agent_manager.db.models.subscription import Subscription
from agent_manager.db.models.user import User
from agent_manager.domain.usage_gate import PLANS, can_generate, has_active_subscription
from agent_manager.schemas.account import SubscriptionSummary
from agent_manager.schemas.agents import CamelModel
from agent_manager.services.billing_gateway import StripeGateway
from agent_manager.services.subscription_sync import SubscriptionSync
from agent_manager.services.usage_stats import count_generations

logger = structlog.get_logger(__name__)

router = APIRouter()


# ── Request / Response schemas ──────────────────────────────────────


class CheckoutRequest(CamelModel):
    plan: str = ""  # "monthly" | "yearly"


class CheckoutResponse(CamelModel):
    session_id: str
    url: str | None


class SubscriptionStatusResponse(CamelModel):
    has_subscription: bool
    subscription: SubscriptionSummary | None
    total_generations: int
    weekly_generations: int
    can_generate: bool


class CancelResponse(CamelModel):
    message: str
    cancel_at_period_end: bool


# ── Helpers ─────────────────────────────────────────────────────────


def _price_id_for(plan: str) -> str:
    settings = get_settings()
    return {
        "monthly": settings.stripe_monthly_price_id,
        "yearly": settings.stripe_yearly_price_id,
    }[plan]


async def _set_cancel_flag(user: User, gateway: StripeGateway, cancel: bool) -> None:
    """Toggle cancel_at_period_end at Stripe, then mirror it locally."""
    if user.subscription is None:
        raise HTTPException(status_code=404, detail="No subscription found")

    subscription_id = user.subscription.stripe_subscription_id
    try:
        await gateway.set_cancel_at_period_end(subscription_id, cancel)
    except stripe.StripeError as exc:
        logger.error(
            "stripe_cancel_toggle_failed",
            user_id=user.id,
            subscription_id=subscription_id,
            cancel=cancel,
            error=str(exc),
        )
        raise HTTPException(status_code=500, detail="Failed to update subscription")

    factory = get_session_factory()
    async with factory() as session:
        subscription = await session.get(Subscription, user.subscription.id)
        subscription.cancel_at_period_end = cancel
        await session.commit()

    logger.info("subscription_cancel_toggled", user_id=user.id, cancel_at_period_end=cancel)


# ── Endpoints ───────────────────────────────────────────────────────


@router.post("/create-checkout", response_model=CheckoutResponse)
async def create_checkout(
    body: CheckoutRequest,
    user: User = Depends(require_auth),
    gateway: StripeGateway = Depends(get_stripe_gateway),
):
    """Create a Stripe Checkout session for the monthly or yearly plan."""
    if body.plan not in PLANS:
        raise HTTPException(status_code=400, detail="Invalid plan. Must be 'monthly' or 'yearly'")

    price_id = _price_id_for(body.plan)
    if not price_id:
        logger.error("stripe_price_id_missing", plan=body.plan)
        raise HTTPException(status_code=500, detail="Stripe pricing is not configured")

    subscription = user.subscription
    if subscription is not None and has_active_subscription(subscription.status):
        raise HTTPException(status_code=400, detail="You already have an active subscription")

    settings = get_settings()
    try:
        customer_id = subscription.stripe_customer_id if subscription else None
        if not customer_id:
            customer_id = await gateway.create_customer(user.email, user.id)

        checkout_session = await gateway.create_checkout_session(
            customer_id=customer_id,
            price_id=price_id,
            user_id=user.id,
            plan=body.plan,
            success_url=f"{settings.frontend_url}/subscription/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{settings.frontend_url}/subscription/canceled",
        )
    except stripe.StripeError as exc:
        logger.error("checkout_session_failed", user_id=user.id, plan=body.plan, error=str(exc))
        raise HTTPException(status_code=500, detail="Failed to create checkout session")

    logger.info("checkout_session_created", user_id=user.id, plan=body.plan)
    return CheckoutResponse(session_id=checkout_session.id, url=checkout_session.url)


@router.get("/status", response_model=SubscriptionStatusResponse)
async def get_subscription_status(user: User = Depends(require_auth)):
    """Return the subscription summary together with generation counts."""
    week_ago = datetime.now(UTC) - timedelta(days=7)

    factory = get_session_factory()
    async with factory() as session:
        total = await count_generations(session, user.id)
        weekly = await count_generations(session, user.id, since=week_ago)

    subscription = user.subscription
    status = subscription.status if subscription else None
    return SubscriptionStatusResponse(
        has_subscription=has_active_subscription(status),
        subscription=SubscriptionSummary.from_model(subscription),
        total_generations=total,
        weekly_generations=weekly,
        can_generate=can_generate(total, status),
    )


@router.post("/cancel", response_model=CancelResponse)
async def cancel_subscription(
    user: User = Depends(require_auth),
    gateway: StripeGateway = Depends(get_stripe_gateway),
):
    await _set_cancel_flag(user, gateway, cancel=True)
    return CancelResponse(
        message="Subscription will be canceled at the end of the billing period",
        cancel_at_period_end=True,
    )


@router.post("/reactivate", response_model=CancelResponse)
async def reactivate_subscription(
    user: User = Depends(require_auth),
    gateway: StripeGateway = Depends(get_stripe_gateway),
):
    await _set_cancel_flag(user, gateway, cancel=False)
    return CancelResponse(message="Subscription reactivated", cancel_at_period_end=False)


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    gateway: StripeGateway = Depends(get_stripe_gateway),
    sync: SubscriptionSync = Depends(get_subscription_sync),
):
    """Handle Stripe webhook events with signature verification."""
    if not gateway.webhook_secret:
        logger.error("stripe_webhook_secret_missing")
        raise HTTPException(status_code=503, detail="Stripe webhook endpoint is not configured")

    body = await request.body()
    sig_header = request.headers.get("stripe-signature")

    if not sig_header:
        raise HTTPException(status_code=400, detail="Missing stripe-signature header")

    try:
        event = gateway.construct_event(body, sig_header)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid payload")
    except stripe.SignatureVerificationError:
        raise HTTPException(status_code=400, detail="Invalid signature")

    logger.info("stripe_webhook_received", event_type=event["type"], event_id=event.get("id"))

    try:
        await sync.apply(event)
    except Exception as exc:
        logger.error(
            "stripe_webhook_handler_failed",
            event_type=event["type"],
            event_id=event.get("id"),
            error=str(exc),
            error_type=type(exc).__name__,
            exc_info=True,
        )
        raise HTTPException(status_code=500, detail="Webhook handler failed")

    return {"received": True}
