"""SubscriptionSync: reconcile Stripe webhook events into Subscription rows.

Event -> transition:
    checkout.session.completed     upsert the user's Subscription from the Stripe subscription
    customer.subscription.updated  sync status / period end / cancel flag (by Stripe subscription id)
    customer.subscription.deleted  status = "canceled"
    invoice.payment_failed         status = "past_due"

Every transition writes absolute values, so replaying an event leaves the same state.
Signature verification happens in the webhook route before apply() is called.
"""

from collections.abc import Awaitable, Callable, Mapping
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agent_manager.db.models.subscription import Subscription
from agent_manager.db.models.user import User
from agent_manager.domain.usage_gate import PLANS
from agent_manager.services.billing_gateway import StripeGateway

logger = structlog.get_logger(__name__)

STATUS_CANCELED = "canceled"
STATUS_PAST_DUE = "past_due"


def _first_item(subscription: Mapping[str, Any]) -> Mapping[str, Any] | None:
    items = (subscription.get("items") or {}).get("data") or []
    return items[0] if items else None


def _period_end(subscription: Mapping[str, Any]) -> datetime | None:
    """current_period_end lives on the subscription in older API versions, on items in newer ones."""
    ts = subscription.get("current_period_end")
    if ts is None:
        item = _first_item(subscription)
        ts = item.get("current_period_end") if item else None
    return datetime.fromtimestamp(ts, UTC) if ts else None


def _price_id(subscription: Mapping[str, Any]) -> str | None:
    item = _first_item(subscription)
    if not item:
        return None
    price = item.get("price") or {}
    return price.get("id")


def _invoice_subscription_id(invoice: Mapping[str, Any]) -> str | None:
    subscription_id = invoice.get("subscription")
    if subscription_id:
        return subscription_id
    details = (invoice.get("parent") or {}).get("subscription_details") or {}
    return details.get("subscription")


class SubscriptionSync:
    """Applies verified Stripe events to persisted subscription state."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], gateway: StripeGateway):
        self.session_factory = session_factory
        self.gateway = gateway
        self._handlers: dict[str, Callable[[Mapping[str, Any]], Awaitable[None]]] = {
            "checkout.session.completed": self._handle_checkout_completed,
            "customer.subscription.updated": self._handle_subscription_updated,
            "customer.subscription.deleted": self._handle_subscription_deleted,
            "invoice.payment_failed": self._handle_payment_failed,
        }

    async def apply(self, event: Mapping[str, Any]) -> bool:
        """Run the transition for ``event``. Returns False for unhandled event types."""
        event_type = event.get("type")
        handler = self._handlers.get(event_type)
        if handler is None:
            logger.info("stripe_event_ignored", event_type=event_type, event_id=event.get("id"))
            return False

        logger.info("stripe_event_applying", event_type=event_type, event_id=event.get("id"))
        await handler(event["data"]["object"])
        return True

    async def _find_by_stripe_id(self, session: AsyncSession, subscription_id: str | None) -> Subscription | None:
        if not subscription_id:
            return None
        result = await session.execute(
            select(Subscription).where(Subscription.stripe_subscription_id == subscription_id)
        )
        return result.scalar_one_or_none()

    async def _handle_checkout_completed(self, session_data: Mapping[str, Any]) -> None:
        """Create or update the user's Subscription from the completed checkout."""
        metadata = session_data.get("metadata") or {}
        user_id = metadata.get("userId")
        plan = metadata.get("plan")
        subscription_id = session_data.get("subscription")

        if not user_id or plan not in PLANS or not subscription_id:
            logger.warning(
                "checkout_completed_missing_metadata",
                checkout_session_id=session_data.get("id"),
                plan=plan,
            )
            return

        async with self.session_factory() as session:
            if await session.get(User, user_id) is None:
                logger.warning("checkout_completed_unknown_user", user_id=user_id)
                return

            stripe_subscription = await self.gateway.retrieve_subscription(subscription_id)

            result = await session.execute(select(Subscription).where(Subscription.user_id == user_id))
            subscription = result.scalar_one_or_none()
            if subscription is None:
                subscription = Subscription(user_id=user_id)
                session.add(subscription)

            subscription.plan = plan
            subscription.status = stripe_subscription.get("status")
            subscription.stripe_customer_id = session_data.get("customer")
            subscription.stripe_subscription_id = stripe_subscription.get("id")
            subscription.stripe_price_id = _price_id(stripe_subscription)
            subscription.stripe_current_period_end = _period_end(stripe_subscription)
            subscription.cancel_at_period_end = False
            await session.commit()

        logger.info("subscription_created", user_id=user_id, plan=plan, subscription_id=subscription_id)

    async def _handle_subscription_updated(self, stripe_subscription: Mapping[str, Any]) -> None:
        """Sync status, period end and cancel flag."""
        subscription_id = stripe_subscription.get("id")

        async with self.session_factory() as session:
            subscription = await self._find_by_stripe_id(session, subscription_id)
            if subscription is None:
                logger.warning("subscription_updated_unknown_subscription", subscription_id=subscription_id)
                return

            subscription.status = stripe_subscription.get("status")
            subscription.stripe_current_period_end = _period_end(stripe_subscription)
            subscription.cancel_at_period_end = bool(stripe_subscription.get("cancel_at_period_end", False))
            await session.commit()

        logger.info(
            "subscription_status_updated",
            subscription_id=subscription_id,
            status=stripe_subscription.get("status"),
        )

    async def _handle_subscription_deleted(self, stripe_subscription: Mapping[str, Any]) -> None:
        await self._set_status(stripe_subscription.get("id"), STATUS_CANCELED, "subscription_deleted")

    async def _handle_payment_failed(self, invoice: Mapping[str, Any]) -> None:
        await self._set_status(_invoice_subscription_id(invoice), STATUS_PAST_DUE, "payment_failed")

    async def _set_status(self, subscription_id: str | None, status: str, reason: str) -> None:
        async with self.session_factory() as session:
            subscription = await self._find_by_stripe_id(session, subscription_id)
            if subscription is None:
                logger.warning(f"{reason}_unknown_subscription", subscription_id=subscription_id)
                return

            subscription.status = status
            await session.commit()

        logger.info(f"{reason}_applied", subscription_id=subscription_id, status=status)
