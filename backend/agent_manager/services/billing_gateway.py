"""StripeGateway: the only place that talks to the Stripe SDK.

Async resource methods (create_async, retrieve_async, modify_async) are used
throughout; the secret key is passed per call instead of via module globals.

Events and subscriptions leave the gateway as plain dicts (StripeObject.to_dict()),
so SubscriptionSync reads them as mappings regardless of SDK version.
"""

from typing import Any

import stripe


class StripeGateway:
    def __init__(self, api_key: str, webhook_secret: str):
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    def construct_event(self, payload: bytes, sig_header: str) -> dict[str, Any]:
        """Verify the signature and parse a webhook payload.

        Raises:
            ValueError: malformed payload
            stripe.SignatureVerificationError: signature mismatch
        """
        event = stripe.Webhook.construct_event(payload, sig_header, self.webhook_secret)
        return event.to_dict()

    async def create_customer(self, email: str, user_id: str) -> str:
        customer = await stripe.Customer.create_async(
            api_key=self.api_key,
            email=email,
            metadata={"userId": user_id},
        )
        return customer.id

    async def create_checkout_session(
        self,
        *,
        customer_id: str,
        price_id: str,
        user_id: str,
        plan: str,
        success_url: str,
        cancel_url: str,
    ) -> stripe.checkout.Session:
        return await stripe.checkout.Session.create_async(
            api_key=self.api_key,
            customer=customer_id,
            mode="subscription",
            payment_method_types=["card"],
            line_items=[{"price": price_id, "quantity": 1}],
            success_url=success_url,
            cancel_url=cancel_url,
            metadata={"userId": user_id, "plan": plan},
        )

    async def retrieve_subscription(self, subscription_id: str) -> dict[str, Any]:
        subscription = await stripe.Subscription.retrieve_async(subscription_id, api_key=self.api_key)
        return subscription.to_dict()

    async def set_cancel_at_period_end(self, subscription_id: str, cancel: bool) -> stripe.Subscription:
        return await stripe.Subscription.modify_async(
            subscription_id,
            api_key=self.api_key,
            cancel_at_period_end=cancel,
        )
