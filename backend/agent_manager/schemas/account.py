"""Response shapes for users, subscriptions and generation history."""

from datetime import datetime

from pydantic import ConfigDict

from agent_manager.schemas.agents import CamelModel


class SubscriptionSummary(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    plan: str
    status: str
    current_period_end: datetime | None = None
    cancel_at_period_end: bool = False

    @classmethod
    def from_model(cls, subscription) -> "SubscriptionSummary | None":
        if subscription is None:
            return None
        return cls(
            plan=subscription.plan,
            status=subscription.status,
            current_period_end=subscription.stripe_current_period_end,
            cancel_at_period_end=subscription.cancel_at_period_end,
        )


class UserSummary(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str | None = None
    picture: str | None = None
    created_at: datetime | None = None


class GenerationItem(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    agent_type: str
    ai_provider: str
    description: str
    agent_name: str | None = None
    file_size_bytes: int | None = None
    created_at: datetime
