"""Usage gating and plan entitlements.

Pure domain functions over already-loaded state. No DB access, fully deterministic.

Rules:
    - Free tier: a user with zero recorded generations may always generate.
    - After that, generation requires a subscription whose status is "active".
    - Historical agent retrieval requires an active yearly plan.
"""

from dataclasses import dataclass

ACTIVE_STATUS = "active"
ANNUAL_PLAN = "yearly"
PLANS = ("monthly", "yearly")

FREE_TIER_EXHAUSTED = "free-tier-exhausted"
ANNUAL_PLAN_REQUIRED = "annual-plan-required"


@dataclass(frozen=True)
class UsageDecision:
    """Allow/deny outcome with a machine-readable reason on deny."""

    allowed: bool
    reason: str | None = None


def has_active_subscription(subscription_status: str | None) -> bool:
    return subscription_status == ACTIVE_STATUS


def evaluate_usage(generation_count: int, subscription_status: str | None) -> UsageDecision:
    """Decide whether a new generation request is permitted.

    Args:
        generation_count: Number of GenerationRecords the user already has
        subscription_status: Stripe status of the user's subscription, None if none

    Returns:
        UsageDecision; denied decisions carry FREE_TIER_EXHAUSTED
    """
    if generation_count == 0 or has_active_subscription(subscription_status):
        return UsageDecision(allowed=True)
    return UsageDecision(allowed=False, reason=FREE_TIER_EXHAUSTED)


def can_generate(generation_count: int, subscription_status: str | None) -> bool:
    return evaluate_usage(generation_count, subscription_status).allowed


def evaluate_history_access(plan: str | None, subscription_status: str | None) -> UsageDecision:
    """Annual-plan entitlement for listing and downloading saved agents."""
    if plan == ANNUAL_PLAN and has_active_subscription(subscription_status):
        return UsageDecision(allowed=True)
    return UsageDecision(allowed=False, reason=ANNUAL_PLAN_REQUIRED)
