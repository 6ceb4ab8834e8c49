"""Tests for free-tier gating and the annual-plan entitlement."""

import pytest

from agent_manager.domain.usage_gate import (
    ANNUAL_PLAN_REQUIRED,
    FREE_TIER_EXHAUSTED,
    can_generate,
    evaluate_history_access,
    evaluate_usage,
    has_active_subscription,
)

pytestmark = pytest.mark.unit


# ============================================================================
# Free tier
# ============================================================================


@pytest.mark.parametrize("status", [None, "active", "past_due", "canceled"])
def test_first_generation_always_allowed(status):
    assert can_generate(0, status) is True


@pytest.mark.parametrize("status", [None, "past_due", "canceled", "incomplete", "trialing"])
def test_second_generation_requires_active_subscription(status):
    decision = evaluate_usage(1, status)
    assert decision.allowed is False
    assert decision.reason == FREE_TIER_EXHAUSTED


@pytest.mark.parametrize("count", [1, 2, 500])
def test_active_subscription_allows_any_count(count):
    decision = evaluate_usage(count, "active")
    assert decision.allowed is True
    assert decision.reason is None


def test_has_active_subscription_is_exact_match():
    assert has_active_subscription("active") is True
    assert has_active_subscription("Active") is False
    assert has_active_subscription(None) is False


# ============================================================================
# Annual-plan entitlement
# ============================================================================


def test_history_access_for_active_yearly_plan():
    assert evaluate_history_access("yearly", "active").allowed is True


@pytest.mark.parametrize(
    "plan,status",
    [
        ("monthly", "active"),
        ("yearly", "past_due"),
        ("yearly", "canceled"),
        (None, None),
    ],
)
def test_history_access_denied_without_active_yearly_plan(plan, status):
    decision = evaluate_history_access(plan, status)
    assert decision.allowed is False
    assert decision.reason == ANNUAL_PLAN_REQUIRED
