"""Tests for UsageAlertMonitor weekly high-usage detection."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import select

from agent_manager.core.exceptions import NotificationError
from agent_manager.db.models import UsageAlert
from agent_manager.services.usage_monitor import UsageAlertMonitor

pytestmark = pytest.mark.integration


@pytest.fixture
def notifier():
    notifier = MagicMock()
    notifier.send_usage_alert = AsyncMock(return_value=None)
    return notifier


@pytest.fixture
def monitor(session_factory, notifier):
    return UsageAlertMonitor(session_factory, notifier, threshold=100, window=timedelta(days=7))


async def _alerts(session_factory, user_id: str) -> list[UsageAlert]:
    async with session_factory() as session:
        result = await session.execute(select(UsageAlert).where(UsageAlert.user_id == user_id))
        return list(result.scalars().all())


async def test_above_threshold_creates_one_alert_and_sends(monitor, notifier, make_user, session_factory):
    user = await make_user(plan="monthly", generations=101)

    alert = await monitor.check_and_alert_high_usage(user.id)

    assert alert is not None
    alerts = await _alerts(session_factory, user.id)
    assert len(alerts) == 1
    assert alerts[0].generation_count == 101
    assert alerts[0].email_sent is True
    assert alerts[0].email_sent_at is not None
    notifier.send_usage_alert.assert_awaited_once()
    sent_user, sent_subscription, sent_count = notifier.send_usage_alert.await_args.args
    assert sent_user.id == user.id
    assert sent_subscription.plan == "monthly"
    assert sent_count == 101


async def test_at_threshold_does_nothing(monitor, notifier, make_user, session_factory):
    user = await make_user(generations=100)

    assert await monitor.check_and_alert_high_usage(user.id) is None

    assert await _alerts(session_factory, user.id) == []
    notifier.send_usage_alert.assert_not_awaited()


async def test_generations_outside_window_not_counted(monitor, notifier, make_user):
    user = await make_user(generations=150, created_at=datetime.now(UTC) - timedelta(days=8))

    assert await monitor.check_and_alert_high_usage(user.id) is None
    notifier.send_usage_alert.assert_not_awaited()


async def test_existing_sent_alert_suppresses_new_one(monitor, notifier, make_user, session_factory):
    user = await make_user(generations=101)

    await monitor.check_and_alert_high_usage(user.id)
    later = datetime.now(UTC) + timedelta(hours=1)
    assert await monitor.check_and_alert_high_usage(user.id, now=later) is None

    assert len(await _alerts(session_factory, user.id)) == 1
    notifier.send_usage_alert.assert_awaited_once()


async def test_failed_send_leaves_alert_unsent_and_is_retried(monitor, notifier, make_user, session_factory):
    user = await make_user(generations=101)
    notifier.send_usage_alert.side_effect = NotificationError("smtp down")

    alert = await monitor.check_and_alert_high_usage(user.id)

    assert alert is not None
    assert alert.email_sent is False

    notifier.send_usage_alert.side_effect = None
    await monitor.check_and_alert_high_usage(user.id)

    alerts = await _alerts(session_factory, user.id)
    assert len(alerts) == 1
    assert alerts[0].email_sent is True
    assert notifier.send_usage_alert.await_count == 2


async def test_unexpected_error_never_raises(session_factory, notifier, make_user):
    user = await make_user(generations=101)
    notifier.send_usage_alert.side_effect = RuntimeError("boom")
    monitor = UsageAlertMonitor(session_factory, notifier)

    assert await monitor.check_and_alert_high_usage(user.id) is None


async def test_sweep_checks_only_users_above_threshold(monitor, notifier, make_user):
    heavy = await make_user("heavy@example.com", generations=101)
    await make_user("light@example.com", generations=3)

    checked = await monitor.check_all_users_for_high_usage()

    assert checked == 1
    notifier.send_usage_alert.assert_awaited_once()
    assert notifier.send_usage_alert.await_args.args[0].id == heavy.id
