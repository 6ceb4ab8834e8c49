"""UsageAlertMonitor: weekly high-usage detection with admin email.

Best-effort by contract:
- check_and_alert_high_usage() NEVER raises; it runs as a background task after
  the generation response and must not affect it
- at most one *sent* alert per user per trailing window: an alert whose window
  ended inside the current one counts as already raised; an alert whose email
  failed stays unsent and is retried (reused, not duplicated) on the next check
- the check-then-create is not locked; two concurrent requests can race and
  create two rows for the same window
"""

from datetime import UTC, datetime, timedelta

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from agent_manager.core.exceptions import NotificationError
from agent_manager.db.models.generation import GenerationRecord
from agent_manager.db.models.usage_alert import UsageAlert
from agent_manager.db.models.user import User
from agent_manager.services.notifications import EmailNotifier

logger = structlog.get_logger(__name__)

DEFAULT_THRESHOLD: int = 100
DEFAULT_WINDOW: timedelta = timedelta(days=7)


class UsageAlertMonitor:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: EmailNotifier,
        threshold: int = DEFAULT_THRESHOLD,
        window: timedelta = DEFAULT_WINDOW,
    ):
        self.session_factory = session_factory
        self.notifier = notifier
        self.threshold = threshold
        self.window = window

    async def check_and_alert_high_usage(self, user_id: str, now: datetime | None = None) -> UsageAlert | None:
        """Alert the admin if ``user_id`` exceeded the threshold in the trailing window.

        Returns the alert that was created or retried, None when nothing was due.
        Never raises.
        """
        now = now or datetime.now(UTC)
        try:
            return await self._check(user_id, now)
        except Exception as e:
            logger.warning(
                "usage_alert_check_failed",
                user_id=user_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

    async def _check(self, user_id: str, now: datetime) -> UsageAlert | None:
        window_start = now - self.window

        async with self.session_factory() as session:
            generation_count = await session.scalar(
                select(func.count(GenerationRecord.id)).where(
                    GenerationRecord.user_id == user_id,
                    GenerationRecord.created_at >= window_start,
                )
            )
            if generation_count <= self.threshold:
                return None

            result = await session.execute(
                select(UsageAlert)
                .where(UsageAlert.user_id == user_id, UsageAlert.week_end >= window_start)
                .order_by(UsageAlert.email_sent.desc(), UsageAlert.created_at.desc())
                .limit(1)
            )
            alert = result.scalar_one_or_none()
            if alert is not None and alert.email_sent:
                return None

            result = await session.execute(
                select(User).options(selectinload(User.subscription)).where(User.id == user_id)
            )
            user = result.scalar_one_or_none()
            if user is None:
                logger.error("usage_alert_user_not_found", user_id=user_id)
                return None

            if alert is None:
                alert = UsageAlert(
                    user_id=user_id,
                    generation_count=generation_count,
                    week_start=window_start,
                    week_end=now,
                )
                session.add(alert)
            else:
                alert.generation_count = generation_count
                alert.week_start = window_start
                alert.week_end = now
            await session.commit()

            try:
                await self.notifier.send_usage_alert(user, user.subscription, generation_count)
            except NotificationError as e:
                logger.warning(
                    "usage_alert_notification_failed",
                    user_id=user_id,
                    alert_id=alert.id,
                    error=str(e),
                )
                return alert

            alert.email_sent = True
            alert.email_sent_at = datetime.now(UTC)
            await session.commit()

        logger.info("usage_alert_sent", user_id=user_id, generation_count=generation_count)
        return alert

    async def check_all_users_for_high_usage(self, now: datetime | None = None) -> int:
        """Run the check for every user above the threshold. Returns users checked."""
        now = now or datetime.now(UTC)
        window_start = now - self.window

        async with self.session_factory() as session:
            result = await session.execute(
                select(GenerationRecord.user_id)
                .where(GenerationRecord.created_at >= window_start)
                .group_by(GenerationRecord.user_id)
                .having(func.count(GenerationRecord.id) > self.threshold)
            )
            user_ids = list(result.scalars().all())

        logger.info("high_usage_users_found", count=len(user_ids))
        for user_id in user_ids:
            await self.check_and_alert_high_usage(user_id, now)
        return len(user_ids)
