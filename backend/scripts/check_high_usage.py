"""Sweep all users for high weekly usage and email the admin (cron entry point)."""

import asyncio
from datetime import timedelta

import structlog

from agent_manager.core.config import get_settings
from agent_manager.core.logging import configure_structlog
from agent_manager.db import close_db, get_session_factory, init_db
from agent_manager.services.notifications import EmailNotifier
from agent_manager.services.usage_monitor import UsageAlertMonitor

logger = structlog.get_logger(__name__)


async def main() -> None:
    settings = get_settings()
    configure_structlog(log_level="INFO", json_logs=not settings.debug)

    await init_db()
    try:
        monitor = UsageAlertMonitor(
            get_session_factory(),
            EmailNotifier(settings),
            threshold=settings.usage_alert_threshold,
            window=timedelta(days=settings.usage_alert_window_days),
        )
        users_checked = await monitor.check_all_users_for_high_usage()
        logger.info("high_usage_sweep_complete", users_checked=users_checked)
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
