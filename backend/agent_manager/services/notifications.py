"""Admin email notifications for high usage.

HTML bodies are rendered with Jinja2 (autoescaped, user names are untrusted).
smtplib is blocking, so delivery runs in a worker thread via asyncio.to_thread().
"""

import asyncio
import smtplib
import ssl
from email.message import EmailMessage
from pathlib import Path

import structlog
from jinja2 import Environment, FileSystemLoader

from agent_manager.core.config import Settings
from agent_manager.core.exceptions import NotificationError
from agent_manager.db.models.subscription import Subscription
from agent_manager.db.models.user import User

logger = structlog.get_logger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"


class EmailNotifier:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=True,
        )

    def render_usage_alert(
        self,
        user: User,
        subscription: Subscription | None,
        generation_count: int,
    ) -> tuple[str, str]:
        """Return (subject, html) for a high-usage alert."""
        subject = f"High Usage Alert: {user.email} - {generation_count} generations"
        html = self.env.get_template("usage_alert.html").render(
            user=user,
            subscription=subscription,
            generation_count=generation_count,
            threshold=self.settings.usage_alert_threshold,
            window_days=self.settings.usage_alert_window_days,
            app_name=self.settings.app_name,
        )
        return subject, html

    async def send_usage_alert(
        self,
        user: User,
        subscription: Subscription | None,
        generation_count: int,
    ) -> None:
        """Email the admin about a user's weekly usage.

        Raises:
            NotificationError: SMTP not configured or delivery failed
        """
        settings = self.settings
        if not settings.smtp_host or not settings.admin_email:
            raise NotificationError("SMTP host or admin email is not configured")

        subject, html = self.render_usage_alert(user, subscription, generation_count)

        msg = EmailMessage()
        msg["From"] = settings.smtp_from or settings.smtp_user
        msg["To"] = settings.admin_email
        msg["Subject"] = subject
        msg.set_content(f"{subject}\n\nOpen this message in an HTML-capable client for details.")
        msg.add_alternative(html, subtype="html")

        try:
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f"SMTP delivery failed: {exc}") from exc

        logger.info("usage_alert_email_sent", user_id=user.id, generation_count=generation_count)

    def _deliver(self, msg: EmailMessage) -> None:
        settings = self.settings
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as smtp:
            if settings.smtp_starttls:
                smtp.starttls(context=ssl.create_default_context())
            if settings.smtp_user and settings.smtp_pass:
                smtp.login(settings.smtp_user, settings.smtp_pass)
            smtp.send_message(msg)
