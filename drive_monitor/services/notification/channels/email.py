"""Email notification channel."""

import html
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional, Sequence

import aiosmtplib
from loguru import logger

from drive_monitor.constants import Site, Timeouts
from drive_monitor.core.exceptions import SinkUnavailableError
from drive_monitor.utils.decorators import retry_async
from drive_monitor.utils.masking import mask_email

from ..base import EmailConfig, NotificationSink
from ..message_templates import availability_body, captcha_alert_body, connection_test_body

SMTP_SSL_PORT = 465


class EmailChannel(NotificationSink):
    """Email notification channel."""

    def __init__(self, config: EmailConfig, reservation_url: Optional[str] = None):
        """
        Initialize Email channel.

        Args:
            config: Email configuration
            reservation_url: Link included in availability emails
        """
        self._config = config
        self._reservation_url = reservation_url or f"{Site.BASE_URL}{Site.RESERVATION_PATH}"

    @property
    def name(self) -> str:
        """Get channel name."""
        return "email"

    @property
    def enabled(self) -> bool:
        """Check if channel is enabled."""
        return self._config.enabled

    async def send_availability(self, programs: Sequence[str], checked_at: datetime) -> None:
        body = availability_body(programs, checked_at, self._reservation_url)
        await self._deliver(self._config.subject, body)
        logger.info(f"📧 Availability email sent for {len(programs)} program(s)")

    async def send_captcha_alert(self, detected_at: datetime, page_url: str = "") -> None:
        await self._deliver(
            "CAPTCHA 확인 필요 (CAPTCHA needs attention)",
            captcha_alert_body(detected_at, page_url),
        )
        logger.info("📧 CAPTCHA alert email sent")

    async def send_test(self) -> None:
        """Send a test email to verify SMTP settings."""
        await self._deliver(
            "테스트 이메일 (Test Email)", connection_test_body(datetime.now(timezone.utc))
        )
        logger.info("📧 Test email sent")

    def _build_message(self, subject: str, body: str) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["From"] = self._config.sender or ""
        message["To"] = ", ".join(self._config.recipients)
        message["Subject"] = subject

        escaped_subject = html.escape(subject)
        escaped_body = html.escape(body).replace("\n", "<br>")
        html_body = f"""
        <html>
            <body>
                <h2>{escaped_subject}</h2>
                <p>{escaped_body}</p>
                <hr>
                <p><small>This is an automated message from drive-monitor</small></p>
            </body>
        </html>
        """
        message.attach(MIMEText(body, "plain", "utf-8"))
        message.attach(MIMEText(html_body, "html", "utf-8"))
        return message

    async def _deliver(self, subject: str, body: str) -> None:
        if not self.enabled:
            logger.debug(f"Email channel disabled, not sending '{subject}'")
            return
        if not self._config.is_complete:
            raise SinkUnavailableError(self.name, "sender or recipients missing")

        message = self._build_message(subject, body)
        try:
            await self._send_message(message)
        except (aiosmtplib.SMTPException, OSError, TimeoutError) as e:
            raise SinkUnavailableError(self.name, str(e)) from e

        recipients = ", ".join(mask_email(r) for r in self._config.recipients)
        logger.debug(f"Email '{subject}' delivered to {recipients}")

    @retry_async(
        max_retries=2,
        delay=1.0,
        backoff=2.0,
        exceptions=(ConnectionError, TimeoutError, OSError, aiosmtplib.SMTPException),
    )
    async def _send_message(self, message: MIMEMultipart) -> None:
        implicit_tls = self._config.smtp_port == SMTP_SSL_PORT
        smtp = aiosmtplib.SMTP(
            hostname=self._config.smtp_server,
            port=self._config.smtp_port,
            use_tls=implicit_tls,
            start_tls=self._config.use_tls and not implicit_tls,
            timeout=Timeouts.SMTP_SECONDS,
        )
        async with smtp:
            if self._config.username and self._config.password:
                await smtp.login(self._config.username, self._config.password)
            await smtp.send_message(message)
