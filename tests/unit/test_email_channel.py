"""Tests for the email notification channel."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import aiosmtplib
import pytest

from drive_monitor.core.config.config_models import EmailSettings
from drive_monitor.core.exceptions import SinkUnavailableError
from drive_monitor.services.notification.base import EmailConfig
from drive_monitor.services.notification.channels.email import EmailChannel

CHECKED_AT = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)
RESERVATION_URL = "https://driving-center.bmw.co.kr/orders/programs/products/view"


@pytest.fixture
def email_config():
    return EmailConfig(
        enabled=True,
        smtp_server="smtp.example.com",
        smtp_port=587,
        username="alerts@example.com",
        password="smtp-pass",
        sender="alerts@example.com",
        recipients=["driver@example.com", "friend@example.com"],
    )


@pytest.fixture
def mock_smtp():
    """Patch aiosmtplib.SMTP with an async context manager mock."""
    client = MagicMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    client.login = AsyncMock()
    client.send_message = AsyncMock()
    with patch("aiosmtplib.SMTP", return_value=client) as smtp_class:
        smtp_class.client = client
        yield smtp_class


@pytest.fixture
def no_retry_delay():
    with patch("drive_monitor.utils.decorators.asyncio.sleep", new=AsyncMock()) as sleep:
        yield sleep


def sent_text(message):
    plain = message.get_payload()[0]
    return plain.get_payload(decode=True).decode("utf-8")


@pytest.mark.asyncio
class TestEmailChannel:
    """Message building and SMTP delivery."""

    async def test_availability_email(self, email_config, mock_smtp):
        channel = EmailChannel(email_config, RESERVATION_URL)

        await channel.send_availability(["BEV Core", "X-Bus"], CHECKED_AT)

        client = mock_smtp.client
        client.login.assert_awaited_once_with("alerts@example.com", "smtp-pass")
        message = client.send_message.await_args.args[0]
        assert message["To"] == "driver@example.com, friend@example.com"
        assert message["Subject"] == email_config.subject
        body = sent_text(message)
        assert "BEV Core (BEV 코어)" in body
        assert "X-Bus (X-버스)" in body
        assert RESERVATION_URL in body

    async def test_html_part_is_escaped(self, email_config, mock_smtp):
        channel = EmailChannel(email_config, RESERVATION_URL)

        await channel.send_availability(["<b>Custom</b>"], CHECKED_AT)

        message = mock_smtp.client.send_message.await_args.args[0]
        html_part = message.get_payload()[1].get_payload(decode=True).decode("utf-8")
        assert "&lt;b&gt;Custom&lt;/b&gt;" in html_part
        assert "<b>Custom</b>" not in html_part

    async def test_starttls_on_submission_port(self, email_config, mock_smtp):
        channel = EmailChannel(email_config)

        await channel.send_captcha_alert(CHECKED_AT, "https://customer.bmwgroup.com/")

        kwargs = mock_smtp.call_args.kwargs
        assert kwargs["hostname"] == "smtp.example.com"
        assert kwargs["use_tls"] is False
        assert kwargs["start_tls"] is True

    async def test_implicit_tls_on_port_465(self, email_config, mock_smtp):
        email_config.smtp_port = 465

        await EmailChannel(email_config).send_test()

        kwargs = mock_smtp.call_args.kwargs
        assert kwargs["use_tls"] is True
        assert kwargs["start_tls"] is False

    async def test_no_login_without_credentials(self, email_config, mock_smtp):
        email_config.username = None
        email_config.password = None

        await EmailChannel(email_config).send_test()

        mock_smtp.client.login.assert_not_awaited()
        mock_smtp.client.send_message.assert_awaited_once()

    async def test_disabled_channel_sends_nothing(self, email_config, mock_smtp):
        email_config.enabled = False

        await EmailChannel(email_config).send_availability(["M Core"], CHECKED_AT)

        mock_smtp.assert_not_called()

    async def test_incomplete_config(self, email_config, mock_smtp):
        email_config.recipients = []

        with pytest.raises(SinkUnavailableError):
            await EmailChannel(email_config).send_availability(["M Core"], CHECKED_AT)

        mock_smtp.assert_not_called()

    async def test_smtp_failure_retried_then_raised(self, email_config, mock_smtp, no_retry_delay):
        mock_smtp.client.send_message.side_effect = aiosmtplib.SMTPException("550 rejected")

        with pytest.raises(SinkUnavailableError) as exc_info:
            await EmailChannel(email_config).send_availability(["M Core"], CHECKED_AT)

        assert "550 rejected" in exc_info.value.message
        assert mock_smtp.client.send_message.await_count == 3
        assert no_retry_delay.await_count == 2

    async def test_transient_failure_recovers(self, email_config, mock_smtp, no_retry_delay):
        mock_smtp.client.send_message.side_effect = [ConnectionError("reset"), None]

        await EmailChannel(email_config).send_availability(["M Core"], CHECKED_AT)

        assert mock_smtp.client.send_message.await_count == 2


def test_config_from_settings():
    settings = EmailSettings.model_validate(
        {
            "smtp": {"host": "smtp.example.com", "username": "me@example.com", "password": "pw"},
            "to": "a@example.com",
        }
    )

    config = EmailConfig.from_settings(settings)

    assert config.sender == "me@example.com"
    assert config.recipients == ["a@example.com"]
    assert config.password == "pw"
    assert config.is_complete is True


def test_config_repr_masks_password(email_config):
    assert "smtp-pass" not in repr(email_config)


def test_channel_properties(email_config):
    channel = EmailChannel(email_config)

    assert channel.name == "email"
    assert channel.enabled is True
