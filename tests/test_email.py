"""Tests for the SMTP email service."""

import logging
import smtplib
from unittest.mock import AsyncMock, patch

import pytest

from fanview.config import EmailConfig
from fanview.lib.email import EmailDeliveryError, EmailService


@pytest.fixture
def smtp():
    with patch("fanview.lib.email.smtplib.SMTP") as smtp_cls:
        yield smtp_cls


def _service(**config):
    return EmailService(EmailConfig(**config), "https://fanview.example/")


class TestEmailService:
    @pytest.mark.asyncio
    async def test_disabled_logs_instead_of_sending(self, smtp, caplog):
        with caplog.at_level(logging.INFO, logger="fanview.lib.email"):
            await _service(enabled=False).send("fan@example.com", "Hello", "Body")

        smtp.assert_not_called()
        assert "Email disabled" in caplog.text

    @pytest.mark.asyncio
    async def test_sends_with_tls_and_login(self, smtp):
        service = _service(enabled=True, username="mailer", password="pw")

        await service.send("fan@example.com", "Hello", "Body")

        session = smtp.return_value.__enter__.return_value
        session.starttls.assert_called_once()
        session.login.assert_called_once_with("mailer", "pw")
        message = session.send_message.call_args.args[0]
        assert message["To"] == "fan@example.com"
        assert message["Subject"] == "Hello"

    @pytest.mark.asyncio
    async def test_smtp_failure_wrapped(self, smtp):
        smtp.return_value.__enter__.return_value.send_message.side_effect = smtplib.SMTPException("rejected")

        with pytest.raises(EmailDeliveryError):
            await _service(enabled=True).send("fan@example.com", "Hello", "Body")

    @pytest.mark.asyncio
    async def test_verification_link(self):
        service = _service()
        service.send = AsyncMock()

        await service.send_verification_email("fan@example.com", "Fan", "tok123")

        to, subject, body = service.send.call_args.args
        assert to == "fan@example.com"
        assert "https://fanview.example/verify-email?token=tok123" in body

    @pytest.mark.asyncio
    async def test_reset_link(self):
        service = _service()
        service.send = AsyncMock()

        await service.send_password_reset_email("fan@example.com", "Fan", "tok456")

        assert "https://fanview.example/reset-password/tok456" in service.send.call_args.args[2]

    @pytest.mark.asyncio
    async def test_verify_connection_failure(self, smtp):
        smtp.side_effect = OSError("connection refused")
        assert await _service(enabled=True).verify_connection() is False
