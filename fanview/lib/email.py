"""Outbound email for account verification and password resets.

Messages are built with :class:`email.message.EmailMessage` and sent over
SMTP in a worker thread. When email is disabled the message is logged
instead of sent.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage

from fanview.config import EmailConfig

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Raised when the SMTP server rejects or cannot take a message."""


class EmailService:
    def __init__(self, config: EmailConfig, frontend_url: str) -> None:
        self.config = config
        self.frontend_url = frontend_url.rstrip("/")

    def build_message(self, to: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.config.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)
        return message

    async def send(self, to: str, subject: str, body: str) -> None:
        message = self.build_message(to, subject, body)
        if not self.config.enabled:
            logger.info("Email disabled; not sending %r to %s", subject, to)
            return
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailDeliveryError(f"Could not send email to {to}: {exc}") from exc
        logger.info("Sent %r to %s", subject, to)

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.config.host, self.config.port, timeout=self.config.timeout) as smtp:
            if self.config.use_tls:
                smtp.starttls()
            if self.config.username and self.config.password:
                smtp.login(self.config.username, self.config.password)
            smtp.send_message(message)

    async def send_verification_email(self, to: str, name: str, token: str) -> None:
        link = f"{self.frontend_url}/verify-email?token={token}"
        body = (
            f"Hi {name},\n\n"
            "Welcome to Fanview! Please confirm your email address by opening this link:\n\n"
            f"{link}\n\n"
            "The link expires in 24 hours. If you did not create an account, ignore this email.\n"
        )
        await self.send(to, "Verify your Fanview account", body)

    async def send_password_reset_email(self, to: str, name: str, token: str) -> None:
        link = f"{self.frontend_url}/reset-password/{token}"
        body = (
            f"Hi {name},\n\n"
            "We received a request to reset your Fanview password. Open this link to choose a new one:\n\n"
            f"{link}\n\n"
            "The link expires in 1 hour. If you did not ask for a reset, ignore this email.\n"
        )
        await self.send(to, "Reset your Fanview password", body)

    async def send_test_email(self, to: str) -> None:
        await self.send(to, "Fanview test email", "This is a test email from Fanview.\n")

    async def verify_connection(self) -> bool:
        """Open an SMTP session and log in without sending anything."""

        def _probe() -> None:
            with smtplib.SMTP(self.config.host, self.config.port, timeout=self.config.timeout) as smtp:
                if self.config.use_tls:
                    smtp.starttls()
                if self.config.username and self.config.password:
                    smtp.login(self.config.username, self.config.password)
                smtp.noop()

        try:
            await asyncio.to_thread(_probe)
        except (smtplib.SMTPException, OSError):
            logger.warning("SMTP connection check failed", exc_info=True)
            return False
        return True
