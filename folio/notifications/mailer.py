"""
Folio Mailer

SMTP delivery for visitor replies and admin notifications. Sends are
blocking (smtplib); queued tasks call ``send_async`` which runs the send in a
worker thread so the event loop keeps serving requests.
"""

from __future__ import annotations

import asyncio
import html
import re
import smtplib
from collections.abc import Sequence
from dataclasses import dataclass
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate
from typing import Protocol

from folio.infrastructure.settings import Settings
from folio.observability.logging import get_logger
from folio.observability.telemetry import counter
from folio.tasks.queue import FatalTaskError
from folio.utils.redaction import redact

logger = get_logger(__name__)

SMTPS_PORT = 465


class EmailDeliveryError(RuntimeError):
    """The SMTP server refused or the connection failed."""


class EmailNotConfiguredError(EmailDeliveryError, FatalTaskError):
    """SMTP settings are missing; retrying cannot help."""


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: bytes
    mime_subtype: str = "pdf"


class Mailer(Protocol):
    async def send_async(
        self,
        to: str,
        subject: str,
        body_html: str,
        attachments: Sequence[Attachment] = (),
    ) -> None: ...


def html_to_plaintext(body_html: str) -> str:
    """Rough plaintext alternative for clients that do not render HTML."""
    text = re.sub(r"<(style|script)[^>]*>.*?</\1>", "", body_html, flags=re.DOTALL | re.IGNORECASE)
    text = re.sub(r"<br\s*/?>", "\n", text)
    text = re.sub(r"</?(p|div|h[1-6])[^>]*>", "\n", text)
    text = re.sub(r"<[^>]+>", "", text)
    text = html.unescape(text)
    text = re.sub(r"\n\s*\n", "\n\n", text)
    return text.strip()


class SmtpMailer:
    """Sends HTML email through the configured SMTP account."""

    def __init__(self, settings: Settings):
        self.settings = settings
        if not settings.smtp_configured:
            logger.warning("SMTP not fully configured. Set SMTP_* environment variables.")

    @property
    def enabled(self) -> bool:
        return self.settings.smtp_configured

    def build_message(
        self,
        to: str,
        subject: str,
        body_html: str,
        attachments: Sequence[Attachment] = (),
    ) -> MIMEMultipart:
        msg = MIMEMultipart("mixed")
        msg["Subject"] = subject
        msg["From"] = formataddr((self.settings.smtp_from_name, self.settings.smtp_user or ""))
        msg["To"] = to
        msg["Date"] = formatdate(localtime=True)

        body = MIMEMultipart("alternative")
        body.attach(MIMEText(html_to_plaintext(body_html), "plain", "utf-8"))
        body.attach(MIMEText(body_html, "html", "utf-8"))
        msg.attach(body)

        for attachment in attachments:
            part = MIMEApplication(attachment.content, _subtype=attachment.mime_subtype)
            part.add_header("Content-Disposition", "attachment", filename=attachment.filename)
            msg.attach(part)

        return msg

    def send(
        self,
        to: str,
        subject: str,
        body_html: str,
        attachments: Sequence[Attachment] = (),
    ) -> None:
        """
        Send one email.

        Raises:
            EmailNotConfiguredError: SMTP settings are missing
            EmailDeliveryError: The send failed
        """
        if not self.enabled:
            raise EmailNotConfiguredError("SMTP delivery not configured")

        host = self.settings.smtp_host
        port = self.settings.smtp_port
        user = self.settings.smtp_user
        password = self.settings.smtp_password
        assert host is not None
        assert user is not None
        assert password is not None

        msg = self.build_message(to, subject, body_html, attachments)

        try:
            if port == SMTPS_PORT:
                with smtplib.SMTP_SSL(host, port) as server:
                    server.login(user, password)
                    server.send_message(msg)
            else:
                with smtplib.SMTP(host, port) as server:
                    server.starttls()
                    server.login(user, password)
                    server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            counter("email.failed")
            logger.error("Failed to send email to %s: %s", redact(to), e)
            raise EmailDeliveryError(f"Failed to send email: {e}") from e

        counter("email.sent")
        logger.info("Email sent to %s (subject=%r)", redact(to), subject)

    async def send_async(
        self,
        to: str,
        subject: str,
        body_html: str,
        attachments: Sequence[Attachment] = (),
    ) -> None:
        await asyncio.to_thread(self.send, to, subject, body_html, attachments)
