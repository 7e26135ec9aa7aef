"""Mail delivery: protocol, SMTP (production), and an in-memory recorder (tests).

SmtpMailer delivers through aiosmtplib on the event loop.

RecordingMailer keeps every message in memory and can be told to fail.
It is intended for tests only.
"""

from __future__ import annotations

from email.message import EmailMessage
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import aiosmtplib
import structlog

if TYPE_CHECKING:
    from contact.settings import ContactSettings
    from contact.types import ContactRequest

logger = structlog.get_logger()


class MailDeliveryError(Exception):
    """The message could not be handed to the mail server."""


@runtime_checkable
class Mailer(Protocol):
    """Deliver a composed email."""

    async def send(self, message: EmailMessage) -> None: ...


def compose_contact_message(request: ContactRequest, *, sender: str, recipient: str) -> EmailMessage:
    """Build the mail forwarded for one contact form submission."""
    message = EmailMessage()
    message["From"] = sender
    message["To"] = recipient
    message["Reply-To"] = request.email
    message["Subject"] = f"Contact Form: {request.subject}"
    message.set_content(
        f"Name: {request.name}\nEmail: {request.email}\nSubject: {request.subject}\nMessage: {request.message}\n",
    )
    return message


class SmtpMailer:
    """Production mailer over SMTP."""

    def __init__(self, settings: ContactSettings) -> None:
        self._settings = settings

    async def send(self, message: EmailMessage) -> None:
        settings = self._settings
        try:
            await aiosmtplib.send(
                message,
                hostname=settings.smtp_host,
                port=settings.smtp_port,
                username=settings.smtp_username or None,
                password=settings.smtp_password if settings.smtp_username else None,
                start_tls=settings.use_starttls,
                timeout=settings.timeout_seconds,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            raise MailDeliveryError(str(e)) from e
        logger.info("contact mail delivered", host=settings.smtp_host)


class RecordingMailer:
    """In-memory mailer for tests. Not suitable for production use."""

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[EmailMessage] = []

    async def send(self, message: EmailMessage) -> None:
        if self.fail:
            raise MailDeliveryError("delivery disabled")
        self.sent.append(message)


def get_mailer(settings: ContactSettings, name: str = "smtp") -> Mailer:
    """Return a Mailer by name ("smtp" or "recording")."""
    if name == "smtp":
        return SmtpMailer(settings)
    if name == "recording":
        return RecordingMailer()
    raise ValueError(f"Unknown mailer: {name!r}")
