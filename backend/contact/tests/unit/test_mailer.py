from unittest.mock import AsyncMock, patch

import aiosmtplib
import pytest

from contact.mailer import (
    MailDeliveryError,
    Mailer,
    RecordingMailer,
    SmtpMailer,
    compose_contact_message,
    get_mailer,
)
from contact.settings import ContactSettings
from contact.types import ContactRequest


@pytest.fixture
def contact_request():
    return ContactRequest(name="Ada", email="ada@example.com", subject="Bug report", message="Castling broke.")


class TestComposeContactMessage:
    def test_headers_and_body(self, contact_request):
        message = compose_contact_message(contact_request, sender="inbox@example.com", recipient="inbox@example.com")

        assert message["Subject"] == "Contact Form: Bug report"
        assert message["From"] == "inbox@example.com"
        assert message["To"] == "inbox@example.com"
        assert message["Reply-To"] == "ada@example.com"
        body = message.get_content()
        assert "Name: Ada" in body
        assert "Email: ada@example.com" in body
        assert "Subject: Bug report" in body
        assert "Message: Castling broke." in body


class TestSmtpMailer:
    @pytest.fixture
    def settings(self):
        return ContactSettings(
            smtp_host="smtp.example.com",
            smtp_port=2525,
            smtp_username="inbox@example.com",
            smtp_password="app-password",
        )

    async def test_sends_over_starttls_with_login(self, settings, contact_request):
        message = compose_contact_message(contact_request, sender="inbox@example.com", recipient="inbox@example.com")

        with patch("contact.mailer.aiosmtplib.send", new_callable=AsyncMock) as send:
            await SmtpMailer(settings).send(message)

        send.assert_awaited_once_with(
            message,
            hostname="smtp.example.com",
            port=2525,
            username="inbox@example.com",
            password="app-password",
            start_tls=True,
            timeout=settings.timeout_seconds,
        )

    async def test_plain_smtp_without_credentials(self, contact_request):
        settings = ContactSettings(smtp_host="localhost", smtp_port=25, use_starttls=False, recipient="x@example.com")

        with patch("contact.mailer.aiosmtplib.send", new_callable=AsyncMock) as send:
            await SmtpMailer(settings).send(
                compose_contact_message(contact_request, sender="x@example.com", recipient="x@example.com"),
            )

        kwargs = send.await_args.kwargs
        assert kwargs["start_tls"] is False
        assert kwargs["username"] is None
        assert kwargs["password"] is None

    @pytest.mark.parametrize(
        "error",
        [aiosmtplib.SMTPAuthenticationError(535, "bad credentials"), ConnectionRefusedError()],
    )
    async def test_delivery_failures_wrapped(self, settings, contact_request, error):
        message = compose_contact_message(contact_request, sender="inbox@example.com", recipient="inbox@example.com")

        with (
            patch("contact.mailer.aiosmtplib.send", new_callable=AsyncMock, side_effect=error),
            pytest.raises(MailDeliveryError),
        ):
            await SmtpMailer(settings).send(message)


class TestGetMailer:
    def test_known_names(self, contact_request):
        settings = ContactSettings(smtp_username="inbox@example.com")

        assert isinstance(get_mailer(settings), SmtpMailer)
        assert isinstance(get_mailer(settings, "recording"), RecordingMailer)
        assert isinstance(get_mailer(settings, "recording"), Mailer)

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown mailer"):
            get_mailer(ContactSettings(), "carrier-pigeon")
