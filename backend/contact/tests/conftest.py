import pytest
from starlette.applications import Starlette
from starlette.routing import Route

from contact.handlers import send_email
from contact.mailer import RecordingMailer
from contact.settings import ContactSettings


@pytest.fixture
def contact_settings():
    return ContactSettings(smtp_username="inbox@example.com", smtp_password="app-password", recipient="")


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def app(mailer, contact_settings):
    app = Starlette(routes=[Route("/send-email", send_email, methods=["POST"])])
    app.state.mailer = mailer
    app.state.contact_settings = contact_settings
    return app
