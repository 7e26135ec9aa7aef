from starlette.testclient import TestClient

from contact import handlers
from contact.settings import ContactSettings

VALID = {"name": "Ada", "email": "ada@example.com", "subject": "Hello", "message": "Great game!"}


class TestSendEmail:
    def test_success_forwards_mail(self, app, mailer):
        response = TestClient(app).post("/send-email", json=VALID)

        assert response.status_code == 200
        assert response.text == "Email sent successfully"
        [message] = mailer.sent
        assert message["Subject"] == "Contact Form: Hello"
        assert message["To"] == "inbox@example.com"

    def test_delivery_failure_is_500(self, app, mailer):
        mailer.fail = True

        response = TestClient(app).post("/send-email", json=VALID)

        assert response.status_code == 500
        assert response.text == "Error sending email"

    def test_unexpected_mailer_error_is_500(self, app, mailer, monkeypatch):
        async def explode(_message):
            raise RuntimeError("boom")

        monkeypatch.setattr(mailer, "send", explode)

        response = TestClient(app).post("/send-email", json=VALID)

        assert response.status_code == 500

    def test_invalid_json_is_400(self, app, mailer):
        response = TestClient(app).post(
            "/send-email",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert mailer.sent == []

    def test_non_object_body_is_400(self, app):
        assert TestClient(app).post("/send-email", json=["a", "b"]).status_code == 400

    def test_missing_field_is_400(self, app):
        body = {k: v for k, v in VALID.items() if k != "message"}

        assert TestClient(app).post("/send-email", json=body).status_code == 400

    def test_oversized_body_is_413(self, app, mailer):
        body = {**VALID, "message": "x" * (handlers._MAX_REQUEST_BODY_SIZE + 1)}

        response = TestClient(app).post("/send-email", json=body)

        assert response.status_code == 413
        assert mailer.sent == []

    def test_get_not_allowed(self, app):
        assert TestClient(app).get("/send-email").status_code == 405

    def test_unconfigured_mailbox_is_500(self, app, mailer):
        app.state.contact_settings = ContactSettings(_env_file=None, smtp_username="", recipient="")

        response = TestClient(app).post("/send-email", json=VALID)

        assert response.status_code == 500
        assert response.text == "Error sending email"
        assert mailer.sent == []
