"""HTTP handler for the contact form."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError
from starlette.responses import JSONResponse, PlainTextResponse, Response

from contact.mailer import MailDeliveryError, compose_contact_message
from contact.types import ContactRequest

if TYPE_CHECKING:
    from starlette.requests import Request

    from contact.mailer import Mailer
    from contact.settings import ContactSettings

logger = structlog.get_logger()

_MAX_REQUEST_BODY_SIZE = 16 * 1024


async def send_email(request: Request) -> Response:
    mailer: Mailer = request.app.state.mailer
    settings: ContactSettings = request.app.state.contact_settings

    try:
        raw_body = await request.body()
        if len(raw_body) > _MAX_REQUEST_BODY_SIZE:
            return JSONResponse({"error": "Request body too large"}, status_code=413)
        body = json.loads(raw_body)
        if not isinstance(body, dict):
            raise TypeError("expected a JSON object")
        contact_request = ContactRequest(**body)
    except (ValueError, TypeError, json.JSONDecodeError, UnicodeDecodeError, ValidationError):  # fmt: skip
        return JSONResponse({"error": "Invalid request body"}, status_code=400)

    if not settings.is_configured:
        logger.error("contact mail delivery is not configured")
        return PlainTextResponse("Error sending email", status_code=500)

    message = compose_contact_message(
        contact_request,
        sender=settings.smtp_username or settings.recipient,
        recipient=settings.recipient,
    )
    try:
        await mailer.send(message)
    except MailDeliveryError as e:
        logger.error("contact mail delivery failed", error=str(e))
        return PlainTextResponse("Error sending email", status_code=500)
    except Exception:
        logger.exception("contact mail delivery raised unexpectedly")
        return PlainTextResponse("Error sending email", status_code=500)

    logger.info("contact form forwarded", subject=contact_request.subject)
    return PlainTextResponse("Email sent successfully")
