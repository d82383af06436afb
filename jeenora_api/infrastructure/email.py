"""Transactional email delivery through SendGrid."""

from __future__ import annotations

import html
import json
import logging
from typing import Any

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail
from sqlalchemy.orm import Session

from jeenora_api.config import get_settings
from jeenora_api.infrastructure.repositories import UserRepository

logger = logging.getLogger(__name__)


def _extract_sendgrid_error_details(body: Any) -> str | None:
    """Return a human readable description for a SendGrid error payload."""

    if body in (None, ""):
        return None

    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return None

    if isinstance(body, str):
        body = body.strip()
        if not body:
            return None
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            return body
    else:
        parsed = body

    if isinstance(parsed, dict):
        errors = parsed.get("errors")
        if isinstance(errors, list):
            messages = [
                str(item["message"])
                for item in errors
                if isinstance(item, dict) and item.get("message")
            ]
            if messages:
                return "; ".join(messages)
        try:
            return json.dumps(parsed)
        except (TypeError, ValueError):
            return None

    if isinstance(parsed, list):
        return "; ".join(str(item) for item in parsed)

    return None


def _log_sendgrid_failure(status_code: Any, body: Any, exc: Exception | None = None) -> None:
    details = _extract_sendgrid_error_details(body)

    if status_code and details:
        logger.error("SendGrid request failed with status %s: %s", status_code, details)
    elif status_code:
        logger.error("SendGrid request failed with status %s", status_code)
    elif details:
        logger.error("SendGrid request failed: %s", details)
    elif exc is not None:
        logger.error("Error sending email via SendGrid: %s", exc)


def send_email(
    subject: str,
    html_content: str,
    recipient: str,
    *,
    plain_text_content: str | None = None,
) -> bool:
    """Send an email using the configured SendGrid credentials."""

    settings = get_settings()
    if not (settings.sendgrid_api_key and settings.sendgrid_sender):
        logger.info("SendGrid configuration incomplete; skipping email delivery")
        return False

    message = Mail(
        from_email=settings.sendgrid_sender,
        to_emails=recipient,
        subject=subject,
        html_content=html_content,
        plain_text_content=plain_text_content,
    )

    try:
        client = SendGridAPIClient(settings.sendgrid_api_key)
        response = client.send(message)
    except Exception as exc:  # pragma: no cover - network failures depend on environment
        _log_sendgrid_failure(
            getattr(exc, "status_code", None), getattr(exc, "body", None), exc
        )
        return False

    status_code = getattr(response, "status_code", None)
    if not isinstance(status_code, int) or not 200 <= status_code < 300:
        _log_sendgrid_failure(status_code, getattr(response, "body", None))
        return False

    return True


def render_notification_email(name: str, message: str, *, brand: str) -> str:
    """Return the branded HTML body used for notification emails."""

    safe_name = html.escape(name or "there")
    safe_message = html.escape(message)
    safe_brand = html.escape(brand)
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        '<div style="background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); '
        'padding: 20px; text-align: center;">'
        f'<h1 style="color: white; margin: 0;">{safe_brand}</h1>'
        "</div>"
        '<div style="padding: 20px; background: #f9f9f9;">'
        f"<h2>Hello {safe_name},</h2>"
        f'<p style="font-size: 16px; line-height: 1.6;">{safe_message}</p>'
        '<div style="margin-top: 30px; padding: 15px; background: white; border-radius: 5px;">'
        f'<p style="margin: 0; color: #666;">This is an automated notification from {safe_brand}.</p>'
        "</div>"
        "</div>"
        "</div>"
    )


def send_user_notification_email(
    session: Session, user_id: int, subject: str, message: str
) -> bool:
    """Email ``message`` to the address registered for ``user_id``.

    Returns ``False`` when the user is unknown, has no email address, or the
    delivery itself fails.
    """

    user = UserRepository(session).get(user_id)
    if user is None or not user.email:
        logger.info("User %s not found or without email address; skipping email", user_id)
        return False

    brand = get_settings().email_subject_prefix
    delivered = send_email(
        f"{brand} - {subject}",
        render_notification_email(user.name, message, brand=brand),
        user.email,
        plain_text_content=message,
    )
    if delivered:
        logger.info("Notification email sent to user %s", user_id)
    return delivered


__all__ = ["render_notification_email", "send_email", "send_user_notification_email"]
