"""Unit tests for the SendGrid email helper utilities."""

from __future__ import annotations

import json
import types

import pytest

from jeenora_api.infrastructure import email as email_module


class DummySettings:
    sendgrid_api_key = "SG.fake"
    sendgrid_sender = "sender@example.com"
    email_subject_prefix = "JEENORA HIRE"


class RecordingClient:
    """Stand-in for ``SendGridAPIClient`` that keeps the sent messages."""

    sent: list = []

    def __init__(self, api_key: str):
        self.api_key = api_key

    def send(self, message):
        RecordingClient.sent.append(message)
        return types.SimpleNamespace(status_code=202, body=None)


@pytest.fixture(autouse=True)
def configured(monkeypatch: pytest.MonkeyPatch):
    RecordingClient.sent = []
    monkeypatch.setattr(email_module, "get_settings", lambda: DummySettings())
    monkeypatch.setattr(email_module, "SendGridAPIClient", RecordingClient)


def test_send_email_without_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    """When SendGrid settings are missing the helper should exit early."""

    class Unconfigured(DummySettings):
        sendgrid_api_key = None
        sendgrid_sender = None

    monkeypatch.setattr(email_module, "get_settings", lambda: Unconfigured())

    assert email_module.send_email("Subject", "<p>Body</p>", "user@example.com") is False
    assert RecordingClient.sent == []


def test_send_email_success() -> None:
    assert email_module.send_email("Subject", "<p>Body</p>", "user@example.com") is True
    assert len(RecordingClient.sent) == 1


def test_send_email_logs_forbidden_error(monkeypatch: pytest.MonkeyPatch, caplog):
    """Forbidden responses from SendGrid should surface meaningful log details."""

    class FakeForbiddenError(Exception):
        status_code = 403
        body = json.dumps(
            {"errors": [{"message": "The provided authorization grant is invalid."}]}
        ).encode()

    class FailingClient(RecordingClient):
        def send(self, message):
            raise FakeForbiddenError()

    monkeypatch.setattr(email_module, "SendGridAPIClient", FailingClient)

    with caplog.at_level("ERROR"):
        result = email_module.send_email("Subject", "<p>Body</p>", "user@example.com")

    assert result is False
    assert "status 403" in caplog.text
    assert "authorization grant is invalid" in caplog.text


def test_send_email_rejects_non_success_status(monkeypatch: pytest.MonkeyPatch, caplog):
    class RejectingClient(RecordingClient):
        def send(self, message):
            return types.SimpleNamespace(status_code=400, body=b"Bad Request")

    monkeypatch.setattr(email_module, "SendGridAPIClient", RejectingClient)

    with caplog.at_level("ERROR"):
        assert email_module.send_email("Subject", "<p>Body</p>", "user@example.com") is False
    assert "Bad Request" in caplog.text


def test_notification_email_is_branded_and_escaped():
    body = email_module.render_notification_email(
        "<Asha>", "Interview at 10 & bring CV", brand="JEENORA HIRE"
    )

    assert "Hello &lt;Asha&gt;," in body
    assert "Interview at 10 &amp; bring CV" in body
    assert "automated notification from JEENORA HIRE" in body


def test_user_notification_email_uses_registered_address(
    db_session, make_user, monkeypatch: pytest.MonkeyPatch
):
    user = make_user(email="asha@example.com")
    calls = []

    def fake_send_email(subject, html_content, recipient, *, plain_text_content=None):
        calls.append((subject, recipient, plain_text_content))
        return True

    monkeypatch.setattr(email_module, "send_email", fake_send_email)

    assert email_module.send_user_notification_email(db_session, user.id, "Payment", "Paid") is True
    assert calls == [("JEENORA HIRE - Payment", "asha@example.com", "Paid")]


def test_user_notification_email_skips_users_without_address(db_session, make_user):
    user = make_user(email=None)

    assert email_module.send_user_notification_email(db_session, user.id, "Hi", "Body") is False
    assert email_module.send_user_notification_email(db_session, 999, "Hi", "Body") is False
    assert RecordingClient.sent == []
