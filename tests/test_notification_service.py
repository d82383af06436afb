"""Tests for notification fan-out across dashboard, email and WhatsApp."""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from jeenora_api.application.use_cases.notifications import NotificationService
from jeenora_api.domain.entities import DeliveryAttemptResult, NotificationTemplate
from jeenora_api.domain.errors import PersistenceFailureError
from jeenora_api.infrastructure.repositories import NotificationRepository

pytestmark = pytest.mark.anyio


class RecordingGateway:
    def __init__(self, result: DeliveryAttemptResult | None = None) -> None:
        self.calls: list[tuple[str, str]] = []
        self.result = result or DeliveryAttemptResult.sent("msg-1", recipient="919876543210")

    async def send(self, recipient, body, media_url=None, *, campaign_id=None):
        self.calls.append((recipient, body))
        return self.result


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest.fixture
def emails():
    return []


@pytest.fixture
def published():
    return []


@pytest.fixture
def service(tracker, gateway, emails, published):
    def send_email(session, user_id, subject, message):
        emails.append((user_id, subject, message))
        return True

    return NotificationService(
        tracker, gateway, email_sender=send_email, publisher=published.append
    )


async def test_whatsapp_is_dropped_when_not_connected(service, db_session, make_user, gateway):
    user = make_user()

    notification = await service.notify(
        db_session,
        user.id,
        "Test",
        "Body",
        channels=["dashboard", "email", "whatsapp"],
    )

    assert notification.channels == ["dashboard", "email"]
    assert notification.sent_status.whatsapp is False
    assert gateway.calls == []


async def test_dashboard_and_email_scenario(service, db_session, make_user, emails, published):
    user = make_user()

    notification = await service.notify(
        db_session, user.id, "Test", "Body", channels=["dashboard", "email"]
    )

    assert notification.sent_status.as_dict() == {
        "dashboard": True,
        "email": True,
        "whatsapp": False,
    }
    stored = NotificationRepository(db_session).get(notification.id)
    assert stored.sent_status.as_dict() == notification.sent_status.as_dict()
    assert emails == [(user.id, "Test", "Body")]
    assert published == [notification]


async def test_whatsapp_delivery_when_connected(service, db_session, make_user, tracker, gateway):
    tracker.mark_connected()
    user = make_user(phone="98765 43210")

    notification = await service.notify(
        db_session, user.id, "Interview", "Tomorrow 10am", channels=["dashboard", "whatsapp"]
    )

    assert notification.channels == ["dashboard", "whatsapp"]
    assert notification.sent_status.whatsapp is True
    assert gateway.calls == [("98765 43210", "Interview\n\nTomorrow 10am")]


async def test_failed_channels_are_recorded_not_raised(
    tracker, db_session, make_user, published
):
    tracker.mark_connected()
    gateway = RecordingGateway(
        DeliveryAttemptResult.failed("Invalid phone number", code="InvalidRecipient")
    )

    def broken_email(session, user_id, subject, message):
        raise RuntimeError("smtp down")

    service = NotificationService(
        tracker, gateway, email_sender=broken_email, publisher=published.append
    )
    user = make_user()

    notification = await service.notify(
        db_session, user.id, "Alert", "Body", channels=["dashboard", "email", "whatsapp"]
    )

    assert notification.sent_status.as_dict() == {
        "dashboard": True,
        "email": False,
        "whatsapp": False,
    }


async def test_user_without_phone_skips_whatsapp(service, db_session, make_user, tracker, gateway):
    tracker.mark_connected()
    user = make_user(phone=None)

    notification = await service.notify(
        db_session, user.id, "Hi", "Body", channels=["whatsapp"]
    )

    assert notification.sent_status.whatsapp is False
    assert gateway.calls == []


async def test_dashboard_only_is_not_published_without_dashboard_channel(
    service, db_session, make_user, published
):
    user = make_user()

    notification = await service.notify(db_session, user.id, "Hi", "Body", channels=["email"])

    assert notification.sent_status.dashboard is False
    assert published == []


async def test_records_expire_after_the_ttl(service, db_session, make_user):
    user = make_user()

    notification = await service.notify(db_session, user.id, "Hi", "Body")

    assert notification.expires_at - notification.created_at == timedelta(days=30)
    assert notification.channels == ["dashboard"]


async def test_persistence_errors_surface(service, db_session, make_user, monkeypatch):
    user = make_user()

    def fail(self, notification):
        raise OperationalError("INSERT", {}, Exception("disk full"))

    monkeypatch.setattr(NotificationRepository, "create", fail)

    with pytest.raises(PersistenceFailureError):
        await service.notify(db_session, user.id, "Hi", "Body")


async def test_bulk_continues_after_a_failure(service, db_session, make_user, monkeypatch):
    users = [
        make_user("A", email="a@example.com"),
        make_user("B", email="b@example.com"),
        make_user("C", email="c@example.com"),
    ]
    original_create = NotificationRepository.create

    def flaky_create(self, notification):
        if notification.user_id == users[1].id:
            raise OperationalError("INSERT", {}, Exception("locked"))
        return original_create(self, notification)

    monkeypatch.setattr(NotificationRepository, "create", flaky_create)
    template = NotificationTemplate(title="Hello", message="World", channels=["dashboard"])

    results = await service.notify_bulk(db_session, [user.id for user in users], template)

    assert [item.user_id for item in results] == [users[0].id, users[2].id]


async def test_bulk_resolves_channels_once(service, db_session, make_user, tracker, gateway):
    tracker.mark_connected()
    first = make_user("A", email="a@example.com")
    second = make_user("B", email="b@example.com")
    template = NotificationTemplate(
        title="Hello", message="World", channels=["dashboard", "whatsapp"]
    )
    original_notify = service.notify

    async def notify_then_disconnect(*args, **kwargs):
        result = await original_notify(*args, **kwargs)
        tracker.mark_disconnected()
        return result

    service.notify = notify_then_disconnect

    results = await service.notify_bulk(db_session, [first.id, second.id], template)

    assert [item.channels for item in results] == [["dashboard", "whatsapp"]] * 2


async def test_broadcast_to_all_active_users(service, db_session, make_user):
    make_user("A", email="a@example.com")
    make_user("B", email="b@example.com")
    make_user("C", email="c@example.com", is_active=False)
    template = NotificationTemplate(title="Maintenance", message="Tonight")

    results = await service.broadcast(db_session, "all", template)

    assert len(results) == 2


async def test_broadcast_ignores_unknown_ids(service, db_session, make_user):
    user = make_user()
    template = NotificationTemplate(title="Hi", message="There")

    results = await service.broadcast(db_session, [user.id, 999], template)
    assert [item.user_id for item in results] == [user.id]

    with pytest.raises(ValueError):
        await service.broadcast(db_session, [999], template)


async def test_whatsapp_status_summary(service, tracker):
    assert service.whatsapp_status()["connected"] is False

    tracker.mark_connected()
    status = service.whatsapp_status()
    assert status == {"connected": True, "phase": "CONNECTED", "message": "WhatsApp Connected"}
