"""Fan-out of notifications to the dashboard, email and WhatsApp channels."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import timedelta
from typing import Any

from anyio import to_thread
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from jeenora_api.domain.entities import (
    CHANNEL_DASHBOARD,
    CHANNEL_EMAIL,
    CHANNEL_WHATSAPP,
    Notification,
    NotificationTemplate,
    SentStatus,
)
from jeenora_api.domain.errors import PersistenceFailureError
from jeenora_api.infrastructure.email import send_user_notification_email
from jeenora_api.infrastructure.notifications import dispatch_notification
from jeenora_api.infrastructure.repositories import NotificationRepository, UserRepository
from jeenora_api.infrastructure.whatsapp import ConnectionStateTracker, WhatsAppGateway
from jeenora_api.utils import now_in_app_timezone

logger = logging.getLogger(__name__)

DEFAULT_NOTIFICATION_TTL = timedelta(days=30)

EmailSender = Callable[[Session, int, str, str], bool]
Publisher = Callable[[Notification], None]


class NotificationService:
    """Persist notifications and deliver them over every available channel.

    WhatsApp is only attempted while the session is connected; the channels
    stored on a notification are the ones that were actually attempted.
    Delivery failures are logged and reflected in ``sent_status`` but never
    raised. Only persistence problems surface, as
    :class:`PersistenceFailureError`.
    """

    def __init__(
        self,
        tracker: ConnectionStateTracker,
        gateway: WhatsAppGateway,
        *,
        email_sender: EmailSender = send_user_notification_email,
        publisher: Publisher = dispatch_notification,
        ttl: timedelta = DEFAULT_NOTIFICATION_TTL,
    ) -> None:
        self._tracker = tracker
        self._gateway = gateway
        self._email_sender = email_sender
        self._publisher = publisher
        self.ttl = ttl

    def available_channels(self, requested: Iterable[str] | None = None) -> list[str]:
        """Return ``requested`` restricted to the channels usable right now."""

        usable = {CHANNEL_DASHBOARD, CHANNEL_EMAIL}
        if self._tracker.is_ready():
            usable.add(CHANNEL_WHATSAPP)
        requested = list(requested) if requested is not None else [CHANNEL_DASHBOARD]
        return [channel for channel in dict.fromkeys(requested) if channel in usable]

    async def notify(
        self,
        session: Session,
        user_id: int,
        title: str,
        message: str,
        *,
        type: str = "system",
        category: str = "System",
        link: str | None = None,
        channels: Sequence[str] | None = None,
        meta: dict[str, Any] | None = None,
        available: Sequence[str] | None = None,
    ) -> Notification:
        # Bulk sends pass the channels resolved once for the whole batch.
        available = list(available) if available is not None else self.available_channels(channels)

        created_at = now_in_app_timezone()
        record = Notification(
            id=None,
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            category=category,
            link=link,
            channels=list(available),
            meta=dict(meta or {}),
            sent_status=SentStatus(dashboard=CHANNEL_DASHBOARD in available),
            created_at=created_at,
            expires_at=created_at + self.ttl,
        )

        repository = NotificationRepository(session)
        try:
            saved = repository.create(record)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Could not store notification for user %s: %s", user_id, exc)
            raise PersistenceFailureError(str(exc)) from exc

        deliveries = []
        if CHANNEL_EMAIL in available:
            deliveries.append(self._deliver_email(session, user_id, title, message))
        if CHANNEL_WHATSAPP in available:
            phone = self._recipient_phone(session, user_id)
            deliveries.append(self._deliver_whatsapp(user_id, phone, title, message))

        outcomes = dict(await asyncio.gather(*deliveries))
        if outcomes:
            status = SentStatus(
                dashboard=saved.sent_status.dashboard,
                email=outcomes.get(CHANNEL_EMAIL, False),
                whatsapp=outcomes.get(CHANNEL_WHATSAPP, False),
            )
            try:
                saved = repository.update_sent_status(saved.id, status)
            except SQLAlchemyError as exc:
                session.rollback()
                logger.error("Could not store delivery status of notification %s: %s", saved.id, exc)
                raise PersistenceFailureError(str(exc)) from exc

        if CHANNEL_DASHBOARD in available:
            self._publisher(saved)
        logger.info(
            "Notification %s sent to user %s via %s", saved.id, user_id, ", ".join(available) or "none"
        )
        return saved

    async def notify_bulk(
        self, session: Session, user_ids: Iterable[int], template: NotificationTemplate
    ) -> list[Notification]:
        """Send ``template`` to each user in turn; one failure does not stop the rest."""

        available = self.available_channels(template.channels)
        results = []
        for user_id in user_ids:
            try:
                results.append(
                    await self.notify(
                        session,
                        user_id,
                        template.title,
                        template.message,
                        type=template.type,
                        category=template.category,
                        link=template.link,
                        channels=template.channels,
                        meta=template.meta,
                        available=available,
                    )
                )
            except PersistenceFailureError as exc:
                logger.error("Bulk notification for user %s failed: %s", user_id, exc)
        return results

    async def broadcast(
        self,
        session: Session,
        recipients: str | Sequence[int],
        template: NotificationTemplate,
    ) -> list[Notification]:
        """Send ``template`` to ``"all"`` active users or to the given user ids."""

        users = UserRepository(session)
        if recipients == "all":
            user_ids = users.list_active_ids()
        elif isinstance(recipients, str):
            raise ValueError("Recipients must be 'all' or a list of user ids")
        else:
            user_ids = users.filter_existing_ids(recipients)
        if not user_ids:
            raise ValueError("No valid users found")
        return await self.notify_bulk(session, user_ids, template)

    def whatsapp_status(self) -> dict[str, Any]:
        connected = self._tracker.is_ready()
        return {
            "connected": connected,
            "phase": self._tracker.phase.value,
            "message": "WhatsApp Connected" if connected else "WhatsApp Not Connected",
        }

    @staticmethod
    def _recipient_phone(session: Session, user_id: int) -> str | None:
        user = UserRepository(session).get(user_id)
        return user.phone if user else None

    async def _deliver_email(
        self, session: Session, user_id: int, title: str, message: str
    ) -> tuple[str, bool]:
        try:
            delivered = await to_thread.run_sync(
                self._email_sender, session, user_id, title, message
            )
        except Exception as exc:
            logger.error("Email notification failed for user %s: %s", user_id, exc)
            delivered = False
        return CHANNEL_EMAIL, bool(delivered)

    async def _deliver_whatsapp(
        self, user_id: int, phone: str | None, title: str, message: str
    ) -> tuple[str, bool]:
        if not phone:
            logger.info("User %s has no phone number; skipping WhatsApp", user_id)
            return CHANNEL_WHATSAPP, False
        result = await self._gateway.send(phone, f"{title}\n\n{message}")
        if not result.success:
            logger.warning(
                "WhatsApp notification failed for user %s: %s", user_id, result.error
            )
        return CHANNEL_WHATSAPP, result.success


__all__ = ["DEFAULT_NOTIFICATION_TTL", "NotificationService"]
