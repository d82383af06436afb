"""Persistence helpers for WhatsApp campaign analytics."""

from __future__ import annotations

from collections.abc import Callable

from sqlalchemy.orm import Session

from jeenora_api.domain.entities import DeliveryAttemptResult
from jeenora_api.infrastructure.models import WhatsAppAnalyticsModel
from jeenora_api.utils import storage_now


class WhatsAppAnalyticsRepository:
    """Record delivery attempts keyed by an external campaign id."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def record_delivery(self, campaign_id: str, result: DeliveryAttemptResult) -> None:
        model = WhatsAppAnalyticsModel(
            campaign_id=campaign_id,
            type="whatsapp",
            event="sent" if result.success else "failed",
            recipient=result.recipient,
            message_id=result.provider_message_id,
            error=result.error,
            timestamp=storage_now(),
        )
        self.session.add(model)
        self.session.commit()

    def count_events(self, campaign_id: str, *, event: str | None = None) -> int:
        query = self.session.query(WhatsAppAnalyticsModel).filter(
            WhatsAppAnalyticsModel.campaign_id == campaign_id
        )
        if event:
            query = query.filter(WhatsAppAnalyticsModel.event == event)
        return query.count()


def make_analytics_sink(
    session_factory: Callable[[], Session],
) -> Callable[[str, DeliveryAttemptResult], None]:
    """Return a callback that stores each delivery attempt in its own session."""

    def record(campaign_id: str, result: DeliveryAttemptResult) -> None:
        session = session_factory()
        try:
            WhatsAppAnalyticsRepository(session).record_delivery(campaign_id, result)
        finally:
            session.close()

    return record


__all__ = ["WhatsAppAnalyticsRepository", "make_analytics_sink"]
