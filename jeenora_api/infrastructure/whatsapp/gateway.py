"""Outbound WhatsApp message delivery."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable, Sequence

from jeenora_api.domain.entities import DeliveryAttemptResult, PhoneAnalysis
from jeenora_api.domain.errors import (
    InvalidRecipientError,
    NotReadyError,
    SendFailureError,
    WhatsAppError,
)

from .media import fetch_media, upgrade_to_https
from .session import STATE_CONNECTED, Chat, Contact, MessageMedia, WhatsAppSession
from .state import ConnectionStateTracker

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"\D")

MediaLoader = Callable[[str], Awaitable[MessageMedia]]
AnalyticsSink = Callable[[str, DeliveryAttemptResult], None]


def normalize_recipient(raw: object, default_country_code: str = "91") -> str | None:
    """Return the canonical digits-only WhatsApp id for ``raw`` or ``None``.

    Ten digit numbers are treated as local and prefixed with
    ``default_country_code``; anything outside 10-15 digits is rejected.
    """

    if raw is None:
        return None
    digits = _NON_DIGITS.sub("", str(raw).strip())
    if len(digits) == 10:
        digits = default_country_code + digits
    return digits if 10 <= len(digits) <= 15 else None


def analyze_phone_number(raw: object, default_country_code: str = "91") -> PhoneAnalysis:
    if not raw:
        return PhoneAnalysis(original=None, formatted=None, is_valid=False, length=0, type="unknown")
    digits = _NON_DIGITS.sub("", str(raw))
    formatted = normalize_recipient(raw, default_country_code)
    return PhoneAnalysis(
        original=str(raw),
        formatted=formatted,
        is_valid=formatted is not None,
        length=len(digits),
        type="10-digit-local" if len(digits) == 10 else "international",
    )


class WhatsAppGateway:
    """Send messages through the live session and report structured results.

    ``send`` never raises: every failure becomes a failed
    :class:`DeliveryAttemptResult`. Nothing is retried here.
    """

    def __init__(
        self,
        tracker: ConnectionStateTracker,
        session_provider: Callable[[], WhatsAppSession | None],
        *,
        default_country_code: str = "91",
        media_loader: MediaLoader = fetch_media,
        analytics_sink: AnalyticsSink | None = None,
        bulk_delay: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._tracker = tracker
        self._session_provider = session_provider
        self.default_country_code = default_country_code
        self._media_loader = media_loader
        self._analytics_sink = analytics_sink
        self.bulk_delay = bulk_delay
        self._sleep = sleep

    def normalize_recipient(self, raw: object) -> str | None:
        return normalize_recipient(raw, self.default_country_code)

    def analyze(self, raw: object) -> PhoneAnalysis:
        return analyze_phone_number(raw, self.default_country_code)

    async def send(
        self,
        recipient: object,
        body: str,
        media_url: str | None = None,
        *,
        campaign_id: str | None = None,
    ) -> DeliveryAttemptResult:
        try:
            result = await self._deliver(recipient, body, upgrade_to_https(media_url))
        except WhatsAppError as exc:
            result = DeliveryAttemptResult.failed(
                exc.message, code=exc.code, recipient=str(recipient)
            )
        except Exception as exc:
            logger.error("WhatsApp delivery to %s failed: %s", recipient, exc)
            result = DeliveryAttemptResult.failed(
                str(exc) or SendFailureError.default_message,
                code=SendFailureError.code,
                recipient=str(recipient),
            )

        if campaign_id and self._analytics_sink is not None:
            try:
                self._analytics_sink(campaign_id, result)
            except Exception:
                logger.exception("Could not record WhatsApp analytics for %s", campaign_id)
        return result

    async def send_bulk(
        self,
        contacts: Sequence[object],
        body: str,
        media_url: str | None = None,
        *,
        campaign_id: str | None = None,
    ) -> list[tuple[object, DeliveryAttemptResult]]:
        """Send to ``contacts`` one after another with a pause in between."""

        results = []
        for index, contact in enumerate(contacts):
            if index and self.bulk_delay:
                await self._sleep(self.bulk_delay)
            results.append(
                (contact, await self.send(contact, body, media_url, campaign_id=campaign_id))
            )
        return results

    async def list_contacts(self) -> list[Contact]:
        session = self._connected_session()
        return [
            contact
            for contact in await session.get_contacts()
            if contact.phone and not contact.is_group
        ]

    async def list_groups(self) -> list[Chat]:
        session = self._connected_session()
        return [chat for chat in await session.get_chats() if chat.is_group]

    def _connected_session(self) -> WhatsAppSession:
        session = self._session_provider()
        if not self._tracker.is_ready() or session is None:
            raise NotReadyError()
        return session

    async def _deliver(
        self, recipient: object, body: str, media_url: str | None
    ) -> DeliveryAttemptResult:
        session = self._connected_session()
        # The cached flag can lag behind the browser, so ask the session too.
        try:
            state = await session.get_state()
        except Exception as exc:
            logger.warning("WhatsApp state probe failed: %s", exc)
            raise NotReadyError("WhatsApp not connected") from exc
        if state != STATE_CONNECTED:
            raise NotReadyError("WhatsApp not connected")

        phone = self.normalize_recipient(recipient)
        if phone is None:
            raise InvalidRecipientError()

        chat_id = f"{phone}@c.us"
        if media_url:
            media = await self._media_loader(media_url)
            sent = await session.send_message(chat_id, media, caption=body)
        else:
            sent = await session.send_message(chat_id, body)

        logger.info("WhatsApp message sent to %s", phone)
        return DeliveryAttemptResult.sent(sent.id, recipient=phone)


__all__ = ["WhatsAppGateway", "analyze_phone_number", "normalize_recipient"]
