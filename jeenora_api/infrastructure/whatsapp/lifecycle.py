"""Lifecycle management of the single WhatsApp Web session.

The manager owns exactly one :class:`WhatsAppSession` at a time and keeps the
:class:`ConnectionStateTracker` in step with it::

    DISCONNECTED -> INITIALIZING -> AWAITING_PAIRING -> CONNECTED
          ^               |                |               |
          +---------------+----------------+---------------+
              timeout / failure / auth failure / disconnect / logout

``start``, ``logout`` and ``request_pairing_refresh`` are serialized by an
``asyncio.Lock``. Timers (init timeout, retry, reconnect, warm-up) are
handles returned by the injected scheduler so they can be cancelled.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from jeenora_api.domain.entities import PairingInfo, RefreshOutcome
from jeenora_api.domain.errors import (
    AuthFailureError,
    InitializationFailureError,
    InitializationTimeoutError,
)
from jeenora_api.infrastructure.scheduling import ScheduledTask, TaskScheduler
from jeenora_api.utils import now_in_app_timezone

from .cleanup import SessionCleaner
from .session import (
    EVENT_AUTH_FAILURE,
    EVENT_AUTHENTICATED,
    EVENT_DISCONNECTED,
    EVENT_QR,
    EVENT_READY,
    STATE_CONNECTED,
    SessionFactory,
    WhatsAppSession,
)
from .state import ConnectionStateTracker

logger = logging.getLogger(__name__)

StatusListener = Callable[[dict[str, Any]], None]


@dataclass(frozen=True)
class LifecycleConfig:
    """Timing knobs of the session lifecycle, in seconds."""

    init_timeout: float = 120.0
    max_retries: int = 3
    retry_base_delay: float = 5.0
    reconnect_delay: float = 5.0
    startup_delay: float = 10.0
    autostart: bool = False

    def retry_delay(self, attempt: int) -> float:
        return (2**attempt) * self.retry_base_delay


class WhatsAppClientManager:
    """Drive initialize, retry, reconnect and teardown of the WhatsApp session."""

    def __init__(
        self,
        tracker: ConnectionStateTracker,
        session_factory: SessionFactory,
        *,
        cleaner: SessionCleaner,
        scheduler: TaskScheduler | None = None,
        config: LifecycleConfig | None = None,
        status_listener: StatusListener | None = None,
        clock: Callable[[], datetime] = now_in_app_timezone,
    ) -> None:
        self._tracker = tracker
        self._session_factory = session_factory
        self._cleaner = cleaner
        self._scheduler = scheduler or TaskScheduler()
        self.config = config or LifecycleConfig()
        self._status_listener = status_listener
        self._clock = clock
        self._lock = asyncio.Lock()
        self._session: WhatsAppSession | None = None
        self._init_timeout_task: ScheduledTask | None = None
        self._retry_task: ScheduledTask | None = None
        self._reconnect_task: ScheduledTask | None = None

    @property
    def tracker(self) -> ConnectionStateTracker:
        return self._tracker

    @property
    def session(self) -> WhatsAppSession | None:
        return self._session

    def current_session(self) -> WhatsAppSession | None:
        return self._session

    # Lifecycle operations ------------------------------------------------------

    async def start(self, attempt: int = 0) -> bool:
        """Build a fresh session and initialize it.

        Returns ``False`` without side effects when a session is already
        initializing or connected. Failures are retried with exponential
        backoff until ``max_retries`` attempts were made.
        """

        failure: Exception | None = None
        async with self._lock:
            if self._tracker.is_busy() or self._tracker.is_ready():
                logger.info("WhatsApp initialization already in progress or connected; skipping")
                return False

            self._tracker.begin_initializing()
            logger.info("Initializing WhatsApp client (attempt %s)", attempt + 1)
            self.broadcast_status(initializing=True, message="Initializing WhatsApp...")
            self._arm_init_timeout()

            try:
                session = await self._replace_session()
            except Exception as exc:
                failure = exc

        if failure is None:
            try:
                await session.initialize()
            except Exception as exc:
                if session is not self._session:
                    logger.info("Discarding initialization failure of a replaced session")
                    return False
                failure = exc

        if failure is not None:
            await self._handle_start_failure(attempt, failure)
            return False

        logger.info("WhatsApp initialization started")
        return True

    def launch(self, attempt: int = 0) -> ScheduledTask:
        """Run :meth:`start` in the background and return its handle."""

        return self._scheduler.schedule(
            0, lambda: self.start(attempt), name="whatsapp-start"
        )

    async def logout(self) -> None:
        """Unlink the device, tear the session down and wipe its storage."""

        # Set before touching the session so the resulting disconnect is not
        # mistaken for a connection drop.
        self._tracker.request_manual_disconnect()
        logger.info("Manual WhatsApp logout requested")
        self.broadcast_status(initializing=True, message="Logging out from WhatsApp...")

        async with self._lock:
            self._cancel_timers()
            self._tracker.mark_disconnected()
            session = self._session
            if session is not None:
                try:
                    if await session.get_state() == STATE_CONNECTED:
                        await session.logout()
                        logger.info("Logout command sent")
                except Exception as exc:
                    logger.warning("Logout command failed: %s", exc)
                await self._dispose_session()
            await self._cleaner.cleanup(clear_session_data=True)
            self._tracker.mark_disconnected()
            self._tracker.clear_manual_disconnect()

        self.broadcast_status(
            initializing=False,
            message="WhatsApp logged out. You can now reconnect.",
            state="DISCONNECTED",
        )

    async def request_pairing_refresh(self, *, background: bool = False) -> RefreshOutcome:
        """Discard the current pairing attempt and start over with a clean profile."""

        if self._tracker.is_ready():
            return RefreshOutcome.ALREADY_CONNECTED
        if self._tracker.is_busy():
            return RefreshOutcome.ALREADY_INITIALIZING

        async with self._lock:
            if self._tracker.is_ready():
                return RefreshOutcome.ALREADY_CONNECTED
            if self._tracker.is_busy():
                return RefreshOutcome.ALREADY_INITIALIZING
            logger.info("Refreshing WhatsApp pairing code")
            self._tracker.clear_pairing_code()
            await self._dispose_session()
            await self._cleaner.cleanup(clear_session_data=True)

        if background:
            self.launch()
        else:
            await self.start()
        return RefreshOutcome.STARTED

    def force_reconnect(self) -> bool:
        """Launch a new start attempt unless one is already running."""

        if self._tracker.is_busy():
            return False
        self.launch()
        return True

    def startup(self) -> ScheduledTask | None:
        """Schedule the warm-up start when autostart is enabled."""

        if not self.config.autostart:
            return None
        logger.info(
            "Starting WhatsApp in %ss after server warm-up (session dir %s)",
            self.config.startup_delay,
            self._cleaner.session_path,
        )
        return self._scheduler.schedule(
            self.config.startup_delay, self._warm_start, name="whatsapp-warm-start"
        )

    async def shutdown(self) -> None:
        """Cancel timers and close the browser while keeping the stored session."""

        self._cancel_timers()
        self._scheduler.cancel_all()
        async with self._lock:
            await self._dispose_session()
            self._tracker.mark_disconnected()

    # Queries -------------------------------------------------------------------

    def pairing_info(self) -> PairingInfo | None:
        """Return the servable pairing code, dropping it once it has expired."""

        now = self._clock()
        info = self._tracker.current_pairing_info(now)
        if info is None and self._tracker.pairing_expired(now):
            logger.info("WhatsApp QR code expired")
            self._tracker.clear_pairing_code()
        return info

    def status_snapshot(self, message: str | None = None) -> dict[str, Any]:
        connected = self._tracker.is_ready()
        has_code = self._tracker.has_pairing_code()
        return {
            "initializing": self._tracker.is_busy(),
            "connected": connected,
            "qrNeeded": not connected and has_code,
            "message": message or _default_status_message(connected, has_code),
            "phase": self._tracker.phase.value,
            "timestamp": self._clock().isoformat(),
        }

    async def detailed_status(self) -> dict[str, Any]:
        state = "UNKNOWN"
        details: dict[str, Any] = {}
        session = self._session
        if session is not None:
            try:
                state = await session.get_state()
                info = session.info
                details = {
                    "pushname": info.pushname if info else None,
                    "phone": info.phone if info else None,
                    "platform": info.platform if info else None,
                    "version": info.version if info else None,
                    "connected": state == STATE_CONNECTED,
                    "isReady": self._tracker.is_ready(),
                }
            except Exception as exc:
                state = "ERROR"
                details = {"error": str(exc)}
        return {"state": state, "details": details}

    def broadcast_status(self, *, initializing: bool = False, message: str | None = None, **extra: Any) -> None:
        if self._status_listener is None:
            return
        payload = self.status_snapshot(message)
        payload["initializing"] = initializing
        payload.update(extra)
        try:
            self._status_listener(payload)
        except Exception:
            logger.exception("Could not broadcast WhatsApp status")

    # Session events ------------------------------------------------------------

    def _on_qr(self, session: WhatsAppSession, code: str) -> None:
        if session is not self._session:
            return
        logger.info("WhatsApp QR code generated")
        self._tracker.record_pairing_code(code, self._clock())
        self.broadcast_status(initializing=False, message="QR Generated. Scan to connect.")

    def _on_ready(self, session: WhatsAppSession) -> None:
        if session is not self._session:
            return
        pushname = session.info.pushname if session.info else None
        logger.info("WhatsApp client ready (account: %s)", pushname or "unknown")
        self._tracker.mark_connected()
        self._tracker.clear_manual_disconnect()
        self._cancel(self._init_timeout_task)
        self._init_timeout_task = None
        self.broadcast_status(initializing=False, message="WhatsApp Connected Successfully!")

    def _on_authenticated(self, session: WhatsAppSession) -> None:
        if session is not self._session:
            return
        logger.info("WhatsApp authenticated")
        self._tracker.mark_connected()

    def _on_auth_failure(self, session: WhatsAppSession, reason: Any = None) -> None:
        if session is not self._session:
            return
        logger.error("WhatsApp authentication failure: %s", reason)
        self._tracker.mark_disconnected()
        self.broadcast_status(
            initializing=False,
            message=AuthFailureError.default_message,
            error=AuthFailureError.code,
        )

    def _on_disconnected(self, session: WhatsAppSession, reason: Any = None) -> None:
        if session is not self._session:
            return
        logger.info("WhatsApp disconnected: %s", reason)
        self._tracker.mark_disconnected()
        if self._tracker.consume_manual_disconnect():
            logger.info("Manual logout completed; not reconnecting")
            return
        logger.info("Reconnecting in %ss", self.config.reconnect_delay)
        self._reconnect_task = self._scheduler.schedule(
            self.config.reconnect_delay, self.start, name="whatsapp-reconnect"
        )
        self.broadcast_status(initializing=False, message="WhatsApp disconnected. Reconnecting...")

    # Internals -----------------------------------------------------------------

    async def _replace_session(self) -> WhatsAppSession:
        await self._dispose_session()
        session = self._session_factory()
        session.on(EVENT_QR, lambda code: self._on_qr(session, code))
        session.on(EVENT_READY, lambda: self._on_ready(session))
        session.on(EVENT_AUTHENTICATED, lambda: self._on_authenticated(session))
        session.on(EVENT_AUTH_FAILURE, lambda reason=None: self._on_auth_failure(session, reason))
        session.on(EVENT_DISCONNECTED, lambda reason=None: self._on_disconnected(session, reason))
        self._session = session
        return session

    async def _dispose_session(self) -> None:
        session, self._session = self._session, None
        if session is None:
            return
        session.remove_all_listeners()
        try:
            await session.destroy()
            logger.info("WhatsApp client destroyed")
        except Exception as exc:
            logger.warning("WhatsApp client destruction failed: %s", exc)

    async def _handle_start_failure(self, attempt: int, exc: Exception) -> None:
        logger.error("WhatsApp initialization failed: %s", exc)
        self._cancel(self._init_timeout_task)
        self._init_timeout_task = None
        self._tracker.mark_disconnected()

        if attempt + 1 < self.config.max_retries:
            delay = self.config.retry_delay(attempt)
            logger.info(
                "Retrying in %ss (%s/%s)", delay, attempt + 1, self.config.max_retries
            )
            self._retry_task = self._scheduler.schedule(
                delay, lambda: self.start(attempt + 1), name="whatsapp-retry"
            )
            self.broadcast_status(
                initializing=False,
                message=f"Initialization failed, retrying in {delay:g}s",
            )
            return

        logger.error("Max WhatsApp initialization attempts reached")
        await self._dispose_session()
        await self._cleaner.cleanup(clear_session_data=True)
        self.broadcast_status(
            initializing=False,
            message=InitializationFailureError.default_message,
            error=InitializationFailureError.code,
        )

    def _arm_init_timeout(self) -> None:
        self._cancel(self._init_timeout_task)
        self._init_timeout_task = self._scheduler.schedule(
            self.config.init_timeout, self._on_init_timeout, name="whatsapp-init-timeout"
        )

    def _on_init_timeout(self) -> None:
        self._init_timeout_task = None
        if self._tracker.is_busy() and not self._tracker.has_pairing_code():
            logger.warning("WhatsApp initialization timeout")
            self._tracker.mark_disconnected()
            self.broadcast_status(
                initializing=False,
                message=InitializationTimeoutError.default_message,
                error=InitializationTimeoutError.code,
            )

    async def _warm_start(self) -> None:
        if not self._tracker.is_busy() and not self._tracker.is_ready():
            await self.start()

    def _cancel_timers(self) -> None:
        for handle in (self._init_timeout_task, self._retry_task, self._reconnect_task):
            self._cancel(handle)
        self._init_timeout_task = self._retry_task = self._reconnect_task = None

    @staticmethod
    def _cancel(handle: ScheduledTask | None) -> None:
        if handle is not None and not handle.done():
            handle.cancel()


def _default_status_message(connected: bool, has_code: bool) -> str:
    if connected:
        return "WhatsApp Connected"
    if has_code:
        return "Scan QR to connect"
    return "WhatsApp Not Connected"


__all__ = ["LifecycleConfig", "StatusListener", "WhatsAppClientManager"]
