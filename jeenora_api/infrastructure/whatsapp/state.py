"""Process-wide record of the WhatsApp connection state."""

from __future__ import annotations

from datetime import datetime, timedelta

from jeenora_api.domain.entities import ConnectionPhase, PairingInfo
from jeenora_api.utils import now_in_app_timezone

DEFAULT_PAIRING_TTL = timedelta(minutes=5)


class ConnectionStateTracker:
    """Hold the current phase, the pending pairing code and the logout flag.

    Only :class:`~jeenora_api.infrastructure.whatsapp.lifecycle.WhatsAppClientManager`
    calls the mutators; every other component reads through ``is_ready``,
    ``is_busy`` and ``current_pairing_info``. The phase is a single value, so
    being connected and waiting for pairing at the same time is impossible.
    """

    def __init__(self, *, pairing_ttl: timedelta = DEFAULT_PAIRING_TTL) -> None:
        self.pairing_ttl = pairing_ttl
        self._phase = ConnectionPhase.DISCONNECTED
        self._pairing_code: str | None = None
        self._pairing_issued_at: datetime | None = None
        self._manual_disconnect_requested = False

    # Read side -----------------------------------------------------------------

    @property
    def phase(self) -> ConnectionPhase:
        return self._phase

    def is_ready(self) -> bool:
        return self._phase is ConnectionPhase.CONNECTED

    def is_busy(self) -> bool:
        return self._phase is ConnectionPhase.INITIALIZING

    def has_pairing_code(self) -> bool:
        return self._pairing_code is not None

    @property
    def manual_disconnect_requested(self) -> bool:
        return self._manual_disconnect_requested

    def current_pairing_info(self, now: datetime | None = None) -> PairingInfo | None:
        """Return the pending pairing code unless it is missing or expired."""

        if self._pairing_code is None or self._pairing_issued_at is None:
            return None
        expires_at = self._pairing_issued_at + self.pairing_ttl
        if (now or now_in_app_timezone()) > expires_at:
            return None
        return PairingInfo(
            code=self._pairing_code,
            issued_at=self._pairing_issued_at,
            expires_at=expires_at,
        )

    def pairing_expired(self, now: datetime | None = None) -> bool:
        return self._pairing_code is not None and self.current_pairing_info(now) is None

    # Write side ----------------------------------------------------------------

    def begin_initializing(self) -> None:
        self._phase = ConnectionPhase.INITIALIZING
        self.clear_pairing_code()

    def record_pairing_code(self, code: str, issued_at: datetime | None = None) -> None:
        self._pairing_code = code
        self._pairing_issued_at = issued_at or now_in_app_timezone()
        self._phase = ConnectionPhase.AWAITING_PAIRING

    def mark_connected(self) -> None:
        self._phase = ConnectionPhase.CONNECTED
        self.clear_pairing_code()

    def mark_disconnected(self, *, keep_pairing_code: bool = False) -> None:
        self._phase = ConnectionPhase.DISCONNECTED
        if not keep_pairing_code:
            self.clear_pairing_code()

    def clear_pairing_code(self) -> None:
        self._pairing_code = None
        self._pairing_issued_at = None
        if self._phase is ConnectionPhase.AWAITING_PAIRING:
            self._phase = ConnectionPhase.DISCONNECTED

    def request_manual_disconnect(self) -> None:
        self._manual_disconnect_requested = True

    def clear_manual_disconnect(self) -> None:
        self._manual_disconnect_requested = False

    def consume_manual_disconnect(self) -> bool:
        """Return the logout flag and reset it so it suppresses one reconnect only."""

        requested = self._manual_disconnect_requested
        self._manual_disconnect_requested = False
        return requested


__all__ = ["ConnectionStateTracker", "DEFAULT_PAIRING_TTL"]
