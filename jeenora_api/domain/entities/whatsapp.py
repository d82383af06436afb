"""Domain types describing the WhatsApp connection."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ConnectionPhase(str, Enum):
    """Lifecycle phases of the WhatsApp session."""

    DISCONNECTED = "DISCONNECTED"
    INITIALIZING = "INITIALIZING"
    AWAITING_PAIRING = "AWAITING_PAIRING"
    CONNECTED = "CONNECTED"


class RefreshOutcome(str, Enum):
    """Result of a pairing code refresh request."""

    ALREADY_CONNECTED = "already_connected"
    ALREADY_INITIALIZING = "already_initializing"
    STARTED = "started"


@dataclass(frozen=True)
class PairingInfo:
    """A pending pairing code and its validity window."""

    code: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class PhoneAnalysis:
    """Breakdown of a raw phone number supplied for WhatsApp delivery."""

    original: str | None
    formatted: str | None
    is_valid: bool
    length: int
    type: str


__all__ = ["ConnectionPhase", "PairingInfo", "PhoneAnalysis", "RefreshOutcome"]
