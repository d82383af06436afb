"""Abstract WhatsApp Web session consumed by the lifecycle manager and gateway."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

EVENT_QR = "qr"
EVENT_READY = "ready"
EVENT_AUTHENTICATED = "authenticated"
EVENT_AUTH_FAILURE = "auth_failure"
EVENT_DISCONNECTED = "disconnected"
SESSION_EVENTS = (
    EVENT_QR,
    EVENT_READY,
    EVENT_AUTHENTICATED,
    EVENT_AUTH_FAILURE,
    EVENT_DISCONNECTED,
)

STATE_CONNECTED = "CONNECTED"
STATE_OPENING = "OPENING"
STATE_UNPAIRED = "UNPAIRED"


@dataclass(frozen=True)
class SessionOptions:
    """Launch configuration for a browser backed session."""

    client_id: str
    data_path: str
    headless: bool = True
    executable_path: str | None = None
    args: tuple[str, ...] = ()


@dataclass(frozen=True)
class SessionInfo:
    """Account details reported by a connected session."""

    pushname: str | None = None
    phone: str | None = None
    platform: str | None = None
    version: str | None = None


@dataclass(frozen=True)
class MessageMedia:
    """Binary attachment sent along with a caption."""

    mimetype: str
    data: bytes
    filename: str | None = None


@dataclass(frozen=True)
class SentMessage:
    """Acknowledgement returned after a message was handed to WhatsApp."""

    id: str | None
    chat_id: str


@dataclass(frozen=True)
class Contact:
    id: str
    name: str
    phone: str | None
    is_group: bool = False
    is_business: bool = False
    is_enterprise: bool = False


@dataclass(frozen=True)
class Chat:
    id: str
    name: str
    is_group: bool
    participants: tuple[str, ...] = field(default_factory=tuple)
    is_read_only: bool = False


class EventEmitter:
    """Minimal synchronous observer registry for session lifecycle events."""

    def __init__(self) -> None:
        self._listeners: defaultdict[str, list[Callable[..., Any]]] = defaultdict(list)

    def on(self, event: str, listener: Callable[..., Any]) -> None:
        self._listeners[event].append(listener)

    def listener_count(self, event: str | None = None) -> int:
        if event is None:
            return sum(len(listeners) for listeners in self._listeners.values())
        return len(self._listeners.get(event, []))

    def remove_all_listeners(self) -> None:
        self._listeners.clear()

    def emit(self, event: str, *args: Any) -> None:
        for listener in list(self._listeners.get(event, [])):
            try:
                listener(*args)
            except Exception:
                logger.exception("Listener for session event %s failed", event)


class WhatsAppSession(EventEmitter, ABC):
    """One authenticated (or authenticating) connection to WhatsApp Web.

    Implementations emit :data:`SESSION_EVENTS` in the order they happen:
    ``qr`` with the pairing payload, ``authenticated`` and ``ready`` once
    logged in, ``auth_failure`` with a reason, and ``disconnected`` with a
    reason.
    """

    info: SessionInfo | None = None

    @abstractmethod
    async def initialize(self) -> None:
        """Launch the session; events may fire before and after this returns."""

    @abstractmethod
    async def get_state(self) -> str:
        """Return ``CONNECTED`` when the session can send messages."""

    @abstractmethod
    async def send_message(
        self, chat_id: str, content: str | MessageMedia, *, caption: str | None = None
    ) -> SentMessage:
        ...

    @abstractmethod
    async def logout(self) -> None:
        """Unlink the device from the WhatsApp account."""

    @abstractmethod
    async def destroy(self) -> None:
        """Close the underlying browser without unlinking the device."""

    @abstractmethod
    async def get_contacts(self) -> list[Contact]:
        ...

    @abstractmethod
    async def get_chats(self) -> list[Chat]:
        ...


SessionFactory = Callable[[], WhatsAppSession]


__all__ = [
    "Chat",
    "Contact",
    "EVENT_AUTH_FAILURE",
    "EVENT_AUTHENTICATED",
    "EVENT_DISCONNECTED",
    "EVENT_QR",
    "EVENT_READY",
    "EventEmitter",
    "MessageMedia",
    "SESSION_EVENTS",
    "STATE_CONNECTED",
    "STATE_OPENING",
    "STATE_UNPAIRED",
    "SentMessage",
    "SessionFactory",
    "SessionInfo",
    "SessionOptions",
    "WhatsAppSession",
]
