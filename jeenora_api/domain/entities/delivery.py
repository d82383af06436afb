"""Result of a single outbound message delivery attempt."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DeliveryAttemptResult:
    """Outcome returned by the message gateway for every send call."""

    success: bool
    provider_message_id: str | None = None
    error: str | None = None
    error_code: str | None = None
    recipient: str | None = None

    @classmethod
    def sent(cls, message_id: str | None, *, recipient: str) -> "DeliveryAttemptResult":
        return cls(success=True, provider_message_id=message_id, recipient=recipient)

    @classmethod
    def failed(
        cls, error: str, *, code: str, recipient: str | None = None
    ) -> "DeliveryAttemptResult":
        return cls(success=False, error=error, error_code=code, recipient=recipient)


__all__ = ["DeliveryAttemptResult"]
