"""Error taxonomy for WhatsApp delivery and notification fan-out."""

from __future__ import annotations


class WhatsAppError(Exception):
    """Base class for messaging failures; ``code`` is stable across releases."""

    code = "WhatsAppError"
    default_message = "WhatsApp operation failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class NotReadyError(WhatsAppError):
    code = "NotReady"
    default_message = "WhatsApp is not connected. Please connect WhatsApp first."


class InvalidRecipientError(WhatsAppError):
    code = "InvalidRecipient"
    default_message = "Invalid phone number"


class InitializationTimeoutError(WhatsAppError):
    code = "InitializationTimeout"
    default_message = "Initialization timeout"


class InitializationFailureError(WhatsAppError):
    code = "InitializationFailure"
    default_message = "Failed to initialize WhatsApp"


class AuthFailureError(WhatsAppError):
    code = "AuthFailure"
    default_message = "Authentication failed"


class SendFailureError(WhatsAppError):
    code = "SendFailure"
    default_message = "WhatsApp message could not be sent"


class PersistenceFailureError(Exception):
    """Raised when a notification record cannot be stored."""

    code = "PersistenceFailure"


__all__ = [
    "AuthFailureError",
    "InitializationFailureError",
    "InitializationTimeoutError",
    "InvalidRecipientError",
    "NotReadyError",
    "PersistenceFailureError",
    "SendFailureError",
    "WhatsAppError",
]
