"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        default="sqlite:///./jeenora.db",
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    secret_key: str = Field(
        default="change-me",
        description="Secret key for signing JWT tokens",
        min_length=1,
    )
    access_token_expire_minutes: int = Field(
        default=60 * 24,
        description="Number of minutes before access tokens expire",
        gt=0,
    )
    app_timezone: str = Field(
        default="Asia/Kolkata",
        description="IANA timezone used for timestamps",
    )
    sendgrid_api_key: str | None = Field(
        default=None,
        description="SendGrid API key used for sending transactional emails via the REST API",
    )
    sendgrid_sender: str | None = Field(
        default=None,
        description="Email address that will appear as the sender of transactional messages",
        min_length=3,
    )
    email_subject_prefix: str = Field(
        default="JEENORA HIRE",
        description="Brand prefix prepended to every notification email subject",
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"],
        description="Origins allowed to call the API from a browser",
    )

    whatsapp_default_country_code: str = Field(
        default="91",
        description="Country code prepended to 10 digit local phone numbers",
        pattern=r"^\d{1,4}$",
    )
    whatsapp_qr_expiry_seconds: int = Field(
        default=5 * 60,
        description="Seconds a pairing QR code stays valid after being issued",
        gt=0,
    )
    whatsapp_init_timeout_seconds: float = Field(
        default=120,
        description="Seconds to wait for a QR code or a connection before giving up",
        gt=0,
    )
    whatsapp_max_retries: int = Field(
        default=3,
        description="Maximum number of session start attempts before failing",
        ge=1,
    )
    whatsapp_retry_base_delay_seconds: float = Field(
        default=5,
        description="Base delay of the exponential backoff between start attempts",
        ge=0,
    )
    whatsapp_reconnect_delay_seconds: float = Field(
        default=5,
        description="Delay before reconnecting after an unsolicited disconnect",
        ge=0,
    )
    whatsapp_session_path: str = Field(
        default="./whatsapp-sessions",
        description="Directory holding the persistent browser profile of the session",
    )
    whatsapp_client_id: str = Field(
        default="awareness-campaign-client",
        description="Identifier of the session profile inside the session directory",
    )
    whatsapp_headless: bool = Field(
        default=True,
        description="Run the WhatsApp Web browser without a visible window",
    )
    browser_executable_path: str | None = Field(
        default=None,
        description="Explicit Chromium/Chrome executable used for WhatsApp Web",
    )
    whatsapp_autostart: bool = Field(
        default=False,
        description="Start the WhatsApp session automatically after server warm-up",
    )
    whatsapp_startup_delay_seconds: float = Field(
        default=10,
        description="Warm-up delay before the automatic session start",
        ge=0,
    )
    whatsapp_bulk_send_delay_seconds: float = Field(
        default=2,
        description="Pause between consecutive messages of a bulk send",
        ge=0,
    )

    notification_ttl_days: int = Field(
        default=30,
        description="Days after which notifications expire and are purged",
        gt=0,
    )
    notification_purge_interval_seconds: float = Field(
        default=60 * 60,
        description="Interval between purges of expired notifications",
        gt=0,
    )

    @model_validator(mode="after")
    def _validate_sendgrid_pair(self) -> "Settings":
        if bool(self.sendgrid_api_key) ^ bool(self.sendgrid_sender):
            raise ValueError(
                "SENDGRID_API_KEY and SENDGRID_SENDER must both be provided to enable email"
            )
        if self.sendgrid_sender and "@" not in self.sendgrid_sender:
            raise ValueError("SENDGRID_SENDER must be a valid email address")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
