"""WhatsApp Web session, lifecycle and outbound delivery."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from jeenora_api.config import Settings
from jeenora_api.infrastructure.scheduling import TaskScheduler

from .browser import BrowserWhatsAppSession, build_session_options
from .cleanup import SessionCleaner
from .gateway import AnalyticsSink, WhatsAppGateway, analyze_phone_number, normalize_recipient
from .lifecycle import LifecycleConfig, StatusListener, WhatsAppClientManager
from .session import SessionFactory, WhatsAppSession
from .state import ConnectionStateTracker

WHATSAPP_STATUS_EVENT = "whatsapp-status"


@dataclass
class WhatsAppRuntime:
    """The tracker, lifecycle manager and gateway sharing one session."""

    tracker: ConnectionStateTracker
    manager: WhatsAppClientManager
    gateway: WhatsAppGateway


def build_whatsapp_runtime(
    settings: Settings,
    *,
    session_factory: SessionFactory | None = None,
    cleaner: SessionCleaner | None = None,
    scheduler: TaskScheduler | None = None,
    status_listener: StatusListener | None = None,
    analytics_sink: AnalyticsSink | None = None,
    **gateway_options: Any,
) -> WhatsAppRuntime:
    """Wire the WhatsApp components from ``settings``."""

    tracker = ConnectionStateTracker(
        pairing_ttl=timedelta(seconds=settings.whatsapp_qr_expiry_seconds)
    )

    if session_factory is None:
        options = build_session_options(
            client_id=settings.whatsapp_client_id,
            session_path=settings.whatsapp_session_path,
            headless=settings.whatsapp_headless,
            executable_path=settings.browser_executable_path,
        )

        def session_factory() -> WhatsAppSession:
            return BrowserWhatsAppSession(options)

    manager = WhatsAppClientManager(
        tracker,
        session_factory,
        cleaner=cleaner or SessionCleaner(settings.whatsapp_session_path),
        scheduler=scheduler,
        config=LifecycleConfig(
            init_timeout=settings.whatsapp_init_timeout_seconds,
            max_retries=settings.whatsapp_max_retries,
            retry_base_delay=settings.whatsapp_retry_base_delay_seconds,
            reconnect_delay=settings.whatsapp_reconnect_delay_seconds,
            startup_delay=settings.whatsapp_startup_delay_seconds,
            autostart=settings.whatsapp_autostart,
        ),
        status_listener=status_listener,
    )
    gateway = WhatsAppGateway(
        tracker,
        manager.current_session,
        default_country_code=settings.whatsapp_default_country_code,
        analytics_sink=analytics_sink,
        bulk_delay=settings.whatsapp_bulk_send_delay_seconds,
        **gateway_options,
    )
    return WhatsAppRuntime(tracker=tracker, manager=manager, gateway=gateway)


__all__ = [
    "BrowserWhatsAppSession",
    "ConnectionStateTracker",
    "LifecycleConfig",
    "SessionCleaner",
    "WHATSAPP_STATUS_EVENT",
    "WhatsAppClientManager",
    "WhatsAppGateway",
    "WhatsAppRuntime",
    "WhatsAppSession",
    "analyze_phone_number",
    "build_whatsapp_runtime",
    "normalize_recipient",
]
