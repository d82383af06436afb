import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from datetime import timedelta

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from jeenora_api.application.use_cases.notifications import (
    AutomatedNotificationTriggers,
    NotificationService,
    purge_expired_notifications,
)
from jeenora_api.config import get_settings
from jeenora_api.infrastructure.database import SessionLocal, engine, initialize_database
from jeenora_api.infrastructure.notifications import whatsapp_status_publisher
from jeenora_api.infrastructure.repositories import make_analytics_sink
from jeenora_api.infrastructure.whatsapp import (
    WHATSAPP_STATUS_EVENT,
    WhatsAppRuntime,
    build_whatsapp_runtime,
)
from jeenora_api.interfaces.api.routes import register_routes

logger = logging.getLogger(__name__)


def _purge_expired() -> None:
    session = SessionLocal()
    try:
        purge_expired_notifications(session)
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Could not purge expired notifications")
    finally:
        session.close()


async def _purge_periodically(interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        _purge_expired()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Prepare the database and the WhatsApp session, and tear both down on exit."""

    settings = get_settings()
    initialize_database()
    _purge_expired()
    purge_task = asyncio.create_task(
        _purge_periodically(settings.notification_purge_interval_seconds),
        name="notification-purge",
    )
    manager = app.state.whatsapp.manager
    manager.startup()
    try:
        yield
    finally:
        purge_task.cancel()
        with suppress(asyncio.CancelledError):
            await purge_task
        await manager.shutdown()
        engine.dispose()


def _broadcast_whatsapp_status(payload: dict) -> None:
    whatsapp_status_publisher.broadcast(WHATSAPP_STATUS_EVENT, payload)


def create_app(*, whatsapp: WhatsAppRuntime | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = get_settings()
    app = FastAPI(title="Jeenora API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    runtime = whatsapp or build_whatsapp_runtime(
        settings,
        status_listener=_broadcast_whatsapp_status,
        analytics_sink=make_analytics_sink(SessionLocal),
    )
    service = NotificationService(
        runtime.tracker,
        runtime.gateway,
        ttl=timedelta(days=settings.notification_ttl_days),
    )
    app.state.whatsapp = runtime
    app.state.notification_service = service
    app.state.notification_triggers = AutomatedNotificationTriggers(service, runtime.tracker)

    register_routes(app)
    return app


app = create_app()
