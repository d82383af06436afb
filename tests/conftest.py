"""Shared fixtures: in-memory database and WhatsApp test doubles."""

from __future__ import annotations

import inspect
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from jeenora_api.domain.entities import User
from jeenora_api.infrastructure.database import initialize_database
from jeenora_api.infrastructure.repositories import UserRepository
from jeenora_api.infrastructure.whatsapp import (
    ConnectionStateTracker,
    LifecycleConfig,
    WhatsAppClientManager,
)
from jeenora_api.infrastructure.whatsapp.session import (
    EVENT_DISCONNECTED,
    STATE_CONNECTED,
    STATE_OPENING,
    Chat,
    Contact,
    SentMessage,
    SessionInfo,
    WhatsAppSession,
)
from jeenora_api.utils import get_app_timezone


class FakeSession(WhatsAppSession):
    """In-memory session that records calls and lets tests emit events."""

    def __init__(self, *, fail_with: Exception | None = None) -> None:
        super().__init__()
        self.info = SessionInfo(pushname="Jeenora", phone="919800000000", platform="linux")
        self.fail_with = fail_with
        self.state = STATE_OPENING
        self.initialized = False
        self.logged_out = False
        self.destroyed = False
        self.sent: list[tuple[str, object, str | None]] = []
        self.send_error: Exception | None = None
        self.destroy_error: Exception | None = None
        self.contacts: list[Contact] = []
        self.chats: list[Chat] = []

    async def initialize(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.initialized = True

    async def get_state(self) -> str:
        return self.state

    async def send_message(self, chat_id, content, *, caption=None) -> SentMessage:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((chat_id, content, caption))
        return SentMessage(id=f"true_{chat_id}_{len(self.sent)}", chat_id=chat_id)

    async def logout(self) -> None:
        self.logged_out = True
        self.state = STATE_OPENING
        self.emit(EVENT_DISCONNECTED, "LOGOUT")

    async def destroy(self) -> None:
        if self.destroy_error is not None:
            raise self.destroy_error
        self.destroyed = True

    async def get_contacts(self) -> list[Contact]:
        return list(self.contacts)

    async def get_chats(self) -> list[Chat]:
        return list(self.chats)

    def connect(self) -> None:
        """Simulate a successful login of the linked device."""

        self.state = STATE_CONNECTED
        self.emit("authenticated")
        self.emit("ready")


class FakeSessionFactory:
    """Build :class:`FakeSession` objects, optionally failing the next ones."""

    def __init__(self) -> None:
        self.sessions: list[FakeSession] = []
        self.failures: list[Exception] = []

    def __call__(self) -> FakeSession:
        fail_with = self.failures.pop(0) if self.failures else None
        session = FakeSession(fail_with=fail_with)
        self.sessions.append(session)
        return session

    @property
    def last(self) -> FakeSession:
        return self.sessions[-1]


class FakeTask:
    def __init__(self, delay, callback, name) -> None:
        self.delay = delay
        self.callback = callback
        self.name = name
        self.cancelled = False
        self.fired = False

    def done(self) -> bool:
        return self.cancelled or self.fired

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Record scheduled callbacks so tests decide when virtual time passes."""

    def __init__(self) -> None:
        self.tasks: list[FakeTask] = []

    def schedule(self, delay, callback, *, name):
        task = FakeTask(delay, callback, name)
        self.tasks.append(task)
        return task

    def cancel_all(self) -> None:
        for task in self.tasks:
            task.cancel()

    def pending(self, name: str | None = None) -> list[FakeTask]:
        return [
            task
            for task in self.tasks
            if not task.done() and (name is None or task.name == name)
        ]

    async def fire(self, task: FakeTask) -> None:
        assert not task.done(), f"{task.name} already cancelled or fired"
        task.fired = True
        result = task.callback()
        if inspect.isawaitable(result):
            await result


class FakeCleaner:
    def __init__(self) -> None:
        self.session_path = "/tmp/whatsapp-sessions"
        self.calls: list[bool] = []

    async def cleanup(self, *, clear_session_data: bool = False) -> None:
        self.calls.append(clear_session_data)


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def testing_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    initialize_database(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db_session(testing_session_factory):
    session = testing_session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db_session):
    def _make_user(
        name: str = "Asha",
        *,
        email: str | None = "asha@example.com",
        phone: str | None = "9876543210",
        role: str = "candidate",
        is_active: bool = True,
    ) -> User:
        return UserRepository(db_session).create(
            User(
                id=None,
                name=name,
                email=email,
                phone=phone,
                role=role,
                is_active=is_active,
                created_at=None,
            )
        )

    return _make_user


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 5, 1, 10, 0, tzinfo=get_app_timezone()))


@pytest.fixture
def tracker():
    return ConnectionStateTracker()


@pytest.fixture
def session_factory():
    return FakeSessionFactory()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def cleaner():
    return FakeCleaner()


@pytest.fixture
def status_events():
    return []


@pytest.fixture
def manager(tracker, session_factory, scheduler, cleaner, status_events, clock):
    return WhatsAppClientManager(
        tracker,
        session_factory,
        cleaner=cleaner,
        scheduler=scheduler,
        config=LifecycleConfig(
            init_timeout=120, max_retries=3, retry_base_delay=5, reconnect_delay=5
        ),
        status_listener=status_events.append,
        clock=clock,
    )


@pytest.fixture
def whatsapp_runtime(tracker, session_factory, scheduler, cleaner):
    from jeenora_api.infrastructure.whatsapp import WhatsAppGateway, WhatsAppRuntime

    manager = WhatsAppClientManager(
        tracker, session_factory, cleaner=cleaner, scheduler=scheduler, config=LifecycleConfig()
    )
    gateway = WhatsAppGateway(tracker, manager.current_session, bulk_delay=0)
    return WhatsAppRuntime(tracker=tracker, manager=manager, gateway=gateway)


@pytest.fixture
def client(whatsapp_runtime, testing_session_factory, monkeypatch):
    from fastapi.testclient import TestClient

    from jeenora_api.infrastructure.database import get_db
    from jeenora_api.interfaces.api.routes import notifications as notification_routes
    from jeenora_api.interfaces.api.routes import whatsapp as whatsapp_routes
    from main import create_app

    app = create_app(whatsapp=whatsapp_runtime)

    def override_get_db():
        session = testing_session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    monkeypatch.setattr(whatsapp_routes, "SessionLocal", testing_session_factory)
    monkeypatch.setattr(notification_routes, "SessionLocal", testing_session_factory)
    return TestClient(app)


@pytest.fixture
def auth_headers():
    from jeenora_api.infrastructure.security import create_access_token

    def _auth_headers(user: User) -> dict[str, str]:
        token = create_access_token({"sub": str(user.id)})
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
def admin(make_user):
    return make_user("Admin", email="admin@example.com", phone=None, role="admin")


@pytest.fixture
def candidate(make_user):
    return make_user("Asha", email="asha@example.com")
