"""Behaviour of the WhatsApp session lifecycle manager."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from jeenora_api.domain.entities import ConnectionPhase, RefreshOutcome

pytestmark = pytest.mark.anyio


async def test_concurrent_starts_construct_a_single_session(manager, session_factory, tracker):
    results = await asyncio.gather(manager.start(), manager.start())

    assert sorted(results) == [False, True]
    assert len(session_factory.sessions) == 1
    session = session_factory.last
    assert session.listener_count() == 5
    assert manager.session is session
    assert tracker.is_busy()


async def test_start_is_a_noop_while_connected(manager, session_factory, tracker):
    await manager.start()
    session_factory.last.connect()

    assert await manager.start() is False
    assert len(session_factory.sessions) == 1
    assert tracker.is_ready()


async def test_qr_then_ready_updates_tracker_and_cancels_timeout(
    manager, session_factory, tracker, scheduler, status_events
):
    await manager.start()
    session = session_factory.last
    [timeout] = scheduler.pending("whatsapp-init-timeout")
    assert timeout.delay == 120

    session.emit("qr", "2@pairing-ref")
    assert tracker.phase is ConnectionPhase.AWAITING_PAIRING
    assert not tracker.is_busy()
    assert manager.pairing_info().code == "2@pairing-ref"
    assert status_events[-1]["qrNeeded"] is True

    session.connect()
    assert tracker.is_ready()
    assert manager.pairing_info() is None
    assert timeout.cancelled
    assert status_events[-1]["connected"] is True
    assert status_events[-1]["message"] == "WhatsApp Connected Successfully!"


async def test_init_timeout_without_pairing_code_returns_to_disconnected(
    manager, tracker, scheduler, status_events
):
    await manager.start()
    [timeout] = scheduler.pending("whatsapp-init-timeout")

    await scheduler.fire(timeout)

    assert tracker.phase is ConnectionPhase.DISCONNECTED
    assert status_events[-1]["error"] == "InitializationTimeout"
    assert not manager.session.destroyed


async def test_init_timeout_is_ignored_once_a_pairing_code_arrived(
    manager, session_factory, tracker, scheduler
):
    await manager.start()
    session_factory.last.emit("qr", "code")
    [timeout] = scheduler.pending("whatsapp-init-timeout")

    await scheduler.fire(timeout)

    assert tracker.phase is ConnectionPhase.AWAITING_PAIRING
    assert tracker.has_pairing_code()


async def test_failed_starts_retry_with_backoff_and_wipe_only_on_last_attempt(
    manager, session_factory, tracker, scheduler, cleaner, status_events
):
    session_factory.failures = [RuntimeError("browser crashed")] * 3

    assert await manager.start() is False
    [first_retry] = scheduler.pending("whatsapp-retry")
    assert first_retry.delay == 5
    assert cleaner.calls == []

    await scheduler.fire(first_retry)
    [second_retry] = scheduler.pending("whatsapp-retry")
    assert second_retry.delay == 10
    assert cleaner.calls == []

    await scheduler.fire(second_retry)

    assert scheduler.pending("whatsapp-retry") == []
    assert cleaner.calls == [True]
    assert len(session_factory.sessions) == 3
    assert tracker.phase is ConnectionPhase.DISCONNECTED
    assert status_events[-1]["error"] == "InitializationFailure"
    assert status_events[-1]["message"] == "Failed to initialize WhatsApp"


async def test_recovering_start_after_a_failure(manager, session_factory, scheduler, tracker):
    session_factory.failures = [RuntimeError("profile locked")]

    await manager.start()
    [retry] = scheduler.pending("whatsapp-retry")
    await scheduler.fire(retry)
    session_factory.last.connect()

    assert tracker.is_ready()
    assert session_factory.sessions[0].listener_count() == 0


async def test_logout_suppresses_reconnect_and_wipes_storage(
    manager, session_factory, tracker, scheduler, cleaner, status_events
):
    await manager.start()
    session = session_factory.last
    session.connect()

    await manager.logout()

    assert session.logged_out
    assert session.destroyed
    assert session.listener_count() == 0
    assert manager.session is None
    assert not tracker.is_ready()
    assert not tracker.manual_disconnect_requested
    assert scheduler.pending("whatsapp-reconnect") == []
    assert cleaner.calls == [True]
    assert status_events[-1]["message"] == "WhatsApp logged out. You can now reconnect."


async def test_logout_without_a_session_still_cleans_up(manager, tracker, cleaner):
    await manager.logout()

    assert tracker.phase is ConnectionPhase.DISCONNECTED
    assert cleaner.calls == [True]


async def test_logout_without_a_session_does_not_swallow_a_later_disconnect(
    manager, session_factory, tracker, scheduler
):
    await manager.logout()
    await manager.start()
    session = session_factory.last
    session.emit("qr", "pairing-code")

    session.emit("disconnected", "NAVIGATION")

    assert not tracker.manual_disconnect_requested
    assert len(scheduler.pending("whatsapp-reconnect")) == 1


async def test_logout_clears_the_flag_when_the_session_never_reports_disconnect(
    manager, session_factory, tracker
):
    await manager.start()
    session = session_factory.last
    session.emit("qr", "pairing-code")

    await manager.logout()

    assert not session.logged_out
    assert session.destroyed
    assert not tracker.manual_disconnect_requested


async def test_reconnect_survives_a_failing_destroy(manager, session_factory, scheduler, tracker):
    await manager.start()
    session = session_factory.last
    session.connect()
    session.destroy_error = RuntimeError("browser already gone")
    session.emit("disconnected", "NAVIGATION")

    [reconnect] = scheduler.pending("whatsapp-reconnect")
    await scheduler.fire(reconnect)

    assert len(session_factory.sessions) == 2
    assert manager.session is session_factory.last
    assert tracker.is_busy()


async def test_unsolicited_disconnect_schedules_a_reconnect(
    manager, session_factory, tracker, scheduler
):
    await manager.start()
    session = session_factory.last
    session.connect()

    session.emit("disconnected", "NAVIGATION")

    assert not tracker.is_ready()
    [reconnect] = scheduler.pending("whatsapp-reconnect")
    assert reconnect.delay == 5

    await scheduler.fire(reconnect)
    assert len(session_factory.sessions) == 2
    assert session.listener_count() == 0
    assert session.destroyed
    assert tracker.is_busy()


async def test_auth_failure_is_terminal(manager, session_factory, tracker, scheduler, status_events):
    await manager.start()
    session_factory.last.emit("qr", "code")

    session_factory.last.emit("auth_failure", "Pairing was not completed")

    assert tracker.phase is ConnectionPhase.DISCONNECTED
    assert not tracker.has_pairing_code()
    assert scheduler.pending("whatsapp-retry") == []
    assert scheduler.pending("whatsapp-reconnect") == []
    assert status_events[-1]["error"] == "AuthFailure"


async def test_events_from_replaced_sessions_are_ignored(manager, session_factory, tracker):
    await manager.start()
    old = session_factory.last
    handlers = list(old._listeners["qr"])
    await manager.logout()
    await manager.start()

    for handler in handlers:
        handler("stale-code")

    assert tracker.is_busy()
    assert not tracker.has_pairing_code()


async def test_refresh_while_connected_changes_nothing(manager, session_factory, tracker, cleaner):
    await manager.start()
    session_factory.last.connect()

    outcome = await manager.request_pairing_refresh()

    assert outcome is RefreshOutcome.ALREADY_CONNECTED
    assert tracker.is_ready()
    assert cleaner.calls == []
    assert len(session_factory.sessions) == 1


async def test_refresh_while_initializing_is_rejected(manager):
    await manager.start()

    assert await manager.request_pairing_refresh() is RefreshOutcome.ALREADY_INITIALIZING


async def test_refresh_discards_the_code_and_starts_over(
    manager, session_factory, tracker, cleaner
):
    await manager.start()
    first = session_factory.last
    first.emit("qr", "old-code")

    outcome = await manager.request_pairing_refresh()

    assert outcome is RefreshOutcome.STARTED
    assert first.destroyed
    assert cleaner.calls == [True]
    assert len(session_factory.sessions) == 2
    assert tracker.is_busy()
    assert not tracker.has_pairing_code()


async def test_pairing_code_expires_after_its_ttl(manager, session_factory, tracker, clock):
    await manager.start()
    issued_at = clock.now
    session_factory.last.emit("qr", "code")

    clock.now = issued_at + timedelta(minutes=4, seconds=59)
    info = manager.pairing_info()
    assert info is not None
    assert info.expires_at == issued_at + timedelta(minutes=5)

    clock.now = issued_at + timedelta(minutes=5, seconds=1)
    assert manager.pairing_info() is None
    assert not tracker.has_pairing_code()


async def test_force_reconnect_refuses_while_initializing(manager, scheduler):
    await manager.start()

    assert manager.force_reconnect() is False
    assert scheduler.pending("whatsapp-start") == []


async def test_force_reconnect_launches_start_in_background(manager, scheduler, session_factory):
    assert manager.force_reconnect() is True

    [launch] = scheduler.pending("whatsapp-start")
    await scheduler.fire(launch)
    assert len(session_factory.sessions) == 1


async def test_startup_schedules_warm_start_only_when_enabled(
    tracker, session_factory, cleaner, scheduler
):
    from jeenora_api.infrastructure.whatsapp import LifecycleConfig, WhatsAppClientManager

    disabled = WhatsAppClientManager(
        tracker, session_factory, cleaner=cleaner, scheduler=scheduler, config=LifecycleConfig()
    )
    assert disabled.startup() is None

    enabled = WhatsAppClientManager(
        tracker,
        session_factory,
        cleaner=cleaner,
        scheduler=scheduler,
        config=LifecycleConfig(autostart=True, startup_delay=10),
    )
    warm_start = enabled.startup()
    assert warm_start.delay == 10

    await scheduler.fire(warm_start)
    assert len(session_factory.sessions) == 1


async def test_shutdown_destroys_session_without_wiping(
    manager, session_factory, scheduler, cleaner, tracker
):
    await manager.start()
    session = session_factory.last

    await manager.shutdown()

    assert session.destroyed
    assert cleaner.calls == []
    assert scheduler.pending() == []
    assert tracker.phase is ConnectionPhase.DISCONNECTED


async def test_detailed_status_reports_live_state(manager, session_factory):
    assert (await manager.detailed_status())["state"] == "UNKNOWN"

    await manager.start()
    session_factory.last.connect()
    status = await manager.detailed_status()

    assert status["state"] == "CONNECTED"
    assert status["details"]["pushname"] == "Jeenora"
    assert status["details"]["isReady"] is True
