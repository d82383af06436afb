"""HTTP tests for the WhatsApp endpoints."""

from __future__ import annotations

from jeenora_api.infrastructure.whatsapp.session import STATE_CONNECTED, Chat


def test_status_requires_authentication(client):
    response = client.get("/whatsapp/status")

    assert response.status_code == 401


def test_status_requires_admin(client, candidate, auth_headers):
    response = client.get("/whatsapp/status", headers=auth_headers(candidate))

    assert response.status_code == 403


def test_status_snapshot(client, admin, auth_headers):
    response = client.get("/whatsapp/status", headers=auth_headers(admin))

    assert response.status_code == 200
    body = response.json()
    assert body["connected"] is False
    assert body["initializing"] is False
    assert body["qrNeeded"] is False
    assert body["phase"] == "DISCONNECTED"
    assert body["state"] == "UNKNOWN"


def test_qr_is_rendered_as_png_data_url(client, admin, auth_headers, tracker):
    tracker.record_pairing_code("2@pairing-ref,abc")

    response = client.get("/whatsapp/qr", headers=auth_headers(admin))

    body = response.json()
    assert body["success"] is True
    assert body["qr"].startswith("data:image/png;base64,")
    assert body["expires_at"] is not None


def test_qr_request_starts_session_when_idle(client, admin, auth_headers, scheduler):
    response = client.get("/whatsapp/qr", headers=auth_headers(admin))

    assert response.json()["success"] is False
    assert [task.name for task in scheduler.pending()] == ["whatsapp-start"]


def test_qr_when_connected(client, admin, auth_headers, tracker):
    tracker.mark_connected()

    body = client.get("/whatsapp/qr", headers=auth_headers(admin)).json()

    assert body == {
        "success": True,
        "message": "WhatsApp is already connected",
        "qr": None,
        "issued_at": None,
        "expires_at": None,
    }


def test_refresh_qr_when_connected_is_a_noop(client, admin, auth_headers, tracker, cleaner):
    tracker.mark_connected()

    response = client.post("/whatsapp/refresh-qr", headers=auth_headers(admin))

    assert response.json() == {
        "success": False,
        "message": "WhatsApp is already connected",
        "count": None,
    }
    assert tracker.is_ready()
    assert cleaner.calls == []


def test_reset_logs_out_and_wipes_session(client, admin, auth_headers, cleaner, tracker):
    response = client.post("/whatsapp/reset", headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert cleaner.calls == [True]
    assert not tracker.is_ready()


def test_reconnect_is_refused_while_initializing(client, admin, auth_headers, tracker, scheduler):
    tracker.begin_initializing()

    response = client.post("/whatsapp/reconnect", headers=auth_headers(admin))

    assert response.json()["success"] is False
    assert scheduler.pending() == []


def test_send_single_when_disconnected_reports_failure(client, admin, auth_headers):
    response = client.post(
        "/whatsapp/send-single",
        json={"number": "9876543210", "message": "Hello"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["error_code"] == "NotReady"
    assert body["phone_analysis"]["formatted"] == "919876543210"


def test_send_single_validates_payload(client, admin, auth_headers):
    response = client.post(
        "/whatsapp/send-single", json={"number": "9876543210"}, headers=auth_headers(admin)
    )

    assert response.status_code == 422


def test_send_single_and_bulk_when_connected(
    client, admin, auth_headers, tracker, session_factory
):
    session = session_factory()
    session.state = STATE_CONNECTED
    tracker.mark_connected()
    client.app.state.whatsapp.manager._session = session

    single = client.post(
        "/whatsapp/send-single",
        json={"number": "98765 43210", "message": "Hello"},
        headers=auth_headers(admin),
    ).json()
    bulk = client.post(
        "/whatsapp/send-bulk",
        json={"contacts": ["9876543210", "123"], "message": "Hi"},
        headers=auth_headers(admin),
    ).json()

    assert single["success"] is True
    assert single["recipient"] == "919876543210"
    assert bulk["total"] == 2
    assert bulk["sent"] == 1
    assert bulk["failed"] == 1
    assert bulk["results"][1]["error_code"] == "InvalidRecipient"


def test_groups_require_connection(client, admin, auth_headers):
    response = client.get("/whatsapp/groups", headers=auth_headers(admin))

    assert response.status_code == 503


def test_groups_when_connected(client, admin, auth_headers, tracker, session_factory):
    session = session_factory()
    session.chats = [Chat(id="Hiring@g.us", name="Hiring", is_group=True, participants=("a", "b"))]
    tracker.mark_connected()
    client.app.state.whatsapp.manager._session = session

    response = client.get("/whatsapp/groups", headers=auth_headers(admin))

    assert response.json() == [
        {"id": "Hiring@g.us", "name": "Hiring", "participants": 2, "is_read_only": False}
    ]


def test_platform_info(client, admin, auth_headers):
    body = client.get("/whatsapp/platform", headers=auth_headers(admin)).json()

    assert body["session_path"] == "./whatsapp-sessions"
    assert body["headless"] is True


def test_status_websocket_sends_snapshot_on_connect(client, admin, auth_headers):
    token = auth_headers(admin)["Authorization"].split()[1]

    with client.websocket_connect(f"/whatsapp/ws?token={token}") as websocket:
        message = websocket.receive_json()

    assert message["type"] == "whatsapp-status"
    assert message["data"]["connected"] is False
