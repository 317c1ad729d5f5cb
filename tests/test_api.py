"""Tests for the HTTP endpoints and the session WebSocket."""
import asyncio

import pytest
from fastapi.testclient import TestClient

from return_reward.config import Settings
from return_reward.main import create_app
from return_reward.routers.session import _stop_pump
from return_reward.services.chat_directory import chat_id_for


@pytest.fixture
def app(settings, engine):
    return create_app(settings, engine)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def disabled_client():
    app = create_app(Settings(database_url="sqlite://", auth_secret=None))
    with TestClient(app) as client:
        yield client


def token(app, user_id):
    return app.state.backend.identity.issue_token(user_id, f"{user_id}@example.com")


def receive_until_state(ws):
    """Collect frames up to and including the next state frame."""
    frames = []
    while True:
        frame = ws.receive_json()
        frames.append(frame)
        if frame["type"] == "state":
            return frames


def send(ws, **command):
    ws.send_json(command)
    return receive_until_state(ws)


class TestHttp:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["configured"] is True

    def test_root(self, client):
        assert client.get("/").json()["session"] == "/ws/session"

    def test_item_code(self, app, client):
        item_id = app.state.backend.items.create("Blue Backpack", "", "u1")

        response = client.get(f"/items/{item_id}/qr")
        assert response.status_code == 200
        body = response.json()
        assert body["payload"] == item_id
        assert body["item"]["status"] == "missing"
        assert body["download_name"] == "Blue Backpack-qr.png"
        assert body["image_url"].startswith("https://api.qrserver.com/v1/create-qr-code/?size=300x300")

    def test_unknown_item_code(self, client):
        response = client.get("/items/not-a-real-id/qr")
        assert response.status_code == 404
        assert response.json()["detail"] == "No item found with ID: not-a-real-id"

    def test_disabled_backend(self, disabled_client):
        assert disabled_client.get("/health").json()["configured"] is False
        response = disabled_client.get("/items/anything/qr")
        assert response.status_code == 503
        assert response.json()["detail"] == "App configuration is missing. Login is disabled."


class TestSessionSocket:

    def test_register_and_scan_flow(self, app, client):
        with client.websocket_connect(f"/ws/session?token={token(app, 'u1')}") as ws:
            state = receive_until_state(ws)[-1]["state"]
            assert state["view"] == "needs-profile"
            assert state["profile"]["display_name"] == "Anonymous User"

            state = send(ws, action="complete_profile", display_name="Alice Owner",
                         photo_reference="data:image/png;base64,AAAA")[-1]["state"]
            assert state["view"] == "dashboard"

            send(ws, action="open_composer")
            state = send(ws, action="register_item", item_name="Blue Backpack",
                         description="Navy")[-1]["state"]
            assert state["view"] == "viewing-item-code"
            item_id = state["selected_item"]["id"]
            assert state["qr"]["payload"] == item_id

            state = send(ws, action="dashboard")[-1]["state"]
            assert [i["id"] for i in state["my_items"]] == [item_id]

            send(ws, action="open_scanner")
            frames = send(ws, action="scan", identifier=f"  {item_id} ")
            assert frames[0]["type"] == "error"
            assert frames[0]["code"] == "self_scan"
            assert frames[-1]["state"]["view"] == "viewing-item-code"

        # Disconnect tears the session's subscriptions down
        assert app.state.backend.feed.listener_count() == 0

    def test_unknown_item_is_inline_error(self, app, client):
        app.state.backend.profiles.upsert("u2", display_name="Bob", photo_reference="p", is_complete=True)
        with client.websocket_connect(f"/ws/session?token={token(app, 'u2')}") as ws:
            assert receive_until_state(ws)[-1]["state"]["view"] == "dashboard"
            send(ws, action="open_scanner")

            frames = send(ws, action="scan", identifier="no-such-item")
            assert frames[0] == {
                "type": "error",
                "action": "scan",
                "code": "item_not_found",
                "message": "No item found with ID: no-such-item",
            }
            assert frames[-1]["state"]["view"] == "scanning"

    def test_invalid_command(self, app, client):
        with client.websocket_connect("/ws/session") as ws:
            receive_until_state(ws)
            frames = send(ws, action="fly")
            assert frames[0]["type"] == "error"
            assert frames[0]["code"] == "input_invalid"
            assert frames[0]["action"] == "fly"

    def test_transition_rejected(self, app, client):
        with client.websocket_connect(f"/ws/session?token={token(app, 'u3')}") as ws:
            receive_until_state(ws)
            frames = send(ws, action="open_scanner")
            assert frames[0]["code"] == "transition_rejected"
            assert frames[-1]["state"]["view"] == "needs-profile"

    def test_login_error_is_a_notice(self, app, client):
        with client.websocket_connect("/ws/session?token=garbage") as ws:
            frames = receive_until_state(ws)
            assert frames[0]["type"] == "notice"
            assert frames[0]["title"] == "Login Error"
            assert frames[-1]["state"]["view"] == "unauthenticated"

    def test_configuration_missing_notice_shown_once(self, disabled_client):
        with disabled_client.websocket_connect("/ws/session?token=x") as ws:
            frames = receive_until_state(ws)
            assert frames[0]["type"] == "notice"
            assert frames[0]["code"] == "configuration_missing"
            assert frames[-1]["state"]["configured"] is False

            frames = send(ws, action="sign_in", token="anything")
            assert frames[0]["type"] == "error"
            assert frames[0]["code"] == "configuration_missing"
            assert all(f["type"] != "notice" for f in frames)

    def test_owner_reads_chat_started_elsewhere(self, app, client):
        backend = app.state.backend
        backend.profiles.upsert("u1", display_name="Alice Owner", photo_reference="p", is_complete=True)
        backend.profiles.upsert("u2", display_name="Bob Finder", photo_reference="p", is_complete=True)
        item_id = backend.items.create("Blue Backpack", "", "u1")
        chat_id = chat_id_for("u1", "u2")
        backend.chats.upsert(chat_id, ["u2", "u1"], item_id)
        backend.chats.append_message(chat_id, "u2", "Found it at the cafe")

        with client.websocket_connect(f"/ws/session?token={token(app, 'u1')}") as ws:
            state = receive_until_state(ws)[-1]["state"]
            assert [c["id"] for c in state["chats"]] == [chat_id]
            assert state["chats"][0]["other_name"] == "Bob Finder"

            state = send(ws, action="open_chat", chat_id=chat_id)[-1]["state"]
            assert state["view"] == "chatting"
            assert state["chat_id"] == chat_id
            assert [m["text"] for m in state["messages"]] == ["Found it at the cafe"]

            frames = send(ws, action="open_chat", chat_id="u1_u9")
            assert frames[0]["code"] == "input_invalid"


class TestPumpShutdown:

    def test_running_pump_is_cancelled_quietly(self):
        async def scenario():
            task = asyncio.create_task(asyncio.sleep(60))
            await asyncio.sleep(0)
            error = await _stop_pump(task, "session-1")
            return task, error

        task, error = asyncio.run(scenario())
        assert error is None
        assert task.cancelled()

    def test_pump_failure_is_reported(self):
        async def broken():
            raise RuntimeError("send failed")

        async def scenario():
            task = asyncio.create_task(broken())
            await asyncio.sleep(0)
            return await _stop_pump(task, "session-1")

        error = asyncio.run(scenario())
        assert isinstance(error, RuntimeError)
        assert str(error) == "send failed"
