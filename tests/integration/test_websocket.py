"""End-to-end WebSocket tests through the real application and lifespan."""

from __future__ import annotations

from fastapi.testclient import TestClient
import pytest

from chat_service.app.main import create_app

WS_URL = "/api/v1/ws"
ALICE = {"name": "Alice", "color": "#ff0000"}


@pytest.fixture
def client():
    with TestClient(create_app()) as test_client:
        yield test_client


def receive_until(websocket, event: str, max_frames: int = 20) -> dict:
    """Read frames until one with the given event name arrives."""
    seen = []
    for _ in range(max_frames):
        frame = websocket.receive_json()
        if frame["event"] == event:
            return frame
        seen.append(frame["event"])
    pytest.fail(f"no {event!r} frame within {max_frames} frames, got {seen}")


def test_initial_chats_on_connect(client):
    with client.websocket_connect(WS_URL) as websocket:
        frame = websocket.receive_json()

    assert frame == {"event": "chats", "data": []}


def test_login_and_broadcast_between_sockets(client):
    with client.websocket_connect(WS_URL) as bob:
        with client.websocket_connect(WS_URL) as alice:
            assert alice.receive_json()["event"] == "chats"
            assert bob.receive_json()["event"] == "chats"

            alice.send_json({"event": "login", "data": {"userData": ALICE}, "ack": 1})
            success = receive_until(alice, "loginSuccess")
            user = success["data"]
            assert user["name"] == "Alice"
            ack = receive_until(alice, "ack")
            assert ack["intent"] == "login"
            assert ack["ack"] == 1
            assert ack["data"]["id"] == user["id"]

            joined = receive_until(bob, "userJoined")
            assert joined["data"]["id"] == user["id"]

            alice.send_json({"event": "createChat", "data": {"text": "hello"}, "ack": "c1"})
            new_chat = receive_until(bob, "newChat")
            assert new_chat["data"]["text"] == "hello"
            assert new_chat["data"]["author"]["id"] == user["id"]
            assert receive_until(alice, "ack")["data"]["id"] == new_chat["data"]["id"]

            stats = client.get(f"{WS_URL}/stats").json()
            assert stats["totalConnections"] == 2
            assert stats["authenticatedConnections"] == 1
            assert stats["onlineUsers"] == 1

        left = receive_until(bob, "userLeft")
        assert left["data"] == {"userId": user["id"]}


def test_unauthenticated_create_chat_fails(client):
    with client.websocket_connect(WS_URL) as websocket:
        websocket.receive_json()
        websocket.send_json({"event": "createChat", "data": {"text": "hi"}, "ack": 7})

        ack = receive_until(websocket, "ack")

    assert ack["ack"] == 7
    assert ack["data"] == {"success": False, "message": "Not authenticated"}


def test_invalid_json_gets_error_event(client):
    with client.websocket_connect(WS_URL) as websocket:
        websocket.receive_json()
        websocket.send_text("{not json")

        frame = websocket.receive_json()

    assert frame == {"event": "error", "data": {"message": "Invalid JSON"}}


def test_messages_persist_for_new_connections(client):
    with client.websocket_connect(WS_URL) as first:
        first.receive_json()
        first.send_json({"event": "login", "data": {"userData": ALICE}})
        receive_until(first, "ack")
        first.send_json({"event": "createChat", "data": {"text": "still here"}})
        receive_until(first, "ack")

    with client.websocket_connect(WS_URL) as second:
        chats = second.receive_json()

    assert [chat["text"] for chat in chats["data"]] == ["still here"]


def test_binary_frame_is_handled_like_text(client):
    with client.websocket_connect(WS_URL) as websocket:
        websocket.receive_json()
        websocket.send_bytes(b'{"event": "whoami", "ack": 3}')

        ack = receive_until(websocket, "ack")

    assert ack["intent"] == "whoami"
    assert ack["ack"] == 3


def test_frame_limit_counts_encoded_bytes(client):
    # 2 bytes per character in UTF-8: under the limit in characters, over it in bytes
    payload = '{"event": "whoami", "data": "' + "é" * 33_000 + '"}'
    assert len(payload) < 65_536 < len(payload.encode())

    with client.websocket_connect(WS_URL) as websocket:
        websocket.receive_json()
        websocket.send_text(payload)

        frame = websocket.receive_json()

    assert frame == {"event": "error", "data": {"message": "Frame exceeds 65536 bytes"}}


def test_connection_still_served_after_oversized_frame(client):
    with client.websocket_connect(WS_URL) as websocket:
        websocket.receive_json()
        websocket.send_text('{"event": "whoami", "data": "' + "x" * 70_000 + '"}')
        assert websocket.receive_json()["event"] == "error"

        websocket.send_json({"event": "whoami", "ack": "after"})
        ack = receive_until(websocket, "ack")

    assert ack["ack"] == "after"
