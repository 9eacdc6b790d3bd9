"""Tests for ChatCoordinator: intents in, personalized and broadcast events out.

The coordinator runs against the real SqlAlchemyChatStore on in-memory
SQLite and a recording connection manager with three open connections
(conn-a, conn-b, conn-c).
"""

from __future__ import annotations

import json
import logging
import time
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from chat_service.features.realtime.coordinator import ChatCoordinator
from chat_service.features.realtime.sessions import SessionStore


async def login_as(send, manager, connection_id: str, name: str, color: str = "#ff0000") -> dict:
    await send(connection_id, "login", {"userData": {"name": name, "color": color}})
    return manager.frames(connection_id, "loginSuccess")[-1]["data"]


# ──────────────────────────────────────────────────────────────
# Authentication
# ──────────────────────────────────────────────────────────────


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_with_new_profile_creates_user(self, send, manager, coordinator):
        await send("conn-a", "login", {"userData": {"name": "Alice", "color": "#ff0000"}}, ack=1)

        assert manager.events("conn-a") == ["loginSuccess", "userJoined", "ack:login"]
        assert manager.events("conn-b") == ["userJoined"]

        user = manager.frames("conn-a", "loginSuccess")[0]["data"]
        assert user["name"] == "Alice"
        assert user["color"] == "#ff0000"
        assert user["id"]

        ack = manager.last_ack("conn-a")
        assert ack == {"event": "ack", "intent": "login", "ack": 1, "data": user}
        assert str(coordinator.sessions.resolve("conn-a")) == user["id"]

    @pytest.mark.asyncio
    async def test_relogin_by_id_resolves_same_identity(self, send, manager):
        first = await login_as(send, manager, "conn-a", "Alice")

        await send("conn-b", "login", {"userId": first["id"]})

        second = manager.frames("conn-b", "loginSuccess")[0]["data"]
        assert second["id"] == first["id"]

    @pytest.mark.asyncio
    async def test_login_by_name_keeps_stored_profile(self, send, manager, store):
        first = await login_as(send, manager, "conn-a", "Alice", color="#ff0000")

        await send("conn-b", "login", {"userData": {"name": "Alice", "color": "#0000ff"}})

        second = manager.frames("conn-b", "loginSuccess")[0]["data"]
        assert second["id"] == first["id"]
        assert second["color"] == "#ff0000"
        assert len(await store.list_users()) == 1

    @pytest.mark.asyncio
    async def test_unknown_id_falls_back_to_profile_data(self, send, manager):
        await send(
            "conn-a",
            "login",
            {"userId": str(uuid4()), "userData": {"name": "Carol", "color": "#123456"}},
        )

        user = manager.frames("conn-a", "loginSuccess")[0]["data"]
        assert user["name"] == "Carol"

    @pytest.mark.asyncio
    async def test_unknown_id_without_data_fails(self, send, manager, coordinator):
        await send("conn-a", "login", {"userId": str(uuid4())}, ack="x")

        assert manager.events("conn-a") == ["loginError", "ack:login"]
        assert manager.frames("conn-a", "loginError")[0]["data"] == {"message": "User not found"}
        assert manager.last_ack("conn-a")["data"] == {"success": False, "message": "User not found"}
        assert manager.broadcasts == []
        assert not coordinator.sessions.is_authenticated("conn-a")

    @pytest.mark.asyncio
    async def test_non_uuid_user_id_is_not_found(self, send, manager):
        await send("conn-a", "login", {"userId": "not-a-uuid"})

        assert manager.frames("conn-a", "loginError")[0]["data"]["message"] == "User not found"

    @pytest.mark.asyncio
    async def test_login_without_any_data_fails(self, send, manager):
        await send("conn-a", "login")

        assert manager.frames("conn-a", "loginError")[0]["data"] == {
            "message": "No user data provided"
        }

    @pytest.mark.asyncio
    async def test_relogin_as_other_user_clears_previous_typing(self, send, manager, coordinator):
        alice = await login_as(send, manager, "conn-a", "Alice")
        await send("conn-a", "startTyping")
        manager.clear()

        await login_as(send, manager, "conn-a", "Bob")

        stopped = [f for f in manager.broadcasts if f["event"] == "userStoppedTyping"]
        assert stopped == [{"event": "userStoppedTyping", "data": {"userId": alice["id"]}}]
        assert coordinator.sessions.typing_users() == set()


class TestRegister:
    @pytest.mark.asyncio
    async def test_create_user_binds_and_broadcasts(self, send, manager, coordinator):
        await send("conn-a", "createUser", {"name": "Dave", "color": "#abcdef"})

        assert manager.events("conn-a") == ["userCreated", "newUser", "ack:createUser"]
        assert manager.events("conn-b") == ["newUser"]
        user = manager.frames("conn-a", "userCreated")[0]["data"]
        assert str(coordinator.sessions.resolve("conn-a")) == user["id"]

    @pytest.mark.asyncio
    async def test_create_user_never_deduplicates(self, send, manager, store):
        await send("conn-a", "createUser", {"name": "Dave", "color": "#abcdef"})
        await send("conn-b", "createUser", {"name": "Dave", "color": "#abcdef"})

        first = manager.frames("conn-a", "userCreated")[0]["data"]
        second = manager.frames("conn-b", "userCreated")[0]["data"]
        assert first["id"] != second["id"]
        assert len(await store.list_users()) == 2

    @pytest.mark.asyncio
    async def test_login_by_name_picks_oldest_duplicate(self, send, manager):
        await send("conn-a", "createUser", {"name": "Dave", "color": "#abcdef"})
        await send("conn-b", "createUser", {"name": "Dave", "color": "#fedcba"})

        await send("conn-c", "login", {"userData": {"name": "Dave", "color": "#000000"}})

        first = manager.frames("conn-a", "userCreated")[0]["data"]
        resolved = manager.frames("conn-c", "loginSuccess")[0]["data"]
        assert resolved["id"] == first["id"]

    @pytest.mark.asyncio
    async def test_invalid_color_is_rejected(self, send, manager, store):
        await send("conn-a", "createUser", {"name": "Dave", "color": "red"})

        ack = manager.last_ack("conn-a")
        assert ack["data"]["success"] is False
        assert ack["data"]["message"].startswith("Invalid payload: color")
        assert manager.broadcasts == []
        assert await store.list_users() == []


class TestWhoami:
    @pytest.mark.asyncio
    async def test_whoami_before_and_after_login(self, send, manager):
        await send("conn-a", "whoami")
        assert manager.last_ack("conn-a")["data"] is None

        user = await login_as(send, manager, "conn-a", "Alice")
        await send("conn-a", "whoami")
        assert manager.last_ack("conn-a")["data"] == user


# ──────────────────────────────────────────────────────────────
# Messages
# ──────────────────────────────────────────────────────────────


class TestMessages:
    @pytest.mark.asyncio
    async def test_post_message_reaches_every_connection_once(self, send, manager):
        alice = await login_as(send, manager, "conn-a", "Alice")
        manager.clear()

        await send("conn-a", "createChat", {"text": "hi"})

        for connection_id in ("conn-a", "conn-b", "conn-c"):
            new_chats = manager.frames(connection_id, "newChat")
            assert len(new_chats) == 1
            assert new_chats[0]["data"]["authorId"] == alice["id"]
            assert new_chats[0]["data"]["author"]["name"] == "Alice"
        assert manager.broadcast_events() == ["newChat"]

        chat = manager.last_ack("conn-a")["data"]
        assert chat["text"] == "hi"
        assert chat["modified"] is False
        assert chat["createdAt"]

    @pytest.mark.asyncio
    async def test_post_message_unauthenticated(self, send, manager, store):
        await send("conn-b", "createChat", {"text": "hello"})

        assert manager.last_ack("conn-b")["data"] == {
            "success": False,
            "message": "Not authenticated",
        }
        assert manager.broadcasts == []
        assert await store.list_messages() == []

    @pytest.mark.asyncio
    async def test_blank_text_is_rejected(self, send, manager):
        await login_as(send, manager, "conn-a", "Alice")
        manager.clear()

        await send("conn-a", "createChat", {"text": "   "})

        ack = manager.last_ack("conn-a")
        assert ack["data"]["success"] is False
        assert ack["data"]["message"].startswith("Invalid payload: text")
        assert manager.broadcasts == []

    @pytest.mark.asyncio
    async def test_post_clears_author_typing_after_new_chat(self, send, manager, coordinator):
        alice = await login_as(send, manager, "conn-a", "Alice")
        await send("conn-a", "startTyping")
        manager.clear()

        await send("conn-a", "createChat", {"text": "done typing"})

        assert manager.broadcast_events() == ["newChat", "userStoppedTyping"]
        assert manager.broadcasts[1]["data"] == {"userId": alice["id"]}
        assert coordinator.sessions.typing_users() == set()

    @pytest.mark.asyncio
    async def test_scenario_post_then_remove(self, send, manager):
        await send("conn-a", "login", {"userData": {"name": "Alice", "color": "#ff0000"}})
        assert manager.frames("conn-a", "loginSuccess")[0]["data"]["id"]

        await send("conn-a", "createChat", {"text": "hi"})
        for connection_id in ("conn-a", "conn-b", "conn-c"):
            chat = manager.frames(connection_id, "newChat")[0]["data"]
            assert chat["text"] == "hi"
            assert chat["author"]["name"] == "Alice"
        chat_id = chat["id"]

        await send("conn-a", "removeChat", {"id": chat_id})
        for connection_id in ("conn-a", "conn-b", "conn-c"):
            assert manager.frames(connection_id, "chatRemoved") == [
                {"event": "chatRemoved", "data": {"id": chat_id}}
            ]

        await send("conn-b", "findAllChats")
        assert manager.last_ack("conn-b")["data"] == []

    @pytest.mark.asyncio
    async def test_remove_accepts_bare_id(self, send, manager, store):
        await login_as(send, manager, "conn-a", "Alice")
        await send("conn-a", "createChat", {"text": "bye"})
        chat_id = manager.last_ack("conn-a")["data"]["id"]

        await send("conn-b", "removeChat", chat_id)

        assert manager.frames("conn-c", "chatRemoved")[0]["data"] == {"id": chat_id}
        assert await store.list_messages() == []

    @pytest.mark.asyncio
    async def test_edit_marks_modified_and_broadcasts(self, send, manager):
        await login_as(send, manager, "conn-a", "Alice")
        await send("conn-a", "createChat", {"text": "helo"})
        chat_id = manager.last_ack("conn-a")["data"]["id"]
        manager.clear()

        # No ownership check: any connection may edit
        await send("conn-b", "updateChat", {"id": chat_id, "text": "hello"})

        updated = manager.frames("conn-c", "chatUpdated")[0]["data"]
        assert updated["id"] == chat_id
        assert updated["text"] == "hello"
        assert updated["modified"] is True

    @pytest.mark.asyncio
    async def test_edit_missing_message_is_not_found(self, send, manager):
        await send("conn-a", "updateChat", {"id": str(uuid4()), "text": "ghost"}, ack=7)

        ack = manager.last_ack("conn-a")
        assert ack["ack"] == 7
        assert ack["data"] == {"success": False, "message": "Chat not found"}
        assert manager.broadcasts == []

    @pytest.mark.asyncio
    async def test_remove_missing_message_is_not_found(self, send, manager):
        await send("conn-a", "removeChat", {"id": str(uuid4())})

        assert manager.last_ack("conn-a")["data"] == {"success": False, "message": "Chat not found"}
        assert manager.broadcasts == []

    @pytest.mark.asyncio
    async def test_list_is_in_creation_order(self, send, manager):
        await login_as(send, manager, "conn-a", "Alice")
        for text in ("one", "two", "three"):
            await send("conn-a", "createChat", {"text": text})

        await send("conn-b", "findAllChats")

        assert [c["text"] for c in manager.last_ack("conn-b")["data"]] == ["one", "two", "three"]

    @pytest.mark.asyncio
    async def test_find_one_chat(self, send, manager):
        await login_as(send, manager, "conn-a", "Alice")
        await send("conn-a", "createChat", {"text": "find me"})
        chat = manager.last_ack("conn-a")["data"]

        await send("conn-b", "findOneChat", chat["id"])
        assert manager.last_ack("conn-b")["data"] == chat

        await send("conn-b", "findOneChat", {"id": str(uuid4())})
        assert manager.last_ack("conn-b")["data"] is None


class TestUsers:
    @pytest.mark.asyncio
    async def test_find_users(self, send, manager):
        alice = await login_as(send, manager, "conn-a", "Alice")
        bob = await login_as(send, manager, "conn-b", "Bob")

        await send("conn-c", "findAllUsers")
        assert manager.last_ack("conn-c")["data"] == [alice, bob]

        await send("conn-c", "findOneUser", {"id": bob["id"]})
        assert manager.last_ack("conn-c")["data"] == bob

    @pytest.mark.asyncio
    async def test_update_color_broadcasts_and_confirms(self, send, manager):
        alice = await login_as(send, manager, "conn-a", "Alice")
        manager.clear()

        await send("conn-a", "updateUserColor", {"userId": alice["id"], "color": "#00ff00"})

        updated = {**alice, "color": "#00ff00"}
        assert manager.broadcasts == [{"event": "userUpdated", "data": updated}]
        assert manager.last_ack("conn-a")["data"] == {"success": True, "data": updated}
        assert manager.events("conn-b") == ["userUpdated"]

    @pytest.mark.asyncio
    async def test_update_color_unknown_user(self, send, manager):
        await send("conn-a", "updateUserColor", {"userId": str(uuid4()), "color": "#00ff00"})

        assert manager.events("conn-a") == ["updateError", "ack:updateUserColor"]
        assert manager.frames("conn-a", "updateError")[0]["data"] == {"message": "User not found"}
        assert manager.last_ack("conn-a")["data"] == {"success": False, "message": "User not found"}
        assert manager.broadcasts == []


# ──────────────────────────────────────────────────────────────
# Typing and presence
# ──────────────────────────────────────────────────────────────


class TestTyping:
    @pytest.mark.asyncio
    async def test_start_then_stop(self, send, manager, coordinator):
        alice = await login_as(send, manager, "conn-a", "Alice")
        await login_as(send, manager, "conn-b", "Bob")
        manager.clear()

        await send("conn-a", "startTyping")
        await send("conn-a", "stopTyping")

        assert manager.broadcasts == [
            {"event": "userTyping", "data": {"userId": alice["id"], "userName": "Alice"}},
            {"event": "userStoppedTyping", "data": {"userId": alice["id"]}},
        ]
        assert coordinator.sessions.typing_users() == set()
        assert manager.last_ack("conn-a")["data"] == {"success": True}

    @pytest.mark.asyncio
    async def test_repeated_start_only_refreshes(self, send, manager):
        await login_as(send, manager, "conn-a", "Alice")
        manager.clear()

        await send("conn-a", "startTyping")
        await send("conn-a", "startTyping")

        assert manager.broadcast_events() == ["userTyping"]

    @pytest.mark.asyncio
    async def test_stop_when_idle_is_silent(self, send, manager):
        await login_as(send, manager, "conn-a", "Alice")
        manager.clear()

        await send("conn-a", "stopTyping")

        assert manager.broadcasts == []
        assert manager.last_ack("conn-a")["data"] == {"success": True}

    @pytest.mark.asyncio
    async def test_typing_requires_login(self, send, manager, coordinator):
        await send("conn-a", "startTyping")

        assert manager.last_ack("conn-a")["data"] == {
            "success": False,
            "message": "Not authenticated",
        }
        assert manager.broadcasts == []
        assert coordinator.sessions.typing_users() == set()

    @pytest.mark.asyncio
    async def test_start_clears_flag_when_user_record_is_gone(self, send, manager, coordinator, monkeypatch):
        await login_as(send, manager, "conn-a", "Alice")
        user_id = coordinator.sessions.resolve("conn-a")
        monkeypatch.setattr(coordinator.store, "find_user_by_id", AsyncMock(return_value=None))
        manager.clear()

        await send("conn-a", "startTyping")

        assert manager.broadcasts == []
        assert not coordinator.sessions.is_typing(user_id)
        assert manager.last_ack("conn-a")["data"] == {"success": True}

    @pytest.mark.asyncio
    async def test_expiry_clears_stale_typing(self, store, manager):
        from chat_service.core.settings import WebSocketSettings

        coordinator = ChatCoordinator(
            store, manager, SessionStore(), WebSocketSettings(heartbeat_interval=0, typing_timeout=5)
        )
        await coordinator.handle_frame(
            "conn-a",
            json.dumps({"event": "login", "data": {"userData": {"name": "Alice", "color": "#ff0000"}}}),
        )
        await coordinator.handle_frame("conn-a", json.dumps({"event": "startTyping"}))
        user_id = coordinator.sessions.resolve("conn-a")
        manager.clear()

        assert await coordinator.expire_typing(now=time.monotonic() + 1) == []
        assert await coordinator.expire_typing(now=time.monotonic() + 10) == [user_id]
        assert manager.broadcasts == [
            {"event": "userStoppedTyping", "data": {"userId": str(user_id)}}
        ]


class TestDisconnect:
    @pytest.mark.asyncio
    async def test_disconnect_while_typing(self, send, manager, coordinator):
        alice = await login_as(send, manager, "conn-a", "Alice")
        await send("conn-a", "startTyping")
        manager.clear()

        await coordinator.handle_disconnect("conn-a")

        assert manager.broadcasts == [
            {"event": "userStoppedTyping", "data": {"userId": alice["id"]}},
            {"event": "userLeft", "data": {"userId": alice["id"]}},
        ]
        assert not coordinator.sessions.is_authenticated("conn-a")

    @pytest.mark.asyncio
    async def test_disconnect_other_connection_keeps_typing(self, send, manager, coordinator):
        alice = await login_as(send, manager, "conn-a", "Alice")
        await send("conn-b", "login", {"userId": alice["id"]})
        await send("conn-a", "startTyping")
        manager.clear()

        await coordinator.handle_disconnect("conn-b")

        assert manager.broadcast_events() == ["userLeft"]
        assert coordinator.sessions.is_typing(coordinator.sessions.resolve("conn-a"))

    @pytest.mark.asyncio
    async def test_disconnect_logs_remaining_connections(self, send, manager, coordinator, caplog):
        alice = await login_as(send, manager, "conn-a", "Alice")
        await send("conn-b", "login", {"userId": alice["id"]})

        with caplog.at_level(logging.INFO, logger="chat_service.features.realtime.coordinator"):
            await coordinator.handle_disconnect("conn-b")

        left = [r for r in caplog.records if r.getMessage() == "User left"]
        assert len(left) == 1
        assert left[0].user_id == alice["id"]
        assert left[0].remaining_connections == 1

    @pytest.mark.asyncio
    async def test_unauthenticated_disconnect_is_silent(self, manager, coordinator):
        await coordinator.handle_disconnect("conn-c")

        assert manager.broadcasts == []


# ──────────────────────────────────────────────────────────────
# Framing and failures
# ──────────────────────────────────────────────────────────────


class TestFraming:
    @pytest.mark.asyncio
    async def test_connect_sends_initial_chats(self, send, manager, coordinator):
        await login_as(send, manager, "conn-a", "Alice")
        await send("conn-a", "createChat", {"text": "backlog"})
        manager.add("conn-new")

        await coordinator.handle_connect("conn-new")

        frames = manager.received["conn-new"]
        assert [f["event"] for f in frames] == ["chats"]
        assert [c["text"] for c in frames[0]["data"]] == ["backlog"]

    @pytest.mark.asyncio
    async def test_connect_without_initial_chats(self, store, manager):
        from chat_service.core.settings import WebSocketSettings

        coordinator = ChatCoordinator(
            store, manager, settings=WebSocketSettings(heartbeat_interval=0, send_initial_chats=False)
        )
        await coordinator.handle_connect("conn-a")

        assert manager.received["conn-a"] == []

    @pytest.mark.asyncio
    async def test_invalid_json(self, coordinator, manager):
        await coordinator.handle_frame("conn-a", "{not json")

        assert manager.received["conn-a"] == [{"event": "error", "data": {"message": "Invalid JSON"}}]

    @pytest.mark.asyncio
    async def test_frame_must_be_object(self, coordinator, manager):
        await coordinator.handle_frame("conn-a", "[1, 2]")

        assert manager.events("conn-a") == ["error"]

    @pytest.mark.asyncio
    async def test_unknown_event(self, send, manager):
        await send("conn-a", "dance", {})

        assert manager.received["conn-a"] == [
            {"event": "error", "data": {"message": "Unknown event: dance"}}
        ]

    @pytest.mark.asyncio
    async def test_ack_is_echoed(self, send, manager):
        await send("conn-a", "findAllChats", ack="req-42")
        assert manager.last_ack("conn-a")["ack"] == "req-42"

        await send("conn-a", "findAllChats")
        assert manager.last_ack("conn-a")["ack"] is None

    @pytest.mark.asyncio
    async def test_oversized_frame(self, coordinator, manager):
        await coordinator.reject_oversized("conn-a", 70000, 65536)

        assert manager.received["conn-a"] == [
            {"event": "error", "data": {"message": "Frame exceeds 65536 bytes"}}
        ]

    @pytest.mark.asyncio
    async def test_store_failure_is_internal_error(self, manager, ws_settings):
        store = AsyncMock()
        store.list_messages.side_effect = RuntimeError("database is locked")
        coordinator = ChatCoordinator(store, manager, SessionStore(), ws_settings)

        await coordinator.handle_frame("conn-a", json.dumps({"event": "findAllChats", "ack": 3}))

        assert manager.events("conn-a") == ["error", "ack:findAllChats"]
        assert manager.frames("conn-a", "error")[0]["data"] == {"message": "Internal error"}
        assert manager.last_ack("conn-a")["data"] == {"success": False, "message": "Internal error"}
        assert manager.events("conn-b") == []

    @pytest.mark.asyncio
    async def test_failure_on_one_connection_leaves_others_working(self, send, manager):
        await send("conn-a", "updateChat", {"id": "nope", "text": "x"})
        await login_as(send, manager, "conn-b", "Bob")
        await send("conn-b", "createChat", {"text": "still fine"})

        assert manager.frames("conn-a", "newChat")[0]["data"]["text"] == "still fine"
