"""Tests for the /ws live chat endpoint and the room hub."""

import base64
import io
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from interior_api.chatbot.service import ChatbotService
from interior_api.main import app
from interior_api.models.contracts import (
    ChatRecord,
    CollectedData,
    CompletionNotification,
    ConversationContext,
    ConversationStep,
)
from interior_api.realtime.hub import RealtimeHub
from interior_api.storage.conversations import InMemoryConversationStore

CID = "conv-ws"


@pytest.fixture
def ws_client():
    return TestClient(app)


def _join(ws, cid=CID, pid="visitor-1"):
    ws.send_json({"event": "join-session", "data": {"conversation_id": cid, "participant_id": pid}})
    joined = ws.receive_json()
    history = ws.receive_json()
    return joined, history


def _png_data_url() -> str:
    buf = io.BytesIO()
    Image.new("RGB", (30, 30), "green").save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode()


class TestSessions:
    def test_join_sends_ack_and_history(self, ws_client):
        """Joining acknowledges the session and sends the stored history."""
        with ws_client.websocket_connect("/ws") as ws:
            joined, history = _join(ws)
        assert joined["event"] == "session-joined"
        assert joined["data"]["conversation_id"] == CID
        assert joined["data"]["participant_id"] == "visitor-1"
        assert "timestamp" in joined["data"]
        assert history == {
            "event": "conversation-history",
            "data": {"conversation_id": CID, "messages": []},
        }

    def test_join_requires_ids(self, ws_client):
        """Joining without ids is an error."""
        with ws_client.websocket_connect("/ws") as ws:
            ws.send_json({"event": "join-session", "data": {"conversation_id": CID}})
            frame = ws.receive_json()
        assert frame["event"] == "error"

    def test_leave(self, ws_client):
        """Leaving acknowledges with the conversation id and frees the session."""
        with ws_client.websocket_connect("/ws") as ws:
            _join(ws)
            assert app.state.hub.active_sessions == 1
            ws.send_json({"event": "leave-session", "data": {}})
            frame = ws.receive_json()
            assert frame == {"event": "session-left", "data": {"conversation_id": CID}}
            assert app.state.hub.active_sessions == 0

    def test_disconnect_cleans_up(self, ws_client):
        """Closing the socket removes its session."""
        with ws_client.websocket_connect("/ws") as ws:
            _join(ws)
        assert app.state.hub.room_size(CID) == 0


class TestMessages:
    def test_send_message_broadcasts_reply(self, ws_client):
        """A message in the joined room comes back as new-message."""
        with ws_client.websocket_connect("/ws") as ws:
            _join(ws)
            ws.send_json({"event": "send-message", "data": {"message": "hello"}})
            frame = ws.receive_json()
        assert frame["event"] == "new-message"
        assert frame["data"]["user_message"]["message"] == "hello"
        assert frame["data"]["user_message"]["transport_metadata"]["origin"] == "websocket"
        assert frame["data"]["bot_message"]["context"]["current_step"] == "project_type"

    def test_send_without_joining(self, ws_client):
        """A socket outside the room still receives its own reply once."""
        with ws_client.websocket_connect("/ws") as ws:
            ws.send_json(
                {
                    "event": "send-message",
                    "data": {"conversation_id": "solo", "participant_id": "p", "message": "hi"},
                }
            )
            frame = ws.receive_json()
            assert frame["event"] == "new-message"
            ws.send_json({"event": "typing-stop", "data": {"conversation_id": "solo"}})
            ws.send_json({"event": "nope", "data": {}})
            assert ws.receive_json()["data"]["message"] == "Unknown event: nope"

    def test_send_message_requires_text(self, ws_client):
        """A missing message is an error."""
        with ws_client.websocket_connect("/ws") as ws:
            _join(ws)
            ws.send_json({"event": "send-message", "data": {}})
            frame = ws.receive_json()
        assert frame["event"] == "error"

    def test_room_members_see_replies(self, ws_client):
        """Every socket in the room receives the reply."""
        with ws_client.websocket_connect("/ws") as first, ws_client.websocket_connect(
            "/ws"
        ) as second:
            _join(first)
            _join(second, pid="designer")
            first.send_json({"event": "send-message", "data": {"message": "hello"}})
            assert first.receive_json()["event"] == "new-message"
            assert second.receive_json()["event"] == "new-message"

    def test_completion_follows_last_reply(self, ws_client):
        """Finishing the questionnaire sends the reply, then conversation-complete."""
        script = [
            "hello",
            "residential",
            "kitchen",
            "modern",
            "around 15000",
            "3-6 months",
            "200 sq ft",
            "my name is Jane",
            "jane@example.com",
            "Lots of natural light please",
        ]
        with ws_client.websocket_connect("/ws") as ws:
            _join(ws)
            for message in script:
                ws.send_json({"event": "send-message", "data": {"message": message}})
                reply = ws.receive_json()
                assert reply["event"] == "new-message"
            assert reply["data"]["is_complete"] is True
            complete = ws.receive_json()
        assert complete["event"] == "conversation-complete"
        assert complete["data"]["conversation_id"] == CID
        assert complete["data"]["collected_data"]["email"] == "jane@example.com"
        assert len(complete["data"]["next_steps"]) == 3

    def test_history_after_messages(self, ws_client):
        """A late joiner receives the stored records."""
        with ws_client.websocket_connect("/ws") as ws:
            _join(ws)
            ws.send_json({"event": "send-message", "data": {"message": "hello"}})
            ws.receive_json()
        with ws_client.websocket_connect("/ws") as ws:
            _, history = _join(ws)
        assert len(history["data"]["messages"]) == 2


class TestRoomEvents:
    def test_typing_excludes_sender(self, ws_client):
        """Typing indicators reach the other sockets only."""
        with ws_client.websocket_connect("/ws") as first, ws_client.websocket_connect(
            "/ws"
        ) as second:
            _join(first)
            _join(second, pid="designer")
            first.send_json({"event": "typing-start", "data": {}})
            frame = second.receive_json()
            assert frame == {"event": "user-typing", "data": {"participant_id": "visitor-1"}}
            first.send_json({"event": "typing-stop", "data": {}})
            frame = second.receive_json()
            assert frame["event"] == "user-stopped-typing"

    def test_upload_design_image(self, ws_client):
        """An uploaded image is acknowledged and shared with the room."""
        with ws_client.websocket_connect("/ws") as first, ws_client.websocket_connect(
            "/ws"
        ) as second:
            _join(first)
            _join(second, pid="designer")
            first.send_json(
                {
                    "event": "upload-design-image",
                    "data": {"image_data": _png_data_url(), "image_type": "inspiration"},
                }
            )
            ack = first.receive_json()
            shared = second.receive_json()
        assert ack["event"] == "image-upload-success"
        assert ack["data"]["image_type"] == "inspiration"
        assert ack["data"]["conversation_id"] == CID
        assert shared["event"] == "design-image-uploaded"
        assert shared["data"]["uploaded_by"] == "visitor-1"
        assert shared["data"]["image_url"] == ack["data"]["image_url"]

    def test_upload_bad_image(self, ws_client):
        """Undecodable image data gets an upload error."""
        with ws_client.websocket_connect("/ws") as ws:
            _join(ws)
            ws.send_json({"event": "upload-design-image", "data": {"image_data": "!!!"}})
            frame = ws.receive_json()
        assert frame["event"] == "image-upload-error"
        assert frame["data"]["message"] == "Failed to upload image"

    def test_update_preferences(self, ws_client):
        """Preferences update once the conversation has records."""
        with ws_client.websocket_connect("/ws") as ws:
            _join(ws)
            ws.send_json({"event": "send-message", "data": {"message": "hello"}})
            ws.receive_json()
            ws.send_json(
                {"event": "update-design-preferences", "data": {"preferences": {"tone": "warm"}}}
            )
            frame = ws.receive_json()
        assert frame == {
            "event": "preferences-updated",
            "data": {"conversation_id": CID, "preferences": {"tone": "warm"}},
        }

    def test_update_preferences_unknown_conversation(self, ws_client):
        """Preferences for a conversation with no records fail."""
        with ws_client.websocket_connect("/ws") as ws:
            _join(ws)
            ws.send_json(
                {"event": "update-design-preferences", "data": {"preferences": {"a": "b"}}}
            )
            frame = ws.receive_json()
        assert frame["event"] == "error"


class TestFrames:
    def test_invalid_json(self, ws_client):
        """Non-JSON text is answered with an error, and the socket stays open."""
        with ws_client.websocket_connect("/ws") as ws:
            ws.send_text("not json")
            assert ws.receive_json() == {
                "event": "error",
                "data": {"message": "Invalid message frame"},
            }
            ws.send_json({"event": "mystery"})
            assert ws.receive_json()["data"]["message"] == "Unknown event: mystery"


class TestHub:
    async def test_completion_reaches_room(self):
        """notify_complete sends conversation-complete to the room."""
        hub = RealtimeHub()
        socket = AsyncMock()
        hub.join(socket, "c1", "p1")
        await hub.notify_complete(
            CompletionNotification(
                conversation_id="c1", collected_data=CollectedData(name="Ana"), next_steps=["x"]
            )
        )
        payload = socket.send_json.await_args.args[0]
        assert payload["event"] == "conversation-complete"
        assert payload["data"]["collected_data"]["name"] == "Ana"

    async def test_failed_socket_dropped(self):
        """Sockets that fail to receive are removed from the room."""
        hub = RealtimeHub()
        good, bad = AsyncMock(), AsyncMock()
        bad.send_json.side_effect = RuntimeError("closed")
        hub.join(good, "c1", "p1")
        hub.join(bad, "c1", "p2")
        assert await hub.emit_to_room("c1", "ping", {}) == 1
        assert hub.room_size("c1") == 1
        assert hub.session_for(bad) is None

    async def test_dead_socket_does_not_block_completion(self):
        """A failing socket ahead of a live one still lets the live one get the notice."""
        hub = RealtimeHub()
        dead, live = AsyncMock(), AsyncMock()
        dead.send_json.side_effect = RuntimeError("closed")
        hub.join(dead, "c1", "p1")
        hub.join(live, "c1", "p2")
        service = ChatbotService(InMemoryConversationStore(), hub)
        await service.store.append_record(
            ChatRecord(
                id="seed",
                conversation_id="c1",
                participant_id="p2",
                message="seed",
                kind="bot",
                context=ConversationContext(current_step=ConversationStep.ADDITIONAL_NOTES),
            )
        )
        outcome = await service.process_message("none", "c1", "p2")
        assert outcome.is_complete
        payload = live.send_json.await_args.args[0]
        assert payload["event"] == "conversation-complete"
        assert hub.room_size("c1") == 1

    def test_join_moves_rooms(self):
        """Joining a second room leaves the first."""
        hub = RealtimeHub()
        socket = object()
        hub.join(socket, "a", "p")
        hub.join(socket, "b", "p")
        assert hub.room_size("a") == 0
        assert hub.room_size("b") == 1
        assert hub.active_sessions == 1
