"""WebSocket endpoint for live chat.

Frames are JSON ``{"event": ..., "data": {...}}`` in both directions. A
socket joins one conversation room at a time; replies and completion
notices are broadcast to the whole room.
"""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime
from typing import Any

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from interior_api.chatbot.service import ChatbotService, Exchange
from interior_api.models.contracts import (
    ChatExchange,
    SendMessageRequest,
    SocketFrame,
    TransportMetadata,
)
from interior_api.realtime.hub import RealtimeHub
from interior_api.services.uploads import UploadRejected, UploadService

logger = structlog.get_logger()

router = APIRouter(tags=["realtime"])

HISTORY_LIMIT = 20


class _Connection:
    """Dispatches inbound frames for one socket."""

    def __init__(self, websocket: WebSocket) -> None:
        state = websocket.app.state
        self.websocket = websocket
        self.hub: RealtimeHub = state.hub
        self.chatbot: ChatbotService = state.chatbot
        self.uploads: UploadService = state.uploads
        self.handlers = {
            "join-session": self.join_session,
            "send-message": self.send_message,
            "typing-start": self.typing_start,
            "typing-stop": self.typing_stop,
            "upload-design-image": self.upload_design_image,
            "update-design-preferences": self.update_preferences,
            "leave-session": self.leave_session,
        }

    async def emit(self, event: str, data: Any) -> None:
        await self.hub.send(self.websocket, event, data)

    async def error(self, message: str) -> None:
        await self.emit("error", {"message": message})

    def _ids(self, data: dict[str, Any]) -> tuple[str | None, str | None]:
        """Conversation and participant ids, defaulting to the joined session."""
        session = self.hub.session_for(self.websocket)
        conversation_id = data.get("conversation_id") or (
            session.conversation_id if session else None
        )
        participant_id = data.get("participant_id") or (
            session.participant_id if session else None
        )
        return conversation_id, participant_id

    async def dispatch(self, raw: str) -> None:
        try:
            frame = SocketFrame.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError):
            await self.error("Invalid message frame")
            return
        handler = self.handlers.get(frame.event)
        if handler is None:
            await self.error(f"Unknown event: {frame.event}")
            return
        await handler(frame.data)

    async def join_session(self, data: dict[str, Any]) -> None:
        conversation_id = data.get("conversation_id")
        participant_id = data.get("participant_id")
        if not conversation_id or not participant_id:
            await self.error("Conversation ID and participant ID are required")
            return
        self.hub.join(self.websocket, str(conversation_id), str(participant_id))
        await self.emit(
            "session-joined",
            {
                "conversation_id": conversation_id,
                "participant_id": participant_id,
                "timestamp": datetime.now(UTC).isoformat(),
            },
        )
        try:
            history = await self.chatbot.history(str(conversation_id), HISTORY_LIMIT)
        except Exception:
            logger.exception("realtime_history_failed", conversation_id=conversation_id)
            await self.error("Failed to load conversation history")
            return
        await self.emit(
            "conversation-history", {"conversation_id": conversation_id, "messages": history}
        )

    async def send_message(self, data: dict[str, Any]) -> None:
        conversation_id, participant_id = self._ids(data)
        try:
            request = SendMessageRequest(
                conversation_id=conversation_id or "",
                participant_id=participant_id or "",
                message=data.get("message") or "",
                metadata=data.get("metadata"),
            )
        except ValidationError:
            await self.error("Conversation ID, participant ID, and message are required")
            return

        session = self.hub.session_for(self.websocket)
        in_room = session is not None and session.conversation_id == request.conversation_id

        async def deliver(exchange: Exchange) -> None:
            payload = ChatExchange(
                user_message=exchange.user_record,
                bot_message=exchange.bot_record,
                is_complete=exchange.outcome.is_complete,
                next_steps=exchange.outcome.next_steps,
            )
            await self.hub.emit_to_room(request.conversation_id, "new-message", payload)
            if not in_room:
                await self.emit("new-message", payload)

        metadata = request.metadata or {}
        await self.chatbot.exchange(
            request.message,
            request.conversation_id,
            request.participant_id,
            transport_metadata=_socket_metadata(self.websocket, metadata),
            deliver=deliver,
        )

    async def _typing(self, data: dict[str, Any], event: str) -> None:
        conversation_id, participant_id = self._ids(data)
        if not conversation_id:
            return
        await self.hub.emit_to_room(
            conversation_id,
            event,
            {"participant_id": participant_id},
            exclude=self.websocket,
        )

    async def typing_start(self, data: dict[str, Any]) -> None:
        await self._typing(data, "user-typing")

    async def typing_stop(self, data: dict[str, Any]) -> None:
        await self._typing(data, "user-stopped-typing")

    async def upload_design_image(self, data: dict[str, Any]) -> None:
        conversation_id, participant_id = self._ids(data)
        image_type = data.get("image_type")
        try:
            stored = await asyncio.to_thread(
                self.uploads.store_data_url,
                str(data.get("image_data") or ""),
                folder="chat",
                name=str(image_type or "design"),
            )
        except UploadRejected as exc:
            await self.emit(
                "image-upload-error", {"message": "Failed to upload image", "error": exc.message}
            )
            return
        logger.info(
            "realtime_image_uploaded", conversation_id=conversation_id, public_id=stored.public_id
        )
        await self.emit(
            "image-upload-success",
            {"image_url": stored.url, "image_type": image_type, "conversation_id": conversation_id},
        )
        if conversation_id:
            await self.hub.emit_to_room(
                conversation_id,
                "design-image-uploaded",
                {"image_url": stored.url, "image_type": image_type, "uploaded_by": participant_id},
                exclude=self.websocket,
            )

    async def update_preferences(self, data: dict[str, Any]) -> None:
        conversation_id, _ = self._ids(data)
        preferences = data.get("preferences")
        if not conversation_id or not isinstance(preferences, dict):
            await self.error("Conversation ID and preferences are required")
            return
        context = await self.chatbot.update_preferences(
            conversation_id, {str(k): str(v) for k, v in preferences.items()}
        )
        if context is None:
            await self.error("Failed to update preferences")
            return
        await self.emit(
            "preferences-updated",
            {"conversation_id": conversation_id, "preferences": context.user_preferences},
        )

    async def leave_session(self, data: dict[str, Any]) -> None:
        session = self.hub.leave(self.websocket)
        conversation_id = session.conversation_id if session else data.get("conversation_id")
        await self.emit("session-left", {"conversation_id": conversation_id})


def _socket_metadata(websocket: WebSocket, metadata: dict[str, str]) -> TransportMetadata:
    return TransportMetadata(
        origin="websocket",
        remote_address=metadata.get("remote_address")
        or (websocket.client.host if websocket.client else None),
        user_agent=metadata.get("user_agent") or websocket.headers.get("user-agent"),
    )


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    connection = _Connection(websocket)
    logger.info("realtime_connected")
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                await connection.dispatch(raw)
            except WebSocketDisconnect:
                raise
            except Exception:
                logger.exception("realtime_event_failed")
                await connection.error("Failed to process event")
    except WebSocketDisconnect:
        logger.info("realtime_disconnected")
    finally:
        connection.hub.leave(websocket)
