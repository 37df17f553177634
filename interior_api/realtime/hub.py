"""WebSocket session registry and room fan-out.

A room is the set of sockets joined to one conversation id. The hub is
also the chatbot's completion notifier, so a conversation finished over
plain HTTP still reaches every socket watching it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog
from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from interior_api.models.contracts import CompletionNotification

logger = structlog.get_logger()


@dataclass
class Session:
    conversation_id: str
    participant_id: str


class RealtimeHub:
    def __init__(self) -> None:
        self._rooms: dict[str, set[WebSocket]] = {}
        self._sessions: dict[WebSocket, Session] = {}

    @property
    def active_sessions(self) -> int:
        return len(self._sessions)

    def session_for(self, websocket: WebSocket) -> Session | None:
        return self._sessions.get(websocket)

    def room_size(self, conversation_id: str) -> int:
        return len(self._rooms.get(conversation_id, ()))

    def clear(self) -> None:
        self._rooms.clear()
        self._sessions.clear()

    def join(self, websocket: WebSocket, conversation_id: str, participant_id: str) -> Session:
        """Put a socket in a conversation's room, leaving any room it was in."""
        self.leave(websocket)
        session = Session(conversation_id=conversation_id, participant_id=participant_id)
        self._sessions[websocket] = session
        self._rooms.setdefault(conversation_id, set()).add(websocket)
        logger.info(
            "realtime_session_joined",
            conversation_id=conversation_id,
            participant_id=participant_id,
            room_size=self.room_size(conversation_id),
        )
        return session

    def leave(self, websocket: WebSocket) -> Session | None:
        session = self._sessions.pop(websocket, None)
        if session is None:
            return None
        room = self._rooms.get(session.conversation_id)
        if room is not None:
            room.discard(websocket)
            if not room:
                del self._rooms[session.conversation_id]
        logger.info("realtime_session_left", conversation_id=session.conversation_id)
        return session

    @staticmethod
    async def send(websocket: WebSocket, event: str, data: Any) -> None:
        await websocket.send_json({"event": event, "data": jsonable_encoder(data)})

    async def emit_to_room(
        self,
        conversation_id: str,
        event: str,
        data: Any,
        *,
        exclude: WebSocket | None = None,
    ) -> int:
        """Send an event to every socket in a room. Returns how many received it.

        Sockets that fail to receive are dropped from the hub.
        """
        payload = {"event": event, "data": jsonable_encoder(data)}
        delivered = 0
        dead: list[WebSocket] = []
        for websocket in list(self._rooms.get(conversation_id, ())):
            if websocket is exclude:
                continue
            try:
                await websocket.send_json(payload)
                delivered += 1
            except Exception as exc:
                logger.warning(
                    "realtime_send_failed",
                    conversation_id=conversation_id,
                    socket_event=event,
                    error=str(exc),
                )
                dead.append(websocket)
        for websocket in dead:
            self.leave(websocket)
        return delivered

    async def notify_complete(self, notification: CompletionNotification) -> None:
        await self.emit_to_room(
            notification.conversation_id,
            "conversation-complete",
            notification.model_dump(mode="json"),
        )
