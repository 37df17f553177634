"""Conversation state store.

Every chat message is stored as its own record carrying the full context
snapshot at that moment. The latest record for a conversation therefore
holds its current state, and reading it is the only lookup the chatbot
needs. Records are never rewritten except for preference updates, which
patch the context of the newest record.
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime
from typing import Protocol

import asyncpg
import structlog

from interior_api.models.contracts import (
    ChatRecord,
    ConversationContext,
    ParticipantConversation,
    TransportMetadata,
)
from interior_api.storage.postgres import dump_json, load_json

logger = structlog.get_logger()


class ConversationStore(Protocol):
    async def get_latest_context(self, conversation_id: str) -> ConversationContext | None: ...

    async def append_record(self, record: ChatRecord) -> None: ...

    async def list_records(
        self, conversation_id: str, limit: int | None = None
    ) -> list[ChatRecord]: ...

    async def replace_latest_context(
        self, conversation_id: str, context: ConversationContext
    ) -> bool: ...

    async def delete_conversation(self, conversation_id: str) -> int: ...

    async def list_participant_conversations(
        self, participant_id: str
    ) -> list[ParticipantConversation]: ...

    async def query_records(
        self,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
        participant_id: str | None = None,
    ) -> list[ChatRecord]: ...


def _summarize_by_conversation(records: list[ChatRecord]) -> list[ParticipantConversation]:
    """Collapse chronologically ordered records into one row per conversation."""
    grouped: dict[str, list[ChatRecord]] = defaultdict(list)
    for record in records:
        grouped[record.conversation_id].append(record)
    rows = [
        ParticipantConversation(
            conversation_id=conversation_id,
            last_message=items[-1].message,
            last_activity=items[-1].created_at,
            message_count=len(items),
        )
        for conversation_id, items in grouped.items()
    ]
    rows.sort(key=lambda row: row.last_activity, reverse=True)
    return rows


class InMemoryConversationStore:
    """Process-local store used in development, tests, and as the fallback
    when the database is unreachable at startup."""

    def __init__(self) -> None:
        self._records: dict[str, list[ChatRecord]] = {}

    async def get_latest_context(self, conversation_id: str) -> ConversationContext | None:
        records = self._records.get(conversation_id)
        if not records:
            return None
        return records[-1].context.model_copy(deep=True)

    async def append_record(self, record: ChatRecord) -> None:
        self._records.setdefault(record.conversation_id, []).append(record.model_copy(deep=True))

    async def list_records(
        self, conversation_id: str, limit: int | None = None
    ) -> list[ChatRecord]:
        records = self._records.get(conversation_id, [])
        if limit is not None:
            records = records[-limit:] if limit > 0 else []
        return [record.model_copy(deep=True) for record in records]

    async def replace_latest_context(
        self, conversation_id: str, context: ConversationContext
    ) -> bool:
        records = self._records.get(conversation_id)
        if not records:
            return False
        records[-1] = records[-1].model_copy(update={"context": context.model_copy(deep=True)})
        return True

    async def delete_conversation(self, conversation_id: str) -> int:
        return len(self._records.pop(conversation_id, []))

    async def list_participant_conversations(
        self, participant_id: str
    ) -> list[ParticipantConversation]:
        mine = [
            record
            for records in self._records.values()
            for record in records
            if record.participant_id == participant_id
        ]
        mine.sort(key=lambda record: record.created_at)
        return _summarize_by_conversation(mine)

    async def query_records(
        self,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
        participant_id: str | None = None,
    ) -> list[ChatRecord]:
        return [
            record.model_copy(deep=True)
            for records in self._records.values()
            for record in records
            if (start is None or record.created_at >= start)
            and (end is None or record.created_at <= end)
            and (participant_id is None or record.participant_id == participant_id)
        ]


_COLUMNS = (
    "id, conversation_id, participant_id, message, response, kind, intent_kind, "
    "confidence, context, transport_metadata, is_resolved, created_at"
)


def _row_to_record(row: asyncpg.Record) -> ChatRecord:
    return ChatRecord(
        id=str(row["id"]),
        conversation_id=row["conversation_id"],
        participant_id=row["participant_id"],
        message=row["message"],
        response=row["response"],
        kind=row["kind"],
        intent_kind=row["intent_kind"],
        confidence=row["confidence"],
        context=ConversationContext.model_validate(load_json(row["context"])),
        transport_metadata=TransportMetadata.model_validate(
            load_json(row["transport_metadata"]) or {}
        ),
        is_resolved=row["is_resolved"],
        created_at=row["created_at"],
    )


class PostgresConversationStore:
    """chat_messages table via asyncpg. ``seq`` breaks created_at ties so the
    user and bot records of one exchange keep their insertion order."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def get_latest_context(self, conversation_id: str) -> ConversationContext | None:
        async with self._pool.acquire() as conn:
            raw = await conn.fetchval(
                "SELECT context FROM chat_messages WHERE conversation_id = $1 "
                "ORDER BY created_at DESC, seq DESC LIMIT 1",
                conversation_id,
            )
        if raw is None:
            return None
        return ConversationContext.model_validate(load_json(raw))

    async def append_record(self, record: ChatRecord) -> None:
        async with self._pool.acquire() as conn:
            await conn.execute(
                f"INSERT INTO chat_messages ({_COLUMNS}) "
                "VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9::jsonb, $10::jsonb, $11, $12)",
                uuid.UUID(record.id),
                record.conversation_id,
                record.participant_id,
                record.message,
                record.response,
                record.kind,
                record.intent_kind,
                record.confidence,
                dump_json(record.context.model_dump(mode="json")),
                dump_json(record.transport_metadata.model_dump(mode="json")),
                record.is_resolved,
                record.created_at,
            )

    async def list_records(
        self, conversation_id: str, limit: int | None = None
    ) -> list[ChatRecord]:
        async with self._pool.acquire() as conn:
            if limit is None:
                rows = await conn.fetch(
                    f"SELECT {_COLUMNS} FROM chat_messages WHERE conversation_id = $1 "
                    "ORDER BY created_at, seq",
                    conversation_id,
                )
            else:
                rows = await conn.fetch(
                    f"SELECT {_COLUMNS} FROM ("
                    f"SELECT {_COLUMNS}, seq FROM chat_messages WHERE conversation_id = $1 "
                    "ORDER BY created_at DESC, seq DESC LIMIT $2"
                    ") latest ORDER BY created_at, seq",
                    conversation_id,
                    limit,
                )
        return [_row_to_record(row) for row in rows]

    async def replace_latest_context(
        self, conversation_id: str, context: ConversationContext
    ) -> bool:
        async with self._pool.acquire() as conn:
            result = await conn.execute(
                "UPDATE chat_messages SET context = $2::jsonb WHERE seq = ("
                "SELECT seq FROM chat_messages WHERE conversation_id = $1 "
                "ORDER BY created_at DESC, seq DESC LIMIT 1)",
                conversation_id,
                dump_json(context.model_dump(mode="json")),
            )
        return result != "UPDATE 0"

    async def delete_conversation(self, conversation_id: str) -> int:
        async with self._pool.acquire() as conn:
            result = await conn.execute(
                "DELETE FROM chat_messages WHERE conversation_id = $1", conversation_id
            )
        # asyncpg returns the command tag, e.g. "DELETE 4"
        return int(result.split()[-1])

    async def list_participant_conversations(
        self, participant_id: str
    ) -> list[ParticipantConversation]:
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {_COLUMNS} FROM chat_messages WHERE participant_id = $1 "
                "ORDER BY created_at, seq",
                participant_id,
            )
        return _summarize_by_conversation([_row_to_record(row) for row in rows])

    async def query_records(
        self,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
        participant_id: str | None = None,
    ) -> list[ChatRecord]:
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {_COLUMNS} FROM chat_messages "
                "WHERE ($1::timestamptz IS NULL OR created_at >= $1) "
                "AND ($2::timestamptz IS NULL OR created_at <= $2) "
                "AND ($3::text IS NULL OR participant_id = $3) "
                "ORDER BY created_at, seq",
                start,
                end,
                participant_id,
            )
        return [_row_to_record(row) for row in rows]
