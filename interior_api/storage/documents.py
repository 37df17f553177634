"""JSON document collections for team members and portfolio designs.

Documents are plain JSON-mode dicts keyed by a UUID string; the services
own validation and query logic, stores only load and save.
"""

from __future__ import annotations

from typing import Any, Literal, Protocol

import asyncpg

from interior_api.storage.postgres import dump_json, load_json, parse_uuid

Document = dict[str, Any]
Collection = Literal["team_members", "designs"]


class DocumentStore(Protocol):
    async def all(self) -> list[Document]: ...

    async def get(self, doc_id: str) -> Document | None: ...

    async def put(self, doc_id: str, doc: Document) -> None: ...

    async def delete(self, doc_id: str) -> bool: ...


class InMemoryDocumentStore:
    def __init__(self) -> None:
        self._docs: dict[str, Document] = {}

    async def all(self) -> list[Document]:
        return [dict(doc) for doc in self._docs.values()]

    async def get(self, doc_id: str) -> Document | None:
        doc = self._docs.get(doc_id)
        return dict(doc) if doc is not None else None

    async def put(self, doc_id: str, doc: Document) -> None:
        self._docs[doc_id] = dict(doc)

    async def delete(self, doc_id: str) -> bool:
        return self._docs.pop(doc_id, None) is not None


class PostgresDocumentStore:
    """One table per collection: ``id UUID, data JSONB, created_at, updated_at``."""

    def __init__(self, pool: asyncpg.Pool, table: Collection) -> None:
        if table not in ("team_members", "designs"):
            raise ValueError(f"Unknown collection: {table}")
        self._pool = pool
        self._table = table

    async def all(self) -> list[Document]:
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(f"SELECT data FROM {self._table} ORDER BY created_at")
        return [load_json(row["data"]) for row in rows]

    async def get(self, doc_id: str) -> Document | None:
        key = parse_uuid(doc_id)
        if key is None:
            return None
        async with self._pool.acquire() as conn:
            raw = await conn.fetchval(f"SELECT data FROM {self._table} WHERE id = $1", key)
        return load_json(raw) if raw is not None else None

    async def put(self, doc_id: str, doc: Document) -> None:
        key = parse_uuid(doc_id)
        if key is None:
            raise ValueError(f"Document id is not a UUID: {doc_id}")
        async with self._pool.acquire() as conn:
            await conn.execute(
                f"INSERT INTO {self._table} (id, data) VALUES ($1, $2::jsonb) "
                "ON CONFLICT (id) DO UPDATE SET data = EXCLUDED.data, updated_at = now()",
                key,
                dump_json(doc),
            )

    async def delete(self, doc_id: str) -> bool:
        key = parse_uuid(doc_id)
        if key is None:
            return False
        async with self._pool.acquire() as conn:
            result = await conn.execute(f"DELETE FROM {self._table} WHERE id = $1", key)
        return result != "DELETE 0"
