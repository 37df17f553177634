"""asyncpg connection helpers shared by the Postgres-backed stores."""

from __future__ import annotations

import json
import uuid
from typing import Any

import asyncpg
import structlog

from interior_api.config import settings

logger = structlog.get_logger()


def pg_dsn() -> str:
    """Convert SQLAlchemy-style URL to plain PostgreSQL DSN for asyncpg."""
    return settings.database_url.replace("postgresql+asyncpg://", "postgresql://")


async def create_pool() -> asyncpg.Pool:
    """Open the shared connection pool. Raises if the database is unreachable."""
    pool = await asyncpg.create_pool(
        dsn=pg_dsn(),
        min_size=settings.database_pool_min_size,
        max_size=settings.database_pool_max_size,
    )
    logger.info(
        "postgres_pool_created",
        min_size=settings.database_pool_min_size,
        max_size=settings.database_pool_max_size,
    )
    return pool


def parse_uuid(value: str) -> uuid.UUID | None:
    """Parse an id from a URL path; None when it is not a UUID."""
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


def dump_json(value: Any) -> str:
    return json.dumps(value, default=str)


def load_json(value: Any) -> Any:
    """JSONB columns come back as text unless a codec is registered."""
    if isinstance(value, str):
        return json.loads(value)
    return value
