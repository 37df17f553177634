"""Health check endpoint with real service connectivity probes.

Each service check has a short timeout to avoid blocking the response.
A service reporting "disconnected" does not affect the overall status ("ok")
so load balancers keep routing while a dependency recovers.
"""

from __future__ import annotations

import asyncio

import asyncpg
import structlog
from fastapi import APIRouter, Request

from interior_api.config import settings
from interior_api.utils import r2

logger = structlog.get_logger()

router = APIRouter(tags=["health"])

_CHECK_TIMEOUT = 3.0  # seconds per service check


async def _check_postgres(pool: asyncpg.Pool | None) -> str:
    """Ping PostgreSQL through the app pool with a simple SELECT 1."""
    if not settings.use_database:
        return "disabled"
    if pool is None:
        # Started in memory-only mode after the database was unreachable.
        return "disconnected"
    try:
        async with asyncio.timeout(_CHECK_TIMEOUT):
            async with pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
        return "connected"
    except Exception as exc:
        logger.debug("health_postgres_failed", error=str(exc))
        return "disconnected"


async def _check_storage() -> str:
    """Check R2 bucket accessibility via head_bucket; local storage is always up."""
    if not settings.r2_enabled:
        return "local"

    def _head_bucket() -> None:
        r2._get_client().head_bucket(Bucket=settings.r2_bucket_name)

    try:
        await asyncio.wait_for(asyncio.to_thread(_head_bucket), timeout=_CHECK_TIMEOUT)
        return "connected"
    except Exception as exc:
        logger.debug("health_r2_failed", error=str(exc))
        return "disconnected"


@router.get("/health")
async def health_check(request: Request) -> dict:
    """Confirms the API process is alive.

    Probes PostgreSQL and R2 in parallel with short timeouts. Always
    returns 200.
    """
    state = request.app.state
    database, storage = await asyncio.gather(
        _check_postgres(getattr(state, "pool", None)),
        _check_storage(),
    )

    return {
        "status": "ok",
        "version": "0.1.0",
        "environment": settings.environment,
        "database": database,
        "storage": storage,
        "active_sessions": state.hub.active_sessions,
    }
