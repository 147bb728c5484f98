from __future__ import annotations

from datetime import UTC, datetime

import redis.asyncio as aioredis
import structlog
from fastapi import APIRouter
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from tgdir.core.config import get_settings
from tgdir.infrastructure.db.session import get_session_factory

router = APIRouter(tags=["Observability"])
logger = structlog.get_logger()


async def check_postgres() -> dict:
    """Check the database connection."""
    try:
        session_factory = get_session_factory()
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
            return {"status": "ok"}
    except (SQLAlchemyError, OSError) as e:
        return {"status": "error", "message": str(e)[:100]}


async def check_redis() -> dict:
    """Check the Redis connection used by the job queue."""
    try:
        settings = get_settings()
        client = aioredis.from_url(settings.redis_url)
        await client.ping()
        await client.aclose()
        return {"status": "ok"}
    except (RedisError, OSError) as e:
        return {"status": "error", "message": str(e)[:100]}


@router.get("/health", summary="Service health probe")
async def health_check() -> dict:
    """Return basic service and datastore status information."""
    settings = get_settings()

    postgres_status = await check_postgres()
    redis_status = await check_redis()

    overall_status = "ok"
    if postgres_status.get("status") != "ok" or redis_status.get("status") != "ok":
        overall_status = "degraded"

    payload = {
        "service": settings.app_name,
        "version": settings.version,
        "status": overall_status,
        "timestamp": datetime.now(UTC).isoformat(),
        "datastores": {
            "postgres": postgres_status,
            "redis": redis_status,
        },
    }
    logger.info("health_probe", **payload)
    return payload
