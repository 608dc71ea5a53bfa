import time

import structlog
from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

import downtime_stats.core.database as db_module
from downtime_stats.schemas.health import HealthResponse

router = APIRouter()
logger = structlog.get_logger()

_start_time = time.monotonic()


@router.get("/health")
async def health_check() -> HealthResponse:
    """Service health check. No auth required."""
    try:
        async with db_module.async_session() as session:
            await session.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError as exc:
        logger.warning("health_db_unreachable", error=str(exc))
        db_ok = False

    return HealthResponse(
        status="ok" if db_ok else "degraded",
        database="connected" if db_ok else "disconnected",
        uptime_seconds=round(time.monotonic() - _start_time, 1),
    )
