from fastapi import APIRouter

import downtime_stats.core.database as db_module
from downtime_stats.schemas.monitors import MonitorInfo, MonitorListResponse
from downtime_stats.services.downtime import SqlHeartbeatStore

router = APIRouter()


@router.get("/v1/monitors")
async def list_monitors() -> MonitorListResponse:
    """Monitors included in every downtime pass, in pass order."""
    entities = await SqlHeartbeatStore(db_module.async_session).list_entities()
    return MonitorListResponse(
        monitors=[MonitorInfo(id=e.id, name=e.name, url=e.locator) for e in entities]
    )
