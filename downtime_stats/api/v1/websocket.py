import structlog
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

import downtime_stats.core.database as db_module
from downtime_stats.core.exceptions import DowntimeStatsError
from downtime_stats.schemas.downtime import DowntimeStatsRequest, DowntimeStatsResponse
from downtime_stats.services.auth import AuthService
from downtime_stats.services.downtime.window import assume_utc

router = APIRouter()
logger = structlog.get_logger()

STATS_EVENT = "sendDownTimeStats"


async def _validate_ws_token(token: str) -> str | None:
    """Validate API key from WebSocket query param.

    Returns the key prefix on success, None on failure.
    """
    key_row = await AuthService(db_module.async_session).validate_key(token)
    if key_row is None:
        return None
    return key_row.key_prefix


@router.websocket("/ws/downtime")
async def downtime_stats_ws(websocket: WebSocket, token: str = Query(default="")):
    """Push downtime stats on request.

    Each client message ``{"start": ..., "end": ...}`` triggers one pass; the
    reply is ``{"type": "sendDownTimeStats", "data": ...}`` or
    ``{"type": "error", "error": {...}}``. The socket stays open between passes.
    """
    key_prefix = await _validate_ws_token(token)
    if key_prefix is None:
        await websocket.close(code=4001, reason="Invalid or missing API key")
        return

    await websocket.accept()
    aggregator = websocket.app.state.downtime_aggregator

    try:
        while True:
            message = await websocket.receive_text()
            try:
                request = DowntimeStatsRequest.model_validate_json(message)
            except ValidationError as exc:
                await websocket.send_json({
                    "type": "error",
                    "error": {
                        "code": "invalid_request",
                        "message": "Expected {\"start\": ..., \"end\": ...} with ISO 8601 timestamps.",
                        "status": 422,
                        "details": {"errors": exc.errors(include_url=False, include_context=False)},
                    },
                })
                continue

            try:
                stats = await aggregator.compute(assume_utc(request.start), assume_utc(request.end))
            except DowntimeStatsError as exc:
                await websocket.send_json({"type": "error", **exc.to_dict()})
                continue

            payload = DowntimeStatsResponse.from_stats(stats)
            await websocket.send_json({"type": STATS_EVENT, "data": payload.model_dump()})
            logger.info(
                "downtime_stats_pushed",
                key_prefix=key_prefix,
                intervals=len(payload.downtimeStats),
            )
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("downtime_ws_failed", key_prefix=key_prefix)
        await websocket.close(code=1011)
