from datetime import datetime

from fastapi import APIRouter, Depends, Query

from downtime_stats.dependencies import get_aggregator
from downtime_stats.schemas.downtime import DowntimeStatsResponse
from downtime_stats.services.downtime import DowntimeAggregator
from downtime_stats.services.downtime.window import assume_utc

router = APIRouter()


@router.get("/v1/downtime/stats")
async def downtime_stats(
    start: datetime = Query(..., description="Window start (ISO 8601; naive values are UTC)"),
    end: datetime = Query(..., description="Window end (ISO 8601; naive values are UTC)"),
    aggregator: DowntimeAggregator = Depends(get_aggregator),
) -> DowntimeStatsResponse:
    """Downtime intervals and per-monitor totals over ``[start, end]``.

    An outage still open at ``end`` is reported closed at ``end`` with
    ``ongoing: true``.
    """
    stats = await aggregator.compute(assume_utc(start), assume_utc(end))
    return DowntimeStatsResponse.from_stats(stats)
