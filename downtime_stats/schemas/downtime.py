from datetime import datetime

from pydantic import BaseModel

from downtime_stats.services.downtime.models import DowntimeStats


class DowntimeStatsRequest(BaseModel):
    """Window for one aggregation pass. Naive datetimes are read as UTC."""

    start: datetime
    end: datetime


class DowntimeIntervalOut(BaseModel):
    monitor_id: int
    monitor_name: str
    monitor_url: str | None = None
    downTime: str  # ISO 8601, UTC
    upTime: str  # ISO 8601, UTC; window end when ongoing
    duration: str  # HH:MM:SS
    ongoing: bool = False


class TotalDowntimeOut(BaseModel):
    monitor_id: int
    monitor_name: str
    monitor_url: str | None = None
    downTime: str  # HH:MM:SS total over the window


class DowntimeStatsResponse(BaseModel):
    windowStart: str
    windowEnd: str
    downtimeStats: list[DowntimeIntervalOut]
    totalDowntime: list[TotalDowntimeOut]

    @classmethod
    def from_stats(cls, stats: DowntimeStats) -> "DowntimeStatsResponse":
        return cls(
            windowStart=stats.window_start.isoformat(),
            windowEnd=stats.window_end.isoformat(),
            downtimeStats=[
                DowntimeIntervalOut(
                    monitor_id=i.entity_id,
                    monitor_name=i.entity_name,
                    monitor_url=i.entity_locator,
                    downTime=i.down_at.isoformat(),
                    upTime=i.up_at.isoformat(),
                    duration=i.duration_formatted,
                    ongoing=i.ongoing,
                )
                for i in stats.intervals
            ],
            totalDowntime=[
                TotalDowntimeOut(
                    monitor_id=t.entity_id,
                    monitor_name=t.entity_name,
                    monitor_url=t.entity_locator,
                    downTime=t.total_formatted,
                )
                for t in stats.totals
            ],
        )
