"""Value types for the downtime aggregation pass."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum


class LinkState(str, Enum):
    """Two-state timeline reconstructed from heartbeats."""

    UP = "up"
    DOWN = "down"


@dataclass(frozen=True)
class EntityDescriptor:
    """Static monitor metadata, read once per pass."""

    id: int
    name: str
    locator: str | None = None  # Monitor URL / hostname


@dataclass(frozen=True)
class Observation:
    """A single up/down heartbeat for one monitor. ``timestamp`` is UTC-aware."""

    entity_id: int
    timestamp: datetime
    is_up: bool

    @property
    def state(self) -> LinkState:
        return LinkState.UP if self.is_up else LinkState.DOWN


@dataclass(frozen=True)
class DowntimeInterval:
    """One maximal down run inside the window.

    ``ongoing`` is True when the run was still open at the window end and
    ``up_at`` is the window end rather than an observed recovery.
    """

    entity_id: int
    entity_name: str
    entity_locator: str | None
    down_at: datetime
    up_at: datetime
    duration: timedelta
    ongoing: bool = False

    @property
    def duration_formatted(self) -> str:
        return format_duration(self.duration)


@dataclass(frozen=True)
class TotalDowntime:
    entity_id: int
    entity_name: str
    entity_locator: str | None
    total: timedelta

    @property
    def total_formatted(self) -> str:
        return format_duration(self.total)


@dataclass
class EntityDowntime:
    """Per-monitor fold result."""

    entity: EntityDescriptor
    intervals: list[DowntimeInterval] = field(default_factory=list)
    total: timedelta = field(default_factory=timedelta)

    def to_total(self) -> TotalDowntime:
        return TotalDowntime(
            entity_id=self.entity.id,
            entity_name=self.entity.name,
            entity_locator=self.entity.locator,
            total=self.total,
        )


@dataclass
class DowntimeStats:
    """Combined result of one aggregation pass, in monitor listing order."""

    window_start: datetime
    window_end: datetime
    intervals: list[DowntimeInterval] = field(default_factory=list)
    totals: list[TotalDowntime] = field(default_factory=list)


def format_duration(value: timedelta | float) -> str:
    """Format a duration as ``HH:MM:SS``.

    Seconds are floored. Hours never roll over into days, so 26 hours
    formats as ``26:00:00``.
    """
    seconds = value.total_seconds() if isinstance(value, timedelta) else float(value)
    if seconds < 0:
        raise ValueError(f"negative duration: {seconds}")
    hours, remainder = divmod(int(seconds), 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
