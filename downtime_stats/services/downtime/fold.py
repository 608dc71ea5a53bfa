"""Per-monitor downtime fold.

Turns an ascending heartbeat sequence into downtime intervals with an
explicit UP/DOWN state machine:

    UP   + down heartbeat -> DOWN (outage starts at this heartbeat)
    DOWN + up heartbeat   -> UP   (interval closed at this heartbeat)
    anything else         -> no-op (repeated status)

A run still open when the sequence ends is closed at the window end and
flagged ``ongoing``. That duration is a lower bound for the real outage.

A monitor already down when the window opens gets ``down_at`` from its first
in-range down heartbeat, not from the window start, so downtime that began
before the window is not counted.

Each interval's duration is floored to whole seconds before it is added to
the monitor total, so the formatted durations always sum to the formatted
total.
"""

from collections.abc import Iterable
from datetime import datetime, timedelta

from downtime_stats.core.exceptions import ObservationIntegrityError
from downtime_stats.services.downtime.models import (
    DowntimeInterval,
    EntityDescriptor,
    EntityDowntime,
    LinkState,
    Observation,
)


def _whole_seconds(delta: timedelta) -> timedelta:
    return delta - timedelta(microseconds=delta.microseconds)


class DowntimeFold:
    """Incremental fold over one monitor's heartbeats within one window."""

    def __init__(self, entity: EntityDescriptor, window_start: datetime, window_end: datetime):
        self._entity = entity
        self._window_start = window_start
        self._window_end = window_end
        self._state = LinkState.UP
        self._down_at: datetime | None = None
        self._last_seen: datetime | None = None
        self._finished = False
        self._result = EntityDowntime(entity=entity)

    @property
    def state(self) -> LinkState:
        return self._state

    @property
    def down_at(self) -> datetime | None:
        return self._down_at

    def feed(self, observation: Observation) -> DowntimeInterval | None:
        """Apply one heartbeat. Returns the interval it closed, if any."""
        if self._finished:
            raise RuntimeError("fold already finished")
        self._check(observation)
        self._last_seen = observation.timestamp

        if self._state is LinkState.UP and observation.state is LinkState.DOWN:
            self._state = LinkState.DOWN
            self._down_at = observation.timestamp
            return None

        if self._state is LinkState.DOWN and observation.state is LinkState.UP:
            interval = self._close(observation.timestamp, ongoing=False)
            self._state = LinkState.UP
            return interval

        return None

    def finish(self) -> EntityDowntime:
        """Close any open run at the window end and return the result."""
        if not self._finished:
            if self._state is LinkState.DOWN:
                self._close(self._window_end, ongoing=True)
                self._state = LinkState.UP
            self._finished = True
        return self._result

    def _close(self, up_at: datetime, ongoing: bool) -> DowntimeInterval:
        down_at = self._down_at
        if down_at is None:
            raise RuntimeError("no open outage to close")
        interval = DowntimeInterval(
            entity_id=self._entity.id,
            entity_name=self._entity.name,
            entity_locator=self._entity.locator,
            down_at=down_at,
            up_at=up_at,
            duration=_whole_seconds(up_at - down_at),
            ongoing=ongoing,
        )
        self._result.intervals.append(interval)
        self._result.total += interval.duration
        self._down_at = None
        return interval

    def _check(self, observation: Observation) -> None:
        details = {"monitor_id": self._entity.id}
        if observation.entity_id != self._entity.id:
            raise ObservationIntegrityError(
                f"Heartbeat belongs to monitor {observation.entity_id}.", details=details
            )
        ts = observation.timestamp
        if ts.tzinfo is None:
            raise ObservationIntegrityError("Heartbeat timestamp is naive.", details=details)
        if ts < self._window_start or ts > self._window_end:
            raise ObservationIntegrityError(
                f"Heartbeat at {ts.isoformat()} is outside the window.", details=details
            )
        if self._last_seen is not None and ts < self._last_seen:
            raise ObservationIntegrityError(
                f"Heartbeat at {ts.isoformat()} arrived out of order.", details=details
            )


def fold_observations(
    entity: EntityDescriptor,
    observations: Iterable[Observation],
    window_start: datetime,
    window_end: datetime,
) -> EntityDowntime:
    """Fold a full heartbeat sequence for one monitor."""
    fold = DowntimeFold(entity, window_start, window_end)
    for observation in observations:
        fold.feed(observation)
    return fold.finish()
