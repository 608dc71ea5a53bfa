"""Unit tests for the downtime aggregator fan-out/fan-in."""

from datetime import datetime, timedelta, timezone

import pytest

from downtime_stats.core.exceptions import (
    EntityFetchError,
    InvalidWindowError,
    ObservationIntegrityError,
    StoreUnavailableError,
)
from downtime_stats.services.downtime import DowntimeAggregator
from downtime_stats.services.downtime.models import EntityDescriptor, Observation
from tests.mocks.fake_stores import FakeHeartbeatStore

START = datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
END = datetime(2024, 1, 1, 1, 0, 0, tzinfo=timezone.utc)


def _monitor(i: int) -> EntityDescriptor:
    return EntityDescriptor(id=i, name=f"monitor-{i}", locator=f"https://m{i}.example.com")


def _outage(monitor_id: int, down_min: int, up_min: int | None = None) -> list[Observation]:
    beats = [Observation(monitor_id, START + timedelta(minutes=down_min), False)]
    if up_min is not None:
        beats.append(Observation(monitor_id, START + timedelta(minutes=up_min), True))
    return beats


def _aggregator(store, **kwargs) -> DowntimeAggregator:
    return DowntimeAggregator(entity_store=store, observation_store=store, **kwargs)


@pytest.mark.asyncio
class TestCompute:
    async def test_combines_intervals_and_totals(self):
        store = FakeHeartbeatStore(
            entities=[_monitor(1), _monitor(2)],
            observations={
                1: _outage(1, 10, 25),
                2: _outage(2, 50),
            },
        )
        stats = await _aggregator(store).compute(START, END)

        assert [(i.entity_id, i.duration_formatted) for i in stats.intervals] == [
            (1, "00:15:00"),
            (2, "00:10:00"),
        ]
        assert [(t.entity_id, t.total_formatted) for t in stats.totals] == [
            (1, "00:15:00"),
            (2, "00:10:00"),
        ]
        assert stats.window_start == START
        assert stats.window_end == END

    async def test_zero_row_for_quiet_monitor(self):
        store = FakeHeartbeatStore(
            entities=[_monitor(1), _monitor(2)],
            observations={2: [Observation(2, START + timedelta(minutes=5), True)]},
        )
        stats = await _aggregator(store).compute(START, END)

        assert stats.intervals == []
        assert [t.total_formatted for t in stats.totals] == ["00:00:00", "00:00:00"]

    async def test_no_monitors(self):
        stats = await _aggregator(FakeHeartbeatStore(entities=[])).compute(START, END)
        assert stats.intervals == []
        assert stats.totals == []

    async def test_order_follows_listing_not_completion(self):
        entities = [_monitor(i) for i in range(1, 6)]
        store = FakeHeartbeatStore(
            entities=entities,
            observations={i: _outage(i, i, i + 1) for i in range(1, 6)},
            # First-listed monitors finish last
            delays={1: 0.05, 2: 0.04, 3: 0.03, 4: 0.02, 5: 0.0},
        )
        stats = await _aggregator(store, concurrency_limit=5).compute(START, END)

        assert [t.entity_id for t in stats.totals] == [1, 2, 3, 4, 5]
        assert [i.entity_id for i in stats.intervals] == [1, 2, 3, 4, 5]

    async def test_intra_monitor_order_is_chronological(self):
        store = FakeHeartbeatStore(
            entities=[_monitor(1)],
            observations={1: _outage(1, 1, 2) + _outage(1, 30, 31) + _outage(1, 45)},
        )
        stats = await _aggregator(store).compute(START, END)

        downs = [i.down_at for i in stats.intervals]
        assert downs == sorted(downs)
        assert stats.intervals[-1].ongoing is True
        assert stats.totals[0].total == timedelta(minutes=17)

    async def test_concurrency_is_bounded(self):
        entities = [_monitor(i) for i in range(1, 21)]
        store = FakeHeartbeatStore(entities=entities, delays={i: 0.01 for i in range(1, 21)})
        await _aggregator(store, concurrency_limit=3).compute(START, END)

        assert len(store.range_calls) == 20
        assert store.max_in_flight <= 3
        assert store.max_in_flight > 1

    async def test_aware_non_utc_window_is_normalised(self):
        plus_two = timezone(timedelta(hours=2))
        store = FakeHeartbeatStore(entities=[_monitor(1)], observations={1: _outage(1, 10, 25)})
        stats = await _aggregator(store).compute(
            START.astimezone(plus_two), END.astimezone(plus_two)
        )

        assert stats.window_start == START
        assert stats.window_start.utcoffset() == timedelta(0)
        assert stats.totals[0].total_formatted == "00:15:00"

    async def test_passes_are_independent(self):
        store = FakeHeartbeatStore(entities=[_monitor(1)], observations={1: _outage(1, 10, 25)})
        aggregator = _aggregator(store)

        first = await aggregator.compute(START, END)
        second = await aggregator.compute(START, END)
        assert first.intervals == second.intervals
        assert len(second.intervals) == 1
        assert len(store.range_calls) == 2


@pytest.mark.asyncio
class TestWindowValidation:
    async def test_inverted_window_rejected_before_fetch(self):
        store = FakeHeartbeatStore(entities=[_monitor(1)])
        with pytest.raises(InvalidWindowError):
            await _aggregator(store).compute(END, START)
        assert store.list_calls == 0
        assert store.range_calls == []

    async def test_empty_window_allowed(self):
        store = FakeHeartbeatStore(entities=[_monitor(1)])
        stats = await _aggregator(store).compute(START, START)
        assert stats.totals[0].total_formatted == "00:00:00"

    async def test_naive_bounds_rejected(self):
        store = FakeHeartbeatStore(entities=[_monitor(1)])
        with pytest.raises(InvalidWindowError):
            await _aggregator(store).compute(START.replace(tzinfo=None), END)
        assert store.list_calls == 0

    async def test_max_window(self):
        store = FakeHeartbeatStore(entities=[_monitor(1)])
        aggregator = _aggregator(store, max_window=timedelta(minutes=30))
        with pytest.raises(InvalidWindowError):
            await aggregator.compute(START, END)


def test_concurrency_limit_must_be_positive():
    store = FakeHeartbeatStore(entities=[])
    with pytest.raises(ValueError):
        _aggregator(store, concurrency_limit=0)


@pytest.mark.asyncio
class TestFailurePolicy:
    async def test_store_failure_fails_whole_pass(self):
        store = FakeHeartbeatStore(
            entities=[_monitor(1), _monitor(2), _monitor(3)],
            observations={1: _outage(1, 10, 25)},
            failures={2: ConnectionError("database is locked")},
        )
        with pytest.raises(EntityFetchError) as exc_info:
            await _aggregator(store).compute(START, END)

        err = exc_info.value
        assert err.monitor_id == 2
        assert err.details["monitor_id"] == 2
        assert err.status == 502
        assert "database is locked" in err.message

    async def test_integrity_failure_names_monitor(self):
        store = FakeHeartbeatStore(
            entities=[_monitor(1), _monitor(7)],
            failures={7: ObservationIntegrityError("Heartbeat is missing its time or status.")},
        )
        with pytest.raises(EntityFetchError) as exc_info:
            await _aggregator(store).compute(START, END)

        assert exc_info.value.monitor_id == 7
        assert exc_info.value.details["cause"] == "malformed_observation"

    async def test_out_of_order_heartbeats_fail_the_pass(self):
        store = FakeHeartbeatStore(
            entities=[_monitor(1)],
            observations={1: [
                Observation(1, START + timedelta(minutes=20), False),
                Observation(1, START + timedelta(minutes=10), True),
            ]},
        )
        with pytest.raises(EntityFetchError) as exc_info:
            await _aggregator(store).compute(START, END)
        assert exc_info.value.monitor_id == 1

    async def test_listing_failure_is_reported(self):
        store = FakeHeartbeatStore(
            entities=[_monitor(1)],
            list_failure=ConnectionError("database is locked"),
        )
        with pytest.raises(StoreUnavailableError) as exc_info:
            await _aggregator(store).compute(START, END)

        err = exc_info.value
        assert err.code == "store_unavailable"
        assert err.status == 502
        assert "database is locked" in err.message
        assert store.range_calls == []

    async def test_listing_integrity_error_passes_through(self):
        store = FakeHeartbeatStore(
            entities=[],
            list_failure=ObservationIntegrityError("Monitor row is malformed."),
        )
        with pytest.raises(ObservationIntegrityError):
            await _aggregator(store).compute(START, END)
