"""Downtime aggregator: per-monitor fetch-and-fold fan-out with ordered fan-in."""

import asyncio
import time
from datetime import datetime, timedelta

import structlog

from downtime_stats.core.exceptions import DowntimeStatsError, EntityFetchError, StoreUnavailableError
from downtime_stats.services.downtime.fold import fold_observations
from downtime_stats.services.downtime.models import DowntimeStats, EntityDescriptor, EntityDowntime
from downtime_stats.services.downtime.stores import EntityStore, ObservationStore
from downtime_stats.services.downtime.window import validate_window

logger = structlog.get_logger()

DEFAULT_CONCURRENCY_LIMIT = 8


class DowntimeAggregator:
    """Computes downtime intervals and totals for every monitor over a window.

    Each monitor is fetched and folded in its own task. A shared
    ``asyncio.Semaphore`` caps how many range queries hit the store at once.
    Results are written into a slot per monitor, so output order always
    follows the store's listing order regardless of completion order.

    Failure policy: if any monitor's fetch or fold fails, the whole pass
    fails with ``EntityFetchError`` naming that monitor. No partial result
    is returned.
    """

    def __init__(
        self,
        entity_store: EntityStore,
        observation_store: ObservationStore,
        concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT,
        max_window: timedelta | None = None,
    ):
        if concurrency_limit < 1:
            raise ValueError("concurrency_limit must be at least 1")
        self._entity_store = entity_store
        self._observation_store = observation_store
        self._concurrency_limit = concurrency_limit
        self._max_window = max_window
        self._semaphore = asyncio.Semaphore(concurrency_limit)

    @property
    def concurrency_limit(self) -> int:
        return self._concurrency_limit

    async def compute(self, window_start: datetime, window_end: datetime) -> DowntimeStats:
        """Run one aggregation pass over ``[window_start, window_end]``."""
        start, end = validate_window(window_start, window_end, self._max_window)
        began = time.perf_counter()

        entities = await self._list_entities()
        logger.info(
            "downtime_pass_started",
            window_start=start.isoformat(),
            window_end=end.isoformat(),
            monitors=len(entities),
            concurrency_limit=self._concurrency_limit,
        )

        slots: list[EntityDowntime | None] = [None] * len(entities)

        async def _run(index: int, entity: EntityDescriptor) -> None:
            slots[index] = await self._fetch_and_fold(entity, start, end)

        tasks = [
            asyncio.create_task(_run(i, entity), name=f"downtime-{entity.id}")
            for i, entity in enumerate(entities)
        ]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        stats = DowntimeStats(window_start=start, window_end=end)
        for entity, result in zip(entities, slots):
            if result is None:
                raise RuntimeError(f"monitor {entity.id} finished without a result")
            stats.intervals.extend(result.intervals)
            stats.totals.append(result.to_total())

        logger.info(
            "downtime_pass_completed",
            monitors=len(entities),
            intervals=len(stats.intervals),
            elapsed_ms=round((time.perf_counter() - began) * 1000, 1),
        )
        return stats

    async def _list_entities(self) -> list[EntityDescriptor]:
        try:
            return await self._entity_store.list_entities()
        except asyncio.CancelledError:
            raise
        except DowntimeStatsError:
            raise
        except Exception as exc:
            logger.warning("downtime_monitor_listing_failed", error=str(exc))
            raise StoreUnavailableError(
                f"Could not list monitors: {str(exc) or type(exc).__name__}"
            ) from exc

    async def _fetch_and_fold(
        self, entity: EntityDescriptor, start: datetime, end: datetime
    ) -> EntityDowntime:
        try:
            async with self._semaphore:
                observations = await self._observation_store.range_query(entity.id, start, end)
            return fold_observations(entity, observations, start, end)
        except asyncio.CancelledError:
            raise
        except DowntimeStatsError as exc:
            logger.warning("downtime_entity_fetch_failed", monitor_id=entity.id, code=exc.code, error=exc.message)
            raise EntityFetchError(entity.id, exc.message, details={"cause": exc.code}) from exc
        except Exception as exc:
            logger.warning("downtime_entity_fetch_failed", monitor_id=entity.id, error=str(exc))
            raise EntityFetchError(entity.id, str(exc) or type(exc).__name__) from exc
