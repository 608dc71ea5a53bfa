"""Entity and observation stores consumed by the aggregator."""

from abc import ABC, abstractmethod
from datetime import datetime

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from downtime_stats.core.database import STATUS_DOWN, STATUS_UP, Heartbeat, Monitor
from downtime_stats.core.exceptions import ObservationIntegrityError
from downtime_stats.services.downtime.models import EntityDescriptor, Observation
from downtime_stats.services.downtime.window import assume_utc, to_naive_utc


class EntityStore(ABC):
    @abstractmethod
    async def list_entities(self) -> list[EntityDescriptor]:
        """All monitors to include in a pass, in a stable order."""
        ...


class ObservationStore(ABC):
    @abstractmethod
    async def range_query(self, entity_id: int, start: datetime, end: datetime) -> list[Observation]:
        """Up/down heartbeats with ``start <= time <= end``, ascending.

        Must tolerate concurrent calls.
        """
        ...


class SqlHeartbeatStore(EntityStore, ObservationStore):
    """Both stores over the ``monitors`` and ``heartbeats`` tables.

    Each call opens its own session, so concurrent range queries never share
    a connection.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def list_entities(self) -> list[EntityDescriptor]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Monitor.id, Monitor.name, Monitor.url).order_by(Monitor.id)
            )
            return [EntityDescriptor(id=row.id, name=row.name, locator=row.url) for row in result.all()]

    async def range_query(self, entity_id: int, start: datetime, end: datetime) -> list[Observation]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Heartbeat.id, Heartbeat.status, Heartbeat.time)
                .where(
                    Heartbeat.monitor_id == entity_id,
                    Heartbeat.time >= to_naive_utc(start),
                    Heartbeat.time <= to_naive_utc(end),
                    # Pending/maintenance beats are not up/down samples; NULL status is kept so it can be rejected
                    or_(Heartbeat.status.is_(None), Heartbeat.status.in_((STATUS_DOWN, STATUS_UP))),
                )
                .order_by(Heartbeat.time.asc(), Heartbeat.id.asc())
            )
            rows = result.all()

        return [self._to_observation(entity_id, row) for row in rows]

    @staticmethod
    def _to_observation(entity_id: int, row) -> Observation:
        if row.time is None or row.status is None:
            raise ObservationIntegrityError(
                "Heartbeat is missing its time or status.",
                details={"monitor_id": entity_id, "heartbeat_id": row.id},
            )
        return Observation(
            entity_id=entity_id,
            timestamp=assume_utc(row.time),
            is_up=row.status == STATUS_UP,
        )
