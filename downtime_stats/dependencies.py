from datetime import timedelta

from fastapi import Request
from sqlalchemy.ext.asyncio import async_sessionmaker

import downtime_stats.core.database as db_module
from downtime_stats.config import settings
from downtime_stats.services.downtime import DowntimeAggregator, SqlHeartbeatStore


def build_aggregator(session_factory: async_sessionmaker | None = None) -> DowntimeAggregator:
    """Aggregator over the SQL heartbeat store, sized from settings."""
    store = SqlHeartbeatStore(session_factory or db_module.async_session)
    return DowntimeAggregator(
        entity_store=store,
        observation_store=store,
        concurrency_limit=settings.downtime_concurrency_limit,
        max_window=timedelta(days=settings.downtime_max_window_days),
    )


def get_aggregator(request: Request) -> DowntimeAggregator:
    """Return the downtime aggregator stored on app state during lifespan."""
    return request.app.state.downtime_aggregator
