"""Downtime interval aggregation over stored heartbeats."""

from downtime_stats.services.downtime.aggregator import DowntimeAggregator
from downtime_stats.services.downtime.fold import DowntimeFold, fold_observations
from downtime_stats.services.downtime.models import (
    DowntimeInterval,
    DowntimeStats,
    EntityDescriptor,
    LinkState,
    Observation,
    TotalDowntime,
    format_duration,
)
from downtime_stats.services.downtime.stores import EntityStore, ObservationStore, SqlHeartbeatStore

__all__ = [
    "DowntimeAggregator",
    "DowntimeFold",
    "fold_observations",
    "DowntimeInterval",
    "DowntimeStats",
    "EntityDescriptor",
    "LinkState",
    "Observation",
    "TotalDowntime",
    "format_duration",
    "EntityStore",
    "ObservationStore",
    "SqlHeartbeatStore",
]
