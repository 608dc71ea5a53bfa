"""Window validation and timezone normalisation.

Every timestamp inside a pass is a UTC-aware datetime. The database stores
naive UTC, and the API/CLI layers accept naive input as UTC; those are the
only two places a naive datetime is converted, via ``assume_utc``.
"""

from datetime import datetime, timedelta, timezone

from downtime_stats.core.exceptions import InvalidWindowError


def assume_utc(value: datetime) -> datetime:
    """Attach UTC to a naive datetime; convert an aware one to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_naive_utc(value: datetime) -> datetime:
    """Inverse of ``assume_utc`` for database comparisons."""
    return assume_utc(value).replace(tzinfo=None)


def validate_window(
    window_start: datetime,
    window_end: datetime,
    max_span: timedelta | None = None,
) -> tuple[datetime, datetime]:
    """Reject naive, inverted or oversized windows. Returns both bounds in UTC."""
    for label, value in (("start", window_start), ("end", window_end)):
        if value.tzinfo is None or value.utcoffset() is None:
            raise InvalidWindowError(
                f"Window {label} must be timezone-aware.",
                details={label: value.isoformat()},
            )

    start = window_start.astimezone(timezone.utc)
    end = window_end.astimezone(timezone.utc)

    if start > end:
        raise InvalidWindowError(
            "Window start must not be after window end.",
            details={"start": start.isoformat(), "end": end.isoformat()},
        )

    if max_span is not None and end - start > max_span:
        raise InvalidWindowError(
            f"Window exceeds the maximum span of {max_span.days} days.",
            details={"start": start.isoformat(), "end": end.isoformat()},
        )

    return start, end
