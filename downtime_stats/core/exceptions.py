from fastapi import Request
from fastapi.responses import JSONResponse


class DowntimeStatsError(Exception):
    """Base exception for downtime stats API errors."""

    def __init__(
        self,
        code: str,
        message: str,
        status: int = 500,
        details: dict | None = None,
    ):
        self.code = code
        self.message = message
        self.status = status
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        result = {
            "error": {
                "code": self.code,
                "message": self.message,
                "status": self.status,
            }
        }
        if self.details:
            result["error"]["details"] = self.details
        return result


class AuthenticationError(DowntimeStatsError):
    def __init__(self, message: str = "Invalid or missing API key.", details: dict | None = None):
        super().__init__(code="authentication_required", message=message, status=401, details=details)


class InvalidWindowError(DowntimeStatsError):
    def __init__(self, message: str = "Invalid aggregation window.", details: dict | None = None):
        super().__init__(code="invalid_window", message=message, status=400, details=details)


class ObservationIntegrityError(DowntimeStatsError):
    """A heartbeat row is missing its time or status, or arrived out of order."""

    def __init__(self, message: str = "Malformed heartbeat.", details: dict | None = None):
        super().__init__(code="malformed_observation", message=message, status=422, details=details)


class StoreUnavailableError(DowntimeStatsError):
    """The monitor listing could not be read, so no pass was started."""

    def __init__(self, message: str = "Monitor store is unavailable.", details: dict | None = None):
        super().__init__(code="store_unavailable", message=message, status=502, details=details)


class EntityFetchError(DowntimeStatsError):
    """Fetching or folding one monitor's heartbeats failed; the whole pass is aborted."""

    def __init__(self, monitor_id: int, reason: str, details: dict | None = None):
        self.monitor_id = monitor_id
        super().__init__(
            code="entity_fetch_failed",
            message=f"Downtime pass failed for monitor {monitor_id}: {reason}",
            status=502,
            details={"monitor_id": monitor_id, **(details or {})},
        )


async def downtime_error_handler(request: Request, exc: DowntimeStatsError) -> JSONResponse:
    """Global exception handler for DowntimeStatsError and subclasses."""
    return JSONResponse(status_code=exc.status, content=exc.to_dict())
