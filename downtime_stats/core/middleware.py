import time
from datetime import datetime, timezone

import structlog
from fastapi import Request, Response
from sqlalchemy import select, update
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse

from downtime_stats.core.database import ApiKey, async_session
from downtime_stats.core.exceptions import AuthenticationError
from downtime_stats.core.security import hash_api_key, is_api_key

logger = structlog.get_logger()

# Paths that skip authentication
PUBLIC_PATHS = {"/health", "/", "/docs", "/openapi.json", "/redoc"}


class AuthMiddleware(BaseHTTPMiddleware):
    """Validates the Bearer API key on every request except public paths.

    WebSocket routes authenticate themselves via the ``token`` query param,
    since BaseHTTPMiddleware only sees HTTP requests.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        auth_header = request.headers.get("authorization", "")
        if not auth_header.startswith("Bearer "):
            error = AuthenticationError("Missing or malformed Authorization header.")
            return JSONResponse(status_code=error.status, content=error.to_dict())

        token = auth_header.removeprefix("Bearer ").strip()
        if not is_api_key(token):
            error = AuthenticationError("Invalid or revoked API key.")
            return JSONResponse(status_code=error.status, content=error.to_dict())

        token_hash = hash_api_key(token)

        async with async_session() as session:
            result = await session.execute(
                select(ApiKey).where(ApiKey.key_hash == token_hash, ApiKey.is_active == True)  # noqa: E712
            )
            key_row = result.scalar_one_or_none()

            if key_row is None:
                error = AuthenticationError("Invalid or revoked API key.")
                return JSONResponse(status_code=error.status, content=error.to_dict())

            # Store key info on request state for downstream use
            request.state.api_key_id = key_row.id
            request.state.api_key_prefix = key_row.key_prefix

            await session.execute(
                update(ApiKey)
                .where(ApiKey.id == key_row.id)
                .values(last_used_at=datetime.now(timezone.utc).replace(tzinfo=None))
            )
            await session.commit()

        return await call_next(request)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every request as structured JSON."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        latency_ms = round((time.perf_counter() - start) * 1000, 1)

        logger.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            latency_ms=latency_ms,
            user_key_prefix=getattr(request.state, "api_key_prefix", None),
        )

        return response
