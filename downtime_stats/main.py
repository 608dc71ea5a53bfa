from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import downtime_stats.core.database as db_module
from downtime_stats.api.v1.router import v1_router
from downtime_stats.config import settings
from downtime_stats.core.exceptions import DowntimeStatsError, downtime_error_handler
from downtime_stats.core.middleware import AuthMiddleware, RequestLoggingMiddleware
from downtime_stats.dependencies import build_aggregator

_NAME_TO_LEVEL = {
    "debug": 10,
    "info": 20,
    "warning": 30,
    "warn": 30,
    "error": 40,
    "critical": 50,
}

structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        _NAME_TO_LEVEL.get(settings.downtime_log_level.lower(), 20)
    ),
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    await db_module.init_db()

    app.state.downtime_aggregator = build_aggregator()

    logger.info(
        "downtime_backend_starting",
        db_url=db_module.engine.url.render_as_string(hide_password=True),
        concurrency_limit=settings.downtime_concurrency_limit,
    )
    yield

    await db_module.close_db()
    logger.info("downtime_backend_stopping")


app = FastAPI(
    title="Downtime Stats Backend",
    description="Downtime intervals and totals computed from monitor heartbeats",
    version="0.1.0",
    lifespan=lifespan,
)

# Exception handler
app.add_exception_handler(DowntimeStatsError, downtime_error_handler)

# Middleware (Starlette: last-added = outermost)
# 1. RequestLogging (outermost): logs all requests including auth rejections
# 2. CORS: handles preflight before auth
# 3. Auth: Bearer API key validation (innermost)
app.add_middleware(AuthMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.downtime_cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

# Routes
app.include_router(v1_router)


@app.get("/")
async def root():
    return {"service": "downtime-stats-backend", "version": "0.1.0"}
