from fastapi import APIRouter

from downtime_stats.api.v1.downtime import router as downtime_router
from downtime_stats.api.v1.health import router as health_router
from downtime_stats.api.v1.monitors import router as monitors_router
from downtime_stats.api.v1.websocket import router as websocket_router

v1_router = APIRouter()

v1_router.include_router(health_router, tags=["Health"])
v1_router.include_router(monitors_router, tags=["Monitors"])
v1_router.include_router(downtime_router, tags=["Downtime"])

# WebSocket
v1_router.include_router(websocket_router, tags=["WebSocket"])
