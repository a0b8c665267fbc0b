"""
Health check endpoint.
"""

import time
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

from src.api.dependencies import DispatcherDep, StoreDep

router = APIRouter(tags=["health"])

# Track startup time for uptime
_start_time: Optional[float] = None


def set_start_time(t: float):
    """Set application start time."""
    global _start_time
    _start_time = t


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    store_connected: bool
    webhook_configured: bool
    uptime_seconds: float


@router.get("/health", response_model=HealthResponse)
async def health_check(store: StoreDep, dispatcher: DispatcherDep):
    """
    Service health check.
    Returns status, store connectivity, webhook configuration, uptime.
    """
    store_connected = store.health_check()

    uptime_seconds = 0.0
    if _start_time:
        uptime_seconds = round(time.time() - _start_time, 2)

    return HealthResponse(
        status="healthy" if store_connected else "degraded",
        store_connected=store_connected,
        webhook_configured=getattr(dispatcher, "configured", False),
        uptime_seconds=uptime_seconds,
    )
