# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Health check endpoints.

This module provides health and readiness endpoints for the API.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from caresim import __version__
from caresim.core.config import get_settings
from caresim.infrastructure.store import StoreError, get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health")

# Track server start time for uptime calculation
_server_start_time = time.time()


class ComponentHealth(BaseModel):
    """Individual component health status."""
    status: str = Field(description="Component status")
    latency_ms: float | None = Field(None, description="Response latency in ms")
    message: str | None = Field(None, description="Additional status message")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(description="Overall health status")
    timestamp: datetime = Field(description="Current server timestamp")
    version: str = Field(description="API version")
    environment: str = Field(description="Deployment environment")
    uptime_seconds: int = Field(description="Server uptime in seconds")


class ReadinessResponse(BaseModel):
    """Readiness check response model."""
    ready: bool = Field(description="Whether the service is ready")
    checks: dict[str, Any] = Field(description="Individual check results")


async def check_store() -> ComponentHealth:
    """Check that the document store answers a shallow root read."""
    try:
        store = get_store()
        start = time.time()
        await store.keys("")
        latency = (time.time() - start) * 1000
        return ComponentHealth(status="healthy", latency_ms=round(latency, 2))
    except StoreError as e:
        logger.error("Document store health check failed: %s", e)
        return ComponentHealth(status="unhealthy", message=str(e))


@router.get("", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness check. Does not touch the document store.

    Returns:
        HealthResponse with process status.
    """
    settings = get_settings()
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=__version__,
        environment=settings.environment,
        uptime_seconds=int(time.time() - _server_start_time),
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check() -> ReadinessResponse:
    """Check if the API is ready to accept traffic.

    Returns:
        ReadinessResponse with individual check results.
    """
    store_health = await check_store()
    checks: dict[str, Any] = {
        "store": {"status": store_health.status, "latency_ms": store_health.latency_ms},
    }
    return ReadinessResponse(ready=store_health.status == "healthy", checks=checks)
