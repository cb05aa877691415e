"""
Health check endpoints.

Provides endpoints for monitoring application health and readiness.
"""

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from shared.database import ping
from shared.exceptions import AppError, ErrorKind

from ..dependencies import ServiceContainer, get_container

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response model."""

    status: str
    database: str


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """
    Basic health check endpoint.

    Returns 200 if the API is running.
    """
    return HealthResponse(status="healthy", version=request.app.version)


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(container: ServiceContainer = Depends(get_container)) -> ReadinessResponse:
    """
    Readiness check endpoint.

    Returns 503 until the database answers a ping.
    """
    if not await ping(container.database):
        raise AppError(
            "Database is unavailable.",
            kind=ErrorKind.SERVICE_UNAVAILABLE,
            metadata={"database": "disconnected"},
        )
    return ReadinessResponse(status="ready", database="connected")
