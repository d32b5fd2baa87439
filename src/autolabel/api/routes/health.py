"""Health check endpoint for container liveness probes."""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Response model for the health endpoint."""

    status: str


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness probe",
    description="Returns healthy if the process is running.",
)
async def health() -> HealthResponse:
    """Check if the service is alive.

    This endpoint always returns 200 if the process is running.
    It does not check the moderation or chat services.

    Returns:
        Health status
    """
    return HealthResponse(status="healthy")
