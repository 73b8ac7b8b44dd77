"""
Health check endpoint.

Used by the load balancer; it touches no dependencies and needs no token.
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    timestamp: datetime


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return 200 while the process is serving requests."""
    return HealthResponse(status="ok", timestamp=datetime.now(timezone.utc))
