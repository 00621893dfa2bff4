"""
Health checks for the flow compiler service.

The compiler has no external dependencies, so health and liveness only
report that the process is up and which flow format it emits.
"""
from fastapi import APIRouter, status
from pydantic import BaseModel
from datetime import datetime, timezone
import time

from flow_service.config import settings

router = APIRouter()

# Track service start time
SERVICE_START_TIME = time.time()


# ============================================================================
# RESPONSE MODELS
# ============================================================================

class HealthResponse(BaseModel):
    """Simple health check response model"""
    status: str
    service: str
    version: str
    environment: str
    flow_json_version: str
    uptime_seconds: float
    timestamp: datetime

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "service": "Flow Document Compiler",
                "version": "0.1.0",
                "environment": "development",
                "flow_json_version": "7.3",
                "uptime_seconds": 3600.5,
                "timestamp": "2026-01-01T12:00:00Z"
            }
        }


class LivenessResponse(BaseModel):
    """Liveness probe response"""
    status: str
    timestamp: str

    class Config:
        json_schema_extra = {
            "example": {
                "status": "alive",
                "timestamp": "2026-01-01T12:00:00+00:00"
            }
        }


# ============================================================================
# BASIC HEALTH CHECK
# ============================================================================

@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Service health check",
    description="Returns the current health status of the flow compiler"
)
async def health_check():
    """
    Health check endpoint.

    Used by monitoring systems and load balancers.
    """
    return HealthResponse(
        status="healthy",
        service=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        flow_json_version=settings.flow_json_version,
        uptime_seconds=round(time.time() - SERVICE_START_TIME, 2),
        timestamp=datetime.now(timezone.utc)
    )


# ============================================================================
# LIVENESS PROBE
# ============================================================================

@router.get(
    "/health/live",
    response_model=LivenessResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Liveness probe",
    description="Liveness probe. No dependency checks."
)
async def liveness_check() -> LivenessResponse:
    # No logging in liveness probe
    return LivenessResponse(
        status="alive",
        timestamp=datetime.now(timezone.utc).isoformat()
    )
