"""
Health check endpoints.

Provides endpoints for monitoring application health and readiness.
"""

from fastapi import APIRouter
from pydantic import BaseModel

from shared.config import get_settings
from ..dependencies import get_container

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response model."""

    status: str
    auth: str
    initialized: bool


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns 200 if the API is running.
    """
    return HealthResponse(status="healthy", version=get_settings().app_version)


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check() -> ReadinessResponse:
    """
    Readiness check endpoint.

    Reports whether the identity provider is configured ("degraded" when it
    is not) and whether the session controller finished its startup.
    """
    controller = get_container().session_controller
    initialized = controller.state.initialized if controller else False
    degraded = controller.degraded if controller else not get_settings().auth_configured

    return ReadinessResponse(
        status="ready" if initialized else "starting",
        auth="degraded" if degraded else "configured",
        initialized=initialized,
    )
