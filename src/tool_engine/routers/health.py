"""Health check endpoint router."""

import logging

from fastapi import APIRouter, Request

from tool_engine.models.health import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Health check endpoint.

    Returns the current health status and version of tool-engine, and the
    number of registered tools once startup has completed.

    Args:
        request: The FastAPI request object.

    Returns:
        HealthResponse: Health status and version information.
    """
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        logger.debug("Health check before the registry was initialized")
        return HealthResponse(status="starting", version=request.app.version)

    return HealthResponse(
        status="ok",
        version=request.app.version,
        tool_count=len(registry),
    )
