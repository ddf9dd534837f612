"""Health check response model."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response model for the health check endpoint.

    Attributes:
        status: Health status indicator ("ok" or "starting").
        version: The version of tool-engine.
        tool_count: Number of registered tools, None before startup.
    """

    status: str = Field(..., description="Health status of the service")
    version: str = Field(..., description="Version of tool-engine")
    tool_count: int | None = Field(
        default=None,
        description="Number of registered tools",
    )
