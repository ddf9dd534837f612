"""Pydantic models for API request and response schemas.

This package contains all Pydantic models used for validating and
serializing API requests and responses across all endpoints.
"""

from tool_engine.models.health import HealthResponse
from tool_engine.models.tools import (
    BatchInvocation,
    BatchInvokeRequest,
    BatchInvokeResponse,
    InvokeToolRequest,
    ToolDetailResponse,
    ToolListResponse,
    ToolSummary,
)

__all__ = [
    "BatchInvocation",
    "BatchInvokeRequest",
    "BatchInvokeResponse",
    "HealthResponse",
    "InvokeToolRequest",
    "ToolDetailResponse",
    "ToolListResponse",
    "ToolSummary",
]
