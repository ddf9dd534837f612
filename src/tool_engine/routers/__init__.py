"""FastAPI routers for API endpoints.

This package contains all route handlers organized by resource type.
"""

from tool_engine.routers import health, metrics, tools

__all__ = [
    "health",
    "metrics",
    "tools",
]
