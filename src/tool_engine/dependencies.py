"""Dependency injection providers for FastAPI endpoints.

This module provides FastAPI dependency functions that are used across
multiple routers to inject the settings and the engine objects created at
startup.
"""

from functools import lru_cache

from fastapi import HTTPException, Request

from tool_engine.cache import ToolCallCache
from tool_engine.config import ToolEngineSettings
from tool_engine.executor import ToolExecutor
from tool_engine.monitoring import MetricsCollector
from tool_engine.registry import ToolRegistry


@lru_cache
def get_settings() -> ToolEngineSettings:
    """Get the application settings instance.

    This function is cached so that the same settings instance is reused
    across all requests. Settings are loaded from environment variables
    with the TOOL_ENGINE_ prefix.

    Returns:
        ToolEngineSettings: The application configuration settings.
    """
    return ToolEngineSettings()


def get_registry(request: Request) -> ToolRegistry:
    """Get the tool registry from app state.

    Args:
        request: The FastAPI request object.

    Returns:
        ToolRegistry: The registry created during application startup.

    Raises:
        HTTPException: If the registry is not initialized (503 Service Unavailable).
    """
    if not hasattr(request.app.state, "registry"):
        raise HTTPException(
            status_code=503,
            detail="Tool registry not initialized",
        )
    return request.app.state.registry


def get_executor(request: Request) -> ToolExecutor:
    """Get the tool executor from app state.

    Raises:
        HTTPException: If the executor is not initialized (503 Service Unavailable).
    """
    if not hasattr(request.app.state, "executor"):
        raise HTTPException(
            status_code=503,
            detail="Tool executor not initialized",
        )
    return request.app.state.executor


def get_metrics(request: Request) -> MetricsCollector:
    if not hasattr(request.app.state, "metrics"):
        raise HTTPException(
            status_code=503,
            detail="Metrics collector not initialized",
        )
    return request.app.state.metrics


def get_cache(request: Request) -> ToolCallCache | None:
    """Get the result cache from app state, None when caching is disabled."""
    return getattr(request.app.state, "cache", None)
