"""FastAPI application factory and lifespan management.

This module contains the create_app() factory function that creates and
configures the FastAPI application instance, including lifespan management
for the tool registry, metrics collector and executor.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Mapping

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tool_engine.config import ToolEngineSettings
from tool_engine.errors import ToolError
from tool_engine.executor import ToolExecutor
from tool_engine.monitoring import MetricsCollector
from tool_engine.registry import RegistryBuilder, ToolRegistry
from tool_engine.routers import health, metrics, tools
from tool_engine.tools.builtin import builtin_tools
from tool_engine.tools.function import Handler, load_function_tools

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for FastAPI application.

    Builds the registry (seeded by the caller, plus built-in and function
    tools as configured), the metrics collector, the optional result cache
    and the executor once at
    startup and stores them in app.state for reuse across all requests.

    Args:
        app: The FastAPI application instance.

    Yields:
        None: Control is yielded while the app is running.
    """
    settings: ToolEngineSettings = app.state.settings
    registry: ToolRegistry = app.state.seed_registry or ToolRegistry()
    builder = RegistryBuilder(registry)

    if settings.register_builtin_tools:
        for tool in builtin_tools(http_timeout=settings.http_tool_timeout):
            builder.try_add_tool(tool)

    functions_dir = settings.resolved_functions_dir
    if functions_dir is not None:
        try:
            for function_tool in load_function_tools(
                functions_dir, app.state.function_handlers
            ):
                builder.try_add_handle(function_tool)
        except ToolError as e:
            logger.warning(f"Could not load function specs from {functions_dir}: {e}")

    app.state.registry = builder.build()
    app.state.metrics = MetricsCollector()
    app.state.cache = settings.build_cache()
    app.state.executor = ToolExecutor(
        registry,
        config=settings.to_execution_config(),
        metrics=app.state.metrics,
        cache=app.state.cache,
    )
    logger.info(f"Tool engine ready with {len(registry)} tools: {registry.tool_names()}")

    yield

    # Shutdown: release resources held by tools
    await registry.aclose()
    logger.info("Tools closed")


def create_app(
    settings: ToolEngineSettings | None = None,
    registry: ToolRegistry | None = None,
    function_handlers: Mapping[str, Handler] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional ToolEngineSettings instance. If not provided,
                  settings will be loaded from environment variables.
        registry: Optional registry with application tools already
                  registered. Built-in tools are added to it at startup.
        function_handlers: Handlers for the function specs found in
                  settings.functions_dir, keyed by function name.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        from tool_engine.dependencies import get_settings

        settings = get_settings()

    app = FastAPI(
        title="tool-engine",
        description="Typed tool registry and executor for AI orchestration",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store configuration in app.state for lifespan access
    app.state.settings = settings
    app.state.seed_registry = registry
    app.state.function_handlers = dict(function_handlers or {})

    # Configure CORS
    # Note: FastAPI's type hints for add_middleware are overly strict
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routers
    app.include_router(health.router)
    app.include_router(tools.router)
    app.include_router(metrics.router)

    return app
