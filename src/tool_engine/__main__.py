"""CLI entry point for tool-engine.

This module provides the command-line interface for starting the tool-engine
HTTP server. It can be invoked as `tool-engine` (via the script entry point)
or `python -m tool_engine`.
"""

import argparse
import logging
import sys

import uvicorn

from tool_engine import __version__, create_app
from tool_engine.config import ToolEngineSettings


def main() -> None:
    """Main entry point for the tool-engine CLI.

    Parses command-line arguments and starts the uvicorn server with the
    FastAPI application.
    """
    parser = argparse.ArgumentParser(
        prog="tool-engine",
        description="Typed tool registry and executor for AI orchestration",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"tool-engine {__version__}",
    )

    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host to bind the server to (default: 127.0.0.1, can be set via TOOL_ENGINE_HOST)",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind the server to (default: 8000, can be set via TOOL_ENGINE_PORT)",
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-attempt tool timeout in seconds (default: 30, can be set via TOOL_ENGINE_TOOL_TIMEOUT)",
    )

    parser.add_argument(
        "--retries",
        type=int,
        default=None,
        help="Retries after a failed attempt (default: 0, can be set via TOOL_ENGINE_MAX_RETRIES)",
    )

    parser.add_argument(
        "--functions-dir",
        type=str,
        default=None,
        help="Directory of JSON function specs (can be set via TOOL_ENGINE_FUNCTIONS_DIR)",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO, can be set via TOOL_ENGINE_LOG_LEVEL)",
    )

    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development (uvicorn --reload)",
    )

    args = parser.parse_args()

    # Build settings, CLI args override environment variables
    settings_kwargs = {}
    if args.host is not None:
        settings_kwargs["host"] = args.host
    if args.port is not None:
        settings_kwargs["port"] = args.port
    if args.timeout is not None:
        settings_kwargs["tool_timeout"] = args.timeout
    if args.retries is not None:
        settings_kwargs["max_retries"] = args.retries
    if args.functions_dir is not None:
        settings_kwargs["functions_dir"] = args.functions_dir
    if args.log_level is not None:
        settings_kwargs["log_level"] = args.log_level

    settings = ToolEngineSettings(**settings_kwargs)

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Create the FastAPI app
    app = create_app(settings=settings)

    # Start uvicorn
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=args.reload,
    )


if __name__ == "__main__":
    sys.exit(main())
