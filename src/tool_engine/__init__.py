"""tool-engine: Typed tool registry and executor for AI orchestration.

This package provides a registry of typed tools, an executor that applies
timeout, retry and parallelism policy to every invocation, and an optional
FastAPI surface exposing both over HTTP.
"""

from tool_engine.cache import ToolCallCache
from tool_engine.errors import (
    AlreadyExistsError,
    ErrorKind,
    ExecutionFailedError,
    InvalidParametersError,
    NotFoundError,
    ToolError,
    ToolTimeoutError,
    UnknownToolError,
)
from tool_engine.executor import (
    BackoffKind,
    ExecutionConfig,
    ExecutionResult,
    ExecutorBuilder,
    RetryMode,
    RetryPolicy,
    ToolExecutor,
)
from tool_engine.registry import RegistrationPanic, RegistryBuilder, ToolRegistry
from tool_engine.tools import FunctionTool, Tool, ToolHandle, ToolMetadata
from tool_engine.app import create_app

__version__ = "0.1.0"

__all__ = [
    "AlreadyExistsError",
    "BackoffKind",
    "ErrorKind",
    "ExecutionConfig",
    "ExecutionFailedError",
    "ExecutionResult",
    "ExecutorBuilder",
    "FunctionTool",
    "InvalidParametersError",
    "NotFoundError",
    "RegistrationPanic",
    "RegistryBuilder",
    "RetryMode",
    "RetryPolicy",
    "Tool",
    "ToolError",
    "ToolExecutor",
    "ToolHandle",
    "ToolMetadata",
    "ToolRegistry",
    "ToolCallCache",
    "ToolTimeoutError",
    "UnknownToolError",
    "create_app",
    "__version__",
]
