"""Tool contract, metadata and schema-first function tools.

Built-in tools live in tool_engine.tools.builtin and are imported from there
explicitly, since they depend on the registry.
"""

from tool_engine.tools.base import Tool, ToolHandle, TypedToolHandle
from tool_engine.tools.function import (
    FunctionTool,
    FunctionToolBuilder,
    load_function_tools,
    parse_function_spec,
)
from tool_engine.tools.metadata import ToolMetadata

__all__ = [
    "FunctionTool",
    "FunctionToolBuilder",
    "Tool",
    "ToolHandle",
    "ToolMetadata",
    "TypedToolHandle",
    "load_function_tools",
    "parse_function_spec",
]
