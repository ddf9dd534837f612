"""Concurrent tool registry and its builder.

The registry maps tool names to type-erased handles plus the metadata
captured at registration. It is shared by every executor and worker task that
needs tools; readers and writers may run on different threads, so the map is
guarded by a lock that is only ever held for a single dictionary access.
"""

import copy
import logging
import threading
from dataclasses import dataclass
from typing import Any, Iterator

from tool_engine.errors import (
    AlreadyExistsError,
    InvalidParametersError,
    NotFoundError,
    ToolError,
)
from tool_engine.tools.base import Tool, ToolHandle, TypedToolHandle
from tool_engine.tools.metadata import ToolMetadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Entry:
    handle: ToolHandle
    metadata: ToolMetadata


class RegistrationPanic(RuntimeError):
    """Raised by the fatal builder posture when a registration fails.

    Deliberately not a ToolError: it signals a programming mistake that
    should stop the process rather than be handled.
    """


class ToolRegistry:
    """Thread-safe directory of tools.

    Registration is append-mostly and usually happens at startup. Lookups
    return the handle itself, so executing a tool never holds the registry
    lock and never blocks other lookups or registrations.
    """

    def __init__(self) -> None:
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.RLock()

    @staticmethod
    def builder() -> "RegistryBuilder":
        """Create a RegistryBuilder for fluent construction."""
        return RegistryBuilder()

    def register(self, tool: Tool[Any, Any]) -> ToolMetadata:
        """Register a typed tool.

        Args:
            tool: The tool instance. The registry takes ownership of it.

        Returns:
            ToolMetadata: The metadata stored for the tool

        Raises:
            AlreadyExistsError: If a tool with the same name is registered
            InvalidParametersError: If the tool's metadata is invalid
        """
        try:
            handle = TypedToolHandle(tool)
        except (ValueError, TypeError, AttributeError) as e:
            # Blank names, or a missing or non-pydantic input_model
            raise InvalidParametersError(
                f"Invalid tool metadata: {e}", tool=getattr(tool, "name", None)
            ) from e
        return self.register_handle(handle)

    def register_handle(self, handle: ToolHandle) -> ToolMetadata:
        """Register an already type-erased tool handle.

        Args:
            handle: The handle, e.g. a FunctionTool

        Returns:
            ToolMetadata: The metadata stored for the tool

        Raises:
            AlreadyExistsError: If a tool with the same name is registered
        """
        metadata = handle.metadata.model_copy(deep=True)
        entry = _Entry(handle=handle, metadata=metadata)

        with self._lock:
            if metadata.name in self._entries:
                raise AlreadyExistsError(metadata.name)
            self._entries[metadata.name] = entry

        logger.info(f"Registered tool: {metadata.name} (version {metadata.version})")
        return metadata.model_copy(deep=True)

    def unregister(self, name: str) -> ToolHandle:
        """Remove a tool from the registry.

        Args:
            name: The tool name

        Returns:
            ToolHandle: The removed handle, so the caller can close it

        Raises:
            NotFoundError: If no tool is registered under the name
        """
        with self._lock:
            entry = self._entries.pop(name, None)

        if entry is None:
            raise NotFoundError(name)

        logger.info(f"Unregistered tool: {name}")
        return entry.handle

    def _get(self, name: str) -> _Entry | None:
        with self._lock:
            return self._entries.get(name)

    def _snapshot(self) -> list[_Entry]:
        with self._lock:
            return list(self._entries.values())

    def lookup(self, name: str) -> ToolHandle | None:
        """Get the handle for a tool, disabled or not."""
        entry = self._get(name)
        return entry.handle if entry else None

    def metadata(self, name: str) -> ToolMetadata | None:
        """Get a copy of the metadata for a tool."""
        entry = self._get(name)
        return entry.metadata.model_copy(deep=True) if entry else None

    def input_schema(self, name: str) -> dict[str, Any] | None:
        """Get a copy of the input schema for a tool."""
        entry = self._get(name)
        return copy.deepcopy(entry.metadata.input_schema) if entry else None

    def has_tool(self, name: str) -> bool:
        with self._lock:
            return name in self._entries

    def tool_names(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def all_metadata(self) -> list[ToolMetadata]:
        return [entry.metadata.model_copy(deep=True) for entry in self._snapshot()]

    def find_by_tag(self, tag: str) -> list[str]:
        """Names of all tools carrying the tag."""
        return [
            entry.metadata.name
            for entry in self._snapshot()
            if entry.metadata.has_tag(tag)
        ]

    def enabled_tools(self) -> list[str]:
        """Names of all enabled tools."""
        return [entry.metadata.name for entry in self._snapshot() if entry.metadata.enabled]

    def list_tools(self, include_disabled: bool = False) -> list[dict[str, Any]]:
        """Describe tools for introspection callers.

        Args:
            include_disabled: Also list disabled tools

        Returns:
            list[dict]: One {"name", "description", "input_schema"} dict per tool
        """
        return [
            {
                "name": entry.metadata.name,
                "description": entry.metadata.description,
                "input_schema": copy.deepcopy(entry.metadata.input_schema),
            }
            for entry in self._snapshot()
            if include_disabled or entry.metadata.enabled
        ]

    def to_function_specs(self) -> list[dict[str, Any]]:
        """Export enabled tools in OpenAI/Ollama function-calling format."""
        return [
            entry.metadata.model_copy(deep=True).to_function_spec()
            for entry in self._snapshot()
            if entry.metadata.enabled
        ]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("Cleared tool registry")

    async def aclose(self) -> None:
        """Close every registered tool.

        A failing close is logged and does not stop the others.
        """
        for entry in self._snapshot():
            try:
                await entry.handle.aclose()
            except Exception as e:
                logger.warning(f"Failed to close tool {entry.metadata.name}: {e}")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.tool_names())

    def __repr__(self) -> str:
        return f"ToolRegistry(tools={self.tool_names()!r})"


class RegistryBuilder:
    """Fluent construction of a ToolRegistry.

    The builder offers three postures over the same register() call:

    - with_tool: strict, the ToolError propagates to the caller
    - add_tool: fatal, the failure is raised as RegistrationPanic
    - try_add_tool: best-effort, the failure is dropped

    add_tool is meant for prototypes and tests where a broken registration is
    a bug; entry points that must stay up should use with_tool.
    """

    def __init__(self, registry: ToolRegistry | None = None) -> None:
        self._registry = registry if registry is not None else ToolRegistry()

    def with_tool(self, tool: Tool[Any, Any]) -> "RegistryBuilder":
        """Register a tool, raising ToolError on failure."""
        self._registry.register(tool)
        return self

    def add_tool(self, tool: Tool[Any, Any]) -> "RegistryBuilder":
        """Register a tool, raising RegistrationPanic on failure."""
        try:
            self._registry.register(tool)
        except ToolError as e:
            raise RegistrationPanic(f"Failed to register tool: {e}") from e
        return self

    def try_add_tool(self, tool: Tool[Any, Any]) -> "RegistryBuilder":
        """Register a tool, ignoring any failure."""
        try:
            self._registry.register(tool)
        except ToolError as e:
            logger.debug(f"Skipped tool registration: {e}")
        return self

    def with_handle(self, handle: ToolHandle) -> "RegistryBuilder":
        self._registry.register_handle(handle)
        return self

    def add_handle(self, handle: ToolHandle) -> "RegistryBuilder":
        try:
            self._registry.register_handle(handle)
        except ToolError as e:
            raise RegistrationPanic(f"Failed to register tool: {e}") from e
        return self

    def try_add_handle(self, handle: ToolHandle) -> "RegistryBuilder":
        try:
            self._registry.register_handle(handle)
        except ToolError as e:
            logger.debug(f"Skipped tool registration: {e}")
        return self

    def build(self) -> ToolRegistry:
        return self._registry
