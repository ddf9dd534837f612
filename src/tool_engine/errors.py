"""Error taxonomy for tool registration and dispatch.

Every failure the registry or executor can report is one of the kinds in
ErrorKind. Each kind has a matching ToolError subclass carrying the context
(tool name, message, timeout) needed to render a useful message for callers
and for language models that receive tool results.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Closed set of error kinds reported by the engine."""

    NOT_FOUND = "not_found"
    INVALID_PARAMETERS = "invalid_parameters"
    EXECUTION_FAILED = "execution_failed"
    TIMEOUT = "timeout"
    ALREADY_EXISTS = "already_exists"
    UNKNOWN = "unknown"


class ToolError(Exception):
    """Base class for all engine errors.

    Attributes:
        kind: The ErrorKind of this error
        tool: Name of the tool involved, if known
        message: Human readable detail
    """

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str, tool: str | None = None) -> None:
        self.message = message
        self.tool = tool
        super().__init__(self._render())

    def _render(self) -> str:
        return self.message

    def __str__(self) -> str:
        return self._render()

    @property
    def is_transient(self) -> bool:
        """Whether a retry of the same invocation could succeed."""
        return False

    def with_tool(self, tool: str) -> "ToolError":
        """Attach a tool name if none is set yet.

        Tools raise errors without knowing the name they were registered
        under, so the dispatch layer fills it in on the way out.

        Args:
            tool: The tool name to attach

        Returns:
            ToolError: This same error instance
        """
        if not self.tool:
            self.tool = tool
            self.args = (self._render(),)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Encode the error as a structured document."""
        return {"type": self.kind.value, "message": str(self)}


class NotFoundError(ToolError):
    """No tool is registered under the name, or the tool is disabled."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, name: str, message: str | None = None) -> None:
        self.name = name
        super().__init__(message or "", tool=name)

    def _render(self) -> str:
        if self.message:
            return f"Tool '{self.name}' not found: {self.message}"
        return f"Tool '{self.name}' not found"


class InvalidParametersError(ToolError):
    """The payload failed deserialization or validation."""

    kind = ErrorKind.INVALID_PARAMETERS

    def _render(self) -> str:
        return f"Invalid parameters for tool '{self.tool or 'unknown'}': {self.message}"


class ExecutionFailedError(ToolError):
    """The tool's own operation failed.

    Tools mark failures worth retrying (a dropped connection, a 503) with
    transient=True. Whether non-transient failures are retried as well is
    decided by the executor's RetryMode.
    """

    kind = ErrorKind.EXECUTION_FAILED

    def __init__(
        self, message: str, tool: str | None = None, transient: bool = False
    ) -> None:
        self.transient = transient
        super().__init__(message, tool=tool)

    def _render(self) -> str:
        return f"Tool '{self.tool or 'unknown'}' execution failed: {self.message}"

    @property
    def is_transient(self) -> bool:
        return self.transient


class ToolTimeoutError(ToolError):
    """A single attempt exceeded the configured timeout."""

    kind = ErrorKind.TIMEOUT

    def __init__(self, tool: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"execution exceeded {timeout}s", tool=tool)

    def _render(self) -> str:
        return f"Timeout error for tool '{self.tool or 'unknown'}': {self.message}"

    @property
    def is_transient(self) -> bool:
        return True


class AlreadyExistsError(ToolError):
    """A tool with the same name is already registered."""

    kind = ErrorKind.ALREADY_EXISTS

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool '{name}' is already registered", tool=name)


class UnknownToolError(ToolError):
    """Catch-all for faults that fit no other kind."""

    kind = ErrorKind.UNKNOWN

    def _render(self) -> str:
        return f"Unknown error: {self.message}"
