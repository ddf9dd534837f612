"""Built-in tools shipped with the engine."""

import logging
import math

import httpx
from pydantic import BaseModel, Field, HttpUrl

from tool_engine.errors import ExecutionFailedError, InvalidParametersError
from tool_engine.registry import ToolRegistry
from tool_engine.tools.base import Tool

logger = logging.getLogger(__name__)

SUPPORTED_OPERATIONS = ("add", "subtract", "multiply", "divide", "power", "sqrt", "abs")
UNARY_OPERATIONS = ("sqrt", "abs")


def _format_number(value: float) -> str:
    if math.isfinite(value) and value.is_integer():
        return str(int(value))
    return repr(value)


class CalculatorInput(BaseModel):
    operation: str = Field(
        description="Mathematical operation to perform",
        json_schema_extra={"enum": list(SUPPORTED_OPERATIONS)},
    )
    a: float = Field(description="First operand")
    b: float = Field(
        default=0.0, description="Second operand (not used for sqrt and abs operations)"
    )


class CalculatorOutput(BaseModel):
    result: float = Field(description="The calculated result")
    expression: str = Field(description="Human-readable expression")
    operation: str = Field(description="The operation that was performed")


class CalculatorTool(Tool[CalculatorInput, CalculatorOutput]):
    """Basic arithmetic, power, square root and absolute value."""

    name = "calculator"
    description = (
        "Perform mathematical operations including basic arithmetic, power, "
        "square root, and absolute value"
    )
    version = "2.0.0"
    author = "tool-engine"
    tags = ("math", "calculator", "arithmetic")
    input_model = CalculatorInput
    output_model = CalculatorOutput

    def validate(self, input: CalculatorInput) -> None:
        if input.operation.lower() not in SUPPORTED_OPERATIONS:
            raise InvalidParametersError(
                f"Unsupported operation: {input.operation}. "
                f"Supported operations: {', '.join(SUPPORTED_OPERATIONS)}"
            )

    async def execute(self, input: CalculatorInput) -> CalculatorOutput:
        operation = input.operation.lower()
        a, b = input.a, input.b

        if operation == "add":
            result = a + b
        elif operation == "subtract":
            result = a - b
        elif operation == "multiply":
            result = a * b
        elif operation == "divide":
            if b == 0:
                raise ExecutionFailedError("Division by zero")
            result = a / b
        elif operation == "power":
            try:
                result = math.pow(a, b)
            except (OverflowError, ValueError) as e:
                raise ExecutionFailedError(f"Invalid power operation: {e}") from e
        elif operation == "sqrt":
            if a < 0:
                raise ExecutionFailedError("Cannot calculate square root of negative number")
            result = math.sqrt(a)
        else:
            result = abs(a)

        if operation in UNARY_OPERATIONS:
            expression = f"{operation}({_format_number(a)})"
        else:
            expression = f"{_format_number(a)} {operation} {_format_number(b)}"

        return CalculatorOutput(result=result, expression=expression, operation=operation)


class HttpGetInput(BaseModel):
    url: HttpUrl = Field(description="URL to fetch (http or https)")
    headers: dict[str, str] = Field(
        default_factory=dict, description="Additional request headers"
    )


class HttpGetOutput(BaseModel):
    url: str = Field(description="Final URL after redirects")
    status_code: int = Field(description="HTTP status code")
    headers: dict[str, str] = Field(description="Response headers")
    body: str = Field(description="Response body, possibly truncated")
    truncated: bool = Field(default=False, description="Whether the body was truncated")


class HttpGetTool(Tool[HttpGetInput, HttpGetOutput]):
    """Fetch a URL over HTTP GET.

    Connection errors, timeouts and 5xx responses are reported as transient
    failures so the executor may retry them; 4xx responses are permanent.
    """

    name = "http_get"
    description = "Fetch the content of a web page or HTTP endpoint with a GET request"
    author = "tool-engine"
    tags = ("http", "network", "web")
    input_model = HttpGetInput
    output_model = HttpGetOutput

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
        max_bytes: int = 100_000,
    ) -> None:
        """Initialize the tool.

        Args:
            client: HTTP client to use; one is created on first use and owned
                by the tool when omitted
            timeout: Request timeout in seconds for the owned client
            max_bytes: Maximum number of body bytes returned
        """
        self._owns_client = client is None
        self._client = client
        self.timeout = timeout
        self.max_bytes = max_bytes

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self._client

    async def execute(self, input: HttpGetInput) -> HttpGetOutput:
        url = str(input.url)
        logger.debug(f"GET {url}")

        try:
            response = await self._get_client().get(url, headers=input.headers)
        except httpx.TimeoutException as e:
            raise ExecutionFailedError(f"Request to {url} timed out", transient=True) from e
        except httpx.HTTPError as e:
            raise ExecutionFailedError(f"Request to {url} failed: {e}", transient=True) from e

        if response.status_code >= 400:
            raise ExecutionFailedError(
                f"GET {url} returned HTTP {response.status_code}",
                transient=response.status_code >= 500,
            )

        content = response.content
        truncated = len(content) > self.max_bytes
        if truncated:
            content = content[: self.max_bytes]

        return HttpGetOutput(
            url=str(response.url),
            status_code=response.status_code,
            headers=dict(response.headers),
            body=content.decode(response.encoding or "utf-8", errors="replace"),
            truncated=truncated,
        )

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None


def builtin_tools(http_timeout: float = 10.0) -> list[Tool]:
    """Create fresh instances of every built-in tool."""
    return [CalculatorTool(), HttpGetTool(timeout=http_timeout)]


def register_builtin_tools(
    registry: ToolRegistry, http_timeout: float = 10.0
) -> list[str]:
    """Register the built-in tools with a registry.

    Args:
        registry: The registry to populate
        http_timeout: Request timeout for the HTTP tool

    Returns:
        list[str]: Names of the registered tools

    Raises:
        AlreadyExistsError: If a built-in tool name is already taken
    """
    tools = builtin_tools(http_timeout)
    for tool in tools:
        registry.register(tool)
    return [tool.name for tool in tools]
