"""Pytest configuration and shared fixtures for tool-engine tests.

This module provides common fixtures used across all test modules,
including sample tools, registries, test app creation and async client setup.
"""

import asyncio

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel

from tool_engine import create_app
from tool_engine.config import ToolEngineSettings
from tool_engine.errors import ExecutionFailedError, InvalidParametersError
from tool_engine.registry import ToolRegistry
from tool_engine.tools.base import Tool


class AddInput(BaseModel):
    a: float
    b: float


class AddOutput(BaseModel):
    result: float


class AddTool(Tool[AddInput, AddOutput]):
    name = "add"
    description = "Add two numbers"
    tags = ("math",)
    input_model = AddInput
    output_model = AddOutput

    async def execute(self, input: AddInput) -> AddOutput:
        return AddOutput(result=input.a + input.b)


class ValueInput(BaseModel):
    value: int


class ValueOutput(BaseModel):
    value: int


class NonNegativeTool(Tool[ValueInput, ValueOutput]):
    """Echoes a value that must be >= 0."""

    name = "non_negative"
    description = "Echo a non-negative value"
    input_model = ValueInput
    output_model = ValueOutput

    def __init__(self) -> None:
        self.executions = 0

    def validate(self, input: ValueInput) -> None:
        if input.value < 0:
            raise InvalidParametersError("value must be >= 0")

    async def execute(self, input: ValueInput) -> ValueOutput:
        self.executions += 1
        return ValueOutput(value=input.value)


class SleepInput(BaseModel):
    seconds: float = 0.0


class SleepOutput(BaseModel):
    slept: float


class SleepTool(Tool[SleepInput, SleepOutput]):
    name = "sleep"
    description = "Sleep for a number of seconds"
    input_model = SleepInput
    output_model = SleepOutput

    def __init__(self) -> None:
        self.attempts = 0

    async def execute(self, input: SleepInput) -> SleepOutput:
        self.attempts += 1
        await asyncio.sleep(input.seconds)
        return SleepOutput(slept=input.seconds)


class FlakyTool(Tool[ValueInput, ValueOutput]):
    """Fails a configurable number of times before succeeding."""

    name = "flaky"
    description = "Fail, then succeed"
    input_model = ValueInput
    output_model = ValueOutput

    def __init__(self, failures: int, transient: bool = True) -> None:
        self.failures = failures
        self.transient = transient
        self.attempts = 0

    async def execute(self, input: ValueInput) -> ValueOutput:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise ExecutionFailedError(
                f"attempt {self.attempts} failed", transient=self.transient
            )
        return ValueOutput(value=input.value)


class CrashingTool(Tool[ValueInput, ValueOutput]):
    name = "crash"
    description = "Raise an unexpected exception"
    input_model = ValueInput
    output_model = ValueOutput

    def __init__(self) -> None:
        self.attempts = 0

    async def execute(self, input: ValueInput) -> ValueOutput:
        self.attempts += 1
        raise RuntimeError("boom")


@pytest.fixture
def add_tool():
    return AddTool()


@pytest.fixture
def non_negative_tool():
    return NonNegativeTool()


@pytest.fixture
def sleep_tool():
    return SleepTool()


@pytest.fixture
def crashing_tool():
    return CrashingTool()


@pytest.fixture
def flaky_tool_factory():
    """Return a factory for tools that fail a number of times, then succeed."""
    return FlakyTool


@pytest.fixture
def registry(add_tool, non_negative_tool):
    """Create a registry holding the add and non_negative tools."""
    registry = ToolRegistry()
    registry.register(add_tool)
    registry.register(non_negative_tool)
    return registry


@pytest.fixture
def test_settings():
    """Create test settings with fast execution policy.

    Returns:
        ToolEngineSettings: Settings instance configured for testing.
    """
    return ToolEngineSettings(
        host="127.0.0.1",
        port=8000,
        log_level="DEBUG",
        cors_origins=["*"],
        tool_timeout=1.0,
        max_retries=0,
        retry_initial_delay=0.01,
        retry_max_delay=0.05,
        register_builtin_tools=True,
        functions_dir=None,
    )


@pytest.fixture
def test_app(test_settings):
    """Create a FastAPI test application with the add tool pre-registered.

    Args:
        test_settings: Test settings fixture.

    Returns:
        FastAPI: Configured test application.
    """
    seed = ToolRegistry()
    seed.register(AddTool())
    return create_app(settings=test_settings, registry=seed)


@pytest_asyncio.fixture
async def async_client(test_app):
    """Create an async HTTP client for testing FastAPI endpoints.

    Args:
        test_app: Test application fixture.

    Yields:
        AsyncClient: Async HTTP client for making test requests.
    """
    # Trigger the lifespan startup manually for tests
    async with test_app.router.lifespan_context(test_app):
        transport = ASGITransport(app=test_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
