"""Tool executor: timeout, retry, logging and parallelism policy.

The executor resolves tools from a ToolRegistry and applies the same policy
to every invocation, whatever tool is targeted:

    lookup -> prepare (deserialize + validate) -> attempt 1..1+max_retries

Lookup and preparation failures are terminal and never retried. Each attempt
is bounded by the configured timeout; timeouts and transient execution
failures are retried with backoff between attempts. When a ToolCallCache is
configured, a cached successful result is returned after preparation without
any attempt. Every outcome is wrapped in an ExecutionResult, so callers
dispatching in bulk never see exceptions.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field, model_validator

from tool_engine.cache import ToolCallCache
from tool_engine.errors import (
    ErrorKind,
    ExecutionFailedError,
    InvalidParametersError,
    NotFoundError,
    ToolError,
    ToolTimeoutError,
    UnknownToolError,
)
from tool_engine.llm import ToolCall
from tool_engine.monitoring import ExecutionEvent, MetricsCollector
from tool_engine.registry import ToolRegistry
from tool_engine.tools.base import ToolHandle

logger = logging.getLogger(__name__)


def _seconds(value: float | timedelta) -> float:
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


class BackoffKind(str, Enum):
    """Shape of the wait between retry attempts."""

    FIXED = "fixed"
    EXPONENTIAL = "exponential"


class RetryMode(str, Enum):
    """Which execution failures are retried.

    Timeouts are always retried while attempts remain. TRANSIENT_ONLY retries
    only ExecutionFailedError raised with transient=True; ALL retries every
    ExecutionFailedError.
    """

    TRANSIENT_ONLY = "transient_only"
    ALL = "all"


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff between attempts of one logical invocation.

    Attributes:
        backoff: Fixed or exponential backoff
        initial_delay: Delay in seconds before the first retry
        max_delay: Upper bound in seconds for exponential delays
        multiplier: Growth factor for exponential delays
    """

    backoff: BackoffKind = BackoffKind.EXPONENTIAL
    initial_delay: float = 0.1
    max_delay: float = 30.0
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.initial_delay < 0:
            raise ValueError("initial_delay must not be negative")
        if self.max_delay < self.initial_delay:
            raise ValueError("max_delay must be at least initial_delay")
        if self.multiplier < 1:
            raise ValueError("multiplier must be at least 1")

    @classmethod
    def fixed(cls, delay: float | timedelta) -> "RetryPolicy":
        delay = _seconds(delay)
        return cls(
            backoff=BackoffKind.FIXED, initial_delay=delay, max_delay=delay, multiplier=1.0
        )

    @classmethod
    def exponential(
        cls,
        initial_delay: float | timedelta = 0.1,
        max_delay: float | timedelta = 30.0,
        multiplier: float = 2.0,
    ) -> "RetryPolicy":
        return cls(
            backoff=BackoffKind.EXPONENTIAL,
            initial_delay=_seconds(initial_delay),
            max_delay=_seconds(max_delay),
            multiplier=multiplier,
        )

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the given failed attempt.

        Args:
            attempt: Number of attempts made so far (1 after the first failure)

        Returns:
            float: Delay in seconds, 0 for attempt 0
        """
        if attempt <= 0:
            return 0.0
        if self.backoff is BackoffKind.FIXED:
            return self.initial_delay
        delay = self.initial_delay * self.multiplier ** (attempt - 1)
        return min(delay, self.max_delay)


@dataclass(frozen=True)
class ExecutionConfig:
    """Policy shared by every invocation issued through one executor.

    Attributes:
        timeout: Per-attempt bound in seconds, None to disable
        max_retries: Retries after the first attempt
        retry: Backoff between attempts
        retry_mode: Which execution failures are retried
        enable_logging: Log attempts and outcomes at info/warning level
        max_concurrency: Bound on concurrently running parallel requests
    """

    timeout: float | None = 30.0
    max_retries: int = 0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    retry_mode: RetryMode = RetryMode.TRANSIENT_ONLY
    enable_logging: bool = False
    max_concurrency: int | None = None

    def __post_init__(self) -> None:
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.max_retries < 0:
            raise ValueError("max_retries must not be negative")
        if self.max_concurrency is not None and self.max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

    @property
    def max_attempts(self) -> int:
        return 1 + self.max_retries

    def should_retry(self, error: ToolError) -> bool:
        """Whether a failed attempt may be retried, attempts permitting."""
        if isinstance(error, ToolTimeoutError):
            return True
        if isinstance(error, ExecutionFailedError):
            return self.retry_mode is RetryMode.ALL or error.transient
        return False


class ExecutionResult(BaseModel):
    """Outcome envelope of one logical invocation.

    A successful result carries the tool's structured output and no error; a
    failed result carries the error message and kind and no output.
    """

    tool_name: str = Field(description="Name of the invoked tool")
    success: bool = Field(description="Whether the invocation succeeded")
    result: Any = Field(default=None, description="Structured tool output")
    error: str | None = Field(default=None, description="Error message on failure")
    error_kind: ErrorKind | None = Field(default=None, description="Error kind on failure")
    duration: float = Field(
        default=0.0,
        ge=0,
        description="Wall-clock seconds for the whole invocation, retries included",
    )
    attempts: int = Field(default=0, ge=0, description="Execution attempts made")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the invocation finished",
    )

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_populated(self) -> "ExecutionResult":
        if self.success:
            if self.result is None:
                raise ValueError("successful result requires a result payload")
            if self.error is not None or self.error_kind is not None:
                raise ValueError("successful result must not carry an error")
        else:
            if self.error is None or self.error_kind is None:
                raise ValueError("failed result requires an error and error_kind")
            if self.result is not None:
                raise ValueError("failed result must not carry a result payload")
        return self

    @classmethod
    def succeeded(
        cls, tool_name: str, result: Any, duration: float, attempts: int
    ) -> "ExecutionResult":
        return cls(
            tool_name=tool_name,
            success=True,
            result=result,
            duration=duration,
            attempts=attempts,
        )

    @classmethod
    def failed(
        cls, tool_name: str, error: ToolError, duration: float, attempts: int
    ) -> "ExecutionResult":
        return cls(
            tool_name=tool_name,
            success=False,
            error=str(error),
            error_kind=error.kind,
            duration=duration,
            attempts=attempts,
        )

    @property
    def retries(self) -> int:
        return max(self.attempts - 1, 0)

    def to_content(self) -> Any:
        """Payload on success, {"error": {...}} on failure."""
        if self.success:
            return self.result
        return {"error": {"type": self.error_kind.value, "message": self.error}}


class ToolExecutor:
    """Dispatches named invocations against a ToolRegistry.

    The executor holds no per-invocation state, so one instance can serve any
    number of concurrent invocations.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        config: ExecutionConfig | None = None,
        metrics: MetricsCollector | None = None,
        cache: ToolCallCache | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            registry: Registry to resolve tools from (shared, not copied)
            config: Execution policy (default: ExecutionConfig())
            metrics: Optional collector that receives every terminal outcome
            cache: Optional cache of successful results; a hit skips execution
        """
        self._registry = registry
        self._config = config or ExecutionConfig()
        self._metrics = metrics
        self._cache = cache

    @staticmethod
    def builder(registry: ToolRegistry) -> "ExecutorBuilder":
        return ExecutorBuilder(registry)

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def config(self) -> ExecutionConfig:
        return self._config

    @property
    def metrics(self) -> MetricsCollector | None:
        return self._metrics

    @property
    def cache(self) -> ToolCallCache | None:
        return self._cache

    def _log(self, level: int, message: str) -> None:
        logger.log(level if self._config.enable_logging else logging.DEBUG, message)

    def _resolve(self, tool_name: str) -> ToolHandle:
        handle = self._registry.lookup(tool_name)
        if handle is None:
            raise NotFoundError(tool_name)
        if not handle.metadata.enabled:
            raise NotFoundError(tool_name, "tool is disabled")
        return handle

    def _prepare(self, handle: ToolHandle, document: Any) -> Any:
        try:
            return handle.prepare(document)
        except ToolError as e:
            raise e.with_tool(handle.name)
        except Exception as e:
            if self._config.enable_logging:
                logger.exception(f"Validating input for {handle.name} raised an exception")
            raise InvalidParametersError(
                f"{type(e).__name__}: {e}", tool=handle.name
            ) from e

    async def _attempt(self, handle: ToolHandle, prepared: Any) -> Any:
        timeout = self._config.timeout
        task = asyncio.ensure_future(handle.invoke(prepared))
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if not done:
            # Only the executor's own deadline is reported as a timeout
            task.cancel()
            await asyncio.wait({task})
            if not task.cancelled() and task.exception() is not None:
                logger.debug(
                    f"Tool {handle.name} failed while being cancelled: {task.exception()}"
                )
            raise ToolTimeoutError(handle.name, timeout)

        if task.cancelled():
            raise ExecutionFailedError("execution was cancelled by the tool", tool=handle.name)

        try:
            return task.result()
        except ToolError as e:
            raise e.with_tool(handle.name)
        except (asyncio.TimeoutError, TimeoutError) as e:
            # Raised inside the tool, e.g. by its own client timeout
            raise ExecutionFailedError(
                f"{type(e).__name__}: {str(e) or 'operation timed out'}",
                tool=handle.name,
                transient=True,
            ) from e
        except Exception as e:
            if self._config.enable_logging:
                logger.exception(f"Tool {handle.name} raised an unhandled exception")
            raise ExecutionFailedError(
                f"{type(e).__name__}: {e}", tool=handle.name
            ) from e

    async def _run(
        self, tool_name: str, document: Any
    ) -> tuple[ExecutionResult, ToolError | None]:
        start = time.perf_counter()
        attempts = 0
        error: ToolError | None = None
        output: Any = None
        cached = False

        try:
            handle = self._resolve(tool_name)
            prepared = self._prepare(handle, document)

            if self._cache is not None:
                output = self._cache.get(tool_name, document)
                cached = output is not None

            while not cached:
                attempts += 1
                try:
                    output = await self._attempt(handle, prepared)
                    break
                except ToolError as e:
                    if attempts >= self._config.max_attempts or not self._config.should_retry(e):
                        raise
                    delay = self._config.retry.delay_for(attempts)
                    self._log(
                        logging.WARNING,
                        f"Tool {tool_name} failed (attempt {attempts}/"
                        f"{self._config.max_attempts}), retrying in {delay:.3f}s: {e}",
                    )
                    if delay > 0:
                        await asyncio.sleep(delay)
        except ToolError as e:
            error = e

        duration = time.perf_counter() - start

        if error is None:
            if output is None:
                output = {}
            result = ExecutionResult.succeeded(tool_name, output, duration, attempts)
            if cached:
                self._log(logging.INFO, f"Served {tool_name} from cache")
            else:
                if self._cache is not None:
                    self._cache.put(tool_name, document, output)
                self._log(
                    logging.INFO,
                    f"Executed {tool_name} in {duration:.3f}s "
                    f"({attempts} attempt{'s' if attempts != 1 else ''})",
                )
        else:
            result = ExecutionResult.failed(tool_name, error, duration, attempts)
            self._log(
                logging.INFO,
                f"Tool {tool_name} failed after {duration:.3f}s "
                f"({error.kind.value}): {error}",
            )

        if self._metrics is not None:
            self._metrics.record_execution(
                ExecutionEvent(
                    tool_name=tool_name,
                    duration=duration,
                    success=result.success,
                    error_type=result.error_kind.value if result.error_kind else None,
                )
            )

        return result, error

    async def execute(self, tool_name: str, document: Any = None) -> ExecutionResult:
        """Execute a tool and report the outcome in an envelope.

        Never raises for tool, lookup or validation failures: those are
        reported through ExecutionResult.error.

        Args:
            tool_name: Registered tool name
            document: Structured input document (usually a dict)

        Returns:
            ExecutionResult: The populated outcome envelope
        """
        result, _ = await self._run(tool_name, document)
        return result

    async def invoke(self, tool_name: str, arguments: Any = None) -> ExecutionResult:
        """Inbound entry point for orchestration loops; same as execute()."""
        return await self.execute(tool_name, arguments)

    async def execute_simple(self, tool_name: str, document: Any = None) -> Any:
        """Execute a tool and return only its structured output.

        Raises:
            ToolError: The terminal error, with its kind preserved
        """
        result, error = await self._run(tool_name, document)
        if error is not None:
            raise error
        return result.result

    async def execute_parallel(
        self, requests: Iterable[tuple[str, Any]]
    ) -> list[ExecutionResult | ToolError]:
        """Execute several invocations concurrently.

        Requests run independently: one failing or timing out does not cancel
        or delay the others beyond shared concurrency limits.

        Args:
            requests: (tool_name, document) pairs

        Returns:
            list: One entry per request, in request order
        """
        requests = list(requests)
        if not requests:
            return []

        limit = self._config.max_concurrency
        semaphore = asyncio.Semaphore(limit) if limit else None

        async def run_one(tool_name: str, document: Any) -> ExecutionResult:
            if semaphore is None:
                return await self.execute(tool_name, document)
            async with semaphore:
                return await self.execute(tool_name, document)

        outcomes = await asyncio.gather(
            *(run_one(name, document) for name, document in requests),
            return_exceptions=True,
        )

        if self._metrics is not None:
            self._metrics.record_parallel_execution(len(requests))

        results: list[ExecutionResult | ToolError] = []
        for (tool_name, _), outcome in zip(requests, outcomes):
            if isinstance(outcome, ExecutionResult):
                results.append(outcome)
            elif isinstance(outcome, ToolError):
                results.append(outcome.with_tool(tool_name))
            elif isinstance(outcome, asyncio.CancelledError):
                results.append(UnknownToolError("invocation was cancelled", tool=tool_name))
            elif isinstance(outcome, Exception):
                results.append(UnknownToolError(str(outcome), tool=tool_name))
            else:
                raise outcome
        return results

    async def execute_with_timeout(
        self, tool_name: str, document: Any, timeout: float | timedelta
    ) -> ExecutionResult:
        """Execute with an overall bound covering all attempts and backoff.

        Args:
            tool_name: Registered tool name
            document: Structured input document
            timeout: Overall bound in seconds

        Returns:
            ExecutionResult: The outcome, a timeout failure if the bound is hit
        """
        timeout = _seconds(timeout)
        start = time.perf_counter()
        try:
            return await asyncio.wait_for(self.execute(tool_name, document), timeout)
        except asyncio.TimeoutError:
            error = ToolTimeoutError(tool_name, timeout)
            self._log(logging.INFO, str(error))
            return ExecutionResult.failed(
                tool_name, error, time.perf_counter() - start, attempts=0
            )

    async def execute_tool_calls(
        self, calls: Iterable[ToolCall | dict[str, Any]]
    ) -> list[dict[str, Any]]:
        """Run tool calls requested by a language model.

        Calls run in parallel; the returned chat messages keep call order so
        they can be appended to the conversation as-is.

        Args:
            calls: Parsed ToolCall objects or raw tool_call dicts

        Returns:
            list[dict]: Chat messages with role "tool", one per call

        Raises:
            ValueError: If a raw dict is not a tool call
        """
        parsed = [
            call if isinstance(call, ToolCall) else ToolCall.from_dict(call)
            for call in calls
        ]
        outcomes = await self.execute_parallel(
            (call.name, call.dispatch_arguments()) for call in parsed
        )

        messages = []
        for call, outcome in zip(parsed, outcomes):
            if isinstance(outcome, ExecutionResult):
                content = outcome.to_content()
            else:
                content = {"error": outcome.to_dict()}

            message: dict[str, Any] = {
                "role": "tool",
                "tool_name": call.name,
                "content": json.dumps(content, ensure_ascii=False),
            }
            if call.id:
                message["tool_call_id"] = call.id
            messages.append(message)
        return messages

    def list_tools(self, include_disabled: bool = False) -> list[dict[str, Any]]:
        """Describe the registry's tools for introspection callers."""
        return self._registry.list_tools(include_disabled=include_disabled)


class ExecutorBuilder:
    """Fluent construction of a ToolExecutor."""

    def __init__(self, registry: ToolRegistry) -> None:
        self._registry = registry
        self._config = ExecutionConfig()
        self._metrics: MetricsCollector | None = None
        self._cache: ToolCallCache | None = None

    def config(self, config: ExecutionConfig) -> "ExecutorBuilder":
        self._config = config
        return self

    def timeout(self, timeout: float | timedelta) -> "ExecutorBuilder":
        self._config = replace(self._config, timeout=_seconds(timeout))
        return self

    def no_timeout(self) -> "ExecutorBuilder":
        self._config = replace(self._config, timeout=None)
        return self

    def retries(self, max_retries: int) -> "ExecutorBuilder":
        self._config = replace(self._config, max_retries=max_retries)
        return self

    def backoff(self, policy: RetryPolicy) -> "ExecutorBuilder":
        self._config = replace(self._config, retry=policy)
        return self

    def fixed_backoff(self, delay: float | timedelta) -> "ExecutorBuilder":
        return self.backoff(RetryPolicy.fixed(delay))

    def exponential_backoff(
        self,
        initial_delay: float | timedelta = 0.1,
        max_delay: float | timedelta = 30.0,
        multiplier: float = 2.0,
    ) -> "ExecutorBuilder":
        return self.backoff(RetryPolicy.exponential(initial_delay, max_delay, multiplier))

    def retry_mode(self, mode: RetryMode) -> "ExecutorBuilder":
        self._config = replace(self._config, retry_mode=mode)
        return self

    def logging(self, enabled: bool) -> "ExecutorBuilder":
        self._config = replace(self._config, enable_logging=enabled)
        return self

    def max_concurrency(self, limit: int | None) -> "ExecutorBuilder":
        self._config = replace(self._config, max_concurrency=limit)
        return self

    def metrics(self, collector: MetricsCollector) -> "ExecutorBuilder":
        self._metrics = collector
        return self

    def cache(self, cache: ToolCallCache) -> "ExecutorBuilder":
        self._cache = cache
        return self

    def build(self) -> ToolExecutor:
        return ToolExecutor(self._registry, self._config, self._metrics, self._cache)
