"""Configuration module for tool-engine using pydantic-settings."""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from tool_engine.cache import ToolCallCache
from tool_engine.executor import BackoffKind, ExecutionConfig, RetryMode, RetryPolicy


class ToolEngineSettings(BaseSettings):
    """Main configuration settings for tool-engine.

    All settings can be overridden via environment variables with the
    TOOL_ENGINE_ prefix. For example, TOOL_ENGINE_TOOL_TIMEOUT overrides the
    tool_timeout setting.
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # CORS
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Logging
    log_level: str = "INFO"

    # Execution
    tool_timeout: float | None = Field(default=30.0, gt=0)
    max_retries: int = Field(default=0, ge=0)
    backoff: Literal["fixed", "exponential"] = "exponential"
    retry_initial_delay: float = Field(default=0.1, ge=0)
    retry_max_delay: float = Field(default=30.0, ge=0)
    retry_multiplier: float = Field(default=2.0, ge=1)
    retry_mode: Literal["transient_only", "all"] = "transient_only"
    max_concurrency: int | None = Field(default=None, ge=1)
    enable_execution_logging: bool = True

    # Tools
    register_builtin_tools: bool = True
    functions_dir: str | None = None
    http_tool_timeout: float = Field(default=10.0, gt=0)

    # Result cache
    cache_enabled: bool = False
    cache_ttl: float = Field(default=300.0, gt=0)
    cache_max_size: int = Field(default=1000, ge=1)

    model_config = SettingsConfigDict(env_prefix="TOOL_ENGINE_")

    @property
    def resolved_functions_dir(self) -> Path | None:
        """Get the function spec directory as a Path, if configured."""
        return Path(self.functions_dir) if self.functions_dir else None

    def to_execution_config(self) -> ExecutionConfig:
        """Build the executor policy described by these settings.

        Raises:
            ValueError: If the retry delays are inconsistent
        """
        if self.backoff == "fixed":
            retry = RetryPolicy.fixed(self.retry_initial_delay)
        else:
            retry = RetryPolicy(
                backoff=BackoffKind.EXPONENTIAL,
                initial_delay=self.retry_initial_delay,
                max_delay=self.retry_max_delay,
                multiplier=self.retry_multiplier,
            )

        return ExecutionConfig(
            timeout=self.tool_timeout,
            max_retries=self.max_retries,
            retry=retry,
            retry_mode=RetryMode(self.retry_mode),
            enable_logging=self.enable_execution_logging,
            max_concurrency=self.max_concurrency,
        )

    def build_cache(self) -> ToolCallCache | None:
        """Build the result cache, or None when caching is disabled."""
        if not self.cache_enabled:
            return None
        return ToolCallCache(ttl=self.cache_ttl, max_size=self.cache_max_size)
