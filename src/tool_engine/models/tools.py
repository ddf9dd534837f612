"""Pydantic models for tool API requests and responses."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from tool_engine.executor import ExecutionResult


class ToolSummary(BaseModel):
    """A tool as listed for introspection callers."""

    name: str = Field(..., description="Unique tool name")
    description: str = Field(..., description="What the tool does")
    input_schema: dict[str, Any] = Field(
        ..., description="JSON Schema describing valid input"
    )


class ToolListResponse(BaseModel):
    """Response model for listing tools."""

    tools: list[ToolSummary] = Field(
        default_factory=list, description="Registered tools"
    )


class ToolDetailResponse(BaseModel):
    """Response model for a single tool's metadata."""

    name: str = Field(..., description="Unique tool name")
    description: str = Field(..., description="What the tool does")
    version: str = Field(..., description="Tool version")
    author: str | None = Field(default=None, description="Tool author")
    tags: list[str] = Field(default_factory=list, description="Tags, sorted")
    enabled: bool = Field(..., description="Whether the tool can be invoked")
    input_schema: dict[str, Any] = Field(
        ..., description="JSON Schema describing valid input"
    )


class InvokeToolRequest(BaseModel):
    """Request model for invoking a single tool."""

    arguments: dict[str, Any] = Field(
        default_factory=dict, description="Input document for the tool"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"arguments": {"operation": "add", "a": 5, "b": 3}}
        }
    )


class BatchInvocation(BaseModel):
    """One invocation inside a batch request."""

    tool: str = Field(..., description="Name of the tool to invoke", min_length=1)
    arguments: dict[str, Any] = Field(
        default_factory=dict, description="Input document for the tool"
    )


class BatchInvokeRequest(BaseModel):
    """Request model for invoking several tools in parallel."""

    invocations: list[BatchInvocation] = Field(
        ..., description="Invocations to run concurrently"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "invocations": [
                    {"tool": "calculator", "arguments": {"operation": "add", "a": 1, "b": 2}},
                    {"tool": "calculator", "arguments": {"operation": "sqrt", "a": 16}},
                ]
            }
        }
    )


class BatchInvokeResponse(BaseModel):
    """Response model for a batch invocation, in request order."""

    results: list[ExecutionResult] = Field(
        default_factory=list, description="One result per invocation"
    )
