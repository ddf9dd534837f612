"""Tools router for listing and invoking registered tools.

This module provides REST API endpoints for:
- Listing registered tools
- Getting a tool's metadata
- Invoking a single tool
- Invoking several tools in parallel

Invocation failures (unknown tool, invalid arguments, timeouts, tool errors)
are reported in-band in the ExecutionResult with a 200 status, the same way
the executor reports them to in-process callers.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from tool_engine.dependencies import get_executor, get_registry
from tool_engine.errors import ToolError
from tool_engine.executor import ExecutionResult, ToolExecutor
from tool_engine.models.tools import (
    BatchInvokeRequest,
    BatchInvokeResponse,
    InvokeToolRequest,
    ToolDetailResponse,
    ToolListResponse,
    ToolSummary,
)
from tool_engine.registry import ToolRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/tools", tags=["tools"])


@router.get(
    "",
    response_model=ToolListResponse,
    summary="List registered tools",
)
async def list_tools(
    registry: Annotated[ToolRegistry, Depends(get_registry)],
    include_disabled: Annotated[bool, Query()] = False,
) -> ToolListResponse:
    """List registered tools with their input schemas.

    Args:
        registry: Injected ToolRegistry
        include_disabled: Also list disabled tools

    Returns:
        Tool names, descriptions and input schemas
    """
    tools = [
        ToolSummary(**entry)
        for entry in registry.list_tools(include_disabled=include_disabled)
    ]
    return ToolListResponse(tools=tools)


@router.post(
    "/invoke-batch",
    response_model=BatchInvokeResponse,
    summary="Invoke several tools in parallel",
)
async def invoke_batch(
    request: BatchInvokeRequest,
    executor: Annotated[ToolExecutor, Depends(get_executor)],
) -> BatchInvokeResponse:
    """Invoke several tools concurrently.

    Args:
        request: The invocations to run
        executor: Injected ToolExecutor

    Returns:
        One ExecutionResult per invocation, in request order
    """
    outcomes = await executor.execute_parallel(
        (invocation.tool, invocation.arguments) for invocation in request.invocations
    )

    results = []
    for invocation, outcome in zip(request.invocations, outcomes):
        if isinstance(outcome, ToolError):
            logger.warning(f"Batch invocation of {invocation.tool} failed: {outcome}")
            outcome = ExecutionResult.failed(
                invocation.tool, outcome, duration=0.0, attempts=0
            )
        results.append(outcome)

    return BatchInvokeResponse(results=results)


@router.get(
    "/{name}",
    response_model=ToolDetailResponse,
    summary="Get a tool's metadata",
)
async def get_tool(
    name: str,
    registry: Annotated[ToolRegistry, Depends(get_registry)],
) -> ToolDetailResponse:
    """Get the metadata of a registered tool, disabled or not.

    Raises:
        HTTPException: 404 if no tool is registered under the name
    """
    metadata = registry.metadata(name)
    if metadata is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tool '{name}' not found",
        )

    return ToolDetailResponse(
        name=metadata.name,
        description=metadata.description,
        version=metadata.version,
        author=metadata.author,
        tags=sorted(metadata.tags),
        enabled=metadata.enabled,
        input_schema=metadata.input_schema,
    )


@router.post(
    "/{name}/invoke",
    response_model=ExecutionResult,
    summary="Invoke a tool",
)
async def invoke_tool(
    name: str,
    request: InvokeToolRequest,
    executor: Annotated[ToolExecutor, Depends(get_executor)],
) -> ExecutionResult:
    """Invoke a tool with the configured timeout and retry policy.

    Args:
        name: Tool name
        request: Arguments for the tool
        executor: Injected ToolExecutor

    Returns:
        The execution result, successful or not
    """
    return await executor.invoke(name, request.arguments)
