"""Execution metrics endpoint router."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends

from tool_engine.cache import ToolCallCache
from tool_engine.dependencies import get_cache, get_metrics
from tool_engine.monitoring import MetricsCollector

router = APIRouter(prefix="/api/v1", tags=["metrics"])


@router.get("/metrics")
async def get_metrics_report(
    metrics: Annotated[MetricsCollector, Depends(get_metrics)],
    cache: Annotated[ToolCallCache | None, Depends(get_cache)],
) -> dict[str, Any]:
    """Report global and per-tool execution metrics, plus cache statistics."""
    report = metrics.report()
    if cache is not None:
        report["cache"] = cache.stats().to_dict()
    return report
