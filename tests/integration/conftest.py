"""Pytest configuration for integration tests.

This module provides an app whose registry holds slow and failing tools in
addition to the built-ins, so API tests can exercise timeouts and failures.
"""

import pytest

from tool_engine import create_app
from tool_engine.registry import ToolRegistry


@pytest.fixture
def test_app(test_settings, add_tool, sleep_tool, crashing_tool):
    """Create a test application with the sample tools registered.

    The tool timeout is lowered so timeout tests stay fast.
    """
    test_settings.tool_timeout = 0.2
    seed = (
        ToolRegistry.builder()
        .with_tool(add_tool)
        .with_tool(sleep_tool)
        .with_tool(crashing_tool)
        .build()
    )
    return create_app(settings=test_settings, registry=seed)
