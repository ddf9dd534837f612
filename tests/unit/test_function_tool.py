"""Unit tests for schema-first FunctionTools and spec loading."""

import json
import time
from datetime import datetime, timezone

import pytest

from tool_engine.errors import (
    ErrorKind,
    ExecutionFailedError,
    InvalidParametersError,
    UnknownToolError,
)
from tool_engine.executor import ExecutionConfig, ToolExecutor
from tool_engine.registry import ToolRegistry
from tool_engine.tools.function import (
    FunctionTool,
    load_function_tools,
    parse_function_spec,
)

WEATHER_SPEC = {
    "type": "function",
    "function": {
        "name": "get_weather",
        "description": "Look up the forecast",
        "parameters": {
            "type": "object",
            "properties": {"city": {"type": "string"}},
            "required": ["city"],
        },
    },
}


async def get_weather(args):
    return {"city": args["city"], "forecast": "sunny"}


class TestBuilder:
    """Tests for FunctionToolBuilder."""

    def test_fills_schema_defaults(self):
        """Test that build completes the schema shape."""
        tool = FunctionTool.builder("noop", "Does nothing").handler(get_weather).build()

        assert tool.input_schema == {
            "type": "object",
            "additionalProperties": False,
            "properties": {},
        }

    def test_merges_staged_properties_and_required(self):
        """Test that properties and required names merge into a given schema."""
        tool = (
            FunctionTool.builder("search", "Search")
            .schema({"properties": {"query": {"type": "string"}}, "required": ["query"]})
            .property("limit", {"type": "integer", "minimum": 1})
            .required("limit")
            .required("query")
            .handler(get_weather)
            .build()
        )

        schema = tool.input_schema
        assert set(schema["properties"]) == {"query", "limit"}
        assert schema["required"] == ["limit", "query"]
        assert schema["additionalProperties"] is False

    def test_keeps_explicit_additional_properties(self):
        tool = (
            FunctionTool.builder("open", "Open schema")
            .schema({"type": "object", "additionalProperties": True})
            .handler(get_weather)
            .build()
        )

        assert tool.input_schema["additionalProperties"] is True

    def test_metadata_fields(self):
        tool = (
            FunctionTool.builder("tagged", "Tagged")
            .metadata(version="3.1.0", author="me", tags=["a", "b"], extra={"k": 1})
            .handler(get_weather)
            .build()
        )

        assert tool.metadata.version == "3.1.0"
        assert tool.metadata.author == "me"
        assert tool.metadata.tags == frozenset({"a", "b"})
        assert tool.metadata.extra == {"k": 1}

    def test_missing_handler(self):
        with pytest.raises(InvalidParametersError, match="handler not set"):
            FunctionTool.builder("nohandler", "x").build()

    @pytest.mark.parametrize("name", ["", "has space", "dash-name"])
    def test_invalid_names(self, name):
        with pytest.raises(InvalidParametersError):
            FunctionTool.builder(name, "x").handler(get_weather).build()

    def test_invalid_schema(self):
        with pytest.raises(InvalidParametersError, match="Failed to compile schema"):
            FunctionTool.from_schema(
                "broken", "x", {"type": "not-a-type"}, get_weather
            )


class TestExecution:
    """Tests for validation and invocation."""

    @pytest.mark.asyncio
    async def test_valid_document(self):
        tool = FunctionTool.from_function_spec(WEATHER_SPEC, get_weather)

        assert await tool.call({"city": "Oslo"}) == {"city": "Oslo", "forecast": "sunny"}

    def test_schema_violation(self):
        tool = FunctionTool.from_function_spec(WEATHER_SPEC, get_weather)

        with pytest.raises(InvalidParametersError) as exc_info:
            tool.prepare({"town": "Oslo"})

        message = str(exc_info.value)
        assert "get_weather" in message
        assert "city" in message

    @pytest.mark.asyncio
    async def test_sync_handler_and_empty_result(self):
        tool = FunctionTool.from_schema("side_effect", "x", {}, lambda args: None)

        assert await tool.call({}) == {}

    @pytest.mark.asyncio
    async def test_through_executor(self):
        async def failing(args):
            raise ExecutionFailedError("backend down", transient=True)

        registry = ToolRegistry()
        registry.register_handle(FunctionTool.from_function_spec(WEATHER_SPEC, get_weather))
        registry.register_handle(FunctionTool.from_schema("failing", "x", {}, failing))
        executor = ToolExecutor.builder(registry).retries(1).fixed_backoff(0.01).build()

        ok = await executor.execute("get_weather", {"city": "Bergen"})
        bad = await executor.execute("get_weather", {"city": 3})
        failed = await executor.execute("failing", {})

        assert ok.success and ok.result["forecast"] == "sunny"
        assert bad.error_kind.value == "invalid_parameters"
        assert failed.error_kind.value == "execution_failed"
        assert "Tool 'failing' execution failed: backend down" == failed.error
        assert failed.attempts == 2


class TestSpecParsing:
    """Tests for function spec parsing and loading."""

    def test_parse_wrapped_and_flat_specs(self):
        flat = WEATHER_SPEC["function"]

        assert parse_function_spec(WEATHER_SPEC) == parse_function_spec(flat)
        assert parse_function_spec({"name": "bare"}) == ("bare", "", None)

    @pytest.mark.parametrize(
        "spec, message",
        [
            ([], "must be a JSON object"),
            ({"type": "function"}, "Missing 'function' object"),
            ({"type": "function", "function": {}}, "Missing function.name"),
            ({"description": "no name"}, "Missing name"),
        ],
    )
    def test_parse_errors(self, spec, message):
        with pytest.raises(InvalidParametersError, match=message):
            parse_function_spec(spec)

    def test_from_function_spec_file(self, tmp_path):
        path = tmp_path / "weather.json"
        path.write_text(json.dumps(WEATHER_SPEC))

        tool = FunctionTool.from_function_spec_file(path, get_weather)

        assert tool.name == "get_weather"
        assert tool.input_schema["required"] == ["city"]

    def test_from_function_spec_file_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(InvalidParametersError, match="Invalid JSON"):
            FunctionTool.from_function_spec_file(path, get_weather)

    def test_load_function_tools(self, tmp_path):
        (tmp_path / "weather.json").write_text(json.dumps(WEATHER_SPEC))
        (tmp_path / "other.json").write_text(json.dumps({"name": "unhandled"}))
        (tmp_path / "notes.txt").write_text("ignored")

        tools = load_function_tools(tmp_path, {"get_weather": get_weather})

        assert [tool.name for tool in tools] == ["get_weather"]

    def test_load_function_tools_strict(self, tmp_path):
        (tmp_path / "other.json").write_text(json.dumps({"name": "unhandled"}))

        with pytest.raises(InvalidParametersError, match="No handler registered"):
            load_function_tools(tmp_path, {}, strict=True)

    def test_load_function_tools_missing_dir(self, tmp_path):
        with pytest.raises(InvalidParametersError, match="Failed to read dir"):
            load_function_tools(tmp_path / "missing", {})


def test_validation_independent_of_metadata_edits():
    """Test that editing the exposed schema cannot change what prepare accepts."""
    tool = FunctionTool.from_function_spec(WEATHER_SPEC, get_weather)

    tool.metadata.input_schema["required"].append("country")
    tool.metadata.input_schema["properties"]["city"]["type"] = "integer"

    assert tool.prepare({"city": "Oslo"}) == {"city": "Oslo"}


def test_registry_schema_unchanged_by_handle_edits():
    registry = ToolRegistry()
    registry.register_handle(FunctionTool.from_function_spec(WEATHER_SPEC, get_weather))

    registry.lookup("get_weather").metadata.input_schema["properties"]["hacked"] = {}

    assert set(registry.input_schema("get_weather")["properties"]) == {"city"}
    assert set(registry.list_tools()[0]["input_schema"]["properties"]) == {"city"}


@pytest.mark.asyncio
async def test_sync_handler_respects_timeout():
    """Test that a blocking plain-function handler runs off the event loop."""

    def blocking(args):
        time.sleep(0.3)
        return {"done": True}

    registry = ToolRegistry()
    registry.register_handle(FunctionTool.from_schema("blocking", "x", {}, blocking))
    executor = ToolExecutor(registry, ExecutionConfig(timeout=0.05))

    result = await executor.execute("blocking", {})

    assert result.error_kind is ErrorKind.TIMEOUT
    assert result.duration < 0.25


@pytest.mark.asyncio
async def test_output_converted_to_json_data():
    when = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    tool = FunctionTool.from_schema(
        "mixed", "x", {}, lambda args: {"ids": {2, 1}, "when": when}
    )

    result = await tool.call({})

    assert sorted(result["ids"]) == [1, 2]
    assert isinstance(result["ids"], list)
    assert result["when"].startswith("2024-01-02T03:04:05")


@pytest.mark.asyncio
async def test_tool_call_messages_for_non_json_output():
    registry = ToolRegistry()
    registry.register_handle(
        FunctionTool.from_schema("sets", "x", {}, lambda args: {"s": {1, 2}})
    )
    executor = ToolExecutor(registry)

    messages = await executor.execute_tool_calls(
        [{"id": "call_1", "function": {"name": "sets", "arguments": "{}"}}]
    )

    assert sorted(json.loads(messages[0]["content"])["s"]) == [1, 2]


@pytest.mark.asyncio
async def test_unserializable_output_is_unknown_error():
    tool = FunctionTool.from_schema("opaque", "x", {}, lambda args: {"obj": object()})

    with pytest.raises(UnknownToolError, match="Failed to serialize output"):
        await tool.call({})

    registry = ToolRegistry()
    registry.register_handle(tool)
    result = await ToolExecutor(registry).execute("opaque", {})

    assert result.error_kind is ErrorKind.UNKNOWN
