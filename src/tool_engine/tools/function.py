"""Schema-first tools backed by a plain handler function.

A FunctionTool carries a JSON Schema instead of a pydantic input model. It is
the natural fit for tools described by an OpenAI-style function spec, for
example specs loaded from a directory of JSON files:

    async def get_weather(args):
        return {"city": args["city"], "forecast": "sunny"}

    tool = (
        FunctionTool.builder("get_weather", "Look up the forecast")
        .property("city", {"type": "string"})
        .required("city")
        .handler(get_weather)
        .build()
    )
    registry.register_handle(tool)
"""

import asyncio
import copy
import inspect
import json
import logging
import re
from pathlib import Path
from typing import Any, Awaitable, Callable, Mapping, Union

from jsonschema.exceptions import SchemaError
from jsonschema.validators import validator_for
from pydantic_core import PydanticSerializationError, to_jsonable_python

from tool_engine.errors import InvalidParametersError, ToolError, UnknownToolError
from tool_engine.tools.base import ToolHandle
from tool_engine.tools.metadata import ToolMetadata

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Union[Awaitable[Any], Any]]

_NAME_PATTERN = re.compile(r"^\w+$")


def _check_name(name: str) -> None:
    if not name or not name.strip():
        raise InvalidParametersError("Tool name cannot be empty", tool=name or None)
    if not _NAME_PATTERN.match(name):
        raise InvalidParametersError(
            "Tool name must be alphanumeric with underscores only", tool=name
        )


def parse_function_spec(spec: Any) -> tuple[str, str, dict[str, Any] | None]:
    """Extract name, description and parameters from a function spec.

    Accepts both {"name", "description", "parameters"} and the wrapped
    {"type": "function", "function": {...}} shape.

    Raises:
        InvalidParametersError: If the function spec is not an object or has no name
    """
    if not isinstance(spec, dict):
        raise InvalidParametersError("Function spec must be a JSON object")

    if spec.get("type") == "function":
        function = spec.get("function")
        if not isinstance(function, dict):
            raise InvalidParametersError("Missing 'function' object")
        body, missing = function, "Missing function.name"
    else:
        body, missing = spec, "Missing name"

    name = body.get("name")
    if not isinstance(name, str):
        raise InvalidParametersError(missing)

    description = body.get("description")
    parameters = body.get("parameters")
    return (
        name,
        description if isinstance(description, str) else "",
        copy.deepcopy(parameters) if parameters is not None else None,
    )


class FunctionTool(ToolHandle):
    """A tool defined by a JSON Schema and a handler.

    Input documents are checked against the compiled schema before the
    handler runs. The handler receives the document as-is and may be a
    coroutine function or a plain function; plain functions run in a worker
    thread. Its return value is converted to JSON-compatible data (sets
    become lists, datetimes become ISO strings).
    """

    def __init__(
        self,
        metadata: ToolMetadata,
        handler: Handler,
        validator: Any,
    ) -> None:
        self._metadata = metadata
        self._handler = handler
        self._validator = validator

    @staticmethod
    def builder(name: str, description: str = "") -> "FunctionToolBuilder":
        return FunctionToolBuilder(name, description)

    @classmethod
    def from_schema(
        cls, name: str, description: str, schema: dict[str, Any], handler: Handler
    ) -> "FunctionTool":
        return cls.builder(name, description).schema(schema).handler(handler).build()

    @classmethod
    def from_function_spec(cls, spec: Any, handler: Handler) -> "FunctionTool":
        """Build from an OpenAI-style function spec.

        Raises:
            InvalidParametersError: If the function spec or its schema is invalid
        """
        name, description, parameters = parse_function_spec(spec)
        builder = cls.builder(name, description)
        if parameters is not None:
            builder.schema(parameters)
        return builder.handler(handler).build()

    @classmethod
    def from_function_spec_file(
        cls, path: str | Path, handler: Handler
    ) -> "FunctionTool":
        """Build from a JSON file holding a function spec.

        Raises:
            InvalidParametersError: If the file cannot be read or parsed
        """
        return cls.from_function_spec(_read_json(Path(path)), handler)

    @property
    def metadata(self) -> ToolMetadata:
        return self._metadata

    def prepare(self, document: Any) -> Any:
        if document is None:
            document = {}

        errors = sorted(self._validator.iter_errors(document), key=lambda e: list(e.path))
        if errors:
            details = []
            for error in errors:
                location = "/".join(str(part) for part in error.path)
                details.append(f"{location}: {error.message}" if location else error.message)
            raise InvalidParametersError(
                f"Input validation failed: {'; '.join(details)}", tool=self.name
            )
        return document

    async def invoke(self, prepared: Any) -> Any:
        if inspect.iscoroutinefunction(self._handler):
            result = await self._handler(prepared)
        else:
            # Plain functions run in a worker thread to keep the loop free
            result = await asyncio.to_thread(self._handler, prepared)
            if inspect.isawaitable(result):
                result = await result

        if result is None:
            return {}
        try:
            return to_jsonable_python(result)
        except PydanticSerializationError as e:
            raise UnknownToolError(
                f"Failed to serialize output: {e}", tool=self.name
            ) from e

    def __repr__(self) -> str:
        return f"FunctionTool({self.name!r})"


class FunctionToolBuilder:
    """Fluent construction of a FunctionTool.

    build() completes the schema with "type": "object",
    "additionalProperties": false and an empty "properties" object unless
    the caller supplied them, then merges staged properties and required
    names into it.
    """

    def __init__(self, name: str, description: str = "") -> None:
        self._name = name
        self._description = description
        self._schema: dict[str, Any] | None = None
        self._properties: dict[str, Any] = {}
        self._required: list[str] = []
        self._metadata: dict[str, Any] = {}
        self._handler: Handler | None = None

    def schema(self, schema: dict[str, Any]) -> "FunctionToolBuilder":
        self._schema = copy.deepcopy(schema)
        return self

    def property(self, name: str, schema: dict[str, Any]) -> "FunctionToolBuilder":
        self._properties[name] = copy.deepcopy(schema)
        return self

    def required(self, name: str) -> "FunctionToolBuilder":
        self._required.append(name)
        return self

    def metadata(self, **fields: Any) -> "FunctionToolBuilder":
        """Set metadata fields: version, author, tags, enabled or extra."""
        self._metadata.update(fields)
        return self

    def handler(self, handler: Handler) -> "FunctionToolBuilder":
        self._handler = handler
        return self

    def _complete_schema(self) -> Any:
        schema = self._schema if self._schema is not None else {}
        if not isinstance(schema, dict):
            return schema

        schema.setdefault("type", "object")
        schema.setdefault("additionalProperties", False)
        properties = schema.setdefault("properties", {})
        if isinstance(properties, dict):
            properties.update(self._properties)

        if self._required:
            existing = schema.get("required")
            merged = set(existing) if isinstance(existing, list) else set()
            merged.update(self._required)
            schema["required"] = sorted(merged)
        return schema

    def build(self) -> FunctionTool:
        """Build the tool.

        Raises:
            InvalidParametersError: If the name, schema or handler is invalid
        """
        _check_name(self._name)
        if self._handler is None:
            raise InvalidParametersError("FunctionTool handler not set", tool=self._name)

        schema = self._complete_schema()
        try:
            validator_cls = validator_for(schema)
            validator_cls.check_schema(schema)
        except SchemaError as e:
            raise InvalidParametersError(
                f"Failed to compile schema: {e.message}", tool=self._name
            ) from e

        try:
            metadata = ToolMetadata(
                name=self._name,
                description=self._description,
                input_schema=schema,
                **self._metadata,
            )
        except (TypeError, ValueError) as e:
            raise InvalidParametersError(
                f"Invalid tool metadata: {e}", tool=self._name
            ) from e

        # The validator keeps its own copy so metadata edits cannot change validation
        return FunctionTool(metadata, self._handler, validator_cls(copy.deepcopy(schema)))


def _read_json(path: Path) -> Any:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise InvalidParametersError(f"Failed to read {path}: {e}") from e
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise InvalidParametersError(f"Invalid JSON in {path}: {e}") from e


def load_function_tools(
    directory: str | Path,
    handlers: Mapping[str, Handler],
    strict: bool = False,
) -> list[FunctionTool]:
    """Build FunctionTools from every *.json function spec in a directory.

    Args:
        directory: Directory to scan (not recursive)
        handlers: Handler per function name
        strict: Raise when a spec has no handler instead of skipping it

    Returns:
        list[FunctionTool]: Tools in file name order

    Raises:
        InvalidParametersError: If the directory or a spec cannot be read,
            or a handler is missing in strict mode
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise InvalidParametersError(f"Failed to read dir {directory}: not a directory")

    tools = []
    for path in sorted(directory.glob("*.json")):
        if not path.is_file():
            continue

        try:
            name, description, parameters = parse_function_spec(_read_json(path))
        except ToolError as e:
            raise InvalidParametersError(f"Failed to parse spec {path}: {e}") from e

        handler = handlers.get(name)
        if handler is None:
            if strict:
                raise InvalidParametersError(
                    f"No handler registered for function '{name}' (file {path})"
                )
            logger.debug(f"Skipping function spec {path}: no handler for {name}")
            continue

        builder = FunctionTool.builder(name, description)
        if parameters is not None:
            builder.schema(parameters)
        tools.append(builder.handler(handler).build())
        logger.info(f"Loaded function tool {name} from {path.name}")

    return tools
