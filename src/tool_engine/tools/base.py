"""Tool contract and the type-erased handle the registry stores.

A Tool is written against concrete pydantic input and output models. The
registry cannot dispatch on those types, so each tool is wrapped in a
TypedToolHandle that turns a structured document into the tool's input model,
runs the typed execute, and turns the output model back into a document.
"""

import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, Generic, Iterable, TypeVar

from pydantic import BaseModel, ValidationError
from pydantic_core import PydanticSerializationError

from tool_engine.errors import (
    ExecutionFailedError,
    InvalidParametersError,
    ToolError,
    UnknownToolError,
)
from tool_engine.tools.metadata import ToolMetadata

logger = logging.getLogger(__name__)

InputT = TypeVar("InputT", bound=BaseModel)
OutputT = TypeVar("OutputT", bound=BaseModel)


def format_validation_error(error: ValidationError) -> str:
    """Collapse a pydantic ValidationError into a single line.

    Args:
        error: The validation error raised by pydantic

    Returns:
        str: "field: message" pairs joined by "; "
    """
    parts = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail.get("loc", ()))
        message = detail.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or str(error)


class Tool(ABC, Generic[InputT, OutputT]):
    """Base class for typed tools.

    Subclasses declare their identity and types as class attributes and
    implement execute():

        class AddTool(Tool[AddInput, AddOutput]):
            name = "add"
            description = "Add two numbers"
            input_model = AddInput
            output_model = AddOutput

            async def execute(self, input: AddInput) -> AddOutput:
                return AddOutput(result=input.a + input.b)

    Attributes may also be assigned per instance in __init__, e.g. when the
    same class is registered twice under different names.
    """

    name: str = ""
    description: str = ""
    version: str = "1.0.0"
    author: str | None = None
    tags: Iterable[str] = ()
    enabled: bool = True
    input_model: type[BaseModel]
    output_model: type[BaseModel]

    @classmethod
    def schema(cls) -> dict[str, Any]:
        """JSON Schema of the input model."""
        return cls.input_model.model_json_schema()

    def metadata(self) -> ToolMetadata:
        """Build the metadata record for this tool.

        Returns:
            ToolMetadata: Metadata with the input schema derived from input_model
        """
        return ToolMetadata(
            name=self.name,
            description=self.description,
            version=self.version,
            author=self.author,
            tags=frozenset(self.tags),
            enabled=self.enabled,
            input_schema=self.schema(),
        )

    def validate(self, input: InputT) -> None:
        """Check the parsed input before execution.

        The default accepts everything. Override to enforce semantic rules
        that the input model's field types cannot express.

        Raises:
            InvalidParametersError: If the input is not acceptable
        """
        return None

    @abstractmethod
    async def execute(self, input: InputT) -> OutputT:
        """Run the tool.

        Raises:
            ToolError: ExecutionFailedError (optionally transient) or any other
                kind the tool wants to report
        """

    async def aclose(self) -> None:
        """Release resources owned by the tool."""
        return None


class ToolHandle(ABC):
    """Uniform, type-erased invocation surface over a single tool."""

    @property
    @abstractmethod
    def metadata(self) -> ToolMetadata:
        """Metadata captured when the handle was created."""

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def input_schema(self) -> dict[str, Any]:
        return copy.deepcopy(self.metadata.input_schema)

    @abstractmethod
    def prepare(self, document: Any) -> Any:
        """Deserialize and validate a structured document.

        Raises:
            InvalidParametersError: If the document does not fit the tool
        """

    @abstractmethod
    async def invoke(self, prepared: Any) -> Any:
        """Execute with prepared input and return a structured document."""

    async def call(self, document: Any) -> Any:
        """Prepare and invoke in one step, without any executor policy."""
        return await self.invoke(self.prepare(document))

    async def aclose(self) -> None:
        return None


class TypedToolHandle(ToolHandle):
    """Adapter from a typed Tool to the ToolHandle surface."""

    def __init__(self, tool: Tool[Any, Any]) -> None:
        self.tool = tool
        self._metadata = tool.metadata().model_copy(deep=True)

    @property
    def metadata(self) -> ToolMetadata:
        return self._metadata

    def prepare(self, document: Any) -> BaseModel:
        input_model = self.tool.input_model

        if isinstance(document, input_model):
            parsed = document
        else:
            try:
                parsed = input_model.model_validate(
                    {} if document is None else document
                )
            except ValidationError as e:
                raise InvalidParametersError(
                    format_validation_error(e), tool=self.name
                ) from e

        try:
            self.tool.validate(parsed)
        except ToolError as e:
            raise e.with_tool(self.name)
        except (ValueError, TypeError) as e:
            raise InvalidParametersError(str(e), tool=self.name) from e

        return parsed

    async def invoke(self, prepared: Any) -> Any:
        output = await self.tool.execute(prepared)
        return self._serialize(output)

    def _serialize(self, output: Any) -> Any:
        output_model = self.tool.output_model

        if not isinstance(output, output_model):
            try:
                output = output_model.model_validate(output)
            except ValidationError as e:
                raise ExecutionFailedError(
                    f"Tool returned invalid output: {format_validation_error(e)}",
                    tool=self.name,
                ) from e

        try:
            return output.model_dump(mode="json")
        except PydanticSerializationError as e:
            raise UnknownToolError(
                f"Failed to serialize output: {e}", tool=self.name
            ) from e

    async def aclose(self) -> None:
        await self.tool.aclose()

    def __repr__(self) -> str:
        return f"TypedToolHandle({self.name!r}, tool={type(self.tool).__name__})"
