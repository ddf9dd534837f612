"""Descriptive metadata attached to every registered tool."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ToolMetadata(BaseModel):
    """Identity and description of a registered tool.

    Metadata is independent of execution: it is what the registry hands out
    for listings, tag searches and function-calling schemas.

    Attributes:
        name: Unique key in the registry
        description: What the tool does, shown to language models
        version: Tool version string
        author: Optional author
        tags: Categorization tags (order irrelevant)
        enabled: Disabled tools are hidden from listings and dispatch
        input_schema: JSON Schema describing valid input
        extra: Free-form additional metadata
    """

    name: str = Field(description="Unique tool name")
    description: str = Field(default="", description="Tool description")
    version: str = Field(default="1.0.0", description="Tool version")
    author: str | None = Field(default=None, description="Tool author")
    tags: frozenset[str] = Field(
        default_factory=frozenset, description="Categorization tags"
    )
    enabled: bool = Field(default=True, description="Whether the tool is enabled")
    input_schema: dict[str, Any] = Field(
        default_factory=dict, description="JSON Schema of the tool input"
    )
    extra: dict[str, Any] = Field(
        default_factory=dict, description="Additional metadata"
    )

    model_config = ConfigDict(frozen=True)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Tool name cannot be empty")
        return value

    def has_tag(self, tag: str) -> bool:
        """Check whether the tool carries a tag."""
        return tag in self.tags

    def to_function_spec(self) -> dict[str, Any]:
        """Render as an OpenAI/Ollama function-calling tool entry."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }
