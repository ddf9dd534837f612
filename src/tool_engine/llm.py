"""Extract tool calls from chat-completion responses.

Supports the shapes returned by OpenAI-compatible and Ollama chat APIs:

- a message or response with a top-level ``tool_calls`` list
- ``choices[*].message.tool_calls`` (OpenAI)
- ``message.tool_calls`` (Ollama)
- the legacy ``function_call`` object

Providers return arguments either as an object or as a JSON-encoded string;
both are accepted.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

LEGACY_CALL_ID = "legacy"


@dataclass(frozen=True)
class ToolCall:
    """A tool call requested by a language model.

    Attributes:
        id: Provider call id, None when the provider does not send one
        name: Requested tool name
        arguments: Decoded arguments, or the raw string if decoding failed
        arguments_raw: The original string when arguments arrived encoded
    """

    id: str | None
    name: str
    arguments: Any = None
    arguments_raw: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolCall":
        """Parse a single tool_calls entry.

        Raises:
            ValueError: If the entry has no function name
        """
        call = _parse_call(data)
        if call is None:
            raise ValueError(f"Not a tool call: {data!r}")
        return call

    def dispatch_arguments(self) -> Any:
        """Arguments in the form handed to the executor.

        Missing arguments become an empty object and strings that are not
        valid JSON are wrapped as {"_raw": ...} so that validation reports
        them against the tool's schema.
        """
        if self.arguments is None:
            return {}
        if isinstance(self.arguments, str):
            return {"_raw": self.arguments}
        return self.arguments


def _decode_arguments(value: Any) -> tuple[Any, str | None]:
    if isinstance(value, str):
        try:
            return json.loads(value), value
        except json.JSONDecodeError:
            logger.debug(f"Tool call arguments are not valid JSON: {value[:100]!r}")
            return value, value
    return value, None


def _parse_call(data: Any) -> ToolCall | None:
    if not isinstance(data, dict):
        return None

    function = data.get("function")
    if not isinstance(function, dict):
        return None

    name = function.get("name")
    if not isinstance(name, str) or not name:
        return None

    call_id = data.get("id")
    arguments, raw = _decode_arguments(function.get("arguments"))
    return ToolCall(
        id=call_id if isinstance(call_id, str) else None,
        name=name,
        arguments=arguments,
        arguments_raw=raw,
    )


def _parse_call_list(calls: Any) -> list[ToolCall]:
    if not isinstance(calls, list):
        return []
    parsed = []
    for entry in calls:
        call = _parse_call(entry)
        if call is None:
            logger.debug(f"Skipping malformed tool call entry: {entry!r}")
            continue
        parsed.append(call)
    return parsed


def _parse_legacy_call(function_call: Any) -> ToolCall | None:
    if not isinstance(function_call, dict):
        return None
    name = function_call.get("name")
    if not isinstance(name, str) or not name:
        return None
    arguments, raw = _decode_arguments(function_call.get("arguments"))
    return ToolCall(id=LEGACY_CALL_ID, name=name, arguments=arguments, arguments_raw=raw)


def parse_tool_calls(response: dict[str, Any]) -> list[ToolCall]:
    """Collect every tool call in a response or message.

    Args:
        response: A chat-completion response or a single assistant message

    Returns:
        list[ToolCall]: Calls in the order the model produced them
    """
    if not isinstance(response, dict):
        return []

    if "tool_calls" in response:
        return _parse_call_list(response["tool_calls"])

    choices = response.get("choices")
    if isinstance(choices, list):
        calls = []
        for choice in choices:
            if isinstance(choice, dict) and isinstance(choice.get("message"), dict):
                calls.extend(_parse_call_list(choice["message"].get("tool_calls")))
        return calls

    message = response.get("message")
    if isinstance(message, dict):
        return parse_tool_calls(message)

    legacy = _parse_legacy_call(response.get("function_call"))
    return [legacy] if legacy else []


def parse_first_tool_call(response: dict[str, Any]) -> ToolCall | None:
    calls = parse_tool_calls(response)
    return calls[0] if calls else None


def normalize_arguments(arguments: Any) -> Any:
    """Normalize model-produced arguments.

    JSON strings are decoded, object keys are trimmed and lowercased, and
    nested values are normalized recursively.
    """
    if isinstance(arguments, str):
        try:
            return normalize_arguments(json.loads(arguments))
        except json.JSONDecodeError:
            return arguments
    if isinstance(arguments, dict):
        return {
            str(key).strip().lower(): normalize_arguments(value)
            for key, value in arguments.items()
        }
    if isinstance(arguments, list):
        return [normalize_arguments(item) for item in arguments]
    return arguments
