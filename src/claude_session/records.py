"""Typed shape of one line of a session transcript.

Each line of a ``chat_<id>.jsonl`` file is a JSON object tagged by ``type``.
Only the three conversational kinds are recognised; anything else (summaries,
snapshots, unknown block types) fails validation and is treated as noise by
the loader.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from claude_session.errors import InvalidFormatError, ParseError

_PREVIEW_CHARS = 100


class _Shape(BaseModel):
    # Optional keys default to None when absent. Defaults are not validated, so an
    # explicit null still fails the declared type.
    model_config = ConfigDict(extra="ignore", frozen=True)


class TextBlock(_Shape):
    type: Literal["text"]
    text: str


class ToolUseBlock(_Shape):
    type: Literal["tool_use"]
    id: str = None
    name: str
    input: Any = None


class ToolResultBlock(_Shape):
    type: Literal["tool_result"]
    tool_use_id: str = None
    content: Any = None


ContentBlock = Annotated[
    Union[TextBlock, ToolUseBlock, ToolResultBlock],
    Field(discriminator="type"),
]

MessageContent = Union[str, list[ContentBlock]]


class WrappedMessage(_Shape):
    role: str = None
    content: MessageContent


class RawRecord(_Shape):
    # "user" and "human" are the same speaker written by different format versions
    type: Literal["user", "human", "assistant"]
    message: WrappedMessage = None
    content: MessageContent = None
    timestamp: str = None


def _preview(line: str) -> str:
    return f"{line[:_PREVIEW_CHARS]}..."


def parse_record(line: str) -> RawRecord:
    """Parse one non-blank transcript line.

    Raises ParseError when the line is not JSON and InvalidFormatError when
    the JSON does not have the record shape.
    """
    try:
        obj = json.loads(line)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Failed to parse JSON line: {_preview(line)}") from exc
    if not isinstance(obj, dict):
        raise InvalidFormatError(f"Invalid session message format: {_preview(line)}")
    try:
        return RawRecord.model_validate(obj)
    except ValidationError as exc:
        raise InvalidFormatError(f"Invalid session message format: {_preview(line)}") from exc
