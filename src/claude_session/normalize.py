from __future__ import annotations

from claude_session.models import NormalizedMessage, ToolResult, ToolUse
from claude_session.records import (
    MessageContent,
    RawRecord,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from claude_session.utils import try_parse_iso_datetime


def _select_content(record: RawRecord) -> MessageContent | None:
    if record.message is not None:
        return record.message.content
    return record.content


def _extract_text(content: MessageContent) -> str:
    if isinstance(content, str):
        return content
    return "\n".join(block.text for block in content if isinstance(block, TextBlock))


def _extract_tool_uses(content: MessageContent) -> tuple[ToolUse, ...]:
    if isinstance(content, str):
        return ()
    return tuple(
        ToolUse(name=block.name, input=block.input)
        for block in content
        if isinstance(block, ToolUseBlock)
    )


def _extract_tool_results(content: MessageContent) -> tuple[ToolResult, ...]:
    if isinstance(content, str):
        return ()
    return tuple(
        ToolResult(content=block.content) for block in content if isinstance(block, ToolResultBlock)
    )


def normalize_record(record: RawRecord) -> NormalizedMessage | None:
    """Collapse a raw record into a NormalizedMessage, or None if it carries no content."""
    content = _select_content(record)
    if content is None:
        return None
    return NormalizedMessage(
        role="assistant" if record.type == "assistant" else "user",
        content=_extract_text(content),
        tool_uses=_extract_tool_uses(content),
        tool_results=_extract_tool_results(content),
        timestamp=try_parse_iso_datetime(record.timestamp),
    )
