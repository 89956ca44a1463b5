from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Literal

Role = Literal["user", "assistant"]


@dataclass(frozen=True)
class ToolUse:
    name: str
    input: Any


@dataclass(frozen=True)
class ToolResult:
    content: Any


@dataclass(frozen=True)
class NormalizedMessage:
    role: Role
    content: str
    tool_uses: tuple[ToolUse, ...] = ()
    tool_results: tuple[ToolResult, ...] = ()
    timestamp: datetime | None = None


@dataclass(frozen=True)
class SessionMetadata:
    id: str
    project_path: Path
    project_name: str
    file_path: Path
    last_modified: datetime
    message_count: int
    size_bytes: int


@dataclass(frozen=True)
class Session:
    metadata: SessionMetadata
    messages: tuple[NormalizedMessage, ...] = field(default_factory=tuple)
    # non-blank lines that produced no message
    skipped_lines: int = 0


def filter_since(session: Session, since: datetime | None) -> Session:
    """Keep messages newer than ``since``; untimed messages always stay."""
    if since is None:
        return session
    kept = tuple(
        msg for msg in session.messages if msg.timestamp is None or msg.timestamp > since
    )
    return replace(session, messages=kept)
