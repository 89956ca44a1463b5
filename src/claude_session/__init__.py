"""Discover, parse, render and archive Claude Code session transcripts."""

from claude_session.config import SessionConfig
from claude_session.errors import (
    GistError,
    InvalidFormatError,
    NotFoundError,
    ParseError,
    SessionError,
    SessionIOError,
)
from claude_session.models import (
    NormalizedMessage,
    Session,
    SessionMetadata,
    ToolResult,
    ToolUse,
    filter_since,
)
from claude_session.normalize import normalize_record
from claude_session.records import RawRecord, parse_record
from claude_session.sessions import SessionStore

__version__ = "0.1.0"

__all__ = [
    "GistError",
    "InvalidFormatError",
    "NormalizedMessage",
    "NotFoundError",
    "ParseError",
    "RawRecord",
    "Session",
    "SessionConfig",
    "SessionError",
    "SessionIOError",
    "SessionMetadata",
    "SessionStore",
    "ToolResult",
    "ToolUse",
    "filter_since",
    "normalize_record",
    "parse_record",
]
