from __future__ import annotations

import html
import json
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from claude_session.models import NormalizedMessage, Session, SessionMetadata
from claude_session.utils import format_timestamp, iso_utc, now_utc, slugify

EXPORTED_BY = "claude-session"


class OutputFormat(str, Enum):
    markdown = "markdown"
    json = "json"
    html = "html"

    @property
    def extension(self) -> str:
        return "md" if self is OutputFormat.markdown else self.value


@dataclass(frozen=True)
class FormatOptions:
    include_tool_use: bool = True
    include_timestamps: bool = True
    # 0 disables truncation
    max_content_length: int = 0
    include_metadata: bool = True
    title: str | None = None


def truncate_content(content: str, max_length: int) -> str:
    if max_length <= 0 or len(content) <= max_length:
        return content
    return content[:max_length] + "\n\n...(truncated)"


def has_displayable_content(message: NormalizedMessage, options: FormatOptions) -> bool:
    """Text always shows; assistant tool calls show as a summary; bare tool results never do."""
    if message.content.strip():
        return True
    return message.role == "assistant" and options.include_tool_use and bool(message.tool_uses)


def displayable_messages(session: Session, options: FormatOptions) -> list[NormalizedMessage]:
    return [m for m in session.messages if has_displayable_content(m, options)]


def _role_label(message: NormalizedMessage) -> tuple[str, str]:
    return ("👤", "User") if message.role == "user" else ("🤖", "Claude")


def _unique(names: list[str]) -> list[str]:
    return list(dict.fromkeys(names))


def _footer_stamp(now: datetime | None) -> str:
    return iso_utc(now or now_utc())


def _markdown_header(metadata: SessionMetadata, title: str | None) -> list[str]:
    return [
        f"# Claude Code Session: {title or metadata.project_name}",
        "",
        "| Property | Value |",
        "|----------|-------|",
        f"| **Session ID** | `{metadata.id}` |",
        f"| **Project** | {metadata.project_name} |",
        f"| **Last Modified** | {format_timestamp(metadata.last_modified)} |",
        f"| **Messages** | {metadata.message_count} |",
        f"| **Size** | {metadata.size_bytes / 1024:.1f} KB |",
        "",
        "---",
        "",
    ]


def _markdown_message(message: NormalizedMessage, index: int, options: FormatOptions) -> list[str]:
    emoji, name = _role_label(message)
    heading = f"## {emoji} {name} ({index + 1})"
    if options.include_timestamps and message.timestamp is not None:
        heading += f" - {format_timestamp(message.timestamp)}"
    lines = [heading, ""]

    has_text = bool(message.content.strip())
    show_tools = options.include_tool_use and bool(message.tool_uses)
    if has_text:
        lines.append(truncate_content(message.content, options.max_content_length))
    elif show_tools:
        tools = ", ".join(_unique([t.name for t in message.tool_uses]))
        lines.append(f"*Used tools: {tools}*")

    if has_text and show_tools:
        lines.extend(["", "<details>", "<summary>Tool Uses</summary>", ""])
        for tool in message.tool_uses:
            lines.append(f"**{tool.name}**")
            lines.append("```json")
            lines.append(json.dumps(tool.input, indent=2, ensure_ascii=False))
            lines.append("```")
            lines.append("")
        lines.append("</details>")

    lines.extend(["", "---", ""])
    return lines


def render_markdown(
    session: Session, options: FormatOptions | None = None, *, now: datetime | None = None
) -> str:
    options = options or FormatOptions()
    lines: list[str] = []
    if options.include_metadata:
        lines.extend(_markdown_header(session.metadata, options.title))
    for index, message in enumerate(displayable_messages(session, options)):
        lines.extend(_markdown_message(message, index, options))
    lines.append("")
    lines.append(f"*Exported by {EXPORTED_BY} on {_footer_stamp(now)}*")
    return "\n".join(lines) + "\n"


def _json_message(message: NormalizedMessage, options: FormatOptions) -> dict:
    data: dict = {
        "role": message.role,
        "content": truncate_content(message.content, options.max_content_length),
        "timestamp": iso_utc(message.timestamp) if message.timestamp else None,
    }
    if options.include_tool_use and message.tool_uses:
        data["toolUses"] = [{"name": t.name, "input": t.input} for t in message.tool_uses]
    if options.include_tool_use and message.tool_results:
        data["toolResults"] = [{"content": r.content} for r in message.tool_results]
    return data


def render_json(
    session: Session, options: FormatOptions | None = None, *, now: datetime | None = None
) -> str:
    options = options or FormatOptions()
    messages = displayable_messages(session, options)
    payload = {
        "metadata": {
            "sessionId": session.metadata.id,
            "project": session.metadata.project_name,
            "lastModified": iso_utc(session.metadata.last_modified),
            "messageCount": len(messages),
            "exportedAt": _footer_stamp(now),
        },
        "messages": [_json_message(m, options) for m in messages],
    }
    return json.dumps(payload, indent=2, ensure_ascii=False, default=str)


_FENCE = re.compile(r"```(\w*)\n(.*?)```", re.DOTALL)


def _html_content(text: str) -> str:
    escaped = html.escape(text)
    parts: list[str] = []
    pos = 0
    for match in _FENCE.finditer(escaped):
        parts.append(escaped[pos : match.start()].replace("\n", "<br>"))
        parts.append(f'<pre><code class="language-{match.group(1)}">{match.group(2)}</code></pre>')
        pos = match.end()
    parts.append(escaped[pos:].replace("\n", "<br>"))
    return "".join(parts)


def _html_message(message: NormalizedMessage, index: int, options: FormatOptions) -> str:
    emoji, name = _role_label(message)
    timestamp = ""
    if options.include_timestamps and message.timestamp is not None:
        timestamp = f'<span class="timestamp">{format_timestamp(message.timestamp)}</span>'
    content = _html_content(truncate_content(message.content, options.max_content_length))
    tools = ""
    if options.include_tool_use and message.tool_uses:
        items = "".join(
            f'<div class="tool"><strong>{html.escape(t.name)}</strong>'
            f"<pre><code>{html.escape(json.dumps(t.input, indent=2, ensure_ascii=False))}</code></pre></div>"
            for t in message.tool_uses
        )
        tools = f'<div class="tool-uses"><h4>Tool Uses</h4>{items}</div>'
    return f"""
    <div class="message {message.role}">
      <div class="message-header">
        <span class="role">{emoji} {name} ({index + 1})</span>
        {timestamp}
      </div>
      <div class="message-content">{content}</div>
      {tools}
    </div>"""


_HTML_STYLE = """
    :root {
      --bg-primary: #1a1a2e; --bg-secondary: #16213e; --bg-user: #0f3460;
      --text-primary: #e8e8e8; --text-secondary: #a0a0a0; --accent: #e94560; --border: #2a2a4a;
    }
    * { box-sizing: border-box; margin: 0; padding: 0; }
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
      background: var(--bg-primary); color: var(--text-primary); line-height: 1.6; padding: 2rem; }
    .container { max-width: 900px; margin: 0 auto; }
    header { background: var(--bg-secondary); padding: 2rem; border-radius: 12px;
      margin-bottom: 2rem; border: 1px solid var(--border); }
    h1 { color: var(--accent); margin-bottom: 1rem; }
    .metadata { display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 1rem; }
    .metadata-item { background: var(--bg-primary); padding: 0.75rem 1rem; border-radius: 8px; }
    .metadata-item label { color: var(--text-secondary); font-size: 0.85rem; display: block; }
    .message { padding: 1.5rem; margin-bottom: 1rem; border-radius: 12px; border: 1px solid var(--border); }
    .message.user { background: var(--bg-user); }
    .message-header { display: flex; justify-content: space-between; margin-bottom: 1rem;
      padding-bottom: 0.5rem; border-bottom: 1px solid var(--border); }
    .role { font-weight: 600; }
    .timestamp { color: var(--text-secondary); font-size: 0.85rem; }
    .message-content { white-space: pre-wrap; word-wrap: break-word; }
    pre { background: var(--bg-primary); padding: 1rem; border-radius: 8px; overflow-x: auto; margin: 1rem 0; }
    code { font-family: 'Fira Code', 'Monaco', monospace; font-size: 0.9rem; }
    .tool-uses { margin-top: 1.5rem; padding-top: 1rem; border-top: 1px solid var(--border); }
    .tool-uses h4 { color: var(--accent); margin-bottom: 0.5rem; }
    footer { text-align: center; color: var(--text-secondary); font-size: 0.85rem; margin-top: 2rem; }
"""


def _html_metadata(session: Session, count: int) -> str:
    meta = session.metadata
    items = [
        ("Project", html.escape(meta.project_name)),
        ("Session ID", html.escape(meta.id)),
        ("Last Modified", format_timestamp(meta.last_modified)),
        ("Messages", str(count)),
    ]
    cells = "".join(
        f'<div class="metadata-item"><label>{label}</label><span>{value}</span></div>'
        for label, value in items
    )
    return f'<div class="metadata">{cells}</div>'


def render_html(
    session: Session, options: FormatOptions | None = None, *, now: datetime | None = None
) -> str:
    options = options or FormatOptions()
    title = html.escape(options.title or session.metadata.project_name)
    messages = displayable_messages(session, options)
    body = "\n".join(_html_message(m, i, options) for i, m in enumerate(messages))
    metadata = _html_metadata(session, len(messages)) if options.include_metadata else ""
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Claude Session: {title}</title>
  <style>{_HTML_STYLE}</style>
</head>
<body>
  <div class="container">
    <header>
      <h1>🤖 Claude Code Session</h1>
      {metadata}
    </header>
    <main>
      {body}
    </main>
    <footer>Exported by {EXPORTED_BY} on {_footer_stamp(now)}</footer>
  </div>
</body>
</html>
"""


_RENDERERS = {
    OutputFormat.markdown: render_markdown,
    OutputFormat.json: render_json,
    OutputFormat.html: render_html,
}


def render(
    session: Session,
    fmt: OutputFormat | str,
    options: FormatOptions | None = None,
    *,
    now: datetime | None = None,
) -> str:
    return _RENDERERS[OutputFormat(fmt)](session, options, now=now)


def generate_filename(
    metadata: SessionMetadata, fmt: OutputFormat | str, *, now: datetime | None = None
) -> str:
    stamp = (now or now_utc()).strftime("%Y-%m-%dT%H-%M-%S")
    return f"claude-session-{slugify(metadata.project_name)}-{stamp}.{OutputFormat(fmt).extension}"
