from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

SESSION_FILE_PREFIX = "chat_"
SESSION_FILE_SUFFIX = ".jsonl"


def default_claude_dir() -> Path:
    return Path("~/.claude").expanduser()


@dataclass(frozen=True)
class SessionConfig:
    claude_dir: Path
    project_filter: str | None = None
    # only keep the project directory belonging to cwd; ignored when project_filter is set
    scope_to_cwd: bool = False
    cwd: Path | None = None

    def __post_init__(self) -> None:
        if self.scope_to_cwd and self.cwd is None:
            raise ValueError("scope_to_cwd requires cwd")

    @classmethod
    def default(cls, **overrides) -> SessionConfig:
        overrides.setdefault("claude_dir", default_claude_dir())
        overrides.setdefault("cwd", Path.cwd())
        return cls(**overrides)

    @property
    def projects_dir(self) -> Path:
        return self.claude_dir / "projects"
