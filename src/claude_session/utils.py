from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path


def parse_iso_datetime(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def try_parse_iso_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return parse_iso_datetime(value)
    except ValueError:
        return None


def mtime_datetime(mtime: float | None) -> datetime | None:
    if mtime is None:
        return None
    return datetime.fromtimestamp(mtime, tz=timezone.utc)


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def iso_utc(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def now_utc() -> datetime:
    return datetime.now(tz=timezone.utc)


def slugify(value: str, max_len: int = 30) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower())[:max_len]


def encode_project_path(path: Path | str) -> str:
    """Directory name the assistant uses for a working directory: /a/b -> -a-b."""
    s = str(path).replace("/", "-")
    return s if s.startswith("-") else f"-{s}"


def project_dir_matches_cwd(project_dir_name: str, cwd: Path) -> bool:
    encoded = encode_project_path(cwd.resolve())
    return project_dir_name == encoded or project_dir_name.startswith(f"{encoded}-")


def count_nonblank_lines(text: str) -> int:
    return sum(1 for line in text.split("\n") if line.strip())


def atomic_write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(content, encoding="utf-8")
    tmp_path.replace(path)
