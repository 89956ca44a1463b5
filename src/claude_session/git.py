from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from claude_session.utils import try_parse_iso_datetime

_GITHUB_REPO = re.compile(r"github\.com[/:]([^/]+/[^/.\s]+)")
_METADATA_END = "\n---\n\n"


@dataclass(frozen=True)
class CommitInfo:
    sha: str = ""
    message: str = ""
    branch: str = ""
    repo: str = ""


def _git(args: list[str], cwd: Path | None = None) -> str:
    """Output of a git command, or "" when git is missing or the command fails."""
    try:
        proc = subprocess.run(
            ["git", *args],
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError):
        return ""
    return proc.stdout.strip()


def repo_from_remote(remote_url: str) -> str:
    match = _GITHUB_REPO.search(remote_url)
    return match.group(1) if match else ""


def last_commit_timestamp(cwd: Path | None = None) -> datetime | None:
    return try_parse_iso_datetime(_git(["log", "-1", "--format=%cI"], cwd))


def commit_info(cwd: Path | None = None) -> CommitInfo:
    return CommitInfo(
        sha=_git(["rev-parse", "HEAD"], cwd),
        message=_git(["log", "-1", "--format=%B"], cwd),
        branch=_git(["rev-parse", "--abbrev-ref", "HEAD"], cwd),
        repo=repo_from_remote(_git(["remote", "get-url", "origin"], cwd)),
    )


def commit_info_block(info: CommitInfo, repo: str | None = None) -> str:
    repo = repo or info.repo
    short_sha = info.sha[:7]
    link = f"[{short_sha}](https://github.com/{repo}/commit/{info.sha})" if repo else short_sha
    first_line = info.message.split("\n")[0] or info.message
    return (
        f"> **Commit:** {link}\n"
        f"> **Branch:** {info.branch}\n"
        f"> **Message:** {first_line}\n"
        "\n---\n\n"
    )


def insert_commit_block(content: str, block: str) -> str:
    """Place the block right after the exported metadata table, or at the top."""
    index = content.find(_METADATA_END)
    if index == -1:
        return block + content
    insert_at = index + len(_METADATA_END)
    return content[:insert_at] + block + content[insert_at:]
