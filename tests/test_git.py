from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from claude_session import git
from claude_session.git import CommitInfo, commit_info_block, insert_commit_block, repo_from_remote

INFO = CommitInfo(sha="0123456789abcdef", message="Fix parser\n\nLonger body", branch="main", repo="alice/tool")


@pytest.mark.parametrize(
    ("remote", "expected"),
    [
        ("https://github.com/alice/tool.git", "alice/tool"),
        ("https://github.com/alice/tool", "alice/tool"),
        ("git@github.com:alice/tool.git", "alice/tool"),
        ("https://gitlab.com/alice/tool.git", ""),
        ("", ""),
    ],
)
def test_repo_from_remote(remote: str, expected: str) -> None:
    assert repo_from_remote(remote) == expected


def test_commit_info_block_links_commit() -> None:
    block = commit_info_block(INFO)
    assert block == (
        "> **Commit:** [0123456](https://github.com/alice/tool/commit/0123456789abcdef)\n"
        "> **Branch:** main\n"
        "> **Message:** Fix parser\n"
        "\n---\n\n"
    )


def test_commit_info_block_repo_override_and_no_repo() -> None:
    assert "https://github.com/bob/fork/commit/" in commit_info_block(INFO, "bob/fork")
    bare = commit_info_block(CommitInfo(sha="0123456789abcdef", message="x", branch="dev"))
    assert "> **Commit:** 0123456\n" in bare


def test_insert_commit_block_after_metadata() -> None:
    content = "# Title\n\n| a | b |\n\n---\n\n## 👤 User (1)\n"
    out = insert_commit_block(content, "BLOCK\n")
    assert out == "# Title\n\n| a | b |\n\n---\n\nBLOCK\n## 👤 User (1)\n"


def test_insert_commit_block_prepends_without_metadata() -> None:
    assert insert_commit_block("plain", "BLOCK\n") == "BLOCK\nplain"


def _init_repo(path: Path) -> None:
    def run(*args: str) -> None:
        subprocess.run(["git", *args], cwd=str(path), check=True, capture_output=True, text=True)

    run("init")
    run("config", "user.email", "dev@example.com")
    run("config", "user.name", "Dev")
    run("remote", "add", "origin", "git@github.com:alice/tool.git")
    (path / "README.md").write_text("hi\n", encoding="utf-8")
    run("add", "README.md")
    run("commit", "-m", "Initial commit")


def test_commit_info_from_repository(tmp_path: Path) -> None:
    _init_repo(tmp_path)
    info = git.commit_info(tmp_path)
    assert len(info.sha) == 40
    assert info.message == "Initial commit"
    assert info.repo == "alice/tool"
    assert git.last_commit_timestamp(tmp_path) is not None


def test_outside_repository(tmp_path: Path) -> None:
    assert git.commit_info(tmp_path).sha == ""
    assert git.last_commit_timestamp(tmp_path) is None
