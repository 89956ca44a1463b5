"""Discovery and loading of session transcripts under ``<claude_dir>/projects``."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

from claude_session.config import SESSION_FILE_PREFIX, SESSION_FILE_SUFFIX, SessionConfig
from claude_session.errors import InvalidFormatError, NotFoundError, ParseError, SessionIOError
from claude_session.models import NormalizedMessage, Session, SessionMetadata
from claude_session.normalize import normalize_record
from claude_session.records import parse_record
from claude_session.utils import count_nonblank_lines, mtime_datetime, project_dir_matches_cwd

logger = logging.getLogger(__name__)


def is_session_file(name: str) -> bool:
    return name.startswith(SESSION_FILE_PREFIX) and name.endswith(SESSION_FILE_SUFFIX)


def session_id_from_name(name: str) -> str:
    return name[len(SESSION_FILE_PREFIX) : -len(SESSION_FILE_SUFFIX)]


def parse_session_lines(text: str) -> tuple[list[NormalizedMessage], int]:
    """Returns (messages, skipped) for the non-blank lines of a transcript."""
    messages: list[NormalizedMessage] = []
    skipped = 0
    for line in text.split("\n"):
        if not line.strip():
            continue
        try:
            record = parse_record(line)
        except (ParseError, InvalidFormatError):
            skipped += 1
            continue
        message = normalize_record(record)
        if message is None:
            skipped += 1
            continue
        messages.append(message)
    return messages, skipped


class SessionStore:
    def __init__(self, config: SessionConfig) -> None:
        self.config = config

    def _project_selected(self, name: str) -> bool:
        project_filter = self.config.project_filter
        if project_filter:
            return project_filter.lower() in name.lower()
        if self.config.scope_to_cwd:
            return project_dir_matches_cwd(name, self.config.cwd)
        return True

    def _project_dirs(self) -> list[Path]:
        projects_dir = self.config.projects_dir
        try:
            entries = sorted(projects_dir.iterdir())
        except OSError as exc:
            raise SessionIOError(f"Failed to read projects directory: {projects_dir}") from exc
        dirs: list[Path] = []
        for entry in entries:
            try:
                if not entry.is_dir():
                    continue
            except OSError:
                continue
            if self._project_selected(entry.name):
                dirs.append(entry)
        return dirs

    def _read_metadata(self, project_dir: Path, file_path: Path) -> SessionMetadata | None:
        try:
            stat = file_path.stat()
        except OSError as exc:
            logger.debug("Skipping %s: %s", file_path, exc)
            return None
        last_modified = mtime_datetime(getattr(stat, "st_mtime", None))
        if last_modified is None:
            logger.debug("Skipping %s: no modification time", file_path)
            return None
        try:
            text = file_path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.debug("Could not count lines in %s: %s", file_path, exc)
            text = ""
        return SessionMetadata(
            id=session_id_from_name(file_path.name),
            project_path=project_dir,
            project_name=project_dir.name,
            file_path=file_path,
            last_modified=last_modified,
            message_count=count_nonblank_lines(text),
            size_bytes=stat.st_size,
        )

    def discover(self) -> list[SessionMetadata]:
        """All session files, most recently modified first.

        A missing projects directory yields an empty list. Unreadable project
        directories and files are skipped.
        """
        projects_dir = self.config.projects_dir
        if not projects_dir.exists():
            return []
        sessions: list[SessionMetadata] = []
        for project_dir in self._project_dirs():
            try:
                names = sorted(p.name for p in project_dir.iterdir())
            except OSError as exc:
                logger.debug("Skipping project %s: %s", project_dir, exc)
                continue
            for name in names:
                if not is_session_file(name):
                    continue
                metadata = self._read_metadata(project_dir, project_dir / name)
                if metadata is not None:
                    sessions.append(metadata)
        sessions.sort(key=lambda s: s.last_modified, reverse=True)
        return sessions

    def iter_sessions(self) -> Iterator[SessionMetadata]:
        yield from self.discover()

    def load(self, metadata: SessionMetadata) -> Session:
        try:
            # undecodable bytes become U+FFFD and that line is dropped as invalid JSON
            text = metadata.file_path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise SessionIOError(f"Failed to read session file: {metadata.file_path}") from exc
        messages, skipped = parse_session_lines(text)
        if skipped:
            logger.debug("Dropped %d line(s) without a message from %s", skipped, metadata.file_path)
        return Session(metadata=metadata, messages=tuple(messages), skipped_lines=skipped)

    def load_most_recent(self) -> Session:
        sessions = self.discover()
        if not sessions:
            raise NotFoundError("No Claude Code sessions found")
        return self.load(sessions[0])

    def load_by_project(self, project_name: str) -> Session:
        needle = project_name.lower()
        for metadata in self.discover():
            if needle in metadata.project_name.lower():
                return self.load(metadata)
        raise NotFoundError(f"No session found for project: {project_name}")
