"""GitHub gist publishing: the ``gh`` CLI when it is logged in, else the REST API."""

from __future__ import annotations

import logging
import os
import re
import subprocess
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

import httpx

from claude_session.errors import GistError
from claude_session.utils import now_utc, try_parse_iso_datetime

logger = logging.getLogger(__name__)

AuthMethod = Literal["cli", "token", "none"]

API_URL = "https://api.github.com"
_GIST_URL = re.compile(r"https://gist\.github\.com/\S+")
_NO_AUTH = (
    "No authentication method available. "
    "Either run 'gh auth login' or set GITHUB_TOKEN environment variable."
)


@dataclass(frozen=True)
class GistFile:
    filename: str
    content: str


@dataclass(frozen=True)
class GistResult:
    id: str
    url: str
    html_url: str
    raw_url: str | None
    description: str
    created_at: datetime


@dataclass(frozen=True)
class GistConfig:
    token: str | None = None
    prefer_cli: bool = True
    retry_attempts: int = 3

    @classmethod
    def from_env(cls, **overrides) -> GistConfig:
        overrides.setdefault("token", os.environ.get("GITHUB_TOKEN") or None)
        return cls(**overrides)


def gist_id_from_url(value: str) -> str:
    return value.rstrip("/").split("/")[-1] if "/" in value else value


class GistClient:
    def __init__(
        self,
        config: GistConfig,
        *,
        http: httpx.Client | None = None,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self._http = http
        self._run = runner
        self._sleep = sleep

    # -- gh CLI --------------------------------------------------------------

    def _gh(self, args: list[str], *, stdin: str | None = None) -> str:
        try:
            proc = self._run(
                ["gh", *args], input=stdin, capture_output=True, text=True, check=True
            )
        except FileNotFoundError as exc:
            raise GistError("cli", "gh CLI not found. Install it from https://cli.github.com/") from exc
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or "").strip() or str(exc)
            raise GistError("cli", f"gh {args[0]} {args[1]} failed: {detail}") from exc
        return proc.stdout

    def _cli_authenticated(self) -> bool:
        try:
            proc = self._run(["gh", "auth", "status"], capture_output=True, text=True, check=False)
        except OSError:
            return False
        return proc.returncode == 0

    def _use_cli(self) -> bool:
        return self.config.prefer_cli and self._cli_authenticated()

    def _create_via_cli(self, description: str, files: list[GistFile], public: bool) -> GistResult:
        file = files[0]
        args = ["gist", "create", "-d", description]
        if public:
            args.append("--public")
        args += ["-f", file.filename, "-"]
        output = self._gh(args, stdin=file.content)
        match = _GIST_URL.search(output)
        html_url = match.group(0) if match else ""
        gist_id = gist_id_from_url(html_url) if html_url else ""
        return GistResult(
            id=gist_id,
            url=f"{API_URL}/gists/{gist_id}",
            html_url=html_url,
            raw_url=None,
            description=description,
            created_at=now_utc(),
        )

    def _update_via_cli(self, gist_id: str, files: list[GistFile], description: str | None) -> GistResult:
        file = files[0]
        self._gh(["gist", "edit", gist_id, "-f", file.filename, "-"], stdin=file.content)
        return GistResult(
            id=gist_id,
            url=f"{API_URL}/gists/{gist_id}",
            html_url=f"https://gist.github.com/{gist_id}",
            raw_url=None,
            description=description or "",
            created_at=now_utc(),
        )

    # -- REST API ------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "claude-session",
        }

    def _client(self) -> httpx.Client:
        if self._http is None:
            self._http = httpx.Client(base_url=API_URL, timeout=30.0)
        return self._http

    def _request(self, method: str, path: str, body: dict) -> dict:
        attempt = 0
        while True:
            retry = attempt < self.config.retry_attempts
            try:
                response = self._client().request(method, path, json=body, headers=self._headers())
            except httpx.RequestError as exc:
                if not retry:
                    raise GistError("network", f"GitHub API {method} {path} failed: {exc}") from exc
                logger.warning("GitHub API %s %s failed (%s), retrying", method, path, exc)
            else:
                if response.status_code < 500 or not retry:
                    if response.is_error:
                        raise GistError(
                            "api", f"GitHub API {method} {path} failed: {response.status_code}"
                        )
                    return response.json()
                logger.warning(
                    "GitHub API %s %s returned %s, retrying", method, path, response.status_code
                )
            self._sleep(2**attempt)
            attempt += 1

    @staticmethod
    def _result_from_api(data: dict, files: list[GistFile]) -> GistResult:
        raw_url = None
        if files:
            raw_url = (data.get("files") or {}).get(files[0].filename, {}).get("raw_url")
        return GistResult(
            id=data.get("id", ""),
            url=data.get("url", ""),
            html_url=data.get("html_url", ""),
            raw_url=raw_url,
            description=data.get("description") or "",
            created_at=try_parse_iso_datetime(data.get("created_at")) or now_utc(),
        )

    @staticmethod
    def _files_payload(files: list[GistFile]) -> dict:
        return {f.filename: {"content": f.content} for f in files}

    # -- public --------------------------------------------------------------

    def auth_method(self) -> AuthMethod:
        if self._use_cli():
            return "cli"
        if self.config.token:
            return "token"
        return "none"

    def check_auth(self) -> bool:
        if self._use_cli():
            return True
        if not self.config.token:
            return False
        try:
            response = self._client().get("/user", headers=self._headers())
        except httpx.HTTPError:
            return False
        return response.status_code == 200

    def create(self, description: str, files: list[GistFile], *, public: bool = False) -> GistResult:
        if not files:
            raise GistError("api", "At least one file is required")
        if self._use_cli():
            return self._create_via_cli(description, files, public)
        if self.config.token:
            body = {"description": description, "public": public, "files": self._files_payload(files)}
            return self._result_from_api(self._request("POST", "/gists", body), files)
        raise GistError("auth", _NO_AUTH)

    def update(
        self, gist_id: str, files: list[GistFile], *, description: str | None = None
    ) -> GistResult:
        if not files:
            raise GistError("api", "At least one file is required for update")
        if self._use_cli():
            return self._update_via_cli(gist_id, files, description)
        if self.config.token:
            body: dict = {"files": self._files_payload(files)}
            if description:
                body["description"] = description
            return self._result_from_api(self._request("PATCH", f"/gists/{gist_id}", body), files)
        raise GistError("auth", _NO_AUTH)

    def view(self, gist_id: str) -> GistFile:
        """First file of a gist, read through the gh CLI."""
        try:
            listing = self._gh(["gist", "view", gist_id, "--files"])
            filename = (listing.strip().split("\n")[0] or "session.md").strip()
        except GistError:
            filename = "session.md"
        try:
            content = self._gh(["gist", "view", gist_id, "-f", filename])
        except GistError:
            content = ""
        return GistFile(filename=filename, content=content)
