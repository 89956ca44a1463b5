from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from claude_session import git
from claude_session.config import SessionConfig, default_claude_dir
from claude_session.errors import GistError, SessionError
from claude_session.gist import GistClient, GistConfig, GistFile, gist_id_from_url
from claude_session.models import Session, filter_since
from claude_session.redact import redact_secrets
from claude_session.render import FormatOptions, OutputFormat, generate_filename, render
from claude_session.sessions import SessionStore
from claude_session.utils import atomic_write_text, iso_utc, try_parse_iso_datetime

app = typer.Typer(
    help="Export Claude Code sessions to files and GitHub Gists.", no_args_is_help=True
)
err_console = Console(stderr=True)


@dataclass
class _State:
    claude_dir: Path


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def main_callback(
    ctx: typer.Context,
    claude_dir: Path | None = typer.Option(
        None,
        "--claude-dir",
        envvar="CLAUDE_DIR",
        help="Claude data directory containing projects/ (default: ~/.claude).",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log skipped files and lines."),
) -> None:
    _configure_logging(verbose)
    ctx.obj = _State(claude_dir=(claude_dir or default_claude_dir()).expanduser())


def _store(ctx: typer.Context, project: str | None, *, scope_to_cwd: bool) -> SessionStore:
    state: _State = ctx.obj
    config = SessionConfig(
        claude_dir=state.claude_dir,
        project_filter=project,
        scope_to_cwd=scope_to_cwd,
        cwd=Path.cwd(),
    )
    return SessionStore(config)


def _fail(exc: Exception) -> typer.Exit:
    err_console.print(f"[red]Error:[/] {exc}")
    return typer.Exit(1)


def parse_since(value: str | None) -> datetime | None:
    """ISO timestamp or "last-commit"; anything unparseable disables filtering."""
    if not value:
        return None
    if value == "last-commit":
        return git.last_commit_timestamp()
    return try_parse_iso_datetime(value)


def _load(ctx: typer.Context, project: str | None, since: str | None) -> tuple[Session, datetime | None]:
    store = _store(ctx, project, scope_to_cwd=project is None)
    since_at = parse_since(since)
    return filter_since(store.load_most_recent(), since_at), since_at


def _rendered(session: Session, fmt: OutputFormat, include_tools: bool, redact: bool) -> str:
    text = render(session, fmt, FormatOptions(include_tool_use=include_tools))
    return redact_secrets(text, redact=redact)


project_option = typer.Option(None, "--project", "-p", help="Filter by project name (partial match).")
format_option = typer.Option(OutputFormat.markdown, "--format", "-f", help="Output format.")
tools_option = typer.Option(True, "--tools/--no-tools", help="Include tool usage details.")
since_option = typer.Option(
    None, "--since", "-s", help="Only include messages since an ISO timestamp or 'last-commit'."
)
no_redact_option = typer.Option(
    False, "--no-redact", help="Do not redact API keys, tokens, or passwords in output."
)
public_option = typer.Option(False, "--public", help="Create a public gist (default: secret).")


@app.command("list")
def list_command(
    ctx: typer.Context,
    project: str | None = project_option,
    all_projects: bool = typer.Option(
        False, "--all", "-a", help="Show sessions from all projects (not just current directory)."
    ),
) -> None:
    """List available sessions, most recent first."""
    scope_to_cwd = not all_projects and project is None
    try:
        sessions = _store(ctx, project, scope_to_cwd=scope_to_cwd).discover()
    except SessionError as exc:
        raise _fail(exc)

    console = Console()
    if not sessions:
        if scope_to_cwd:
            console.print("No sessions found for current directory.")
            console.print("Use --all to list sessions from all projects.")
        else:
            console.print("No sessions found.")
            console.print("Make sure you have used Claude Code at least once.")
        return

    table = Table(title="Claude Code Sessions", header_style="bold", box=None, padding=(0, 2))
    table.add_column("#", justify="right", style="dim")
    table.add_column("Project", no_wrap=True, max_width=40)
    table.add_column("Modified", no_wrap=True)
    table.add_column("Msgs", justify="right")
    for i, meta in enumerate(sessions, 1):
        table.add_row(
            str(i),
            meta.project_name,
            meta.last_modified.strftime("%Y-%m-%d %H:%M"),
            str(meta.message_count),
        )
    console.print(table)
    console.print(f"Total: {len(sessions)} session(s)")
    if scope_to_cwd:
        console.print("[dim](Showing sessions for current directory. Use --all to see all projects.)[/]")


@app.command("export")
def export_command(
    ctx: typer.Context,
    project: str | None = project_option,
    fmt: OutputFormat = format_option,
    output: Path | None = typer.Option(None, "--output", "-o", help="Output file path."),
    include_tools: bool = tools_option,
    since: str | None = since_option,
    no_redact: bool = no_redact_option,
) -> None:
    """Export the most recent session to a file."""
    try:
        session, since_at = _load(ctx, project, since)
    except SessionError as exc:
        raise _fail(exc)
    if since_at is not None:
        typer.echo(f"Filtering to {len(session.messages)} messages since {iso_utc(since_at)}")

    content = _rendered(session, fmt, include_tools, not no_redact)
    out_path = output or Path.cwd() / generate_filename(session.metadata, fmt)
    try:
        atomic_write_text(out_path, content)
    except OSError as exc:
        raise _fail(exc)
    typer.echo(f"Exported to: {out_path}")
    typer.echo(f"Project: {session.metadata.project_name}")
    typer.echo(f"Messages: {len(session.messages)}")


@app.command("create")
def create_command(
    ctx: typer.Context,
    project: str | None = project_option,
    fmt: OutputFormat = format_option,
    public: bool = public_option,
    include_tools: bool = tools_option,
    commit: bool = typer.Option(
        False, "--commit", "-c", help="Print only a git commit trailer with the gist URL."
    ),
    since: str | None = since_option,
    no_redact: bool = no_redact_option,
) -> None:
    """Publish the most recent session as a GitHub Gist."""
    client = GistClient(GistConfig.from_env())
    auth_method = client.auth_method()
    if auth_method == "none":
        err_console.print("No GitHub authentication found.")
        err_console.print("Run 'gh auth login' or set GITHUB_TOKEN environment variable.")
        raise typer.Exit(1)

    try:
        session, since_at = _load(ctx, project, since)
    except SessionError as exc:
        raise _fail(exc)
    if not commit:
        typer.echo(f"Using {auth_method} authentication")
        if since_at is not None:
            typer.echo(f"Filtering to {len(session.messages)} messages since {iso_utc(since_at)}")

    filename = generate_filename(session.metadata, fmt)
    meta = session.metadata
    try:
        result = client.create(
            f"Claude Code session: {meta.project_name} ({meta.last_modified.date().isoformat()})",
            [GistFile(filename, _rendered(session, fmt, include_tools, not no_redact))],
            public=public,
        )
    except GistError as exc:
        raise _fail(exc)

    if commit:
        typer.echo(f"Claude-Session: {result.html_url}")
        return
    typer.echo("Gist created successfully!")
    typer.echo(f"URL: {result.html_url}")
    typer.echo(f"ID: {result.id}")
    typer.echo(f"Visibility: {'public' if public else 'secret'}")
    typer.echo(f"File: {filename}")
    typer.echo("To add to your commit message, use:")
    typer.echo(f'  git commit -m "Your message" -m "Claude-Session: {result.html_url}"')


@app.command("hook")
def hook_command(
    ctx: typer.Context,
    fmt: OutputFormat = format_option,
    public: bool = public_option,
) -> None:
    """Archive the current project's latest session; prints a JSON status line."""
    try:
        session = _store(ctx, None, scope_to_cwd=True).load_most_recent()
        filename = generate_filename(session.metadata, fmt)
        result = GistClient(GistConfig.from_env()).create(
            f"Claude Code session: {session.metadata.project_name} (auto-archived)",
            [GistFile(filename, _rendered(session, fmt, True, True))],
            public=public,
        )
    except (SessionError, GistError, OSError) as exc:
        typer.echo(json.dumps({"success": False, "error": str(exc)}))
        return
    typer.echo(
        json.dumps(
            {
                "success": True,
                "gistUrl": result.html_url,
                "gistId": result.id,
                "project": session.metadata.project_name,
                "messageCount": len(session.messages),
            }
        )
    )


@app.command("link-commit")
def link_commit_command(
    gist: str = typer.Option(..., "--gist", "-g", help="Gist URL or ID to update."),
    repo: str | None = typer.Option(
        None, "--repo", "-r", help="GitHub repository (owner/repo) for commit links."
    ),
) -> None:
    """Add the HEAD commit to an archived session gist."""
    gist_id = gist_id_from_url(gist)
    info = git.commit_info()
    if not info.sha:
        err_console.print("No commit found")
        return
    client = GistClient(GistConfig.from_env())
    try:
        current = client.view(gist_id)
        block = git.commit_info_block(info, repo)
        client.update(gist_id, [GistFile(current.filename, git.insert_commit_block(current.content, block))])
    except GistError as exc:
        err_console.print(f"Failed to link commit: {exc}")
        return
    typer.echo(f"Linked commit {info.sha[:7]} to gist {gist_id}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
