from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

if TYPE_CHECKING:
    from runvault.ide_runtime.models.terminal import TerminalLine
    from runvault.ide_runtime.sync.github import PushResult
    from runvault.ide_runtime.workspace.session import WorkspaceSession

_LINE_STYLES: dict[str, dict[str, Any]] = {
    "error": {"fg": "red"},
    "success": {"fg": "green"},
    "ai": {"fg": "magenta"},
    "input": {"fg": "cyan", "bold": True},
}


def _echo_line(line: TerminalLine) -> None:
    prefix = "$ " if line.type == "input" else ""
    click.echo(click.style(f"{prefix}{line.text}", **_LINE_STYLES.get(line.type, {})))


def _run_in_session(action: Callable[[WorkspaceSession], Awaitable[Any]]) -> Any:
    """Open the persisted workspace, run *action* with terminal echo, flush on exit."""
    from runvault.ide_runtime.log import setup_logging
    from runvault.ide_runtime.settings import get_settings
    from runvault.ide_runtime.workspace.session import open_session

    settings = get_settings()
    setup_logging(settings.log_level, compact=True)

    async def _main() -> Any:
        async with open_session(settings) as session:
            session.log.subscribe(_echo_line)
            return await action(session)

    return asyncio.run(_main())


@click.group()
def main() -> None:
    """RunVault - polyglot workspace with native, in-process and simulated execution."""


@main.command()
@click.option("--host", default=None, help="Bind host (default: from RUNVAULT_HOST or 0.0.0.0).")
@click.option("--port", default=None, type=int, help="Bind port (default: from RUNVAULT_PORT or 3001).")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development.")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the execution service."""
    import uvicorn

    from runvault.ide_runtime.settings import RunVaultSettings

    settings = RunVaultSettings()

    uvicorn.run(
        "runvault.exec_service.app:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",  # uvicorn's own logging is intercepted by loguru
    )


# ---------------------------------------------------------------------------
# Workspace commands
# ---------------------------------------------------------------------------


@main.command()
@click.argument("name", required=False)
@click.option("--fix", is_flag=True, default=False, help="Ask the assistant to fix the error when the run fails.")
def run(name: str | None, fix: bool) -> None:
    """Run the active file, or the file called NAME."""

    async def _action(session: WorkspaceSession) -> bool:
        if name is not None:
            match = next((f for f in session.store.files if f.name == name), None)
            if match is None:
                session.log.error(f"No file named {name} in the workspace.")
                return False
            session.store.select_file(match.id)
        lines = await session.run_active_file()
        ok = bool(lines) and lines[-1].type != "error"
        if not ok and fix:
            reply = await session.fix_last_error()
            if reply:
                click.echo(reply)
        return ok

    if not _run_in_session(_action):
        raise SystemExit(1)


@main.command()
def files() -> None:
    """List workspace files."""

    async def _action(session: WorkspaceSession) -> None:
        active = session.store.active_file_id
        for record in session.store.files:
            marker = "*" if record.id == active else " "
            click.echo(f"{marker} {record.name}  [{record.language}]  {len(record.content)} chars")

    _run_in_session(_action)


@main.command()
@click.argument("output", required=False, type=click.Path(dir_okay=False, path_type=Path))
def export(output: Path | None) -> None:
    """Export the workspace as a ZIP bundle."""
    from runvault.ide_runtime.sync.archive import bundle_name

    async def _action(session: WorkspaceSession) -> bytes | None:
        return session.export_archive()

    data = _run_in_session(_action)
    if data is None:
        click.echo("Workspace is empty, nothing to export.", err=True)
        raise SystemExit(1)
    target = output or Path(bundle_name())
    target.write_bytes(data)
    click.echo(f"Wrote {target}")


@main.command(name="import")
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path))
def import_(paths: tuple[Path, ...]) -> None:
    """Import local files; ZIP archives are expanded."""
    uploads = [(path.name, path.read_bytes()) for path in paths]

    async def _action(session: WorkspaceSession) -> int:
        return len(session.import_files(uploads))

    if not _run_in_session(_action):
        raise SystemExit(1)


@main.command()
@click.argument("request", nargs=-1, required=True)
@click.option("--insert", is_flag=True, default=False, help="Append code blocks of the answer to the active file.")
def ask(request: tuple[str, ...], insert: bool) -> None:
    """Ask the coding assistant about the active file."""

    async def _action(session: WorkspaceSession) -> str | None:
        return await session.ask(" ".join(request), insert=insert)

    reply = _run_in_session(_action)
    if reply is None:
        raise SystemExit(1)
    click.echo(reply)


# ---------------------------------------------------------------------------
# GitHub commands
# ---------------------------------------------------------------------------


@main.command()
@click.option("--name", default="runvault-deployment", show_default=True, help="Repository name to create.")
def push(name: str) -> None:
    """Create a GitHub repository and upload every file (needs RUNVAULT_GITHUB_TOKEN)."""

    async def _action(session: WorkspaceSession) -> PushResult | None:
        return await session.deploy(name)

    if _run_in_session(_action) is None:
        raise SystemExit(1)


@main.command()
@click.argument("repo")
def pull(repo: str) -> None:
    """Import every file of the GitHub repository REPO (owner/name)."""

    async def _action(session: WorkspaceSession) -> int:
        return len(await session.import_repository(repo))

    if not _run_in_session(_action):
        raise SystemExit(1)


if __name__ == "__main__":
    main()
