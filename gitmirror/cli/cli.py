"""
CLI entry point for gitmirror.

Uses Typer for the command-line interface.

Usage:
    gitmirror checkout <url> <ref> <workdir>
    gitmirror checkout <url> origin/main ./work --verbose --storage ~/.cache/mirrors
    gitmirror path <url>
    gitmirror list
    gitmirror logs <log-dir>

Checkout is destructive: the worktree's existing content is overwritten and
the mirror is force-fetched from origin on every call.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Annotated

import typer

from gitmirror.common.logging import read_run_logs
from gitmirror.services.config_models import MirrorSettings
from gitmirror.services.session import MirrorSession

app = typer.Typer(
    name="gitmirror",
    help="gitmirror CLI - Cached bare Git mirrors and forced worktree checkout",
    no_args_is_help=True,
)

StorageOption = Annotated[
    str | None,
    typer.Option("--storage", help="Mirror storage root (default: GITMIRROR_GIT_REPO_STORAGE)"),
]


def _configure_logging(level: str) -> None:
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)


def _load_settings(**overrides) -> MirrorSettings:
    try:
        return MirrorSettings().with_overrides(**overrides)
    except ValueError as e:
        # pydantic's ValidationError is a ValueError
        typer.echo(f"Error: invalid configuration: {e}", err=True)
        raise typer.Exit(2)


# =============================================================================
# Checkout Command
# =============================================================================


@app.command("checkout")
def checkout(
    url: Annotated[str, typer.Argument(help="Remote repository URL")],
    ref: Annotated[str, typer.Argument(help="Ref to check out, e.g. origin/main, a tag or a SHA")],
    workdir: Annotated[
        Path, typer.Argument(help="Worktree to populate; existing content is overwritten")
    ],
    verbose: Annotated[
        bool, typer.Option("-v", "--verbose", help="Stream git output while it runs")
    ] = False,
    storage: StorageOption = None,
    git: Annotated[
        str | None, typer.Option("--git", help="Git executable (default: git on PATH)")
    ] = None,
    log_dir: Annotated[
        str | None, typer.Option("--log-dir", help="Write a JSONL run log under this directory")
    ] = None,
    log_level: Annotated[
        str | None, typer.Option("--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)")
    ] = None,
) -> None:
    """Check out REF of URL into WORKDIR, creating and fetching the mirror as needed."""
    settings = _load_settings(
        executable=git,
        repo_storage=storage,
        verbose=verbose or None,
        log_level=log_level,
        log_dir=log_dir,
    )
    _configure_logging(settings.app.log_level)

    try:
        workdir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        typer.echo(f"Error: cannot create worktree '{workdir}': {e}", err=True)
        raise typer.Exit(1)

    with MirrorSession(settings) as session:
        if url:
            typer.echo(f"Mirror:  {session.mirror_path(url)}")
        result = session.checkout(url, ref, workdir)
        log_path = session.run_log_path

    if not result.get("success"):
        typer.echo(f"Error: {result.get('error', 'Unknown error')}", err=True)
        if log_path:
            typer.echo(f"Run log: {log_path}", err=True)
        raise typer.Exit(1)

    if result.get("initialized"):
        typer.echo("Created new mirror")
    typer.echo(f"Checked out {result['ref']} into {result['workdir']}")
    if log_path:
        typer.echo(f"Run log: {log_path}")


# =============================================================================
# Inspection Commands
# =============================================================================


@app.command("path")
def path(
    url: Annotated[str, typer.Argument(help="Remote repository URL")],
    storage: StorageOption = None,
) -> None:
    """Show where the mirror for URL lives and whether it exists yet."""
    settings = _load_settings(repo_storage=storage)
    session = MirrorSession(settings)
    info = session.mirror_info(url)
    if "error" in info:
        typer.echo(f"Error: {info['error']}", err=True)
        raise typer.Exit(1)
    typer.echo(info["mirror_path"])
    typer.echo(f"State: {info['state']}")


@app.command("list")
def list_command(storage: StorageOption = None) -> None:
    """List mirrors under the storage root."""
    settings = _load_settings(repo_storage=storage)
    session = MirrorSession(settings)
    mirrors = session.list_mirrors()

    if not mirrors:
        typer.echo(f"No mirrors found in {session.storage_root}")
        return

    typer.echo(f"Storage: {session.storage_root}\n")
    for info in mirrors:
        typer.echo(f"  {info['repo_url']}  [{info['state']}]")
    typer.echo(f"\nTotal: {len(mirrors)} mirrors")


@app.command("logs")
def logs(
    log_dir: Annotated[Path, typer.Argument(help="Directory given to --log-dir")],
    run: Annotated[str | None, typer.Option("--run", help="Only this run id")] = None,
    level: Annotated[
        int | None, typer.Option("--level", help="Maximum level: 1 = checkouts, 2 = git steps")
    ] = None,
) -> None:
    """Print entries recorded in run logs."""
    entries = read_run_logs(log_dir, run_id=run, level=level)
    if not entries:
        typer.echo("No log entries found.")
        return

    for entry in entries:
        step = f"[{entry['step']}] " if entry.get("step") else ""
        duration = f" ({entry['duration_ms']} ms)" if entry.get("duration_ms") is not None else ""
        typer.echo(f"{entry['timestamp']} {entry['status']:<9} {step}{entry['message']}{duration}")
        if entry.get("error"):
            typer.echo(f"    {entry['error']}")


# =============================================================================
# Main Entry Point
# =============================================================================


def main() -> int:
    """Main entry point."""
    try:
        app()
        return 0
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 1


if __name__ == "__main__":
    sys.exit(main())
