"""Release command - tag (and optionally push) every repository in a mapping."""

from __future__ import annotations

from pathlib import Path

import typer

from tagrel import __version__
from tagrel.cli.context import build_context
from tagrel.output.console import Style
from tagrel.services.release import print_summary, release_all


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


def release(
    push: bool = typer.Option(False, "--push", "-p", help="Push tags to the remote."),
    file: Path | None = typer.Option(
        None,
        "--file",
        "-f",
        help='JSON file mapping repository to tag, e.g. {"repo-1": "v1.0.1"}.',
    ),
    base_dir: Path | None = typer.Option(
        None,
        "--base-dir",
        "-b",
        help="Directory containing the repositories (env BASE_DIR, default ~/projects).",
        show_default=False,
    ),
    remote: str | None = typer.Option(
        None, "--remote", help="Remote to check and push tags to (default origin)."
    ),
    strict: bool | None = typer.Option(
        None,
        "--strict/--no-strict",
        help="Exit with code 3 if any repository failed (default from config, else off).",
        show_default=False,
    ),
    config: Path | None = typer.Option(None, "--config", "-c", help="TOML config file."),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Tag releases across repositories from a JSON mapping."""
    ctx = build_context(
        mapping_file=file,
        push=push,
        base_dir=base_dir,
        remote=remote,
        strict=strict,
        config_file=config,
    )

    ctx.console.print(f"base dir: {ctx.config.base_dir}", Style.DIM)
    ctx.console.print(f"remote: {ctx.config.remote}", Style.DIM)

    summary = release_all(ctx.mapping, ctx.config, ctx.console)
    print_summary(summary, ctx.console)

    code = summary.exit_code(strict=ctx.config.strict)
    if code.is_error:
        raise typer.Exit(code=int(code))
