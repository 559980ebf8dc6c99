from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from tagrel.core.config import FileConfig, RunConfig, load_config, resolve_run_config
from tagrel.core.errors import ErrorCode
from tagrel.core.mapping import ReleaseMapping, load_mapping
from tagrel.core.result import Err
from tagrel.output.console import ConsoleProtocol, RichConsole
from tagrel.platform.process import which

USAGE = "tagrel [-p|--push] -f|--file <tag_file>"


@dataclass(frozen=True, slots=True)
class CLIContext:
    config: RunConfig
    mapping: ReleaseMapping
    console: ConsoleProtocol


def fail(message: str, *, hint: str | None = None) -> typer.Exit:
    """Report a fatal startup error and return the Exit to raise."""
    typer.echo(f"error: {message}", err=True)
    if hint:
        typer.echo(f"hint: {hint}", err=True)
    return typer.Exit(code=int(ErrorCode.USER_ERROR))


def build_context(
    *,
    mapping_file: Path | None,
    push: bool,
    base_dir: Path | None = None,
    remote: str | None = None,
    strict: bool | None = None,
    config_file: Path | None = None,
    console: ConsoleProtocol | None = None,
) -> CLIContext:
    """Validate startup inputs and resolve the run configuration.

    Every problem found here aborts the run before any repository is touched.
    """
    if mapping_file is None:
        raise fail(f"JSON file required. Usage: {USAGE}")

    file_config: FileConfig | None = None
    if config_file is not None:
        config_result = load_config(config_file.expanduser())
        if isinstance(config_result, Err):
            raise fail(config_result.error.message, hint=config_result.error.hint)
        file_config = config_result.value

    mapping_path = mapping_file.expanduser()
    if not mapping_path.is_file():
        raise fail(f"Tag file '{mapping_file}' does not exist")

    if which("git") is None:
        raise fail("'git' is required to tag repositories", hint="install git and retry")

    mapping_result = load_mapping(mapping_path)
    if isinstance(mapping_result, Err):
        raise fail(mapping_result.error.message, hint=mapping_result.error.hint)

    config = resolve_run_config(
        mapping_file=mapping_path,
        push=push,
        base_dir=base_dir,
        remote=remote,
        strict=strict,
        file_config=file_config,
    )

    return CLIContext(
        config=config,
        mapping=mapping_result.value,
        console=console or RichConsole(),
    )
