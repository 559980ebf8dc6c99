from __future__ import annotations

import click
import typer

from tagrel.cli.commands.release_cmd import release
from tagrel.core.errors import ErrorCode


app = typer.Typer(
    add_completion=False,
    rich_markup_mode="rich",
)

app.command()(release)


def main(argv: list[str] | None = None) -> None:
    """Console entry point.

    Usage errors (unknown flags, missing option values) exit with
    ErrorCode.USER_ERROR rather than click's default of 2.
    """
    try:
        code = app(args=argv, prog_name="tagrel", standalone_mode=False)
    except click.ClickException as e:
        e.show()
        raise SystemExit(int(ErrorCode.USER_ERROR)) from None
    except click.Abort:
        typer.echo("Aborted!", err=True)
        raise SystemExit(int(ErrorCode.USER_ERROR)) from None

    raise SystemExit(code if isinstance(code, int) else int(ErrorCode.OK))
