"""Main Typer application: imports and registers all CLI commands.

Entry point: ``fluentforge`` (pyproject.toml ``[project.scripts]``).
"""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from fluentforge import __version__
from fluentforge.cli.commands.archive_cmd import archive_cmd
from fluentforge.cli.commands.compile_cmd import compile_cmd
from fluentforge.cli.commands.detect_cmd import detect_cmd
from fluentforge.cli.commands.fingerprint_cmd import fingerprint_cmd
from fluentforge.cli.commands.verify_cmd import verify_cmd
from fluentforge.config import settings

app = typer.Typer(
    name="fluentforge",
    help="Fluentforge: reproducible builds and verification for Fluent contracts.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="compile", help="Compile a contract and write its artifacts.")(compile_cmd)
app.command(name="verify", help="Rebuild a contract and compare its bytecode hash.")(verify_cmd)
app.command(name="archive", help="Write a reproducible source archive.")(archive_cmd)
app.command(name="fingerprint", help="Print the build fingerprint of a project.")(fingerprint_cmd)
app.command(name="detect", help="Find contract crates under one or more paths.")(detect_cmd)


def _setup_logging(verbose: bool, quiet: bool) -> None:
    if verbose:
        level: int | str = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = settings.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"fluentforge {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Errors only."),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """Fluentforge command-line interface."""
    _setup_logging(verbose, quiet)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
