"""Shared CLI helpers: feature parsing, JSON output, error reporting."""

from __future__ import annotations

import json
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.markup import escape

from fluentforge.core.errors import CollaboratorError, CompilationFailedError, ForgeError

console = Console()
err_console = Console(stderr=True)


def parse_features(values: list[str] | None) -> frozenset[str]:
    """``--features a,b --features c`` -> {"a", "b", "c"}."""
    out: set[str] = set()
    for value in values or []:
        out.update(f.strip() for f in value.split(",") if f.strip())
    return frozenset(out)


def echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, sort_keys=True, default=str))


def fail(exc: ForgeError, *, as_json: bool = False) -> NoReturn:
    """Report *exc* and exit with status 1."""
    if isinstance(exc, (CompilationFailedError, CollaboratorError)):
        detail = exc.diagnostic
    else:
        detail = str(exc)
    if as_json:
        echo_json({"ok": False, "error": type(exc).__name__, "message": detail})
    else:
        err_console.print(
            f"[bold red]{type(exc).__name__}:[/bold red] {escape(detail)}", highlight=False
        )
    raise typer.Exit(code=1)
