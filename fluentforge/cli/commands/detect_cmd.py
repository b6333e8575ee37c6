"""``fluentforge detect [PATHS...]``: list contract crates."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.table import Table

from fluentforge.cli.output import console, echo_json
from fluentforge.config import settings
from fluentforge.core.resolver import detect_contracts


def detect_cmd(
    paths: list[Path] = typer.Argument(None, help="Directories to search (default: .)."),
    as_json: bool = typer.Option(False, "--json", help="Print machine-readable output."),
) -> None:
    """Find every crate depending on the contract SDK."""
    contracts = detect_contracts(paths or [Path(".")], settings.sdk_package)

    if as_json:
        echo_json(
            [
                {
                    "name": c.name,
                    "version": c.version,
                    "sdk_version": c.sdk_version,
                    "path": str(c.path),
                }
                for c in contracts
            ]
        )
        return

    if not contracts:
        console.print("[dim]No contracts found.[/dim]")
        return

    table = Table(title="Detected Contracts")
    table.add_column("Name", style="cyan")
    table.add_column("Version", style="green")
    table.add_column("SDK")
    table.add_column("Path")
    for c in contracts:
        table.add_row(c.name, c.version, c.sdk_version, str(c.path))
    console.print(table)
