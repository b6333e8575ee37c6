"""``fluentforge fingerprint PATH``: print the build fingerprint without compiling."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.table import Table

from fluentforge.cli.output import console, echo_json, fail
from fluentforge.config import settings
from fluentforge.core.errors import ForgeError
from fluentforge.core.fingerprinter import fingerprint
from fluentforge.core.orchestrator import output_exclusions
from fluentforge.core.resolver import resolve
from fluentforge.models.config import BuildConfig


def fingerprint_cmd(
    project: Path = typer.Argument(Path("."), help="Contract project root."),
    as_json: bool = typer.Option(False, "--json", help="Print machine-readable output."),
) -> None:
    """Resolve PATH and hash its sources, lock file and toolchain identity."""
    try:
        config = BuildConfig(
            project_root=project.resolve(),
            output_dir=settings.output_dir,
            target=settings.target,
        )
        resolved = resolve(config, settings.sdk_package)
        fp = fingerprint(
            config.project_root,
            resolved.toolchain,
            resolved.contract,
            extra_excluded=output_exclusions(config),
        )
    except ForgeError as exc:
        fail(exc, as_json=as_json)

    if as_json:
        echo_json({"ok": True, "contract": resolved.contract.name, **fp.model_dump()})
        return

    table = Table(title=f"Fingerprint: {resolved.contract.name}")
    table.add_column("Component", style="cyan")
    table.add_column("SHA-256")
    table.add_row("source tree", fp.source_tree_hash)
    table.add_row("Cargo.lock", fp.manifest_lock_hash)
    table.add_row("toolchain", fp.toolchain_hash)
    console.print(table)
