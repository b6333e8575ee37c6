"""``fluentforge archive PATH``: write a reproducible source archive."""

from __future__ import annotations

from pathlib import Path

import typer

from fluentforge.cli.output import console, echo_json, fail
from fluentforge.collaborators.ignore import GitignoreMatcher
from fluentforge.config import settings
from fluentforge.core.archiver import create_archive
from fluentforge.core.errors import ForgeError
from fluentforge.models.archive import ArchiveFormat, ArchiveOptions


def archive_cmd(
    project: Path = typer.Argument(Path("."), help="Contract project root."),
    output: Path = typer.Option(
        None, "--output", "-o", help="Archive file (default: <output dir>/sources.<ext>)."
    ),
    archive_format: ArchiveFormat = typer.Option(None, "--format", help="tar.gz or zip."),
    compression_level: int = typer.Option(
        None, "--compression-level", min=0, max=9, help="0-9 (default: settings)."
    ),
    respect_ignore: bool = typer.Option(
        True, "--respect-gitignore/--no-respect-gitignore", help="Honour .gitignore rules."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print machine-readable output."),
) -> None:
    """Package PATH's sources into a deterministic tar.gz or zip."""
    root = project.resolve()
    options = ArchiveOptions(
        format=archive_format or settings.archive_format,
        compression_level=(
            compression_level if compression_level is not None else settings.compression_level
        ),
        respect_ignore_rules=respect_ignore,
    )
    if output is None:
        output = root / settings.output_dir / f"sources.{options.format.extension}"

    try:
        bundle = create_archive(
            root,
            output.resolve(),
            options,
            ignore_matcher=GitignoreMatcher.from_project(root) if respect_ignore else None,
        )
    except ForgeError as exc:
        fail(exc, as_json=as_json)

    if as_json:
        echo_json(
            {
                "ok": True,
                "path": str(bundle.path),
                "format": bundle.format.value,
                "sha256": bundle.content_hash,
                "size_bytes": bundle.size_bytes,
                "file_count": bundle.file_count,
                "files": list(bundle.files),
                "manifest_path": bundle.manifest_path,
            }
        )
        return

    console.print(f"[bold green]Archived {bundle.file_count} files[/bold green] -> {bundle.path}")
    console.print(f"  sha256  {bundle.content_hash}")
    console.print(f"  size    {bundle.size_bytes} bytes")
