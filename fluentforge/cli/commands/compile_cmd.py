"""``fluentforge compile PATH``: build a contract and write its artifacts."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.panel import Panel

from fluentforge.cli import wiring
from fluentforge.cli.output import console, echo_json, fail, parse_features
from fluentforge.config import settings
from fluentforge.core.errors import ForgeError
from fluentforge.models.archive import ArchiveFormat, ArchiveOptions
from fluentforge.models.config import ArtifactToggles, BuildConfig
from fluentforge.models.provenance import GitSource


def compile_cmd(
    project: Path = typer.Argument(Path("."), help="Contract project root."),
    output_dir: Path = typer.Option(
        None, "--output", "-o", help="Output directory (default: FLUENTFORGE_OUTPUT_DIR)."
    ),
    profile: str = typer.Option("release", "--profile", help="Cargo build profile."),
    features: list[str] = typer.Option(None, "--features", help="Comma-separated features."),
    no_default_features: bool = typer.Option(
        True, "--no-default-features/--default-features", help="Disable default features."
    ),
    locked: bool = typer.Option(False, "--locked", help="Require Cargo.lock to be up to date."),
    git_source: bool = typer.Option(
        False, "--git-source", help="Record git provenance (requires a clean tree)."
    ),
    allow_dirty: bool = typer.Option(
        False, "--allow-dirty", help="Fall back to archive provenance on a dirty tree."
    ),
    archive_format: ArchiveFormat = typer.Option(
        None,
        "--archive-format",
        help="Source archive format when not building from git "
        "(default: FLUENTFORGE_ARCHIVE_FORMAT).",
    ),
    no_abi: bool = typer.Option(False, "--no-abi", help="Skip abi.json."),
    no_interface: bool = typer.Option(False, "--no-interface", help="Skip interface.sol."),
    no_metadata: bool = typer.Option(False, "--no-metadata", help="Skip metadata.json."),
    compact: bool = typer.Option(False, "--compact", help="Write compact JSON."),
    as_json: bool = typer.Option(False, "--json", help="Print machine-readable output."),
) -> None:
    """Compile PATH to WASM and rWASM and write ABI, interface and metadata."""
    try:
        config = BuildConfig(
            project_root=project.resolve(),
            output_dir=output_dir or settings.output_dir,
            profile=profile,
            features=parse_features(features),
            no_default_features=no_default_features,
            locked=locked,
            use_git_source=git_source,
            allow_dirty=allow_dirty,
            target=settings.target,
            artifacts=ArtifactToggles(
                generate_abi=not no_abi,
                generate_interface=not no_interface,
                generate_metadata=not no_metadata,
                pretty_json=not compact,
            ),
            archive=ArchiveOptions(
                format=archive_format or settings.archive_format,
                compression_level=settings.compression_level,
            ),
        )
        result, saved = wiring.make_orchestrator().build_and_save(config)
    except ForgeError as exc:
        fail(exc, as_json=as_json)

    if as_json:
        echo_json(
            {
                "ok": True,
                "contract": result.contract.name,
                "version": result.contract.version,
                "wasm_hash": result.wasm_hash,
                "rwasm_hash": result.rwasm_hash,
                "source_tree_hash": result.fingerprint.source_tree_hash,
                "output_dir": str(saved.output_dir),
                "files": saved.content_addresses,
                "duration_seconds": round(result.duration_seconds, 3),
            }
        )
        return

    source = result.provenance
    source_line = (
        f"git {source.repository}@{source.commit[:7]}"
        if isinstance(source, GitSource)
        else f"archive {source.archive_path}"
    )
    console.print(
        Panel(
            "\n".join([
                f"[bold]Contract:[/bold]   {result.contract.name} v{result.contract.version}",
                f"[bold]SDK:[/bold]        {result.contract.sdk_version}",
                f"[bold]Rust:[/bold]       {result.toolchain.version} ({result.toolchain.target})",
                f"[bold]Source:[/bold]     {source_line}",
                f"[bold]WASM:[/bold]       {len(result.outputs.wasm)} bytes  {result.wasm_hash}",
                f"[bold]rWASM:[/bold]      {len(result.outputs.rwasm)} bytes  {result.rwasm_hash}",
                f"[bold]Output:[/bold]     {saved.output_dir}",
                f"[dim]Built in {result.duration_seconds:.2f}s[/dim]",
            ]),
            title="[bold green]Build complete[/bold green]",
            border_style="green",
            padding=(1, 2),
        )
    )
