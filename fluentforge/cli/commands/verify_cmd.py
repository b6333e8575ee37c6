"""``fluentforge verify PATH``: rebuild and compare against an expected hash.

The expected hash comes from ``--hash``, or from code deployed at
``--address`` on the chain served by ``--rpc``.  ``--archive`` verifies a
source bundle instead of a project directory.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.markup import escape
from rich.panel import Panel

from fluentforge.cli import wiring
from fluentforge.cli.output import console, echo_json, err_console, parse_features
from fluentforge.core.verifier import VerificationEngine
from fluentforge.models.config import BuildOverrides
from fluentforge.models.results import VerificationOutcome


def _outcome_json(outcome: VerificationOutcome) -> dict:
    return {
        "ok": outcome.is_success,
        "status": outcome.status.value,
        "contract": outcome.contract_name,
        "expected_hash": outcome.expected_hash,
        "actual_hash": outcome.actual_hash,
        "error": outcome.error_message,
        "started_at": outcome.started_at.isoformat(),
        "duration_seconds": round(outcome.duration_seconds, 3),
    }


def verify_cmd(
    project: Path = typer.Argument(Path("."), help="Contract project root."),
    expected_hash: str = typer.Option(None, "--hash", help="Expected rWASM SHA-256."),
    rpc: str = typer.Option(None, "--rpc", help="JSON-RPC endpoint URL."),
    chain_id: int = typer.Option(None, "--chain-id", help="Expected chain id of --rpc."),
    address: str = typer.Option(None, "--address", help="Deployed contract address."),
    archive: Path = typer.Option(None, "--archive", help="Verify a source archive instead."),
    profile: str = typer.Option(None, "--profile", help="Cargo build profile."),
    features: list[str] = typer.Option(None, "--features", help="Comma-separated features."),
    as_json: bool = typer.Option(False, "--json", help="Print machine-readable output."),
) -> None:
    """Verify that PATH rebuilds to the expected bytecode."""
    remote = (rpc, chain_id, address)
    if expected_hash is None and any(v is None for v in remote):
        err_console.print(
            "[bold red]Provide --hash, or all of --rpc, --chain-id and --address.[/bold red]"
        )
        raise typer.Exit(code=1)
    if expected_hash is not None and any(v is not None for v in remote):
        err_console.print("[bold red]--hash cannot be combined with --rpc/--address.[/bold red]")
        raise typer.Exit(code=1)
    if archive is not None and expected_hash is None:
        err_console.print(
            "[bold red]--archive requires --hash; it cannot be combined with --rpc.[/bold red]"
        )
        raise typer.Exit(code=1)

    overrides = BuildOverrides(
        profile=profile,
        features=parse_features(features) if features else None,
    )
    engine = VerificationEngine(wiring.make_orchestrator())

    if expected_hash is None:
        outcome = engine.verify_deployed(
            project.resolve(), wiring.make_fetcher(), rpc, chain_id, address, overrides
        )
    elif archive is not None:
        outcome = engine.verify_archive(archive.resolve(), expected_hash, overrides)
    else:
        outcome = engine.verify(project.resolve(), expected_hash, overrides)

    if as_json:
        echo_json(_outcome_json(outcome))
    else:
        style = "green" if outcome.is_success else "red"
        lines = [
            f"[bold]Status:[/bold]    {outcome.status.value}",
            f"[bold]Contract:[/bold]  {outcome.contract_name or '-'}",
            f"[bold]Expected:[/bold]  {outcome.expected_hash or '-'}",
            f"[bold]Actual:[/bold]    {outcome.actual_hash or '-'}",
            f"[dim]{outcome.duration_seconds:.2f}s[/dim]",
        ]
        if outcome.error_message:
            lines.extend(["", escape(outcome.error_message)])
        console.print(
            Panel("\n".join(lines), title="[bold]Verification[/bold]", border_style=style)
        )

    if not outcome.is_success:
        raise typer.Exit(code=1)
