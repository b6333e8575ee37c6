"""Fluentforge CLI (Typer-based).

Provides the ``fluentforge`` command with subcommands for compiling a
contract, verifying it against a hash or a deployed address, archiving
its sources, printing its fingerprint and detecting contracts.

All human-readable output uses Rich; ``--json`` prints plain JSON.
"""
