"""Production collaborator wiring for CLI commands.

Commands call these through the module (``wiring.make_orchestrator()``) so
tests can substitute fakes with ``monkeypatch``.
"""

from __future__ import annotations

from fluentforge.collaborators import (
    CargoCompiler,
    CommandMethodParser,
    CommandTransformer,
    GitignoreMatcher,
    GitRepository,
    JsonRpcBytecodeFetcher,
)
from fluentforge.collaborators.remote import BytecodeFetcher
from fluentforge.config import ForgeSettings, settings
from fluentforge.core.orchestrator import BuildOrchestrator


def make_orchestrator(cfg: ForgeSettings | None = None) -> BuildOrchestrator:
    cfg = cfg or settings
    return BuildOrchestrator(
        compiler=CargoCompiler(cfg.cargo_binary),
        transformer=CommandTransformer(cfg.transformer_command),
        parser=CommandMethodParser(cfg.parser_command),
        repository=GitRepository(cfg.git_binary),
        ignore_matcher_factory=GitignoreMatcher.from_project,
        sdk_package=cfg.sdk_package,
        license_scan_lines=cfg.license_scan_lines,
    )


def make_fetcher(cfg: ForgeSettings | None = None) -> BytecodeFetcher:
    cfg = cfg or settings
    return JsonRpcBytecodeFetcher(timeout=cfg.rpc_timeout_seconds)
