"""Build orchestrator: the central coordinator for a single contract build.

Sequences resolve -> compile -> transform -> fingerprint -> generate
artifacts, recording every stage transition.  Each stage is one call into
a collaborator or a pure core function; the first failure aborts the run.
Collaborator failures are re-raised as ``CompilationFailedError`` with the
collaborator's diagnostic text unchanged.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import Path

from fluentforge.artifacts import generate
from fluentforge.artifacts.metadata import DEFAULT_LICENSE_SCAN_LINES, source_file_entries
from fluentforge.artifacts.writer import save_artifacts
from fluentforge.collaborators.compiler import CompileRequest, Compiler
from fluentforge.collaborators.ignore import IgnoreMatcher
from fluentforge.collaborators.parser import MethodParser
from fluentforge.collaborators.repository import RepositoryInspector
from fluentforge.collaborators.transformer import BytecodeTransformer
from fluentforge.core.errors import (
    CollaboratorError,
    CompilationFailedError,
    InvalidTransitionError,
)
from fluentforge.core.fingerprinter import Clock, fingerprint, iter_source_files
from fluentforge.core.provenance import resolve_provenance
from fluentforge.core.resolver import SDK_PACKAGE, resolve
from fluentforge.models.config import BuildConfig
from fluentforge.models.pipeline import VALID_BUILD_TRANSITIONS, BuildStage, StageTransition
from fluentforge.models.results import (
    BuildResult,
    CompilationOutputs,
    ContractArtifacts,
    SavedArtifacts,
)

logger = logging.getLogger(__name__)

IgnoreMatcherFactory = Callable[[Path], IgnoreMatcher]


class BuildRun:
    """Tracks one build through the stage state machine."""

    def __init__(self, contract_label: str) -> None:
        self.label = contract_label
        self.stage = BuildStage.PENDING
        self.transitions: list[StageTransition] = []

    def advance(self, to_stage: BuildStage, detail: str = "") -> None:
        """Move to *to_stage*.

        Raises
        ------
        InvalidTransitionError
            If the move is not in ``VALID_BUILD_TRANSITIONS``.
        """
        allowed = VALID_BUILD_TRANSITIONS[self.stage]
        if to_stage not in allowed:
            raise InvalidTransitionError(
                f"Cannot move build of {self.label} from {self.stage.value} "
                f"to {to_stage.value}"
            )
        self.transitions.append(
            StageTransition(from_stage=self.stage, to_stage=to_stage, detail=detail)
        )
        log = logger.error if to_stage == BuildStage.FAILED else logger.info
        log("[%s] %s -> %s %s", self.label, self.stage.value, to_stage.value, detail)
        self.stage = to_stage

    def fail(self, detail: str) -> None:
        if VALID_BUILD_TRANSITIONS[self.stage]:
            self.advance(BuildStage.FAILED, detail)


def output_exclusions(config: BuildConfig) -> tuple[str, ...]:
    """Project-relative path of a custom output dir inside the project, if any."""
    try:
        rel = config.output_directory().resolve().relative_to(config.project_root.resolve())
    except ValueError:
        return ()
    return (rel.as_posix(),) if rel.parts else ()


class BuildOrchestrator:
    """Runs builds against injected collaborators.

    Parameters
    ----------
    compiler:
        Produces intermediate (WASM) bytes.
    transformer:
        Turns WASM into final (rWASM) bytes.
    parser:
        Extracts method signatures for the ABI.  Only consulted when
        artifact output is enabled.
    repository:
        Work-tree inspector for git provenance; required only when
        ``use_git_source`` is set.
    ignore_matcher_factory:
        Builds the ignore matcher for a project root when archiving.
    clock:
        Source of ``built_at`` timestamps.
    max_workers:
        Thread pool size for file hashing.
    """

    def __init__(
        self,
        compiler: Compiler,
        transformer: BytecodeTransformer,
        parser: MethodParser,
        *,
        repository: RepositoryInspector | None = None,
        ignore_matcher_factory: IgnoreMatcherFactory | None = None,
        clock: Clock = time.time,
        sdk_package: str = SDK_PACKAGE,
        license_scan_lines: int = DEFAULT_LICENSE_SCAN_LINES,
        max_workers: int | None = None,
    ) -> None:
        self.compiler = compiler
        self.transformer = transformer
        self.parser = parser
        self.repository = repository
        self.ignore_matcher_factory = ignore_matcher_factory
        self.clock = clock
        self.sdk_package = sdk_package
        self.license_scan_lines = license_scan_lines
        self.max_workers = max_workers

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def build(self, config: BuildConfig) -> BuildResult:
        """Run the full pipeline for *config*.

        Raises
        ------
        ConfigurationError
            From resolution or provenance; nothing has been compiled.
        CompilationFailedError
            If a collaborator failed; carries its diagnostic text.
        GenerationError
            If metadata could not be assembled.
        """
        started = time.monotonic()
        run = BuildRun(config.project_root.name or str(config.project_root))
        try:
            result = self._run(run, config)
        except Exception as exc:
            run.fail(f"({type(exc).__name__})")
            raise
        return result.model_copy(
            update={
                "stages": list(run.transitions),
                "duration_seconds": time.monotonic() - started,
            }
        )

    def _call(self, stage: str, fn: Callable[[], bytes]) -> bytes:
        try:
            data = fn()
        except CollaboratorError as exc:
            raise CompilationFailedError(stage, exc.diagnostic) from exc
        if not data:
            raise CompilationFailedError(stage, f"{stage} produced empty output")
        return data

    def _run(self, run: BuildRun, config: BuildConfig) -> BuildResult:
        resolved = resolve(config, self.sdk_package)
        contract, toolchain = resolved.contract, resolved.toolchain
        run.label = contract.name
        try:
            provenance = resolve_provenance(config, self.repository)
        except CollaboratorError as exc:
            raise CompilationFailedError("resolve", exc.diagnostic) from exc
        run.advance(BuildStage.RESOLVED, f"({contract.name} v{contract.version})")

        request = CompileRequest.from_build(config, contract)
        wasm = self._call("compile", lambda: self.compiler.compile(request))
        run.advance(BuildStage.COMPILED, f"({len(wasm)} bytes wasm)")

        rwasm = self._call("transform", lambda: self.transformer.transform(wasm))
        run.advance(BuildStage.TRANSFORMED, f"({len(rwasm)} bytes rwasm)")

        excluded = output_exclusions(config)
        fp = fingerprint(
            config.project_root,
            toolchain,
            contract,
            clock=self.clock,
            max_workers=self.max_workers,
            extra_excluded=excluded,
        )
        run.advance(BuildStage.FINGERPRINTED, f"(source {fp.source_tree_hash[:12]})")

        artifacts: ContractArtifacts | None = None
        if config.artifacts.any_enabled:
            try:
                methods = self.parser.parse(resolved.main_source)
            except CollaboratorError as exc:
                raise CompilationFailedError("parse", exc.diagnostic) from exc

            sources = None
            if config.artifacts.include_source_hashes:
                sources = source_file_entries(
                    config.project_root,
                    iter_source_files(config.project_root, excluded),
                    license_scan_lines=self.license_scan_lines,
                    max_workers=self.max_workers,
                )
            artifacts = generate(
                contract=contract,
                wasm=wasm,
                rwasm=rwasm,
                methods=methods,
                config=config,
                toolchain=toolchain,
                fingerprint=fp,
                provenance=provenance,
                sources=sources,
            )
            run.advance(BuildStage.ARTIFACTS_GENERATED, f"({len(artifacts.abi)} functions)")
        else:
            run.advance(BuildStage.ARTIFACTS_GENERATED, "(skipped)")

        run.advance(BuildStage.DONE)
        return BuildResult(
            config=config,
            contract=contract,
            toolchain=toolchain,
            outputs=CompilationOutputs(wasm=wasm, rwasm=rwasm),
            fingerprint=fp,
            provenance=provenance,
            artifacts=artifacts,
        )

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def save(self, result: BuildResult) -> SavedArtifacts:
        """Write *result* to its configured output directory."""
        config = result.config
        matcher = None
        if config.archive.respect_ignore_rules and self.ignore_matcher_factory is not None:
            matcher = self.ignore_matcher_factory(config.project_root)
        return save_artifacts(
            result, ignore_matcher=matcher, extra_excluded=output_exclusions(config)
        )

    def build_and_save(self, config: BuildConfig) -> tuple[BuildResult, SavedArtifacts]:
        result = self.build(config)
        return result, self.save(result)
