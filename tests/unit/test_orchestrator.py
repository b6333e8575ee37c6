"""Unit tests for the BuildOrchestrator.

Covers stage sequencing, collaborator failure mapping, artifact toggles,
provenance selection and output wiring, all against in-process fakes.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import (
    FIXED_TIME,
    FakeCompiler,
    FakeParser,
    FakeRepository,
    FakeTransformer,
)
from fluentforge.collaborators.ignore import GitignoreMatcher
from fluentforge.core.errors import (
    CompilationFailedError,
    NonReproducibleToolchainError,
)
from fluentforge.core.fingerprinter import source_tree_hash
from fluentforge.core.hasher import sha256_hex
from fluentforge.core.orchestrator import output_exclusions
from fluentforge.models.archive import ArchiveOptions
from fluentforge.models.config import ArtifactToggles, BuildConfig
from fluentforge.models.pipeline import BuildStage
from fluentforge.models.provenance import ArchiveSource, GitSource, RepositoryStatus

COMPILER_STDERR = "error[E0425]: cannot find value `x` in this scope\n --> src/lib.rs:4:5"


class EmptyCompiler:
    def compile(self, request):
        return b""


# ---------------------------------------------------------------------------
# Test: Successful builds
# ---------------------------------------------------------------------------


class TestBuild:
    """A full build walks every stage once, in order."""

    def test_stage_sequence(self, orchestrator, project: Path):
        result = orchestrator.build(BuildConfig(project_root=project))
        assert [t.to_stage for t in result.stages] == [
            BuildStage.RESOLVED,
            BuildStage.COMPILED,
            BuildStage.TRANSFORMED,
            BuildStage.FINGERPRINTED,
            BuildStage.ARTIFACTS_GENERATED,
            BuildStage.DONE,
        ]
        assert result.stages[0].from_stage == BuildStage.PENDING

    def test_result_contents(self, orchestrator, project: Path, fake_transformer):
        result = orchestrator.build(BuildConfig(project_root=project))
        assert result.contract.name == "my-token"
        assert result.toolchain.version == "1.83.0"
        assert result.outputs.rwasm.startswith(b"\xefRWASM")
        assert result.rwasm_hash == sha256_hex(result.outputs.rwasm)
        assert result.wasm_hash == sha256_hex(result.outputs.wasm)
        assert result.fingerprint.built_at == int(FIXED_TIME)
        assert result.duration_seconds >= 0
        assert fake_transformer.calls == 1

    def test_artifacts_generated(self, orchestrator, project: Path, fake_parser):
        result = orchestrator.build(BuildConfig(project_root=project))
        assert fake_parser.sources == [project / "src" / "lib.rs"]
        assert [fn.name for fn in result.artifacts.abi] == ["transfer", "balanceOf", "plot"]
        assert "interface IMyToken {" in result.artifacts.interface
        metadata = result.artifacts.metadata
        assert metadata.bytecode.rwasm.hash == result.rwasm_hash
        assert "src/lib.rs" in metadata.sources

    def test_source_hashes_can_be_omitted(self, orchestrator, project: Path):
        config = BuildConfig(
            project_root=project, artifacts=ArtifactToggles(include_source_hashes=False)
        )
        assert orchestrator.build(config).artifacts.metadata.sources is None

    def test_artifacts_disabled_skips_parser(self, orchestrator, project: Path, fake_parser):
        toggles = ArtifactToggles(
            generate_abi=False, generate_interface=False, generate_metadata=False
        )
        result = orchestrator.build(BuildConfig(project_root=project, artifacts=toggles))
        assert result.artifacts is None
        assert fake_parser.sources == []
        assert result.stages[-2].detail == "(skipped)"

    def test_compile_request_from_config(self, orchestrator, project: Path, fake_compiler):
        orchestrator.build(
            BuildConfig(
                project_root=project,
                profile="dev",
                features=frozenset({"b", "a"}),
                locked=True,
            )
        )
        request = fake_compiler.requests[0]
        assert request.crate_name == "my-token"
        assert request.profile == "dev"
        assert request.features == ("a", "b")
        assert request.locked is True
        assert request.no_default_features is True

    def test_rebuild_is_deterministic(self, orchestrator, project: Path):
        a = orchestrator.build(BuildConfig(project_root=project))
        b = orchestrator.build(BuildConfig(project_root=project))
        assert a.rwasm_hash == b.rwasm_hash
        assert a.fingerprint == b.fingerprint

    def test_thread_pool_hashing(self, make_orchestrator, project: Path):
        serial = make_orchestrator().build(BuildConfig(project_root=project))
        pooled = make_orchestrator(max_workers=4).build(BuildConfig(project_root=project))
        assert serial.fingerprint == pooled.fingerprint


# ---------------------------------------------------------------------------
# Test: Failures
# ---------------------------------------------------------------------------


class TestBuildFailures:
    """The first failing stage aborts the run and keeps the diagnostic verbatim."""

    def test_compiler_failure(self, make_orchestrator, project: Path):
        transformer = FakeTransformer()
        orch = make_orchestrator(
            compiler=FakeCompiler(fail_with=COMPILER_STDERR), transformer=transformer
        )
        with pytest.raises(CompilationFailedError) as excinfo:
            orch.build(BuildConfig(project_root=project))
        assert excinfo.value.stage == "compile"
        assert COMPILER_STDERR in excinfo.value.diagnostic
        assert "exit code: 101" in excinfo.value.diagnostic
        assert transformer.calls == 0

    def test_transform_failure(self, make_orchestrator, project: Path):
        orch = make_orchestrator(transformer=FakeTransformer(fail_with="bad opcode 0xfe"))
        with pytest.raises(CompilationFailedError) as excinfo:
            orch.build(BuildConfig(project_root=project))
        assert excinfo.value.stage == "transform"
        assert "bad opcode 0xfe" in excinfo.value.diagnostic

    def test_empty_compiler_output(self, make_orchestrator, project: Path):
        orch = make_orchestrator(compiler=EmptyCompiler())
        with pytest.raises(CompilationFailedError, match="empty output"):
            orch.build(BuildConfig(project_root=project))

    def test_parser_failure(self, make_orchestrator, project: Path):
        orch = make_orchestrator(parser=FakeParser(fail_with="unexpected token"))
        with pytest.raises(CompilationFailedError) as excinfo:
            orch.build(BuildConfig(project_root=project))
        assert excinfo.value.stage == "parse"
        assert "unexpected token" in excinfo.value.diagnostic

    def test_configuration_error_before_compile(self, make_project, orchestrator, fake_compiler):
        root = make_project(toolchain="stable")
        with pytest.raises(NonReproducibleToolchainError):
            orchestrator.build(BuildConfig(project_root=root))
        assert fake_compiler.requests == []


# ---------------------------------------------------------------------------
# Test: Provenance
# ---------------------------------------------------------------------------


class TestProvenance:
    def test_archive_provenance_by_default(self, orchestrator, project: Path):
        result = orchestrator.build(BuildConfig(project_root=project))
        assert isinstance(result.provenance, ArchiveSource)
        assert result.provenance.archive_path == "./sources.tar.gz"

    def test_git_provenance_from_clean_tree(self, make_orchestrator, project: Path):
        status = RepositoryStatus(
            remote_url="https://github.com/acme/contracts.git",
            commit="0123456789abcdef0123456789abcdef01234567",
        )
        orch = make_orchestrator(repository=FakeRepository(status, "contracts/token"))
        result = orch.build(BuildConfig(project_root=project, use_git_source=True))
        assert result.provenance == GitSource(
            repository="https://github.com/acme/contracts.git",
            commit="0123456789abcdef0123456789abcdef01234567",
            project_path="contracts/token",
        )
        assert result.artifacts.metadata.source == result.provenance


# ---------------------------------------------------------------------------
# Test: Output
# ---------------------------------------------------------------------------


class TestSave:
    def test_build_and_save_with_archive(self, orchestrator, project: Path):
        result, saved = orchestrator.build_and_save(
            BuildConfig(project_root=project, archive=ArchiveOptions())
        )
        assert saved.archive is not None
        assert saved.archive.path.name == "sources.tar.gz"
        assert "src/lib.rs" in saved.archive.files
        assert saved.wasm_path.read_bytes() == result.outputs.wasm

    def test_ignore_matcher_factory_used(self, make_orchestrator, make_project):
        root = make_project(
            extra_files={"scratch/notes.rs": "// wip\n", ".gitignore": "scratch/\n"}
        )
        calls = []

        def factory(path):
            calls.append(path)
            return GitignoreMatcher.from_project(path)

        orch = make_orchestrator(ignore_matcher_factory=factory)
        _, saved = orch.build_and_save(BuildConfig(project_root=root, archive=ArchiveOptions()))
        assert calls == [root]
        assert "scratch/notes.rs" not in saved.archive.files

    def test_output_exclusions(self, tmp_path: Path):
        inside = BuildConfig(project_root=tmp_path, output_dir=Path("artifacts/build"))
        assert output_exclusions(inside) == ("artifacts/build",)
        outside = BuildConfig(project_root=tmp_path / "p", output_dir=tmp_path / "dist")
        assert output_exclusions(outside) == ()

    def test_nested_dir_sharing_the_output_name_is_kept(self, make_project, make_orchestrator):
        root = make_project(
            extra_files={
                "build/stale.rs": "// old output\n",
                "src/build/helpers.rs": "pub fn h() {}\n",
            }
        )
        config = BuildConfig(project_root=root, output_dir=Path("build"))
        result, saved = make_orchestrator().build_and_save(config)
        assert "src/build/helpers.rs" in saved.archive.files
        assert not any(f.startswith("build/") for f in saved.archive.files)
        assert saved.output_dir == root / "build" / "my-token.wasm"
        assert result.fingerprint.source_tree_hash == source_tree_hash(
            root, extra_excluded=("build",)
        )
        assert result.fingerprint.source_tree_hash != source_tree_hash(
            root, extra_excluded=("build", "src/build")
        )
