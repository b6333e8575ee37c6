"""Unit tests for the deterministic fingerprinter."""

from __future__ import annotations

import hashlib
import os
from pathlib import Path

import pytest

from fluentforge.core.fingerprinter import (
    fingerprint,
    hash_source_files,
    iter_source_files,
    manifest_lock_hash,
    source_tree_hash,
    toolchain_hash,
)
from fluentforge.core.hasher import NO_LOCKFILE_SENTINEL, sha256_hex
from fluentforge.core.resolver import resolve
from fluentforge.models.config import BuildConfig
from fluentforge.models.descriptors import ContractDescriptor, SdkInfo, ToolchainDescriptor


@pytest.fixture
def busy_project(make_project) -> Path:
    """A project with build output, VCS data and non-source files around."""
    return make_project(
        extra_files={
            "src/math/mod.rs": "pub mod ops;\n",
            "src/math/ops.rs": "pub fn add() {}\n",
            "README.md": "# token\n",
            "target/wasm32-unknown-unknown/release/build.rs": "// generated\n",
            "out/my-token.wasm/lib.rs": "// stale copy\n",
            ".git/hooks/pre-commit.rs": "// hook\n",
            "node_modules/pkg/index.rs": "// nope\n",
        }
    )


def _identities(root: Path) -> tuple[ToolchainDescriptor, ContractDescriptor]:
    resolved = resolve(BuildConfig(project_root=root))
    return resolved.toolchain, resolved.contract


class TestSourceSet:
    def test_sorted_sources_and_critical_files(self, busy_project: Path):
        assert iter_source_files(busy_project) == [
            "Cargo.lock",
            "Cargo.toml",
            "rust-toolchain.toml",
            "src/lib.rs",
            "src/math/mod.rs",
            "src/math/ops.rs",
        ]

    def test_extra_excluded_directory(self, busy_project: Path):
        files = iter_source_files(busy_project, extra_excluded=("src",))
        assert not any(f.startswith("src/") for f in files)

    def test_extra_excluded_matches_only_that_path(self, make_project):
        root = make_project(
            extra_files={
                "build/stale.rs": "// old output\n",
                "src/build/helpers.rs": "pub fn h() {}\n",
            }
        )
        files = iter_source_files(root, extra_excluded=("build",))
        assert "src/build/helpers.rs" in files
        assert "build/stale.rs" not in files

    def test_symlinked_file_skipped(self, project: Path, tmp_path: Path):
        outside = tmp_path / "outside.rs"
        outside.write_text("// outside\n")
        os.symlink(outside, project / "src" / "link.rs")
        assert "src/link.rs" not in iter_source_files(project)


class TestSourceTreeHash:
    def test_concatenation_in_sorted_order(self, busy_project: Path):
        h = hashlib.sha256()
        for rel in iter_source_files(busy_project):
            h.update((busy_project / rel).read_bytes())
        assert source_tree_hash(busy_project) == h.hexdigest()

    def test_thread_pool_gives_same_hash(self, busy_project: Path):
        assert source_tree_hash(busy_project, max_workers=4) == source_tree_hash(busy_project)

    def test_build_output_does_not_change_hash(self, busy_project: Path):
        before = source_tree_hash(busy_project)
        (busy_project / "target" / "extra.rs").write_text("// more output\n")
        (busy_project / "README.md").write_text("changed\n")
        assert source_tree_hash(busy_project) == before

    def test_source_edit_changes_hash(self, busy_project: Path):
        before = source_tree_hash(busy_project)
        (busy_project / "src" / "math" / "ops.rs").write_text("pub fn sub() {}\n")
        assert source_tree_hash(busy_project) != before

    def test_explicit_file_list_is_sorted_and_deduplicated(self, project: Path):
        files = ["src/lib.rs", "Cargo.toml", "src/lib.rs"]
        assert source_tree_hash(project, files) == source_tree_hash(
            project, ["Cargo.toml", "src/lib.rs"]
        )

    def test_per_file_hashes(self, project: Path):
        digests = hash_source_files(project, ["src/lib.rs", "Cargo.toml"], max_workers=2)
        assert list(digests) == ["Cargo.toml", "src/lib.rs"]
        assert digests["src/lib.rs"] == sha256_hex((project / "src" / "lib.rs").read_bytes())


class TestComponentHashes:
    def test_lock_hash(self, project: Path):
        expected = sha256_hex((project / "Cargo.lock").read_bytes())
        assert manifest_lock_hash(project) == expected

    def test_lock_sentinel(self, make_project):
        root = make_project(lock=False)
        assert manifest_lock_hash(root) == NO_LOCKFILE_SENTINEL

    def test_toolchain_hash_components(self):
        tc = ToolchainDescriptor(version="1.83.0")
        contract = ContractDescriptor(
            name="c",
            version="1.0.0",
            sdk_version="0.1.0-abcdef12",
            sdk=SdkInfo(tag="0.1.0", commit="abcdef12"),
        )
        assert toolchain_hash(tc, contract) == sha256_hex(b"1.83.00.1.0abcdef12")

    def test_target_does_not_enter_toolchain_hash(self):
        contract = ContractDescriptor(
            name="c", version="1", sdk_version="0.1.0", sdk=SdkInfo(tag="0.1.0")
        )
        a = toolchain_hash(ToolchainDescriptor(version="1.83.0", target="a"), contract)
        b = toolchain_hash(ToolchainDescriptor(version="1.83.0", target="b"), contract)
        assert a == b


class TestFingerprint:
    def test_built_at_from_clock(self, project: Path):
        tc, contract = _identities(project)
        fp = fingerprint(project, tc, contract, clock=lambda: 1234.9)
        assert fp.built_at == 1234

    def test_matches_ignores_built_at(self, project: Path):
        tc, contract = _identities(project)
        a = fingerprint(project, tc, contract, clock=lambda: 1.0)
        b = fingerprint(project, tc, contract, clock=lambda: 2.0)
        assert a != b
        assert a.matches(b)

    def test_toolchain_change_breaks_match(self, project: Path):
        tc, contract = _identities(project)
        a = fingerprint(project, tc, contract)
        b = fingerprint(project, ToolchainDescriptor(version="1.84.0"), contract)
        assert a.source_tree_hash == b.source_tree_hash
        assert not a.matches(b)
