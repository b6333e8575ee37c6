"""Adversarial tests: source archive determinism and hostile bundles.

These tests verify that:
1. Filesystem noise (mtimes, permissions, creation order) never changes archive bytes
   and an extracted bundle re-archives to the same bytes
2. Files outside the source set cannot leak into an archive
3. Hostile archives (path traversal, absolute paths, links) are refused on extraction
4. Verification of a hostile archive reports invalid_config without building
"""

from __future__ import annotations

import io
import os
import tarfile
import zipfile
from pathlib import Path

import pytest

from fluentforge.core.archiver import create_archive, extract_archive
from fluentforge.core.errors import UnsafeArchiveMemberError
from fluentforge.core.verifier import VerificationEngine
from fluentforge.models.archive import ArchiveFormat, ArchiveOptions
from fluentforge.models.results import VerificationStatus

EXTRA = {
    "src/math.rs": "pub fn add(a: u64, b: u64) -> u64 { a + b }\n",
    "src/nested/deep.rs": "pub const DEPTH: u8 = 3;\n",
    "build.rs": "fn main() {}\n",
}

FORMATS = [ArchiveFormat.TAR_GZ, ArchiveFormat.ZIP]


def _archive(root: Path, out: Path, fmt: ArchiveFormat) -> bytes:
    create_archive(root, out, ArchiveOptions(format=fmt))
    return out.read_bytes()


# ---------------------------------------------------------------------------
# Filesystem noise
# ---------------------------------------------------------------------------


class TestFilesystemNoise:
    @pytest.mark.parametrize("fmt", FORMATS)
    def test_repeat_runs_identical(self, make_project, tmp_path, fmt):
        root = make_project(extra_files=EXTRA)
        first = _archive(root, tmp_path / "a" / f"s.{fmt.extension}", fmt)
        second = _archive(root, tmp_path / "b" / f"s.{fmt.extension}", fmt)
        assert first == second

    @pytest.mark.parametrize("fmt", FORMATS)
    def test_mtimes_ignored(self, make_project, tmp_path, fmt):
        root = make_project(extra_files=EXTRA)
        before = _archive(root, tmp_path / "a" / f"s.{fmt.extension}", fmt)
        for i, rel in enumerate(["src/lib.rs", "src/math.rs", "Cargo.toml"]):
            os.utime(root / rel, (1_000_000 + i, 1_000_000 + i * 7919))
        after = _archive(root, tmp_path / "b" / f"s.{fmt.extension}", fmt)
        assert before == after

    @pytest.mark.parametrize("fmt", FORMATS)
    def test_permissions_ignored(self, make_project, tmp_path, fmt):
        root = make_project(extra_files=EXTRA)
        before = _archive(root, tmp_path / "a" / f"s.{fmt.extension}", fmt)
        (root / "build.rs").chmod(0o755)
        (root / "src" / "math.rs").chmod(0o600)
        after = _archive(root, tmp_path / "b" / f"s.{fmt.extension}", fmt)
        assert before == after

    @pytest.mark.parametrize("fmt", FORMATS)
    def test_creation_order_ignored(self, make_project, tmp_path, fmt):
        forward = make_project(subdir="forward", extra_files=EXTRA)
        backward = make_project(
            subdir="backward", extra_files=dict(reversed(list(EXTRA.items())))
        )
        assert _archive(forward, tmp_path / "f" / f"s.{fmt.extension}", fmt) == _archive(
            backward, tmp_path / "r" / f"s.{fmt.extension}", fmt
        )

    @pytest.mark.parametrize("fmt", FORMATS)
    def test_extracted_bundle_rearchives_identically(self, make_project, tmp_path, fmt):
        root = make_project(extra_files=EXTRA)
        options = ArchiveOptions(format=fmt)
        original = create_archive(root, tmp_path / "a" / f"s.{fmt.extension}", options)
        unpacked = tmp_path / "unpacked"
        extract_archive(original.path, unpacked)
        again = create_archive(unpacked, tmp_path / "b" / f"s.{fmt.extension}", options)
        assert again.files == original.files
        assert again.content_hash == original.content_hash
        assert again.path.read_bytes() == original.path.read_bytes()

    def test_tar_entries_normalised(self, make_project, tmp_path):
        root = make_project(extra_files=EXTRA)
        (root / "build.rs").chmod(0o755)
        out = tmp_path / "s.tar.gz"
        create_archive(root, out, ArchiveOptions())
        with tarfile.open(out, mode="r:gz") as tar:
            for member in tar.getmembers():
                assert (member.mtime, member.uid, member.gid) == (0, 0, 0)
                assert member.mode == 0o644


class TestLeakage:
    def test_secrets_and_build_output_excluded(self, make_project, tmp_path):
        root = make_project(
            extra_files={
                ".env": "PRIVATE_KEY=0xdead\n",
                "target/release/cache.rs": "// stale\n",
                ".git/hooks/pre-commit.rs": "// hook\n",
                "notes.txt": "todo\n",
            }
        )
        bundle = create_archive(root, tmp_path / "s.tar.gz", ArchiveOptions())
        assert bundle.files == ("Cargo.lock", "Cargo.toml", "rust-toolchain.toml", "src/lib.rs")

    def test_symlinked_source_not_followed(self, make_project, tmp_path):
        outside = tmp_path / "outside.rs"
        outside.write_text("// not part of the crate\n")
        root = make_project()
        (root / "src" / "linked.rs").symlink_to(outside)
        bundle = create_archive(root, tmp_path / "s.tar.gz", ArchiveOptions())
        assert "src/linked.rs" not in bundle.files


# ---------------------------------------------------------------------------
# Hostile archives
# ---------------------------------------------------------------------------


def _evil_tar(path: Path, name: str, *, link: str | None = None) -> Path:
    with tarfile.open(path, mode="w:gz") as tar:
        good = b"[package]\nname = \"x\"\n"
        info = tarfile.TarInfo("Cargo.toml")
        info.size = len(good)
        tar.addfile(info, io.BytesIO(good))
        info = tarfile.TarInfo(name)
        if link is not None:
            info.type = tarfile.SYMTYPE
            info.linkname = link
            tar.addfile(info)
        else:
            payload = b"// payload\n"
            info.size = len(payload)
            tar.addfile(info, io.BytesIO(payload))
    return path


def _evil_zip(path: Path, name: str) -> Path:
    with zipfile.ZipFile(path, mode="w") as zf:
        zf.writestr("Cargo.toml", "[package]\n")
        zf.writestr(zipfile.ZipInfo(name), "// payload\n")
    return path


class TestHostileArchives:
    def test_tar_path_traversal(self, tmp_path):
        evil = _evil_tar(tmp_path / "evil.tar.gz", "../evil.rs")
        with pytest.raises(UnsafeArchiveMemberError):
            extract_archive(evil, tmp_path / "dest")
        assert not (tmp_path / "evil.rs").exists()

    def test_tar_absolute_path(self, tmp_path):
        evil = _evil_tar(tmp_path / "evil.tar.gz", "/tmp/evil.rs")
        with pytest.raises(UnsafeArchiveMemberError):
            extract_archive(evil, tmp_path / "dest")

    def test_tar_symlink(self, tmp_path):
        evil = _evil_tar(tmp_path / "evil.tar.gz", "src/lib.rs", link="/etc/passwd")
        with pytest.raises(UnsafeArchiveMemberError, match="non-regular"):
            extract_archive(evil, tmp_path / "dest")

    def test_zip_traversal(self, tmp_path):
        evil = _evil_zip(tmp_path / "evil.zip", "src/../../evil.rs")
        with pytest.raises(UnsafeArchiveMemberError):
            extract_archive(evil, tmp_path / "dest")

    def test_zip_absolute_path(self, tmp_path):
        evil = _evil_zip(tmp_path / "evil.zip", "/abs/evil.rs")
        with pytest.raises(UnsafeArchiveMemberError):
            extract_archive(evil, tmp_path / "dest")

    def test_nothing_written_before_refusal(self, tmp_path):
        evil = _evil_tar(tmp_path / "evil.tar.gz", "../evil.rs")
        dest = tmp_path / "dest"
        with pytest.raises(UnsafeArchiveMemberError):
            extract_archive(evil, dest)
        assert not (dest / "Cargo.toml").exists()

    def test_verification_refuses_hostile_archive(self, orchestrator, fake_compiler, tmp_path):
        evil = _evil_tar(tmp_path / "evil.tar.gz", "../evil.rs")
        outcome = VerificationEngine(orchestrator).verify_archive(evil, "ab" * 32)
        assert outcome.status == VerificationStatus.INVALID_CONFIG
        assert "unsafe" in (outcome.error_message or "")
        assert fake_compiler.requests == []
