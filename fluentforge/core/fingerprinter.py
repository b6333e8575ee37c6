"""Deterministic fingerprinter.

Hashes exactly the inputs that decide the compiled bytecode:

* ``source_tree_hash``: SHA-256 over the concatenated contents of every
  ``.rs`` file plus the manifest, lock and toolchain-pin files, taken in
  sorted POSIX relative-path order.
* ``manifest_lock_hash``: SHA-256 of the raw ``Cargo.lock`` bytes, or
  ``NO_LOCKFILE_SENTINEL``.
* ``toolchain_hash``: SHA-256 of toolchain version + SDK tag + SDK commit.

Reading may fan out over a thread pool; folding always follows the sorted
path list, so the result does not depend on worker count or directory
iteration order.
"""

from __future__ import annotations

import hashlib
import logging
import os
import time
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from fluentforge.core.hasher import NO_LOCKFILE_SENTINEL, sha256_file, sha256_hex
from fluentforge.models.descriptors import ContractDescriptor, ToolchainDescriptor
from fluentforge.models.fingerprint import BuildFingerprint

logger = logging.getLogger(__name__)

SOURCE_EXTENSIONS = frozenset({".rs"})
CRITICAL_FILES = ("Cargo.toml", "Cargo.lock", "rust-toolchain.toml", "rust-toolchain")
EXCLUDED_DIRS = frozenset({"target", "out", "node_modules"})

Clock = Callable[[], float]


def is_excluded_dir(rel_path: str, extra: Iterable[str] = ()) -> bool:
    """Whether the directory at project-relative *rel_path* is never descended into.

    Built-in exclusions match a directory name at any depth; *extra* entries
    are project-relative POSIX paths and match only that exact directory.
    """
    name = rel_path.rsplit("/", 1)[-1]
    return name in EXCLUDED_DIRS or name.startswith(".") or rel_path in extra


def is_source_file(name: str) -> bool:
    """Whether a file named *name* belongs to the hashed source set."""
    return name in CRITICAL_FILES or os.path.splitext(name)[1] in SOURCE_EXTENSIONS


def iter_source_files(
    project_root: Path, extra_excluded: Iterable[str] = ()
) -> list[str]:
    """Sorted POSIX relative paths of every fingerprinted file.

    Symlinked directories are not followed and symlinked files are skipped,
    so the set cannot reach outside *project_root*.
    """
    extra = frozenset(extra_excluded)
    found: list[str] = []

    for dirpath, dirnames, filenames in os.walk(project_root, followlinks=False):
        base = Path(dirpath)
        rel_dir = base.relative_to(project_root)
        dirnames[:] = [
            d for d in dirnames if not is_excluded_dir((rel_dir / d).as_posix(), extra)
        ]
        for name in filenames:
            if not is_source_file(name):
                continue
            path = base / name
            if path.is_symlink() or not path.is_file():
                continue
            found.append(path.relative_to(project_root).as_posix())

    found.sort()
    logger.debug("Collected %d source files under %s", len(found), project_root)
    return found


def _read(path: Path) -> bytes:
    return path.read_bytes()


def source_tree_hash(
    project_root: Path,
    files: list[str] | None = None,
    *,
    max_workers: int | None = None,
    extra_excluded: Iterable[str] = (),
) -> str:
    """SHA-256 of the concatenated file contents in sorted path order."""
    if files is None:
        files = iter_source_files(project_root, extra_excluded)
    else:
        files = sorted(set(files))

    h = hashlib.sha256()
    paths = [project_root / rel for rel in files]
    if max_workers and max_workers > 1 and len(paths) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            # map() yields in submission order, i.e. sorted path order.
            for content in pool.map(_read, paths):
                h.update(content)
    else:
        for path in paths:
            h.update(_read(path))
    return h.hexdigest()


def hash_source_files(
    project_root: Path, files: list[str], *, max_workers: int | None = None
) -> dict[str, str]:
    """Per-file SHA-256 hex digests, keyed by relative path in sorted order."""
    ordered = sorted(set(files))
    paths = [project_root / rel for rel in ordered]
    if max_workers and max_workers > 1 and len(paths) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            digests = list(pool.map(sha256_file, paths))
    else:
        digests = [sha256_file(p) for p in paths]
    return dict(zip(ordered, digests))


def manifest_lock_hash(project_root: Path) -> str:
    lock = project_root / "Cargo.lock"
    if lock.is_file():
        return sha256_file(lock)
    return NO_LOCKFILE_SENTINEL


def toolchain_hash(toolchain: ToolchainDescriptor, contract: ContractDescriptor) -> str:
    payload = f"{toolchain.version}{contract.sdk.tag}{contract.sdk.commit}"
    return sha256_hex(payload.encode("utf-8"))


def fingerprint(
    project_root: Path,
    toolchain: ToolchainDescriptor,
    contract: ContractDescriptor,
    *,
    clock: Clock = time.time,
    max_workers: int | None = None,
    extra_excluded: Iterable[str] = (),
) -> BuildFingerprint:
    """Compute the build fingerprint for *project_root*.

    Parameters
    ----------
    project_root:
        Crate directory containing ``Cargo.toml``.
    toolchain, contract:
        Resolved identities; only the toolchain version and SDK tag/commit
        enter the hash.
    clock:
        Source of ``built_at``.  Not part of any hash.
    max_workers:
        Thread pool size for file reads; ``None`` or 1 reads serially.
    extra_excluded:
        Project-relative directory paths to skip, e.g. a custom output directory.
    """
    result = BuildFingerprint(
        source_tree_hash=source_tree_hash(
            project_root, max_workers=max_workers, extra_excluded=extra_excluded
        ),
        manifest_lock_hash=manifest_lock_hash(project_root),
        toolchain_hash=toolchain_hash(toolchain, contract),
        built_at=int(clock()),
    )
    logger.debug(
        "Fingerprint for %s: source=%s lock=%s toolchain=%s",
        contract.name,
        result.source_tree_hash[:12],
        result.manifest_lock_hash[:12],
        result.toolchain_hash[:12],
    )
    return result
