"""Source archiver.

Packages the contract's source set into a ``tar.gz`` or ``zip`` bundle
whose bytes depend only on file contents, relative paths, format and
compression level.  Timestamps, ownership and permissions are normalised
on every entry, and entries are written in ascending path order.
"""

from __future__ import annotations

import gzip
import io
import logging
import os
import tarfile
import tempfile
import zipfile
from collections.abc import Iterable
from pathlib import Path, PurePosixPath

from fluentforge.collaborators.ignore import IgnoreMatcher
from fluentforge.core.errors import (
    EmptyArchiveError,
    ManifestNotArchivedError,
    MissingManifestError,
    UnsafeArchiveMemberError,
)
from fluentforge.core.fingerprinter import (
    CRITICAL_FILES,
    SOURCE_EXTENSIONS,
    is_excluded_dir,
)
from fluentforge.core.hasher import sha256_file
from fluentforge.models.archive import ArchiveBundle, ArchiveFormat, ArchiveOptions
from fluentforge.models.config import MANIFEST_FILE

logger = logging.getLogger(__name__)

ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)
ENTRY_MODE = 0o644


# ---------------------------------------------------------------------------
# File selection
# ---------------------------------------------------------------------------


def collect_archive_files(
    project_root: Path,
    *,
    ignore_matcher: IgnoreMatcher | None = None,
    extra_excluded: Iterable[str] = (),
) -> list[str]:
    """Sorted, de-duplicated POSIX relative paths to archive.

    Critical files are always included when present.  Other files must have
    a source extension, must not sit under an excluded directory and must
    not be matched by *ignore_matcher*.

    Raises
    ------
    MissingManifestError
        If ``Cargo.toml`` is absent from *project_root*.
    EmptyArchiveError
        If no source file (by extension) survives filtering.
    """
    if not (project_root / MANIFEST_FILE).is_file():
        raise MissingManifestError(f"{MANIFEST_FILE} not found in {project_root}")

    extra = frozenset(extra_excluded)
    selected: set[str] = set()
    source_count = 0

    for dirpath, dirnames, filenames in os.walk(project_root, followlinks=False):
        base = Path(dirpath)
        rel_dir = base.relative_to(project_root)

        kept = []
        for d in sorted(dirnames):
            rel = (rel_dir / d).as_posix()
            if is_excluded_dir(rel, extra):
                continue
            if ignore_matcher is not None and ignore_matcher.is_ignored(rel, True):
                logger.debug("Ignore rules prune directory %s", rel)
                continue
            kept.append(d)
        dirnames[:] = kept

        for name in filenames:
            if os.path.splitext(name)[1] not in SOURCE_EXTENSIONS:
                continue
            path = base / name
            if path.is_symlink() or not path.is_file():
                continue
            rel = (rel_dir / name).as_posix()
            if ignore_matcher is not None and ignore_matcher.is_ignored(rel, False):
                continue
            selected.add(rel)
            source_count += 1

    if source_count == 0:
        raise EmptyArchiveError(f"No source files found to archive in {project_root}")

    for name in CRITICAL_FILES:
        if (project_root / name).is_file():
            selected.add(name)

    files = sorted(selected)
    logger.debug("Selected %d files (%d sources) for archive", len(files), source_count)
    return files


# ---------------------------------------------------------------------------
# Writers
# ---------------------------------------------------------------------------


def _write_tar_gz(dest: io.BufferedWriter, project_root: Path, files: list[str], level: int) -> None:
    with gzip.GzipFile(filename="", mode="wb", compresslevel=level, fileobj=dest, mtime=0) as gz:
        with tarfile.open(fileobj=gz, mode="w", format=tarfile.PAX_FORMAT) as tar:
            for rel in files:
                data = (project_root / rel).read_bytes()
                info = tarfile.TarInfo(name=rel)
                info.size = len(data)
                info.mtime = 0
                info.mode = ENTRY_MODE
                info.uid = info.gid = 0
                info.uname = info.gname = ""
                info.type = tarfile.REGTYPE
                tar.addfile(info, io.BytesIO(data))


def _write_zip(dest: io.BufferedWriter, project_root: Path, files: list[str], level: int) -> None:
    with zipfile.ZipFile(dest, mode="w", compression=zipfile.ZIP_DEFLATED, compresslevel=level) as zf:
        for rel in files:
            info = zipfile.ZipInfo(filename=rel, date_time=ZIP_EPOCH)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.create_system = 3  # unix, so external_attr is read as a mode
            info.external_attr = ENTRY_MODE << 16
            zf.writestr(info, (project_root / rel).read_bytes(), compresslevel=level)


def create_archive(
    project_root: Path,
    output_path: Path,
    options: ArchiveOptions,
    *,
    ignore_matcher: IgnoreMatcher | None = None,
    extra_excluded: Iterable[str] = (),
) -> ArchiveBundle:
    """Write a reproducible source archive and describe it.

    The archive is written to a temporary file beside *output_path* and
    moved into place only once complete.

    Raises
    ------
    MissingManifestError, EmptyArchiveError
        From file selection.
    ManifestNotArchivedError
        If the manifest did not make it into the member list.
    """
    matcher = ignore_matcher if options.respect_ignore_rules else None
    files = collect_archive_files(
        project_root, ignore_matcher=matcher, extra_excluded=extra_excluded
    )
    if MANIFEST_FILE not in files:
        raise ManifestNotArchivedError(f"{MANIFEST_FILE} missing from archive member list")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=".archive-", dir=output_path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as fh:
            if options.format == ArchiveFormat.ZIP:
                _write_zip(fh, project_root, files, options.compression_level)
            else:
                _write_tar_gz(fh, project_root, files, options.compression_level)
        os.replace(tmp_path, output_path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise

    bundle = ArchiveBundle(
        path=output_path,
        format=options.format,
        files=tuple(files),
        content_hash=sha256_file(output_path),
        size_bytes=output_path.stat().st_size,
        manifest_path=MANIFEST_FILE,
    )
    logger.info(
        "Archived %d files to %s (%s, %d bytes)",
        bundle.file_count, output_path, bundle.content_hash[:12], bundle.size_bytes,
    )
    return bundle


# ---------------------------------------------------------------------------
# Readers
# ---------------------------------------------------------------------------


def detect_format(path: Path) -> ArchiveFormat:
    name = path.name.lower()
    if name.endswith(".zip"):
        return ArchiveFormat.ZIP
    if name.endswith((".tar.gz", ".tgz")):
        return ArchiveFormat.TAR_GZ
    return ArchiveFormat.ZIP if zipfile.is_zipfile(path) else ArchiveFormat.TAR_GZ


def _check_member_name(name: str) -> PurePosixPath:
    member = PurePosixPath(name)
    if member.is_absolute() or ".." in member.parts or not member.parts:
        raise UnsafeArchiveMemberError(f"Refusing unsafe archive member: {name!r}")
    return member


def list_archive_members(path: Path) -> list[str]:
    """Member names in stored order."""
    if detect_format(path) == ArchiveFormat.ZIP:
        with zipfile.ZipFile(path) as zf:
            return zf.namelist()
    with tarfile.open(path, mode="r:gz") as tar:
        return tar.getnames()


def extract_archive(path: Path, destination: Path) -> list[Path]:
    """Extract a source archive written by ``create_archive``.

    Only regular files are extracted.  Returns the extracted paths.

    Raises
    ------
    UnsafeArchiveMemberError
        If any member is absolute, climbs out with ``..``, or is a link or
        device entry.
    """
    destination.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []

    if detect_format(path) == ArchiveFormat.ZIP:
        with zipfile.ZipFile(path) as zf:
            infos = zf.infolist()
            for info in infos:
                _check_member_name(info.filename)
            for info in infos:
                if info.is_dir():
                    continue
                target = destination / _check_member_name(info.filename)
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(zf.read(info))
                written.append(target)
        return written

    with tarfile.open(path, mode="r:gz") as tar:
        members = tar.getmembers()
        for member in members:
            _check_member_name(member.name)
            if not (member.isfile() or member.isdir()):
                raise UnsafeArchiveMemberError(
                    f"Refusing non-regular archive member: {member.name!r}"
                )
        for member in members:
            if member.isdir():
                continue
            target = destination / _check_member_name(member.name)
            target.parent.mkdir(parents=True, exist_ok=True)
            src = tar.extractfile(member)
            if src is None:
                raise UnsafeArchiveMemberError(f"Unreadable archive member: {member.name!r}")
            with src:
                target.write_bytes(src.read())
            written.append(target)

    logger.debug("Extracted %d files from %s into %s", len(written), path, destination)
    return written
