"""Source archive models."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class ArchiveFormat(str, Enum):
    """Supported archive containers."""

    TAR_GZ = "tar.gz"
    ZIP = "zip"

    @property
    def extension(self) -> str:
        return self.value


class ArchiveOptions(BaseModel):
    """Explicit archive inputs.

    Format and compression level both change the archive byte stream and
    therefore its hash, so neither is left to a global default.
    """

    model_config = ConfigDict(frozen=True)

    format: ArchiveFormat = ArchiveFormat.TAR_GZ
    compression_level: int = Field(default=6, ge=0, le=9)
    respect_ignore_rules: bool = True


class ArchiveBundle(BaseModel):
    """A written source archive, identified by its own content hash.

    ``files`` is the sorted, de-duplicated list of POSIX relative paths in
    the order they were written.
    """

    model_config = ConfigDict(frozen=True)

    path: Path
    format: ArchiveFormat
    files: tuple[str, ...]
    content_hash: str  # SHA-256 hex of the archive file
    size_bytes: int
    manifest_path: str  # where Cargo.toml lives inside the bundle

    @property
    def file_count(self) -> int:
        return len(self.files)
