"""Build configuration models."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from fluentforge.core.errors import ConfigurationError, MissingManifestError
from fluentforge.models.archive import ArchiveOptions

MANIFEST_FILE = "Cargo.toml"
DEFAULT_TARGET = "wasm32-unknown-unknown"


class ArtifactToggles(BaseModel):
    """Which artifacts are written next to the compiled binaries."""

    model_config = ConfigDict(frozen=True)

    generate_abi: bool = True
    generate_interface: bool = True
    generate_metadata: bool = True
    pretty_json: bool = True
    include_source_hashes: bool = True  # per-file "sources" map in metadata

    @property
    def any_enabled(self) -> bool:
        return self.generate_abi or self.generate_interface or self.generate_metadata


class BuildConfig(BaseModel):
    """A single build request.

    Passed by value through every stage; nothing in the core reads the
    working directory or environment to fill in missing fields.
    """

    model_config = ConfigDict(frozen=True)

    project_root: Path
    output_dir: Path = Path("out")
    profile: str = Field(default="release", min_length=1)
    features: frozenset[str] = frozenset()
    no_default_features: bool = True
    locked: bool = False
    artifacts: ArtifactToggles = ArtifactToggles()
    use_git_source: bool = False
    allow_dirty: bool = False  # dirty tree + git source → explicit archive fallback
    target: str = DEFAULT_TARGET
    archive: ArchiveOptions = ArchiveOptions()  # bundle written with archive provenance

    @field_serializer("features")
    def _serialize_features(self, features: frozenset[str]) -> list[str]:
        return sorted(features)

    @property
    def manifest_path(self) -> Path:
        return self.project_root / MANIFEST_FILE

    @property
    def sorted_features(self) -> list[str]:
        return sorted(self.features)

    def output_directory(self) -> Path:
        """Absolute output directory (relative paths hang off the project root)."""
        if self.output_dir.is_absolute():
            return self.output_dir
        return self.project_root / self.output_dir

    def validate_project(self) -> None:
        """Check the project root exists and holds a manifest.

        Raises
        ------
        ConfigurationError
            If the project root does not exist or is not a directory.
        MissingManifestError
            If ``Cargo.toml`` is absent.
        """
        if not self.project_root.exists():
            raise ConfigurationError(
                f"Project root does not exist: {self.project_root}"
            )
        if not self.project_root.is_dir():
            raise ConfigurationError(
                f"Project root is not a directory: {self.project_root}"
            )
        if not self.manifest_path.is_file():
            raise MissingManifestError(
                f"No {MANIFEST_FILE} found in project root: {self.project_root}"
            )


class BuildOverrides(BaseModel):
    """Optional changes to the default build used when re-verifying a project.

    Fields left as None keep the ``BuildConfig`` default.  Artifact
    generation is off unless requested, since verification only compares
    bytecode.
    """

    model_config = ConfigDict(frozen=True)

    output_dir: Path | None = None
    profile: str | None = Field(default=None, min_length=1)
    features: frozenset[str] | None = None
    no_default_features: bool | None = None
    locked: bool | None = None
    target: str | None = None
    generate_artifacts: bool = False

    def apply(self, project_root: Path) -> BuildConfig:
        values = self.model_dump(exclude_none=True, exclude={"generate_artifacts"})
        toggles = ArtifactToggles(
            generate_abi=self.generate_artifacts,
            generate_interface=self.generate_artifacts,
            generate_metadata=self.generate_artifacts,
            include_source_hashes=self.generate_artifacts,
        )
        return BuildConfig(project_root=project_root, artifacts=toggles, **values)
