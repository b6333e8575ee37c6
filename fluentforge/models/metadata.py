"""Verification metadata document.

The JSON produced from these models is a compatibility contract with
external consumers.  Any field added, removed or reinterpreted requires a
new ``METADATA_SCHEMA_VERSION``; consumers key off that number, never off
which fields happen to be present.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from fluentforge.models.provenance import SourceProvenance

METADATA_SCHEMA_VERSION = 1


class ContractSection(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    sdk_version: str


class RustSection(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: str  # pinned channel, e.g. "1.83.0" or "nightly-2024-01-15"
    target: str


class SdkSection(BaseModel):
    model_config = ConfigDict(frozen=True)

    tag: str
    commit: str


class BuildCfgSection(BaseModel):
    model_config = ConfigDict(frozen=True)

    profile: str
    features: list[str] | None = None  # omitted when empty
    no_default_features: bool
    locked: bool


class CompilationSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    rust: RustSection
    sdk: SdkSection
    build_cfg: BuildCfgSection


class BinaryInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    hash: str
    size: int
    path: str


class BytecodeSection(BaseModel):
    model_config = ConfigDict(frozen=True)

    wasm: BinaryInfo
    rwasm: BinaryInfo


class SolidityCompatibility(BaseModel):
    model_config = ConfigDict(frozen=True)

    abi_path: str | None = None  # only when abi.json is written
    interface_path: str | None = None  # only when interface.sol is written
    function_selectors: dict[str, str]  # canonical signature -> 4-byte selector hex


class SourceFileEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    hash: str
    license: str | None = None


class DependenciesSection(BaseModel):
    model_config = ConfigDict(frozen=True)

    cargo_lock_hash: str


class MetadataDocument(BaseModel):
    """Root of ``metadata.json``."""

    model_config = ConfigDict(frozen=True)

    schema_version: int = METADATA_SCHEMA_VERSION
    contract: ContractSection
    source: SourceProvenance
    compilation_settings: CompilationSettings
    built_at: int
    bytecode: BytecodeSection
    solidity_compatibility: SolidityCompatibility | None = None
    sources: dict[str, SourceFileEntry] | None = None
    dependencies: DependenciesSection
    toolchain_hash: str
    source_tree_hash: str

    def to_json_dict(self) -> dict:
        """JSON-ready dict; optional sections are omitted rather than nulled."""
        return self.model_dump(mode="json", exclude_none=True)
