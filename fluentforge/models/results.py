"""Result models for builds and verifications."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from fluentforge.core.hasher import sha256_hex
from fluentforge.models.abi import AbiFunction
from fluentforge.models.archive import ArchiveBundle
from fluentforge.models.config import BuildConfig
from fluentforge.models.descriptors import ContractDescriptor, ToolchainDescriptor
from fluentforge.models.fingerprint import BuildFingerprint
from fluentforge.models.metadata import MetadataDocument
from fluentforge.models.pipeline import StageTransition
from fluentforge.models.provenance import SourceProvenance


class ResolvedProject(BaseModel):
    """Output of the resolver: everything known before compilation starts."""

    model_config = ConfigDict(frozen=True)

    config: BuildConfig
    contract: ContractDescriptor
    toolchain: ToolchainDescriptor
    main_source: Path


class CompilationOutputs(BaseModel):
    """Intermediate (WASM) and final (rWASM) bytecode."""

    model_config = ConfigDict(frozen=True)

    wasm: bytes
    rwasm: bytes


class ContractArtifacts(BaseModel):
    model_config = ConfigDict(frozen=True)

    abi: list[AbiFunction]
    interface: str
    metadata: MetadataDocument


class BuildResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    config: BuildConfig
    contract: ContractDescriptor
    toolchain: ToolchainDescriptor
    outputs: CompilationOutputs
    fingerprint: BuildFingerprint
    provenance: SourceProvenance
    artifacts: ContractArtifacts | None = None
    stages: list[StageTransition] = []
    duration_seconds: float = 0.0

    @property
    def wasm_hash(self) -> str:
        return sha256_hex(self.outputs.wasm)

    @property
    def rwasm_hash(self) -> str:
        return sha256_hex(self.outputs.rwasm)


class SavedArtifacts(BaseModel):
    """Paths (and content addresses) of everything written for one contract."""

    model_config = ConfigDict(frozen=True)

    output_dir: Path
    wasm_path: Path
    rwasm_path: Path
    abi_path: Path | None = None
    interface_path: Path | None = None
    metadata_path: Path | None = None
    archive: ArchiveBundle | None = None
    content_addresses: dict[str, str] = {}  # file name -> "sha256:<hex>"


class VerificationStatus(str, Enum):
    SUCCESS = "success"
    BYTECODE_MISMATCH = "bytecode_mismatch"
    COMPILATION_FAILED = "compilation_failed"
    INVALID_CONFIG = "invalid_config"


class VerificationOutcome(BaseModel):
    """Classified result of comparing a rebuilt bytecode hash to an expected one.

    ``actual_hash`` is None whenever the build never produced bytecode.
    """

    model_config = ConfigDict(frozen=True)

    status: VerificationStatus
    expected_hash: str
    actual_hash: str | None = None
    contract_name: str = ""
    error_message: str | None = None
    started_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    duration_seconds: float = 0.0
    build_result: BuildResult | None = None

    @property
    def is_success(self) -> bool:
        return self.status == VerificationStatus.SUCCESS
