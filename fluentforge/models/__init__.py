"""Fluentforge data models (Pydantic v2, frozen)."""

from fluentforge.models.abi import (
    AbiFunction,
    AbiParameter,
    ArrayType,
    MethodSignature,
    PrimitiveType,
    StateMutability,
    StructType,
    TupleType,
)
from fluentforge.models.archive import ArchiveBundle, ArchiveFormat, ArchiveOptions
from fluentforge.models.config import ArtifactToggles, BuildConfig
from fluentforge.models.descriptors import ContractDescriptor, SdkInfo, ToolchainDescriptor
from fluentforge.models.fingerprint import BuildFingerprint
from fluentforge.models.metadata import METADATA_SCHEMA_VERSION, MetadataDocument
from fluentforge.models.pipeline import VALID_BUILD_TRANSITIONS, BuildStage, StageTransition
from fluentforge.models.provenance import ArchiveSource, GitSource, RepositoryStatus
from fluentforge.models.results import (
    BuildResult,
    CompilationOutputs,
    ContractArtifacts,
    ResolvedProject,
    SavedArtifacts,
    VerificationOutcome,
    VerificationStatus,
)

__all__ = [
    # abi
    "AbiFunction",
    "AbiParameter",
    "ArrayType",
    "MethodSignature",
    "PrimitiveType",
    "StateMutability",
    "StructType",
    "TupleType",
    # archive
    "ArchiveBundle",
    "ArchiveFormat",
    "ArchiveOptions",
    # config
    "ArtifactToggles",
    "BuildConfig",
    # descriptors
    "ContractDescriptor",
    "SdkInfo",
    "ToolchainDescriptor",
    # fingerprint
    "BuildFingerprint",
    # metadata
    "METADATA_SCHEMA_VERSION",
    "MetadataDocument",
    # pipeline
    "BuildStage",
    "StageTransition",
    "VALID_BUILD_TRANSITIONS",
    # provenance
    "ArchiveSource",
    "GitSource",
    "RepositoryStatus",
    # results
    "BuildResult",
    "CompilationOutputs",
    "ContractArtifacts",
    "ResolvedProject",
    "SavedArtifacts",
    "VerificationOutcome",
    "VerificationStatus",
]
