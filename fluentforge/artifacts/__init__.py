"""Artifact and metadata generation: ABI, Solidity interface, metadata document."""

from __future__ import annotations

from fluentforge.artifacts.abi import generate_abi
from fluentforge.artifacts.interface import generate_interface
from fluentforge.artifacts.metadata import generate_metadata
from fluentforge.models.abi import MethodSignature
from fluentforge.models.config import BuildConfig
from fluentforge.models.descriptors import ContractDescriptor, ToolchainDescriptor
from fluentforge.models.fingerprint import BuildFingerprint
from fluentforge.models.metadata import SourceFileEntry
from fluentforge.models.provenance import SourceProvenance
from fluentforge.models.results import ContractArtifacts


def generate(
    *,
    contract: ContractDescriptor,
    wasm: bytes,
    rwasm: bytes,
    methods: list[MethodSignature],
    config: BuildConfig,
    toolchain: ToolchainDescriptor,
    fingerprint: BuildFingerprint,
    provenance: SourceProvenance,
    sources: dict[str, SourceFileEntry] | None = None,
) -> ContractArtifacts:
    """Build ABI, interface text and metadata for one compiled contract.

    The ABI and interface are always produced; ``ArtifactToggles`` only
    decide what the writer puts on disk.
    """
    abi = generate_abi(methods)
    return ContractArtifacts(
        abi=abi,
        interface=generate_interface(contract.name, abi),
        metadata=generate_metadata(
            contract=contract,
            toolchain=toolchain,
            config=config,
            wasm=wasm,
            rwasm=rwasm,
            fingerprint=fingerprint,
            provenance=provenance,
            abi=abi,
            sources=sources,
        ),
    )


__all__ = ["generate"]
