"""Metadata document assembly.

The document ties a bytecode hash back to the exact inputs that produced
it: contract identity, source provenance, compiler and SDK pins, build
flags, and the three fingerprint hashes.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from fluentforge.artifacts.abi import canonical_signature, selector
from fluentforge.core.errors import GenerationError
from fluentforge.core.fingerprinter import hash_source_files
from fluentforge.core.hasher import sha256_hex
from fluentforge.models.abi import AbiFunction
from fluentforge.models.config import BuildConfig
from fluentforge.models.descriptors import ContractDescriptor, ToolchainDescriptor
from fluentforge.models.fingerprint import BuildFingerprint
from fluentforge.models.metadata import (
    BinaryInfo,
    BuildCfgSection,
    BytecodeSection,
    CompilationSettings,
    ContractSection,
    DependenciesSection,
    MetadataDocument,
    RustSection,
    SdkSection,
    SolidityCompatibility,
    SourceFileEntry,
)
from fluentforge.models.provenance import SourceProvenance

logger = logging.getLogger(__name__)

# File names inside a contract's output directory.
WASM_FILE = "lib.wasm"
RWASM_FILE = "lib.rwasm"
ABI_FILE = "abi.json"
INTERFACE_FILE = "interface.sol"
METADATA_FILE = "metadata.json"

DEFAULT_LICENSE_SCAN_LINES = 10

_SPDX = re.compile(r"SPDX-License-Identifier:\s*([^\s*/]+)")


def scan_license(path: Path, max_lines: int = DEFAULT_LICENSE_SCAN_LINES) -> str | None:
    """SPDX identifier declared in the first *max_lines* lines of *path*."""
    with open(path, encoding="utf-8", errors="replace") as fh:
        for i, line in enumerate(fh):
            if i >= max_lines:
                break
            m = _SPDX.search(line)
            if m:
                return m.group(1)
    return None


def source_file_entries(
    project_root: Path,
    files: list[str],
    *,
    license_scan_lines: int = DEFAULT_LICENSE_SCAN_LINES,
    max_workers: int | None = None,
) -> dict[str, SourceFileEntry]:
    """Hash and license per relative path, sorted by path."""
    digests = hash_source_files(project_root, files, max_workers=max_workers)
    return {
        rel: SourceFileEntry(
            hash=digest,
            license=scan_license(project_root / rel, license_scan_lines),
        )
        for rel, digest in digests.items()
    }


def function_selectors(abi: list[AbiFunction]) -> dict[str, str]:
    """Canonical signature -> 4-byte selector hex, sorted by signature."""
    table = {canonical_signature(fn): selector(fn) for fn in abi}
    return dict(sorted(table.items()))


def generate_metadata(
    *,
    contract: ContractDescriptor,
    toolchain: ToolchainDescriptor,
    config: BuildConfig,
    wasm: bytes,
    rwasm: bytes,
    fingerprint: BuildFingerprint,
    provenance: SourceProvenance,
    abi: list[AbiFunction],
    sources: dict[str, SourceFileEntry] | None = None,
) -> MetadataDocument:
    """Assemble the metadata document for one build.

    Raises
    ------
    GenerationError
        If a required descriptor field is blank.
    """
    for label, value in (
        ("contract name", contract.name),
        ("contract version", contract.version),
        ("SDK version", contract.sdk_version),
        ("SDK tag", contract.sdk.tag),
        ("toolchain version", toolchain.version),
    ):
        if not value.strip():
            raise GenerationError(f"Cannot generate metadata: {label} is empty")

    toggles = config.artifacts
    compat = None
    if toggles.generate_abi or toggles.generate_interface:
        compat = SolidityCompatibility(
            abi_path=ABI_FILE if toggles.generate_abi else None,
            interface_path=INTERFACE_FILE if toggles.generate_interface else None,
            function_selectors=function_selectors(abi),
        )

    features = config.sorted_features
    doc = MetadataDocument(
        contract=ContractSection(
            name=contract.name,
            version=contract.version,
            sdk_version=contract.sdk_version,
        ),
        source=provenance,
        compilation_settings=CompilationSettings(
            rust=RustSection(version=toolchain.version, target=toolchain.target),
            sdk=SdkSection(tag=contract.sdk.tag, commit=contract.sdk.commit),
            build_cfg=BuildCfgSection(
                profile=config.profile,
                features=features or None,
                no_default_features=config.no_default_features,
                locked=config.locked,
            ),
        ),
        built_at=fingerprint.built_at,
        bytecode=BytecodeSection(
            wasm=BinaryInfo(hash=sha256_hex(wasm), size=len(wasm), path=WASM_FILE),
            rwasm=BinaryInfo(hash=sha256_hex(rwasm), size=len(rwasm), path=RWASM_FILE),
        ),
        solidity_compatibility=compat,
        sources=sources,
        dependencies=DependenciesSection(cargo_lock_hash=fingerprint.manifest_lock_hash),
        toolchain_hash=fingerprint.toolchain_hash,
        source_tree_hash=fingerprint.source_tree_hash,
    )
    logger.debug(
        "Metadata for %s: %d selectors, %d source entries",
        contract.name,
        len(compat.function_selectors) if compat else 0,
        len(sources or {}),
    )
    return doc
