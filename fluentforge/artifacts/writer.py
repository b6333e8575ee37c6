"""Writes build outputs to ``<output_dir>/<contract>.wasm/``.

Layout::

    lib.wasm        intermediate module
    lib.rwasm       final bytecode
    abi.json        when generate_abi
    interface.sol   when generate_interface
    metadata.json   when generate_metadata
    sources.tar.gz  whenever provenance is "archive" (or sources.zip)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from fluentforge.artifacts.abi import abi_to_json
from fluentforge.artifacts.metadata import (
    ABI_FILE,
    INTERFACE_FILE,
    METADATA_FILE,
    RWASM_FILE,
    WASM_FILE,
)
from fluentforge.collaborators.ignore import IgnoreMatcher
from fluentforge.core.archiver import create_archive
from fluentforge.core.errors import GenerationError
from fluentforge.core.hasher import content_address
from fluentforge.models.archive import ArchiveBundle, ArchiveFormat
from fluentforge.models.metadata import METADATA_SCHEMA_VERSION, MetadataDocument
from fluentforge.models.provenance import ArchiveSource
from fluentforge.models.results import BuildResult, SavedArtifacts

logger = logging.getLogger(__name__)

ARCHIVE_STEM = "sources"


def archive_filename(fmt: ArchiveFormat) -> str:
    return f"{ARCHIVE_STEM}.{fmt.extension}"


def contract_output_dir(output_root: Path, contract_name: str) -> Path:
    return output_root / f"{contract_name}.wasm"


def dump_json(data: Any, *, pretty: bool) -> bytes:
    if pretty:
        text = json.dumps(data, indent=2, ensure_ascii=False)
    else:
        text = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    return (text + "\n").encode("utf-8")


def save_artifacts(
    result: BuildResult,
    *,
    ignore_matcher: IgnoreMatcher | None = None,
    extra_excluded: tuple[str, ...] = (),
) -> SavedArtifacts:
    """Write binaries and enabled artifacts for *result*.

    Raises
    ------
    GenerationError
        If metadata output is enabled but the result carries no artifacts.
    MissingManifestError, EmptyArchiveError
        From archiving, when provenance is "archive".
    """
    config = result.config
    toggles = config.artifacts
    out_dir = contract_output_dir(config.output_directory(), result.contract.name)
    out_dir.mkdir(parents=True, exist_ok=True)

    addresses: dict[str, str] = {}

    def write(name: str, data: bytes) -> Path:
        path = out_dir / name
        path.write_bytes(data)
        addresses[name] = content_address(data)
        return path

    wasm_path = write(WASM_FILE, result.outputs.wasm)
    rwasm_path = write(RWASM_FILE, result.outputs.rwasm)

    artifacts = result.artifacts
    if artifacts is None and toggles.any_enabled:
        raise GenerationError(
            f"Build result for {result.contract.name} has no generated artifacts"
        )

    abi_path = interface_path = metadata_path = None
    if artifacts is not None:
        if toggles.generate_abi:
            abi_path = write(
                ABI_FILE, dump_json(abi_to_json(artifacts.abi), pretty=toggles.pretty_json)
            )
        if toggles.generate_interface:
            interface_path = write(INTERFACE_FILE, artifacts.interface.encode("utf-8"))
        if toggles.generate_metadata:
            metadata_path = write(
                METADATA_FILE,
                dump_json(artifacts.metadata.to_json_dict(), pretty=toggles.pretty_json),
            )

    bundle: ArchiveBundle | None = None
    if isinstance(result.provenance, ArchiveSource):
        bundle = create_archive(
            config.project_root,
            out_dir / archive_filename(config.archive.format),
            config.archive,
            ignore_matcher=ignore_matcher,
            extra_excluded=extra_excluded,
        )
        addresses[bundle.path.name] = f"sha256:{bundle.content_hash}"

    logger.info("Saved %d artifacts for %s to %s", len(addresses), result.contract.name, out_dir)
    return SavedArtifacts(
        output_dir=out_dir,
        wasm_path=wasm_path,
        rwasm_path=rwasm_path,
        abi_path=abi_path,
        interface_path=interface_path,
        metadata_path=metadata_path,
        archive=bundle,
        content_addresses=dict(sorted(addresses.items())),
    )


def load_metadata(path: Path) -> MetadataDocument:
    """Read a ``metadata.json`` written by this tool.

    Raises
    ------
    GenerationError
        If the file is not valid JSON or declares an unsupported schema.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise GenerationError(f"Cannot read metadata {path}: {exc}") from exc

    version = data.get("schema_version") if isinstance(data, dict) else None
    if version != METADATA_SCHEMA_VERSION:
        raise GenerationError(
            f"Unsupported metadata schema_version {version!r} in {path} "
            f"(expected {METADATA_SCHEMA_VERSION})"
        )
    return MetadataDocument.model_validate(data)
