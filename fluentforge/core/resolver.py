"""Config & descriptor resolver.

Turns a ``BuildConfig`` into a ``ResolvedProject``: the contract identity
from ``Cargo.toml`` / ``Cargo.lock``, the pinned toolchain from
``rust-toolchain.toml`` and the main source file handed to the method
parser.  Everything here runs before any compiler subprocess.
"""

from __future__ import annotations

import logging
import os
import re
import tomllib
from datetime import date
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict

from fluentforge.core.errors import (
    ConfigurationError,
    ManifestParseError,
    MissingDependencyError,
    NonReproducibleToolchainError,
)
from fluentforge.models.config import MANIFEST_FILE, BuildConfig
from fluentforge.models.descriptors import ContractDescriptor, SdkInfo, ToolchainDescriptor
from fluentforge.models.results import ResolvedProject

logger = logging.getLogger(__name__)

SDK_PACKAGE = "fluentbase-sdk"
LOCK_FILE = "Cargo.lock"
TOOLCHAIN_FILE = "rust-toolchain.toml"
LEGACY_TOOLCHAIN_FILE = "rust-toolchain"

MAIN_SOURCE_CANDIDATES = ("src/lib.rs", "src/main.rs", "lib.rs", "main.rs")

# Directories never searched for contracts.
_SKIP_DIRS = frozenset({"target", "out", "node_modules"})

_HOST_SUFFIX = r"(?:-[a-z0-9_]+(?:-[a-z0-9_.]+){1,3})?"
_RELEASE_CHANNEL = re.compile(rf"^\d+\.\d+\.\d+{_HOST_SUFFIX}$")
_DATED_CHANNEL = re.compile(
    rf"^(?:nightly|beta|stable)-(\d{{4}}-\d{{2}}-\d{{2}}){_HOST_SUFFIX}$"
)


class ManifestInfo(BaseModel):
    """The parts of ``Cargo.toml`` the pipeline cares about."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    declared_sdk_version: str
    lib_path: str | None = None


# ---------------------------------------------------------------------------
# Manifest and lock file
# ---------------------------------------------------------------------------


def _load_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ManifestParseError(f"Failed to parse {path}: {exc}") from exc
    except OSError as exc:
        raise ManifestParseError(f"Failed to read {path}: {exc}") from exc


def _declared_version(spec: Any, package: str) -> str:
    """Version string of a dependency declaration (plain string or table)."""
    if isinstance(spec, str):
        return spec
    if isinstance(spec, dict):
        if isinstance(spec.get("version"), str):
            return spec["version"]
        if "git" in spec:
            return "git"
        if "path" in spec:
            return "path"
    raise MissingDependencyError(
        f"Cannot determine the declared version of {package}: {spec!r}"
    )


def parse_manifest(path: Path, sdk_package: str = SDK_PACKAGE) -> ManifestInfo:
    """Read name, version and SDK declaration from a ``Cargo.toml``.

    Raises
    ------
    ManifestParseError
        If the file is unreadable, malformed, or lacks ``package.name`` /
        ``package.version``.
    MissingDependencyError
        If ``[dependencies]`` does not declare the SDK package.
    """
    data = _load_toml(path)

    package = data.get("package")
    if not isinstance(package, dict):
        raise ManifestParseError(f"No [package] section in {path}")
    name = package.get("name")
    if not isinstance(name, str) or not name:
        raise ManifestParseError(f"No package.name in {path}")
    version = package.get("version")
    if not isinstance(version, str) or not version:
        raise ManifestParseError(f"No package.version in {path}")

    deps = data.get("dependencies")
    if not isinstance(deps, dict) or sdk_package not in deps:
        raise MissingDependencyError(
            f"Not a Fluent contract: no {sdk_package} dependency in {path}"
        )

    lib = data.get("lib")
    lib_path = lib.get("path") if isinstance(lib, dict) else None

    return ManifestInfo(
        name=name,
        version=version,
        declared_sdk_version=_declared_version(deps[sdk_package], sdk_package),
        lib_path=lib_path if isinstance(lib_path, str) else None,
    )


def read_locked_sdk(project_root: Path, sdk_package: str = SDK_PACKAGE) -> SdkInfo | None:
    """Locked SDK identity from ``Cargo.lock``; None when there is no lock file.

    Git-sourced packages carry the first 8 characters of the locked commit.
    """
    lock_path = project_root / LOCK_FILE
    if not lock_path.is_file():
        return None

    data = _load_toml(lock_path)
    packages = data.get("package")
    if not isinstance(packages, list):
        raise ManifestParseError(f"Invalid {LOCK_FILE} format: no [[package]] entries")

    for entry in packages:
        if not isinstance(entry, dict) or entry.get("name") != sdk_package:
            continue
        version = entry.get("version")
        if not isinstance(version, str) or not version:
            raise ManifestParseError(f"{sdk_package} is locked without a version")
        source = entry.get("source")
        if isinstance(source, str) and source.startswith("git+") and "#" in source:
            commit = source.split("#", 1)[1]
            if commit:
                return SdkInfo(tag=version, commit=commit[:8])
        return SdkInfo(tag=version)

    raise MissingDependencyError(f"{sdk_package} not found in {lock_path}")


def read_locked_sdk_version(project_root: Path, sdk_package: str = SDK_PACKAGE) -> str:
    """``<version>`` or ``<version>-<commit8>`` as locked in ``Cargo.lock``.

    Raises
    ------
    MissingDependencyError
        If there is no lock file or the SDK is not locked in it.
    """
    sdk = read_locked_sdk(project_root, sdk_package)
    if sdk is None:
        raise MissingDependencyError(
            f"{LOCK_FILE} not found in {project_root}; run 'cargo generate-lockfile' first"
        )
    return sdk.version_string


# ---------------------------------------------------------------------------
# Toolchain
# ---------------------------------------------------------------------------


def validate_toolchain_channel(channel: str) -> str:
    """Return *channel* stripped if it names one exact compiler build.

    Accepts ``1.83.0`` and dated channels such as ``nightly-2024-01-15``,
    either optionally followed by a host triple.

    Raises
    ------
    NonReproducibleToolchainError
        For empty strings, bare ``stable`` / ``beta`` / ``nightly``, and
        anything else that could resolve to different compilers over time.
    """
    channel = channel.strip()
    if not channel:
        raise NonReproducibleToolchainError("Rust toolchain channel cannot be empty")

    if _RELEASE_CHANNEL.match(channel):
        return channel

    m = _DATED_CHANNEL.match(channel)
    if m:
        try:
            date.fromisoformat(m.group(1))
        except ValueError as exc:
            raise NonReproducibleToolchainError(
                f"Toolchain channel {channel!r} carries an invalid date"
            ) from exc
        return channel

    raise NonReproducibleToolchainError(
        f"Rust toolchain must be pinned for reproducible builds. Found {channel!r}; "
        "expected a specific version like '1.83.0' or 'nightly-2024-01-15'"
    )


def read_toolchain_channel(project_root: Path) -> str:
    """Raw channel from ``rust-toolchain.toml`` or the legacy ``rust-toolchain`` file."""
    toml_path = project_root / TOOLCHAIN_FILE
    if toml_path.is_file():
        data = _load_toml(toml_path)
        toolchain = data.get("toolchain")
        channel = toolchain.get("channel") if isinstance(toolchain, dict) else None
        if not isinstance(channel, str):
            raise NonReproducibleToolchainError(
                f"Invalid {TOOLCHAIN_FILE}: missing [toolchain].channel"
            )
        return channel

    legacy_path = project_root / LEGACY_TOOLCHAIN_FILE
    if legacy_path.is_file():
        return legacy_path.read_text(encoding="utf-8").strip()

    raise NonReproducibleToolchainError(
        f"No {TOOLCHAIN_FILE} found in {project_root}. For reproducible builds add:\n"
        '[toolchain]\nchannel = "1.83.0"'
    )


def resolve_toolchain(project_root: Path, target: str) -> ToolchainDescriptor:
    channel = validate_toolchain_channel(read_toolchain_channel(project_root))
    logger.debug("Toolchain pinned to %s for %s", channel, target)
    return ToolchainDescriptor(version=channel, target=target)


# ---------------------------------------------------------------------------
# Sources and resolution
# ---------------------------------------------------------------------------


def find_main_source(project_root: Path, manifest: ManifestInfo) -> Path:
    """Locate the crate root source file.

    A custom ``[lib].path`` wins and must exist; otherwise the first of
    ``MAIN_SOURCE_CANDIDATES`` that exists is used.
    """
    if manifest.lib_path is not None:
        custom = project_root / manifest.lib_path
        if not custom.is_file():
            raise ConfigurationError(f"Custom lib path not found: {custom}")
        return custom

    for candidate in MAIN_SOURCE_CANDIDATES:
        path = project_root / candidate
        if path.is_file():
            return path

    raise ConfigurationError(
        "No main source file found. Expected one of: "
        + ", ".join(MAIN_SOURCE_CANDIDATES)
    )


def resolve_contract(
    project_root: Path, sdk_package: str = SDK_PACKAGE
) -> tuple[ContractDescriptor, ManifestInfo]:
    """Contract descriptor for the project at *project_root*.

    The SDK version comes from the lock file when one exists, otherwise
    from the manifest declaration.
    """
    manifest = parse_manifest(project_root / MANIFEST_FILE, sdk_package)
    sdk = read_locked_sdk(project_root, sdk_package)
    if sdk is None:
        logger.warning(
            "No %s in %s; using declared %s version %r",
            LOCK_FILE, project_root, sdk_package, manifest.declared_sdk_version,
        )
        sdk = SdkInfo(tag=manifest.declared_sdk_version)

    contract = ContractDescriptor(
        name=manifest.name,
        version=manifest.version,
        sdk_version=sdk.version_string,
        sdk=sdk,
        path=project_root,
    )
    return contract, manifest


def resolve(config: BuildConfig, sdk_package: str = SDK_PACKAGE) -> ResolvedProject:
    """Validate *config* and resolve contract, toolchain and main source.

    Raises
    ------
    ConfigurationError
        Any subclass; nothing has been compiled when this raises.
    """
    config.validate_project()
    contract, manifest = resolve_contract(config.project_root, sdk_package)
    toolchain = resolve_toolchain(config.project_root, config.target)
    main_source = find_main_source(config.project_root, manifest)

    logger.info(
        "Resolved %s v%s (sdk %s, rust %s)",
        contract.name, contract.version, contract.sdk_version, toolchain.version,
    )
    return ResolvedProject(
        config=config,
        contract=contract,
        toolchain=toolchain,
        main_source=main_source,
    )


def detect_contracts(
    paths: list[Path], sdk_package: str = SDK_PACKAGE
) -> list[ContractDescriptor]:
    """Find every contract crate under *paths*, sorted by name.

    Manifests that do not declare the SDK, or cannot be parsed, are skipped.
    Build output and hidden directories are not searched.
    """
    contracts: list[ContractDescriptor] = []
    seen: set[Path] = set()

    for base in paths:
        if not base.exists():
            logger.debug("Skipping missing search path %s", base)
            continue
        for dirpath, dirnames, filenames in os.walk(base):
            dirnames[:] = sorted(
                d for d in dirnames if d not in _SKIP_DIRS and not d.startswith(".")
            )
            if MANIFEST_FILE not in filenames:
                continue

            root = Path(dirpath).resolve()
            if root in seen:
                continue
            seen.add(root)

            try:
                manifest = parse_manifest(root / MANIFEST_FILE, sdk_package)
            except ConfigurationError as exc:
                logger.debug("Not a contract: %s (%s)", root, exc)
                continue

            try:
                sdk = read_locked_sdk(root, sdk_package)
            except ConfigurationError:
                sdk = None
            if sdk is None:
                sdk = SdkInfo(tag=manifest.declared_sdk_version)

            contracts.append(
                ContractDescriptor(
                    name=manifest.name,
                    version=manifest.version,
                    sdk_version=sdk.version_string,
                    sdk=sdk,
                    path=root,
                )
            )

    contracts.sort(key=lambda c: (c.name, str(c.path)))
    return contracts
