"""Contract and toolchain identity, derived once per build and immutable afterward."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from fluentforge.models.config import DEFAULT_TARGET


class SdkInfo(BaseModel):
    """Resolved SDK identity: version tag plus VCS commit when locked from git."""

    model_config = ConfigDict(frozen=True)

    tag: str
    commit: str = "unknown"

    @property
    def version_string(self) -> str:
        if self.commit == "unknown":
            return self.tag
        return f"{self.tag}-{self.commit}"


class ContractDescriptor(BaseModel):
    """What is being built, read from ``Cargo.toml`` and ``Cargo.lock``."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    version: str = Field(min_length=1)
    sdk_version: str = Field(min_length=1)  # required, never defaulted
    sdk: SdkInfo
    path: Path | None = None


class ToolchainDescriptor(BaseModel):
    """A pinned compiler version and target triple.

    Use ``fluentforge.core.resolver.resolve_toolchain`` or
    ``ToolchainDescriptor.from_channel`` to build one; both reject floating
    channel names.
    """

    model_config = ConfigDict(frozen=True)

    version: str
    target: str = DEFAULT_TARGET

    @classmethod
    def from_channel(cls, channel: str, target: str = DEFAULT_TARGET) -> ToolchainDescriptor:
        from fluentforge.core.resolver import validate_toolchain_channel

        return cls(version=validate_toolchain_channel(channel), target=target)
