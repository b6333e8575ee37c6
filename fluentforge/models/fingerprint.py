"""Build fingerprint model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class BuildFingerprint(BaseModel):
    """Deterministic hash triple identifying an exact build input.

    ``built_at`` is informational; two fingerprints describe the same input
    when ``matches`` returns True.
    """

    model_config = ConfigDict(frozen=True)

    source_tree_hash: str
    manifest_lock_hash: str
    toolchain_hash: str
    built_at: int  # unix seconds

    def matches(self, other: BuildFingerprint) -> bool:
        return (
            self.source_tree_hash == other.source_tree_hash
            and self.manifest_lock_hash == other.manifest_lock_hash
            and self.toolchain_hash == other.toolchain_hash
        )
