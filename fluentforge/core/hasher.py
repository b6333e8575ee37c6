"""Hashing helpers for fingerprints, content addressing and selectors.

SHA-256 is used for every content hash (sources, lock file, toolchain,
bytecode, archives).  Keccak-256 is used only for 4-byte function selectors,
matching the Solidity ABI convention.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

from Crypto.Hash import keccak

# Stands in for manifest_lock_hash when a project has no lock file.
NO_LOCKFILE_SENTINEL = "0" * 64


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def sha256_file(path: Path, chunk_size: int = 1 << 16) -> str:
    """Return the SHA-256 hex digest of a file, read in chunks."""
    h = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(chunk_size), b""):
            h.update(chunk)
    return h.hexdigest()


def content_address(data: bytes) -> str:
    """Content-address raw bytes as ``sha256:<hex>``."""
    return f"sha256:{sha256_hex(data)}"


def keccak256_hex(data: bytes) -> str:
    """Return the Keccak-256 (pre-NIST SHA-3) hex digest of raw bytes."""
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.hexdigest()


def function_selector(signature: str) -> str:
    """Derive the 4-byte selector for a canonical signature.

    ``function_selector("transfer(address,uint256)") == "a9059cbb"``
    """
    return keccak256_hex(signature.encode("utf-8"))[:8]


def normalize_hash(value: str) -> str:
    """Normalise a hash for comparison: trim, drop one ``0x`` prefix, lowercase."""
    value = value.strip()
    if value[:2] in ("0x", "0X"):
        value = value[2:]
    return value.lower()


def is_hex_digest(value: str) -> bool:
    """Whether *value* is a non-empty, even-length lowercase hex string."""
    if not value or len(value) % 2:
        return False
    return all(c in "0123456789abcdef" for c in value)
