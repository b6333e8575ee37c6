"""Fluentforge: reproducible builds and source verification for Fluent contracts.

Compiles a Rust contract to WASM, transforms it to rWASM, fingerprints the
inputs, writes an ABI / Solidity interface / metadata bundle, and verifies
that a given source tree rebuilds to an expected bytecode hash.
"""

__version__ = "0.1.0"
__description__ = "Reproducible build and verification pipeline for Fluent smart contracts"

from fluentforge.core.orchestrator import BuildOrchestrator
from fluentforge.core.verifier import VerificationEngine

__all__ = ["BuildOrchestrator", "VerificationEngine", "__version__"]
