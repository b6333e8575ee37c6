"""Verification engine.

Rebuilds a project and compares the final (rWASM) bytecode hash with an
expected one.  Every outcome, including failures before compilation, is
returned as a ``VerificationOutcome``; a mismatch is data, not an error.

States::

    start -> invalid_config
    start -> building -> compilation_failed
    start -> building -> compared -> success | bytecode_mismatch
"""

from __future__ import annotations

import logging
import tarfile
import tempfile
import time
import zipfile
from datetime import datetime, timezone
from pathlib import Path

from fluentforge.collaborators.remote import BytecodeFetcher
from fluentforge.core.archiver import extract_archive
from fluentforge.core.errors import (
    ConfigurationError,
    DeterminismError,
    FetchError,
    ForgeError,
)
from fluentforge.core.hasher import is_hex_digest, normalize_hash, sha256_hex
from fluentforge.core.orchestrator import BuildOrchestrator
from fluentforge.models.config import MANIFEST_FILE, BuildOverrides
from fluentforge.models.results import BuildResult, VerificationOutcome, VerificationStatus

logger = logging.getLogger(__name__)


class VerificationEngine:
    """Classifies rebuild-and-compare results.

    Parameters
    ----------
    orchestrator:
        Builds the project; its collaborators decide how compilation runs.
    """

    def __init__(self, orchestrator: BuildOrchestrator) -> None:
        self.orchestrator = orchestrator

    def _finish(
        self,
        started_at: datetime,
        t0: float,
        status: VerificationStatus,
        expected: str,
        *,
        contract_name: str = "",
        actual: str | None = None,
        error: str | None = None,
        build_result: BuildResult | None = None,
    ) -> VerificationOutcome:
        outcome = VerificationOutcome(
            status=status,
            expected_hash=expected,
            actual_hash=actual,
            contract_name=contract_name,
            error_message=error,
            started_at=started_at,
            duration_seconds=time.monotonic() - t0,
            build_result=build_result,
        )
        if outcome.is_success:
            logger.info("Verified %s: %s", contract_name, actual)
        else:
            logger.warning(
                "Verification of %s: %s%s",
                contract_name or "<unresolved>",
                status.value,
                f" ({error.splitlines()[0]})" if error else "",
            )
        return outcome

    def verify(
        self,
        project_root: Path,
        expected_hash: str,
        overrides: BuildOverrides | None = None,
    ) -> VerificationOutcome:
        """Rebuild *project_root* and compare against *expected_hash*.

        Hashes are compared after ``normalize_hash`` on both sides.
        """
        started_at = datetime.now(timezone.utc)
        t0 = time.monotonic()
        expected = normalize_hash(expected_hash)

        if not is_hex_digest(expected):
            return self._finish(
                started_at, t0, VerificationStatus.INVALID_CONFIG, expected,
                error=f"Expected hash is not a hex digest: {expected_hash!r}",
            )

        try:
            config = (overrides or BuildOverrides()).apply(project_root)
        except ValueError as exc:
            return self._finish(
                started_at, t0, VerificationStatus.INVALID_CONFIG, expected,
                error=f"Invalid build overrides: {exc}",
            )

        try:
            result = self.orchestrator.build(config)
        except ConfigurationError as exc:
            return self._finish(
                started_at, t0, VerificationStatus.INVALID_CONFIG, expected, error=str(exc)
            )
        except ForgeError as exc:
            return self._finish(
                started_at, t0, VerificationStatus.COMPILATION_FAILED, expected,
                contract_name=project_root.name,
                error=str(exc),
            )

        actual = normalize_hash(result.rwasm_hash)
        status = (
            VerificationStatus.SUCCESS
            if actual == expected
            else VerificationStatus.BYTECODE_MISMATCH
        )
        return self._finish(
            started_at, t0, status, expected,
            contract_name=result.contract.name,
            actual=actual,
            build_result=result,
        )

    def verify_archive(
        self,
        archive_path: Path,
        expected_hash: str,
        overrides: BuildOverrides | None = None,
    ) -> VerificationOutcome:
        """Extract a source bundle into a scratch directory and verify it."""
        started_at = datetime.now(timezone.utc)
        t0 = time.monotonic()

        if not archive_path.is_file():
            return self._finish(
                started_at, t0, VerificationStatus.INVALID_CONFIG,
                normalize_hash(expected_hash),
                error=f"Archive not found: {archive_path}",
            )

        with tempfile.TemporaryDirectory(prefix="fluentforge-verify-") as tmp:
            root = Path(tmp) / "src"
            try:
                extract_archive(archive_path, root)
            except (DeterminismError, tarfile.TarError, zipfile.BadZipFile, OSError) as exc:
                return self._finish(
                    started_at, t0, VerificationStatus.INVALID_CONFIG,
                    normalize_hash(expected_hash),
                    error=f"Cannot extract {archive_path}: {exc}",
                )
            if not (root / MANIFEST_FILE).is_file():
                return self._finish(
                    started_at, t0, VerificationStatus.INVALID_CONFIG,
                    normalize_hash(expected_hash),
                    error=f"{archive_path} has no {MANIFEST_FILE} at its root",
                )
            return self.verify(root, expected_hash, overrides)

    def verify_deployed(
        self,
        project_root: Path,
        fetcher: BytecodeFetcher,
        endpoint: str,
        chain_id: int,
        address: str,
        overrides: BuildOverrides | None = None,
    ) -> VerificationOutcome:
        """Verify a project against the code deployed at *address*.

        A failed or timed-out fetch is reported as ``invalid_config``; it is
        never retried and never compared.
        """
        started_at = datetime.now(timezone.utc)
        t0 = time.monotonic()
        try:
            code = fetcher.fetch(endpoint, chain_id, address)
        except FetchError as exc:
            return self._finish(
                started_at, t0, VerificationStatus.INVALID_CONFIG, "",
                error=exc.diagnostic,
            )
        return self.verify(project_root, sha256_hex(code), overrides)
