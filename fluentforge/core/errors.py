"""Error taxonomy for the build and verification pipeline.

Four families, each with a different handling policy:

* ``ConfigurationError``: detected before any compiler subprocess runs.
  Always fatal to the current invocation, never retried.
* ``CollaboratorError``: an external tool or service failed.  The raw
  diagnostic text (stdout / stderr) is carried verbatim.
* ``DeterminismError``: the pipeline would produce an empty or
  non-reproducible artifact.
* ``GenerationError``: artifact or metadata assembly was given incomplete
  descriptors.

A bytecode mismatch is *not* an error: the verification engine returns it
as a ``VerificationOutcome``.
"""

from __future__ import annotations


class ForgeError(RuntimeError):
    """Base class for every error raised by fluentforge."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(ForgeError):
    """Raised when a build request is invalid before compilation starts."""


class MissingManifestError(ConfigurationError):
    """Raised when the project root has no ``Cargo.toml``."""


class ManifestParseError(ConfigurationError):
    """Raised when a manifest or lock file cannot be parsed or lacks required keys."""


class MissingDependencyError(ConfigurationError):
    """Raised when the project does not declare (or lock) the contract SDK."""


class NonReproducibleToolchainError(ConfigurationError):
    """Raised when the toolchain pin is missing or names a floating channel."""


class DirtyWorkingTreeError(ConfigurationError):
    """Raised when git provenance is requested from a tree with uncommitted changes."""


class NotARepositoryError(ConfigurationError):
    """Raised when git provenance is requested outside a git work tree."""


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


class CollaboratorError(ForgeError):
    """Raised when an external collaborator (subprocess, library, network) fails.

    The collaborator's own output is preserved so callers can surface it
    unchanged.
    """

    def __init__(
        self,
        message: str,
        *,
        stdout: str = "",
        stderr: str = "",
        returncode: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode

    @property
    def diagnostic(self) -> str:
        """Message plus any captured output, in a stable order."""
        parts = [self.message]
        if self.returncode is not None:
            parts.append(f"exit code: {self.returncode}")
        if self.stderr.strip():
            parts.append(f"stderr:\n{self.stderr.rstrip()}")
        if self.stdout.strip():
            parts.append(f"stdout:\n{self.stdout.rstrip()}")
        return "\n".join(parts)


class CompilerError(CollaboratorError):
    """Raised when the source-to-intermediate compiler fails."""


class TransformError(CollaboratorError):
    """Raised when the intermediate-to-final bytecode transform fails."""


class ParserError(CollaboratorError):
    """Raised when method signatures cannot be extracted from the source."""


class FetchError(CollaboratorError):
    """Raised when deployed bytecode cannot be fetched from a remote ledger."""


class FetchTimeoutError(FetchError):
    """Raised when a remote bytecode fetch exceeds its timeout."""


class CompilationFailedError(ForgeError):
    """Raised by the orchestrator when any collaborator call aborts the pipeline.

    ``diagnostic`` holds the collaborator's text exactly as reported.
    """

    def __init__(self, stage: str, diagnostic: str) -> None:
        super().__init__(f"Build failed during {stage}:\n{diagnostic}")
        self.stage = stage
        self.diagnostic = diagnostic


# ---------------------------------------------------------------------------
# Determinism and generation
# ---------------------------------------------------------------------------


class DeterminismError(ForgeError):
    """Raised when an artifact would be empty or not reproducible."""


class EmptyArchiveError(DeterminismError):
    """Raised when an archive request matched no source files."""


class ManifestNotArchivedError(DeterminismError):
    """Raised when the manifest is missing from the archived file set."""


class UnsafeArchiveMemberError(DeterminismError):
    """Raised when an archive member would extract outside its destination."""


class GenerationError(ForgeError):
    """Raised when artifacts cannot be generated from the given descriptors."""


class InvalidTransitionError(ForgeError):
    """Raised when the build state machine is asked for an illegal transition."""
