"""Source provenance decision.

``use_git_source`` asks for git provenance.  A missing repository is an
error, and so is a dirty tree unless ``allow_dirty`` explicitly accepts an
archive fallback.  Git provenance is never produced from a dirty tree.
"""

from __future__ import annotations

import logging

from fluentforge.collaborators.repository import RepositoryInspector
from fluentforge.core.errors import NotARepositoryError
from fluentforge.models.config import BuildConfig
from fluentforge.models.provenance import ArchiveSource, GitSource, SourceProvenance

logger = logging.getLogger(__name__)


def archive_provenance(config: BuildConfig) -> ArchiveSource:
    """Archive provenance pointing at the bundle the writer will produce."""
    return ArchiveSource(
        archive_path=f"./sources.{config.archive.format.extension}", project_path="."
    )


def resolve_provenance(
    config: BuildConfig, repository: RepositoryInspector | None
) -> SourceProvenance:
    """Decide where the build's source can be fetched from.

    Raises
    ------
    NotARepositoryError
        Git provenance requested but the project is not in a work tree.
    DirtyWorkingTreeError
        Git provenance requested from a dirty tree without ``allow_dirty``.
    """
    if not config.use_git_source:
        return archive_provenance(config)

    status = repository.status(config.project_root) if repository is not None else None
    if status is None:
        raise NotARepositoryError(
            f"Git source requested but {config.project_root} is not in a git repository"
        )

    if status.dirty and config.allow_dirty:
        logger.warning(
            "Repository has %d uncommitted changes; falling back to archive source",
            status.dirty_count,
        )
        return archive_provenance(config)

    if not status.remote_url:
        logger.warning("Repository at %s has no origin remote URL", config.project_root)

    source = GitSource.from_status(status, repository.project_path(config.project_root))
    logger.info("Using git source %s@%s", source.repository or "<local>", status.commit_short)
    return source
