"""Source provenance: where the code behind a build can be fetched from."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from fluentforge.core.errors import DirtyWorkingTreeError


class RepositoryStatus(BaseModel):
    """Snapshot of a git work tree as reported by the repository collaborator."""

    model_config = ConfigDict(frozen=True)

    remote_url: str = ""
    commit: str
    branch: str = "HEAD"
    dirty: bool = False
    dirty_count: int = 0

    @property
    def commit_short(self) -> str:
        return self.commit[:7]


class GitSource(BaseModel):
    """Source is a commit in a public repository.

    Only constructible from a clean tree, see ``from_status``.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["git"] = "git"
    repository: str
    commit: str
    project_path: str = "."

    @classmethod
    def from_status(cls, status: RepositoryStatus, project_path: str = ".") -> GitSource:
        """Build git provenance from a repository status report.

        Raises
        ------
        DirtyWorkingTreeError
            If the work tree has uncommitted changes.
        """
        if status.dirty:
            raise DirtyWorkingTreeError(
                f"Cannot use git source: repository has {status.dirty_count} "
                "uncommitted changes"
            )
        return cls(
            repository=status.remote_url,
            commit=status.commit,
            project_path=project_path,
        )


class ArchiveSource(BaseModel):
    """Source ships as a bundled archive next to the build outputs."""

    model_config = ConfigDict(frozen=True)

    type: Literal["archive"] = "archive"
    archive_path: str
    project_path: str = "."


SourceProvenance = Annotated[
    Union[GitSource, ArchiveSource], Field(discriminator="type")
]
