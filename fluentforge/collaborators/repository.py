"""Repository inspector collaborator (git)."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Protocol, runtime_checkable
from urllib.parse import urlsplit, urlunsplit

from fluentforge.collaborators.process import output_text, run_command
from fluentforge.core.errors import CollaboratorError
from fluentforge.models.provenance import RepositoryStatus

logger = logging.getLogger(__name__)

_SCP_LIKE = re.compile(r"^(?:[^@/]+@)?([^:/]+):(?!//)(.+)$")


class RepositoryError(CollaboratorError):
    """Raised when git is present but a query against it fails."""


@runtime_checkable
class RepositoryInspector(Protocol):
    """Reports work-tree state for provenance decisions."""

    def status(self, path: Path) -> RepositoryStatus | None:
        """Status of the work tree containing *path*; None outside a repository."""
        ...

    def project_path(self, path: Path) -> str:
        """*path* relative to the repository root, ``"."`` at the root."""
        ...


def normalize_git_url(url: str) -> str:
    """Public HTTPS form of a remote URL.

    Embedded credentials are dropped and SSH remotes become HTTPS::

        git@github.com:user/repo.git          -> https://github.com/user/repo.git
        https://user:pw@host/user/repo.git    -> https://host/user/repo.git
    """
    url = url.strip()
    if not url:
        return url

    if "://" in url:
        parts = urlsplit(url)
        host = parts.hostname or ""
        if parts.port:
            host = f"{host}:{parts.port}"
        scheme = "https" if parts.scheme in ("http", "https", "ssh", "git") else parts.scheme
        if parts.scheme == "ssh":
            host = parts.hostname or ""  # ssh ports do not carry over to https
        return urlunsplit((scheme, host, parts.path, parts.query, parts.fragment))

    m = _SCP_LIKE.match(url)
    if m:
        return f"https://{m.group(1)}/{m.group(2).lstrip('/')}"
    return url


class GitRepository:
    """Queries git through its CLI."""

    def __init__(self, git_binary: str = "git") -> None:
        self.git_binary = git_binary

    def _git(self, path: Path, *args: str) -> tuple[int, str, str]:
        proc = run_command([self.git_binary, *args], error_cls=RepositoryError, cwd=path)
        stdout, stderr = output_text(proc)
        return proc.returncode, stdout, stderr

    def _require(self, path: Path, *args: str) -> str:
        code, stdout, stderr = self._git(path, *args)
        if code != 0:
            raise RepositoryError(
                f"git {' '.join(args)} failed", stdout=stdout, stderr=stderr, returncode=code
            )
        return stdout.strip()

    def is_work_tree(self, path: Path) -> bool:
        code, stdout, _ = self._git(path, "rev-parse", "--is-inside-work-tree")
        return code == 0 and stdout.strip() == "true"

    def status(self, path: Path) -> RepositoryStatus | None:
        if not self.is_work_tree(path):
            return None

        commit = self._require(path, "rev-parse", "HEAD")

        code, remote, _ = self._git(path, "config", "--get", "remote.origin.url")
        remote_url = normalize_git_url(remote) if code == 0 else ""
        if not remote_url:
            logger.debug("No remote.origin.url configured for %s", path)

        code, branch, _ = self._git(path, "rev-parse", "--abbrev-ref", "HEAD")
        branch = branch.strip() if code == 0 and branch.strip() else "HEAD"

        porcelain = self._require(path, "status", "--porcelain")
        dirty_lines = [line for line in porcelain.splitlines() if line.strip()]

        return RepositoryStatus(
            remote_url=remote_url,
            commit=commit,
            branch=branch,
            dirty=bool(dirty_lines),
            dirty_count=len(dirty_lines),
        )

    def project_path(self, path: Path) -> str:
        top = Path(self._require(path, "rev-parse", "--show-toplevel")).resolve()
        try:
            rel = path.resolve().relative_to(top)
        except ValueError as exc:
            raise RepositoryError(f"{path} is not inside repository {top}") from exc
        posix = rel.as_posix()
        return posix if posix and posix != "." else "."
