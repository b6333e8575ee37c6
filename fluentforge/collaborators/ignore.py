"""Ignore-rule matcher collaborator (gitignore semantics via pathspec)."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

import pathspec


@runtime_checkable
class IgnoreMatcher(Protocol):
    """Decides whether a project-relative POSIX path is ignored."""

    def is_ignored(self, relative_path: str, is_dir: bool) -> bool:
        ...


class GitignoreMatcher:
    """Matches paths against gitignore-style patterns."""

    def __init__(self, lines: list[str]) -> None:
        self._spec = pathspec.GitIgnoreSpec.from_lines(lines)

    @classmethod
    def from_project(cls, project_root: Path) -> GitignoreMatcher:
        """Rules from ``<project_root>/.gitignore``; no rules when it is absent."""
        path = project_root / ".gitignore"
        if not path.is_file():
            return cls([])
        return cls(path.read_text(encoding="utf-8", errors="replace").splitlines())

    def is_ignored(self, relative_path: str, is_dir: bool) -> bool:
        # Directory patterns ("build/") only match paths with a trailing slash.
        if is_dir and not relative_path.endswith("/"):
            relative_path += "/"
        return self._spec.match_file(relative_path)
