"""Subprocess helper shared by command-backed collaborators."""

from __future__ import annotations

import logging
import shlex
import subprocess
from pathlib import Path

from fluentforge.core.errors import CollaboratorError

logger = logging.getLogger(__name__)


def split_command(command: str | list[str]) -> list[str]:
    """Accept a shell-style string or an argv list."""
    if isinstance(command, str):
        return shlex.split(command)
    return list(command)


def run_command(
    argv: list[str],
    *,
    error_cls: type[CollaboratorError],
    cwd: Path | None = None,
    stdin: bytes | None = None,
    timeout: float | None = None,
) -> subprocess.CompletedProcess[bytes]:
    """Run *argv* to completion and return the finished process.

    A missing executable or a timeout raises *error_cls*; a non-zero exit
    does not, so callers can attach their own message and captured output.
    """
    logger.debug("Running: %s", shlex.join(argv))
    try:
        return subprocess.run(
            argv,
            cwd=cwd,
            input=stdin,
            capture_output=True,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as exc:
        raise error_cls(f"Executable not found: {argv[0]}") from exc
    except subprocess.TimeoutExpired as exc:
        raise error_cls(
            f"Command timed out after {timeout}s: {shlex.join(argv)}",
            stdout=_text(exc.stdout),
            stderr=_text(exc.stderr),
        ) from exc


def _text(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def output_text(proc: subprocess.CompletedProcess[bytes]) -> tuple[str, str]:
    """Decoded (stdout, stderr) of a finished process."""
    return _text(proc.stdout), _text(proc.stderr)
