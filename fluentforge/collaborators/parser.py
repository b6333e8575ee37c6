"""Method-signature parser collaborator."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol, runtime_checkable

from fluentforge.artifacts.abi import method_from_json
from fluentforge.collaborators.process import output_text, run_command, split_command
from fluentforge.core.errors import GenerationError, ParserError
from fluentforge.models.abi import MethodSignature


@runtime_checkable
class MethodParser(Protocol):
    """Extracts callable method signatures from a contract's main source."""

    def parse(self, source: Path) -> list[MethodSignature]:
        ...


def parse_abi_output(text: str) -> list[MethodSignature]:
    """Parse a JSON ABI array (as printed by an extractor) into signatures.

    Raises
    ------
    ParserError
        If *text* is not a JSON array of function entries.
    """
    try:
        entries = json.loads(text) if text.strip() else []
    except json.JSONDecodeError as exc:
        raise ParserError(f"Method parser returned invalid JSON: {exc}", stdout=text) from exc
    if not isinstance(entries, list):
        raise ParserError("Method parser output is not a JSON array", stdout=text)

    methods = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise ParserError(f"Unexpected ABI entry: {entry!r}", stdout=text)
        if entry.get("type", "function") != "function":
            continue
        try:
            methods.append(method_from_json(entry))
        except GenerationError as exc:
            raise ParserError(str(exc), stdout=text) from exc
    return methods


class CommandMethodParser:
    """Runs ``<command> <source path>`` and reads a JSON ABI from stdout."""

    def __init__(self, command: str | list[str], timeout: float | None = None) -> None:
        self.argv = split_command(command)
        if not self.argv:
            raise ValueError("parser command must not be empty")
        self.timeout = timeout

    def parse(self, source: Path) -> list[MethodSignature]:
        proc = run_command(
            [*self.argv, str(source)], error_cls=ParserError, timeout=self.timeout
        )
        stdout, stderr = output_text(proc)
        if proc.returncode != 0:
            raise ParserError(
                f"Method parser failed on {source}",
                stdout=stdout,
                stderr=stderr,
                returncode=proc.returncode,
            )
        return parse_abi_output(stdout)
