"""WASM-to-rWASM transformer collaborator."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from fluentforge.collaborators.process import output_text, run_command, split_command
from fluentforge.core.errors import TransformError


@runtime_checkable
class BytecodeTransformer(Protocol):
    """Turns intermediate bytecode into final bytecode."""

    def transform(self, wasm: bytes) -> bytes:
        ...


class CommandTransformer:
    """Pipes WASM into a command's stdin and reads rWASM from its stdout."""

    def __init__(self, command: str | list[str], timeout: float | None = None) -> None:
        self.argv = split_command(command)
        if not self.argv:
            raise ValueError("transformer command must not be empty")
        self.timeout = timeout

    def transform(self, wasm: bytes) -> bytes:
        proc = run_command(
            self.argv, error_cls=TransformError, stdin=wasm, timeout=self.timeout
        )
        if proc.returncode != 0:
            stdout, stderr = output_text(proc)
            raise TransformError(
                "rWASM transformation failed",
                stdout=stdout,
                stderr=stderr,
                returncode=proc.returncode,
            )
        if not proc.stdout:
            _, stderr = output_text(proc)
            raise TransformError("rWASM transformation produced no output", stderr=stderr)
        return proc.stdout
