"""Source-to-WASM compiler collaborator."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from fluentforge.collaborators.process import output_text, run_command
from fluentforge.core.errors import CompilerError
from fluentforge.models.config import BuildConfig
from fluentforge.models.descriptors import ContractDescriptor

# Built-in profiles whose output directory differs from the profile name.
PROFILE_DIRS = {"dev": "debug", "test": "debug", "bench": "release"}


def profile_dir(profile: str) -> str:
    """Directory cargo writes *profile* output to under ``target/<triple>/``."""
    return PROFILE_DIRS.get(profile, profile)


class CompileRequest(BaseModel):
    """Everything a compiler needs; derived from a build config and contract."""

    model_config = ConfigDict(frozen=True)

    project_root: Path
    crate_name: str
    target: str
    profile: str
    features: tuple[str, ...] = ()  # sorted
    no_default_features: bool = True
    locked: bool = False

    @classmethod
    def from_build(cls, config: BuildConfig, contract: ContractDescriptor) -> CompileRequest:
        return cls(
            project_root=config.project_root,
            crate_name=contract.name,
            target=config.target,
            profile=config.profile,
            features=tuple(config.sorted_features),
            no_default_features=config.no_default_features,
            locked=config.locked,
        )

    @property
    def wasm_filename(self) -> str:
        return f"{self.crate_name.replace('-', '_')}.wasm"

    @property
    def profile_dir(self) -> str:
        return profile_dir(self.profile)


@runtime_checkable
class Compiler(Protocol):
    """Anything that turns a project into intermediate (WASM) bytes."""

    def compile(self, request: CompileRequest) -> bytes:
        """Compile and return the intermediate module.

        Raises
        ------
        CompilerError
            With the compiler's stdout/stderr attached.
        """
        ...


class CargoCompiler:
    """Runs ``cargo build`` and reads the resulting ``.wasm`` file."""

    def __init__(self, cargo_binary: str = "cargo", timeout: float | None = None) -> None:
        self.cargo_binary = cargo_binary
        self.timeout = timeout

    def command(self, request: CompileRequest) -> list[str]:
        argv = [self.cargo_binary, "build", "--target", request.target]
        if request.profile == "release":
            argv.append("--release")
        elif request.profile != "debug":
            argv.extend(["--profile", request.profile])
        if request.no_default_features:
            argv.append("--no-default-features")
        if request.features:
            argv.extend(["--features", ",".join(request.features)])
        if request.locked:
            argv.append("--locked")
        return argv

    def output_path(self, request: CompileRequest) -> Path:
        return (
            request.project_root
            / "target"
            / request.target
            / request.profile_dir
            / request.wasm_filename
        )

    def compile(self, request: CompileRequest) -> bytes:
        proc = run_command(
            self.command(request),
            error_cls=CompilerError,
            cwd=request.project_root,
            timeout=self.timeout,
        )
        stdout, stderr = output_text(proc)
        if proc.returncode != 0:
            raise CompilerError(
                "cargo build failed",
                stdout=stdout,
                stderr=stderr,
                returncode=proc.returncode,
            )

        wasm_path = self.output_path(request)
        if not wasm_path.is_file():
            raise CompilerError(
                f"Expected WASM file not found: {wasm_path}. "
                "Ensure crate-type includes 'cdylib' in Cargo.toml",
                stdout=stdout,
                stderr=stderr,
            )
        return wasm_path.read_bytes()
