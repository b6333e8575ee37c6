"""Shared test fixtures for Fluentforge."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from fluentforge.collaborators.compiler import CompileRequest
from fluentforge.core.errors import CompilerError, ParserError, TransformError
from fluentforge.core.orchestrator import BuildOrchestrator
from fluentforge.models.abi import (
    AbiParameter,
    ArrayType,
    MethodSignature,
    PrimitiveType,
    StateMutability,
    StructType,
)
from fluentforge.models.provenance import RepositoryStatus

SDK_COMMIT = "abcdef1234567890abcdef1234567890abcdef12"
FIXED_TIME = 1_700_000_000.0

CARGO_TOML = """\
[package]
name = "{name}"
version = "{version}"
edition = "2021"

[lib]
crate-type = ["cdylib", "rlib"]
{lib_path}
[dependencies]
fluentbase-sdk = {sdk}
"""

CARGO_LOCK = """\
version = 3

[[package]]
name = "fluentbase-sdk"
version = "0.1.0"
source = "git+https://github.com/fluentlabs-xyz/fluentbase?tag=v0.1.0#{commit}"

[[package]]
name = "{name}"
version = "{version}"
dependencies = ["fluentbase-sdk"]
"""

LIB_RS = """\
// SPDX-License-Identifier: Apache-2.0
#![cfg_attr(target_arch = "wasm32", no_std)]
extern crate fluentbase_sdk;

pub fn transfer() {}
"""


# ---------------------------------------------------------------------------
# Project factory
# ---------------------------------------------------------------------------


@pytest.fixture
def make_project(tmp_path: Path) -> Callable[..., Path]:
    """Factory fixture: write a minimal contract crate and return its root."""

    def _factory(
        name: str = "my-token",
        version: str = "0.1.0",
        *,
        subdir: str | None = None,
        sdk: str = '{ git = "https://github.com/fluentlabs-xyz/fluentbase", tag = "v0.1.0" }',
        toolchain: str | None = "1.83.0",
        legacy_toolchain: bool = False,
        lock: bool = True,
        lib_rs: str = LIB_RS,
        lib_path: str | None = None,
        extra_files: dict[str, str] | None = None,
    ) -> Path:
        root = tmp_path / (subdir or name)
        root.mkdir(parents=True, exist_ok=True)
        lib_line = f'path = "{lib_path}"\n' if lib_path else ""
        (root / "Cargo.toml").write_text(
            CARGO_TOML.format(name=name, version=version, sdk=sdk, lib_path=lib_line)
        )
        if lock:
            (root / "Cargo.lock").write_text(
                CARGO_LOCK.format(name=name, version=version, commit=SDK_COMMIT)
            )
        if toolchain is not None:
            if legacy_toolchain:
                (root / "rust-toolchain").write_text(toolchain + "\n")
            else:
                (root / "rust-toolchain.toml").write_text(
                    f'[toolchain]\nchannel = "{toolchain}"\ntargets = ["wasm32-unknown-unknown"]\n'
                )
        src = root / (lib_path or "src/lib.rs")
        src.parent.mkdir(parents=True, exist_ok=True)
        src.write_text(lib_rs)
        for rel, content in (extra_files or {}).items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        return root

    return _factory


@pytest.fixture
def project(make_project: Callable[..., Path]) -> Path:
    """A default contract project."""
    return make_project()


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------


class FakeCompiler:
    """Derives 'WASM' deterministically from the crate's main source."""

    def __init__(self, fail_with: str | None = None) -> None:
        self.fail_with = fail_with
        self.requests: list[CompileRequest] = []

    def compile(self, request: CompileRequest) -> bytes:
        self.requests.append(request)
        if self.fail_with is not None:
            raise CompilerError(
                "cargo build failed", stderr=self.fail_with, returncode=101
            )
        sources = sorted(request.project_root.rglob("*.rs"))
        body = b"".join(p.read_bytes() for p in sources if "target" not in p.parts)
        return b"\x00asm\x01\x00\x00\x00" + body


class FakeTransformer:
    def __init__(self, fail_with: str | None = None) -> None:
        self.fail_with = fail_with
        self.calls = 0

    def transform(self, wasm: bytes) -> bytes:
        self.calls += 1
        if self.fail_with is not None:
            raise TransformError("rWASM transformation failed", stderr=self.fail_with)
        return b"\xefRWASM" + wasm


class FakeParser:
    def __init__(
        self, methods: list[MethodSignature] | None = None, fail_with: str | None = None
    ) -> None:
        self.methods = methods if methods is not None else token_methods()
        self.fail_with = fail_with
        self.sources: list[Path] = []

    def parse(self, source: Path) -> list[MethodSignature]:
        self.sources.append(source)
        if self.fail_with is not None:
            raise ParserError("Method parser failed", stderr=self.fail_with)
        return list(self.methods)


class FakeRepository:
    def __init__(self, status: RepositoryStatus | None, project_path: str = ".") -> None:
        self._status = status
        self._project_path = project_path

    def status(self, path: Path) -> RepositoryStatus | None:
        return self._status

    def project_path(self, path: Path) -> str:
        return self._project_path


class FakeFetcher:
    def __init__(self, code: bytes = b"", error: Exception | None = None) -> None:
        self.code = code
        self.error = error
        self.calls: list[tuple[str, int, str]] = []

    def fetch(self, endpoint: str, chain_id: int, address: str) -> bytes:
        self.calls.append((endpoint, chain_id, address))
        if self.error is not None:
            raise self.error
        return self.code


def token_methods() -> list[MethodSignature]:
    """ERC-20 style methods plus one struct-typed method."""
    addr = PrimitiveType(name="address")
    u256 = PrimitiveType(name="uint256")
    point = StructType(
        name="Point",
        components=(
            AbiParameter(name="x", type=u256),
            AbiParameter(name="y", type=u256),
        ),
    )
    return [
        MethodSignature(
            name="transfer",
            inputs=(AbiParameter(name="to", type=addr), AbiParameter(name="amount", type=u256)),
            outputs=(AbiParameter(type=PrimitiveType(name="bool")),),
        ),
        MethodSignature(
            name="balanceOf",
            inputs=(AbiParameter(name="account", type=addr),),
            outputs=(AbiParameter(type=u256),),
            state_mutability=StateMutability.VIEW,
        ),
        MethodSignature(
            name="plot",
            inputs=(AbiParameter(name="points", type=ArrayType(element=point)),),
            outputs=(AbiParameter(type=point),),
            state_mutability=StateMutability.PURE,
        ),
    ]


@pytest.fixture
def fake_compiler() -> FakeCompiler:
    return FakeCompiler()


@pytest.fixture
def fake_transformer() -> FakeTransformer:
    return FakeTransformer()


@pytest.fixture
def fake_parser() -> FakeParser:
    return FakeParser()


@pytest.fixture
def make_orchestrator(
    fake_compiler: FakeCompiler,
    fake_transformer: FakeTransformer,
    fake_parser: FakeParser,
) -> Callable[..., BuildOrchestrator]:
    """Factory fixture: orchestrator wired to fakes; any collaborator overridable."""

    def _factory(**overrides: Any) -> BuildOrchestrator:
        kwargs: dict[str, Any] = {
            "compiler": fake_compiler,
            "transformer": fake_transformer,
            "parser": fake_parser,
            "clock": lambda: FIXED_TIME,
        }
        kwargs.update(overrides)
        return BuildOrchestrator(**kwargs)

    return _factory


@pytest.fixture
def orchestrator(make_orchestrator: Callable[..., BuildOrchestrator]) -> BuildOrchestrator:
    return make_orchestrator()
