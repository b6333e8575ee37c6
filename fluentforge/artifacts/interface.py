"""Solidity interface generation from a typed ABI."""

from __future__ import annotations

import re
from typing import Any

from fluentforge.artifacts.abi import is_reference_type, source_type
from fluentforge.models.abi import (
    AbiFunction,
    AbiParameter,
    ArrayType,
    StateMutability,
    StructType,
    TupleType,
)

HEADER = (
    "// SPDX-License-Identifier: MIT\n"
    "// Auto-generated from Rust source\n"
    "pragma solidity ^0.8.0;\n"
)

_MUTABILITY_SUFFIX = {
    StateMutability.PURE: " pure",
    StateMutability.VIEW: " view",
    StateMutability.PAYABLE: " payable",
    StateMutability.NONPAYABLE: "",
}

_WORD = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z]+|\d+")


def pascal_case(name: str) -> str:
    """``my-token`` -> ``MyToken``; ``erc20_vault`` -> ``Erc20Vault``."""
    return "".join(w[:1].upper() + w[1:].lower() for w in _WORD.findall(name))


def collect_structs(abi: list[AbiFunction]) -> list[StructType]:
    """Unique structs in discovery order, each before the structs it nests."""
    seen: set[str] = set()
    ordered: list[StructType] = []

    def visit(t: Any) -> None:
        if isinstance(t, StructType):
            if t.name in seen:
                return
            seen.add(t.name)
            ordered.append(t)
            for c in t.components:
                visit(c.type)
        elif isinstance(t, TupleType):
            for c in t.components:
                visit(c.type)
        elif isinstance(t, ArrayType):
            visit(t.element)

    for fn in abi:
        for p in fn.inputs:
            visit(p.type)
        for p in fn.outputs:
            visit(p.type)
    return ordered


def format_struct(struct: StructType) -> str:
    fields = "\n".join(
        f"        {source_type(c.type)} {c.name or f'field{i}'};"
        for i, c in enumerate(struct.components)
    )
    return f"    struct {struct.name} {{\n{fields}\n    }}"


def format_parameter(param: AbiParameter, *, is_output: bool) -> str:
    ty = source_type(param.type)
    location = ""
    if is_reference_type(param.type):
        if is_output:
            location = " memory"
        elif isinstance(param.type, (StructType, ArrayType, TupleType)):
            location = " memory"
        else:
            location = " calldata"
    return f"{ty}{location} {param.name}" if param.name else f"{ty}{location}"


def format_function(fn: AbiFunction) -> str:
    params = ", ".join(format_parameter(p, is_output=False) for p in fn.inputs)
    returns = ""
    if fn.outputs:
        outs = ", ".join(format_parameter(p, is_output=True) for p in fn.outputs)
        returns = f" returns ({outs})"
    return (
        f"function {fn.name}({params}) external"
        f"{_MUTABILITY_SUFFIX[fn.state_mutability]}{returns};"
    )


def generate_interface(contract_name: str, abi: list[AbiFunction]) -> str:
    """Render ``interface I<ContractName>`` for *abi*."""
    lines = [HEADER, f"interface I{pascal_case(contract_name)} {{"]
    for struct in collect_structs(abi):
        lines.append(format_struct(struct))
        lines.append("")
    for fn in abi:
        lines.append(f"    {format_function(fn)}")
    lines.append("}")
    return "\n".join(lines) + "\n"
