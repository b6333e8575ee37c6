"""ABI generation and Solidity ABI JSON conversion."""

from __future__ import annotations

import re
from typing import Any

from fluentforge.core.errors import GenerationError
from fluentforge.core.hasher import function_selector
from fluentforge.models.abi import (
    DYNAMIC_PRIMITIVES,
    AbiFunction,
    AbiParameter,
    ArrayType,
    MethodSignature,
    PrimitiveType,
    StateMutability,
    StructType,
    TupleType,
)

_ARRAY_SUFFIX = re.compile(r"^(.*)\[(\d*)\]$")

# Solidity canonical forms for selector hashing.
_CANONICAL_ALIASES = {"uint": "uint256", "int": "int256"}


def generate_abi(methods: list[MethodSignature]) -> list[AbiFunction]:
    """One ABI function per parsed method, in parser order.

    An empty method list yields an empty ABI.
    """
    return [
        AbiFunction(
            name=m.name,
            inputs=m.inputs,
            outputs=m.outputs,
            state_mutability=m.state_mutability,
        )
        for m in methods
    ]


# ---------------------------------------------------------------------------
# Type rendering
# ---------------------------------------------------------------------------


def _array_suffix(t: ArrayType) -> str:
    return f"[{t.length}]" if t.length is not None else "[]"


def canonical_type(t: Any) -> str:
    """Type as it appears in a canonical signature; tuples are expanded."""
    if isinstance(t, PrimitiveType):
        return _CANONICAL_ALIASES.get(t.name, t.name)
    if isinstance(t, ArrayType):
        return canonical_type(t.element) + _array_suffix(t)
    return "(" + ",".join(canonical_type(c.type) for c in t.components) + ")"


def source_type(t: Any) -> str:
    """Type as written in Solidity source; structs by name."""
    if isinstance(t, PrimitiveType):
        return t.name
    if isinstance(t, StructType):
        return t.name
    if isinstance(t, ArrayType):
        return source_type(t.element) + _array_suffix(t)
    return "(" + ",".join(source_type(c.type) for c in t.components) + ")"


def is_reference_type(t: Any) -> bool:
    """Whether a parameter of this type needs a data location qualifier."""
    if isinstance(t, PrimitiveType):
        return t.name in DYNAMIC_PRIMITIVES
    return True


def canonical_signature(fn: AbiFunction | MethodSignature) -> str:
    """``name(type1,type2)`` with no spaces, as hashed for selectors."""
    return f"{fn.name}(" + ",".join(canonical_type(p.type) for p in fn.inputs) + ")"


def selector(fn: AbiFunction | MethodSignature) -> str:
    return function_selector(canonical_signature(fn))


# ---------------------------------------------------------------------------
# JSON conversion
# ---------------------------------------------------------------------------


def _json_type(t: Any) -> tuple[str, str, list[AbiParameter] | None]:
    """(type, internalType, components) for an ABI JSON parameter."""
    if isinstance(t, PrimitiveType):
        return t.name, t.name, None
    if isinstance(t, StructType):
        return "tuple", f"struct {t.name}", list(t.components)
    if isinstance(t, TupleType):
        return "tuple", "tuple", list(t.components)
    base, internal, components = _json_type(t.element)
    suffix = _array_suffix(t)
    return base + suffix, internal + suffix, components


def parameter_to_json(param: AbiParameter) -> dict[str, Any]:
    type_str, internal, components = _json_type(param.type)
    out: dict[str, Any] = {
        "name": param.name,
        "type": type_str,
        "internalType": internal,
    }
    if components is not None:
        out["components"] = [parameter_to_json(c) for c in components]
    return out


def _parse_type(type_str: str, internal: str | None, components: list[Any] | None) -> Any:
    m = _ARRAY_SUFFIX.match(type_str)
    if m:
        inner_internal = None
        if internal:
            im = _ARRAY_SUFFIX.match(internal)
            inner_internal = im.group(1) if im else internal
        length = int(m.group(2)) if m.group(2) else None
        return ArrayType(
            element=_parse_type(m.group(1), inner_internal, components),
            length=length,
        )

    if type_str == "tuple":
        parsed = tuple(parameter_from_json(c) for c in (components or []))
        if internal and internal.startswith("struct "):
            # solc qualifies names as "struct Contract.Name"
            name = internal[len("struct "):].rsplit(".", 1)[-1]
            return StructType(name=name, components=parsed)
        return TupleType(components=parsed)

    return PrimitiveType(name=type_str)


def parameter_from_json(data: dict[str, Any]) -> AbiParameter:
    """Parse one Solidity ABI JSON parameter.

    Raises
    ------
    GenerationError
        If the entry has no ``type`` or names an unknown type.
    """
    type_str = data.get("type")
    if not isinstance(type_str, str):
        raise GenerationError(f"ABI parameter without a type: {data!r}")
    try:
        return AbiParameter(
            name=data.get("name") or "",
            type=_parse_type(type_str, data.get("internalType"), data.get("components")),
        )
    except ValueError as exc:
        raise GenerationError(f"Invalid ABI parameter {data!r}: {exc}") from exc


def function_to_json(fn: AbiFunction) -> dict[str, Any]:
    return {
        "type": "function",
        "name": fn.name,
        "inputs": [parameter_to_json(p) for p in fn.inputs],
        "outputs": [parameter_to_json(p) for p in fn.outputs],
        "stateMutability": fn.state_mutability.value,
    }


def abi_to_json(abi: list[AbiFunction]) -> list[dict[str, Any]]:
    return [function_to_json(fn) for fn in abi]


def method_from_json(data: dict[str, Any]) -> MethodSignature:
    """Parse a ``type: function`` ABI entry into a method signature."""
    try:
        return MethodSignature(
            name=data["name"],
            inputs=tuple(parameter_from_json(p) for p in data.get("inputs", [])),
            outputs=tuple(parameter_from_json(p) for p in data.get("outputs", [])),
            state_mutability=StateMutability(data.get("stateMutability", "nonpayable")),
        )
    except (KeyError, ValueError) as exc:
        raise GenerationError(f"Invalid ABI function entry {data!r}: {exc}") from exc


def abi_from_json(entries: list[dict[str, Any]]) -> list[AbiFunction]:
    """Parse function entries of an ABI JSON array; other entry kinds are skipped."""
    return generate_abi(
        [method_from_json(e) for e in entries if e.get("type", "function") == "function"]
    )
