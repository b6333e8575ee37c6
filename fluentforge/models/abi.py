"""Typed Solidity ABI model.

Each parameter type is one of four closed variants (primitive, array,
tuple, struct) so a malformed descriptor fails at construction instead of
surfacing halfway through interface generation.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
_SIZED = re.compile(r"^(u?int)(\d+)$")
_FIXED_BYTES = re.compile(r"^bytes(\d+)$")

ELEMENTARY_TYPES = frozenset(
    {"address", "bool", "string", "bytes", "function", "uint", "int"}
)

# Primitive types that are reference types in Solidity.
DYNAMIC_PRIMITIVES = frozenset({"bytes", "string"})


def is_elementary(name: str) -> bool:
    """Whether *name* is a valid Solidity elementary type."""
    if name in ELEMENTARY_TYPES:
        return True
    m = _SIZED.match(name)
    if m:
        bits = int(m.group(2))
        return 8 <= bits <= 256 and bits % 8 == 0
    m = _FIXED_BYTES.match(name)
    if m:
        return 1 <= int(m.group(1)) <= 32
    return False


class StateMutability(str, Enum):
    """Declared side-effect category of a callable method."""

    PURE = "pure"
    VIEW = "view"
    PAYABLE = "payable"
    NONPAYABLE = "nonpayable"


class PrimitiveType(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["primitive"] = "primitive"
    name: str

    @field_validator("name")
    @classmethod
    def _check_elementary(cls, value: str) -> str:
        if not is_elementary(value):
            raise ValueError(f"not a Solidity elementary type: {value!r}")
        return value


class ArrayType(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["array"] = "array"
    element: AbiType
    length: int | None = Field(default=None, ge=1)  # None → dynamic array


class TupleType(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["tuple"] = "tuple"
    components: tuple[AbiParameter, ...] = ()


class StructType(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["struct"] = "struct"
    name: str
    components: tuple[AbiParameter, ...] = ()

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not _IDENTIFIER.match(value):
            raise ValueError(f"invalid struct name: {value!r}")
        return value


AbiType = Annotated[
    Union[PrimitiveType, ArrayType, TupleType, StructType],
    Field(discriminator="kind"),
]


class AbiParameter(BaseModel):
    """A named, typed function input or output."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    type: AbiType

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if value and not _IDENTIFIER.match(value):
            raise ValueError(f"invalid parameter name: {value!r}")
        return value


class MethodSignature(BaseModel):
    """A callable method as reported by the method-signature parser."""

    model_config = ConfigDict(frozen=True)

    name: str
    inputs: tuple[AbiParameter, ...] = ()
    outputs: tuple[AbiParameter, ...] = ()
    state_mutability: StateMutability = StateMutability.NONPAYABLE

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not _IDENTIFIER.match(value):
            raise ValueError(f"invalid method name: {value!r}")
        return value


class AbiFunction(BaseModel):
    """One function entry of a Solidity ABI document."""

    model_config = ConfigDict(frozen=True)

    name: str
    inputs: tuple[AbiParameter, ...] = ()
    outputs: tuple[AbiParameter, ...] = ()
    state_mutability: StateMutability = StateMutability.NONPAYABLE


ArrayType.model_rebuild()
TupleType.model_rebuild()
StructType.model_rebuild()
AbiParameter.model_rebuild()
MethodSignature.model_rebuild()
AbiFunction.model_rebuild()
