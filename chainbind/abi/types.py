"""
ABI parameter types and the type-string parser.

A ParamType is one of:
  - uintN / intN      (N a multiple of 8 in 8..256; bare "uint"/"int" mean 256)
  - address           (20 bytes)
  - bool
  - bytesN            (fixed, 1..32 bytes; "byte" means bytes1)
  - bytes / string    (dynamic)
  - T[N]              (fixed-size array)
  - T[]               (dynamic array)
  - (T1,T2,...)       (tuple)

Types only describe shape (canonical name, static/dynamic, head size). The
wire layout lives in abi.encoding / abi.decoding.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Tuple

from ..errors import SchemaError

__all__ = [
    "WORD",
    "ParamType",
    "UIntType",
    "IntType",
    "AddressType",
    "BoolType",
    "FixedBytesType",
    "BytesType",
    "StringType",
    "FixedArrayType",
    "DynamicArrayType",
    "TupleType",
    "parse_type",
    "canonical_type",
    "is_valid_type",
]

WORD = 32


class ParamType:
    """Base class for ABI parameter types."""

    __slots__ = ()

    @property
    def canonical(self) -> str:
        raise NotImplementedError

    @property
    def is_dynamic(self) -> bool:
        return False

    @property
    def head_size(self) -> int:
        """Bytes occupied in the head: the full static width, or one offset word."""
        return WORD

    def __str__(self) -> str:
        return self.canonical


def _check_bits(bits: int) -> None:
    if bits % 8 != 0 or not 8 <= bits <= 256:
        raise SchemaError(f"bit width must be a multiple of 8 in 8..256, got {bits}")


@dataclass(frozen=True)
class UIntType(ParamType):
    bits: int = 256

    def __post_init__(self) -> None:
        _check_bits(self.bits)

    @property
    def canonical(self) -> str:
        return f"uint{self.bits}"


@dataclass(frozen=True)
class IntType(ParamType):
    bits: int = 256

    def __post_init__(self) -> None:
        _check_bits(self.bits)

    @property
    def canonical(self) -> str:
        return f"int{self.bits}"


@dataclass(frozen=True)
class AddressType(ParamType):
    @property
    def canonical(self) -> str:
        return "address"


@dataclass(frozen=True)
class BoolType(ParamType):
    @property
    def canonical(self) -> str:
        return "bool"


@dataclass(frozen=True)
class FixedBytesType(ParamType):
    size: int

    def __post_init__(self) -> None:
        if not 1 <= self.size <= WORD:
            raise SchemaError(f"bytesN length must be in 1..32, got {self.size}")

    @property
    def canonical(self) -> str:
        return f"bytes{self.size}"


@dataclass(frozen=True)
class BytesType(ParamType):
    @property
    def canonical(self) -> str:
        return "bytes"

    @property
    def is_dynamic(self) -> bool:
        return True


@dataclass(frozen=True)
class StringType(ParamType):
    @property
    def canonical(self) -> str:
        return "string"

    @property
    def is_dynamic(self) -> bool:
        return True


@dataclass(frozen=True)
class FixedArrayType(ParamType):
    item: ParamType
    length: int

    def __post_init__(self) -> None:
        if self.length <= 0:
            raise SchemaError("Fixed array dimension must be positive")

    @property
    def canonical(self) -> str:
        return f"{self.item.canonical}[{self.length}]"

    @property
    def is_dynamic(self) -> bool:
        return self.item.is_dynamic

    @property
    def head_size(self) -> int:
        if self.is_dynamic:
            return WORD
        return self.length * self.item.head_size


@dataclass(frozen=True)
class DynamicArrayType(ParamType):
    item: ParamType

    @property
    def canonical(self) -> str:
        return f"{self.item.canonical}[]"

    @property
    def is_dynamic(self) -> bool:
        return True


@dataclass(frozen=True)
class TupleType(ParamType):
    components: Tuple[ParamType, ...]

    @property
    def canonical(self) -> str:
        return "(" + ",".join(c.canonical for c in self.components) + ")"

    @property
    def is_dynamic(self) -> bool:
        return any(c.is_dynamic for c in self.components)

    @property
    def head_size(self) -> int:
        if self.is_dynamic:
            return WORD
        return sum(c.head_size for c in self.components)


# --- Type-string parsing -----------------------------------------------------

_ARRAY_RE = re.compile(r"^(.*)\[(\d*)\]$")
_SIZED_RE = re.compile(r"^(uint|int|bytes)(\d+)$")


def _split_top_level_commas(s: str) -> List[str]:
    """Split on commas but ignore commas inside nested tuples."""
    out: List[str] = []
    depth = 0
    buf: List[str] = []
    for ch in s:
        if ch == "(":
            depth += 1
            buf.append(ch)
        elif ch == ")":
            depth -= 1
            if depth < 0:
                raise SchemaError("Unbalanced parentheses in tuple type")
            buf.append(ch)
        elif ch == "," and depth == 0:
            out.append("".join(buf).strip())
            buf = []
        else:
            buf.append(ch)
    if depth != 0:
        raise SchemaError("Unbalanced parentheses in tuple type")
    out.append("".join(buf).strip())
    return out


def _parse_scalar(t: str) -> ParamType:
    if t == "address":
        return AddressType()
    if t == "bool":
        return BoolType()
    if t == "string":
        return StringType()
    if t == "bytes":
        return BytesType()
    if t == "byte":
        return FixedBytesType(1)
    if t == "uint":
        return UIntType(256)
    if t == "int":
        return IntType(256)
    m = _SIZED_RE.match(t)
    if m:
        kind, n = m.group(1), int(m.group(2))
        if kind == "uint":
            return UIntType(n)
        if kind == "int":
            return IntType(n)
        return FixedBytesType(n)
    raise SchemaError(f"Unsupported base type: {t!r}")


def parse_type(type_str: str) -> ParamType:
    """
    Parse a canonical-ish ABI type string into a ParamType.

    Array suffixes bind right-to-left: "uint8[2][]" is a dynamic array of
    uint8[2]. Tuples are written "(t1,t2)"; the JSON form "tuple" with
    "components" is expanded into that spelling by abi.schema.
    """
    if not isinstance(type_str, str):
        raise SchemaError(f"type must be a string, got {type(type_str).__name__}")
    t = re.sub(r"\s+", "", type_str)
    if not t:
        raise SchemaError("empty type string")

    m = _ARRAY_RE.match(t)
    if m and not t.endswith(")"):
        inner, dim = m.group(1), m.group(2)
        item = parse_type(inner)
        if dim == "":
            return DynamicArrayType(item)
        return FixedArrayType(item, int(dim))

    if t.startswith("(") and t.endswith(")"):
        body = t[1:-1]
        if not body:
            return TupleType(())
        return TupleType(tuple(parse_type(e) for e in _split_top_level_commas(body)))

    return _parse_scalar(t)


def canonical_type(type_str: str) -> str:
    """Normalize an ABI type string ("uint" -> "uint256", "byte" -> "bytes1")."""
    return parse_type(type_str).canonical


def is_valid_type(type_str: str) -> bool:
    try:
        parse_type(type_str)
        return True
    except SchemaError:
        return False
