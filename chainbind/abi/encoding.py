"""
Head/tail ABI encoder.

Layout
------
Every value occupies whole 32-byte words, big-endian.

- uintN:      zero-extended to 32 bytes
- intN:       two's complement, sign-extended to 32 bytes
- bool:       0 or 1 in the low-order byte
- address:    20 bytes, left zero-padded
- bytesN:     right zero-padded to 32 bytes
- bytes:      length word || data right-padded to a 32-byte boundary
- string:     as bytes, over the UTF-8 encoding
- T[N], tuple: their elements encoded as a sequence (below)
- T[]:        length word || elements encoded as a sequence

Sequences (argument lists, tuples, arrays)
------------------------------------------
Static elements are written in place. Each dynamic element contributes one
offset word to the head; its payload is appended after the head, in element
order. Offsets count bytes from the start of the sequence being encoded.
"""

from __future__ import annotations

from typing import Any, List, Sequence

from ..errors import ArityError, EncodingError
from ..utils.bytes import from_hex
from .types import (WORD, AddressType, BoolType, BytesType, DynamicArrayType,
                    FixedArrayType, FixedBytesType, IntType, ParamType,
                    StringType, TupleType, UIntType)

__all__ = [
    "encode_uint_word",
    "encode_value",
    "encode_args",
    "encode",
]


# ──────────────────────────────────────────────────────────────────────────────
# Low-level helpers
# ──────────────────────────────────────────────────────────────────────────────


def encode_uint_word(n: int) -> bytes:
    """One 32-byte big-endian word for a non-negative integer (lengths, offsets)."""
    return n.to_bytes(WORD, "big", signed=False)


def _pad_right(b: bytes) -> bytes:
    rem = len(b) % WORD
    if rem == 0:
        return b
    return b + b"\x00" * (WORD - rem)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _coerce_bytes(value: Any, typ: ParamType) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str) and value.startswith(("0x", "0X")):
        try:
            return from_hex(value)
        except ValueError as e:
            raise EncodingError(str(e), type=typ.canonical, value=value) from e
    raise EncodingError(
        f"expected bytes or 0x-hex string, got {type(value).__name__}",
        type=typ.canonical,
        value=value,
    )


def _coerce_sequence(value: Any, typ: ParamType) -> Sequence[Any]:
    if isinstance(value, (list, tuple)):
        return value
    raise EncodingError(
        f"expected list or tuple, got {type(value).__name__}",
        type=typ.canonical,
        value=value,
    )


# ──────────────────────────────────────────────────────────────────────────────
# Primitive encoders
# ──────────────────────────────────────────────────────────────────────────────


def _encode_uint(value: Any, typ: UIntType) -> bytes:
    if not _is_int(value):
        raise EncodingError(f"expected int, got {type(value).__name__}", type=typ.canonical, value=value)
    if value < 0 or value >= (1 << typ.bits):
        raise EncodingError(
            f"{typ.canonical} out of range [0, {(1 << typ.bits) - 1}]",
            type=typ.canonical,
            value=value,
        )
    return encode_uint_word(value)


def _encode_int(value: Any, typ: IntType) -> bytes:
    if not _is_int(value):
        raise EncodingError(f"expected int, got {type(value).__name__}", type=typ.canonical, value=value)
    lo = -(1 << (typ.bits - 1))
    hi = (1 << (typ.bits - 1)) - 1
    if value < lo or value > hi:
        raise EncodingError(f"{typ.canonical} out of range [{lo}, {hi}]", type=typ.canonical, value=value)
    return value.to_bytes(WORD, "big", signed=True)


def _encode_bool(value: Any, typ: BoolType) -> bytes:
    if isinstance(value, bool):
        return encode_uint_word(int(value))
    if _is_int(value) and value in (0, 1):
        return encode_uint_word(value)
    raise EncodingError("bool must be True/False", type=typ.canonical, value=value)


def _encode_address(value: Any, typ: AddressType) -> bytes:
    if isinstance(value, str):
        if not value.startswith(("0x", "0X")) or len(value) != 42:
            raise EncodingError("address must be a 0x-prefixed 40-hex-digit string", type="address", value=value)
        raw = _coerce_bytes(value, typ)
    elif isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    else:
        raise EncodingError(f"expected address string, got {type(value).__name__}", type="address", value=value)
    if len(raw) != 20:
        raise EncodingError(f"address must be 20 bytes, got {len(raw)}", type="address", value=value)
    return b"\x00" * (WORD - 20) + raw


def _encode_fixed_bytes(value: Any, typ: FixedBytesType) -> bytes:
    raw = _coerce_bytes(value, typ)
    if len(raw) > typ.size:
        raise EncodingError(
            f"{typ.canonical} takes at most {typ.size} bytes, got {len(raw)}",
            type=typ.canonical,
            value=value,
        )
    return raw + b"\x00" * (WORD - len(raw))


def _encode_dynamic_bytes(raw: bytes) -> bytes:
    return encode_uint_word(len(raw)) + _pad_right(raw)


# ──────────────────────────────────────────────────────────────────────────────
# Sequences
# ──────────────────────────────────────────────────────────────────────────────


def _encode_sequence(types: Sequence[ParamType], values: Sequence[Any]) -> bytes:
    head_len = sum(t.head_size for t in types)
    heads: List[bytes] = []
    tails: List[bytes] = []
    tail_len = 0
    for typ, value in zip(types, values):
        enc = encode_value(typ, value)
        if typ.is_dynamic:
            heads.append(encode_uint_word(head_len + tail_len))
            tails.append(enc)
            tail_len += len(enc)
        else:
            heads.append(enc)
    return b"".join(heads) + b"".join(tails)


# ──────────────────────────────────────────────────────────────────────────────
# High-level dispatch
# ──────────────────────────────────────────────────────────────────────────────


def encode_value(typ: ParamType, value: Any) -> bytes:
    """
    Encode a single value. Static types yield their in-place words; dynamic
    types yield the payload that goes in the tail.
    """
    if isinstance(typ, UIntType):
        return _encode_uint(value, typ)
    if isinstance(typ, IntType):
        return _encode_int(value, typ)
    if isinstance(typ, BoolType):
        return _encode_bool(value, typ)
    if isinstance(typ, AddressType):
        return _encode_address(value, typ)
    if isinstance(typ, FixedBytesType):
        return _encode_fixed_bytes(value, typ)
    if isinstance(typ, BytesType):
        return _encode_dynamic_bytes(_coerce_bytes(value, typ))
    if isinstance(typ, StringType):
        if not isinstance(value, str):
            raise EncodingError(f"expected str, got {type(value).__name__}", type="string", value=value)
        try:
            raw = value.encode("utf-8")
        except UnicodeEncodeError as e:
            raise EncodingError(f"string is not valid UTF-8: {e.reason}", type="string", value=value) from e
        return _encode_dynamic_bytes(raw)
    if isinstance(typ, FixedArrayType):
        items = _coerce_sequence(value, typ)
        if len(items) != typ.length:
            raise EncodingError(
                f"{typ.canonical} takes exactly {typ.length} items, got {len(items)}",
                type=typ.canonical,
                value=value,
            )
        return _encode_sequence([typ.item] * typ.length, items)
    if isinstance(typ, DynamicArrayType):
        items = _coerce_sequence(value, typ)
        return encode_uint_word(len(items)) + _encode_sequence([typ.item] * len(items), items)
    if isinstance(typ, TupleType):
        items = _coerce_sequence(value, typ)
        if len(items) != len(typ.components):
            raise EncodingError(
                f"{typ.canonical} takes {len(typ.components)} items, got {len(items)}",
                type=typ.canonical,
                value=value,
            )
        return _encode_sequence(typ.components, items)
    raise EncodingError(f"unsupported ABI type: {typ!r}")


def encode_args(types: Sequence[ParamType], values: Sequence[Any]) -> bytes:
    """
    Encode an argument list as one head/tail block.

    Raises:
        ArityError when len(values) != len(types) (an EncodingError);
        EncodingError on out-of-range or type-incompatible values.
    """
    if len(types) != len(values):
        raise ArityError(
            "argument count does not match parameter count",
            expected=len(types),
            got=len(values),
        )
    return _encode_sequence(types, values)


encode = encode_args
