"""
Inverse of abi.encoding (head/tail layout, 32-byte words).

- decode_args(types, data) -> list of values
- decode_value(typ, data, offset) -> value found at `offset`

Integers are read from the whole word: the declared bit width is not used to
mask or range-check the decoded value. Only bounds are validated; bytes that
were produced for a different type decode to whatever they look like.
"""

from __future__ import annotations

from typing import Any, List, Sequence, Union

from ..errors import DecodingError
from ..utils.bytes import from_hex
from .types import (WORD, AddressType, BoolType, BytesType, DynamicArrayType,
                    FixedArrayType, FixedBytesType, IntType, ParamType,
                    StringType, TupleType, UIntType)

__all__ = [
    "decode_value",
    "decode_args",
    "decode",
]


def _read_word(data: bytes, offset: int, typ: ParamType) -> bytes:
    end = offset + WORD
    if offset < 0 or end > len(data):
        raise DecodingError(
            f"need 32 bytes at offset {offset}, data is {len(data)} bytes",
            type=typ.canonical,
            offset=offset,
        )
    return data[offset:end]


def _read_uint(data: bytes, offset: int, typ: ParamType) -> int:
    return int.from_bytes(_read_word(data, offset, typ), "big", signed=False)


def _read_dynamic_bytes(data: bytes, offset: int, typ: ParamType) -> bytes:
    length = _read_uint(data, offset, typ)
    start = offset + WORD
    end = start + length
    if end > len(data):
        raise DecodingError(
            f"length {length} at offset {offset} runs past end of data ({len(data)} bytes)",
            type=typ.canonical,
            offset=offset,
        )
    return data[start:end]


def _decode_sequence(types: Sequence[ParamType], data: bytes, base: int) -> List[Any]:
    out: List[Any] = []
    pos = base
    for typ in types:
        if typ.is_dynamic:
            rel = _read_uint(data, pos, typ)
            target = base + rel
            if target >= len(data):
                raise DecodingError(
                    f"offset {rel} points outside data ({len(data)} bytes)",
                    type=typ.canonical,
                    offset=pos,
                )
            out.append(decode_value(typ, data, target))
        else:
            out.append(decode_value(typ, data, pos))
        pos += typ.head_size
    return out


def decode_value(typ: ParamType, data: bytes, offset: int = 0) -> Any:
    """
    Decode one value of `typ` whose encoding starts at `data[offset:]`.

    For dynamic types `offset` is where the payload lives (after following the
    head's offset word), not the head slot itself.
    """
    if isinstance(typ, UIntType):
        return _read_uint(data, offset, typ)
    if isinstance(typ, IntType):
        return int.from_bytes(_read_word(data, offset, typ), "big", signed=True)
    if isinstance(typ, BoolType):
        return _read_uint(data, offset, typ) != 0
    if isinstance(typ, AddressType):
        return "0x" + _read_word(data, offset, typ)[WORD - 20 :].hex()
    if isinstance(typ, FixedBytesType):
        return _read_word(data, offset, typ)[: typ.size]
    if isinstance(typ, BytesType):
        return _read_dynamic_bytes(data, offset, typ)
    if isinstance(typ, StringType):
        raw = _read_dynamic_bytes(data, offset, typ)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodingError(f"string is not valid UTF-8: {e}", type="string", offset=offset) from e
    if isinstance(typ, FixedArrayType):
        return _decode_sequence([typ.item] * typ.length, data, offset)
    if isinstance(typ, DynamicArrayType):
        count = _read_uint(data, offset, typ)
        start = offset + WORD
        # every element needs at least its head slot
        if count * typ.item.head_size > len(data) - start:
            raise DecodingError(
                f"array length {count} at offset {offset} runs past end of data ({len(data)} bytes)",
                type=typ.canonical,
                offset=offset,
            )
        return _decode_sequence([typ.item] * count, data, start)
    if isinstance(typ, TupleType):
        return tuple(_decode_sequence(typ.components, data, offset))
    raise DecodingError(f"unsupported ABI type: {typ!r}")


def decode_args(types: Sequence[ParamType], data: Union[bytes, bytearray, str]) -> List[Any]:
    """
    Decode a head/tail block into a list of values, one per type.

    `data` may be raw bytes or a 0x-hex string as returned by the chain client.
    """
    if isinstance(data, str):
        try:
            data = from_hex(data)
        except ValueError as e:
            raise DecodingError(f"invalid hex data: {e}") from e
    return _decode_sequence(types, bytes(data), 0)


decode = decode_args
