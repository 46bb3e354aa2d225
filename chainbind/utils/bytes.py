from __future__ import annotations

from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]


def ensure_bytes(data: Union[BytesLike, str]) -> bytes:
    """
    Ensure input is bytes.

    Accepts:
      - bytes / bytearray / memoryview  -> bytes(data)
      - str: treated as hex; optional '0x' prefix; even-length enforced

    Raises:
      ValueError on invalid hex strings.
    """
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, str):
        return from_hex(data)
    raise TypeError(f"Unsupported type for ensure_bytes: {type(data)!r}")


def to_hex(b: BytesLike, prefix: bool = True) -> str:
    """
    Bytes -> hex string (lowercase). Prefix with '0x' by default.
    """
    s = bytes(b).hex()
    return f"0x{s}" if prefix else s


def from_hex(s: str) -> bytes:
    """
    Hex string (optionally '0x' prefixed) -> bytes.

    Enforces even-length (nibbles must pair to bytes) and is case agnostic.
    """
    if not isinstance(s, str):
        raise TypeError("from_hex expects a string")
    s = strip_prefix(s)
    if len(s) % 2 != 0:
        raise ValueError("hex string must have even length")
    try:
        return bytes.fromhex(s)
    except ValueError as e:
        raise ValueError(f"invalid hex string: {e}") from e


def strip_prefix(s: str) -> str:
    return s[2:] if s.startswith(("0x", "0X")) else s


def ensure_prefix(s: str) -> str:
    return s if s.startswith(("0x", "0X")) else "0x" + s


def hex_to_int(s: Union[str, int]) -> int:
    """
    Quantity hex ("0x1a") -> int. Ints pass through unchanged.

    JSON-RPC quantities are not zero-padded and may be "0x0".
    """
    if isinstance(s, bool):
        raise TypeError("hex_to_int does not accept bool")
    if isinstance(s, int):
        return s
    if not isinstance(s, str):
        raise TypeError(f"hex_to_int expects str or int, got {type(s)!r}")
    body = strip_prefix(s.strip())
    if not body:
        return 0
    return int(body, 16)


def int_to_hex(n: int) -> str:
    """int -> JSON-RPC quantity ("0x0", "0x1a")."""
    if n < 0:
        raise ValueError("int_to_hex expects a non-negative integer")
    return hex(n)


def is_zero_hash(s: str) -> bool:
    """True for "0x", "0x0" and all-zero hashes of any length."""
    body = strip_prefix(s)
    return not body.strip("0")


__all__ = [
    "BytesLike",
    "ensure_bytes",
    "to_hex",
    "from_hex",
    "strip_prefix",
    "ensure_prefix",
    "hex_to_int",
    "int_to_hex",
    "is_zero_hash",
]
