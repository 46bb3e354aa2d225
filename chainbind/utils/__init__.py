"""
Utility helpers for chainbind.

Re-exports:
- bytes: hex helpers for the "0x" wire format
- hash: Keccak-256 for selectors and topics
"""

from .bytes import (ensure_bytes, ensure_prefix, from_hex, hex_to_int,
                    int_to_hex, is_zero_hash, strip_prefix, to_hex)
from .hash import keccak256, keccak256_hex, keccak256_text

__all__ = [
    # bytes
    "to_hex",
    "from_hex",
    "ensure_bytes",
    "strip_prefix",
    "ensure_prefix",
    "hex_to_int",
    "int_to_hex",
    "is_zero_hash",
    # hash
    "keccak256",
    "keccak256_hex",
    "keccak256_text",
]
