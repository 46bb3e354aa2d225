"""
chainbind.abi
=============

ABI type system and binary codec.

Submodules
----------
- types    : ParamType variants and the type-string parser
- schema   : descriptors (function/event/constructor) and AbiSchema
- encoding : head/tail encoder
- decoding : head/tail decoder
- codec    : Codec facade used by ContractBinding

Typical usage
-------------
    from chainbind.abi import parse_type, encode, decode

    types = [parse_type("uint256"), parse_type("string")]
    data = encode(types, [1, "hi"])
    assert decode(types, data) == [1, "hi"]
"""

from __future__ import annotations

from .codec import Codec
from .decoding import decode, decode_args, decode_value
from .encoding import encode, encode_args, encode_value
from .schema import (AbiSchema, ConstructorDescriptor, EventDescriptor,
                     FunctionDescriptor, Param, canonical_signature,
                     event_topic, function_selector)
from .types import (AddressType, BoolType, BytesType, DynamicArrayType,
                    FixedArrayType, FixedBytesType, IntType, ParamType,
                    StringType, TupleType, UIntType, canonical_type,
                    is_valid_type, parse_type)

__all__ = [
    # types
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
    # schema
    "Param",
    "FunctionDescriptor",
    "EventDescriptor",
    "ConstructorDescriptor",
    "AbiSchema",
    "canonical_signature",
    "function_selector",
    "event_topic",
    # codec
    "encode",
    "encode_args",
    "encode_value",
    "decode",
    "decode_args",
    "decode_value",
    "Codec",
]
