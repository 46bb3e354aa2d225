"""
Codec: the encoder/decoder pair a ContractBinding owns.

Thin and stateless. Call data is selector || encode(inputs, args); constructor
payloads are bytecode || encode(ctor inputs, args) with no selector.
"""

from __future__ import annotations

from typing import Any, List, Sequence, Union

from ..utils.bytes import BytesLike, ensure_bytes, hex_to_int
from .decoding import decode_args
from .encoding import encode_args
from .schema import ConstructorDescriptor, FunctionDescriptor
from .types import ParamType

__all__ = ["Codec"]


class Codec:
    """Encoder + decoder bound to nothing but the types handed to it."""

    def encode(self, params: Sequence[ParamType], values: Sequence[Any]) -> bytes:
        return encode_args(params, values)

    def decode(self, params: Sequence[ParamType], data: Union[BytesLike, str]) -> List[Any]:
        return decode_args(params, data)

    def encode_call(self, fn: FunctionDescriptor, args: Sequence[Any]) -> bytes:
        return fn.selector + encode_args(fn.input_types, args)

    def decode_output(self, fn: FunctionDescriptor, data: Union[BytesLike, str]) -> List[Any]:
        return decode_args(fn.output_types, data)

    def encode_deploy(
        self,
        code: Union[BytesLike, str],
        constructor: ConstructorDescriptor | None,
        args: Sequence[Any],
    ) -> bytes:
        types = constructor.input_types if constructor is not None else ()
        return ensure_bytes(code) + encode_args(types, args)

    def decode_quantity(self, value: Union[str, int]) -> int:
        """JSON-RPC quantity ("0x5208") -> int."""
        return hex_to_int(value)
