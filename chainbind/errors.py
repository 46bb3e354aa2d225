"""
Typed error classes for chainbind.

These are raised by abi/schema, abi/encoding, abi/decoding, rpc/http, tx/handle
and contracts/binding so callers can catch specific failure modes while still
being able to catch the base `ChainBindError`.

Only `TimedOut` is retryable: the handle that raised it can be waited on again.
Everything else aborts the operation it was raised from.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Optional

__all__ = [
    "ChainBindError",
    "SchemaError",
    "EncodingError",
    "ArityError",
    "DecodingError",
    "RpcError",
    "TransactionError",
    "DeploymentError",
    "TimedOut",
    "JsonRpcCode",
    "from_jsonrpc_error",
]


class ChainBindError(Exception):
    """Base class for all chainbind errors."""


class JsonRpcCode(IntEnum):
    # JSON-RPC 2.0 spec
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Server errors (implementation-defined range: -32099 to -32000)
    SERVER_ERROR = -32000

    # Client-side transport failure (no usable response)
    TRANSPORT_ERROR = -32098


@dataclass(slots=True, eq=False)
class SchemaError(ChainBindError):
    """
    Raised when an ABI description cannot be parsed.

    Typical causes: unparseable type strings, unnamed functions/events,
    an ABI with nothing callable in it.
    """

    message: str
    entry: Optional[Any] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        where = f" [entry={self.entry!r}]" if self.entry is not None else ""
        return f"SchemaError{where}: {self.message}"


@dataclass(slots=True, eq=False)
class EncodingError(ChainBindError):
    """
    Raised when a value cannot be encoded as the declared ABI type.

    Typical causes: integer out of range for the bit width, wrong Python type,
    wrong array length, wrong argument count.
    """

    message: str
    type: Optional[str] = None
    value: Optional[Any] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        where = f" [type={self.type}]" if self.type else ""
        return f"EncodingError{where}: {self.message}"


@dataclass(slots=True, eq=False)
class ArityError(EncodingError):
    """Raised when the number of arguments does not match the declared inputs."""

    expected: int = 0
    got: int = 0
    function: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        fn = f" [fn={self.function}]" if self.function else ""
        return f"ArityError{fn}: {self.message} (expected {self.expected}, got {self.got})"


@dataclass(slots=True, eq=False)
class DecodingError(ChainBindError):
    """
    Raised when wire data is truncated or an offset/length points outside it.

    A type/data mismatch that stays within bounds is *not* detected: the decoder
    trusts the caller-supplied types.
    """

    message: str
    type: Optional[str] = None
    offset: Optional[int] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        where = []
        if self.type:
            where.append(f"type={self.type}")
        if self.offset is not None:
            where.append(f"offset={self.offset}")
        where_s = (" [" + ", ".join(where) + "]") if where else ""
        return f"DecodingError{where_s}: {self.message}"


@dataclass(slots=True, eq=False)
class RpcError(ChainBindError):
    """Raised when a JSON-RPC call returns an error object or the transport fails."""

    method: Optional[str]
    code: int
    message: str
    data: Optional[Any] = None
    request_id: Optional[Any] = None
    http_status: Optional[int] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        parts = [f"RPC[{self.method or '-'}] code={self.code} msg={self.message!r}"]
        if self.request_id is not None:
            parts.append(f"id={self.request_id}")
        if self.http_status is not None:
            parts.append(f"http={self.http_status}")
        if self.data is not None:
            parts.append(f"data={self.data!r}")
        return " ".join(parts)

    @property
    def code_enum(self) -> Optional[JsonRpcCode]:
        try:
            return JsonRpcCode(self.code)
        except ValueError:
            return None


@dataclass(slots=True, eq=False)
class TransactionError(ChainBindError):
    """
    Raised when a submitted transaction fails (node rejection, sentinel hash or
    on-chain revert).

    Fields:
      - tx_hash: hex hash if known (None if rejected before a hash was issued)
      - receipt: the receipt that reported the failure, if any
    """

    message: str
    tx_hash: Optional[str] = None
    receipt: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        suffix = f" tx={self.tx_hash}" if self.tx_hash else ""
        return f"{type(self).__name__}{suffix}: {self.message}"


@dataclass(slots=True, eq=False)
class DeploymentError(TransactionError):
    """Raised when a deployment is rejected or mined without a contract address."""


@dataclass(slots=True, eq=False)
class TimedOut(ChainBindError):
    """
    Raised when polling for a receipt gives up (attempts or wall clock exhausted).

    Not a failure: the transaction may still be mined later. Call the same
    handle's wait method again to resume.
    """

    message: str
    tx_hash: Optional[str] = None
    attempts: int = 0
    elapsed: float = 0.0

    def __str__(self) -> str:  # pragma: no cover - trivial
        return (
            f"TimedOut tx={self.tx_hash}: {self.message} "
            f"(attempts={self.attempts}, elapsed={self.elapsed:.2f}s)"
        )


def from_jsonrpc_error(
    err_obj: Dict[str, Any],
    *,
    method: Optional[str] = None,
    request_id: Optional[Any] = None,
    http_status: Optional[int] = None,
) -> RpcError:
    """
    Convert a JSON-RPC error object into RpcError.

    `err_obj` should resemble: {"code": int, "message": str, "data": any?}
    """
    code = int(err_obj.get("code", JsonRpcCode.SERVER_ERROR))
    message = str(err_obj.get("message", "Unknown JSON-RPC error"))
    data = err_obj.get("data")
    return RpcError(
        method=method,
        code=code,
        message=message,
        data=data,
        request_id=request_id,
        http_status=http_status,
    )
