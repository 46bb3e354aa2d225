"""
chainbind — Python
Contract bindings over JSON-RPC: ABI codec, dispatch, transaction lifecycle
and event filters.
"""

from .version import __version__  # noqa: F401

# Core config & errors
from .config import PollConfig, RpcConfig  # noqa: F401
from .errors import (  # noqa: F401
    ArityError,
    ChainBindError,
    DecodingError,
    DeploymentError,
    EncodingError,
    RpcError,
    SchemaError,
    TimedOut,
    TransactionError,
)

# ABI
from .abi import AbiSchema, Codec, decode, encode, parse_type  # noqa: F401

# RPC
from .rpc import ChainClient, EthClient, RpcClient  # noqa: F401

# Tx lifecycle
from .tx import DeploymentHandle, TransactionHandle, TxState  # noqa: F401

# Contracts
from .contracts import (  # noqa: F401
    ContractBinding,
    DecodedLog,
    EventFilter,
    RawCallResult,
    emit_python_client,
    write_python_client,
)

__all__ = [
    "__version__",
    # Core
    "RpcConfig", "PollConfig",
    "ChainBindError", "SchemaError", "EncodingError", "ArityError", "DecodingError",
    "RpcError", "TransactionError", "DeploymentError", "TimedOut",
    # ABI
    "AbiSchema", "Codec", "parse_type", "encode", "decode",
    # RPC
    "ChainClient", "RpcClient", "EthClient",
    # Tx
    "TxState", "TransactionHandle", "DeploymentHandle",
    # Contracts
    "ContractBinding", "RawCallResult", "EventFilter", "DecodedLog",
    "emit_python_client", "write_python_client",
]
