from __future__ import annotations

from .base import ChainClient, RawLog, Receipt
from .eth import EthClient
from .http import RpcClient

__all__ = ["ChainClient", "RawLog", "Receipt", "RpcClient", "EthClient"]
