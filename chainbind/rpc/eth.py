"""
EthClient: the ChainClient contract over standard eth_* JSON-RPC methods.

    from chainbind.rpc.eth import EthClient
    client = EthClient.from_url("http://127.0.0.1:8545")
    receipt = client.get_transaction_receipt("0x...")
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from ..config import RpcConfig
from .base import RawLog, Receipt
from .http import RpcClient

log = logging.getLogger(__name__)


class EthClient:
    """Maps ChainClient operations onto eth_* methods of an RpcClient."""

    def __init__(self, rpc: RpcClient, *, block: str = "latest") -> None:
        self.rpc = rpc
        self.block = block

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "EthClient":
        return cls(RpcClient(url, **kwargs))

    @classmethod
    def from_config(cls, cfg: Optional[RpcConfig] = None) -> "EthClient":
        return cls(RpcClient.from_config(cfg or RpcConfig.from_env()))

    def close(self) -> None:
        self.rpc.close()

    @staticmethod
    def _tx(to: Optional[str], sender: Optional[str], data: str) -> Dict[str, Any]:
        tx: Dict[str, Any] = {"data": data}
        if to is not None:
            tx["to"] = to
        if sender is not None:
            tx["from"] = sender
        return tx

    def call(self, to: str, sender: Optional[str], data: str) -> str:
        return str(self.rpc.request("eth_call", [self._tx(to, sender, data), self.block]))

    def send_transaction(self, to: Optional[str], sender: Optional[str], data: str) -> Optional[str]:
        result = self.rpc.request("eth_sendTransaction", [self._tx(to, sender, data)])
        log.debug("eth_sendTransaction -> %s", result)
        return None if result is None else str(result)

    def estimate_gas(self, sender: Optional[str], data: str) -> str:
        return str(self.rpc.request("eth_estimateGas", [self._tx(None, sender, data)]))

    def get_transaction_receipt(self, tx_hash: str) -> Optional[Receipt]:
        res = self.rpc.request("eth_getTransactionReceipt", [tx_hash])
        return res if isinstance(res, dict) else None

    def new_filter(
        self,
        address: Optional[str],
        topics: Sequence[Optional[str]],
        from_block: str,
        to_block: str,
    ) -> str:
        params: Dict[str, Any] = {"fromBlock": from_block, "toBlock": to_block, "topics": list(topics)}
        if address is not None:
            params["address"] = address
        return str(self.rpc.request("eth_newFilter", [params]))

    def get_filter_logs(self, filter_id: str) -> List[RawLog]:
        return list(self.rpc.request("eth_getFilterLogs", [filter_id]) or [])

    def get_filter_changes(self, filter_id: str) -> List[RawLog]:
        return list(self.rpc.request("eth_getFilterChanges", [filter_id]) or [])

    def uninstall_filter(self, filter_id: str) -> bool:
        return bool(self.rpc.request("eth_uninstallFilter", [filter_id]))

    def accounts(self) -> List[str]:
        return list(self.rpc.request("eth_accounts") or [])


__all__ = ["EthClient"]
