"""
The chain-client contract consumed by ContractBinding, TransactionHandle and
EventFilter.

Any object with these methods works: `chainbind.rpc.eth.EthClient` over HTTP,
an in-memory fake in tests, or an adapter around another transport. All wire
values are 0x-prefixed hex strings.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

RawLog = Dict[str, Any]
Receipt = Dict[str, Any]


@runtime_checkable
class ChainClient(Protocol):
    def call(self, to: str, sender: Optional[str], data: str) -> str:
        """Read-only execution; returns the raw hex result."""
        ...

    def send_transaction(self, to: Optional[str], sender: Optional[str], data: str) -> Optional[str]:
        """Submit a transaction (to=None deploys); returns the tx hash."""
        ...

    def estimate_gas(self, sender: Optional[str], data: str) -> str:
        ...

    def get_transaction_receipt(self, tx_hash: str) -> Optional[Receipt]:
        """None while the transaction is pending or unknown."""
        ...

    def new_filter(
        self,
        address: Optional[str],
        topics: Sequence[Optional[str]],
        from_block: str,
        to_block: str,
    ) -> str:
        ...

    def get_filter_logs(self, filter_id: str) -> List[RawLog]:
        ...

    def get_filter_changes(self, filter_id: str) -> List[RawLog]:
        ...


__all__ = ["ChainClient", "RawLog", "Receipt"]
