"""
Transaction lifecycle tracking.

A handle is created when a transaction is submitted and moves through:

    PENDING --poll: receipt--> MINED
    PENDING --poll: receipt with status 0x0--> FAILED
    PENDING --wait budget exhausted--> TIMED_OUT --wait again--> PENDING ...

MINED and FAILED are final. TIMED_OUT only means the waiter gave up: the
transaction may still be mined, and waiting on the same handle again resumes
polling. State changes only through `poll()` (which the wait helpers call);
a handle never resubmits anything.
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, NoReturn, Optional, Type

from ..config import PollConfig
from ..errors import DeploymentError, TimedOut, TransactionError
from ..rpc.base import ChainClient, Receipt
from ..utils.bytes import hex_to_int

if TYPE_CHECKING:  # pragma: no cover
    from ..contracts.binding import ContractBinding

log = logging.getLogger(__name__)

__all__ = ["TxState", "TransactionHandle", "DeploymentHandle"]

# marks a wait keyword the caller did not pass (None is a real value: no limit)
_UNSET: Any = object()


class TxState(str, Enum):
    PENDING = "pending"
    MINED = "mined"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


def _reverted(receipt: Receipt) -> bool:
    status = receipt.get("status")
    if status is None:
        # pre-Byzantium receipts carry no status
        return False
    try:
        return hex_to_int(status) == 0
    except (TypeError, ValueError):
        return False


def _receipt_address(receipt: Receipt) -> Optional[str]:
    for key in ("contractAddress", "contract_address", "address"):
        v = receipt.get(key)
        if isinstance(v, str) and v:
            return v
    return None


class TransactionHandle:
    """One submitted transaction, tracked by hash."""

    _error: Type[TransactionError] = TransactionError

    def __init__(
        self,
        tx_hash: str,
        client: ChainClient,
        *,
        data: Optional[str] = None,
        poll_config: Optional[PollConfig] = None,
    ) -> None:
        self.tx_hash = tx_hash
        self.client = client
        self.data = data
        self.poll_config = poll_config or PollConfig()
        self.state: TxState = TxState.PENDING
        self.receipt: Optional[Dict[str, Any]] = None
        self.failure_reason: Optional[str] = None
        self.attempts = 0

    def __repr__(self) -> str:
        return f"{type(self).__name__}(tx_hash={self.tx_hash!r}, state={self.state.value})"

    @property
    def block_number(self) -> Optional[int]:
        if self.receipt is None or self.receipt.get("blockNumber") is None:
            return None
        return hex_to_int(self.receipt["blockNumber"])

    @property
    def done(self) -> bool:
        return self.state in (TxState.MINED, TxState.FAILED)

    # --- single step -----------------------------------------------------

    def poll(self) -> TxState:
        """Query the receipt once. Never blocks beyond the client call."""
        if self.done:
            return self.state
        receipt = self.client.get_transaction_receipt(self.tx_hash)
        self.attempts += 1
        log.debug("receipt poll #%d for %s: %s", self.attempts, self.tx_hash, "found" if receipt else "pending")
        if receipt is not None:
            self._settle(receipt)
        return self.state

    def _settle(self, receipt: Receipt) -> None:
        self.receipt = dict(receipt)
        if _reverted(self.receipt):
            self.state = TxState.FAILED
            self.failure_reason = "transaction reverted (receipt status 0x0)"
            log.warning("tx %s failed: %s", self.tx_hash, self.failure_reason)
            return
        self.state = TxState.MINED
        log.info("tx %s mined in block %s", self.tx_hash, self.block_number)
        self._on_mined(self.receipt)

    def _on_mined(self, receipt: Receipt) -> None:
        pass

    # --- waiting ---------------------------------------------------------

    def _prepare_wait(self, poll: Optional[PollConfig], overrides: Dict[str, Any]) -> PollConfig:
        cfg = (poll or self.poll_config).replace(**{k: v for k, v in overrides.items() if v is not _UNSET})
        if self.state is TxState.TIMED_OUT:
            log.info("resuming wait for %s", self.tx_hash)
            self.state = TxState.PENDING
        return cfg

    def _finish(self) -> Optional[Receipt]:
        if self.state is TxState.MINED:
            return self.receipt
        if self.state is TxState.FAILED:
            raise self._error(self.failure_reason or "transaction failed", tx_hash=self.tx_hash, receipt=self.receipt)
        return None

    def _next_delay(self, cfg: PollConfig, attempts: int, started: float, interval: float) -> float:
        """Seconds to sleep before the next poll; raises TimedOut when the budget is spent."""
        elapsed = time.monotonic() - started
        if cfg.max_attempts is not None and attempts >= cfg.max_attempts:
            self._time_out(f"no receipt after {attempts} attempts", attempts, elapsed)
        if cfg.timeout is None:
            return interval
        remaining = cfg.timeout - elapsed
        if remaining <= 0:
            self._time_out(f"no receipt within {cfg.timeout:.1f}s", attempts, elapsed)
        return min(interval, remaining)

    def _time_out(self, message: str, attempts: int, elapsed: float) -> NoReturn:
        self.state = TxState.TIMED_OUT
        log.warning("gave up waiting for %s: %s", self.tx_hash, message)
        raise TimedOut(message, tx_hash=self.tx_hash, attempts=attempts, elapsed=elapsed)

    def wait_for_mined(
        self,
        poll: Optional[PollConfig] = None,
        *,
        poll_interval: Optional[float] = None,
        timeout: Optional[float] = _UNSET,
        max_attempts: Optional[int] = _UNSET,
    ) -> Receipt:
        """
        Block until the receipt arrives; returns it.

        Sleeps between polls (first poll is immediate). Keyword arguments
        override the matching PollConfig fields for this wait only;
        `timeout=None` or `max_attempts=None` waits without that limit.

        Raises:
            TransactionError  receipt reports failure (DeploymentError for deployments)
            TimedOut          attempts or wall clock exhausted; call again to resume
        """
        cfg = self._prepare_wait(poll, dict(poll_interval=poll_interval, timeout=timeout, max_attempts=max_attempts))
        started = time.monotonic()
        interval = cfg.poll_interval
        attempts = 0
        while True:
            self.poll()
            attempts += 1
            receipt = self._finish()
            if receipt is not None:
                return receipt
            time.sleep(self._next_delay(cfg, attempts, started, interval))
            interval = min(interval * cfg.backoff, cfg.max_interval)

    async def await_mined(
        self,
        poll: Optional[PollConfig] = None,
        *,
        poll_interval: Optional[float] = None,
        timeout: Optional[float] = _UNSET,
        max_attempts: Optional[int] = _UNSET,
    ) -> Receipt:
        """asyncio variant of `wait_for_mined`; client calls run in a worker thread."""
        cfg = self._prepare_wait(poll, dict(poll_interval=poll_interval, timeout=timeout, max_attempts=max_attempts))
        started = time.monotonic()
        interval = cfg.poll_interval
        attempts = 0
        while True:
            await asyncio.to_thread(self.poll)
            attempts += 1
            receipt = self._finish()
            if receipt is not None:
                return receipt
            await asyncio.sleep(self._next_delay(cfg, attempts, started, interval))
            interval = min(interval * cfg.backoff, cfg.max_interval)


class DeploymentHandle(TransactionHandle):
    """
    A contract-creation transaction. Once mined, the contract address is read
    from the receipt and pushed into the owning binding (which re-targets its
    event filters).
    """

    _error = DeploymentError

    def __init__(
        self,
        tx_hash: str,
        client: ChainClient,
        *,
        binding: Optional["ContractBinding"] = None,
        data: Optional[str] = None,
        poll_config: Optional[PollConfig] = None,
    ) -> None:
        super().__init__(tx_hash, client, data=data, poll_config=poll_config)
        self.binding = binding
        self.contract_address: Optional[str] = None

    def _on_mined(self, receipt: Receipt) -> None:
        addr = _receipt_address(receipt)
        if addr is None:
            log.warning("deployment %s mined without a contract address", self.tx_hash)
            return
        self.contract_address = addr
        log.info("contract deployed at %s (tx %s)", addr, self.tx_hash)
        if self.binding is not None:
            self.binding.address = addr

    def _require_address(self) -> str:
        if self.contract_address is None:
            raise DeploymentError("receipt has no contract address", tx_hash=self.tx_hash, receipt=self.receipt)
        return self.contract_address

    def wait_for_deployment(self, poll: Optional[PollConfig] = None, **overrides: Any) -> str:
        """wait_for_mined, then return the deployed address."""
        self.wait_for_mined(poll, **overrides)
        return self._require_address()

    async def await_deployment(self, poll: Optional[PollConfig] = None, **overrides: Any) -> str:
        await self.await_mined(poll, **overrides)
        return self._require_address()
