"""
chainbind.contracts.binding
===========================

ContractBinding: one contract ABI bound to a chain client, an optional
bytecode blob, an address and a sender.

- Functions and events are looked up in static dispatch tables built once from
  the ABI (see chainbind.abi.schema for the naming rule).
- Read-only calls go through `call`/`call_raw`; state-changing calls through
  `transact`, which returns a TransactionHandle immediately.
- `deploy` returns a DeploymentHandle; once it is waited on, the deployed
  address is written back into the binding.
- `create_filter` registers event filters that follow the binding's address.

Example
-------
    from chainbind import ContractBinding, EthClient

    client = EthClient.from_url("http://127.0.0.1:8545")
    token = ContractBinding(client=client, abi=abi_json, code=bytecode, sender=me)
    token.deploy_and_wait("Token", 18)
    supply = token.call("totalSupply")
    handle = token.transact("transfer", bob, 10)
    handle.wait_for_mined()

The address is the only state that changes after construction. Writes go
through a lock and reach every filter created from the binding.
"""

from __future__ import annotations

import logging
import re
import threading
import weakref
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Sequence, Union

from ..abi.codec import Codec
from ..abi.schema import AbiSchema, EventDescriptor, FunctionDescriptor, Param
from ..config import PollConfig
from ..errors import ArityError, DeploymentError, TransactionError
from ..rpc.base import ChainClient
from ..tx.handle import DeploymentHandle, TransactionHandle
from ..utils.bytes import BytesLike, ensure_bytes, is_zero_hash, to_hex
from .events import DecodedLog, EventFilter

log = logging.getLogger(__name__)

__all__ = ["ContractBinding", "RawCallResult"]

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")

FunctionRef = Union[str, FunctionDescriptor]
EventRef = Union[str, EventDescriptor]


@dataclass(frozen=True)
class RawCallResult:
    """What `call_raw` sent and got back: call data, raw result hex, decoded outputs."""

    data: str
    raw: str
    formatted: List[Any]


def _check_arity(label: str, inputs: Sequence[Param], args: Sequence[Any]) -> None:
    if len(args) != len(inputs):
        raise ArityError(
            f"{label} takes {len(inputs)} argument(s)",
            expected=len(inputs),
            got=len(args),
            function=label,
        )


def _validate_address(address: str) -> str:
    if not isinstance(address, str) or not _ADDRESS_RE.match(address):
        raise ValueError(f"invalid contract address: {address!r}")
    return address


class ContractBinding:
    def __init__(
        self,
        *,
        client: ChainClient,
        abi: Union[AbiSchema, str, Sequence[Mapping[str, Any]], Mapping[str, Any]],
        code: Optional[Union[BytesLike, str]] = None,
        address: Optional[str] = None,
        sender: Optional[str] = None,
        name: Optional[str] = None,
        codec: Optional[Codec] = None,
        poll_config: Optional[PollConfig] = None,
    ) -> None:
        self.client = client
        self.schema = abi if isinstance(abi, AbiSchema) else AbiSchema.parse(abi)
        self.code: Optional[bytes] = ensure_bytes(code) if code is not None else None
        self.sender = sender
        self.name = name
        self.codec = codec or Codec()
        self.poll_config = poll_config or PollConfig()
        self.deployment: Optional[DeploymentHandle] = None
        self._lock = threading.RLock()
        self._filters: "weakref.WeakSet[EventFilter]" = weakref.WeakSet()
        self._address: Optional[str] = _validate_address(address) if address is not None else None

    @classmethod
    def create(
        cls,
        abi: Union[str, Sequence[Mapping[str, Any]], Mapping[str, Any]],
        code: Optional[Union[BytesLike, str]] = None,
        *,
        client: ChainClient,
        address: Optional[str] = None,
        sender: Optional[str] = None,
        name: Optional[str] = None,
        poll_config: Optional[PollConfig] = None,
    ) -> "ContractBinding":
        """
        Build a binding from an ABI list, a JSON string, or a compiler artifact
        ({"abi": [...], "bytecode": "0x..."}). Bytecode is taken from the
        artifact when `code` is not given.
        """
        if isinstance(abi, Mapping) and code is None:
            bytecode = abi.get("bytecode")
            if isinstance(bytecode, Mapping):
                bytecode = bytecode.get("object")
            if isinstance(bytecode, str) and bytecode not in ("", "0x"):
                code = bytecode
            name = name or abi.get("contractName")
        return cls(client=client, abi=abi, code=code, address=address, sender=sender, name=name, poll_config=poll_config)

    def __repr__(self) -> str:
        return f"ContractBinding(name={self.name!r}, address={self.address!r})"

    # --- address ---------------------------------------------------------

    @property
    def address(self) -> Optional[str]:
        with self._lock:
            return self._address

    @address.setter
    def address(self, value: str) -> None:
        value = _validate_address(value)
        with self._lock:
            old = self._address
            self._address = value
            for flt in list(self._filters):
                flt._rebind(value)
        if old != value:
            log.info("binding %s address %s -> %s", self.name or "<contract>", old, value)

    def _require_address(self) -> str:
        addr = self.address
        if addr is None:
            raise ValueError("contract has no address; deploy it or set .address first")
        return addr

    # --- dispatch tables -------------------------------------------------

    @property
    def functions(self) -> Mapping[str, FunctionDescriptor]:
        return MappingProxyType(self.schema.function_table)

    @property
    def events(self) -> Mapping[str, EventDescriptor]:
        return MappingProxyType(self.schema.event_table)

    def function(self, ref: FunctionRef) -> FunctionDescriptor:
        return self.schema.function(ref)

    def event(self, ref: EventRef) -> EventDescriptor:
        return self.schema.event(ref)

    # --- deployment ------------------------------------------------------

    def _deploy_payload(self, args: Sequence[Any]) -> str:
        if self.code is None:
            raise ValueError("binding has no bytecode to deploy")
        _check_arity("constructor", self.schema.constructor_inputs, args)
        return to_hex(self.codec.encode_deploy(self.code, self.schema.constructor, args))

    def estimate_gas(self, *args: Any) -> int:
        """Gas estimate for deploying with the given constructor arguments."""
        data = self._deploy_payload(args)
        gas = self.client.estimate_gas(sender=self.sender, data=data)
        log.debug("estimate_gas(%s) -> %s", self.name or "<contract>", gas)
        return self.codec.decode_quantity(gas)

    def deploy(self, *args: Any) -> DeploymentHandle:
        """
        Submit the contract-creation transaction. Never blocks.

        Raises DeploymentError when the client returns no hash or the all-zero
        sentinel (typically a locked or unknown sender account).
        """
        data = self._deploy_payload(args)
        tx_hash = self.client.send_transaction(to=None, sender=self.sender, data=data)
        if not tx_hash or is_zero_hash(tx_hash):
            raise DeploymentError(
                f"deployment of {self.name or 'contract'} was not accepted (sender {self.sender} may be locked)",
                tx_hash=tx_hash or None,
            )
        handle = DeploymentHandle(tx_hash, self.client, binding=self, data=data, poll_config=self.poll_config)
        self.deployment = handle
        log.info("deployment submitted: %s", tx_hash)
        return handle

    def deploy_and_wait(self, *args: Any, poll: Optional[PollConfig] = None) -> str:
        """deploy + wait_for_deployment; returns the new address."""
        return self.deploy(*args).wait_for_deployment(poll)

    # --- calls -----------------------------------------------------------

    def call_raw(self, fn: FunctionRef, *args: Any) -> RawCallResult:
        d = self.function(fn)
        _check_arity(d.signature, d.inputs, args)
        data = to_hex(self.codec.encode_call(d, args))
        raw = self.client.call(to=self._require_address(), sender=self.sender, data=data)
        log.debug("call %s -> %s", d.signature, raw)
        return RawCallResult(data=data, raw=raw, formatted=self.codec.decode_output(d, raw))

    def call(self, fn: FunctionRef, *args: Any) -> Any:
        """
        Read-only invocation. A function with exactly one output returns that
        value bare; otherwise the decoded outputs come back as a list.
        """
        d = self.function(fn)
        result = self.call_raw(d, *args).formatted
        return result[0] if len(d.outputs) == 1 else result

    def transact(self, fn: FunctionRef, *args: Any) -> TransactionHandle:
        """Submit a state-changing call; returns a PENDING handle without waiting."""
        d = self.function(fn)
        _check_arity(d.signature, d.inputs, args)
        data = to_hex(self.codec.encode_call(d, args))
        tx_hash = self.client.send_transaction(to=self._require_address(), sender=self.sender, data=data)
        if not tx_hash or is_zero_hash(tx_hash):
            raise TransactionError(f"{d.signature} was not accepted (sender {self.sender} may be locked)", tx_hash=tx_hash or None)
        log.info("tx submitted: %s %s", d.signature, tx_hash)
        return TransactionHandle(tx_hash, self.client, data=data, poll_config=self.poll_config)

    def transact_and_wait(self, fn: FunctionRef, *args: Any, poll: Optional[PollConfig] = None) -> TransactionHandle:
        handle = self.transact(fn, *args)
        handle.wait_for_mined(poll)
        return handle

    # --- events ----------------------------------------------------------

    def create_filter(
        self,
        evt: EventRef,
        *,
        from_block: str = "0x0",
        to_block: str = "latest",
        address: Optional[str] = None,
        decode_data: bool = False,
    ) -> EventFilter:
        """
        Register a filter for `evt` and return it (its node id is `.filter_id`).

        Without an explicit `address` the filter tracks this binding's address,
        including later changes.
        """
        d = self.event(evt)
        flt = EventFilter(
            self.client,
            d,
            binding=self,
            address=_validate_address(address) if address is not None else None,
            from_block=from_block,
            to_block=to_block,
            codec=self.codec,
            decode_data=decode_data,
        )
        with self._lock:
            self._filters.add(flt)
            flt.install()
        return flt

    def get_filter_logs(self, flt: EventFilter) -> List[DecodedLog]:
        return flt.get_logs()

    def get_filter_changes(self, flt: EventFilter) -> List[DecodedLog]:
        return flt.get_changes()
