"""
chainbind.contracts.events
==========================

Event log filters and log decoding.

- EventFilter registers a log filter for one event (topic0 = event signature
  hash) and decodes what the node returns for it.
- decode_event_log(descriptor, raw) decodes a single raw log; usable on
  receipt logs as well.

Only indexed parameters travel in topics. Non-indexed parameters live in the
log's data field; they are decoded only when `decode_data=True`, otherwise
their names are listed in `DecodedLog.unsupported`.

Indexed parameters of dynamic or composite type (string, bytes, arrays,
tuples) are stored by the chain as the keccak256 of their encoding; they come
back as the raw 32-byte topic.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import (TYPE_CHECKING, Any, Dict, List, Mapping, Optional,
                    Sequence, Tuple)

from ..abi.codec import Codec
from ..abi.decoding import decode_value
from ..abi.schema import EventDescriptor, Param
from ..abi.types import FixedArrayType, ParamType, TupleType
from ..errors import ChainBindError, DecodingError
from ..rpc.base import ChainClient, RawLog
from ..utils.bytes import from_hex, hex_to_int, to_hex

if TYPE_CHECKING:  # pragma: no cover
    from .binding import ContractBinding

log = logging.getLogger(__name__)

__all__ = ["DecodedLog", "EventFilter", "decode_event_log", "matches"]


@dataclass(frozen=True)
class DecodedLog:
    """
    One decoded log.

    `topics` holds the decoded indexed values in declaration order (topic0,
    the event signature, is not repeated). `args` maps parameter names to
    every value that was decoded; `data` holds only the non-indexed ones.
    """

    event: str
    block_number: Optional[int]
    transaction_hash: Optional[str]
    block_hash: Optional[str]
    transaction_index: Optional[int]
    log_index: Optional[int] = None
    address: Optional[str] = None
    topics: Tuple[Any, ...] = ()
    args: Dict[str, Any] = field(default_factory=dict)
    data: Dict[str, Any] = field(default_factory=dict)
    unsupported: Tuple[str, ...] = ()
    removed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "blockNumber": self.block_number,
            "transactionHash": self.transaction_hash,
            "blockHash": self.block_hash,
            "transactionIndex": self.transaction_index,
            "topics": list(self.topics),
        }
        if self.data:
            out["data"] = dict(self.data)
        if self.unsupported:
            out["unsupported"] = list(self.unsupported)
        return out


# --- Decoding -----------------------------------------------------------------


def _param_name(p: Param, position: int) -> str:
    return p.name or f"_{position}"


def _hashed_in_topic(typ: ParamType) -> bool:
    return typ.is_dynamic or isinstance(typ, (FixedArrayType, TupleType))


def _quantity(raw: Mapping[str, Any], key: str) -> Optional[int]:
    v = raw.get(key)
    return None if v is None else hex_to_int(v)


def _raw_topics(raw: Mapping[str, Any]) -> List[bytes]:
    topics = raw.get("topics")
    if not isinstance(topics, (list, tuple)):
        raise DecodingError("log has no topics list")
    return [from_hex(t) if isinstance(t, str) else bytes(t) for t in topics]


def matches(descriptor: EventDescriptor, raw: Mapping[str, Any]) -> bool:
    """True if the log's topic0 is this event's signature hash (always True for anonymous events)."""
    if descriptor.anonymous:
        return True
    topics = raw.get("topics") or []
    if not topics:
        return False
    t0 = topics[0]
    t0b = from_hex(t0) if isinstance(t0, str) else bytes(t0)
    return t0b == descriptor.topic


def decode_event_log(
    descriptor: EventDescriptor,
    raw: Mapping[str, Any],
    *,
    codec: Optional[Codec] = None,
    decode_data: bool = False,
) -> DecodedLog:
    """
    Decode a raw log (eth_getFilterLogs / receipt format) against `descriptor`.

    Raises DecodingError when topic0 does not match the event, or when the log
    carries fewer topics than the event has indexed parameters.
    """
    topics = _raw_topics(raw)
    if not descriptor.anonymous:
        if not topics or topics[0] != descriptor.topic:
            raise DecodingError(f"log does not belong to event {descriptor.signature}")
        topics = topics[1:]

    indexed = [(i, p) for i, p in enumerate(descriptor.inputs) if p.indexed]
    if len(topics) < len(indexed):
        raise DecodingError(
            f"event {descriptor.signature} has {len(indexed)} indexed params but log carries {len(topics)} topics"
        )

    args: Dict[str, Any] = {}
    topic_values: List[Any] = []
    for (pos, p), word in zip(indexed, topics):
        if _hashed_in_topic(p.type):
            value: Any = word
        else:
            value = decode_value(p.type, word, 0)
        topic_values.append(value)
        args[_param_name(p, pos)] = value

    data_params = [(i, p) for i, p in enumerate(descriptor.inputs) if not p.indexed]
    data_values: Dict[str, Any] = {}
    unsupported: Tuple[str, ...] = ()
    if data_params:
        if decode_data:
            decoded = (codec or Codec()).decode([p.type for _, p in data_params], raw.get("data") or "0x")
            for (pos, p), value in zip(data_params, decoded):
                data_values[_param_name(p, pos)] = value
            args.update(data_values)
        else:
            unsupported = tuple(_param_name(p, pos) for pos, p in data_params)

    tx_hash = raw.get("transactionHash")
    block_hash = raw.get("blockHash")
    address = raw.get("address")
    return DecodedLog(
        event=descriptor.name,
        block_number=_quantity(raw, "blockNumber"),
        transaction_hash=tx_hash if isinstance(tx_hash, str) else None,
        block_hash=block_hash if isinstance(block_hash, str) else None,
        transaction_index=_quantity(raw, "transactionIndex"),
        log_index=_quantity(raw, "logIndex"),
        address=address if isinstance(address, str) else None,
        topics=tuple(topic_values),
        args=args,
        data=data_values,
        unsupported=unsupported,
        removed=bool(raw.get("removed", False)),
    )


# --- Filters ------------------------------------------------------------------


class EventFilter:
    """
    A log filter for one event.

    Unless an address is pinned at creation, the filter follows its binding's
    address: when the binding is re-targeted (e.g. after deployment) the
    filter is re-registered with the node at once and the old node-side filter
    is uninstalled. If re-registration fails it is retried on the next fetch.
    The current node-side id is `filter_id`.
    """

    def __init__(
        self,
        client: ChainClient,
        descriptor: EventDescriptor,
        *,
        binding: Optional["ContractBinding"] = None,
        address: Optional[str] = None,
        from_block: str = "0x0",
        to_block: str = "latest",
        codec: Optional[Codec] = None,
        decode_data: bool = False,
    ) -> None:
        self.client = client
        self.descriptor = descriptor
        self.binding = binding
        self.pinned_address = address
        self.from_block = from_block
        self.to_block = to_block
        self.codec = codec or Codec()
        self.decode_data = decode_data
        self.filter_id: Optional[str] = None
        self.installed_address: Optional[str] = None
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return f"EventFilter(event={self.descriptor.signature!r}, address={self.address!r}, filter_id={self.filter_id!r})"

    @property
    def address(self) -> Optional[str]:
        if self.pinned_address is not None:
            return self.pinned_address
        return self.binding.address if self.binding is not None else None

    @property
    def topics(self) -> List[Optional[str]]:
        return [] if self.descriptor.anonymous else [to_hex(self.descriptor.topic)]

    @property
    def stale(self) -> bool:
        return self.filter_id is None or self.installed_address != self.address

    def install(self) -> str:
        """Register the filter with the node using the current address."""
        with self._lock:
            addr = self.address
            fid = self.client.new_filter(
                address=addr,
                topics=self.topics,
                from_block=self.from_block,
                to_block=self.to_block,
            )
            self.filter_id = str(fid)
            self.installed_address = addr
            log.info("filter %s installed for %s at %s", self.filter_id, self.descriptor.signature, addr)
            return self.filter_id

    def _current_id(self) -> str:
        with self._lock:
            if self.filter_id is not None and not self.stale:
                return self.filter_id
            if self.filter_id is not None:
                log.warning(
                    "re-installing filter %s for %s: address %s -> %s",
                    self.filter_id, self.descriptor.signature, self.installed_address, self.address,
                )
            return self.install()

    def _rebind(self, address: Optional[str]) -> None:
        """
        Re-register against `address` immediately, since a node only reports
        changes for logs emitted after the filter exists. Called by the
        binding under its address lock.
        """
        with self._lock:
            if self.pinned_address is not None or self.filter_id is None or address == self.installed_address:
                return
            old = self.filter_id
            try:
                self.install()
            except ChainBindError as e:
                log.warning("could not re-install filter %s at %s, retrying on next fetch: %s", old, address, e)
                return
            self._uninstall_id(old)

    def _uninstall_id(self, filter_id: str) -> bool:
        fn = getattr(self.client, "uninstall_filter", None)
        if fn is None:
            log.debug("client has no uninstall_filter; dropping filter %s locally", filter_id)
            return False
        try:
            ok = bool(fn(filter_id))
        except ChainBindError as e:
            log.warning("uninstall of filter %s failed: %s", filter_id, e)
            return False
        log.info("filter %s uninstalled", filter_id)
        return ok

    def get_logs(self) -> List[DecodedLog]:
        """All logs matching the filter (eth_getFilterLogs)."""
        fid = self._current_id()
        return self._decode_all(self.client.get_filter_logs(fid))

    def get_changes(self) -> List[DecodedLog]:
        """Logs since the previous poll of this filter (eth_getFilterChanges)."""
        fid = self._current_id()
        return self._decode_all(self.client.get_filter_changes(fid))

    def uninstall(self) -> bool:
        """Remove the filter from the node, if the client supports it."""
        with self._lock:
            if self.filter_id is None:
                return False
            fn = getattr(self.client, "uninstall_filter", None)
            if fn is None:
                log.debug("client has no uninstall_filter; dropping filter %s locally", self.filter_id)
                ok = False
            else:
                ok = bool(fn(self.filter_id))
                log.info("filter %s uninstalled", self.filter_id)
            self.filter_id = None
            self.installed_address = None
            return ok

    def decode_log(self, raw: Mapping[str, Any]) -> DecodedLog:
        return decode_event_log(self.descriptor, raw, codec=self.codec, decode_data=self.decode_data)

    def _decode_all(self, raws: Sequence[RawLog]) -> List[DecodedLog]:
        out: List[DecodedLog] = []
        for raw in raws or []:
            if not matches(self.descriptor, raw):
                log.debug("skipping log with foreign topic0 for %s", self.descriptor.signature)
                continue
            out.append(self.decode_log(raw))
        return out
