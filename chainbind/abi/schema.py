"""
ABI descriptors & schema parsing.

This module defines:
- Param / FunctionDescriptor / EventDescriptor / ConstructorDescriptor
- AbiSchema: parses an ABI (list of entries or a JSON string) into the three
  descriptor collections and builds the static dispatch tables
- Helpers to compute canonical signatures, selectors and topics

Dispatch names
--------------
Each function gets a Python-friendly dispatch name: the snake_case ABI name
(`balanceOf` -> `balance_of`). When several functions share that name
(overloads), every one of them is named `name__type1__type2`, e.g.
`transfer__address__uint256`. The rule depends only on the ABI, so the same
ABI always yields the same table. Events follow the same rule.
"""

from __future__ import annotations

import json
import keyword
import re
from dataclasses import dataclass, field
from typing import (Any, Dict, Iterable, List, Mapping, Optional, Sequence,
                    Tuple, TypeVar, Union)

from ..errors import SchemaError
from ..utils.hash import keccak256_text
from .types import ParamType, parse_type

__all__ = [
    "Param",
    "FunctionDescriptor",
    "EventDescriptor",
    "ConstructorDescriptor",
    "AbiSchema",
    "py_ident",
    "canonical_signature",
    "function_selector",
    "event_topic",
]

_MUTABILITIES = ("view", "pure", "nonpayable", "payable")
_IGNORED_ENTRY_TYPES = ("fallback", "receive", "error")


# --- Name & signature utilities ----------------------------------------------

_PY_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def py_ident(name: str) -> str:
    """Return a safe Python identifier (snake_case), avoiding keywords."""
    if not name:
        return "arg"
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    snake = re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()
    snake = re.sub(r"[^A-Za-z0-9_]", "_", snake)
    if not _PY_IDENT_RE.match(snake) or keyword.iskeyword(snake):
        snake = f"{snake}_"
    if not _PY_IDENT_RE.match(snake):
        snake = f"_{snake}"
    return snake


def _type_ident(canonical: str) -> str:
    """uint256[] -> uint256_array, (address,bool) -> tuple_address_bool_"""
    s = canonical.replace("[]", "_array").replace("[", "_array").replace("]", "")
    s = s.replace("(", "tuple_").replace(")", "_").replace(",", "_")
    return s


def canonical_signature(name: str, types: Sequence[ParamType]) -> str:
    """e.g. transfer(address,uint256); parameter names never take part."""
    return f"{name}(" + ",".join(t.canonical for t in types) + ")"


def function_selector(signature: str) -> bytes:
    """First 4 bytes of keccak256(signature)."""
    return keccak256_text(signature)[:4]


def event_topic(signature: str) -> bytes:
    """Full 32-byte keccak256 of the event signature."""
    return keccak256_text(signature)


# --- Descriptors -------------------------------------------------------------


@dataclass(frozen=True)
class Param:
    name: str
    type: ParamType
    indexed: bool = False


@dataclass(frozen=True)
class FunctionDescriptor:
    name: str
    inputs: Tuple[Param, ...] = ()
    outputs: Tuple[Param, ...] = ()
    state_mutability: str = "nonpayable"
    signature: str = field(init=False)
    selector: bytes = field(init=False, repr=False)

    def __post_init__(self) -> None:
        sig = canonical_signature(self.name, self.input_types)
        object.__setattr__(self, "signature", sig)
        object.__setattr__(self, "selector", function_selector(sig))

    @property
    def input_types(self) -> Tuple[ParamType, ...]:
        return tuple(p.type for p in self.inputs)

    @property
    def output_types(self) -> Tuple[ParamType, ...]:
        return tuple(p.type for p in self.outputs)

    @property
    def is_constant(self) -> bool:
        return self.state_mutability in ("view", "pure")


@dataclass(frozen=True)
class EventDescriptor:
    name: str
    inputs: Tuple[Param, ...] = ()
    anonymous: bool = False
    signature: str = field(init=False)
    topic: bytes = field(init=False, repr=False)

    def __post_init__(self) -> None:
        # indexed and non-indexed inputs all take part in the signature
        sig = canonical_signature(self.name, tuple(p.type for p in self.inputs))
        object.__setattr__(self, "signature", sig)
        object.__setattr__(self, "topic", event_topic(sig))

    @property
    def indexed_inputs(self) -> Tuple[Param, ...]:
        return tuple(p for p in self.inputs if p.indexed)

    @property
    def data_inputs(self) -> Tuple[Param, ...]:
        return tuple(p for p in self.inputs if not p.indexed)


@dataclass(frozen=True)
class ConstructorDescriptor:
    inputs: Tuple[Param, ...] = ()
    state_mutability: str = "nonpayable"

    @property
    def input_types(self) -> Tuple[ParamType, ...]:
        return tuple(p.type for p in self.inputs)


# --- Entry validation --------------------------------------------------------


def _require(cond: bool, msg: str, entry: Any = None) -> None:
    if not cond:
        raise SchemaError(msg, entry=entry)


def _type_string(p: Mapping[str, Any], ctx: str) -> str:
    """Expand JSON "tuple" + "components" into the "(t1,t2)" spelling."""
    typ = p.get("type")
    _require(isinstance(typ, str) and bool(typ), f"{ctx}: param.type must be a non-empty string", p)
    if typ.startswith("tuple"):
        comps = p.get("components")
        _require(isinstance(comps, list), f"{ctx}: tuple param requires a 'components' list", p)
        inner = ",".join(_type_string(c, ctx) for c in comps)
        return f"({inner})" + typ[len("tuple"):]
    return typ


def _parse_param(p: Any, ctx: str, *, allow_indexed: bool = False) -> Param:
    _require(isinstance(p, Mapping), f"{ctx}: parameter must be an object", p)
    name = p.get("name") or ""
    _require(isinstance(name, str), f"{ctx}: param.name must be string", p)
    type_str = _type_string(p, ctx)
    try:
        typ = parse_type(type_str)
    except SchemaError as e:
        raise SchemaError(f"{ctx}: {e.message}", entry=p) from e
    indexed = bool(p.get("indexed", False)) if allow_indexed else False
    return Param(name=name, type=typ, indexed=indexed)


def _parse_params(raw: Any, ctx: str, entry: Any, *, allow_indexed: bool = False) -> Tuple[Param, ...]:
    if raw is None:
        return ()
    _require(isinstance(raw, list), f"{ctx} must be a list", entry)
    return tuple(_parse_param(p, ctx, allow_indexed=allow_indexed) for p in raw)


def _mutability(e: Mapping[str, Any]) -> str:
    mut = e.get("stateMutability")
    if mut is None:
        # pre-0.4.16 ABIs carry constant/payable flags instead
        if e.get("constant"):
            return "view"
        return "payable" if e.get("payable") else "nonpayable"
    _require(mut in _MUTABILITIES, f"invalid stateMutability: {mut!r}", e)
    return str(mut)


def _parse_function(e: Mapping[str, Any]) -> FunctionDescriptor:
    name = e.get("name")
    _require(isinstance(name, str) and bool(name), "function.name must be non-empty string", e)
    return FunctionDescriptor(
        name=name,
        inputs=_parse_params(e.get("inputs"), f"function {name} inputs", e),
        outputs=_parse_params(e.get("outputs"), f"function {name} outputs", e),
        state_mutability=_mutability(e),
    )


def _parse_event(e: Mapping[str, Any]) -> EventDescriptor:
    name = e.get("name")
    _require(isinstance(name, str) and bool(name), "event.name must be non-empty string", e)
    return EventDescriptor(
        name=name,
        inputs=_parse_params(e.get("inputs"), f"event {name} inputs", e, allow_indexed=True),
        anonymous=bool(e.get("anonymous", False)),
    )


def _parse_constructor(e: Mapping[str, Any]) -> ConstructorDescriptor:
    return ConstructorDescriptor(
        inputs=_parse_params(e.get("inputs"), "constructor inputs", e),
        state_mutability=_mutability(e),
    )


def _load_entries(abi: Any) -> List[Any]:
    if isinstance(abi, (str, bytes, bytearray)):
        try:
            abi = json.loads(abi)
        except ValueError as e:
            raise SchemaError(f"ABI is not valid JSON: {e}") from e
    if isinstance(abi, Mapping) and "abi" in abi:
        # compiler artifact ({"abi": [...], "bytecode": ...})
        abi = abi["abi"]
    _require(isinstance(abi, list), "ABI must be a list of entries")
    return abi


# --- Dispatch tables ---------------------------------------------------------

_D = TypeVar("_D", FunctionDescriptor, EventDescriptor)


def _types_of(d: Union[FunctionDescriptor, EventDescriptor]) -> Iterable[ParamType]:
    return (p.type for p in d.inputs)


def _build_table(descriptors: Sequence[_D], kind: str) -> Dict[str, _D]:
    groups: Dict[str, List[_D]] = {}
    for d in descriptors:
        groups.setdefault(py_ident(d.name), []).append(d)

    table: Dict[str, _D] = {}
    for base, members in groups.items():
        for d in members:
            if len(members) == 1:
                key = base
            else:
                key = base + "".join("__" + _type_ident(t.canonical) for t in _types_of(d))
            _require(key not in table, f"Duplicate {kind} in ABI: {d.signature}")
            table[key] = d
    return table


# --- Schema ------------------------------------------------------------------


class AbiSchema:
    """
    Parsed ABI: constructor (optional), functions and events, plus the
    dispatch tables that map dispatch names to descriptors.

    Immutable after construction.
    """

    __slots__ = ("constructor", "functions", "events", "function_table", "event_table")

    def __init__(
        self,
        *,
        constructor: Optional[ConstructorDescriptor],
        functions: Sequence[FunctionDescriptor],
        events: Sequence[EventDescriptor],
    ) -> None:
        self.constructor = constructor
        self.functions: Tuple[FunctionDescriptor, ...] = tuple(functions)
        self.events: Tuple[EventDescriptor, ...] = tuple(events)
        self.function_table: Dict[str, FunctionDescriptor] = _build_table(self.functions, "function")
        self.event_table: Dict[str, EventDescriptor] = _build_table(self.events, "event")

    @classmethod
    def parse(cls, abi: Any) -> "AbiSchema":
        """
        Parse an ABI value (list of entries, JSON string, or artifact with "abi").

        Raises SchemaError on malformed entries, unparseable types, unnamed
        functions/events, more than one constructor, or an ABI with no
        functions and no events.
        """
        entries = _load_entries(abi)
        constructor: Optional[ConstructorDescriptor] = None
        functions: List[FunctionDescriptor] = []
        events: List[EventDescriptor] = []
        for i, raw in enumerate(entries):
            _require(isinstance(raw, Mapping), f"ABI entry at index {i} must be an object", raw)
            etype = raw.get("type", "function")
            if etype == "function":
                functions.append(_parse_function(raw))
            elif etype == "event":
                events.append(_parse_event(raw))
            elif etype == "constructor":
                _require(constructor is None, "ABI declares more than one constructor", raw)
                constructor = _parse_constructor(raw)
            elif etype in _IGNORED_ENTRY_TYPES:
                continue
            else:
                raise SchemaError(f"Unsupported ABI entry type: {etype!r}", entry=raw)
        _require(bool(functions or events), "ABI has no functions or events")
        return cls(constructor=constructor, functions=functions, events=events)

    @property
    def constructor_inputs(self) -> Tuple[Param, ...]:
        return self.constructor.inputs if self.constructor is not None else ()

    def function(self, ref: Union[str, FunctionDescriptor]) -> FunctionDescriptor:
        """
        Resolve a function by descriptor, dispatch name, canonical signature
        ("transfer(address,uint256)") or plain ABI name when it is not overloaded.
        """
        return self._resolve(ref, FunctionDescriptor, self.functions, self.function_table, "function")

    def event(self, ref: Union[str, EventDescriptor]) -> EventDescriptor:
        """Resolve an event the same way `function` resolves functions."""
        return self._resolve(ref, EventDescriptor, self.events, self.event_table, "event")

    def dispatch_name(self, d: Union[FunctionDescriptor, EventDescriptor]) -> str:
        table: Mapping[str, Any] = self.function_table if isinstance(d, FunctionDescriptor) else self.event_table
        for key, value in table.items():
            if value == d:
                return key
        raise SchemaError(f"descriptor is not part of this ABI: {d.signature}")

    @staticmethod
    def _resolve(ref: Any, cls: type, pool: Sequence[Any], table: Mapping[str, Any], kind: str) -> Any:
        if isinstance(ref, cls):
            return ref
        if not isinstance(ref, str):
            raise SchemaError(f"{kind} reference must be a name or descriptor, got {type(ref).__name__}")
        if ref in table:
            return table[ref]
        if "(" in ref:
            for d in pool:
                if d.signature == ref.replace(" ", ""):
                    return d
        by_name = [d for d in pool if d.name == ref]
        if len(by_name) == 1:
            return by_name[0]
        if len(by_name) > 1:
            options = ", ".join(sorted(k for k, v in table.items() if v.name == ref))
            raise SchemaError(f"{kind} {ref!r} is overloaded; use one of: {options}")
        raise SchemaError(f"{kind.capitalize()} not found in ABI: {ref}")

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return (
            f"AbiSchema(constructor={self.constructor is not None}, "
            f"functions={list(self.function_table)}, events={list(self.event_table)})"
        )
