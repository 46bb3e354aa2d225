"""
chainbind.contracts.codegen
===========================

Generate static, typed Python wrapper classes from an ABI.

The generated class wraps `chainbind.contracts.binding.ContractBinding` and
exposes one method per dispatch name:

- For *read-only* (view/pure) functions:
    def balance_of(self, owner: str) -> int:
        return self.binding.call("balance_of", owner)

- For *state-changing* functions:
    def transact_transfer(self, to: str, amount: int, *, wait: bool = False,
                          poll: PollConfig | None = None) -> TransactionHandle:
        ...

- Per event:
    def filter_transfer(self, *, from_block="0x0", to_block="latest",
                        decode_data=False) -> EventFilter:
        return self.binding.create_filter("transfer", ...)

Quickstart
----------
    from chainbind.contracts.codegen import emit_python_client

    src = emit_python_client(abi, class_name="TokenClient")
    with open("token_client.py", "w") as f:
        f.write(src)

    # Later:
    # from token_client import TokenClient
    # t = TokenClient(client, address="0x...")
"""

from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ..abi.schema import (AbiSchema, EventDescriptor, FunctionDescriptor,
                          Param, py_ident)
from ..abi.types import (AddressType, BoolType, BytesType, DynamicArrayType,
                         FixedArrayType, FixedBytesType, IntType, ParamType,
                         StringType, TupleType, UIntType)
from ..utils.bytes import BytesLike, ensure_bytes, to_hex

__all__ = ["emit_python_client", "write_python_client"]

# Names the generated methods already use for their own parameters.
_RESERVED = {"self", "wait", "poll", "from_block", "to_block", "decode_data"}
# Members of the generated class that function names must not shadow.
_CLASS_MEMBERS = {"binding", "address", "deploy", "estimate_gas"}


# ---------- Name & type mapping utilities ------------------------------------


def _py_type(t: ParamType) -> str:
    """Map an ABI type to a Python type hint string."""
    if isinstance(t, (UIntType, IntType)):
        return "int"
    if isinstance(t, BoolType):
        return "bool"
    if isinstance(t, (AddressType, StringType)):
        return "str"
    if isinstance(t, (BytesType, FixedBytesType)):
        return "bytes"
    if isinstance(t, (DynamicArrayType, FixedArrayType)):
        return f"List[{_py_type(t.item)}]"
    if isinstance(t, TupleType):
        return "Tuple[" + ", ".join(_py_type(c) for c in t.components) + "]" if t.components else "Tuple[()]"
    return "Any"


def _arg_names(params: Sequence[Param]) -> List[str]:
    out: List[str] = []
    for i, p in enumerate(params):
        name = py_ident(p.name) if p.name else f"arg{i}"
        if name in _RESERVED:
            name = f"{name}_"
        while name in out:
            name = f"{name}{i}"
        out.append(name)
    return out


def _sig_args(params: Sequence[Param]) -> Tuple[str, str]:
    """Return (", a: int, b: str", "a, b") for a parameter list."""
    names = _arg_names(params)
    if not names:
        return "", ""
    defs = ", ".join(f"{n}: {_py_type(p.type)}" for n, p in zip(names, params))
    return ", " + defs, ", ".join(names)


def _return_type(fn: FunctionDescriptor) -> str:
    if not fn.outputs:
        return "List[Any]"
    if len(fn.outputs) == 1:
        return _py_type(fn.outputs[0].type)
    return "List[Any]"


# ---------- Emission ----------------------------------------------------------

_HEADER = '''"""
Generated client for {title}

This file was generated by chainbind.contracts.codegen.emit_python_client.
Do not edit by hand.
"""
from __future__ import annotations

import json
from typing import Any, List, Optional, Tuple

from chainbind.config import PollConfig
from chainbind.contracts.binding import ContractBinding
from chainbind.contracts.events import EventFilter
from chainbind.tx.handle import DeploymentHandle, TransactionHandle
'''

_CLASS_TMPL = '''
class {class_name}:
    """Typed client for the "{contract_name}" contract.

    Parameters
    ----------
    client : chain client (see chainbind.rpc.eth.EthClient)
    address : 0x address of a deployed instance, if any
    sender : account used for transactions and calls
    """

    def __init__(self, client, *, address: Optional[str] = None, sender: Optional[str] = None,
                 code: Optional[str] = None, poll_config: Optional[PollConfig] = None):
        self.binding = ContractBinding(
            client=client,
            abi=_abi,
            code=code if code is not None else _bytecode,
            address=address,
            sender=sender,
            name="{contract_name}",
            poll_config=poll_config,
        )

    @property
    def address(self) -> Optional[str]:
        return self.binding.address

    def deploy(self{ctor_args}) -> DeploymentHandle:
        """Submit the contract-creation transaction."""
        return self.binding.deploy({ctor_names})

    def estimate_gas(self{ctor_args}) -> int:
        return self.binding.estimate_gas({ctor_names})
'''

_FN_VIEW_TMPL = '''
    def {method}(self{sig_args}) -> {ret_py}:
        """Read-only call: {signature}"""
        return self.binding.call("{dispatch}"{call_args})
'''

_FN_SEND_TMPL = '''
    def transact_{method}(self{sig_args}, *, wait: bool = False,
                          poll: Optional[PollConfig] = None) -> TransactionHandle:
        """State-changing tx: {signature}"""
        if wait:
            return self.binding.transact_and_wait("{dispatch}"{call_args}, poll=poll)
        return self.binding.transact("{dispatch}"{call_args})
'''

_EVENT_TMPL = '''
    def filter_{method}(self, *, from_block: str = "0x0", to_block: str = "latest",
                        decode_data: bool = False) -> EventFilter:
        """Register a filter for {signature}."""
        return self.binding.create_filter(
            "{dispatch}", from_block=from_block, to_block=to_block, decode_data=decode_data
        )
'''


def _emit_fn(dispatch: str, fn: FunctionDescriptor) -> str:
    sig_args, names = _sig_args(fn.inputs)
    call_args = f", {names}" if names else ""
    if fn.is_constant:
        return _FN_VIEW_TMPL.format(
            method=f"{dispatch}_" if dispatch in _CLASS_MEMBERS else dispatch,
            sig_args=sig_args,
            ret_py=_return_type(fn),
            signature=fn.signature,
            dispatch=dispatch,
            call_args=call_args,
        )
    return _FN_SEND_TMPL.format(
        method=dispatch,
        sig_args=sig_args,
        signature=fn.signature,
        dispatch=dispatch,
        call_args=call_args,
    )


def _emit_event(dispatch: str, ev: EventDescriptor) -> str:
    return _EVENT_TMPL.format(method=dispatch, signature=ev.signature, dispatch=dispatch)


def emit_python_client(
    abi: Union[AbiSchema, str, Sequence[Dict[str, Any]], Dict[str, Any]],
    *,
    class_name: str = "ContractClient",
    contract_name: Optional[str] = None,
    title: Optional[str] = None,
    code: Optional[Union[BytesLike, str]] = None,
    include_events: bool = True,
) -> str:
    """
    Generate Python source code for a wrapper class from the given ABI.

    Parameters
    ----------
    abi : ABI (list, JSON string, artifact dict or parsed AbiSchema).
    class_name : Name of the generated class.
    contract_name : Human-friendly name used in docstrings and logs (defaults to class_name).
    title : Optional header title string.
    code : Optional bytecode embedded as the default for `deploy`.
    include_events : If True, emit `filter_<event>` helpers.

    Returns
    -------
    str : Python source code.
    """
    schema = abi if isinstance(abi, AbiSchema) else AbiSchema.parse(abi)
    contract_name = contract_name or class_name
    title = title or f"{class_name} ({contract_name})"

    abi_literal = json.dumps(_schema_to_abi(schema), separators=(",", ":"), ensure_ascii=False)
    code_literal = repr(to_hex(ensure_bytes(code))) if code is not None else "None"

    ctor_args, ctor_names = _sig_args(schema.constructor_inputs)
    src = _HEADER.format(title=title)
    src += f"\n_abi = json.loads({abi_literal!r})\n_bytecode = {code_literal}\n"
    src += _CLASS_TMPL.format(
        class_name=class_name,
        contract_name=contract_name,
        ctor_args=ctor_args,
        ctor_names=ctor_names,
    )
    for dispatch, fn in schema.function_table.items():
        src += _emit_fn(dispatch, fn)
    if include_events:
        for dispatch, ev in schema.event_table.items():
            src += _emit_event(dispatch, ev)
    src += f'\n\n__all__ = ["{class_name}"]\n'
    return src


def _param_entry(p: Param, *, with_indexed: bool = False) -> Dict[str, Any]:
    entry: Dict[str, Any] = {"name": p.name, "type": p.type.canonical}
    if with_indexed:
        entry["indexed"] = p.indexed
    return entry


def _schema_to_abi(schema: AbiSchema) -> List[Dict[str, Any]]:
    """Re-serialize a parsed schema; tuple types are kept in their "(a,b)" spelling."""
    out: List[Dict[str, Any]] = []
    if schema.constructor is not None:
        out.append({
            "type": "constructor",
            "inputs": [_param_entry(p) for p in schema.constructor.inputs],
            "stateMutability": schema.constructor.state_mutability,
        })
    for fn in schema.functions:
        out.append({
            "type": "function",
            "name": fn.name,
            "inputs": [_param_entry(p) for p in fn.inputs],
            "outputs": [_param_entry(p) for p in fn.outputs],
            "stateMutability": fn.state_mutability,
        })
    for ev in schema.events:
        out.append({
            "type": "event",
            "name": ev.name,
            "inputs": [_param_entry(p, with_indexed=True) for p in ev.inputs],
            "anonymous": ev.anonymous,
        })
    return out


def write_python_client(
    output_path: str,
    abi: Union[AbiSchema, str, Sequence[Dict[str, Any]], Dict[str, Any]],
    **kwargs: Any,
) -> None:
    """
    Generate and write the client to `output_path` (keyword arguments as for
    `emit_python_client`).
    """
    src = emit_python_client(abi, **kwargs)
    os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(src)
