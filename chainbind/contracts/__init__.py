from __future__ import annotations

from .binding import ContractBinding, RawCallResult
from .codegen import emit_python_client, write_python_client
from .events import DecodedLog, EventFilter, decode_event_log

__all__ = [
    "ContractBinding",
    "RawCallResult",
    "EventFilter",
    "DecodedLog",
    "decode_event_log",
    "emit_python_client",
    "write_python_client",
]
