"""
HTTP JSON-RPC client (sync).

- Built on httpx; friendly to unit tests (mock the transport with respx).
- Retries on transient transport failures and 429/502/503/504 with
  exponential backoff and jitter. JSON-RPC error objects are never retried.

Example:
    from chainbind.rpc.http import RpcClient
    rpc = RpcClient("http://localhost:8545")
    block = rpc.request("eth_blockNumber")
"""

from __future__ import annotations

import json
import logging
import random
import time
from dataclasses import dataclass, field
from itertools import count
from typing import (Any, Dict, Iterator, List, Mapping, Optional, Sequence,
                    Tuple, Union)

import httpx

from ..config import RpcConfig
from ..errors import JsonRpcCode, RpcError, from_jsonrpc_error
from ..version import __version__ as PKG_VERSION

log = logging.getLogger(__name__)

JSON = Union[dict, list, str, int, float, bool, None]
Params = Union[Sequence[Any], Mapping[str, Any], None]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _is_retriable_http(status: int) -> bool:
    # Typical transient HTTP statuses: 429/502/503/504
    return status in (429, 502, 503, 504)


def _jitter_backoff(base: float, factor: float, attempt: int, jitter: float) -> float:
    # Exponential backoff with jitter in [0, jitter]
    return base * (factor ** max(attempt - 1, 0)) + random.random() * jitter


class _TransientHttpStatus(Exception):
    def __init__(self, status: int) -> None:
        super().__init__(f"HTTP {status}")
        self.status = status


@dataclass
class RpcClient:
    """Synchronous JSON-RPC 2.0 client over HTTP."""

    url: str
    timeout: float = 30.0
    max_retries: int = 3
    backoff_base: float = 0.15
    backoff_factor: float = 1.8
    backoff_jitter: float = 0.2
    headers: Optional[Mapping[str, str]] = None
    _id_counter: Iterator[int] = field(default_factory=lambda: count(start=_now_ms()))
    _client: Any = field(init=False, default=None)

    def __post_init__(self) -> None:
        merged_headers: Dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": f"chainbind-py/{PKG_VERSION}",
        }
        if self.headers:
            merged_headers.update(dict(self.headers))
        self._client = httpx.Client(timeout=self.timeout, headers=merged_headers)

    @classmethod
    def from_config(cls, cfg: RpcConfig) -> "RpcClient":
        return cls(
            url=cfg.rpc_url,
            timeout=cfg.request_timeout,
            max_retries=cfg.max_retries,
            backoff_base=cfg.backoff_factor,
            headers=cfg.http_headers(),
        )

    # --- context manager -------------------------------------------------

    def __enter__(self) -> "RpcClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.close()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()

    # --- public API ------------------------------------------------------

    def request(self, method: str, params: Params = None, *, id: Optional[Union[int, str]] = None) -> JSON:
        """Perform a single JSON-RPC request and return `result` or raise RpcError."""
        payload = self._make_payload(method, params, id)
        log.debug("rpc -> %s id=%s", method, payload["id"])
        resp = self._send_with_retries(payload, method=method)
        if not isinstance(resp, dict):
            raise RpcError(method=method, code=JsonRpcCode.INTERNAL_ERROR, message="Invalid JSON-RPC response type", data=type(resp).__name__)
        if resp.get("error") is not None:
            raise from_jsonrpc_error(resp["error"], method=method, request_id=resp.get("id"))
        if "result" not in resp:
            raise RpcError(method=method, code=JsonRpcCode.INTERNAL_ERROR, message="Malformed JSON-RPC response", data=resp)
        return resp["result"]

    def batch(self, calls: Sequence[Tuple[str, Params]]) -> List[JSON]:
        """Perform a JSON-RPC batch; returns list of results in the same order as `calls`."""
        batch_payload: List[Dict[str, Any]] = []
        id_list: List[Any] = []
        for method, params in calls:
            p = self._make_payload(method, params)
            batch_payload.append(p)
            id_list.append(p["id"])
        resp = self._send_with_retries(batch_payload, method="batch")
        # Response is an array of objects with id/result or id/error (order not guaranteed)
        if not isinstance(resp, list):
            raise RpcError(method="batch", code=JsonRpcCode.INTERNAL_ERROR, message="Invalid batch response (not a list)", data=resp)

        by_id: Dict[Any, JSON] = {}
        for item in resp:
            if not isinstance(item, dict) or "id" not in item:
                raise RpcError(method="batch", code=JsonRpcCode.INTERNAL_ERROR, message="Malformed item in batch response", data=item)
            if item.get("error") is not None:
                raise from_jsonrpc_error(item["error"], method="batch", request_id=item["id"])
            by_id[item["id"]] = item.get("result")

        ordered: List[JSON] = []
        for rid in id_list:
            if rid not in by_id:
                raise RpcError(method="batch", code=JsonRpcCode.INTERNAL_ERROR, message=f"Missing result for id {rid}", data=resp)
            ordered.append(by_id[rid])
        return ordered

    # --- internals -------------------------------------------------------

    def _make_payload(self, method: str, params: Params, id: Optional[Union[int, str]] = None) -> Dict[str, Any]:
        if id is None:
            id = next(self._id_counter)
        if params is None:
            params = []
        elif isinstance(params, Mapping):
            params = dict(params)
        elif isinstance(params, Sequence) and not isinstance(params, (str, bytes, bytearray)):
            params = list(params)
        else:
            # Coerce single param into positional list
            params = [params]  # type: ignore[list-item]
        return {"jsonrpc": "2.0", "id": id, "method": method, "params": params}

    def _send_with_retries(self, payload: Union[Dict[str, Any], List[Dict[str, Any]]], *, method: str) -> JSON:
        last_exc: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 2):  # N retries -> N+1 attempts
            try:
                return self._send_once(payload, method=method)
            except (httpx.TransportError, _TransientHttpStatus) as e:
                last_exc = e
                if attempt > self.max_retries:
                    break
                delay = _jitter_backoff(self.backoff_base, self.backoff_factor, attempt, self.backoff_jitter)
                log.warning("rpc %s attempt %d failed (%s); retrying in %.2fs", method, attempt, e, delay)
                time.sleep(delay)
        raise RpcError(method=method, code=JsonRpcCode.TRANSPORT_ERROR, message="RPC transport failed", data=str(last_exc))

    def _send_once(self, payload: Union[Dict[str, Any], List[Dict[str, Any]]], *, method: str) -> JSON:
        body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
        r = self._client.post(self.url, content=body)
        if _is_retriable_http(r.status_code):
            raise _TransientHttpStatus(r.status_code)
        # Avoid raise_for_status() to keep error body visible below
        try:
            return r.json()
        except ValueError as e:
            raise RpcError(
                method=method,
                code=JsonRpcCode.INTERNAL_ERROR,
                message="Non-JSON response from RPC",
                data=f"HTTP {r.status_code}: {r.text[:256]}",
                http_status=r.status_code,
            ) from e


__all__ = ["RpcClient"]
