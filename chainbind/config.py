"""
chainbind configuration: RPC endpoint/retry settings and receipt polling.

- Loads sane defaults and supports overrides via environment variables (CHAINBIND_*).
- Provides helpers for building HTTP headers and validating endpoints.

No module-level default instance exists; clients are built from a config and
passed to each binding explicitly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .version import __version__

_DEFAULT_RPC = "http://127.0.0.1:8545"
_NULLABLE_POLL_FIELDS = ("timeout", "max_attempts")


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    return v if v is not None and v != "" else default


def _ensure_scheme(url: Optional[str], allowed: tuple[str, ...]) -> Optional[str]:
    if not url:
        return url
    lower = url.lower()
    if not any(lower.startswith(f"{sch}://") for sch in allowed):
        raise ValueError(f"URL must start with {allowed}, got: {url!r}")
    return url


@dataclass(slots=True)
class RpcConfig:
    rpc_url: str = field(default_factory=lambda: _DEFAULT_RPC)
    request_timeout: float = 10.0
    max_retries: int = 3
    backoff_factor: float = 0.25
    user_agent: str = field(default_factory=lambda: f"chainbind-py/{__version__}")

    @classmethod
    def from_env(cls, prefix: str = "CHAINBIND_") -> "RpcConfig":
        """
        Create config from environment variables:

        CHAINBIND_RPC_URL        (http/https)
        CHAINBIND_TIMEOUT        (float seconds)
        CHAINBIND_MAX_RETRIES    (int)
        CHAINBIND_BACKOFF        (float)
        CHAINBIND_USER_AGENT     (str)
        """
        rpc = _env(f"{prefix}RPC_URL", _DEFAULT_RPC)
        timeout = float(_env(f"{prefix}TIMEOUT", "10.0"))
        retries = int(_env(f"{prefix}MAX_RETRIES", "3"))
        backoff = float(_env(f"{prefix}BACKOFF", "0.25"))
        ua = _env(f"{prefix}USER_AGENT", f"chainbind-py/{__version__}")

        _ensure_scheme(rpc, ("http", "https"))

        return cls(
            rpc_url=rpc or _DEFAULT_RPC,
            request_timeout=timeout,
            max_retries=retries,
            backoff_factor=backoff,
            user_agent=ua or f"chainbind-py/{__version__}",
        )

    @classmethod
    def with_overrides(cls, base: Optional["RpcConfig"] = None, **overrides: Any) -> "RpcConfig":
        """
        Build from an existing config plus keyword overrides.
        Unknown keys are ignored.
        """
        base = base or cls.from_env()
        data = base.to_dict()
        data.update({k: v for k, v in overrides.items() if k in data})
        if "rpc_url" in overrides:
            _ensure_scheme(data["rpc_url"], ("http", "https"))
        return cls(**data)

    def http_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rpc_url": self.rpc_url,
            "request_timeout": float(self.request_timeout),
            "max_retries": int(self.max_retries),
            "backoff_factor": float(self.backoff_factor),
            "user_agent": self.user_agent,
        }


@dataclass(frozen=True)
class PollConfig:
    """
    How a TransactionHandle waits for its receipt.

    poll_interval : seconds slept between receipt queries (> 0)
    timeout       : wall-clock budget in seconds; None for no limit
    max_attempts  : receipt queries before giving up; None for no limit
    backoff       : interval multiplier applied after each empty poll (>= 1)
    max_interval  : cap for the grown interval
    """

    poll_interval: float = 1.0
    timeout: Optional[float] = 120.0
    max_attempts: Optional[int] = None
    backoff: float = 1.0
    max_interval: float = 10.0

    def __post_init__(self) -> None:
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")
        if self.timeout is not None and self.timeout < 0:
            raise ValueError("timeout must be >= 0 or None")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1 or None")
        if self.backoff < 1.0:
            raise ValueError("backoff must be >= 1.0")
        if self.max_interval < self.poll_interval:
            raise ValueError("max_interval must be >= poll_interval")

    @classmethod
    def from_env(cls, prefix: str = "CHAINBIND_") -> "PollConfig":
        """
        CHAINBIND_POLL_INTERVAL      (float seconds)
        CHAINBIND_POLL_TIMEOUT       (float seconds, "none" for unbounded)
        CHAINBIND_POLL_MAX_ATTEMPTS  (int)
        CHAINBIND_POLL_BACKOFF       (float)
        """
        interval = float(_env(f"{prefix}POLL_INTERVAL", "1.0"))
        timeout_s = _env(f"{prefix}POLL_TIMEOUT", "120.0")
        attempts = _env(f"{prefix}POLL_MAX_ATTEMPTS")
        backoff = float(_env(f"{prefix}POLL_BACKOFF", "1.0"))
        return cls(
            poll_interval=interval,
            timeout=None if str(timeout_s).lower() == "none" else float(timeout_s),
            max_attempts=int(attempts) if attempts is not None else None,
            backoff=backoff,
            max_interval=max(10.0, interval),
        )

    def replace(self, **overrides: Any) -> "PollConfig":
        """
        Copy with the given overrides applied. `timeout=None` and
        `max_attempts=None` remove that limit; None for any other field keeps
        the current value.
        """
        data = {
            "poll_interval": self.poll_interval,
            "timeout": self.timeout,
            "max_attempts": self.max_attempts,
            "backoff": self.backoff,
            "max_interval": self.max_interval,
        }
        for k, v in overrides.items():
            if k not in data or (v is None and k not in _NULLABLE_POLL_FIELDS):
                continue
            data[k] = v
        if data["max_interval"] < data["poll_interval"]:
            data["max_interval"] = data["poll_interval"]
        return PollConfig(**data)


__all__ = ["RpcConfig", "PollConfig"]
