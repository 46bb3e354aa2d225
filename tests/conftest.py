"""
Shared pytest fixtures:
- chain: a fresh FakeChain (see tests.harness)
- token_abi: a deep copy of TOKEN_ABI
- sleeps: monkeypatched time.sleep that records requested delays
"""
from __future__ import annotations

import copy
import time
import typing as t

import pytest

from tests.harness import TOKEN_ABI, FakeChain


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def token_abi() -> t.List[t.Dict[str, t.Any]]:
    return copy.deepcopy(TOKEN_ABI)


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> t.List[float]:
    """Replace time.sleep; the list collects every requested delay."""
    recorded: t.List[float] = []
    monkeypatch.setattr(time, "sleep", lambda s: recorded.append(s))
    return recorded
