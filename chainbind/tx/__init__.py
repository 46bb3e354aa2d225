from __future__ import annotations

from .handle import DeploymentHandle, TransactionHandle, TxState

__all__ = ["TxState", "TransactionHandle", "DeploymentHandle"]
