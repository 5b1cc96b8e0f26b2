"""Utility modules."""

from swaprefund.utils.locks import CycleInProgressError, CycleLock

__all__ = ["CycleInProgressError", "CycleLock"]
