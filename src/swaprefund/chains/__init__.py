"""Chain adapter interfaces for the refund engine.

Concrete adapters live in swaprefund.chains.kava and swaprefund.chains.binance.
"""

from swaprefund.chains.base import (
    AccountMetadata,
    ChainAClient,
    ChainBClient,
    ChainError,
    Fee,
    NodeInfo,
    QueryError,
    RefundResponse,
    SubmissionError,
    SwapDirection,
    SwapRecord,
    SwapStatus,
)

__all__ = [
    "AccountMetadata",
    "ChainAClient",
    "ChainBClient",
    "ChainError",
    "Fee",
    "NodeInfo",
    "QueryError",
    "RefundResponse",
    "SubmissionError",
    "SwapDirection",
    "SwapRecord",
    "SwapStatus",
]
