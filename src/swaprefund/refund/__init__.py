"""Refund engine: cursor store, swap scanners, refund submitters, orchestrator."""

from swaprefund.refund.cursor import CursorStore, PageCursor
from swaprefund.refund.orchestrator import CycleReport, RefundOrchestrator
from swaprefund.refund.scanner import (
    BinanceSwapScanner,
    ContinuationPolicy,
    KavaSwapScanner,
    SwapScanner,
)
from swaprefund.refund.submitter import (
    BinanceRefundSubmitter,
    KavaRefundSubmitter,
    RefundBatchResult,
    RefundPlan,
    RefundSubmitter,
)

__all__ = [
    "BinanceRefundSubmitter",
    "BinanceSwapScanner",
    "ContinuationPolicy",
    "CursorStore",
    "CycleReport",
    "KavaRefundSubmitter",
    "KavaSwapScanner",
    "PageCursor",
    "RefundBatchResult",
    "RefundOrchestrator",
    "RefundPlan",
    "RefundSubmitter",
    "SwapScanner",
]
