"""Refund orchestrator: one scan + submit pass per chain per cycle."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from swaprefund.chains.base import (
    DEFAULT_QUERY_TIMEOUT,
    ChainAClient,
    ChainBClient,
    Fee,
    SwapDirection,
)
from swaprefund.config import ConfigError
from swaprefund.refund.cursor import CursorStore
from swaprefund.refund.scanner import (
    DEFAULT_PAGE_LIMIT,
    BinanceSwapScanner,
    KavaSwapScanner,
    SwapScanner,
)
from swaprefund.refund.submitter import (
    BNB_PACING_SECONDS,
    DEFAULT_KAVA_FEE,
    KAVA_PACING_SECONDS,
    RefundBatchResult,
    RefundSubmitter,
    BinanceRefundSubmitter,
    KavaRefundSubmitter,
    SleepFn,
)
from swaprefund.utils.locks import CycleInProgressError, CycleLock


@dataclass
class CycleReport:
    """Summary of one refund cycle."""

    started_at: datetime
    skipped: bool = False
    results: dict[str, RefundBatchResult] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def refunded(self) -> int:
        return sum(result.submitted for result in self.results.values())

    @property
    def simulated(self) -> int:
        return sum(len(result.simulated) for result in self.results.values())


@dataclass
class ChainPipeline:
    """Scanner and submitter for one chain."""

    scanner: SwapScanner
    submitter: RefundSubmitter

    @property
    def chain(self) -> str:
        return self.scanner.chain


class RefundOrchestrator:
    """Automatically refunds expired swaps on Kava and Binance Chain.

    Chains run one after the other, Kava first; an error in one chain's pass
    is logged and does not stop the other. Overlapping calls to ``run()`` are
    skipped.
    """

    def __init__(
        self,
        kava_client: ChainAClient,
        bnb_client: ChainBClient,
        deputy_addresses: list[str],
        limit: int = DEFAULT_PAGE_LIMIT,
        offset_incoming: int = 0,
        offset_outgoing: int = 0,
        offset_kava: int = 0,
        query_timeout: float = DEFAULT_QUERY_TIMEOUT,
        kava_fee: Fee = DEFAULT_KAVA_FEE,
        kava_pacing_seconds: float = KAVA_PACING_SECONDS,
        bnb_pacing_seconds: float = BNB_PACING_SECONDS,
        dry_run: bool = False,
        sleep: SleepFn = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ):
        if not deputy_addresses:
            raise ConfigError("must specify at least one Binance Chain deputy address")

        self.logger = logger or logging.getLogger(__name__)
        self.deputy_addresses = list(deputy_addresses)

        self.cursors = CursorStore()
        self.cursors.register(kava_client.chain, offset=offset_kava)
        self.cursors.register(bnb_client.chain, SwapDirection.INCOMING, offset_incoming)
        self.cursors.register(bnb_client.chain, SwapDirection.OUTGOING, offset_outgoing)

        common = {"logger": self.logger}
        self.pipelines = [
            ChainPipeline(
                scanner=KavaSwapScanner(
                    kava_client, self.cursors, limit=limit, timeout=query_timeout, **common
                ),
                submitter=KavaRefundSubmitter(
                    kava_client,
                    fee=kava_fee,
                    pacing_seconds=kava_pacing_seconds,
                    dry_run=dry_run,
                    sleep=sleep,
                    **common,
                ),
            ),
            ChainPipeline(
                scanner=BinanceSwapScanner(
                    bnb_client,
                    self.cursors,
                    self.deputy_addresses,
                    limit=limit,
                    timeout=query_timeout,
                    **common,
                ),
                submitter=BinanceRefundSubmitter(
                    bnb_client,
                    pacing_seconds=bnb_pacing_seconds,
                    dry_run=dry_run,
                    sleep=sleep,
                    **common,
                ),
            ),
        ]

        self._cycle_lock = CycleLock("refund cycle")

    @property
    def running(self) -> bool:
        return self._cycle_lock.locked()

    async def run(self) -> CycleReport:
        """Run one refund cycle over both chains."""
        report = CycleReport(started_at=datetime.now(timezone.utc))

        try:
            async with self._cycle_lock:
                for pipeline in self.pipelines:
                    try:
                        report.results[pipeline.chain] = await self.refund_chain(pipeline)
                    except Exception as e:
                        self.logger.exception(f"{pipeline.chain} refund pass failed: {e}")
                        report.errors[pipeline.chain] = str(e)
        except CycleInProgressError:
            self.logger.warning("Previous refund cycle still running, skipping this one")
            report.skipped = True

        return report

    async def refund_chain(self, pipeline: ChainPipeline) -> RefundBatchResult:
        """Scan one chain for refundable swaps and refund them."""
        swap_ids = await pipeline.scanner.scan()
        self.logger.info(f"{pipeline.chain} refundable swap count: {len(swap_ids)}")

        result = await pipeline.submitter.submit(swap_ids)
        if result.simulated:
            self.logger.info(
                f"{pipeline.chain} dry run: {len(result.simulated)} refunds not broadcast"
            )
        elif result.attempted:
            self.logger.info(
                f"{pipeline.chain} refunds: {result.submitted} submitted, "
                f"{len(result.failed)} failed"
            )
        return result

    def log_offsets(self) -> dict[str, int]:
        """Log the current cursor offsets."""
        offsets = self.cursors.snapshot()
        self.logger.info("Current offsets:")
        for name, offset in offsets.items():
            self.logger.info(f"\t{name}: {offset}")
        return offsets
