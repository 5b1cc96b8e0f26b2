"""Refund submitters: broadcast one refund per swap, strictly in order.

A failed refund is logged and skipped; the swap stays expired on chain and
is picked up again by the next cycle. There is no retry within a cycle.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from swaprefund.chains.base import ChainAClient, ChainBClient, Fee, SubmissionError

KAVA_PACING_SECONDS = 25.0
BNB_PACING_SECONDS = 5.0

DEFAULT_KAVA_FEE = Fee(amount=50000, denom="ukava", gas=300000)

SleepFn = Callable[[float], Awaitable[None]]


@dataclass
class RefundPlan:
    """Ordered swap IDs for one submission pass.

    For the account-model chain ``base_sequence`` is the signer's sequence
    before the pass; the i-th refund uses ``base_sequence + i`` whether or not
    the earlier refunds landed.
    """

    swap_ids: list[str]
    base_sequence: Optional[int] = None

    def sequence_for(self, index: int) -> int:
        if self.base_sequence is None:
            raise ValueError("Plan has no base sequence")
        return self.base_sequence + index

    def __len__(self) -> int:
        return len(self.swap_ids)


@dataclass
class RefundBatchResult:
    """Outcome of one submission pass."""

    chain: str
    attempted: int = 0
    succeeded: list[tuple[str, Optional[str]]] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)
    simulated: list[str] = field(default_factory=list)

    @property
    def submitted(self) -> int:
        return len(self.succeeded)


class RefundSubmitter(ABC):
    """Abstract base class for sequential refund submission."""

    def __init__(
        self,
        pacing_seconds: float,
        dry_run: bool = False,
        sleep: SleepFn = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize submitter.

        Args:
            pacing_seconds: Delay between two broadcasts
            dry_run: Log refunds instead of broadcasting them
            sleep: Async sleep function (injectable for tests)
            logger: Logger to report to (defaults to the module logger)
        """
        self.pacing_seconds = pacing_seconds
        self.dry_run = dry_run
        self._sleep = sleep
        self.logger = logger or logging.getLogger(__name__)

    @property
    @abstractmethod
    def chain(self) -> str:
        pass

    async def plan(self, swap_ids: list[str]) -> Optional[RefundPlan]:
        """Build the plan for a pass, or None if the pass cannot run."""
        return RefundPlan(swap_ids=list(swap_ids))

    @abstractmethod
    async def submit_one(self, plan: RefundPlan, index: int) -> Optional[str]:
        """Broadcast the refund for ``plan.swap_ids[index]``.

        Returns:
            Transaction hash

        Raises:
            Exception: Any failure; the caller logs it and moves on
        """
        pass

    def describe(self, plan: RefundPlan, index: int) -> str:
        return plan.swap_ids[index]

    async def submit(self, swap_ids: list[str]) -> RefundBatchResult:
        """Refund each swap in order. Never raises for a single refund failure."""
        result = RefundBatchResult(chain=self.chain)
        if not swap_ids:
            return result

        plan = await self.plan(swap_ids)
        if plan is None:
            return result

        for index, swap_id in enumerate(plan.swap_ids):
            if index and not self.dry_run:
                # Let the previous refund land in a block first
                await self._sleep(self.pacing_seconds)

            result.attempted += 1

            if self.dry_run:
                self.logger.info(f"\t[dry-run] Would refund swap {self.describe(plan, index)}")
                result.simulated.append(swap_id)
                continue

            self.logger.info(f"\tRefunding swap {self.describe(plan, index)}")
            try:
                tx_hash = await self.submit_one(plan, index)
            except Exception as e:
                self.logger.error(f"\tCould not refund {self.chain} swap {swap_id}: {e}")
                result.failed.append((swap_id, str(e)))
                continue

            self.logger.info(f"\tTx hash: {tx_hash}")
            result.succeeded.append((swap_id, tx_hash))

        return result


class KavaRefundSubmitter(RefundSubmitter):
    """Submitter for the account-model chain with client-side sequences."""

    def __init__(
        self,
        client: ChainAClient,
        fee: Fee = DEFAULT_KAVA_FEE,
        pacing_seconds: float = KAVA_PACING_SECONDS,
        **kwargs,
    ):
        super().__init__(pacing_seconds, **kwargs)
        self.client = client
        self.fee = fee

    @property
    def chain(self) -> str:
        return self.client.chain

    async def plan(self, swap_ids: list[str]) -> Optional[RefundPlan]:
        try:
            account = await self.client.load_account_metadata(self.client.address)
        except Exception as e:
            self.logger.error(
                f"Could not load {self.chain} account {self.client.address}, "
                f"skipping {len(swap_ids)} refunds: {e}"
            )
            return None

        return RefundPlan(swap_ids=list(swap_ids), base_sequence=account.sequence)

    def describe(self, plan: RefundPlan, index: int) -> str:
        return f"{plan.swap_ids[index]} (sequence {plan.sequence_for(index)})"

    async def submit_one(self, plan: RefundPlan, index: int) -> Optional[str]:
        return await self.client.submit_refund(
            plan.swap_ids[index], self.fee, plan.sequence_for(index)
        )


class BinanceRefundSubmitter(RefundSubmitter):
    """Submitter for the dual-direction chain; the client manages sequences."""

    def __init__(
        self,
        client: ChainBClient,
        pacing_seconds: float = BNB_PACING_SECONDS,
        **kwargs,
    ):
        super().__init__(pacing_seconds, **kwargs)
        self.client = client

    @property
    def chain(self) -> str:
        return self.client.chain

    async def submit_one(self, plan: RefundPlan, index: int) -> Optional[str]:
        swap_id = plan.swap_ids[index]
        response = await self.client.submit_refund(self.client.address, swap_id)
        if not response.ok:
            raise SubmissionError(
                f"refund returned status {response.status}"
                + (f": {response.log}" if response.log else ""),
                swap_id=swap_id,
            )
        return response.tx_hash
