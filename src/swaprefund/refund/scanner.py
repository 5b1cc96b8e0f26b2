"""Swap scanners: page through a chain's swap listing and collect refundable IDs.

Pagination follows one named policy for both chains, "full-page continuation,
partial/empty-page reset":

- a page with exactly ``limit`` items means there may be more, so the cursor
  advances by ``limit`` and the next page is requested;
- a short or empty page ends the scan, and the cursor is rewound to the offset
  the scan started from.

Offsets therefore never move between cycles: each cycle revisits the whole
range from the starting offset, picking up swaps that expired since the last
run.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from swaprefund.chains.base import (
    DEFAULT_QUERY_TIMEOUT,
    ChainAClient,
    ChainBClient,
    QueryError,
    SwapDirection,
    SwapRecord,
    SwapStatus,
)
from swaprefund.config import ConfigError
from swaprefund.refund.cursor import CursorStore, PageCursor

DEFAULT_PAGE_LIMIT = 100

PageFetcher = Callable[[int], Awaitable[list[SwapRecord]]]


class ContinuationPolicy:
    """Full-page continuation, partial/empty-page reset."""

    def __init__(self, limit: int = DEFAULT_PAGE_LIMIT):
        if limit <= 0:
            raise ValueError(f"Page limit must be positive, got {limit}")
        self.limit = limit

    def should_continue(self, page_size: int) -> bool:
        return page_size == self.limit


class SwapScanner(ABC):
    """Abstract base class for refundable swap scanners."""

    def __init__(
        self,
        cursors: CursorStore,
        limit: int = DEFAULT_PAGE_LIMIT,
        timeout: float = DEFAULT_QUERY_TIMEOUT,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize scanner.

        Args:
            cursors: Cursor store owning the pagination offsets
            limit: Page size
            timeout: Per-request query timeout in seconds
            logger: Logger to report to (defaults to the module logger)
        """
        self.cursors = cursors
        self.policy = ContinuationPolicy(limit)
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

    @property
    def limit(self) -> int:
        return self.policy.limit

    @property
    @abstractmethod
    def chain(self) -> str:
        pass

    @abstractmethod
    async def scan(self) -> list[str]:
        """Collect the IDs of all refundable swaps.

        Returns:
            Swap IDs in discovery order (empty if the chain is unreachable)
        """
        pass

    async def _scan_pages(
        self,
        cursor: PageCursor,
        fetch_page: PageFetcher,
        accept: Callable[[SwapRecord], bool],
    ) -> Optional[list[SwapRecord]]:
        """Page through a listing starting at the cursor's offset.

        Returns:
            Accepted records, or None if a page request failed
        """
        cursor.begin()
        matches: list[SwapRecord] = []

        while True:
            try:
                page = await fetch_page(cursor.offset)
            except (QueryError, asyncio.TimeoutError) as e:
                self.logger.error(f"Couldn't query swaps on {self.chain} at {cursor}: {e}")
                cursor.rewind()
                return None

            self.logger.debug(f"{cursor}: {len(page)} swaps in page")
            matches.extend(record for record in page if accept(record))

            if self.policy.should_continue(len(page)):
                cursor.advance(self.limit)
                continue

            cursor.rewind()
            return matches


class KavaSwapScanner(SwapScanner):
    """Scanner for the account-model chain.

    Expired swaps are filtered server-side. The listing does not carry swap
    IDs, so each ID is derived from (random_number_hash, sender,
    sender_other_chain).
    """

    def __init__(self, client: ChainAClient, cursors: CursorStore, **kwargs):
        super().__init__(cursors, **kwargs)
        self.client = client

    @property
    def chain(self) -> str:
        return self.client.chain

    async def _fetch_page(self, offset: int) -> list[SwapRecord]:
        return await asyncio.wait_for(
            self.client.list_swaps(SwapStatus.EXPIRED, offset, self.limit, self.timeout),
            timeout=self.timeout,
        )

    def _swap_id(self, record: SwapRecord) -> Optional[str]:
        if record.random_number_hash and record.sender and record.sender_other_chain:
            return self.client.compute_swap_id(
                record.random_number_hash, record.sender, record.sender_other_chain
            )
        return record.swap_id

    async def scan(self) -> list[str]:
        cursor = self.cursors.get(self.chain)
        records = await self._scan_pages(cursor, self._fetch_page, accept=lambda record: True)
        if not records:
            return []

        swap_ids = []
        for record in records:
            try:
                swap_id = self._swap_id(record)
            except ValueError as e:
                self.logger.warning(f"Cannot derive {self.chain} swap ID for {record}: {e}")
                continue
            if swap_id:
                swap_ids.append(swap_id)
            else:
                self.logger.warning(f"Skipping {self.chain} swap without ID data: {record}")
        return swap_ids


class BinanceSwapScanner(SwapScanner):
    """Scanner for the dual-direction chain.

    Swaps are listed per deputy, as creator (incoming) and as recipient
    (outgoing). The chain has no "expired" status, so open swaps whose
    expire height has passed the current block height are selected
    client-side.

    Every deputy is scanned from the direction's starting offset: the cursor
    is rewound at the end of each deputy's pass.
    """

    def __init__(
        self,
        client: ChainBClient,
        cursors: CursorStore,
        deputy_addresses: list[str],
        **kwargs,
    ):
        super().__init__(cursors, **kwargs)
        if not deputy_addresses:
            raise ConfigError("must specify at least one Binance Chain deputy address")
        self.client = client
        self.deputy_addresses = list(deputy_addresses)

    @property
    def chain(self) -> str:
        return self.client.chain

    async def _latest_height(self) -> int:
        info = await asyncio.wait_for(self.client.get_node_info(), timeout=self.timeout)
        return info.latest_block_height

    def _fetcher(self, deputy: str, direction: SwapDirection) -> PageFetcher:
        if direction == SwapDirection.INCOMING:
            list_swaps = self.client.list_swaps_by_creator
        else:
            list_swaps = self.client.list_swaps_by_recipient

        async def fetch(offset: int) -> list[SwapRecord]:
            return await asyncio.wait_for(
                list_swaps(deputy, self.limit, offset), timeout=self.timeout
            )

        return fetch

    async def scan_direction(self, direction: SwapDirection) -> list[str]:
        """Collect refundable swap IDs for one direction across all deputies."""
        cursor = self.cursors.get(self.chain, direction)

        try:
            height = await self._latest_height()
        except (QueryError, asyncio.TimeoutError) as e:
            self.logger.error(f"Couldn't fetch {self.chain} block height: {e}")
            return []

        self.logger.debug(f"{self.chain} block height {height}")

        swap_ids: list[str] = []
        for deputy in self.deputy_addresses:
            records = await self._scan_pages(
                cursor,
                self._fetcher(deputy, direction),
                accept=lambda record: record.is_refundable_at(height),
            )
            if records is None:
                self.logger.error(
                    f"Couldn't query {direction.value} swaps on {self.chain} for {deputy}"
                )
                return []
            swap_ids.extend(record.swap_id for record in records if record.swap_id)

        return swap_ids

    async def scan(self) -> list[str]:
        incoming = await self.scan_direction(SwapDirection.INCOMING)
        outgoing = await self.scan_direction(SwapDirection.OUTGOING)
        return incoming + outgoing
