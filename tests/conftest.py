"""Pytest configuration and fixtures."""

import logging
import os
from typing import Optional

import pytest
from unittest.mock import AsyncMock

# Set test environment
os.environ["ENV_FILE"] = os.devnull
os.environ["DRY_RUN"] = "false"

from swaprefund.chains.base import (
    AccountMetadata,
    ChainAClient,
    ChainBClient,
    Fee,
    NodeInfo,
    QueryError,
    RefundResponse,
    SubmissionError,
    SwapDirection,
    SwapRecord,
    SwapStatus,
)

# Public BIP39 test vector mnemonic (never holds funds)
TEST_MNEMONIC = (
    "abandon abandon abandon abandon abandon abandon "
    "abandon abandon abandon abandon abandon about"
)

DEPUTY = "bnb1deputy0000000000000000000000000000000"


def kava_swap(n: int) -> SwapRecord:
    """Expired Kava swap record number ``n``."""
    return SwapRecord(
        swap_id=None,
        status=SwapStatus.EXPIRED,
        expire_height=1000 + n,
        random_number_hash=f"{n:064x}",
        sender="kava1sender",
        sender_other_chain="bnb1senderotherchain",
    )


def bnb_swap(
    swap_id: str,
    expire_height: int = 100,
    status: SwapStatus = SwapStatus.OPEN,
    direction: SwapDirection = SwapDirection.INCOMING,
) -> SwapRecord:
    return SwapRecord(
        swap_id=swap_id, status=status, expire_height=expire_height, direction=direction
    )


class FakeKavaClient(ChainAClient):
    """In-memory account-model chain."""

    chain = "KAVA"

    def __init__(self, swaps: Optional[list[SwapRecord]] = None, sequence: int = 7):
        self.swaps = swaps or []
        self.sequence = sequence
        self.list_calls: list[tuple[int, int]] = []
        self.refunds: list[tuple[str, int]] = []
        self.fail_on: set[str] = set()
        self.fail_query_at: Optional[int] = None
        self.fail_metadata = False

    @property
    def address(self) -> str:
        return "kava1refunder"

    async def initialize(self) -> bool:
        return True

    async def list_swaps(self, status, offset, limit, timeout=5.0):
        self.list_calls.append((offset, limit))
        if self.fail_query_at is not None and offset >= self.fail_query_at:
            raise QueryError("connection refused")
        return self.swaps[offset:offset + limit]

    async def load_account_metadata(self, address):
        if self.fail_metadata:
            raise QueryError("account endpoint down")
        return AccountMetadata(address=address, account_number=12, sequence=self.sequence)

    async def submit_refund(self, swap_id: str, fee: Fee, sequence: int) -> str:
        self.refunds.append((swap_id, sequence))
        if swap_id in self.fail_on:
            raise SubmissionError("rejected", swap_id=swap_id)
        return f"KAVATX{len(self.refunds)}"

    def compute_swap_id(self, random_number_hash, sender, sender_other_chain):
        return f"ID{random_number_hash[-4:]}"


class FakeBinanceClient(ChainBClient):
    """In-memory dual-direction chain."""

    chain = "BNB"

    def __init__(self, height: int = 1000):
        self.height = height
        self.created: dict[str, list[SwapRecord]] = {}
        self.received: dict[str, list[SwapRecord]] = {}
        self.list_calls: list[tuple[str, str, int, int]] = []
        self.refunds: list[str] = []
        self.statuses: dict[str, int] = {}
        self.fail_node_info = False
        self.fail_direction: Optional[str] = None

    @property
    def address(self) -> str:
        return "bnb1refunder"

    async def initialize(self) -> bool:
        return True

    async def get_node_info(self) -> NodeInfo:
        if self.fail_node_info:
            raise QueryError("node down")
        return NodeInfo(network="Binance-Chain-Tigris", latest_block_height=self.height)

    async def list_swaps_by_creator(self, address, limit, offset):
        self.list_calls.append(("creator", address, limit, offset))
        if self.fail_direction == "creator":
            raise QueryError("timeout")
        return self.created.get(address, [])[offset:offset + limit]

    async def list_swaps_by_recipient(self, address, limit, offset):
        self.list_calls.append(("recipient", address, limit, offset))
        if self.fail_direction == "recipient":
            raise QueryError("timeout")
        return self.received.get(address, [])[offset:offset + limit]

    async def submit_refund(self, address, swap_id) -> RefundResponse:
        self.refunds.append(swap_id)
        status = self.statuses.get(swap_id, 200)
        if status != 200:
            return RefundResponse(status=status, log="bad request")
        return RefundResponse(status=200, tx_hash=f"BNBTX-{swap_id}")


@pytest.fixture
def kava_client() -> FakeKavaClient:
    return FakeKavaClient()


@pytest.fixture
def bnb_client() -> FakeBinanceClient:
    return FakeBinanceClient()


@pytest.fixture
def no_sleep() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def quiet_logger() -> logging.Logger:
    log = logging.getLogger("swaprefund.tests")
    log.propagate = True
    return log
