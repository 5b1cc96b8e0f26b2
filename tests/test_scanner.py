"""Tests for the swap scanners and the full-page continuation policy.

Pagination policy under test ("full-page continuation, partial/empty-page
reset"): a page of exactly ``limit`` items advances the cursor by ``limit``;
a short or empty page ends the scan and rewinds the cursor to the offset the
scan started from.
"""

import asyncio

import pytest

from conftest import DEPUTY, FakeBinanceClient, FakeKavaClient, bnb_swap, kava_swap
from swaprefund.chains.base import SwapDirection, SwapStatus
from swaprefund.config import ConfigError
from swaprefund.refund.cursor import CursorStore
from swaprefund.refund.scanner import (
    BinanceSwapScanner,
    ContinuationPolicy,
    KavaSwapScanner,
)


class TestContinuationPolicy:
    """Tests for the named pagination policy."""

    def test_only_full_page_continues(self):
        policy = ContinuationPolicy(limit=100)

        assert policy.should_continue(100) is True
        assert policy.should_continue(99) is False
        assert policy.should_continue(0) is False

    def test_limit_must_be_positive(self):
        with pytest.raises(ValueError):
            ContinuationPolicy(limit=0)


class TestKavaSwapScanner:
    """Tests for the account-model chain scanner."""

    @pytest.mark.asyncio
    async def test_two_full_pages_then_short_page(self):
        """2 x 100 + 30 swaps: 230 IDs, offset back at its start value."""
        client = FakeKavaClient(swaps=[kava_swap(n) for n in range(230)])
        cursors = CursorStore()
        scanner = KavaSwapScanner(client, cursors, limit=100)

        swap_ids = await scanner.scan()

        assert len(swap_ids) == 230
        assert [offset for offset, _ in client.list_calls] == [0, 100, 200]
        assert cursors.offset("KAVA") == 0

    @pytest.mark.asyncio
    async def test_full_pages_advance_by_exactly_limit(self):
        client = FakeKavaClient(swaps=[kava_swap(n) for n in range(50 + 20)])
        cursors = CursorStore()
        cursors.register("KAVA", offset=10)
        scanner = KavaSwapScanner(client, cursors, limit=20)

        await scanner.scan()

        assert [offset for offset, _ in client.list_calls] == [10, 30, 50, 70]
        assert cursors.offset("KAVA") == 10

    @pytest.mark.asyncio
    async def test_exact_multiple_costs_one_empty_page(self):
        """A last page that happens to be full triggers one extra empty request."""
        client = FakeKavaClient(swaps=[kava_swap(n) for n in range(200)])
        cursors = CursorStore()
        scanner = KavaSwapScanner(client, cursors, limit=100)

        swap_ids = await scanner.scan()

        assert len(swap_ids) == 200
        assert [offset for offset, _ in client.list_calls] == [0, 100, 200]
        assert cursors.offset("KAVA") == 0

    @pytest.mark.asyncio
    async def test_swap_ids_are_derived_from_contents(self):
        client = FakeKavaClient(swaps=[kava_swap(0xABCD)])
        scanner = KavaSwapScanner(client, CursorStore(), limit=100)

        assert await scanner.scan() == ["IDabcd"]

    @pytest.mark.asyncio
    async def test_query_error_returns_empty_and_rewinds(self):
        client = FakeKavaClient(swaps=[kava_swap(n) for n in range(250)])
        client.fail_query_at = 200
        cursors = CursorStore()
        scanner = KavaSwapScanner(client, cursors, limit=100)

        swap_ids = await scanner.scan()

        assert swap_ids == []
        assert cursors.offset("KAVA") == 0

    @pytest.mark.asyncio
    async def test_slow_page_times_out(self):
        client = FakeKavaClient(swaps=[kava_swap(n) for n in range(150)])
        original = client.list_swaps

        async def slow_second_page(status, offset, limit, timeout=5.0):
            if offset >= 100:
                await asyncio.sleep(10)
            return await original(status, offset, limit, timeout)

        client.list_swaps = slow_second_page
        cursors = CursorStore()
        scanner = KavaSwapScanner(client, cursors, limit=100, timeout=0.01)

        assert await scanner.scan() == []
        assert cursors.offset("KAVA") == 0

    @pytest.mark.asyncio
    async def test_underivable_swap_id_is_skipped(self):
        bad = kava_swap(7)
        bad.random_number_hash = "not-hex!"
        client = FakeKavaClient(swaps=[kava_swap(1), bad, kava_swap(2)])
        client.compute_swap_id = lambda rnh, sender, other: bytes.fromhex(rnh).hex()[-4:]
        scanner = KavaSwapScanner(client, CursorStore(), limit=100)

        assert await scanner.scan() == ["0001", "0002"]

    @pytest.mark.asyncio
    async def test_empty_chain(self):
        client = FakeKavaClient()
        scanner = KavaSwapScanner(client, CursorStore(), limit=100)

        assert await scanner.scan() == []
        assert client.list_calls == [(0, 100)]

    @pytest.mark.asyncio
    async def test_rescan_is_idempotent(self):
        client = FakeKavaClient(swaps=[kava_swap(n) for n in range(130)])
        scanner = KavaSwapScanner(client, CursorStore(), limit=100)

        first = await scanner.scan()
        second = await scanner.scan()

        assert first == second


class TestBinanceSwapScanner:
    """Tests for the dual-direction chain scanner."""

    def test_requires_deputy_addresses(self, bnb_client):
        with pytest.raises(ConfigError):
            BinanceSwapScanner(bnb_client, CursorStore(), deputy_addresses=[])

    @pytest.mark.asyncio
    async def test_filters_open_and_expired_by_height(self):
        client = FakeBinanceClient(height=1000)
        client.created[DEPUTY] = [
            bnb_swap("expired-open", expire_height=999),
            bnb_swap("expires-now", expire_height=1000),
            bnb_swap("not-yet", expire_height=1001),
            bnb_swap("completed", expire_height=10, status=SwapStatus.COMPLETED),
        ]
        scanner = BinanceSwapScanner(client, CursorStore(), [DEPUTY], limit=100)

        swap_ids = await scanner.scan()

        assert swap_ids == ["expired-open", "expires-now"]

    @pytest.mark.asyncio
    async def test_incoming_then_outgoing(self):
        client = FakeBinanceClient()
        client.created[DEPUTY] = [bnb_swap("in-1"), bnb_swap("in-2")]
        client.received[DEPUTY] = [bnb_swap("out-1", direction=SwapDirection.OUTGOING)]
        scanner = BinanceSwapScanner(client, CursorStore(), [DEPUTY], limit=100)

        assert await scanner.scan() == ["in-1", "in-2", "out-1"]

    @pytest.mark.asyncio
    async def test_no_swaps_in_either_direction(self):
        client = FakeBinanceClient()
        scanner = BinanceSwapScanner(client, CursorStore(), [DEPUTY], limit=100)

        assert await scanner.scan() == []
        assert [call[0] for call in client.list_calls] == ["creator", "recipient"]

    @pytest.mark.asyncio
    async def test_offsets_per_direction_reset_after_scan(self):
        client = FakeBinanceClient()
        client.created[DEPUTY] = [bnb_swap(f"in-{n}") for n in range(25)]
        client.received[DEPUTY] = [bnb_swap(f"out-{n}") for n in range(10)]
        cursors = CursorStore()
        cursors.register("BNB", SwapDirection.INCOMING, offset=0)
        cursors.register("BNB", SwapDirection.OUTGOING, offset=0)
        scanner = BinanceSwapScanner(client, cursors, [DEPUTY], limit=10)

        swap_ids = await scanner.scan()

        assert len(swap_ids) == 35
        creator_offsets = [c[3] for c in client.list_calls if c[0] == "creator"]
        recipient_offsets = [c[3] for c in client.list_calls if c[0] == "recipient"]
        assert creator_offsets == [0, 10, 20]
        assert recipient_offsets == [0, 10]
        assert cursors.offset("BNB", SwapDirection.INCOMING) == 0
        assert cursors.offset("BNB", SwapDirection.OUTGOING) == 0

    @pytest.mark.asyncio
    async def test_every_deputy_scans_from_the_direction_start_offset(self):
        """Multi-deputy behavior is kept as-is: the cursor is rewound after each
        deputy, so deputies never continue from where the previous one ended."""
        other = "bnb1otherdeputy"
        client = FakeBinanceClient()
        client.created[DEPUTY] = [bnb_swap(f"a-{n}") for n in range(15)]
        client.created[other] = [bnb_swap(f"b-{n}") for n in range(5)]
        cursors = CursorStore()
        scanner = BinanceSwapScanner(client, cursors, [DEPUTY, other], limit=10)

        swap_ids = await scanner.scan_direction(SwapDirection.INCOMING)

        assert len(swap_ids) == 20
        calls = [(c[1], c[3]) for c in client.list_calls]
        assert calls == [(DEPUTY, 0), (DEPUTY, 10), (other, 0)]

    @pytest.mark.asyncio
    async def test_query_error_empties_only_that_direction(self):
        client = FakeBinanceClient()
        client.created[DEPUTY] = [bnb_swap("in-1")]
        client.received[DEPUTY] = [bnb_swap("out-1")]
        client.fail_direction = "creator"
        scanner = BinanceSwapScanner(client, CursorStore(), [DEPUTY], limit=100)

        assert await scanner.scan() == ["out-1"]

    @pytest.mark.asyncio
    async def test_node_info_failure_returns_empty(self):
        client = FakeBinanceClient()
        client.created[DEPUTY] = [bnb_swap("in-1")]
        client.fail_node_info = True
        scanner = BinanceSwapScanner(client, CursorStore(), [DEPUTY], limit=100)

        assert await scanner.scan() == []
        assert client.list_calls == []

    @pytest.mark.asyncio
    async def test_slow_page_times_out(self):
        client = FakeBinanceClient()

        async def hang(address, limit, offset):
            await asyncio.sleep(10)
            return []

        client.list_swaps_by_creator = hang
        scanner = BinanceSwapScanner(client, CursorStore(), [DEPUTY], limit=100, timeout=0.01)

        assert await scanner.scan_direction(SwapDirection.INCOMING) == []
