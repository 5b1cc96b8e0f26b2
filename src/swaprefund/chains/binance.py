"""Binance Chain adapter (dual-direction chain).

Uses the Binance Chain REST API (dex.binance.org / testnet-dex.binance.org).
Atomic swaps (HTLT) are listed from the deputy's point of view, either as
creator (fromAddress) or as recipient (toAddress); the swap ID is part of the
listing payload.
"""

import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from swaprefund.chains.base import (
    DEFAULT_QUERY_TIMEOUT,
    AccountMetadata,
    ChainBClient,
    NodeInfo,
    QueryError,
    RefundResponse,
    SubmissionError,
    SwapDirection,
    SwapRecord,
    SwapStatus,
)
from swaprefund.signing.amino import build_bnb_refund_tx
from swaprefund.signing.base import SigningError, TransactionSigner

logger = logging.getLogger(__name__)

# HTLT status codes: 0 NULL, 1 Open, 2 Completed, 3 Expired
_STATUS_CODES = {
    "1": SwapStatus.OPEN,
    "open": SwapStatus.OPEN,
    "2": SwapStatus.COMPLETED,
    "completed": SwapStatus.COMPLETED,
    "3": SwapStatus.EXPIRED,
    "expired": SwapStatus.EXPIRED,
}


class BinanceAtomicSwap(BaseModel):
    """Atomic swap entry from /api/v1/atomic-swaps."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    swap_id: str = Field(alias="swapId")
    status: Any = None
    expire_height: int = Field(default=0, alias="expireHeight")
    from_addr: Optional[str] = Field(default=None, alias="fromAddr")
    random_number_hash: Optional[str] = Field(default=None, alias="randomNumberHash")

    def to_record(self, direction: SwapDirection) -> SwapRecord:
        return SwapRecord(
            swap_id=self.swap_id,
            status=_STATUS_CODES.get(str(self.status).lower(), SwapStatus.UNKNOWN),
            expire_height=self.expire_height,
            direction=direction,
            random_number_hash=self.random_number_hash,
            sender=self.from_addr,
        )


class BinanceSwapsResponse(BaseModel):
    """Response body of the atomic swaps listing.

    Entries are kept raw and validated one by one, so a malformed entry does
    not discard the rest of the page.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    atomic_swaps: Optional[list[Any]] = Field(default=None, alias="atomicSwaps")
    total: Optional[int] = None

    @property
    def swaps(self) -> list[Any]:
        return self.atomic_swaps or []


def parse_swap(entry: Any, direction: SwapDirection) -> SwapRecord:
    """Convert one listing entry; malformed entries become UNKNOWN records."""
    try:
        return BinanceAtomicSwap.model_validate(entry).to_record(direction)
    except ValidationError as e:
        logger.warning(f"Malformed Binance Chain swap entry {entry!r}: {e}")
        return SwapRecord(
            swap_id=None, status=SwapStatus.UNKNOWN, expire_height=0, direction=direction
        )


class BinanceChainClient(ChainBClient):
    """Binance Chain REST client for refunding HTLT swaps."""

    chain = "BNB"

    def __init__(
        self,
        api_url: str,
        signer: TransactionSigner,
        network: str = "mainnet",
        timeout: float = DEFAULT_QUERY_TIMEOUT,
        broadcast_timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Binance Chain client.

        Args:
            api_url: Binance Chain REST API URL
            signer: Signer holding the refunding account's key
            network: "mainnet" or "testnet"
            timeout: Timeout for queries
            broadcast_timeout: Timeout for broadcasts
            transport: Optional httpx transport (tests)
        """
        self.api_url = api_url.rstrip("/")
        self.signer = signer
        self.network = network
        self.timeout = timeout
        self.broadcast_timeout = broadcast_timeout
        self._transport = transport
        self.chain_id: Optional[str] = None

    @property
    def address(self) -> str:
        return self.signer.address

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.api_url, timeout=timeout, transport=self._transport
        )

    async def _get(self, path: str, params: Optional[dict] = None) -> Any:
        try:
            async with self._client(self.timeout) as client:
                response = await client.get(path, params=params)
        except httpx.HTTPError as e:
            raise QueryError(f"Binance Chain query {path} failed: {e!r}")

        if response.status_code != 200:
            raise QueryError(f"Binance Chain query {path} returned {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise QueryError(f"Binance Chain query {path} returned invalid JSON: {e}")

    async def initialize(self) -> bool:
        """Load the chain ID from the node."""
        try:
            info = await self.get_node_info()
        except QueryError as e:
            logger.error(f"Cannot connect to Binance Chain's lcd server: {e}")
            return False

        self.chain_id = info.network
        logger.info(f"Connected to Binance Chain {self.chain_id} ({self.network}) as {self.address}")
        return True

    async def get_node_info(self) -> NodeInfo:
        data = await self._get("/api/v1/node-info")
        try:
            return NodeInfo(
                network=data["node_info"]["network"],
                latest_block_height=int(data["sync_info"]["latest_block_height"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise QueryError(f"Unexpected Binance Chain node-info payload: {e}")

    async def _list_swaps(
        self, params: dict, direction: SwapDirection
    ) -> list[SwapRecord]:
        data = await self._get("/api/v1/atomic-swaps", params=params)
        try:
            payload = BinanceSwapsResponse.model_validate(data)
        except ValidationError as e:
            raise QueryError(f"Unexpected Binance Chain swaps payload: {e}")

        # One record per entry keeps the page length intact for pagination
        return [parse_swap(entry, direction) for entry in payload.swaps]

    async def list_swaps_by_creator(
        self, address: str, limit: int, offset: int
    ) -> list[SwapRecord]:
        return await self._list_swaps(
            {"fromAddress": address, "limit": limit, "offset": offset},
            SwapDirection.INCOMING,
        )

    async def list_swaps_by_recipient(
        self, address: str, limit: int, offset: int
    ) -> list[SwapRecord]:
        return await self._list_swaps(
            {"toAddress": address, "limit": limit, "offset": offset},
            SwapDirection.OUTGOING,
        )

    async def load_account_metadata(self, address: str) -> AccountMetadata:
        data = await self._get(f"/api/v1/account/{address}")
        try:
            return AccountMetadata(
                address=address,
                account_number=int(data.get("account_number", 0)),
                sequence=int(data.get("sequence", 0)),
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise QueryError(f"Unexpected Binance Chain account payload for {address}: {e}")

    async def submit_refund(self, address: str, swap_id: str) -> RefundResponse:
        if address != self.address:
            raise SigningError(
                f"No signing key for {address} (signer is {self.address})", swap_id=swap_id
            )

        if not self.chain_id and not await self.initialize():
            raise SubmissionError("Binance Chain ID unknown", swap_id=swap_id)

        try:
            account = await self.load_account_metadata(address)
        except QueryError as e:
            raise SubmissionError(str(e), swap_id=swap_id)

        tx_hex = build_bnb_refund_tx(
            signer=self.signer,
            swap_id=swap_id,
            chain_id=self.chain_id,
            account_number=account.account_number,
            sequence=account.sequence,
        )

        try:
            async with self._client(self.broadcast_timeout) as client:
                response = await client.post(
                    "/api/v1/broadcast",
                    params={"sync": "true"},
                    content=tx_hex,
                    headers={"content-type": "text/plain"},
                )
        except httpx.HTTPError as e:
            raise SubmissionError(f"Binance Chain broadcast failed: {e!r}", swap_id=swap_id)

        if response.status_code != 200:
            return RefundResponse(status=response.status_code, log=response.text[:200])

        results = response.json()
        if not results:
            return RefundResponse(status=response.status_code, log="empty broadcast result")

        result = results[0]
        if not result.get("ok", True) or int(result.get("code") or 0) != 0:
            raise SubmissionError(
                f"Binance Chain rejected refund: {result.get('log')}", swap_id=swap_id
            )

        return RefundResponse(status=response.status_code, tx_hash=result.get("hash"))
