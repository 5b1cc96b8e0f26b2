"""Kava chain adapter (account-model chain).

Uses the Kava LCD (REST) server.
- Swaps:   GET /kava/bep3/v1beta1/atomicswaps
- Account: GET /cosmos/auth/v1beta1/accounts/{address}
- Chain:   GET /cosmos/base/tendermint/v1beta1/node_info
- Refund:  POST /txs (amino JSON StdTx, sync mode)

Queries use the gRPC-gateway v1beta1 routes, while refunds go through the
legacy amino REST route. Nodes on Cosmos SDK 0.46 or later serve the former
but no longer serve ``/txs``; KAVA_BROADCAST_PATH only changes the route, the
payload stays a legacy amino StdTx, so such nodes need a legacy REST proxy.
"""

import base64
import binascii
import hashlib
import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from swaprefund.chains.base import (
    DEFAULT_QUERY_TIMEOUT,
    AccountMetadata,
    ChainAClient,
    Fee,
    QueryError,
    SubmissionError,
    SwapDirection,
    SwapRecord,
    SwapStatus,
)
from swaprefund.signing.amino import build_kava_refund_tx
from swaprefund.signing.base import TransactionSigner
from swaprefund.signing.keys import decode_address

logger = logging.getLogger(__name__)

# bep3 SwapStatus enum values
KAVA_SWAP_STATUS = {
    SwapStatus.OPEN: 1,
    SwapStatus.COMPLETED: 2,
    SwapStatus.EXPIRED: 3,
}

_STATUS_NAMES = {
    "1": SwapStatus.OPEN,
    "open": SwapStatus.OPEN,
    "swap_status_open": SwapStatus.OPEN,
    "2": SwapStatus.COMPLETED,
    "completed": SwapStatus.COMPLETED,
    "swap_status_completed": SwapStatus.COMPLETED,
    "3": SwapStatus.EXPIRED,
    "expired": SwapStatus.EXPIRED,
    "swap_status_expired": SwapStatus.EXPIRED,
}

_DIRECTION_NAMES = {
    "1": SwapDirection.INCOMING,
    "incoming": SwapDirection.INCOMING,
    "swap_direction_incoming": SwapDirection.INCOMING,
    "2": SwapDirection.OUTGOING,
    "outgoing": SwapDirection.OUTGOING,
    "swap_direction_outgoing": SwapDirection.OUTGOING,
}


def _to_hex(value: str) -> str:
    """Normalize a byte field that may come back as hex or base64."""
    try:
        bytes.fromhex(value)
        return value.lower()
    except ValueError:
        pass
    try:
        return base64.b64decode(value, validate=True).hex()
    except (binascii.Error, ValueError):
        raise ValueError(f"Not a hex or base64 value: {value!r}")


class KavaAtomicSwap(BaseModel):
    """Atomic swap entry as returned by the bep3 query."""

    model_config = ConfigDict(extra="ignore")

    random_number_hash: str
    sender: str
    sender_other_chain: str
    expire_height: int = 0
    status: Any = None
    direction: Any = None

    def to_record(self) -> SwapRecord:
        return SwapRecord(
            swap_id=None,
            status=_STATUS_NAMES.get(str(self.status).lower(), SwapStatus.UNKNOWN),
            expire_height=self.expire_height,
            direction=_DIRECTION_NAMES.get(str(self.direction).lower()),
            random_number_hash=self.hashlock_hex(),
            sender=self.sender,
            sender_other_chain=self.sender_other_chain,
        )

    def hashlock_hex(self) -> str:
        """Hashlock as lower-case hex; left as returned if it is neither hex nor base64."""
        try:
            return _to_hex(self.random_number_hash)
        except ValueError:
            logger.warning(f"Undecodable Kava random_number_hash {self.random_number_hash!r}")
            return self.random_number_hash


class KavaSwapsResponse(BaseModel):
    """Response body of the atomic swaps listing.

    Entries are kept raw and validated one by one, so a malformed entry does
    not discard the rest of the page.
    """

    model_config = ConfigDict(extra="ignore")

    atomic_swaps: Optional[list[Any]] = Field(default=None)

    @property
    def swaps(self) -> list[Any]:
        return self.atomic_swaps or []


def parse_swap(entry: Any) -> SwapRecord:
    """Convert one listing entry; malformed entries become UNKNOWN records."""
    try:
        return KavaAtomicSwap.model_validate(entry).to_record()
    except ValidationError as e:
        logger.warning(f"Malformed Kava swap entry {entry!r}: {e}")
        return SwapRecord(swap_id=None, status=SwapStatus.UNKNOWN, expire_height=0)


class KavaClient(ChainAClient):
    """Kava LCD client for refunding bep3 atomic swaps."""

    chain = "KAVA"

    def __init__(
        self,
        lcd_url: str,
        signer: TransactionSigner,
        broadcast_path: str = "/txs",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Kava client.

        Args:
            lcd_url: Kava REST server URL
            signer: Signer holding the refunding account's key
            broadcast_path: REST route accepting amino JSON transactions
            timeout: Timeout for broadcasts and metadata calls
            transport: Optional httpx transport (tests)
        """
        self.lcd_url = lcd_url.rstrip("/")
        self.signer = signer
        self.broadcast_path = broadcast_path
        self.timeout = timeout
        self._transport = transport
        self.chain_id: Optional[str] = None
        self._account_number: Optional[int] = None

    @property
    def address(self) -> str:
        return self.signer.address

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.lcd_url, timeout=timeout, transport=self._transport
        )

    async def _get(self, path: str, params: Optional[dict] = None, timeout: Optional[float] = None) -> dict:
        try:
            async with self._client(timeout or self.timeout) as client:
                response = await client.get(path, params=params)
        except httpx.HTTPError as e:
            raise QueryError(f"Kava query {path} failed: {e!r}")

        if response.status_code != 200:
            raise QueryError(f"Kava query {path} returned {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise QueryError(f"Kava query {path} returned invalid JSON: {e}")

    async def initialize(self) -> bool:
        """Load the chain ID from the node."""
        try:
            data = await self._get("/cosmos/base/tendermint/v1beta1/node_info")
            self.chain_id = data["default_node_info"]["network"]
        except (QueryError, KeyError, TypeError) as e:
            logger.error(f"Cannot connect to Kava's lcd server: {e}")
            return False

        logger.info(f"Connected to Kava {self.chain_id} as {self.address}")
        return True

    async def list_swaps(
        self,
        status: SwapStatus,
        offset: int,
        limit: int,
        timeout: float = DEFAULT_QUERY_TIMEOUT,
    ) -> list[SwapRecord]:
        params = {
            "status": KAVA_SWAP_STATUS[status],
            "pagination.offset": offset,
            "pagination.limit": limit,
        }
        data = await self._get("/kava/bep3/v1beta1/atomicswaps", params=params, timeout=timeout)

        try:
            payload = KavaSwapsResponse.model_validate(data)
        except ValidationError as e:
            raise QueryError(f"Unexpected Kava swaps payload: {e}")

        # One record per entry keeps the page length intact for pagination
        return [parse_swap(entry) for entry in payload.swaps]

    async def load_account_metadata(self, address: str) -> AccountMetadata:
        data = await self._get(f"/cosmos/auth/v1beta1/accounts/{address}")

        account = data.get("account") or {}
        # Vesting and EVM accounts wrap the base account
        account = account.get("base_account", account)
        if "base_vesting_account" in account:
            account = account["base_vesting_account"]["base_account"]

        try:
            metadata = AccountMetadata(
                address=address,
                account_number=int(account.get("account_number", 0)),
                sequence=int(account.get("sequence", 0)),
            )
        except (TypeError, ValueError) as e:
            raise QueryError(f"Unexpected Kava account payload for {address}: {e}")

        if address == self.address:
            self._account_number = metadata.account_number
        return metadata

    def compute_swap_id(
        self, random_number_hash: str, sender: str, sender_other_chain: str
    ) -> str:
        """SHA256(random_number_hash || sender || lower(sender_other_chain))."""
        data = (
            bytes.fromhex(random_number_hash)
            + decode_address(sender)
            + sender_other_chain.lower().encode("utf-8")
        )
        return hashlib.sha256(data).hexdigest().upper()

    async def submit_refund(self, swap_id: str, fee: Fee, sequence: int) -> str:
        if not self.chain_id and not await self.initialize():
            raise SubmissionError("Kava chain ID unknown", swap_id=swap_id)

        if self._account_number is None:
            try:
                await self.load_account_metadata(self.address)
            except QueryError as e:
                raise SubmissionError(str(e), swap_id=swap_id)

        tx = build_kava_refund_tx(
            signer=self.signer,
            swap_id=swap_id,
            fee=fee.to_amino(),
            chain_id=self.chain_id,
            account_number=self._account_number,
            sequence=sequence,
        )

        try:
            async with self._client(self.timeout) as client:
                response = await client.post(
                    self.broadcast_path, json={"tx": tx, "mode": "sync"}
                )
        except httpx.HTTPError as e:
            raise SubmissionError(f"Kava broadcast failed: {e!r}", swap_id=swap_id)

        if response.status_code != 200:
            raise SubmissionError(
                f"Kava broadcast returned {response.status_code}: {response.text[:200]}",
                swap_id=swap_id,
            )

        result = response.json()
        if int(result.get("code") or 0) != 0:
            raise SubmissionError(
                f"Kava rejected refund: {result.get('raw_log')}", swap_id=swap_id
            )

        return result.get("txhash", "")
