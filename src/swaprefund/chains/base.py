"""Base interfaces for the chain adapters used by the refund engine.

The refund engine only talks to these interfaces:
- ChainAClient: account-model chain (Kava). Swap IDs are derived from swap contents
  and refunds carry an explicit account sequence.
- ChainBClient: dual-direction chain (Binance Chain). Swap IDs come back from the
  query and swaps are listed from the deputy's side as creator and as recipient.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

DEFAULT_QUERY_TIMEOUT = 5.0


class SwapStatus(str, Enum):
    """Lifecycle status of an atomic swap."""
    OPEN = "open"
    EXPIRED = "expired"
    COMPLETED = "completed"
    UNKNOWN = "unknown"


class SwapDirection(str, Enum):
    """Direction of a swap relative to the deputy."""
    INCOMING = "incoming"   # created by the deputy
    OUTGOING = "outgoing"   # deputy is the recipient


@dataclass
class SwapRecord:
    """Minimal view of a swap needed to refund it.

    Attributes:
        swap_id: Swap identifier (hex), None when the listing payload omits it
        status: Swap status
        expire_height: Block height after which the swap can be refunded
        direction: Swap direction, None on single-direction chains
        random_number_hash: Hashlock (hex), used to derive the swap ID
        sender: Sender address on this chain
        sender_other_chain: Sender address on the counterparty chain
    """
    swap_id: Optional[str]
    status: SwapStatus
    expire_height: int
    direction: Optional[SwapDirection] = None
    random_number_hash: Optional[str] = None
    sender: Optional[str] = None
    sender_other_chain: Optional[str] = None

    def is_refundable_at(self, height: int) -> bool:
        """Open swaps past their expiry height can be refunded."""
        return self.status == SwapStatus.OPEN and self.expire_height <= height


@dataclass
class AccountMetadata:
    """Signer account state needed to build transactions."""
    address: str
    account_number: int
    sequence: int


@dataclass
class NodeInfo:
    """Chain node status."""
    network: str
    latest_block_height: int


@dataclass
class Fee:
    """Transaction fee for account-model chains."""
    amount: int
    denom: str
    gas: int

    def to_amino(self) -> dict:
        return {
            "amount": [{"amount": str(self.amount), "denom": self.denom}],
            "gas": str(self.gas),
        }


@dataclass
class RefundResponse:
    """Broadcast result for a dual-direction chain refund."""
    status: int
    tx_hash: Optional[str] = None
    log: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == 200 and bool(self.tx_hash)


class ChainAClient(ABC):
    """Account-model chain client (Kava)."""

    chain: str = "KAVA"

    @property
    @abstractmethod
    def address(self) -> str:
        """Address of the signing account."""
        pass

    @abstractmethod
    async def initialize(self) -> bool:
        """Connect to the endpoint and load chain parameters.

        Returns:
            True if the chain is reachable
        """
        pass

    @abstractmethod
    async def list_swaps(
        self,
        status: SwapStatus,
        offset: int,
        limit: int,
        timeout: float = DEFAULT_QUERY_TIMEOUT,
    ) -> list[SwapRecord]:
        """List swaps with a given status.

        Raises:
            QueryError: If the endpoint is unreachable or answers with an error
        """
        pass

    @abstractmethod
    async def load_account_metadata(self, address: str) -> AccountMetadata:
        """Fetch account number and current sequence for an address."""
        pass

    @abstractmethod
    async def submit_refund(self, swap_id: str, fee: Fee, sequence: int) -> str:
        """Sign and broadcast a refund.

        Returns:
            Transaction hash

        Raises:
            SubmissionError: If the transaction is not accepted
        """
        pass

    @abstractmethod
    def compute_swap_id(
        self, random_number_hash: str, sender: str, sender_other_chain: str
    ) -> str:
        """Derive a swap ID from its contents."""
        pass


class ChainBClient(ABC):
    """Dual-direction chain client (Binance Chain)."""

    chain: str = "BNB"

    @property
    @abstractmethod
    def address(self) -> str:
        """Address of the signing account."""
        pass

    @abstractmethod
    async def initialize(self) -> bool:
        """Connect to the endpoint and load chain parameters."""
        pass

    @abstractmethod
    async def get_node_info(self) -> NodeInfo:
        """Get current node status including the latest block height."""
        pass

    @abstractmethod
    async def list_swaps_by_creator(
        self, address: str, limit: int, offset: int
    ) -> list[SwapRecord]:
        """List swaps created by an address."""
        pass

    @abstractmethod
    async def list_swaps_by_recipient(
        self, address: str, limit: int, offset: int
    ) -> list[SwapRecord]:
        """List swaps whose recipient is an address."""
        pass

    @abstractmethod
    async def submit_refund(self, address: str, swap_id: str) -> RefundResponse:
        """Sign and broadcast a refund from ``address``."""
        pass


class ChainError(Exception):
    """Base exception for chain adapter failures."""
    pass


class QueryError(ChainError):
    """Raised when a chain query fails (unreachable, timeout, bad response)."""
    pass


class SubmissionError(ChainError):
    """Raised when a refund transaction fails to broadcast or is rejected."""

    def __init__(self, message: str, swap_id: Optional[str] = None):
        self.swap_id = swap_id
        super().__init__(message)
