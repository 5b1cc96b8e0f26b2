"""Per-chain pagination cursors.

Cursors live in process memory only; a restart starts again from the
configured initial offsets.
"""

from dataclasses import dataclass, field
from typing import Optional

from swaprefund.chains.base import SwapDirection

CursorKey = tuple[str, Optional[SwapDirection]]


@dataclass
class PageCursor:
    """Pagination position for one (chain, direction) pair.

    ``start`` is the offset the current scan began from; ``rewind()`` puts the
    cursor back there so an empty or short page never moves state past what
    was proven to exist.
    """

    chain: str
    direction: Optional[SwapDirection] = None
    offset: int = 0
    start: int = field(default=0, init=False)

    def __post_init__(self):
        if self.offset < 0:
            raise ValueError(f"Cursor offset must be non-negative, got {self.offset}")
        self.start = self.offset

    @property
    def key(self) -> CursorKey:
        return (self.chain, self.direction)

    def begin(self) -> None:
        """Mark the current offset as the start of a scan."""
        self.start = self.offset

    def advance(self, limit: int) -> None:
        self.offset += limit

    def rewind(self) -> None:
        self.offset = self.start

    def __str__(self) -> str:
        if self.direction:
            return f"{self.chain}/{self.direction.value}@{self.offset}"
        return f"{self.chain}@{self.offset}"


class CursorStore:
    """In-memory registry of page cursors, one per (chain, direction)."""

    def __init__(self):
        self._cursors: dict[CursorKey, PageCursor] = {}

    def register(
        self, chain: str, direction: Optional[SwapDirection] = None, offset: int = 0
    ) -> PageCursor:
        """Create (or replace) the cursor for a chain and direction."""
        cursor = PageCursor(chain=chain.upper(), direction=direction, offset=offset)
        self._cursors[cursor.key] = cursor
        return cursor

    def get(self, chain: str, direction: Optional[SwapDirection] = None) -> PageCursor:
        """Get the cursor for a chain and direction, creating it at offset 0."""
        key = (chain.upper(), direction)
        if key not in self._cursors:
            return self.register(chain, direction)
        return self._cursors[key]

    def offset(self, chain: str, direction: Optional[SwapDirection] = None) -> int:
        return self.get(chain, direction).offset

    def snapshot(self) -> dict[str, int]:
        """Current offsets keyed by a readable cursor name."""
        return {
            (f"{chain}/{direction.value}" if direction else chain): cursor.offset
            for (chain, direction), cursor in self._cursors.items()
        }

    def __iter__(self):
        return iter(self._cursors.values())

    def __len__(self) -> int:
        return len(self._cursors)
