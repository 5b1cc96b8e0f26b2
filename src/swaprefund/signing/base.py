"""Base interfaces for transaction signing.

Signing flow:
1. Build the chain's sign document (canonical JSON)
2. Hash it with SHA-256
3. Signer returns a 64-byte r||s signature (no raw private key exposure)
4. Apply signature and public key to the transaction
5. Broadcast signed transaction
"""

import json
from abc import ABC, abstractmethod

from swaprefund.chains.base import SubmissionError


def canonical_json(document: dict) -> bytes:
    """Serialize a sign document the way amino expects (sorted keys, no spaces)."""
    return json.dumps(document, sort_keys=True, separators=(",", ":")).encode("utf-8")


class TransactionSigner(ABC):
    """Abstract base class for signing backends.

    Implementations should NEVER expose raw private keys.
    """

    def __init__(self, chain: str):
        self.chain = chain.upper()

    @property
    @abstractmethod
    def address(self) -> str:
        """Bech32 address of the signing key."""
        pass

    @property
    @abstractmethod
    def public_key(self) -> bytes:
        """Compressed secp256k1 public key (33 bytes)."""
        pass

    @abstractmethod
    def sign(self, sign_bytes: bytes) -> bytes:
        """Sign a serialized sign document.

        Args:
            sign_bytes: Canonical sign document bytes (hashed by the signer)

        Returns:
            64-byte signature (r || s, low-S)
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(chain={self.chain}, address={self.address})"


class SigningError(SubmissionError):
    """Exception raised when key derivation or signing fails."""
    pass
