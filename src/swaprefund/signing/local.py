"""Local signing backend.

Keeps a mnemonic-derived private key in memory.
"""

import hashlib
import logging

from ecdsa import SECP256k1, SigningKey
from ecdsa.util import sigencode_string_canonize

from swaprefund.signing.base import SigningError, TransactionSigner
from swaprefund.signing.keys import derive_address, derive_private_key

logger = logging.getLogger(__name__)


class LocalSigner(TransactionSigner):
    """Signer using an in-memory secp256k1 key."""

    def __init__(self, chain: str, private_key: bytes, prefix: str):
        super().__init__(chain)
        self._signing_key = SigningKey.from_string(private_key, curve=SECP256k1)
        self._address = derive_address(private_key, prefix)

    @classmethod
    def from_mnemonic(cls, chain: str, mnemonic: str, prefix: str) -> "LocalSigner":
        """Create a signer from a BIP39 mnemonic."""
        signer = cls(chain, derive_private_key(mnemonic, chain), prefix)
        logger.info(f"Loaded {signer.chain} signing key for {signer.address}")
        return signer

    @property
    def address(self) -> str:
        return self._address

    @property
    def public_key(self) -> bytes:
        return self._signing_key.get_verifying_key().to_string("compressed")

    def sign(self, sign_bytes: bytes) -> bytes:
        try:
            return self._signing_key.sign_digest_deterministic(
                hashlib.sha256(sign_bytes).digest(),
                hashfunc=hashlib.sha256,
                sigencode=sigencode_string_canonize,
            )
        except Exception as e:
            raise SigningError(f"{self.chain} signing failed: {e}")
