"""Transaction signing for refund transactions.

- LocalSigner: mnemonic-derived secp256k1 key held in memory
- amino: Kava amino-JSON and Binance Chain amino-binary refund builders
"""

from swaprefund.signing.base import SigningError, TransactionSigner, canonical_json
from swaprefund.signing.local import LocalSigner

__all__ = [
    "LocalSigner",
    "SigningError",
    "TransactionSigner",
    "canonical_json",
]
