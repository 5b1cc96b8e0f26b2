"""HD key derivation and bech32 addresses for the refund signers.

Both chains use secp256k1 keys and bech32 addresses over
RIPEMD160(SHA256(compressed_pubkey)):
- Kava: m/44'/459'/0'/0/0, prefix 'kava'
- Binance Chain: m/44'/714'/0'/0/0, prefix 'bnb' (mainnet) or 'tbnb' (testnet)
"""

from bip_utils import (
    AtomAddrEncoder,
    Bech32Decoder,
    Bip39SeedGenerator,
    Bip44,
    Bip44Changes,
    Bip44Coins,
)
from ecdsa import SECP256k1, SigningKey

from swaprefund.signing.base import SigningError

KAVA_PREFIX = "kava"

BNB_PREFIXES = {
    "mainnet": "bnb",
    "testnet": "tbnb",
}

CHAIN_COINS = {
    "KAVA": Bip44Coins.KAVA,
    "BNB": Bip44Coins.BINANCE_CHAIN,
}


def network_prefix(network: str) -> str:
    """Get the Binance Chain address prefix for a network name."""
    try:
        return BNB_PREFIXES[network.lower()]
    except KeyError:
        raise ValueError(f"Unknown Binance Chain network: {network!r}")


def derive_private_key(mnemonic: str, chain: str, index: int = 0) -> bytes:
    """Derive the private key for a chain from a BIP39 mnemonic.

    Args:
        mnemonic: 12/24 word seed phrase
        chain: KAVA or BNB
        index: Address index on the external chain

    Returns:
        32-byte private key
    """
    coin = CHAIN_COINS.get(chain.upper())
    if coin is None:
        raise SigningError(f"No derivation path for chain {chain}")

    try:
        seed_bytes = Bip39SeedGenerator(mnemonic).Generate()
        bip44 = Bip44.FromSeed(seed_bytes, coin)
        account = bip44.Purpose().Coin().Account(0).Change(Bip44Changes.CHAIN_EXT).AddressIndex(index)
        return account.PrivateKey().Raw().ToBytes()
    except Exception as e:
        raise SigningError(f"Failed to derive {chain} key: {e}")


def public_key_from_private(private_key: bytes) -> bytes:
    """Compressed public key for a secp256k1 private key."""
    sk = SigningKey.from_string(private_key, curve=SECP256k1)
    return sk.get_verifying_key().to_string("compressed")


def derive_address(private_key: bytes, prefix: str) -> str:
    """Bech32 address of a private key with the given human-readable prefix."""
    return AtomAddrEncoder.EncodeKey(public_key_from_private(private_key), hrp=prefix)


def decode_address(address: str) -> bytes:
    """Decode a bech32 address into its 20 raw bytes."""
    hrp = address.rsplit("1", 1)[0]
    try:
        return Bech32Decoder.Decode(hrp, address)
    except Exception as e:
        raise ValueError(f"Invalid bech32 address {address!r}: {e}")
