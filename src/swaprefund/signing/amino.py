"""Amino transaction builders for refund messages.

Kava accepts the legacy amino-JSON StdTx on its REST ``/txs`` route.
Binance Chain only accepts amino-binary transactions (hex encoded) on
``/api/v1/broadcast``. Both sign the canonical JSON sign document.

Binary layout (protobuf-like, zero values omitted):
    tx        := uvarint(len(body)) || body
    body      := STD_TX_PREFIX || field(1, msg) || field(2, signature) || ...
    msg       := REFUND_HTLT_PREFIX || field(1, from) || field(2, swap_id)
    signature := field(1, amino_pubkey) || field(2, sig) || varint(3, acc) || varint(4, seq)
"""

import base64
from typing import Optional

from swaprefund.signing.base import TransactionSigner, canonical_json
from swaprefund.signing.keys import decode_address

KAVA_REFUND_MSG_TYPE = "bep3/MsgRefundAtomicSwap"
KAVA_PUBKEY_TYPE = "tendermint/PubKeySecp256k1"

STD_TX_PREFIX = bytes.fromhex("F0625DEE")
REFUND_HTLT_PREFIX = bytes.fromhex("3454A27C")
PUBKEY_SECP256K1_PREFIX = bytes.fromhex("EB5AE987")


# ======================
# Kava (amino JSON)
# ======================

def kava_refund_msg(from_address: str, swap_id: str) -> dict:
    return {
        "type": KAVA_REFUND_MSG_TYPE,
        "value": {"from": from_address, "swap_id": swap_id.upper()},
    }


def kava_sign_doc(
    msgs: list[dict],
    fee: dict,
    chain_id: str,
    account_number: int,
    sequence: int,
    memo: str = "",
) -> dict:
    return {
        "account_number": str(account_number),
        "chain_id": chain_id,
        "fee": fee,
        "memo": memo,
        "msgs": msgs,
        "sequence": str(sequence),
    }


def build_kava_refund_tx(
    signer: TransactionSigner,
    swap_id: str,
    fee: dict,
    chain_id: str,
    account_number: int,
    sequence: int,
    memo: str = "",
) -> dict:
    """Build and sign a Kava refund StdTx ready for ``POST /txs``."""
    msgs = [kava_refund_msg(signer.address, swap_id)]
    sign_doc = kava_sign_doc(msgs, fee, chain_id, account_number, sequence, memo)
    signature = signer.sign(canonical_json(sign_doc))

    return {
        "msg": msgs,
        "fee": fee,
        "signatures": [
            {
                "pub_key": {
                    "type": KAVA_PUBKEY_TYPE,
                    "value": base64.b64encode(signer.public_key).decode(),
                },
                "signature": base64.b64encode(signature).decode(),
            }
        ],
        "memo": memo,
    }


# ======================
# Binance Chain (amino binary)
# ======================

def encode_uvarint(value: int) -> bytes:
    if value < 0:
        raise ValueError("uvarint cannot encode negative values")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def encode_bytes_field(field_number: int, data: bytes) -> bytes:
    if not data:
        return b""
    return encode_uvarint(field_number << 3 | 2) + encode_uvarint(len(data)) + data


def encode_varint_field(field_number: int, value: int) -> bytes:
    if not value:
        return b""
    return encode_uvarint(field_number << 3) + encode_uvarint(value)


def bnb_refund_sign_doc(
    from_address: str,
    swap_id: str,
    chain_id: str,
    account_number: int,
    sequence: int,
    memo: str = "",
    source: int = 0,
) -> dict:
    return {
        "account_number": str(account_number),
        "chain_id": chain_id,
        "data": None,
        "memo": memo,
        "msgs": [{"from": from_address, "swap_id": swap_id}],
        "sequence": str(sequence),
        "source": str(source),
    }


def encode_refund_htlt_msg(from_address: str, swap_id: str) -> bytes:
    return (
        REFUND_HTLT_PREFIX
        + encode_bytes_field(1, decode_address(from_address))
        + encode_bytes_field(2, bytes.fromhex(swap_id))
    )


def encode_std_signature(
    public_key: bytes, signature: bytes, account_number: int, sequence: int
) -> bytes:
    amino_pubkey = PUBKEY_SECP256K1_PREFIX + encode_uvarint(len(public_key)) + public_key
    return (
        encode_bytes_field(1, amino_pubkey)
        + encode_bytes_field(2, signature)
        + encode_varint_field(3, account_number)
        + encode_varint_field(4, sequence)
    )


def encode_std_tx(
    msg: bytes,
    signature: bytes,
    memo: str = "",
    source: int = 0,
    data: Optional[bytes] = None,
) -> bytes:
    body = (
        STD_TX_PREFIX
        + encode_bytes_field(1, msg)
        + encode_bytes_field(2, signature)
        + encode_bytes_field(3, memo.encode("utf-8"))
        + encode_varint_field(4, source)
        + encode_bytes_field(5, data or b"")
    )
    return encode_uvarint(len(body)) + body


def build_bnb_refund_tx(
    signer: TransactionSigner,
    swap_id: str,
    chain_id: str,
    account_number: int,
    sequence: int,
    memo: str = "",
) -> str:
    """Build and sign a Binance Chain HTLT refund.

    Returns:
        Hex-encoded transaction for ``/api/v1/broadcast``
    """
    sign_doc = bnb_refund_sign_doc(
        signer.address, swap_id, chain_id, account_number, sequence, memo
    )
    signature = signer.sign(canonical_json(sign_doc))

    tx = encode_std_tx(
        msg=encode_refund_htlt_msg(signer.address, swap_id),
        signature=encode_std_signature(
            signer.public_key, signature, account_number, sequence
        ),
        memo=memo,
    )
    return tx.hex()
