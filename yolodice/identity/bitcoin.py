"""Bitcoin key handling for API-key authentication.

The server identifies an API key by its P2PKH address and verifies a
Bitcoin signed message over the login challenge.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass

import base58
import coincurve
from Crypto.Hash import RIPEMD160, SHA256
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

SECP256K1_N = int(
    "FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141",
    16,
)
MAINNET_WIF_PREFIX = 0x80
MAINNET_P2PKH_VERSION = 0x00
MESSAGE_MAGIC = b"Bitcoin Signed Message:\n"


@dataclass
class BitcoinKey:
    secret: bytes
    compressed: bool


def _sha256(data: bytes) -> bytes:
    return SHA256.new(data).digest()


def _hash160(data: bytes) -> bytes:
    return RIPEMD160.new(_sha256(data)).digest()


def _varint(n: int) -> bytes:
    if n < 0xFD:
        return bytes([n])
    if n <= 0xFFFF:
        return b"\xfd" + n.to_bytes(2, "little")
    if n <= 0xFFFFFFFF:
        return b"\xfe" + n.to_bytes(4, "little")
    return b"\xff" + n.to_bytes(8, "little")


def decode_wif(wif: str) -> BitcoinKey:
    """Decode a Base58Check WIF private key."""
    try:
        payload = base58.b58decode_check(wif.strip())
    except ValueError as exc:
        raise ValueError("Invalid WIF private key checksum") from exc
    if not payload or payload[0] != MAINNET_WIF_PREFIX:
        raise ValueError("Invalid WIF private key prefix")
    body = payload[1:]
    if len(body) == 33 and body[-1] == 0x01:
        secret, compressed = body[:32], True
    elif len(body) == 32:
        secret, compressed = body, False
    else:
        raise ValueError("Invalid WIF private key length")
    key_int = int.from_bytes(secret, "big")
    if not (0 < key_int < SECP256K1_N):
        raise ValueError("Invalid private key range for secp256k1")
    return BitcoinKey(secret=secret, compressed=compressed)


def _public_key_bytes(key: BitcoinKey) -> bytes:
    private_key = ec.derive_private_key(int.from_bytes(key.secret, "big"), ec.SECP256K1())
    point_format = PublicFormat.CompressedPoint if key.compressed else PublicFormat.UncompressedPoint
    return private_key.public_key().public_bytes(Encoding.X962, point_format)


def address_from_key(key: BitcoinKey) -> str:
    """P2PKH address of the key's public point."""
    payload = bytes([MAINNET_P2PKH_VERSION]) + _hash160(_public_key_bytes(key))
    return base58.b58encode_check(payload).decode("ascii")


def message_digest(message: str) -> bytes:
    """Double SHA-256 of the magic-prefixed message, as signed by Bitcoin wallets."""
    msg = message.encode("utf-8")
    return _sha256(_sha256(_varint(len(MESSAGE_MAGIC)) + MESSAGE_MAGIC + _varint(len(msg)) + msg))


def sign_message(key: BitcoinKey, message: str) -> str:
    """
    Sign ``message`` and return the base64 compact recoverable signature.

    Notes:
    - Nonces follow RFC 6979, so equal inputs give equal signatures.
    - Header byte is 27 + recovery id, plus 4 for compressed keys.
    """
    recoverable = coincurve.PrivateKey(key.secret).sign_recoverable(message_digest(message), hasher=None)
    rs, recovery_id = recoverable[:64], recoverable[64]
    header = 27 + recovery_id + (4 if key.compressed else 0)
    return base64.b64encode(bytes([header]) + rs).decode("ascii")


class BitcoinMessageSigner:
    """Challenge signer taking a WIF-encoded API key as credential."""

    def derive_address(self, credential: str) -> str:
        return address_from_key(decode_wif(credential))

    def sign(self, credential: str, challenge: str) -> str:
        return sign_message(decode_wif(credential), challenge)
