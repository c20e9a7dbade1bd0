"""Credential handling for authenticating a connection."""

from yolodice.identity.bitcoin import BitcoinKey, BitcoinMessageSigner, address_from_key, decode_wif, sign_message

__all__ = ["BitcoinKey", "BitcoinMessageSigner", "address_from_key", "decode_wif", "sign_message"]
