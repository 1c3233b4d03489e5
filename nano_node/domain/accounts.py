"""
NanoNode - Account Addresses
==============================
Conversion between 32-byte account keys and human readable addresses.

Last Updated: 2026-10-18
Version: 1.0.0

Format:
    prefix | base32(4 zero bits + 256-bit key) | base32(reversed 5-byte BLAKE2b checksum)
    "xrb_"    52 characters                      8 characters
"""

from typing import Union

from nano_node.constants import (
    ACCOUNT_ALPHABET,
    ACCOUNT_PREFIXES,
    ACCOUNT_CHECKSUM_SIZE,
    ACCOUNT_SIZE,
)
from nano_node.domain.crypto_core import compute_blake2b, account_key_bytes
from nano_node.errors import InvalidAccountError


KEY_CHARS = 52
CHECKSUM_CHARS = 8

_DECODE_MAP = {char: index for index, char in enumerate(ACCOUNT_ALPHABET)}


def _encode_base32(number: int, length: int) -> str:
    chars = []
    for _ in range(length):
        chars.append(ACCOUNT_ALPHABET[number & 0x1f])
        number >>= 5
    return ''.join(reversed(chars))


def _decode_base32(text: str) -> int:
    number = 0
    for char in text:
        number = (number << 5) | _DECODE_MAP[char]
    return number


def _checksum(key: bytes) -> bytes:
    return compute_blake2b(key, digest_size=ACCOUNT_CHECKSUM_SIZE)[::-1]


def address_from_public_key(public_key: Union[str, bytes], prefix: str = "xrb_") -> str:
    """
    Encode an account key as an address.

    Examples:
        >>> address_from_public_key("00" * 32)[:8]
        'xrb_1111'
    """
    if prefix not in ACCOUNT_PREFIXES:
        raise InvalidAccountError(
            f"Unknown address prefix: {prefix}",
            code="invalid_account",
            details={"prefix": prefix}
        )

    key = account_key_bytes(public_key)
    encoded_key = _encode_base32(int.from_bytes(key, "big"), KEY_CHARS)
    encoded_checksum = _encode_base32(int.from_bytes(_checksum(key), "big"), CHECKSUM_CHARS)

    return f"{prefix}{encoded_key}{encoded_checksum}"


def public_key_from_address(address: str) -> str:
    """
    Decode an address to its account key (lowercase hex).

    Raises:
        InvalidAccountError: Unknown prefix, bad characters or checksum
    """
    for prefix in ACCOUNT_PREFIXES:
        if address.startswith(prefix):
            body = address[len(prefix):]
            break
    else:
        raise InvalidAccountError(
            "Address has no known prefix",
            code="invalid_account",
            details={"address": address}
        )

    if len(body) != KEY_CHARS + CHECKSUM_CHARS or any(c not in _DECODE_MAP for c in body):
        raise InvalidAccountError(
            "Malformed address",
            code="invalid_account",
            details={"address": address}
        )

    number = _decode_base32(body[:KEY_CHARS])
    if number >> (ACCOUNT_SIZE * 8):
        raise InvalidAccountError(
            "Address key out of range",
            code="invalid_account",
            details={"address": address}
        )

    key = number.to_bytes(ACCOUNT_SIZE, "big")
    checksum = _decode_base32(body[KEY_CHARS:]).to_bytes(ACCOUNT_CHECKSUM_SIZE, "big")
    if checksum != _checksum(key):
        raise InvalidAccountError(
            "Address checksum mismatch",
            code="invalid_account",
            details={"address": address}
        )

    return key.hex()


def is_address(value: str) -> bool:
    return value.startswith(ACCOUNT_PREFIXES)


__all__ = [
    "address_from_public_key",
    "public_key_from_address",
    "is_address",
]
