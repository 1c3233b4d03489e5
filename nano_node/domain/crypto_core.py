"""
NanoNode - Cryptographic Core Layer
=====================================
Low-level cryptographic primitives of the block-lattice protocol.

Security Level: CRITICAL
Last Updated: 2026-10-18
Version: 1.0.0

Algorithms:
- Hash: BLAKE2b (32-byte digests for blocks and votes, 5-byte address checksum)
- Signature: Ed25519 with BLAKE2b-512 in place of SHA-512

Dependencies:
- ed25519-blake2b
- hashlib (stdlib)
"""

import hashlib
import secrets
from typing import Tuple, Union

import ed25519_blake2b

# Internal imports
from nano_node.constants import (
    HASH_SIZE,
    PRIVATE_KEY_SIZE,
    ACCOUNT_SIZE,
    SIGNATURE_SIZE,
)
from nano_node.errors import LengthMismatchError, InvalidAccountError
from nano_node.logging_setup import get_logger


# ============================================================================
# MODULE LOGGER
# ============================================================================

logger = get_logger("crypto")


KeyLike = Union[str, bytes]


def _key_bytes(key: KeyLike) -> bytes:
    if isinstance(key, bytes):
        return key
    try:
        return bytes.fromhex(key)
    except ValueError:
        return b''


# ============================================================================
# HASH FUNCTIONS
# ============================================================================

def compute_blake2b(*parts: bytes, digest_size: int = HASH_SIZE) -> bytes:
    """
    BLAKE2b digest over the concatenation of ``parts``.

    Args:
        parts: Byte strings fed to the hash in order
        digest_size: Output size in bytes (1-64, default 32)

    Returns:
        bytes: Digest

    Examples:
        >>> len(compute_blake2b(b"block"))
        32
        >>> len(compute_blake2b(b"key", digest_size=5))
        5
    """
    context = hashlib.blake2b(digest_size=digest_size)
    for part in parts:
        context.update(part)
    return context.digest()


# ============================================================================
# ED25519-BLAKE2B PROVIDER
# ============================================================================

class Ed25519Blake2bProvider:
    """
    Ed25519 signatures with BLAKE2b as the internal hash.

    Private keys are 32-byte seeds; public keys double as account keys.
    """

    def generate_keypair(self) -> Tuple[bytes, bytes]:
        """
        Generate a random key pair.

        Returns:
            tuple: (private_key, public_key), 32 bytes each
        """
        private_key = secrets.token_bytes(PRIVATE_KEY_SIZE)
        return private_key, self.public_key(private_key)

    def public_key(self, private_key: KeyLike) -> bytes:
        signing_key = self._signing_key(private_key)
        return signing_key.get_verifying_key().to_bytes()

    def sign(self, message: bytes, private_key: KeyLike) -> bytes:
        """
        Sign ``message`` with a 32-byte private key.

        Raises:
            LengthMismatchError: If the key is not 32 bytes
        """
        signature = self._signing_key(private_key).sign(message)

        logger.debug(
            "Message signed",
            extra_data={"message_size": len(message)}
        )

        return signature

    def verify(self, message: bytes, signature: bytes, public_key: KeyLike) -> bool:
        """
        Verify a signature.

        Returns:
            bool: True if the signature is valid, False otherwise
        """
        key = _key_bytes(public_key)
        if len(key) != ACCOUNT_SIZE or len(signature) != SIGNATURE_SIZE:
            return False

        try:
            ed25519_blake2b.VerifyingKey(key).verify(signature, message)
            return True
        except ed25519_blake2b.BadSignatureError:
            logger.debug("Signature verification failed: invalid signature")
            return False
        except ValueError as e:
            logger.debug(f"Signature verification failed: {e}")
            return False

    @staticmethod
    def _signing_key(private_key: KeyLike) -> "ed25519_blake2b.SigningKey":
        key = _key_bytes(private_key)
        if len(key) != PRIVATE_KEY_SIZE:
            raise LengthMismatchError(
                "Private key must be 32 bytes",
                code="length_mismatch_private_key",
                details={"length": len(key)}
            )
        return ed25519_blake2b.SigningKey(key)


_provider = Ed25519Blake2bProvider()


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

def generate_keypair() -> Tuple[bytes, bytes]:
    """
    Examples:
        >>> private_key, public_key = generate_keypair()
        >>> len(private_key), len(public_key)
        (32, 32)
    """
    return _provider.generate_keypair()


def derive_public_key(private_key: KeyLike) -> bytes:
    return _provider.public_key(private_key)


def sign_message(message: bytes, private_key: KeyLike) -> bytes:
    """
    Examples:
        >>> priv, pub = generate_keypair()
        >>> len(sign_message(b"test", priv))
        64
    """
    return _provider.sign(message, private_key)


def verify_signature(message: bytes, signature: bytes, public_key: KeyLike) -> bool:
    """
    Examples:
        >>> priv, pub = generate_keypair()
        >>> sig = sign_message(b"test", priv)
        >>> verify_signature(b"test", sig, pub)
        True
    """
    return _provider.verify(message, signature, public_key)


def account_key_bytes(public_key: KeyLike) -> bytes:
    """
    Decode a 32-byte account key.

    Raises:
        InvalidAccountError: If the key is not 64 hex characters / 32 bytes
    """
    key = _key_bytes(public_key)
    if len(key) != ACCOUNT_SIZE:
        raise InvalidAccountError(
            "Account key must be 32 bytes",
            code="invalid_account",
            details={"account": public_key if isinstance(public_key, str) else key.hex()}
        )
    return key


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "compute_blake2b",
    "Ed25519Blake2bProvider",
    "generate_keypair",
    "derive_public_key",
    "sign_message",
    "verify_signature",
    "account_key_bytes",
]
