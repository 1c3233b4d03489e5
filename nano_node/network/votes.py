"""
NanoNode - Vote Observer
==========================
confirm_ack payloads: parsing, verification, rendering and observation.

Security Level: HIGH
Last Updated: 2026-10-18
Version: 1.0.0

Body layout (after the 8-byte header):
    account (32) | signature (64) | sequence (8) | block (type from extensions)

The representative signs BLAKE2b-256(block_hash || sequence).

In minimal mode only the account is read; nothing is hashed or verified.
"""

from __future__ import annotations
from collections import Counter
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional, Tuple, Union

# Internal imports
from nano_node.constants import (
    MessageType,
    HEADER_SIZE,
    ACCOUNT_SIZE,
    SIGNATURE_SIZE,
    SEQUENCE_SIZE,
)
from nano_node.domain.accounts import is_address, public_key_from_address
from nano_node.domain.blocks import Block
from nano_node.domain.crypto_core import (
    compute_blake2b,
    derive_public_key,
    sign_message,
    verify_signature,
    account_key_bytes,
)
from nano_node.network.events import VoteEvent
from nano_node.network.message import parse_message
from nano_node.errors import (
    InvalidBlockLengthError,
    InvalidFieldError,
    LengthMismatchError,
    MissingFieldError,
    SignatureInvalidError,
)
from nano_node.logging_setup import get_logger


# ============================================================================
# MODULE LOGGER
# ============================================================================

logger = get_logger("network.votes")


_SIGNATURE_OFFSET = HEADER_SIZE + ACCOUNT_SIZE
_SEQUENCE_OFFSET = _SIGNATURE_OFFSET + SIGNATURE_SIZE
_BLOCK_OFFSET = _SEQUENCE_OFFSET + SEQUENCE_SIZE


# ============================================================================
# VOTE
# ============================================================================

@dataclass
class Vote:
    """
    Representative vote for a block.

    Attributes:
        account: Voting account key (hex), derived from the signing key
            when rendering without one
        signature: Vote signature (hex), None in minimal mode
        sequence: 8-byte sequence (hex), None in minimal mode
        block: Voted block, None in minimal mode
        payload: Raw message body after the header
    """

    account: Optional[str] = None
    signature: Optional[str] = None
    sequence: Optional[str] = None
    block: Optional[Block] = None
    payload: bytes = b''

    @property
    def is_minimal(self) -> bool:
        return self.block is None

    def to_dict(self) -> dict:
        return {
            "account": self.account,
            "signature": self.signature,
            "sequence": self.sequence,
            "block": self.block.to_dict() if self.block else None,
        }


def vote_digest(block_hash: Union[str, bytes], sequence: Union[str, bytes]) -> bytes:
    """
    Digest signed by a voting representative.

    Examples:
        >>> len(vote_digest("00" * 32, "0000000000000001"))
        32
    """
    if isinstance(block_hash, str):
        block_hash = bytes.fromhex(block_hash)
    if isinstance(sequence, str):
        sequence = bytes.fromhex(sequence)
    return compute_blake2b(block_hash, sequence)


# ============================================================================
# PARSE
# ============================================================================

def parse_confirm_ack(data: bytes, minimal: bool = False) -> Vote:
    """
    Parse the body of a full confirm_ack message (header included).

    Args:
        data: Wire bytes
        minimal: Stop after the account

    Raises:
        InvalidBlockLengthError: Truncated body
        SignatureInvalidError: Signature does not match the account
    """
    if len(data) < _SIGNATURE_OFFSET:
        raise InvalidBlockLengthError(
            f"confirm_ack too short for an account: {len(data)} bytes",
            code="invalid_block_length",
            details={"size": len(data)}
        )

    account = data[HEADER_SIZE:_SIGNATURE_OFFSET]
    payload = bytes(data[HEADER_SIZE:])

    if minimal:
        return Vote(account=account.hex(), payload=payload)

    if len(data) < _BLOCK_OFFSET:
        raise InvalidBlockLengthError(
            f"confirm_ack too short for a vote: {len(data)} bytes",
            code="invalid_block_length",
            details={"size": len(data)}
        )

    signature = data[_SIGNATURE_OFFSET:_SEQUENCE_OFFSET]
    sequence = data[_SEQUENCE_OFFSET:_BLOCK_OFFSET]

    # Same header with the type switched to publish, followed by the block
    reframed = bytearray(data[:HEADER_SIZE])
    reframed[5] = MessageType.PUBLISH
    reframed += data[_BLOCK_OFFSET:]
    block = parse_message(bytes(reframed)).body

    digest = vote_digest(block.hash, sequence)
    if not verify_signature(digest, bytes(signature), bytes(account)):
        raise SignatureInvalidError(
            "Vote signature does not match account",
            code="signature_invalid",
            details={"account": account.hex(), "block": block.hash}
        )

    return Vote(
        account=account.hex(),
        signature=signature.hex(),
        sequence=sequence.hex(),
        block=block,
        payload=payload,
    )


# ============================================================================
# RENDER
# ============================================================================

def render_vote(
    vote: Vote,
    signing_key: Optional[Union[str, bytes]] = None
) -> Tuple[int, bytes, str]:
    """
    Body of a confirm_ack message.

    The block is written with its own signature; ``signing_key`` signs the
    vote digest when the vote carries no signature, and supplies the
    account when none is set.

    Returns:
        tuple: (extensions, body bytes, block hash)

    Raises:
        MissingFieldError: No block, sequence or account
        LengthMismatchError: Sequence or signature of wrong length
        InvalidFieldError: Sequence or signature not hex
    """
    if vote.block is None:
        raise MissingFieldError(
            "Vote has no block",
            code="missing_field_block",
            details={"field": "block"}
        )
    if vote.sequence is None:
        raise MissingFieldError(
            "Vote has no sequence",
            code="missing_field_sequence",
            details={"field": "sequence"}
        )

    sequence = _fixed_bytes("sequence", vote.sequence, SEQUENCE_SIZE)
    encoded = vote.block.encode()

    if vote.account:
        account = account_key_bytes(vote.account)
    elif signing_key is not None:
        account = derive_public_key(signing_key)
    else:
        raise MissingFieldError(
            "Vote has no account",
            code="missing_field_account",
            details={"field": "account"}
        )

    if vote.signature is not None:
        signature = _fixed_bytes("signature", vote.signature, SIGNATURE_SIZE)
    elif signing_key is not None:
        signature = sign_message(vote_digest(encoded.hash, sequence), signing_key)
    else:
        signature = bytes(SIGNATURE_SIZE)

    body = account + signature + sequence + encoded.data
    return vote.block.block_type, body, encoded.hash


def _fixed_bytes(name: str, value: Union[str, bytes], length: int) -> bytes:
    try:
        raw = value if isinstance(value, bytes) else bytes.fromhex(value)
    except ValueError:
        raise InvalidFieldError(
            f"Field {name} is not a hex string",
            code=f"invalid_hex_{name}",
            details={"field": name}
        )
    if len(raw) != length:
        raise LengthMismatchError(
            f"Field {name} must be {length} bytes",
            code=f"length_mismatch_{name}",
            details={"field": name, "expected": length}
        )
    return raw


# ============================================================================
# VOTE OBSERVER
# ============================================================================

class VoteObserver:
    """
    Counts votes seen by a transport, optionally for a set of accounts.

    Attributes:
        watch: Account keys (hex) of interest, empty for all
        counts: Votes seen per account
        on_vote: Optional callback(vote, remote)

    Examples:
        >>> observer = VoteObserver(watch=[representative_key])
        >>> observer.attach(node)
    """

    def __init__(
        self,
        watch: Iterable[str] = (),
        on_vote: Optional[Callable[[Vote, tuple], None]] = None
    ):
        self.watch = {self._normalize(account) for account in watch}
        self.on_vote = on_vote
        self.counts: Counter = Counter()
        self.seen_total = 0

    @staticmethod
    def _normalize(account: str) -> str:
        if is_address(account):
            return public_key_from_address(account)
        return account_key_bytes(account).hex()

    def attach(self, node) -> None:
        """Subscribe to a NanoNode's events"""
        node.subscribe(self.handle_event)

    def handle_event(self, event) -> Optional[Vote]:
        if not isinstance(event, VoteEvent):
            return None

        vote = event.vote
        self.seen_total += 1

        if self.watch and vote.account not in self.watch:
            return None

        self.counts[vote.account] += 1

        logger.debug(
            "Vote observed",
            extra_data={
                "account": vote.account,
                "block": vote.block.hash if vote.block else None,
            }
        )

        if self.on_vote is not None:
            self.on_vote(vote, event.remote)

        return vote

    def get_statistics(self) -> Dict[str, object]:
        return {
            "watched": len(self.watch),
            "seen_total": self.seen_total,
            "matched": sum(self.counts.values()),
            "accounts": dict(self.counts),
        }


__all__ = [
    "Vote",
    "VoteObserver",
    "vote_digest",
    "parse_confirm_ack",
    "render_vote",
]
