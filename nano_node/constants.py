"""
NanoNode - Protocol Constants
===============================
Immutable constants of the block-lattice wire protocol.

Security Level: CRITICAL
Last Updated: 2026-10-18
Version: 1.0.0

Any change here changes the bytes on the wire: a node that disagrees on a
single constant can no longer talk to the network.
"""

from enum import IntEnum
from typing import Dict, Final, FrozenSet, List, Tuple


# ============================================================================
# PROJECT IDENTIFICATION
# ============================================================================

NODE_NAME: Final[str] = "NanoNode"
SOFTWARE_VERSION: Final[str] = "1.0.0"

# ============================================================================
# MESSAGE HEADER
# ============================================================================

# [0]=magic [1]=network [2..4]=versions [5]=type [6:8]=extensions (u16 BE)
HEADER_SIZE: Final[int] = 8

MAGIC_NUMBER: Final[int] = 0x52
MAINNET_BYTE: Final[int] = 0x43  # 'C'
TESTNET_BYTE: Final[int] = 0x41  # 'A'

DEFAULT_VERSION_MAX: Final[int] = 0x07
DEFAULT_VERSION_USING: Final[int] = 0x07
DEFAULT_VERSION_MIN: Final[int] = 0x01


class MessageType(IntEnum):
    """Message type byte (header offset 5)"""
    INVALID = 0
    NOT_A_TYPE = 1
    KEEPALIVE = 2
    PUBLISH = 3
    CONFIRM_REQ = 4
    CONFIRM_ACK = 5
    BULK_PULL = 6
    BULK_PUSH = 7
    FRONTIER_REQ = 8

    @property
    def label(self) -> str:
        return self.name.lower()


# Message types whose body is a single block
BLOCK_MESSAGE_TYPES: Final[FrozenSet[MessageType]] = frozenset({
    MessageType.PUBLISH,
    MessageType.CONFIRM_REQ,
})

# ============================================================================
# BLOCKS
# ============================================================================

class BlockType(IntEnum):
    """
    Block type index.

    Used both as the extension value of publish/confirm messages and as the
    leading type byte of every block streamed in a bulk pull response.
    """
    INVALID = 0
    NOT_A_BLOCK = 1
    SEND = 2
    RECEIVE = 3
    OPEN = 4
    CHANGE = 5
    STATE = 6

    @property
    def label(self) -> str:
        return self.name.lower()


# Body length (bytes) excluding type byte, signature and work
BLOCK_LENGTHS: Final[Dict[BlockType, int]] = {
    BlockType.INVALID: 0,
    BlockType.NOT_A_BLOCK: 0,
    BlockType.SEND: 80,
    BlockType.RECEIVE: 64,
    BlockType.OPEN: 96,
    BlockType.CHANGE: 64,
    BlockType.STATE: 144,
}

SIGNATURE_SIZE: Final[int] = 64
WORK_SIZE: Final[int] = 8
HASH_SIZE: Final[int] = 32
ACCOUNT_SIZE: Final[int] = 32
SEQUENCE_SIZE: Final[int] = 8
PRIVATE_KEY_SIZE: Final[int] = 32

# Field table, listed in the order the fields are hashed.
# name -> (block types carrying the field, length in bytes)
REQUIRED_FIELDS: Final[Dict[str, Tuple[FrozenSet[BlockType], int]]] = {
    "previous": (
        frozenset({BlockType.SEND, BlockType.RECEIVE, BlockType.CHANGE, BlockType.STATE}),
        32,
    ),
    "destination": (frozenset({BlockType.SEND}), 32),
    "balance": (frozenset({BlockType.SEND, BlockType.STATE}), 16),
    "source": (frozenset({BlockType.RECEIVE, BlockType.OPEN}), 32),
    "representative": (
        frozenset({BlockType.OPEN, BlockType.CHANGE, BlockType.STATE}),
        32,
    ),
    "account": (frozenset({BlockType.OPEN, BlockType.STATE}), 32),
    "link": (frozenset({BlockType.STATE}), 32),
}

# Block types whose hashing order differs from REQUIRED_FIELDS
SPECIAL_ORDERING: Final[Dict[BlockType, List[str]]] = {
    BlockType.STATE: ["account", "previous", "representative", "balance", "link"],
}

# Block types whose work value travels big-endian
BIG_ENDIAN_WORK: Final[FrozenSet[BlockType]] = frozenset({BlockType.STATE})

# ============================================================================
# MESSAGE BODIES
# ============================================================================

KEEPALIVE_PEER_SLOTS: Final[int] = 8
KEEPALIVE_SLOT_SIZE: Final[int] = 18  # 16-byte IPv6 address + 2-byte LE port
KEEPALIVE_BODY_SIZE: Final[int] = KEEPALIVE_PEER_SLOTS * KEEPALIVE_SLOT_SIZE  # 144

# ::ffff:0:0/96 prefix of IPv4-mapped addresses
IPV4_MAPPED_PREFIX: Final[bytes] = bytes.fromhex("00000000000000000000ffff")

# Placeholder produced by an all-zero keepalive slot
EMPTY_PEER_SLOT: Final[str] = "[::]:0"

# Default frontier_req body: start account 0, age 0xffffffff
DEFAULT_FRONTIER_REQ: Final[bytes] = bytes(32) + bytes.fromhex("ffffffff")

# Synthetic publish header (minus its last byte) prepended to every block
# streamed in a bulk pull response; the streamed type byte completes the
# extension field.
BULK_PULL_PREFIX: Final[bytes] = bytes.fromhex("52430505010300")

HEX64_PATTERN: Final[str] = r"^[A-Fa-f0-9]{64}$"
IPV6_PEER_PATTERN: Final[str] = r"^\[[A-Fa-f0-9:]+\]:[0-9]+$"

# ============================================================================
# NETWORK DEFAULTS
# ============================================================================

DEFAULT_PEER_PORT: Final[int] = 7075
DEFAULT_BOOTSTRAP_PEERS: Final[List[str]] = ["rai.raiblocks.net:7075"]
DEFAULT_MAX_PEERS: Final[int] = 200
DEFAULT_TCP_TIMEOUT_MS: Final[int] = 4000
DEFAULT_KEEPALIVE_INTERVAL: Final[int] = 30  # seconds

# TCP read size for bulk pull sessions
TCP_READ_CHUNK: Final[int] = 65536

# ============================================================================
# ACCOUNT ADDRESSES
# ============================================================================

ACCOUNT_ALPHABET: Final[str] = "13456789abcdefghijkmnopqrstuwxyz"
ACCOUNT_PREFIXES: Final[Tuple[str, ...]] = ("xrb_", "nano_")
ACCOUNT_CHECKSUM_SIZE: Final[int] = 5


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "MessageType",
    "BlockType",
    "HEADER_SIZE",
    "MAGIC_NUMBER",
    "MAINNET_BYTE",
    "TESTNET_BYTE",
    "BLOCK_LENGTHS",
    "REQUIRED_FIELDS",
    "SPECIAL_ORDERING",
    "BIG_ENDIAN_WORK",
    "BULK_PULL_PREFIX",
    "DEFAULT_FRONTIER_REQ",
]
