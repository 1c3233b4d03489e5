"""
NanoNode - Wire Message Protocol
==================================
Envelope encoding and decoding of the peer-to-peer protocol.

Security Level: HIGH
Last Updated: 2026-10-18
Version: 1.0.0

Wire format:
- Magic (1): 0x52
- Network (1): 0x43 mainnet, 0x41 testnet
- Versions (3): max, using, min
- Type (1): MessageType
- Extensions (2): u16 big-endian, block type for block-carrying messages
- Body (variable): type specific

Message Types:
- KEEPALIVE: up to 8 peer endpoints (144 bytes)
- PUBLISH / CONFIRM_REQ: one block
- CONFIRM_ACK: signed vote for a block
- BULK_PULL: account chain request (TCP)
- FRONTIER_REQ: frontier request (TCP)
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Union
import re
import struct

# Internal imports
from nano_node.constants import (
    MessageType,
    BLOCK_MESSAGE_TYPES,
    HEADER_SIZE,
    MAGIC_NUMBER,
    MAINNET_BYTE,
    TESTNET_BYTE,
    DEFAULT_VERSION_MAX,
    DEFAULT_VERSION_USING,
    DEFAULT_VERSION_MIN,
    KEEPALIVE_PEER_SLOTS,
    KEEPALIVE_SLOT_SIZE,
    KEEPALIVE_BODY_SIZE,
    EMPTY_PEER_SLOT,
    DEFAULT_FRONTIER_REQ,
    HEX64_PATTERN,
)
from nano_node.domain.blocks import Block, decode_block, resolve_block_type
from nano_node.network.peer import encode_peer_slot, decode_peer_slot
from nano_node.errors import (
    InvalidMagicError,
    InvalidNetworkError,
    InvalidTypeError,
    InvalidBlockTypeError,
    InvalidBlockLengthError,
    InvalidAccountError,
    TooManyPeersError,
)
from nano_node.logging_setup import get_logger


# ============================================================================
# MODULE LOGGER
# ============================================================================

logger = get_logger("network.message")


_HEX64_RE = re.compile(HEX64_PATTERN)


# ============================================================================
# MESSAGE
# ============================================================================

@dataclass
class Message:
    """
    Protocol envelope.

    Attributes:
        message_type: Message type
        body: Block (publish/confirm_req), list of peers (keepalive),
            Vote (confirm_ack), account key (bulk_pull render) or raw bytes
        mainnet: Network flag
        version_max / version_using / version_min: Protocol versions
        extensions: Header extension field
    """

    message_type: MessageType
    body: Any = None
    mainnet: bool = True
    version_max: int = DEFAULT_VERSION_MAX
    version_using: int = DEFAULT_VERSION_USING
    version_min: int = DEFAULT_VERSION_MIN
    extensions: int = 0

    def __post_init__(self):
        if not isinstance(self.message_type, MessageType):
            self.message_type = _resolve_message_type(self.message_type)

    @property
    def block(self) -> Optional[Block]:
        return self.body if isinstance(self.body, Block) else None

    @property
    def peers(self) -> List[str]:
        if self.message_type == MessageType.KEEPALIVE and isinstance(self.body, list):
            return self.body
        return []

    def header_bytes(self) -> bytes:
        """The 8-byte header of this envelope"""
        return bytes([
            MAGIC_NUMBER,
            MAINNET_BYTE if self.mainnet else TESTNET_BYTE,
            self.version_max,
            self.version_using,
            self.version_min,
            self.message_type,
        ]) + struct.pack('>H', self.extensions & 0xffff)

    def __repr__(self) -> str:
        return (
            f"Message(type={self.message_type.label}, "
            f"network={'mainnet' if self.mainnet else 'testnet'}, "
            f"extensions={self.extensions})"
        )


@dataclass(frozen=True)
class RenderedMessage:
    """
    Attributes:
        data: Wire bytes
        hash: Block hash (hex) for block-carrying messages
    """
    data: bytes
    hash: Optional[str] = None


def _resolve_message_type(value: Union[int, str]) -> MessageType:
    try:
        if isinstance(value, str):
            return MessageType[value.upper()]
        return MessageType(value)
    except (KeyError, ValueError):
        raise InvalidTypeError(
            f"Unknown message type: {value}",
            code="invalid_type",
            details={"type": value}
        )


# ============================================================================
# RENDER
# ============================================================================

def render_message(
    message: Message,
    signing_key: Optional[Union[str, bytes]] = None
) -> RenderedMessage:
    """
    Serialize a message to wire bytes.

    Args:
        message: Message to render; a raw bytes body is appended as is
        signing_key: Private key signing an unsigned block or vote

    Returns:
        RenderedMessage: bytes and, for block messages, the block hash

    Raises:
        ParseError: Invalid block fields, peers or account

    Examples:
        >>> rendered = render_message(Message(MessageType.KEEPALIVE))
        >>> len(rendered.data)
        152
    """
    message_type = message.message_type
    body = message.body
    extensions = message.extensions
    block_hash = None

    if isinstance(body, (bytes, bytearray)):
        payload = bytes(body)

    elif message_type in BLOCK_MESSAGE_TYPES and body is not None:
        block = _coerce_block(body)
        encoded = block.encode(signing_key)
        extensions = block.block_type
        payload = encoded.data
        block_hash = encoded.hash

    elif message_type == MessageType.CONFIRM_ACK and body is not None:
        from nano_node.network.votes import render_vote
        extensions, payload, block_hash = render_vote(body, signing_key)

    elif message_type == MessageType.KEEPALIVE:
        payload = render_keepalive_body(body)

    elif message_type == MessageType.FRONTIER_REQ:
        payload = DEFAULT_FRONTIER_REQ

    elif message_type == MessageType.BULK_PULL:
        payload = render_bulk_pull_body(body)

    else:
        payload = b''

    header = Message(
        message_type=message_type,
        mainnet=message.mainnet,
        version_max=message.version_max,
        version_using=message.version_using,
        version_min=message.version_min,
        extensions=extensions,
    ).header_bytes()

    return RenderedMessage(data=header + payload, hash=block_hash)


def _coerce_block(body: Any) -> Block:
    if isinstance(body, Block):
        return body
    if isinstance(body, Mapping):
        return Block.from_dict(body)
    raise InvalidBlockTypeError(
        "Block message body must be a block",
        code="invalid_block_type",
        details={"body_type": type(body).__name__}
    )


def render_keepalive_body(peers: Optional[List[str]] = None) -> bytes:
    """
    144-byte keepalive body carrying up to 8 IPv4 peers.

    Raises:
        TooManyPeersError: More than 8 peers
        Ipv6UnsupportedError: IPv6 peer given
        InvalidAddressError: Peer not in a.b.c.d:port form
    """
    body = bytearray(KEEPALIVE_BODY_SIZE)
    if not peers:
        return bytes(body)

    if len(peers) > KEEPALIVE_PEER_SLOTS:
        raise TooManyPeersError(
            f"At most {KEEPALIVE_PEER_SLOTS} peers fit in a keepalive",
            code="too_many_peers",
            details={"count": len(peers)}
        )

    for index, address in enumerate(peers):
        offset = index * KEEPALIVE_SLOT_SIZE
        body[offset:offset + KEEPALIVE_SLOT_SIZE] = encode_peer_slot(address)

    return bytes(body)


def render_bulk_pull_body(account: Any) -> bytes:
    """
    Single-account bulk pull: the key repeated as start and end.

    Raises:
        InvalidAccountError: Not a 64 hex character key
    """
    if not isinstance(account, str) or not _HEX64_RE.match(account):
        raise InvalidAccountError(
            "Bulk pull account must be 64 hex characters",
            code="invalid_account",
            details={"account": account}
        )
    key = bytes.fromhex(account)
    return key + key


# ============================================================================
# PARSE
# ============================================================================

def parse_message(data: bytes, minimal_confirm_ack: bool = False) -> Message:
    """
    Deserialize wire bytes.

    Args:
        data: Raw message
        minimal_confirm_ack: Only extract the account of confirm_ack
            messages, skipping block hashing and signature verification

    Returns:
        Message

    Raises:
        InvalidMagicError, InvalidNetworkError, InvalidTypeError,
        InvalidBlockTypeError, InvalidBlockLengthError, SignatureInvalidError

    Examples:
        >>> msg = parse_message(render_message(Message(MessageType.KEEPALIVE)).data)
        >>> msg.message_type.label, msg.body
        ('keepalive', [])
    """
    if len(data) < HEADER_SIZE:
        raise InvalidBlockLengthError(
            f"Message shorter than header: {len(data)} bytes",
            code="invalid_block_length",
            details={"size": len(data)}
        )

    if data[0] != MAGIC_NUMBER:
        raise InvalidMagicError(
            f"Invalid magic number: {data[0]:#04x}",
            code="magic_number",
            details={"magic": data[0]}
        )

    if data[1] == MAINNET_BYTE:
        mainnet = True
    elif data[1] == TESTNET_BYTE:
        mainnet = False
    else:
        raise InvalidNetworkError(
            f"Invalid network byte: {data[1]:#04x}",
            code="invalid_network",
            details={"network": data[1]}
        )

    if data[5] >= len(MessageType):
        raise InvalidTypeError(
            f"Invalid message type: {data[5]}",
            code="invalid_type",
            details={"type": data[5]}
        )

    message = Message(
        message_type=MessageType(data[5]),
        mainnet=mainnet,
        version_max=data[2],
        version_using=data[3],
        version_min=data[4],
        extensions=struct.unpack_from('>H', data, 6)[0],
    )

    if message.message_type == MessageType.KEEPALIVE:
        message.body = parse_keepalive_body(data)

    elif message.message_type in BLOCK_MESSAGE_TYPES:
        block_type = resolve_block_type(message.extensions)
        message.body = decode_block(data[HEADER_SIZE:], block_type)

    elif message.message_type == MessageType.CONFIRM_ACK:
        from nano_node.network.votes import parse_confirm_ack
        message.body = parse_confirm_ack(data, minimal_confirm_ack)

    else:
        # No schema for this type
        message.body = data[HEADER_SIZE:]

    return message


def parse_keepalive_body(data: bytes) -> List[str]:
    """Peers of a full keepalive message (header included)"""
    if len(data) != HEADER_SIZE + KEEPALIVE_BODY_SIZE:
        raise InvalidBlockLengthError(
            f"Keepalive must be {HEADER_SIZE + KEEPALIVE_BODY_SIZE} bytes, got {len(data)}",
            code="invalid_block_length",
            details={"size": len(data)}
        )

    peers = []
    for offset in range(HEADER_SIZE, len(data), KEEPALIVE_SLOT_SIZE):
        peer = decode_peer_slot(data, offset)
        if peer != EMPTY_PEER_SLOT:
            peers.append(peer)

    return peers


# ============================================================================
# MESSAGE FACTORY
# ============================================================================

class MessageFactory:
    """
    Factory for typed messages.

    Header keyword arguments (mainnet, version_max, ...) are passed through
    to Message.
    """

    @staticmethod
    def create_keepalive(peers: Optional[List[str]] = None, **header) -> Message:
        return Message(MessageType.KEEPALIVE, body=list(peers) if peers else None, **header)

    @staticmethod
    def create_publish(block: Block, **header) -> Message:
        return Message(MessageType.PUBLISH, body=block, **header)

    @staticmethod
    def create_confirm_req(block: Block, **header) -> Message:
        return Message(MessageType.CONFIRM_REQ, body=block, **header)

    @staticmethod
    def create_bulk_pull(account: str, **header) -> Message:
        return Message(MessageType.BULK_PULL, body=account, **header)

    @staticmethod
    def create_frontier_req(**header) -> Message:
        return Message(MessageType.FRONTIER_REQ, **header)


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "Message",
    "MessageType",
    "RenderedMessage",
    "MessageFactory",
    "render_message",
    "parse_message",
    "render_keepalive_body",
    "render_bulk_pull_body",
    "parse_keepalive_body",
]
