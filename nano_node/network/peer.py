"""
NanoNode - Peer Endpoints
===========================
Peer address strings and their keepalive wire slots.

Last Updated: 2026-10-18
Version: 1.0.0

Peers are keyed by "address:port" strings ("[v6]:port" for IPv6). On the
wire a keepalive slot is a 16-byte IPv6 address (IPv4-mapped for IPv4
peers) followed by a 2-byte little-endian port.
"""

from __future__ import annotations
from dataclasses import dataclass
import ipaddress
import re
import struct
from typing import Tuple

# Internal imports
from nano_node.constants import (
    IPV4_MAPPED_PREFIX,
    IPV6_PEER_PATTERN,
    KEEPALIVE_SLOT_SIZE,
)
from nano_node.errors import InvalidAddressError, Ipv6UnsupportedError


_IPV6_PEER_RE = re.compile(IPV6_PEER_PATTERN)


def is_ipv6_peer(address: str) -> bool:
    """
    Examples:
        >>> is_ipv6_peer("[::1]:7075")
        True
        >>> is_ipv6_peer("1.2.3.4:7075")
        False
    """
    return bool(_IPV6_PEER_RE.match(address))


# ============================================================================
# PEER ADDRESS
# ============================================================================

@dataclass(frozen=True)
class PeerAddress:
    """
    Parsed "host:port" peer key.

    Attributes:
        host: Hostname, IPv4 or IPv6 literal (without brackets)
        port: Port number
    """

    host: str
    port: int

    @classmethod
    def parse(cls, address: str) -> PeerAddress:
        """
        Split a peer key on its last colon.

        Raises:
            InvalidAddressError: No port or port out of range

        Examples:
            >>> PeerAddress.parse("rai.raiblocks.net:7075")
            PeerAddress(host='rai.raiblocks.net', port=7075)
            >>> PeerAddress.parse("[::1]:7075").host
            '::1'
        """
        host, sep, port_str = address.rpartition(':')
        if not sep or not host:
            raise InvalidAddressError(
                f"Invalid peer address: {address}",
                code="invalid_address",
                details={"address": address}
            )

        try:
            port = int(port_str, 10)
        except ValueError:
            raise InvalidAddressError(
                f"Invalid peer port: {address}",
                code="invalid_address",
                details={"address": address}
            )

        if not (0 <= port <= 0xffff):
            raise InvalidAddressError(
                f"Peer port out of range: {address}",
                code="invalid_address",
                details={"address": address}
            )

        if host.startswith('[') and host.endswith(']'):
            host = host[1:-1]

        return cls(host=host, port=port)

    @classmethod
    def from_remote(cls, remote: Tuple) -> PeerAddress:
        """From an asyncio (host, port, ...) remote address tuple"""
        return cls(host=remote[0], port=remote[1])

    @property
    def is_ipv6(self) -> bool:
        return ':' in self.host

    @property
    def is_ip_literal(self) -> bool:
        try:
            ipaddress.ip_address(self.host)
        except ValueError:
            return False
        return True

    def __str__(self) -> str:
        if self.is_ipv6:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


# ============================================================================
# KEEPALIVE SLOTS
# ============================================================================

def encode_peer_slot(address: str) -> bytes:
    """
    Encode an IPv4 "a.b.c.d:port" peer as an 18-byte keepalive slot.

    Raises:
        Ipv6UnsupportedError: For "[v6]:port" peers
        InvalidAddressError: For anything that is not an IPv4 literal

    Examples:
        >>> encode_peer_slot("1.2.3.4:7075").hex()
        '00000000000000000000ffff01020304a31b'
    """
    if is_ipv6_peer(address):
        raise Ipv6UnsupportedError(
            "IPv6 peers cannot be sent in keepalive messages",
            code="ipv6_not_supported",
            details={"address": address}
        )

    peer = PeerAddress.parse(address)
    try:
        ip = ipaddress.IPv4Address(peer.host)
    except ValueError:
        raise InvalidAddressError(
            f"Peer address is not an IPv4 literal: {address}",
            code="invalid_address",
            details={"address": address}
        )

    return IPV4_MAPPED_PREFIX + ip.packed + struct.pack('<H', peer.port)


def decode_peer_slot(data: bytes, offset: int = 0) -> str:
    """
    Decode the 18-byte keepalive slot at ``offset``.

    Examples:
        >>> decode_peer_slot(bytes.fromhex("00000000000000000000ffff01020304a31b"))
        '1.2.3.4:7075'
        >>> decode_peer_slot(bytes(18))
        '[::]:0'
    """
    slot = data[offset:offset + KEEPALIVE_SLOT_SIZE]
    port = struct.unpack_from('<H', slot, 16)[0]

    if slot[:12] == IPV4_MAPPED_PREFIX:
        return f"{ipaddress.IPv4Address(slot[12:16])}:{port}"

    return f"[{ipaddress.IPv6Address(slot[:16]).compressed}]:{port}"


__all__ = [
    "PeerAddress",
    "is_ipv6_peer",
    "encode_peer_slot",
    "decode_peer_slot",
]
