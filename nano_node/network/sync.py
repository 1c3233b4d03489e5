"""
NanoNode - Chain Puller
=========================
Account chain retrieval over TCP bulk pull.

Security Level: HIGH
Last Updated: 2026-10-18
Version: 1.0.0

Features:
- One concurrent TCP session per peer
- Stream reassembly of blocks split across reads
- Agreement statistics across peer responses

Response stream:
    type (1) | block body | type (1) | block body | ... | not_a_block (1)
"""

from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union
import asyncio
from collections import Counter
from dataclasses import dataclass, field

# Internal imports
from nano_node.config import NodeSettings, get_settings
from nano_node.constants import (
    BlockType,
    MessageType,
    BULK_PULL_PREFIX,
    TCP_READ_CHUNK,
)
from nano_node.domain.blocks import Block, frame_length, resolve_block_type
from nano_node.network.message import Message, render_message, parse_message
from nano_node.network.peer import PeerAddress
from nano_node.network.peer_directory import PeerDirectory
from nano_node.errors import (
    NanoNodeException,
    PeerConnectionError,
    PeerTimeoutError,
)
from nano_node.logging_setup import get_logger, PerformanceLogger


# ============================================================================
# MODULE LOGGER
# ============================================================================

logger = get_logger("network.sync")


# ============================================================================
# STREAM REASSEMBLY
# ============================================================================

@dataclass
class ChainChunk:
    """
    Attributes:
        blocks: Blocks decoded from the buffer
        remaining: Bytes of an incomplete trailing block, None once the
            not_a_block terminator was read
    """
    blocks: List[Block] = field(default_factory=list)
    remaining: Optional[bytes] = b''

    @property
    def finished(self) -> bool:
        return self.remaining is None


def parse_chain(data: bytes) -> ChainChunk:
    """
    Decode as many whole blocks as the buffer holds.

    Each block is re-framed behind BULK_PULL_PREFIX, whose last byte is the
    high byte of the extensions field, so the type byte completes a publish
    header.

    Raises:
        InvalidBlockTypeError: Unknown type byte
    """
    blocks: List[Block] = []
    remaining = _walk_chain(data, blocks)
    return ChainChunk(blocks=blocks, remaining=remaining)


def _walk_chain(data: bytes, sink: List[Block]) -> Optional[bytes]:
    # Blocks are appended as decoded so a later parse error keeps them
    pos = 0

    while pos < len(data):
        type_byte = data[pos]

        if type_byte == BlockType.NOT_A_BLOCK:
            return None

        size = 1 + frame_length(resolve_block_type(type_byte))
        if pos + size > len(data):
            break

        message = parse_message(BULK_PULL_PREFIX + data[pos:pos + size])
        sink.append(message.body)
        pos += size

    return bytes(data[pos:])


class ChainReassembler:
    """
    Incremental parse_chain over a TCP stream.

    Examples:
        >>> reassembler = ChainReassembler()
        >>> reassembler.feed(first_read)
        []
        >>> reassembler.feed(second_read)
        [ReceiveBlock(hash=...)]
    """

    def __init__(self):
        self.blocks: List[Block] = []
        self.finished = False
        self._buffer = b''

    @property
    def pending_bytes(self) -> int:
        return len(self._buffer)

    def feed(self, chunk: bytes) -> List[Block]:
        """
        Add bytes; returns the blocks completed by them.

        Raises:
            InvalidBlockTypeError: Unknown type byte; blocks decoded before
                it are still added to ``blocks``
        """
        if self.finished:
            return []

        completed: List[Block] = []
        try:
            remaining = _walk_chain(self._buffer + chunk, completed)
        finally:
            self.blocks.extend(completed)

        if remaining is None:
            self.finished = True
            self._buffer = b''
        else:
            self._buffer = remaining

        return completed


# ============================================================================
# AGGREGATION
# ============================================================================

@dataclass
class PullResult:
    """
    Attributes:
        blocks: Longest chain returned, None if no peer returned blocks
        match_proportion: Share of non-empty responses of that length
        return_count: Number of non-empty responses
    """
    blocks: Optional[List[Block]]
    match_proportion: float
    return_count: int

    def to_dict(self) -> dict:
        return {
            "blocks": [b.to_dict() for b in self.blocks] if self.blocks else None,
            "match_proportion": self.match_proportion,
            "return_count": self.return_count,
        }


def pull_stats(responses: Iterable[Optional[Sequence[Block]]]) -> PullResult:
    """
    Aggregate per-peer chains.

    Examples:
        >>> pull_stats([[a, b], [], [a, b], [a]])
        PullResult(blocks=[a, b], match_proportion=0.666..., return_count=3)
        >>> pull_stats([[], None])
        PullResult(blocks=None, match_proportion=0.0, return_count=0)
    """
    non_empty = [list(r) for r in responses if r]
    if not non_empty:
        return PullResult(blocks=None, match_proportion=0.0, return_count=0)

    # max() keeps the first of equally long chains
    longest = max(non_empty, key=len)
    matching = sum(1 for r in non_empty if len(r) == len(longest))

    return PullResult(
        blocks=longest,
        match_proportion=matching / len(non_empty),
        return_count=len(non_empty),
    )


# ============================================================================
# CHAIN PULLER
# ============================================================================

class ChainPuller:
    """
    Fetches an account chain from every peer concurrently.

    A session ends on the stream terminator, EOF, socket error, parse
    error or timeout; the blocks read until then are kept in every case.

    Attributes:
        peers: Peer keys to dial
        tcp_timeout_ms: Per-session timeout
        stats: Session outcome counters

    Examples:
        >>> puller = ChainPuller(["127.0.0.1:7075"])
        >>> result = await puller.fetch_account("e89208dd...")
        >>> len(result.blocks), result.match_proportion
    """

    def __init__(
        self,
        peers: Union[PeerDirectory, Iterable[str]],
        tcp_timeout_ms: Optional[int] = None,
        config: Optional[NodeSettings] = None
    ):
        self.config = config or get_settings()
        self.peers = peers
        self.tcp_timeout_ms = (
            tcp_timeout_ms if tcp_timeout_ms is not None else self.config.tcp_timeout_ms
        )
        self.stats: Counter = Counter()
        self.last_result: Optional[PullResult] = None
        # Peer -> error that ended its session in the last fetch
        self.session_errors: Dict[str, NanoNodeException] = {}

    async def fetch_account(
        self,
        public_key: str,
        on_complete: Optional[Callable[[Optional[Exception], PullResult], None]] = None
    ) -> PullResult:
        """
        Pull the chain of ``public_key`` from all peers.

        Args:
            public_key: Account key, 64 hex characters
            on_complete: Called once with (None, result)

        Returns:
            PullResult

        Raises:
            InvalidAccountError: Malformed key (no peer is dialed)
        """
        request = render_message(Message(
            MessageType.BULK_PULL,
            body=public_key,
            mainnet=self.config.is_mainnet(),
            version_max=self.config.version_max,
            version_using=self.config.version_using,
            version_min=self.config.version_min,
        )).data

        targets = tuple(self.peers)
        self.session_errors = {}

        logger.info(
            f"Pulling chain {public_key[:16]}...",
            extra_data={"peers": len(targets), "timeout_ms": self.tcp_timeout_ms}
        )

        with PerformanceLogger(logger, "fetch_account", threshold_ms=self.tcp_timeout_ms):
            responses = await asyncio.gather(
                *(self._pull_from(address, request) for address in targets)
            )

        result = pull_stats(responses)
        self.last_result = result

        logger.info(
            "Chain pull complete",
            extra_data={
                "blocks": len(result.blocks) if result.blocks else 0,
                "match_proportion": round(result.match_proportion, 3),
                "return_count": result.return_count,
            }
        )

        if on_complete is not None:
            on_complete(None, result)

        return result

    async def _pull_from(self, address: str, request: bytes) -> List[Block]:
        """One session; never raises"""
        reassembler = ChainReassembler()

        try:
            await asyncio.wait_for(
                self._session(address, request, reassembler),
                timeout=self.tcp_timeout_ms / 1000
            )
            self.stats["completed" if reassembler.finished else "eof"] += 1

        except asyncio.TimeoutError:
            self.stats["timeout"] += 1
            self._session_failed(address, PeerTimeoutError(
                f"Bulk pull from {address} timed out",
                code="pull_timeout",
                details={"peer": address, "timeout_ms": self.tcp_timeout_ms}
            ))

        except NanoNodeException as e:
            self.stats["parse_error"] += 1
            self._session_failed(address, e)

        except OSError as e:
            self.stats["socket_error"] += 1
            self._session_failed(address, PeerConnectionError(
                f"Bulk pull from {address} failed: {e}",
                code="pull_socket_error",
                details={"peer": address}
            ))

        return reassembler.blocks

    def _session_failed(self, address: str, error: NanoNodeException):
        self.session_errors[address] = error
        logger.debug(f"Bulk pull session ended: {error}")

    async def _session(
        self,
        address: str,
        request: bytes,
        reassembler: ChainReassembler
    ):
        peer = PeerAddress.parse(address)
        reader, writer = await asyncio.open_connection(peer.host, peer.port)

        try:
            writer.write(request)
            await writer.drain()

            while not reassembler.finished:
                chunk = await reader.read(TCP_READ_CHUNK)
                if not chunk:
                    break
                reassembler.feed(chunk)

        finally:
            writer.close()

    def get_statistics(self) -> dict:
        return {
            "tcp_timeout_ms": self.tcp_timeout_ms,
            "sessions": dict(self.stats),
            "session_errors": {
                address: error.code for address, error in self.session_errors.items()
            },
            "last_result": {
                "return_count": self.last_result.return_count,
                "match_proportion": self.last_result.match_proportion,
            } if self.last_result else None,
        }


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "ChainChunk",
    "ChainReassembler",
    "ChainPuller",
    "PullResult",
    "parse_chain",
    "pull_stats",
]
