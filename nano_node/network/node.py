"""
NanoNode - Gossip Transport
=============================
UDP node: receives, dispatches and floods protocol messages.

Security Level: HIGH
Last Updated: 2026-10-18
Version: 1.0.0

Features:
- Single UDP endpoint (asyncio datagram transport)
- Peer discovery by keepalive flooding
- Typed events via callbacks and an async iterator
- Fan-out publish to every known peer
- Periodic keepalive loop
"""

from collections import Counter
from typing import AsyncIterator, Callable, List, Optional, Set, Tuple, Union
import asyncio
import socket

# Internal imports
from nano_node.config import NodeSettings, get_settings
from nano_node.constants import MessageType, KEEPALIVE_PEER_SLOTS
from nano_node.network.events import (
    MessageEvent,
    BlockEvent,
    VoteEvent,
    ErrorEvent,
    NodeEvent,
)
from nano_node.network.message import Message, render_message, parse_message
from nano_node.network.peer import PeerAddress, is_ipv6_peer
from nano_node.network.peer_directory import PeerDirectory
from nano_node.errors import (
    NanoNodeException,
    InvalidMessage,
    PeerConnectionError,
    NodeNotStartedError,
)
from nano_node.logging_setup import get_logger


# ============================================================================
# MODULE LOGGER
# ============================================================================

logger = get_logger("network.node")


EventHandler = Callable[[NodeEvent], None]

_STOP = object()


class _NodeProtocol(asyncio.DatagramProtocol):
    """Forwards datagrams to the owning node"""

    def __init__(self, node: "NanoNode"):
        self.node = node

    def datagram_received(self, data: bytes, addr: Tuple) -> None:
        self.node._handle_datagram(data, addr)

    def error_received(self, exc: Exception) -> None:
        self.node._handle_socket_error(exc)


# ============================================================================
# NANO NODE
# ============================================================================

class NanoNode:
    """
    Gossip transport.

    Inbound datagrams are handled one at a time on the event loop: parsed,
    the sender recorded in the peer directory, then dispatched as events.

    Attributes:
        config: Node configuration
        peers: Peer directory (seeded with the bootstrap peers)
        transport: UDP transport, None until started
        stats: Traffic counters

    Examples:
        >>> node = NanoNode()
        >>> node.subscribe(lambda event: print(event))
        >>> await node.start()
        >>> node.publish(Message(MessageType.KEEPALIVE))
        >>> await node.stop()
    """

    def __init__(
        self,
        config: Optional[NodeSettings] = None,
        peers: Optional[PeerDirectory] = None
    ):
        self.config = config or get_settings()

        if peers is None:
            peers = PeerDirectory(
                capacity=self.config.max_peers,
                initial=self.config.bootstrap_peers
            )
        self.peers = peers

        self.transport: Optional[asyncio.DatagramTransport] = None

        self._subscribers: List[EventHandler] = []
        self._event_queues: List[asyncio.Queue] = []
        self._tasks: Set[asyncio.Task] = set()

        self.stats: Counter = Counter()

        # Peer of the sendto() in progress and whether it failed
        self._sending_to: Optional[str] = None
        self._send_failed = False

        # Bare keepalive sent to discovered peers
        self._probe = render_message(self.new_message(MessageType.KEEPALIVE)).data

        self.is_running = False

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    async def start(self):
        """Bind the UDP endpoint"""
        if self.is_running:
            logger.warning("Node already running")
            return

        loop = asyncio.get_running_loop()
        self.transport, _ = await loop.create_datagram_endpoint(
            lambda: _NodeProtocol(self),
            local_addr=(self.config.bind_host, self.config.udp_port),
            family=socket.AF_INET
        )
        self.is_running = True

        logger.info(
            f"Node listening on {self.config.bind_host}:{self.port}",
            extra_data={
                "network": self.config.network,
                "peers": len(self.peers),
            }
        )

    async def stop(self):
        """Close the endpoint and cancel in-flight sends"""
        if not self.is_running:
            return

        self.is_running = False

        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

        self.transport.close()
        self.transport = None

        for queue in self._event_queues:
            queue.put_nowait(_STOP)

        logger.info("Node stopped")

    @property
    def port(self) -> int:
        """Bound UDP port"""
        return self._require_transport().get_extra_info('sockname')[1]

    def _require_transport(self) -> asyncio.DatagramTransport:
        if self.transport is None:
            raise NodeNotStartedError(
                "Node is not started",
                code="node_not_started"
            )
        return self.transport

    def new_message(self, message_type: MessageType, body=None) -> Message:
        """Message with this node's network and protocol versions"""
        return Message(
            message_type=message_type,
            body=body,
            mainnet=self.config.is_mainnet(),
            version_max=self.config.version_max,
            version_using=self.config.version_using,
            version_min=self.config.version_min,
        )

    # ========================================================================
    # EVENTS
    # ========================================================================

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """
        Register a callback invoked for every event, in emission order.

        Returns:
            Callable removing the subscription
        """
        self._subscribers.append(handler)

        def unsubscribe():
            if handler in self._subscribers:
                self._subscribers.remove(handler)

        return unsubscribe

    async def events(self) -> AsyncIterator[NodeEvent]:
        """
        Async iterator over events emitted after the call; ends on stop().

        Examples:
            >>> async for event in node.events():
            ...     if isinstance(event, BlockEvent):
            ...         print(event.block.hash)
        """
        queue: asyncio.Queue = asyncio.Queue()
        self._event_queues.append(queue)
        try:
            while True:
                event = await queue.get()
                if event is _STOP:
                    return
                yield event
        finally:
            self._event_queues.remove(queue)

    def _emit(self, event: NodeEvent) -> None:
        for handler in list(self._subscribers):
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"Event handler failed: {e}",
                    extra_data={"event": type(event).__name__},
                    exc_info=True
                )

        for queue in self._event_queues:
            queue.put_nowait(event)

    # ========================================================================
    # INBOUND
    # ========================================================================

    def _handle_datagram(self, data: bytes, addr: Tuple) -> None:
        remote = (addr[0], addr[1])
        self.stats["datagrams_received"] += 1

        try:
            message = parse_message(data, self.config.minimal_confirm_ack)
        except NanoNodeException as e:
            self.stats["invalid_messages"] += 1
            error = InvalidMessage(e, remote, data)
            logger.debug(
                f"Invalid message from {remote[0]}:{remote[1]}: {e}",
                extra_data=error.details
            )
            self._emit(ErrorEvent(error, remote))
            return

        self.peers.observe(str(PeerAddress.from_remote(remote)))
        self.stats[f"received_{message.message_type.label}"] += 1

        self._emit(MessageEvent(message, remote))

        if message.message_type == MessageType.KEEPALIVE:
            for address in message.body:
                if not is_ipv6_peer(address):
                    self._spawn(self._send_to(self._probe, address))

        elif message.message_type == MessageType.PUBLISH:
            self._emit(BlockEvent(message.body, remote))

        elif message.message_type == MessageType.CONFIRM_ACK:
            self._emit(VoteEvent(message, remote))

    # ========================================================================
    # OUTBOUND
    # ========================================================================

    def publish(
        self,
        message: Union[Message, bytes],
        signing_key: Optional[Union[str, bytes]] = None,
        on_complete: Optional[Callable[[], None]] = None
    ) -> Optional[str]:
        """
        Send a message to every known peer.

        Args:
            message: Message to render, or raw wire bytes
            signing_key: Signs an unsigned block or vote
            on_complete: Called once after every send finished

        Returns:
            str: Block hash for block-carrying messages, else None

        Raises:
            NodeNotStartedError: Node not started
            ParseError: Message cannot be rendered
        """
        self._require_transport()

        if isinstance(message, (bytes, bytearray)):
            data, block_hash = bytes(message), None
        else:
            rendered = render_message(message, signing_key)
            data, block_hash = rendered.data, rendered.hash

        targets = self.peers.all()
        self._spawn(self._send_all(data, targets, on_complete))

        logger.debug(
            "Publishing message",
            extra_data={"size": len(data), "peers": len(targets), "hash": block_hash}
        )

        return block_hash

    def broadcast_keepalive(self) -> int:
        """
        Send a keepalive advertising up to 8 known IPv4 peers.

        Returns:
            int: Number of peers advertised
        """
        advertised = []
        for address in self.peers:
            if len(advertised) == KEEPALIVE_PEER_SLOTS:
                break
            try:
                peer = PeerAddress.parse(address)
            except NanoNodeException:
                continue
            if peer.is_ip_literal and not peer.is_ipv6:
                advertised.append(address)

        self.publish(self.new_message(MessageType.KEEPALIVE, advertised or None))
        return len(advertised)

    async def keepalive_loop(self, interval: Optional[float] = None):
        """Broadcast keepalives until cancelled"""
        interval = interval if interval is not None else self.config.keepalive_interval

        while self.is_running:
            try:
                self.broadcast_keepalive()
                await asyncio.sleep(interval)

            except asyncio.CancelledError:
                break

    async def _send_all(
        self,
        data: bytes,
        targets: Tuple[str, ...],
        on_complete: Optional[Callable[[], None]]
    ):
        await asyncio.gather(*(self._send_to(data, address) for address in targets))

        if on_complete is not None:
            on_complete()

    async def _send_to(self, data: bytes, address: str) -> bool:
        try:
            peer = PeerAddress.parse(address)
            host = peer.host

            if peer.is_ipv6:
                raise PeerConnectionError(
                    f"IPv6 peer {address} not reachable over IPv4 socket",
                    code="ipv6_not_supported",
                    details={"peer": address}
                )

            if not peer.is_ip_literal:
                loop = asyncio.get_running_loop()
                infos = await loop.getaddrinfo(
                    peer.host, peer.port,
                    family=socket.AF_INET,
                    type=socket.SOCK_DGRAM
                )
                host = infos[0][4][0]

            transport = self._require_transport()

            # The selector transport reports an immediate send failure to
            # error_received() from inside sendto()
            self._sending_to, self._send_failed = address, False
            try:
                transport.sendto(data, (host, peer.port))
            finally:
                self._sending_to = None

            if self._send_failed:
                return False

            self.stats["datagrams_sent"] += 1
            return True

        except NanoNodeException as e:
            error = e
        except OSError as e:
            error = PeerConnectionError(
                f"Could not resolve {address}: {e}",
                code="resolve_failed",
                details={"peer": address}
            )

        self._report_send_error(error)
        return False

    def _handle_socket_error(self, exc: Exception) -> None:
        """UDP socket error passed up by the transport"""
        details = {"errno": getattr(exc, "errno", None)}
        if self._sending_to is not None:
            self._send_failed = True
            details["peer"] = self._sending_to

        target = self._sending_to or "peer"
        self._report_send_error(PeerConnectionError(
            f"Send to {target} failed: {exc}",
            code="send_failed",
            details=details
        ))

    def _report_send_error(self, error: NanoNodeException) -> None:
        self.stats["send_errors"] += 1
        logger.debug(f"Send failed: {error}")
        self._emit(ErrorEvent(error))

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ========================================================================
    # UTILITIES
    # ========================================================================

    def get_network_info(self) -> dict:
        return {
            "is_running": self.is_running,
            "network": self.config.network,
            "port": self.port if self.transport else None,
            "peer_count": len(self.peers),
            "peer_capacity": self.peers.capacity,
            "pending_sends": len(self._tasks),
            "stats": dict(self.stats),
        }


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "NanoNode",
    "MessageEvent",
    "BlockEvent",
    "VoteEvent",
    "ErrorEvent",
]
