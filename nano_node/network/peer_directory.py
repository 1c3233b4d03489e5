"""
NanoNode - Peer Directory
===========================
Bounded, recency-ordered set of known peers.

Last Updated: 2026-10-18
Version: 1.0.0

Features:
- Most recently responsive peer first
- Re-observed peers move to the front
- Oldest peers evicted past capacity
"""

from typing import Iterable, Iterator, List, Tuple

# Internal imports
from nano_node.constants import DEFAULT_MAX_PEERS
from nano_node.logging_setup import get_logger


# ============================================================================
# MODULE LOGGER
# ============================================================================

logger = get_logger("network.peer_directory")


# ============================================================================
# PEER DIRECTORY
# ============================================================================

class PeerDirectory:
    """
    Ordered peer keys ("address:port"), most recent first.

    Mutated only from the event loop thread, so no locking.

    Attributes:
        capacity: Maximum number of peers kept

    Examples:
        >>> peers = PeerDirectory(capacity=2)
        >>> for p in ["A", "B", "A", "C"]:
        ...     peers.observe(p)
        >>> peers.all()
        ('C', 'A')
    """

    def __init__(self, capacity: int = DEFAULT_MAX_PEERS, initial: Iterable[str] = ()):
        if capacity < 1:
            raise ValueError("capacity must be positive")

        self.capacity = capacity
        self._peers: List[str] = []
        self.evicted_count = 0

        # Seeds keep their given order
        for address in reversed(list(initial)):
            self.observe(address)

    def observe(self, address: str) -> None:
        """Record a responsive peer at the front of the directory"""
        if address in self._peers:
            self._peers.remove(address)
        else:
            logger.debug("New peer", extra_data={"peer": address})

        self._peers.insert(0, address)

        if len(self._peers) > self.capacity:
            evicted = self._peers[self.capacity:]
            del self._peers[self.capacity:]
            self.evicted_count += len(evicted)

    def all(self) -> Tuple[str, ...]:
        """Snapshot, most recent first"""
        return tuple(self._peers)

    def __len__(self) -> int:
        return len(self._peers)

    def __contains__(self, address: object) -> bool:
        return address in self._peers

    def __iter__(self) -> Iterator[str]:
        return iter(self.all())

    def __repr__(self) -> str:
        return f"PeerDirectory(size={len(self._peers)}, capacity={self.capacity})"


__all__ = [
    "PeerDirectory",
]
