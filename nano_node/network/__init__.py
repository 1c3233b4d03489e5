"""
NanoNode - Network Package
============================
Wire messages, UDP gossip, TCP chain pulls and votes.
"""

from nano_node.network.message import (
    Message,
    MessageType,
    MessageFactory,
    RenderedMessage,
)
from nano_node.network.peer_directory import PeerDirectory
from nano_node.network.events import (
    MessageEvent,
    BlockEvent,
    VoteEvent,
    ErrorEvent,
)
from nano_node.network.node import NanoNode
from nano_node.network.sync import ChainPuller, ChainReassembler, PullResult
from nano_node.network.votes import Vote, VoteObserver

__all__ = [
    "Message",
    "MessageType",
    "MessageFactory",
    "RenderedMessage",
    "PeerDirectory",
    "MessageEvent",
    "BlockEvent",
    "VoteEvent",
    "ErrorEvent",
    "NanoNode",
    "ChainPuller",
    "ChainReassembler",
    "PullResult",
    "Vote",
    "VoteObserver",
]
