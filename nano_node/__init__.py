"""
NanoNode - Minimal Block-Lattice Peer
=======================================
Gossip, chain retrieval and vote observation for a Nano/RaiBlocks network.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__license__ = "MIT"

# Core imports
from nano_node.config import NodeSettings, get_settings
from nano_node.domain.blocks import (
    Block,
    SendBlock,
    ReceiveBlock,
    OpenBlock,
    ChangeBlock,
    StateBlock,
)
from nano_node.network.message import Message, render_message, parse_message
from nano_node.network.node import NanoNode
from nano_node.network.sync import ChainPuller, PullResult
from nano_node.network.votes import Vote, VoteObserver

# Constants
from nano_node.constants import MessageType, BlockType

__all__ = [
    # Version
    "__version__",

    # Core
    "NodeSettings",
    "get_settings",
    "Block",
    "SendBlock",
    "ReceiveBlock",
    "OpenBlock",
    "ChangeBlock",
    "StateBlock",
    "Message",
    "render_message",
    "parse_message",
    "NanoNode",
    "ChainPuller",
    "PullResult",
    "Vote",
    "VoteObserver",

    # Constants
    "MessageType",
    "BlockType",
]
