"""
NanoNode - Transport Events
=============================
Typed notifications emitted by the gossip transport.

Last Updated: 2026-10-18
Version: 1.0.0
"""

from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

from nano_node.domain.blocks import Block
from nano_node.errors import NanoNodeException
from nano_node.network.message import Message


Remote = Tuple[Any, ...]


@dataclass(frozen=True)
class MessageEvent:
    """Any successfully parsed inbound message"""
    message: Message
    remote: Remote


@dataclass(frozen=True)
class BlockEvent:
    """Block received in a publish message (signature not checked)"""
    block: Block
    remote: Remote


@dataclass(frozen=True)
class VoteEvent:
    """Inbound confirm_ack; ``message.body`` is the Vote"""
    message: Message
    remote: Remote

    @property
    def vote(self):
        return self.message.body


@dataclass(frozen=True)
class ErrorEvent:
    """Parse failure of an inbound datagram or failed outbound send"""
    error: NanoNodeException
    remote: Optional[Remote] = None


NodeEvent = Union[MessageEvent, BlockEvent, VoteEvent, ErrorEvent]


__all__ = [
    "MessageEvent",
    "BlockEvent",
    "VoteEvent",
    "ErrorEvent",
    "NodeEvent",
]
