"""
NanoNode - Pytest Configuration
=================================
Shared fixtures for testing.

Last Updated: 2026-10-18
Version: 1.0.0
"""

import asyncio
import pytest

# Internal imports
from nano_node.config import override_settings
from nano_node.domain.blocks import (
    SendBlock,
    ReceiveBlock,
    OpenBlock,
    ChangeBlock,
    StateBlock,
)
from nano_node.domain.crypto_core import generate_keypair


WORK = "0001020304050607"


# ============================================================================
# CONFIGURATION FIXTURES
# ============================================================================

@pytest.fixture
def test_config():
    """Loopback configuration without bootstrap peers"""
    return override_settings(
        network="mainnet",
        bind_host="127.0.0.1",
        udp_port=0,
        bootstrap_peers=[],
        tcp_timeout_ms=1000,
        minimal_confirm_ack=True,
    )


# ============================================================================
# KEY FIXTURES
# ============================================================================

@pytest.fixture
def keypair():
    """(private_key, public_key) of a block author"""
    return generate_keypair()


@pytest.fixture
def representative_keypair():
    """(private_key, public_key) of a voting representative"""
    return generate_keypair()


# ============================================================================
# BLOCK FIXTURES
# ============================================================================

@pytest.fixture
def sample_blocks(keypair):
    """One unsigned block of every variant"""
    _, public_key = keypair
    account = public_key.hex()

    return {
        "send": SendBlock(
            previous="11" * 32,
            destination="22" * 32,
            balance="000000000000000000000000000f4240",
            work=WORK,
        ),
        "receive": ReceiveBlock(
            previous="11" * 32,
            source="33" * 32,
            work=WORK,
        ),
        "open": OpenBlock(
            source="33" * 32,
            representative="44" * 32,
            account=account,
            work=WORK,
        ),
        "change": ChangeBlock(
            previous="11" * 32,
            representative="44" * 32,
            work=WORK,
        ),
        "state": StateBlock(
            account=account,
            previous="11" * 32,
            representative="44" * 32,
            balance="000000000000000000000000000f4240",
            link="55" * 32,
            work=WORK,
        ),
    }


@pytest.fixture
def receive_chain():
    """Three receive blocks forming a chain"""
    blocks = []
    previous = "00" * 32
    for index in range(3):
        block = ReceiveBlock(previous=previous, source=f"{index + 1:02x}" * 32, work=WORK)
        previous = block.encode().hash
        blocks.append(block)
    return blocks


# ============================================================================
# HELPER FIXTURES
# ============================================================================

class EventRecorder:
    """Subscriber collecting node events"""

    def __init__(self):
        self.events = []
        self._changed = asyncio.Event()

    def __call__(self, event):
        self.events.append(event)
        self._changed.set()

    def of_type(self, event_type):
        return [e for e in self.events if isinstance(e, event_type)]

    async def wait_for(self, event_type, count: int = 1, timeout: float = 2.0):
        """Wait until ``count`` events of ``event_type`` were recorded"""
        async def _wait():
            while len(self.of_type(event_type)) < count:
                self._changed.clear()
                await self._changed.wait()
            return self.of_type(event_type)

        return await asyncio.wait_for(_wait(), timeout)


@pytest.fixture
def recorder():
    """Factory of event recorders"""
    return EventRecorder
