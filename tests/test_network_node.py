"""
NanoNode - Gossip Transport Tests
===================================
Loopback UDP tests for the node.
"""

import asyncio

import pytest
from nano_node.constants import MessageType
from nano_node.network.events import MessageEvent, BlockEvent, VoteEvent, ErrorEvent
from nano_node.network.node import NanoNode
from nano_node.network.votes import Vote
from nano_node.errors import (
    InvalidMessage,
    InvalidMagicError,
    NodeNotStartedError,
    PeerConnectionError,
    SignatureInvalidError,
)


async def start_nodes(*nodes):
    for node in nodes:
        await node.start()


async def stop_nodes(*nodes):
    for node in nodes:
        await node.stop()


class TestNodeLifecycle:
    """Test start/stop"""

    @pytest.mark.asyncio
    async def test_start_binds_random_port(self, test_config):
        node = NanoNode(test_config)
        await node.start()
        try:
            assert node.port > 0
            assert node.get_network_info()["port"] == node.port
        finally:
            await node.stop()

        assert node.transport is None
        assert node.get_network_info()["is_running"] is False

    @pytest.mark.asyncio
    async def test_publish_requires_start(self, test_config):
        node = NanoNode(test_config)

        with pytest.raises(NodeNotStartedError):
            node.publish(node.new_message(MessageType.KEEPALIVE))

    def test_bootstrap_peers_seeded(self, test_config):
        config = test_config.model_copy(update={"bootstrap_peers": ["rai.raiblocks.net:7075"]})

        assert NanoNode(config).peers.all() == ("rai.raiblocks.net:7075",)


class TestGossip:
    """Test inbound dispatch"""

    @pytest.mark.asyncio
    async def test_publish_block(self, test_config, sample_blocks, keypair, recorder):
        private_key, _ = keypair
        sender, receiver = NanoNode(test_config), NanoNode(test_config)
        events = recorder()
        receiver.subscribe(events)
        done = asyncio.Event()

        await start_nodes(sender, receiver)
        try:
            sender_peer = f"127.0.0.1:{sender.port}"
            sender.peers.observe(f"127.0.0.1:{receiver.port}")

            block_hash = sender.publish(
                sender.new_message(MessageType.PUBLISH, sample_blocks["send"]),
                private_key,
                on_complete=done.set
            )

            blocks = await events.wait_for(BlockEvent)
            await asyncio.wait_for(done.wait(), 2.0)
        finally:
            await stop_nodes(sender, receiver)

        assert blocks[0].block.hash == block_hash
        assert blocks[0].block.signature is not None
        assert sender_peer in receiver.peers

        kinds = [type(e) for e in events.events]
        assert kinds.index(MessageEvent) < kinds.index(BlockEvent)

    @pytest.mark.asyncio
    async def test_invalid_datagram(self, test_config, recorder):
        sender, receiver = NanoNode(test_config), NanoNode(test_config)
        events = recorder()
        receiver.subscribe(events)

        await start_nodes(sender, receiver)
        try:
            sender_port = sender.port
            sender.peers.observe(f"127.0.0.1:{receiver.port}")
            sender.publish(b'\x00garbage')

            errors = await events.wait_for(ErrorEvent)
        finally:
            await stop_nodes(sender, receiver)

        error = errors[0].error
        assert isinstance(error, InvalidMessage)
        assert isinstance(error.original_error, InvalidMagicError)
        assert error.remote == ("127.0.0.1", sender_port)
        assert error.data == b'\x00garbage'
        assert len(receiver.peers) == 0
        assert receiver.stats["invalid_messages"] == 1

    @pytest.mark.asyncio
    async def test_keepalive_flooding(self, test_config, recorder):
        """Peers listed in a keepalive get probed"""
        origin, relay, target = (NanoNode(test_config) for _ in range(3))
        events = recorder()
        target.subscribe(events)

        await start_nodes(origin, relay, target)
        try:
            relay_peer = f"127.0.0.1:{relay.port}"
            origin.peers.observe(relay_peer)
            origin.publish(
                origin.new_message(MessageType.KEEPALIVE, [f"127.0.0.1:{target.port}"])
            )

            probes = await events.wait_for(MessageEvent)
        finally:
            await stop_nodes(origin, relay, target)

        assert probes[0].message.message_type == MessageType.KEEPALIVE
        assert probes[0].message.body == []
        assert probes[0].remote[1] == int(relay_peer.rsplit(":", 1)[1])
        assert relay_peer in target.peers

    @pytest.mark.asyncio
    async def test_minimal_vote(self, test_config, sample_blocks, representative_keypair, recorder):
        rep_key, rep_public = representative_keypair
        sender, receiver = NanoNode(test_config), NanoNode(test_config)
        events = recorder()
        receiver.subscribe(events)

        await start_nodes(sender, receiver)
        try:
            sender.peers.observe(f"127.0.0.1:{receiver.port}")
            vote = Vote(sequence="0000000000000001", block=sample_blocks["state"])
            sender.publish(sender.new_message(MessageType.CONFIRM_ACK, vote), rep_key)

            votes = await events.wait_for(VoteEvent)
        finally:
            await stop_nodes(sender, receiver)

        assert votes[0].vote.account == rep_public.hex()
        assert votes[0].vote.block is None

    @pytest.mark.asyncio
    async def test_full_vote_verification(self, test_config, sample_blocks, recorder):
        """Unsigned votes fail in full mode"""
        config = test_config.model_copy(update={"minimal_confirm_ack": False})
        sender, receiver = NanoNode(config), NanoNode(config)
        events = recorder()
        receiver.subscribe(events)

        await start_nodes(sender, receiver)
        try:
            sender.peers.observe(f"127.0.0.1:{receiver.port}")
            vote = Vote(account="11" * 32, sequence="0000000000000001", block=sample_blocks["send"])
            sender.publish(sender.new_message(MessageType.CONFIRM_ACK, vote))

            errors = await events.wait_for(ErrorEvent)
        finally:
            await stop_nodes(sender, receiver)

        assert isinstance(errors[0].error.original_error, SignatureInvalidError)
        assert not events.of_type(VoteEvent)

    @pytest.mark.asyncio
    async def test_event_iterator(self, test_config, sample_blocks):
        sender, receiver = NanoNode(test_config), NanoNode(test_config)

        await start_nodes(sender, receiver)
        iterator = receiver.events()
        try:
            pending = asyncio.ensure_future(iterator.__anext__())
            await asyncio.sleep(0)

            sender.peers.observe(f"127.0.0.1:{receiver.port}")
            sender.publish(sender.new_message(MessageType.PUBLISH, sample_blocks["change"]))

            first = await asyncio.wait_for(pending, 2.0)
        finally:
            await stop_nodes(sender, receiver)

        assert isinstance(first, MessageEvent)

        # Drains to the end after stop()
        remaining = [event async for event in iterator]
        assert [type(e) for e in remaining] == [BlockEvent]


class TestOutbound:
    """Test publish fan-out"""

    @pytest.mark.asyncio
    async def test_ipv6_peer_send_error(self, test_config, recorder):
        node = NanoNode(test_config)
        events = recorder()
        node.subscribe(events)
        done = asyncio.Event()

        await node.start()
        try:
            node.peers.observe("[::1]:7075")
            node.publish(node.new_message(MessageType.KEEPALIVE), on_complete=done.set)

            await asyncio.wait_for(done.wait(), 2.0)
        finally:
            await node.stop()

        errors = events.of_type(ErrorEvent)
        assert len(errors) == 1
        assert errors[0].error.code == "ipv6_not_supported"

    @pytest.mark.asyncio
    async def test_rejected_send_reported(self, test_config, recorder):
        """Kernel refuses a broadcast send without SO_BROADCAST"""
        node = NanoNode(test_config)
        events = recorder()
        node.subscribe(events)
        done = asyncio.Event()

        await node.start()
        try:
            node.peers.observe("255.255.255.255:7075")
            node.publish(node.new_message(MessageType.KEEPALIVE), on_complete=done.set)

            await asyncio.wait_for(done.wait(), 2.0)
        finally:
            await node.stop()

        errors = events.of_type(ErrorEvent)
        assert len(errors) == 1
        assert isinstance(errors[0].error, PeerConnectionError)
        assert errors[0].error.code == "send_failed"
        assert errors[0].error.details["peer"] == "255.255.255.255:7075"
        assert node.stats["send_errors"] == 1
        assert node.stats["datagrams_sent"] == 0

    @pytest.mark.asyncio
    async def test_broadcast_keepalive(self, test_config, recorder):
        sender, receiver = NanoNode(test_config), NanoNode(test_config)
        events = recorder()
        receiver.subscribe(events)

        await start_nodes(sender, receiver)
        try:
            receiver_peer = f"127.0.0.1:{receiver.port}"
            sender.peers.observe("[::1]:7075")
            sender.peers.observe(receiver_peer)

            advertised = sender.broadcast_keepalive()
            received = await events.wait_for(MessageEvent)
        finally:
            await stop_nodes(sender, receiver)

        assert advertised == 1
        assert received[0].message.body == [receiver_peer]
