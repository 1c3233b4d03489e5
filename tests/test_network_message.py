"""
NanoNode - Network Message Tests
==================================
Unit tests for the wire message protocol.
"""

import struct

import pytest
from nano_node.constants import MessageType, BlockType, HEADER_SIZE
from nano_node.network.message import (
    Message,
    MessageFactory,
    render_message,
    parse_message,
)
from nano_node.errors import (
    InvalidMagicError,
    InvalidNetworkError,
    InvalidTypeError,
    InvalidBlockTypeError,
    InvalidBlockLengthError,
    InvalidAccountError,
    InvalidAddressError,
    TooManyPeersError,
    Ipv6UnsupportedError,
)


def header(message_type: int, extensions: int = 0, network: int = 0x43) -> bytes:
    return bytes([0x52, network, 7, 7, 1, message_type]) + struct.pack('>H', extensions)


class TestHeader:
    """Test envelope header"""

    def test_default_header(self):
        data = render_message(Message(MessageType.KEEPALIVE)).data

        assert data[:HEADER_SIZE] == header(MessageType.KEEPALIVE)

    def test_testnet(self):
        data = render_message(Message(MessageType.KEEPALIVE, mainnet=False)).data
        message = parse_message(data)

        assert data[1] == 0x41
        assert message.mainnet is False

    def test_versions_round_trip(self):
        msg = Message(MessageType.FRONTIER_REQ, version_max=9, version_using=8, version_min=2)
        parsed = parse_message(render_message(msg).data)

        assert (parsed.version_max, parsed.version_using, parsed.version_min) == (9, 8, 2)

    def test_message_type_by_name(self):
        assert Message("keepalive").message_type == MessageType.KEEPALIVE

        with pytest.raises(InvalidTypeError):
            Message("gossip")

    def test_invalid_magic(self):
        data = bytearray(render_message(Message(MessageType.KEEPALIVE)).data)
        data[0] = 0x53

        with pytest.raises(InvalidMagicError) as exc_info:
            parse_message(bytes(data))

        assert exc_info.value.code == "magic_number"

    def test_invalid_network(self):
        with pytest.raises(InvalidNetworkError):
            parse_message(header(MessageType.KEEPALIVE, network=0x42))

    def test_invalid_type(self):
        with pytest.raises(InvalidTypeError):
            parse_message(header(9))

    def test_short_header(self):
        with pytest.raises(InvalidBlockLengthError):
            parse_message(b'\x52\x43\x07')


class TestKeepalive:
    """Test keepalive body"""

    def test_keepalive_round_trip(self):
        msg = MessageFactory.create_keepalive(["1.2.3.4:7075"])
        data = render_message(msg).data

        assert len(data) == 152
        assert parse_message(data).body == ["1.2.3.4:7075"]

    def test_empty_keepalive(self):
        data = render_message(MessageFactory.create_keepalive()).data

        assert data[HEADER_SIZE:] == bytes(144)
        assert parse_message(data).body == []

    def test_full_keepalive(self):
        peers = [f"10.0.0.{i}:{7000 + i}" for i in range(8)]
        data = render_message(MessageFactory.create_keepalive(peers)).data

        assert parse_message(data).peers == peers

    def test_too_many_peers(self):
        peers = [f"10.0.0.{i}:7075" for i in range(9)]

        with pytest.raises(TooManyPeersError):
            render_message(MessageFactory.create_keepalive(peers))

    def test_ipv6_peer_rejected(self):
        with pytest.raises(Ipv6UnsupportedError):
            render_message(MessageFactory.create_keepalive(["[::1]:7075"]))

    def test_hostname_rejected(self):
        with pytest.raises(InvalidAddressError):
            render_message(MessageFactory.create_keepalive(["example.org:7075"]))

    def test_ipv6_slot_decoded(self):
        slot = bytes.fromhex("20010db8000000000000000000000001") + struct.pack('<H', 7075)
        data = header(MessageType.KEEPALIVE) + slot + bytes(126)

        assert parse_message(data).body == ["[2001:db8::1]:7075"]

    def test_truncated_keepalive(self):
        with pytest.raises(InvalidBlockLengthError):
            parse_message(header(MessageType.KEEPALIVE) + bytes(100))


class TestBlockMessages:
    """Test publish / confirm_req"""

    def test_publish_round_trip(self, sample_blocks, keypair):
        private_key, _ = keypair
        block = sample_blocks["state"]

        rendered = render_message(MessageFactory.create_publish(block), private_key)
        message = parse_message(rendered.data)

        assert message.extensions == BlockType.STATE
        assert message.block.hash == rendered.hash
        assert message.block.field_values() == block.field_values()

    def test_confirm_req_round_trip(self, sample_blocks):
        rendered = render_message(MessageFactory.create_confirm_req(sample_blocks["open"]))
        message = parse_message(rendered.data)

        assert message.message_type == MessageType.CONFIRM_REQ
        assert message.block.hash == rendered.hash

    def test_publish_from_dict(self, sample_blocks):
        block = sample_blocks["receive"]
        rendered = render_message(Message(MessageType.PUBLISH, body=block.to_dict()))

        assert rendered.hash == block.encode().hash

    def test_not_a_block_extension(self, sample_blocks):
        body = sample_blocks["send"].encode().data

        with pytest.raises(InvalidBlockTypeError):
            parse_message(header(MessageType.PUBLISH, BlockType.NOT_A_BLOCK) + body)

    def test_truncated_block(self, sample_blocks):
        data = render_message(MessageFactory.create_publish(sample_blocks["send"])).data

        with pytest.raises(InvalidBlockLengthError):
            parse_message(data[:-10])


class TestPullMessages:
    """Test bulk_pull / frontier_req"""

    def test_bulk_pull(self):
        account = "ab" * 32
        data = render_message(MessageFactory.create_bulk_pull(account)).data

        assert data[:HEADER_SIZE] == header(MessageType.BULK_PULL)
        assert data[HEADER_SIZE:] == bytes.fromhex(account) * 2

    @pytest.mark.parametrize("account", ["ab" * 31, "zz" * 32, None])
    def test_bulk_pull_invalid_account(self, account):
        with pytest.raises(InvalidAccountError):
            render_message(Message(MessageType.BULK_PULL, body=account))

    def test_frontier_req(self):
        data = render_message(MessageFactory.create_frontier_req()).data

        assert data[:HEADER_SIZE] == header(MessageType.FRONTIER_REQ)
        assert data[HEADER_SIZE:] == bytes(32) + b'\xff\xff\xff\xff'

    def test_raw_body(self):
        """Bytes bodies are written and read back untouched"""
        msg = Message(MessageType.BULK_PUSH, body=b'\x01\x02\x03')
        parsed = parse_message(render_message(msg).data)

        assert parsed.body == b'\x01\x02\x03'
