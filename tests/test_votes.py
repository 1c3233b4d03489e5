"""
NanoNode - Vote Tests
=======================
Unit tests for confirm_ack parsing, verification and observation.
"""

import pytest
from nano_node.constants import MessageType, HEADER_SIZE
from nano_node.domain.accounts import address_from_public_key
from nano_node.domain.crypto_core import compute_blake2b, verify_signature
from nano_node.network.events import VoteEvent, BlockEvent
from nano_node.network.message import Message, render_message, parse_message
from nano_node.network.votes import Vote, VoteObserver, vote_digest
from nano_node.errors import (
    InvalidBlockLengthError,
    InvalidFieldError,
    MissingFieldError,
    SignatureInvalidError,
)


SEQUENCE = "0000000000000001"


@pytest.fixture
def signed_vote(sample_blocks, keypair, representative_keypair):
    """Wire bytes of a confirm_ack signed by the representative"""
    author_key, _ = keypair
    rep_key, _ = representative_keypair

    block = sample_blocks["state"]
    block.signature = block.encode(author_key).signature

    vote = Vote(sequence=SEQUENCE, block=block)
    return render_message(Message(MessageType.CONFIRM_ACK, body=vote), rep_key)


class TestVoteParsing:
    """Test full and minimal confirm_ack parsing"""

    def test_valid_vote(self, signed_vote, representative_keypair, sample_blocks):
        _, rep_public = representative_keypair

        message = parse_message(signed_vote.data, minimal_confirm_ack=False)
        vote = message.body

        assert vote.account == rep_public.hex()
        assert vote.sequence == SEQUENCE
        assert vote.block.hash == signed_vote.hash
        assert vote.block.field_values() == sample_blocks["state"].field_values()
        assert not vote.is_minimal

    def test_signature_over_digest(self, signed_vote, representative_keypair):
        _, rep_public = representative_keypair
        vote = parse_message(signed_vote.data, minimal_confirm_ack=False).body

        digest = vote_digest(vote.block.hash, vote.sequence)
        assert verify_signature(digest, bytes.fromhex(vote.signature), rep_public)

    def test_flipped_signature_byte(self, signed_vote):
        data = bytearray(signed_vote.data)
        data[HEADER_SIZE + 32] ^= 0x01

        with pytest.raises(SignatureInvalidError) as exc_info:
            parse_message(bytes(data), minimal_confirm_ack=False)

        assert exc_info.value.code == "signature_invalid"

    def test_flipped_block_byte(self, signed_vote):
        """Changing the voted block changes the digest"""
        data = bytearray(signed_vote.data)
        data[HEADER_SIZE + 32 + 64 + 8] ^= 0x01

        with pytest.raises(SignatureInvalidError):
            parse_message(bytes(data), minimal_confirm_ack=False)

    def test_minimal_mode_never_verifies(self, signed_vote, representative_keypair):
        _, rep_public = representative_keypair
        data = bytearray(signed_vote.data)
        data[HEADER_SIZE + 32] ^= 0x01

        vote = parse_message(bytes(data), minimal_confirm_ack=True).body

        assert vote.account == rep_public.hex()
        assert vote.block is None
        assert vote.signature is None
        assert vote.payload == bytes(data[HEADER_SIZE:])

    def test_unsigned_vote_fails_verification(self, sample_blocks, representative_keypair):
        _, rep_public = representative_keypair
        vote = Vote(account=rep_public.hex(), sequence=SEQUENCE, block=sample_blocks["send"])
        data = render_message(Message(MessageType.CONFIRM_ACK, body=vote)).data

        with pytest.raises(SignatureInvalidError):
            parse_message(data, minimal_confirm_ack=False)

    @pytest.mark.parametrize("minimal", [True, False])
    def test_missing_account(self, minimal):
        data = render_message(Message(MessageType.CONFIRM_ACK)).data + bytes(20)

        with pytest.raises(InvalidBlockLengthError):
            parse_message(data, minimal_confirm_ack=minimal)

    def test_truncated_vote(self, signed_vote):
        with pytest.raises(InvalidBlockLengthError):
            parse_message(signed_vote.data[:HEADER_SIZE + 80], minimal_confirm_ack=False)


class TestVoteRendering:
    """Test confirm_ack rendering"""

    def test_vote_digest(self):
        block_hash = "ab" * 32
        expected = compute_blake2b(bytes.fromhex(block_hash), bytes.fromhex(SEQUENCE))

        assert vote_digest(block_hash, SEQUENCE) == expected

    def test_extensions_carry_block_type(self, signed_vote, sample_blocks):
        message = parse_message(signed_vote.data, minimal_confirm_ack=True)

        assert message.extensions == sample_blocks["state"].block_type

    def test_requires_block(self):
        with pytest.raises(MissingFieldError):
            render_message(Message(MessageType.CONFIRM_ACK, body=Vote(sequence=SEQUENCE)))

    def test_non_hex_sequence(self, sample_blocks):
        vote = Vote(account="11" * 32, sequence="zz" * 8, block=sample_blocks["change"])

        with pytest.raises(InvalidFieldError) as exc_info:
            render_message(Message(MessageType.CONFIRM_ACK, body=vote))

        assert exc_info.value.code == "invalid_hex_sequence"

    def test_requires_account_or_key(self, sample_blocks):
        vote = Vote(sequence=SEQUENCE, block=sample_blocks["change"])

        with pytest.raises(MissingFieldError):
            render_message(Message(MessageType.CONFIRM_ACK, body=vote))


class TestVoteObserver:
    """Test vote counting"""

    def _event(self, account: str) -> VoteEvent:
        message = Message(MessageType.CONFIRM_ACK, body=Vote(account=account))
        return VoteEvent(message, ("127.0.0.1", 7075))

    def test_counts_all_without_watch(self):
        observer = VoteObserver()
        observer.handle_event(self._event("11" * 32))
        observer.handle_event(self._event("11" * 32))
        observer.handle_event(self._event("22" * 32))

        assert observer.counts["11" * 32] == 2
        assert observer.counts["22" * 32] == 1

    def test_watch_filters(self, representative_keypair):
        _, rep_public = representative_keypair
        seen = []
        observer = VoteObserver(
            watch=[address_from_public_key(rep_public)],
            on_vote=lambda vote, remote: seen.append(vote.account)
        )

        observer.handle_event(self._event(rep_public.hex()))
        observer.handle_event(self._event("22" * 32))

        assert seen == [rep_public.hex()]
        assert observer.get_statistics()["seen_total"] == 2
        assert observer.get_statistics()["matched"] == 1

    def test_ignores_other_events(self, sample_blocks):
        observer = VoteObserver()

        assert observer.handle_event(BlockEvent(sample_blocks["send"], ("127.0.0.1", 1))) is None
        assert observer.seen_total == 0
