"""
NanoNode - Account Address Tests
==================================
Unit tests for account key <-> address conversion.
"""

import pytest
from nano_node.domain.accounts import (
    address_from_public_key,
    public_key_from_address,
    is_address,
)
from nano_node.domain.crypto_core import generate_keypair
from nano_node.errors import InvalidAccountError


GENESIS_KEY = "e89208dd038fbb269987689621d52292ae9c35941a7484756ecced92a65093ba"
GENESIS_ADDRESS = "xrb_3t6k35gi95xu6tergt6p69ck76ogmitsa8mnijtpxm9fkcm736xtoncuohr3"
BURN_ADDRESS = "xrb_1111111111111111111111111111111111111111111111111111hifc8npp"


class TestAddresses:
    """Test address encoding"""

    def test_genesis_address(self):
        assert address_from_public_key(GENESIS_KEY) == GENESIS_ADDRESS
        assert address_from_public_key(GENESIS_KEY.upper()) == GENESIS_ADDRESS

    def test_genesis_key(self):
        assert public_key_from_address(GENESIS_ADDRESS) == GENESIS_KEY

    def test_burn_address(self):
        assert address_from_public_key(bytes(32)) == BURN_ADDRESS
        assert public_key_from_address(BURN_ADDRESS) == "00" * 32

    def test_nano_prefix(self):
        address = address_from_public_key(GENESIS_KEY, prefix="nano_")

        assert address == "nano_" + GENESIS_ADDRESS[4:]
        assert public_key_from_address(address) == GENESIS_KEY

    def test_random_key_round_trip(self):
        _, public_key = generate_keypair()

        assert public_key_from_address(address_from_public_key(public_key)) == public_key.hex()

    def test_is_address(self):
        assert is_address(GENESIS_ADDRESS)
        assert not is_address(GENESIS_KEY)


class TestInvalidAddresses:
    """Test address rejection"""

    def test_bad_checksum(self):
        tampered = GENESIS_ADDRESS[:-1] + ("1" if GENESIS_ADDRESS[-1] != "1" else "3")

        with pytest.raises(InvalidAccountError):
            public_key_from_address(tampered)

    @pytest.mark.parametrize("address", [
        "ban_" + GENESIS_ADDRESS[4:],
        GENESIS_ADDRESS[:-2],
        GENESIS_ADDRESS[:10] + "0" + GENESIS_ADDRESS[11:],
        "xrb_" + "z" * 60,
    ])
    def test_malformed(self, address):
        with pytest.raises(InvalidAccountError):
            public_key_from_address(address)

    def test_short_key(self):
        with pytest.raises(InvalidAccountError):
            address_from_public_key("ab" * 31)

    def test_unknown_prefix(self):
        with pytest.raises(InvalidAccountError):
            address_from_public_key(GENESIS_KEY, prefix="ban_")
