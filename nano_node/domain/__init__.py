"""
NanoNode - Domain Package
===========================
Blocks, hashing, signatures and account addresses.
"""

# Blocks
from nano_node.domain.blocks import (
    Block,
    SendBlock,
    ReceiveBlock,
    OpenBlock,
    ChangeBlock,
    StateBlock,
    EncodedBlock,
    encode_block,
    decode_block,
)

# Crypto
from nano_node.domain.crypto_core import (
    compute_blake2b,
    generate_keypair,
    sign_message,
    verify_signature,
)

# Accounts
from nano_node.domain.accounts import (
    address_from_public_key,
    public_key_from_address,
)

__all__ = [
    "Block",
    "SendBlock",
    "ReceiveBlock",
    "OpenBlock",
    "ChangeBlock",
    "StateBlock",
    "EncodedBlock",
    "encode_block",
    "decode_block",
    "compute_blake2b",
    "generate_keypair",
    "sign_message",
    "verify_signature",
    "address_from_public_key",
    "public_key_from_address",
]
