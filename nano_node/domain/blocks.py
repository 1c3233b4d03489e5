"""
NanoNode - Block Codec
========================
Fixed-layout block variants, their wire encoding and content hash.

Security Level: CRITICAL
Last Updated: 2026-10-18
Version: 1.0.0

Models:
- SendBlock: previous, destination, balance
- ReceiveBlock: previous, source
- OpenBlock: source, representative, account
- ChangeBlock: previous, representative
- StateBlock: account, previous, representative, balance, link

Wire layout of a block body:
    fields (variant order) | signature (64) | work (8)

The hash is BLAKE2b-256 over the field bytes only. Work travels
big-endian for state blocks and byte-reversed for every other variant.
"""

from __future__ import annotations
from dataclasses import dataclass, fields as dataclass_fields
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Type, Union

# Internal imports
from nano_node.constants import (
    BlockType,
    BLOCK_LENGTHS,
    REQUIRED_FIELDS,
    SPECIAL_ORDERING,
    BIG_ENDIAN_WORK,
    SIGNATURE_SIZE,
    WORK_SIZE,
)
from nano_node.domain.crypto_core import compute_blake2b, sign_message
from nano_node.errors import (
    InvalidBlockTypeError,
    InvalidBlockLengthError,
    MissingFieldError,
    LengthMismatchError,
    InvalidFieldError,
)
from nano_node.logging_setup import get_logger


# ============================================================================
# MODULE LOGGER
# ============================================================================

logger = get_logger("domain.blocks")


HexOrBytes = Union[str, bytes]


# ============================================================================
# FIELD SCHEMA
# ============================================================================

def resolve_block_type(value: Union[int, str, BlockType]) -> BlockType:
    """
    Map an index or name to a block type that carries data.

    Raises:
        InvalidBlockTypeError: For invalid, not_a_block or unknown values

    Examples:
        >>> resolve_block_type(6)
        <BlockType.STATE: 6>
        >>> resolve_block_type("send")
        <BlockType.SEND: 2>
    """
    try:
        if isinstance(value, str):
            block_type = BlockType[value.upper()]
        else:
            block_type = BlockType(value)
    except (KeyError, ValueError):
        raise InvalidBlockTypeError(
            f"Unknown block type: {value}",
            code="invalid_block_type",
            details={"block_type": value}
        )

    if block_type in (BlockType.INVALID, BlockType.NOT_A_BLOCK):
        raise InvalidBlockTypeError(
            f"Block type {block_type.label} carries no block",
            code="invalid_block_type",
            details={"block_type": int(block_type)}
        )

    return block_type


def fields_for(block_type: BlockType) -> List[str]:
    """
    Ordered field names of a block variant.

    Examples:
        >>> fields_for(BlockType.SEND)
        ['previous', 'destination', 'balance']
        >>> fields_for(BlockType.STATE)
        ['account', 'previous', 'representative', 'balance', 'link']
    """
    if block_type in SPECIAL_ORDERING:
        return list(SPECIAL_ORDERING[block_type])

    return [
        name
        for name, (types, _length) in REQUIRED_FIELDS.items()
        if block_type in types
    ]


def block_length(block_type: BlockType) -> int:
    """Body length without type byte, signature and work"""
    return BLOCK_LENGTHS[block_type]


def frame_length(block_type: BlockType) -> int:
    """Fields + signature + work"""
    return block_length(block_type) + SIGNATURE_SIZE + WORK_SIZE


def _to_bytes(name: str, value: HexOrBytes, length: int) -> bytes:
    if isinstance(value, bytes):
        raw = value
    else:
        try:
            raw = bytes.fromhex(value)
        except (TypeError, ValueError):
            raise InvalidFieldError(
                f"Field {name} is not a hex string",
                code=f"invalid_hex_{name}",
                details={"field": name, "value": value}
            )

    if len(raw) != length:
        raise LengthMismatchError(
            f"Field {name} must be {length} bytes, got {len(raw)}",
            code=f"length_mismatch_{name}",
            details={"field": name, "expected": length, "actual": len(raw)}
        )

    return raw


# ============================================================================
# WORK ENDIANNESS
# ============================================================================

def encode_work(block_type: BlockType, work: HexOrBytes) -> bytes:
    """
    Wire bytes of a work value.

    Examples:
        >>> encode_work(BlockType.SEND, "0001020304050607").hex()
        '0706050403020100'
        >>> encode_work(BlockType.STATE, "0001020304050607").hex()
        '0001020304050607'
    """
    raw = _to_bytes("work", work, WORK_SIZE)
    if block_type not in BIG_ENDIAN_WORK:
        raw = raw[::-1]
    return raw


def decode_work(block_type: BlockType, raw: bytes) -> str:
    if block_type not in BIG_ENDIAN_WORK:
        raw = raw[::-1]
    return raw.hex()


# ============================================================================
# BLOCK VARIANTS
# ============================================================================

@dataclass(kw_only=True)
class Block:
    """
    Base of the block variants.

    Field values, signature and work are hex strings. ``hash`` is filled in
    by the codec; it is never trusted from the caller.

    Attributes:
        work: 8-byte proof of work (hex)
        signature: 64-byte signature (hex), None when unsigned
        hash: 32-byte BLAKE2b content hash (hex)
    """

    block_type: ClassVar[BlockType] = BlockType.INVALID

    work: Optional[str] = None
    signature: Optional[str] = None
    hash: Optional[str] = None

    @property
    def type_name(self) -> str:
        return self.block_type.label

    def field_values(self) -> Dict[str, Optional[str]]:
        """Field values in hashing order"""
        return {name: getattr(self, name) for name in fields_for(self.block_type)}

    def encode(self, signing_key: Optional[HexOrBytes] = None) -> EncodedBlock:
        """Encode this block (see encode_block)"""
        return encode_block(
            self.block_type,
            self.field_values(),
            work=self.work,
            signature=self.signature,
            signing_key=signing_key
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type_name}
        data.update(self.field_values())
        data["signature"] = self.signature
        data["work"] = self.work
        data["hash"] = self.hash
        return data

    @classmethod
    def from_fields(
        cls,
        block_type: Union[int, str, BlockType],
        values: Mapping[str, Any]
    ) -> Block:
        """
        Build the variant for ``block_type`` from a mapping.

        Unknown keys are ignored so that ``to_dict`` output round-trips.

        Examples:
            >>> block = Block.from_fields("change", {"previous": "00" * 32})
            >>> type(block).__name__
            'ChangeBlock'
        """
        variant = BLOCK_CLASSES[resolve_block_type(block_type)]
        names = {f.name for f in dataclass_fields(variant)} - {"hash"}
        return variant(**{k: v for k, v in values.items() if k in names})

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Block:
        if "type" not in data:
            raise InvalidBlockTypeError(
                "Block type missing",
                code="invalid_block_type",
                details={"keys": sorted(data)}
            )
        return cls.from_fields(data["type"], data)

    def __repr__(self) -> str:
        short = self.hash[:16] + "..." if self.hash else None
        return f"{type(self).__name__}(hash={short})"


@dataclass(kw_only=True, repr=False)
class SendBlock(Block):
    block_type = BlockType.SEND

    previous: Optional[str] = None
    destination: Optional[str] = None
    balance: Optional[str] = None


@dataclass(kw_only=True, repr=False)
class ReceiveBlock(Block):
    block_type = BlockType.RECEIVE

    previous: Optional[str] = None
    source: Optional[str] = None


@dataclass(kw_only=True, repr=False)
class OpenBlock(Block):
    block_type = BlockType.OPEN

    source: Optional[str] = None
    representative: Optional[str] = None
    account: Optional[str] = None


@dataclass(kw_only=True, repr=False)
class ChangeBlock(Block):
    block_type = BlockType.CHANGE

    previous: Optional[str] = None
    representative: Optional[str] = None


@dataclass(kw_only=True, repr=False)
class StateBlock(Block):
    block_type = BlockType.STATE

    account: Optional[str] = None
    previous: Optional[str] = None
    representative: Optional[str] = None
    balance: Optional[str] = None
    link: Optional[str] = None


BLOCK_CLASSES: Dict[BlockType, Type[Block]] = {
    BlockType.SEND: SendBlock,
    BlockType.RECEIVE: ReceiveBlock,
    BlockType.OPEN: OpenBlock,
    BlockType.CHANGE: ChangeBlock,
    BlockType.STATE: StateBlock,
}


# ============================================================================
# ENCODE / DECODE
# ============================================================================

@dataclass(frozen=True)
class EncodedBlock:
    """
    Attributes:
        data: fields | signature | work
        hash: Content hash (hex)
        signature: Signature written (hex), None when unsigned
    """
    data: bytes
    hash: str
    signature: Optional[str] = None


def encode_block(
    block_type: BlockType,
    values: Mapping[str, Optional[HexOrBytes]],
    work: Optional[HexOrBytes],
    signature: Optional[HexOrBytes] = None,
    signing_key: Optional[HexOrBytes] = None
) -> EncodedBlock:
    """
    Encode a block body.

    Args:
        block_type: Variant
        values: Field name -> value (hex or bytes)
        work: 8-byte work value
        signature: Existing signature, written as is
        signing_key: 32-byte private key used when no signature is given

    Returns:
        EncodedBlock

    Raises:
        MissingFieldError: Required field or work absent
        LengthMismatchError: Field, signature, key or work of wrong length
        InvalidFieldError: Field, signature or work not hex

    Examples:
        >>> encoded = encode_block(
        ...     BlockType.CHANGE,
        ...     {"previous": "00" * 32, "representative": "11" * 32},
        ...     work="0000000000000000"
        ... )
        >>> len(encoded.data)
        136
    """
    block_type = resolve_block_type(block_type)

    parts = []
    for name in fields_for(block_type):
        value = values.get(name)
        if value is None:
            raise MissingFieldError(
                f"Missing field {name} for {block_type.label} block",
                code=f"missing_field_{name}",
                details={"field": name, "block_type": block_type.label}
            )
        parts.append(_to_bytes(name, value, REQUIRED_FIELDS[name][1]))

    body = b''.join(parts)
    digest = compute_blake2b(body)

    if signature is not None:
        signature_bytes = _to_bytes("signature", signature, SIGNATURE_SIZE)
    elif signing_key is not None:
        signature_bytes = sign_message(digest, signing_key)
    else:
        signature_bytes = None

    if work is None:
        raise MissingFieldError(
            f"Missing field work for {block_type.label} block",
            code="missing_field_work",
            details={"field": "work", "block_type": block_type.label}
        )
    work_bytes = encode_work(block_type, work)

    data = body + (signature_bytes or bytes(SIGNATURE_SIZE)) + work_bytes

    return EncodedBlock(
        data=data,
        hash=digest.hex(),
        signature=signature_bytes.hex() if signature_bytes else None
    )


def decode_block(data: bytes, block_type: Union[int, BlockType]) -> Block:
    """
    Decode a block body (fields | signature | work).

    The signature is not verified.

    Raises:
        InvalidBlockTypeError: Unknown variant
        InvalidBlockLengthError: ``data`` is not exactly one block frame
    """
    block_type = resolve_block_type(block_type)

    expected = frame_length(block_type)
    if len(data) != expected:
        raise InvalidBlockLengthError(
            f"{block_type.label} block must be {expected} bytes, got {len(data)}",
            code="invalid_block_length",
            details={"expected": expected, "actual": len(data)}
        )

    values: Dict[str, str] = {}
    pos = 0
    for name in fields_for(block_type):
        length = REQUIRED_FIELDS[name][1]
        values[name] = data[pos:pos + length].hex()
        pos += length

    digest = compute_blake2b(data[:pos])
    signature = data[pos:pos + SIGNATURE_SIZE].hex()
    work = decode_work(block_type, data[pos + SIGNATURE_SIZE:pos + SIGNATURE_SIZE + WORK_SIZE])

    return BLOCK_CLASSES[block_type](
        **values,
        work=work,
        signature=signature,
        hash=digest.hex()
    )


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "Block",
    "SendBlock",
    "ReceiveBlock",
    "OpenBlock",
    "ChangeBlock",
    "StateBlock",
    "BLOCK_CLASSES",
    "EncodedBlock",
    "resolve_block_type",
    "fields_for",
    "block_length",
    "frame_length",
    "encode_work",
    "decode_work",
    "encode_block",
    "decode_block",
]
