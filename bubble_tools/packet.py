"""
Deterministic packed encoding of typed values, matching Solidity's
``abi.encodePacked`` for the types used in signed bubble packets.

Values are concatenated in argument order with no separators or length
prefixes; the receiving contract knows the schema.

    text      UTF-8 bytes, length = encoded length
    hex       right-aligned in ``size`` bytes (natural length if no size)
    address   right-aligned in 20 bytes
    bool      1 byte, 0x00 or 0x01
    uint      big-endian in bits/8 bytes (uint256 by default)

Usage:
    packet = encode_packed(
        text("mintWithInvite"),
        address(contract),
        uint(series, 32),
        uint(token_id, 128),
        uint(expiry),
    )
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from bubble_tools.codec import hex_to_bytes, strip_hex_prefix, text_to_bytes, uint_to_bytes
from bubble_tools.errors import InvalidPacketType


class PacketType(Enum):
    TEXT = "text"
    HEX = "hex"
    ADDRESS = "address"
    BOOL = "bool"
    UINT = "uint"


@dataclass(frozen=True)
class PackedValue:
    """A value tagged with its packed type.

    Attributes:
        type: One of PacketType.
        value: The raw value (str, bool or int depending on type).
        size: Width in bytes for HEX and UINT; None means the natural
            length (HEX) or 32 bytes (UINT).
    """

    type: PacketType
    value: Any
    size: int | None = None


def text(value: str) -> PackedValue:
    return PackedValue(PacketType.TEXT, value)


def hex_value(value: str, size: int | None = None) -> PackedValue:
    return PackedValue(PacketType.HEX, value, size)


def address(value: str) -> PackedValue:
    return PackedValue(PacketType.ADDRESS, value, 20)


def boolean(value: bool) -> PackedValue:
    return PackedValue(PacketType.BOOL, value, 1)


def uint(value: int, bits: int = 256) -> PackedValue:
    """uint<bits>. Bits must be a multiple of 8 between 8 and 256."""
    if bits % 8 or not 8 <= bits <= 256:
        raise InvalidPacketType(f"invalid uint width: uint{bits}")
    return PackedValue(PacketType.UINT, value, bits // 8)


def _encode_text(v: PackedValue) -> bytes:
    data = v.value.encode("utf-8")
    return text_to_bytes(v.value, len(data))


def _encode_hex(v: PackedValue) -> bytes:
    size = v.size
    if size is None:
        size = (len(strip_hex_prefix(v.value)) + 1) // 2
    return hex_to_bytes(v.value, size)


def _encode_address(v: PackedValue) -> bytes:
    return hex_to_bytes(v.value, 20)


def _encode_bool(v: PackedValue) -> bytes:
    return uint_to_bytes(1 if v.value else 0, 1)


def _encode_uint(v: PackedValue) -> bytes:
    return uint_to_bytes(int(v.value), v.size or 32)


_ENCODERS = {
    PacketType.TEXT: _encode_text,
    PacketType.HEX: _encode_hex,
    PacketType.ADDRESS: _encode_address,
    PacketType.BOOL: _encode_bool,
    PacketType.UINT: _encode_uint,
}


def encode_packed(*values: PackedValue) -> bytes:
    """Concatenate the packed encodings of ``values``.

    Raises InvalidPacketType for anything that is not a PackedValue of a
    known type, and ByteRangeError for uints that do not fit their width.
    """
    out = bytearray()
    for v in values:
        if not isinstance(v, PackedValue) or not isinstance(v.type, PacketType):
            raise InvalidPacketType(f"invalid type passed to encode_packed: {v!r}")
        encoder = _ENCODERS.get(v.type)
        if encoder is None:
            raise InvalidPacketType(f"invalid type passed to encode_packed: {v!r}")
        out += encoder(v)
    return bytes(out)
