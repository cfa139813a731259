"""
Address and file id validation, checksums and keccak helpers.

Addresses are 0x + 40 hex characters; mixed-case (EIP-55) input is
accepted but never enforced. File ids are 20 or 32 bytes. A compound path
is ``<file id>/<name>`` with exactly one slash and a non-empty name.
"""

from __future__ import annotations

import re

from eth_utils import keccak, to_checksum_address as _eth_checksum

from bubble_tools.codec import strip_hex_prefix

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_FILE_ID_RE = re.compile(r"^0x(?:[0-9a-fA-F]{40}|[0-9a-fA-F]{64})$")
_HEX_RE = re.compile(r"^(?:0x)?[0-9a-fA-F]*$")

ZERO_ADDRESS = "0x" + "00" * 20


def is_address(value: object) -> bool:
    """True if value is a 0x-prefixed 20-byte hex string."""
    return isinstance(value, str) and bool(_ADDRESS_RE.match(value))


def is_file_id(value: object) -> bool:
    """True if value is a 0x-prefixed 20 or 32 byte hex string."""
    return isinstance(value, str) and bool(_FILE_ID_RE.match(value))


def is_hex(value: object) -> bool:
    return isinstance(value, str) and bool(_HEX_RE.match(value))


def split_path(value: str) -> tuple[str, str] | None:
    """Split ``dir/name`` into its parts. None unless exactly one slash."""
    parts = value.split("/")
    if len(parts) != 2:
        return None
    return parts[0], parts[1]


def is_compound_path(value: object) -> bool:
    """True for ``<file id>/<name>`` with a non-empty name."""
    if not isinstance(value, str):
        return False
    parts = split_path(value)
    return parts is not None and is_file_id(parts[0]) and bool(parts[1])


def canonical_file(value: str) -> str:
    """Lower-case the hex part of a file id or compound path."""
    parts = split_path(value)
    if parts is None:
        return value.lower()
    return parts[0].lower() + "/" + parts[1]


def keccak_hex(data: bytes | str) -> str:
    """Keccak-256 as 0x-prefixed hex. Strings are hashed as UTF-8 text."""
    if isinstance(data, str):
        return "0x" + keccak(text=data).hex()
    return "0x" + keccak(bytes(data)).hex()


def to_checksum_address(address: str) -> str:
    """EIP-55 mixed-case form of an address."""
    return _eth_checksum(address)


def public_key_to_address(public_key: str | bytes) -> str:
    """Derive the 20-byte address from a 65-byte uncompressed public key."""
    if isinstance(public_key, str):
        public_key = bytes.fromhex(strip_hex_prefix(public_key))
    if len(public_key) == 65:
        public_key = public_key[1:]
    if len(public_key) != 64:
        raise ValueError("public key must be 64 or 65 bytes (uncompressed)")
    return "0x" + keccak(public_key)[-20:].hex()
