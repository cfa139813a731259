"""
Error taxonomy for bubble identifiers, resolution and packet encoding.

Every error derives from BubbleError. Errors describing a malformed value
also derive from ValueError so callers may catch either.
"""

from __future__ import annotations


class BubbleError(Exception):
    """Base class for all bubble-tools errors."""


# ---------------------------------------------------------------------------
# Byte codec
# ---------------------------------------------------------------------------

class ByteRangeError(BubbleError, OverflowError):
    """An integer does not fit the requested number of bytes."""


class Base58DecodeError(BubbleError, ValueError):
    """A string contains characters outside the base-58 alphabet."""


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------

class IdentifierError(BubbleError, ValueError):
    """A value that should be a 20 or 32 byte identifier is malformed."""


class InvalidAddress(IdentifierError):
    """Not a 20-byte 0x-prefixed hex address."""


class InvalidVaultId(IdentifierError):
    """The vault server id is missing, malformed or not an address."""


class InvalidFile(IdentifierError):
    """The file is not a 20/32-byte file id or a valid dir/name path."""


# ---------------------------------------------------------------------------
# URL / DID decoding
# ---------------------------------------------------------------------------

class UrlError(BubbleError, ValueError):
    """A string could not be decoded as a bubble URL or DID."""


class NotBubbleUrl(UrlError):
    """The string does not use the bubble: scheme."""


class NotDID(UrlError):
    """The string does not start with did:."""


class NotBubbleDID(UrlError):
    """A DID whose method is not bubble."""


class InvalidVersion(UrlError):
    """The identifier version is malformed or unsupported."""


class AddressTooShort(UrlError):
    """The specific identifier is too short to hold a version and address."""


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

class ResolutionError(BubbleError):
    """A label or literal could not be resolved.

    Attributes:
        field: Descriptive name of the argument that failed (e.g. "file").
        value: The raw input that failed to resolve.
    """

    def __init__(self, field: str, value: object = None, reason: str = "invalid") -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"{field} is {reason}")


class UnknownVaultServer(BubbleError):
    """A vault hash read from a contract is not in the known servers table."""


# ---------------------------------------------------------------------------
# Packets
# ---------------------------------------------------------------------------

class InvalidPacketType(BubbleError, ValueError):
    """encode_packed was given a value of an unrecognised type."""
