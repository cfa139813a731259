"""
Fixed-width byte conversions and the base-58 string codec.

All functions are pure. Hex and text conversions right-align their input in
a buffer of the requested length, zero-padding on the left. Inputs longer
than the buffer are truncated from the left; callers validate lengths.
Unsigned integers are the exception: a value that does not fit raises
ByteRangeError rather than silently losing its high bytes.

Base-58 uses the Bitcoin alphabet without a checksum. Leading zero bytes
are encoded as leading "1" characters, so the encoding preserves length.
"""

from __future__ import annotations

from bubble_tools.errors import Base58DecodeError, ByteRangeError

B58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_B58_INDEX = {c: i for i, c in enumerate(B58_ALPHABET)}


def strip_hex_prefix(value: str) -> str:
    """Remove a leading 0x/0X if present."""
    if value[:2] in ("0x", "0X"):
        return value[2:]
    return value


def _right_align(data: bytes, length: int) -> bytes:
    if len(data) >= length:
        return data[len(data) - length:]
    return b"\x00" * (length - len(data)) + data


def hex_to_bytes(value: str, length: int) -> bytes:
    """Decode hex (with or without 0x) into exactly ``length`` bytes.

    Odd-length hex is treated as having an implicit leading zero.
    Raises ValueError on non-hex characters.
    """
    digits = strip_hex_prefix(value)
    if len(digits) % 2:
        digits = "0" + digits
    return _right_align(bytes.fromhex(digits), length)


def bytes_to_hex(data: bytes) -> str:
    """Lower-case hex, no prefix."""
    return bytes(data).hex()


def uint_to_bytes(value: int, length: int) -> bytes:
    """Big-endian encoding of a non-negative integer into ``length`` bytes.

    Raises ByteRangeError if the value is negative or too large.
    """
    if value < 0:
        raise ByteRangeError(f"Cannot encode negative value {value}")
    try:
        return int(value).to_bytes(length, "big")
    except OverflowError:
        raise ByteRangeError(f"Value {value} does not fit in {length} bytes") from None


def bytes_to_uint(data: bytes) -> int:
    return int.from_bytes(data, "big")


def text_to_bytes(text: str, length: int) -> bytes:
    """UTF-8 bytes of ``text`` right-aligned in ``length`` bytes."""
    return _right_align(text.encode("utf-8"), length)


def b58encode(data: bytes | None) -> str | None:
    """Base-58 encode raw bytes. Empty or ``None`` input yields ``None``."""
    if not data:
        return None
    data = bytes(data)
    n_zeros = len(data) - len(data.lstrip(b"\x00"))
    num = int.from_bytes(data, "big")

    enc = []
    while num > 0:
        num, rem = divmod(num, 58)
        enc.append(B58_ALPHABET[rem])
    enc.reverse()

    return "1" * n_zeros + "".join(enc)


def b58decode(text: str | None) -> bytes | None:
    """Decode a base-58 string. ``None`` propagates as ``None``.

    Raises Base58DecodeError on characters outside the alphabet.
    """
    if text is None:
        return None
    n_zeros = len(text) - len(text.lstrip("1"))

    num = 0
    for c in text:
        try:
            num = num * 58 + _B58_INDEX[c]
        except KeyError:
            raise Base58DecodeError(f"Non-base58 character: {c!r}") from None

    body = num.to_bytes((num.bit_length() + 7) // 8, "big") if num else b""
    return b"\x00" * n_zeros + body


# ---------------------------------------------------------------------------
# String-level helpers
# ---------------------------------------------------------------------------

def hex_to_base58(value: str | None) -> str | None:
    if value is None:
        return None
    digits = strip_hex_prefix(value)
    if len(digits) % 2:
        digits = "0" + digits
    return b58encode(bytes.fromhex(digits))


def base58_to_hex(value: str | None) -> str | None:
    """Decode base-58 into a 0x-prefixed lower-case hex string."""
    if value is None:
        return None
    return "0x" + bytes_to_hex(b58decode(value))


def text_to_base58(text: str | None) -> str | None:
    if text is None:
        return None
    return b58encode(text.encode("utf-8"))


def base58_to_text(value: str | None) -> str | None:
    """Decode base-58 into UTF-8 text.

    Raises Base58DecodeError if the decoded bytes are not valid UTF-8.
    """
    if value is None:
        return None
    try:
        return b58decode(value).decode("utf-8")
    except UnicodeDecodeError as e:
        raise Base58DecodeError(f"Decoded base58 is not UTF-8 text: {e}") from e


def uint_to_base58(value: int | None, length: int = 1) -> str | None:
    """Base-58 of a big-endian uint; grows past ``length`` bytes if needed."""
    if value is None:
        return None
    size = max(length, (int(value).bit_length() + 7) // 8)
    return b58encode(uint_to_bytes(value, size))


def base58_to_uint(value: str | None) -> int | None:
    if value is None:
        return None
    return bytes_to_uint(b58decode(value))
