"""
Bubble URL and DID encodings.

Format:
    bubble:<version><contract>[?vault=<vault>][&file=<file>]
    did:bubble:<version><contract>[?vault=<vault>][&file=<file>]

    version   base58 of the 1-byte version (0), left-padded with "1" to 2 chars
    contract  base58 of the 20 contract address bytes, appended with no separator
    vault     base58 of the UTF-8 text <40 lower-case hex id chars><server url>
    file      base58 of the raw file id bytes (20 or 32), or of the UTF-8
              text of a <dir id>/<name> path (always >= 44 bytes, so the two
              forms never collide)

A short DID carries no vault parameter; the provider is discovered from
the contract by bubble_tools.did.DIDResolver.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import parse_qsl

from bubble_tools import (
    ADDRESS_SIZE,
    BUBBLE_DID_PREFIX,
    BUBBLE_URL_PREFIX,
    DID_SCHEME,
    FILE_ID_SIZES,
    ID_VERSION,
    ID_VERSION_CHARS,
    PUBLIC_ID_FILE,
    SUPPORTED_ID_VERSIONS,
    VAULT_ID_HEX_CHARS,
    VAULT_PARAM_MIN_CHARS,
)
from bubble_tools.address import is_address, split_path
from bubble_tools.codec import (
    b58decode,
    base58_to_uint,
    hex_to_base58,
    strip_hex_prefix,
    text_to_base58,
    uint_to_base58,
)
from bubble_tools.errors import (
    AddressTooShort,
    InvalidAddress,
    InvalidFile,
    InvalidVaultId,
    InvalidVersion,
    NotBubbleDID,
    NotBubbleUrl,
    NotDID,
)
from bubble_tools.identifier import ContentIdentifier, VaultServer

# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def encode_version(version: int = ID_VERSION) -> str:
    """Base-58 version tag, left-padded to ID_VERSION_CHARS with "1"."""
    return uint_to_base58(version).rjust(ID_VERSION_CHARS, "1")


def _encode_vault(server: VaultServer) -> str:
    return text_to_base58(strip_hex_prefix(server.id) + server.url)


def _encode_file(file: str) -> str:
    if split_path(file) is not None:
        return text_to_base58(file)
    return hex_to_base58(file)


def _specific_identifier(contract: str) -> str:
    return encode_version() + hex_to_base58(contract)


def _query(provider: VaultServer | None, file: str | None) -> str:
    params = []
    if provider is not None:
        params.append("vault=" + _encode_vault(provider))
    if file:
        params.append("file=" + _encode_file(file))
    return "?" + "&".join(params) if params else ""


def encode_url(identifier: ContentIdentifier) -> str:
    """Encode an identifier as a ``bubble:`` URL."""
    return (
        BUBBLE_URL_PREFIX
        + _specific_identifier(identifier.contract)
        + _query(identifier.provider, identifier.file)
    )


def encode_did(identifier: ContentIdentifier) -> str:
    """Encode an identifier as a ``did:bubble:`` DID."""
    return DID_SCHEME + ":" + encode_url(identifier)


def encode_short_did(identifier: ContentIdentifier) -> str:
    """DID without the vault parameter.

    The file is dropped when it is the public identity file, since that is
    what a resolver assumes for a DID without one.
    """
    file = identifier.file if identifier.file != PUBLIC_ID_FILE else None
    return (
        BUBBLE_DID_PREFIX
        + _specific_identifier(identifier.contract)
        + _query(None, file)
    )


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def _decode_version(text: str) -> int:
    version = base58_to_uint(text)
    if version not in SUPPORTED_ID_VERSIONS:
        raise InvalidVersion(f"invalid Bubble DID/URL - unsupported version {version}")
    return version


def _decode_contract(text: str) -> str:
    raw = b58decode(text)
    if len(raw) != ADDRESS_SIZE:
        raise InvalidAddress("invalid Bubble DID/URL - address is invalid")
    address = "0x" + raw.hex()
    if not is_address(address):
        raise InvalidAddress("invalid Bubble DID/URL - address is invalid")
    return address


def _decode_vault(text: str) -> VaultServer:
    try:
        encoded = b58decode(text).decode("utf-8")
    except UnicodeDecodeError:
        raise InvalidVaultId("invalid Bubble DID/URL - vault parameter is not text") from None
    if len(encoded) < VAULT_PARAM_MIN_CHARS:
        raise InvalidVaultId("invalid Bubble DID/URL - vault parameter is invalid")
    vault_id = "0x" + encoded[:VAULT_ID_HEX_CHARS]
    url = encoded[VAULT_ID_HEX_CHARS:]
    if not is_address(vault_id):
        raise InvalidVaultId("invalid Bubble DID/URL - vault parameter id is not an address")
    return VaultServer(url=url, id=vault_id)


def _decode_file(text: str) -> str:
    raw = b58decode(text)
    if len(raw) in FILE_ID_SIZES:
        return "0x" + raw.hex()
    try:
        path = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise InvalidFile("invalid Bubble DID/URL - file is invalid") from None
    # ContentIdentifier validates the path itself
    return path


def _parse_params(query: str) -> dict[str, str]:
    params: dict[str, str] = {}
    for key, value in parse_qsl(query, keep_blank_values=True):
        params.setdefault(key, value)
    return params


def decode_url(text: str, chain: Any = None) -> ContentIdentifier:
    """Decode a ``bubble:`` URL.

    Raises NotBubbleUrl, InvalidVersion, AddressTooShort, InvalidAddress,
    InvalidVaultId, InvalidFile or Base58DecodeError.
    """
    if not isinstance(text, str) or not text.startswith(BUBBLE_URL_PREFIX):
        raise NotBubbleUrl(f"not a Bubble URL: {text!r}")

    rest = text[len(BUBBLE_URL_PREFIX):].partition("#")[0]
    specific, _, query = rest.partition("?")
    if len(specific) <= ID_VERSION_CHARS:
        raise AddressTooShort("invalid Bubble DID/URL - specific identifier is too short")
    _decode_version(specific[:ID_VERSION_CHARS])
    contract = _decode_contract(specific[ID_VERSION_CHARS:])

    params = _parse_params(query)
    provider = _decode_vault(params["vault"]) if params.get("vault") else None
    file = _decode_file(params["file"]) if params.get("file") else None
    return ContentIdentifier(chain=chain, contract=contract, provider=provider, file=file)


def decode_did(text: str, chain: Any = None) -> ContentIdentifier:
    """Decode a ``did:bubble:`` DID.

    Raises NotDID, NotBubbleDID, then anything decode_url raises.
    """
    if not isinstance(text, str) or not text.startswith(DID_SCHEME + ":"):
        raise NotDID(f"not a DID: {text!r}")
    inner = text[len(DID_SCHEME) + 1:]
    if not inner.startswith(BUBBLE_URL_PREFIX):
        raise NotBubbleDID(f"not a Bubble DID: {text!r}")
    return decode_url(inner, chain=chain)


def decode(text: str, chain: Any = None) -> ContentIdentifier:
    """Decode either form, choosing by the leading scheme."""
    if isinstance(text, str) and text.startswith(DID_SCHEME + ":"):
        return decode_did(text, chain=chain)
    return decode_url(text, chain=chain)


def is_bubble_url(text: object) -> bool:
    try:
        decode_url(text)  # type: ignore[arg-type]
    except ValueError:
        return False
    return True


def is_bubble_did(text: object) -> bool:
    try:
        decode_did(text)  # type: ignore[arg-type]
    except ValueError:
        return False
    return True
