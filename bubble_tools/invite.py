"""
Signed NFT mint invitations and SDAC permission hashes.

An invitation is the base58 encoding of a compact JSON object:

    {"c": contract, "s": series, "t": token_id, "e": expiry, "sig": signature}

(``"n": nonce`` replaces ``"t"`` for mint-next invitations). The signature
is over keccak256 of the packed packet the NFT contract rebuilds:

    mintWithInvite:      text, address contract, uint32 series, uint128 token_id, uint256 expiry
    mintNextWithInvite:  text, address contract, uint32 series, bytes32 nonce,    uint256 expiry
"""

from __future__ import annotations

import json
import logging
import re
import time
from typing import Protocol

from bubble_tools import DEFAULT_INVITE_EXPIRY
from bubble_tools.address import is_address, keccak_hex, to_checksum_address
from bubble_tools.codec import hex_to_bytes, text_to_base58
from bubble_tools.errors import BubbleError
from bubble_tools.packet import address, encode_packed, hex_value, text, uint

log = logging.getLogger(__name__)

_DURATION_TOKEN_RE = re.compile(r"[a-z]+|[0-9]+")
_DURATION_UNITS = {"h": 3600, "d": 86400, "w": 7 * 86400}


class InvitationError(BubbleError, ValueError):
    """Invalid invitation parameters."""


class Signer(Protocol):
    def sign(self, digest: bytes | str) -> str: ...


def parse_duration(value: str) -> int | None:
    """Parse ``"2w3d4h"``-style durations into seconds.

    Units are h, d and w. Returns None for zero amounts, unknown units or a
    malformed string.
    """
    if not isinstance(value, str):
        return None
    tokens = _DURATION_TOKEN_RE.findall(value.lower())
    if not tokens or len(tokens) % 2:
        return None
    seconds = 0
    for amount, unit in zip(tokens[::2], tokens[1::2]):
        if not amount.isdigit() or int(amount) == 0 or unit not in _DURATION_UNITS:
            return None
        seconds += int(amount) * _DURATION_UNITS[unit]
    return seconds


def parse_uint(value: int | str, name: str = "parameter") -> int:
    """Accept an int, a decimal string or a 0x hex string."""
    if isinstance(value, bool):
        raise InvitationError(f"invalid {name}")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and value:
        try:
            number = int(value, 16) if value.lower().startswith("0x") else int(value, 10)
        except ValueError:
            raise InvitationError(f"invalid {name}: {value!r}") from None
    else:
        raise InvitationError(f"missing {name}")
    if number < 0:
        raise InvitationError(f"invalid {name}: {value!r}")
    return number


def _expiry_time(expiry: str, now: float | None) -> int:
    duration = parse_duration(expiry)
    if duration is None:
        raise InvitationError(f"invalid expiry time: {expiry!r}")
    return int(now if now is not None else time.time()) + duration


def _encode_invite(invite: dict) -> str:
    log.debug("Invitation: %s", invite)
    return text_to_base58(json.dumps(invite, separators=(",", ":")))


def generate_mint_invitation(
    contract: str,
    series: int | str,
    token_id: int | str,
    key: Signer,
    expiry: str = DEFAULT_INVITE_EXPIRY,
    now: float | None = None,
) -> str:
    """Invitation to mint a specific token of a series."""
    if not is_address(contract):
        raise InvitationError(f"invalid contract address: {contract!r}")
    series = parse_uint(series, "series")
    token_id = parse_uint(token_id, "tokenId")
    expiry_time = _expiry_time(expiry, now)
    packet = encode_packed(
        text("mintWithInvite"),
        address(contract),
        uint(series, 32),
        uint(token_id, 128),
        uint(expiry_time),
    )
    signature = key.sign(keccak_hex(packet))
    return _encode_invite({
        "c": contract, "s": series, "t": token_id, "e": expiry_time, "sig": signature,
    })


def generate_mint_next_invitation(
    contract: str,
    series: int | str,
    key: Signer,
    expiry: str = DEFAULT_INVITE_EXPIRY,
    now: float | None = None,
) -> str:
    """Invitation to mint the next unminted token of a series.

    A fresh nonce (hash of contract, current time and "nonce") prevents the
    invitation being replayed.
    """
    if not is_address(contract):
        raise InvitationError(f"invalid contract address: {contract!r}")
    series = parse_uint(series, "series")
    if now is None:
        now = time.time()
    expiry_time = _expiry_time(expiry, now)
    nonce = keccak_hex(f"{contract}{int(now * 1000)}nonce")
    packet = encode_packed(
        text("mintNextWithInvite"),
        address(contract),
        uint(series, 32),
        hex_value(nonce, 32),
        uint(expiry_time),
    )
    signature = key.sign(keccak_hex(packet))
    return _encode_invite({
        "c": contract, "s": series, "n": nonce, "e": expiry_time, "sig": signature,
    })


def sdac_file_hash(contract: str, file: str) -> str:
    """keccak256(contract ‖ file) as passed to an SDAC's setPermissions."""
    if not is_address(contract):
        raise InvitationError(f"invalid contract address: {contract!r}")
    if not is_address(file):
        raise InvitationError(f"invalid file address: {file!r}")
    return keccak_hex(hex_to_bytes(contract, 20) + hex_to_bytes(file, 20))


def file_hash(data: str) -> str:
    """Checksummed address formed from the last 20 bytes of keccak256(data)."""
    return to_checksum_address("0x" + keccak_hex(data)[-40:])
