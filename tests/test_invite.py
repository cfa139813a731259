"""
Tests for mint invitations, duration parsing and SDAC file hashes.

Signing is mocked so these run without secp256k1.
"""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest

from bubble_tools.address import keccak_hex
from bubble_tools.codec import base58_to_text, hex_to_bytes
from bubble_tools.invite import (
    InvitationError,
    file_hash,
    generate_mint_invitation,
    generate_mint_next_invitation,
    parse_duration,
    parse_uint,
    sdac_file_hash,
)
from bubble_tools.packet import address, encode_packed, hex_value, text, uint

CONTRACT = "0xd9145cce52d386f254917e481eb44e9943f39138"
NOW = 1_650_000_000
SIGNATURE = "0x" + "ab" * 65


@pytest.fixture
def key():
    key = MagicMock()
    key.sign.return_value = SIGNATURE
    return key


def _decode(invite: str) -> dict:
    return json.loads(base58_to_text(invite))


class TestParseDuration:

    @pytest.mark.parametrize("value,seconds", [
        ("1h", 3600),
        ("1d", 86400),
        ("1w", 604800),
        ("2w3d4h", 1483200),
        ("28D", 28 * 86400),
    ])
    def test_valid(self, value, seconds):
        assert parse_duration(value) == seconds

    @pytest.mark.parametrize("value", ["", "0d", "1y", "12", "d", "1h2", None])
    def test_invalid(self, value):
        assert parse_duration(value) is None


class TestParseUint:

    def test_forms(self):
        assert parse_uint(3) == 3
        assert parse_uint("3") == 3
        assert parse_uint("0x10") == 16

    @pytest.mark.parametrize("value", ["", "abc", "-1", -1, True, None])
    def test_invalid(self, value):
        with pytest.raises(InvitationError):
            parse_uint(value, "series")


class TestMintInvitation:

    def test_invite_fields(self, key):
        invite = _decode(generate_mint_invitation(CONTRACT, "3", "1", key, "1d", now=NOW))
        assert invite == {
            "c": CONTRACT, "s": 3, "t": 1, "e": NOW + 86400, "sig": SIGNATURE,
        }

    def test_signs_packet_hash(self, key):
        generate_mint_invitation(CONTRACT, 3, 1, key, "1h", now=NOW)
        packet = encode_packed(
            text("mintWithInvite"), address(CONTRACT), uint(3, 32), uint(1, 128), uint(NOW + 3600),
        )
        key.sign.assert_called_once_with(keccak_hex(packet))

    def test_default_expiry_28_days(self, key):
        invite = _decode(generate_mint_invitation(CONTRACT, 3, 1, key, now=NOW))
        assert invite["e"] == NOW + 28 * 86400

    def test_invalid_contract(self, key):
        with pytest.raises(InvitationError, match="contract"):
            generate_mint_invitation("alice", 3, 1, key)

    def test_invalid_expiry(self, key):
        with pytest.raises(InvitationError, match="expiry"):
            generate_mint_invitation(CONTRACT, 3, 1, key, "soon")
        key.sign.assert_not_called()

    def test_series_overflow(self, key):
        with pytest.raises(OverflowError):
            generate_mint_invitation(CONTRACT, 2**32, 1, key, now=NOW)


class TestMintNextInvitation:

    def test_invite_fields(self, key):
        invite = _decode(generate_mint_next_invitation(CONTRACT, 5, key, "1w", now=NOW))
        assert set(invite) == {"c", "s", "n", "e", "sig"}
        assert invite["s"] == 5
        assert invite["e"] == NOW + 604800
        assert invite["n"].startswith("0x") and len(invite["n"]) == 66

    def test_signs_packet_with_nonce(self, key):
        with patch("bubble_tools.invite.time.time", return_value=NOW):
            invite = _decode(generate_mint_next_invitation(CONTRACT, 5, key, "1h"))
        assert invite["n"] == keccak_hex(f"{CONTRACT}{NOW * 1000}nonce")
        packet = encode_packed(
            text("mintNextWithInvite"), address(CONTRACT), uint(5, 32),
            hex_value(invite["n"], 32), uint(NOW + 3600),
        )
        key.sign.assert_called_once_with(keccak_hex(packet))

    def test_nonce_changes_over_time(self, key):
        with patch("bubble_tools.invite.time.time", side_effect=[NOW, NOW + 1]):
            first = _decode(generate_mint_next_invitation(CONTRACT, 5, key, "1h"))
            second = _decode(generate_mint_next_invitation(CONTRACT, 5, key, "1h"))
        assert first["n"] != second["n"]

    def test_nonce_uses_given_time(self, key):
        with patch("bubble_tools.invite.time.time", side_effect=AssertionError("clock read")):
            first = _decode(generate_mint_next_invitation(CONTRACT, 5, key, "1h", now=NOW))
            second = _decode(generate_mint_next_invitation(CONTRACT, 5, key, "1h", now=NOW))
        assert first == second
        assert first["n"] == keccak_hex(f"{CONTRACT}{NOW * 1000}nonce")


class TestHashes:

    def test_sdac_file_hash(self):
        file = "0x" + "00" * 19 + "01"
        expected = keccak_hex(hex_to_bytes(CONTRACT, 20) + hex_to_bytes(file, 20))
        assert sdac_file_hash(CONTRACT, file) == expected
        assert len(expected) == 66

    def test_sdac_file_hash_ignores_case(self):
        file = "0x" + "ab" * 20
        assert sdac_file_hash(CONTRACT.upper().replace("0X", "0x"), file) == sdac_file_hash(CONTRACT, file)

    def test_sdac_rejects_non_address(self):
        with pytest.raises(InvitationError):
            sdac_file_hash(CONTRACT, "0x01")

    def test_file_hash(self):
        result = file_hash("profile.json")
        assert result.lower() == "0x" + keccak_hex("profile.json")[-40:]
        assert result != result.lower()
