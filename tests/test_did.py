"""
Tests for short-DID resolution against the known vault server table.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from bubble_tools import KNOWN_VAULT_SERVERS, PUBLIC_ID_FILE
from bubble_tools.address import keccak_hex
from bubble_tools.did import DIDResolver, discover_vault_server, get_vault_hash
from bubble_tools.errors import UnknownVaultServer
from bubble_tools.identifier import ContentIdentifier, VaultServer

SHORT_DID = "did:bubble:11266kMKUHrQfZKGz2CuQwFsFWx4xd"
CONTRACT = "0x4e16dd537432447fb9cec2726252accb4514abae"
KNOWN = KNOWN_VAULT_SERVERS[0]


@pytest.fixture
def gateway():
    gateway = MagicMock()
    gateway.get_provider_hash.return_value = KNOWN["hash"]
    return gateway


class TestVaultHash:

    def test_hash_of_url_and_id(self):
        server = VaultServer("https://vault.example.com", "0x" + "11" * 20)
        assert get_vault_hash(server) == keccak_hex(
            "https://vault.example.com?id=0x" + "11" * 20
        )

    def test_discover_known(self):
        server = discover_vault_server(KNOWN["hash"])
        assert server.url == KNOWN["url"]
        assert server.id == KNOWN["id"].lower()

    def test_discover_case_insensitive(self):
        assert discover_vault_server(KNOWN["hash"].upper().replace("0X", "0x")) is not None

    @pytest.mark.parametrize("value", [None, "", "0x" + "00" * 32])
    def test_discover_unknown(self, value):
        assert discover_vault_server(value) is None


class TestDIDResolver:

    def test_resolves_short_did(self, gateway):
        ident = DIDResolver(gateway).resolve(SHORT_DID)
        gateway.get_provider_hash.assert_called_once_with(CONTRACT)
        assert ident.contract == CONTRACT
        assert ident.provider.url == KNOWN["url"]
        assert ident.file == PUBLIC_ID_FILE

    def test_keeps_existing_provider(self, gateway):
        server = VaultServer("https://server1.com/path1/", "0x" + "22" * 20)
        full = ContentIdentifier(None, CONTRACT, server, "0x" + "33" * 20)
        ident = DIDResolver(gateway).resolve(full.to_did())
        gateway.get_provider_hash.assert_not_called()
        assert ident == full

    def test_keeps_existing_file(self, gateway):
        short = ContentIdentifier(None, CONTRACT, file="0x" + "33" * 20)
        ident = DIDResolver(gateway).resolve(short)
        assert ident.file == "0x" + "33" * 20
        assert ident.provider is not None

    def test_chain_passed_through(self, gateway):
        assert DIDResolver(gateway).resolve(SHORT_DID, chain=137).chain == 137

    def test_unknown_vault_hash(self, gateway):
        gateway.get_provider_hash.return_value = "0x" + "ab" * 32
        with pytest.raises(UnknownVaultServer, match="is unknown"):
            DIDResolver(gateway).resolve(SHORT_DID)

    def test_no_vault_hash(self, gateway):
        gateway.get_provider_hash.return_value = None
        with pytest.raises(UnknownVaultServer):
            DIDResolver(gateway).resolve(SHORT_DID)

    def test_gateway_errors_propagate(self, gateway):
        gateway.get_provider_hash.side_effect = ConnectionError("rpc down")
        with pytest.raises(ConnectionError):
            DIDResolver(gateway).resolve(SHORT_DID)
