"""
Short-DID resolution.

A short DID carries only the contract address. The vault server hosting the
contract's data is found by asking a ProviderDiscovery (typically a
blockchain gateway) for the contract's vault hash and looking that hash up
in the table of known vault servers. The vault hash of a server is
keccak256("<url>?id=<id>").
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from bubble_tools import KNOWN_VAULT_SERVERS, PUBLIC_ID_FILE
from bubble_tools.address import keccak_hex
from bubble_tools.errors import UnknownVaultServer
from bubble_tools.identifier import ContentIdentifier, VaultServer

log = logging.getLogger(__name__)


class ProviderDiscovery(Protocol):
    def get_provider_hash(self, contract: str) -> str | None: ...


def get_vault_hash(server: VaultServer) -> str:
    return keccak_hex(f"{server.url}?id={server.id}")


def discover_vault_server(vault_hash: str | None) -> VaultServer | None:
    """Known vault server with the given hash, or None."""
    if not vault_hash:
        return None
    wanted = vault_hash.lower()
    for entry in KNOWN_VAULT_SERVERS:
        if entry["hash"].lower() == wanted:
            return VaultServer(url=entry["url"], id=entry["id"])
    return None


class DIDResolver:
    """Completes short DIDs with their vault server and default file.

    Usage:
        resolver = DIDResolver(gateway)
        identifier = resolver.resolve("did:bubble:11266kMKUHrQfZKGz2CuQwFsFWx4xd")
        identifier.provider.url
    """

    def __init__(self, discovery: ProviderDiscovery) -> None:
        self.discovery = discovery

    def resolve(self, did: str | ContentIdentifier, chain: Any = None) -> ContentIdentifier:
        """Fill in the provider (if absent) and file (public identity if absent).

        Raises UnknownVaultServer if the contract's vault hash is not in the
        known server table.
        """
        if isinstance(did, ContentIdentifier):
            identifier = did
        else:
            identifier = ContentIdentifier.from_string(did, chain=chain)

        if identifier.provider is None:
            identifier = identifier.with_provider(self._fetch_vault_server(identifier.contract))
        if identifier.file is None:
            identifier = identifier.with_file(PUBLIC_ID_FILE)
        return identifier

    def _fetch_vault_server(self, contract: str) -> VaultServer:
        vault_hash = self.discovery.get_provider_hash(contract)
        log.debug("Vault hash for %s: %s", contract, vault_hash)
        server = discover_vault_server(vault_hash)
        if server is None:
            raise UnknownVaultServer(f"vault service with hash {vault_hash} is unknown")
        log.info("Resolved vault server for %s: %s", contract, server.url)
        return server
