"""
Resolve user-typed strings into canonical addresses, paths and servers.

Address resolution order:
    1. a syntactically valid address (returned unchanged, case preserved)
    2. a bubble DID (its contract address)
    3. a ``dir/name`` path: dir is resolved recursively, name kept as typed
    4. an address book label, then a wallet key label (case-insensitive)
    5. a 0x hex literal of 1-40 digits, left-padded to 20 bytes
    6. a non-negative decimal literal that fits in 20 bytes

Anything else fails. Each lookup has a strict form that raises
ResolutionError and a ``try_`` form that returns None.

Collaborators only need a read-only ``lookup(label)`` method returning an
object with ``address`` (address book, wallet) or ``url``/``id`` (servers),
or None.
"""

from __future__ import annotations

import re
from typing import Any, Protocol
from urllib.parse import parse_qsl, urlsplit

from bubble_tools.address import is_address, split_path
from bubble_tools.errors import ResolutionError
from bubble_tools.identifier import VaultServer
from bubble_tools.url import decode_did, is_bubble_did

_DECIMAL_RE = re.compile(r"^[0-9]+$")
_HEX_DIGITS_RE = re.compile(r"^[0-9a-fA-F]{1,40}$")
_MAX_ADDRESS = 1 << 160


class LabelSource(Protocol):
    def lookup(self, label: str) -> Any | None: ...


class LabelResolver:
    """Resolves labels and literals against the address book, servers and wallet.

    Usage:
        resolver = LabelResolver(address_book, servers, wallet)
        contract = resolver.resolve_address(args.contract, "contract")
        server = resolver.try_resolve_server(args.provider)
    """

    def __init__(
        self,
        address_book: LabelSource | None = None,
        servers: LabelSource | None = None,
        wallet: LabelSource | None = None,
    ) -> None:
        self.address_book = address_book
        self.servers = servers
        self.wallet = wallet

    # -- addresses ---------------------------------------------------------

    def resolve_address(self, value: str | None, field: str = "address") -> str:
        """Resolve to an address or ``address/name`` path.

        Raises ResolutionError naming ``field`` if the value is missing or
        cannot be resolved.
        """
        if value is None or value == "":
            raise ResolutionError(field, value, "missing")
        address = self._resolve_address(value)
        if address is None:
            raise ResolutionError(field, value)
        return address

    def try_resolve_address(self, value: str | None) -> str | None:
        return self._resolve_address(value)

    def _resolve_address(self, value: Any) -> str | None:
        if not isinstance(value, str) or not value:
            return None
        if is_address(value):
            return value
        if is_bubble_did(value):
            return decode_did(value).contract

        if "/" in value:
            parts = split_path(value)
            if parts is None or not parts[1]:
                return None
            directory = self._resolve_address(parts[0])
            if directory is None:
                return None
            return directory + "/" + parts[1]

        entry = self._lookup(self.address_book, value)
        if entry is None:
            entry = self._lookup(self.wallet, value)
        if entry is not None:
            return entry.address

        if value.startswith("0x"):
            digits = value[2:]
            if not _HEX_DIGITS_RE.match(digits):
                return None
            return "0x" + digits.rjust(40, "0")

        if _DECIMAL_RE.match(value):
            number = int(value)
            if number >= _MAX_ADDRESS:
                return None
            return "0x" + format(number, "040x")

        return None

    # -- servers -----------------------------------------------------------

    def resolve_server(self, value: str | None, field: str = "server") -> VaultServer:
        """Resolve a server label or ``<url>?id=<address or label>``.

        Raises ResolutionError naming ``field`` on failure.
        """
        if value is None or value == "":
            raise ResolutionError(field, value, "missing")
        server = self._resolve_server(value)
        if server is None:
            raise ResolutionError(field, value)
        return server

    def try_resolve_server(self, value: str | None) -> VaultServer | None:
        return self._resolve_server(value)

    def _resolve_server(self, value: Any) -> VaultServer | None:
        if not isinstance(value, str) or not value:
            return None

        entry = self._lookup(self.servers, value)
        if entry is not None:
            if not entry.id or not is_address(entry.id):
                return None
            return VaultServer(url=entry.url, id=entry.id)

        try:
            parts = urlsplit(value)
        except ValueError:
            return None
        if not parts.scheme or not parts.netloc:
            return None
        server_id = None
        for key, param in parse_qsl(parts.query):
            if key == "id":
                server_id = self._resolve_address(param)
                break
        if server_id is None or not is_address(server_id):
            return None
        return VaultServer(url=f"{parts.scheme}://{parts.netloc}{parts.path}", id=server_id)

    @staticmethod
    def _lookup(source: LabelSource | None, label: str) -> Any | None:
        if source is None:
            return None
        return source.lookup(label)
