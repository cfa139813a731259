"""
Structured content identifiers: (chain, contract, provider, file).

Identifiers are immutable. Hex fields are canonicalised to lower case on
construction so that equality is independent of the input casing. String
encodings live in bubble_tools.url; the methods here only delegate.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from bubble_tools.address import canonical_file, is_address, is_compound_path, is_file_id
from bubble_tools.errors import InvalidAddress, InvalidFile, InvalidVaultId


@dataclass(frozen=True)
class VaultServer:
    """An off-chain storage provider: endpoint url plus public address."""

    url: str
    id: str

    def __post_init__(self) -> None:
        if not isinstance(self.url, str) or not self.url:
            raise InvalidVaultId(f"vault server url is invalid: {self.url!r}")
        if not is_address(self.id):
            raise InvalidVaultId(f"vault server id is not an address: {self.id!r}")
        object.__setattr__(self, "id", self.id.lower())

    def to_dict(self) -> dict[str, str]:
        return {"url": self.url, "id": self.id}


def validate_file(file: str) -> str:
    """Return the canonical form of a file id or compound path.

    Raises InvalidFile otherwise.
    """
    if is_file_id(file) or is_compound_path(file):
        return canonical_file(file)
    raise InvalidFile(f"file is invalid: {file!r}")


@dataclass(frozen=True)
class ContentIdentifier:
    """Addresses a piece of content held in a bubble.

    Attributes:
        chain: Chain id or name. Opaque, carried through unchanged.
        contract: The bubble's 20-byte contract address.
        provider: Vault server holding the content. None means it must be
            resolved from the contract at use time.
        file: File id (20 or 32 bytes) or ``<dir id>/<name>`` path.
    """

    chain: Any
    contract: str
    provider: VaultServer | None = None
    file: str | None = None

    def __post_init__(self) -> None:
        if not is_address(self.contract):
            raise InvalidAddress(f"contract address is invalid: {self.contract!r}")
        object.__setattr__(self, "contract", self.contract.lower())
        if self.provider is not None and not isinstance(self.provider, VaultServer):
            raise InvalidVaultId(f"provider must be a VaultServer, got {self.provider!r}")
        if self.file is not None:
            object.__setattr__(self, "file", validate_file(self.file))

    def with_file(self, file: str | None) -> ContentIdentifier:
        return replace(self, file=file)

    def with_provider(self, provider: VaultServer | None) -> ContentIdentifier:
        return replace(self, provider=provider)

    @property
    def is_short(self) -> bool:
        """True when the provider has to be discovered from the contract."""
        return self.provider is None

    def to_url(self) -> str:
        from bubble_tools.url import encode_url
        return encode_url(self)

    def to_did(self) -> str:
        from bubble_tools.url import encode_did
        return encode_did(self)

    def to_short_did(self) -> str:
        from bubble_tools.url import encode_short_did
        return encode_short_did(self)

    @classmethod
    def from_string(cls, text: str, chain: Any = None) -> ContentIdentifier:
        """Parse either a ``bubble:`` URL or a ``did:bubble:`` DID."""
        from bubble_tools.url import decode
        return decode(text, chain=chain)
