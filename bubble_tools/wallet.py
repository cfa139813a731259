"""
Wallet — file-based secp256k1 key store.

Storage layout:
    <app_dir>/wallet/<label>   — private key as hex, mode 600

``default-key`` is used when no key is named. The first default key is also
saved as ``initial-application-key``, which connects this installation to
the user's bubble and can be neither overwritten nor removed.

Requires secp256k1 (C bindings) for key derivation and signing. Raises
ImportError if the library is unavailable — install with:
pip install bubble-tools[wallet]
"""

from __future__ import annotations

import logging
import os
import re
import stat
from dataclasses import dataclass, field
from pathlib import Path

from bubble_tools import DEFAULT_KEY, INITIAL_KEY, WALLET_DIR
from bubble_tools.address import public_key_to_address
from bubble_tools.codec import strip_hex_prefix
from bubble_tools.config import default_app_dir

log = logging.getLogger(__name__)

_PRIVATE_KEY_RE = re.compile(r"^[0-9a-fA-F]{64}$")
_LABEL_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.\-]*$")


class WalletError(Exception):
    """Error in wallet key operations."""


def _import_secp256k1():
    """Import secp256k1 C bindings. Raises ImportError if unavailable."""
    try:
        import secp256k1
        return secp256k1
    except ImportError:
        raise ImportError(
            "secp256k1 is required for wallet keys and signing. "
            "Install with: pip install bubble-tools[wallet]"
        )


@dataclass(frozen=True)
class WalletKeyRef:
    """Public view of a wallet key, as used by label resolution."""

    label: str
    address: str
    public_key: str


@dataclass(frozen=True)
class SigningKey:
    """A loaded private key.

    Attributes:
        label: Wallet label the key was loaded from ("" if ad hoc).
        address: 0x-prefixed 20-byte address.
        public_key: 0x-prefixed 65-byte uncompressed public key.
    """

    label: str
    address: str
    public_key: str
    private_key: bytes = field(repr=False)

    @classmethod
    def from_private_key(cls, private_key: str | bytes, label: str = "") -> SigningKey:
        if isinstance(private_key, str):
            digits = strip_hex_prefix(private_key.strip())
            if not _PRIVATE_KEY_RE.match(digits):
                raise WalletError("invalid private key")
            private_key = bytes.fromhex(digits)
        lib = _import_secp256k1()
        try:
            pk = lib.PrivateKey(private_key, raw=True)
        except Exception as e:
            raise WalletError(f"invalid private key: {e}") from e
        public = pk.pubkey.serialize(compressed=False)
        return cls(
            label=label,
            address=public_key_to_address(public),
            public_key="0x" + public.hex(),
            private_key=private_key,
        )

    def sign(self, digest: bytes | str) -> str:
        """Sign a 32-byte hash. Returns 0x + r(32) + s(32) + recovery id(1)."""
        if isinstance(digest, str):
            digest = bytes.fromhex(strip_hex_prefix(digest))
        if len(digest) != 32:
            raise WalletError("can only sign a 32-byte hash")
        lib = _import_secp256k1()
        pk = lib.PrivateKey(self.private_key, raw=True)
        raw_sig = pk.ecdsa_sign_recoverable(digest, raw=True)
        sig, recid = pk.ecdsa_recoverable_serialize(raw_sig)
        return "0x" + sig.hex() + format(recid, "02x")

    def to_ref(self) -> WalletKeyRef:
        return WalletKeyRef(label=self.label, address=self.address, public_key=self.public_key)


def generate_private_key() -> bytes:
    """Random 32-byte key that is valid on the secp256k1 curve."""
    lib = _import_secp256k1()
    while True:
        candidate = os.urandom(32)
        try:
            lib.PrivateKey(candidate, raw=True)
        except Exception:
            continue
        return candidate


class Wallet:
    """Label-keyed private keys on disk.

    Usage:
        wallet = Wallet()
        key = wallet.get_key()          # default-key
        signature = key.sign(digest)
    """

    def __init__(self, root: str | Path | None = None) -> None:
        self.root = Path(root) if root else default_app_dir()
        self.wallet_dir = self.root / WALLET_DIR

    @staticmethod
    def _check_label(label: str) -> str:
        if not isinstance(label, str) or not _LABEL_RE.match(label):
            raise WalletError(f"invalid key label: {label!r}")
        return label.lower()

    def _key_path(self, label: str) -> Path:
        return self.wallet_dir / self._check_label(label)

    def _ensure_dirs(self) -> None:
        if not self.root.is_dir():
            self.root.mkdir(parents=True, exist_ok=True)
            os.chmod(self.root, 0o700)
        self.wallet_dir.mkdir(parents=True, exist_ok=True)
        os.chmod(self.wallet_dir, 0o700)

    def _write_key(self, label: str, private_key: bytes) -> None:
        path = self._key_path(label)
        path.write_text(private_key.hex())
        os.chmod(path, stat.S_IRUSR | stat.S_IWUSR)

    def has_key(self, label: str = DEFAULT_KEY) -> bool:
        try:
            return self._key_path(label).is_file()
        except WalletError:
            return False

    def labels(self) -> list[str]:
        if not self.wallet_dir.is_dir():
            return []
        return sorted(
            p.name for p in self.wallet_dir.iterdir()
            if p.is_file() and _LABEL_RE.match(p.name)
        )

    def get_key(self, label: str | None = None) -> SigningKey:
        """Load a key by label (default-key if None). Raises WalletError if absent."""
        label = label or DEFAULT_KEY
        path = self._key_path(label)
        if not path.is_file():
            raise WalletError(f"key '{label}' does not exist")
        try:
            private_key = path.read_text().strip()
        except OSError as e:
            raise WalletError(f"cannot read key '{label}': {e}") from e
        return SigningKey.from_private_key(private_key, label=path.name)

    def set_key(self, private_key: str | bytes, label: str = DEFAULT_KEY, *, force: bool = False) -> SigningKey:
        """Store a private key under a label.

        Refuses to overwrite an existing key unless ``force``, and never
        overwrites the initial application key.
        """
        key = SigningKey.from_private_key(private_key, label=self._check_label(label))
        if key.label == INITIAL_KEY:
            raise WalletError(
                f"cannot overwrite the {INITIAL_KEY} - it connects this installation to your Bubble"
            )
        if not force and self.has_key(key.label):
            raise WalletError(f"application key '{key.label}' already exists")
        self._ensure_dirs()
        self._write_key(key.label, key.private_key)
        if key.label == DEFAULT_KEY and not self.has_key(INITIAL_KEY):
            self._write_key(INITIAL_KEY, key.private_key)
        log.info("Stored wallet key %s (%s)", key.label, key.address)
        return key

    def add_key(self, label: str, private_key: str) -> SigningKey:
        return self.set_key(private_key, label)

    def create_key(self, label: str = DEFAULT_KEY) -> SigningKey:
        return self.set_key(generate_private_key(), label)

    def remove_key(self, label: str) -> None:
        label = self._check_label(label)
        if label == DEFAULT_KEY:
            raise WalletError(f"cannot delete the {DEFAULT_KEY}. Use set-default instead")
        if label == INITIAL_KEY:
            raise WalletError(
                f"cannot delete the {INITIAL_KEY} - it connects this installation to your Bubble"
            )
        path = self._key_path(label)
        if not path.is_file():
            raise WalletError(f"key '{label}' does not exist")
        path.unlink()
        log.info("Removed wallet key %s", label)

    def set_default(self, label: str = INITIAL_KEY) -> SigningKey:
        """Copy the named key over default-key."""
        key = self.get_key(label)
        self._ensure_dirs()
        self._write_key(DEFAULT_KEY, key.private_key)
        return key

    def list_keys(self) -> list[WalletKeyRef]:
        return [self.get_key(label).to_ref() for label in self.labels()]

    def lookup(self, label: str) -> WalletKeyRef | None:
        """Case-insensitive label lookup for address resolution."""
        if not isinstance(label, str) or not _LABEL_RE.match(label):
            return None
        if not self.has_key(label):
            return None
        try:
            return self.get_key(label).to_ref()
        except (WalletError, ImportError) as e:
            log.debug("Skipping wallet key %s: %s", label, e)
            return None

    def get_info(self, key: str) -> WalletKeyRef:
        """Address and public key for a wallet label or a raw private key."""
        if isinstance(key, str) and _LABEL_RE.match(key) and self.has_key(key):
            return self.get_key(key).to_ref()
        return SigningKey.from_private_key(key).to_ref()
