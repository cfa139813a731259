"""
Local address book and vault server list.

Storage layout:
    <app_dir>/addresses   — JSON list of {label, address, memo}
    <app_dir>/servers     — JSON list of {label, url, id}

Labels are stored lower-case and are unique per list; entries are kept
sorted by label. All writes are atomic (temp file + os.replace). Each store
object owns its cache; construct one per process (or per test) and pass it
to whatever needs it.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import MISSING, asdict, dataclass, fields
from pathlib import Path
from typing import Any, Generic, TypeVar
from urllib.parse import urlsplit

from bubble_tools import ADDRESSES_FILE, SERVERS_FILE
from bubble_tools.address import is_address
from bubble_tools.config import default_app_dir
from bubble_tools.url import decode_did, is_bubble_did

log = logging.getLogger(__name__)


class StoreError(Exception):
    """Error in address book or server list operations."""


@dataclass(frozen=True)
class AddressBookEntry:
    label: str
    address: str
    memo: str | None = None


@dataclass(frozen=True)
class ServerEntry:
    label: str
    url: str
    id: str | None = None


E = TypeVar("E", AddressBookEntry, ServerEntry)


class _LabelledStore(Generic[E]):
    """JSON list of label-keyed entries with an instance-owned cache."""

    filename = ""
    entry_type: type

    def __init__(self, root: str | Path | None = None) -> None:
        self.root = Path(root) if root else default_app_dir()
        self.path = self.root / self.filename
        self._cache: list[E] | None = None

    def _ensure_dir(self) -> None:
        if not self.root.is_dir():
            self.root.mkdir(parents=True, exist_ok=True)
            os.chmod(self.root, 0o700)

    def _read(self) -> list[E]:
        if not self.path.is_file():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            log.error("Cannot read %s: %s", self.path, e)
            return []
        if not isinstance(data, list):
            log.error("Ignoring %s: expected a JSON list", self.path)
            return []
        entries = []
        for item in data:
            entry = self._parse_entry(item)
            if entry is None:
                log.warning("Ignoring malformed entry in %s: %r", self.path, item)
            else:
                entries.append(entry)
        return entries

    def _parse_entry(self, item: Any) -> E | None:
        if not isinstance(item, dict):
            return None
        values = {}
        for f in fields(self.entry_type):
            value = item.get(f.name)
            if value is None and f.default is MISSING:
                return None
            if value is not None and not isinstance(value, str):
                return None
            values[f.name] = value
        return self.entry_type(**values)

    def _write(self, entries: list[E]) -> None:
        """Atomically write the list (temp + rename) and refresh the cache."""
        self._ensure_dir()
        entries = sorted(entries, key=lambda e: e.label)
        data = json.dumps([asdict(e) for e in entries], indent=2)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.root), suffix=".tmp", prefix=f".{self.filename}_"
        )
        try:
            os.write(fd, data.encode("utf-8"))
            os.fsync(fd)
            os.close(fd)
            os.replace(tmp_path, str(self.path))
        except Exception:
            try:
                os.close(fd)
            except OSError:
                pass
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        self._cache = entries
        log.debug("Wrote %d entries to %s", len(entries), self.path)

    def list(self) -> list[E]:
        """All entries, sorted by label. Loaded once, then cached."""
        if self._cache is None:
            self._cache = self._read()
        return list(self._cache)

    def reload(self) -> None:
        """Drop the cache so the next read goes to disk."""
        self._cache = None

    def lookup(self, label: str) -> E | None:
        """Case-insensitive label lookup."""
        if not isinstance(label, str):
            return None
        wanted = label.lower()
        for entry in self.list():
            if entry.label.lower() == wanted:
                return entry
        return None

    def _add(self, entry: E) -> E:
        entries = self.list()
        if any(e.label == entry.label for e in entries):
            raise StoreError(f"{self._kind} with that label already exists")
        entries.append(entry)
        self._write(entries)
        return entry

    def remove(self, label: str) -> None:
        """Remove by label, regardless of case. Raises StoreError if absent."""
        entries = self.list()
        wanted = label.lower()
        remaining = [e for e in entries if e.label.lower() != wanted]
        if len(remaining) == len(entries):
            raise StoreError(f"{self._kind} does not exist with that label")
        self._write(remaining)

    @property
    def _kind(self) -> str:
        return "entry"

    @staticmethod
    def _check_label(label: Any) -> str:
        if not isinstance(label, str) or not label.strip():
            raise StoreError("label is missing")
        if "/" in label:
            raise StoreError("label must not contain '/'")
        return label.strip().lower()


class AddressBook(_LabelledStore[AddressBookEntry]):
    """Labelled addresses.

    Usage:
        book = AddressBook()
        book.add("alice", "0x...", memo="friend")
        book.lookup("ALICE").address
    """

    filename = ADDRESSES_FILE
    entry_type = AddressBookEntry

    @property
    def _kind(self) -> str:
        return "address"

    def add(
        self, label: str, address: str, memo: str | None = None, *, to_lower: bool = False,
    ) -> AddressBookEntry:
        """Add an address. ``address`` may also be a bubble DID."""
        label = self._check_label(label)
        if is_bubble_did(address):
            address = decode_did(address).contract
        if not is_address(address):
            raise StoreError(f"address is invalid: {address!r}")
        if to_lower:
            address = address.lower()
        return self._add(AddressBookEntry(label=label, address=address, memo=memo))


class ServerList(_LabelledStore[ServerEntry]):
    """Labelled vault servers.

    Usage:
        servers = ServerList()
        servers.add("home", "https://vault.example.com:8131", "0x...")
    """

    filename = SERVERS_FILE
    entry_type = ServerEntry

    @property
    def _kind(self) -> str:
        return "server"

    def add(self, label: str, url: str, id: str | None = None) -> ServerEntry:
        label = self._check_label(label)
        if not isinstance(url, str):
            raise StoreError("url is missing")
        parts = urlsplit(url)
        if not parts.scheme or not parts.netloc:
            raise StoreError(f"invalid url: {url!r}")
        if id is not None and not is_address(id):
            raise StoreError(f"id is not a valid address: {id!r}")
        return self._add(ServerEntry(label=label, url=url.lower(), id=id))
