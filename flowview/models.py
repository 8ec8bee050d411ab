"""Data models — all frozen (immutable)."""
from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterator, Mapping

from .errors import InvalidArgument

PATH_DOMAINS = ("public", "private", "storage")
IPFS_GATEWAY = "https://ipfs.io/ipfs/"

_ADDRESS_RE = re.compile(r"^(0x)?([0-9a-fA-F]{1,16})$")


def normalize_address(value: str) -> str:
    """Return ``value`` as ``0x`` followed by 16 lower-case hex digits."""
    match = _ADDRESS_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise InvalidArgument(f"Invalid account address: {value!r}")
    return "0x" + match.group(2).lower().zfill(16)


def is_valid_address(value: str) -> bool:
    try:
        normalize_address(value)
    except InvalidArgument:
        return False
    return True


def media_url(file: Mapping[str, Any] | None) -> str | None:
    """Resolve a metadata file struct (HTTP or IPFS) to a fetchable URL."""
    if not file:
        return None
    url = file.get("url")
    if url:
        return str(url)
    cid = file.get("cid")
    if cid:
        path = file.get("path")
        return f"{IPFS_GATEWAY}{cid}/{path}" if path else f"{IPFS_GATEWAY}{cid}"
    return None


@dataclass(frozen=True)
class StoragePath:
    """A slot in an account's storage, e.g. ``/public/MomentCollection``."""

    domain: str
    identifier: str

    @classmethod
    def parse(cls, value: str) -> StoragePath:
        parts = value.split("/")
        if len(parts) != 3 or parts[0] or parts[1] not in PATH_DOMAINS or not parts[2]:
            raise InvalidArgument(f"Invalid storage path: {value!r}")
        return cls(domain=parts[1], identifier=parts[2])

    def __str__(self) -> str:
        return f"/{self.domain}/{self.identifier}"


@dataclass(frozen=True)
class StoredItem:
    address: str
    path: str
    type: str
    is_collection: bool
    is_vault: bool


@dataclass(frozen=True)
class LinkedItem:
    address: str
    path: str
    type: str
    link_target: str | None = None


@dataclass(frozen=True)
class FungibleBalance:
    path: str
    type: str
    balance: Decimal


@dataclass(frozen=True)
class AccountInfo:
    address: str
    balance: Decimal
    available_balance: Decimal
    storage_used: int
    storage_capacity: int


@dataclass(frozen=True)
class CollectionEntry:
    """One collection discovered on an account.

    ``collection_identifier`` is set once the catalog has been consulted and
    stays ``None`` when no catalog entry matches ``type``. ``nft_ids`` is
    ``None`` until identifiers are populated, then a strictly ascending tuple.
    """

    address: str
    path: str
    type: str | None
    collection_identifier: str | None = None
    nft_ids: tuple[int, ...] | None = None

    @property
    def path_identifier(self) -> str:
        path = StoragePath.parse(self.path)
        if path.domain != "public":
            raise InvalidArgument(f"Collection path must be public: {self.path!r}")
        return path.identifier


@dataclass(frozen=True)
class Display:
    """Display metadata for a single item."""

    token_id: int
    name: str
    description: str
    thumbnail: Mapping[str, Any] | None = None
    rarity: str | None = None
    serial: int | None = None
    external_url: str | None = None

    @property
    def thumbnail_url(self) -> str | None:
        return media_url(self.thumbnail)


@dataclass(frozen=True)
class CatalogEntry:
    collection_identifier: str
    square_image: str | None
    media_type: str | None = None


@dataclass(frozen=True)
class TypeCatalogTable:
    """Ordered ``(asset_type, collection_identifier, flag)`` triples.

    Entry order is the resolution order for catalog lookups.
    """

    entries: tuple[tuple[str, str, bool], ...] = ()

    @classmethod
    def from_mapping(
        cls, raw: Mapping[str, Mapping[str, bool]]
    ) -> TypeCatalogTable:
        entries: list[tuple[str, str, bool]] = []
        for asset_type, candidates in raw.items():
            for collection_id, flag in candidates.items():
                entries.append((asset_type, collection_id, bool(flag)))
        return cls(entries=tuple(entries))

    def candidates(self, asset_type: str) -> Iterator[tuple[str, bool]]:
        for entry_type, collection_id, flag in self.entries:
            if entry_type == asset_type:
                yield collection_id, flag

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class AccountInventory:
    """Aggregated collection inventory of one account."""

    address: str
    collections: tuple[CollectionEntry, ...] = ()
    catalog: Mapping[str, CatalogEntry] | None = None
