"""Account inventory orchestration — collections, identifiers, displays, catalog."""
from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal
from typing import Any, Mapping, Sequence

from ..chains.flow.cadence import ADDRESS, STRING, UINT64, TypedArg, array_of
from ..chains.flow.scripts import QuerySpec
from ..config import InventoryConfig
from ..errors import InvalidArgument, QueryErrorKind, RemoteQueryError, decoding
from ..interfaces.ledger import LedgerClient
from ..models import (
    AccountInfo,
    AccountInventory,
    CatalogEntry,
    CollectionEntry,
    Display,
    FungibleBalance,
    LinkedItem,
    StoredItem,
    normalize_address,
)
from .batch import BatchAggregator
from .catalog import CatalogResolver

logger = logging.getLogger(__name__)

LINK_DOMAINS = ("public", "private")


def _expect_list(result: Any, spec: QuerySpec) -> list[Any]:
    if not isinstance(result, list):
        raise RemoteQueryError(
            QueryErrorKind.DECODE,
            f"{spec.value} returned {type(result).__name__}, expected a list",
        )
    return result


def _expect_mapping(result: Any, spec: QuerySpec) -> Mapping[Any, Any]:
    if not isinstance(result, Mapping):
        raise RemoteQueryError(
            QueryErrorKind.DECODE,
            f"{spec.value} returned {type(result).__name__}, expected a mapping",
        )
    return result


def _to_display(token_id: int, raw: Mapping[str, Any] | None) -> Display | None:
    if raw is None:
        return None
    serial = raw.get("serial")
    return Display(
        token_id=token_id,
        name=raw.get("name", ""),
        description=raw.get("description", ""),
        thumbnail=raw.get("thumbnail"),
        rarity=raw.get("rarity"),
        serial=int(serial) if serial is not None else None,
        external_url=raw.get("externalURL"),
    )


class InventoryService:
    """Reconstructs the asset inventory of an account from ledger queries."""

    def __init__(
        self, ledger: LedgerClient, config: InventoryConfig | None = None
    ) -> None:
        config = config or InventoryConfig()
        self._ledger = ledger
        self._aggregator = BatchAggregator(config.chunk_size, config.max_concurrency)
        self._catalog = CatalogResolver(ledger, self._aggregator)

    # ------------------------------------------------------------------
    # Single round-trip queries
    # ------------------------------------------------------------------

    async def get_stored_items(self, address: str) -> list[StoredItem]:
        address = normalize_address(address)
        spec = QuerySpec.LIST_STORED_ITEMS
        result = await self._ledger.execute(spec, [TypedArg(address, ADDRESS)])
        with decoding(spec.value):
            return [
                StoredItem(
                    address=item["address"],
                    path=item["path"],
                    type=item["type"],
                    is_collection=bool(item["isNFTCollection"]),
                    is_vault=bool(item["isVault"]),
                )
                for item in _expect_list(result, spec)
            ]

    async def get_linked_items(self, address: str, domain: str) -> list[LinkedItem]:
        if domain not in LINK_DOMAINS:
            raise InvalidArgument(
                f"Invalid path domain {domain!r}, expected one of {LINK_DOMAINS}"
            )
        address = normalize_address(address)
        spec = QuerySpec.LIST_LINKED_ITEMS
        result = await self._ledger.execute(
            spec, [TypedArg(address, ADDRESS), TypedArg(domain, STRING)]
        )
        with decoding(spec.value):
            return [
                LinkedItem(
                    address=item["address"],
                    path=item["path"],
                    type=item["type"],
                    link_target=item.get("linkTarget"),
                )
                for item in _expect_list(result, spec)
            ]

    async def get_fungible_balances(self, address: str) -> list[FungibleBalance]:
        address = normalize_address(address)
        spec = QuerySpec.LIST_FUNGIBLE_BALANCES
        result = await self._ledger.execute(spec, [TypedArg(address, ADDRESS)])
        with decoding(spec.value):
            return [
                FungibleBalance(
                    path=item["path"], type=item["type"], balance=Decimal(item["balance"])
                )
                for item in _expect_list(result, spec)
            ]

    async def get_account_info(self, address: str) -> AccountInfo:
        address = normalize_address(address)
        spec = QuerySpec.RESOLVE_ACCOUNT_INFO
        result = _expect_mapping(
            await self._ledger.execute(spec, [TypedArg(address, ADDRESS)]), spec
        )
        with decoding(spec.value):
            return AccountInfo(
                address=result["address"],
                balance=Decimal(result["balance"]),
                available_balance=Decimal(result["availableBalance"]),
                storage_used=int(result["storageUsed"]),
                storage_capacity=int(result["storageCapacity"]),
            )

    # ------------------------------------------------------------------
    # Collection pipeline
    # ------------------------------------------------------------------

    async def discover_collections(self, address: str) -> list[CollectionEntry]:
        """List the collection capabilities published by ``address``."""
        address = normalize_address(address)
        spec = QuerySpec.LIST_COLLECTIONS
        result = await self._ledger.execute(spec, [TypedArg(address, ADDRESS)])

        with decoding(spec.value):
            entries = [
                CollectionEntry(address=address, path=item["path"], type=item.get("type"))
                for item in _expect_list(result, spec)
                if item.get("path", "").startswith("/public/")
            ]
        logger.info("Found %d collections for %s", len(entries), address)
        return entries

    async def populate_identifiers(
        self, address: str, entries: Sequence[CollectionEntry]
    ) -> list[CollectionEntry]:
        """Attach the sorted item identifiers of every collection in ``entries``."""
        address = normalize_address(address)
        spec = QuerySpec.LIST_IDENTIFIERS_FOR_PATHS
        path_ids = [entry.path_identifier for entry in entries]

        async def query(group: list[str]) -> Mapping[str, Any]:
            return await self._ledger.execute(
                spec,
                [TypedArg(address, ADDRESS), TypedArg(group, array_of(STRING))],
            )

        merged = await self._aggregator.aggregate_map(path_ids, query)

        populated: list[CollectionEntry] = []
        for entry in entries:
            ids = merged.get(entry.path)
            if ids is None:
                logger.warning("No identifiers returned for %s", entry.path)
                ids = []
            with decoding(spec.value):
                nft_ids = tuple(sorted({int(i) for i in _expect_list(ids, spec)}))
            populated.append(replace(entry, nft_ids=nft_ids))

        logger.info(
            "Populated %d identifiers across %d collections",
            sum(len(e.nft_ids or ()) for e in populated),
            len(populated),
        )
        return populated

    async def populate_displays(
        self, address: str, entry: CollectionEntry
    ) -> dict[int, Display | None]:
        """Fetch display metadata for every identifier of one collection.

        Identifiers the ledger has no display for map to ``None``.
        """
        address = normalize_address(address)
        path_id = entry.path_identifier
        token_ids = list(entry.nft_ids or ())

        async def query(group: list[int]) -> Mapping[int, Any]:
            return await self._ledger.execute(
                QuerySpec.LIST_DISPLAYS_FOR_IDS,
                [
                    TypedArg(address, ADDRESS),
                    TypedArg(path_id, STRING),
                    TypedArg(group, array_of(UINT64)),
                ],
            )

        merged = await self._aggregator.aggregate_map(token_ids, query)

        with decoding(QuerySpec.LIST_DISPLAYS_FOR_IDS.value):
            displays: dict[int, Display | None] = {
                token_id: _to_display(token_id, merged.get(token_id))
                for token_id in token_ids
            }
        logger.debug(
            "Fetched %d displays for %s (%d missing)",
            len(displays),
            entry.path,
            sum(1 for d in displays.values() if d is None),
        )
        return displays

    async def attach_catalog_identifiers(
        self, entries: Sequence[CollectionEntry]
    ) -> list[CollectionEntry]:
        """Set ``collection_identifier`` on each entry from the catalog type table."""
        types = {entry.type for entry in entries if entry.type is not None}
        resolved = await self._catalog.resolve(types)

        attached = [
            replace(
                entry,
                collection_identifier=resolved.get(entry.type) if entry.type else None,
            )
            for entry in entries
        ]
        logger.info(
            "Resolved catalog identifiers for %d of %d collections",
            sum(1 for e in attached if e.collection_identifier),
            len(attached),
        )
        return attached

    async def fetch_catalog(
        self, entries: Sequence[CollectionEntry]
    ) -> dict[str, CatalogEntry]:
        """Fetch catalog display data for every resolved collection identifier."""
        ids = [e.collection_identifier for e in entries if e.collection_identifier is not None]
        return await self._catalog.fetch_entries(ids)

    async def build_inventory(
        self, address: str, with_catalog: bool = True
    ) -> AccountInventory:
        """Discover collections and populate identifiers (and catalog data)."""
        address = normalize_address(address)
        entries = await self.discover_collections(address)
        entries = await self.populate_identifiers(address, entries)

        catalog: dict[str, CatalogEntry] | None = None
        if with_catalog:
            entries = await self.attach_catalog_identifiers(entries)
            catalog = await self.fetch_catalog(entries)

        return AccountInventory(address=address, collections=tuple(entries), catalog=catalog)
