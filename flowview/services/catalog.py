"""Catalog lookups — asset type to catalog collection identifier."""
from __future__ import annotations

import logging
from typing import Iterable, Mapping

from ..chains.flow.cadence import STRING, TypedArg, array_of
from ..chains.flow.scripts import QuerySpec
from ..errors import QueryErrorKind, RemoteQueryError, decoding
from ..interfaces.ledger import LedgerClient
from ..models import CatalogEntry, TypeCatalogTable, media_url
from .batch import BatchAggregator

logger = logging.getLogger(__name__)


def resolve_types(
    types: Iterable[str], table: TypeCatalogTable
) -> dict[str, str | None]:
    """Map each asset type to the first candidate flagged true in ``table``."""
    return {
        asset_type: next(
            (cid for cid, flag in table.candidates(asset_type) if flag), None
        )
        for asset_type in set(types)
    }


class CatalogResolver:
    """Fetches catalog data from the ledger and resolves asset types."""

    def __init__(self, ledger: LedgerClient, aggregator: BatchAggregator) -> None:
        self._ledger = ledger
        self._aggregator = aggregator

    async def fetch_type_table(self) -> TypeCatalogTable:
        raw = await self._ledger.execute(QuerySpec.RESOLVE_CATALOG_TYPES)
        if not isinstance(raw, Mapping):
            raise RemoteQueryError(
                QueryErrorKind.DECODE,
                f"Catalog type data is not a mapping: {type(raw).__name__}",
            )
        with decoding(QuerySpec.RESOLVE_CATALOG_TYPES.value):
            table = TypeCatalogTable.from_mapping(raw)
        logger.debug("Fetched catalog type table with %d entries", len(table))
        return table

    async def resolve(self, types: Iterable[str]) -> dict[str, str | None]:
        """Fetch the type table once and resolve ``types`` against it."""
        table = await self.fetch_type_table()
        return resolve_types(types, table)

    async def fetch_entries(self, collection_ids: Iterable[str]) -> dict[str, CatalogEntry]:
        """Fetch catalog display data for the distinct ``collection_ids``."""
        distinct = list(dict.fromkeys(collection_ids))

        async def query(group: list[str]) -> Mapping[str, object]:
            return await self._ledger.execute(
                QuerySpec.RESOLVE_CATALOG_ENTRIES,
                [TypedArg(group, array_of(STRING))],
            )

        merged = await self._aggregator.aggregate_map(distinct, query)

        entries: dict[str, CatalogEntry] = {}
        with decoding(QuerySpec.RESOLVE_CATALOG_ENTRIES.value):
            for collection_id, metadata in merged.items():
                square_image = (metadata or {}).get("squareImage") or {}
                entries[collection_id] = CatalogEntry(
                    collection_identifier=collection_id,
                    square_image=media_url(square_image.get("file")),
                    media_type=square_image.get("mediaType"),
                )
        return entries
