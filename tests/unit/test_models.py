"""Unit tests for data models."""
from __future__ import annotations

import pytest

from flowview.errors import InvalidArgument
from flowview.models import (
    CollectionEntry,
    Display,
    StoragePath,
    TypeCatalogTable,
    is_valid_address,
    media_url,
    normalize_address,
)


class TestNormalizeAddress:
    def test_canonical_address(self) -> None:
        assert normalize_address("0x0b2a3299cc857e29") == "0x0b2a3299cc857e29"

    def test_uppercase_and_missing_prefix(self) -> None:
        assert normalize_address("0B2A3299CC857E29") == "0x0b2a3299cc857e29"

    def test_short_address_is_padded(self) -> None:
        assert normalize_address("0x1") == "0x0000000000000001"

    @pytest.mark.parametrize("value", ["", "0x", "0xzz", "0x" + "1" * 17, "flow"])
    def test_invalid_addresses(self, value: str) -> None:
        with pytest.raises(InvalidArgument):
            normalize_address(value)
        assert not is_valid_address(value)


class TestStoragePath:
    def test_parse_and_str(self) -> None:
        path = StoragePath.parse("/public/MomentCollection")
        assert path == StoragePath(domain="public", identifier="MomentCollection")
        assert str(path) == "/public/MomentCollection"

    @pytest.mark.parametrize(
        "value", ["public/x", "/unknown/x", "/public/", "/public/a/b", ""]
    )
    def test_invalid_paths(self, value: str) -> None:
        with pytest.raises(InvalidArgument):
            StoragePath.parse(value)


class TestCollectionEntry:
    def test_path_identifier(self) -> None:
        entry = CollectionEntry(address="0x1", path="/public/p1", type=None)
        assert entry.path_identifier == "p1"
        assert entry.collection_identifier is None
        assert entry.nft_ids is None

    def test_frozen(self) -> None:
        entry = CollectionEntry(address="0x1", path="/public/p1", type=None)
        with pytest.raises(AttributeError):
            entry.nft_ids = (1,)  # type: ignore[misc]


class TestMediaUrl:
    def test_http_file(self) -> None:
        assert media_url({"url": "https://x/y.png"}) == "https://x/y.png"

    def test_ipfs_file_with_path(self) -> None:
        assert media_url({"cid": "Qm123", "path": "img.png"}) == "https://ipfs.io/ipfs/Qm123/img.png"

    def test_ipfs_file_without_path(self) -> None:
        assert media_url({"cid": "Qm123", "path": None}) == "https://ipfs.io/ipfs/Qm123"

    def test_unknown_or_missing(self) -> None:
        assert media_url(None) is None
        assert media_url({"other": 1}) is None

    def test_display_thumbnail_url(self) -> None:
        display = Display(token_id=1, name="n", description="d", thumbnail={"cid": "Qm1"})
        assert display.thumbnail_url == "https://ipfs.io/ipfs/Qm1"


class TestTypeCatalogTable:
    def test_from_mapping_preserves_order(self) -> None:
        table = TypeCatalogTable.from_mapping({"T1": {"A": False, "B": True}, "T2": {"C": True}})
        assert table.entries == (("T1", "A", False), ("T1", "B", True), ("T2", "C", True))
        assert list(table.candidates("T1")) == [("A", False), ("B", True)]
        assert len(table) == 3

    def test_unknown_type_has_no_candidates(self) -> None:
        assert list(TypeCatalogTable().candidates("T")) == []


class TestCollectionPathIdentifier:
    @pytest.mark.parametrize("path", ["/storage/MomentCollection", "/private/MomentCollection"])
    def test_non_public_path_rejected(self, path: str) -> None:
        entry = CollectionEntry(address="0x1", path=path, type=None)
        with pytest.raises(InvalidArgument, match="public"):
            entry.path_identifier
