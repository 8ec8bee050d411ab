"""Cadence query scripts, keyed by ``QuerySpec``.

Contract imports are written as ``0x<ContractName>`` placeholders and replaced
with the configured network addresses once, when the registry is built.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Sequence

from ...errors import InvalidArgument
from ...models import normalize_address
from .cadence import ADDRESS, STRING, UINT64, CadenceType, TypedArg, array_of


class QuerySpec(str, Enum):
    LIST_STORED_ITEMS = "list-stored-items"
    LIST_LINKED_ITEMS = "list-linked-items"
    LIST_COLLECTIONS = "list-collections"
    LIST_FUNGIBLE_BALANCES = "list-fungible-balances"
    LIST_IDENTIFIERS_FOR_PATHS = "list-identifiers-for-paths"
    LIST_DISPLAYS_FOR_IDS = "list-displays-for-ids"
    RESOLVE_CATALOG_TYPES = "resolve-catalog-types"
    RESOLVE_CATALOG_ENTRIES = "resolve-catalog-entries"
    RESOLVE_ACCOUNT_INFO = "resolve-account-info"


LIST_STORED_ITEMS = """
import FungibleToken from 0xFungibleToken
import NonFungibleToken from 0xNonFungibleToken

access(all) struct Item {
    access(all) let address: Address
    access(all) let path: String
    access(all) let type: Type
    access(all) let isNFTCollection: Bool
    access(all) let isVault: Bool

    init(address: Address, path: String, type: Type, isNFTCollection: Bool, isVault: Bool) {
        self.address = address
        self.path = path
        self.type = type
        self.isNFTCollection = isNFTCollection
        self.isVault = isVault
    }
}

access(all) fun main(address: Address): [Item] {
    let account = getAuthAccount<auth(Storage) &Account>(address)
    let items: [Item] = []
    let vaultType = Type<@{FungibleToken.Vault}>()
    let collectionType = Type<@{NonFungibleToken.Collection}>()
    account.storage.forEachStored(fun (path: StoragePath, type: Type): Bool {
        items.append(Item(
            address: address,
            path: path.toString(),
            type: type,
            isNFTCollection: type.isSubtype(of: collectionType),
            isVault: type.isSubtype(of: vaultType)
        ))
        return true
    })
    return items
}
"""

# Private paths were removed from the ledger, so the private domain is
# always empty; the selector is still accepted and validated.
LIST_LINKED_ITEMS = """
access(all) struct Item {
    access(all) let address: Address
    access(all) let path: String
    access(all) let type: Type
    access(all) let linkTarget: String?

    init(address: Address, path: String, type: Type, linkTarget: String?) {
        self.address = address
        self.path = path
        self.type = type
        self.linkTarget = linkTarget
    }
}

access(all) fun main(address: Address, domain: String): [Item] {
    let account = getAuthAccount<auth(Storage, Capabilities) &Account>(address)
    let items: [Item] = []
    if domain != "public" {
        return items
    }
    account.storage.forEachPublic(fun (path: PublicPath, type: Type): Bool {
        var target: String? = nil
        let cap = account.capabilities.get<&AnyResource>(path)
        if let controller = account.capabilities.storage.getController(byCapabilityID: cap.id) {
            target = controller.target().toString()
        }
        items.append(Item(address: address, path: path.toString(), type: type, linkTarget: target))
        return true
    })
    return items
}
"""

LIST_COLLECTIONS = """
import NonFungibleToken from 0xNonFungibleToken

access(all) struct Item {
    access(all) let address: Address
    access(all) let path: String
    access(all) let type: Type

    init(address: Address, path: String, type: Type) {
        self.address = address
        self.path = path
        self.type = type
    }
}

access(all) fun main(address: Address): [Item] {
    let account = getAuthAccount<auth(Storage) &Account>(address)
    let items: [Item] = []
    let collectionType = Type<Capability<&{NonFungibleToken.CollectionPublic}>>()
    account.storage.forEachPublic(fun (path: PublicPath, type: Type): Bool {
        if type.isSubtype(of: collectionType) {
            items.append(Item(address: address, path: path.toString(), type: type))
        }
        return true
    })
    return items
}
"""

LIST_FUNGIBLE_BALANCES = """
import FungibleToken from 0xFungibleToken

access(all) struct Balance {
    access(all) let path: String
    access(all) let type: Type
    access(all) let balance: UFix64

    init(path: String, type: Type, balance: UFix64) {
        self.path = path
        self.type = type
        self.balance = balance
    }
}

access(all) fun main(address: Address): [Balance] {
    let account = getAuthAccount<auth(Storage) &Account>(address)
    let res: [Balance] = []
    let balanceCapType = Type<Capability<&{FungibleToken.Balance}>>()
    account.storage.forEachPublic(fun (path: PublicPath, type: Type): Bool {
        if type.isSubtype(of: balanceCapType) {
            if let vault = account.capabilities.borrow<&{FungibleToken.Balance}>(path) {
                res.append(Balance(path: path.toString(), type: type, balance: vault.balance))
            }
        }
        return true
    })
    return res
}
"""

LIST_IDENTIFIERS_FOR_PATHS = """
import NonFungibleToken from 0xNonFungibleToken

access(all) fun main(address: Address, publicPathIDs: [String]): {String: [UInt64]} {
    let account = getAccount(address)
    let res: {String: [UInt64]} = {}
    for identifier in publicPathIDs {
        let path = PublicPath(identifier: identifier)!
        let collectionRef = account.capabilities.borrow<&{NonFungibleToken.CollectionPublic}>(path)
            ?? panic("Get Collection Failed")
        res[path.toString()] = collectionRef.getIDs()
    }
    return res
}
"""

LIST_DISPLAYS_FOR_IDS = """
import NonFungibleToken from 0xNonFungibleToken
import MetadataViews from 0xMetadataViews

access(all) struct ItemDisplay {
    access(all) let name: String
    access(all) let description: String
    access(all) let thumbnail: {MetadataViews.File}
    access(all) let rarity: String?
    access(all) let serial: UInt64?
    access(all) let externalURL: String?

    init(display: MetadataViews.Display, rarity: String?, serial: UInt64?, externalURL: String?) {
        self.name = display.name
        self.description = display.description
        self.thumbnail = display.thumbnail
        self.rarity = rarity
        self.serial = serial
        self.externalURL = externalURL
    }
}

access(all) fun main(address: Address, publicPathID: String, tokenIDs: [UInt64]): {UInt64: ItemDisplay?} {
    let account = getAccount(address)
    let res: {UInt64: ItemDisplay?} = {}

    let path = PublicPath(identifier: publicPathID)!
    let collectionRef = account.capabilities.borrow<&{NonFungibleToken.Collection}>(path)
    if collectionRef == nil {
        for tokenID in tokenIDs {
            res[tokenID] = nil
        }
        return res
    }

    for tokenID in tokenIDs {
        res[tokenID] = nil
        if let resolver = collectionRef!.borrowViewResolver(id: tokenID) {
            if let display = MetadataViews.getDisplay(resolver) {
                var rarity: String? = nil
                if let r = MetadataViews.getRarity(resolver) {
                    rarity = r.description
                }
                var serial: UInt64? = nil
                if let s = MetadataViews.getSerial(resolver) {
                    serial = s.number
                }
                var externalURL: String? = nil
                if let u = MetadataViews.getExternalURL(resolver) {
                    externalURL = u.url
                }
                res[tokenID] = ItemDisplay(display: display, rarity: rarity, serial: serial, externalURL: externalURL)
            }
        }
    }
    return res
}
"""

RESOLVE_CATALOG_TYPES = """
import NFTCatalog from 0xNFTCatalog

access(all) fun main(): {String: {String: Bool}} {
    return NFTCatalog.getCatalogTypeData()
}
"""

RESOLVE_CATALOG_ENTRIES = """
import NFTCatalog from 0xNFTCatalog
import MetadataViews from 0xMetadataViews

access(all) struct Metadata {
    access(all) let squareImage: MetadataViews.Media

    init(squareImage: MetadataViews.Media) {
        self.squareImage = squareImage
    }
}

access(all) fun main(collectionIdentifiers: [String]): {String: Metadata} {
    let res: {String: Metadata} = {}
    for collectionID in collectionIdentifiers {
        if let catalog = NFTCatalog.getCatalogEntry(collectionIdentifier: collectionID) {
            res[collectionID] = Metadata(squareImage: catalog.collectionDisplay.squareImage)
        }
    }
    return res
}
"""

RESOLVE_ACCOUNT_INFO = """
access(all) struct Result {
    access(all) let address: Address
    access(all) let balance: UFix64
    access(all) let availableBalance: UFix64
    access(all) let storageUsed: UInt64
    access(all) let storageCapacity: UInt64

    init(address: Address, balance: UFix64, availableBalance: UFix64, storageUsed: UInt64, storageCapacity: UInt64) {
        self.address = address
        self.balance = balance
        self.availableBalance = availableBalance
        self.storageUsed = storageUsed
        self.storageCapacity = storageCapacity
    }
}

access(all) fun main(address: Address): Result {
    let account = getAccount(address)
    return Result(
        address: account.address,
        balance: account.balance,
        availableBalance: account.availableBalance,
        storageUsed: account.storage.used,
        storageCapacity: account.storage.capacity
    )
}
"""

# (template, declared parameter types)
_TEMPLATES: dict[QuerySpec, tuple[str, tuple[CadenceType, ...]]] = {
    QuerySpec.LIST_STORED_ITEMS: (LIST_STORED_ITEMS, (ADDRESS,)),
    QuerySpec.LIST_LINKED_ITEMS: (LIST_LINKED_ITEMS, (ADDRESS, STRING)),
    QuerySpec.LIST_COLLECTIONS: (LIST_COLLECTIONS, (ADDRESS,)),
    QuerySpec.LIST_FUNGIBLE_BALANCES: (LIST_FUNGIBLE_BALANCES, (ADDRESS,)),
    QuerySpec.LIST_IDENTIFIERS_FOR_PATHS: (
        LIST_IDENTIFIERS_FOR_PATHS,
        (ADDRESS, array_of(STRING)),
    ),
    QuerySpec.LIST_DISPLAYS_FOR_IDS: (
        LIST_DISPLAYS_FOR_IDS,
        (ADDRESS, STRING, array_of(UINT64)),
    ),
    QuerySpec.RESOLVE_CATALOG_TYPES: (RESOLVE_CATALOG_TYPES, ()),
    QuerySpec.RESOLVE_CATALOG_ENTRIES: (RESOLVE_CATALOG_ENTRIES, (array_of(STRING),)),
    QuerySpec.RESOLVE_ACCOUNT_INFO: (RESOLVE_ACCOUNT_INFO, (ADDRESS,)),
}

_PLACEHOLDER_RE = re.compile(r"\b0x([A-Z][A-Za-z]+)\b")


@dataclass(frozen=True)
class Script:
    spec: QuerySpec
    code: str
    parameters: tuple[CadenceType, ...]

    def check_arguments(self, args: Sequence[TypedArg]) -> None:
        """Raise InvalidArgument unless ``args`` match the declared signature."""
        declared = [str(p) for p in self.parameters]
        given = [str(a.type) for a in args]
        if declared != given:
            raise InvalidArgument(
                f"{self.spec.value} expects ({', '.join(declared)}), "
                f"got ({', '.join(given)})"
            )


class ScriptRegistry:
    """Scripts with contract addresses resolved for one network."""

    def __init__(self, contracts: Mapping[str, str]) -> None:
        self._contracts = {name: normalize_address(addr) for name, addr in contracts.items()}
        self._scripts: dict[QuerySpec, Script] = {
            spec: Script(spec, self._resolve(template), params)
            for spec, (template, params) in _TEMPLATES.items()
        }

    def _resolve(self, template: str) -> str:
        def substitute(match: re.Match[str]) -> str:
            name = match.group(1)
            if name not in self._contracts:
                raise InvalidArgument(f"No address configured for contract '{name}'")
            return self._contracts[name]

        return _PLACEHOLDER_RE.sub(substitute, template)

    def get(self, spec: QuerySpec) -> Script:
        return self._scripts[spec]
