"""Shared test fixtures and sample data."""
from __future__ import annotations

import asyncio
import textwrap
from pathlib import Path
from typing import Any, Callable, Sequence

import pytest

from flowview.chains.flow.cadence import TypedArg
from flowview.chains.flow.scripts import QuerySpec
from flowview.config import AppConfig, ChainConfig, InventoryConfig

ACCOUNT = "0x0b2a3299cc857e29"

MAINNET_CONTRACTS = {
    "NonFungibleToken": "0x1d7e57aa55817448",
    "MetadataViews": "0x1d7e57aa55817448",
    "FungibleToken": "0xf233dcee88fe0abe",
    "NFTCatalog": "0x49a7cda3a1eecc29",
}


# ---------------------------------------------------------------------------
# Fake ledger
# ---------------------------------------------------------------------------


class FakeLedger:
    """In-memory ledger returning canned responses per query kind.

    A response may be a plain value or a callable receiving the argument
    values; callables may be coroutine functions and may raise.
    """

    def __init__(self) -> None:
        self.responses: dict[QuerySpec, Any] = {}
        self.calls: list[tuple[QuerySpec, list[Any]]] = []

    def on(self, spec: QuerySpec, response: Any) -> FakeLedger:
        self.responses[spec] = response
        return self

    def calls_for(self, spec: QuerySpec) -> list[list[Any]]:
        return [values for called, values in self.calls if called == spec]

    async def execute(self, spec: QuerySpec, args: Sequence[TypedArg] = ()) -> Any:
        values = [a.value for a in args]
        self.calls.append((spec, values))
        await asyncio.sleep(0)
        if spec not in self.responses:
            raise AssertionError(f"Unexpected query {spec.value}")
        response = self.responses[spec]
        if callable(response):
            result = response(*values)
            if asyncio.iscoroutine(result):
                result = await result
            return result
        return response


@pytest.fixture()
def ledger() -> FakeLedger:
    return FakeLedger()


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_chain_config() -> ChainConfig:
    return ChainConfig(
        access_node="https://rest.example.com",
        rpc_timeout=10,
        contracts=dict(MAINNET_CONTRACTS),
    )


@pytest.fixture()
def sample_app_config(sample_chain_config: ChainConfig) -> AppConfig:
    return AppConfig(
        network="mainnet",
        chains={"mainnet": sample_chain_config},
        inventory=InventoryConfig(chunk_size=20, max_concurrency=32),
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    network: mainnet
    chains:
      mainnet:
        access_node: "https://rest.example.com/"
        rpc_timeout: 10
        contracts:
          NonFungibleToken: "0x1d7e57aa55817448"
          MetadataViews: "0x1d7e57aa55817448"
          FungibleToken: "0xf233dcee88fe0abe"
          NFTCatalog: "0x49a7cda3a1eecc29"
      testnet:
        access_node: "https://rest-testnet.example.com"
        contracts:
          NonFungibleToken: "0x631e88ae7f1d7c20"
          MetadataViews: "0x631e88ae7f1d7c20"
          FungibleToken: "0x9a0766d93b6608b7"
          NFTCatalog: "0x324c34e1c517e4db"
    inventory:
      chunk_size: 10
      max_concurrency: 4
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file


# ---------------------------------------------------------------------------
# Sample ledger data
# ---------------------------------------------------------------------------

TOPSHOT_TYPE = (
    "Capability<&A.0b2a3299cc857e29.TopShot.Collection"
    "{A.1d7e57aa55817448.NonFungibleToken.CollectionPublic}>"
)


@pytest.fixture()
def sample_display() -> Callable[[int], dict[str, Any]]:
    def make(token_id: int) -> dict[str, Any]:
        return {
            "name": f"Moment #{token_id}",
            "description": "A moment",
            "thumbnail": {"url": f"https://assets.example.com/{token_id}.png"},
            "rarity": None,
            "serial": token_id * 10,
            "externalURL": None,
        }

    return make
