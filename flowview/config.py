"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .models import is_valid_address

logger = logging.getLogger(__name__)

REQUIRED_CONTRACTS = ("NonFungibleToken", "FungibleToken", "MetadataViews", "NFTCatalog")

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChainConfig:
    access_node: str = ""
    rpc_timeout: int = 30
    contracts: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class InventoryConfig:
    chunk_size: int = 20
    max_concurrency: int = 32


@dataclass(frozen=True)
class AppConfig:
    network: str = "mainnet"
    chains: dict[str, ChainConfig] = field(default_factory=dict)
    inventory: InventoryConfig = field(default_factory=InventoryConfig)

    @property
    def chain(self) -> ChainConfig:
        return self.chains[self.network]


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_chains(raw: dict[str, Any]) -> dict[str, ChainConfig]:
    chains: dict[str, ChainConfig] = {}
    for name, cfg in raw.items():
        chains[name] = ChainConfig(
            access_node=str(cfg.get("access_node", "")).rstrip("/"),
            rpc_timeout=int(cfg.get("rpc_timeout", 30)),
            contracts={k: str(v) for k, v in cfg.get("contracts", {}).items()},
        )
    return chains


def _build_inventory(raw: dict[str, Any]) -> InventoryConfig:
    return InventoryConfig(
        chunk_size=int(raw.get("chunk_size", 20)),
        max_concurrency=int(raw.get("max_concurrency", 32)),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    config_path: str | Path | None = None, network: str | None = None
) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
        network: Overrides the ``network`` key of the file when given.
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        network=network or str(raw.get("network", "mainnet")),
        chains=_build_chains(raw.get("chains", {})),
        inventory=_build_inventory(raw.get("inventory", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s (network: %s)", config_path, cfg.network)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if cfg.network not in cfg.chains:
        raise ValueError(f"Network '{cfg.network}' is not configured under chains")

    chain = cfg.chain
    if not chain.access_node:
        raise ValueError(f"Network '{cfg.network}' has no access_node")

    for name in REQUIRED_CONTRACTS:
        address = chain.contracts.get(name)
        if not address:
            raise ValueError(
                f"Network '{cfg.network}' is missing contract address '{name}'"
            )
        if not is_valid_address(address):
            raise ValueError(
                f"Contract '{name}' on '{cfg.network}' has invalid address '{address}'"
            )

    if cfg.inventory.chunk_size < 1:
        raise ValueError("inventory.chunk_size must be at least 1")
    if cfg.inventory.max_concurrency < 1:
        raise ValueError("inventory.max_concurrency must be at least 1")
