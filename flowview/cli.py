"""Command-line interface for flowview."""
from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from typing import Any

import yaml

from .chains.flow import FlowClient
from .config import load_config
from .errors import InventoryError
from .logging_setup import configure_logging
from .models import CollectionEntry
from .services import InventoryService

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="flowview",
        description="Inspect the collections, balances and storage of a Flow account",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--network",
        default=None,
        help="Network to query (overrides config)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    collections = sub.add_parser("collections", help="List collections with item ids")
    collections.add_argument("address")
    collections.add_argument(
        "--no-catalog",
        action="store_true",
        help="Skip catalog identifier resolution",
    )

    displays = sub.add_parser("displays", help="Display metadata for one collection")
    displays.add_argument("address")
    displays.add_argument("path", help="Public path, e.g. /public/MomentCollection")

    stored = sub.add_parser("stored", help="List items in account storage")
    stored.add_argument("address")

    linked = sub.add_parser("linked", help="List capabilities linked under a domain")
    linked.add_argument("address")
    linked.add_argument("domain", choices=["public", "private"])

    balances = sub.add_parser("balances", help="List fungible token balances")
    balances.add_argument("address")

    account = sub.add_parser("account", help="Show account balance and storage")
    account.add_argument("address")

    return parser


def _to_jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, list):
        return [_to_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _to_jsonable(v) for k, v in value.items()}
    return value


async def _dispatch(service: InventoryService, args: argparse.Namespace) -> Any:
    if args.command == "collections":
        return await service.build_inventory(args.address, with_catalog=not args.no_catalog)
    if args.command == "displays":
        entry = CollectionEntry(address=args.address, path=args.path, type=None)
        [entry] = await service.populate_identifiers(args.address, [entry])
        return await service.populate_displays(args.address, entry)
    if args.command == "stored":
        return await service.get_stored_items(args.address)
    if args.command == "linked":
        return await service.get_linked_items(args.address, args.domain)
    if args.command == "balances":
        return await service.get_fungible_balances(args.address)
    if args.command == "account":
        return await service.get_account_info(args.address)
    raise ValueError(f"Unknown command: {args.command}")


async def _run(args: argparse.Namespace) -> int:
    """Execute the selected command."""
    configure_logging(args.log_level)
    try:
        config = load_config(args.config, network=args.network)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        logger.error("Invalid configuration: %s", e)
        return 1
    service = InventoryService(FlowClient(config.chain), config.inventory)

    try:
        result = await _dispatch(service, args)
    except InventoryError as e:
        logger.error("%s failed: %s", args.command, e)
        return 1

    print(json.dumps(_to_jsonable(result), indent=2, default=str))
    return 0


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    sys.exit(asyncio.run(_run(args)))
