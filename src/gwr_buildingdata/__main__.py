from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Any, Optional

from rich.console import Console

from .config import load_config
from .db_connector import DatabaseSession, create_source_engine
from .errors import (BuildingDataError, InvalidInputError, NotFoundError,
                     StoreNotInitializedError)
from .importer import EntranceImporter, MetadataImporter
from .logging_utils import setup_logging
from .mapping_builder import AddressMappingBuilder
from .models import SyncConfig
from .queries import (DEFAULT_SEARCH_LIMIT, BuildingQueryService,
                      validate_address_id, validate_egid)
from .registry import SourceRegistryReader
from .search_client import PlaceSearchClient, SearchClientError

console = Console(stderr=True)
LOGGER = logging.getLogger("gwr.buildingdata")


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gwr-buildingdata")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create the building metadata tables")

    import_parser = subparsers.add_parser(
        "import", help="Import building metadata from the GWR export and map addresses"
    )
    import_parser.add_argument("-b", "--batch-size", type=int, default=None)
    import_parser.add_argument(
        "--clear-existing",
        action="store_true",
        help="Clear existing building metadata before import",
    )
    import_parser.add_argument(
        "--skip-entrances", action="store_true", help="Do not refresh building entrances"
    )
    import_parser.add_argument(
        "--skip-mappings", action="store_true", help="Skip creating address mappings"
    )

    map_parser = subparsers.add_parser(
        "map-addresses", help="Create missing building-address mappings"
    )
    map_parser.add_argument("-b", "--batch-size", type=int, default=None)

    primary_parser = subparsers.add_parser(
        "set-primary", help="Make an entrance the primary entrance of its building"
    )
    primary_parser.add_argument("egid")
    primary_parser.add_argument("entrance_id")

    subparsers.add_parser("stats", help="Show building metadata statistics")

    building_parser = subparsers.add_parser("building", help="Show a building")
    key = building_parser.add_mutually_exclusive_group(required=True)
    key.add_argument("--egid")
    key.add_argument("--egrid")

    address_parser = subparsers.add_parser("address", help="Show an address and its building")
    address_parser.add_argument("address_id")
    address_parser.add_argument("--include-all-entrances", action="store_true")

    search_parser = subparsers.add_parser("search", help="Find buildings by address")
    search_parser.add_argument("--query")
    search_parser.add_argument("--street")
    search_parser.add_argument("--house-number")
    search_parser.add_argument("--postal-code")
    search_parser.add_argument("--locality")
    search_parser.add_argument("--limit", type=int, default=DEFAULT_SEARCH_LIMIT)

    return parser


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


async def run_import(
    args: argparse.Namespace, config: SyncConfig, session: DatabaseSession
) -> None:
    batch_size = args.batch_size or config.batch_size
    source_engine = create_source_engine(config.source.url)
    try:
        source = SourceRegistryReader(source_engine)
        engine = session.engine
        imported = await MetadataImporter(source, engine, console).import_metadata(
            batch_size, clear_existing=args.clear_existing
        )
        console.print(f"Imported {imported} building metadata records")
        if not args.skip_entrances:
            entrances = await EntranceImporter(source, engine, console).import_entrances(
                batch_size
            )
            console.print(f"Imported {entrances} building entrances")
        if not args.skip_mappings:
            created = await AddressMappingBuilder(engine, console).build_mappings(batch_size)
            console.print(f"Created {created} building-address mappings")
    finally:
        await source_engine.dispose()


async def run_command(args: argparse.Namespace, config: SyncConfig) -> None:
    session = DatabaseSession(config.database)
    engine = await session.open()
    try:
        if args.command == "init-db":
            await session.ensure_schema()
            console.print("Building metadata tables are ready")
        elif args.command == "import":
            await run_import(args, config, session)
        elif args.command == "map-addresses":
            created = await AddressMappingBuilder(engine, console).build_mappings(
                args.batch_size or config.batch_size
            )
            console.print(f"Created {created} building-address mappings")
        elif args.command == "set-primary":
            await AddressMappingBuilder(engine, console).set_primary_entrance(
                validate_egid(args.egid), validate_address_id(args.entrance_id)
            )
        elif args.command == "stats":
            _print_json(await BuildingQueryService(engine).stats())
        elif args.command == "building":
            service = BuildingQueryService(engine)
            if args.egid:
                _print_json(await service.get_building_by_egid(args.egid))
            else:
                _print_json(await service.get_building_by_egrid(args.egrid))
        elif args.command == "address":
            _print_json(
                await BuildingQueryService(engine).get_address_with_building(
                    args.address_id, include_all_entrances=args.include_all_entrances
                )
            )
        elif args.command == "search":
            async with PlaceSearchClient(config.search) as searcher:
                _print_json(
                    await BuildingQueryService(engine, searcher).search_buildings_by_address(
                        query=args.query,
                        street=args.street,
                        house_number=args.house_number,
                        postal_code=args.postal_code,
                        locality=args.locality,
                        limit=args.limit,
                    )
                )
    finally:
        await session.dispose()


def main(argv: Optional[list[str]] = None) -> None:
    setup_logging(os.getenv("LOG_LEVEL", "INFO"), console=console)
    args = _parser().parse_args(argv)
    try:
        config = load_config()
    except Exception as exc:  # pragma: no cover - guard for CLI usage
        LOGGER.error("Configuration error: %s", exc)
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)

    try:
        asyncio.run(run_command(args, config))
    except (InvalidInputError, NotFoundError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)
    except StoreNotInitializedError as exc:
        print(f"Not ready: {exc}", file=sys.stderr)
        sys.exit(2)
    except SearchClientError as exc:
        LOGGER.exception("Address search service error")
        print(f"Search error: {exc}", file=sys.stderr)
        sys.exit(2)
    except BuildingDataError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)
    except Exception as exc:  # pragma: no cover - guard for CLI usage
        LOGGER.exception("Command failed")
        print(f"Command failed: {exc}", file=sys.stderr)
        sys.exit(3)


if __name__ == "__main__":
    main()
