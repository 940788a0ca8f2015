"""Batched import of registry buildings and entrances into the target store."""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from sqlalchemy.ext.asyncio import AsyncEngine

from .errors import InvalidInputError
from .models import DEFAULT_BATCH_SIZE
from .registry import SourceRegistryReader
from .repositories import (AddressMappingRepository, BuildingEntranceRepository,
                           BuildingMetadataRepository)

LOGGER = logging.getLogger("gwr.buildingdata.importer")


def check_batch_size(batch_size: int) -> None:
    if batch_size < 1:
        raise InvalidInputError(f"Batch size must be positive, got {batch_size}")


class MetadataImporter:
    """Copy active registry buildings into ``building_metadata`` page by page.

    Pages are read with a fixed ``LIMIT``/``OFFSET`` over the EGID ordering and
    each page is upserted in its own transaction, so memory use is bounded by
    the batch size. A failing page aborts the import; earlier pages stay
    committed and concurrent readers may see a partially imported store.
    """

    def __init__(
        self,
        source: SourceRegistryReader,
        engine: AsyncEngine,
        console: Optional[Console] = None,
    ) -> None:
        self._source = source
        self._engine = engine
        self._console = console or Console(stderr=True)

    async def clear_existing_data(self) -> None:
        """Remove all mappings, then all metadata."""
        async with self._engine.begin() as conn:
            await AddressMappingRepository(conn).delete_all()
            await BuildingMetadataRepository(conn).delete_all()
        LOGGER.info("Cleared existing building metadata and address mappings")

    async def import_metadata(
        self, batch_size: int = DEFAULT_BATCH_SIZE, clear_existing: bool = False
    ) -> int:
        check_batch_size(batch_size)
        if clear_existing:
            await self.clear_existing_data()

        total = await self._source.count_active_buildings()
        LOGGER.info("Found %s active buildings in registry", total)

        processed = 0
        offset = 0
        with self._console.status("Importing building metadata...") as status:
            while offset < total:
                buildings = await self._source.find_active_buildings(batch_size, offset)
                records = [building.to_record() for building in buildings]
                async with self._engine.begin() as conn:
                    processed += await BuildingMetadataRepository(conn).upsert_many(
                        records
                    )
                offset += batch_size
                status.update(f"Imported {processed}/{total} buildings")

        LOGGER.info("Imported %s building metadata records", processed)
        return processed


class EntranceImporter:
    """Keep ``building_entrance`` in step with the entrances of active buildings."""

    def __init__(
        self,
        source: SourceRegistryReader,
        engine: AsyncEngine,
        console: Optional[Console] = None,
    ) -> None:
        self._source = source
        self._engine = engine
        self._console = console or Console(stderr=True)

    async def import_entrances(self, batch_size: int = DEFAULT_BATCH_SIZE) -> int:
        check_batch_size(batch_size)
        total = await self._source.count_active_entrances()
        LOGGER.info("Found %s entrances of active buildings in registry", total)

        processed = 0
        offset = 0
        with self._console.status("Importing building entrances...") as status:
            while offset < total:
                entrances = await self._source.find_active_entrances(batch_size, offset)
                records = [entrance.to_record() for entrance in entrances]
                async with self._engine.begin() as conn:
                    processed += await BuildingEntranceRepository(conn).upsert_many(
                        records
                    )
                offset += batch_size
                status.update(f"Imported {processed}/{total} entrances")

        LOGGER.info("Imported %s building entrances", processed)
        return processed
