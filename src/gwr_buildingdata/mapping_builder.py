"""Creation and maintenance of building/entrance mappings."""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from rich.console import Console
from sqlalchemy.ext.asyncio import AsyncEngine

from .importer import check_batch_size
from .models import DEFAULT_BATCH_SIZE
from .records import AddressMappingRecord
from .repositories import (AddressMappingRepository, BuildingEntranceRepository,
                           BuildingMetadataRepository)

LOGGER = logging.getLogger("gwr.buildingdata.mappings")

MAIN_ENTRANCE_CODE = "0"


class AddressMappingBuilder:
    """Additively link every entrance to its building.

    Safe to re-run: entrances that already have a mapping are left alone,
    including their primary flag.
    """

    def __init__(self, engine: AsyncEngine, console: Optional[Console] = None) -> None:
        self._engine = engine
        self._console = console or Console(stderr=True)

    async def build_mappings(self, batch_size: int = DEFAULT_BATCH_SIZE) -> int:
        check_batch_size(batch_size)
        async with self._engine.connect() as conn:
            total = await BuildingEntranceRepository(conn).count_all()
        LOGGER.info("Found %s building entrances to map", total)

        created = 0
        skipped = 0
        offset = 0
        with self._console.status("Creating building-address mappings...") as status:
            while offset < total:
                async with self._engine.begin() as conn:
                    entrances = await BuildingEntranceRepository(conn).find_batch(
                        batch_size, offset
                    )
                    buildings = BuildingMetadataRepository(conn)
                    mappings = AddressMappingRepository(conn)
                    batch = []
                    primaries: set[str] = set()
                    for entrance in entrances:
                        if await mappings.exists(entrance.egid, entrance.id):
                            continue
                        if not await buildings.exists(entrance.egid):
                            skipped += 1
                            continue
                        is_primary = (
                            entrance.edid == MAIN_ENTRANCE_CODE
                            and entrance.egid not in primaries
                            and not await mappings.has_primary(entrance.egid)
                        )
                        if is_primary:
                            primaries.add(entrance.egid)
                        batch.append(
                            AddressMappingRecord.new(
                                entrance.egid,
                                entrance.id,
                                entrance.edid,
                                is_primary=is_primary,
                            )
                        )
                    created += await mappings.create_many(batch)
                offset += batch_size
                status.update(f"Mapped {min(offset, total)}/{total} entrances")

        if skipped:
            LOGGER.warning(
                "Skipped %s entrances whose building has no metadata", skipped
            )
        LOGGER.info("Created %s building-address mappings", created)
        return created

    async def create_mapping(
        self,
        egid: str,
        entrance_id: uuid.UUID,
        entrance_code: str,
        is_primary: bool = False,
    ) -> AddressMappingRecord:
        async with self._engine.begin() as conn:
            return await AddressMappingRepository(conn).create_mapping(
                egid, entrance_id, entrance_code, is_primary
            )

    async def set_primary_entrance(self, egid: str, entrance_id: uuid.UUID) -> None:
        """Atomically move the primary flag of ``egid`` to ``entrance_id``."""
        async with self._engine.begin() as conn:
            await AddressMappingRepository(conn).set_primary_entrance(egid, entrance_id)
        LOGGER.info("Primary entrance of building %s is now %s", egid, entrance_id)
