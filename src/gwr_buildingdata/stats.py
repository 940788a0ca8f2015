from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncEngine

from .db_connector import schema_ready
from .errors import StoreNotInitializedError
from .repositories import AddressMappingRepository, BuildingMetadataRepository

LOGGER = logging.getLogger("gwr.buildingdata.stats")


class StatsAggregator:
    """Counts and ratios over building metadata and address mappings."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def compute_stats(self) -> Dict[str, Any]:
        async with self._engine.connect() as conn:
            if not await schema_ready(conn):
                LOGGER.warning("Building metadata tables are missing")
                raise StoreNotInitializedError()
            total_buildings = await BuildingMetadataRepository(conn).count_total()
            total_mappings = await AddressMappingRepository(conn).count_total()

        if total_buildings > 0:
            ratio = round(total_mappings / total_buildings, 2)
            average = round(total_mappings / total_buildings, 1)
        else:
            ratio = 0
            average = 0

        return {
            "totalBuildings": total_buildings,
            "totalMappings": total_mappings,
            "ratio": ratio,
            "averageEntrancesPerBuilding": average,
            "status": "Building metadata system active",
            "lastUpdated": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        }
