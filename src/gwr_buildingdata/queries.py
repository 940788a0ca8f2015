"""Read operations over the building metadata store."""

from __future__ import annotations

import logging
import re
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from .composer import compose_address_view, compose_building, compose_search_summary
from .db_connector import schema_ready
from .errors import (BuildingDataError, InvalidInputError, NotFoundError,
                     StoreNotInitializedError)
from .repositories import (AddressMappingRepository, BuildingEntranceRepository,
                           BuildingMetadataRepository)
from .search_client import PlaceSearcher
from .stats import StatsAggregator

LOGGER = logging.getLogger("gwr.buildingdata.queries")

EGID_PATTERN = re.compile(r"^\d{1,9}$")
EGRID_PATTERN = re.compile(r"^CH[0-9A-Z]{12}$")
MIN_SEARCH_LIMIT = 1
MAX_SEARCH_LIMIT = 100
DEFAULT_SEARCH_LIMIT = 10


def validate_egid(egid: Any) -> str:
    value = "" if egid is None else str(egid).strip()
    if not EGID_PATTERN.match(value):
        raise InvalidInputError(f"Invalid EGID {egid!r}: expected up to 9 digits")
    return value


def validate_egrid(egrid: Any) -> str:
    value = "" if egrid is None else str(egrid).strip().upper()
    if not EGRID_PATTERN.match(value):
        raise InvalidInputError(
            f"Invalid EGRID {egrid!r}: expected 'CH' followed by 12 characters"
        )
    return value


def validate_address_id(address_id: Any) -> uuid.UUID:
    if isinstance(address_id, uuid.UUID):
        return address_id
    try:
        return uuid.UUID(str(address_id))
    except ValueError as exc:
        raise InvalidInputError(f"Invalid address ID {address_id!r}") from exc


def build_search_query(
    query: Optional[str] = None,
    street: Optional[str] = None,
    house_number: Optional[str] = None,
    postal_code: Optional[str] = None,
    locality: Optional[str] = None,
) -> str:
    """Free text wins; otherwise the non-empty components joined by spaces."""
    if query and query.strip():
        return query.strip()
    parts = [
        part.strip()
        for part in (street, house_number, postal_code, locality)
        if part and part.strip()
    ]
    if not parts:
        raise InvalidInputError("At least one address component is required")
    return " ".join(parts)


class BuildingQueryService:
    def __init__(
        self, engine: AsyncEngine, searcher: Optional[PlaceSearcher] = None
    ) -> None:
        self._engine = engine
        self._searcher = searcher

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[AsyncConnection]:
        async with self._engine.connect() as conn:
            if not await schema_ready(conn):
                raise StoreNotInitializedError()
            yield conn

    async def _compose_by_egid(self, conn: AsyncConnection, egid: str) -> Dict[str, Any]:
        metadata = await BuildingMetadataRepository(conn).get_by_egid(egid)
        if metadata is None:
            raise NotFoundError(f"Building {egid} not found")
        mappings = await AddressMappingRepository(conn).find_entrances_by_egid(egid)
        return compose_building(metadata, mappings)

    async def get_building_by_egid(self, egid: str) -> Dict[str, Any]:
        egid = validate_egid(egid)
        async with self._connection() as conn:
            return await self._compose_by_egid(conn, egid)

    async def get_building_by_egrid(self, egrid: str) -> Dict[str, Any]:
        egrid = validate_egrid(egrid)
        async with self._connection() as conn:
            metadata = await BuildingMetadataRepository(conn).get_by_egrid(egrid)
            if metadata is None:
                raise NotFoundError(f"No building found for EGRID {egrid}")
            return await self._compose_by_egid(conn, metadata.egid)

    async def get_address_with_building(
        self, address_id: Any, include_all_entrances: bool = False
    ) -> Dict[str, Any]:
        entrance_id = validate_address_id(address_id)
        async with self._connection() as conn:
            entrance = await BuildingEntranceRepository(conn).get(entrance_id)
            if entrance is None:
                raise NotFoundError(f"Address {entrance_id} not found")
            mappings_repo = AddressMappingRepository(conn)
            metadata = await mappings_repo.find_building_by_entrance_id(entrance_id)
            mappings = None
            if metadata is not None and include_all_entrances:
                mappings = await mappings_repo.find_entrances_by_egid(metadata.egid)
        return compose_address_view(entrance, metadata, mappings)

    async def search_buildings_by_address(
        self,
        query: Optional[str] = None,
        street: Optional[str] = None,
        house_number: Optional[str] = None,
        postal_code: Optional[str] = None,
        locality: Optional[str] = None,
        limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> Dict[str, Any]:
        if not MIN_SEARCH_LIMIT <= limit <= MAX_SEARCH_LIMIT:
            raise InvalidInputError(
                f"Limit must be between {MIN_SEARCH_LIMIT} and {MAX_SEARCH_LIMIT}"
            )
        search_query = build_search_query(
            query, street, house_number, postal_code, locality
        )
        if self._searcher is None:
            raise BuildingDataError("No address search service configured")

        places = await self._searcher.search_places(search_query, limit)

        buildings = []
        seen: set[str] = set()
        async with self._connection() as conn:
            repository = BuildingMetadataRepository(conn)
            for place in places:
                egid = place.building_id
                if not egid or egid in seen:
                    continue
                seen.add(egid)
                metadata = await repository.get_by_egid(egid)
                if metadata is None:
                    LOGGER.debug("Search hit %s references unknown EGID %s", place.id, egid)
                    continue
                buildings.append(compose_search_summary(metadata, place))

        return {"query": search_query, "count": len(buildings), "buildings": buildings}

    async def stats(self) -> Dict[str, Any]:
        return await StatsAggregator(self._engine).compute_stats()
