"""Repositories over the building metadata store.

Each repository wraps an ``AsyncConnection``; callers own the transaction
(``engine.begin()``) so that a batch is written as a single unit.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, List, Optional, Sequence, Tuple

from sqlalchemy import Table, delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncConnection

from .errors import MappingNotFoundError
from .records import AddressMappingRecord, BuildingMetadataRecord, EntranceRecord
from .schema import building_address_mapping, building_entrance, building_metadata

LOGGER = logging.getLogger("gwr.buildingdata.repositories")

# WGS84 coordinates come from the address subsystem, not the registry export.
ENTRANCE_COORDINATES = ("latitude", "longitude")


def _upsert(
    conn: AsyncConnection,
    table: Table,
    key_columns: Sequence[str],
    preserve: Sequence[str] = (),
) -> Any:
    """Insert-or-update on ``key_columns``; ``preserve`` columns keep stored values."""
    dialect = conn.dialect.name
    if dialect == "postgresql":
        stmt = pg_insert(table)
    elif dialect == "sqlite":
        stmt = sqlite_insert(table)
    else:
        raise NotImplementedError(f"Upsert not supported for dialect {dialect}")
    return stmt.on_conflict_do_update(
        index_elements=[table.c[col] for col in key_columns],
        set_={
            column.name: stmt.excluded[column.name]
            for column in table.columns
            if column.name not in key_columns and column.name not in preserve
        },
    )


class BuildingMetadataRepository:
    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def get_by_egid(self, egid: str) -> Optional[BuildingMetadataRecord]:
        stmt = select(building_metadata).where(building_metadata.c.egid == egid)
        row = (await self._conn.execute(stmt)).mappings().first()
        return BuildingMetadataRecord.from_row(row) if row else None

    async def get_by_egrid(self, egrid: str) -> Optional[BuildingMetadataRecord]:
        # Several buildings can stand on one property; the lowest EGID wins.
        stmt = (
            select(building_metadata)
            .where(building_metadata.c.egrid == egrid)
            .order_by(building_metadata.c.egid)
            .limit(1)
        )
        row = (await self._conn.execute(stmt)).mappings().first()
        return BuildingMetadataRecord.from_row(row) if row else None

    async def exists(self, egid: str) -> bool:
        stmt = select(func.count()).where(building_metadata.c.egid == egid)
        return int((await self._conn.execute(stmt)).scalar_one()) > 0

    async def upsert_many(self, records: Sequence[BuildingMetadataRecord]) -> int:
        """Write a page of records; an existing EGID is overwritten."""
        if not records:
            return 0
        await self._conn.execute(
            _upsert(self._conn, building_metadata, ("egid",)),
            [record.as_row() for record in records],
        )
        return len(records)

    async def delete_all(self) -> None:
        await self._conn.execute(delete(building_metadata))

    async def count_total(self) -> int:
        stmt = select(func.count(building_metadata.c.egid))
        return int((await self._conn.execute(stmt)).scalar_one())


class BuildingEntranceRepository:
    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def get(self, entrance_id: uuid.UUID) -> Optional[EntranceRecord]:
        stmt = select(building_entrance).where(building_entrance.c.id == entrance_id)
        row = (await self._conn.execute(stmt)).mappings().first()
        return EntranceRecord.from_row(row) if row else None

    async def count_all(self) -> int:
        stmt = select(func.count(building_entrance.c.id))
        return int((await self._conn.execute(stmt)).scalar_one())

    async def find_batch(self, limit: int, offset: int = 0) -> List[EntranceRecord]:
        stmt = (
            select(building_entrance)
            .order_by(building_entrance.c.id)
            .limit(limit)
            .offset(offset)
        )
        rows = (await self._conn.execute(stmt)).mappings().all()
        return [EntranceRecord.from_row(row) for row in rows]

    async def upsert_many(self, records: Sequence[EntranceRecord]) -> int:
        if not records:
            return 0
        await self._conn.execute(
            _upsert(self._conn, building_entrance, ("id",), ENTRANCE_COORDINATES),
            [record.as_row() for record in records],
        )
        return len(records)


class AddressMappingRepository:
    """Link records between buildings and entrances."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def exists(self, egid: str, entrance_id: uuid.UUID) -> bool:
        stmt = select(func.count(building_address_mapping.c.id)).where(
            building_address_mapping.c.egid == egid,
            building_address_mapping.c.building_entrance_id == entrance_id,
        )
        return int((await self._conn.execute(stmt)).scalar_one()) > 0

    async def create_many(self, mappings: Sequence[AddressMappingRecord]) -> int:
        if not mappings:
            return 0
        await self._conn.execute(
            building_address_mapping.insert(),
            [mapping.as_row() for mapping in mappings],
        )
        return len(mappings)

    async def create_mapping(
        self,
        egid: str,
        entrance_id: uuid.UUID,
        entrance_code: str,
        is_primary: bool = False,
    ) -> AddressMappingRecord:
        mapping = AddressMappingRecord.new(egid, entrance_id, entrance_code, is_primary)
        if is_primary:
            await self._clear_primary(egid)
        await self.create_many([mapping])
        return mapping

    async def _clear_primary(self, egid: str) -> None:
        table = building_address_mapping
        await self._conn.execute(
            update(table).where(table.c.egid == egid).values(is_primary_entrance=False)
        )

    async def set_primary_entrance(self, egid: str, entrance_id: uuid.UUID) -> None:
        """Move the primary flag of ``egid`` onto ``entrance_id``.

        Must run inside a transaction so readers never observe a building
        without a primary entrance. Raises ``MappingNotFoundError`` (and
        changes nothing) when the entrance is not mapped to the building.
        """
        if not await self.exists(egid, entrance_id):
            raise MappingNotFoundError(
                f"Entrance {entrance_id} is not mapped to building {egid}"
            )
        await self._clear_primary(egid)
        table = building_address_mapping
        await self._conn.execute(
            update(table)
            .where(table.c.egid == egid, table.c.building_entrance_id == entrance_id)
            .values(is_primary_entrance=True)
        )
        LOGGER.debug("Primary entrance of %s set to %s", egid, entrance_id)

    async def has_primary(self, egid: str) -> bool:
        stmt = select(func.count(building_address_mapping.c.id)).where(
            building_address_mapping.c.egid == egid,
            building_address_mapping.c.is_primary_entrance.is_(True),
        )
        return int((await self._conn.execute(stmt)).scalar_one()) > 0

    async def find_by_egid(self, egid: str) -> List[AddressMappingRecord]:
        stmt = (
            select(building_address_mapping)
            .where(building_address_mapping.c.egid == egid)
            .order_by(building_address_mapping.c.entrance_id)
        )
        rows = (await self._conn.execute(stmt)).mappings().all()
        return [AddressMappingRecord.from_row(row) for row in rows]

    async def find_entrances_by_egid(
        self, egid: str
    ) -> List[Tuple[AddressMappingRecord, Optional[EntranceRecord]]]:
        """Mappings of ``egid`` with their entrance, ``None`` where it is gone."""
        mapping_cols = [c.label(f"m_{c.name}") for c in building_address_mapping.c]
        entrance_cols = [c.label(f"e_{c.name}") for c in building_entrance.c]
        stmt = (
            select(*mapping_cols, *entrance_cols)
            .select_from(
                building_address_mapping.outerjoin(
                    building_entrance,
                    building_address_mapping.c.building_entrance_id
                    == building_entrance.c.id,
                )
            )
            .where(building_address_mapping.c.egid == egid)
            .order_by(
                building_address_mapping.c.entrance_id,
                building_address_mapping.c.building_entrance_id,
            )
        )
        result = []
        for row in (await self._conn.execute(stmt)).mappings():
            mapping = AddressMappingRecord.from_row(
                {c.name: row[f"m_{c.name}"] for c in building_address_mapping.c}
            )
            entrance = None
            if row["e_id"] is not None:
                entrance = EntranceRecord.from_row(
                    {c.name: row[f"e_{c.name}"] for c in building_entrance.c}
                )
            result.append((mapping, entrance))
        return result

    async def find_building_by_entrance_id(
        self, entrance_id: uuid.UUID
    ) -> Optional[BuildingMetadataRecord]:
        stmt = (
            select(building_metadata)
            .join(
                building_address_mapping,
                building_address_mapping.c.egid == building_metadata.c.egid,
            )
            .where(building_address_mapping.c.building_entrance_id == entrance_id)
            .order_by(building_metadata.c.egid)
            .limit(1)
        )
        row = (await self._conn.execute(stmt)).mappings().first()
        return BuildingMetadataRecord.from_row(row) if row else None

    async def find_primary_entrance(self, egid: str) -> Optional[EntranceRecord]:
        stmt = (
            select(building_entrance)
            .join(
                building_address_mapping,
                building_address_mapping.c.building_entrance_id
                == building_entrance.c.id,
            )
            .where(
                building_address_mapping.c.egid == egid,
                building_address_mapping.c.is_primary_entrance.is_(True),
            )
        )
        row = (await self._conn.execute(stmt)).mappings().first()
        return EntranceRecord.from_row(row) if row else None

    async def count_total(self) -> int:
        stmt = select(func.count(building_address_mapping.c.id))
        return int((await self._conn.execute(stmt)).scalar_one())

    async def delete_all(self) -> None:
        await self._conn.execute(delete(building_address_mapping))
