"""Read-only access to the GWR registry export (SQLite)."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, List, Optional

from dateutil import parser as dtparse
from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy import (Column, Integer, MetaData, String, Table, func,
                        select)
from sqlalchemy.ext.asyncio import AsyncEngine

from .records import BuildingMetadataRecord, EntranceRecord
from .schema import METADATA_DATE_COLUMNS, METADATA_STRING_COLUMNS
from .status import EXISTING_STATUS_CODE

LOGGER = logging.getLogger("gwr.buildingdata.registry")

registry_metadata = MetaData()

# Column types are left loose: the export stores most codes as INTEGER and
# some as TEXT depending on the release.
registry_building = Table(
    "building",
    registry_metadata,
    Column("EGID", String, primary_key=True),
    *(Column(name.upper(), String) for name, _ in METADATA_STRING_COLUMNS),
    *(Column(name.upper(), String) for name in METADATA_DATE_COLUMNS),
)

registry_entrance = Table(
    "entrance",
    registry_metadata,
    Column("EGID", String, primary_key=True),
    Column("EDID", String, primary_key=True),
    Column("EGAID", String),
    Column("DEINR", String),
    Column("STRNAME", String),
    Column("DPLZ4", Integer),
    Column("DPLZNAME", String),
)


def parse_registry_date(value: Any) -> Optional[date]:
    """Parse a registry date; the export uses both ISO and dd.mm.yyyy forms."""
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return dtparse.parse(text, dayfirst=True).date()
    except (ValueError, OverflowError):
        LOGGER.debug("Failed to parse registry date %r", value)
        return None


def _as_code(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


class RegistryBuilding(BaseModel):
    """A building row of the registry export, with codes normalised to strings."""

    model_config = ConfigDict(
        alias_generator=str.upper, populate_by_name=True, extra="ignore"
    )

    egid: str
    gdekt: str = ""
    ggdenr: str = ""
    ggdename: str = ""
    egrid: str = ""
    lgbkr: str = ""
    lparz: str = ""
    lparzsx: str = ""
    ltyp: str = ""
    gebnr: str = ""
    gbez: str = ""
    gkode: str = ""
    gkodn: str = ""
    gksce: str = ""
    gstat: str = ""
    gkat: str = ""
    gklas: str = ""
    gbauj: str = ""
    gbaum: str = ""
    gbaup: str = ""
    gabbj: str = ""
    garea: str = ""
    gvol: str = ""
    gvolnorm: str = ""
    gvolsce: str = ""
    gastw: str = ""
    ganzwhg: str = ""
    gazzi: str = ""
    gschutzr: str = ""
    gebf: str = ""
    gwaerzh1: str = ""
    genh1: str = ""
    gwaersceh1: str = ""
    gwaerdath1: Optional[date] = None
    gwaerzh2: str = ""
    genh2: str = ""
    gwaersceh2: str = ""
    gwaerdath2: Optional[date] = None
    gwaerzw1: str = ""
    genw1: str = ""
    gwaerscew1: str = ""
    gwaerdatw1: Optional[date] = None
    gwaerzw2: str = ""
    genw2: str = ""
    gwaerscew2: str = ""
    gwaerdatw2: Optional[date] = None
    gexpdat: Optional[date] = None

    @field_validator("egid", *(name for name, _ in METADATA_STRING_COLUMNS), mode="before")
    @classmethod
    def _normalise_code(cls, value: Any) -> str:
        return _as_code(value)

    @field_validator(*METADATA_DATE_COLUMNS, mode="before")
    @classmethod
    def _normalise_date(cls, value: Any) -> Optional[date]:
        return parse_registry_date(value)

    def to_record(self) -> BuildingMetadataRecord:
        return BuildingMetadataRecord(**self.model_dump())


class RegistryEntrance(BaseModel):
    """An entrance row of the registry export joined with its building's canton."""

    model_config = ConfigDict(
        alias_generator=str.upper, populate_by_name=True, extra="ignore"
    )

    egid: str
    edid: str
    egaid: str = ""
    deinr: str = ""
    strname: str = ""
    dplz4: str = ""
    dplzname: str = ""
    gdekt: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def _normalise_code(cls, value: Any) -> str:
        return _as_code(value)

    def to_record(self) -> EntranceRecord:
        return EntranceRecord(
            id=EntranceRecord.derive_id(self.egid, self.edid),
            egid=self.egid,
            edid=self.edid,
            egaid=self.egaid,
            street_name=self.strname,
            entrance_number=self.deinr,
            postal_code=self.dplz4,
            locality=self.dplzname,
            municipality=self.gdekt,
        )


class SourceRegistryReader:
    """Paginated reads of active buildings and their entrances, ordered by key."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    def _active(self):
        return registry_building.c.GSTAT == EXISTING_STATUS_CODE

    async def count_active_buildings(self) -> int:
        stmt = select(func.count(registry_building.c.EGID)).where(self._active())
        async with self._engine.connect() as conn:
            return int((await conn.execute(stmt)).scalar_one())

    async def find_active_buildings(
        self, limit: int, offset: int = 0
    ) -> List[RegistryBuilding]:
        stmt = (
            select(registry_building)
            .where(self._active())
            .order_by(registry_building.c.EGID)
            .limit(limit)
            .offset(offset)
        )
        async with self._engine.connect() as conn:
            rows = (await conn.execute(stmt)).mappings().all()
        return [RegistryBuilding.model_validate(dict(row)) for row in rows]

    async def find_building(self, egid: str) -> Optional[RegistryBuilding]:
        stmt = select(registry_building).where(registry_building.c.EGID == egid)
        async with self._engine.connect() as conn:
            row = (await conn.execute(stmt)).mappings().first()
        return RegistryBuilding.model_validate(dict(row)) if row else None

    def _entrances(self):
        return registry_entrance.join(
            registry_building, registry_entrance.c.EGID == registry_building.c.EGID
        )

    async def count_active_entrances(self) -> int:
        stmt = (
            select(func.count())
            .select_from(self._entrances())
            .where(self._active())
        )
        async with self._engine.connect() as conn:
            return int((await conn.execute(stmt)).scalar_one())

    async def find_active_entrances(
        self, limit: int, offset: int = 0
    ) -> List[RegistryEntrance]:
        stmt = (
            select(registry_entrance, registry_building.c.GDEKT)
            .select_from(self._entrances())
            .where(self._active())
            .order_by(registry_entrance.c.EGID, registry_entrance.c.EDID)
            .limit(limit)
            .offset(offset)
        )
        async with self._engine.connect() as conn:
            rows = (await conn.execute(stmt)).mappings().all()
        return [RegistryEntrance.model_validate(dict(row)) for row in rows]
