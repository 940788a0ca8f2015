import io
from datetime import date

import pytest
from rich.console import Console
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from gwr_buildingdata.db_connector import enable_sqlite_foreign_keys
from gwr_buildingdata.records import BuildingMetadataRecord, EntranceRecord
from gwr_buildingdata.registry import (registry_building, registry_entrance,
                                       registry_metadata)
from gwr_buildingdata.schema import metadata

MEMORY_URL = "sqlite+aiosqlite:///:memory:"


def _memory_engine():
    engine = create_async_engine(MEMORY_URL, poolclass=StaticPool)
    enable_sqlite_foreign_keys(engine)
    return engine


def registry_building_row(egid, **overrides):
    row = {
        "EGID": egid,
        "GDEKT": "ZH",
        "GGDENR": "261",
        "GGDENAME": "Zürich",
        "EGRID": f"CH{int(egid):012d}",
        "LGBKR": "1",
        "LPARZ": "AU1234",
        "LPARZSX": "",
        "LTYP": "1",
        "GEBNR": "100",
        "GBEZ": "",
        "GKODE": "2683000.5",
        "GKODN": "1247000.25",
        "GKSCE": "901",
        "GSTAT": 1004,
        "GKAT": 1020,
        "GKLAS": 1122,
        "GBAUJ": 1965,
        "GBAUM": 5,
        "GBAUP": 8014,
        "GABBJ": None,
        "GAREA": 250,
        "GVOL": 3200,
        "GVOLNORM": 961,
        "GVOLSCE": 869,
        "GASTW": 5,
        "GANZWHG": 12,
        "GAZZI": 0,
        "GSCHUTZR": 1,
        "GEBF": 1150,
        "GWAERZH1": 7436,
        "GENH1": 7530,
        "GWAERSCEH1": 852,
        "GWAERDATH1": "2021-06-14",
        "GWAERZH2": None,
        "GENH2": None,
        "GWAERSCEH2": None,
        "GWAERDATH2": None,
        "GWAERZW1": 7651,
        "GENW1": 7530,
        "GWAERSCEW1": 852,
        "GWAERDATW1": "14.06.2021",
        "GWAERZW2": None,
        "GENW2": None,
        "GWAERSCEW2": None,
        "GWAERDATW2": None,
        "GEXPDAT": "2025-10-06",
    }
    row.update(overrides)
    return row


def registry_entrance_row(egid, edid, **overrides):
    row = {
        "EGID": egid,
        "EDID": edid,
        "EGAID": f"{int(egid) + 100000000 + int(edid)}",
        "DEINR": str(10 + int(edid)),
        "STRNAME": "Bahnhofstrasse",
        "DPLZ4": 8001,
        "DPLZNAME": "Zürich",
    }
    row.update(overrides)
    return row


def metadata_record(egid="150404", **overrides):
    values = dict(
        egid=egid,
        gdekt="ZH",
        ggdenr="261",
        ggdename="Zürich",
        egrid="CH123456789012",
        lgbkr="1",
        lparz="AU1234",
        ltyp="1",
        gebnr="100",
        gkode="2683000.5",
        gkodn="1247000.25",
        gksce="901",
        gstat="1004",
        gkat="1020",
        gklas="1122",
        gbauj="1965",
        gbaum="5",
        gbaup="8014",
        garea="250",
        gvol="3200",
        gvolnorm="961",
        gastw="5",
        ganzwhg="12",
        gazzi="0",
        gschutzr="1",
        gebf="1150",
        gwaerzh1="7436",
        genh1="7530",
        gwaersceh1="852",
        gwaerdath1=date(2021, 6, 14),
        gwaerzw1="7651",
        genw1="7530",
        gwaerscew1="852",
        gwaerdatw1=date(2021, 6, 14),
        gexpdat=date(2025, 10, 6),
    )
    values.update(overrides)
    return BuildingMetadataRecord(**values)


def entrance_record(egid="150404", edid="0", **overrides):
    values = dict(
        id=EntranceRecord.derive_id(egid, edid),
        egid=egid,
        edid=edid,
        street_name="Bahnhofstrasse",
        entrance_number=str(10 + int(edid)),
        postal_code="8001",
        locality="Zürich",
        municipality="ZH",
    )
    values.update(overrides)
    return EntranceRecord(**values)


@pytest.fixture
def quiet_console():
    return Console(file=io.StringIO())


@pytest.fixture
async def engine():
    """Target store with all tables created."""
    engine = _memory_engine()
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def empty_engine():
    """Target store before any schema exists."""
    engine = _memory_engine()
    yield engine
    await engine.dispose()


@pytest.fixture
async def source_engine():
    """Registry export with three active buildings, one demolished and one planned."""
    engine = create_async_engine(MEMORY_URL, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(registry_metadata.create_all)
        await conn.execute(
            registry_building.insert(),
            [
                registry_building_row("150404"),
                registry_building_row(
                    "150405",
                    GWAERZH2=7410,
                    GENH2=7520,
                    GWAERSCEH2=869,
                    GWAERDATH2="2019-01-31",
                ),
                registry_building_row("150406", GSTAT="1004"),
                registry_building_row("150407", GSTAT=1007, GABBJ=2010),
                registry_building_row("150408", GSTAT=1001),
            ],
        )
        await conn.execute(
            registry_entrance.insert(),
            [
                registry_entrance_row("150404", "0"),
                registry_entrance_row("150404", "1"),
                registry_entrance_row("150405", "0"),
                registry_entrance_row("150406", "2"),
                registry_entrance_row("150407", "0"),
            ],
        )
    yield engine
    await engine.dispose()
