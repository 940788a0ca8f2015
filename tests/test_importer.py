from datetime import date

import pytest
from conftest import entrance_record, metadata_record
from sqlalchemy import select, update

from gwr_buildingdata.errors import InvalidInputError
from gwr_buildingdata.importer import EntranceImporter, MetadataImporter
from gwr_buildingdata.registry import SourceRegistryReader
from gwr_buildingdata.repositories import (AddressMappingRepository,
                                           BuildingEntranceRepository,
                                           BuildingMetadataRepository)
from gwr_buildingdata.schema import building_entrance, building_metadata


async def _all_rows(engine):
    async with engine.connect() as conn:
        result = await conn.execute(
            select(building_metadata).order_by(building_metadata.c.egid)
        )
        return [dict(row) for row in result.mappings()]


@pytest.fixture
def importer(source_engine, engine, quiet_console):
    return MetadataImporter(SourceRegistryReader(source_engine), engine, quiet_console)


@pytest.mark.parametrize("batch_size", [1, 2, 3, 1000])
async def test_import_writes_every_active_building(importer, engine, batch_size):
    count = await importer.import_metadata(batch_size=batch_size)

    assert count == 3
    assert [row["egid"] for row in await _all_rows(engine)] == [
        "150404",
        "150405",
        "150406",
    ]


async def test_import_copies_source_fields_verbatim(importer, source_engine, engine):
    await importer.import_metadata(batch_size=2)

    reader = SourceRegistryReader(source_engine)
    source = await reader.find_building("150405")
    async with engine.connect() as conn:
        stored = await BuildingMetadataRepository(conn).get_by_egid("150405")

    assert stored == source.to_record()
    assert stored.gstat == "1004"
    assert stored.gwaerzh2 == "7410"
    assert stored.gwaerdath2 == date(2019, 1, 31)


async def test_reimport_is_idempotent(importer, engine):
    await importer.import_metadata(batch_size=2)
    first = await _all_rows(engine)
    await importer.import_metadata(batch_size=2)

    assert await _all_rows(engine) == first


async def test_reimport_overwrites_changed_rows(importer, engine):
    async with engine.begin() as conn:
        await BuildingMetadataRepository(conn).upsert_many(
            [metadata_record("150404", ggdename="Stale")]
        )

    await importer.import_metadata()

    async with engine.connect() as conn:
        stored = await BuildingMetadataRepository(conn).get_by_egid("150404")
    assert stored.ggdename == "Zürich"


async def test_clear_existing_removes_mappings_before_metadata(importer, engine):
    async with engine.begin() as conn:
        await BuildingMetadataRepository(conn).upsert_many([metadata_record("999999")])
        entrance = entrance_record("999999", "0")
        await BuildingEntranceRepository(conn).upsert_many([entrance])
        await AddressMappingRepository(conn).create_mapping(
            "999999", entrance.id, "0", is_primary=True
        )

    count = await importer.import_metadata(clear_existing=True)

    assert count == 3
    async with engine.connect() as conn:
        assert await BuildingMetadataRepository(conn).get_by_egid("999999") is None
        assert await AddressMappingRepository(conn).count_total() == 0
        # entrances belong to the address subsystem and survive the wipe
        assert await BuildingEntranceRepository(conn).count_all() == 1


async def test_import_rejects_non_positive_batch_size(importer, engine):
    with pytest.raises(InvalidInputError):
        await importer.import_metadata(batch_size=0)
    assert await _all_rows(engine) == []


async def test_entrance_import(source_engine, engine, quiet_console):
    importer = EntranceImporter(SourceRegistryReader(source_engine), engine, quiet_console)

    assert await importer.import_entrances(batch_size=3) == 4
    assert await importer.import_entrances(batch_size=3) == 4

    async with engine.connect() as conn:
        repository = BuildingEntranceRepository(conn)
        assert await repository.count_all() == 4
        entrance = await repository.get(entrance_record("150404", "1").id)
    assert entrance.street_address == "Bahnhofstrasse 11"
    assert entrance.municipality == "ZH"


async def test_entrance_reimport_keeps_coordinates(source_engine, engine, quiet_console):
    importer = EntranceImporter(SourceRegistryReader(source_engine), engine, quiet_console)
    await importer.import_entrances()
    entrance_id = entrance_record("150404", "0").id
    async with engine.begin() as conn:
        await conn.execute(
            update(building_entrance)
            .where(building_entrance.c.id == entrance_id)
            .values(latitude=47.37, longitude=8.54, street_name="Old name")
        )

    await importer.import_entrances()

    async with engine.connect() as conn:
        entrance = await BuildingEntranceRepository(conn).get(entrance_id)
    assert (entrance.latitude, entrance.longitude) == (47.37, 8.54)
    assert entrance.street_name == "Bahnhofstrasse"
