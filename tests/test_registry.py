from datetime import date

from conftest import registry_building_row, registry_entrance_row

from gwr_buildingdata.records import EntranceRecord
from gwr_buildingdata.registry import (RegistryBuilding, RegistryEntrance,
                                       SourceRegistryReader, parse_registry_date)


def test_parse_registry_date_formats():
    assert parse_registry_date("2021-06-14") == date(2021, 6, 14)
    assert parse_registry_date("14.06.2021") == date(2021, 6, 14)
    assert parse_registry_date("03.04.2020") == date(2020, 4, 3)
    assert parse_registry_date("") is None
    assert parse_registry_date(None) is None
    assert parse_registry_date("not a date") is None


def test_registry_building_normalises_codes():
    building = RegistryBuilding.model_validate(
        registry_building_row("150404", GSTAT=1004, GKODE=2683000.0, GABBJ=None)
    )
    assert building.egid == "150404"
    assert building.gstat == "1004"
    assert building.gkode == "2683000"
    assert building.gabbj == ""
    assert building.gwaerdatw1 == date(2021, 6, 14)
    assert building.gwaerdath2 is None


def test_registry_building_to_record_copies_fields():
    building = RegistryBuilding.model_validate(registry_building_row("150404"))
    record = building.to_record()
    assert record.egid == "150404"
    assert record.gstat == "1004"
    assert record.ggdename == "Zürich"
    assert record.gschutzr == "1"
    assert record.gexpdat == date(2025, 10, 6)


def test_registry_entrance_to_record():
    entrance = RegistryEntrance.model_validate(
        {**registry_entrance_row("150404", "1"), "GDEKT": "ZH"}
    )
    record = entrance.to_record()
    assert record.id == EntranceRecord.derive_id("150404", "1")
    assert record.street_address == "Bahnhofstrasse 11"
    assert record.postal_code == "8001"
    assert record.municipality == "ZH"


async def test_reader_counts_only_existing_buildings(source_engine):
    reader = SourceRegistryReader(source_engine)
    assert await reader.count_active_buildings() == 3
    assert await reader.count_active_entrances() == 4


async def test_reader_pages_in_egid_order(source_engine):
    reader = SourceRegistryReader(source_engine)
    first = await reader.find_active_buildings(2, 0)
    second = await reader.find_active_buildings(2, 2)
    assert [b.egid for b in first] == ["150404", "150405"]
    assert [b.egid for b in second] == ["150406"]
    assert await reader.find_active_buildings(2, 4) == []


async def test_reader_find_building(source_engine):
    reader = SourceRegistryReader(source_engine)
    demolished = await reader.find_building("150407")
    assert demolished is not None
    assert demolished.gstat == "1007"
    assert await reader.find_building("999999") is None


async def test_reader_entrances_skip_inactive_buildings(source_engine):
    reader = SourceRegistryReader(source_engine)
    entrances = await reader.find_active_entrances(10, 0)
    assert [(e.egid, e.edid) for e in entrances] == [
        ("150404", "0"),
        ("150404", "1"),
        ("150405", "0"),
        ("150406", "2"),
    ]
    assert all(e.gdekt == "ZH" for e in entrances)
