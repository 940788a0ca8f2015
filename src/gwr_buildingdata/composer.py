"""Assembly of nested building views from normalized metadata rows."""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .records import AddressMappingRecord, BuildingMetadataRecord, EntranceRecord
from .search_client import Place
from .status import translate_status

MappedEntrance = Tuple[AddressMappingRecord, Optional[EntranceRecord]]

COORDINATE_SYSTEM_LV95 = "LV95"
COORDINATE_SYSTEM_WGS84 = "WGS84"


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def _demolition_year(value: str) -> Optional[str]:
    value = (value or "").strip()
    if not value or value.strip("0") == "":
        return None
    return value


def _energy_entry(
    generator: str,
    source: str,
    information_source: str,
    updated: Optional[date],
    with_information_source: bool,
) -> Dict[str, Any]:
    entry: Dict[str, Any] = {"heatGenerator": generator, "energySource": source}
    if with_information_source:
        entry["informationSource"] = information_source or None
    entry["lastUpdated"] = _iso(updated)
    return entry


def _energy_slots(
    first: Tuple[str, str, str, Optional[date]],
    second: Tuple[str, str, str, Optional[date]],
    with_information_source: bool,
) -> List[Dict[str, Any]]:
    # The first slot is the registry's nominal primary system and is always
    # reported; the second only when a generator is recorded for it.
    entries = [_energy_entry(*first, with_information_source)]
    if second[0]:
        entries.append(_energy_entry(*second, with_information_source))
    return entries


def compose_energy_systems(
    metadata: BuildingMetadataRecord, with_information_source: bool = True
) -> Dict[str, Any]:
    m = metadata
    return {
        "referenceArea": m.gebf,
        "heating": _energy_slots(
            (m.gwaerzh1, m.genh1, m.gwaersceh1, m.gwaerdath1),
            (m.gwaerzh2, m.genh2, m.gwaersceh2, m.gwaerdath2),
            with_information_source,
        ),
        "hotWater": _energy_slots(
            (m.gwaerzw1, m.genw1, m.gwaerscew1, m.gwaerdatw1),
            (m.gwaerzw2, m.genw2, m.gwaerscew2, m.gwaerdatw2),
            with_information_source,
        ),
    }


def _entrance_coordinates(entrance: EntranceRecord) -> Optional[Dict[str, Any]]:
    if entrance.latitude is None or entrance.longitude is None:
        return None
    return {
        "latitude": entrance.latitude,
        "longitude": entrance.longitude,
        "system": COORDINATE_SYSTEM_WGS84,
    }


def compose_addresses(
    mappings: Iterable[MappedEntrance],
    current_entrance_id: Optional[uuid.UUID] = None,
) -> List[Dict[str, Any]]:
    """Address entries for every mapping whose entrance still resolves.

    With ``current_entrance_id`` the entries are the compact per-address form
    flagging the entrance being viewed.
    """
    addresses = []
    for mapping, entrance in mappings:
        if entrance is None:
            continue
        entry: Dict[str, Any] = {
            "entranceId": mapping.entrance_id,
            "streetAddress": entrance.street_address,
            "postalCode": entrance.postal_code,
            "locality": entrance.locality,
        }
        if current_entrance_id is None:
            entry["canton"] = entrance.municipality
        entry["isPrimary"] = mapping.is_primary_entrance
        if current_entrance_id is None:
            entry["coordinates"] = _entrance_coordinates(entrance)
        else:
            entry["isCurrentAddress"] = entrance.id == current_entrance_id
        addresses.append(entry)
    return addresses


def compose_building(
    metadata: BuildingMetadataRecord,
    mappings: Optional[Sequence[MappedEntrance]] = None,
) -> Dict[str, Any]:
    """Full view of a building with all its addresses."""
    m = metadata
    return {
        "egid": m.egid,
        "egrid": m.egrid,
        "status": translate_status(m.gstat).value,
        "construction": {
            "year": m.gbauj,
            "month": m.gbaum,
            "period": m.gbaup,
            "demolitionYear": _demolition_year(m.gabbj),
            "category": m.gkat,
            "class": m.gklas,
        },
        "physicalCharacteristics": {
            "area": m.garea,
            "volume": m.gvol,
            "volumeNorm": m.gvolnorm,
            "floors": m.gastw,
            "apartments": m.ganzwhg,
            "separateRooms": m.gazzi,
            "civilDefenseShelter": m.gschutzr == "1",
        },
        "energySystems": compose_energy_systems(m),
        "location": {
            "canton": m.gdekt,
            "municipalityCode": m.ggdenr,
            "municipalityName": m.ggdename,
            "coordinates": {
                "east": m.gkode,
                "north": m.gkodn,
                "system": COORDINATE_SYSTEM_LV95,
                "source": m.gksce,
            },
        },
        "property": {
            "egrid": m.egrid,
            "landRegistryDistrict": m.lgbkr,
            "plotNumber": m.lparz,
            "plotSuffix": m.lparzsx,
            "propertyType": m.ltyp,
        },
        "officialNumber": m.gebnr,
        "buildingName": m.gbez,
        "addresses": compose_addresses(mappings or []),
        "lastExport": _iso(m.gexpdat),
    }


def _compact_building(metadata: BuildingMetadataRecord) -> Dict[str, Any]:
    m = metadata
    return {
        "egid": m.egid,
        "egrid": m.egrid,
        "status": translate_status(m.gstat).value,
        "construction": {
            "year": m.gbauj,
            "month": m.gbaum,
            "category": m.gkat,
            "class": m.gklas,
            "period": m.gbaup,
        },
        "physicalCharacteristics": {
            "area": m.garea,
            "volume": m.gvol,
            "floors": m.gastw,
            "apartments": m.ganzwhg,
            "separateRooms": m.gazzi,
            "civilDefenseShelter": m.gschutzr == "1",
        },
        "energySystems": compose_energy_systems(m, with_information_source=False),
        "location": {
            "canton": m.gdekt,
            "municipalityCode": m.ggdenr,
            "municipalityName": m.ggdename,
            "coordinates": {
                "east": m.gkode,
                "north": m.gkodn,
                "system": COORDINATE_SYSTEM_LV95,
            },
        },
        "officialNumber": m.gebnr,
        "buildingName": m.gbez,
        "lastExport": _iso(m.gexpdat),
    }


def compose_address_view(
    entrance: EntranceRecord,
    metadata: Optional[BuildingMetadataRecord],
    mappings: Optional[Sequence[MappedEntrance]] = None,
) -> Dict[str, Any]:
    """View of one address with its building.

    ``mappings`` (all entrances of the building) adds an ``allEntrances`` list.
    """
    address = {
        "id": str(entrance.id),
        "streetAddress": entrance.street_address,
        "postalCode": entrance.postal_code,
        "locality": entrance.locality,
        "canton": entrance.municipality,
        "coordinates": _entrance_coordinates(entrance),
    }
    if metadata is None:
        return {
            "address": address,
            "building": None,
            "note": "No building metadata available for this address",
        }

    building = _compact_building(metadata)
    if mappings is not None:
        building["allEntrances"] = compose_addresses(
            mappings, current_entrance_id=entrance.id
        )
    return {"address": address, "building": building}


def compose_search_summary(
    metadata: BuildingMetadataRecord, place: Place
) -> Dict[str, Any]:
    """Summary of a building matched through an address search ``place``."""
    m = metadata
    return {
        "egid": m.egid,
        "status": translate_status(m.gstat).value,
        "matchedAddress": {
            "streetAddress": place.street_address,
            "postalCode": place.postal_code,
            "locality": place.locality,
            "canton": place.region,
        },
        "construction": {
            "year": m.gbauj,
            "month": m.gbaum,
            "category": m.gkat,
            "class": m.gklas,
        },
        "physicalCharacteristics": {
            "area": m.garea,
            "volume": m.gvol,
            "floors": m.gastw,
            "apartments": m.ganzwhg,
        },
        "energySystems": {
            "referenceArea": m.gebf,
            "heatingSystemCount": 2 if m.gwaerzh2 else 1,
            "hotWaterSystemCount": 2 if m.gwaerzw2 else 1,
            "primaryHeating": {
                "heatGenerator": m.gwaerzh1,
                "energySource": m.genh1,
            },
        },
        "location": {
            "canton": m.gdekt,
            "municipalityName": m.ggdename,
            "coordinates": {
                "latitude": place.latitude,
                "longitude": place.longitude,
            },
        },
    }
