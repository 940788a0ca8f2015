"""Immutable value records for rows of the target store."""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, fields
from datetime import date, datetime
from typing import Any, Mapping, Optional

ENTRANCE_NAMESPACE = uuid.UUID("6f1c1f3e-9b0e-4c55-8a51-2d4f0c6b7a10")


@dataclass(frozen=True)
class BuildingMetadataRecord:
    egid: str
    # identity / location
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
    # status / classification
    gstat: str = ""
    gkat: str = ""
    gklas: str = ""
    # construction
    gbauj: str = ""
    gbaum: str = ""
    gbaup: str = ""
    gabbj: str = ""
    # physical
    garea: str = ""
    gvol: str = ""
    gvolnorm: str = ""
    gvolsce: str = ""
    gastw: str = ""
    ganzwhg: str = ""
    gazzi: str = ""
    gschutzr: str = ""
    gebf: str = ""
    # energy: heating 1/2, hot water 1/2
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
    # bookkeeping
    gexpdat: Optional[date] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "BuildingMetadataRecord":
        return cls(**{f.name: row[f.name] for f in fields(cls)})

    def as_row(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class EntranceRecord:
    id: uuid.UUID
    egid: str
    edid: str
    egaid: str = ""
    street_name: str = ""
    entrance_number: str = ""
    postal_code: str = ""
    locality: str = ""
    municipality: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @staticmethod
    def derive_id(egid: str, edid: str) -> uuid.UUID:
        """Stable entrance id so re-imports of the same entrance upsert."""
        return uuid.uuid5(ENTRANCE_NAMESPACE, f"{egid}:{edid}")

    @property
    def street_address(self) -> str:
        return f"{self.street_name} {self.entrance_number}".strip()

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "EntranceRecord":
        return cls(**{f.name: row[f.name] for f in fields(cls)})

    def as_row(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AddressMappingRecord:
    id: uuid.UUID
    egid: str
    building_entrance_id: uuid.UUID
    entrance_id: str
    is_primary_entrance: bool = False
    created_at: Optional[datetime] = None

    @classmethod
    def new(
        cls,
        egid: str,
        building_entrance_id: uuid.UUID,
        entrance_id: str,
        is_primary: bool = False,
    ) -> "AddressMappingRecord":
        return cls(
            id=uuid.uuid4(),
            egid=egid,
            building_entrance_id=building_entrance_id,
            entrance_id=entrance_id,
            is_primary_entrance=is_primary,
            created_at=datetime.now(),
        )

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "AddressMappingRecord":
        return cls(**{f.name: row[f.name] for f in fields(cls)})

    def as_row(self) -> dict[str, Any]:
        return asdict(self)
