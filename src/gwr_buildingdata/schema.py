"""SQLAlchemy table definitions for the building metadata target store."""

from __future__ import annotations

from typing import Tuple

from sqlalchemy import (Boolean, Column, Date, DateTime, Float, ForeignKey,
                        Index, MetaData, String, Table, UniqueConstraint,
                        Uuid, func)

metadata = MetaData()

# (column, width) for every registry string column copied into building_metadata.
METADATA_STRING_COLUMNS: Tuple[Tuple[str, int], ...] = (
    ("gdekt", 2),
    ("ggdenr", 4),
    ("ggdename", 40),
    ("egrid", 14),
    ("lgbkr", 4),
    ("lparz", 12),
    ("lparzsx", 12),
    ("ltyp", 4),
    ("gebnr", 12),
    ("gbez", 40),
    ("gkode", 11),
    ("gkodn", 11),
    ("gksce", 3),
    ("gstat", 4),
    ("gkat", 4),
    ("gklas", 4),
    ("gbauj", 4),
    ("gbaum", 2),
    ("gbaup", 4),
    ("gabbj", 4),
    ("garea", 5),
    ("gvol", 7),
    ("gvolnorm", 3),
    ("gvolsce", 3),
    ("gastw", 2),
    ("ganzwhg", 3),
    ("gazzi", 3),
    ("gschutzr", 1),
    ("gebf", 6),
    ("gwaerzh1", 4),
    ("genh1", 4),
    ("gwaersceh1", 3),
    ("gwaerzh2", 4),
    ("genh2", 4),
    ("gwaersceh2", 3),
    ("gwaerzw1", 4),
    ("genw1", 4),
    ("gwaerscew1", 3),
    ("gwaerzw2", 4),
    ("genw2", 4),
    ("gwaerscew2", 3),
)

METADATA_DATE_COLUMNS: Tuple[str, ...] = (
    "gwaerdath1",
    "gwaerdath2",
    "gwaerdatw1",
    "gwaerdatw2",
    "gexpdat",
)

building_metadata = Table(
    "building_metadata",
    metadata,
    Column("egid", String(9), primary_key=True),
    *(
        Column(name, String(width), nullable=False, default="")
        for name, width in METADATA_STRING_COLUMNS
    ),
    *(Column(name, Date, nullable=True) for name in METADATA_DATE_COLUMNS),
    Index("idx_building_metadata_egrid", "egrid"),
    Index("idx_building_metadata_municipality", "ggdenr"),
    Index("idx_building_metadata_canton", "gdekt"),
    Index("idx_building_metadata_status", "gstat"),
    Index("idx_building_metadata_category", "gkat"),
    Index("idx_building_metadata_construction_year", "gbauj"),
)

# Owned by the address subsystem; the entrance importer only keeps it in step
# with the registry export.
building_entrance = Table(
    "building_entrance",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("egid", String(9), nullable=False, index=True),
    Column("edid", String(2), nullable=False),
    Column("egaid", String(9), nullable=False, default=""),
    Column("street_name", String(60), nullable=False, default=""),
    Column("entrance_number", String(12), nullable=False, default=""),
    Column("postal_code", String(4), nullable=False, default=""),
    Column("locality", String(40), nullable=False, default=""),
    Column("municipality", String(2), nullable=False, default=""),
    Column("latitude", Float, nullable=True),
    Column("longitude", Float, nullable=True),
)

building_address_mapping = Table(
    "building_address_mapping",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column(
        "egid",
        String(9),
        ForeignKey("building_metadata.egid", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "building_entrance_id",
        Uuid,
        ForeignKey("building_entrance.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("entrance_id", String(2), nullable=False),
    Column("is_primary_entrance", Boolean, nullable=False, default=False),
    Column(
        "created_at",
        DateTime,
        nullable=False,
        server_default=func.current_timestamp(),
    ),
    UniqueConstraint(
        "egid", "building_entrance_id", name="idx_building_address_mapping_unique"
    ),
    Index("idx_building_address_mapping_egid", "egid"),
    Index("idx_building_address_mapping_entrance", "building_entrance_id"),
    Index("idx_building_address_mapping_primary", "is_primary_entrance"),
)

REQUIRED_TABLES: Tuple[str, ...] = (
    building_metadata.name,
    building_entrance.name,
    building_address_mapping.name,
)
