"""Sync of Swiss federal building registry (GWR) metadata and address mappings."""

from .composer import compose_address_view, compose_building
from .importer import EntranceImporter, MetadataImporter
from .mapping_builder import AddressMappingBuilder
from .queries import BuildingQueryService
from .stats import StatsAggregator
from .status import BuildingStatus, translate_status

__all__ = [
    "AddressMappingBuilder",
    "BuildingQueryService",
    "BuildingStatus",
    "EntranceImporter",
    "MetadataImporter",
    "StatsAggregator",
    "compose_address_view",
    "compose_building",
    "translate_status",
]
