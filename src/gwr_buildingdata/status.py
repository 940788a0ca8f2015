"""Translation of GWR building status codes (GSTAT) into status tags."""

from __future__ import annotations

from enum import Enum
from typing import Optional, Union


class BuildingStatus(str, Enum):
    PLANNED = "planned"
    APPROVED = "approved"
    UNDER_CONSTRUCTION = "under_construction"
    EXISTING = "existing"
    NOT_USABLE = "not_usable"
    DEMOLISHED = "demolished"
    NOT_BUILT = "not_built"
    UNKNOWN = "unknown"


STATUS_BY_CODE = {
    "1001": BuildingStatus.PLANNED,
    "1002": BuildingStatus.APPROVED,
    "1003": BuildingStatus.UNDER_CONSTRUCTION,
    "1004": BuildingStatus.EXISTING,
    "1005": BuildingStatus.NOT_USABLE,
    "1007": BuildingStatus.DEMOLISHED,
    "1008": BuildingStatus.NOT_BUILT,
}

EXISTING_STATUS_CODE = 1004


def translate_status(code: Optional[Union[str, int]]) -> BuildingStatus:
    """Map a raw GSTAT code to its status; anything unrecognised is UNKNOWN."""
    if code is None:
        return BuildingStatus.UNKNOWN
    return STATUS_BY_CODE.get(str(code).strip(), BuildingStatus.UNKNOWN)
