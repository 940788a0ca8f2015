from __future__ import annotations


class BuildingDataError(Exception):
    """Base exception for building metadata operations."""


class NotFoundError(BuildingDataError):
    """Raised when a building, property or address has no matching record."""


class MappingNotFoundError(NotFoundError):
    """Raised when an entrance is not mapped to the given building."""


class InvalidInputError(BuildingDataError):
    """Raised for malformed identifiers or out-of-range parameters."""


class StoreNotInitializedError(BuildingDataError):
    """Raised when the building metadata tables have not been created or populated."""

    guidance = "Building metadata tables not yet populated. Run: python -m gwr_buildingdata import"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.guidance)
