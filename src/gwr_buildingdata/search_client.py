"""Async client for the external address search service."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Mapping, Optional, Protocol

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .models import SearchConfig

LOGGER = logging.getLogger("gwr.buildingdata.search")

RETRYABLE_STATUS = {408, 429}


class SearchClientError(Exception):
    """Raised when the address search service cannot fulfil a request."""


class PostalAddress(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    street_address: str = Field(default="", alias="streetAddress")
    postal_code: str = Field(default="", alias="postalCode")
    locality: str = Field(default="", alias="addressLocality")
    region: str = Field(default="", alias="addressRegion")

    @field_validator("*", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> str:
        return "" if value is None else str(value)


class GeoCoordinates(BaseModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class PlaceProperties(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    building_id: Optional[str] = Field(default=None, alias="buildingId")
    entrance_id: Optional[str] = Field(default=None, alias="entranceId")

    @field_validator("building_id", "entrance_id", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> Optional[str]:
        return None if value in (None, "") else str(value)


class Place(BaseModel):
    """A ranked search hit, as returned by the address search service."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    score: float = 0.0
    postal_address: PostalAddress = Field(
        default_factory=PostalAddress, alias="postalAddress"
    )
    geo: GeoCoordinates = Field(default_factory=GeoCoordinates)
    additional_property: PlaceProperties = Field(
        default_factory=PlaceProperties, alias="additionalProperty"
    )

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> str:
        return str(value)

    @property
    def street_address(self) -> str:
        return self.postal_address.street_address

    @property
    def postal_code(self) -> str:
        return self.postal_address.postal_code

    @property
    def locality(self) -> str:
        return self.postal_address.locality

    @property
    def region(self) -> str:
        return self.postal_address.region

    @property
    def latitude(self) -> Optional[float]:
        return self.geo.latitude

    @property
    def longitude(self) -> Optional[float]:
        return self.geo.longitude

    @property
    def building_id(self) -> Optional[str]:
        return self.additional_property.building_id


class PlaceSearcher(Protocol):
    async def search_places(self, query: str, limit: int) -> List[Place]: ...


class PlaceSearchClient:
    """Async HTTP client with retry and backoff logic for the address search service."""

    def __init__(
        self,
        config: SearchConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._url = f"{config.url.rstrip('/')}/{config.path.lstrip('/')}"
        self._client: Optional[httpx.AsyncClient] = None
        self._headers = {"Accept": "application/json"}

    async def __aenter__(self) -> "PlaceSearchClient":
        self._client = httpx.AsyncClient(
            timeout=self._config.timeout, transport=self._transport
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def search_places(self, query: str, limit: int) -> List[Place]:
        """Places matching ``query``, best match first."""
        payload = await self._get_json({"query": query, "limit": limit})
        places = []
        for item in self._extract_results(payload):
            # Hits come either bare or wrapped as {"score": .., "place": {..}}.
            data = dict(item.get("place", item))
            if "score" in item:
                data["score"] = item["score"]
            try:
                places.append(Place.model_validate(data))
            except ValidationError as exc:
                LOGGER.warning("Skipping malformed search result: %s", exc)
        return places

    async def _get_json(self, params: Mapping[str, Any]) -> Any:
        if self._client is None:
            raise RuntimeError("HTTP client is not ready")

        attempts = max(1, self._config.max_retries + 1)
        delay = self._config.backoff_factor
        for attempt in range(1, attempts + 1):
            try:
                response = await self._client.get(
                    self._url, headers=self._headers, params=params
                )
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as exc:
                status_code = exc.response.status_code
                retryable = status_code >= 500 or status_code in RETRYABLE_STATUS
                if not retryable or attempt == attempts:
                    LOGGER.error(
                        "HTTP %s from address search; response preview: %s",
                        status_code,
                        exc.response.text[:500],
                    )
                    raise SearchClientError(
                        f"HTTP {status_code} for {self._url}"
                    ) from exc
                reason = f"HTTP {status_code}"
            except httpx.RequestError as exc:
                if attempt == attempts:
                    raise SearchClientError(
                        f"Network error for {self._url}: {exc}"
                    ) from exc
                reason = str(exc)

            wait_time = min(delay, self._config.backoff_max)
            LOGGER.warning(
                "Address search failed (%s), attempt %s/%s. Retrying in %.1fs",
                reason,
                attempt,
                attempts,
                wait_time,
            )
            await asyncio.sleep(wait_time)
            delay *= 2

    @staticmethod
    def _extract_results(payload: Any) -> List[Mapping[str, Any]]:
        if isinstance(payload, Mapping):
            results = payload.get("results")
            if isinstance(results, list):
                return [item for item in results if isinstance(item, Mapping)]
        elif isinstance(payload, list):
            return [item for item in payload if isinstance(item, Mapping)]

        preview = str(payload)
        if len(preview) > 500:
            preview = preview[:500] + "..."
        raise SearchClientError(f"Address search returned unexpected payload: {preview}")
