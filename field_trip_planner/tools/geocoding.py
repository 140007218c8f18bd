"""Free-text place resolution backed by a ranked list of geocoders."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx

from field_trip_planner.logs import get_logger
from field_trip_planner.schemas import GeoLocation, SourceProvider

logger = get_logger(__name__)


class Geocoder(Protocol):
    name: str

    async def geocode(self, query: str) -> Optional[GeoLocation]:
        ...


class GeoNamesGeocoder:
    """Structured gazetteer lookup against the GeoNames search API."""

    name = "geonames"
    SEARCH_ENDPOINT = "https://secure.geonames.org/searchJSON"

    def __init__(self, username: Optional[str], *, timeout: float = 8.0):
        self.username = username
        self.timeout = timeout

    async def geocode(self, query: str) -> Optional[GeoLocation]:
        if not self.username:
            return None
        params = {"q": query, "maxRows": 1, "username": self.username}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(self.SEARCH_ENDPOINT, params=params)
            response.raise_for_status()
            data = response.json()

        entries: List[Dict[str, Any]] = data.get("geonames") or []
        if not entries:
            return None
        first = entries[0]
        name = first.get("name") or query
        if first.get("adminName1"):
            name = f"{name}, {first['adminName1']}"
        return GeoLocation(
            lat=float(first["lat"]),
            lng=float(first["lng"]),
            name=name,
            source=SourceProvider.GEONAMES,
            url=f"https://www.geonames.org/{first['geonameId']}" if first.get("geonameId") else None,
        )


class OrsGeocoder:
    """OpenRouteService (Pelias) geocoding search."""

    name = "ors"
    SEARCH_ENDPOINT = "https://api.openrouteservice.org/geocode/search"

    def __init__(self, api_key: Optional[str], *, timeout: float = 8.0):
        self.api_key = api_key
        self.timeout = timeout

    async def geocode(self, query: str) -> Optional[GeoLocation]:
        if not self.api_key:
            return None
        params = {"api_key": self.api_key, "text": query, "size": 1}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(self.SEARCH_ENDPOINT, params=params)
            response.raise_for_status()
            data = response.json()

        features: List[Dict[str, Any]] = data.get("features") or []
        if not features:
            return None
        feature = features[0]
        lon, lat = feature["geometry"]["coordinates"][:2]
        props = feature.get("properties") or {}
        return GeoLocation(
            lat=float(lat),
            lng=float(lon),
            name=props.get("label") or feature.get("text") or query,
            source=SourceProvider.ORS,
            url=props.get("website") or None,
        )


class LocationResolver:
    """Try each geocoder in priority order and return the first hit.

    Results are never merged across providers. A provider that raises is
    treated exactly like one that found nothing, so ``resolve`` never raises.
    """

    def __init__(self, geocoders: Sequence[Geocoder]):
        self.geocoders = list(geocoders)

    async def resolve(self, query: str) -> Optional[GeoLocation]:
        text = (query or "").strip()
        if not text:
            return None
        for geocoder in self.geocoders:
            try:
                location = await geocoder.geocode(text)
            except Exception:
                logger.warning("Geocoder %s failed for '%s'", geocoder.name, text, exc_info=True)
                continue
            if location is not None:
                logger.debug("Resolved '%s' via %s to %s", text, geocoder.name, location.name)
                return location
        logger.info("No geocoder could resolve '%s'", text)
        return None
