"""Points-of-interest aggregation across independent providers."""
from __future__ import annotations

from typing import List, Optional

from field_trip_planner.llm import PlaceDiscovery
from field_trip_planner.logs import get_logger
from field_trip_planner.schemas import GeoLocation, PointOfInterest, SourceProvider
from field_trip_planner.tools.geocoding import LocationResolver
from field_trip_planner.tools.poi_sources import PoiSource

logger = get_logger(__name__)

DEFAULT_LIMIT = 15
MIN_RESULTS = 2


class PoiAggregator:
    """Collect POIs near a location, deduplicated by exact label.

    Order: AI discovery (optional), the ratings-based source, then the
    supplementary sources only while fewer than ``min_results`` POIs exist.
    Provider failures contribute nothing and never stop collection.
    """

    def __init__(
        self,
        resolver: LocationResolver,
        rated_source: Optional[PoiSource] = None,
        supplementary_sources: Optional[List[PoiSource]] = None,
        discovery: Optional[PlaceDiscovery] = None,
    ):
        self.resolver = resolver
        self.rated_source = rated_source
        self.supplementary_sources = list(supplementary_sources or [])
        self.discovery = discovery

    async def collect(
        self,
        center: GeoLocation,
        radius_m: int,
        focus: str = "",
        use_ai: bool = False,
        *,
        limit: int = DEFAULT_LIMIT,
        min_results: int = MIN_RESULTS,
    ) -> List[PointOfInterest]:
        pois: List[PointOfInterest] = []

        if use_ai and self.discovery is not None and getattr(self.discovery, "available", True):
            _append_unique(pois, await self._discover(center, focus), limit)

        if len(pois) < limit and self.rated_source is not None:
            _append_unique(pois, await self._query(self.rated_source, center, radius_m, focus), limit)

        for source in self.supplementary_sources:
            if len(pois) >= min_results or len(pois) >= limit:
                break
            _append_unique(pois, await self._query(source, center, radius_m, focus), limit)

        logger.info("Collected %d POI(s) near %s", len(pois), center.name)
        return pois

    async def _query(
        self, source: PoiSource, center: GeoLocation, radius_m: int, focus: str
    ) -> List[PointOfInterest]:
        try:
            return await source.pois_near(center.lat, center.lng, radius_m, focus)
        except Exception:
            logger.warning("POI source %s failed near %s", source.name, center.name, exc_info=True)
            return []

    async def _discover(self, center: GeoLocation, focus: str) -> List[PointOfInterest]:
        city = center.name.split(",")[0].strip()
        prompt = (
            f"List notable educational sites in and around {city} suitable for a school group."
            f" Focus: {focus or 'general culture and history'}."
        )
        try:
            suggestions = await self.discovery.discover_places(prompt, center)
        except Exception:
            logger.warning("Place discovery failed near %s", center.name, exc_info=True)
            return []

        found: List[PointOfInterest] = []
        for item in suggestions:
            label = item.get("label")
            if not label:
                continue
            # Discovered places come without coordinates; an unlocatable place is dropped.
            location = await self.resolver.resolve(f"{label}, {city}")
            if location is None:
                logger.debug("Discarding discovered place '%s' (could not be located)", label)
                continue
            found.append(
                PointOfInterest(
                    label=label,
                    lat=location.lat,
                    lng=location.lng,
                    url=item.get("url"),
                    source=SourceProvider.AI_DISCOVERY,
                )
            )
        return found


def _append_unique(target: List[PointOfInterest], items: List[PointOfInterest], limit: int) -> None:
    labels = {poi.label for poi in target}
    for poi in items:
        if len(target) >= limit:
            return
        if poi.label in labels:
            continue
        labels.add(poi.label)
        target.append(poi)
