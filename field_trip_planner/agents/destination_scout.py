"""Destination scouting when the request names no destinations."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from field_trip_planner.llm import PlaceDiscovery
from field_trip_planner.logs import get_logger
from field_trip_planner.schemas import GeoLocation, PlannerRequest, SourceProvider
from field_trip_planner.tools.geocoding import LocationResolver

logger = get_logger(__name__)

MAX_SUGGESTIONS = 4
MAX_CURATED = 12

DEFAULT_ORIGIN = GeoLocation(
    lat=43.8563,
    lng=18.4131,
    name="IDSS Sarajevo",
    source=SourceProvider.DEFAULT,
    url=None,
)

# Well-known school-trip cities, grouped by country, with city-centre coordinates.
CURATED_CITIES: Dict[str, List[Tuple[str, float, float]]] = {
    "Bosnia and Herzegovina": [
        ("Sarajevo", 43.8563, 18.4131),
        ("Mostar", 43.3438, 17.8078),
        ("Tuzla", 44.5384, 18.6763),
    ],
    "Croatia": [
        ("Zagreb", 45.8150, 15.9819),
        ("Split", 43.5081, 16.4402),
        ("Dubrovnik", 42.6507, 18.0944),
    ],
    "Serbia": [
        ("Belgrade", 44.7866, 20.4489),
        ("Novi Sad", 45.2671, 19.8335),
        ("Niš", 43.3209, 21.8958),
    ],
    "Austria": [
        ("Vienna", 48.2082, 16.3738),
        ("Salzburg", 47.8095, 13.0550),
        ("Innsbruck", 47.2692, 11.4041),
    ],
    "Germany": [
        ("Berlin", 52.5200, 13.4050),
        ("Munich", 48.1351, 11.5820),
        ("Hamburg", 53.5511, 9.9937),
    ],
    "Italy": [
        ("Venice", 45.4408, 12.3155),
        ("Florence", 43.7696, 11.2558),
        ("Rome", 41.9028, 12.4964),
    ],
    "Hungary": [
        ("Budapest", 47.4979, 19.0402),
        ("Szeged", 46.2530, 20.1414),
        ("Pecs", 46.0727, 18.2323),
    ],
}


@dataclass
class Candidate:
    city: str
    country: Optional[str] = None
    location: Optional[GeoLocation] = None


def curated_candidates(limit: int = MAX_CURATED) -> List[Candidate]:
    candidates: List[Candidate] = []
    for country, cities in CURATED_CITIES.items():
        for city, lat, lng in cities:
            candidates.append(
                Candidate(
                    city=city,
                    country=country,
                    location=GeoLocation(lat=lat, lng=lng, name=city, source=SourceProvider.CURATED),
                )
            )
    return candidates[:limit]


def suggestion_prompt(request: PlannerRequest, origin: GeoLocation) -> str:
    return (
        f"Suggest 3 distinct and best cities/regions for a {request.trip_type} field trip for grade "
        f"{request.grade_level or 'unspecified'} students. Focus: {request.focus or 'general education'}. "
        f"Scope: {request.scope}. Origin: {origin.name}."
    )


async def suggest_destinations(
    request: PlannerRequest,
    origin: GeoLocation,
    resolver: LocationResolver,
    discovery: Optional[PlaceDiscovery] = None,
    *,
    use_ai: bool = True,
) -> List[Candidate]:
    """Return destination candidates, falling back to the curated list.

    AI suggestions are capped at four, each re-resolved to coordinates and
    deduplicated by resolved name. When none survive, the curated list is used.
    """
    candidates: List[Candidate] = []
    if use_ai and discovery is not None and getattr(discovery, "available", True):
        try:
            suggestions = await discovery.discover_places(suggestion_prompt(request, origin), origin)
        except Exception:
            logger.warning("Destination suggestion failed", exc_info=True)
            suggestions = []

        for item in suggestions[:MAX_SUGGESTIONS]:
            label = item.get("label")
            if not label:
                continue
            location = await resolver.resolve(label)
            if location is None:
                continue
            if any(c.city == location.name for c in candidates):
                continue
            candidates.append(Candidate(city=location.name, location=location))
        logger.info("Resolved %d suggested destination(s)", len(candidates))

    if not candidates:
        logger.warning("No usable destination suggestions; using curated city list")
        candidates = curated_candidates()
    return candidates
