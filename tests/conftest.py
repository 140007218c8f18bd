from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Tuple

import pytest

from field_trip_planner.agents.itinerary_writer import ItineraryWriter
from field_trip_planner.agents.poi_aggregator import PoiAggregator
from field_trip_planner.orchestrator import PlannerServices, TripPlanner
from field_trip_planner.schemas import GeoLocation, PointOfInterest, SourceProvider
from field_trip_planner.tools.geocoding import LocationResolver
from field_trip_planner.tools.routing import RouteCalculator

CITY_COORDS: Dict[str, Tuple[float, float]] = {
    "Zagreb": (45.8150, 15.9819),
    "Trieste": (45.6495, 13.7768),
    "Berlin": (52.5200, 13.4050),
    "Mostar": (43.3438, 17.8078),
    "Split": (43.5081, 16.4402),
}


class StaticGeocoder:
    """Offline gazetteer keyed by exact query text."""

    def __init__(self, places: Optional[Dict[str, Tuple[float, float]]] = None, name: str = "static"):
        self.places = dict(CITY_COORDS if places is None else places)
        self.name = name
        self.calls: List[str] = []

    async def geocode(self, query: str) -> Optional[GeoLocation]:
        self.calls.append(query)
        coords = self.places.get(query)
        if coords is None:
            return None
        return GeoLocation(
            lat=coords[0],
            lng=coords[1],
            name=query,
            source=SourceProvider.GEONAMES,
            url=f"https://www.geonames.org/{query.lower()}",
        )


class FailingGeocoder:
    name = "failing"

    def __init__(self):
        self.calls: List[str] = []

    async def geocode(self, query: str) -> Optional[GeoLocation]:
        self.calls.append(query)
        raise RuntimeError("geocoder offline")


class FailingRouter:
    async def route(self, points):
        raise RuntimeError("router offline")


class FakePoiSource:
    def __init__(self, pois: Optional[List[PointOfInterest]] = None, *, name: str = "fake", error: bool = False):
        self.pois = list(pois or [])
        self.name = name
        self.error = error
        self.calls: List[Tuple[float, float, int, str]] = []

    async def pois_near(self, lat: float, lng: float, radius_m: int, focus: str = "") -> List[PointOfInterest]:
        self.calls.append((lat, lng, radius_m, focus))
        if self.error:
            raise RuntimeError(f"{self.name} offline")
        return list(self.pois)


class FakeDiscovery:
    available = True

    def __init__(self, places: Optional[List[Dict[str, Optional[str]]]] = None, *, error: bool = False):
        self.places = list(places or [])
        self.error = error
        self.prompts: List[str] = []

    async def discover_places(self, prompt: str, anchor: GeoLocation, limit: int = 8):
        self.prompts.append(prompt)
        if self.error:
            raise RuntimeError("discovery offline")
        return list(self.places)


class FakeGenerator:
    available = True

    def __init__(self, payload: Any = None, *, error: bool = False):
        self.payload = payload
        self.error = error
        self.prompts: List[str] = []

    async def generate_itinerary(self, prompt: str) -> Dict[str, Any]:
        self.prompts.append(prompt)
        if self.error:
            raise RuntimeError("generator offline")
        return self.payload


def make_poi(label: str, url: Optional[str] = None, source: SourceProvider = SourceProvider.OPENTRIPMAP) -> PointOfInterest:
    return PointOfInterest(label=label, lat=45.0, lng=15.0, url=url, source=source)


def build_planner(
    *,
    geocoders=None,
    router=None,
    rated=None,
    supplementary=None,
    discovery=None,
    generator=None,
) -> TripPlanner:
    resolver = LocationResolver(geocoders if geocoders is not None else [StaticGeocoder()])
    services = PlannerServices(
        resolver=resolver,
        routes=RouteCalculator(router if router is not None else FailingRouter()),
        pois=PoiAggregator(
            resolver,
            rated_source=rated,
            supplementary_sources=supplementary or [],
            discovery=discovery,
        ),
        itineraries=ItineraryWriter(generator),
        discovery=discovery,
    )
    return TripPlanner(services)


@pytest.fixture
def fakes():
    return SimpleNamespace(
        StaticGeocoder=StaticGeocoder,
        FailingGeocoder=FailingGeocoder,
        FailingRouter=FailingRouter,
        FakePoiSource=FakePoiSource,
        FakeDiscovery=FakeDiscovery,
        FakeGenerator=FakeGenerator,
        make_poi=make_poi,
        build_planner=build_planner,
    )
