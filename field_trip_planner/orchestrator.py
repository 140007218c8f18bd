# field_trip_planner/orchestrator.py
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

from field_trip_planner.agents.cost_estimator import estimate_costs
from field_trip_planner.agents.destination_scout import (
    DEFAULT_ORIGIN,
    Candidate,
    suggest_destinations,
)
from field_trip_planner.agents.foundation_agent import extract_foundation
from field_trip_planner.agents.itinerary_writer import (
    ItineraryWriter,
    fill_missing_days,
    find_description,
    template_itinerary,
)
from field_trip_planner.agents.poi_aggregator import PoiAggregator
from field_trip_planner.agents.reliability import dedupe_sources, score_sources
from field_trip_planner.config import Settings
from field_trip_planner.errors import InfeasibleTripError
from field_trip_planner.llm import OpenAIItineraryGenerator, OpenAIPlaceDiscovery, PlaceDiscovery
from field_trip_planner.logs import get_logger
from field_trip_planner.schemas import (
    TIERS,
    GeoLocation,
    ItineraryDay,
    PlannerRequest,
    PlannerResult,
    PointOfInterest,
    RouteResult,
    SourceLink,
    SourceProvider,
    Tier,
    TripPlan,
)
from field_trip_planner.tools.geocoding import GeoNamesGeocoder, LocationResolver, OrsGeocoder
from field_trip_planner.tools.poi_sources import OpenTripMapSource, OrsPoiSource, WikidataSource
from field_trip_planner.tools.routing import OrsRouter, RouteCalculator

logger = get_logger(__name__)

DRIVING_HOURS_PER_DAY = 9
ROUTE_POI_RADIUS_M = 5000
DESTINATION_POI_RADIUS_M = 8000
ROUTE_POI_LIMIT = 15
DESTINATION_POI_LIMIT = 10
DESTINATION_POI_MIN = 5
ROUTE_SOURCE_CAP = 8
DESTINATION_SOURCE_CAP = 6
DESTINATIONS_NEEDED = 3

FALLBACK_DESTINATION = GeoLocation(
    lat=DEFAULT_ORIGIN.lat,
    lng=DEFAULT_ORIGIN.lng,
    name="Sarajevo, BiH",
    source=SourceProvider.DEFAULT,
)


@dataclass
class PlannerServices:
    """Every external capability the planner talks to, injected at construction."""

    resolver: LocationResolver
    routes: RouteCalculator
    pois: PoiAggregator
    itineraries: ItineraryWriter
    discovery: Optional[PlaceDiscovery] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "PlannerServices":
        timeout = settings.http_timeout
        resolver = LocationResolver(
            [
                GeoNamesGeocoder(settings.geonames_user, timeout=timeout),
                OrsGeocoder(settings.ors_api_key, timeout=timeout),
            ]
        )
        discovery = OpenAIPlaceDiscovery(settings)
        return cls(
            resolver=resolver,
            routes=RouteCalculator(OrsRouter(settings.ors_api_key, timeout=timeout)),
            pois=PoiAggregator(
                resolver,
                rated_source=OpenTripMapSource(settings.opentripmap_api_key, timeout=timeout),
                supplementary_sources=[
                    WikidataSource(timeout=timeout),
                    OrsPoiSource(settings.ors_api_key, timeout=timeout),
                ],
                discovery=discovery,
            ),
            itineraries=ItineraryWriter(OpenAIItineraryGenerator(settings)),
            discovery=discovery,
        )


# The destination step picks exactly one of these and the tier step dispatches on it.
@dataclass
class SharedRoute:
    stops: List[GeoLocation]


@dataclass
class DistinctDestinations:
    candidates: List[Candidate] = field(default_factory=list)


DestinationPlan = Union[SharedRoute, DistinctDestinations]


@dataclass
class _TierInputs:
    tier: Tier
    destination: str
    stops: List[str]
    route: RouteResult
    pois: List[PointOfInterest]
    source_cap: int
    why: str


def check_feasibility(travel_time_h: float, days: int) -> None:
    """Raise when the round trip cannot be driven within the trip's daylight hours."""
    round_trip = travel_time_h * 2
    if round_trip > days * DRIVING_HOURS_PER_DAY:
        raise InfeasibleTripError(round_trip, days)


def build_sources(
    pois: Sequence[PointOfInterest],
    descriptions: Dict[str, str],
    origin: GeoLocation,
    cap: int,
) -> List[SourceLink]:
    links: List[SourceLink] = []
    for poi in pois[:ROUTE_POI_LIMIT]:
        description = find_description(poi.label, descriptions)
        if not poi.url and not description:
            continue
        links.append(
            SourceLink(
                url=poi.url,
                title=poi.label,
                source=poi.source,
                verified=bool(poi.url),
                description=description,
                lat=poi.lat,
                lng=poi.lng,
            )
        )
    links.append(
        SourceLink(
            url=origin.url,
            title=origin.name,
            source=origin.source,
            verified=bool(origin.url),
            description="Departure",
            lat=origin.lat,
            lng=origin.lng,
        )
    )
    return dedupe_sources(links)[:cap]


def _merge_pois(groups: Sequence[Sequence[PointOfInterest]], limit: int) -> List[PointOfInterest]:
    merged: List[PointOfInterest] = []
    seen: set[str] = set()
    for group in groups:
        for poi in group:
            if poi.label in seen:
                continue
            seen.add(poi.label)
            merged.append(poi)
    return merged[:limit]


def _pick_three(enriched: List[Tuple[GeoLocation, List[PointOfInterest]]]) -> List[Tuple[GeoLocation, List[PointOfInterest]]]:
    if not enriched:
        return [(FALLBACK_DESTINATION, [])] * DESTINATIONS_NEEDED
    if len(enriched) >= DESTINATIONS_NEEDED:
        return [enriched[0], enriched[len(enriched) // 2], enriched[-1]]
    chosen = list(enriched)
    while len(chosen) < DESTINATIONS_NEEDED:
        chosen.append(enriched[0])
    return chosen


class TripPlanner:
    """Run the planning pipeline: validate, resolve, then build one plan per tier."""

    def __init__(self, services: PlannerServices):
        self.services = services

    async def build_plans(self, request: PlannerRequest, skip_ai_providers: bool = False) -> PlannerResult:
        foundation = extract_foundation(request)
        days = foundation["dates"]["days"]
        use_providers = not skip_ai_providers
        logger.info(
            "Planning %d-day trip for %d students (%d teachers) from '%s' to %s by %s",
            days,
            foundation["party"]["students"],
            foundation["party"]["teachers"],
            foundation["origin"] or "default origin",
            ", ".join(foundation["destinations"]) or "suggested destinations",
            foundation["transport"],
        )

        origin = await self._resolve_origin(foundation["origin"])
        plan = await self._resolve_destinations(request, foundation["destinations"], origin, use_providers)

        if isinstance(plan, SharedRoute):
            tier_inputs = await self._shared_route_inputs(plan, request, origin, days, use_providers)
        else:
            tier_inputs = await self._distinct_destination_inputs(plan, request, origin, days, use_providers)

        plans = await self._assemble(tier_inputs, request, origin, days, use_providers)
        logger.info(
            "Assembled %d plan(s); totals %s",
            len(plans),
            ", ".join(f"{p.tier}={p.cost_breakdown.total:.2f}" for p in plans),
        )
        return PlannerResult(origin=origin, plans=plans)

    async def _resolve_origin(self, origin_text: str) -> GeoLocation:
        origin = await self.services.resolver.resolve(origin_text) if origin_text else None
        if origin is None:
            logger.info("Using default origin %s", DEFAULT_ORIGIN.name)
            return DEFAULT_ORIGIN
        return origin

    async def _resolve_destinations(
        self,
        request: PlannerRequest,
        destinations: List[str],
        origin: GeoLocation,
        use_providers: bool,
    ) -> DestinationPlan:
        if destinations:
            resolved = await asyncio.gather(*[self.services.resolver.resolve(d) for d in destinations])
            stops = [stop for stop in resolved if stop is not None]
            dropped = [d for d, stop in zip(destinations, resolved) if stop is None]
            if dropped:
                logger.warning("Dropping unresolvable destination(s): %s", ", ".join(dropped))
            if stops:
                return SharedRoute(stops=stops)
            logger.warning("No destination could be resolved; switching to destination suggestions")

        candidates = await suggest_destinations(
            request,
            origin,
            self.services.resolver,
            self.services.discovery,
            use_ai=use_providers,
        )
        return DistinctDestinations(candidates=candidates)

    async def _shared_route_inputs(
        self,
        plan: SharedRoute,
        request: PlannerRequest,
        origin: GeoLocation,
        days: int,
        use_providers: bool,
    ) -> List[_TierInputs]:
        route = await self.services.routes.route([origin, *plan.stops])
        check_feasibility((route.duration_s or 0.0) / 3600.0, days)

        pois: List[PointOfInterest] = []
        if use_providers:
            groups = await asyncio.gather(
                *[
                    self.services.pois.collect(stop, ROUTE_POI_RADIUS_M, request.focus, use_ai=True)
                    for stop in plan.stops
                ]
            )
            pois = _merge_pois(groups, ROUTE_POI_LIMIT)

        names = [stop.name for stop in plan.stops]
        destination = " -> ".join(names)
        return [
            _TierInputs(
                tier=tier,
                destination=destination,
                stops=names,
                route=route,
                pois=pois,
                source_cap=ROUTE_SOURCE_CAP,
                why=f"Multi-stop route fitting focus: {request.focus}.",
            )
            for tier in TIERS
        ]

    async def _distinct_destination_inputs(
        self,
        plan: DistinctDestinations,
        request: PlannerRequest,
        origin: GeoLocation,
        days: int,
        use_providers: bool,
    ) -> List[_TierInputs]:
        enriched: List[Tuple[GeoLocation, List[PointOfInterest]]] = []
        for candidate in plan.candidates:
            location = candidate.location
            if location is None:
                query = f"{candidate.city}, {candidate.country}" if candidate.country else candidate.city
                location = await self.services.resolver.resolve(query)
            if location is None:
                continue
            pois: List[PointOfInterest] = []
            if use_providers:
                pois = await self.services.pois.collect(
                    location,
                    DESTINATION_POI_RADIUS_M,
                    request.focus,
                    use_ai=False,
                    limit=DESTINATION_POI_LIMIT,
                    min_results=DESTINATION_POI_MIN,
                )
            enriched.append((location, pois))
            if len(enriched) >= DESTINATIONS_NEEDED:
                break

        inputs: List[_TierInputs] = []
        for tier, (location, pois) in zip(TIERS, _pick_three(enriched)):
            route = await self.services.routes.route([origin, location])
            check_feasibility((route.duration_s or 0.0) / 3600.0, days)
            inputs.append(
                _TierInputs(
                    tier=tier,
                    destination=location.name,
                    stops=[location.name],
                    route=route,
                    pois=pois,
                    source_cap=DESTINATION_SOURCE_CAP,
                    why=f"Fits focus: {request.focus}.",
                )
            )
        return inputs

    async def _assemble(
        self,
        tier_inputs: List[_TierInputs],
        request: PlannerRequest,
        origin: GeoLocation,
        days: int,
        use_providers: bool,
    ) -> List[TripPlan]:
        drafts = await asyncio.gather(
            *[
                self.services.itineraries.synthesize(
                    item.stops,
                    days,
                    request.grade_level,
                    request.focus,
                    item.tier,
                    origin.name,
                    (item.route.duration_s or 0.0) / 3600.0,
                    item.pois,
                    request.notes,
                    use_ai=use_providers,
                )
                for item in tier_inputs
            ]
        )

        plans: List[TripPlan] = []
        for item, (generated, descriptions) in zip(tier_inputs, drafts):
            distance_km = (item.route.distance_m or 0.0) / 1000.0
            travel_time_h = (item.route.duration_s or 0.0) / 3600.0
            cost = estimate_costs(request, distance_km, max(1, days), item.tier)

            fallback = template_itinerary(item.destination, days, item.pois, origin.name)
            itinerary: List[ItineraryDay] = fill_missing_days(generated, fallback, days) if generated else fallback
            if not generated:
                logger.info("Using template itinerary for %s (%s)", item.destination, item.tier)

            sources = build_sources(item.pois, descriptions, origin, item.source_cap)
            plans.append(
                TripPlan(
                    title=f"{item.destination} — {item.tier.capitalize()}",
                    tier=item.tier,
                    reliability=score_sources(sources),
                    destination=item.destination,
                    number_of_days=days,
                    itinerary=itinerary,
                    estimated_cost_per_student=f"{cost.per_student:.2f} EUR",
                    cost_breakdown=cost,
                    distance_km=round(distance_km, 2),
                    travel_time_h=round(travel_time_h, 2),
                    accompanying_teachers=request.teachers,
                    why=item.why,
                    sources=sources,
                    polyline=list(item.route.path),
                )
            )
        return plans


async def build_plans(
    request: PlannerRequest,
    skip_ai_providers: bool = False,
    settings: Optional[Settings] = None,
) -> PlannerResult:
    """Plan with providers wired from ``settings`` (or the environment)."""
    services = PlannerServices.from_settings(settings or Settings.from_env())
    return await TripPlanner(services).build_plans(request, skip_ai_providers)
