"""
Route distance/duration for an ordered list of stops.

The OpenRouteService directions API is the primary source. When it is not
configured, fails, or returns no distance, a great-circle estimate at an
assumed coach speed of 50 km/h is used so callers always get a RouteResult.
"""
from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

import httpx

from field_trip_planner.logs import get_logger
from field_trip_planner.schemas import GeoLocation, RouteResult

logger = get_logger(__name__)

_EARTH_RADIUS_M = 6371e3
FALLBACK_SPEED_KMH = 50.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in metres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lam = math.radians(lon2 - lon1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lam / 2) ** 2
    )
    return _EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def estimate_route(points: Sequence[GeoLocation]) -> RouteResult:
    """Straight-line route through ``points`` in order."""
    total = 0.0
    for prev, nxt in zip(points[:-1], points[1:]):
        total += haversine_m(prev.lat, prev.lng, nxt.lat, nxt.lng)
    return RouteResult(
        distance_m=total,
        duration_s=total / (FALLBACK_SPEED_KMH * 1000.0) * 3600.0,
        path=[(p.lat, p.lng) for p in points],
    )


class Router(Protocol):
    async def route(self, points: Sequence[GeoLocation]) -> Optional[RouteResult]:
        ...


class OrsRouter:
    """Driving directions from OpenRouteService (GeoJSON response)."""

    DIRECTIONS_ENDPOINT = "https://api.openrouteservice.org/v2/directions/driving-car/geojson"

    def __init__(self, api_key: Optional[str], *, timeout: float = 8.0):
        self.api_key = api_key
        self.timeout = timeout

    async def route(self, points: Sequence[GeoLocation]) -> Optional[RouteResult]:
        if not self.api_key:
            return None
        body = {"coordinates": [[p.lng, p.lat] for p in points]}
        headers = {"Authorization": self.api_key, "Content-Type": "application/json"}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(self.DIRECTIONS_ENDPOINT, json=body, headers=headers)
            response.raise_for_status()
            data = response.json()

        features: List[Dict[str, Any]] = data.get("features") or []
        if not features:
            return None
        feature = features[0]
        summary = (feature.get("properties") or {}).get("summary") or {}
        coords = (feature.get("geometry") or {}).get("coordinates") or []
        path: List[Tuple[float, float]] = [(c[1], c[0]) for c in coords]
        return RouteResult(
            distance_m=summary.get("distance"),
            duration_s=summary.get("duration"),
            path=path,
        )


class RouteCalculator:
    def __init__(self, router: Optional[Router] = None):
        self.router = router

    async def route(self, points: Sequence[GeoLocation]) -> RouteResult:
        if len(points) < 2:
            raise ValueError("A route needs an origin and at least one stop")

        result: Optional[RouteResult] = None
        if self.router is not None:
            try:
                result = await self.router.route(points)
            except Exception:
                logger.warning("Routing provider failed for %d points", len(points), exc_info=True)
                result = None

        if result is None or not result.distance_m:
            fallback = estimate_route(points)
            logger.info(
                "Using great-circle route estimate: %.1f km, %.1f h",
                (fallback.distance_m or 0.0) / 1000.0,
                (fallback.duration_s or 0.0) / 3600.0,
            )
            return fallback

        if result.duration_s is None:
            result = result.model_copy(
                update={"duration_s": result.distance_m / (FALLBACK_SPEED_KMH * 1000.0) * 3600.0}
            )
        if not result.path:
            result = result.model_copy(update={"path": [(p.lat, p.lng) for p in points]})
        return result
