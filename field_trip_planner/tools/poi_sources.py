"""Points-of-interest providers queried around a coordinate."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

import httpx

from field_trip_planner.schemas import PointOfInterest, SourceProvider

USER_AGENT = "field-trip-planner/1.0"


class PoiSource(Protocol):
    name: str

    async def pois_near(self, lat: float, lng: float, radius_m: int, focus: str = "") -> List[PointOfInterest]:
        ...


class OpenTripMapSource:
    """Ratings-filtered places from OpenTripMap."""

    name = "opentripmap"
    RADIUS_ENDPOINT = "https://api.opentripmap.com/0.1/en/places/radius"

    def __init__(self, api_key: Optional[str], *, timeout: float = 8.0, limit: int = 15):
        self.api_key = api_key
        self.timeout = timeout
        self.limit = limit

    async def pois_near(self, lat: float, lng: float, radius_m: int, focus: str = "") -> List[PointOfInterest]:
        if not self.api_key:
            return []
        params = {
            "radius": radius_m,
            "lon": lng,
            "lat": lat,
            "kinds": "interesting_places",
            "rate": "2",
            "format": "json",
            "limit": self.limit,
            "apikey": self.api_key,
        }
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(self.RADIUS_ENDPOINT, params=params)
            response.raise_for_status()
            data = response.json()

        pois: List[PointOfInterest] = []
        for item in data or []:
            label = (item.get("name") or "").strip()
            point = item.get("point") or {}
            if not label or "lat" not in point or "lon" not in point:
                continue
            pois.append(
                PointOfInterest(
                    label=label,
                    lat=float(point["lat"]),
                    lng=float(point["lon"]),
                    url=f"https://opentripmap.com/en/card/{item['xid']}" if item.get("xid") else None,
                    source=SourceProvider.OPENTRIPMAP,
                )
            )
        return pois


def wikidata_category(focus: str) -> str:
    """Map the free-text trip focus onto a Wikidata class id."""
    lower = (focus or "").lower()
    category = "Q3350036"  # museum
    if "science" in lower or "nauka" in lower or "education" in lower:
        category = "Q201184"
    if "park" in lower or "zabava" in lower:
        category = "Q7889"
    return category


class WikidataSource:
    """Knowledge-graph lookup of sites of a focus-dependent category."""

    name = "wikidata"
    SPARQL_ENDPOINT = "https://query.wikidata.org/sparql"

    def __init__(self, *, timeout: float = 8.0, max_radius_km: float = 15.0):
        self.timeout = timeout
        self.max_radius_km = max_radius_km

    def build_query(self, lat: float, lng: float, radius_km: float, focus: str) -> str:
        return f"""
SELECT ?item ?itemLabel ?coord ?site WHERE {{
  SERVICE wikibase:box {{ ?item wdt:P625 ?coord . bd:serviceParam wikibase:center "Point({lng} {lat})"^^geo:wktLiteral . bd:serviceParam wikibase:radius "{radius_km:g}" . }}
  ?item wdt:P31/wdt:P279* wd:{wikidata_category(focus)}.
  OPTIONAL {{ ?item wdt:P856 ?site. }}
  SERVICE wikibase:label {{ bd:serviceParam wikibase:language "[AUTO_LANGUAGE],en,bs,de,it" }}
}} LIMIT 50
"""

    async def pois_near(self, lat: float, lng: float, radius_m: int, focus: str = "") -> List[PointOfInterest]:
        radius_km = min(self.max_radius_km, radius_m * 2 / 1000.0)
        params = {"format": "json", "query": self.build_query(lat, lng, radius_km, focus)}
        headers = {"Accept": "application/sparql-results+json", "User-Agent": USER_AGENT}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(self.SPARQL_ENDPOINT, params=params, headers=headers)
            response.raise_for_status()
            data = response.json()

        bindings: List[Dict[str, Any]] = (data.get("results") or {}).get("bindings") or []
        pois: List[PointOfInterest] = []
        for binding in bindings:
            coord = (binding.get("coord") or {}).get("value", "")
            label = (binding.get("itemLabel") or {}).get("value", "").strip()
            parts = coord.replace("Point(", "").replace(")", "").split()
            if not label or len(parts) != 2:
                continue
            site = (binding.get("site") or {}).get("value")
            pois.append(
                PointOfInterest(
                    label=label,
                    lat=float(parts[1]),
                    lng=float(parts[0]),
                    url=site or None,
                    source=SourceProvider.WIKIDATA,
                )
            )
        return pois


class OrsPoiSource:
    """Museums inside a bounding box via the OpenRouteService POI endpoint."""

    name = "ors"
    POIS_ENDPOINT = "https://api.openrouteservice.org/pois"

    def __init__(self, api_key: Optional[str], *, timeout: float = 8.0):
        self.api_key = api_key
        self.timeout = timeout

    @staticmethod
    def build_body(lat: float, lng: float, radius_m: int) -> Dict[str, Any]:
        deg = radius_m / 111320
        west, south, east, north = lng - deg, lat - deg, lng + deg, lat + deg
        ring = [[west, south], [east, south], [east, north], [west, north], [west, south]]
        return {
            "request": "pois",
            "geometry": {
                "bbox": [[west, south], [east, north]],
                "geojson": {"type": "Polygon", "coordinates": [ring]},
            },
            "filters": {"osm_tags": {"tourism": "museum"}},
            "size": 50,
        }

    async def pois_near(self, lat: float, lng: float, radius_m: int, focus: str = "") -> List[PointOfInterest]:
        if not self.api_key:
            return []
        headers = {"Authorization": self.api_key, "Content-Type": "application/json"}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(self.POIS_ENDPOINT, json=self.build_body(lat, lng, radius_m), headers=headers)
            response.raise_for_status()
            data = response.json()

        pois: List[PointOfInterest] = []
        for feature in data.get("features") or []:
            coords = (feature.get("geometry") or {}).get("coordinates") or []
            if len(coords) < 2:
                continue
            props = feature.get("properties") or {}
            tags = props.get("osm_tags") or props.get("tags") or {}
            label = props.get("name") or tags.get("name") or props.get("type") or "POI"
            pois.append(
                PointOfInterest(
                    label=label,
                    lat=float(coords[1]),
                    lng=float(coords[0]),
                    url=props.get("website") or tags.get("website") or props.get("url") or None,
                    source=SourceProvider.ORS,
                )
            )
        return pois
