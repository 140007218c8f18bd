"""Day-by-day itinerary synthesis with a deterministic template fallback."""
from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

from field_trip_planner.llm import ItineraryGenerator
from field_trip_planner.logs import get_logger
from field_trip_planner.schemas import ItineraryDay, PointOfInterest

logger = get_logger(__name__)

TARGET_ARRIVAL_HOUR = 20
MAX_PROMPT_POIS = 15

ITINERARY_TEMPLATE = """Create a detailed, logistical and educational day-by-day itinerary for a {days}-day school trip.

ROUTE: {route}
(Visit these locations in order, starting from {origin} and ENDING back in {origin}.)

PARAMETERS:
- Grade level: {grade}
- Primary focus: {focus}
- Budget tier: {tier} (dining choices MUST match this tier)
- One-way return travel from the last stop: approx. {travel_hours} hour(s)
- Special notes/requirements: {notes}

CONTEXTUAL POIs (use them where they fit the stops):
{poi_context}

FORMAT RULES:
- For EVERY day give a chronological list of activity blocks, each starting with a time range like "09:00 AM - 12:00 PM".
- Day 1 starts with "08:00 AM - Departure from {origin}", then travel, arrival and an evening activity.
- Middle days: morning visit, lunch, afternoon visit and dinner. Lunch and dinner must name a real, specific restaurant suitable for students in the {tier} tier.
- Day {days} (last day): the group must be back in {origin} by about {arrival_hour}:00. With {travel_hours}h of travel the departure must be around {departure_hour:02d}:00. Do not plan a full sightseeing day if the return journey is long.
- No generic timings such as "Morning" and no generic venues such as "Local eatery".
- If special requirements are given, state explicitly how each day accommodates them.

ADDITIONAL TASK:
Write an engaging educational description (30-50 words) for each contextual POI listed above.
"""


def return_departure_hour(one_way_hours: float, arrival_hour: int = TARGET_ARRIVAL_HOUR) -> int:
    """Latest whole hour to leave the last stop and still arrive by ``arrival_hour``."""
    return max(0, arrival_hour - math.ceil(max(0.0, one_way_hours)))


def unique_pois(pois: Sequence[PointOfInterest], limit: int = MAX_PROMPT_POIS) -> List[PointOfInterest]:
    seen: set[str] = set()
    out: List[PointOfInterest] = []
    for poi in pois:
        if poi.label in seen:
            continue
        seen.add(poi.label)
        out.append(poi)
    return out[:limit]


def build_itinerary_prompt(
    stops: Sequence[str],
    days: int,
    grade_level: str,
    focus: str,
    tier: str,
    origin_name: str,
    one_way_hours: float,
    pois: Sequence[PointOfInterest],
    notes: str = "",
) -> str:
    poi_lines = [
        f"- {poi.label}" + (f" (URL: {poi.url})" if poi.url else "")
        for poi in unique_pois(pois)
    ]
    return ITINERARY_TEMPLATE.format(
        days=days,
        route=" -> ".join([origin_name, *stops]),
        origin=origin_name,
        grade=grade_level or "unspecified",
        focus=focus or "general education",
        tier=tier,
        travel_hours=math.ceil(max(0.0, one_way_hours)),
        notes=notes.strip() if notes and notes.strip() else "None",
        poi_context="\n".join(poi_lines) if poi_lines else "- none supplied",
        arrival_hour=TARGET_ARRIVAL_HOUR,
        departure_hour=return_departure_hour(one_way_hours),
    )


def parse_itinerary_payload(payload: Any) -> Tuple[List[ItineraryDay], Dict[str, str]]:
    """Validate raw generator output; anything malformed yields empty results."""
    if not isinstance(payload, dict):
        return [], {}
    raw_days = payload.get("itinerary")
    if not isinstance(raw_days, list):
        return [], {}

    days: List[ItineraryDay] = []
    for item in raw_days:
        if not isinstance(item, dict):
            return [], {}
        day = item.get("day")
        description = item.get("description")
        if isinstance(day, bool) or not isinstance(day, int) or day < 1:
            return [], {}
        if not isinstance(description, str) or not description.strip():
            return [], {}
        poi_name = item.get("poi_name")
        days.append(
            ItineraryDay(
                day=day,
                activity=description.strip(),
                poi_name=poi_name if isinstance(poi_name, str) and poi_name.strip() else None,
            )
        )
    days.sort(key=lambda d: d.day)

    descriptions: Dict[str, str] = {}
    for entry in payload.get("poi_descriptions") or []:
        if not isinstance(entry, dict):
            continue
        name, text = entry.get("name"), entry.get("description")
        if isinstance(name, str) and isinstance(text, str) and name.strip() and text.strip():
            descriptions[name.strip()] = text.strip()
    return days, descriptions


def template_itinerary(
    destination: str,
    days: int,
    pois: Sequence[PointOfInterest],
    origin_name: str,
) -> List[ItineraryDay]:
    """Deterministic plan: travel day, the top POIs, then reflection/free time."""
    days = max(1, days)
    ranked = unique_pois(pois)
    first = ranked[0] if ranked else None
    second = ranked[1] if len(ranked) > 1 else None

    if days == 1:
        target = first.label if first else f"the main sights of {destination}"
        return [
            ItineraryDay(
                day=1,
                activity=(
                    f"Morning departure from {origin_name} to {destination}. Guided visit to {target}, "
                    f"lunch break, and return to {origin_name} in the evening."
                ),
                poi_name=first.label if first else None,
            )
        ]

    out: List[ItineraryDay] = [
        ItineraryDay(
            day=1,
            activity=(
                f"Departure from {origin_name} and travel to {destination}. "
                "Check-in at the accommodation, short orientation walk and group dinner."
            ),
        )
    ]
    for day in range(2, days + 1):
        last = day == days
        if day == 2 and first is not None:
            activity = f"Guided educational visit to {first.label}, followed by a group workshop."
            poi_name: Optional[str] = first.label
        elif day == 2:
            activity = f"Guided city tour of {destination} with a local educator."
            poi_name = None
        elif day == 3 and second is not None:
            activity = f"Visit to {second.label} with a worksheet-based learning session."
            poi_name = second.label
        elif last:
            activity = f"Reflection session and free time in {destination}, then check-out."
            poi_name = None
        else:
            activity = f"Free time in {destination} and an evening reflection on the day's learning goals."
            poi_name = None
        if last:
            activity = f"{activity} Return journey to {origin_name}."
        out.append(ItineraryDay(day=day, activity=activity, poi_name=poi_name))
    return out


def fill_missing_days(generated: Sequence[ItineraryDay], fallback: Sequence[ItineraryDay], days: int) -> List[ItineraryDay]:
    """One entry per trip day: generated entries first, template entries for any gaps."""
    by_day: Dict[int, ItineraryDay] = {}
    for entry in generated:
        if 1 <= entry.day <= days and entry.day not in by_day:
            by_day[entry.day] = entry
    fallback_by_day = {entry.day: entry for entry in fallback}
    return [by_day.get(day) or fallback_by_day[day] for day in range(1, days + 1)]


def find_description(label: str, descriptions: Dict[str, str]) -> Optional[str]:
    """Exact label match first, then either name containing the other."""
    if label in descriptions:
        return descriptions[label]
    for name, text in descriptions.items():
        if name in label or label in name:
            return text
    return None


class ItineraryWriter:
    def __init__(self, generator: Optional[ItineraryGenerator] = None):
        self.generator = generator

    async def synthesize(
        self,
        stops: Sequence[str],
        days: int,
        grade_level: str,
        focus: str,
        tier: str,
        origin_name: str,
        one_way_hours: float,
        pois: Sequence[PointOfInterest],
        notes: str = "",
        use_ai: bool = True,
    ) -> Tuple[List[ItineraryDay], Dict[str, str]]:
        """Ask the generator for an itinerary; empty results tell the caller to fall back."""
        if not use_ai or self.generator is None or not getattr(self.generator, "available", True):
            return [], {}

        prompt = build_itinerary_prompt(
            stops, days, grade_level, focus, tier, origin_name, one_way_hours, pois, notes
        )
        try:
            payload = await self.generator.generate_itinerary(prompt)
        except Exception:
            logger.warning("Itinerary generation failed for %s (%s)", " -> ".join(stops), tier, exc_info=True)
            return [], {}

        itinerary, descriptions = parse_itinerary_payload(payload)
        if not itinerary:
            logger.warning("Itinerary generator returned no usable days for %s (%s)", " -> ".join(stops), tier)
            return [], {}
        logger.info(
            "Generated %d itinerary day(s) and %d POI description(s) for %s tier",
            len(itinerary),
            len(descriptions),
            tier,
        )
        return itinerary, descriptions
