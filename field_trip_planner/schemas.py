from enum import Enum
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

Tier = Literal["budget", "balanced", "premium"]
TIERS: Tuple[Tier, ...] = ("budget", "balanced", "premium")

TransportMode = Literal["bus", "plane", "train", "ferry", "private_car", "mixed"]


class SourceProvider(str, Enum):
    GEONAMES = "geonames"
    ORS = "ors"
    OPENTRIPMAP = "opentripmap"
    WIKIDATA = "wikidata"
    AI_DISCOVERY = "ai-discovery"
    DEFAULT = "default"
    INPUT = "input"
    CURATED = "curated"


# ------- Geographic models -------
class GeoLocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float
    name: str
    source: SourceProvider
    url: Optional[str] = None


class PointOfInterest(BaseModel):
    label: str
    lat: float
    lng: float
    url: Optional[str] = None
    source: SourceProvider


class RouteResult(BaseModel):
    distance_m: Optional[float] = None
    duration_s: Optional[float] = None
    path: List[Tuple[float, float]] = Field(default_factory=list)  # (lat, lng)


# ------- Request models -------
class PlannerRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    origin: str = ""
    destinations: List[str] = Field(default_factory=list)
    scope: Literal["specific", "regional"] = "specific"
    trip_type: str = "multi-day"
    grade_level: str = ""
    num_students: int = Field(20, ge=0)
    teachers: str = ""
    transport_pref: TransportMode = "bus"
    dep_date: str
    ret_date: str
    budget: str = ""
    focus: str = ""
    notes: str = ""

    @field_validator("transport_pref", mode="before")
    @classmethod
    def _alias_flight(cls, value):
        if isinstance(value, str) and value.strip().lower() == "flight":
            return "plane"
        return value


# ------- Response models -------
class CostBreakdown(BaseModel):
    transport: float
    accommodation: float
    meals: float
    entry_fees: float
    activity_fees: float
    local_transport: float
    contingency: float
    total: float
    per_student: float
    transport_note: str
    accommodation_note: str
    accommodation_rate_per_person: float


class ItineraryDay(BaseModel):
    day: int = Field(..., ge=1)
    activity: str
    poi_name: Optional[str] = None


class SourceLink(BaseModel):
    url: Optional[str] = None
    title: str
    source: SourceProvider
    verified: bool = False
    description: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None


class TripPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    tier: Tier
    reliability: int
    destination: str
    number_of_days: int
    itinerary: List[ItineraryDay] = Field(default_factory=list)
    estimated_cost_per_student: str
    cost_breakdown: CostBreakdown
    distance_km: float
    travel_time_h: float
    accompanying_teachers: str = ""
    why: str = ""
    sources: List[SourceLink] = Field(default_factory=list)
    polyline: List[Tuple[float, float]] = Field(default_factory=list)


class PlannerResult(BaseModel):
    origin: GeoLocation
    plans: List[TripPlan] = Field(default_factory=list)

