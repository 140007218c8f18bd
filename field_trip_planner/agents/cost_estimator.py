"""Itemised trip cost model. Pure arithmetic, no provider calls."""
from __future__ import annotations

import math
from typing import Dict

from field_trip_planner.agents.foundation_agent import teacher_count
from field_trip_planner.schemas import CostBreakdown, PlannerRequest, Tier

RATES: Dict[str, float] = {
    "bus_capacity": 50,
    "bus_cost_per_km_per_bus": 1.1,
    "bus_local_km_per_day": 50,
    "flight_per_person": 150,
    "train_per_person": 60,
    "ferry_per_person": 80,
    "private_car_per_km": 0.30,
    "meals_per_person_per_day": 15,
    "entry_fee_per_student": 7,
    "teacher_discount": 0.5,
    "local_transport_per_person_per_day": 5,
    "activity_share_of_entry": 0.2,
    "contingency_share": 0.05,
}

ACCOMMODATION_PER_PERSON_NIGHT: Dict[str, float] = {
    "budget": 25,
    "balanced": 45,
    "premium": 80,
}


def _money(value: float) -> float:
    return round(value + 1e-9, 2)


def _transport(mode: str, people: int, distance_km: float, days: int) -> tuple[float, str]:
    if mode == "plane":
        rate = RATES["flight_per_person"]
        return people * rate, f"Flights for {people} pax @ ~{rate:g} EUR"
    if mode == "train":
        rate = RATES["train_per_person"]
        return people * rate, f"Trains for {people} pax @ ~{rate:g} EUR"
    if mode == "ferry":
        rate = RATES["ferry_per_person"]
        return people * rate, f"Ferry for {people} pax @ ~{rate:g} EUR"
    if mode == "private_car":
        rate = RATES["private_car_per_km"]
        return (
            distance_km * rate * 2,
            f"Private Car ~{distance_km:.0f} km (round-trip) @ {rate:.2f} EUR/km",
        )

    # bus and mixed: coaches cover the round trip plus local transfers at the destination
    buses = max(1, math.ceil(people / RATES["bus_capacity"]))
    total_km = distance_km * 2 + days * RATES["bus_local_km_per_day"]
    rate = RATES["bus_cost_per_km_per_bus"]
    return (
        buses * total_km * rate,
        f"{buses} bus(es) × ~{total_km:.0f} km (round-trip + local) × {rate:g} EUR/km",
    )


def estimate_costs(request: PlannerRequest, distance_km: float, days: int, tier: Tier) -> CostBreakdown:
    """Cost every line item for one tier; only accommodation depends on the tier."""
    students = request.num_students
    teachers = teacher_count(students, request.teachers)
    people = students + teachers

    transport_raw, transport_note = _transport(request.transport_pref, people, distance_km, days)

    accommodation_rate = ACCOMMODATION_PER_PERSON_NIGHT[tier]
    nights = max(0, days - 1)

    transport = _money(transport_raw)
    accommodation = _money(accommodation_rate * people * nights)
    meals = _money(RATES["meals_per_person_per_day"] * people * days)
    entry_fee = RATES["entry_fee_per_student"]
    entry_fees = _money(entry_fee * students + entry_fee * teachers * RATES["teacher_discount"])
    activity_fees = _money(entry_fees * RATES["activity_share_of_entry"])
    local_transport = _money(RATES["local_transport_per_person_per_day"] * people * days)
    contingency = _money((transport + accommodation + meals + entry_fees) * RATES["contingency_share"])

    total = _money(
        transport + accommodation + meals + entry_fees + activity_fees + local_transport + contingency
    )
    return CostBreakdown(
        transport=transport,
        accommodation=accommodation,
        meals=meals,
        entry_fees=entry_fees,
        activity_fees=activity_fees,
        local_transport=local_transport,
        contingency=contingency,
        total=total,
        per_student=_money(total / max(1, students)),
        transport_note=transport_note,
        accommodation_note=f"{nights} nights @ ~{accommodation_rate:g} EUR/person ({tier})",
        accommodation_rate_per_person=accommodation_rate,
    )
