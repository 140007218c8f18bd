import pytest

from field_trip_planner.agents.cost_estimator import estimate_costs
from field_trip_planner.schemas import TIERS, PlannerRequest

LINE_ITEMS = (
    "transport",
    "accommodation",
    "meals",
    "entry_fees",
    "activity_fees",
    "local_transport",
    "contingency",
)


def _request(**overrides) -> PlannerRequest:
    payload = {
        "num_students": 14,
        "transport_pref": "bus",
        "dep_date": "2025-05-12",
        "ret_date": "2025-05-16",
    }
    payload.update(overrides)
    return PlannerRequest(**payload)


@pytest.mark.parametrize("mode", ["bus", "plane", "train", "ferry", "private_car", "mixed"])
@pytest.mark.parametrize("tier", TIERS)
def test_total_is_rounded_sum_of_line_items(mode, tier):
    cost = estimate_costs(_request(transport_pref=mode, num_students=37), 463.27, 5, tier)

    line_sum = sum(getattr(cost, item) for item in LINE_ITEMS)
    assert cost.total == pytest.approx(round(line_sum, 2), abs=1e-9)
    assert cost.per_student == pytest.approx(cost.total / 37, abs=0.01)


def test_bus_cost_uses_bus_count_and_local_kilometres():
    cost = estimate_costs(_request(num_students=60), 200.0, 3, "balanced")

    # 60 students + 4 teachers -> 2 buses x (400 + 150) km x 1.1
    assert cost.transport == pytest.approx(1210.0)
    assert "2 bus(es)" in cost.transport_note
    assert "~550 km" in cost.transport_note


def test_worked_example_for_small_group():
    cost = estimate_costs(_request(), 100.0, 5, "budget")

    # 14 students + 1 teacher = 15 people
    assert cost.transport == pytest.approx(1 * (200 + 250) * 1.1)
    assert cost.accommodation == pytest.approx(25 * 15 * 4)
    assert cost.meals == pytest.approx(15 * 15 * 5)
    assert cost.entry_fees == pytest.approx(7 * 14 + 7 * 1 * 0.5)
    assert cost.activity_fees == pytest.approx(round(cost.entry_fees * 0.2, 2))
    assert cost.local_transport == pytest.approx(5 * 15 * 5)
    assert cost.contingency == pytest.approx(
        round((cost.transport + cost.accommodation + cost.meals + cost.entry_fees) * 0.05, 2)
    )
    assert cost.accommodation_note == "4 nights @ ~25 EUR/person (budget)"


def test_only_accommodation_changes_between_tiers():
    costs = [estimate_costs(_request(), 320.0, 5, tier) for tier in TIERS]

    for item in ("transport", "meals", "entry_fees", "activity_fees", "local_transport"):
        assert len({getattr(c, item) for c in costs}) == 1
    rates = [c.accommodation_rate_per_person for c in costs]
    assert rates == sorted(rates) and len(set(rates)) == 3
    assert costs[0].total < costs[1].total < costs[2].total


def test_private_car_is_round_trip_distance():
    cost = estimate_costs(_request(transport_pref="private_car"), 250.0, 2, "budget")
    assert cost.transport == pytest.approx(150.0)
    assert "250 km" in cost.transport_note


def test_flight_alias_maps_to_plane_rate():
    cost = estimate_costs(_request(transport_pref="flight", num_students=20), 900.0, 4, "premium")
    # 20 students + 2 teachers
    assert cost.transport == pytest.approx(22 * 150)
    assert cost.transport_note.startswith("Flights for 22 pax")


def test_day_trip_has_no_accommodation():
    cost = estimate_costs(_request(), 80.0, 1, "premium")
    assert cost.accommodation == 0
    assert cost.accommodation_note.startswith("0 nights")


def test_zero_students_does_not_divide_by_zero():
    cost = estimate_costs(_request(num_students=0), 80.0, 2, "budget")
    assert cost.per_student == cost.total
