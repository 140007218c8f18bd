import asyncio
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from field_trip_planner.agents.cost_estimator import estimate_costs
from field_trip_planner.agents.destination_scout import DEFAULT_ORIGIN
from field_trip_planner.errors import InfeasibleTripError, PlannerInputError
from field_trip_planner.main import app
from field_trip_planner.schemas import ItineraryDay, PlannerRequest, PlannerResult, TripPlan


def _sample_payload() -> dict:
    return {
        "origin": "",
        "destinations": ["Zagreb", "Trieste"],
        "trip_type": "multi-day",
        "grade_level": "8",
        "num_students": 14,
        "teachers": "Ana",
        "transport_pref": "bus",
        "dep_date": "2025-05-12",
        "ret_date": "2025-05-16",
        "focus": "science",
    }


def _sample_result() -> PlannerResult:
    request = PlannerRequest(**_sample_payload())
    cost = estimate_costs(request, 462.2, 5, "budget")
    plan = TripPlan(
        title="Zagreb -> Trieste — Budget",
        tier="budget",
        reliability=40,
        destination="Zagreb -> Trieste",
        number_of_days=5,
        itinerary=[ItineraryDay(day=1, activity="Departure")],
        estimated_cost_per_student=f"{cost.per_student:.2f} EUR",
        cost_breakdown=cost,
        distance_km=462.2,
        travel_time_h=9.24,
        polyline=[(43.8563, 18.4131), (45.815, 15.9819)],
    )
    return PlannerResult(origin=DEFAULT_ORIGIN, plans=[plan])


def test_api_plan_endpoint(monkeypatch):
    client = TestClient(app)
    planner = AsyncMock(return_value=_sample_result())
    monkeypatch.setattr("field_trip_planner.main.build_plans", planner)

    response = client.post("/api/plan", json=_sample_payload())

    assert response.status_code == 200
    planner.assert_awaited_once()
    called_request = planner.await_args.args[0]
    assert called_request.destinations == ["Zagreb", "Trieste"]
    assert planner.await_args.kwargs["skip_ai_providers"] is False
    body = response.json()
    assert body["origin"]["name"] == "IDSS Sarajevo"
    assert body["plans"][0]["tier"] == "budget"
    assert body["plans"][0]["polyline"][0] == [43.8563, 18.4131]


def test_api_plan_skip_ai_query_flag(monkeypatch):
    client = TestClient(app)
    planner = AsyncMock(return_value=_sample_result())
    monkeypatch.setattr("field_trip_planner.main.build_plans", planner)

    response = client.post("/api/plan?skip_ai=true", json=_sample_payload())

    assert response.status_code == 200
    assert planner.await_args.kwargs["skip_ai_providers"] is True


def test_template_endpoint_always_skips_providers(monkeypatch):
    client = TestClient(app)
    planner = AsyncMock(return_value=_sample_result())
    monkeypatch.setattr("field_trip_planner.main.build_plans", planner)

    response = client.post("/api/plan/template", json=_sample_payload())

    assert response.status_code == 200
    assert planner.await_args.kwargs["skip_ai_providers"] is True


def test_invalid_input_maps_to_422(monkeypatch):
    client = TestClient(app)
    planner = AsyncMock(side_effect=PlannerInputError("Departure date must be before return date."))
    monkeypatch.setattr("field_trip_planner.main.build_plans", planner)

    response = client.post("/api/plan", json=_sample_payload())

    assert response.status_code == 422
    assert response.json()["detail"] == "Departure date must be before return date."


def test_schema_violation_is_rejected_before_planning(monkeypatch):
    client = TestClient(app)
    planner = AsyncMock(return_value=_sample_result())
    monkeypatch.setattr("field_trip_planner.main.build_plans", planner)

    payload = _sample_payload()
    payload["num_students"] = -3
    response = client.post("/api/plan", json=payload)

    assert response.status_code == 422
    planner.assert_not_awaited()


def test_infeasible_trip_maps_to_409(monkeypatch):
    client = TestClient(app)
    planner = AsyncMock(side_effect=InfeasibleTripError(41.3, 1))
    monkeypatch.setattr("field_trip_planner.main.build_plans", planner)

    response = client.post("/api/plan", json=_sample_payload())

    assert response.status_code == 409
    assert "41h round-trip" in response.json()["detail"]


def test_timeout_maps_to_504(monkeypatch):
    client = TestClient(app)
    planner = AsyncMock(side_effect=asyncio.TimeoutError())
    monkeypatch.setattr("field_trip_planner.main.build_plans", planner)

    response = client.post("/api/plan", json=_sample_payload())

    assert response.status_code == 504


def test_health_endpoint():
    client = TestClient(app)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
