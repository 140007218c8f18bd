import asyncio

import pytest

from field_trip_planner.schemas import GeoLocation, RouteResult, SourceProvider
from field_trip_planner.tools.routing import RouteCalculator, estimate_route, haversine_m


def _loc(name, lat, lng):
    return GeoLocation(lat=lat, lng=lng, name=name, source=SourceProvider.INPUT)


SARAJEVO = _loc("Sarajevo", 43.8563, 18.4131)
ZAGREB = _loc("Zagreb", 45.8150, 15.9819)
TRIESTE = _loc("Trieste", 45.6495, 13.7768)


class StubRouter:
    def __init__(self, result):
        self.result = result
        self.calls = 0

    async def route(self, points):
        self.calls += 1
        return self.result


def test_haversine_is_symmetric_and_zero_on_same_point():
    d1 = haversine_m(SARAJEVO.lat, SARAJEVO.lng, ZAGREB.lat, ZAGREB.lng)
    d2 = haversine_m(ZAGREB.lat, ZAGREB.lng, SARAJEVO.lat, SARAJEVO.lng)
    assert d1 == pytest.approx(d2)
    assert 250_000 < d1 < 330_000
    assert haversine_m(1.0, 2.0, 1.0, 2.0) == 0


def test_estimate_route_sums_legs_at_fifty_kmh():
    route = estimate_route([SARAJEVO, ZAGREB, TRIESTE])

    legs = haversine_m(SARAJEVO.lat, SARAJEVO.lng, ZAGREB.lat, ZAGREB.lng) + haversine_m(
        ZAGREB.lat, ZAGREB.lng, TRIESTE.lat, TRIESTE.lng
    )
    assert route.distance_m == pytest.approx(legs)
    assert route.duration_s == pytest.approx(legs / 50_000 * 3600)
    assert route.path == [(SARAJEVO.lat, SARAJEVO.lng), (ZAGREB.lat, ZAGREB.lng), (TRIESTE.lat, TRIESTE.lng)]


def test_calculator_rejects_single_point():
    async def run() -> None:
        with pytest.raises(ValueError):
            await RouteCalculator().route([SARAJEVO])

    asyncio.run(run())


def test_calculator_falls_back_when_router_fails(fakes):
    async def run() -> None:
        route = await RouteCalculator(fakes.FailingRouter()).route([SARAJEVO, ZAGREB])
        assert route == estimate_route([SARAJEVO, ZAGREB])

    asyncio.run(run())


def test_calculator_falls_back_on_zero_distance():
    async def run() -> None:
        router = StubRouter(RouteResult(distance_m=0, duration_s=10))
        route = await RouteCalculator(router).route([SARAJEVO, ZAGREB])
        assert router.calls == 1
        assert route.distance_m > 0

    asyncio.run(run())


def test_calculator_keeps_provider_result_and_fills_gaps():
    async def run() -> None:
        router = StubRouter(RouteResult(distance_m=100_000))
        route = await RouteCalculator(router).route([SARAJEVO, ZAGREB])

        assert route.distance_m == 100_000
        assert route.duration_s == pytest.approx(7200)
        assert route.path == [(SARAJEVO.lat, SARAJEVO.lng), (ZAGREB.lat, ZAGREB.lng)]

    asyncio.run(run())


def test_calculator_returns_provider_route_untouched():
    async def run() -> None:
        provided = RouteResult(distance_m=320_000, duration_s=14_000, path=[(1.0, 2.0), (3.0, 4.0), (5.0, 6.0)])
        route = await RouteCalculator(StubRouter(provided)).route([SARAJEVO, ZAGREB])
        assert route == provided

    asyncio.run(run())
