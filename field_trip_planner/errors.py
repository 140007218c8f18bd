"""Errors that cross the planner boundary.

Provider outages never show up here; they are absorbed by the component that
called the provider and only lower the reliability of the resulting plan.
"""
from __future__ import annotations


class PlannerError(Exception):
    """Base class for errors surfaced to the planner's caller."""


class PlannerInputError(PlannerError, ValueError):
    """The request cannot be planned as given (bad dates, day-count mismatch)."""


class InfeasibleTripError(PlannerError):
    """The round trip does not fit into the requested number of days."""

    def __init__(self, round_trip_hours: float, days: int) -> None:
        self.round_trip_hours = round_trip_hours
        self.days = days
        super().__init__(
            f"Itinerary impossible: estimated driving time ({round(round_trip_hours)}h round-trip) "
            f"exceeds available days ({days}). Please add more days or reduce destinations."
        )
