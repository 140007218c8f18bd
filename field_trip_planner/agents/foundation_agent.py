"""Utility agent that validates a planner request and derives trip fundamentals."""
from __future__ import annotations

import math
import re
from datetime import date
from typing import Any, Dict, List, Optional

from field_trip_planner.errors import PlannerInputError
from field_trip_planner.schemas import PlannerRequest

STUDENTS_PER_TEACHER = 15


def extract_foundation(request: PlannerRequest) -> Dict[str, Any]:
    """Return derived trip fundamentals, raising on inputs that cannot be planned.

    Dates may be ISO (``2025-05-12``) or day-first (``12.5.2025``,
    ``12/05/25``). The trip length counts both the departure and the return
    day. A trip type mentioning "multi" must span at least two days.
    """
    dep = parse_trip_date(request.dep_date)
    ret = parse_trip_date(request.ret_date)
    if dep is None or ret is None:
        raise PlannerInputError("Invalid dates.")
    if dep > ret:
        raise PlannerInputError("Departure date must be before return date.")

    days = days_inclusive(dep, ret)
    if "multi" in (request.trip_type or "").lower() and days < 2:
        raise PlannerInputError("Multi-day trip must be at least 2 days.")

    destinations: List[str] = [d.strip() for d in request.destinations if d and d.strip()]
    listed = len(teacher_names(request.teachers))
    teachers = teacher_count(request.num_students, request.teachers)

    return {
        "origin": (request.origin or "").strip(),
        "destinations": destinations,
        "dates": {
            "departure": dep.isoformat(),
            "return": ret.isoformat(),
            "days": days,
            "nights": max(0, days - 1),
        },
        "party": {
            "students": request.num_students,
            "teachers_listed": listed,
            "teachers": teachers,
            "headcount": request.num_students + teachers,
        },
        "transport": request.transport_pref,
        "focus": request.focus,
        "notes": request.notes,
    }


def normalize_date(value: Optional[str]) -> Optional[str]:
    """Return ``DD.MM.YYYY`` for a parseable date string, else ``None``."""
    if not value:
        return None
    text = str(value).strip()

    iso = re.fullmatch(r"(\d{4})-(\d{2})-(\d{2})", text)
    if iso:
        y, m, d = iso.groups()
        text = f"{d}.{m}.{y}"

    text = re.sub(r"[/\-\s]+", ".", text).strip(".")
    parts = text.split(".")
    if len(parts) != 3:
        return None
    if not all(re.fullmatch(r"\d{1,4}", p) for p in parts):
        return None

    d, m, y = (p.lstrip("0") or "0" for p in parts)
    if len(y) == 2:
        y = ("20" if int(y) <= 49 else "19") + y
    elif len(y) == 1:
        y = "200" + y
    elif len(y) == 3:
        return None

    day, month, year = int(d), int(m), int(y)
    if not 1 <= month <= 12:
        return None
    try:
        date(year, month, day)
    except ValueError:
        return None
    return f"{day:02d}.{month:02d}.{year}"


def parse_trip_date(value: Optional[str]) -> Optional[date]:
    normalized = normalize_date(value)
    if not normalized:
        return None
    d, m, y = (int(p) for p in normalized.split("."))
    return date(y, m, d)


def days_inclusive(start: date, end: date) -> int:
    return (end - start).days + 1


def teacher_names(roster: str) -> List[str]:
    return [name.strip() for name in (roster or "").split(",") if name.strip()]


def teacher_count(students: int, roster: str) -> int:
    """Chaperones: the listed teachers, but never fewer than one per 15 students."""
    required = max(1, math.ceil(students / STUDENTS_PER_TEACHER))
    return max(len(teacher_names(roster)), required)
