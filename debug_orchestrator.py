# debug_orchestrator.py
import asyncio
import sys

from field_trip_planner.orchestrator import build_plans
from field_trip_planner.schemas import PlannerRequest


async def main(skip_ai: bool):
    request = PlannerRequest(
        origin="Sarajevo",
        destinations=["Zagreb", "Trieste"],
        trip_type="multi-day",
        grade_level="8",
        num_students=24,
        teachers="Amra Hodžić, Damir Kovač",
        transport_pref="bus",
        dep_date="2025-05-12",
        ret_date="2025-05-16",
        focus="science and history museums",
        notes="Two students need vegetarian meals; one wheelchair user.",
    )

    # Call orchestrator directly
    result = await build_plans(request, skip_ai_providers=skip_ai)
    print("➡️ Orchestrator returned:\n")
    print(result.model_dump_json(indent=2))


if __name__ == "__main__":
    asyncio.run(main(skip_ai="--skip-ai" in sys.argv[1:]))
