from __future__ import annotations

import asyncio
from typing import Any, Dict

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from field_trip_planner.config import Settings
from field_trip_planner.errors import InfeasibleTripError, PlannerInputError
from field_trip_planner.logs import get_logger
from field_trip_planner.orchestrator import build_plans
from field_trip_planner.schemas import PlannerRequest, PlannerResult

logger = get_logger(__name__)

settings = Settings.from_env()

app = FastAPI(title="Field Trip Planner API")

# Local form/map frontends call the API directly; PLANNER_ALLOWED_ORIGINS narrows this.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def _plan(request: PlannerRequest, skip_ai: bool) -> PlannerResult:
    """Run the planner under the request timeout and map planner errors to HTTP."""
    try:
        return await asyncio.wait_for(
            build_plans(request, skip_ai_providers=skip_ai, settings=settings),
            timeout=settings.request_timeout,
        )
    except PlannerInputError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except InfeasibleTripError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except asyncio.TimeoutError as exc:
        logger.warning("Planning request timed out after %.0fs", settings.request_timeout)
        raise HTTPException(status_code=504, detail="Planning timed out") from exc


@app.post("/api/plan", response_model=PlannerResult)
async def api_plan(request: PlannerRequest, skip_ai: bool = False) -> PlannerResult:
    """Primary endpoint consumed by the trip form."""
    return await _plan(request, skip_ai)


@app.post("/api/plan/template", response_model=PlannerResult)
async def api_plan_template(request: PlannerRequest) -> PlannerResult:
    """Offline/template generation: no AI or POI provider calls."""
    return await _plan(request, True)


@app.get("/health")
async def health() -> Dict[str, Any]:
    return {"status": "ok"}
