from __future__ import annotations

from typing import List

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from day_planner import config
from day_planner.orchestrator import (
    plan_day_optimization,
    plan_move,
    plan_trip_optimization,
)
from day_planner.schemas import (
    AdjustmentsResponse,
    Coordinates,
    ConflictsRequest,
    ConflictsResponse,
    DragOperation,
    GeocodeRequest,
    ItineraryAnalysis,
    MoveRequest,
    PropagateRequest,
    ResolveRequest,
    SchedulePlan,
    Stop,
    StopsRequest,
    StopsResponse,
    TripMoveRequest,
    TripMoveResponse,
    UpdatesResponse,
)
from day_planner.scheduling.conflicts import detect_conflicts, resolve_conflicts
from day_planner.scheduling.optimizer import (
    analyze_itinerary,
    optimize_day_order,
    optimize_trip_itinerary,
)
from day_planner.scheduling.reorder import build_reorder, stops_for_day
from day_planner.scheduling.time_propagation import propagate_times
from day_planner.store import TripStore, UnknownStopError, UnknownTripError
from day_planner.tools.geo_enrichment import GeoEnricher

app = FastAPI(title="Day Planner Scheduling API")

# Operators can scope browser access via DAY_PLANNER_ALLOWED_ORIGINS.
allowed_origins = [origin.strip() for origin in config.ALLOWED_ORIGINS.split(",") if origin.strip()]
if not allowed_origins:
    allowed_origins = ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

store = TripStore()


# ---------- stateless operations over a posted snapshot ----------
@app.post("/api/reorder", response_model=UpdatesResponse, response_model_exclude_none=True)
def api_reorder(req: MoveRequest) -> UpdatesResponse:
    return UpdatesResponse(updates=build_reorder(req.stops, req.moved_stop_id, req.target))

@app.post("/api/propagate", response_model=AdjustmentsResponse)
def api_propagate(req: PropagateRequest) -> AdjustmentsResponse:
    ordered = sorted(req.stops, key=lambda s: s.order)
    return AdjustmentsResponse(time_adjustments=propagate_times(ordered, req.day_start_time, reason=req.reason))

@app.post("/api/conflicts", response_model=ConflictsResponse)
def api_conflicts(req: ConflictsRequest) -> ConflictsResponse:
    day_stops = stops_for_day(req.stops, req.day_number)
    return ConflictsResponse(conflicts=detect_conflicts(day_stops, req.day_number))

@app.post("/api/optimize/day", response_model=StopsResponse)
def api_optimize_day(req: StopsRequest) -> StopsResponse:
    return StopsResponse(stops=optimize_day_order(req.stops))

@app.post("/api/optimize/trip", response_model=StopsResponse)
def api_optimize_trip(req: StopsRequest) -> StopsResponse:
    return StopsResponse(stops=optimize_trip_itinerary(req.stops))

@app.post("/api/analyze", response_model=ItineraryAnalysis)
def api_analyze(req: StopsRequest) -> ItineraryAnalysis:
    return analyze_itinerary(req.stops)

@app.post("/api/move", response_model=DragOperation | None, response_model_exclude_none=True)
def api_move(req: MoveRequest) -> DragOperation | None:
    """Full pipeline for one gesture: reorder, re-time, check. Null for a no-op."""
    return plan_move(req.stops, req.moved_stop_id, req.target, req.day_start_time)

@app.post("/api/geocode", response_model=Coordinates)
async def api_geocode(req: GeocodeRequest) -> Coordinates:
    coords = await GeoEnricher().geocode(req.query)
    if coords is None:
        raise HTTPException(status_code=404, detail=f"No coordinates found for {req.query!r}")
    return coords


# ---------- host-side store ----------
@app.put("/api/trips/{trip_id}/stops", response_model=StopsResponse)
def put_trip_stops(trip_id: str, req: StopsRequest) -> StopsResponse:
    return StopsResponse(stops=store.replace(trip_id, req.stops))

@app.get("/api/trips/{trip_id}/stops", response_model=StopsResponse)
def get_trip_stops(trip_id: str) -> StopsResponse:
    try:
        return StopsResponse(stops=store.snapshot(trip_id))
    except UnknownTripError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown trip {trip_id}") from exc

@app.post("/api/trips/{trip_id}/move", response_model=TripMoveResponse, response_model_exclude_none=True)
def move_trip_stop(trip_id: str, req: TripMoveRequest) -> TripMoveResponse:
    """Plan a move against the latest snapshot and apply it in one step.

    When the move produces conflicts, ``manual_review`` leaves the trip
    untouched and ``accept_as_is`` applies the new order but keeps the stored
    times. Either way the operation is returned for the user to decide.
    """
    result = {"operation": None, "applied": []}

    def planner(current: List[Stop]):
        operation = plan_move(current, req.moved_stop_id, req.target, req.day_start_time)
        result["operation"] = operation
        if operation is None:
            return []
        batch = operation.updates
        if operation.conflicts_detected and req.resolution == "manual_review":
            batch = []
        elif operation.conflicts_detected and req.resolution == "accept_as_is":
            batch = operation.order_updates
        result["applied"] = batch
        return batch

    try:
        stops = store.mutate(trip_id, planner)
    except UnknownTripError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown trip {trip_id}") from exc

    operation = result["operation"]
    return TripMoveResponse(
        operation=operation,
        applied=result["applied"],
        conflicts=operation.conflicts if operation else [],
        stops=stops,
    )

@app.post("/api/trips/{trip_id}/days/{day}/optimize", response_model=SchedulePlan, response_model_exclude_none=True)
def optimize_trip_day(trip_id: str, day: int, req: ResolveRequest | None = None) -> SchedulePlan:
    day_start = req.day_start_time if req else None
    result = {}

    def planner(current: List[Stop]):
        plan = plan_day_optimization(current, day, day_start)
        result["plan"] = plan
        return plan.updates

    try:
        store.mutate(trip_id, planner)
    except UnknownTripError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown trip {trip_id}") from exc
    return result["plan"]

@app.post("/api/trips/{trip_id}/optimize", response_model=SchedulePlan, response_model_exclude_none=True)
def optimize_whole_trip(trip_id: str, req: ResolveRequest | None = None) -> SchedulePlan:
    day_start = req.day_start_time if req else None
    result = {}

    def planner(current: List[Stop]):
        plan = plan_trip_optimization(current, day_start)
        result["plan"] = plan
        return plan.updates

    try:
        store.mutate(trip_id, planner)
    except UnknownTripError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown trip {trip_id}") from exc
    return result["plan"]

@app.post("/api/trips/{trip_id}/days/{day}/resolve", response_model=AdjustmentsResponse)
def resolve_trip_day(trip_id: str, day: int, req: ResolveRequest) -> AdjustmentsResponse:
    """Detect conflicts on the stored day and apply the chosen resolution."""
    result = {}

    def planner(current: List[Stop]):
        day_stops = stops_for_day(current, day)
        conflicts = detect_conflicts(day_stops, day)
        adjustments = resolve_conflicts(day_stops, conflicts, req.resolution, req.day_start_time)
        result["adjustments"] = adjustments
        return [a.as_update() for a in adjustments]

    try:
        store.mutate(trip_id, planner)
    except (UnknownTripError, UnknownStopError) as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return AdjustmentsResponse(time_adjustments=result["adjustments"])
