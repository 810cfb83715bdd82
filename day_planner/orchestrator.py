# day_planner/orchestrator.py
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from day_planner import config
from day_planner.schemas import (
    AdjustmentReason,
    DragOperation,
    MoveTarget,
    ScheduleConflict,
    SchedulePlan,
    Stop,
    StopChanges,
    StopUpdate,
    TimeAdjustment,
)
from day_planner.scheduling.conflicts import detect_conflicts
from day_planner.scheduling.optimizer import (
    optimize_day_order,
    optimize_trip_itinerary,
    order_updates_for,
)
from day_planner.scheduling.reorder import build_reorder, resolve_move, stops_for_day
from day_planner.scheduling.time_propagation import propagate_times

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
logger.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))
logger.propagate = False


# ---------- batch helpers ----------
def apply_updates(stops: Iterable[Stop], updates: Iterable[StopUpdate]) -> List[Stop]:
    """Return a new snapshot with every update applied; the input is left alone."""
    changes: Dict[str, StopChanges] = {}
    for update in updates:
        existing = changes.get(update.id)
        changes[update.id] = existing.merged(update.updates) if existing else update.updates

    applied: List[Stop] = []
    for stop in stops:
        change = changes.get(stop.id)
        if change is None:
            applied.append(stop)
        else:
            applied.append(stop.model_copy(update=change.model_dump(exclude_none=True)))
    return applied


def merge_batches(*batches: Iterable[StopUpdate]) -> List[StopUpdate]:
    """Fold several update lists into one entry per stop id, later fields winning."""
    merged: Dict[str, StopChanges] = {}
    for batch in batches:
        for update in batch:
            existing = merged.get(update.id)
            merged[update.id] = existing.merged(update.updates) if existing else update.updates
    return [StopUpdate(id=stop_id, updates=changes) for stop_id, changes in merged.items()]


def _propagate_days(
    stops: Sequence[Stop],
    days: Iterable[int],
    day_start_time: Optional[str],
    reason: AdjustmentReason,
) -> tuple[List[TimeAdjustment], List[ScheduleConflict]]:
    adjustments: List[TimeAdjustment] = []
    conflicts: List[ScheduleConflict] = []
    for day in days:
        day_stops = stops_for_day(stops, day)
        day_adjustments = propagate_times(day_stops, day_start_time, reason=reason)
        adjustments.extend(day_adjustments)
        adjusted = apply_updates(day_stops, [a.as_update() for a in day_adjustments])
        conflicts.extend(detect_conflicts(adjusted, day))
    return adjustments, conflicts


# ---------- move pipeline ----------
def plan_move(
    stops: Sequence[Stop],
    moved_stop_id: str,
    target: MoveTarget,
    day_start_time: Optional[str] = None,
) -> Optional[DragOperation]:
    """Reorder, re-time the affected days and check them, as one proposed batch.

    Returns ``None`` when the gesture changes nothing.
    """
    move = resolve_move(stops, moved_stop_id, target)
    if move is None:
        return None

    order_updates = build_reorder(stops, moved_stop_id, target)
    if not order_updates:
        return None

    reordered = apply_updates(stops, order_updates)
    affected_days = sorted({move.source_day, move.target_day})
    adjustments, conflicts = _propagate_days(reordered, affected_days, day_start_time, "travel_buffer")

    batch = merge_batches(order_updates, [a.as_update() for a in adjustments])
    logger.info(
        "Planned %s of %s (day %d -> %d): %d updates, %d conflicts",
        move.kind,
        moved_stop_id,
        move.source_day,
        move.target_day,
        len(batch),
        len(conflicts),
    )

    return DragOperation(
        type=move.kind,
        moved_stop_id=move.moved.id,
        target_stop_id=move.target_stop.id if move.target_stop else None,
        source_day=move.source_day,
        target_day=move.target_day,
        source_index=move.source_index,
        target_index=move.target_index,
        order_updates=order_updates,
        time_adjustments=adjustments,
        updates=batch,
        conflicts=conflicts,
        conflicts_detected=bool(conflicts),
    )


# ---------- optimization pipeline ----------
def plan_day_optimization(
    stops: Sequence[Stop],
    day: int,
    day_start_time: Optional[str] = None,
) -> SchedulePlan:
    """Optimize one day's order, then re-time it. Other days are untouched."""
    day_stops = stops_for_day(stops, day)
    optimized = optimize_day_order(day_stops)
    order_updates = order_updates_for(optimized, day_stops)

    adjustments = propagate_times(optimized, day_start_time, reason="schedule_optimization")
    adjusted = apply_updates(optimized, [a.as_update() for a in adjustments])
    conflicts = detect_conflicts(adjusted, day)

    logger.info(
        "Optimized day %d: %d stops, %d reordered, %d re-timed",
        day,
        len(day_stops),
        len(order_updates),
        len(adjustments),
    )
    return SchedulePlan(
        stops=adjusted,
        time_adjustments=adjustments,
        updates=merge_batches(order_updates, [a.as_update() for a in adjustments]),
        conflicts=conflicts,
    )


def plan_trip_optimization(stops: Sequence[Stop], day_start_time: Optional[str] = None) -> SchedulePlan:
    optimized = optimize_trip_itinerary(stops)
    order_updates = order_updates_for(optimized, stops)
    days = sorted({s.day for s in optimized})
    adjustments, conflicts = _propagate_days(optimized, days, day_start_time, "schedule_optimization")
    adjusted = apply_updates(optimized, [a.as_update() for a in adjustments])

    logger.info("Optimized trip across %d days (%d stops)", len(days), len(optimized))
    return SchedulePlan(
        stops=adjusted,
        time_adjustments=adjustments,
        updates=merge_batches(order_updates, [a.as_update() for a in adjustments]),
        conflicts=conflicts,
    )
