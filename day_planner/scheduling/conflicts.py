"""Scheduling conflict detection for a single day."""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from day_planner import config
from day_planner.schemas import Resolution, ScheduleConflict, Stop, TimeAdjustment
from day_planner.scheduling.time_propagation import (
    MINUTES_PER_DAY,
    effective_end_minutes,
    minutes_to_time,
    propagate_times,
    time_to_minutes,
)

logger = logging.getLogger(__name__)


def _label(stop: Stop) -> str:
    return stop.name or stop.id


def _day_timeline(ordered: Sequence[Stop]) -> List[Tuple[Stop, int, int]]:
    """Start and end of each stop on one running axis from the day's midnight.

    A start earlier than the previous stop's start is read as the next morning
    when that lands nearer the previous stop's end than the same-day reading.
    """
    timeline: List[Tuple[Stop, int, int]] = []
    offset = 0
    for stop in ordered:
        raw_start = time_to_minutes(stop.start_time)
        length = effective_end_minutes(stop) - raw_start
        start = raw_start + offset
        if timeline:
            previous_start, previous_end = timeline[-1][1], timeline[-1][2]
            if start < previous_start and (start + MINUTES_PER_DAY) - previous_end < previous_start - start:
                offset += MINUTES_PER_DAY
                start += MINUTES_PER_DAY
        timeline.append((stop, start, start + length))
    return timeline


def detect_conflicts(
    day_stops: Sequence[Stop],
    day_number: int,
    max_day_hours: Optional[float] = None,
) -> List[ScheduleConflict]:
    """Overlaps first, then an over-long day, then stops running past midnight.

    Stops without a start time have no window to compare and are skipped.
    """
    if len(day_stops) <= 1:
        return []

    ordered = sorted((s for s in day_stops if s.start_time), key=lambda s: s.order)
    if not ordered:
        return []

    timeline = _day_timeline(ordered)
    conflicts: List[ScheduleConflict] = []

    for (current, _, current_end), (following, following_start, _) in zip(timeline, timeline[1:]):
        if current_end > following_start:
            conflicts.append(
                ScheduleConflict(
                    type="overlap",
                    day=day_number,
                    affected_stop_ids=[current.id, following.id],
                    description=(
                        f"{_label(current)} ends at {minutes_to_time(current_end)} "
                        f"but {_label(following)} starts at {following.start_time}"
                    ),
                    suggested_resolution="auto_adjust",
                )
            )

    limit_hours = max_day_hours if max_day_hours is not None else config.MAX_DAY_HOURS
    first_start = timeline[0][1]
    last_end = timeline[-1][2]
    span = last_end - first_start
    if span > limit_hours * 60:
        conflicts.append(
            ScheduleConflict(
                type="too_long_day",
                day=day_number,
                affected_stop_ids=[s.id for s in ordered],
                description=(
                    f"Day {day_number} runs {span / 60:.1f}h from {ordered[0].start_time} "
                    f"to {minutes_to_time(last_end)}, over the {limit_hours:g}h limit"
                ),
                suggested_resolution="split_day",
            )
        )

    for stop, _, end in timeline:
        if end > MINUTES_PER_DAY:
            conflicts.append(
                ScheduleConflict(
                    type="impossible_timing",
                    day=day_number,
                    affected_stop_ids=[stop.id],
                    description=f"{_label(stop)} runs past midnight on day {day_number}",
                    suggested_resolution="manual_review",
                )
            )

    if conflicts:
        logger.debug("Day %d has %d conflicts", day_number, len(conflicts))
    return conflicts


def resolve_conflicts(
    day_stops: Sequence[Stop],
    conflicts: Sequence[ScheduleConflict],
    resolution: Resolution,
    day_start_time: Optional[str] = None,
) -> List[TimeAdjustment]:
    """Adjustments for the chosen resolution; only ``auto_adjust`` changes anything."""
    if not conflicts or resolution != "auto_adjust":
        return []
    ordered = sorted(day_stops, key=lambda s: s.order)
    return propagate_times(ordered, day_start_time, reason="conflict_resolution")
