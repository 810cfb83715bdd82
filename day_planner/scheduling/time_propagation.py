"""Time propagation through a day's ordered stops."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from day_planner import config
from day_planner.schemas import (
    AdjustmentReason,
    NeighborFit,
    Stop,
    StopChanges,
    StopUpdate,
    TimeAdjustment,
)

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
MIN_TRAVEL_BUFFER = 10

# Minutes needed to get out of (or into) a stop of each category.
CATEGORY_BUFFERS: Dict[str, int] = {
    "restaurant": 15,
    "hotel": 30,
    "attraction": 10,
    "activity": 20,
    "transport": 5,
    "shop": 15,
    "tip": 5,
    "cafe": 10,
    "bar": 15,
    "flight": 60,
    "accommodation": 30,
}

CATEGORY_DEFAULT_DURATIONS: Dict[str, int] = {
    "restaurant": 90,
    "cafe": 45,
    "attraction": 120,
    "activity": 180,
    "shop": 60,
    "hotel": 30,
    "accommodation": 30,
    "transport": 60,
    "flight": 180,
    "bar": 120,
    "tip": 30,
}


def time_to_minutes(value: str) -> int:
    hours, minutes = value.split(":")[:2]
    return int(hours) * 60 + int(minutes)


def minutes_to_time(total_minutes: int) -> str:
    total_minutes = int(total_minutes) % MINUTES_PER_DAY
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"


def add_minutes_to_time(value: str, minutes_to_add: int) -> str:
    return minutes_to_time(time_to_minutes(value) + minutes_to_add)


def calculate_travel_buffer(from_category: str, to_category: str) -> int:
    """Transition time between two consecutive stops: the larger category buffer, never under 10 minutes."""
    from_buffer = CATEGORY_BUFFERS.get(from_category, 15)
    to_buffer = CATEGORY_BUFFERS.get(to_category, 10)
    return max(from_buffer, to_buffer, MIN_TRAVEL_BUFFER)


def effective_duration(stop: Stop) -> int:
    return stop.duration if stop.duration is not None else config.DEFAULT_DURATION_MINUTES


def effective_start_minutes(stop: Stop, day_start_time: Optional[str] = None) -> int:
    return time_to_minutes(stop.start_time or day_start_time or config.DEFAULT_DAY_START)


def effective_end_minutes(stop: Stop, day_start_time: Optional[str] = None) -> int:
    """End of a stop in minutes after its own day's midnight.

    A stored ``end_time`` earlier than the start is read as running past
    midnight, so the result can exceed 1440.
    """
    start = effective_start_minutes(stop, day_start_time)
    if stop.end_time:
        end = time_to_minutes(stop.end_time)
        if end < start:
            end += MINUTES_PER_DAY
        return end
    return start + effective_duration(stop)


def is_time_anchor(stop: Stop) -> bool:
    """Locked stops with a start time keep their schedule during propagation."""
    return stop.is_locked and bool(stop.start_time)


def propagate_times(
    day_stops: Sequence[Stop],
    day_start_time: Optional[str] = None,
    reason: AdjustmentReason = "schedule_optimization",
) -> List[TimeAdjustment]:
    """Recompute start/end times for ``day_stops`` taken in visiting order.

    The first stop keeps its own start time (or the day start); every later
    stop begins when the previous one ends plus the category travel buffer.
    Locked stops are fixed anchors: they are never adjusted and the walk
    resumes from their end. Only stops whose times change are returned, so a
    second pass over an already consistent day yields nothing.
    """
    if not day_stops:
        return []

    day_start = day_start_time or config.DEFAULT_DAY_START
    adjustments: List[TimeAdjustment] = []
    previous: Optional[Stop] = None
    cursor = 0

    for stop in day_stops:
        if is_time_anchor(stop):
            end = effective_end_minutes(stop)
        else:
            if previous is None:
                start = effective_start_minutes(stop, day_start)
            else:
                start = cursor + calculate_travel_buffer(previous.category, stop.category)
            end = start + effective_duration(stop)

            new_start = minutes_to_time(start)
            new_end = minutes_to_time(end)
            if stop.start_time != new_start or stop.end_time != new_end:
                adjustments.append(
                    TimeAdjustment(
                        stop_id=stop.id,
                        new_start_time=new_start,
                        new_end_time=new_end,
                        reason=reason,
                    )
                )
        cursor = end
        previous = stop

    logger.debug("Propagated %d stops, %d adjusted", len(day_stops), len(adjustments))
    return adjustments


def fit_between_neighbors(
    stop: Stop,
    previous: Optional[Stop] = None,
    next_stop: Optional[Stop] = None,
    day_start_time: Optional[str] = None,
) -> NeighborFit:
    """Start time for a stop inserted between two fixed neighbours.

    ``earliest_start`` follows the previous stop's end plus buffer;
    ``latest_start`` is the last start that still finishes one buffer before
    ``next_stop`` begins. The chosen start is always ``earliest_start``: when
    it is later than ``latest_start`` the stop is still placed there and
    ``fits`` is False.
    """
    duration = effective_duration(stop)
    if previous is not None:
        earliest = effective_end_minutes(previous) + calculate_travel_buffer(previous.category, stop.category)
    else:
        earliest = time_to_minutes(day_start_time or config.DEFAULT_DAY_START)

    latest: Optional[int] = None
    if next_stop is not None and next_stop.start_time:
        latest = (
            time_to_minutes(next_stop.start_time)
            - calculate_travel_buffer(stop.category, next_stop.category)
            - duration
        )

    # max(earliest, min(earliest, latest)) reduces to earliest.
    start = earliest if latest is None else max(earliest, min(earliest, latest))
    fits = latest is None or earliest <= latest
    if not fits:
        logger.warning(
            "Stop %s starting %s cannot finish before %s begins (latest start %s)",
            stop.id,
            minutes_to_time(start),
            next_stop.id if next_stop is not None else "?",
            minutes_to_time(latest),
        )

    return NeighborFit(
        start_time=minutes_to_time(start),
        end_time=minutes_to_time(start + duration),
        earliest_start=minutes_to_time(earliest),
        latest_start=minutes_to_time(latest) if latest is not None else None,
        fits=fits,
    )


def default_duration_for_category(category: str) -> int:
    return CATEGORY_DEFAULT_DURATIONS.get(category, config.DEFAULT_DURATION_MINUTES)


def adjust_time_for_category(proposed_time: str, category: str, is_first: bool) -> str:
    """Nudge a proposed start into a sensible slot for restaurants, cafes and bars."""
    if is_first:
        return proposed_time

    hour = time_to_minutes(proposed_time) // 60
    if category == "restaurant":
        if hour < 11:
            return "11:30"
        if 14 <= hour < 17:
            return "18:00"
    if category == "cafe":
        if hour < 7:
            return "07:30"
        if hour > 21:
            return "09:00"
    if category == "bar" and hour < 17:
        return "17:00"
    return proposed_time


def assign_initial_times(
    day_stops: Sequence[Stop],
    day_start_time: Optional[str] = None,
) -> List[StopUpdate]:
    """Give a freshly populated day a first schedule, durations included."""
    if not day_stops:
        return []

    updates: List[StopUpdate] = []
    current = day_start_time or config.DEFAULT_DAY_START

    for index, stop in enumerate(day_stops):
        current = adjust_time_for_category(current, stop.category, index == 0)
        duration = stop.duration if stop.duration is not None else default_duration_for_category(stop.category)
        end_time = add_minutes_to_time(current, duration)
        updates.append(
            StopUpdate(
                id=stop.id,
                updates=StopChanges(start_time=current, end_time=end_time, duration=duration),
            )
        )
        if index < len(day_stops) - 1:
            buffer = calculate_travel_buffer(stop.category, day_stops[index + 1].category)
            current = add_minutes_to_time(end_time, buffer)

    return updates
