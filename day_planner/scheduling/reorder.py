"""Turn drag/move gestures into order/day update batches."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from day_planner.schemas import MoveTarget, OperationType, Stop, StopChanges, StopUpdate

logger = logging.getLogger(__name__)


@dataclass
class ResolvedMove:
    kind: OperationType
    moved: Stop
    target_stop: Optional[Stop]
    source_day: int
    target_day: int
    source_index: int
    target_index: int


def stops_for_day(stops: Iterable[Stop], day: int) -> List[Stop]:
    return sorted((s for s in stops if s.day == day), key=lambda s: s.order)


def array_move(items: List[Stop], old_index: int, new_index: int) -> List[Stop]:
    moved = list(items)
    item = moved.pop(old_index)
    moved.insert(new_index, item)
    return moved


def resolve_move(stops: Iterable[Stop], moved_stop_id: str, target: MoveTarget) -> Optional[ResolvedMove]:
    """Work out source/destination day and slot for a gesture; ``None`` when it does nothing."""
    stops = list(stops)
    by_id: Dict[str, Stop] = {s.id: s for s in stops}
    moved = by_id.get(moved_stop_id)
    if moved is None:
        logger.warning("Ignoring move of unknown stop %s", moved_stop_id)
        return None

    target_stop: Optional[Stop] = None
    if target.target_stop_id is not None:
        target_stop = by_id.get(target.target_stop_id)
        if target_stop is None:
            logger.warning("Ignoring move of %s onto unknown stop %s", moved_stop_id, target.target_stop_id)
            return None
        if target_stop.id == moved.id:
            return None

    source_list = stops_for_day(stops, moved.day)
    source_index = _index_of(source_list, moved.id)

    if target.mode == "swap":
        if target_stop is None:
            logger.warning("Swap of %s requested without a target stop", moved_stop_id)
            return None
        target_list = stops_for_day(stops, target_stop.day)
        return ResolvedMove(
            kind="swap",
            moved=moved,
            target_stop=target_stop,
            source_day=moved.day,
            target_day=target_stop.day,
            source_index=source_index,
            target_index=_index_of(target_list, target_stop.id),
        )

    if target_stop is not None:
        target_day = target_stop.day
    elif target.target_day is not None:
        target_day = target.target_day
    else:
        return None

    if target_day == moved.day:
        if target_stop is not None:
            target_index = _index_of(source_list, target_stop.id)
        elif target.target_index is None:
            target_index = len(source_list) - 1
        else:
            target_index = min(target.target_index, len(source_list) - 1)
        if target_index == source_index:
            return None
        kind: OperationType = "reorder"
    else:
        target_list = stops_for_day(stops, target_day)
        if target_stop is not None:
            target_index = _index_of(target_list, target_stop.id)
        elif target.target_index is None:
            target_index = len(target_list)
        else:
            target_index = min(target.target_index, len(target_list))
        kind = "move_to_day"

    return ResolvedMove(
        kind=kind,
        moved=moved,
        target_stop=target_stop,
        source_day=moved.day,
        target_day=target_day,
        source_index=source_index,
        target_index=target_index,
    )


def classify_move(stops: Iterable[Stop], moved_stop_id: str, target: MoveTarget) -> Optional[OperationType]:
    resolved = resolve_move(stops, moved_stop_id, target)
    return resolved.kind if resolved else None


def build_reorder(stops: Iterable[Stop], moved_stop_id: str, target: MoveTarget) -> List[StopUpdate]:
    """Order/day updates for one gesture.

    Every day the gesture touches is renumbered ``0..n-1``; only stops whose
    ``order`` or ``day`` actually changes appear in the result.
    """
    stops = list(stops)
    move = resolve_move(stops, moved_stop_id, target)
    if move is None:
        return []

    source_list = stops_for_day(stops, move.source_day)

    if move.kind == "reorder":
        reordered = array_move(source_list, move.source_index, move.target_index)
        return _renumber(reordered, move.source_day)

    if move.kind == "swap":
        target_stop = move.target_stop
        if target_stop is None:
            return []
        if move.source_day == move.target_day:
            swapped = list(source_list)
            swapped[move.source_index], swapped[move.target_index] = (
                swapped[move.target_index],
                swapped[move.source_index],
            )
            return _renumber(swapped, move.source_day)
        target_list = stops_for_day(stops, move.target_day)
        source_list[move.source_index] = target_stop
        target_list[move.target_index] = move.moved
        return _renumber(source_list, move.source_day) + _renumber(target_list, move.target_day)

    remaining = [s for s in source_list if s.id != move.moved.id]
    destination = stops_for_day(stops, move.target_day)
    destination.insert(move.target_index, move.moved)
    logger.debug(
        "Moving %s from day %d to day %d at index %d",
        move.moved.id,
        move.source_day,
        move.target_day,
        move.target_index,
    )
    return _renumber(remaining, move.source_day) + _renumber(
        destination, move.target_day, always_include=move.moved.id
    )


def _renumber(day_list: List[Stop], day: int, always_include: Optional[str] = None) -> List[StopUpdate]:
    updates: List[StopUpdate] = []
    for index, stop in enumerate(day_list):
        changes = StopChanges()
        if stop.order != index or stop.id == always_include:
            changes.order = index
        if stop.day != day:
            changes.day = day
        if changes.order is not None or changes.day is not None:
            updates.append(StopUpdate(id=stop.id, updates=changes))
    return updates


def _index_of(day_list: List[Stop], stop_id: str) -> int:
    for index, stop in enumerate(day_list):
        if stop.id == stop_id:
            return index
    raise ValueError(f"Stop {stop_id} is not part of this day")
