"""Greedy multi-objective ordering of a day's stops, plus itinerary analysis."""
from __future__ import annotations

import logging
import math
from typing import Dict, List, Sequence

from day_planner import config
from day_planner.schemas import DayScore, ItineraryAnalysis, Stop, StopChanges, StopUpdate

logger = logging.getLogger(__name__)

_EARTH_RADIUS_KM = 6371.0

DISTANCE_WEIGHT = 0.4
VARIETY_WEIGHT = 0.3
TIME_FLOW_WEIGHT = 0.3

_HEAVY_REPEAT_CATEGORIES = {"restaurant", "shop"}

_LONG_DISTANCE_KM = 20.0
_LOW_VARIETY = 0.3
_POOR_TIME_FLOW = 0.5


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points (Haversine formula) in km."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lam = math.radians(lon2 - lon1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lam / 2) ** 2
    )
    return 2 * _EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def total_distance_km(stops: Sequence[Stop]) -> float:
    """Sum of legs between consecutive stops; legs missing a coordinate count as zero."""
    total = 0.0
    for prev, curr in zip(stops, stops[1:]):
        if prev.has_coordinates and curr.has_coordinates:
            total += haversine_km(prev.latitude, prev.longitude, curr.latitude, curr.longitude)
    return total


def category_balance(stops: Sequence[Stop]) -> float:
    if len(stops) <= 1:
        return 1.0

    score = 0.0
    for prev, curr in zip(stops, stops[1:]):
        if curr.category == prev.category:
            score -= 0.5 if curr.category in _HEAVY_REPEAT_CATEGORIES else 0.2
        else:
            score += 0.3
    return max(0.0, score / len(stops))


def _hours(value: str) -> float:
    hours, minutes = value.split(":")[:2]
    return int(hours) + int(minutes) / 60


def time_flow_score(stops: Sequence[Stop]) -> float:
    """How well each stop's scheduled start suits its category."""
    if not stops:
        return 0.0

    score = 1.0
    for stop in stops:
        hour = _hours(stop.start_time or config.DEFAULT_DAY_START)
        category = stop.category

        if 6 <= hour <= 11 and category in ("attraction", "activity"):
            score += 0.2
        if 11 <= hour <= 14 and category in ("restaurant", "cafe"):
            score += 0.3
        if 14 <= hour <= 18 and category in ("shop", "attraction"):
            score += 0.2
        if 18 <= hour <= 22 and category in ("restaurant", "bar"):
            score += 0.3

        if category == "restaurant" and (hour < 11 or 14 < hour < 17):
            score -= 0.4

    return max(0.0, score / len(stops))


def composite_score(stops: Sequence[Stop]) -> float:
    return (
        DISTANCE_WEIGHT / (1 + total_distance_km(stops))
        + VARIETY_WEIGHT * category_balance(stops)
        + TIME_FLOW_WEIGHT * time_flow_score(stops)
    )


def optimize_day_order(day_stops: Sequence[Stop]) -> List[Stop]:
    """Greedy nearest-best-next ordering anchored on the first stop.

    Each round appends the remaining stop whose tentative sequence scores
    highest; ties go to the earlier candidate. Returns copies with ``order``
    renumbered, times untouched. Two stops or fewer come back as given.
    """
    if len(day_stops) <= 2:
        return list(day_stops)

    remaining = list(day_stops)
    ordered: List[Stop] = [remaining.pop(0)]

    while remaining:
        best_index = 0
        best_score = -math.inf
        for index, candidate in enumerate(remaining):
            score = composite_score(ordered + [candidate])
            if score > best_score:
                best_score = score
                best_index = index
        ordered.append(remaining.pop(best_index))

    logger.debug("Optimized day %s: %s", ordered[0].day, [s.id for s in ordered])
    return [stop.model_copy(update={"order": index}) for index, stop in enumerate(ordered)]


def _group_by_day(stops: Sequence[Stop]) -> Dict[int, List[Stop]]:
    by_day: Dict[int, List[Stop]] = {}
    for stop in stops:
        by_day.setdefault(stop.day, []).append(stop)
    return {day: sorted(by_day[day], key=lambda s: s.order) for day in sorted(by_day)}


def optimize_trip_itinerary(all_stops: Sequence[Stop]) -> List[Stop]:
    optimized: List[Stop] = []
    for day_stops in _group_by_day(all_stops).values():
        optimized.extend(optimize_day_order(day_stops))
    return optimized


def order_updates_for(optimized: Sequence[Stop], original: Sequence[Stop]) -> List[StopUpdate]:
    previous_orders = {s.id: s.order for s in original}
    return [
        StopUpdate(id=stop.id, updates=StopChanges(order=stop.order))
        for stop in optimized
        if previous_orders.get(stop.id) != stop.order
    ]


def analyze_day(day_stops: Sequence[Stop]) -> DayScore:
    return DayScore(
        day=day_stops[0].day if day_stops else 1,
        stop_ids=[s.id for s in day_stops],
        total_distance_km=total_distance_km(day_stops),
        category_balance=category_balance(day_stops),
        time_flow_score=time_flow_score(day_stops),
    )


def day_recommendations(score: DayScore) -> List[str]:
    notes: List[str] = []
    if score.total_distance_km > _LONG_DISTANCE_KM:
        notes.append(
            f"Day {score.day}: Consider reducing travel distance ({score.total_distance_km:.1f}km total)"
        )
    if score.category_balance < _LOW_VARIETY:
        notes.append(f"Day {score.day}: Mix up activity types to avoid repetitive experiences")
    if score.time_flow_score < _POOR_TIME_FLOW:
        notes.append(f"Day {score.day}: Adjust timing - some activities might be scheduled at odd hours")
    return notes


def analyze_itinerary(all_stops: Sequence[Stop]) -> ItineraryAnalysis:
    """Score every day as stored and collect recommendations. Changes nothing."""
    day_scores: List[DayScore] = []
    recommendations: List[str] = []
    total = 0.0

    for day_stops in _group_by_day(all_stops).values():
        score = analyze_day(day_stops)
        day_scores.append(score)
        total += score.category_balance + score.time_flow_score + 1 / (score.total_distance_km + 1)
        recommendations.extend(day_recommendations(score))

    overall = total / len(day_scores) if day_scores else 0.0
    return ItineraryAnalysis(overall_score=overall, recommendations=recommendations, day_scores=day_scores)
