"""
In-memory host store for trip stops.

The store is the only writer: scheduling functions read a snapshot and hand
back a batch, which is applied here all-or-nothing. Mutations on one trip
run under that trip's lock so a batch is never computed from a stale snapshot.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Iterable, List

from day_planner import config
from day_planner.orchestrator import apply_updates
from day_planner.schemas import Stop, StopUpdate

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
logger.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))
logger.propagate = False


class UnknownTripError(KeyError):
    pass


class UnknownStopError(KeyError):
    pass


class TripStore:
    def __init__(self) -> None:
        self._stops: Dict[str, List[Stop]] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, trip_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(trip_id)
            if lock is None:
                lock = self._locks[trip_id] = threading.Lock()
            return lock

    def replace(self, trip_id: str, stops: Iterable[Stop]) -> List[Stop]:
        with self._lock_for(trip_id):
            self._stops[trip_id] = list(stops)
            logger.info("Loaded %d stops for trip %s", len(self._stops[trip_id]), trip_id)
            return list(self._stops[trip_id])

    def snapshot(self, trip_id: str) -> List[Stop]:
        with self._lock_for(trip_id):
            return list(self._require(trip_id))

    def apply_batch(self, trip_id: str, updates: Iterable[StopUpdate]) -> List[Stop]:
        with self._lock_for(trip_id):
            return self._apply(trip_id, list(updates))

    def mutate(
        self,
        trip_id: str,
        planner: Callable[[List[Stop]], Iterable[StopUpdate]],
    ) -> List[Stop]:
        """Compute a batch from the current snapshot and apply it while still holding the lock."""
        with self._lock_for(trip_id):
            current = list(self._require(trip_id))
            return self._apply(trip_id, list(planner(current)))

    def _require(self, trip_id: str) -> List[Stop]:
        try:
            return self._stops[trip_id]
        except KeyError:
            raise UnknownTripError(trip_id) from None

    def _apply(self, trip_id: str, updates: List[StopUpdate]) -> List[Stop]:
        current = self._require(trip_id)
        known = {s.id for s in current}
        missing = [u.id for u in updates if u.id not in known]
        if missing:
            raise UnknownStopError(", ".join(missing))
        if not updates:
            return list(current)

        self._stops[trip_id] = apply_updates(current, updates)
        logger.info("Applied %d updates to trip %s", len(updates), trip_id)
        return list(self._stops[trip_id])
