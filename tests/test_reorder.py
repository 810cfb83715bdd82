from collections import defaultdict

from day_planner.orchestrator import apply_updates
from day_planner.schemas import MoveTarget, Stop
from day_planner.scheduling.reorder import build_reorder, classify_move, stops_for_day


def _stop(stop_id: str, day: int, order: int) -> Stop:
    return Stop(id=stop_id, name=stop_id, day=day, order=order)


def _trip():
    return [
        _stop("A", 1, 0),
        _stop("B", 1, 1),
        _stop("D", 1, 2),
        _stop("C", 2, 0),
        _stop("E", 2, 1),
    ]


def _orders_by_day(stops):
    days = defaultdict(list)
    for stop in stops:
        days[stop.day].append(stop.order)
    return {day: sorted(orders) for day, orders in days.items()}


def _ids_for_day(stops, day):
    return [s.id for s in stops_for_day(stops, day)]


def test_same_day_move_takes_target_slot():
    stops = _trip()

    updates = build_reorder(stops, "D", MoveTarget(target_stop_id="A"))
    result = apply_updates(stops, updates)

    assert _ids_for_day(result, 1) == ["D", "A", "B"]
    assert {u.id for u in updates} == {"A", "B", "D"}
    assert all(u.updates.day is None for u in updates)


def test_same_day_move_down_shifts_others_up():
    stops = _trip()

    result = apply_updates(stops, build_reorder(stops, "A", MoveTarget(target_stop_id="D")))

    assert _ids_for_day(result, 1) == ["B", "D", "A"]
    assert _orders_by_day(result)[1] == [0, 1, 2]


def test_unchanged_stops_are_omitted():
    stops = _trip()

    updates = build_reorder(stops, "D", MoveTarget(target_stop_id="B"))

    assert {u.id for u in updates} == {"B", "D"}


def test_same_position_is_a_no_op():
    stops = _trip()

    assert build_reorder(stops, "A", MoveTarget(target_day=1, target_index=0)) == []
    assert build_reorder(stops, "A", MoveTarget(target_stop_id="A")) == []


def test_cross_day_move_between_two_stops():
    stops = [
        _stop("A", 1, 0),
        _stop("B", 1, 1),
        _stop("C", 2, 0),
        _stop("E", 2, 1),
    ]

    updates = build_reorder(stops, "C", MoveTarget(target_stop_id="B"))
    result = apply_updates(stops, updates)

    assert _ids_for_day(result, 1) == ["A", "C", "B"]
    assert _ids_for_day(result, 2) == ["E"]
    assert _orders_by_day(result) == {1: [0, 1, 2], 2: [0]}

    by_id = {u.id: u.updates for u in updates}
    assert set(by_id) == {"C", "B", "E"}
    assert by_id["C"].day == 1
    assert by_id["C"].order == 1
    assert by_id["E"].order == 0
    assert by_id["E"].day is None


def test_move_to_empty_day_appends_at_zero():
    stops = _trip()

    updates = build_reorder(stops, "C", MoveTarget(target_day=3))
    result = apply_updates(stops, updates)

    by_id = {u.id: u.updates for u in updates}
    assert by_id["C"].day == 3
    assert by_id["C"].order == 0
    assert _ids_for_day(result, 3) == ["C"]
    assert _orders_by_day(result)[2] == [0]


def test_explicit_index_is_clamped_to_day_length():
    stops = _trip()

    result = apply_updates(stops, build_reorder(stops, "C", MoveTarget(target_day=1, target_index=99)))

    assert _ids_for_day(result, 1) == ["A", "B", "D", "C"]
    assert _orders_by_day(result)[1] == [0, 1, 2, 3]


def test_explicit_index_on_other_day_inserts_there():
    stops = _trip()

    result = apply_updates(stops, build_reorder(stops, "A", MoveTarget(target_day=2, target_index=1)))

    assert _ids_for_day(result, 2) == ["C", "A", "E"]
    assert _ids_for_day(result, 1) == ["B", "D"]
    assert _orders_by_day(result) == {1: [0, 1], 2: [0, 1, 2]}


def test_swap_across_days_exchanges_slots():
    stops = _trip()

    updates = build_reorder(stops, "A", MoveTarget(target_stop_id="E", mode="swap"))
    result = apply_updates(stops, updates)

    assert _ids_for_day(result, 1) == ["E", "B", "D"]
    assert _ids_for_day(result, 2) == ["C", "A"]
    assert {u.id for u in updates} == {"A", "E"}


def test_swap_within_day():
    stops = _trip()

    result = apply_updates(stops, build_reorder(stops, "A", MoveTarget(target_stop_id="D", mode="swap")))

    assert _ids_for_day(result, 1) == ["D", "B", "A"]


def test_unknown_stops_produce_no_updates():
    stops = _trip()

    assert build_reorder(stops, "missing", MoveTarget(target_stop_id="A")) == []
    assert build_reorder(stops, "A", MoveTarget(target_stop_id="missing")) == []
    assert build_reorder(stops, "A", MoveTarget()) == []
    assert build_reorder(stops, "A", MoveTarget(target_day=2, mode="swap")) == []


def test_gapped_days_are_renumbered_contiguously():
    stops = [
        _stop("A", 1, 0),
        _stop("B", 1, 2),
        _stop("C", 1, 5),
        _stop("X", 2, 3),
        _stop("Y", 2, 7),
    ]

    result = apply_updates(stops, build_reorder(stops, "C", MoveTarget(target_stop_id="A")))
    assert _orders_by_day(result)[1] == [0, 1, 2]

    result = apply_updates(stops, build_reorder(stops, "X", MoveTarget(target_stop_id="B")))
    assert _orders_by_day(result) == {1: [0, 1, 2, 3], 2: [0]}


def test_every_move_keeps_orders_contiguous():
    stops = _trip()
    ids = [s.id for s in stops]

    for moved in ids:
        for target in ids:
            for mode in ("move", "swap"):
                updates = build_reorder(stops, moved, MoveTarget(target_stop_id=target, mode=mode))
                result = apply_updates(stops, updates)
                assert len(result) == len(stops)
                for orders in _orders_by_day(result).values():
                    assert orders == list(range(len(orders)))


def test_classify_move():
    stops = _trip()

    assert classify_move(stops, "A", MoveTarget(target_stop_id="B")) == "reorder"
    assert classify_move(stops, "A", MoveTarget(target_stop_id="C")) == "move_to_day"
    assert classify_move(stops, "A", MoveTarget(target_stop_id="C", mode="swap")) == "swap"
    assert classify_move(stops, "A", MoveTarget(target_stop_id="A")) is None
