"""Unit tests for the scheduling engine building blocks."""
from __future__ import annotations

from datetime import date, datetime
from types import SimpleNamespace

import pytest

from dreamplan.api.schemas.scheduling import ActionInput, AreaInput, ExistingOccurrenceInput
from dreamplan.services.scheduling import Failed, SchedulingPolicy, SchedulingValidationError, to_result
from dreamplan.services.scheduling.allocator import AllocationState, allocate
from dreamplan.services.scheduling.days import from_day, parse_date, to_day, weekday_of
from dreamplan.services.scheduling.idempotency import filter_already_seeded, max_seeded_numbers
from dreamplan.services.scheduling.queue import SlotRequest, build_queue, estimate_bounded_units, ordered_actions
from dreamplan.services.scheduling.window import (
    minimum_required_length,
    resolve_window,
    series_span_days,
)

JAN_1 = to_day(date(2024, 1, 1))


def test_epoch_day_round_trip_and_weekday() -> None:
    assert to_day(date(1970, 1, 1)) == 0
    assert from_day(JAN_1) == date(2024, 1, 1)
    assert weekday_of(JAN_1) == 0
    assert weekday_of(JAN_1 + 6) == 6


def test_parse_date_accepts_common_shapes() -> None:
    assert parse_date("2024-01-05") == date(2024, 1, 5)
    assert parse_date("2024-01-05T10:30:00Z") == date(2024, 1, 5)
    assert parse_date(datetime(2024, 1, 5, 23, 59)) == date(2024, 1, 5)
    assert parse_date("  ") is None
    assert parse_date(None) is None
    with pytest.raises(ValueError):
        parse_date("invalid-date")


def test_minimum_required_length_rounds_to_weeks() -> None:
    assert minimum_required_length(JAN_1, 12) == 7
    assert minimum_required_length(JAN_1, 30) == 7
    # Seven working days cross a Sunday.
    assert minimum_required_length(JAN_1, 31) == 14


def test_series_span_skips_rest_days() -> None:
    assert series_span_days(JAN_1, 3, 3, rest_weekday=6) == 8
    assert series_span_days(JAN_1, 3, 3, rest_weekday=None) == 7
    assert series_span_days(JAN_1, 0, 3, rest_weekday=6) == 0


def test_compaction_threshold_boundary() -> None:
    # Five units need one week; a two week window is not more than double that.
    at_limit = resolve_window("2024-01-01", "2024-01-14", 5)
    assert at_limit.auto_compacted is False

    over_limit = resolve_window("2024-01-01", "2024-01-15", 5)
    assert over_limit.auto_compacted is True
    assert over_limit.end_date == date(2024, 1, 7)
    assert over_limit.nominal_end == to_day(date(2024, 1, 15))


def test_compaction_disabled_for_open_ended_work() -> None:
    window = resolve_window("2024-01-01", "2024-06-30", None)

    assert window.auto_compacted is False
    assert window.end_date == date(2024, 6, 30)


def test_missing_end_date_defaults_to_policy_window() -> None:
    window = resolve_window(date(2024, 1, 1), None, 0, policy=SchedulingPolicy(default_window_days=30))

    assert window.end_date == date(2024, 1, 30)


def test_resolve_window_rejects_bad_input() -> None:
    with pytest.raises(SchedulingValidationError):
        resolve_window(None, "2024-01-31", 1)
    with pytest.raises(SchedulingValidationError):
        resolve_window("2024-01-01", "not-a-date", 1)
    with pytest.raises(SchedulingValidationError):
        resolve_window("2024-01-31", "2024-01-01", 1)


def test_ordered_actions_and_unit_estimate() -> None:
    areas = [AreaInput(id="b", position=1), AreaInput(id="a", position=0)]
    actions = [
        ActionInput(id="b1", area_id="b", position=0, slice_count_target=4),
        ActionInput(id="a2", area_id="a", position=2),
        ActionInput(id="a1", area_id="a", position=1),
    ]

    ordered, warnings = ordered_actions(areas, actions)

    assert [action.id for action in ordered] == ["a1", "a2", "b1"]
    assert warnings == []
    assert estimate_bounded_units(ordered) == 6
    assert estimate_bounded_units(ordered + [ActionInput(id="r", area_id="a", repeat_every_days=2)]) is None


def test_ordered_actions_ignores_areas_from_other_dreams() -> None:
    areas = [AreaInput(id="mine", dream_id="d1"), AreaInput(id="theirs", dream_id="d2")]
    actions = [ActionInput(id="x", area_id="mine"), ActionInput(id="y", area_id="theirs")]

    ordered, _ = ordered_actions(areas, actions, dream_id="d1")

    assert [action.id for action in ordered] == ["x"]


def test_build_queue_marks_later_repeat_cycles_optional() -> None:
    window = resolve_window("2024-01-01", "2024-01-10", None)
    areas = [AreaInput(id="a")]
    actions = [ActionInput(id="r", area_id="a", repeat_every_days=3)]

    queue = build_queue(areas, actions, window).requests

    assert [request.occurrence_no for request in queue] == [1, 2, 3, 4]
    assert queue[0].required is True
    assert all(not request.required for request in queue[1:])
    assert all(request.latest_day == to_day(date(2024, 1, 10)) for request in queue[1:])


def test_build_queue_caps_repeat_cycles() -> None:
    window = resolve_window("2024-01-01", "2024-12-31", None)
    policy = SchedulingPolicy(max_repeat_occurrences=10)

    queue = build_queue([AreaInput(id="a")], [ActionInput(id="r", area_id="a", repeat_every_days=1)], window, policy)

    assert len(queue.requests) == 10


def test_filter_already_seeded_keeps_higher_numbers_only() -> None:
    queue = tuple(
        SlotRequest(action_id="a", area_id="x", occurrence_no=number, earliest_day=JAN_1, priority=0)
        for number in range(1, 4)
    )
    existing = [
        ExistingOccurrenceInput(action_id="a", occurrence_no=2, due_on=date(2024, 1, 1)),
        ExistingOccurrenceInput(action_id="a", occurrence_no=1, due_on=date(2024, 1, 1)),
    ]

    assert max_seeded_numbers(existing) == {"a": 2}
    assert [request.occurrence_no for request in filter_already_seeded(queue, existing)] == [3]
    assert filter_already_seeded(queue, []) == queue


def test_allocate_only_places_action_heads_in_order() -> None:
    queue = (
        SlotRequest(action_id="a", area_id="x", occurrence_no=1, earliest_day=JAN_1, priority=0, spacing_days=2),
        SlotRequest(action_id="a", area_id="x", occurrence_no=2, earliest_day=JAN_1, priority=0, spacing_days=2),
        SlotRequest(action_id="b", area_id="x", occurrence_no=1, earliest_day=JAN_1, priority=1),
    )

    allocation = allocate(queue, JAN_1, JAN_1 + 5)

    placed = [(occ.action_id, occ.occurrence_no, occ.due_on) for occ in allocation.occurrences]
    assert placed == [
        ("a", 1, date(2024, 1, 1)),
        ("b", 1, date(2024, 1, 1)),
        ("a", 2, date(2024, 1, 3)),
    ]
    assert allocation.too_tight is False
    assert allocation.state.last_assigned["a"] == JAN_1 + 2
    assert allocation.state.day_load[JAN_1] == 2


def test_allocate_drops_optional_leftovers_without_tightness() -> None:
    queue = (
        SlotRequest(action_id="a", area_id="x", occurrence_no=1, earliest_day=JAN_1, priority=0, spacing_days=7),
        SlotRequest(
            action_id="a",
            area_id="x",
            occurrence_no=2,
            earliest_day=JAN_1,
            priority=0,
            spacing_days=7,
            required=False,
            latest_day=JAN_1 + 3,
        ),
    )

    allocation = allocate(queue, JAN_1, JAN_1 + 3)

    assert len(allocation.occurrences) == 1
    assert allocation.too_tight is False
    assert allocation.warnings == ()


def test_allocate_does_not_mutate_incoming_state() -> None:
    state = AllocationState.from_existing(
        [ExistingOccurrenceInput(action_id="a", occurrence_no=1, due_on=date(2024, 1, 1))]
    )
    queue = (SlotRequest(action_id="b", area_id="x", occurrence_no=1, earliest_day=JAN_1, priority=0),)

    allocation = allocate(queue, JAN_1, JAN_1 + 1, state)

    assert dict(state.day_load) == {JAN_1: 1}
    assert allocation.state.day_load[JAN_1] == 2


def test_policy_validation_and_settings() -> None:
    with pytest.raises(ValueError):
        SchedulingPolicy(daily_cap=0)
    with pytest.raises(ValueError):
        SchedulingPolicy(rest_weekday=7)

    settings = SimpleNamespace(
        scheduling_daily_cap=3,
        scheduling_rest_weekday=None,
        scheduling_compaction_ratio=3.0,
        scheduling_compaction_min_slack_days=14,
        scheduling_max_repeat_occurrences=50,
        scheduling_default_window_days=60,
    )
    policy = SchedulingPolicy.from_settings(settings)

    assert policy.daily_cap == 3
    assert policy.rest_weekday is None
    assert policy.default_window_days == 60


def test_to_result_renders_failure_and_rejects_unknown_outcomes() -> None:
    rendered = to_result(Failed(errors=("boom",)))

    assert rendered.success is False
    assert rendered.errors == ["boom"]
    with pytest.raises(TypeError):
        to_result(object())  # type: ignore[arg-type]
