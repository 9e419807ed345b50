"""Behavioural tests for the occurrence scheduling engine."""
from __future__ import annotations

from collections import Counter
from datetime import date, timedelta

from dreamplan.api.schemas.scheduling import (
    DreamSchedulingInput,
    ExistingOccurrenceInput,
    SchedulingContext,
)
from dreamplan.services.scheduling import (
    Failed,
    Scheduled,
    ScheduledTight,
    ScheduledWithCompaction,
    SchedulingPolicy,
    schedule_dream_actions,
    schedule_dream_actions_result,
)

CONTEXT = SchedulingContext(user_id="user-1", timezone="UTC")
SUNDAY = 6


def _input(start, end, actions, areas=None, existing=None) -> DreamSchedulingInput:
    if areas is None:
        areas = [{"id": "area-1", "dream_id": "dream-1", "position": 0}]
    return DreamSchedulingInput.model_validate(
        {
            "dream": {"id": "dream-1", "start_date": start, "end_date": end},
            "areas": areas,
            "actions": actions,
            "existing_occurrences": existing or [],
        }
    )


def _one_offs(count: int, area_id: str = "area-1"):
    return [{"id": f"task-{idx:02d}", "area_id": area_id, "position": idx} for idx in range(count)]


def test_month_window_with_ten_tasks_respects_cap_and_rest_day() -> None:
    result = schedule_dream_actions_result(CONTEXT, _input("2024-01-01", "2024-01-31", _one_offs(10)))

    assert result.success is True
    assert len(result.occurrences) == 10
    assert all(occ.due_on.weekday() != SUNDAY for occ in result.occurrences)
    per_day = Counter(occ.due_on for occ in result.occurrences)
    assert max(per_day.values()) <= 5
    assert all(date(2024, 1, 1) <= occ.due_on <= date(2024, 1, 31) for occ in result.occurrences)


def test_week_window_with_one_task_avoids_sunday() -> None:
    result = schedule_dream_actions_result(CONTEXT, _input("2024-01-01", "2024-01-07", _one_offs(1)))

    assert result.success is True
    assert len(result.occurrences) == 1
    assert result.occurrences[0].due_on != date(2024, 1, 7)
    assert result.occurrences[0].due_on == date(2024, 1, 1)
    assert result.auto_compacted is False


def test_invalid_start_date_fails_with_single_error() -> None:
    result = schedule_dream_actions_result(CONTEXT, _input("invalid-date", "2024-01-31", _one_offs(2)))

    assert result.success is False
    assert len(result.errors) == 1
    assert result.occurrences == []


def test_end_before_start_fails() -> None:
    outcome = schedule_dream_actions(CONTEXT, _input("2024-02-01", "2024-01-01", _one_offs(1)))

    assert isinstance(outcome, Failed)
    assert "before" in outcome.errors[0]


def test_missing_dream_fails() -> None:
    outcome = schedule_dream_actions(CONTEXT, DreamSchedulingInput())

    assert isinstance(outcome, Failed)
    assert outcome.errors == ("Dream is required",)


def test_empty_actions_succeed_with_no_occurrences() -> None:
    outcome = schedule_dream_actions(CONTEXT, _input("2024-01-01", "2024-01-31", []))

    assert isinstance(outcome, Scheduled)
    assert outcome.occurrences == ()


def test_compaction_keeps_every_occurrence_inside_recommended_end() -> None:
    outcome = schedule_dream_actions(CONTEXT, _input("2024-01-01", "2024-01-31", _one_offs(10)))

    assert isinstance(outcome, ScheduledWithCompaction)
    assert outcome.recommended_end == date(2024, 1, 7)
    assert all(occ.due_on <= outcome.recommended_end for occ in outcome.occurrences)


def test_daily_cap_overflow_is_reported_as_too_tight() -> None:
    # Monday and Tuesday hold ten slots.
    outcome = schedule_dream_actions(CONTEXT, _input("2024-01-01", "2024-01-02", _one_offs(12)))

    assert isinstance(outcome, ScheduledTight)
    assert len(outcome.occurrences) == 10
    assert max(Counter(occ.due_on for occ in outcome.occurrences).values()) == 5
    placed_ids = {occ.action_id for occ in outcome.occurrences}
    assert placed_ids == {f"task-{idx:02d}" for idx in range(10)}
    assert len(outcome.warnings) == 2
    assert any("task-10" in warning for warning in outcome.warnings)
    assert any("task-11" in warning for warning in outcome.warnings)


def test_priority_follows_area_then_action_position() -> None:
    policy = SchedulingPolicy(daily_cap=1, rest_weekday=None)
    areas = [
        {"id": "area-late", "dream_id": "dream-1", "position": 1},
        {"id": "area-early", "dream_id": "dream-1", "position": 0},
    ]
    actions = [
        {"id": "c", "area_id": "area-late", "position": 0},
        {"id": "b", "area_id": "area-early", "position": 1},
        {"id": "a", "area_id": "area-early", "position": 0},
    ]
    result = schedule_dream_actions_result(
        CONTEXT, _input("2024-01-01", "2024-01-03", actions, areas=areas), policy
    )

    due = {occ.action_id: occ.due_on for occ in result.occurrences}
    assert due == {
        "a": date(2024, 1, 1),
        "b": date(2024, 1, 2),
        "c": date(2024, 1, 3),
    }


def test_repeat_spacing_is_respected() -> None:
    actions = [{"id": "every-3", "area_id": "area-1", "position": 0, "repeat_every_days": 3}]
    result = schedule_dream_actions_result(CONTEXT, _input("2024-01-01", "2024-01-31", actions))

    dates = [occ.due_on for occ in result.occurrences]
    assert dates[0] == date(2024, 1, 1)
    assert all((later - earlier).days >= 3 for earlier, later in zip(dates, dates[1:]))
    assert all(day.weekday() != SUNDAY for day in dates)
    assert [occ.occurrence_no for occ in result.occurrences] == list(range(1, len(dates) + 1))
    assert result.too_tight is False
    assert result.auto_compacted is False


def test_open_ended_repeat_without_end_uses_default_window() -> None:
    actions = [{"id": "daily", "area_id": "area-1", "position": 0, "repeat_every_days": 1}]
    result = schedule_dream_actions_result(CONTEXT, _input("2024-01-01", None, actions))

    default_end = date(2024, 1, 1) + timedelta(days=89)
    assert result.success is True
    assert result.too_tight is False
    # 90 days starting on a Monday contain 12 Sundays.
    assert len(result.occurrences) == 78
    assert result.occurrences[-1].due_on <= default_end


def test_repeat_until_date_caps_cycles() -> None:
    actions = [
        {
            "id": "daily",
            "area_id": "area-1",
            "position": 0,
            "repeat_every_days": 1,
            "repeat_until_date": "2024-01-05",
        }
    ]
    result = schedule_dream_actions_result(CONTEXT, _input("2024-01-01", "2024-01-31", actions))

    assert [occ.due_on for occ in result.occurrences] == [date(2024, 1, day) for day in range(1, 6)]


def test_series_slices_are_spaced_and_numbered() -> None:
    actions = [
        {"id": "series", "area_id": "area-1", "position": 0, "slice_count_target": 3, "repeat_every_days": 2}
    ]
    result = schedule_dream_actions_result(CONTEXT, _input("2024-01-01", "2024-01-31", actions))

    assert [(occ.occurrence_no, occ.due_on) for occ in result.occurrences] == [
        (1, date(2024, 1, 1)),
        (2, date(2024, 1, 3)),
        (3, date(2024, 1, 5)),
    ]
    assert result.auto_compacted is True
    assert result.recommended_end == date(2024, 1, 7)


def test_compacted_window_falls_back_to_nominal_when_too_tight() -> None:
    policy = SchedulingPolicy(daily_cap=1, rest_weekday=None)
    actions = [
        {"id": "one", "area_id": "area-1", "position": 0},
        {"id": "two", "area_id": "area-1", "position": 1},
        {"id": "series", "area_id": "area-1", "position": 2, "slice_count_target": 3, "repeat_every_days": 3},
    ]
    result = schedule_dream_actions_result(CONTEXT, _input("2024-01-01", "2024-02-29", actions), policy)

    assert result.too_tight is False
    assert result.auto_compacted is False
    assert result.recommended_end is None
    series_dates = [occ.due_on for occ in result.occurrences if occ.action_id == "series"]
    assert series_dates == [date(2024, 1, 3), date(2024, 1, 6), date(2024, 1, 9)]


def test_rescheduling_with_previous_output_is_idempotent() -> None:
    first = schedule_dream_actions_result(CONTEXT, _input("2024-01-01", "2024-01-31", _one_offs(10)))
    existing = [
        {"action_id": occ.action_id, "occurrence_no": occ.occurrence_no, "due_on": occ.due_on.isoformat()}
        for occ in first.occurrences
    ]

    second = schedule_dream_actions_result(
        CONTEXT, _input("2024-01-01", "2024-01-31", _one_offs(10), existing=existing)
    )

    assert second.success is True
    assert second.occurrences == []


def test_existing_repeat_continues_numbering_and_spacing() -> None:
    actions = [{"id": "weekly", "area_id": "area-1", "position": 0, "repeat_every_days": 7}]
    existing = [{"action_id": "weekly", "occurrence_no": 1, "due_on": "2024-01-01"}]
    result = schedule_dream_actions_result(
        CONTEXT, _input("2024-01-01", "2024-01-31", actions, existing=existing)
    )

    assert [(occ.occurrence_no, occ.due_on) for occ in result.occurrences] == [
        (2, date(2024, 1, 8)),
        (3, date(2024, 1, 15)),
        (4, date(2024, 1, 22)),
        (5, date(2024, 1, 29)),
    ]


def test_existing_occurrences_use_daily_capacity() -> None:
    existing = [
        {"action_id": f"legacy-{idx}", "occurrence_no": 1, "due_on": "2024-01-01"} for idx in range(5)
    ]
    result = schedule_dream_actions_result(
        CONTEXT, _input("2024-01-01", "2024-01-07", _one_offs(1), existing=existing)
    )

    assert [occ.due_on for occ in result.occurrences] == [date(2024, 1, 2)]


def test_existing_occurrences_are_not_mutated() -> None:
    data = _input(
        "2024-01-01",
        "2024-01-31",
        [{"id": "weekly", "area_id": "area-1", "position": 0, "repeat_every_days": 7}],
        existing=[{"action_id": "weekly", "occurrence_no": 1, "due_on": "2024-01-01"}],
    )
    before = [occ.model_copy() for occ in data.existing_occurrences]

    schedule_dream_actions(CONTEXT, data)

    assert data.existing_occurrences == before
    assert isinstance(data.existing_occurrences[0], ExistingOccurrenceInput)


def test_deleted_inactive_and_orphaned_actions_are_skipped() -> None:
    areas = [
        {"id": "area-1", "dream_id": "dream-1", "position": 0},
        {"id": "area-gone", "dream_id": "dream-1", "position": 1, "deleted_at": "2024-01-01T00:00:00Z"},
    ]
    actions = [
        {"id": "live", "area_id": "area-1", "position": 0},
        {"id": "paused", "area_id": "area-1", "position": 1, "is_active": False},
        {"id": "removed", "area_id": "area-1", "position": 2, "deleted_at": "2024-01-01T00:00:00Z"},
        {"id": "in-deleted-area", "area_id": "area-gone", "position": 0},
        {"id": "orphan", "area_id": "area-missing", "position": 0},
    ]
    result = schedule_dream_actions_result(CONTEXT, _input("2024-01-01", "2024-01-07", actions, areas=areas))

    assert [occ.action_id for occ in result.occurrences] == ["live"]
    assert any("orphan" in warning for warning in result.warnings)
    assert result.too_tight is False


def test_occurrence_payload_carries_action_details() -> None:
    actions = [
        {"id": "task", "area_id": "area-1", "position": 0, "difficulty": "hard", "est_minutes": 45},
    ]
    result = schedule_dream_actions_result(CONTEXT, _input("2024-01-01", "2024-01-07", actions))

    occurrence = result.occurrences[0]
    assert occurrence.area_id == "area-1"
    assert occurrence.difficulty == "hard"
    assert occurrence.est_minutes == 45
    assert occurrence.planned_due_on == occurrence.due_on
    assert occurrence.defer_count == 0
