from datetime import date

import pytest

from fitplan.errors import ValidationError
from fitplan.models import Milestone, MilestoneTask, TaskStatus
from fitplan.settings import Settings
from fitplan.tracking import (
    activity_stats,
    apply_override,
    apply_overrides,
    classify,
    progress_percent,
    refresh_progress,
)


def _task(**kw):
    defaults = dict(
        name="Civil works",
        duration=5,
        planned_start=date(2024, 2, 5),
        planned_end=date(2024, 2, 10),
    )
    defaults.update(kw)
    return MilestoneTask(**defaults)


# ---------------------------------------------------------------------------
# classify
# ---------------------------------------------------------------------------


def test_finished_late_within_threshold():
    t = _task(actual_start=date(2024, 2, 5), actual_end=date(2024, 2, 20))
    assert classify(t, date(2024, 3, 1)) == (TaskStatus.LIKELY_DELAY, 100)


def test_finished_very_late():
    t = _task(actual_start=date(2024, 2, 5), actual_end=date(2024, 3, 10))
    assert classify(t, date(2024, 3, 11)) == (TaskStatus.DELAYED, 100)


def test_finished_on_time():
    t = _task(actual_start=date(2024, 2, 5), actual_end=date(2024, 2, 10))
    assert classify(t, date(2024, 4, 1)) == (TaskStatus.COMPLETED, 100)


def test_finished_without_plan_is_completed():
    t = _task(planned_end=None, actual_end=date(2024, 2, 10))
    assert classify(t, date(2024, 4, 1)) == (TaskStatus.COMPLETED, 100)


def test_delay_threshold_boundary():
    on_edge = _task(actual_end=date(2024, 2, 25))  # 15 days late
    past_edge = _task(actual_end=date(2024, 2, 26))
    assert classify(on_edge, date(2024, 3, 1))[0] == TaskStatus.LIKELY_DELAY
    assert classify(past_edge, date(2024, 3, 1))[0] == TaskStatus.DELAYED


def test_not_started():
    assert classify(_task(), date(2024, 3, 1)) == (TaskStatus.NOT_STARTED, 0)


def test_adverse_outlook():
    t = _task(
        actual_start=date(2024, 2, 1),
        planned_end=date(2024, 2, 11),
        outlook_completion=date(2024, 2, 20),
    )
    assert classify(t, date(2024, 2, 6)) == (TaskStatus.LIKELY_DELAY, 50)


def test_planned_end_passed():
    t = _task(actual_start=date(2024, 2, 1), planned_end=date(2024, 2, 11))
    assert classify(t, date(2024, 3, 1)) == (TaskStatus.DELAYED, 100)


def test_on_track_progress():
    t = _task(actual_start=date(2024, 2, 1), planned_end=date(2024, 2, 11))
    assert classify(t, date(2024, 2, 4)) == (TaskStatus.ON_TRACK, 30)


def test_progress_rounds_half_up():
    t = _task(actual_start=date(2024, 2, 1), planned_end=date(2024, 2, 9))
    assert progress_percent(t, date(2024, 2, 2)) == 13


def test_progress_default_when_window_empty():
    t = _task(actual_start=date(2024, 2, 10), planned_end=date(2024, 2, 10))
    assert classify(t, date(2024, 2, 10)) == (TaskStatus.ON_TRACK, 50)


def test_classify_is_deterministic():
    t = _task(actual_start=date(2024, 2, 5), outlook_completion=date(2024, 2, 14))
    today = date(2024, 2, 8)
    assert classify(t, today) == classify(t, today)


def test_custom_threshold():
    t = _task(actual_end=date(2024, 2, 20))
    assert classify(t, date(2024, 3, 1), Settings(delay_threshold_days=5))[0] == TaskStatus.DELAYED


# ---------------------------------------------------------------------------
# apply_override
# ---------------------------------------------------------------------------

TODAY = date(2024, 2, 7)


def test_set_completed_fills_actual_end():
    t = _task(actual_start=date(2024, 2, 5), status=TaskStatus.ON_TRACK, completion_percent=40)
    out = apply_override(t, "status", "Completed", TODAY)
    assert out.status == TaskStatus.COMPLETED
    assert out.completion_percent == 100
    assert out.actual_end == TODAY
    assert t.status == TaskStatus.ON_TRACK  # input untouched


def test_set_completed_keeps_existing_actual_end():
    t = _task(actual_start=date(2024, 2, 5), actual_end=date(2024, 2, 9))
    out = apply_override(t, "status", TaskStatus.COMPLETED, TODAY)
    assert out.actual_end == date(2024, 2, 9)


def test_set_not_started_clears_dates():
    t = _task(
        actual_start=date(2024, 2, 5),
        actual_end=date(2024, 2, 9),
        outlook_completion=date(2024, 2, 10),
        status=TaskStatus.COMPLETED,
        completion_percent=100,
    )
    out = apply_override(t, "status", "Not Started", TODAY)
    assert out.status == TaskStatus.NOT_STARTED
    assert out.completion_percent == 0
    assert out.actual_start is None
    assert out.actual_end is None
    assert out.outlook_completion is None


def test_set_on_track_starts_task_today():
    out = apply_override(_task(), "status", "On track", date(2024, 2, 5))
    assert out.status == TaskStatus.ON_TRACK
    assert out.actual_start == date(2024, 2, 5)
    assert out.completion_percent == 10


def test_set_on_track_recomputes_progress():
    t = _task(actual_start=date(2024, 2, 1), planned_end=date(2024, 2, 11), actual_end=date(2024, 2, 5))
    out = apply_override(t, "status", "On track", date(2024, 2, 6))
    assert out.status == TaskStatus.ON_TRACK
    assert out.completion_percent == 50
    assert out.actual_end is None


def test_reopened_task_stays_open_after_refresh():
    t = _task(actual_start=date(2024, 2, 1), planned_end=date(2024, 2, 11), actual_end=date(2024, 2, 5))
    m = Milestone(project_start=date(2024, 2, 1), tasks=[apply_override(t, "status", "On track", date(2024, 2, 6))])
    refresh_progress(m, date(2024, 2, 6))
    assert m.tasks[0].status == TaskStatus.ON_TRACK
    assert m.tasks[0].actual_end is None


def test_hand_picked_delay_status_sticks():
    t = _task(actual_start=date(2024, 2, 5))
    out = apply_override(t, "status", "Delayed", TODAY)
    assert out.status == TaskStatus.DELAYED


def test_setting_actual_end_completes_task():
    t = _task(actual_start=date(2024, 2, 5), status=TaskStatus.ON_TRACK)
    out = apply_override(t, "actual_end", "2024-03-01", date(2024, 3, 2))
    assert out.status == TaskStatus.COMPLETED
    assert out.completion_percent == 100
    assert out.actual_end == date(2024, 3, 1)


def test_setting_actual_start_on_unstarted_task():
    out = apply_override(_task(), "actual_start", "2024-02-05", date(2024, 2, 5))
    assert out.status == TaskStatus.ON_TRACK
    assert out.completion_percent == 10
    assert out.outlook_completion == date(2024, 2, 10)


def test_setting_actual_start_on_started_task_reclassifies():
    t = _task(actual_start=date(2024, 2, 5), status=TaskStatus.ON_TRACK, completion_percent=20)
    out = apply_override(t, "actual_start", date(2024, 2, 1), date(2024, 3, 1))
    assert out.status == TaskStatus.DELAYED


def test_duration_change_reprojects_outlook():
    t = _task(actual_start=date(2024, 2, 5), status=TaskStatus.ON_TRACK)
    out = apply_override(t, "duration", 7, date(2024, 2, 6))
    assert out.duration == 7
    assert out.outlook_completion == date(2024, 2, 13)
    assert out.status == TaskStatus.LIKELY_DELAY


def test_completion_100_completes_task():
    t = _task(actual_start=date(2024, 2, 5), status=TaskStatus.ON_TRACK)
    out = apply_override(t, "completion_percent", 100, TODAY)
    assert out.status == TaskStatus.COMPLETED
    assert out.actual_end == TODAY


def test_partial_completion_sticks():
    t = _task(actual_start=date(2024, 2, 5), status=TaskStatus.ON_TRACK)
    out = apply_override(t, "completion_percent", "40", TODAY)
    assert out.completion_percent == 40
    assert out.status == TaskStatus.ON_TRACK


def test_remark_does_not_reclassify():
    t = _task(status=TaskStatus.ON_TRACK, completion_percent=30)
    out = apply_override(t, "remark", "waiting on tiles", TODAY)
    assert out.remark == "waiting on tiles"
    assert out.status == TaskStatus.ON_TRACK
    assert out.completion_percent == 30


@pytest.mark.parametrize(
    "field_name, value",
    [
        ("completion_percent", 150),
        ("duration", -1),
        ("actual_end", "yesterday"),
        ("status", "Paused"),
        ("planned_end", "2024-02-10"),
        ("colour", "red"),
    ],
)
def test_invalid_edits_rejected(field_name, value):
    with pytest.raises(ValidationError):
        apply_override(_task(), field_name, value, TODAY)


def test_apply_overrides_uses_fixed_order():
    t = _task(actual_start=date(2024, 2, 1), status=TaskStatus.ON_TRACK, completion_percent=30)
    a = apply_overrides(t, {"status": "Not Started", "actual_start": "2024-02-05"}, date(2024, 2, 5))
    b = apply_overrides(t, {"actual_start": "2024-02-05", "status": "Not Started"}, date(2024, 2, 5))
    assert a == b
    assert a.status == TaskStatus.ON_TRACK
    assert a.actual_start == date(2024, 2, 5)
    assert a.completion_percent == 10


def test_apply_overrides_unknown_field():
    with pytest.raises(ValidationError):
        apply_overrides(_task(), {"status": "Completed", "budget": 10}, TODAY)


# ---------------------------------------------------------------------------
# Milestone helpers
# ---------------------------------------------------------------------------


def test_refresh_progress_and_stats():
    m = Milestone(
        project_start=date(2024, 2, 5),
        tasks=[
            _task(name="a", actual_start=date(2024, 2, 5), actual_end=date(2024, 2, 9)),
            _task(name="b", actual_start=date(2024, 2, 5)),
            _task(name="c"),
        ],
    )
    refresh_progress(m, date(2024, 2, 7))
    a, b, c = m.tasks
    assert a.status == TaskStatus.COMPLETED
    assert b.outlook_completion == date(2024, 2, 10)
    assert b.status == TaskStatus.ON_TRACK
    assert b.completion_percent == 40
    assert c.status == TaskStatus.NOT_STARTED
    assert activity_stats(m) == (3, 1)
