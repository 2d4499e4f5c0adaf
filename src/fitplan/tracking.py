"""Progress classification and consistency rules for edited task records."""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from datetime import date

from fitplan.errors import ValidationError
from fitplan.models import Milestone, MilestoneTask, TaskStatus, parse_date, parse_int, parse_status
from fitplan.settings import Settings, get_settings
from fitplan.workdays import add_working_days

logger = logging.getLogger(__name__)

DATE_FIELDS = ("actual_start", "actual_end", "outlook_completion")
TEXT_FIELDS = ("phase", "name", "responsible_person", "remark")

# Fixed precedence when several fields change in one update: status-driven
# rules run before date-driven ones, completion last.
OVERRIDE_ORDER = (
    "status",
    "actual_start",
    "actual_end",
    "outlook_completion",
    "duration",
    "completion_percent",
    *TEXT_FIELDS,
)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def delay_status(delay_days: int, settings: Settings | None = None) -> TaskStatus:
    settings = settings or get_settings()
    if delay_days <= settings.delay_threshold_days:
        return TaskStatus.LIKELY_DELAY
    return TaskStatus.DELAYED


def progress_percent(
    task: MilestoneTask,
    today: date,
    settings: Settings | None = None,
) -> int:
    """Elapsed share of the actual-start to planned-end window, 0-100."""
    settings = settings or get_settings()
    start, end = task.actual_start, task.planned_end
    if start is None or end is None or end <= start:
        return settings.default_progress_percent
    ratio = (today - start).days / (end - start).days
    pct = math.floor(ratio * 100 + 0.5)
    return max(0, min(100, pct))


def classify(
    task: MilestoneTask,
    today: date | None = None,
    settings: Settings | None = None,
) -> tuple[TaskStatus, int]:
    """Infer (status, completion percent) for one task.

    Only the task's own dates and *today* are consulted. The first matching
    rule wins: finished, not started, adverse outlook, planned end passed,
    otherwise on track.
    """
    settings = settings or get_settings()
    today = today or date.today()

    if task.actual_end is not None:
        if task.planned_end is not None and task.actual_end > task.planned_end:
            delay = (task.actual_end - task.planned_end).days
            return delay_status(delay, settings), 100
        return TaskStatus.COMPLETED, 100

    if task.actual_start is None:
        return TaskStatus.NOT_STARTED, 0

    completion = progress_percent(task, today, settings)

    if (
        task.outlook_completion is not None
        and task.planned_end is not None
        and task.outlook_completion > task.planned_end
    ):
        delay = (task.outlook_completion - task.planned_end).days
        return delay_status(delay, settings), completion

    if task.planned_end is not None and today > task.planned_end:
        delay = (today - task.planned_end).days
        return delay_status(delay, settings), completion

    return TaskStatus.ON_TRACK, completion


def outlook_for(task: MilestoneTask) -> date | None:
    """Projected finish from the actual start and the duration."""
    if task.actual_start is None or task.duration is None:
        return None
    return add_working_days(task.actual_start, task.duration)


# ---------------------------------------------------------------------------
# Edits
# ---------------------------------------------------------------------------


def _coerce(field_name: str, value):
    if field_name == "status":
        return parse_status(value)
    if field_name in DATE_FIELDS:
        return parse_date(value, field_name)
    if field_name == "duration":
        duration = parse_int(value, field_name)
        if duration < 0:
            raise ValidationError(field_name, "must not be negative")
        return duration
    if field_name == "completion_percent":
        pct = parse_int(value, field_name)
        if not 0 <= pct <= 100:
            raise ValidationError(field_name, "must be between 0 and 100")
        return pct
    if field_name in TEXT_FIELDS:
        return "" if value is None else str(value)
    if field_name in ("planned_start", "planned_end"):
        raise ValidationError(field_name, "planned dates are set by the planner; change the duration or project start")
    raise ValidationError(field_name, "not an editable task field")


def _status_rule(task, field_name, value, prior, today, settings) -> None:
    if field_name != "status":
        return
    task.status = value
    if value == TaskStatus.COMPLETED:
        task.completion_percent = 100
        if task.actual_end is None:
            task.actual_end = today
    elif value == TaskStatus.NOT_STARTED:
        task.completion_percent = 0
        task.actual_start = None
        task.actual_end = None
        task.outlook_completion = None
    elif value == TaskStatus.ON_TRACK:
        # reopened: an actual end would mark it completed again on refresh
        task.actual_end = None
        if task.actual_start is None:
            task.actual_start = today
        if task.completion_percent in (0, 100):
            task.completion_percent = max(
                progress_percent(task, today, settings), settings.started_floor_percent
            )


def _actual_end_rule(task, field_name, value, prior, today, settings) -> None:
    if field_name == "actual_end" and value is not None:
        task.status = TaskStatus.COMPLETED
        task.completion_percent = 100


def _actual_start_rule(task, field_name, value, prior, today, settings) -> None:
    if field_name == "actual_start" and value is not None and prior.status == TaskStatus.NOT_STARTED:
        task.status = TaskStatus.ON_TRACK
        task.completion_percent = max(task.completion_percent, settings.started_floor_percent)


def _completion_rule(task, field_name, value, prior, today, settings) -> None:
    if field_name != "completion_percent":
        return
    task.completion_percent = value
    if value == 100:
        task.status = TaskStatus.COMPLETED
        if task.actual_end is None:
            task.actual_end = today


_RULES = (_status_rule, _actual_end_rule, _actual_start_rule, _completion_rule)


def apply_override(
    task: MilestoneTask,
    field_name: str,
    value,
    today: date | None = None,
    settings: Settings | None = None,
) -> MilestoneTask:
    """Return a copy of *task* with one field edited and made consistent.

    The field is assigned, the outlook is re-projected when the actual start
    or duration moved, the task is re-classified, and finally the edit's
    side effects are applied (a hand-picked status sticks, an actual end
    completes the task, and so on).
    """
    settings = settings or get_settings()
    today = today or date.today()
    coerced = _coerce(field_name, value)

    updated = replace(task, **{field_name: coerced})
    if field_name in TEXT_FIELDS:
        return updated

    if field_name in ("actual_start", "duration"):
        outlook = outlook_for(updated)
        if outlook is not None:
            updated.outlook_completion = outlook

    updated.status, updated.completion_percent = classify(updated, today, settings)
    for rule in _RULES:
        rule(updated, field_name, coerced, task, today, settings)

    logger.debug(
        "%s: %s=%r -> %s (%d%%)",
        task.name,
        field_name,
        coerced,
        updated.status.value,
        updated.completion_percent,
    )
    return updated


def apply_overrides(
    task: MilestoneTask,
    changes: dict,
    today: date | None = None,
    settings: Settings | None = None,
) -> MilestoneTask:
    """Apply several edits in OVERRIDE_ORDER, whatever order *changes* has."""
    unknown = [k for k in changes if k not in OVERRIDE_ORDER]
    if unknown:
        raise ValidationError(unknown[0], "not an editable task field")
    for field_name in OVERRIDE_ORDER:
        if field_name in changes:
            task = apply_override(task, field_name, changes[field_name], today, settings)
    return task


# ---------------------------------------------------------------------------
# Milestone-level helpers
# ---------------------------------------------------------------------------


def refresh_progress(
    milestone: Milestone,
    today: date | None = None,
    settings: Settings | None = None,
) -> Milestone:
    """Re-derive outlook, status and completion for every task."""
    settings = settings or get_settings()
    today = today or date.today()
    refreshed: list[MilestoneTask] = []
    for task in milestone.tasks:
        outlook = task.outlook_completion or outlook_for(task)
        updated = replace(task, outlook_completion=outlook)
        updated.status, updated.completion_percent = classify(updated, today, settings)
        refreshed.append(updated)
    milestone.tasks = refreshed
    return milestone


def activity_stats(milestone: Milestone) -> tuple[int, int]:
    """Return (total tasks, completed tasks)."""
    finished = sum(1 for t in milestone.tasks if t.status == TaskStatus.COMPLETED)
    return len(milestone.tasks), finished
