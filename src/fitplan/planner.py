"""Sequential task-chain planning and the project flexibility buffer."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date

import networkx as nx

from fitplan.errors import InconsistentStateError, ValidationError
from fitplan.models import Milestone, MilestoneTask, parse_date, parse_int
from fitplan.workdays import add_working_days, count_working_days, next_working_day

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _validate_start(project_start) -> date:
    if project_start is None or project_start == "":
        raise ValidationError("project_start", "is required")
    return parse_date(project_start, "project_start")


def _validate_durations(tasks: list[MilestoneTask]) -> None:
    for i, task in enumerate(tasks):
        field_name = f"tasks[{i}].duration"
        if isinstance(task.duration, bool) or not isinstance(task.duration, int):
            raise ValidationError(field_name, f"expected an integer, got {task.duration!r}")
        if task.duration < 0:
            raise ValidationError(field_name, "must not be negative")


def dependency_graph(tasks: list[MilestoneTask]) -> nx.DiGraph:
    """Graph of task names with an edge dependency -> dependent.

    Raises ValidationError when a task names a dependency that is not in
    the list.
    """
    G = nx.DiGraph()
    for task in tasks:
        G.add_node(task.name, task=task)
    for i, task in enumerate(tasks):
        for dep in task.dependencies:
            if dep not in G:
                raise ValidationError(
                    f"tasks[{i}].dependencies",
                    f"'{task.name}' depends on unknown task '{dep}'",
                )
            G.add_edge(dep, task.name)
    return G


def check_dependencies(tasks: list[MilestoneTask]) -> nx.DiGraph:
    """Check that every dependency names a task earlier in the order.

    Tasks run strictly in list order, so a dependency on the task itself
    or on a later one can never be honoured.
    """
    G = dependency_graph(tasks)
    position: dict[str, int] = {}
    for i, task in enumerate(tasks):
        position.setdefault(task.name, i)
    for i, task in enumerate(tasks):
        for dep in task.dependencies:
            if position[dep] >= i:
                raise ValidationError(
                    f"tasks[{i}].dependencies",
                    f"'{task.name}' cannot depend on '{dep}', which is not scheduled before it",
                )
    return G


def validate_milestone(milestone: Milestone) -> None:
    """Raise ValidationError for anything the planner cannot work with."""
    _validate_start(milestone.project_start)
    _validate_durations(milestone.tasks)
    check_dependencies(milestone.tasks)


def downstream_tasks(tasks: list[MilestoneTask], name: str) -> list[str]:
    """Names of tasks that directly or transitively depend on *name*."""
    G = dependency_graph(tasks)
    if name not in G:
        return []
    found = nx.descendants(G, name)
    return [t.name for t in tasks if t.name in found]


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


def _plan_chain(cursor: date, tasks: list[MilestoneTask]) -> list[MilestoneTask]:
    planned: list[MilestoneTask] = []
    for task in tasks:
        start = cursor
        if task.duration > 0:
            end = add_working_days(start, task.duration)
        else:
            end = start
        planned.append(replace(task, planned_start=start, planned_end=end))
        cursor = next_working_day(end)
    return planned


def plan_tasks(project_start, tasks: list[MilestoneTask]) -> list[MilestoneTask]:
    """Assign planned start/end dates to every task in order.

    Returns new task objects; the inputs are left untouched. The first task
    starts on *project_start*, every later one on the first working day
    after its predecessor's planned end.
    """
    start = _validate_start(project_start)
    _validate_durations(tasks)
    return _plan_chain(start, tasks)


def replan_from(milestone: Milestone, index: int) -> Milestone:
    """Recompute planned dates for tasks[index:] and drop any buffer.

    Tasks before *index* keep their dates. The cursor resumes after the
    predecessor's planned end, or at the project start for index 0.
    """
    if not 0 <= index <= len(milestone.tasks):
        raise ValidationError("index", f"{index} is out of range for {len(milestone.tasks)} task(s)")
    validate_milestone(milestone)
    start = _validate_start(milestone.project_start)
    milestone.project_start = start

    if index > 0 and milestone.tasks[index - 1].planned_end is None:
        # Predecessors were never planned; the whole chain has to be.
        index = 0
    if index == 0:
        cursor = start
    else:
        cursor = next_working_day(milestone.tasks[index - 1].planned_end)

    milestone.tasks[index:] = _plan_chain(cursor, milestone.tasks[index:])
    milestone.project_end = milestone.baseline_end
    milestone.flexibility_percent = 0
    logger.debug(
        "Replanned %d task(s) from index %d; project end %s",
        len(milestone.tasks) - index,
        index,
        milestone.project_end,
    )
    return milestone


def plan_milestone(milestone: Milestone) -> Milestone:
    return replan_from(milestone, 0)


# ---------------------------------------------------------------------------
# Structural edits
# ---------------------------------------------------------------------------


def _check_index(milestone: Milestone, index: int, field_name: str = "index") -> None:
    if not 0 <= index < len(milestone.tasks):
        raise ValidationError(field_name, f"{index} is out of range for {len(milestone.tasks)} task(s)")


def _commit(milestone: Milestone, tasks: list[MilestoneTask], index: int, start=None) -> Milestone:
    """Validate a candidate task list, then swap it in and replan.

    Nothing on *milestone* changes when validation fails.
    """
    start = _validate_start(milestone.project_start if start is None else start)
    _validate_durations(tasks)
    check_dependencies(tasks)
    milestone.project_start = start
    milestone.tasks = tasks
    return replan_from(milestone, index)


def set_project_start(milestone: Milestone, project_start) -> Milestone:
    """Move the project start; every task date is recomputed."""
    return _commit(milestone, list(milestone.tasks), 0, start=_validate_start(project_start))


def set_duration(milestone: Milestone, index: int, duration) -> Milestone:
    """Change one task's duration and cascade to the tasks after it."""
    _check_index(milestone, index)
    value = parse_int(duration, f"tasks[{index}].duration")
    if value < 0:
        raise ValidationError(f"tasks[{index}].duration", "must not be negative")
    tasks = list(milestone.tasks)
    task = tasks[index]
    outlook = task.outlook_completion
    if task.actual_start is not None:
        outlook = add_working_days(task.actual_start, value)
    tasks[index] = replace(task, duration=value, outlook_completion=outlook)
    return _commit(milestone, tasks, index)


def append_task(milestone: Milestone, task: MilestoneTask) -> Milestone:
    """Add a task at the end; it starts after the current baseline end."""
    tasks = [*milestone.tasks, task]
    return _commit(milestone, tasks, len(tasks) - 1)


def insert_task(milestone: Milestone, index: int, task: MilestoneTask) -> Milestone:
    if not 0 <= index <= len(milestone.tasks):
        raise ValidationError("index", f"{index} is out of range for {len(milestone.tasks)} task(s)")
    tasks = list(milestone.tasks)
    tasks.insert(index, task)
    return _commit(milestone, tasks, index)


def delete_task(milestone: Milestone, index: int) -> MilestoneTask:
    """Remove a task, drop it from dependency lists and replan the rest."""
    _check_index(milestone, index)
    tasks = list(milestone.tasks)
    removed = tasks.pop(index)
    if not any(t.name == removed.name for t in tasks):
        tasks = [
            replace(t, dependencies=[d for d in t.dependencies if d != removed.name])
            if removed.name in t.dependencies
            else t
            for t in tasks
        ]
    _commit(milestone, tasks, index)
    return removed


def move_task(milestone: Milestone, src: int, dst: int) -> Milestone:
    """Reorder: move the task at *src* so it ends up at *dst*."""
    _check_index(milestone, src, "src")
    _check_index(milestone, dst, "dst")
    tasks = list(milestone.tasks)
    tasks.insert(dst, tasks.pop(src))
    return _commit(milestone, tasks, min(src, dst))


# ---------------------------------------------------------------------------
# Flexibility buffer
# ---------------------------------------------------------------------------


def flexibility_buffer_days(milestone: Milestone, percent: int) -> int:
    """Extra working days added to the project end for *percent* flexibility."""
    total = count_working_days(milestone.project_start, milestone.baseline_end)
    # ceil(total * percent / 100) without floating point
    return -(-total * percent // 100)


def apply_flexibility(milestone: Milestone, percent) -> date:
    """Stretch the project end by a percentage of its planned working days.

    The buffer is always computed from the unbuffered baseline (the last
    task's planned end), so repeated calls never compound. Task dates are
    not touched.
    """
    value = parse_int(percent, "flexibility_percent")
    if not 0 <= value <= 100:
        raise ValidationError("flexibility_percent", "must be between 0 and 100")
    if not milestone.tasks or milestone.tasks[-1].planned_end is None:
        raise InconsistentStateError("Tasks must be planned before applying flexibility")

    baseline = milestone.baseline_end
    buffer_days = flexibility_buffer_days(milestone, value) if value else 0
    if buffer_days > 0:
        milestone.project_end = add_working_days(baseline, buffer_days)
    else:
        milestone.project_end = baseline
    milestone.flexibility_percent = value
    logger.info(
        "Flexibility %d%% adds %d working day(s); project end %s",
        value,
        buffer_days,
        milestone.project_end,
    )
    return milestone.project_end


# ---------------------------------------------------------------------------
# Milestone details
# ---------------------------------------------------------------------------


def update_details(
    milestone: Milestone,
    customer: str | None = None,
    project_name: str | None = None,
    email: str | None = None,
    project_status: str | None = None,
) -> Milestone:
    """Edit the identification fields; fields left as None are kept."""
    if project_status is not None and not project_status.strip():
        raise ValidationError("project_status", "must not be blank")
    if customer is not None:
        milestone.customer = customer
    if project_name is not None:
        milestone.project_name = project_name
    if email is not None:
        milestone.email = email
    if project_status is not None:
        milestone.project_status = project_status.strip()
    return milestone
