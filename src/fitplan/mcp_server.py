"""MCP server for fitplan: exposes milestone tools to AI assistants."""

from __future__ import annotations

import json
from datetime import date

from mcp.server.fastmcp import FastMCP

from fitplan.errors import FitplanError
from fitplan.models import Milestone, MilestoneTask, parse_date
from fitplan.persistence import Store
from fitplan.planner import apply_flexibility as planner_apply_flexibility
from fitplan.planner import plan_milestone, set_duration, update_details
from fitplan.templates import default_tasks
from fitplan.tracking import activity_stats, apply_overrides, refresh_progress

mcp = FastMCP(
    "fitplan",
    instructions="""\
fitplan plans interior fit-out projects. Each milestone is an ordered list of \
tasks with durations in working days; one weekday (Sunday by default) is not \
worked. Tasks run one after another: each starts on the first working day \
after the previous task's planned end.

Key concepts:
- **Planned dates** are computed from the project start and durations. Change \
them with set_task_duration, never directly.
- **Flexibility** adds a percentage of the planned working days to the project \
end only. It resets to 0 whenever the plan changes.
- **Tracking**: track_task edits actual start/end, outlook, status or \
completion. Status and completion are re-derived and kept consistent.
- Statuses: Not Started, On track, Likely Delay (late by 15 days or less), \
Delayed, Completed.

Tasks are referenced by 1-based number within their milestone.\
""",
)


def _get_store() -> Store:
    return Store()


def _today(today: str | None) -> date:
    return parse_date(today, "today") if today else date.today()


def _milestone_summary(mid: str, m: Milestone) -> dict:
    total, finished = activity_stats(m)
    return {
        "id": mid,
        "customer": m.customer,
        "project_name": m.project_name,
        "email": m.email,
        "project_status": m.project_status,
        "project_start": m.project_start.isoformat(),
        "project_end": m.project_end.isoformat() if m.project_end else None,
        "flexibility_percent": m.flexibility_percent,
        "tasks_total": total,
        "tasks_completed": finished,
    }


# ---------------------------------------------------------------------------
# Read tools
# ---------------------------------------------------------------------------


@mcp.tool()
def list_milestones() -> str:
    """List all milestones with their dates and completed-task counts."""
    milestones = _get_store().load()
    return json.dumps([_milestone_summary(mid, m) for mid, m in milestones.items()], indent=2)


@mcp.tool()
def get_milestone(milestone_id: str) -> str:
    """Get one milestone with every task's planned and tracked fields.

    Args:
        milestone_id: Milestone ID (e.g. "M-1")
    """
    milestones = _get_store().load()
    if milestone_id not in milestones:
        return f"Error: milestone {milestone_id} not found."
    d = milestones[milestone_id].to_dict()
    d["id"] = milestone_id
    return json.dumps(d, indent=2)


# ---------------------------------------------------------------------------
# Write tools
# ---------------------------------------------------------------------------


@mcp.tool()
def create_milestone(
    project_start: str,
    customer: str = "",
    project_name: str = "",
    email: str = "",
    use_template: bool = True,
) -> str:
    """Create a milestone and plan its tasks.

    Args:
        project_start: Project start date (YYYY-MM-DD)
        customer: Customer name
        project_name: Project name
        email: Customer e-mail
        use_template: Start from the default 23-task fit-out template
    """
    store = _get_store()
    milestones = store.load()
    try:
        m = Milestone(
            project_start=parse_date(project_start, "project_start"),
            customer=customer,
            project_name=project_name,
            email=email,
            tasks=default_tasks() if use_template else [],
        )
        plan_milestone(m)
    except FitplanError as e:
        return f"Error: {e}"
    mid = store.generate_id(milestones)
    milestones[mid] = m
    store.save(milestones)
    return f"Created {mid} ({len(m.tasks)} tasks, ends {m.project_end})"


@mcp.tool()
def update_milestone(
    milestone_id: str,
    customer: str | None = None,
    project_name: str | None = None,
    email: str | None = None,
    project_status: str | None = None,
) -> str:
    """Edit a milestone's identification fields. Only provided fields are changed.

    Args:
        milestone_id: Milestone ID (e.g. "M-1")
        customer: Customer name
        project_name: Project name
        email: Customer e-mail
        project_status: Free-text project status (e.g. "On Track", "At Risk")
    """
    if customer is None and project_name is None and email is None and project_status is None:
        return "Error: nothing to update."
    store = _get_store()
    milestones = store.load()
    if milestone_id not in milestones:
        return f"Error: milestone {milestone_id} not found."
    m = milestones[milestone_id]
    try:
        update_details(
            m,
            customer=customer,
            project_name=project_name,
            email=email,
            project_status=project_status,
        )
    except FitplanError as e:
        return f"Error: {e}"
    store.save(milestones)
    return json.dumps(_milestone_summary(milestone_id, m), indent=2)


@mcp.tool()
def set_task_duration(milestone_id: str, task_number: int, duration: int) -> str:
    """Change a task's duration in working days; later tasks are replanned.

    Args:
        milestone_id: Milestone ID (e.g. "M-1")
        task_number: 1-based task number
        duration: New duration in working days (0 or more)
    """
    store = _get_store()
    milestones = store.load()
    if milestone_id not in milestones:
        return f"Error: milestone {milestone_id} not found."
    m = milestones[milestone_id]
    try:
        set_duration(m, task_number - 1, duration)
    except FitplanError as e:
        return f"Error: {e}"
    store.save(milestones)
    t = m.tasks[task_number - 1]
    return f"'{t.name}' now runs {t.planned_start} to {t.planned_end}; project ends {m.project_end}"


@mcp.tool()
def apply_flexibility(milestone_id: str, percent: int) -> str:
    """Buffer the project end by a percentage of its planned working days.

    Args:
        milestone_id: Milestone ID (e.g. "M-1")
        percent: 0-100; 0 removes the buffer
    """
    store = _get_store()
    milestones = store.load()
    if milestone_id not in milestones:
        return f"Error: milestone {milestone_id} not found."
    try:
        end = planner_apply_flexibility(milestones[milestone_id], percent)
    except FitplanError as e:
        return f"Error: {e}"
    store.save(milestones)
    return f"Project end with {percent}% flexibility: {end}"


@mcp.tool()
def track_task(
    milestone_id: str,
    task_number: int,
    status: str | None = None,
    actual_start: str | None = None,
    actual_end: str | None = None,
    outlook_completion: str | None = None,
    completion_percent: int | None = None,
    remark: str | None = None,
    today: str | None = None,
) -> str:
    """Record progress on a task. Only provided fields are changed.

    Args:
        milestone_id: Milestone ID (e.g. "M-1")
        task_number: 1-based task number
        status: Not Started, On track, Delayed, Likely Delay or Completed
        actual_start: Actual start date (YYYY-MM-DD)
        actual_end: Actual end date (YYYY-MM-DD)
        outlook_completion: Projected finish date (YYYY-MM-DD)
        completion_percent: 0-100
        remark: Free-text note
        today: Evaluate as of this date (defaults to today)
    """
    changes = {
        k: v
        for k, v in {
            "status": status,
            "actual_start": actual_start,
            "actual_end": actual_end,
            "outlook_completion": outlook_completion,
            "completion_percent": completion_percent,
            "remark": remark,
        }.items()
        if v is not None
    }
    if not changes:
        return "Error: nothing to update."

    store = _get_store()
    milestones = store.load()
    if milestone_id not in milestones:
        return f"Error: milestone {milestone_id} not found."
    m = milestones[milestone_id]
    if not 1 <= task_number <= len(m.tasks):
        return f"Error: task #{task_number} not found."
    try:
        updated: MilestoneTask = apply_overrides(m.tasks[task_number - 1], changes, _today(today))
    except FitplanError as e:
        return f"Error: {e}"
    m.tasks[task_number - 1] = updated
    store.save(milestones)
    return f"#{task_number} {updated.name}: {updated.status.value} ({updated.completion_percent}%)"


@mcp.tool()
def refresh_milestone(milestone_id: str, today: str | None = None) -> str:
    """Re-derive status and completion of every task from its dates.

    Args:
        milestone_id: Milestone ID (e.g. "M-1")
        today: Evaluate as of this date (defaults to today)
    """
    store = _get_store()
    milestones = store.load()
    if milestone_id not in milestones:
        return f"Error: milestone {milestone_id} not found."
    try:
        refresh_progress(milestones[milestone_id], _today(today))
    except FitplanError as e:
        return f"Error: {e}"
    store.save(milestones)
    return json.dumps(_milestone_summary(milestone_id, milestones[milestone_id]), indent=2)


def main():
    """Entry point for the MCP server."""
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
