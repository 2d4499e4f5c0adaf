"""Typer CLI for fitplan."""

from __future__ import annotations

import logging
from datetime import date
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from fitplan.errors import FitplanError
from fitplan.models import Milestone, MilestoneTask, TaskStatus, parse_date
from fitplan.persistence import Store
from fitplan.planner import (
    append_task,
    apply_flexibility,
    delete_task,
    downstream_tasks,
    flexibility_buffer_days,
    insert_task,
    move_task,
    plan_milestone,
    set_duration,
    set_project_start,
    update_details,
)
from fitplan.templates import default_tasks
from fitplan.tracking import activity_stats, apply_override, refresh_progress

app = typer.Typer(
    name="fitplan",
    help="Milestone planning and progress tracking for interior fit-out projects.",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

STATUS_STYLES = {
    TaskStatus.COMPLETED: "green",
    TaskStatus.LIKELY_DELAY: "bold yellow",
    TaskStatus.DELAYED: "bold red",
}


def _get_store() -> Store:
    return Store()


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _fail(message: str) -> None:
    console.print(f"[red]{message}[/red]")
    raise typer.Exit(1)


def _require_milestone(milestones: dict[str, Milestone], milestone_id: str) -> Milestone:
    if milestone_id not in milestones:
        _fail(f"Milestone {milestone_id} not found.")
    return milestones[milestone_id]


def _task_index(milestone: Milestone, number: int) -> int:
    """Convert a 1-based task number from the table into a list index."""
    if not 1 <= number <= len(milestone.tasks):
        _fail(f"Task #{number} not found (milestone has {len(milestone.tasks)} tasks).")
    return number - 1


def _parse_today(today: str | None) -> date:
    if today is None:
        return date.today()
    try:
        return parse_date(today, "today")
    except FitplanError as e:
        _fail(str(e))


def _fmt(d: date | None) -> str:
    return d.strftime("%a %b %d, %Y") if d else "-"


# ---------------------------------------------------------------------------
# Milestones
# ---------------------------------------------------------------------------


@app.command()
def create(
    start: Annotated[str, typer.Option(help="Project start date (YYYY-MM-DD)", prompt="Project start date (YYYY-MM-DD)")],
    customer: Annotated[str, typer.Option(help="Customer name")] = "",
    project: Annotated[str, typer.Option("--project", "-p", help="Project name")] = "",
    email: Annotated[str, typer.Option(help="Customer e-mail")] = "",
    empty: Annotated[bool, typer.Option("--empty", help="Start without the default task template")] = False,
) -> None:
    """Create a milestone, planned from the default fit-out template."""
    store = _get_store()
    milestones = store.load()
    try:
        milestone = Milestone(
            project_start=parse_date(start, "project_start"),
            customer=customer,
            project_name=project,
            email=email,
            tasks=[] if empty else default_tasks(),
        )
        plan_milestone(milestone)
    except FitplanError as e:
        _fail(str(e))

    mid = store.generate_id(milestones)
    milestones[mid] = milestone
    store.save(milestones)
    console.print(
        f"[green]Created {mid} with {len(milestone.tasks)} tasks, ending {milestone.project_end}[/green]"
    )


@app.command()
def update(
    milestone_id: str,
    customer: Annotated[Optional[str], typer.Option(help="Customer name")] = None,
    project: Annotated[Optional[str], typer.Option("--project", "-p", help="Project name")] = None,
    email: Annotated[Optional[str], typer.Option(help="Customer e-mail")] = None,
    status: Annotated[Optional[str], typer.Option("--status", "-s", help="Project status, e.g. 'At Risk'")] = None,
) -> None:
    """Edit a milestone's customer, project name, e-mail or project status."""
    if customer is None and project is None and email is None and status is None:
        _fail("Nothing to update. Pass --customer, --project, --email or --status.")
    store = _get_store()
    milestones = store.load()
    m = _require_milestone(milestones, milestone_id)
    try:
        update_details(m, customer=customer, project_name=project, email=email, project_status=status)
    except FitplanError as e:
        _fail(str(e))
    store.save(milestones)
    console.print(f"[green]Updated {milestone_id}.[/green]")


@app.command("list")
def list_milestones(
    customer: Annotated[Optional[str], typer.Option(help="Filter by customer (substring)")] = None,
    project: Annotated[Optional[str], typer.Option("--project", "-p", help="Filter by project (substring)")] = None,
    email: Annotated[Optional[str], typer.Option(help="Filter by e-mail (substring)")] = None,
    status: Annotated[Optional[str], typer.Option("--status", "-s", help="Filter by project status")] = None,
) -> None:
    """List all milestones."""
    store = _get_store()
    milestones = store.load()

    rows = list(milestones.items())
    if customer:
        q = customer.lower()
        rows = [(mid, m) for mid, m in rows if q in m.customer.lower()]
    if project:
        q = project.lower()
        rows = [(mid, m) for mid, m in rows if q in m.project_name.lower()]
    if email:
        q = email.lower()
        rows = [(mid, m) for mid, m in rows if q in m.email.lower()]
    if status:
        q = status.lower()
        rows = [(mid, m) for mid, m in rows if m.project_status.lower() == q]

    if not rows:
        console.print("No milestones found.")
        return

    table = Table(title="Milestones")
    table.add_column("ID")
    table.add_column("Customer")
    table.add_column("Project")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Flex")
    table.add_column("Done")
    table.add_column("Status")
    for mid, m in rows:
        total, finished = activity_stats(m)
        table.add_row(
            mid,
            m.customer or "-",
            m.project_name or "-",
            str(m.project_start),
            str(m.project_end) if m.project_end else "-",
            f"{m.flexibility_percent}%",
            f"{finished}/{total}",
            m.project_status,
        )
    console.print(table)


@app.command()
def show(
    milestone_id: str,
    phase: Annotated[Optional[str], typer.Option(help="Only show tasks in this phase")] = None,
) -> None:
    """Show a milestone's task plan and progress."""
    store = _get_store()
    m = _require_milestone(store.load(), milestone_id)

    console.print(f"\n[bold]{milestone_id}[/bold]  {m.project_name or '(unnamed project)'}")
    if m.customer:
        console.print(f"  Customer:    {m.customer}")
    if m.email:
        console.print(f"  E-mail:      {m.email}")
    console.print(f"  Status:      {m.project_status}")
    console.print(f"  Start:       {_fmt(m.project_start)}")
    console.print(f"  Planned end: {_fmt(m.baseline_end)}")
    if m.flexibility_percent:
        console.print(f"  Buffered end ({m.flexibility_percent}%): {_fmt(m.project_end)}")
    total, finished = activity_stats(m)
    console.print(f"  Progress:    {finished}/{total} tasks completed")

    table = Table(title="Tasks")
    table.add_column("#")
    table.add_column("Phase")
    table.add_column("Task")
    table.add_column("Days")
    table.add_column("Planned Start")
    table.add_column("Planned End")
    table.add_column("Actual Start")
    table.add_column("Actual End")
    table.add_column("Outlook")
    table.add_column("Status")
    table.add_column("%")
    for i, t in enumerate(m.tasks, 1):
        if phase and t.phase.lower() != phase.lower():
            continue
        table.add_row(
            str(i),
            t.phase or "-",
            t.name or "-",
            str(t.duration),
            str(t.planned_start or "-"),
            str(t.planned_end or "-"),
            str(t.actual_start or "-"),
            str(t.actual_end or "-"),
            str(t.outlook_completion or "-"),
            t.status.value,
            str(t.completion_percent),
            style=STATUS_STYLES.get(t.status),
        )
    console.print(table)


@app.command()
def remove(milestone_id: str) -> None:
    """Delete a milestone."""
    store = _get_store()
    milestones = store.load()
    _require_milestone(milestones, milestone_id)
    del milestones[milestone_id]
    store.save(milestones)
    console.print(f"[green]Deleted {milestone_id}.[/green]")


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


@app.command("start-date")
def start_date(milestone_id: str, start: Annotated[str, typer.Argument(help="New start date (YYYY-MM-DD)")]) -> None:
    """Move the project start. All task dates are recomputed and flexibility resets."""
    store = _get_store()
    milestones = store.load()
    m = _require_milestone(milestones, milestone_id)
    try:
        set_project_start(m, start)
    except FitplanError as e:
        _fail(str(e))
    store.save(milestones)
    console.print(f"[green]{milestone_id} now runs {m.project_start} to {m.project_end}.[/green]")


@app.command("add-task")
def add_task(
    milestone_id: str,
    name: str,
    duration: Annotated[int, typer.Option("--duration", "-d", help="Duration in working days")],
    phase: Annotated[str, typer.Option(help="Phase label")] = "",
    owner: Annotated[str, typer.Option("--owner", help="Responsible person")] = "",
    depends: Annotated[Optional[list[str]], typer.Option("--depends", help="Name of a task this waits on")] = None,
    at: Annotated[Optional[int], typer.Option("--at", help="Insert as task number N instead of appending")] = None,
) -> None:
    """Add a task to the end of the plan (or at --at N)."""
    store = _get_store()
    milestones = store.load()
    m = _require_milestone(milestones, milestone_id)
    task = MilestoneTask(
        name=name,
        duration=duration,
        phase=phase,
        responsible_person=owner,
        dependencies=list(depends or []),
    )
    try:
        if at is None:
            append_task(m, task)
        else:
            insert_task(m, at - 1, task)
    except FitplanError as e:
        _fail(str(e))
    store.save(milestones)
    console.print(f"[green]Added '{name}'. Project end: {m.project_end}[/green]")


@app.command("set-duration")
def set_duration_cmd(milestone_id: str, number: int, days: int) -> None:
    """Change a task's duration; later tasks shift with it."""
    store = _get_store()
    milestones = store.load()
    m = _require_milestone(milestones, milestone_id)
    index = _task_index(m, number)
    try:
        set_duration(m, index, days)
    except FitplanError as e:
        _fail(str(e))
    store.save(milestones)
    t = m.tasks[index]
    console.print(f"[green]'{t.name}' now ends {t.planned_end}. Project end: {m.project_end}[/green]")

    affected = downstream_tasks(m.tasks, t.name)
    if affected:
        console.print(f"[dim]Waiting on it: {', '.join(affected)}[/dim]")


@app.command("delete-task")
def delete_task_cmd(milestone_id: str, number: int) -> None:
    """Remove a task; the tasks after it move up."""
    store = _get_store()
    milestones = store.load()
    m = _require_milestone(milestones, milestone_id)
    index = _task_index(m, number)
    try:
        removed = delete_task(m, index)
    except FitplanError as e:
        _fail(str(e))
    store.save(milestones)
    console.print(f"[green]Deleted '{removed.name}'. Project end: {m.project_end}[/green]")


@app.command("move-task")
def move_task_cmd(milestone_id: str, number: int, to: int) -> None:
    """Move task number NUMBER to position TO."""
    store = _get_store()
    milestones = store.load()
    m = _require_milestone(milestones, milestone_id)
    src = _task_index(m, number)
    dst = _task_index(m, to)
    try:
        move_task(m, src, dst)
    except FitplanError as e:
        _fail(str(e))
    store.save(milestones)
    console.print(f"[green]Moved '{m.tasks[dst].name}' to #{to}.[/green]")


@app.command()
def flex(milestone_id: str, percent: int) -> None:
    """Buffer the project end by PERCENT of its planned working days."""
    store = _get_store()
    milestones = store.load()
    m = _require_milestone(milestones, milestone_id)
    try:
        end = apply_flexibility(m, percent)
    except FitplanError as e:
        _fail(str(e))
    store.save(milestones)
    if percent:
        extra = flexibility_buffer_days(m, percent)
        console.print(f"[green]+{extra} working days. Project end: {end}[/green]")
    else:
        console.print(f"[green]Flexibility cleared. Project end: {end}[/green]")


# ---------------------------------------------------------------------------
# Tracking
# ---------------------------------------------------------------------------


@app.command()
def track(
    milestone_id: str,
    number: int,
    field: Annotated[str, typer.Argument(help="status, actual-start, actual-end, outlook, duration, completion, remark")],
    value: Annotated[str, typer.Argument(help="New value; 'none' clears a date")],
    today: Annotated[Optional[str], typer.Option(help="Evaluate as of this date (YYYY-MM-DD)")] = None,
) -> None:
    """Edit one tracking field; status and completion are kept consistent."""
    aliases = {"outlook": "outlook_completion", "completion": "completion_percent", "owner": "responsible_person"}
    field_name = field.replace("-", "_")
    field_name = aliases.get(field_name, field_name)
    new_value = None if value.lower() in ("none", "") else value

    as_of = _parse_today(today)
    store = _get_store()
    milestones = store.load()
    m = _require_milestone(milestones, milestone_id)
    index = _task_index(m, number)
    old = m.tasks[index]

    try:
        updated = apply_override(old, field_name, new_value, as_of)
        if field_name == "duration":
            # A duration edit also moves planned dates downstream.
            set_duration(m, index, updated.duration)
            updated = apply_override(m.tasks[index], "duration", updated.duration, as_of)
    except FitplanError as e:
        _fail(str(e))

    m.tasks[index] = updated
    store.save(milestones)
    console.print(
        f"[green]#{number} {updated.name}: {old.status.value} -> {updated.status.value} "
        f"({updated.completion_percent}%)[/green]"
    )


@app.command()
def refresh(
    milestone_id: str,
    today: Annotated[Optional[str], typer.Option(help="Evaluate as of this date (YYYY-MM-DD)")] = None,
) -> None:
    """Re-derive status and completion for every task."""
    as_of = _parse_today(today)
    store = _get_store()
    milestones = store.load()
    m = _require_milestone(milestones, milestone_id)
    refresh_progress(m, as_of)
    store.save(milestones)

    counts: dict[TaskStatus, int] = {}
    for t in m.tasks:
        counts[t.status] = counts.get(t.status, 0) + 1
    summary = ", ".join(f"{s.value}: {n}" for s, n in counts.items()) or "no tasks"
    console.print(f"[green]Refreshed {milestone_id} as of {as_of}.[/green] {summary}")


@app.command()
def stats() -> None:
    """Completed vs total tasks per milestone."""
    store = _get_store()
    milestones = store.load()
    if not milestones:
        console.print("No milestones found.")
        return
    for mid, m in milestones.items():
        total, finished = activity_stats(m)
        console.print(f"{mid}  {m.project_name or '-'}  {finished}/{total}")


@app.command("import")
def import_milestones(
    file: Annotated[str, typer.Argument(help="JSON file path, or - for stdin")],
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Preview without saving")] = False,
) -> None:
    """Import milestone documents from JSON.

    Accepts a single document, a list of documents, or {"milestones": [...]}.
    Documents exported by the legacy web application (startDate, tasks[].task,
    actualStartDate, ...) are understood too. Unplanned documents are planned.
    """
    import json
    import sys
    from pathlib import Path

    if file == "-":
        raw_text = sys.stdin.read()
    else:
        path = Path(file)
        if not path.exists():
            _fail(f"File not found: {file}")
        raw_text = path.read_text()

    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError as e:
        _fail(f"Invalid JSON: {e}")

    if isinstance(data, dict) and "milestones" in data:
        data = data["milestones"]
        if isinstance(data, dict):
            data = list(data.values())
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        _fail("JSON must be a milestone document or a list of them.")

    store = _get_store()
    milestones = store.load()
    added: list[str] = []
    for i, doc in enumerate(data):
        if not isinstance(doc, dict):
            _fail(f"Entry at index {i} is not an object.")
        try:
            m = Milestone.from_dict(doc)
            if any(t.planned_end is None for t in m.tasks) or m.project_end is None:
                plan_milestone(m)
        except FitplanError as e:
            _fail(f"Entry at index {i}: {e}")
        mid = store.generate_id(milestones)
        milestones[mid] = m
        added.append(mid)

    if dry_run:
        console.print("\n[bold]Dry run, nothing saved[/bold]")
        for mid in added:
            console.print(f"  {mid}  {milestones[mid].project_name or '-'}  ({len(milestones[mid].tasks)} tasks)")
        return

    store.save(milestones)
    console.print(f"[green]Imported {len(added)} milestone(s): {', '.join(added)}[/green]")


if __name__ == "__main__":
    app()
