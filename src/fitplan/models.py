"""Milestone and task models with status definitions."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime

from fitplan.errors import ValidationError


class TaskStatus(enum.StrEnum):
    NOT_STARTED = "Not Started"
    ON_TRACK = "On track"
    DELAYED = "Delayed"
    LIKELY_DELAY = "Likely Delay"
    COMPLETED = "Completed"


def parse_date(value, field_name: str = "date") -> date | None:
    """Coerce an ISO string, date or datetime to a calendar date.

    Empty values mean "not set" and come back as None. Timestamps such as
    ``2024-01-01T00:00:00.000Z`` keep only their calendar date.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) > 10:
                return datetime.fromisoformat(text).date()
            return date.fromisoformat(text)
        except ValueError:
            raise ValidationError(field_name, f"not an ISO date: {value!r}") from None
    raise ValidationError(field_name, f"expected a date, got {type(value).__name__}")


def parse_status(value, field_name: str = "status") -> TaskStatus:
    if isinstance(value, TaskStatus):
        return value
    try:
        return TaskStatus(value)
    except ValueError:
        # Accept enum names too (e.g. "on_track", "LIKELY_DELAY").
        key = str(value).strip().upper().replace(" ", "_")
        if key in TaskStatus.__members__:
            return TaskStatus[key]
        valid = ", ".join(s.value for s in TaskStatus)
        raise ValidationError(field_name, f"unknown status {value!r} (valid: {valid})") from None


def parse_int(value, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(field_name, "expected an integer, got a boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValidationError(field_name, f"expected an integer, got {value!r}")


def _iso(d: date | None) -> str | None:
    return d.isoformat() if d is not None else None


def _pick(d: dict, *keys, default=None):
    """Return the first key present in *d* (new name first, then legacy)."""
    for key in keys:
        if key in d:
            return d[key]
    return default


@dataclass
class MilestoneTask:
    """One unit of work inside a milestone."""

    name: str
    duration: int
    phase: str = ""
    responsible_person: str = ""
    dependencies: list[str] = field(default_factory=list)
    planned_start: date | None = None
    planned_end: date | None = None
    actual_start: date | None = None
    actual_end: date | None = None
    outlook_completion: date | None = None
    status: TaskStatus = TaskStatus.NOT_STARTED
    completion_percent: int = 0
    remark: str = ""

    def to_dict(self) -> dict:
        d = {
            "phase": self.phase,
            "name": self.name,
            "duration": self.duration,
            "responsible_person": self.responsible_person,
            "dependencies": self.dependencies,
            "planned_start": _iso(self.planned_start),
            "planned_end": _iso(self.planned_end),
            "actual_start": _iso(self.actual_start),
            "actual_end": _iso(self.actual_end),
            "outlook_completion": _iso(self.outlook_completion),
            "status": self.status.value,
            "completion_percent": self.completion_percent,
        }
        if self.remark:
            d["remark"] = self.remark
        return d

    @classmethod
    def from_dict(cls, d: dict) -> MilestoneTask:
        # Legacy documents use task/startDate/endDate/actualStartDate/... keys.
        return cls(
            name=_pick(d, "name", "task", default=""),
            duration=parse_int(_pick(d, "duration", default=0) or 0, "duration"),
            phase=_pick(d, "phase", default="") or "",
            responsible_person=_pick(d, "responsible_person", "responsiblePerson", default="") or "",
            dependencies=list(_pick(d, "dependencies", default=[]) or []),
            planned_start=parse_date(_pick(d, "planned_start", "startDate"), "planned_start"),
            planned_end=parse_date(_pick(d, "planned_end", "endDate"), "planned_end"),
            actual_start=parse_date(_pick(d, "actual_start", "actualStartDate"), "actual_start"),
            actual_end=parse_date(_pick(d, "actual_end", "actualEndDate"), "actual_end"),
            outlook_completion=parse_date(
                _pick(d, "outlook_completion", "outlookCompletion"), "outlook_completion"
            ),
            status=parse_status(_pick(d, "status") or TaskStatus.NOT_STARTED),
            completion_percent=parse_int(
                _pick(d, "completion_percent", "completion", default=0) or 0,
                "completion_percent",
            ),
            remark=_pick(d, "remark", default="") or "",
        )


@dataclass
class Milestone:
    """A customer project's full task plan."""

    project_start: date
    customer: str = ""
    project_name: str = ""
    email: str = ""
    project_end: date | None = None
    flexibility_percent: int = 0
    project_status: str = "Not Started"
    tasks: list[MilestoneTask] = field(default_factory=list)

    @property
    def baseline_end(self) -> date:
        """Unbuffered project end: the last task's planned end."""
        if self.tasks and self.tasks[-1].planned_end is not None:
            return self.tasks[-1].planned_end
        return self.project_start

    def to_dict(self) -> dict:
        return {
            "customer": self.customer,
            "project_name": self.project_name,
            "email": self.email,
            "project_start": _iso(self.project_start),
            "project_end": _iso(self.project_end),
            "flexibility_percent": self.flexibility_percent,
            "project_status": self.project_status,
            "tasks": [t.to_dict() for t in self.tasks],
        }

    @classmethod
    def from_dict(cls, d: dict) -> Milestone:
        start = parse_date(_pick(d, "project_start", "startDate"), "project_start")
        if start is None:
            raise ValidationError("project_start", "is required")
        return cls(
            project_start=start,
            customer=_pick(d, "customer", default="") or "",
            project_name=_pick(d, "project_name", "projectName", default="") or "",
            email=_pick(d, "email", "emailId", default="") or "",
            project_end=parse_date(_pick(d, "project_end", "endDate"), "project_end"),
            flexibility_percent=parse_int(
                _pick(d, "flexibility_percent", "flexibilityPercentage", default=0) or 0,
                "flexibility_percent",
            ),
            project_status=_pick(d, "project_status", "projectStatus", default="Not Started")
            or "Not Started",
            tasks=[MilestoneTask.from_dict(t) for t in _pick(d, "tasks", default=[]) or []],
        )
