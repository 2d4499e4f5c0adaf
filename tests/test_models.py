from datetime import date

import pytest

from fitplan.errors import ValidationError
from fitplan.models import Milestone, MilestoneTask, TaskStatus, parse_date, parse_status


def test_milestone_serialization():
    m = Milestone(
        project_start=date(2024, 1, 1),
        customer="Acme",
        project_name="Office",
        project_end=date(2024, 1, 20),
        flexibility_percent=10,
        tasks=[
            MilestoneTask(
                name="Civil works",
                duration=10,
                phase="Execution",
                planned_start=date(2024, 1, 1),
                planned_end=date(2024, 1, 12),
                actual_start=date(2024, 1, 2),
                status=TaskStatus.ON_TRACK,
                completion_percent=40,
                remark="crew of 4",
            )
        ],
    )
    d = m.to_dict()
    assert d["project_start"] == "2024-01-01"
    assert d["tasks"][0]["status"] == "On track"
    assert d["tasks"][0]["actual_end"] is None

    m2 = Milestone.from_dict(d)
    assert m2 == m


def test_legacy_document():
    doc = {
        "customer": "Acme",
        "projectName": "Villa",
        "startDate": "2024-01-01T00:00:00.000Z",
        "endDate": "2024-01-12T00:00:00.000Z",
        "emailId": "a@example.com",
        "flexibilityPercentage": 10,
        "projectStatus": "On Track",
        "tasks": [
            {
                "phase": "Execution",
                "task": "Civil works",
                "duration": 10,
                "startDate": "2024-01-01T00:00:00.000Z",
                "endDate": "2024-01-12T00:00:00.000Z",
                "responsiblePerson": "Civil Engineer",
                "status": "Likely Delay",
                "completion": 40,
                "actualStartDate": "2024-01-02T00:00:00.000Z",
                "actualEndDate": None,
                "outlookCompletion": "",
            }
        ],
    }
    m = Milestone.from_dict(doc)
    assert m.project_name == "Villa"
    assert m.email == "a@example.com"
    assert m.project_start == date(2024, 1, 1)
    assert m.flexibility_percent == 10
    t = m.tasks[0]
    assert t.name == "Civil works"
    assert t.responsible_person == "Civil Engineer"
    assert t.planned_end == date(2024, 1, 12)
    assert t.actual_start == date(2024, 1, 2)
    assert t.actual_end is None
    assert t.outlook_completion is None
    assert t.status == TaskStatus.LIKELY_DELAY
    assert t.completion_percent == 40


def test_project_start_required():
    with pytest.raises(ValidationError) as exc:
        Milestone.from_dict({"tasks": []})
    assert exc.value.field == "project_start"


def test_parse_date_rejects_garbage():
    with pytest.raises(ValidationError) as exc:
        parse_date("next tuesday", "actual_start")
    assert exc.value.field == "actual_start"


def test_parse_status_accepts_enum_names():
    assert parse_status("on_track") == TaskStatus.ON_TRACK
    assert parse_status("Completed") == TaskStatus.COMPLETED
    with pytest.raises(ValidationError):
        parse_status("In Progress")


def test_baseline_end():
    m = Milestone(project_start=date(2024, 1, 1))
    assert m.baseline_end == date(2024, 1, 1)
    m.tasks.append(MilestoneTask(name="a", duration=1, planned_end=date(2024, 1, 2)))
    assert m.baseline_end == date(2024, 1, 2)
