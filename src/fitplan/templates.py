"""Default interior fit-out task template."""

from __future__ import annotations

from fitplan.models import MilestoneTask

PHASES = [
    "Project Initiation",
    "Concept Design",
    "Design Development",
    "Approval Phase",
    "Execution",
    "Handover",
]

# (phase, task, duration in working days, responsible, dependencies)
DEFAULT_TEMPLATE: list[tuple[str, str, int, str, list[str]]] = [
    ("Project Initiation", "Client meeting & requirement gathering", 2, "Project Manager", []),
    ("Project Initiation", "Site visit & measurements", 1, "Designer", []),
    ("Concept Design", "Mood board preparation", 3, "Designer", ["Client meeting & requirement gathering"]),
    ("Concept Design", "Initial layout plan", 4, "Designer", ["Mood board preparation"]),
    ("Concept Design", "Client presentation & feedback", 2, "Designer", ["Initial layout plan"]),
    ("Design Development", "3D renders & walkthrough", 7, "3D Artist", ["Client presentation & feedback"]),
    ("Design Development", "Material selection & samples", 5, "Designer", ["Client presentation & feedback"]),
    ("Design Development", "Cost estimation & BOQ", 4, "Estimator", ["Material selection & samples"]),
    ("Approval Phase", "Final client approval", 2, "Project Manager", ["3D renders & walkthrough", "Cost estimation & BOQ"]),
    ("Approval Phase", "Sign-off on contracts", 2, "Project Manager", ["Final client approval"]),
    ("Execution", "Site preparation & demolition", 5, "Contractor", ["Sign-off on contracts"]),
    ("Execution", "Civil works", 10, "Civil Engineer", ["Site preparation & demolition"]),
    ("Execution", "Electrical & plumbing works", 8, "MEP Team", ["Civil works"]),
    ("Execution", "False ceiling & partitions", 6, "Contractor", ["Electrical & plumbing works"]),
    ("Execution", "Flooring installation", 5, "Contractor", ["False ceiling & partitions"]),
    ("Execution", "Wall finishes & painting", 6, "Painter", ["Flooring installation"]),
    ("Execution", "Carpentry works", 10, "Carpenter", ["Wall finishes & painting"]),
    ("Execution", "Lighting installation", 3, "Electrician", ["Carpentry works"]),
    ("Execution", "Furniture placement", 3, "Designer", ["Lighting installation"]),
    ("Execution", "Final styling & decor", 2, "Designer", ["Furniture placement"]),
    ("Handover", "Final client walkthrough", 1, "Project Manager", ["Final styling & decor"]),
    ("Handover", "Snag list & rectifications", 3, "Contractor", ["Final client walkthrough"]),
    ("Handover", "Final handover & documentation", 1, "Project Manager", ["Snag list & rectifications"]),
]


def default_tasks() -> list[MilestoneTask]:
    """Fresh, unplanned copies of the template tasks."""
    return [
        MilestoneTask(
            name=name,
            duration=duration,
            phase=phase,
            responsible_person=responsible,
            dependencies=list(deps),
        )
        for phase, name, duration, responsible, deps in DEFAULT_TEMPLATE
    ]
