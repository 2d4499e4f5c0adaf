"""JSON file persistence for milestone documents."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from fitplan.errors import ValidationError
from fitplan.models import Milestone
from fitplan.settings import get_settings

logger = logging.getLogger(__name__)


class Store:
    """Reads and writes the milestone database (JSON file)."""

    def __init__(self, db_path: str | Path | None = None):
        self.db_path = Path(db_path if db_path is not None else get_settings().db_path)

    def load(self) -> dict[str, Milestone]:
        """Return {milestone_id: Milestone}; empty when the file is missing."""
        if not self.db_path.exists():
            return {}

        raw = json.loads(self.db_path.read_text())
        milestones: dict[str, Milestone] = {}
        for mid, mdata in raw.get("milestones", {}).items():
            try:
                milestones[mid] = Milestone.from_dict(mdata)
            except ValidationError as e:
                raise ValidationError(f"{mid}.{e.field}", e.message) from e
        return milestones

    def save(self, milestones: dict[str, Milestone]) -> None:
        raw = {"milestones": {mid: m.to_dict() for mid, m in milestones.items()}}
        self.db_path.write_text(json.dumps(raw, indent=4))
        logger.info("Saved %d milestone(s) to %s", len(milestones), self.db_path)

    def generate_id(self, milestones: dict[str, Milestone]) -> str:
        """Generate the next M-N id."""
        existing = [
            int(k.split("-")[1])
            for k in milestones
            if k.startswith("M-") and k.split("-")[1].isdigit()
        ]
        next_num = max(existing, default=0) + 1
        return f"M-{next_num}"
