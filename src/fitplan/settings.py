"""Deployment settings read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from fitplan.errors import ValidationError

DEFAULT_DB_FILE = "milestones.json"
SUNDAY = 6


@dataclass(frozen=True)
class Settings:
    """Engine-wide constants. One calendar for every milestone."""

    non_working_day: int = SUNDAY
    delay_threshold_days: int = 15
    default_progress_percent: int = 50
    started_floor_percent: int = 10
    db_path: str = DEFAULT_DB_FILE

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> Settings:
        env = os.environ if env is None else env
        settings = cls(
            non_working_day=_env_int(env, "FITPLAN_NON_WORKING_DAY", SUNDAY),
            delay_threshold_days=_env_int(env, "FITPLAN_DELAY_THRESHOLD_DAYS", 15),
            default_progress_percent=_env_int(env, "FITPLAN_DEFAULT_PROGRESS", 50),
            started_floor_percent=_env_int(env, "FITPLAN_STARTED_FLOOR", 10),
            db_path=env.get("FITPLAN_DB", DEFAULT_DB_FILE),
        )
        if not 0 <= settings.non_working_day <= 6:
            raise ValidationError(
                "FITPLAN_NON_WORKING_DAY", "must be a weekday number 0-6 (Monday=0)"
            )
        if settings.delay_threshold_days < 0:
            raise ValidationError("FITPLAN_DELAY_THRESHOLD_DAYS", "must not be negative")
        for name, value in (
            ("FITPLAN_DEFAULT_PROGRESS", settings.default_progress_percent),
            ("FITPLAN_STARTED_FLOOR", settings.started_floor_percent),
        ):
            if not 0 <= value <= 100:
                raise ValidationError(name, "must be between 0 and 100")
        return settings


def _env_int(env, name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(name, f"expected an integer, got {raw!r}") from None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
