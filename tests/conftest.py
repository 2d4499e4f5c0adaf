import pytest

from fitplan.settings import get_settings


@pytest.fixture(autouse=True)
def default_settings(monkeypatch):
    for name in (
        "FITPLAN_NON_WORKING_DAY",
        "FITPLAN_DELAY_THRESHOLD_DAYS",
        "FITPLAN_DEFAULT_PROGRESS",
        "FITPLAN_STARTED_FLOOR",
        "FITPLAN_DB",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
