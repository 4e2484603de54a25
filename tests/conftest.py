import os
from typing import Any

import pytest

from skiff.skiff_codemap import CodeMap
from skiff.skiff_dialect import EXTENDED, STANDARD, Dialect

# Monkeypatch coverage to bypass teardown crash in act/docker
if os.getenv("COVERAGE_PROCESS_START"):
    import coverage

    coverage.process_startup()

    import coverage.collector

    def safe_stop(self: Any) -> None:
        if self in getattr(self, "_collectors", []):
            self._collectors.remove(self)

    coverage.collector.Collector.stop = safe_stop


@pytest.fixture
def standard() -> Dialect:
    return STANDARD


@pytest.fixture
def extended() -> Dialect:
    return EXTENDED


@pytest.fixture
def codemap() -> CodeMap:
    return CodeMap()
