"""Shared test setup."""

from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture(autouse=True)
def run_from_project_root(monkeypatch) -> None:
    """Resource configs name configs/config.json relative to the project root."""
    monkeypatch.chdir(PROJECT_ROOT)
