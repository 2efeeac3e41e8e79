"""Shared pytest fixtures and markers for truck_assistant tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from truck_assistant.catalog.static_data import StaticData

DATA_DIR = Path(__file__).resolve().parent.parent / "truck_assistant" / "data"


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "integration: marks tests that require external services (Postgres, MongoDB, Azure, etc.)",
    )


@pytest.fixture()
def static_data() -> StaticData:
    """Loader over the datasets shipped with the package."""
    return StaticData(DATA_DIR)
