"""
Shared fixtures for the Authorization Model Engine tests.
"""

import csv

import pytest

from authz_engine.config import Settings
from authz_engine.connectors import MockSession


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a fake platform and an isolated home directory."""
    return Settings(
        base_url="https://viya.example.com",
        home=tmp_path,
        log_file=str(tmp_path / "gva.log"),
    )


@pytest.fixture
def mock_session(settings):
    """Connected in-memory session seeded with the default groups and libraries."""
    session = MockSession(settings)
    session.connect()
    yield session
    session.disconnect()


@pytest.fixture
def write_csv(tmp_path):
    """Write CSV rows (header first) to a file and return its path."""
    def _write(name, rows):
        path = tmp_path / name
        with open(path, "w", newline="", encoding="utf-8") as f:
            csv.writer(f).writerows(rows)
        return path
    return _write
