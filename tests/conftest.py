"""
Shared test configuration.

Sets BITWORLD_DB_PATH to a temporary file for each test session so no
SQLite database is created in the project directory and tests never see
each other's persisted cells.
"""

import os

import pytest


@pytest.fixture(autouse=True, scope="session")
def _isolate_db(tmp_path_factory):
    """Use a temp DB path for all tests to avoid polluting the project dir."""
    tmp_dir = tmp_path_factory.mktemp("bitworld_test_data")
    db_path = str(tmp_dir / "test_bitworld.db")
    os.environ["BITWORLD_DB_PATH"] = db_path
    yield
    os.environ.pop("BITWORLD_DB_PATH", None)
