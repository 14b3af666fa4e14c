from __future__ import annotations

import pytest

from models.db import SqliteStore, init_db, set_db_path
from models.memory import MemoryStore


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    """Each store-backed test runs once per backend."""
    if request.param == "memory":
        return MemoryStore()
    set_db_path(tmp_path / "test.db")
    init_db()
    return SqliteStore()
