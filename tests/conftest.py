from __future__ import annotations

import os
import sqlite3
from collections.abc import Generator
from pathlib import Path

import pytest

from src.db.sqlite_client import ensure_day_seeded, get_connection, init_schema

DAY = "2024-01-02"


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    os.environ.pop("DATABASE_URL", None)
    return str(tmp_path / "test.db")


@pytest.fixture
def sqlite_db(db_path: str) -> Generator[sqlite3.Connection, None, None]:
    conn = get_connection(db_path)
    init_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def seeded_db(sqlite_db: sqlite3.Connection) -> sqlite3.Connection:
    ensure_day_seeded(sqlite_db, DAY, ["10:00", "11:00"])
    return sqlite_db
