from __future__ import annotations

import logging
import os
import sqlite3
from collections.abc import Iterator, Sequence
from contextlib import contextmanager, suppress
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

SQLITE_SCHEMA = """
CREATE TABLE IF NOT EXISTS appointments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    phone TEXT,
    date TEXT NOT NULL,
    time TEXT NOT NULL,
    UNIQUE (date, time)
);

DROP INDEX IF EXISTS idx_appointments_phone;
CREATE UNIQUE INDEX IF NOT EXISTS uq_appointments_phone ON appointments(phone);
"""

POSTGRES_SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS appointments (
        id BIGSERIAL PRIMARY KEY,
        phone TEXT,
        date DATE NOT NULL,
        time TEXT NOT NULL,
        UNIQUE (date, time)
    )
    """,
    "DROP INDEX IF EXISTS idx_appointments_phone",
    "CREATE UNIQUE INDEX IF NOT EXISTS uq_appointments_phone ON appointments(phone)",
]


class StoreError(RuntimeError):
    """A slot store round trip failed; nothing from it is assumed committed."""


class ConsistencyError(StoreError):
    """The store holds data that breaks a slot invariant."""


@dataclass(frozen=True)
class Slot:
    date: str
    time: str
    phone: str | None = None


def _is_postgres(conn: Any) -> bool:
    return conn.__class__.__module__.startswith("psycopg")


def _adapt_sql(conn: Any, sql: str) -> str:
    return sql.replace("?", "%s") if _is_postgres(conn) else sql


def _execute(conn: Any, sql: str, params: tuple[Any, ...] | list[Any] = ()) -> Any:
    if _is_postgres(conn):
        cur = conn.cursor()
        cur.execute(_adapt_sql(conn, sql), tuple(params))
        return cur
    return conn.execute(_adapt_sql(conn, sql), tuple(params))


def _executemany(conn: Any, sql: str, params_seq: list[tuple[Any, ...]]) -> Any:
    if _is_postgres(conn):
        cur = conn.cursor()
        cur.executemany(_adapt_sql(conn, sql), params_seq)
        return cur
    return conn.executemany(_adapt_sql(conn, sql), params_seq)


def _integrity_errors(conn: Any) -> tuple[type[Exception], ...]:
    if _is_postgres(conn):
        from psycopg import IntegrityError

        return (IntegrityError,)
    return (sqlite3.IntegrityError,)


def _to_dict(row: Any) -> dict[str, Any]:
    return row if isinstance(row, dict) else dict(row)


def _safe_rollback(conn: Any) -> None:
    """Reset failed DB transactions without masking original errors."""
    with suppress(Exception):
        conn.rollback()


@contextmanager
def _store_call(conn: Any, operation: str) -> Iterator[None]:
    try:
        yield
    except StoreError:
        raise
    except Exception as exc:
        _safe_rollback(conn)
        raise StoreError(f"{operation} failed: {exc}") from exc


def _row_to_slot(row: Any) -> Slot:
    data = _to_dict(row)
    # psycopg hands DATE columns back as datetime.date
    return Slot(date=str(data["date"])[:10], time=str(data["time"]), phone=data.get("phone"))


def get_connection(db_path: str, timeout_seconds: float = 5.0) -> Any:
    database_url = os.getenv("DATABASE_URL", "").strip()
    if database_url:
        from psycopg import connect
        from psycopg.rows import dict_row

        return connect(
            database_url,
            row_factory=dict_row,
            autocommit=False,
            connect_timeout=max(int(timeout_seconds), 1),
        )

    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, timeout=timeout_seconds, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    return conn


def init_schema(conn: Any) -> None:
    with _store_call(conn, "init_schema"):
        if _is_postgres(conn):
            cur = conn.cursor()
            for statement in POSTGRES_SCHEMA_STATEMENTS:
                cur.execute(statement)
        else:
            conn.executescript(SQLITE_SCHEMA)
        conn.commit()


def ensure_day_seeded(conn: Any, date: str, time_labels: Sequence[str]) -> int:
    """Insert a free slot for every label of ``date`` that is not stored yet.

    Existing rows, claimed or not, are left untouched, so this can run any
    number of times and alongside claims on the same date. Returns the number
    of rows actually inserted.
    """
    if not time_labels:
        return 0
    with _store_call(conn, "ensure_day_seeded"):
        cur = _executemany(
            conn,
            """
            INSERT INTO appointments (date, time) VALUES (?, ?)
            ON CONFLICT(date, time) DO NOTHING
            """,
            [(date, label) for label in time_labels],
        )
        conn.commit()
    # rows skipped by ON CONFLICT do not count as changed
    inserted = max(cur.rowcount, 0)
    if inserted:
        logger.info("Seeded %d slot(s) for %s", inserted, date)
    return inserted


def list_free(conn: Any, date: str) -> list[str]:
    with _store_call(conn, "list_free"):
        rows = _execute(
            conn,
            "SELECT time FROM appointments WHERE date = ? AND phone IS NULL ORDER BY time ASC",
            [date],
        ).fetchall()
    return [str(_to_dict(row)["time"]) for row in rows]


def list_day(conn: Any, date: str) -> list[Slot]:
    with _store_call(conn, "list_day"):
        rows = _execute(
            conn,
            "SELECT date, time, phone FROM appointments WHERE date = ? ORDER BY time ASC",
            [date],
        ).fetchall()
    return [_row_to_slot(row) for row in rows]


def get_slot(conn: Any, date: str, time: str) -> Slot | None:
    with _store_call(conn, "get_slot"):
        row = _execute(
            conn,
            "SELECT date, time, phone FROM appointments WHERE date = ? AND time = ?",
            [date, time],
        ).fetchone()
    return _row_to_slot(row) if row else None


def find_by_occupant(conn: Any, phone: str) -> Slot | None:
    with _store_call(conn, "find_by_occupant"):
        rows = _execute(
            conn,
            "SELECT date, time, phone FROM appointments WHERE phone = ? ORDER BY date, time",
            [phone],
        ).fetchall()
    if len(rows) > 1:
        held = ", ".join(f"{s.date} {s.time}" for s in map(_row_to_slot, rows))
        raise ConsistencyError(f"{phone} occupies {len(rows)} slots: {held}")
    return _row_to_slot(rows[0]) if rows else None


def claim_if_free(conn: Any, date: str, time: str, phone: str) -> bool:
    """Set the occupant of ``(date, time)`` to ``phone`` if and only if it is free.

    The check and the write are one conditional UPDATE, so of any number of
    concurrent claimers at most one sees a changed row. The unique index on
    ``phone`` rejects the write when ``phone`` already holds another slot;
    that also counts as a failed claim.
    """
    with _store_call(conn, "claim_if_free"):
        try:
            cur = _execute(
                conn,
                "UPDATE appointments SET phone = ? WHERE date = ? AND time = ? AND phone IS NULL",
                [phone, date, time],
            )
        except _integrity_errors(conn):
            _safe_rollback(conn)
            return False
        conn.commit()
    return cur.rowcount == 1


def release_by_occupant(conn: Any, phone: str) -> int:
    with _store_call(conn, "release_by_occupant"):
        cur = _execute(conn, "UPDATE appointments SET phone = NULL WHERE phone = ?", [phone])
        conn.commit()
    return max(cur.rowcount, 0)
