from __future__ import annotations

from typing import Any


def _is_postgres(conn: Any) -> bool:
    return conn.__class__.__module__.startswith("psycopg")


def up(conn: Any) -> None:
    if _is_postgres(conn):
        conn.cursor().execute(
            """
            CREATE TABLE IF NOT EXISTS appointments (
                id BIGSERIAL PRIMARY KEY,
                phone TEXT,
                date DATE NOT NULL,
                time TEXT NOT NULL,
                UNIQUE (date, time)
            )
            """
        )
    else:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS appointments (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                phone TEXT,
                date TEXT NOT NULL,
                time TEXT NOT NULL,
                UNIQUE (date, time)
            );
            """
        )
    conn.commit()


def down(conn: Any) -> None:
    conn.cursor().execute("DROP TABLE IF EXISTS appointments")
    conn.commit()
