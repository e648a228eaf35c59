from __future__ import annotations

from typing import Any

# One slot per phone; NULL (free) rows are exempt on both SQLite and Postgres.


def up(conn: Any) -> None:
    cur = conn.cursor()
    cur.execute("DROP INDEX IF EXISTS idx_appointments_phone")
    cur.execute(
        "CREATE UNIQUE INDEX IF NOT EXISTS uq_appointments_phone ON appointments(phone)"
    )
    conn.commit()


def down(conn: Any) -> None:
    cur = conn.cursor()
    cur.execute("DROP INDEX IF EXISTS uq_appointments_phone")
    cur.execute("CREATE INDEX IF NOT EXISTS idx_appointments_phone ON appointments(phone)")
    conn.commit()
