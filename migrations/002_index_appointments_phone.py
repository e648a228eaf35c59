from __future__ import annotations

from typing import Any


def up(conn: Any) -> None:
    conn.cursor().execute(
        "CREATE INDEX IF NOT EXISTS idx_appointments_phone ON appointments(phone)"
    )
    conn.commit()


def down(conn: Any) -> None:
    conn.cursor().execute("DROP INDEX IF EXISTS idx_appointments_phone")
    conn.commit()
