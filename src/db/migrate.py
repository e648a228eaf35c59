from __future__ import annotations

import argparse
import importlib
import logging
import pkgutil
from pathlib import Path

from src.db.sqlite_client import get_connection

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"


def _is_postgres(conn: object) -> bool:
    return conn.__class__.__module__.startswith("psycopg")


def ensure_migrations_table(conn: object) -> None:
    if _is_postgres(conn):
        cur = conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS _migrations (
                id BIGSERIAL PRIMARY KEY,
                name TEXT NOT NULL UNIQUE,
                applied_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
            """
        )
    else:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS _migrations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                applied_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
            """
        )
    conn.commit()


def applied_migration_names(conn: object) -> set[str]:
    cur = conn.cursor()
    cur.execute("SELECT name FROM _migrations")
    return {row["name"] for row in cur.fetchall()}


def discover_migrations() -> list[str]:
    modules = [
        name
        for _, name, _ in pkgutil.iter_modules([str(MIGRATIONS_DIR)])
        if name[0:3].isdigit()
    ]
    return sorted(modules)


def apply_all(db_path: str) -> list[str]:
    """Apply pending migrations in name order and return the ones applied."""
    conn = get_connection(db_path)
    try:
        ensure_migrations_table(conn)
        already = applied_migration_names(conn)
        applied: list[str] = []
        for module_name in discover_migrations():
            if module_name in already:
                continue
            mod = importlib.import_module(f"migrations.{module_name}")
            mod.up(conn)
            cur = conn.cursor() if _is_postgres(conn) else conn
            if _is_postgres(conn):
                cur.execute("INSERT INTO _migrations(name) VALUES (%s)", (module_name,))
            else:
                cur.execute("INSERT INTO _migrations(name) VALUES (?)", (module_name,))
            conn.commit()
            logger.info("Applied migration %s", module_name)
            applied.append(module_name)
        return applied
    finally:
        conn.close()


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--db-path", default="data/barbershop.db")
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)
    apply_all(args.db_path)


if __name__ == "__main__":
    main()
