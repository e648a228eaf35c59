from __future__ import annotations

from typing import Any


def liveness() -> dict[str, Any]:
    return {"ok": True}


def _database_ready(conn: Any) -> str:
    try:
        if hasattr(conn, "execute"):
            conn.execute("SELECT 1 FROM appointments LIMIT 1").fetchone()
        else:
            cur = conn.cursor()
            cur.execute("SELECT 1 FROM appointments LIMIT 1")
            cur.fetchone()
        return "ready"
    except Exception as exc:
        return f"error: {exc}"


def readiness(conn: Any | None) -> dict[str, Any]:
    dependencies: dict[str, str] = {}
    if conn is None:
        dependencies["database"] = "error: unavailable"
    else:
        dependencies["database"] = _database_ready(conn)
    ok = dependencies["database"] == "ready"
    return {"ok": ok, "dependencies": dependencies}
