"""SQLite access for the host key/value store: connections and schema migrations."""

import importlib
import sqlite3
from pathlib import Path

MIGRATIONS_PACKAGE = "peerclient.storage.migrations"
MIGRATIONS_DIR = Path(__file__).parent / "migrations"


def connect(db_path: str | Path) -> sqlite3.Connection:
    """Open the client database in WAL mode, creating its directory if needed."""
    in_memory = str(db_path) == ":memory:"
    if not in_memory:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    # Shared with the dashboard's worker threads, which take turns under a lock
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    return conn


def run_migrations(conn: sqlite3.Connection) -> list[str]:
    """Apply every migration not yet recorded in schema_versions.

    Returns the names applied by this call, oldest first.
    """
    conn.execute(
        "CREATE TABLE IF NOT EXISTS schema_versions ("
        " version TEXT PRIMARY KEY,"
        " applied_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP)"
    )
    conn.commit()
    done = {r["version"] for r in conn.execute("SELECT version FROM schema_versions")}

    applied = []
    for name in _migration_names():
        if name in done:
            continue
        importlib.import_module(f"{MIGRATIONS_PACKAGE}.{name}").up(conn)
        conn.execute("INSERT INTO schema_versions (version) VALUES (?)", (name,))
        conn.commit()
        applied.append(name)
    return applied


def _migration_names() -> list[str]:
    # v001_initial.py, v002_... ; lexical order is application order
    return sorted(p.stem for p in MIGRATIONS_DIR.glob("v[0-9]*_*.py"))
