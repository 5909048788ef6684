"""Initial schema: host key/value state."""

import sqlite3

DDL = [
    # Host-provided key/value store (robot token, keys, selected network)
    """
    CREATE TABLE IF NOT EXISTS host_state (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
]


def up(conn: sqlite3.Connection) -> None:
    for stmt in DDL:
        conn.execute(stmt)
    conn.commit()
