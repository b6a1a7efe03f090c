import logging
import sqlite3

from ..constants import TABLE_SCHEMA_VERSION

_log = logging.getLogger(__name__)


def _ensure_table(conn: sqlite3.Connection):
    conn.execute(f"""
        CREATE TABLE IF NOT EXISTS {TABLE_SCHEMA_VERSION}(
            id         INTEGER PRIMARY KEY CHECK (id=1),
            version    TEXT NOT NULL,
            applied_at TEXT NOT NULL DEFAULT (datetime('now'))
        );
    """)


def get_current_version(conn: sqlite3.Connection) -> str | None:
    _ensure_table(conn)
    row = conn.execute(f"SELECT version FROM {TABLE_SCHEMA_VERSION} WHERE id=1;").fetchone()
    return row["version"] if row else None


def set_current_version(conn: sqlite3.Connection, version: str) -> bool:
    """
    Stamp the database with `version`. Returns True when the stamp changed
    (new database or an upgrade), False when it was already current.
    """
    previous = get_current_version(conn)
    if previous == version:
        return False
    conn.execute(
        f"INSERT INTO {TABLE_SCHEMA_VERSION}(id, version) VALUES (1, ?) "
        f"ON CONFLICT(id) DO UPDATE SET version=excluded.version, applied_at=datetime('now');",
        (version,),
    )
    if previous is None:
        _log.info("Initialized database schema at version %s", version)
    else:
        _log.info("Schema version %s -> %s", previous, version)
    return True
