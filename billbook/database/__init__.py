# billbook/database/__init__.py
from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal
from pathlib import Path
import logging
import sqlite3

from ..config import DB_PATH
from ..constants import SCHEMA_VERSION
from . import schema as schema_module
from .seeders.default_data import seed as seed_default_data
from .versioning import set_current_version

_log = logging.getLogger(__name__)

# Decimals are bound as text so no binary rounding happens on the way in.
sqlite3.register_adapter(Decimal, str)


def get_connection(db_path: Path | str | None = None) -> sqlite3.Connection:
    """
    Returns a sqlite3.Connection with:
      - autocommit mode (isolation_level=None); multi-statement writes use transaction()
      - WAL mode for file databases
      - foreign_keys ON
      - row_factory = sqlite3.Row (so rows behave like dicts and tuples)
    Ensures schema & seed data are applied idempotently.
    """
    target = DB_PATH if db_path is None else db_path
    in_memory = str(target) == ":memory:"
    if not in_memory:
        Path(target).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(target), isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    if not in_memory:
        conn.execute("PRAGMA journal_mode = WAL;")

    # Always apply the schema (idempotent: CREATE IF NOT EXISTS / DROP TRIGGER IF EXISTS)
    schema_module.init_schema(conn)

    with transaction(conn):
        set_current_version(conn, SCHEMA_VERSION)
        # Seeders must be safe to run repeatedly (idempotent).
        seed_default_data(conn)

    return conn


@contextmanager
def transaction(conn: sqlite3.Connection):
    """
    Unit of work: BEGIN IMMEDIATE, commit on success, rollback on any error.

    Nested use joins the outer transaction, so repository helpers can be
    called both standalone and from a multi-table operation.
    """
    if conn.in_transaction:
        yield conn
        return

    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise
    else:
        conn.commit()


__all__ = [
    "get_connection",
    "transaction",
]
