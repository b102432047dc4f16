"""
Idempotent schema for the verification candidate queue.

Uses CREATE TABLE IF NOT EXISTS and guarded ALTER TABLE so it can be re-run
on every startup.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

CANDIDATES_TABLE = "verification_candidates"


def _safe_add_column(conn: sqlite3.Connection, table: str, column: str, col_type: str) -> None:
    """Add a column if it doesn't already exist."""
    try:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {col_type};")
        conn.commit()
        logger.debug("Added column %s.%s", table, column)
    except sqlite3.OperationalError:
        pass


def run_migrations(conn: sqlite3.Connection) -> None:
    """Create the candidate queue table and its indexes if missing."""
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {CANDIDATES_TABLE} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            chain_id INTEGER NOT NULL,
            address TEXT NOT NULL,
            sources_json TEXT NOT NULL,
            compiler_settings TEXT,
            metadata TEXT,
            reverified INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
        );
        """
    )
    conn.execute(
        f"CREATE UNIQUE INDEX IF NOT EXISTS idx_candidates_chain_address "
        f"ON {CANDIDATES_TABLE}(chain_id, address);"
    )
    conn.execute(
        f"CREATE INDEX IF NOT EXISTS idx_candidates_pending ON {CANDIDATES_TABLE}(reverified, id);"
    )

    # Added after the first release of the queue schema
    _safe_add_column(conn, CANDIDATES_TABLE, "updated_at", "TEXT")

    conn.commit()
    logger.debug("Queue migrations applied")
