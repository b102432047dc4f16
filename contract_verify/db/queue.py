"""
SQLite-backed verification candidate queue.

Pending rows (reverified = 0) are paged by row id. The last id handed out is
remembered, so rows marked verified while a later page is being read never
shift the window the way OFFSET paging would.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from ..core.errors import QueueUnavailable
from ..verification.base import VerificationCandidate
from .migrations import CANDIDATES_TABLE, run_migrations

logger = logging.getLogger(__name__)


def _apply_pragmas(conn: sqlite3.Connection, busy_timeout_ms: int) -> None:
    conn.execute("PRAGMA foreign_keys=ON")
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")


def _row_to_candidate(row: sqlite3.Row) -> VerificationCandidate:
    settings = json.loads(row["compiler_settings"]) if row["compiler_settings"] else {}
    return VerificationCandidate(
        chain_id=int(row["chain_id"]),
        address=row["address"],
        sources=json.loads(row["sources_json"]),
        compiler_settings=settings,
        metadata=row["metadata"],
        row_id=int(row["id"]),
    )


class SqliteCandidateQueue:
    """
    Candidate queue over one SQLite connection.

    The connection is shared between the driver loop, the prefetch worker and
    completion callbacks, so every statement runs under a lock. Any sqlite
    error is re-raised as QueueUnavailable.
    """

    def __init__(
        self,
        db_path: Union[str, Path],
        *,
        chains: Optional[Iterable[int]] = None,
        busy_timeout_ms: int = 5000,
    ) -> None:
        self.db_path = str(db_path)
        self.chains = sorted({int(c) for c in chains}) if chains else None
        self._lock = threading.Lock()
        self._last_id = 0
        try:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            _apply_pragmas(self._conn, busy_timeout_ms)
            run_migrations(self._conn)
        except sqlite3.Error as exc:
            raise QueueUnavailable(f"Cannot open queue database {self.db_path}: {exc}") from exc

    def fetch_batch(self, batch_size: int) -> List[VerificationCandidate]:
        """Next page of pending candidates after the last one handed out."""
        sql = (
            f"SELECT id, chain_id, address, sources_json, compiler_settings, metadata "
            f"FROM {CANDIDATES_TABLE} WHERE reverified = 0 AND id > ?"
        )
        params: List[Any] = [self._last_id]
        if self.chains:
            sql += f" AND chain_id IN ({', '.join('?' for _ in self.chains)})"
            params.extend(self.chains)
        sql += " ORDER BY id LIMIT ?"
        params.append(int(batch_size))

        with self._lock:
            try:
                rows = self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as exc:
                raise QueueUnavailable(f"Fetching candidates failed: {exc}") from exc
            if rows:
                self._last_id = int(rows[-1]["id"])
        candidates = []
        for row in rows:
            try:
                candidates.append(_row_to_candidate(row))
            except (TypeError, ValueError) as exc:
                logger.error("Skipping unreadable candidate id=%s chain=%s address=%s: %s",
                             row["id"], row["chain_id"], row["address"], exc)
        logger.debug("Fetched %d candidates (last id %d)", len(candidates), self._last_id)
        return candidates

    def mark_verified(self, candidate: VerificationCandidate) -> None:
        with self._lock:
            try:
                self._conn.execute(
                    f"""
                    UPDATE {CANDIDATES_TABLE}
                    SET reverified = 1,
                        updated_at = strftime('%Y-%m-%dT%H:%M:%SZ', 'now')
                    WHERE chain_id = ? AND lower(address) = ?
                    """,
                    (candidate.chain_id, candidate.hex_address),
                )
                self._conn.commit()
            except sqlite3.Error as exc:
                raise QueueUnavailable(f"Marking {candidate.describe()} verified failed: {exc}") from exc

    def enqueue(
        self,
        chain_id: int,
        address: str,
        sources: Dict[str, str],
        compiler_settings: Optional[Dict[str, Any]] = None,
        metadata: Optional[str] = None,
    ) -> Optional[int]:
        """Insert a pending candidate. Returns its row id, or None if (chain, address) is already queued."""
        addr = address.lower()
        if not addr.startswith("0x"):
            addr = "0x" + addr
        with self._lock:
            try:
                cur = self._conn.execute(
                    f"""
                    INSERT OR IGNORE INTO {CANDIDATES_TABLE}
                        (chain_id, address, sources_json, compiler_settings, metadata)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        int(chain_id),
                        addr,
                        json.dumps(sources),
                        json.dumps(compiler_settings) if compiler_settings is not None else None,
                        metadata,
                    ),
                )
                self._conn.commit()
            except sqlite3.Error as exc:
                raise QueueUnavailable(f"Enqueueing {chain_id}:{addr} failed: {exc}") from exc
        return cur.lastrowid if cur.rowcount else None

    def pending_count(self) -> int:
        sql = f"SELECT COUNT(*) FROM {CANDIDATES_TABLE} WHERE reverified = 0"
        params: List[Any] = []
        if self.chains:
            sql += f" AND chain_id IN ({', '.join('?' for _ in self.chains)})"
            params.extend(self.chains)
        with self._lock:
            try:
                return int(self._conn.execute(sql, params).fetchone()[0])
            except sqlite3.Error as exc:
                raise QueueUnavailable(f"Counting candidates failed: {exc}") from exc

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> SqliteCandidateQueue:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
