"""
Tests for SqliteCandidateQueue: migrations, keyset paging, chain filter,
mark_verified, error translation.
"""
from __future__ import annotations

import sqlite3

import pytest

from contract_verify.core.errors import QueueUnavailable
from contract_verify.db.migrations import CANDIDATES_TABLE, run_migrations
from contract_verify.db.queue import SqliteCandidateQueue


def _fill(queue, n, chain_id=1, start=0):
    for i in range(start, start + n):
        queue.enqueue(chain_id, f"0x{i:040x}", {"C.sol": f"contract C{i} {{}}"}, {"optimizer": {"enabled": False}}, "{}")


def test_migrations_are_idempotent(tmp_path):
    with sqlite3.connect(str(tmp_path / "q.sqlite")) as conn:
        run_migrations(conn)
        run_migrations(conn)
        cols = {row[1] for row in conn.execute(f"PRAGMA table_info([{CANDIDATES_TABLE}])")}
    assert {"id", "chain_id", "address", "sources_json", "compiler_settings", "metadata", "reverified", "updated_at"} <= cols


def test_paging_by_row_id_survives_marking(tmp_path):
    with SqliteCandidateQueue(tmp_path / "q.sqlite") as queue:
        _fill(queue, 7)
        first = queue.fetch_batch(3)
        assert [c.row_id for c in first] == [1, 2, 3]
        for c in first:
            queue.mark_verified(c)
        second = queue.fetch_batch(3)
        assert [c.row_id for c in second] == [4, 5, 6]
        assert [c.row_id for c in queue.fetch_batch(3)] == [7]
        assert queue.fetch_batch(3) == []
        assert queue.pending_count() == 4


def test_candidate_fields_round_trip(tmp_path):
    with SqliteCandidateQueue(tmp_path / "q.sqlite") as queue:
        queue.enqueue(10, "ABCDEF0000000000000000000000000000000001", {"A.sol": "contract A {}"}, {"evmVersion": "london"}, '{"m":1}')
        (candidate,) = queue.fetch_batch(10)
    assert candidate.chain_id == 10
    assert candidate.address == "0xabcdef0000000000000000000000000000000001"
    assert candidate.sources == {"A.sol": "contract A {}"}
    assert candidate.compiler_settings == {"evmVersion": "london"}
    assert candidate.metadata == '{"m":1}'


def test_duplicate_enqueue_is_ignored(tmp_path):
    with SqliteCandidateQueue(tmp_path / "q.sqlite") as queue:
        assert queue.enqueue(1, "0x01", {"A.sol": ""}) == 1
        assert queue.enqueue(1, "0x01", {"A.sol": ""}) is None
        assert queue.pending_count() == 1


def test_chain_filter(tmp_path):
    path = tmp_path / "q.sqlite"
    with SqliteCandidateQueue(path) as queue:
        _fill(queue, 3, chain_id=1)
        _fill(queue, 2, chain_id=137, start=100)
    with SqliteCandidateQueue(path, chains=[137]) as queue:
        batch = queue.fetch_batch(10)
        assert {c.chain_id for c in batch} == {137}
        assert queue.pending_count() == 2


def test_mark_verified_stamps_row(tmp_path):
    path = tmp_path / "q.sqlite"
    with SqliteCandidateQueue(path) as queue:
        _fill(queue, 1)
        (candidate,) = queue.fetch_batch(1)
        queue.mark_verified(candidate)
    with sqlite3.connect(str(path)) as conn:
        reverified, updated_at = conn.execute(f"SELECT reverified, updated_at FROM {CANDIDATES_TABLE}").fetchone()
    assert reverified == 1
    assert updated_at


def test_closed_connection_raises_queue_unavailable(tmp_path):
    queue = SqliteCandidateQueue(tmp_path / "q.sqlite")
    queue.close()
    with pytest.raises(QueueUnavailable):
        queue.fetch_batch(1)


def test_unopenable_database(tmp_path):
    with pytest.raises(QueueUnavailable):
        SqliteCandidateQueue(tmp_path / "missing-dir" / "q.sqlite")
