"""SQLite persistence for the verification candidate queue."""

from .migrations import CANDIDATES_TABLE, run_migrations
from .queue import SqliteCandidateQueue

__all__ = ["CANDIDATES_TABLE", "SqliteCandidateQueue", "run_migrations"]
