"""
Verification data contracts.

Candidates are immutable; ConcurrencyState is owned by the driver's control
loop and updated from completion callbacks.
"""

from __future__ import annotations

import enum
import json
import math
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable


class VerificationOutcome(enum.Enum):
    """Terminal state of one submitted candidate."""

    VERIFIED = "verified"
    ALREADY_VERIFIED = "already_verified"
    FAILED = "failed"

    @property
    def completed(self) -> bool:
        return self is not VerificationOutcome.FAILED


@dataclass(frozen=True)
class VerificationCandidate:
    """A deployed contract waiting to be re-verified."""

    chain_id: int
    address: str
    sources: Dict[str, str]
    compiler_settings: Dict[str, Any] = field(default_factory=dict)
    metadata: Optional[str] = None
    row_id: Optional[int] = None

    @property
    def hex_address(self) -> str:
        """0x-prefixed lower-case address."""
        addr = self.address.lower()
        return addr if addr.startswith("0x") else "0x" + addr

    def files(self) -> Dict[str, str]:
        """Files for the verification request: sources plus metadata.json when known."""
        files = dict(self.sources)
        if self.metadata:
            files["metadata.json"] = self.metadata
        return files

    def to_request(self) -> Dict[str, Any]:
        return {
            "address": self.hex_address,
            "chain": str(self.chain_id),
            "files": self.files(),
        }

    def describe(self) -> str:
        return f"{self.chain_id}:{self.hex_address}"


@dataclass(frozen=True)
class VerificationResponse:
    """What the remote endpoint said about one candidate."""

    outcome: VerificationOutcome
    status_code: Optional[int]
    status: Optional[str] = None
    message: Optional[str] = None


@runtime_checkable
class CandidateQueue(Protocol):
    """Source of candidates and sink for terminal success states."""

    def fetch_batch(self, batch_size: int) -> List[VerificationCandidate]: ...

    def mark_verified(self, candidate: VerificationCandidate) -> None: ...

    def close(self) -> None: ...


@runtime_checkable
class Verifier(Protocol):
    def verify(self, candidate: VerificationCandidate) -> VerificationResponse: ...

    def close(self) -> None: ...


@dataclass
class DriverOptions:
    """Pacing knobs for BatchVerificationDriver."""

    batch_size: int = 100
    max_concurrency: int = 50
    limit: int = 1_000_000
    interval_s: float = 0.1
    cold_start: int = 3
    growth_factor: float = 1.2
    prefetch_wait_s: float = 2.0
    shutdown_grace_s: float = 120.0
    chains: Optional[List[int]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "batch_size": self.batch_size,
            "max_concurrency": self.max_concurrency,
            "limit": self.limit,
            "interval_s": self.interval_s,
            "cold_start": self.cold_start,
            "growth_factor": self.growth_factor,
            "chains": self.chains,
        }

    def __str__(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)


@dataclass
class ConcurrencyState:
    """
    Adaptive concurrency ceiling plus active/completed counters.

    The ceiling starts at a cold-start value and is multiplied by
    growth_factor each time completed_count reaches it, never exceeding
    max_ceiling. The counters only pace the loop and feed logs.
    """

    ceiling: float
    growth_factor: float
    max_ceiling: float
    active_count: int = 0
    completed_count: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        self.ceiling = min(float(self.ceiling), float(self.max_ceiling))

    @classmethod
    def from_options(cls, options: DriverOptions) -> ConcurrencyState:
        return cls(
            ceiling=options.cold_start,
            growth_factor=options.growth_factor,
            max_ceiling=options.max_concurrency,
        )

    @property
    def slots(self) -> int:
        """Number of verifications the current ceiling admits."""
        return math.ceil(self.ceiling)

    @property
    def saturated(self) -> bool:
        return self.active_count >= self.ceiling

    def task_started(self) -> None:
        with self._lock:
            self.active_count += 1

    def task_finished(self, completed: bool) -> None:
        with self._lock:
            self.active_count -= 1
            if completed:
                self.completed_count += 1

    def grow_if_due(self) -> bool:
        """Raise the ceiling once completed_count has reached it. Returns True if it grew."""
        with self._lock:
            if self.ceiling >= self.max_ceiling or self.completed_count < self.ceiling:
                return False
            self.ceiling = min(self.ceiling * self.growth_factor, float(self.max_ceiling))
            return True


@dataclass
class DriverReport:
    """Summary returned by BatchVerificationDriver.run()."""

    launched: int = 0
    verified: int = 0
    already_verified: int = 0
    failed: int = 0
    elapsed_s: float = 0.0
    final_ceiling: float = 0.0
    unfinished: int = 0

    @property
    def completed(self) -> int:
        return self.verified + self.already_verified
