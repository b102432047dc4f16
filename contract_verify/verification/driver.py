"""
Adaptive batch verification driver.

Pulls candidates from a queue one batch at a time (with one batch prefetched
ahead), submits each to a Verifier on a thread pool without waiting for it,
and paces launches with an adaptive concurrency ceiling:

    current empty, prefetch in flight    -> wait for it
    current empty, next empty            -> done
    current empty                        -> promote next, prefetch the one after
    active >= ceiling                    -> wait
    otherwise                            -> launch one verification

The ceiling starts at cold_start and grows by growth_factor each time the
completed count reaches it, capped at max_concurrency.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, List, Optional, Set

from ..core.errors import QueueUnavailable
from .base import (
    CandidateQueue,
    ConcurrencyState,
    DriverOptions,
    DriverReport,
    VerificationCandidate,
    VerificationOutcome,
    Verifier,
)

logger = logging.getLogger(__name__)

SHUTDOWN_LOG_EVERY_S = 10.0
# Floor for every pause so a zero interval still yields.
MIN_WAIT_S = 0.01


class BatchVerificationDriver:
    """Drains a candidate queue against a verification endpoint. Single use: call run() once."""

    def __init__(
        self,
        queue: CandidateQueue,
        verifier: Verifier,
        options: Optional[DriverOptions] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.queue = queue
        self.verifier = verifier
        self.options = options or DriverOptions()
        self.state = ConcurrencyState.from_options(self.options)
        self._clock = clock

        self._pool = ThreadPoolExecutor(
            max_workers=max(1, int(self.options.max_concurrency)), thread_name_prefix="verify"
        )
        self._prefetcher = ThreadPoolExecutor(max_workers=1, thread_name_prefix="prefetch")
        self._prefetch_idle = threading.Event()
        self._prefetch_idle.set()
        self._next_batch: List[VerificationCandidate] = []

        self._lock = threading.Lock()
        self._in_flight: Set[Future] = set()
        self._wake = threading.Event()
        self._fatal: Optional[QueueUnavailable] = None
        self._report = DriverReport()

        self._started_at = 0.0
        self._progress_at = 0.0
        self._progress_completed = 0

    # -- control loop ---------------------------------------------------

    def run(self) -> DriverReport:
        opts = self.options
        if opts.max_concurrency > opts.batch_size:
            logger.warning(
                "Concurrency (%d) is greater than batch size (%d); the ceiling cannot be reached within one batch",
                opts.max_concurrency,
                opts.batch_size,
            )
        logger.info("Starting verification driver with options %s", opts)
        self._started_at = self._progress_at = self._clock()

        try:
            current = self.queue.fetch_batch(opts.batch_size)
            self._next_batch = self.queue.fetch_batch(opts.batch_size) if current else []
            if not current:
                logger.warning("No candidates to verify")
            self._loop(current)
        finally:
            self._shutdown()

        if self._fatal is not None:
            raise self._fatal
        return self._report

    def _loop(self, current: List[VerificationCandidate]) -> None:
        opts = self.options
        while True:
            if self._fatal is not None:
                logger.error("Stopping driver: %s", self._fatal)
                return

            completed = self.state.completed_count
            if completed >= opts.limit:
                logger.info("Reached limit of %d verified contracts", opts.limit)
                return

            if not current:
                if not self._prefetch_idle.is_set():
                    self._wait_for_prefetch()
                    continue
                if not self._next_batch:
                    logger.info("Backlog exhausted")
                    return
                current, self._next_batch = self._next_batch, []
                self._start_prefetch()
                self._log_progress(len(current))
                continue

            if self.state.grow_if_due():
                logger.info("Increasing concurrency to %.2f (%d slots)", self.state.ceiling, self.state.slots)

            if self.state.saturated or completed + self.state.active_count >= opts.limit:
                self._pause()
                continue

            self._launch(current.pop(0))

    @property
    def _wait_s(self) -> float:
        return max(float(self.options.interval_s), MIN_WAIT_S)

    def _pause(self) -> None:
        if self._wake.wait(self._wait_s):
            self._wake.clear()

    # -- prefetch -------------------------------------------------------

    def _start_prefetch(self) -> None:
        self._prefetch_idle.clear()
        self._prefetcher.submit(self._prefetch)

    def _prefetch(self) -> None:
        batch: List[VerificationCandidate] = []
        try:
            batch = self.queue.fetch_batch(self.options.batch_size)
        except Exception as exc:
            # Not retried: the next batch stays empty and the run winds down.
            logger.error("Prefetching next batch failed: %s", exc)
        self._next_batch = batch
        self._prefetch_idle.set()

    def _wait_for_prefetch(self) -> None:
        started = self._clock()
        warned = False
        while not self._prefetch_idle.wait(self._wait_s):
            waited = self._clock() - started
            if not warned and waited >= self.options.prefetch_wait_s:
                logger.warning("Waiting for next batch for %.1fs; the queue database may be slow", waited)
                warned = True

    # -- verification tasks ---------------------------------------------

    def _launch(self, candidate: VerificationCandidate) -> None:
        self.state.task_started()
        future = self._pool.submit(self._verify_one, candidate)
        with self._lock:
            self._report.launched += 1
            self._in_flight.add(future)
        future.add_done_callback(self._on_done)

    def _verify_one(self, candidate: VerificationCandidate) -> VerificationOutcome:
        started = self._clock()
        logger.debug("Verifying chain=%s address=%s", candidate.chain_id, candidate.hex_address)
        try:
            response = self.verifier.verify(candidate)
        except Exception as exc:
            logger.error(
                "Verification of chain=%s address=%s raised after %.2fs: %s",
                candidate.chain_id,
                candidate.hex_address,
                self._clock() - started,
                exc,
            )
            return VerificationOutcome.FAILED

        elapsed = self._clock() - started
        outcome = response.outcome
        if outcome is VerificationOutcome.VERIFIED:
            logger.info(
                "Verified chain=%s address=%s status=%s in %.2fs",
                candidate.chain_id,
                candidate.hex_address,
                response.status,
                elapsed,
            )
        elif outcome is VerificationOutcome.ALREADY_VERIFIED:
            logger.info("Already verified chain=%s address=%s in %.2fs", candidate.chain_id, candidate.hex_address, elapsed)
        else:
            logger.error(
                "Failed to verify chain=%s address=%s http=%s in %.2fs: %s",
                candidate.chain_id,
                candidate.hex_address,
                response.status_code,
                elapsed,
                response.message,
            )

        if outcome.completed:
            try:
                self.queue.mark_verified(candidate)
            except QueueUnavailable as exc:
                logger.error("Could not record chain=%s address=%s as verified: %s", candidate.chain_id, candidate.hex_address, exc)
                with self._lock:
                    if self._fatal is None:
                        self._fatal = exc
        return outcome

    def _on_done(self, future: Future) -> None:
        if future.cancelled():
            with self._lock:
                self._in_flight.discard(future)
            self.state.task_finished(False)
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Verification task crashed: %s", exc)
            outcome = VerificationOutcome.FAILED
        else:
            outcome = future.result()

        with self._lock:
            self._in_flight.discard(future)
            if outcome is VerificationOutcome.VERIFIED:
                self._report.verified += 1
            elif outcome is VerificationOutcome.ALREADY_VERIFIED:
                self._report.already_verified += 1
            else:
                self._report.failed += 1
        self.state.task_finished(outcome.completed)
        self._wake.set()

    # -- reporting and shutdown -----------------------------------------

    def _log_progress(self, batch_len: int) -> None:
        now = self._clock()
        completed = self.state.completed_count
        elapsed = now - self._started_at
        since = now - self._progress_at
        overall_rate = completed / elapsed if elapsed > 0 else 0.0
        batch_rate = (completed - self._progress_completed) / since if since > 0 else 0.0
        logger.info(
            "Progress: %d verified, %.2f/s overall, %.2f/s since last batch, %d active, %d in new batch",
            completed,
            overall_rate,
            batch_rate,
            self.state.active_count,
            batch_len,
        )
        self._progress_at = now
        self._progress_completed = completed

    def _snapshot_in_flight(self) -> Set[Future]:
        with self._lock:
            return set(self._in_flight)

    def _shutdown(self) -> None:
        self._prefetcher.shutdown(wait=True)

        grace = float(self.options.shutdown_grace_s)
        deadline = self._clock() + grace
        next_log = self._clock()
        pending = self._snapshot_in_flight()
        while pending:
            now = self._clock()
            remaining = deadline - now
            if remaining <= 0:
                logger.warning("%d verifications still running after the %.0fs grace period", len(pending), grace)
                break
            if now >= next_log:
                logger.info("Waiting for %d in-flight verifications, %.0fs left", len(pending), remaining)
                next_log = now + SHUTDOWN_LOG_EVERY_S
            # done futures may still be running their completion callback
            wait(pending, timeout=min(self._wait_s, remaining), return_when=FIRST_COMPLETED)
            pending = self._snapshot_in_flight()

        self._pool.shutdown(wait=False, cancel_futures=True)
        self.verifier.close()
        self.queue.close()

        elapsed = self._clock() - self._started_at
        with self._lock:
            report = self._report
            report.elapsed_s = elapsed
            report.final_ceiling = self.state.ceiling
            report.unfinished = len(self._in_flight)
        logger.info(
            "Finished: %d verified, %d already verified, %d failed in %.1fs (%.2f/s)",
            report.verified,
            report.already_verified,
            report.failed,
            elapsed,
            report.completed / elapsed if elapsed > 0 else 0.0,
        )
