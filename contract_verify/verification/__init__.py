"""Batch re-verification of queued contracts against a remote endpoint."""

from .base import (
    CandidateQueue,
    ConcurrencyState,
    DriverOptions,
    DriverReport,
    VerificationCandidate,
    VerificationOutcome,
    VerificationResponse,
    Verifier,
)
from .client import VerificationClient
from .driver import BatchVerificationDriver

__all__ = [
    "BatchVerificationDriver",
    "CandidateQueue",
    "ConcurrencyState",
    "DriverOptions",
    "DriverReport",
    "VerificationCandidate",
    "VerificationClient",
    "VerificationOutcome",
    "VerificationResponse",
    "Verifier",
]
