"""Fakes for compiler, download and verification tests (no live network, no real compilers)."""

from .compilers import FakeSolcProvisioner
from .http import FakeResponse, FakeSession
from .verification import InMemoryCandidateQueue, ScriptedVerifier, make_candidates

__all__ = [
    "FakeResponse",
    "FakeSession",
    "FakeSolcProvisioner",
    "InMemoryCandidateQueue",
    "ScriptedVerifier",
    "make_candidates",
]
