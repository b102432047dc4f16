"""
Compiler provisioning and invocation.

Provisioners fetch and cache exact compiler builds; compilers run them against
standard-JSON requests and validate the output.
"""

from __future__ import annotations

from .base import CompilationRequest, CompilationResult, Compiler, CompilerDescriptor
from .fetch import BackoffConfig, FetchResult, fetch_with_backoff
from .platforms import find_solc_platform, find_vyper_platform, nightly_version, normalize_version
from .provisioning import SolcProvisioner, VyperProvisioner
from .registry import CompilerRegistry
from .solidity import SolidityCompiler
from .vyper import VyperCompiler

__all__ = [
    "BackoffConfig",
    "CompilationRequest",
    "CompilationResult",
    "Compiler",
    "CompilerDescriptor",
    "CompilerRegistry",
    "FetchResult",
    "SolcProvisioner",
    "SolidityCompiler",
    "VyperCompiler",
    "VyperProvisioner",
    "fetch_with_backoff",
    "find_solc_platform",
    "find_vyper_platform",
    "nightly_version",
    "normalize_version",
]
