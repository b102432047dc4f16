"""
Core: shared exception hierarchy.
Import from here or from contract_verify.core.errors.
"""

from __future__ import annotations

from .errors import (
    AuxdataError,
    AuxdataNotFound,
    CompilationError,
    CompilerError,
    CompilerProcessError,
    CompilerProvisioningError,
    ContractVerifyError,
    CorruptOrUnvalidatedBinary,
    DownloadFailure,
    EmptyBytecode,
    InvalidBytecode,
    MissingHexPrefix,
    NoOutput,
    OutputTooLarge,
    QueueUnavailable,
    UnrecognizedReferenceScheme,
    UnsupportedPlatform,
    VerificationError,
)

__all__ = [
    "AuxdataError",
    "AuxdataNotFound",
    "CompilationError",
    "CompilerError",
    "CompilerProcessError",
    "CompilerProvisioningError",
    "ContractVerifyError",
    "CorruptOrUnvalidatedBinary",
    "DownloadFailure",
    "EmptyBytecode",
    "InvalidBytecode",
    "MissingHexPrefix",
    "NoOutput",
    "OutputTooLarge",
    "QueueUnavailable",
    "UnrecognizedReferenceScheme",
    "UnsupportedPlatform",
    "VerificationError",
]
