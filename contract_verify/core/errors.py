"""
Shared exception types for contract_verify.
Stable surface; extend only.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class ContractVerifyError(Exception):
    """Base exception for contract_verify; catch this for any package-raised error."""

    pass


# ---------------------------------------------------------------------------
# Bytecode auxdata codec
# ---------------------------------------------------------------------------


class AuxdataError(ContractVerifyError, ValueError):
    """Malformed bytecode or auxdata."""


class EmptyBytecode(AuxdataError):
    pass


class MissingHexPrefix(AuxdataError):
    pass


class InvalidBytecode(AuxdataError):
    pass


class AuxdataNotFound(AuxdataError):
    pass


class UnrecognizedReferenceScheme(AuxdataError):
    pass


# ---------------------------------------------------------------------------
# Compiler provisioning
# ---------------------------------------------------------------------------


class CompilerProvisioningError(ContractVerifyError):
    """A compiler build could not be obtained for (version, platform)."""


class DownloadFailure(CompilerProvisioningError):
    pass


class CorruptOrUnvalidatedBinary(CompilerProvisioningError):
    pass


class UnsupportedPlatform(CompilerProvisioningError):
    pass


# ---------------------------------------------------------------------------
# Compiler invocation
# ---------------------------------------------------------------------------


class CompilationError(ContractVerifyError):
    """A single compilation attempt failed."""


class CompilerProcessError(CompilationError):
    def __init__(self, message: str, *, stderr: Optional[str] = None, returncode: Optional[int] = None) -> None:
        super().__init__(message)
        self.stderr = stderr
        self.returncode = returncode


class OutputTooLarge(CompilationError):
    pass


class NoOutput(CompilationError):
    pass


class CompilerError(CompilationError):
    """
    Compiler reported at least one diagnostic with severity "error".

    `errors` holds every error-severity diagnostic, `diagnostics` everything
    the compiler returned (warnings included). Neither is truncated.
    """

    def __init__(
        self,
        message: str,
        errors: List[Dict[str, Any]],
        diagnostics: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        super().__init__(message)
        self.errors = errors
        self.diagnostics = diagnostics if diagnostics is not None else list(errors)

    def __str__(self) -> str:
        lines = [super().__str__()]
        for err in self.errors:
            lines.append(str(err.get("formattedMessage") or err.get("message") or err))
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Verification driver
# ---------------------------------------------------------------------------


class VerificationError(ContractVerifyError):
    pass


class QueueUnavailable(VerificationError):
    """Candidate queue could not be read; fatal for the driver."""


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
