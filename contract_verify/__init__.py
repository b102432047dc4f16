"""
Top-level public API surface. Stable facades only.
Canonical entrypoint: import contract_verify; use contract_verify.bytecode,
contract_verify.compilers, contract_verify.verification.
Does not import cli.
"""

from __future__ import annotations

from . import bytecode, compilers, core, db, verification
from ._version import __version__

# Do not add exports without updating __all__.
__all__ = [
    "__version__",
    "bytecode",
    "compilers",
    "core",
    "db",
    "verification",
]
