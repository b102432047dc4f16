"""Vyper compiler: native binaries only (there is no script target)."""
from __future__ import annotations

import logging
import time
from typing import Any

from .base import CompilationRequest, CompilationResult
from .invoker import MAX_OUTPUT_BYTES, parse_compiler_output, run_standard_json
from .provisioning import VyperProvisioner

logger = logging.getLogger(__name__)


class VyperCompiler:
    """Compile standard-JSON Vyper requests with an exact vyper version."""

    def __init__(self, provisioner: VyperProvisioner, *, max_output_bytes: int = MAX_OUTPUT_BYTES) -> None:
        self.provisioner = provisioner
        self.max_output_bytes = max_output_bytes

    @property
    def language(self) -> str:
        return "Vyper"

    def compile(self, version: str, request: CompilationRequest, **kwargs: Any) -> CompilationResult:
        descriptor = self.provisioner.get_executable(version)
        start = time.monotonic()
        try:
            compiled = run_standard_json(
                descriptor.local_path, request.to_json(), max_output_bytes=self.max_output_bytes
            )
        except Exception as exc:
            logger.warning("Vyper %s failed: %s", descriptor.version, exc)
            raise
        logger.info(
            "Local compiler - Compilation done compiler=vyper version=%s timeInMs=%d",
            descriptor.version, (time.monotonic() - start) * 1000,
        )
        return CompilationResult.from_output(parse_compiler_output(compiled))
