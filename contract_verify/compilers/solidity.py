"""
Solidity compiler: native solc binary first, soljson script target as fallback.

The script target is used when the host has no native build, when obtaining
the native binary failed (e.g. very early releases such as 0.1.x), or when the
caller forces it.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Optional

from ..core.errors import CompilerProvisioningError
from .base import CompilationRequest, CompilationResult, CompilerDescriptor
from .invoker import MAX_OUTPUT_BYTES, parse_compiler_output, run_standard_json
from .platforms import needs_isolation, normalize_version
from .provisioning import SolcProvisioner
from .soljson import compile_isolated, load_solc_js

logger = logging.getLogger(__name__)


class SolidityCompiler:
    """Compile standard-JSON Solidity requests with an exact solc version."""

    def __init__(self, provisioner: SolcProvisioner, *, max_output_bytes: int = MAX_OUTPUT_BYTES) -> None:
        self.provisioner = provisioner
        self.max_output_bytes = max_output_bytes

    @property
    def language(self) -> str:
        return "Solidity"

    def _native(self, version: str) -> Optional[CompilerDescriptor]:
        if self.provisioner.platform is None:
            return None
        try:
            return self.provisioner.get_executable(version)
        except CompilerProvisioningError as exc:
            logger.error(
                "Error getting solc executable version=%s platform=%s: %s",
                version, self.provisioner.platform, exc,
            )
            return None

    def compile(
        self,
        version: str,
        request: CompilationRequest,
        *,
        force_script: bool = False,
        **kwargs: Any,
    ) -> CompilationResult:
        version = normalize_version(version)
        input_stringified = request.to_json()

        descriptor = None if force_script else self._native(version)
        if descriptor is not None:
            logger.info("Compiling with solc binary version=%s path=%s", version, descriptor.local_path)
            start = time.monotonic()
            compiled = run_standard_json(
                descriptor.local_path, input_stringified, max_output_bytes=self.max_output_bytes
            )
        else:
            logger.info("Compiling with solc-js version=%s", version)
            script = self.provisioner.get_script(version)
            start = time.monotonic()
            if needs_isolation(version):
                compiled = compile_isolated(script.local_path, version, input_stringified)
            else:
                compiled = load_solc_js(script.local_path, version).compile(input_stringified)

        logger.info(
            "Local compiler - Compilation done compiler=solidity version=%s timeInMs=%d",
            version, (time.monotonic() - start) * 1000,
        )
        return CompilationResult.from_output(parse_compiler_output(compiled))
