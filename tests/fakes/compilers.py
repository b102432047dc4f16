"""
Fake provisioners for compiler tests: record calls, return canned descriptors
or raise canned errors. No network, no binaries.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from contract_verify.compilers.base import CompilerDescriptor
from contract_verify.compilers.platforms import SCRIPT_PLATFORM, normalize_version


class FakeSolcProvisioner:
    def __init__(
        self,
        tmp_path: Path,
        *,
        platform: Optional[str] = "linux-amd64",
        executable_error: Optional[Exception] = None,
    ):
        self.tmp_path = Path(tmp_path)
        self.platform = platform
        self.executable_error = executable_error
        self.executable_calls: List[str] = []
        self.script_calls: List[str] = []

    def get_executable(self, version: str) -> CompilerDescriptor:
        self.executable_calls.append(version)
        if self.executable_error is not None:
            raise self.executable_error
        path = self.tmp_path / f"solc-{self.platform}-{normalize_version(version)}"
        return CompilerDescriptor(version=version, platform=self.platform, local_path=path, validated=True)

    def get_script(self, version: str) -> CompilerDescriptor:
        self.script_calls.append(version)
        path = self.tmp_path / f"soljson-{normalize_version(version)}.js"
        return CompilerDescriptor(version=version, platform=SCRIPT_PLATFORM, local_path=path)
