"""
Compiler interfaces and data contracts.

Compilers speak the standard-JSON protocol:
  request:  {language, sources: {path: {content}}, settings: {outputSelection, ...}}
  response: {contracts: {path: {name: {evm, metadata, abi}}}, errors?: [...]}

Compiler output differs across versions, so CompilationResult keeps the raw
dicts and exposes tolerant accessors instead of a rigid schema.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from ..bytecode.auxdata import DecodedMetadataReference, decode


def safe_get(d: Any, path: str, default: Any = None) -> Any:
    cur: Any = d
    for key in path.split("."):
        if not isinstance(cur, dict) or key not in cur:
            return default
        cur = cur[key]
    return cur


@dataclass(frozen=True)
class CompilerDescriptor:
    """A provisioned compiler build. Created once validated; never mutated afterwards."""

    version: str
    platform: str
    local_path: Path
    validated: bool = False

    @property
    def is_script(self) -> bool:
        return self.platform == "bin"


@dataclass
class CompilationRequest:
    """Standard-JSON compilation input."""

    language: str
    sources: Dict[str, Dict[str, Any]]
    settings: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CompilationRequest:
        return cls(
            language=str(data.get("language", "Solidity")),
            sources=dict(data.get("sources") or {}),
            settings=dict(data.get("settings") or {}),
        )

    @classmethod
    def from_files(
        cls,
        files: Dict[str, str],
        *,
        language: str = "Solidity",
        settings: Optional[Dict[str, Any]] = None,
    ) -> CompilationRequest:
        return cls(
            language=language,
            sources={path: {"content": content} for path, content in files.items()},
            settings=dict(settings or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"language": self.language, "sources": self.sources, "settings": self.settings}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


@dataclass
class CompilationResult:
    """Standard-JSON compilation output: contracts tree plus diagnostics."""

    contracts: Dict[str, Dict[str, Any]]
    errors: List[Dict[str, Any]] = field(default_factory=list)
    sources: Dict[str, Any] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_output(cls, output: Dict[str, Any]) -> CompilationResult:
        return cls(
            contracts=dict(output.get("contracts") or {}),
            errors=list(output.get("errors") or []),
            sources=dict(output.get("sources") or {}),
            raw=output,
        )

    @property
    def warnings(self) -> List[Dict[str, Any]]:
        return [e for e in self.errors if e.get("severity") == "warning"]

    def contract_names(self) -> List[Tuple[str, str]]:
        """All (path, name) pairs in the output."""
        return [
            (path, name)
            for path, by_name in self.contracts.items()
            if isinstance(by_name, dict)
            for name in by_name
        ]

    def get_contract(self, path: str, name: str) -> Optional[Dict[str, Any]]:
        by_name = self.contracts.get(path)
        if not isinstance(by_name, dict):
            return None
        contract = by_name.get(name)
        return contract if isinstance(contract, dict) else None

    def creation_bytecode(self, path: str, name: str) -> Optional[str]:
        return safe_get(self.get_contract(path, name) or {}, "evm.bytecode.object")

    def deployed_bytecode(self, path: str, name: str) -> Optional[str]:
        return safe_get(self.get_contract(path, name) or {}, "evm.deployedBytecode.object")

    def metadata(self, path: str, name: str) -> Optional[Dict[str, Any]]:
        """Metadata document; compilers return it as a JSON string."""
        raw = safe_get(self.get_contract(path, name) or {}, "metadata")
        if isinstance(raw, dict):
            return raw
        if isinstance(raw, str) and raw:
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError:
                return None
            return parsed if isinstance(parsed, dict) else None
        return None

    def deployed_auxdata(self, path: str, name: str) -> Optional[DecodedMetadataReference]:
        """Decode the auxdata trailer of the deployed bytecode, if the contract has one."""
        bytecode = self.deployed_bytecode(path, name)
        if not bytecode:
            return None
        return decode(bytecode)


@runtime_checkable
class Compiler(Protocol):
    """Protocol for language compilers (Solidity, Vyper)."""

    @property
    def language(self) -> str: ...

    def compile(self, version: str, request: CompilationRequest, **kwargs: Any) -> CompilationResult:
        """Compile a standard-JSON request with the exact compiler version."""
        ...
