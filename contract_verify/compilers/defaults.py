"""
Default compiler registry configuration.

Builds provisioners from config.yaml settings and registers the built-in
Solidity and Vyper compilers.
"""
from __future__ import annotations

from typing import Any, Optional

from .. import config
from .fetch import BackoffConfig
from .provisioning import SolcProvisioner, VyperProvisioner
from .registry import CompilerRegistry
from .solidity import SolidityCompiler
from .vyper import VyperCompiler


def default_backoff() -> BackoffConfig:
    return BackoffConfig(backoff_s=config.fetch_backoff_s(), retries=config.fetch_retries())


def create_solc_provisioner(session: Optional[Any] = None) -> SolcProvisioner:
    return SolcProvisioner(
        config.solc_repo(),
        config.soljson_repo(),
        host=config.solc_host(),
        backoff=default_backoff(),
        session=session,
    )


def create_vyper_provisioner(session: Optional[Any] = None) -> VyperProvisioner:
    return VyperProvisioner(
        config.vyper_repo(),
        host=config.vyper_host(),
        backoff=default_backoff(),
        session=session,
    )


def create_default_registry(session: Optional[Any] = None) -> CompilerRegistry:
    """Create a registry with all built-in compilers."""
    registry = CompilerRegistry()
    max_output = config.max_output_bytes()
    registry.register(
        "Solidity",
        lambda: SolidityCompiler(create_solc_provisioner(session), max_output_bytes=max_output),
    )
    registry.register(
        "Vyper",
        lambda: VyperCompiler(create_vyper_provisioner(session), max_output_bytes=max_output),
    )
    return registry
