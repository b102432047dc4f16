"""
Compiler registry: central catalog of compilers by language.

Usage:
    registry = CompilerRegistry()
    registry.register("Solidity", solidity_compiler)
    registry.get("solidity").compile(version, request)
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Union

from .base import Compiler

logger = logging.getLogger(__name__)


class CompilerRegistry:
    """Maps language names (case-insensitive) to compiler instances or factories."""

    def __init__(self) -> None:
        self._factories: Dict[str, Any] = {}
        self._instances: Dict[str, Compiler] = {}

    def register(self, language: str, factory: Union[Compiler, Callable[[], Compiler]]) -> None:
        """Register a compiler, or a zero-argument factory building one on first use."""
        key = language.lower()
        self._factories[key] = factory
        self._instances.pop(key, None)
        logger.debug("Registered compiler: %s", language)

    def get(self, language: str) -> Compiler:
        key = language.lower()
        if key not in self._instances:
            factory = self._factories.get(key)
            if factory is None:
                raise KeyError(
                    f"Unknown compiler language '{language}'. "
                    f"Available: {list(self._factories)}"
                )
            if isinstance(factory, Compiler):
                self._instances[key] = factory
            else:
                self._instances[key] = factory()
        return self._instances[key]

    @property
    def languages(self) -> List[str]:
        return list(self._factories)
