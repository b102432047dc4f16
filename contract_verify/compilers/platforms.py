"""
Platform resolution and compiler version normalization.

All version-specific quirks (nightly tag rewriting, the "v" prefix) live in
normalize_version(); everything else takes its output.
"""
from __future__ import annotations

import platform as _platform
import re
from typing import Optional, Tuple

# Script-target (soljson) artifacts live under this platform directory.
SCRIPT_PLATFORM = "bin"

_SOLC_PLATFORMS = {
    ("darwin", "x86_64"): "macosx-amd64",
    ("linux", "x86_64"): "linux-amd64",
    ("windows", "x86_64"): "windows-amd64",
}

_VYPER_PLATFORMS = {
    ("darwin", "x86_64"): "darwin",
    ("darwin", "arm64"): "darwin",
    ("linux", "x86_64"): "linux",
    ("windows", "x86_64"): "windows.exe",
}

_MACHINE_ALIASES = {"amd64": "x86_64", "x64": "x86_64", "aarch64": "arm64"}

_VERSION_TRIPLET = re.compile(r"(\d+)\.(\d+)\.(\d+)")

# Below this version the script compiler keeps global state between calls.
ISOLATION_THRESHOLD = (0, 4, 0)


def host_platform(system: Optional[str] = None, machine: Optional[str] = None) -> Tuple[str, str]:
    """(os, arch) of the host, lower-cased and with arch aliases folded."""
    os_name = (system if system is not None else _platform.system()).lower()
    arch = (machine if machine is not None else _platform.machine()).lower()
    return os_name, _MACHINE_ALIASES.get(arch, arch)


def find_solc_platform(system: Optional[str] = None, machine: Optional[str] = None) -> Optional[str]:
    """Native solc platform id, or None when only the script target can run here."""
    return _SOLC_PLATFORMS.get(host_platform(system, machine))


def find_vyper_platform(system: Optional[str] = None, machine: Optional[str] = None) -> Optional[str]:
    return _VYPER_PLATFORMS.get(host_platform(system, machine))


def nightly_version(version: str) -> str:
    """'0.8.17-ci.2022.8.9+commit.X' -> '0.8.17-nightly.2022.8.9+commit.X'."""
    return version.replace("-ci.", "-nightly.")


def normalize_version(version: str) -> str:
    """
    Canonical artifact version.

    Nightly builds report "-ci." in metadata but are published as "-nightly.";
    bare versions get a "v" prefix, except the literal "latest".
    """
    version = nightly_version(version.strip())
    if version != "latest" and not version.startswith("v"):
        version = "v" + version
    return version


def strip_build(version: str) -> str:
    """'v0.3.10+commit.91361694' -> '0.3.10'."""
    return version.lstrip("v").split("+")[0]


def coerce_version(version: str) -> Optional[Tuple[int, int, int]]:
    """First x.y.z triplet in the version string, or None (e.g. for 'latest')."""
    match = _VERSION_TRIPLET.search(version)
    if match is None:
        return None
    return int(match.group(1)), int(match.group(2)), int(match.group(3))


def needs_isolation(version: str) -> bool:
    """True for script compilers older than 0.4.0."""
    triplet = coerce_version(version)
    return triplet is not None and triplet < ISOLATION_THRESHOLD
