"""
Compiler provisioning: obtain the exact compiler build for (version, platform).

    START -> LOCAL_HIT (cached file exists and passes `--version`) -> DONE
    START -> FETCH -> [REDIRECT] -> SAVE -> VALIDATE -> DONE
                   -> download or validation failure -> FAIL

Some artifacts on the solc host are one-line links ("soljson-v0.5.14+commit.1f1aaa4.js")
to the real file; those are followed once. Concurrent requests for the same
uncached key may both download; the last writer wins and each caller
re-validates what is on disk.
"""
from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path
from typing import Any, Optional, Union
from urllib.parse import quote

from ..core.errors import CorruptOrUnvalidatedBinary, DownloadFailure, UnsupportedPlatform
from .base import CompilerDescriptor
from .fetch import BackoffConfig, fetch_with_backoff
from .platforms import SCRIPT_PLATFORM, find_solc_platform, find_vyper_platform, normalize_version, strip_build

logger = logging.getLogger(__name__)

DEFAULT_SOLC_HOST = "https://binaries.soliditylang.org"
DEFAULT_VYPER_HOST = "https://github.com/vyperlang/vyper/releases/download"

_LINK_RE = re.compile(r"^([\w-]+)-v(\d+\.\d+\.\d+)\+commit\.([a-fA-F0-9]+).*$")
# A link body is a single short line; real artifacts are megabytes.
_MAX_LINK_BYTES = 512


def link_target(content: bytes) -> Optional[str]:
    """The file name a link artifact points to, or None for real content."""
    if not content or len(content) > _MAX_LINK_BYTES:
        return None
    try:
        text = content.decode("ascii").strip()
    except UnicodeDecodeError:
        return None
    return text if _LINK_RE.match(text) else None


def validate_executable(path: Path) -> bool:
    """Self-check: `<path> --version` must exit 0. Never retried."""
    try:
        spawned = subprocess.run([str(path), "--version"], capture_output=True)
    except OSError as exc:
        logger.warning("Error running %s: %s", path, exc)
        return False
    if spawned.returncode == 0:
        return True
    error = spawned.stderr.decode("utf-8", errors="replace").strip() or (
        "Error running compiler, are you on the right platform? (e.g. x64 vs arm)"
    )
    logger.warning("%s", error)
    return False


def save_executable(path: Path, content: bytes) -> None:
    """Replace whatever is at `path` with `content`, executable."""
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    path.write_bytes(content)
    path.chmod(0o755)


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass


class _Provisioner:
    def __init__(
        self,
        *,
        host: str,
        backoff: Optional[BackoffConfig] = None,
        session: Optional[Any] = None,
    ) -> None:
        self.host = host.rstrip("/")
        self.backoff = backoff or BackoffConfig()
        self.session = session

    def _fetch(self, url: str):
        return fetch_with_backoff(url, self.backoff.backoff_s, self.backoff.retries, session=self.session)

    def _validated(self, descriptor: CompilerDescriptor, label: str) -> CompilerDescriptor:
        if not validate_executable(descriptor.local_path):
            logger.error("Cannot validate %s %s at %s", label, descriptor.version, descriptor.local_path)
            _discard(descriptor.local_path)
            raise CorruptOrUnvalidatedBinary(
                f"Cannot validate {label} {descriptor.version} for platform {descriptor.platform}"
            )
        return CompilerDescriptor(
            version=descriptor.version,
            platform=descriptor.platform,
            local_path=descriptor.local_path,
            validated=True,
        )


class SolcProvisioner(_Provisioner):
    """Native solc binaries and soljson scripts, cached on disk by deterministic file name."""

    def __init__(
        self,
        solc_repo: Union[str, Path],
        soljson_repo: Union[str, Path],
        *,
        host: str = DEFAULT_SOLC_HOST,
        backoff: Optional[BackoffConfig] = None,
        session: Optional[Any] = None,
        platform: Optional[str] = None,
    ) -> None:
        super().__init__(host=host, backoff=backoff, session=session)
        self.solc_repo = Path(solc_repo)
        self.soljson_repo = Path(soljson_repo)
        self.platform = platform or find_solc_platform()

    @staticmethod
    def executable_name(platform: str, version: str) -> str:
        return f"solc-{platform}-{normalize_version(version)}"

    @staticmethod
    def script_name(version: str) -> str:
        return f"soljson-{normalize_version(version)}.js"

    def get_executable(self, version: str) -> CompilerDescriptor:
        """Native solc for this host; raises UnsupportedPlatform when there is none."""
        if self.platform is None:
            raise UnsupportedPlatform("No native solc build for this platform")
        version = normalize_version(version)
        file_name = self.executable_name(self.platform, version)
        solc_path = self.solc_repo / file_name
        if solc_path.exists() and validate_executable(solc_path):
            logger.debug("Found existing solc version=%s platform=%s path=%s", version, self.platform, solc_path)
            return CompilerDescriptor(version=version, platform=self.platform, local_path=solc_path, validated=True)

        self._fetch_and_save(self.platform, solc_path, version, file_name)
        descriptor = CompilerDescriptor(version=version, platform=self.platform, local_path=solc_path)
        return self._validated(descriptor, "solc")

    def get_script(self, version: str) -> CompilerDescriptor:
        """soljson module for the script target, downloaded if not cached."""
        version = normalize_version(version)
        file_name = self.script_name(version)
        script_path = self.soljson_repo / file_name
        if not script_path.exists():
            logger.debug("Solc-js not found locally, downloading version=%s path=%s", version, script_path)
            self._fetch_and_save(SCRIPT_PLATFORM, script_path, version, file_name)
        return CompilerDescriptor(version=version, platform=SCRIPT_PLATFORM, local_path=script_path)

    def _fetch_and_save(self, platform: str, path: Path, version: str, file_name: str) -> None:
        url = f"{self.host}/{platform}/{quote(file_name, safe='')}"
        logger.info("Fetching solc version=%s platform=%s url=%s path=%s", version, platform, url, path)
        res = self._fetch(url)

        if res.status_code == 200:
            target = link_target(res.content)
            if target is not None:
                url = f"{self.host}/{platform}/{target}"
                logger.debug("Following solc link version=%s target=%s", version, target)
                res = self._fetch(url)

        if res.status_code != 200 or not res.content:
            logger.error("Failed fetching solc version=%s platform=%s url=%s status=%d", version, platform, url, res.status_code)
            raise DownloadFailure(
                f"Failed fetching solc {version} for platform {platform}. Please check if the version is valid."
            )
        save_executable(path, res.content)
        logger.info("Saved solc version=%s platform=%s url=%s path=%s", version, platform, url, path)


class VyperProvisioner(_Provisioner):
    """Native vyper binaries from the GitHub release assets."""

    def __init__(
        self,
        vyper_repo: Union[str, Path],
        *,
        host: str = DEFAULT_VYPER_HOST,
        backoff: Optional[BackoffConfig] = None,
        session: Optional[Any] = None,
        platform: Optional[str] = None,
    ) -> None:
        super().__init__(host=host, backoff=backoff, session=session)
        self.vyper_repo = Path(vyper_repo)
        self.platform = platform or find_vyper_platform()

    @staticmethod
    def executable_name(platform: str, version: str) -> str:
        return f"vyper.{version.strip().lstrip('v')}.{platform}"

    def get_executable(self, version: str) -> CompilerDescriptor:
        if self.platform is None:
            raise UnsupportedPlatform("Vyper is not supported on this machine.")
        version = version.strip().lstrip("v")
        file_name = self.executable_name(self.platform, version)
        vyper_path = self.vyper_repo / file_name
        if vyper_path.exists() and validate_executable(vyper_path):
            logger.debug("Found vyper binary version=%s platform=%s path=%s", version, self.platform, vyper_path)
            return CompilerDescriptor(version=version, platform=self.platform, local_path=vyper_path, validated=True)

        url = f"{self.host}/v{strip_build(version)}/{quote(file_name, safe='')}"
        logger.debug("Downloading vyper version=%s platform=%s url=%s", version, self.platform, url)
        res = self._fetch(url)
        if res.status_code != 200 or not res.content:
            logger.warning("Failed fetching vyper version=%s platform=%s status=%d", version, self.platform, res.status_code)
            raise DownloadFailure(f"Failed fetching vyper {version} for platform {self.platform}")
        save_executable(vyper_path, res.content)
        logger.debug("Downloaded vyper version=%s platform=%s path=%s", version, self.platform, vyper_path)

        descriptor = CompilerDescriptor(version=version, platform=self.platform, local_path=vyper_path)
        return self._validated(descriptor, "vyper")
