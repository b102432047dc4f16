"""
Compiler artifact download with an exponential per-attempt timeout.

1) send request, abort if it has not completed after backoff * 2^0 seconds
2) send request, abort if it has not completed after backoff * 2^1 seconds
3) ... until `retries` retries are exhausted, then raise DownloadFailure.

There is no sleep between attempts; the growing timeout is the backoff.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, List, Optional

import requests

from ..core.errors import DownloadFailure

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class BackoffConfig:
    """Per-attempt timeout schedule for fetch_with_backoff."""

    backoff_s: float = 10.0
    retries: int = 4

    def timeouts(self) -> List[float]:
        return [self.backoff_s * (2 ** attempt) for attempt in range(self.retries + 1)]


@dataclass(frozen=True)
class FetchResult:
    """Fully-read HTTP response body."""

    url: str
    status_code: int
    content: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


def _get_with_deadline(http: Any, url: str, timeout_s: float) -> FetchResult:
    """GET url and read the whole body, aborting once timeout_s has elapsed in total."""
    deadline = time.monotonic() + timeout_s
    with http.get(url, timeout=timeout_s, stream=True) as resp:
        chunks: List[bytes] = []
        for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
            chunks.append(chunk)
            if time.monotonic() > deadline:
                raise requests.Timeout(f"Aborted after {timeout_s:.0f}s")
        return FetchResult(url=url, status_code=resp.status_code, content=b"".join(chunks))


def fetch_with_backoff(
    resource: str,
    backoff_s: float = 10.0,
    retries: int = 4,
    *,
    session: Optional[Any] = None,
) -> FetchResult:
    """
    Fetch `resource`, making retries + 1 attempts with doubling timeouts.

    Non-2xx responses are returned, not retried: only transport failures and
    timeouts count as failed attempts.
    """
    http = session if session is not None else requests
    timeout = backoff_s

    for attempt in range(retries + 1):
        try:
            logger.debug("Start fetch_with_backoff %s timeout=%.0fs attempt=%d", resource, timeout, attempt)
            result = _get_with_deadline(http, resource, timeout)
            logger.debug("Success fetch_with_backoff %s status=%d attempt=%d", resource, result.status_code, attempt)
            return result
        except (requests.RequestException, OSError) as exc:
            if attempt == retries:
                logger.error(
                    "Failed fetch_with_backoff %s attempt=%d retries=%d timeout=%.0fs: %s",
                    resource, attempt, retries, timeout, exc,
                )
                raise DownloadFailure(f"Failed fetching {resource}: {exc}") from exc
            timeout *= 2
            logger.debug("Retrying fetch_with_backoff %s attempt=%d timeout=%.0fs: %s", resource, attempt, timeout, exc)

    raise DownloadFailure(f"Failed fetching {resource}")
