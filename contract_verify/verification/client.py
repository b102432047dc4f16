"""
Remote verification endpoint client.

  POST {server}/verify  {address, chain, files: {path: content}}
  200 -> {result: [{status, message?}]}; status null means the match failed
  409 -> contract already verified
  anything else -> failure
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import requests
from requests.adapters import HTTPAdapter

from .base import VerificationCandidate, VerificationOutcome, VerificationResponse

logger = logging.getLogger(__name__)

HTTP_TIMEOUT_S = 300.0
_MAX_MESSAGE_CHARS = 2000


def _first_result(body: Any) -> dict:
    if isinstance(body, dict):
        result = body.get("result")
        if isinstance(result, list) and result and isinstance(result[0], dict):
            return result[0]
    return {}


class VerificationClient:
    """Submits candidates to the remote endpoint over a pooled keep-alive session."""

    def __init__(
        self,
        server: str,
        *,
        timeout_s: float = HTTP_TIMEOUT_S,
        pool_size: int = 32,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.url = server.rstrip("/") + "/verify"
        self.timeout_s = timeout_s
        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self._session = session

    def verify(self, candidate: VerificationCandidate) -> VerificationResponse:
        logger.debug("POST %s chain=%s address=%s", self.url, candidate.chain_id, candidate.hex_address)
        resp = self._session.post(self.url, json=candidate.to_request(), timeout=self.timeout_s)

        if resp.status_code == 409:
            return VerificationResponse(VerificationOutcome.ALREADY_VERIFIED, resp.status_code)
        if not 200 <= resp.status_code < 300:
            return VerificationResponse(
                VerificationOutcome.FAILED,
                resp.status_code,
                message=resp.text[:_MAX_MESSAGE_CHARS],
            )

        try:
            body = resp.json()
        except ValueError:
            return VerificationResponse(
                VerificationOutcome.FAILED, resp.status_code, message="Response is not JSON"
            )
        first = _first_result(body)
        status = first.get("status")
        if status is None:
            return VerificationResponse(
                VerificationOutcome.FAILED,
                resp.status_code,
                message=str(first.get("message") or body)[:_MAX_MESSAGE_CHARS],
            )
        return VerificationResponse(
            VerificationOutcome.VERIFIED,
            resp.status_code,
            status=str(status),
            message=first.get("message"),
        )

    def close(self) -> None:
        self._session.close()
