"""
Tests for VerificationClient: request shape and response classification.
"""
from __future__ import annotations

import pytest
import requests

from contract_verify.verification.base import VerificationCandidate, VerificationOutcome
from contract_verify.verification.client import VerificationClient
from tests.fakes import FakeResponse, FakeSession

SERVER = "https://verify.example/server/"
VERIFY_URL = "https://verify.example/server/verify"

CANDIDATE = VerificationCandidate(
    chain_id=5,
    address="0xAbCdEf0000000000000000000000000000000001",
    sources={"contracts/Token.sol": "contract Token {}"},
    metadata='{"compiler":{"version":"0.8.17"}}',
)


def _client(*responses):
    session = FakeSession({VERIFY_URL: list(responses)})
    return VerificationClient(SERVER, timeout_s=30, session=session), session


def test_request_shape():
    client, session = _client(FakeResponse(200, json_body={"result": [{"status": "perfect"}]}))
    client.verify(CANDIDATE)
    method, url, kwargs = session.calls[0]
    assert (method, url) == ("POST", VERIFY_URL)
    assert kwargs["timeout"] == 30
    assert kwargs["json"] == {
        "address": "0xabcdef0000000000000000000000000000000001",
        "chain": "5",
        "files": {
            "contracts/Token.sol": "contract Token {}",
            "metadata.json": '{"compiler":{"version":"0.8.17"}}',
        },
    }


def test_success():
    client, _ = _client(FakeResponse(200, json_body={"result": [{"status": "partial", "message": "ok"}]}))
    response = client.verify(CANDIDATE)
    assert response.outcome is VerificationOutcome.VERIFIED
    assert response.status == "partial"
    assert response.outcome.completed


def test_null_status_is_failure():
    client, _ = _client(FakeResponse(200, json_body={"result": [{"status": None, "message": "no match"}]}))
    response = client.verify(CANDIDATE)
    assert response.outcome is VerificationOutcome.FAILED
    assert response.message == "no match"


def test_conflict_means_already_verified():
    client, _ = _client(FakeResponse(409, b'{"error":"already verified"}'))
    response = client.verify(CANDIDATE)
    assert response.outcome is VerificationOutcome.ALREADY_VERIFIED
    assert response.outcome.completed


@pytest.mark.parametrize("status_code", [301, 400, 500, 502])
def test_non_2xx_is_failure(status_code):
    client, _ = _client(FakeResponse(status_code, b"upstream exploded"))
    response = client.verify(CANDIDATE)
    assert response.outcome is VerificationOutcome.FAILED
    assert response.status_code == status_code
    assert response.message == "upstream exploded"


def test_non_json_success_body_is_failure():
    client, _ = _client(FakeResponse(200, b"<html>"))
    assert client.verify(CANDIDATE).outcome is VerificationOutcome.FAILED


def test_transport_errors_propagate():
    client, _ = _client(requests.ConnectionError("refused"))
    with pytest.raises(requests.ConnectionError):
        client.verify(CANDIDATE)


def test_close_closes_session():
    client, session = _client()
    client.close()
    assert session.closed


def test_default_session_is_pooled():
    client = VerificationClient(SERVER, pool_size=7)
    adapter = client._session.get_adapter(VERIFY_URL)
    assert adapter._pool_maxsize == 7
    client.close()
