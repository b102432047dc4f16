"""
Tests for the contract-verify CLI dispatcher and commands (no network).
"""
from __future__ import annotations

import argparse
import json

import pytest

from contract_verify.cli import compile as compile_cmd
from contract_verify.cli import main as cli_main
from contract_verify.cli import verify_batch
from contract_verify.compilers.base import CompilationResult
from contract_verify.core.errors import CompilerError
from contract_verify.db.queue import SqliteCandidateQueue
from contract_verify.verification.base import VerificationOutcome, VerificationResponse

IPFS_CODE = (
    "0x6080604052a2646970667358221220dceca8706b29e917dacf25fceef95acac8d90d765ac926663ce4096195952b61"
    "64736f6c634300060b0033"
)


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch):
    monkeypatch.setattr(cli_main, "configure_logging", lambda level=None: None)


def test_no_command_prints_help(capsys):
    assert cli_main.main([]) == 0
    assert "verify-batch" in capsys.readouterr().out


def test_decode(capsys):
    assert cli_main.main(["decode", IPFS_CODE]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out == {"ipfs": "QmdD3hpMj6mEFVy9DP4QqjHaoeYbhKsYvApX1YZNfjTVWp", "solcVersion": "0.6.11"}


def test_decode_split_from_file(tmp_path, capsys):
    path = tmp_path / "code.hex"
    path.write_text(IPFS_CODE + "\n")
    assert cli_main.main(["decode", "--split", f"@{path}"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["execution"] == "0x6080604052"
    assert out["length"] == "0033"


def test_decode_bad_input_exits_2(capsys):
    assert cli_main.main(["decode", "0x6080604052ffff"]) == 2
    assert "Auxdata is not in the execution bytecode" in capsys.readouterr().err


class _StubCompiler:
    language = "Solidity"

    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def compile(self, version, request, **kwargs):
        self.calls.append((version, request, kwargs))
        if self.error:
            raise self.error
        return CompilationResult.from_output({"contracts": {"A.sol": {"A": {}}}})


class _StubRegistry:
    def __init__(self, compiler):
        self.compiler = compiler

    def get(self, language):
        if language.lower() != "solidity":
            raise KeyError(f"Unknown compiler language '{language}'")
        return self.compiler


def _request_file(tmp_path):
    path = tmp_path / "input.json"
    path.write_text(json.dumps({"language": "Solidity", "sources": {"A.sol": {"content": "contract A {}"}}}))
    return path


def test_compile_writes_output(tmp_path, monkeypatch, capsys):
    stub = _StubCompiler()
    monkeypatch.setattr(compile_cmd, "create_default_registry", lambda: _StubRegistry(stub))
    out_path = tmp_path / "out.json"
    code = cli_main.main(
        ["compile", "--version", "0.8.17", "--input", str(_request_file(tmp_path)), "--force-script", "--output", str(out_path)]
    )
    assert code == 0
    assert json.loads(out_path.read_text())["contracts"]["A.sol"] == {"A": {}}
    assert stub.calls[0][0] == "0.8.17"
    assert stub.calls[0][2] == {"force_script": True}


def test_compile_errors_exit_1(tmp_path, monkeypatch, capsys):
    error = CompilerError("Compiler error", [{"severity": "error", "formattedMessage": "A.sol:1: boom"}])
    monkeypatch.setattr(compile_cmd, "create_default_registry", lambda: _StubRegistry(_StubCompiler(error)))
    assert cli_main.main(["compile", "--version", "0.8.17", "--input", str(_request_file(tmp_path))]) == 1
    assert "A.sol:1: boom" in capsys.readouterr().err


def test_compile_bad_request_exits_2(tmp_path):
    path = tmp_path / "input.json"
    path.write_text("not json")
    assert cli_main.main(["compile", "--version", "0.8.17", "--input", str(path)]) == 2


def test_compile_unknown_language_exits_2(tmp_path, monkeypatch):
    monkeypatch.setattr(compile_cmd, "create_default_registry", lambda: _StubRegistry(_StubCompiler()))
    assert cli_main.main(["compile", "--version", "0.1.0", "--input", str(_request_file(tmp_path)), "--language", "Fe"]) == 2


class _StubClient:
    def __init__(self, server, **kwargs):
        self.server = server
        self.closed = False

    def verify(self, candidate):
        return VerificationResponse(VerificationOutcome.VERIFIED, 200, status="perfect")

    def close(self):
        self.closed = True


def test_verify_batch_drains_queue(tmp_path, monkeypatch, capsys):
    db = tmp_path / "q.sqlite"
    with SqliteCandidateQueue(db) as queue:
        for i in range(4):
            queue.enqueue(1, f"0x{i:040x}", {"A.sol": "contract A {}"})
        queue.enqueue(137, "0x" + "f" * 40, {"A.sol": "contract A {}"})
    monkeypatch.setattr(verify_batch, "VerificationClient", _StubClient)

    code = verify_batch.main(["--db", str(db), "--chain", "1", "--batch-size", "2", "--concurrency", "2", "--interval", "0.001"])
    assert code == 0
    assert "verified=4" in capsys.readouterr().out
    with SqliteCandidateQueue(db) as queue:
        assert queue.pending_count() == 1


def test_verify_batch_unopenable_db_exits_3(tmp_path):
    assert verify_batch.main(["--db", str(tmp_path / "missing-dir" / "q.sqlite")]) == 3


def test_verify_batch_explicit_zero_overrides_config():
    settings = {
        "batch_size": 100,
        "concurrency": 50,
        "limit": 1000,
        "interval_s": 0.1,
        "cold_start": 3,
        "growth_factor": 1.2,
        "prefetch_wait_s": 2.0,
        "shutdown_grace_s": 120.0,
    }
    args = argparse.Namespace(batch_size=None, concurrency=None, limit=0, interval=0.0, chain=None)
    options = verify_batch.build_options(args, settings)
    assert options.limit == 0
    assert options.interval_s == 0.0
    assert options.batch_size == 100
    assert options.max_concurrency == 50
