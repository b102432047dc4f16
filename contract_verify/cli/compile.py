"""
Compile a standard-JSON request with an exact compiler version.
Use: contract-verify compile --version V --input request.json [--language Solidity|Vyper]
                             [--force-script] [--output out.json]
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from contract_verify.compilers.base import CompilationRequest
from contract_verify.compilers.defaults import create_default_registry
from contract_verify.core.errors import CompilationError, CompilerError, CompilerProvisioningError


def _load_request(path: str) -> CompilationRequest:
    text = sys.stdin.read() if path == "-" else Path(path).read_text(encoding="utf-8")
    data = json.loads(text)
    if not isinstance(data, dict) or not isinstance(data.get("sources"), dict):
        raise ValueError("request must be a JSON object with a 'sources' map")
    return CompilationRequest.from_dict(data)


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    ap = argparse.ArgumentParser(
        prog="contract-verify compile",
        description="Provision the exact compiler build and compile a standard-JSON request.",
    )
    ap.add_argument("--version", required=True, help="Compiler version, e.g. 0.8.17+commit.8df45f5f")
    ap.add_argument("--input", required=True, help="Standard-JSON request file ('-' for stdin)")
    ap.add_argument("--language", default=None, help="Solidity or Vyper (default: request 'language')")
    ap.add_argument("--force-script", action="store_true", help="Solidity only: use soljson even if a native build exists")
    ap.add_argument("--output", default=None, help="Write compiler output here instead of stdout")
    args = ap.parse_args(argv)

    try:
        request = _load_request(args.input)
    except (OSError, ValueError) as e:
        print(f"compile failed: cannot read request: {e}", file=sys.stderr)
        return 2
    language = args.language or request.language

    try:
        compiler = create_default_registry().get(language)
    except KeyError as e:
        print(f"compile failed: {e.args[0]}", file=sys.stderr)
        return 2

    kwargs = {"force_script": True} if args.force_script else {}
    try:
        result = compiler.compile(args.version, request, **kwargs)
    except CompilerError as e:
        print(f"compile failed:\n{e}", file=sys.stderr)
        return 1
    except (CompilationError, CompilerProvisioningError) as e:
        print(f"compile failed: {e}", file=sys.stderr)
        return 1

    for warning in result.warnings:
        print(warning.get("formattedMessage") or warning.get("message"), file=sys.stderr)
    text = json.dumps(result.raw, indent=2)
    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
        print(f"Wrote {len(result.contract_names())} contracts to {args.output}")
    else:
        print(text)
    return 0
