"""
Decode the CBOR auxdata trailer of deployed bytecode.
Use: contract-verify decode <hex | @file> [--split] [--strict-prefix]
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from contract_verify.bytecode import decode, split_auxdata
from contract_verify.core.errors import AuxdataError


def _read_bytecode(arg: str) -> str:
    if arg.startswith("@"):
        return Path(arg[1:]).read_text(encoding="utf-8").strip()
    return arg.strip()


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    ap = argparse.ArgumentParser(
        prog="contract-verify decode",
        description="Decode the metadata reference embedded at the end of deployed bytecode.",
    )
    ap.add_argument("bytecode", help="Hex bytecode, or @path to a file containing it")
    ap.add_argument("--split", action="store_true", help="Print execution/auxdata/length segments instead")
    ap.add_argument("--strict-prefix", action="store_true", help="Reject hex input without a 0x prefix")
    args = ap.parse_args(argv)

    try:
        bytecode = _read_bytecode(args.bytecode)
    except OSError as e:
        print(f"decode failed: {e}", file=sys.stderr)
        return 2

    try:
        if args.split:
            execution, auxdata, length = split_auxdata(bytecode).to_hex()
            out = {"execution": execution, "auxdata": auxdata, "length": length}
        else:
            out = decode(bytecode, strict_prefix=args.strict_prefix).to_dict()
    except AuxdataError as e:
        print(f"decode failed: {e}", file=sys.stderr)
        return 2
    print(json.dumps(out, indent=2, sort_keys=True))
    return 0
