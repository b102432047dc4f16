"""
Download (if needed) and validate a compiler build, then print where it lives.
Use: contract-verify provision --version V [--language Solidity|Vyper] [--script]
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from contract_verify.compilers.defaults import create_solc_provisioner, create_vyper_provisioner
from contract_verify.core.errors import CompilerProvisioningError


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    ap = argparse.ArgumentParser(
        prog="contract-verify provision",
        description="Fetch a compiler build into the local cache and validate it.",
    )
    ap.add_argument("--version", required=True, help="Compiler version")
    ap.add_argument("--language", default="Solidity", choices=["Solidity", "Vyper", "solidity", "vyper"])
    ap.add_argument("--script", action="store_true", help="Solidity only: fetch the soljson script build")
    args = ap.parse_args(argv)

    try:
        if args.language.lower() == "vyper":
            if args.script:
                print("provision failed: Vyper has no script build", file=sys.stderr)
                return 2
            descriptor = create_vyper_provisioner().get_executable(args.version)
        elif args.script:
            descriptor = create_solc_provisioner().get_script(args.version)
        else:
            descriptor = create_solc_provisioner().get_executable(args.version)
    except CompilerProvisioningError as e:
        print(f"provision failed: {e}", file=sys.stderr)
        return 1

    state = "validated" if descriptor.validated else "not validated"
    print(f"{descriptor.version} ({descriptor.platform}, {state}): {descriptor.local_path}")
    return 0
