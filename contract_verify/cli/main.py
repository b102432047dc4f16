"""
Top-level CLI dispatcher: contract-verify <command> [args...].
All commands dispatch to package CLI modules or doctor.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .. import config

COMMANDS = {
    "decode": "Decode the auxdata trailer of deployed bytecode",
    "compile": "Compile a standard-JSON request with an exact compiler version",
    "provision": "Download and validate a compiler build",
    "verify-batch": "Drain the candidate queue against a verification server",
    "doctor": "Preflight checks",
}


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=(level or config.log_level()).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = argparse.ArgumentParser(
        prog="contract-verify",
        description="Smart-contract verification toolkit CLI",
    )
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR (default: config logging.level)")
    subparsers = parser.add_subparsers(dest="command", help="command")
    for name, help_text in COMMANDS.items():
        subparsers.add_parser(name, help=help_text, add_help=False)

    args, rest = parser.parse_known_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    configure_logging(args.log_level)
    cmd = args.command

    if cmd == "doctor":
        from contract_verify.doctor import main as doctor_main

        return doctor_main(rest)
    if cmd == "decode":
        from contract_verify.cli import decode as mod

        return mod.main(rest)
    if cmd == "compile":
        from contract_verify.cli import compile as mod

        return mod.main(rest)
    if cmd == "provision":
        from contract_verify.cli import provision as mod

        return mod.main(rest)
    if cmd == "verify-batch":
        from contract_verify.cli import verify_batch as mod

        return mod.main(rest)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
