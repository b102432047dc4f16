"""Allow python -m contract_verify to print help."""
from __future__ import annotations

from . import __version__

_HELP = f"""\
contract-verify {__version__}

Available CLI commands:
  contract-verify decode <hex|@file>     Decode the auxdata trailer of deployed bytecode
  contract-verify compile --version V --input request.json
                                         Compile with an exact compiler build
  contract-verify provision --version V  Fetch and validate a compiler build
  contract-verify verify-batch           Drain the candidate queue against a verification server
  contract-verify doctor                 Preflight checks

Global option (before the command):
  --log-level LEVEL                      Override logging.level from config.yaml

Tests:
  python -m pytest -q
"""


def main() -> int:
    print(_HELP)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
