"""
System doctor: preflight checks for deps, compiler platforms, cache dirs and the queue DB.
Run: contract-verify doctor  (or python -m contract_verify.doctor)
Exit: 0 all OK, 2 deps/cache dirs, 3 queue DB.
"""
from __future__ import annotations

import importlib
import os
import sqlite3
import sys
from pathlib import Path
from typing import List, Optional

# Repo root (parent of contract_verify package)
_REPO_ROOT = Path(__file__).resolve().parent.parent

REQUIRED_TABLE = "verification_candidates"
REQUIRED_COLUMNS = ["id", "chain_id", "address", "sources_json", "reverified"]
# import name -> distribution name
DEPENDENCIES = {
    "requests": "requests",
    "yaml": "PyYAML",
    "cbor2": "cbor2",
    "base58": "base58",
    "py_mini_racer": "mini-racer",
}


def _get_db_path(override: Optional[str] = None) -> str:
    from .config import db_path

    path = override or db_path()
    if not os.path.isabs(path):
        path = str(_REPO_ROOT / path)
    return path


def check_dependencies() -> bool:
    """Return True if all required packages import; else print pip install and return False."""
    missing = []
    for module, dist in DEPENDENCIES.items():
        try:
            importlib.import_module(module)
        except ImportError:
            missing.append(dist)
    if not missing:
        print("[OK] dependencies  " + " ".join(DEPENDENCIES.values()))
        return True
    print("[FAIL] Missing packages: " + ", ".join(missing))
    print("  Fix: python -m pip install " + " ".join(missing))
    return False


def check_platforms() -> None:
    """Print which native compiler builds this machine can use (informational)."""
    from .compilers.platforms import find_solc_platform, find_vyper_platform, host_platform

    system, machine = host_platform()
    solc = find_solc_platform()
    vyper = find_vyper_platform()
    print(f"[OK] host  {system}/{machine}")
    if solc:
        print(f"[OK] solc  native platform {solc}")
    else:
        print("[WARN] solc  no native build for this host; soljson script target will be used")
    if vyper:
        print(f"[OK] vyper  native platform {vyper}")
    else:
        print("[WARN] vyper  no native build for this host; Vyper compilation is unavailable")


def check_cache_dirs() -> bool:
    """Return True if every compiler cache directory exists (or can be created) and is writable."""
    from . import config

    ok = True
    for label, path in (
        ("solc_repo", config.solc_repo()),
        ("soljson_repo", config.soljson_repo()),
        ("vyper_repo", config.vyper_repo()),
    ):
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            print(f"[FAIL] {label}  cannot create {path}: {e}")
            ok = False
            continue
        if not os.access(path, os.W_OK):
            print(f"[FAIL] {label}  not writable: {path}")
            ok = False
            continue
        print(f"[OK] {label}  {path}")
    return ok


def check_db(db_override: Optional[str] = None) -> bool:
    """Return True if the queue DB exists with the candidate table; else print and return False."""
    db = _get_db_path(db_override)
    if not os.path.isfile(db):
        print(f"[FAIL] DB not found: {db}")
        print("  Create it by enqueueing candidates (SqliteCandidateQueue runs migrations on open)")
        return False
    print(f"[OK] DB exists  {db}")

    try:
        with sqlite3.connect(db) as con:
            tables = {row[0] for row in con.execute("SELECT name FROM sqlite_master WHERE type='table'")}
            if REQUIRED_TABLE not in tables:
                print(f"[FAIL] Missing table: {REQUIRED_TABLE}")
                return False
            cols = {row[1] for row in con.execute(f"PRAGMA table_info([{REQUIRED_TABLE}])")}
            pending = con.execute(f"SELECT COUNT(*) FROM {REQUIRED_TABLE} WHERE reverified = 0").fetchone()[0]
    except sqlite3.Error as e:
        print(f"[FAIL] DB error: {e}")
        return False

    for c in REQUIRED_COLUMNS:
        if c not in cols:
            print(f"[FAIL] Missing column: {REQUIRED_TABLE}.{c}")
            return False
    print(f"[OK] schema  {REQUIRED_TABLE} ({pending} pending)")
    return True


def main(argv: Optional[List[str]] = None) -> int:
    """Run all checks; return 0 OK, 2 deps/cache dirs, 3 DB."""
    import argparse

    ap = argparse.ArgumentParser(prog="contract-verify doctor", description="Preflight checks.")
    ap.add_argument("--db", default=None, help="Queue DB path (default: config db.path)")
    args = ap.parse_args(sys.argv[1:] if argv is None else argv)

    print("contract-verify system doctor")
    print("-" * 40)

    if not check_dependencies():
        return 2
    check_platforms()
    if not check_cache_dirs():
        return 2
    if not check_db(args.db):
        return 3

    print("-" * 40)
    print("All checks passed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
