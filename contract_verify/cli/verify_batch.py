"""
Drain the verification candidate queue against a remote verification server.
Use: contract-verify verify-batch [--server URL] [--batch-size N] [--concurrency N]
                                  [--limit N] [--interval S] [--chain ID ...] [--db PATH]
Defaults come from the `verification` and `db` sections of config.yaml.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from contract_verify import config
from contract_verify.core.errors import QueueUnavailable
from contract_verify.db.queue import SqliteCandidateQueue
from contract_verify.verification.base import DriverOptions
from contract_verify.verification.client import VerificationClient
from contract_verify.verification.driver import BatchVerificationDriver

logger = logging.getLogger(__name__)


def build_options(args: argparse.Namespace, settings: dict) -> DriverOptions:
    return DriverOptions(
        batch_size=int(args.batch_size if args.batch_size is not None else settings["batch_size"]),
        max_concurrency=int(args.concurrency if args.concurrency is not None else settings["concurrency"]),
        limit=int(args.limit if args.limit is not None else settings["limit"]),
        interval_s=float(args.interval if args.interval is not None else settings["interval_s"]),
        cold_start=int(settings["cold_start"]),
        growth_factor=float(settings["growth_factor"]),
        prefetch_wait_s=float(settings["prefetch_wait_s"]),
        shutdown_grace_s=float(settings["shutdown_grace_s"]),
        chains=args.chain or None,
    )


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    ap = argparse.ArgumentParser(
        prog="contract-verify verify-batch",
        description="Submit queued candidates to a verification server with adaptive concurrency.",
    )
    ap.add_argument("--server", default=None, help="Verification server base URL")
    ap.add_argument("--batch-size", type=int, default=None)
    ap.add_argument("--concurrency", type=int, default=None, help="Maximum concurrent verifications")
    ap.add_argument("--limit", type=int, default=None, help="Stop after this many verified contracts")
    ap.add_argument("--interval", type=float, default=None, help="Pause (s) when saturated")
    ap.add_argument("--chain", type=int, action="append", help="Only this chain id (repeatable)")
    ap.add_argument("--db", default=None, help="Queue DB path (default: config db.path)")
    args = ap.parse_args(argv)

    settings = config.verification_settings()
    options = build_options(args, settings)
    server = (args.server or config.verification_server()).rstrip("/")
    db = args.db or config.db_path()

    try:
        queue = SqliteCandidateQueue(db, chains=options.chains, busy_timeout_ms=config.db_busy_timeout_ms())
    except QueueUnavailable as e:
        print(f"verify-batch failed: {e}", file=sys.stderr)
        return 3

    client = VerificationClient(
        server,
        timeout_s=float(settings["http_timeout_s"]),
        pool_size=options.max_concurrency,
    )
    logger.info("Verifying against %s using queue %s", server, db)
    try:
        report = BatchVerificationDriver(queue, client, options).run()
    except QueueUnavailable as e:
        print(f"verify-batch failed: {e}", file=sys.stderr)
        return 3

    print(
        f"verified={report.verified} already_verified={report.already_verified} "
        f"failed={report.failed} elapsed={report.elapsed_s:.1f}s ceiling={report.final_ceiling:.2f}"
    )
    return 0
