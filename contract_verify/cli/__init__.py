"""Command-line entry points: contract-verify <command> [args...]."""
