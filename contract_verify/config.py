"""
Load config from config.yaml with optional env overrides.
Single source of truth for compiler cache dirs, artifact hosts, driver pacing, and queue DB path.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml

_CACHE_ROOT = Path.home() / ".cache" / "contract-verify"

# Defaults if no YAML or env
_DEFAULTS = {
    "compilers": {
        "solc_repo": str(_CACHE_ROOT / "solc-bin"),
        "soljson_repo": str(_CACHE_ROOT / "soljson"),
        "vyper_repo": str(_CACHE_ROOT / "vyper-bin"),
        "solc_host": "https://binaries.soliditylang.org",
        "vyper_host": "https://github.com/vyperlang/vyper/releases/download",
        "max_output_mb": 250,
        "fetch_backoff_s": 10.0,
        "fetch_retries": 4,
    },
    "verification": {
        "server": "https://sourcify.dev/server",
        "batch_size": 100,
        "concurrency": 50,
        "limit": 1_000_000,
        "interval_s": 0.1,
        "cold_start": 3,
        "growth_factor": 1.2,
        "shutdown_grace_s": 120.0,
        "prefetch_wait_s": 2.0,
        "http_timeout_s": 300.0,
    },
    "db": {
        "path": "verification_queue.sqlite",
        "busy_timeout_ms": 5000,
    },
    "logging": {"level": "INFO"},
}


def _config_yaml_path() -> Path:
    """Config.yaml lives at repo root (parent of package dir)."""
    return Path(__file__).resolve().parent.parent / "config.yaml"


def _load_yaml(path: Optional[Path] = None) -> dict:
    config_path = path or _config_yaml_path()
    if not config_path.exists():
        return {}
    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict, override: dict) -> dict:
    out = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


_ENV_KEYS = {
    "CONTRACT_VERIFY_SOLC_REPO": ("compilers", "solc_repo"),
    "CONTRACT_VERIFY_SOLJSON_REPO": ("compilers", "soljson_repo"),
    "CONTRACT_VERIFY_VYPER_REPO": ("compilers", "vyper_repo"),
    "CONTRACT_VERIFY_SERVER": ("verification", "server"),
    "CONTRACT_VERIFY_DB_PATH": ("db", "path"),
    "CONTRACT_VERIFY_LOG_LEVEL": ("logging", "level"),
}


def _env_overrides() -> dict:
    overrides: dict = {}
    for env_name, (section, key) in _ENV_KEYS.items():
        value = os.environ.get(env_name)
        if value:
            overrides.setdefault(section, {})[key] = value
    return overrides


def get_config() -> dict:
    """Return merged config: defaults <- config.yaml <- env."""
    merged = _deep_merge(_DEFAULTS, _load_yaml())
    merged = _deep_merge(merged, _env_overrides())
    return merged


# Convenience accessors
def solc_repo() -> Path:
    return Path(get_config()["compilers"]["solc_repo"]).expanduser()


def soljson_repo() -> Path:
    return Path(get_config()["compilers"]["soljson_repo"]).expanduser()


def vyper_repo() -> Path:
    return Path(get_config()["compilers"]["vyper_repo"]).expanduser()


def solc_host() -> str:
    return str(get_config()["compilers"]["solc_host"]).rstrip("/")


def vyper_host() -> str:
    return str(get_config()["compilers"]["vyper_host"]).rstrip("/")


def max_output_bytes() -> int:
    return int(get_config()["compilers"]["max_output_mb"]) * 1024 * 1024


def fetch_backoff_s() -> float:
    return float(get_config()["compilers"]["fetch_backoff_s"])


def fetch_retries() -> int:
    return int(get_config()["compilers"]["fetch_retries"])


def verification_settings() -> dict:
    return dict(get_config()["verification"])


def verification_server() -> str:
    return str(get_config()["verification"]["server"]).rstrip("/")


def db_path() -> str:
    return str(get_config()["db"]["path"])


def db_busy_timeout_ms() -> int:
    return int(get_config()["db"]["busy_timeout_ms"])


def log_level() -> str:
    return str(get_config()["logging"]["level"]).upper()
