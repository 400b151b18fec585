"""Configuration loading.

The pipeline is configured by a single JSON file (``config/config.json`` by
default). Missing keys fall back to ``DEFAULTS``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from .cache.io import read_json

DEFAULT_CONFIG_PATH = "config/config.json"

DEFAULTS: Dict[str, Any] = {
    "pokeapi_base_url": "https://pokeapi.co/api/v2",
    "raw_dir": "data/raw",
    "database_url": "sqlite:///data/draftdex.db",
    "about_language": "en",
    "latest_generation": 9,
    "ttl_days": {
        "pokemon": 30,
        "species": 30,
        "move": 30,
        "ability": 30,
        "version_group": 90,
    },
    "max_retries": 5,
    "retry_backoff_seconds": 1.0,
    "request_delay_seconds": 0.1,
    "force_refresh": False,
    "worker_pool_size": 8,
    "insert_batch_size": 5000,
    "join_batch_size": 10000,
    "strict_lookups": False,
    "log_level": "INFO",
    "export_path": "data/export/draftdex.xlsx",
    "lock_path": "data/.draftdex.lock",
}


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """Load JSON configuration from ``config_path`` merged over ``DEFAULTS``.

    Raises ``RuntimeError`` if the file is missing or invalid.
    """
    data = read_json(config_path)
    if not data:
        raise RuntimeError(f"Missing or invalid config: {config_path}")

    cfg = dict(DEFAULTS)
    cfg.update(data)
    ttl = dict(DEFAULTS["ttl_days"])
    ttl.update(data.get("ttl_days") or {})
    cfg["ttl_days"] = ttl
    return cfg


def configure_logging(cfg: Dict[str, Any]) -> None:
    """Configure the root logger from ``log_level``."""
    level = getattr(logging, str(cfg.get("log_level", "INFO")).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
