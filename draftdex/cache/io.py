"""File-based JSON cache helpers for the raw PokéAPI cache.

Provides:
- filesystem-safe key normalization
- atomic JSON writes
- TTL-based staleness checks based on cached `_meta.fetched_at`
- iteration over cached payloads for a single endpoint
"""

import json
import os
import re
import tempfile
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterator, List, Optional, Tuple

SAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9_-]+")


def ensure_dir(path: str) -> None:
    """Create a directory (and parents) if missing."""
    if path:
        os.makedirs(path, exist_ok=True)


def safe_filename(name: str) -> str:
    """Convert an arbitrary key into a filesystem-safe filename stem.

    Allowed characters: ``a-z``, ``0-9``, ``-``, ``_``.
    """
    name = name.strip().lower()
    safe = SAFE_FILENAME_RE.sub("_", name)
    safe = re.sub(r"_+", "_", safe).strip("_")
    return safe or "unnamed"


def cache_path(raw_dir: str, endpoint: str, key: str | int) -> str:
    """Path of the cached payload for ``endpoint``/``key`` under ``raw_dir``."""
    file_key = safe_filename(key) if isinstance(key, str) else str(key)
    return os.path.join(raw_dir, endpoint, f"{file_key}.json")


def envelope_fetched_at(raw: Optional[Dict[str, Any]]) -> Optional[datetime]:
    """UTC ``_meta.fetched_at`` of a cached envelope, or None when absent or unparseable.

    A trailing ``Z`` is accepted; naive timestamps are taken as UTC.
    """
    meta = raw.get("_meta") if isinstance(raw, dict) else None
    stamp = meta.get("fetched_at") if isinstance(meta, dict) else None
    if not isinstance(stamp, str):
        return None
    if stamp.endswith("Z"):
        stamp = stamp[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(stamp)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def read_json(path: str) -> Optional[Dict[str, Any]]:
    """Parsed JSON at ``path``; None when the file is missing or unreadable."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return None


def atomic_write_json(path: str, obj: Dict[str, Any]) -> None:
    """Atomically write a JSON file by writing a temp file then renaming."""
    ensure_dir(os.path.dirname(path))
    fd, tmp_path = tempfile.mkstemp(
        prefix=os.path.basename(path) + ".",
        suffix=".tmp",
        dir=os.path.dirname(path) or ".",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(obj, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def file_is_stale(path: str, ttl_days: int) -> bool:
    """True when the cached envelope at ``path`` is missing, undated or older than ``ttl_days``."""
    fetched = envelope_fetched_at(read_json(path))
    if fetched is None:
        return True
    return datetime.now(timezone.utc) - fetched > timedelta(days=ttl_days)


def wrap_raw(url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Wrap an unmodified API payload with the `_meta` envelope."""
    return {
        "_meta": {
            "fetched_at": datetime.now(timezone.utc).isoformat(),
            "url": url,
        },
        "data": payload,
    }


def iter_json_files(dir_path: str) -> List[str]:
    """Sorted ``*.json`` paths directly under ``dir_path``."""
    if not os.path.isdir(dir_path):
        return []
    entries = [
        os.path.join(dir_path, name)
        for name in os.listdir(dir_path)
        if name.lower().endswith(".json")
    ]
    entries.sort()
    return entries


def iter_cached_payloads(raw_dir: str, endpoint: str) -> Iterator[Tuple[str, Dict[str, Any]]]:
    """Yield ``(path, payload)`` for every valid cached record of an endpoint.

    Files without a dict ``data`` envelope are skipped.
    """
    for path in iter_json_files(os.path.join(raw_dir, endpoint)):
        raw = read_json(path) or {}
        data = raw.get("data")
        if isinstance(data, dict):
            yield path, data
