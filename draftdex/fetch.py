"""Fetch layer and command line interface for draftdex.

Handles discovery, fetching, and TTL-aware file-based caching of raw PokéAPI
payloads, and exposes the dataset commands (init, wipe, search, export).
"""

from __future__ import annotations

import argparse
import json
import logging
import re
import sys
import time
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Tuple

import pokebase
import pokebase.api as pokebase_api
import pokebase.common as pokebase_common
import requests
from sqlalchemy.exc import IntegrityError

from .cache.io import atomic_write_json, cache_path, file_is_stale, read_json, wrap_raw
from .config import DEFAULT_CONFIG_PATH, configure_logging, load_config
from .db import init_db, make_engine, make_session_factory
from .errors import DraftDexError, LockHeldError
from .export import default_generation_id, export_workbook
from .pipeline import initialize_pokemon_dataset, wipe_dataset
from .pokeapi_dex import PokeApiDex
from .process_lock import admin_lock
from .search import Pagination, PokemonSearchFilter, SortOptions, filter_field_names, search

logger = logging.getLogger(__name__)

# Endpoint -> (ttl_days key, discovery limit)
REFERENCE_ENDPOINTS: List[Tuple[str, str, int]] = [
    ("version-group", "version_group", 1000),
    ("move", "move", 100000),
    ("ability", "ability", 100000),
]

_SLUG_RESOLVERS = {
    "pokemon": pokebase.pokemon,
    "pokemon-species": pokebase.pokemon_species,
    "move": pokebase.move,
    "ability": pokebase.ability,
    "version-group": pokebase.version_group,
}


def _configure_pokebase_base_url(base_url: str) -> None:
    """Configure pokebase to use the configured PokéAPI base URL."""
    pokebase_common.BASE_URL = base_url.rstrip("/")


def _should_retry_http(status_code: Optional[int]) -> bool:
    if status_code is None:
        return True
    if status_code == 429:
        return True
    return 500 <= status_code <= 599


def _extract_status_code(exc: Exception) -> Optional[int]:
    resp = getattr(exc, "response", None)
    return getattr(resp, "status_code", None)


def fetch_resource(
    *,
    base_url: str,
    endpoint: str,
    resource_id: str | int,
    max_retries: int,
    retry_backoff_seconds: float,
    request_delay_seconds: float,
) -> Tuple[str, Dict[str, Any]]:
    """Fetch a detail record via pokebase.

    Returns ``(url, payload)``. Retries 429/5xx and network errors with
    exponential backoff; 404 is raised immediately.
    """
    _configure_pokebase_base_url(base_url)

    resolved_id: str | int = resource_id
    if isinstance(resource_id, str) and endpoint in _SLUG_RESOLVERS:
        # pokebase validates resource ids as integers at the HTTP layer.
        # Resolve slugs to numeric ids, keeping the slug-based URL in _meta.
        resolved_id = _SLUG_RESOLVERS[endpoint](resource_id).id_
        url = f"{base_url.rstrip('/')}/{endpoint}/{resource_id}"
    else:
        url = pokebase_common.api_url_build(endpoint, resolved_id)

    attempt = 0
    while True:
        try:
            payload = pokebase_api.get_data(endpoint, resolved_id, force_lookup=True)
            if request_delay_seconds > 0:
                time.sleep(request_delay_seconds)
            return url, payload
        except requests.exceptions.HTTPError as exc:
            status_code = _extract_status_code(exc)
            if status_code == 404:
                raise
            if attempt >= max_retries or not _should_retry_http(status_code):
                raise
        except requests.exceptions.RequestException:
            if attempt >= max_retries:
                raise

        attempt += 1
        backoff = retry_backoff_seconds * (2 ** (attempt - 1))
        logger.debug("retrying %s/%s in %.1fs (attempt %d)", endpoint, resource_id, backoff, attempt)
        time.sleep(backoff)


def discover_keys(base_url: str, endpoint: str, limit: int) -> List[str]:
    """Discover resource slugs for an endpoint using list transport."""
    url = f"{base_url.rstrip('/')}/{endpoint}?limit={limit}&offset=0"
    resp = requests.get(url, timeout=30)
    resp.raise_for_status()
    results = resp.json().get("results", [])
    return [r["name"] for r in results]


def species_id_from_url(url: str) -> Optional[int]:
    """Extract numeric species id from a PokéAPI species URL."""
    m = re.search(r"/pokemon-species/(\d+)/", url)
    return int(m.group(1)) if m else None


def _transport_kwargs(cfg: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "base_url": cfg["pokeapi_base_url"],
        "max_retries": int(cfg["max_retries"]),
        "retry_backoff_seconds": float(cfg["retry_backoff_seconds"]),
        "request_delay_seconds": float(cfg["request_delay_seconds"]),
    }


def fetch_and_cache_entity(
    *,
    raw_dir: str,
    endpoint: str,
    key: str | int,
    ttl_days: int,
    force: bool,
    transport: Dict[str, Any],
) -> str:
    """Fetch and cache a single detail record using TTL rules.

    Returns one of ``skipped``, ``fetched_new``, ``refreshed``, ``failed``.
    """
    path = cache_path(raw_dir, endpoint, key)
    if not (force or file_is_stale(path, ttl_days)):
        return "skipped"

    existed = read_json(path) is not None
    try:
        url, payload = fetch_resource(endpoint=endpoint, resource_id=key, **transport)
    except requests.exceptions.HTTPError as exc:
        if _extract_status_code(exc) == 404:
            print(f"- {endpoint}:{key} -> missing (404)")
            return "failed"
        raise
    atomic_write_json(path, wrap_raw(url, payload))
    return "refreshed" if existed else "fetched_new"


def _new_counts(discovered: int) -> Dict[str, int]:
    return {
        "discovered": discovered,
        "processed": 0,
        "fetched_new": 0,
        "refreshed": 0,
        "skipped": 0,
        "failed": 0,
    }


def _print_summary(label: str, counts: Dict[str, int]) -> None:
    print(f"Summary {label}: " + ", ".join(f"{k}={v}" for k, v in counts.items()))


def fetch_pokemon_and_species(
    cfg: Dict[str, Any], name: str, force: bool
) -> Tuple[str, Optional[int], str]:
    """Fetch a Pokémon by slug and its species.

    Returns ``(pokemon_status, species_id, species_status)``.
    """
    raw_dir = cfg["raw_dir"]
    ttl = cfg["ttl_days"]
    transport = _transport_kwargs(cfg)

    try:
        pokemon_status = fetch_and_cache_entity(
            raw_dir=raw_dir,
            endpoint="pokemon",
            key=name,
            ttl_days=int(ttl["pokemon"]),
            force=force,
            transport=transport,
        )
        cached = read_json(cache_path(raw_dir, "pokemon", name)) or {}
        species = (cached.get("data") or {}).get("species") or {}
        species_id = species_id_from_url(species.get("url", ""))
        if species_id is None:
            return pokemon_status, None, "failed"

        species_status = fetch_and_cache_entity(
            raw_dir=raw_dir,
            endpoint="pokemon-species",
            key=species_id,
            ttl_days=int(ttl["species"]),
            force=force,
            transport=transport,
        )
    except (requests.exceptions.RequestException, ValueError, OSError):
        return "failed", None, "failed"

    return pokemon_status, species_id, species_status


def run_fetch_pokemon(cfg: Dict[str, Any], limit: Optional[int], force: bool) -> int:
    """Fetch Pokémon and species payloads. Returns 0 when nothing failed."""
    keys = discover_keys(cfg["pokeapi_base_url"], "pokemon", 100000)
    counts = _new_counts(len(keys))
    if limit is not None:
        keys = keys[:limit]

    print(f"Discovered {counts['discovered']} pokemon; processing {len(keys)}")
    for name in keys:
        p_status, species_id, s_status = fetch_pokemon_and_species(cfg, name, force)
        counts["processed"] += 1
        for st in (p_status, s_status):
            counts[st] = counts.get(st, 0) + 1
        species_info = f" species={species_id}" if species_id is not None else " species=?"
        print(f"- {name:20s} -> pokemon:{p_status:10s} species:{s_status:10s}{species_info}")

    _print_summary("pokemon", counts)
    return 0 if counts["failed"] == 0 else 1


def run_fetch_reference(cfg: Dict[str, Any], limit: Optional[int], force: bool) -> int:
    """Fetch version groups, moves and abilities with caching."""
    transport = _transport_kwargs(cfg)
    total_failed = 0
    for endpoint, ttl_key, discovery_limit in REFERENCE_ENDPOINTS:
        keys = discover_keys(cfg["pokeapi_base_url"], endpoint, discovery_limit)
        counts = _new_counts(len(keys))
        if limit is not None:
            keys = keys[:limit]

        print(f"Discovered {counts['discovered']} {endpoint} keys; processing {len(keys)}")
        for key in keys:
            try:
                status = fetch_and_cache_entity(
                    raw_dir=cfg["raw_dir"],
                    endpoint=endpoint,
                    key=key,
                    ttl_days=int(cfg["ttl_days"].get(ttl_key, 30)),
                    force=force,
                    transport=transport,
                )
            except (requests.exceptions.RequestException, OSError, ValueError):
                status = "failed"

            counts["processed"] += 1
            counts[status] = counts.get(status, 0) + 1
            print(f"- {endpoint}:{key} -> {status}")

        total_failed += counts["failed"]
        _print_summary(endpoint, counts)

    return 0 if total_failed == 0 else 1


def run_fetch_all(cfg: Dict[str, Any], limit: Optional[int], force: bool) -> int:
    pokemon_code = run_fetch_pokemon(cfg, limit, force)
    reference_code = run_fetch_reference(cfg, limit, force)
    return 0 if (pokemon_code == 0 and reference_code == 0) else 1


def _session_factory(cfg: Dict[str, Any]):
    engine = make_engine(cfg["database_url"])
    init_db(engine)
    return make_session_factory(engine)


def run_init(cfg: Dict[str, Any]) -> int:
    """Synthesize the dataset from the raw cache into the database."""
    dex = PokeApiDex(cfg["raw_dir"], cfg["about_language"])
    with admin_lock(cfg["lock_path"]):
        report = initialize_pokemon_dataset(
            _session_factory(cfg),
            dex,
            latest_generation=int(cfg["latest_generation"]),
            workers=int(cfg["worker_pool_size"]),
            insert_batch_size=int(cfg["insert_batch_size"]),
            join_batch_size=int(cfg["join_batch_size"]),
            strict=bool(cfg["strict_lookups"]),
        )
    for phase, counts in report.items():
        print(f"- {phase}: " + ", ".join(f"{k}={v}" for k, v in counts.items()))
    print("init: ok")
    return 0


def run_wipe(cfg: Dict[str, Any]) -> int:
    with admin_lock(cfg["lock_path"]):
        counts = wipe_dataset(_session_factory(cfg))
    print("wipe: " + ", ".join(f"{k}={v}" for k, v in counts.items()))
    return 0


def run_search(cfg: Dict[str, Any], args: argparse.Namespace) -> int:
    values: Dict[str, Any] = {}
    for name in filter_field_names():
        value = getattr(args, name, None)
        if value is None:
            continue
        values[name] = tuple(value) if isinstance(value, list) else value

    session = _session_factory(cfg)()
    try:
        result = search(
            session,
            PokemonSearchFilter(**values),
            Pagination(page=args.page, page_size=args.page_size),
            SortOptions(sort_by=args.sort_by, sort_order=args.sort_order),
        )
    finally:
        session.close()
    print(json.dumps(asdict(result), indent=2, ensure_ascii=False))
    return 0


def run_export(cfg: Dict[str, Any], generation_id: Optional[int], output: Optional[str]) -> int:
    session = _session_factory(cfg)()
    try:
        gen = generation_id if generation_id is not None else default_generation_id(session)
        if gen is None:
            print("export: dataset is empty; run init first")
            return 1
        path = export_workbook(session, output or cfg["export_path"], gen)
    finally:
        session.close()
    print(f"export: wrote {path}")
    return 0


def _add_search_arguments(parser: argparse.ArgumentParser) -> None:
    for name in filter_field_names():
        flag = "--" + name.replace("_", "-")
        if name == "name":
            parser.add_argument(flag, dest=name, default=None)
        elif name.endswith("_ids"):
            parser.add_argument(flag, dest=name, type=int, nargs="+", default=None)
        else:
            parser.add_argument(flag, dest=name, type=int, default=None)
    parser.add_argument("--sort-by", dest="sort_by", default="dex_id")
    parser.add_argument("--sort-order", dest="sort_order", default="ASC")
    parser.add_argument("--page", type=int, default=1)
    parser.add_argument("--page-size", dest="page_size", type=int, default=20)


def build_arg_parser() -> argparse.ArgumentParser:
    """Build and return the top-level CLI argument parser."""
    parser = argparse.ArgumentParser(prog="draftdex")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH)
    sub = parser.add_subparsers(dest="command")

    fetch = sub.add_parser("fetch")
    fetch_sub = fetch.add_subparsers(dest="entity")
    for entity in ("pokemon", "reference", "all"):
        cmd = fetch_sub.add_parser(entity)
        cmd.add_argument("--limit", type=int, default=None)
        cmd.add_argument("--force", action="store_true")

    sub.add_parser("init")
    sub.add_parser("wipe")

    search_cmd = sub.add_parser("search")
    _add_search_arguments(search_cmd)

    export = sub.add_parser("export")
    export.add_argument("--generation", type=int, default=None)
    export.add_argument("--output", default=None)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    cfg = load_config(args.config)
    configure_logging(cfg)
    default_force = bool(cfg.get("force_refresh", False))

    try:
        if args.command == "fetch" and args.entity == "pokemon":
            return run_fetch_pokemon(cfg, args.limit, bool(args.force) or default_force)

        if args.command == "fetch" and args.entity == "reference":
            return run_fetch_reference(cfg, args.limit, bool(args.force) or default_force)

        if args.command == "fetch" and args.entity == "all":
            return run_fetch_all(cfg, args.limit, bool(args.force) or default_force)

        if args.command == "init":
            return run_init(cfg)

        if args.command == "wipe":
            return run_wipe(cfg)

        if args.command == "search":
            return run_search(cfg, args)

        if args.command == "export":
            return run_export(cfg, args.generation, args.output)
    except LockHeldError as exc:
        print(f"{args.command}: {exc}")
        return 1
    except IntegrityError:
        print(f"{args.command}: dataset already present; run `draftdex wipe` first")
        return 1
    except DraftDexError as exc:
        print(f"{args.command}: {exc}")
        return 1

    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
