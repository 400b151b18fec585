"""Learnset resolution.

A species' learnset is accumulated along its lineage: alternate forms are
redirected to the form they change from, then the pre-evolution chain is
walked to the root. Source tags carry the generation they were learned in as
their leading character (``"8L1"`` -> generation 8).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from .errors import note_lookup_miss
from .provider import DexSpecies, GenerationDex

logger = logging.getLogger(__name__)


@dataclass
class ResolvedLearnset:
    move_names: List[str] = field(default_factory=list)
    all_move_names: List[str] = field(default_factory=list)
    misses: int = 0


def tag_generation(tag: str) -> Optional[int]:
    """Generation encoded by the leading character of a source tag."""
    head = tag[:1]
    return int(head) if head.isdigit() else None


def collect_learnset_sources(
    dex: GenerationDex,
    species: DexSpecies,
    *,
    strict: bool = False,
) -> tuple[Dict[str, List[str]], int]:
    """Accumulate ``move_id -> source tags`` over the species lineage.

    Returns the accumulated map and the number of unresolved species lookups.
    """
    misses = 0
    current: Optional[DexSpecies] = species

    if species.changes_from:
        base = dex.species.get(species.changes_from)
        if base is None:
            note_lookup_miss(logger, "species", species.changes_from, strict=strict)
            misses += 1
        else:
            current = base

    accumulated: Dict[str, List[str]] = {}
    visited: Set[str] = set()
    while current is not None and current.id not in visited:
        visited.add(current.id)
        learnset = dex.learnsets.get(current.id) or {}
        for move_id, tags in learnset.items():
            accumulated.setdefault(move_id, []).extend(tags)

        if not current.prevo:
            break
        prevo = dex.species.get(current.prevo)
        if prevo is None:
            note_lookup_miss(logger, "species", current.prevo, strict=strict)
            misses += 1
        current = prevo

    return accumulated, misses


def resolve_learnset(
    dex: GenerationDex,
    species: DexSpecies,
    *,
    strict: bool = False,
) -> ResolvedLearnset:
    """Resolve move names learnable in ``dex.generation`` and across all generations."""
    sources, misses = collect_learnset_sources(dex, species, strict=strict)
    result = ResolvedLearnset(misses=misses)

    generation_tag = str(dex.generation)
    seen_gen: Set[str] = set()
    seen_all: Set[str] = set()
    for move_id, tags in sources.items():
        move = dex.moves.get(move_id)
        if move is None:
            note_lookup_miss(logger, "move", move_id, strict=strict)
            result.misses += 1
            continue
        if move.is_nonstandard:
            continue

        if move.name not in seen_all:
            seen_all.add(move.name)
            result.all_move_names.append(move.name)

        if move.name in seen_gen:
            continue
        if any(tag[:1] == generation_tag for tag in tags):
            seen_gen.add(move.name)
            result.move_names.append(move.name)

    return result
