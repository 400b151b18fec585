"""Per-generation dataset builder.

Reads one generation's dex through the provider interface and produces the
canonical ability, move and species records. Non-standard entries and the
"No Ability" sentinel are excluded; moves whose type does not match the type
table are dropped.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional

from .provider import DexMove, DexSpecies, GenerationDex
from .records import (
    AbilityRaw,
    BaseStats,
    GenerationDataset,
    MoveCategory,
    MoveRaw,
    SpeciesMeta,
)
from .reference_data import POKEMON_TYPES
from .transform_learnset import ResolvedLearnset, resolve_learnset

logger = logging.getLogger(__name__)

NO_ABILITY = "No Ability"

_TYPES_BY_LOWER: Dict[str, str] = {t.lower(): t for t in POKEMON_TYPES}


def match_type_name(type_name: str) -> Optional[str]:
    """Canonical type name for a case-insensitive match, or None."""
    return _TYPES_BY_LOWER.get((type_name or "").strip().lower())


def _as_int(value) -> int:
    if value is True:
        return 0
    return value if isinstance(value, int) else 0


def build_abilities(dex: GenerationDex) -> List[AbilityRaw]:
    abilities: List[AbilityRaw] = []
    for ability in dex.abilities.all():
        if ability.is_nonstandard or ability.name == NO_ABILITY:
            continue
        abilities.append(AbilityRaw(name=ability.name, description=ability.description or ""))
    return abilities


def build_move(move: DexMove) -> Optional[MoveRaw]:
    """Canonical move record, or None when its type is not in the type table."""
    type_name = match_type_name(move.type)
    if type_name is None:
        return None
    try:
        category = MoveCategory(move.category.lower())
    except ValueError:
        return None

    return MoveRaw(
        name=move.name,
        type_name=type_name,
        category=category,
        power=_as_int(move.base_power),
        # Moves that never miss carry accuracy True.
        accuracy=_as_int(move.accuracy),
        priority=_as_int(move.priority),
        pp=_as_int(move.pp),
        description=move.description or "",
    )


def build_moves(dex: GenerationDex) -> List[MoveRaw]:
    moves: List[MoveRaw] = []
    dropped = 0
    for move in dex.moves.all():
        if move.is_nonstandard:
            continue
        record = build_move(move)
        if record is None:
            logger.debug("dropping move %s with unmatched type %s", move.name, move.type)
            dropped += 1
            continue
        moves.append(record)
    if dropped:
        logger.info("generation %s: dropped %d moves with unmatched types", dex.generation, dropped)
    return moves


def _unique(names) -> List[str]:
    seen = set()
    unique: List[str] = []
    for name in names:
        if name not in seen:
            seen.add(name)
            unique.append(name)
    return unique


def species_ability_names(dex: GenerationDex, species: DexSpecies) -> List[str]:
    """Canonical names of the species' standard abilities, once each in slot order."""
    names: List[str] = []
    for slot_name in species.abilities.values():
        if not slot_name or slot_name == NO_ABILITY:
            continue
        ability = dex.abilities.get(slot_name)
        if ability is None or ability.is_nonstandard or ability.name == NO_ABILITY:
            continue
        names.append(ability.name)
    return _unique(names)


def build_species_meta(
    dex: GenerationDex, species: DexSpecies, learnset: ResolvedLearnset
) -> SpeciesMeta:
    stats = species.base_stats
    return SpeciesMeta(
        name=species.name,
        dex_number=species.num,
        base_stats=BaseStats(
            hp=stats.get("hp", 0),
            attack=stats.get("atk", 0),
            defense=stats.get("def", 0),
            special_attack=stats.get("spa", 0),
            special_defense=stats.get("spd", 0),
            speed=stats.get("spe", 0),
        ),
        type_names=_unique(species.types),
        ability_names=species_ability_names(dex, species),
        height=species.height_m,
        weight=species.weight_kg,
        move_names=learnset.move_names,
        all_move_names=learnset.all_move_names,
    )


def build_species(
    dex: GenerationDex,
    *,
    workers: int = 8,
    strict: bool = False,
) -> List[SpeciesMeta]:
    """Build species records, resolving learnsets on a bounded worker pool.

    Learnset resolution only reads the dex; results keep the provider order.
    """
    candidates = [s for s in dex.species.all() if not s.is_nonstandard]

    def resolve(species: DexSpecies) -> ResolvedLearnset:
        return resolve_learnset(dex, species, strict=strict)

    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        learnsets = list(pool.map(resolve, candidates))

    misses = sum(ls.misses for ls in learnsets)
    if misses:
        logger.warning(
            "generation %s: skipped %d unresolved learnset lookups", dex.generation, misses
        )

    return [build_species_meta(dex, s, ls) for s, ls in zip(candidates, learnsets)]


def build_generation_dataset(
    dex: GenerationDex,
    *,
    workers: int = 8,
    strict: bool = False,
) -> GenerationDataset:
    dataset = GenerationDataset(
        generation_id=dex.generation,
        abilities=build_abilities(dex),
        moves=build_moves(dex),
        species=build_species(dex, workers=workers, strict=strict),
    )
    logger.info(
        "generation %s: abilities=%d moves=%d species=%d",
        dex.generation,
        len(dataset.abilities),
        len(dataset.moves),
        len(dataset.species),
    )
    return dataset
