"""Relation linking.

Runs after abilities, moves and species are persisted. Names recorded on the
species records are resolved to row ids through lookup indexes built once per
phase, then join rows and type effectiveness rows are bulk inserted.

Lookup keys are ``name.strip().lower() + "|" + generation_id``; type names are
matched on ``name.lower()`` alone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from .db import (
    Ability,
    Move,
    Pokemon,
    PokemonType,
    SpecialMoveCategory,
    TypeEffective,
    bulk_insert,
    move_special_move_categories,
    pokemon_abilities,
    pokemon_moves,
    pokemon_pokemon_types,
)
from .effectiveness import effectiveness_profile
from .errors import note_lookup_miss
from .naming import lookup_key
from .records import GenerationDataset
from .reference_data import SPECIAL_MOVES

logger = logging.getLogger(__name__)


@dataclass
class LookupIndex:
    """``name|generation`` -> row id for one entity kind."""

    kind: str
    ids: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_rows(cls, kind: str, rows: Iterable[Tuple[int, str, int]]) -> "LookupIndex":
        index = cls(kind)
        for row_id, name, generation_id in rows:
            index.ids[lookup_key(name, generation_id)] = row_id
        return index

    def resolve(self, name: str, generation_id: int) -> Optional[int]:
        return self.ids.get(lookup_key(name, generation_id))

    def __len__(self) -> int:
        return len(self.ids)


def load_index(session: Session, model, kind: str) -> LookupIndex:
    rows = session.execute(select(model.id, model.name, model.generation_id)).all()
    return LookupIndex.from_rows(kind, rows)


def load_type_ids(session: Session) -> Dict[str, int]:
    rows = session.execute(select(PokemonType.id, PokemonType.name)).all()
    return {name.lower(): type_id for type_id, name in rows}


@dataclass
class LinkReport:
    pokemon_types: int = 0
    pokemon_abilities: int = 0
    pokemon_moves: int = 0
    type_effective: int = 0
    misses: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "pokemon_pokemon_types": self.pokemon_types,
            "pokemon_abilities": self.pokemon_abilities,
            "pokemon_moves": self.pokemon_moves,
            "type_effective": self.type_effective,
            "misses": self.misses,
        }


def link_species_relations(
    session: Session,
    datasets: Iterable[GenerationDataset],
    *,
    batch_size: int = 10000,
    strict: bool = False,
) -> LinkReport:
    """Insert type/ability/move join rows and 18 effectiveness rows per species."""
    species_index = load_index(session, Pokemon, "species")
    ability_index = load_index(session, Ability, "ability")
    move_index = load_index(session, Move, "move")
    type_ids = load_type_ids(session)

    report = LinkReport()

    def miss(kind: str, key: str) -> None:
        note_lookup_miss(logger, kind, key, strict=strict)
        report.misses += 1

    type_rows: List[Dict[str, int]] = []
    ability_rows: List[Dict[str, int]] = []
    move_rows: List[Dict[str, int]] = []
    effectiveness_rows: List[Dict[str, object]] = []

    for dataset in datasets:
        gen = dataset.generation_id
        for species in dataset.species:
            pokemon_id = species_index.resolve(species.name, gen)
            if pokemon_id is None:
                miss("species", lookup_key(species.name, gen))
                continue

            seen: Set[int] = set()
            for type_name in species.type_names:
                type_id = type_ids.get(type_name.lower())
                if type_id is None:
                    miss("type", type_name)
                    continue
                if type_id not in seen:
                    seen.add(type_id)
                    type_rows.append({"pokemon_id": pokemon_id, "pokemon_type_id": type_id})

            seen = set()
            for ability_name in species.ability_names:
                ability_id = ability_index.resolve(ability_name, gen)
                if ability_id is None:
                    miss("ability", lookup_key(ability_name, gen))
                    continue
                if ability_id not in seen:
                    seen.add(ability_id)
                    ability_rows.append({"pokemon_id": pokemon_id, "ability_id": ability_id})

            seen = set()
            for move_name in species.move_names:
                move_id = move_index.resolve(move_name, gen)
                if move_id is None:
                    miss("move", lookup_key(move_name, gen))
                    continue
                if move_id not in seen:
                    seen.add(move_id)
                    move_rows.append({"pokemon_id": pokemon_id, "move_id": move_id})

            profile = effectiveness_profile(species.type_names, species.ability_names)
            for attacking_type, value in profile.items():
                effectiveness_rows.append(
                    {
                        "pokemon_id": pokemon_id,
                        "pokemon_type_id": type_ids[attacking_type.lower()],
                        "value": value,
                    }
                )

    report.pokemon_types = bulk_insert(session, pokemon_pokemon_types, type_rows, batch_size)
    report.pokemon_abilities = bulk_insert(session, pokemon_abilities, ability_rows, batch_size)
    report.pokemon_moves = bulk_insert(session, pokemon_moves, move_rows, batch_size)
    report.type_effective = bulk_insert(session, TypeEffective, effectiveness_rows, batch_size)

    if report.misses:
        logger.warning("relations: skipped %d unresolved lookups", report.misses)
    return report


def link_special_move_categories(session: Session, *, batch_size: int = 10000) -> int:
    """Link every generation's copy of each categorized move (case-insensitive)."""
    category_ids = {
        name: category_id
        for category_id, name in session.execute(
            select(SpecialMoveCategory.id, SpecialMoveCategory.name)
        ).all()
    }

    rows: List[Dict[str, int]] = []
    for move_id, name in session.execute(select(Move.id, Move.name)).all():
        for category in SPECIAL_MOVES.get(name.strip().lower(), []):
            category_id = category_ids.get(category)
            if category_id is None:
                continue
            rows.append({"move_id": move_id, "special_move_category_id": category_id})

    return bulk_insert(session, move_special_move_categories, rows, batch_size)
