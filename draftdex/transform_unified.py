"""Unified dataset merge.

Folds every generation's dataset into one synthetic generation. Entries are
keyed by name and later generations overwrite earlier ones, so each unified
record comes from the highest generation it occurs in. Unified species carry
their full lineage learnset, and alternate forms (Mega, Primal, Gigantamax)
take the unified learnset of their base form.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Dict, Iterable, List, TypeVar

from .naming import base_form_name
from .records import AbilityRaw, GenerationDataset, MoveRaw, SpeciesMeta

R = TypeVar("R", AbilityRaw, MoveRaw, SpeciesMeta)


def merge_latest(
    datasets: Iterable[GenerationDataset],
    select: Callable[[GenerationDataset], List[R]],
) -> Dict[str, R]:
    merged: Dict[str, R] = {}
    for dataset in sorted(datasets, key=lambda d: d.generation_id):
        for record in select(dataset):
            merged[record.name] = record
    return merged


def inherit_alternate_form_moves(species: Dict[str, SpeciesMeta]) -> Dict[str, SpeciesMeta]:
    """Replace each alternate form's move set with its base form's, when present."""
    out = dict(species)
    for name, record in species.items():
        base_name = base_form_name(name)
        if base_name is None:
            continue
        base = species.get(base_name)
        if base is None:
            continue
        out[name] = replace(record, move_names=list(base.move_names))
    return out


def build_unified_dataset(
    datasets: Iterable[GenerationDataset],
    unified_generation_id: int,
) -> GenerationDataset:
    datasets = list(datasets)
    abilities = merge_latest(datasets, lambda d: d.abilities)
    moves = merge_latest(datasets, lambda d: d.moves)

    species = {
        name: replace(record, move_names=list(record.all_move_names))
        for name, record in merge_latest(datasets, lambda d: d.species).items()
    }
    species = inherit_alternate_form_moves(species)

    return GenerationDataset(
        generation_id=unified_generation_id,
        abilities=list(abilities.values()),
        moves=list(moves.values()),
        species=list(species.values()),
    )
