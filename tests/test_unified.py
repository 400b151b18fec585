from __future__ import annotations

import pytest

from draftdex.records import AbilityRaw, BaseStats, GenerationDataset, SpeciesMeta
from draftdex.transform import build_generation_dataset
from draftdex.transform_unified import (
    build_unified_dataset,
    inherit_alternate_form_moves,
    merge_latest,
)

from conftest import ALL_GENERATIONS, UNIFIED_GENERATION, make_dex


@pytest.fixture
def unified():
    datasets = [build_generation_dataset(make_dex(gen), workers=2) for gen in ALL_GENERATIONS]
    return build_unified_dataset(datasets, UNIFIED_GENERATION)


def test_latest_generation_wins_regardless_of_input_order():
    old = GenerationDataset(1, abilities=[AbilityRaw("Levitate", "old")])
    new = GenerationDataset(2, abilities=[AbilityRaw("Levitate", "new")])
    merged = merge_latest([new, old], lambda d: d.abilities)
    assert merged["Levitate"].description == "new"


def test_unified_records_come_from_their_latest_generation(unified):
    assert unified.generation_id == UNIFIED_GENERATION
    moves = {m.name: m for m in unified.moves}
    abilities = {a.name: a for a in unified.abilities}
    assert moves["Tackle"].power == 40
    assert moves["Tackle"].description == "Gen 3 tackle."
    assert "Dragon Claw" in moves
    assert abilities["Levitate"].description == "Gen 3 levitate."


def test_unified_species_union_across_generations(unified):
    names = {s.name for s in unified.species}
    assert len(names) == 11
    # Only present in generation 2.
    assert "Charizard-Mega-X" in names


def test_unified_species_use_full_lineage_learnset(unified):
    species = {s.name: s for s in unified.species}
    assert set(species["Charizard"].move_names) == {
        "Flamethrower",
        "Swords Dance",
        "Dragon Claw",
        "Ember",
        "Scratch",
    }


def test_alternate_form_inherits_base_form_moves(unified):
    species = {s.name: s for s in unified.species}
    assert species["Charizard-Mega-X"].move_names == species["Charizard"].move_names
    # Other fields keep the form's own values.
    assert species["Charizard-Mega-X"].type_names == ["Fire", "Dragon"]


def test_alternate_form_without_base_keeps_its_moves():
    stats = BaseStats()
    species = {
        "Kyogre-Primal": SpeciesMeta("Kyogre-Primal", 382, stats, ["Water"], [], move_names=["Surf"]),
    }
    assert inherit_alternate_form_moves(species)["Kyogre-Primal"].move_names == ["Surf"]
