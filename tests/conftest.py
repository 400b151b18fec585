"""Shared fixtures: a deterministic three-generation dex and an in-memory database."""

from __future__ import annotations

from typing import Dict, List

import pytest
from sqlalchemy.pool import StaticPool

from draftdex.db import init_db, make_engine, make_session_factory
from draftdex.pipeline import initialize_pokemon_dataset
from draftdex.provider import (
    DexAbility,
    DexMove,
    DexSpecies,
    StaticDexProvider,
    StaticGenerationDex,
)

LATEST_GENERATION = 3
UNIFIED_GENERATION = LATEST_GENERATION + 1
ALL_GENERATIONS = (1, 2, 3)


def _stats(hp, atk, deff, spa, spd, spe) -> Dict[str, int]:
    return {"hp": hp, "atk": atk, "def": deff, "spa": spa, "spd": spd, "spe": spe}


# (species, generations it exists in)
SPECIES = [
    (DexSpecies("bulbasaur", "Bulbasaur", 1, _stats(45, 49, 49, 65, 65, 45),
                ("Grass", "Poison"), {"0": "Overgrow"}, 0.7, 6.9), ALL_GENERATIONS),
    (DexSpecies("ivysaur", "Ivysaur", 2, _stats(60, 62, 63, 80, 80, 60),
                ("Grass", "Poison"), {"0": "Overgrow"}, 1.0, 13.0,
                prevo="bulbasaur"), ALL_GENERATIONS),
    (DexSpecies("charmander", "Charmander", 4, _stats(39, 52, 43, 60, 50, 65),
                ("Fire",), {"0": "Blaze"}, 0.6, 8.5), ALL_GENERATIONS),
    (DexSpecies("charizard", "Charizard", 6, _stats(78, 84, 78, 109, 85, 100),
                ("Fire", "Flying"), {"0": "Blaze"}, 1.7, 90.5,
                prevo="charmander"), ALL_GENERATIONS),
    (DexSpecies("charizardmegax", "Charizard-Mega-X", 6, _stats(78, 130, 111, 130, 85, 100),
                ("Fire", "Dragon"), {"0": "Tough Claws"}, 1.7, 110.5,
                changes_from="Charizard"), (2,)),
    (DexSpecies("gastly", "Gastly", 92, _stats(30, 35, 30, 100, 35, 80),
                ("Ghost", "Poison"), {"0": "Levitate"}, 1.3, 0.1), ALL_GENERATIONS),
    (DexSpecies("rhydon", "Rhydon", 112, _stats(105, 130, 120, 45, 45, 40),
                ("Ground", "Rock"), {"0": "Lightning Rod", "1": "Rock Head"}, 1.9, 120.0),
     ALL_GENERATIONS),
    (DexSpecies("lapras", "Lapras", 131, _stats(130, 85, 80, 85, 95, 60),
                ("Water", "Ice"), {"0": "Water Absorb", "1": "Shell Armor", "H": "Hydration"},
                2.5, 220.0), ALL_GENERATIONS),
    (DexSpecies("snorlax", "Snorlax", 143, _stats(160, 110, 65, 65, 110, 30),
                ("Normal",), {"0": "Thick Fat"}, 2.1, 460.0), ALL_GENERATIONS),
    (DexSpecies("dragonite", "Dragonite", 149, _stats(91, 134, 95, 100, 100, 80),
                ("Dragon", "Flying"), {"0": "Inner Focus", "1": "No Ability"}, 2.2, 210.0),
     ALL_GENERATIONS),
    (DexSpecies("quagsire", "Quagsire", 195, _stats(95, 85, 85, 65, 65, 35),
                ("Water", "Ground"), {"0": "Damp", "1": "Water Absorb"}, 1.4, 75.0), (2, 3)),
    (DexSpecies("missingno", "MissingNo.", 0, _stats(33, 136, 0, 6, 6, 29),
                ("Bird", "Normal"), {"0": "No Ability"}, 3.0, 1590.8,
                is_nonstandard="Unobtainable"), ALL_GENERATIONS),
]

LEARNSETS: Dict[str, Dict[str, List[str]]] = {
    "bulbasaur": {
        "tackle": ["1L1", "2L1", "3L1"],
        "vinewhip": ["1L7", "2L7", "3L7"],
        "swordsdance": ["1M"],
    },
    "ivysaur": {"razorleaf": ["3L20"]},
    "charmander": {"scratch": ["1L1", "2L1", "3L1"], "ember": ["1L9", "2L9", "3L9"]},
    "charizard": {
        "flamethrower": ["1M", "2M", "3M"],
        "swordsdance": ["1M", "2M"],
        "dragonclaw": ["3M"],
    },
    "gastly": {"hypnosis": ["1L1", "2L1", "3L1"], "lick": ["1L1", "2L1", "3L1"]},
    "rhydon": {"earthquake": ["1M", "2M", "3M"]},
    "lapras": {"surf": ["1M", "2M", "3M"], "icebeam": ["1M", "2M", "3M"]},
    "snorlax": {
        "tackle": ["1L1", "2L1", "3L1"],
        "bodyslam": ["1M", "2M", "3M"],
        "mysterymove": ["1L1", "2L1", "3L1"],
    },
    "dragonite": {"bodyslam": ["1M", "2M", "3M"]},
    "quagsire": {"surf": ["2M", "3M"], "earthquake": ["2M", "3M"]},
}


def _moves(gen: int) -> List[DexMove]:
    moves = [
        DexMove("tackle", "Tackle", "Normal", "Physical", 40 if gen >= 3 else 35, 100, 0, 35,
                f"Gen {gen} tackle."),
        DexMove("scratch", "Scratch", "Normal", "Physical", 40, 100, 0, 35),
        DexMove("vinewhip", "Vine Whip", "Grass", "Physical", 45, 100, 0, 25),
        DexMove("razorleaf", "Razor Leaf", "Grass", "Physical", 55, 95, 0, 25),
        # Lowercase type names still match the type table.
        DexMove("ember", "Ember", "fire", "Special", 40, 100, 0, 25),
        DexMove("flamethrower", "Flamethrower", "Fire", "Special", 90, 100, 0, 15),
        DexMove("swordsdance", "Swords Dance", "Normal", "Status", 0, True, 0, 20),
        DexMove("hypnosis", "Hypnosis", "Psychic", "Status", 0, 60, 0, 20),
        DexMove("lick", "Lick", "Ghost", "Physical", 30, 100, 0, 30),
        DexMove("surf", "Surf", "Water", "Special", 90, 100, 0, 15),
        DexMove("icebeam", "Ice Beam", "Ice", "Special", 90, 100, 0, 10),
        DexMove("earthquake", "Earthquake", "Ground", "Physical", 100, 100, 0, 10),
        DexMove("bodyslam", "Body Slam", "Normal", "Physical", 85, 100, 0, 15),
        DexMove("swift", "Swift", "Normal", "Special", 60, True, 0, 20),
        DexMove("weirdbeam", "Weird Beam", "Shadow", "Special", 120, 100, 0, 5),
        DexMove("hiddenmove", "Hidden Move", "Normal", "Physical", 250, 100, 0, 5,
                is_nonstandard="Past"),
    ]
    if gen >= 3:
        moves.append(DexMove("dragonclaw", "Dragon Claw", "Dragon", "Physical", 80, 100, 0, 15))
    return moves


def _abilities(gen: int) -> List[DexAbility]:
    names = [
        "Overgrow", "Blaze", "Water Absorb", "Shell Armor", "Hydration", "Damp",
        "Thick Fat", "Lightning Rod", "Rock Head", "Inner Focus", "Tough Claws",
    ]
    abilities = [DexAbility(n.lower().replace(" ", ""), n, f"{n} effect.") for n in names]
    abilities.append(DexAbility("levitate", "Levitate", f"Gen {gen} levitate."))
    abilities.append(DexAbility("noability", "No Ability"))
    abilities.append(DexAbility("bannedability", "Banned Ability", is_nonstandard="Past"))
    return abilities


def make_dex(gen: int) -> StaticGenerationDex:
    return StaticGenerationDex(
        gen,
        species=[s for s, gens in SPECIES if gen in gens],
        moves=_moves(gen),
        abilities=_abilities(gen),
        learnsets=LEARNSETS,
    )


@pytest.fixture
def provider() -> StaticDexProvider:
    return StaticDexProvider({gen: make_dex(gen) for gen in ALL_GENERATIONS})


@pytest.fixture
def engine():
    engine = make_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def populated(session_factory, provider):
    return initialize_pokemon_dataset(
        session_factory,
        provider,
        latest_generation=LATEST_GENERATION,
        workers=2,
        insert_batch_size=7,
        join_batch_size=11,
    )


@pytest.fixture
def session(session_factory):
    session = session_factory()
    yield session
    session.close()
