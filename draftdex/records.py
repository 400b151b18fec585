"""Canonical per-generation records produced by the dataset builder."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List


class MoveCategory(str, Enum):
    PHYSICAL = "physical"
    SPECIAL = "special"
    STATUS = "status"


@dataclass(frozen=True)
class BaseStats:
    hp: int = 0
    attack: int = 0
    defense: int = 0
    special_attack: int = 0
    special_defense: int = 0
    speed: int = 0

    @property
    def total(self) -> int:
        return (
            self.hp
            + self.attack
            + self.defense
            + self.special_attack
            + self.special_defense
            + self.speed
        )


@dataclass(frozen=True)
class AbilityRaw:
    name: str
    description: str = ""


@dataclass(frozen=True)
class MoveRaw:
    name: str
    type_name: str
    category: MoveCategory
    power: int = 0
    accuracy: int = 0
    priority: int = 0
    pp: int = 0
    description: str = ""


@dataclass(frozen=True)
class SpeciesMeta:
    name: str
    dex_number: int
    base_stats: BaseStats
    type_names: List[str]
    ability_names: List[str]
    height: float = 0.0
    weight: float = 0.0
    # Moves learnable in this record's generation.
    move_names: List[str] = field(default_factory=list)
    # Every move found in the lineage regardless of generation.
    all_move_names: List[str] = field(default_factory=list)


@dataclass
class GenerationDataset:
    generation_id: int
    abilities: List[AbilityRaw] = field(default_factory=list)
    moves: List[MoveRaw] = field(default_factory=list)
    species: List[SpeciesMeta] = field(default_factory=list)
