"""Data provider interface.

The synthesis pipeline reads species, moves, abilities and learnsets through a
per-generation ``GenerationDex``. Providers are injected so tests can supply a
deterministic in-memory dex.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import (
    Dict,
    Generic,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    Tuple,
    TypeVar,
    Union,
)

from .naming import to_id


@dataclass(frozen=True)
class DexSpecies:
    id: str
    name: str
    num: int
    # Keys: hp, atk, def, spa, spd, spe
    base_stats: Mapping[str, int]
    types: Tuple[str, ...]
    # Slot ("0", "1", "H", ...) -> ability name
    abilities: Mapping[str, str] = field(default_factory=dict)
    height_m: float = 0.0
    weight_kg: float = 0.0
    prevo: Optional[str] = None
    changes_from: Optional[str] = None
    is_nonstandard: Optional[str] = None


@dataclass(frozen=True)
class DexMove:
    id: str
    name: str
    type: str
    category: str
    base_power: int = 0
    # True means the move never misses.
    accuracy: Union[int, bool] = 0
    priority: int = 0
    pp: int = 0
    description: str = ""
    is_nonstandard: Optional[str] = None


@dataclass(frozen=True)
class DexAbility:
    id: str
    name: str
    description: str = ""
    is_nonstandard: Optional[str] = None


T = TypeVar("T", DexSpecies, DexMove, DexAbility)

# Move id -> learn source tags such as "9L1" or "4M".
LearnsetData = Dict[str, List[str]]


class DexCollection(Protocol[T]):
    def all(self) -> List[T]:
        ...

    def get(self, name: str) -> Optional[T]:
        ...


class LearnsetSource(Protocol):
    def get(self, species_id: str) -> Optional[LearnsetData]:
        ...


class GenerationDex(Protocol):
    generation: int
    species: DexCollection[DexSpecies]
    moves: DexCollection[DexMove]
    abilities: DexCollection[DexAbility]
    learnsets: LearnsetSource


class DexProvider(Protocol):
    def for_gen(self, generation: int) -> GenerationDex:
        ...


class MappingCollection(Generic[T]):
    """Id-keyed record collection; ``get`` accepts names, slugs or ids."""

    def __init__(self, records: Iterable[T]):
        self._by_id: Dict[str, T] = {}
        for record in records:
            self._by_id[record.id] = record

    def all(self) -> List[T]:
        return list(self._by_id.values())

    def get(self, name: str) -> Optional[T]:
        return self._by_id.get(to_id(name))

    def __len__(self) -> int:
        return len(self._by_id)


class MappingLearnsets:
    def __init__(self, learnsets: Optional[Mapping[str, LearnsetData]] = None):
        self._by_species = {to_id(k): v for k, v in (learnsets or {}).items()}

    def get(self, species_id: str) -> Optional[LearnsetData]:
        return self._by_species.get(to_id(species_id))


class StaticGenerationDex:
    """In-memory ``GenerationDex`` built from plain record lists."""

    def __init__(
        self,
        generation: int,
        *,
        species: Iterable[DexSpecies] = (),
        moves: Iterable[DexMove] = (),
        abilities: Iterable[DexAbility] = (),
        learnsets: Optional[Mapping[str, LearnsetData]] = None,
    ):
        self.generation = generation
        self.species: MappingCollection[DexSpecies] = MappingCollection(species)
        self.moves: MappingCollection[DexMove] = MappingCollection(moves)
        self.abilities: MappingCollection[DexAbility] = MappingCollection(abilities)
        self.learnsets = MappingLearnsets(learnsets)


class StaticDexProvider:
    """Provider over prebuilt per-generation dexes."""

    def __init__(self, dexes: Mapping[int, GenerationDex]):
        self._dexes = dict(dexes)

    def for_gen(self, generation: int) -> GenerationDex:
        try:
            return self._dexes[generation]
        except KeyError:
            # Generations without data behave as empty dexes.
            return StaticGenerationDex(generation)
