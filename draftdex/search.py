"""Species search.

A ``PokemonSearchFilter`` compiles to a list of predicates drawn from a closed
set of kinds:

- ``NameContains``: case-insensitive substring match on the name
- ``StatRange``: inclusive bounds on a base stat or derived bulk
- ``MembershipAll``: the species has every listed related id
- ``EffectivenessClass``: every listed attacking type falls in one
  effectiveness class (weak, resisted, immune, not weak)

Predicates are plain values, independent of storage; ``translate`` turns each
kind into one SQL clause. Every filter dimension is conjunctive.

Sort fields, sort order and pagination are validated before any statement is
executed; invalid values raise ``SearchValidationError``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from sqlalchemy import and_, func, select, true
from sqlalchemy.orm import Session, aliased, selectinload

from .db import (
    Pokemon,
    TypeEffective,
    move_special_move_categories,
    pokemon_abilities,
    pokemon_moves,
    pokemon_pokemon_types,
)
from .errors import SearchValidationError

MAX_PAGE_SIZE = 100

RANGE_FIELDS: Tuple[str, ...] = (
    "hp",
    "attack",
    "defense",
    "special_attack",
    "special_defense",
    "speed",
    "base_stat_total",
    "physical_bulk",
    "special_bulk",
)

SORT_FIELDS: Tuple[str, ...] = (
    "dex_id",
    "name",
    "hp",
    "attack",
    "defense",
    "special_attack",
    "special_defense",
    "speed",
    "base_stat_total",
    "height",
    "weight",
    "physical_bulk",
    "special_bulk",
)

SORT_ORDERS: Tuple[str, ...] = ("ASC", "DESC")


@dataclass(frozen=True)
class PokemonSearchFilter:
    """Filter parameters for species search. Unset fields do not filter."""

    name: Optional[str] = None

    # Stat ranges (inclusive)
    min_hp: Optional[int] = None
    max_hp: Optional[int] = None
    min_attack: Optional[int] = None
    max_attack: Optional[int] = None
    min_defense: Optional[int] = None
    max_defense: Optional[int] = None
    min_special_attack: Optional[int] = None
    max_special_attack: Optional[int] = None
    min_special_defense: Optional[int] = None
    max_special_defense: Optional[int] = None
    min_speed: Optional[int] = None
    max_speed: Optional[int] = None
    min_base_stat_total: Optional[int] = None
    max_base_stat_total: Optional[int] = None
    min_physical_bulk: Optional[int] = None  # hp + defense
    max_physical_bulk: Optional[int] = None
    min_special_bulk: Optional[int] = None  # hp + special_defense
    max_special_bulk: Optional[int] = None

    # Membership (species must have every id)
    pokemon_type_ids: Tuple[int, ...] = ()
    ability_ids: Tuple[int, ...] = ()
    move_ids: Tuple[int, ...] = ()
    special_move_category_ids: Tuple[int, ...] = ()
    generation_ids: Tuple[int, ...] = ()

    # Effectiveness classes over attacking type ids
    weak_pokemon_type_ids: Tuple[int, ...] = ()
    resisted_pokemon_type_ids: Tuple[int, ...] = ()
    immune_pokemon_type_ids: Tuple[int, ...] = ()
    not_weak_pokemon_type_ids: Tuple[int, ...] = ()


@dataclass(frozen=True)
class Pagination:
    page: int = 1
    page_size: int = 20


@dataclass(frozen=True)
class SortOptions:
    sort_by: str = "dex_id"
    sort_order: str = "ASC"


@dataclass
class SearchResult:
    data: List[Dict[str, Any]] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 20
    total_pages: int = 0


# =============================================================================
# Predicates
# =============================================================================

class Relation(str, Enum):
    TYPES = "pokemon_type_ids"
    ABILITIES = "ability_ids"
    MOVES = "move_ids"
    SPECIAL_MOVE_CATEGORIES = "special_move_category_ids"
    GENERATIONS = "generation_ids"


class EffectivenessKind(str, Enum):
    WEAK = "weak"  # > 1
    RESISTED = "resisted"  # < 1
    IMMUNE = "immune"  # == 0
    NOT_WEAK = "not_weak"  # <= 1


@dataclass(frozen=True)
class NameContains:
    text: str


@dataclass(frozen=True)
class StatRange:
    stat: str
    minimum: Optional[int] = None
    maximum: Optional[int] = None


@dataclass(frozen=True)
class MembershipAll:
    relation: Relation
    ids: Tuple[int, ...]


@dataclass(frozen=True)
class EffectivenessClass:
    kind: EffectivenessKind
    type_ids: Tuple[int, ...]


Predicate = Union[NameContains, StatRange, MembershipAll, EffectivenessClass]

_EFFECTIVENESS_FIELDS: Tuple[Tuple[str, EffectivenessKind], ...] = (
    ("weak_pokemon_type_ids", EffectivenessKind.WEAK),
    ("resisted_pokemon_type_ids", EffectivenessKind.RESISTED),
    ("immune_pokemon_type_ids", EffectivenessKind.IMMUNE),
    ("not_weak_pokemon_type_ids", EffectivenessKind.NOT_WEAK),
)


def _unique_ids(values) -> Tuple[int, ...]:
    return tuple(dict.fromkeys(int(v) for v in values or ()))


def build_predicates(filters: PokemonSearchFilter) -> List[Predicate]:
    """Compile a filter into predicates; empty dimensions produce none."""
    predicates: List[Predicate] = []

    if filters.name and filters.name.strip():
        predicates.append(NameContains(filters.name.strip()))

    for stat in RANGE_FIELDS:
        minimum = getattr(filters, f"min_{stat}")
        maximum = getattr(filters, f"max_{stat}")
        if minimum is not None or maximum is not None:
            predicates.append(StatRange(stat, minimum, maximum))

    for relation in Relation:
        ids = _unique_ids(getattr(filters, relation.value))
        if ids:
            predicates.append(MembershipAll(relation, ids))

    for field_name, kind in _EFFECTIVENESS_FIELDS:
        ids = _unique_ids(getattr(filters, field_name))
        if ids:
            predicates.append(EffectivenessClass(kind, ids))

    return predicates


# =============================================================================
# Storage translation
# =============================================================================

_JOIN_TABLES = {
    Relation.TYPES: (pokemon_pokemon_types, "pokemon_type_id"),
    Relation.ABILITIES: (pokemon_abilities, "ability_id"),
    Relation.MOVES: (pokemon_moves, "move_id"),
}


def _range_column(stat: str):
    return getattr(Pokemon, stat)


def _effectiveness_condition(kind: EffectivenessKind, value):
    if kind is EffectivenessKind.WEAK:
        return value > 1
    if kind is EffectivenessKind.RESISTED:
        return value < 1
    if kind is EffectivenessKind.IMMUNE:
        return value == 0
    return value <= 1


def _membership_clause(predicate: MembershipAll):
    clauses = []
    if predicate.relation is Relation.SPECIAL_MOVE_CATEGORIES:
        # A species has a category when any of its moves belongs to it.
        for category_id in predicate.ids:
            subquery = (
                select(pokemon_moves.c.move_id)
                .join(
                    move_special_move_categories,
                    move_special_move_categories.c.move_id == pokemon_moves.c.move_id,
                )
                .where(
                    pokemon_moves.c.pokemon_id == Pokemon.id,
                    move_special_move_categories.c.special_move_category_id == category_id,
                )
            )
            clauses.append(subquery.exists())
    elif predicate.relation is Relation.GENERATIONS:
        # Rows of the listed generations whose species exists in all of them.
        other = aliased(Pokemon)
        clauses.append(Pokemon.generation_id.in_(predicate.ids))
        for generation_id in predicate.ids:
            subquery = select(other.id).where(
                other.name == Pokemon.name,
                other.generation_id == generation_id,
            )
            clauses.append(subquery.exists())
    else:
        table, column = _JOIN_TABLES[predicate.relation]
        for related_id in predicate.ids:
            subquery = select(table.c.pokemon_id).where(
                table.c.pokemon_id == Pokemon.id,
                table.c[column] == related_id,
            )
            clauses.append(subquery.exists())
    return and_(*clauses)


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def translate(predicate: Predicate):
    """SQL clause over ``Pokemon`` for one predicate."""
    if isinstance(predicate, NameContains):
        return Pokemon.name.ilike(f"%{_escape_like(predicate.text)}%", escape="\\")

    if isinstance(predicate, StatRange):
        column = _range_column(predicate.stat)
        clauses = []
        if predicate.minimum is not None:
            clauses.append(column >= predicate.minimum)
        if predicate.maximum is not None:
            clauses.append(column <= predicate.maximum)
        return and_(true(), *clauses)

    if isinstance(predicate, MembershipAll):
        return _membership_clause(predicate)

    if isinstance(predicate, EffectivenessClass):
        clauses = []
        for type_id in predicate.type_ids:
            subquery = select(TypeEffective.pokemon_id).where(
                TypeEffective.pokemon_id == Pokemon.id,
                TypeEffective.pokemon_type_id == type_id,
                _effectiveness_condition(predicate.kind, TypeEffective.value),
            )
            clauses.append(subquery.exists())
        return and_(*clauses)

    raise TypeError(f"Unsupported predicate: {predicate!r}")


# =============================================================================
# Search
# =============================================================================

def validate_request(pagination: Pagination, sort: SortOptions) -> None:
    if sort.sort_by not in SORT_FIELDS:
        raise SearchValidationError("sort_by", sort.sort_by, allowed=list(SORT_FIELDS))
    if str(sort.sort_order).upper() not in SORT_ORDERS:
        raise SearchValidationError("sort_order", sort.sort_order, allowed=list(SORT_ORDERS))
    if not isinstance(pagination.page, int) or pagination.page < 1:
        raise SearchValidationError("page", pagination.page, message="page must be >= 1")
    if (
        not isinstance(pagination.page_size, int)
        or pagination.page_size < 1
        or pagination.page_size > MAX_PAGE_SIZE
    ):
        raise SearchValidationError(
            "page_size",
            pagination.page_size,
            message=f"page_size must be between 1 and {MAX_PAGE_SIZE}",
        )


def _pokemon_row(pokemon: Pokemon) -> Dict[str, Any]:
    return {
        "id": pokemon.id,
        "dex_id": pokemon.dex_id,
        "name": pokemon.name,
        "generation_id": pokemon.generation_id,
        "hp": pokemon.hp,
        "attack": pokemon.attack,
        "defense": pokemon.defense,
        "special_attack": pokemon.special_attack,
        "special_defense": pokemon.special_defense,
        "speed": pokemon.speed,
        "base_stat_total": pokemon.base_stat_total,
        "height": pokemon.height,
        "weight": pokemon.weight,
        "physical_bulk": pokemon.physical_bulk,
        "special_bulk": pokemon.special_bulk,
        "types": [t.name for t in pokemon.types],
    }


def search(
    session: Session,
    filters: Optional[PokemonSearchFilter] = None,
    pagination: Optional[Pagination] = None,
    sort: Optional[SortOptions] = None,
) -> SearchResult:
    """Paginated, sorted species search. Read-only."""
    filters = filters or PokemonSearchFilter()
    pagination = pagination or Pagination()
    sort = sort or SortOptions()
    validate_request(pagination, sort)

    conditions = [translate(p) for p in build_predicates(filters)]

    total = session.execute(
        select(func.count()).select_from(Pokemon).where(*conditions)
    ).scalar_one()

    sort_column = getattr(Pokemon, sort.sort_by)
    if str(sort.sort_order).upper() == "DESC":
        order_by = (sort_column.desc(), Pokemon.id.desc())
    else:
        order_by = (sort_column.asc(), Pokemon.id.asc())

    stmt = (
        select(Pokemon)
        .where(*conditions)
        .options(selectinload(Pokemon.types))
        .order_by(*order_by)
        .offset((pagination.page - 1) * pagination.page_size)
        .limit(pagination.page_size)
    )
    rows = session.execute(stmt).scalars().all()

    return SearchResult(
        data=[_pokemon_row(p) for p in rows],
        total=total,
        page=pagination.page,
        page_size=pagination.page_size,
        total_pages=math.ceil(total / pagination.page_size) if total else 0,
    )


def filter_field_names() -> List[str]:
    """Names of every filter field, in declaration order."""
    return [f.name for f in fields(PokemonSearchFilter)]
