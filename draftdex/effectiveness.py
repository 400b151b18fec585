"""Type effectiveness.

Effectiveness of an attacking type against a species is the product of the
type chart over the species' defending types, multiplied by every modifier
registered for the species' abilities. One value is computed per attacking
type and folds in all of the species' abilities at once.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Sequence

from .naming import to_id
from .reference_data import ABILITY_MODIFIERS, DAMAGE_RELATIONS, POKEMON_TYPES

TypeChart = Dict[str, Dict[str, float]]


def build_type_chart(
    relations: Mapping[str, Mapping[str, List[str]]],
    type_names: Sequence[str],
) -> TypeChart:
    """Expand per-attacking-type damage relations into a full matrix.

    Keys are lowercase type names. Pairs without a relation are neutral (1.0).
    """
    keys = [t.lower() for t in type_names]
    chart: TypeChart = {}
    for atk in keys:
        dmg_rel = relations.get(atk) or {}
        double_to = set(dmg_rel.get("double_damage_to") or [])
        half_to = set(dmg_rel.get("half_damage_to") or [])
        no_to = set(dmg_rel.get("no_damage_to") or [])

        row: Dict[str, float] = {}
        for dfn in keys:
            multiplier = 1.0
            if dfn in no_to:
                multiplier = 0.0
            elif dfn in double_to:
                multiplier = 2.0
            elif dfn in half_to:
                multiplier = 0.5
            row[dfn] = multiplier
        chart[atk] = row
    return chart


TYPE_CHART: TypeChart = build_type_chart(DAMAGE_RELATIONS, POKEMON_TYPES)

# Ability modifiers keyed by normalized ability id ("Well-Baked Body" -> "wellbakedbody").
_MODIFIERS_BY_ID: Dict[str, Dict[str, float]] = {
    to_id(name): dict(mods) for name, mods in ABILITY_MODIFIERS.items()
}


def ability_modifier(ability_name: str, attacking_type: str) -> float:
    """Modifier an ability applies to ``attacking_type``; 1.0 when none is registered."""
    mods = _MODIFIERS_BY_ID.get(to_id(ability_name))
    if not mods:
        return 1.0
    return float(mods.get(attacking_type.lower(), 1.0))


def base_effectiveness(
    attacking_type: str,
    defending_types: Iterable[str],
    chart: TypeChart = TYPE_CHART,
) -> float:
    row = chart.get(attacking_type.lower()) or {}
    value = 1.0
    for dfn in defending_types:
        value *= row.get(dfn.lower(), 1.0)
    return value


def compute_effectiveness(
    attacking_type: str,
    defending_types: Iterable[str],
    ability_names: Iterable[str] = (),
    chart: TypeChart = TYPE_CHART,
) -> float:
    """Type chart product over ``defending_types`` times all ability modifiers."""
    value = base_effectiveness(attacking_type, defending_types, chart)
    for ability in ability_names:
        value *= ability_modifier(ability, attacking_type)
    return value


def effectiveness_profile(
    defending_types: Sequence[str],
    ability_names: Sequence[str] = (),
    chart: TypeChart = TYPE_CHART,
) -> Dict[str, float]:
    """Effectiveness of every attacking type, in type table order."""
    return {
        atk: compute_effectiveness(atk, defending_types, ability_names, chart)
        for atk in POKEMON_TYPES
    }
