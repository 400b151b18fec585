"""Fixed reference data for the Pokémon dataset.

- the 18 types (ids follow list order, starting at 1)
- the type chart as per-attacking-type damage relations
- ability-based type effectiveness modifiers
- special move categories and their member moves
- generation fixture rows

All lookup keys are lowercase for case-insensitive matching.
"""

from __future__ import annotations

from typing import Dict, List

POKEMON_TYPES: List[str] = [
    "Normal",
    "Fire",
    "Water",
    "Electric",
    "Grass",
    "Ice",
    "Fighting",
    "Poison",
    "Ground",
    "Flying",
    "Psychic",
    "Bug",
    "Rock",
    "Ghost",
    "Dragon",
    "Dark",
    "Steel",
    "Fairy",
]

# Attacking type -> damage relations against defending types.
# Defending types not listed take neutral (1x) damage.
DAMAGE_RELATIONS: Dict[str, Dict[str, List[str]]] = {
    "normal": {
        "half_damage_to": ["rock", "steel"],
        "no_damage_to": ["ghost"],
    },
    "fire": {
        "double_damage_to": ["bug", "grass", "ice", "steel"],
        "half_damage_to": ["dragon", "fire", "rock", "water"],
    },
    "water": {
        "double_damage_to": ["fire", "ground", "rock"],
        "half_damage_to": ["dragon", "grass", "water"],
    },
    "electric": {
        "double_damage_to": ["flying", "water"],
        "half_damage_to": ["dragon", "electric", "grass"],
        "no_damage_to": ["ground"],
    },
    "grass": {
        "double_damage_to": ["ground", "rock", "water"],
        "half_damage_to": ["bug", "dragon", "fire", "flying", "grass", "poison", "steel"],
    },
    "ice": {
        "double_damage_to": ["dragon", "flying", "grass", "ground"],
        "half_damage_to": ["fire", "ice", "steel", "water"],
    },
    "fighting": {
        "double_damage_to": ["dark", "ice", "normal", "rock", "steel"],
        "half_damage_to": ["bug", "fairy", "flying", "poison", "psychic"],
        "no_damage_to": ["ghost"],
    },
    "poison": {
        "double_damage_to": ["fairy", "grass"],
        "half_damage_to": ["ghost", "ground", "poison", "rock"],
        "no_damage_to": ["steel"],
    },
    "ground": {
        "double_damage_to": ["electric", "fire", "poison", "rock", "steel"],
        "half_damage_to": ["bug", "grass"],
        "no_damage_to": ["flying"],
    },
    "flying": {
        "double_damage_to": ["bug", "fighting", "grass"],
        "half_damage_to": ["electric", "rock", "steel"],
    },
    "psychic": {
        "double_damage_to": ["fighting", "poison"],
        "half_damage_to": ["psychic", "steel"],
        "no_damage_to": ["dark"],
    },
    "bug": {
        "double_damage_to": ["dark", "grass", "psychic"],
        "half_damage_to": ["fairy", "fighting", "fire", "flying", "ghost", "poison", "steel"],
    },
    "rock": {
        "double_damage_to": ["bug", "fire", "flying", "ice"],
        "half_damage_to": ["fighting", "ground", "steel"],
    },
    "ghost": {
        "double_damage_to": ["ghost", "psychic"],
        "half_damage_to": ["dark"],
        "no_damage_to": ["normal"],
    },
    "dragon": {
        "double_damage_to": ["dragon"],
        "half_damage_to": ["steel"],
        "no_damage_to": ["fairy"],
    },
    "dark": {
        "double_damage_to": ["ghost", "psychic"],
        "half_damage_to": ["dark", "fairy", "fighting"],
    },
    "steel": {
        "double_damage_to": ["fairy", "ice", "rock"],
        "half_damage_to": ["electric", "fire", "steel", "water"],
    },
    "fairy": {
        "double_damage_to": ["dark", "dragon", "fighting"],
        "half_damage_to": ["fire", "poison", "steel"],
    },
}

# Ability -> attacking type -> multiplier applied on top of the type chart.
ABILITY_MODIFIERS: Dict[str, Dict[str, float]] = {
    "volt absorb": {"electric": 0},
    "dry skin": {"water": 0},
    "earth eater": {"ground": 0},
    "flash fire": {"fire": 0},
    "fluffy": {"fire": 2},
    "heatproof": {"fire": 0.5},
    "levitate": {"ground": 0},
    "lightning rod": {"electric": 0},
    "motor drive": {"electric": 0},
    "purifying salt": {"ghost": 0.5},
    "sap sipper": {"grass": 0},
    "storm drain": {"water": 0},
    "thick fat": {"fire": 0.5, "ice": 0.5},
    "water absorb": {"water": 0},
    "water bubble": {"fire": 0.5},
    "well-baked body": {"fire": 0},
}

SPECIAL_MOVE_CATEGORIES: List[str] = [
    "Hazard",
    "Hazard Removal",
    "Momentum",
    "Recovery",
    "Screens",
    "Setup",
    "Status Spreading",
]

# Move name -> special move categories it belongs to.
SPECIAL_MOVES: Dict[str, List[str]] = {
    "stealth rock": ["Hazard"],
    "spikes": ["Hazard"],
    "toxic spikes": ["Hazard"],
    "sticky web": ["Hazard"],
    "stone axe": ["Hazard"],
    "ceaseless edge": ["Hazard"],
    "rapid spin": ["Hazard Removal"],
    "defog": ["Hazard Removal"],
    "tidy up": ["Hazard Removal", "Setup"],
    "court change": ["Hazard Removal"],
    "mortal spin": ["Hazard Removal"],
    "u-turn": ["Momentum"],
    "volt switch": ["Momentum"],
    "flip turn": ["Momentum"],
    "parting shot": ["Momentum"],
    "teleport": ["Momentum"],
    "baton pass": ["Momentum"],
    "chilly reception": ["Momentum"],
    "shed tail": ["Momentum"],
    "recover": ["Recovery"],
    "roost": ["Recovery"],
    "soft-boiled": ["Recovery"],
    "slack off": ["Recovery"],
    "milk drink": ["Recovery"],
    "moonlight": ["Recovery"],
    "morning sun": ["Recovery"],
    "synthesis": ["Recovery"],
    "shore up": ["Recovery"],
    "wish": ["Recovery"],
    "strength sap": ["Recovery"],
    "reflect": ["Screens"],
    "light screen": ["Screens"],
    "aurora veil": ["Screens"],
    "swords dance": ["Setup"],
    "dragon dance": ["Setup"],
    "nasty plot": ["Setup"],
    "calm mind": ["Setup"],
    "quiver dance": ["Setup"],
    "bulk up": ["Setup"],
    "shell smash": ["Setup"],
    "shift gear": ["Setup"],
    "coil": ["Setup"],
    "belly drum": ["Setup"],
    "iron defense": ["Setup"],
    "will-o-wisp": ["Status Spreading"],
    "thunder wave": ["Status Spreading"],
    "toxic": ["Status Spreading"],
    "spore": ["Status Spreading"],
    "sleep powder": ["Status Spreading"],
    "glare": ["Status Spreading"],
    "yawn": ["Status Spreading"],
    "hypnosis": ["Status Spreading"],
}

UNIFIED_GENERATION_NAME = "Unified"


def generation_rows(latest_generation: int) -> List[Dict[str, object]]:
    """Fixture rows for generations ``1..latest`` plus the unified generation."""
    rows: List[Dict[str, object]] = [
        {"id": gen, "name": f"Generation {gen}"} for gen in range(1, latest_generation + 1)
    ]
    rows.append({"id": unified_generation_id(latest_generation), "name": UNIFIED_GENERATION_NAME})
    return rows


def unified_generation_id(latest_generation: int) -> int:
    return latest_generation + 1
