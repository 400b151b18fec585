"""Export layer for the synthesized dataset.

Writes an ``.xlsx`` workbook for one generation (the unified generation by
default) with the sheets:

- Pokemon
- TypeEffectiveness (species x attacking types)
- Moves
- Abilities
- TypeChart
- Meta

Export reads the persisted dataset only and never modifies it.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from openpyxl import Workbook
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from .cache.io import ensure_dir
from .db import Ability, Generation, Move, Pokemon, PokemonType
from .effectiveness import TYPE_CHART
from .reference_data import POKEMON_TYPES

POKEMON_HEADERS: List[str] = [
    "DEX_ID",
    "NAME",
    "TYPE1",
    "TYPE2",
    "HP",
    "ATK",
    "DEF",
    "SPA",
    "SPD",
    "SPE",
    "TOTAL",
    "PHYSICAL_BULK",
    "SPECIAL_BULK",
    "ABILITIES",
    "HEIGHT_M",
    "WEIGHT_KG",
    "MOVES",
]

MOVE_HEADERS: List[str] = [
    "NAME",
    "TYPE",
    "CATEGORY",
    "POWER",
    "ACCURACY",
    "PRIORITY",
    "PP",
    "SPECIAL_CATEGORIES",
    "DESCRIPTION",
]


def _write_row(ws: Any, values: List[Any]) -> None:
    ws.append(values)


def build_workbook(session: Session, generation_id: int) -> Workbook:
    """Build the workbook for ``generation_id`` from the persisted dataset."""
    generation = session.get(Generation, generation_id)
    if generation is None:
        raise RuntimeError(f"Unknown generation id: {generation_id}")

    pokemon = (
        session.execute(
            select(Pokemon)
            .where(Pokemon.generation_id == generation_id)
            .options(
                selectinload(Pokemon.types),
                selectinload(Pokemon.abilities),
                selectinload(Pokemon.moves),
                selectinload(Pokemon.type_effectiveness),
            )
            .order_by(Pokemon.dex_id, Pokemon.name)
        )
        .scalars()
        .all()
    )
    moves = (
        session.execute(
            select(Move)
            .where(Move.generation_id == generation_id)
            .options(selectinload(Move.pokemon_type), selectinload(Move.special_move_categories))
            .order_by(Move.name)
        )
        .scalars()
        .all()
    )
    abilities = (
        session.execute(
            select(Ability).where(Ability.generation_id == generation_id).order_by(Ability.name)
        )
        .scalars()
        .all()
    )
    type_names: Dict[int, str] = {
        t.id: t.name for t in session.execute(select(PokemonType)).scalars().all()
    }

    wb = Workbook()
    # Remove default sheet so we control sheet order.
    default_ws = wb.active
    if default_ws is not None:
        wb.remove(default_ws)

    # Sheet: Pokemon
    ws_pokemon = wb.create_sheet("Pokemon")
    _write_row(ws_pokemon, POKEMON_HEADERS)
    for p in pokemon:
        types = [t.name for t in p.types]
        _write_row(
            ws_pokemon,
            [
                p.dex_id,
                p.name,
                types[0] if types else None,
                types[1] if len(types) > 1 else None,
                p.hp,
                p.attack,
                p.defense,
                p.special_attack,
                p.special_defense,
                p.speed,
                p.base_stat_total,
                p.physical_bulk,
                p.special_bulk,
                ", ".join(a.name for a in p.abilities),
                p.height,
                p.weight,
                ", ".join(sorted(m.name for m in p.moves)),
            ],
        )

    # Sheet: TypeEffectiveness
    ws_eff = wb.create_sheet("TypeEffectiveness")
    type_ids = sorted(type_names)
    _write_row(ws_eff, ["NAME"] + [type_names[i] for i in type_ids])
    for p in pokemon:
        values = {row.pokemon_type_id: row.value for row in p.type_effectiveness}
        _write_row(ws_eff, [p.name] + [values.get(i) for i in type_ids])

    # Sheet: Moves
    ws_moves = wb.create_sheet("Moves")
    _write_row(ws_moves, MOVE_HEADERS)
    for m in moves:
        _write_row(
            ws_moves,
            [
                m.name,
                m.pokemon_type.name if m.pokemon_type is not None else None,
                m.category,
                m.power,
                m.accuracy,
                m.priority,
                m.pp,
                ", ".join(sorted(c.name for c in m.special_move_categories)),
                m.description,
            ],
        )

    # Sheet: Abilities
    ws_abilities = wb.create_sheet("Abilities")
    _write_row(ws_abilities, ["NAME", "DESCRIPTION"])
    for a in abilities:
        _write_row(ws_abilities, [a.name, a.description])

    # Sheet: TypeChart
    ws_tc = wb.create_sheet("TypeChart")
    _write_row(ws_tc, ["ATTACKING_TYPE"] + list(POKEMON_TYPES))
    for atk in POKEMON_TYPES:
        row = TYPE_CHART[atk.lower()]
        _write_row(ws_tc, [atk] + [row[dfn.lower()] for dfn in POKEMON_TYPES])

    # Sheet: Meta
    ws_meta = wb.create_sheet("Meta")
    _write_row(ws_meta, ["KEY", "VALUE"])
    meta_rows: List[List[Any]] = [
        ["generated_at", datetime.now(timezone.utc).isoformat()],
        ["generation_id", generation.id],
        ["generation", generation.name],
        ["pokemon", len(pokemon)],
        ["moves", len(moves)],
        ["abilities", len(abilities)],
        ["source", "PokéAPI"],
    ]
    for r in meta_rows:
        _write_row(ws_meta, r)

    return wb


def export_workbook(session: Session, path: str, generation_id: int) -> str:
    ensure_dir(os.path.dirname(path))
    wb = build_workbook(session, generation_id)
    wb.save(path)
    return path


def default_generation_id(session: Session) -> Optional[int]:
    """Highest generation id present, i.e. the unified generation."""
    return session.execute(
        select(Generation.id).order_by(Generation.id.desc()).limit(1)
    ).scalar_one_or_none()
