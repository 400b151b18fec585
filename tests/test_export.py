from __future__ import annotations

import pytest
from openpyxl import load_workbook

from draftdex.export import (
    MOVE_HEADERS,
    POKEMON_HEADERS,
    build_workbook,
    default_generation_id,
    export_workbook,
)

from conftest import UNIFIED_GENERATION


def test_default_generation_is_unified(populated, session):
    assert default_generation_id(session) == UNIFIED_GENERATION


def test_default_generation_on_empty_database(session):
    assert default_generation_id(session) is None


def test_unknown_generation_raises(populated, session):
    with pytest.raises(RuntimeError):
        build_workbook(session, 42)


def test_export_workbook(populated, session, tmp_path):
    path = export_workbook(session, str(tmp_path / "out" / "dex.xlsx"), UNIFIED_GENERATION)
    wb = load_workbook(path)
    assert wb.sheetnames == [
        "Pokemon",
        "TypeEffectiveness",
        "Moves",
        "Abilities",
        "TypeChart",
        "Meta",
    ]

    pokemon_rows = list(wb["Pokemon"].iter_rows(values_only=True))
    assert list(pokemon_rows[0]) == POKEMON_HEADERS
    assert len(pokemon_rows) == 12
    snorlax = next(r for r in pokemon_rows if r[1] == "Snorlax")
    assert snorlax[2] == "Normal"
    assert snorlax[3] is None
    assert snorlax[12] == 270

    moves = list(wb["Moves"].iter_rows(values_only=True))
    assert list(moves[0]) == MOVE_HEADERS
    swords_dance = next(r for r in moves if r[0] == "Swords Dance")
    assert swords_dance[2] == "status"
    assert swords_dance[7] == "Setup"

    effectiveness = list(wb["TypeEffectiveness"].iter_rows(values_only=True))
    assert len(effectiveness[0]) == 19
    assert len(effectiveness) == 12

    chart = list(wb["TypeChart"].iter_rows(values_only=True))
    assert len(chart) == 19
    fire = next(r for r in chart if r[0] == "Fire")
    assert fire[5] == 2.0

    meta = dict(list(wb["Meta"].iter_rows(values_only=True))[1:])
    assert meta["generation"] == "Unified"
    assert meta["pokemon"] == 11
