"""Dataset synthesis pipeline.

The pipeline is a fixed sequence of named phases. Each phase declares the
phases it requires; running a phase before its requirements completed raises
``PhaseOrderError`` without touching storage.

    generations -> types -> special_move_categories -> datasets
        -> abilities -> moves -> species -> relations

The whole run happens in one transaction. There is no idempotency check: a
rerun against a populated database fails on the uniqueness constraints, and
the safe procedure is wipe, then init.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from .db import (
    Ability,
    Generation,
    Move,
    Pokemon,
    PokemonType,
    SpecialMoveCategory,
    bulk_insert,
    wipe_pokemon_dataset,
)
from .errors import PhaseOrderError
from .linker import link_special_move_categories, link_species_relations
from .provider import DexProvider
from .records import GenerationDataset
from .reference_data import (
    POKEMON_TYPES,
    SPECIAL_MOVE_CATEGORIES,
    generation_rows,
    unified_generation_id,
)
from .transform import build_generation_dataset
from .transform_unified import build_unified_dataset

logger = logging.getLogger(__name__)

PhaseReport = Dict[str, int]


@dataclass
class PipelineContext:
    session: Session
    dex: DexProvider
    latest_generation: int = 9
    workers: int = 8
    insert_batch_size: int = 5000
    join_batch_size: int = 10000
    strict: bool = False
    datasets: List[GenerationDataset] = field(default_factory=list)
    completed: List[str] = field(default_factory=list)
    report: Dict[str, PhaseReport] = field(default_factory=dict)


@dataclass(frozen=True)
class Phase:
    name: str
    requires: Tuple[str, ...]
    run: Callable[[PipelineContext], PhaseReport]


def _insert_generations(ctx: PipelineContext) -> PhaseReport:
    rows = generation_rows(ctx.latest_generation)
    return {"generation": bulk_insert(ctx.session, Generation, rows, ctx.insert_batch_size)}


def _insert_types(ctx: PipelineContext) -> PhaseReport:
    rows = [{"id": i, "name": name} for i, name in enumerate(POKEMON_TYPES, start=1)]
    return {"pokemon_type": bulk_insert(ctx.session, PokemonType, rows, ctx.insert_batch_size)}


def _insert_special_move_categories(ctx: PipelineContext) -> PhaseReport:
    rows = [{"name": name} for name in SPECIAL_MOVE_CATEGORIES]
    count = bulk_insert(ctx.session, SpecialMoveCategory, rows, ctx.insert_batch_size)
    return {"special_move_category": count}


def _build_datasets(ctx: PipelineContext) -> PhaseReport:
    datasets: List[GenerationDataset] = []
    for gen in range(1, ctx.latest_generation + 1):
        dex = ctx.dex.for_gen(gen)
        datasets.append(
            build_generation_dataset(dex, workers=ctx.workers, strict=ctx.strict)
        )
    unified = build_unified_dataset(datasets, unified_generation_id(ctx.latest_generation))
    datasets.append(unified)
    ctx.datasets = datasets
    return {f"generation_{d.generation_id}": len(d.species) for d in datasets}


def _insert_abilities(ctx: PipelineContext) -> PhaseReport:
    rows = [
        {"name": a.name, "description": a.description, "generation_id": d.generation_id}
        for d in ctx.datasets
        for a in d.abilities
    ]
    return {"ability": bulk_insert(ctx.session, Ability, rows, ctx.insert_batch_size)}


def _insert_moves(ctx: PipelineContext) -> PhaseReport:
    type_ids = {
        name: type_id
        for type_id, name in ctx.session.execute(select(PokemonType.id, PokemonType.name)).all()
    }
    rows = [
        {
            "name": m.name,
            "pokemon_type_id": type_ids[m.type_name],
            "category": m.category.value,
            "power": m.power,
            "accuracy": m.accuracy,
            "priority": m.priority,
            "pp": m.pp,
            "description": m.description,
            "generation_id": d.generation_id,
        }
        for d in ctx.datasets
        for m in d.moves
    ]
    count = bulk_insert(ctx.session, Move, rows, ctx.insert_batch_size)
    linked = link_special_move_categories(ctx.session, batch_size=ctx.join_batch_size)
    return {"move": count, "move_special_move_categories": linked}


def _insert_species(ctx: PipelineContext) -> PhaseReport:
    rows = []
    for d in ctx.datasets:
        for s in d.species:
            stats = s.base_stats
            rows.append(
                {
                    "dex_id": s.dex_number,
                    "name": s.name,
                    "hp": stats.hp,
                    "attack": stats.attack,
                    "defense": stats.defense,
                    "special_attack": stats.special_attack,
                    "special_defense": stats.special_defense,
                    "speed": stats.speed,
                    "base_stat_total": stats.total,
                    "height": s.height,
                    "weight": s.weight,
                    "generation_id": d.generation_id,
                }
            )
    return {"pokemon": bulk_insert(ctx.session, Pokemon, rows, ctx.insert_batch_size)}


def _link_relations(ctx: PipelineContext) -> PhaseReport:
    report = link_species_relations(
        ctx.session,
        ctx.datasets,
        batch_size=ctx.join_batch_size,
        strict=ctx.strict,
    )
    return report.as_dict()


PHASES: Tuple[Phase, ...] = (
    Phase("generations", (), _insert_generations),
    Phase("types", (), _insert_types),
    Phase("special_move_categories", (), _insert_special_move_categories),
    Phase("datasets", ("generations",), _build_datasets),
    Phase("abilities", ("generations", "datasets"), _insert_abilities),
    Phase("moves", ("types", "special_move_categories", "datasets"), _insert_moves),
    Phase("species", ("generations", "datasets"), _insert_species),
    Phase("relations", ("types", "abilities", "moves", "species"), _link_relations),
)


def run_phase(ctx: PipelineContext, phase: Phase) -> PhaseReport:
    missing = [name for name in phase.requires if name not in ctx.completed]
    if missing:
        raise PhaseOrderError(phase.name, missing)

    logger.info("phase %s: start", phase.name)
    result = phase.run(ctx)
    ctx.report[phase.name] = result
    ctx.completed.append(phase.name)
    logger.info("phase %s: done %s", phase.name, result)
    return result


def run_phases(ctx: PipelineContext, phases: Sequence[Phase] = PHASES) -> Dict[str, PhaseReport]:
    for phase in phases:
        run_phase(ctx, phase)
    return ctx.report


def initialize_pokemon_dataset(
    session_factory: sessionmaker,
    dex: DexProvider,
    *,
    latest_generation: int = 9,
    workers: int = 8,
    insert_batch_size: int = 5000,
    join_batch_size: int = 10000,
    strict: bool = False,
    phases: Optional[Sequence[Phase]] = None,
) -> Dict[str, PhaseReport]:
    """Synthesize and persist the whole dataset in a single transaction.

    Any error rolls the transaction back and propagates unchanged.
    """
    session = session_factory()
    try:
        with session.begin():
            ctx = PipelineContext(
                session=session,
                dex=dex,
                latest_generation=latest_generation,
                workers=workers,
                insert_batch_size=insert_batch_size,
                join_batch_size=join_batch_size,
                strict=strict,
            )
            return run_phases(ctx, PHASES if phases is None else phases)
    finally:
        session.close()


def wipe_dataset(session_factory: sessionmaker) -> Dict[str, int]:
    """Delete the whole dataset in one transaction."""
    session = session_factory()
    try:
        with session.begin():
            return wipe_pokemon_dataset(session)
    finally:
        session.close()
