"""Relational storage for the synthesized dataset.

All tables are created from the declarative models below. On SQLite,
foreign keys are enforced for every connection.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from sqlalchemy import (
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    delete,
    event,
    func,
    insert,
    select,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, column_property, declarative_base, relationship, sessionmaker

from .cache.io import ensure_dir

logger = logging.getLogger(__name__)

Base = declarative_base()


pokemon_pokemon_types = Table(
    "pokemon_pokemon_types",
    Base.metadata,
    Column("pokemon_id", Integer, ForeignKey("pokemon.id"), primary_key=True),
    Column("pokemon_type_id", Integer, ForeignKey("pokemon_type.id"), primary_key=True),
)

pokemon_abilities = Table(
    "pokemon_abilities",
    Base.metadata,
    Column("pokemon_id", Integer, ForeignKey("pokemon.id"), primary_key=True),
    Column("ability_id", Integer, ForeignKey("ability.id"), primary_key=True),
)

pokemon_moves = Table(
    "pokemon_moves",
    Base.metadata,
    Column("pokemon_id", Integer, ForeignKey("pokemon.id"), primary_key=True),
    Column("move_id", Integer, ForeignKey("move.id"), primary_key=True),
)

move_special_move_categories = Table(
    "move_special_move_categories",
    Base.metadata,
    Column("move_id", Integer, ForeignKey("move.id"), primary_key=True),
    Column(
        "special_move_category_id",
        Integer,
        ForeignKey("special_move_category.id"),
        primary_key=True,
    ),
)


class Generation(Base):
    __tablename__ = "generation"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String, nullable=False, unique=True)


class PokemonType(Base):
    __tablename__ = "pokemon_type"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String, nullable=False, unique=True)


class SpecialMoveCategory(Base):
    __tablename__ = "special_move_category"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False, unique=True)


class Ability(Base):
    __tablename__ = "ability"
    __table_args__ = (UniqueConstraint("name", "generation_id"),)

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text)
    generation_id = Column(Integer, ForeignKey("generation.id"), nullable=False)


class Move(Base):
    __tablename__ = "move"
    __table_args__ = (UniqueConstraint("name", "generation_id"),)

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    pokemon_type_id = Column(Integer, ForeignKey("pokemon_type.id"), nullable=False)
    category = Column(String, nullable=False)  # physical, special, status
    power = Column(Integer, nullable=False, default=0)
    accuracy = Column(Integer, nullable=False, default=0)
    priority = Column(Integer, nullable=False, default=0)
    pp = Column(Integer, nullable=False, default=0)
    description = Column(Text)
    generation_id = Column(Integer, ForeignKey("generation.id"), nullable=False)

    pokemon_type = relationship("PokemonType")
    special_move_categories = relationship(
        "SpecialMoveCategory", secondary=move_special_move_categories
    )


class Pokemon(Base):
    __tablename__ = "pokemon"
    __table_args__ = (UniqueConstraint("name", "generation_id"),)

    id = Column(Integer, primary_key=True)
    dex_id = Column(Integer, nullable=False)
    name = Column(String, nullable=False)

    # Base Stats
    hp = Column(Integer, nullable=False)
    attack = Column(Integer, nullable=False)
    defense = Column(Integer, nullable=False)
    special_attack = Column(Integer, nullable=False)
    special_defense = Column(Integer, nullable=False)
    speed = Column(Integer, nullable=False)
    base_stat_total = Column(Integer, nullable=False)

    height = Column(Float)  # metres
    weight = Column(Float)  # kilograms
    generation_id = Column(Integer, ForeignKey("generation.id"), nullable=False)

    physical_bulk = column_property(hp + defense)
    special_bulk = column_property(hp + special_defense)

    types = relationship(
        "PokemonType", secondary=pokemon_pokemon_types, order_by="PokemonType.id"
    )
    abilities = relationship("Ability", secondary=pokemon_abilities, order_by="Ability.id")
    moves = relationship("Move", secondary=pokemon_moves, order_by="Move.id")
    type_effectiveness = relationship("TypeEffective", order_by="TypeEffective.pokemon_type_id")


class TypeEffective(Base):
    __tablename__ = "type_effective"

    pokemon_id = Column(Integer, ForeignKey("pokemon.id"), primary_key=True)
    pokemon_type_id = Column(Integer, ForeignKey("pokemon_type.id"), primary_key=True)
    value = Column(Float, nullable=False)

    pokemon_type = relationship("PokemonType")


# Children first.
WIPE_ORDER: List[Any] = [
    TypeEffective.__table__,
    pokemon_moves,
    pokemon_abilities,
    pokemon_pokemon_types,
    move_special_move_categories,
    Pokemon.__table__,
    Move.__table__,
    Ability.__table__,
    SpecialMoveCategory.__table__,
    PokemonType.__table__,
    Generation.__table__,
]


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


def make_engine(database_url: str, **kwargs: Any) -> Engine:
    """Create an engine; SQLite databases get their directory and FK enforcement."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        database = url.database
        if database and database != ":memory:":
            ensure_dir(os.path.dirname(database))
    engine = create_engine(url, **kwargs)
    if url.get_backend_name() == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(engine)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine)


def bulk_insert(
    session: Session,
    target: Any,
    rows: Sequence[Mapping[str, Any]],
    batch_size: int,
) -> int:
    """Insert ``rows`` into a model or table in chunks of ``batch_size``."""
    table = getattr(target, "__table__", target)
    if not rows:
        return 0
    size = max(1, int(batch_size))
    for start in range(0, len(rows), size):
        session.execute(insert(table), list(rows[start:start + size]))
    return len(rows)


def wipe_pokemon_dataset(session: Session) -> Dict[str, int]:
    """Delete every dataset row, children first. Returns deleted row counts per table."""
    counts: Dict[str, int] = {}
    for table in WIPE_ORDER:
        result = session.execute(delete(table))
        counts[table.name] = result.rowcount or 0
    logger.info("wiped pokemon dataset: %s", counts)
    return counts


def table_counts(session: Session, tables: Iterable[Any] = WIPE_ORDER) -> Dict[str, int]:
    out: Dict[str, int] = {}
    for table in tables:
        out[table.name] = session.execute(select(func.count()).select_from(table)).scalar_one()
    return out
