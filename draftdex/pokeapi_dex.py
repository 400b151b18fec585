"""PokéAPI-backed dex provider.

Builds per-generation dex views from the local raw cache only (no network
access). The raw cache holds unmodified PokéAPI payloads for the
``pokemon``, ``pokemon-species``, ``move``, ``ability`` and ``version-group``
endpoints.

Per-generation rules:
- Learnset source tags are ``<generation><method>[level]`` with methods
  L (level-up), M (machine), T (tutor), E (egg) and S (anything else).
- Types honour ``past_types`` and abilities honour ``past_abilities``.
  Abilities do not exist before generation 3; hidden abilities not before 5.
- A species is standard in a generation when it has learnset data in it.
  Alternate forms without learnset data of their own follow their base form
  inside the form's window (Mega/Primal 6-7, Gigantamax 8).
- Move values honour ``past_values``; before generation 4 the damage
  category of a move follows its type.

All functions are null-safe.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from .cache.io import iter_cached_payloads
from .naming import alternate_form_marker, form_display_name, slug_titlecase, to_id
from .provider import DexAbility, DexMove, DexSpecies, StaticGenerationDex
from .transform_learnset import tag_generation

logger = logging.getLogger(__name__)

ROMAN_VALUES = {"i": 1, "v": 5, "x": 10}

METHOD_CODES = {
    "level-up": "L",
    "machine": "M",
    "tutor": "T",
    "egg": "E",
}

# Before the physical/special split, damage category followed the move type.
PHYSICAL_SPECIAL_SPLIT_GENERATION = 4
SPECIAL_TYPES = frozenset(
    {"fire", "water", "grass", "electric", "ice", "psychic", "dragon", "dark"}
)

ABILITIES_INTRODUCED = 3
HIDDEN_ABILITIES_INTRODUCED = 5

FORM_WINDOWS: Dict[str, Tuple[int, int]] = {
    "-Mega": (6, 7),
    "-Primal": (6, 7),
    "-Gmax": (8, 8),
}

NONSTANDARD_PAST = "Past"
NONSTANDARD_UNOBTAINABLE = "Unobtainable"


def generation_number(name: Optional[str]) -> Optional[int]:
    """``"generation-iv"`` -> 4. Returns None for anything else."""
    if not isinstance(name, str) or not name.startswith("generation-"):
        return None
    total = 0
    prev = 0
    for ch in reversed(name[len("generation-"):].lower()):
        value = ROMAN_VALUES.get(ch)
        if value is None:
            return None
        if value < prev:
            total -= value
        else:
            total += value
            prev = value
    return total or None


def _name_of(ref: Any) -> Optional[str]:
    if not isinstance(ref, dict):
        return None
    name = ref.get("name")
    return name if isinstance(name, str) else None


def _normalize_text(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    # PokéAPI flavor text uses newlines and form feed characters.
    return re.sub(r"\s+", " ", value.replace("\f", " ").replace("\n", " ")).strip()


def _pick_name(data: Dict[str, Any], language: str) -> str:
    names = data.get("names")
    if isinstance(names, list):
        for entry in names:
            if not isinstance(entry, dict):
                continue
            if _name_of(entry.get("language")) != language:
                continue
            name = entry.get("name")
            if isinstance(name, str) and name.strip():
                return name.strip()
    return slug_titlecase(str(data.get("name") or ""))


def _pick_effect_short(entries: Any, language: str) -> Optional[str]:
    if not isinstance(entries, list):
        return None
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        if _name_of(entry.get("language")) != language:
            continue
        short = entry.get("short_effect")
        if isinstance(short, str) and short.strip():
            return _normalize_text(short)
        effect = entry.get("effect")
        if isinstance(effect, str) and effect.strip():
            return _normalize_text(effect)
    return None


def _pick_flavor_text(entries: Any, language: str) -> Optional[str]:
    if not isinstance(entries, list):
        return None
    text: Optional[str] = None
    # Latest entry wins.
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        if _name_of(entry.get("language")) != language:
            continue
        candidate = _normalize_text(entry.get("flavor_text") or entry.get("text"))
        if candidate:
            text = candidate
    return text


def _describe(data: Dict[str, Any], language: str, effect_chance: Any = None) -> str:
    text = _pick_effect_short(data.get("effect_entries"), language)
    if text and effect_chance is not None:
        text = text.replace("$effect_chance", str(effect_chance))
    return text or _pick_flavor_text(data.get("flavor_text_entries"), language) or ""


def _extract_stats(pokemon_data: Dict[str, Any]) -> Dict[str, int]:
    stats = pokemon_data.get("stats")
    if not isinstance(stats, list):
        stats = []

    by_name: Dict[str, int] = {}
    for s in stats:
        if not isinstance(s, dict):
            continue
        base = s.get("base_stat")
        name = _name_of(s.get("stat"))
        if isinstance(base, int) and isinstance(name, str):
            by_name[name] = base

    return {
        "hp": by_name.get("hp", 0),
        "atk": by_name.get("attack", 0),
        "def": by_name.get("defense", 0),
        "spa": by_name.get("special-attack", 0),
        "spd": by_name.get("special-defense", 0),
        "spe": by_name.get("speed", 0),
    }


def _slot_types(types: Any) -> List[str]:
    if not isinstance(types, list):
        return []
    parsed: List[Tuple[int, str]] = []
    for t in types:
        if not isinstance(t, dict):
            continue
        slot = t.get("slot")
        type_name = _name_of(t.get("type"))
        if isinstance(slot, int) and type_name:
            parsed.append((slot, type_name))
    parsed.sort(key=lambda x: x[0])
    return [name for _, name in parsed]


def _past_entries(entries: Any, key: str) -> List[Tuple[int, Any]]:
    """``(last generation, value)`` pairs of a ``past_*`` list, oldest first."""
    out: List[Tuple[int, Any]] = []
    if not isinstance(entries, list):
        return out
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        until = generation_number(_name_of(entry.get("generation")))
        if until is not None:
            out.append((until, entry.get(key)))
    out.sort(key=lambda x: x[0])
    return out


def types_for_generation(pokemon_data: Dict[str, Any], generation: int) -> List[str]:
    """Type slugs in slot order, as of ``generation``."""
    for until, types in _past_entries(pokemon_data.get("past_types"), "types"):
        if generation <= until:
            parsed = _slot_types(types)
            if parsed:
                return parsed
    return _slot_types(pokemon_data.get("types"))


def abilities_for_generation(pokemon_data: Dict[str, Any], generation: int) -> Dict[str, str]:
    """Slot (``"0"``, ``"1"``, ``"H"``) -> ability slug, as of ``generation``."""
    if generation < ABILITIES_INTRODUCED:
        return {}

    slots: Dict[int, Tuple[str, bool]] = {}
    for a in pokemon_data.get("abilities") or []:
        if not isinstance(a, dict):
            continue
        slot = a.get("slot")
        name = _name_of(a.get("ability"))
        if isinstance(slot, int) and name:
            slots[slot] = (name, bool(a.get("is_hidden")))

    for until, entries in _past_entries(pokemon_data.get("past_abilities"), "abilities"):
        if generation > until:
            continue
        for entry in entries or []:
            if not isinstance(entry, dict) or not isinstance(entry.get("slot"), int):
                continue
            name = _name_of(entry.get("ability"))
            if name is None:
                slots.pop(entry["slot"], None)
            else:
                slots[entry["slot"]] = (name, bool(entry.get("is_hidden")))
        break

    out: Dict[str, str] = {}
    regular = 0
    for slot in sorted(slots):
        name, hidden = slots[slot]
        if hidden:
            if generation >= HIDDEN_ABILITIES_INTRODUCED:
                out["H"] = name
            continue
        out[str(regular)] = name
        regular += 1
    return out


def move_values_for_generation(
    move_data: Dict[str, Any],
    generation: int,
    version_group_generations: Dict[str, int],
) -> Dict[str, Any]:
    """Power, accuracy, pp, type and effect chance as of ``generation``.

    A ``past_values`` entry holds the values in effect before its version
    group; per field, the earliest change after ``generation`` wins.
    """
    values: Dict[str, Any] = {
        "power": move_data.get("power"),
        "accuracy": move_data.get("accuracy"),
        "pp": move_data.get("pp"),
        "effect_chance": move_data.get("effect_chance"),
        "type": _name_of(move_data.get("type")),
    }

    changes: List[Tuple[int, Dict[str, Any]]] = []
    for entry in move_data.get("past_values") or []:
        if not isinstance(entry, dict):
            continue
        changed_in = version_group_generations.get(_name_of(entry.get("version_group")) or "")
        if changed_in is not None and changed_in > generation:
            changes.append((changed_in, entry))
    changes.sort(key=lambda c: c[0])

    resolved: Set[str] = set()
    for _, entry in changes:
        for key in ("power", "accuracy", "pp", "effect_chance"):
            if key not in resolved and entry.get(key) is not None:
                values[key] = entry[key]
                resolved.add(key)
        past_type = _name_of(entry.get("type"))
        if "type" not in resolved and past_type:
            values["type"] = past_type
            resolved.add("type")
    return values


def move_category_for_generation(damage_class: str, type_slug: str, generation: int) -> str:
    if damage_class == "status" or generation >= PHYSICAL_SPECIAL_SPLIT_GENERATION:
        return damage_class
    return "special" if type_slug in SPECIAL_TYPES else "physical"


def in_form_window(name: str, introduced: int, generation: int) -> bool:
    marker = alternate_form_marker(name)
    window = FORM_WINDOWS.get(marker) if marker else None
    if window is None:
        return generation >= introduced
    return window[0] <= generation <= window[1]


@dataclass
class CachedPokemon:
    id: str
    name: str
    slug: str
    num: int
    introduced: int
    is_default: bool
    data: Dict[str, Any]
    prevo: Optional[str] = None
    changes_from: Optional[str] = None
    # Move id -> every source tag across generations.
    tags: Dict[str, List[str]] = field(default_factory=dict)


class PokeApiDex:
    """``DexProvider`` over the local PokéAPI raw cache."""

    def __init__(self, raw_dir: str = "data/raw", language: str = "en"):
        self.raw_dir = raw_dir
        self.language = language
        self._loaded = False
        self._dexes: Dict[int, StaticGenerationDex] = {}

        self.version_group_generations: Dict[str, int] = {}
        self._abilities: Dict[str, Dict[str, Any]] = {}
        self._ability_names: Dict[str, str] = {}
        self._moves: Dict[str, Dict[str, Any]] = {}
        self._move_ids: Dict[str, str] = {}
        self._species: Dict[str, Dict[str, Any]] = {}
        self._species_names: Dict[str, str] = {}
        self._pokemon: List[CachedPokemon] = []
        self._learnable_by_gen: Dict[int, Set[str]] = {}

    def for_gen(self, generation: int) -> StaticGenerationDex:
        if generation not in self._dexes:
            self.load()
            self._dexes[generation] = self._build_generation(generation)
        return self._dexes[generation]

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> None:
        if self._loaded:
            return

        for _, data in iter_cached_payloads(self.raw_dir, "version-group"):
            name = data.get("name")
            gen = generation_number(_name_of(data.get("generation")))
            if isinstance(name, str) and gen is not None:
                self.version_group_generations[name] = gen

        for _, data in iter_cached_payloads(self.raw_dir, "ability"):
            slug = data.get("name")
            if isinstance(slug, str):
                self._abilities[slug] = data
                self._ability_names[slug] = _pick_name(data, self.language)

        for _, data in iter_cached_payloads(self.raw_dir, "move"):
            slug = data.get("name")
            if isinstance(slug, str):
                self._moves[slug] = data
                self._move_ids[slug] = to_id(_pick_name(data, self.language))

        for _, data in iter_cached_payloads(self.raw_dir, "pokemon-species"):
            slug = data.get("name")
            if isinstance(slug, str):
                self._species[slug] = data
                self._species_names[slug] = _pick_name(data, self.language)

        skipped = 0
        for _, data in iter_cached_payloads(self.raw_dir, "pokemon"):
            cached = self._cache_pokemon(data)
            if cached is None:
                skipped += 1
                continue
            self._pokemon.append(cached)
            for move_id, tags in cached.tags.items():
                for gen in {tag_generation(t) for t in tags}:
                    if gen is not None:
                        self._learnable_by_gen.setdefault(gen, set()).add(move_id)

        if skipped:
            logger.warning("raw cache: skipped %d pokemon without cached species", skipped)
        logger.info(
            "raw cache loaded: pokemon=%d species=%d moves=%d abilities=%d version_groups=%d",
            len(self._pokemon),
            len(self._species),
            len(self._moves),
            len(self._abilities),
            len(self.version_group_generations),
        )
        self._loaded = True

    def _species_display(self, slug: str) -> str:
        return self._species_names.get(slug) or slug_titlecase(slug)

    def _learnset_tags(self, pokemon_data: Dict[str, Any]) -> Dict[str, List[str]]:
        tags: Dict[str, List[str]] = {}
        for entry in pokemon_data.get("moves") or []:
            if not isinstance(entry, dict):
                continue
            move_slug = _name_of(entry.get("move"))
            if not move_slug:
                continue
            move_id = self._move_ids.get(move_slug) or to_id(move_slug)
            for detail in entry.get("version_group_details") or []:
                if not isinstance(detail, dict):
                    continue
                gen = self.version_group_generations.get(
                    _name_of(detail.get("version_group")) or ""
                )
                if gen is None:
                    continue
                method = METHOD_CODES.get(_name_of(detail.get("move_learn_method")) or "", "S")
                level = detail.get("level_learned_at")
                suffix = str(level) if method == "L" and isinstance(level, int) else ""
                tag = f"{gen}{method}{suffix}"
                bucket = tags.setdefault(move_id, [])
                if tag not in bucket:
                    bucket.append(tag)
        return tags

    def _prevo_id(self, species_data: Dict[str, Any], form_suffix: str) -> Optional[str]:
        prevo_slug = _name_of(species_data.get("evolves_from_species"))
        if not prevo_slug:
            return None
        prevo_name = self._species_display(prevo_slug)
        # Regional forms evolve from the matching form of the pre-evolution.
        if form_suffix:
            prevo_species = self._species.get(prevo_slug) or {}
            for variety in prevo_species.get("varieties") or []:
                variety_slug = _name_of((variety or {}).get("pokemon"))
                if variety_slug == prevo_slug + form_suffix:
                    return to_id(form_display_name(prevo_name, prevo_slug, variety_slug))
        return to_id(prevo_name)

    def _cache_pokemon(self, data: Dict[str, Any]) -> Optional[CachedPokemon]:
        slug = data.get("name")
        species_slug = _name_of(data.get("species"))
        if not isinstance(slug, str) or not species_slug:
            return None
        species = self._species.get(species_slug)
        if species is None:
            logger.debug("no cached species %s for pokemon %s", species_slug, slug)
            return None

        num = species.get("id")
        introduced = generation_number(_name_of(species.get("generation")))
        if not isinstance(num, int) or introduced is None:
            return None

        species_name = self._species_display(species_slug)
        name = form_display_name(species_name, species_slug, slug)
        is_default = bool(data.get("is_default"))
        form_suffix = (
            slug[len(species_slug):]
            if not is_default and slug.startswith(species_slug + "-")
            else ""
        )
        tags = self._learnset_tags(data)

        return CachedPokemon(
            id=to_id(name),
            name=name,
            slug=slug,
            num=num,
            introduced=introduced,
            is_default=is_default,
            data=data,
            prevo=self._prevo_id(species, form_suffix),
            # Forms without a learnset of their own learn through their base form.
            changes_from=None if is_default or tags else to_id(species_name),
            tags=tags,
        )

    # ------------------------------------------------------------------
    # Per-generation views
    # ------------------------------------------------------------------

    def _build_generation(self, generation: int) -> StaticGenerationDex:
        candidates = [p for p in self._pokemon if p.introduced <= generation]

        learnsets: Dict[str, Dict[str, List[str]]] = {}
        own_standard: Dict[str, bool] = {}
        for p in candidates:
            gen_tags: Dict[str, List[str]] = {}
            for move_id, tags in p.tags.items():
                kept = [t for t in tags if (tag_generation(t) or 0) <= generation]
                if kept:
                    gen_tags[move_id] = kept
            if gen_tags:
                learnsets[p.id] = gen_tags
            own_standard[p.id] = any(
                tag_generation(t) == generation for tags in gen_tags.values() for t in tags
            )

        species: List[DexSpecies] = []
        for p in candidates:
            standard = own_standard[p.id]
            if not standard and p.changes_from:
                standard = own_standard.get(p.changes_from, False) and in_form_window(
                    p.name, p.introduced, generation
                )
            species.append(self._species_record(p, generation, standard))

        dex = StaticGenerationDex(
            generation,
            species=species,
            moves=self._move_records(generation),
            abilities=self._ability_records(generation),
            learnsets=learnsets,
        )
        logger.info(
            "generation %d dex: species=%d moves=%d abilities=%d",
            generation,
            len(dex.species),
            len(dex.moves),
            len(dex.abilities),
        )
        return dex

    def _ability_introduced(self, slug: str) -> int:
        data = self._abilities.get(slug) or {}
        return generation_number(_name_of(data.get("generation"))) or 0

    def _species_record(self, p: CachedPokemon, generation: int, standard: bool) -> DexSpecies:
        abilities = {
            slot: self._ability_names.get(slug) or slug_titlecase(slug)
            for slot, slug in abilities_for_generation(p.data, generation).items()
            if self._ability_introduced(slug) <= generation
        }
        height_dm = p.data.get("height")
        weight_hg = p.data.get("weight")
        return DexSpecies(
            id=p.id,
            name=p.name,
            num=p.num,
            base_stats=_extract_stats(p.data),
            types=tuple(slug_titlecase(t) for t in types_for_generation(p.data, generation)),
            abilities=abilities,
            height_m=(height_dm / 10) if isinstance(height_dm, (int, float)) else 0.0,
            weight_kg=(weight_hg / 10) if isinstance(weight_hg, (int, float)) else 0.0,
            prevo=p.prevo,
            changes_from=p.changes_from,
            is_nonstandard=None if standard else NONSTANDARD_PAST,
        )

    def _move_records(self, generation: int) -> List[DexMove]:
        learnable = self._learnable_by_gen.get(generation, set())
        moves: List[DexMove] = []
        for slug, data in self._moves.items():
            introduced = generation_number(_name_of(data.get("generation")))
            if introduced is None or introduced > generation:
                continue
            damage_class = _name_of(data.get("damage_class"))
            if not damage_class:
                continue

            values = move_values_for_generation(data, generation, self.version_group_generations)
            type_slug = values["type"] or ""
            move_id = self._move_ids[slug]
            priority = data.get("priority")
            moves.append(
                DexMove(
                    id=move_id,
                    name=_pick_name(data, self.language),
                    type=slug_titlecase(type_slug),
                    category=move_category_for_generation(
                        damage_class, type_slug, generation
                    ).title(),
                    base_power=values["power"] or 0,
                    # Null accuracy means the move never misses.
                    accuracy=values["accuracy"] or 0,
                    priority=priority if isinstance(priority, int) else 0,
                    pp=values["pp"] or 0,
                    description=_describe(data, self.language, values["effect_chance"]),
                    is_nonstandard=None if move_id in learnable else NONSTANDARD_PAST,
                )
            )
        return moves

    def _ability_records(self, generation: int) -> List[DexAbility]:
        if generation < ABILITIES_INTRODUCED:
            return []
        abilities: List[DexAbility] = []
        for slug, data in self._abilities.items():
            introduced = self._ability_introduced(slug)
            if introduced == 0 or introduced > generation:
                continue
            main_series = data.get("is_main_series", True)
            abilities.append(
                DexAbility(
                    id=to_id(self._ability_names[slug]),
                    name=self._ability_names[slug],
                    description=_describe(data, self.language),
                    is_nonstandard=None if main_series else NONSTANDARD_UNOBTAINABLE,
                )
            )
        return abilities
