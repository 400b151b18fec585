from __future__ import annotations

import pytest

from draftdex.cache.io import atomic_write_json, cache_path, wrap_raw
from draftdex.pokeapi_dex import (
    PokeApiDex,
    abilities_for_generation,
    generation_number,
    move_category_for_generation,
    types_for_generation,
)
from draftdex.transform import build_generation_dataset

VERSION_GROUPS = {
    "red-blue": "generation-i",
    "gold-silver": "generation-ii",
    "ruby-sapphire": "generation-iii",
    "diamond-pearl": "generation-iv",
    "black-white": "generation-v",
    "x-y": "generation-vi",
    "sun-moon": "generation-vii",
    "sword-shield": "generation-viii",
}


def ref(name):
    return {"name": name, "url": f"https://pokeapi.co/api/v2/x/{name}/"}


def en_name(name):
    return [{"name": name, "language": ref("en")}, {"name": name.upper(), "language": ref("de")}]


def learned(move, *details):
    return {
        "move": ref(move),
        "version_group_details": [
            {
                "version_group": ref(vg),
                "move_learn_method": ref(method),
                "level_learned_at": level,
            }
            for vg, method, level in details
        ],
    }


def stats(hp, atk, deff, spa, spd, spe):
    names = ["hp", "attack", "defense", "special-attack", "special-defense", "speed"]
    return [{"base_stat": v, "stat": ref(n)} for n, v in zip(names, [hp, atk, deff, spa, spd, spe])]


def species(slug, num, name, generation, varieties, evolves_from=None):
    return {
        "id": num,
        "name": slug,
        "names": en_name(name),
        "generation": ref(generation),
        "evolves_from_species": ref(evolves_from) if evolves_from else None,
        "varieties": [{"is_default": v == slug, "pokemon": ref(v)} for v in varieties],
    }


def pokemon(slug, species_slug, types, moves, is_default=True, abilities=(), **extra):
    data = {
        "name": slug,
        "species": ref(species_slug),
        "is_default": is_default,
        "types": [{"slot": i, "type": ref(t)} for i, t in enumerate(types, start=1)],
        "abilities": [
            {"slot": slot, "ability": ref(a), "is_hidden": hidden} for a, slot, hidden in abilities
        ],
        "stats": stats(45, 49, 49, 65, 65, 45),
        "height": 7,
        "weight": 69,
        "moves": moves,
    }
    data.update(extra)
    return data


def move(slug, name, type_, damage_class, power, accuracy, pp, generation="generation-i", **extra):
    data = {
        "name": slug,
        "names": en_name(name),
        "generation": ref(generation),
        "type": ref(type_),
        "damage_class": ref(damage_class),
        "power": power,
        "accuracy": accuracy,
        "pp": pp,
        "priority": 0,
        "effect_chance": None,
        "effect_entries": [],
        "past_values": [],
    }
    data.update(extra)
    return data


def ability(slug, name, generation, is_main_series=True):
    return {
        "name": slug,
        "names": en_name(name),
        "generation": ref(generation),
        "is_main_series": is_main_series,
        "effect_entries": [
            {"short_effect": f"{name} effect.", "effect": "long", "language": ref("en")}
        ],
    }


def write(raw_dir, endpoint, key, payload):
    atomic_write_json(cache_path(raw_dir, endpoint, key), wrap_raw(f"https://pokeapi.co/{key}", payload))


@pytest.fixture
def raw_dir(tmp_path):
    raw = str(tmp_path / "raw")
    for vg, gen in VERSION_GROUPS.items():
        write(raw, "version-group", vg, {"name": vg, "generation": ref(gen)})

    write(raw, "ability", "overgrow", ability("overgrow", "Overgrow", "generation-iii"))
    write(raw, "ability", "chlorophyll", ability("chlorophyll", "Chlorophyll", "generation-iii"))
    write(raw, "ability", "mountaineer", ability("mountaineer", "Mountaineer", "generation-v", False))

    write(raw, "move", "tackle", move(
        "tackle", "Tackle", "normal", "physical", 40, 100, 35,
        effect_entries=[{"short_effect": "Inflicts\nregular damage.", "language": ref("en")}],
        past_values=[
            {"power": 35, "accuracy": 95, "pp": None, "effect_chance": None,
             "type": None, "version_group": ref("black-white")},
            {"power": 50, "accuracy": 100, "pp": None, "effect_chance": None,
             "type": None, "version_group": ref("sun-moon")},
        ],
    ))
    write(raw, "move", "ember", move(
        "ember", "Ember", "fire", "special", 40, 100, 25,
        effect_chance=10,
        effect_entries=[
            {"short_effect": "Has a $effect_chance% chance to burn the target.", "language": ref("en")}
        ],
    ))
    write(raw, "move", "bite", move(
        "bite", "Bite", "dark", "physical", 60, 100, 25,
        past_values=[
            {"power": None, "accuracy": None, "pp": None, "effect_chance": None,
             "type": ref("normal"), "version_group": ref("gold-silver")},
        ],
    ))
    write(raw, "move", "vine-whip", move("vine-whip", "Vine Whip", "grass", "physical", 45, 100, 25))
    write(raw, "move", "razor-wind", move("razor-wind", "Razor Wind", "normal", "special", 80, 100, 10))
    write(raw, "move", "swift", move("swift", "Swift", "normal", "special", 60, None, 20))

    write(raw, "pokemon-species", "bulbasaur",
          species("bulbasaur", 1, "Bulbasaur", "generation-i", ["bulbasaur"]))
    write(raw, "pokemon-species", "ivysaur",
          species("ivysaur", 2, "Ivysaur", "generation-i", ["ivysaur"], evolves_from="bulbasaur"))
    write(raw, "pokemon-species", "charizard",
          species("charizard", 6, "Charizard", "generation-i", ["charizard", "charizard-mega-x"]))
    write(raw, "pokemon-species", "clefairy",
          species("clefairy", 35, "Clefairy", "generation-i", ["clefairy"]))

    write(raw, "pokemon", "bulbasaur", pokemon(
        "bulbasaur", "bulbasaur", ["grass", "poison"],
        [
            learned("tackle", ("red-blue", "level-up", 1), ("black-white", "level-up", 1)),
            learned("vine-whip", ("gold-silver", "level-up", 13)),
            learned("swift", ("sun-moon", "tutor", 0)),
        ],
        abilities=[("overgrow", 1, False), ("chlorophyll", 3, True)],
    ))
    write(raw, "pokemon", "ivysaur", pokemon(
        "ivysaur", "ivysaur", ["grass", "poison"],
        [learned("tackle", ("red-blue", "level-up", 1), ("diamond-pearl", "level-up", 1))],
    ))
    write(raw, "pokemon", "charizard", pokemon(
        "charizard", "charizard", ["fire", "flying"],
        [learned("ember", ("red-blue", "level-up", 1), ("x-y", "level-up", 1),
                 ("sword-shield", "machine", 0))],
    ))
    write(raw, "pokemon", "charizard-mega-x", pokemon(
        "charizard-mega-x", "charizard", ["fire", "dragon"], [], is_default=False,
    ))
    write(raw, "pokemon", "clefairy", pokemon(
        "clefairy", "clefairy", ["fairy"],
        [learned("bite", ("red-blue", "egg", 0), ("x-y", "egg", 0))],
        past_types=[{"generation": ref("generation-v"), "types": [{"slot": 1, "type": ref("normal")}]}],
    ))
    # No cached species: skipped.
    write(raw, "pokemon", "mew", pokemon("mew", "mew", ["psychic"], []))
    return raw


@pytest.fixture
def dex(raw_dir):
    return PokeApiDex(raw_dir, language="en")


def test_generation_number():
    assert generation_number("generation-i") == 1
    assert generation_number("generation-iv") == 4
    assert generation_number("generation-ix") == 9
    assert generation_number("generation-viii") == 8
    assert generation_number("red-blue") is None
    assert generation_number(None) is None


def test_category_follows_type_before_split():
    assert move_category_for_generation("physical", "dark", 3) == "special"
    assert move_category_for_generation("special", "normal", 1) == "physical"
    assert move_category_for_generation("physical", "dark", 4) == "physical"
    assert move_category_for_generation("status", "fire", 1) == "status"


def test_past_types_and_abilities():
    data = {
        "types": [{"slot": 1, "type": ref("fairy")}],
        "past_types": [{"generation": ref("generation-v"), "types": [{"slot": 1, "type": ref("normal")}]}],
        "abilities": [
            {"slot": 1, "ability": ref("cute-charm"), "is_hidden": False},
            {"slot": 3, "ability": ref("friend-guard"), "is_hidden": True},
        ],
    }
    assert types_for_generation(data, 5) == ["normal"]
    assert types_for_generation(data, 6) == ["fairy"]
    assert abilities_for_generation(data, 2) == {}
    assert abilities_for_generation(data, 4) == {"0": "cute-charm"}
    assert abilities_for_generation(data, 5) == {"0": "cute-charm", "H": "friend-guard"}


def test_generation_one_species(dex):
    gen1 = dex.for_gen(1)
    bulbasaur = gen1.species.get("Bulbasaur")
    assert bulbasaur.types == ("Grass", "Poison")
    assert bulbasaur.abilities == {}
    assert bulbasaur.num == 1
    assert bulbasaur.height_m == pytest.approx(0.7)
    assert bulbasaur.weight_kg == pytest.approx(6.9)
    assert bulbasaur.base_stats["hp"] == 45
    assert bulbasaur.is_nonstandard is None
    assert gen1.learnsets.get("bulbasaur") == {"tackle": ["1L1"]}

    assert gen1.species.get("Ivysaur").prevo == "bulbasaur"
    assert gen1.species.get("Clefairy").types == ("Normal",)
    assert gen1.species.get("Mew") is None

    mega = gen1.species.get("Charizard-Mega-X")
    assert mega.changes_from == "charizard"
    assert mega.is_nonstandard == "Past"


def test_generation_one_moves(dex):
    gen1 = dex.for_gen(1)
    tackle = gen1.moves.get("tackle")
    assert (tackle.base_power, tackle.accuracy) == (35, 95)
    assert tackle.description == "Inflicts regular damage."
    assert tackle.is_nonstandard is None

    bite = gen1.moves.get("bite")
    assert (bite.type, bite.category) == ("Normal", "Physical")

    ember = gen1.moves.get("ember")
    assert ember.category == "Special"
    assert ember.description == "Has a 10% chance to burn the target."

    assert gen1.moves.get("razorwind").is_nonstandard == "Past"
    assert gen1.abilities.all() == []


def test_move_values_follow_later_changes(dex):
    assert dex.for_gen(2).moves.get("bite").type == "Dark"
    assert dex.for_gen(2).moves.get("bite").category == "Special"
    assert dex.for_gen(4).moves.get("bite").category == "Physical"
    assert dex.for_gen(5).moves.get("tackle").base_power == 50
    assert dex.for_gen(7).moves.get("tackle").base_power == 40
    assert dex.for_gen(7).moves.get("swift").accuracy == 0


def test_standard_follows_learnset_presence(dex):
    assert dex.for_gen(2).species.get("Ivysaur").is_nonstandard == "Past"
    assert dex.for_gen(4).species.get("Ivysaur").is_nonstandard is None


def test_abilities_by_generation(dex):
    assert dex.for_gen(4).species.get("Bulbasaur").abilities == {"0": "Overgrow"}
    assert dex.for_gen(5).species.get("Bulbasaur").abilities == {"0": "Overgrow", "H": "Chlorophyll"}

    abilities = {a.name: a for a in dex.for_gen(5).abilities.all()}
    assert abilities["Overgrow"].description == "Overgrow effect."
    assert abilities["Mountaineer"].is_nonstandard == "Unobtainable"
    assert "Mountaineer" not in {a.name for a in dex.for_gen(4).abilities.all()}


def test_alternate_forms_follow_base_form_in_window(dex):
    assert dex.for_gen(6).species.get("Charizard-Mega-X").is_nonstandard is None
    assert dex.for_gen(8).species.get("Charizard").is_nonstandard is None
    assert dex.for_gen(8).species.get("Charizard-Mega-X").is_nonstandard == "Past"
    assert dex.for_gen(6).species.get("Clefairy").types == ("Fairy",)


def test_dataset_from_cached_dex(dex):
    dataset = build_generation_dataset(dex.for_gen(1), workers=2)
    species = {s.name: s for s in dataset.species}
    assert set(species) == {"Bulbasaur", "Ivysaur", "Charizard", "Clefairy"}
    assert species["Ivysaur"].move_names == ["Tackle"]
    assert species["Charizard"].move_names == ["Ember"]
    assert dataset.abilities == []

    gen6 = build_generation_dataset(dex.for_gen(6), workers=2)
    mega = next(s for s in gen6.species if s.name == "Charizard-Mega-X")
    assert mega.move_names == ["Ember"]
    assert mega.type_names == ["Fire", "Dragon"]
