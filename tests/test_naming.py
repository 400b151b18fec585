from __future__ import annotations

from draftdex.naming import (
    alternate_form_marker,
    base_form_name,
    form_display_name,
    lookup_key,
    slug_titlecase,
    to_id,
)


def test_slug_titlecase():
    assert slug_titlecase("swords-dance") == "Swords Dance"
    assert slug_titlecase("u-turn") == "U Turn"


def test_to_id_collapses_punctuation_and_case():
    assert to_id("Well-Baked Body") == "wellbakedbody"
    assert to_id("well-baked-body") == "wellbakedbody"
    assert to_id("Mr. Mime") == "mrmime"
    assert to_id(None) == ""


def test_form_display_name():
    assert form_display_name("Charizard", "charizard", "charizard") == "Charizard"
    assert form_display_name("Charizard", "charizard", "charizard-mega-x") == "Charizard-Mega-X"
    assert form_display_name("Vulpix", "vulpix", "vulpix-alola") == "Vulpix-Alola"


def test_alternate_forms_map_to_base_form():
    assert alternate_form_marker("Venusaur-Gmax") == "-Gmax"
    assert base_form_name("Charizard-Mega-X") == "Charizard"
    assert base_form_name("Kyogre-Primal") == "Kyogre"
    assert base_form_name("Vulpix-Alola") is None
    assert base_form_name("Charizard") is None


def test_lookup_key_is_case_insensitive():
    assert lookup_key("  Swords Dance ", 3) == lookup_key("swords dance", 3) == "swords dance|3"
