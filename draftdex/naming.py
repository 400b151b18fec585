"""Naming helpers.

Centralizes display-name formatting and the name normalization rules used to
cross-reference entities between pipeline phases.
"""

from __future__ import annotations

import re
from typing import Optional

NON_ID_RE = re.compile(r"[^a-z0-9]+")

# Alternate forms that rarely persist into the newest generations; their
# unified learnset is inherited from the base form.
ALTERNATE_FORM_MARKERS = ("-Mega", "-Primal", "-Gmax")


def slug_titlecase(slug: str) -> str:
    """Convert a PokéAPI slug (kebab-case) to title-cased display name.

    Rules:
    - Replace '-' with spaces
    - Title Case each token
    - Single-letter tokens are uppercase
    """
    tokens = slug.replace("-", " ").split()
    out_tokens: list[str] = []
    for token in tokens:
        if len(token) == 1:
            out_tokens.append(token.upper())
        else:
            out_tokens.append(token[:1].upper() + token[1:])
    return " ".join(out_tokens)


def to_id(name: str) -> str:
    """Normalize a display name or slug into a lookup id.

    ``"Well-Baked Body"``, ``"well-baked-body"`` and ``"wellbakedbody"`` all
    map to ``"wellbakedbody"``.
    """
    return NON_ID_RE.sub("", (name or "").lower())


def form_display_name(species_name: str, species_slug: str, pokemon_slug: str) -> str:
    """Build ``<Species>-<Form>`` display names for alternate forms.

    ``("Charizard", "charizard", "charizard-mega-x")`` -> ``"Charizard-Mega-X"``.
    Default varieties (slug equal to the species slug) keep the species name.
    """
    if pokemon_slug == species_slug:
        return species_name
    if not pokemon_slug.startswith(species_slug + "-"):
        return slug_titlecase(pokemon_slug)
    suffix = pokemon_slug[len(species_slug) + 1:]
    form_tokens = [slug_titlecase(token) for token in suffix.split("-") if token]
    return "-".join([species_name] + form_tokens)


def alternate_form_marker(name: str) -> Optional[str]:
    """Return the alternate-form marker contained in ``name``, if any."""
    for marker in ALTERNATE_FORM_MARKERS:
        if marker.lower() in name.lower():
            return marker
    return None


def base_form_name(name: str) -> Optional[str]:
    """Strip the alternate-form suffix: ``"Charizard-Mega-X"`` -> ``"Charizard"``.

    Returns None for names that are not alternate forms.
    """
    marker = alternate_form_marker(name)
    if marker is None:
        return None
    index = name.lower().index(marker.lower())
    return name[:index] or None


def lookup_key(name: str, generation_id: int) -> str:
    """Case-insensitive ``name|generation`` key for cross-phase lookups."""
    return f"{name.strip().lower()}|{generation_id}"
