"""
Equipment name normalization.

Clients fill in equipment by hand ("Dumbbells", "cable", "pull up bar") and
models invent their own spellings. Both sides are mapped onto one canonical
vocabulary before they are compared.
"""

import re
from typing import Iterable, List, Set

CANONICAL_EQUIPMENT = (
    "barbell",
    "dumbbell",
    "kettlebell",
    "cable_machine",
    "smith_machine",
    "resistance_band",
    "pull_up_bar",
    "bench",
    "squat_rack",
    "leg_press",
    "leg_curl_machine",
    "lat_pulldown_machine",
    "rowing_machine",
    "treadmill",
    "bike",
    "box",
    "plyo_box",
    "medicine_ball",
    "stability_ball",
    "foam_roller",
    "trx",
    "landmine",
    "sled",
    "battle_ropes",
    "agility_ladder",
    "cones",
    "yoga_mat",
)

EQUIPMENT_ALIASES = {
    "cable": "cable_machine",
    "cables": "cable_machine",
    "db": "dumbbell",
    "bb": "barbell",
    "kb": "kettlebell",
    "pull_up": "pull_up_bar",
    "pullup": "pull_up_bar",
    "pullup_bar": "pull_up_bar",
    "chin_up_bar": "pull_up_bar",
    "band": "resistance_band",
    "resistance_bands": "resistance_band",
    "battle_rope": "battle_ropes",
    "smith": "smith_machine",
    "mat": "yoga_mat",
    "med_ball": "medicine_ball",
    "swiss_ball": "stability_ball",
    "rower": "rowing_machine",
    "erg": "rowing_machine",
    "lat_pulldown": "lat_pulldown_machine",
    "leg_curl": "leg_curl_machine",
    "plyo": "plyo_box",
    "dumbell": "dumbbell",
    "kettelbell": "kettlebell",
}

_WHITESPACE = re.compile(r"\s+")
_CANONICAL_SET = frozenset(CANONICAL_EQUIPMENT)


def _lookup(name: str):
    if name in EQUIPMENT_ALIASES:
        return EQUIPMENT_ALIASES[name]
    if name in _CANONICAL_SET:
        return name
    return None


def _singular_forms(name: str) -> List[str]:
    # Words of 3 chars or fewer ("trx") and "-ss" words ("press") are left alone
    if len(name) <= 3 or not name.endswith("s") or name.endswith("ss"):
        return []
    forms = [name[:-1]]
    if name.endswith("es"):
        forms.append(name[:-2])
    return forms


def normalize_equipment(name: str) -> str:
    """
    Map an equipment name onto the canonical vocabulary.

    Order: lower-case and underscore, exact alias/canonical match, then
    plural stripping. Names that match nothing come back cleaned but
    otherwise unchanged, so two different machines never collapse into one.

    Args:
        name: Raw equipment name

    Returns:
        Canonical equipment name, or the cleaned input if unknown
    """
    cleaned = _WHITESPACE.sub("_", name.strip().lower())

    found = _lookup(cleaned)
    if found:
        return found

    singulars = _singular_forms(cleaned)
    for form in singulars:
        found = _lookup(form)
        if found:
            return found

    return singulars[0] if singulars else cleaned


def normalize_equipment_set(names: Iterable[str]) -> Set[str]:
    """Normalize a list of equipment names into a set."""
    return {normalize_equipment(n) for n in names if n and n.strip()}
