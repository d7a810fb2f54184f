"""
Tests for equipment name normalization.
"""

import pytest

from programgen.equipment import normalize_equipment, normalize_equipment_set


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Barbell", "barbell"),
        ("  Dumbbells ", "dumbbell"),
        ("pull up bar", "pull_up_bar"),
        ("Pullup", "pull_up_bar"),
        ("Cables", "cable_machine"),
        ("KB", "kettlebell"),
        ("resistance bands", "resistance_band"),
        ("Battle Ropes", "battle_ropes"),
        ("benches", "bench"),
    ],
)
def test_known_names(raw, expected):
    assert normalize_equipment(raw) == expected


def test_short_and_ss_words_keep_their_s():
    assert normalize_equipment("TRX") == "trx"
    assert normalize_equipment("leg press") == "leg_press"


def test_common_misspellings():
    assert normalize_equipment("kettelbell") == "kettlebell"
    assert normalize_equipment("Dumbells") == "dumbbell"


@pytest.mark.parametrize(
    "raw",
    ["calf_machine", "leg press machine", "hip thrust machine", "Calf Machines"],
)
def test_similar_machines_stay_distinct(raw):
    # Similar-looking machine names are different equipment
    assert normalize_equipment(raw) not in {"cable_machine", "leg_curl_machine", "smith_machine"}


def test_calf_machine_not_satisfied_by_cable_machine():
    assert normalize_equipment("calf_machine") not in normalize_equipment_set(["cable machine"])


def test_unknown_name_returned_cleaned():
    assert normalize_equipment("Climbing Wall") == "climbing_wall"


def test_set_drops_blanks_and_duplicates():
    assert normalize_equipment_set(["Dumbbells", "dumbbell", "", "  ", "DB"]) == {"dumbbell"}
