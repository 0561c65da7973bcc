import math

import pytest

from labelscan.nutrition import (
    HIGH,
    LOW,
    MID,
    NO_FLAGS_MESSAGE,
    THRESHOLDS,
    UNKNOWN,
    VERDICT_DANGER,
    VERDICT_OK,
    VERDICT_WARN,
    classify_nutrients,
    classify_traffic,
    compute_verdict,
    extract_nutrients,
    parse_number,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("10.5", 10.5),
        ("10,5", 10.5),
        ("10,5 г", 10.5),
        (" 0.12g ", 0.12),
        (3, 3.0),
        (2.5, 2.5),
        ("", None),
        ("abc", None),
        ("1.2.3", None),
        (None, None),
        (float("nan"), None),
    ],
)
def test_parse_number(raw, expected):
    assert parse_number(raw) == expected


@pytest.mark.parametrize(
    "value, band",
    [
        (5.0, LOW),
        (22.5, HIGH),
        (10.0, MID),
        (0.0, LOW),
        (None, UNKNOWN),
        (math.inf, UNKNOWN),
        (math.nan, UNKNOWN),
    ],
)
def test_classify_sugar_boundaries(value, band):
    assert classify_traffic(value, THRESHOLDS["sugar"]) == band


def test_classify_nutrients_uses_each_threshold():
    bands = classify_nutrients({"sugar": 4.0, "fat": 17.5, "salt": 0.5})
    assert bands == {"sugar": LOW, "fat": HIGH, "salt": MID}


def test_classify_nutrients_missing_values_are_unknown():
    assert classify_nutrients({}) == {"sugar": UNKNOWN, "fat": UNKNOWN, "salt": UNKNOWN}


def test_extract_nutrients_russian():
    text = "Пищевая ценность на 100 г: жиры 0 г, сахара 10,5 г, соль 0.12 г."
    assert extract_nutrients(text) == {"sugar": 10.5, "fat": 0.0, "salt": 0.12}


def test_extract_nutrients_english():
    text = "Per 100 g: Fat 3.1 g, Sugars: 27 g, Salt 1.8g"
    assert extract_nutrients(text) == {"sugar": 27.0, "fat": 3.1, "salt": 1.8}


def test_extract_nutrients_skips_ingredient_mentions():
    text = "Состав: сахар, соль. Сахара 12 г"
    assert extract_nutrients(text) == {"sugar": 12.0, "fat": None, "salt": None}


def test_verdict_ok_without_flags():
    v = compute_verdict([LOW, LOW, UNKNOWN])
    assert v.level == VERDICT_OK
    assert v.reasons == ()
    assert v.body == NO_FLAGS_MESSAGE


def test_verdict_high_band_is_danger_regardless_of_other_signals():
    v = compute_verdict([HIGH, MID, LOW], additive_count=5, allergen_count=2, sugar_hint_count=3)
    assert v.level == VERDICT_DANGER
    assert len(v.reasons) == 4
    assert "red zone" in v.reasons[0]


def test_verdict_reasons_follow_rule_order():
    v = compute_verdict([MID], additive_count=3, allergen_count=1, sugar_hint_count=1)
    assert v.level == VERDICT_WARN
    assert [r.split()[0] for r in v.reasons] == ["Some", "Potential", "Many", "Signs"]
    assert v.body == " ".join(v.reasons)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"allergen_count": 1},
        {"additive_count": 3},
        {"sugar_hint_count": 1},
    ],
)
def test_verdict_single_signal_warns(kwargs):
    assert compute_verdict([LOW, LOW, LOW], **kwargs).level == VERDICT_WARN


def test_verdict_two_additives_is_not_a_flag():
    assert compute_verdict([UNKNOWN], additive_count=2).level == VERDICT_OK
