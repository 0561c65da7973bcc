import pytest

from labelscan.analysis import AnalysisResult, analyze_text
from labelscan.nutrition import HIGH, LOW, MID, UNKNOWN, VERDICT_DANGER, VERDICT_UNKNOWN, VERDICT_WARN, SEVERITY

E2E_TEXT = (
    "Состав: вода, сахар, глюкозный сироп, E330, соль. "
    "Пищевая ценность на 100 г: сахара 10.5 г, соль 0.12 г."
)


def test_end_to_end_russian_label(additive_db):
    result = analyze_text(E2E_TEXT, additive_db=additive_db)

    assert result.composition.startswith("вода")
    assert result.composition == "вода, сахар, глюкозный сироп, E330, соль."
    assert "Пищевая" not in result.composition
    assert result.additive_codes == ("E330",)
    assert "syrup" in result.hidden_sugars or "glucose" in result.hidden_sugars
    assert result.nutrients["sugar"] == 10.5
    assert result.nutrients["salt"] == 0.12
    assert result.nutrients["fat"] is None
    # 0.12 g is under the 0.3 g low limit
    assert result.traffic == {"sugar": MID, "salt": LOW, "fat": UNKNOWN}
    assert SEVERITY[result.verdict.level] >= SEVERITY[VERDICT_WARN]


def test_ingredients_and_additive_details(sample_label, additive_db):
    result = analyze_text(sample_label, additive_db=additive_db)
    assert result.ingredients[:3] == ("вода", "сахар", "глюкозный сироп")
    assert result.additive_codes == ("E330", "E150d", "E211")
    assert [a.name for a in result.additives] == ["Citric acid", "Caramel colour IV", "Sodium benzoate"]
    # three codes + sugars + amber sugar
    assert result.verdict.level == VERDICT_WARN
    assert len(result.verdict.reasons) == 3


def test_caller_values_override_auto_extracted(additive_db):
    result = analyze_text(E2E_TEXT, sugar="30", additive_db=additive_db)
    assert result.nutrients["sugar"] == 30.0
    assert result.nutrients["salt"] == 0.12
    assert result.traffic["sugar"] == HIGH
    assert result.verdict.level == VERDICT_DANGER


def test_unparseable_caller_value_falls_back_to_auto(additive_db):
    result = analyze_text(E2E_TEXT, sugar="n/a", additive_db=additive_db)
    assert result.nutrients["sugar"] == 10.5


def test_no_marker_scans_raw_text(additive_db):
    result = analyze_text("Молоко, какао, E322", additive_db=additive_db)
    assert result.composition == "Молоко, какао, E322"
    assert result.allergens == ("milk",)
    assert result.additive_codes == ("E322",)
    assert result.additives[0].name == "Unknown additive"


def test_empty_text_gives_unknown_result():
    result = analyze_text("   ")
    assert result == AnalysisResult()
    assert result.is_empty
    assert result.verdict.level == VERDICT_UNKNOWN
    assert result.traffic == {"sugar": UNKNOWN, "fat": UNKNOWN, "salt": UNKNOWN}


def test_analysis_is_idempotent(sample_label, additive_db):
    assert analyze_text(sample_label, additive_db=additive_db) == analyze_text(sample_label, additive_db=additive_db)


def test_recalculate_supersedes_without_mutating(sample_label, additive_db):
    first = analyze_text(sample_label, additive_db=additive_db)
    second = first.recalculate(sugar="2,5", fat="1", salt="")

    assert first.nutrients["sugar"] == 10.5
    assert second.nutrients == {"sugar": 2.5, "fat": 1.0, "salt": None}
    assert second.traffic == {"sugar": LOW, "fat": LOW, "salt": UNKNOWN}
    assert second.additive_codes == first.additive_codes
    assert second.composition == first.composition
    assert second is not first


def test_recalculate_to_danger(sample_label, additive_db):
    result = analyze_text(sample_label, additive_db=additive_db).recalculate(salt="2.0")
    assert result.traffic["salt"] == HIGH
    assert result.verdict.level == VERDICT_DANGER


def test_summary_and_to_dict(sample_label, additive_db):
    result = analyze_text(sample_label, additive_db=additive_db)
    assert result.summary == "3 additive codes · 0 allergens · 2 sugar hints"

    data = result.to_dict()
    assert data["additive_codes"] == ["E330", "E150d", "E211"]
    assert data["additives"][0] == {
        "code": "E330", "name": "Citric acid", "category": "acidity regulator", "risk": "low",
    }
    assert data["verdict"]["level"] == VERDICT_WARN
    assert data["verdict"]["body"] == " ".join(data["verdict"]["reasons"])


@pytest.mark.parametrize("sugar, level", [("4", VERDICT_WARN), ("25", VERDICT_DANGER)])
def test_sugar_hints_keep_warn_floor(sugar, level, additive_db):
    result = analyze_text("Ingredients: water, glucose syrup", sugar=sugar, fat="1", salt="0.1",
                          additive_db=additive_db)
    assert result.verdict.level == level
