# backend/labelscan/analysis.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from .additives import AdditiveInfo, describe_additives
from .detectors import (
    detect_allergens,
    detect_enhancers,
    detect_hidden_sugars,
    extract_additive_codes,
)
from .nutrition import (
    NUTRIENTS,
    UNKNOWN,
    UNKNOWN_VERDICT,
    Verdict,
    classify_nutrients,
    compute_verdict,
    extract_nutrients,
    parse_number,
)
from .text import extract_composition_block, normalize_text, tokenize_ingredients

NutrientInput = Any  # float, "10,5", None


@dataclass(frozen=True)
class AnalysisResult:
    raw_text: str = ""
    composition: str = ""
    ingredients: Tuple[str, ...] = ()
    additive_codes: Tuple[str, ...] = ()
    additives: Tuple[AdditiveInfo, ...] = ()
    allergens: Tuple[str, ...] = ()
    hidden_sugars: Tuple[str, ...] = ()
    enhancers: Tuple[str, ...] = ()
    nutrients: Mapping[str, Optional[float]] = field(default_factory=lambda: {n: None for n in NUTRIENTS})
    traffic: Mapping[str, str] = field(default_factory=lambda: {n: UNKNOWN for n in NUTRIENTS})
    verdict: Verdict = UNKNOWN_VERDICT

    @property
    def is_empty(self) -> bool:
        return not self.raw_text

    @property
    def summary(self) -> str:
        return " · ".join([
            f"{len(self.additive_codes)} additive codes",
            f"{len(self.allergens)} allergens",
            f"{len(self.hidden_sugars)} sugar hints",
        ])

    def recalculate(self, sugar: NutrientInput = None, fat: NutrientInput = None,
                    salt: NutrientInput = None) -> "AnalysisResult":
        """
        New result for edited nutrient values; text-derived fields are kept.
        Values that don't parse count as unset.
        """
        nutrients = {"sugar": parse_number(sugar), "fat": parse_number(fat), "salt": parse_number(salt)}
        if self.is_empty:
            return replace(self, nutrients=nutrients, traffic=classify_nutrients(nutrients))
        return _finish(self, nutrients)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "raw_text": self.raw_text,
            "composition": self.composition,
            "ingredients": list(self.ingredients),
            "additive_codes": list(self.additive_codes),
            "additives": [a.to_dict() for a in self.additives],
            "allergens": list(self.allergens),
            "hidden_sugars": list(self.hidden_sugars),
            "enhancers": list(self.enhancers),
            "nutrients": dict(self.nutrients),
            "traffic": dict(self.traffic),
            "verdict": self.verdict.to_dict(),
            "summary": self.summary,
        }


def _finish(result: AnalysisResult, nutrients: Dict[str, Optional[float]]) -> AnalysisResult:
    traffic = classify_nutrients(nutrients)
    verdict = compute_verdict(
        traffic.values(),
        additive_count=len(result.additive_codes),
        allergen_count=len(result.allergens),
        sugar_hint_count=len(result.hidden_sugars),
    )
    return replace(result, nutrients=nutrients, traffic=traffic, verdict=verdict)


def analyze_text(
    text: Optional[str],
    sugar: NutrientInput = None,
    fat: NutrientInput = None,
    salt: NutrientInput = None,
    additive_db: Optional[Mapping[str, AdditiveInfo]] = None,
) -> AnalysisResult:
    """
    Text -> AnalysisResult. Pure: the same input always gives the same result.

    Detectors scan the composition block (or the whole text if no block was
    found); nutrient values come from the caller where given, otherwise from
    the "per 100 g" lines of the full text.
    """
    raw = normalize_text(text)
    if not raw:
        return AnalysisResult()

    composition = extract_composition_block(raw)
    scan = composition or raw
    codes = extract_additive_codes(scan)

    result = AnalysisResult(
        raw_text=raw,
        composition=composition,
        ingredients=tuple(tokenize_ingredients(scan)),
        additive_codes=tuple(codes),
        additives=tuple(describe_additives(codes, additive_db)),
        allergens=tuple(detect_allergens(scan)),
        hidden_sugars=tuple(detect_hidden_sugars(scan)),
        enhancers=tuple(detect_enhancers(scan, codes)),
    )

    auto = extract_nutrients(raw)
    given = {"sugar": parse_number(sugar), "fat": parse_number(fat), "salt": parse_number(salt)}
    nutrients = {n: given[n] if given[n] is not None else auto[n] for n in NUTRIENTS}
    return _finish(result, nutrients)
