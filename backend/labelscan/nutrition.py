# backend/labelscan/nutrition.py
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Tuple

# =========================
# ---- Traffic Lights -----
# =========================

UNKNOWN = "unknown"
LOW = "low"
MID = "mid"
HIGH = "high"

NUTRIENTS: Tuple[str, ...] = ("sugar", "fat", "salt")


class Thresholds(NamedTuple):
    low_max: float
    high_min: float


# grams per 100 g (UK front-of-pack style)
THRESHOLDS: Dict[str, Thresholds] = {
    "sugar": Thresholds(low_max=5.0, high_min=22.5),
    "fat": Thresholds(low_max=3.0, high_min=17.5),
    "salt": Thresholds(low_max=0.3, high_min=1.75),
}

# =========================
# ---- Nutrition Utils ----
# =========================

_NUMBER_JUNK_RE = re.compile(r"[^0-9.]")

# Best effort "per 100 g" grabbers; Russian first, then English
_NUTRIENT_PATTERNS: Dict[str, Tuple[re.Pattern, ...]] = {
    "sugar": (
        re.compile(r"сахар[аы]?\s*[:\-]?\s*([0-9]+[.,]?[0-9]*)\s*г"),
        re.compile(r"sugars?\s*[:\-]?\s*([0-9]+[.,]?[0-9]*)\s*g"),
    ),
    "fat": (
        re.compile(r"жир[аы]?\s*[:\-]?\s*([0-9]+[.,]?[0-9]*)\s*г"),
        re.compile(r"fat\s*[:\-]?\s*([0-9]+[.,]?[0-9]*)\s*g"),
    ),
    "salt": (
        re.compile(r"соль\s*[:\-]?\s*([0-9]+[.,]?[0-9]*)\s*г"),
        re.compile(r"salt\s*[:\-]?\s*([0-9]+[.,]?[0-9]*)\s*g"),
    ),
}


def parse_number(x: Any) -> Optional[float]:
    """
    Locale-tolerant number: "10,5 г" -> 10.5. Anything that does not parse
    gives None instead of an error.
    """
    if x is None:
        return None
    if isinstance(x, (int, float)) and not isinstance(x, bool):
        v = float(x)
        return v if math.isfinite(v) else None
    t = _NUMBER_JUNK_RE.sub("", str(x).strip().replace(",", ".", 1))
    if not t:
        return None
    try:
        v = float(t)
    except ValueError:
        return None
    return v if math.isfinite(v) else None


def extract_nutrients(text: Optional[str]) -> Dict[str, Optional[float]]:
    t = (text or "").lower()
    out: Dict[str, Optional[float]] = {}
    for name, patterns in _NUTRIENT_PATTERNS.items():
        out[name] = None
        for rx in patterns:
            m = rx.search(t)
            if m:
                out[name] = parse_number(m.group(1))
                if out[name] is not None:
                    break
    return out


def classify_traffic(value: Optional[float], thr: Thresholds) -> str:
    if value is None or not math.isfinite(value):
        return UNKNOWN
    if value <= thr.low_max:
        return LOW
    if value >= thr.high_min:
        return HIGH
    return MID


def classify_nutrients(
    values: Mapping[str, Optional[float]],
    thresholds: Mapping[str, Thresholds] = THRESHOLDS,
) -> Dict[str, str]:
    return {name: classify_traffic(values.get(name), thresholds[name]) for name in NUTRIENTS}

# =========================
# -------- Verdict --------
# =========================

VERDICT_UNKNOWN = "unknown"
VERDICT_OK = "ok"
VERDICT_WARN = "warn"
VERDICT_DANGER = "danger"

SEVERITY = {VERDICT_UNKNOWN: 0, VERDICT_OK: 1, VERDICT_WARN: 2, VERDICT_DANGER: 3}

VERDICT_TITLES = {
    VERDICT_OK: "Looks fine",
    VERDICT_WARN: "Worth a closer look",
    VERDICT_DANGER: "Needs attention",
    VERDICT_UNKNOWN: "Not analyzed",
}

NO_FLAGS_MESSAGE = "No obvious flags found by the heuristics."

# Flag additive-heavy labels from this many distinct codes
MANY_ADDITIVES = 3


@dataclass(frozen=True)
class Verdict:
    level: str
    title: str
    reasons: Tuple[str, ...] = ()

    @property
    def body(self) -> str:
        return " ".join(self.reasons) if self.reasons else NO_FLAGS_MESSAGE

    def to_dict(self) -> Dict[str, Any]:
        return {"level": self.level, "title": self.title, "reasons": list(self.reasons), "body": self.body}


UNKNOWN_VERDICT = Verdict(level=VERDICT_UNKNOWN, title=VERDICT_TITLES[VERDICT_UNKNOWN])


def _escalate(current: str, target: str) -> str:
    return target if SEVERITY[target] > SEVERITY[current] else current


def compute_verdict(
    traffic: Iterable[str],
    additive_count: int = 0,
    allergen_count: int = 0,
    sugar_hint_count: int = 0,
) -> Verdict:
    """
    Conservative aggregation: severity only goes up, reasons follow rule order.
    """
    bands = list(traffic)
    level = VERDICT_OK
    reasons: List[str] = []

    if HIGH in bands:
        level = _escalate(level, VERDICT_DANGER)
        reasons.append("Some nutrients are in the red zone.")
    elif MID in bands:
        level = _escalate(level, VERDICT_WARN)
        reasons.append("Some nutrients are in the amber zone.")

    if allergen_count > 0:
        level = _escalate(level, VERDICT_WARN)
        reasons.append("Potential allergens detected.")

    if additive_count >= MANY_ADDITIVES:
        level = _escalate(level, VERDICT_WARN)
        reasons.append("Many E-additives (check what they are for).")

    if sugar_hint_count > 0:
        level = _escalate(level, VERDICT_WARN)
        reasons.append("Signs of added sugars.")

    return Verdict(level=level, title=VERDICT_TITLES[level], reasons=tuple(reasons))
