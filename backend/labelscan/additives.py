# backend/labelscan/additives.py
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, replace
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from . import conf
from .detectors import normalize_additive_code

logger = logging.getLogger(__name__)

RISK_LOW = "low"
RISK_MEDIUM = "medium"
RISK_HIGH = "high"
RISK_UNSPECIFIED = "unspecified"

# Level words seen in reference files (English and Russian)
_RISK_WORDS = (
    (RISK_HIGH, ("high", "avoid", "выс")),
    (RISK_MEDIUM, ("medium", "med", "moderate", "caution", "сред")),
    (RISK_LOW, ("low", "generally safe", "низ")),
)


@dataclass(frozen=True)
class AdditiveInfo:
    code: str
    name: str
    category: str
    risk: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def normalize_risk(raw: Any) -> str:
    r = str(raw or "").strip().lower()
    if not r:
        return RISK_UNSPECIFIED
    for level, words in _RISK_WORDS:
        if any(w in r for w in words):
            return level
    return RISK_UNSPECIFIED


def _first(record: Mapping[str, Any], *keys: str) -> str:
    for k in keys:
        v = record.get(k)
        if isinstance(v, str) and v.strip():
            return v.strip()
    return ""


def parse_additive_db(raw: Any) -> Dict[str, AdditiveInfo]:
    """
    Build the code -> AdditiveInfo mapping from a decoded JSON object.
    Accepts the older field names too (name_ru/function_ru/attention).
    """
    if not isinstance(raw, dict):
        return {}
    out: Dict[str, AdditiveInfo] = {}
    for key, record in raw.items():
        code = normalize_additive_code(key)
        if not code or not isinstance(record, dict):
            continue
        out[code] = AdditiveInfo(
            code=code,
            name=_first(record, "name", "name_ru", "title") or "Unknown additive",
            category=_first(record, "category", "function", "function_ru", "type") or "unknown",
            risk=normalize_risk(record.get("risk") or record.get("attention")),
        )
    return out


@lru_cache(maxsize=8)
def load_additive_db(path: Optional[Union[str, Path]] = None) -> Dict[str, AdditiveInfo]:
    """
    Loaded once per path. A missing or broken file degrades to an empty
    mapping: detection still works, descriptions fall back to "unknown".
    """
    p = Path(path) if path else conf.ADDITIVES_DB_PATH
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Additive reference data unavailable (%s): %s", p, e)
        return {}
    db = parse_additive_db(raw)
    logger.info("Loaded %d additive records from %s", len(db), p)
    return db


def describe_additives(codes: Iterable[str], db: Optional[Mapping[str, AdditiveInfo]] = None) -> List[AdditiveInfo]:
    if db is None:
        db = load_additive_db()
    out = []
    for c in codes:
        code = normalize_additive_code(c) or str(c)
        info = db.get(code)
        if info is None:
            # "E150d" may be listed as plain "E150"
            base = db.get(code.rstrip("abcdefghijklmnopqrstuvwxyz"))
            info = replace(base, code=code) if base else None
        out.append(info or AdditiveInfo(code=code, name="Unknown additive", category="unknown", risk=RISK_UNSPECIFIED))
    return out
