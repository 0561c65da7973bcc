# backend/labelscan/detectors.py
from __future__ import annotations

import re
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

# =========================
# --------- Regex ---------
# =========================

# E-codes like: E330, E-330, e 330, Е150д (Cyrillic), E1422
# Not preceded by a letter/digit and not followed by one after the suffix,
# so "LE330" or "E330mg" don't count.
E_CODE_RE = re.compile(
    r"""
    (?<![0-9A-Za-zА-Яа-яЁё])
    [EeЕ]\s?-?\s?
    (?P<digits>\d{3,4})
    (?P<suffix>[A-Za-zА-Яа-я])?
    (?![0-9A-Za-zА-Яа-яЁё])
    """,
    re.X,
)

_CODE_PARTS_RE = re.compile(r"^[EЕ]?(?P<digits>\d{3,4})(?P<suffix>[A-Za-zА-Яа-я]?)$", re.I)

# Cyrillic letters OCR (or the label printer) uses in place of the Latin suffix
_CYR_SUFFIX = {"а": "a", "в": "b", "б": "b", "с": "c", "д": "d", "е": "e", "ф": "f", "г": "g", "і": "i"}

# =========================
# ----- Static Data -------
# =========================

KeywordTable = Mapping[str, Sequence[str]]

ALLERGENS: KeywordTable = {
    "milk": ("молоко", "молочн", "сыворот", "лактоз", "казеин", "сливк", "йогурт", "сыр", "масло слив",
             "milk", "whey", "lactose", "casein", "cream", "butter"),
    "gluten": ("пшениц", "ржан", "рожь", "ячмен", "овес", "овёс", "мука", "клейковин", "глютен", "манка",
               "wheat", "gluten", "barley", "rye", "oats"),
    "soy": ("соя", "сои", "соев", "soy", "soya"),
    "egg": ("яйц", "альбумин", "меланж", "egg", "albumen"),
    "nuts": ("орех", "миндаль", "фундук", "грецк", "кешью", "пекан", "фисташ", "арахис",
             "tree nut", "almond", "hazelnut", "walnut", "cashew", "pecan", "pistachio", "peanut"),
    "fish": ("рыб", "икр", "анчоус", "fish", "anchov"),
    "shellfish": ("кревет", "краб", "миди", "устриц", "моллюск",
                  "shrimp", "prawn", "crab", "lobster", "mussel", "oyster", "shellfish"),
    "celery": ("сельдер", "celery"),
    "mustard": ("горчиц", "mustard"),
    "sesame": ("кунжут", "sesame"),
}

HIDDEN_SUGARS: KeywordTable = {
    "syrup": ("сироп", "syrup"),
    "glucose": ("глюкоз", "glucose"),
    "fructose": ("фруктоз", "fructose"),
    "maltose": ("мальтоз", "maltose"),
    "dextrose": ("декстроз", "dextrose"),
    "lactose": ("лактоз", "lactose"),
    "honey": ("мёд", "мед", "honey"),
    "molasses": ("паток", "molasses"),
    "invert sugar": ("инвертн", "invert"),
    "sucrose": ("сахароз", "sucrose"),
    "juice concentrate": ("концентрат сока", "juice concentrate"),
}

ENHANCERS: KeywordTable = {
    "glutamate": ("глутамат", "glutamate", "msg", "e621", "e-621"),
    "hydrolysed protein": ("гидролизат", "hydrolysed", "hydrolyzed"),
    "yeast extract": ("yeast extract", "дрожжев", "экстракт дрожж"),
}

# Codes that behave like MSG / boost it (glutamates, ribonucleotides)
GLUTAMATE_CODES = {"E620", "E621", "E622", "E623", "E624", "E625"}
RIBONUCLEOTIDE_CODES = {"E626", "E627", "E628", "E629", "E630", "E631", "E632", "E633", "E634", "E635"}

# =========================
# ---- Additive Logic -----
# =========================


def normalize_additive_code(code: Optional[str]) -> str:
    """
    Canonical E-code: Latin "E", digits, optional lowercase letter suffix.
    "Е-330", "E 330", "e330" -> "E330"; "e150D" -> "E150d". Returns "" if the
    value does not look like an additive code.
    """
    if not code:
        return ""
    c = re.sub(r"[\s\-]+", "", str(code))
    m = _CODE_PARTS_RE.match(c)
    if not m:
        return ""
    suffix = m.group("suffix").lower()
    suffix = _CYR_SUFFIX.get(suffix, suffix)
    if suffix and not ("a" <= suffix <= "z"):
        suffix = ""
    return f"E{m.group('digits')}{suffix}"


def extract_additive_codes(text: Optional[str]) -> List[str]:
    """Unique canonical codes in first-seen order."""
    if not text:
        return []
    seen, res = set(), []
    for m in E_CODE_RE.finditer(text):
        code = normalize_additive_code(m.group("digits") + (m.group("suffix") or ""))
        if code and code not in seen:
            seen.add(code)
            res.append(code)
    return res

# =========================
# ---- Keyword Tables -----
# =========================


def detect_keywords(text: Optional[str], table: KeywordTable) -> List[str]:
    lower = (text or "").lower()
    hits = []
    for label, patterns in table.items():
        if any(p.lower() in lower for p in patterns):
            hits.append(label)
    return hits


def detect_allergens(text: Optional[str], table: KeywordTable = ALLERGENS) -> List[str]:
    return detect_keywords(text, table)


def detect_hidden_sugars(text: Optional[str], table: KeywordTable = HIDDEN_SUGARS) -> List[str]:
    return detect_keywords(text, table)


def detect_enhancers(
    text: Optional[str],
    codes: Iterable[str] = (),
    table: KeywordTable = ENHANCERS,
) -> List[str]:
    hits = detect_keywords(text, table)
    codes = {normalize_additive_code(c) for c in codes}
    extra: Tuple[Tuple[str, set], ...] = (
        ("glutamate", GLUTAMATE_CODES),
        ("ribonucleotides", RIBONUCLEOTIDE_CODES),
    )
    for label, family in extra:
        if codes & family and label not in hits:
            hits.append(label)
    return hits
