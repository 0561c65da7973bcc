# backend/labelscan/text.py
from __future__ import annotations

import re
from typing import List, Optional, Sequence

# =========================
# --------- Markers -------
# =========================

# Order matters: the first marker found wins
COMPOSITION_MARKERS: Sequence[str] = (
    "состав:", "состав :",
    "ингредиенты:", "ингредиенты :",
    "ingredients:", "ingredients :",
    "composition:", "composition :",
)

STOP_MARKERS: Sequence[str] = (
    "пищевая ценность", "питательная ценность", "энергетическая ценность",
    "срок годности", "хранить", "условия хранения", "изготовитель", "производитель",
    "масса нетто",
    "nutrition", "calories", "storage conditions", "best before", "manufacturer",
)

# Used as the composition block when no start marker is present
FALLBACK_PREFIX_CHARS = 700

_HSPACE_RE = re.compile(r"[ \t]+")
_SPACE_BEFORE_NL_RE = re.compile(r"[ \t]+\n")
_MANY_NL_RE = re.compile(r"\n{3,}")
_BULLET_RE = re.compile(r"[•·]")
_SPLIT_RE = re.compile(r"[,;]+|\n+")

# =========================
# ---- Text Utilities -----
# =========================


def normalize_text(s: Optional[str]) -> str:
    if not s:
        return ""
    s = str(s).replace("\u00a0", " ")
    s = _HSPACE_RE.sub(" ", s)
    s = _SPACE_BEFORE_NL_RE.sub("\n", s)
    s = _MANY_NL_RE.sub("\n\n", s)
    return s.strip()


def extract_composition_block(
    text: Optional[str],
    markers: Sequence[str] = COMPOSITION_MARKERS,
    stops: Sequence[str] = STOP_MARKERS,
) -> str:
    """
    Return the part of the label that most likely holds the ingredient list.

    Without a start marker the first FALLBACK_PREFIX_CHARS characters are
    returned so the detectors still have something to scan.
    """
    t = normalize_text(text)
    if not t:
        return ""

    start = -1
    for m in markers:
        hit = re.search(re.escape(m), t, re.I)
        if hit:
            start = hit.end()
            break

    if start < 0:
        return t[:FALLBACK_PREFIX_CHARS]

    end = len(t)
    for s in stops:
        hit = re.compile(re.escape(s), re.I).search(t, start)
        if hit:
            end = min(end, hit.start())

    return t[start:end].strip()


def tokenize_ingredients(text: Optional[str]) -> List[str]:
    t = normalize_text(text)
    if not t:
        return []
    parts = [p.strip() for p in _SPLIT_RE.split(_BULLET_RE.sub(",", t))]

    seen, out = set(), []
    for p in parts:
        key = p.lower()
        if len(key) < 2 or key in seen:
            continue
        seen.add(key)
        out.append(p)
    return out
