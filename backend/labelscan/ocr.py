# backend/labelscan/ocr.py
from __future__ import annotations

import logging
import re
import threading
from typing import Callable, List, Optional, Set, Tuple

import pytesseract
from PIL import Image

from . import conf
from .cloud_ocr import CloudOcrClient, ProgressCallback
from .errors import EngineUnavailable, InputError
from .preprocess import ocr_variants
from .text import normalize_text

logger = logging.getLogger(__name__)

ENGINE_LOCAL = "local"
ENGINE_CLOUD = "cloud"

# 6: Assume a single uniform block of text (works well for ingredient lists)
TESSERACT_CONFIG = "--oem 3 --psm 6 -c preserve_interword_spaces=1"

EMPTY_SCORE = -1e9

_CYR_RE = re.compile(r"[А-Яа-яЁё]")
_LAT_RE = re.compile(r"[A-Za-z]")
_BAD_RE = re.compile(r"[^0-9A-Za-zА-Яа-яЁё\s.,:;()%+\-–—/]")

Scorer = Callable[[str], float]


def score_ocr_text(t: Optional[str]) -> float:
    """
    Higher is better: rewards Cyrillic letters, slightly penalizes Latin and
    heavily penalizes symbols outside the allow-list (binarization noise).
    """
    s = normalize_text(t)
    if not s:
        return EMPTY_SCORE
    cyr = len(_CYR_RE.findall(s))
    lat = len(_LAT_RE.findall(s))
    bad = len(_BAD_RE.findall(s))
    return cyr * 2 - lat * 0.2 - bad * 6


def _reporter(progress: Optional[ProgressCallback]) -> ProgressCallback:
    def report(fraction: float, status: str) -> None:
        if progress is not None:
            progress(max(0.0, min(1.0, float(fraction))), status)
    return report


class TesseractEngine:
    """
    Handle on the local tesseract install.

    One recognition at a time per instance; switching languages tears the old
    configuration down before the new one is checked.
    """

    def __init__(self, tesseract_cmd: Optional[str] = None):
        self._lock = threading.Lock()
        self._langs: Optional[str] = None
        cmd = tesseract_cmd if tesseract_cmd is not None else conf.TESSERACT_CMD
        if cmd:
            pytesseract.pytesseract.tesseract_cmd = cmd

    @property
    def langs(self) -> Optional[str]:
        return self._langs

    def _init(self, langs: str) -> None:
        self._langs = None
        try:
            version = pytesseract.get_tesseract_version()
            available: Set[str] = set(pytesseract.get_languages(config=""))
        except (pytesseract.TesseractNotFoundError, pytesseract.TesseractError, OSError) as e:
            raise EngineUnavailable(f"tesseract is not available: {e}") from e

        missing = [lang for lang in langs.split("+") if lang and lang not in available]
        if missing:
            raise EngineUnavailable(f"tesseract language data missing: {', '.join(missing)}")
        self._langs = langs
        logger.info("Tesseract %s ready for %s", version, langs)

    def ensure_ready(self, langs: str) -> None:
        with self._lock:
            if self._langs != langs:
                self._init(langs)

    def recognize(self, img: Image.Image, langs: str) -> str:
        with self._lock:
            if self._langs != langs:
                self._init(langs)
            try:
                raw = pytesseract.image_to_string(img, lang=langs, config=TESSERACT_CONFIG)
            except (pytesseract.TesseractNotFoundError, pytesseract.TesseractError, OSError) as e:
                self._langs = None
                raise EngineUnavailable(f"tesseract failed: {e}") from e
        return normalize_text(raw)

    def close(self) -> None:
        with self._lock:
            self._langs = None


class OcrAdapter:
    """recognize(image, languages, engine_mode) over tesseract or the cloud proxy."""

    def __init__(
        self,
        engine: Optional[TesseractEngine] = None,
        cloud: Optional[CloudOcrClient] = None,
        scorer: Scorer = score_ocr_text,
        enhance: Optional[bool] = None,
    ):
        self.engine = engine or TesseractEngine()
        self.cloud = cloud or CloudOcrClient()
        self.scorer = scorer
        self.enhance = conf.OCR_ENHANCE if enhance is None else enhance

    def recognize(
        self,
        img: Image.Image,
        langs: Optional[str] = None,
        engine_mode: Optional[str] = None,
        progress: Optional[ProgressCallback] = None,
        enhance: Optional[bool] = None,
    ) -> str:
        if img is None:
            raise InputError("image is required")
        langs = langs or conf.OCR_LANGS
        mode = (engine_mode or conf.OCR_ENGINE).lower()
        report = _reporter(progress)

        if mode == ENGINE_CLOUD:
            return self.cloud.recognize(img, langs, progress=report)
        if mode != ENGINE_LOCAL:
            raise InputError(f"unknown OCR engine: {engine_mode}")
        return self._recognize_local(img, langs, self.enhance if enhance is None else enhance, report)

    def _recognize_local(self, img: Image.Image, langs: str, enhance: bool, report: ProgressCallback) -> str:
        report(0.01, "preparing")
        self.engine.ensure_ready(langs)

        inputs: List[Image.Image] = ocr_variants(img, enhance)
        best: Tuple[str, float] = ("", EMPTY_SCORE)
        for i, candidate in enumerate(inputs):
            label = f"recognizing {i + 1}/{len(inputs)}" if len(inputs) > 1 else "recognizing"
            report(i / len(inputs), label)
            text = self.engine.recognize(candidate, langs)
            sc = self.scorer(text)
            if sc > best[1]:
                best = (text, sc)

        report(1.0, "done")
        logger.info("Local OCR: %d variant(s), best score %.1f", len(inputs), best[1])
        return best[0]
