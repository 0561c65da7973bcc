# backend/labelscan/session.py
from __future__ import annotations

import logging
import threading
from typing import Mapping, Optional

from PIL import Image

from .additives import AdditiveInfo
from .analysis import AnalysisResult, NutrientInput, analyze_text
from .cloud_ocr import ProgressCallback
from .ocr import OcrAdapter

logger = logging.getLogger(__name__)


class OcrSession:
    """
    State owned by one caller: the OCR adapter (and its live engine handle)
    plus the last analysis. Calls on one session are serialized.
    """

    def __init__(self, adapter: Optional[OcrAdapter] = None,
                 additive_db: Optional[Mapping[str, AdditiveInfo]] = None):
        self.adapter = adapter or OcrAdapter()
        self.additive_db = additive_db
        self.last_analysis: Optional[AnalysisResult] = None
        self._lock = threading.RLock()

    def recognize(self, img: Image.Image, langs: Optional[str] = None, engine_mode: Optional[str] = None,
                  progress: Optional[ProgressCallback] = None, enhance: Optional[bool] = None) -> str:
        with self._lock:
            return self.adapter.recognize(img, langs, engine_mode, progress=progress, enhance=enhance)

    def analyze(self, text: Optional[str], sugar: NutrientInput = None, fat: NutrientInput = None,
                salt: NutrientInput = None) -> AnalysisResult:
        with self._lock:
            self.last_analysis = analyze_text(text, sugar, fat, salt, additive_db=self.additive_db)
            return self.last_analysis

    def scan(self, img: Image.Image, langs: Optional[str] = None, engine_mode: Optional[str] = None,
             progress: Optional[ProgressCallback] = None, enhance: Optional[bool] = None) -> AnalysisResult:
        """OCR + analysis in one go; empty OCR text gives an empty (unknown) result."""
        with self._lock:
            text = self.recognize(img, langs, engine_mode, progress=progress, enhance=enhance)
            if not text:
                logger.info("OCR found no text")
            return self.analyze(text)

    def recalculate(self, sugar: NutrientInput = None, fat: NutrientInput = None,
                    salt: NutrientInput = None) -> Optional[AnalysisResult]:
        """Supersede the last analysis with new nutrient values (None if nothing analyzed yet)."""
        with self._lock:
            if self.last_analysis is None:
                return None
            self.last_analysis = self.last_analysis.recalculate(sugar, fat, salt)
            return self.last_analysis

    def close(self) -> None:
        with self._lock:
            self.adapter.engine.close()
            self.last_analysis = None
