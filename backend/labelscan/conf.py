# backend/labelscan/conf.py
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

PACKAGE_DIR = Path(__file__).resolve().parent


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Tesseract language string, e.g. "rus+eng" (add +deu, +ukr if you expect them)
OCR_LANGS = os.getenv("OCR_LANGS", "rus+eng")

# "local" (tesseract) or "cloud" (OCR proxy)
OCR_ENGINE = os.getenv("OCR_ENGINE", "local")

# Run normal + inverted preprocessed variants and keep the best one
OCR_ENHANCE = _flag("OCR_ENHANCE", "1")

OCR_CLOUD_ENDPOINT = os.getenv("OCR_CLOUD_ENDPOINT", "").strip()
OCR_CLOUD_TIMEOUT = max(15.0, float(os.getenv("OCR_CLOUD_TIMEOUT", "20")))

# keep uploads reasonable before upscaling
OCR_MAX_DIMENSION = int(os.getenv("OCR_MAX_DIMENSION", "2200"))

TESSERACT_CMD = os.getenv("TESSERACT_CMD", "").strip()

ADDITIVES_DB_PATH = Path(os.getenv("ADDITIVES_DB_PATH", str(PACKAGE_DIR / "data" / "e_additives.json")))

