# backend/labelscan/cloud_ocr.py
from __future__ import annotations

import base64
import io
import logging
import re
from typing import Any, Callable, Dict, List, Optional

import requests
from PIL import Image

from . import conf
from .errors import InputError, RemoteTimeout, UpstreamError
from .text import normalize_text

logger = logging.getLogger(__name__)

# Serverless proxies cap the JSON body (~3.5 MB), so keep the upload small
MAX_SIDE = 1600
JPEG_QUALITY = 86
ERROR_BODY_LIMIT = 180

DEFAULT_LANGUAGE_CODES = ["ru", "en"]

# tesseract -> ISO 639-1
_TESS_TO_ISO = {"rus": "ru", "eng": "en", "ukr": "uk", "deu": "de", "fra": "fr", "spa": "es", "ita": "it", "kaz": "kk"}

ProgressCallback = Callable[[float, str], None]


def _pil_to_b64_jpeg(img: Image.Image, max_side: int = MAX_SIDE, quality: int = JPEG_QUALITY) -> str:
    w, h = img.size
    scale = min(1.0, max_side / float(max(w, h)))
    if scale < 1.0:
        img = img.resize((max(1, int(round(w * scale))), max(1, int(round(h * scale)))), Image.LANCZOS)
    buf = io.BytesIO()
    img.convert("RGB").save(buf, format="JPEG", quality=quality, optimize=True)
    return base64.b64encode(buf.getvalue()).decode("ascii")


def language_codes(langs: Optional[str]) -> List[str]:
    """ "rus+eng" -> ["ru", "en"] """
    codes = []
    for part in (langs or "").split("+"):
        part = part.strip().lower()
        if part:
            codes.append(_TESS_TO_ISO.get(part, part))
    return codes or list(DEFAULT_LANGUAGE_CODES)


def _lines_from_annotation(ta: Dict[str, Any]) -> str:
    lines: List[str] = []
    blocks = ta.get("blocks")
    for b in blocks if isinstance(blocks, list) else []:
        ls = b.get("lines") if isinstance(b, dict) else None
        ls = ls if isinstance(ls, list) else []
        for line in ls:
            if isinstance(line, dict) and isinstance(line.get("text"), str):
                lines.append(line["text"])
        # blank line between blocks
        if ls:
            lines.append("")
    return re.sub(r"\n{3,}", "\n\n", "\n".join(lines)).strip()


def extract_text_from_response(payload: Any) -> str:
    """
    Pull the recognized text out of whatever the endpoint returned.

    Tried in order: the proxy's {"text"}, then the raw Vision OCR shapes
    textAnnotation / result.textAnnotation / response.textAnnotation.
    Returns "" when nothing matches.
    """
    if not isinstance(payload, dict):
        return ""
    if isinstance(payload.get("text"), str):
        return payload["text"]

    candidates = (
        payload.get("textAnnotation"),
        (payload.get("result") or {}).get("textAnnotation") if isinstance(payload.get("result"), dict) else None,
        (payload.get("response") or {}).get("textAnnotation") if isinstance(payload.get("response"), dict) else None,
    )
    for ta in candidates:
        if isinstance(ta, dict):
            return _lines_from_annotation(ta)
    return ""


class CloudOcrClient:
    """
    Client for the OCR proxy: POST {image, mimeType, languageCodes, model},
    answer {text}. One request, no retries.
    """

    def __init__(self, endpoint: Optional[str] = None, timeout: Optional[float] = None, model: str = "page"):
        self.endpoint = (endpoint if endpoint is not None else conf.OCR_CLOUD_ENDPOINT).strip()
        self.timeout = timeout if timeout is not None else conf.OCR_CLOUD_TIMEOUT
        self.model = model

    def build_payload(self, img: Image.Image, langs: Optional[str]) -> Dict[str, Any]:
        return {
            "image": _pil_to_b64_jpeg(img),
            "mimeType": "JPEG",
            "languageCodes": language_codes(langs),
            "model": self.model,
        }

    def recognize(self, img: Image.Image, langs: Optional[str] = None,
                  progress: Optional[ProgressCallback] = None) -> str:
        if not self.endpoint:
            raise InputError("Cloud OCR endpoint is not configured")
        report = progress or (lambda _p, _s: None)

        report(0.02, "preparing")
        payload = self.build_payload(img, langs)

        report(0.15, "uploading")
        try:
            r = requests.post(self.endpoint, json=payload, timeout=self.timeout)
        except requests.Timeout as e:
            raise RemoteTimeout(f"Cloud OCR: no answer within {self.timeout:g}s") from e
        except requests.RequestException as e:
            raise UpstreamError(f"Cloud OCR: request failed: {e}") from e

        if not r.ok:
            body = (r.text or "")[:ERROR_BODY_LIMIT]
            logger.warning("Cloud OCR returned HTTP %s", r.status_code)
            raise UpstreamError(f"Cloud OCR: HTTP {r.status_code}. {body}".strip(), status=r.status_code, details=body)

        report(0.75, "recognizing")
        try:
            data = r.json()
        except ValueError as e:
            raise UpstreamError("Cloud OCR: response is not JSON", status=r.status_code) from e

        text = normalize_text(extract_text_from_response(data))
        report(1.0, "done")
        logger.info("Cloud OCR recognized %d chars", len(text))
        return text
