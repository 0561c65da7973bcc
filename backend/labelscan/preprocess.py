# backend/labelscan/preprocess.py
from __future__ import annotations

from typing import BinaryIO, List, Optional, Union

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from . import conf
from .errors import InputError

DEFAULT_SCALE = 2.2
DEFAULT_CONTRAST = 1.35

# Below this share of white pixels the label is assumed to be light-on-dark
INVERT_BELOW_WHITE_RATIO = 0.45

# Used when every pixel has the same value
DEFAULT_THRESHOLD = 127

# Rec. 709 luma weights
_LUMA = np.array([0.2126, 0.7152, 0.0722])


def _pil_fix_orientation(img: Image.Image) -> Image.Image:
    try:
        return ImageOps.exif_transpose(img)
    except (OSError, ValueError, KeyError):
        return img


def downscale_if_huge(img: Image.Image, max_side: Optional[int] = None) -> Image.Image:
    """Prevent huge uploads from causing timeouts/memory spikes."""
    max_side = max_side or conf.OCR_MAX_DIMENSION
    w, h = img.size
    m = max(w, h)
    if m <= max_side:
        return img
    scale = max_side / float(m)
    new_size = (max(1, int(round(w * scale))), max(1, int(round(h * scale))))
    return img.resize(new_size, Image.LANCZOS)


def load_image(fp: Union[str, BinaryIO], max_side: Optional[int] = None) -> Image.Image:
    """Open an upload as RGB, upright and of reasonable size."""
    if fp is None:
        raise InputError("image is required")
    try:
        img = Image.open(fp)
        img.load()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise InputError(f"invalid image: {e}") from e
    img = _pil_fix_orientation(img).convert("RGB")
    return downscale_if_huge(img, max_side)


def otsu_threshold(gray: np.ndarray) -> int:
    """
    Otsu's method over an 8-bit image: the t maximizing wB*wF*(mB-mF)^2,
    lowest t on ties.
    """
    hist = np.bincount(np.asarray(gray, dtype=np.uint8).ravel(), minlength=256).astype(np.float64)
    total = hist.sum()
    if total == 0:
        return DEFAULT_THRESHOLD

    levels = np.arange(256, dtype=np.float64)
    w_b = np.cumsum(hist)
    w_f = total - w_b
    sum_b = np.cumsum(levels * hist)
    sum_all = sum_b[-1]

    valid = (w_b > 0) & (w_f > 0)
    if not valid.any():
        return DEFAULT_THRESHOLD

    between = np.full(256, -1.0)
    m_b = sum_b[valid] / w_b[valid]
    m_f = (sum_all - sum_b[valid]) / w_f[valid]
    between[valid] = w_b[valid] * w_f[valid] * (m_b - m_f) ** 2
    # argmax returns the first (lowest) index of the maximum
    return int(np.argmax(between))


def preprocess_for_ocr(
    img: Image.Image,
    scale: float = DEFAULT_SCALE,
    contrast: float = DEFAULT_CONTRAST,
    force_invert: Optional[bool] = None,
) -> Image.Image:
    """
    Upscale -> luminance -> contrast -> Otsu binarization -> polarity fix.

    Returns an opaque RGBA image of pure black/white pixels. With
    force_invert=None the image is inverted when white pixels are the
    minority; otherwise the flag decides.
    """
    src = img.convert("RGB")
    w = max(1, int(src.width * scale + 0.5))
    h = max(1, int(src.height * scale + 0.5))
    src = src.resize((w, h), Image.LANCZOS)

    rgb = np.asarray(src, dtype=np.float64)
    lum = np.floor(rgb @ _LUMA + 0.5)
    gray = np.clip((lum - 128.0) * contrast + 128.0, 0, 255).astype(np.uint8)

    thr = otsu_threshold(gray)
    binary = np.where(gray > thr, 255, 0).astype(np.uint8)

    white_ratio = float(np.count_nonzero(binary)) / binary.size
    need_invert = white_ratio < INVERT_BELOW_WHITE_RATIO if force_invert is None else bool(force_invert)
    if need_invert:
        binary = 255 - binary

    out = np.empty((h, w, 4), dtype=np.uint8)
    out[..., 0] = out[..., 1] = out[..., 2] = binary
    out[..., 3] = 255
    return Image.fromarray(out)


def ocr_variants(img: Image.Image, enhance: bool) -> List[Image.Image]:
    """Candidates fed to the recognizer: the plain image, or normal + inverted."""
    if not enhance:
        return [img]
    return [
        preprocess_for_ocr(img, force_invert=None),
        preprocess_for_ocr(img, force_invert=True),
    ]
