# backend/labelscan/errors.py
from typing import Any, Optional


class LabelScanError(Exception):
    """Base class for failures surfaced to the caller."""


class InputError(LabelScanError):
    """Missing or unreadable image / text."""


class EngineUnavailable(LabelScanError):
    """The local recognition engine could not be initialized."""


class UpstreamError(LabelScanError):
    """Cloud OCR answered with a non-success status or an unusable body."""

    def __init__(self, message: str, status: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.status = status
        self.details = details


class RemoteTimeout(LabelScanError, TimeoutError):
    """Cloud OCR did not answer before the deadline."""
