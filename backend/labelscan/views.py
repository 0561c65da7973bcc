# backend/labelscan/views.py
import logging
from functools import lru_cache

from rest_framework import status
from rest_framework.decorators import api_view, parser_classes
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response

from . import conf
from .analysis import AnalysisResult, analyze_text
from .errors import EngineUnavailable, InputError, LabelScanError, RemoteTimeout, UpstreamError
from .ocr import OcrAdapter
from .preprocess import load_image
from .serializers import AnalysisResponse, AnalyzeTextRequest, OcrAnalyzeRequest
from .session import OcrSession

logger = logging.getLogger(__name__)

# -------- utilities -----------------------------------------------------------

_ERROR_STATUS = (
    (InputError, status.HTTP_400_BAD_REQUEST),
    (EngineUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
    (RemoteTimeout, status.HTTP_504_GATEWAY_TIMEOUT),
    (UpstreamError, status.HTTP_502_BAD_GATEWAY),
)


@lru_cache(maxsize=1)
def get_adapter() -> OcrAdapter:
    """One tesseract handle per process; sessions share it."""
    return OcrAdapter()


def _error_response(e: LabelScanError) -> Response:
    code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for cls, st in _ERROR_STATUS:
        if isinstance(e, cls):
            code = st
            break
    body = {"detail": str(e)}
    if isinstance(e, UpstreamError) and e.status is not None:
        body["upstream_status"] = e.status
    if code >= 500:
        logger.error("OCR failed: %s", e)
    return Response(body, status=code)


def _render(result: AnalysisResult, source: str) -> Response:
    data = result.to_dict()
    data["source"] = source
    return Response(AnalysisResponse(data).data, status=status.HTTP_200_OK)

# -------- views ---------------------------------------------------------------


@api_view(["GET"])
def ping(_request):
    return Response({"app": "labelscan", "ok": True})


@api_view(["POST"])
@parser_classes([JSONParser, FormParser])
def analyze(request):
    """
    POST /api/analyze/
    JSON: { "text": "...", optional "sugar", "fat", "salt" (per 100 g) }
    """
    req = AnalyzeTextRequest(data=request.data)
    if not req.is_valid():
        return Response(req.errors, status=status.HTTP_400_BAD_REQUEST)
    v = req.validated_data

    result = analyze_text(v["text"], v.get("sugar"), v.get("fat"), v.get("salt"))
    return _render(result, "text")


@api_view(["POST"])
@parser_classes([JSONParser, FormParser])
def recalculate(request):
    """
    POST /api/analyze/recalculate/
    JSON: { "text": "...", "sugar", "fat", "salt" }
    Edited nutrient values replace the auto-extracted ones; empty means unset.
    """
    req = AnalyzeTextRequest(data=request.data)
    if not req.is_valid():
        return Response(req.errors, status=status.HTTP_400_BAD_REQUEST)
    v = req.validated_data

    result = analyze_text(v["text"]).recalculate(v.get("sugar"), v.get("fat"), v.get("salt"))
    return _render(result, "recalculated")


@api_view(["POST"])
@parser_classes([MultiPartParser, FormParser])
def ocr_analyze(request):
    """
    POST /api/ocr/analyze/
    form-data: image=<file> (also accepts 'file'), optional engine=local|cloud,
    langs=rus+eng, enhance=true|false

    Stateless: each request gets its own OcrSession (only the tesseract
    handle from get_adapter() is shared), so nothing from a previous upload
    leaks into the next one. Edited nutrients go through /analyze/recalculate/.
    """
    data = {"image": request.FILES.get("image") or request.FILES.get("file")}
    for key in ("engine", "langs", "enhance"):
        if request.data.get(key) not in (None, ""):
            data[key] = request.data.get(key)

    req = OcrAnalyzeRequest(data=data)
    if not req.is_valid():
        return Response(req.errors, status=status.HTTP_400_BAD_REQUEST)
    v = req.validated_data

    session = OcrSession(adapter=get_adapter())
    try:
        img = load_image(v["image"])
        result = session.scan(img, v.get("langs"), v.get("engine"), enhance=v.get("enhance"))
    except LabelScanError as e:
        return _error_response(e)

    return _render(result, f"ocr-{v.get('engine') or conf.OCR_ENGINE}")
