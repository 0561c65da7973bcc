import io

import pytest
from rest_framework.test import APIClient

from labelscan import views
from labelscan.errors import EngineUnavailable, RemoteTimeout, UpstreamError


@pytest.fixture
def client():
    return APIClient()


class FakeAdapter:
    def __init__(self, text="", exc=None):
        self.text = text
        self.exc = exc
        self.calls = []

    def recognize(self, img, langs=None, engine_mode=None, progress=None, enhance=None):
        self.calls.append({"langs": langs, "engine": engine_mode, "enhance": enhance, "size": img.size})
        if self.exc is not None:
            raise self.exc
        return self.text


@pytest.fixture
def adapter(monkeypatch):
    def install(**kwargs):
        fake = FakeAdapter(**kwargs)
        monkeypatch.setattr(views, "get_adapter", lambda: fake)
        return fake
    return install


def test_ping(client):
    r = client.get("/api/ping")
    assert r.status_code == 200
    assert r.json() == {"app": "labelscan", "ok": True}


def test_analyze_text(client, sample_label):
    r = client.post("/api/analyze/", {"text": sample_label}, format="json")
    assert r.status_code == 200
    data = r.json()
    assert data["additive_codes"] == ["E330", "E150d", "E211"]
    assert data["additives"][0]["name"] == "Citric acid"
    assert data["nutrients"]["sugar"] == 10.5
    assert data["traffic"]["sugar"] == "mid"
    assert data["verdict"]["level"] == "warn"
    assert data["source"] == "text"


def test_analyze_text_with_nutrient_override(client, sample_label):
    r = client.post("/api/analyze/", {"text": sample_label, "salt": "2,1"}, format="json")
    assert r.json()["verdict"]["level"] == "danger"


def test_analyze_requires_text(client):
    r = client.post("/api/analyze/", {"text": "  "}, format="json")
    assert r.status_code == 400
    assert "text" in r.json()


def test_recalculate_uses_edited_values_only(client, sample_label):
    r = client.post("/api/analyze/recalculate/", {"text": sample_label, "sugar": "3", "fat": "", "salt": None},
                    format="json")
    assert r.status_code == 200
    data = r.json()
    assert data["nutrients"] == {"sugar": 3.0, "fat": None, "salt": None}
    assert data["traffic"] == {"sugar": "low", "fat": "unknown", "salt": "unknown"}


def test_ocr_analyze(client, adapter, png_bytes, sample_label):
    fake = adapter(text=sample_label)
    upload = io.BytesIO(png_bytes)
    upload.name = "label.png"

    r = client.post("/api/ocr/analyze/", {"image": upload, "engine": "local", "enhance": "false"},
                    format="multipart")

    assert r.status_code == 200
    data = r.json()
    assert data["source"] == "ocr-local"
    assert data["additive_codes"] == ["E330", "E150d", "E211"]
    assert fake.calls == [{"langs": None, "engine": "local", "enhance": False, "size": (60, 40)}]


def test_ocr_analyze_accepts_file_alias(client, adapter, png_bytes):
    fake = adapter(text="")
    upload = io.BytesIO(png_bytes)
    upload.name = "label.png"
    r = client.post("/api/ocr/analyze/", {"file": upload}, format="multipart")
    assert r.status_code == 200
    assert r.json()["verdict"]["level"] == "unknown"
    assert fake.calls[0]["enhance"] is None


def test_ocr_analyze_is_stateless_between_uploads(client, adapter, png_bytes, sample_label):
    fake = adapter(text=sample_label)
    first = io.BytesIO(png_bytes)
    first.name = "label.png"
    assert client.post("/api/ocr/analyze/", {"image": first}, format="multipart").json()["additive_codes"]

    fake.text = ""
    second = io.BytesIO(png_bytes)
    second.name = "label.png"
    data = client.post("/api/ocr/analyze/", {"image": second}, format="multipart").json()
    assert data["additive_codes"] == []
    assert data["verdict"]["level"] == "unknown"
    assert len(fake.calls) == 2


def test_ocr_analyze_requires_image(client, adapter):
    adapter()
    r = client.post("/api/ocr/analyze/", {}, format="multipart")
    assert r.status_code == 400


def test_ocr_analyze_rejects_non_image(client, adapter):
    adapter()
    upload = io.BytesIO(b"not an image at all")
    upload.name = "label.png"
    r = client.post("/api/ocr/analyze/", {"image": upload}, format="multipart")
    assert r.status_code == 400


@pytest.mark.parametrize(
    "exc, code",
    [
        (EngineUnavailable("tesseract is not available"), 503),
        (UpstreamError("Cloud OCR: HTTP 500", status=500), 502),
        (RemoteTimeout("Cloud OCR: no answer within 20s"), 504),
    ],
)
def test_ocr_failures_map_to_status(client, adapter, png_bytes, exc, code):
    adapter(exc=exc)
    upload = io.BytesIO(png_bytes)
    upload.name = "label.png"
    r = client.post("/api/ocr/analyze/", {"image": upload, "engine": "cloud"}, format="multipart")
    assert r.status_code == code
    assert r.json()["detail"] == str(exc)
