# tests/test_azure_functions.py

import json

import azure.functions as func
import pytest
import requests

import receipt_extractor
import functions.health_check as health_check
from src.extraction import uploads
from src.extraction.errors import ParsingError
from src.extraction.usage import UsageStats


@pytest.fixture(autouse=True)
def fresh_stats(monkeypatch):
    monkeypatch.setattr(receipt_extractor, "usage_stats", UsageStats(), raising=True)


def make_request(body: bytes, content_type: str, method: str = "POST") -> func.HttpRequest:
    return func.HttpRequest(
        method=method,
        url="/api/receipt_extractor",
        headers={"Content-Type": content_type},
        body=body,
    )


def test_receipt_extractor_pdf_happy_path(monkeypatch, receipt_record):
    def fake_process_pdf(pdf_bytes: bytes):
        assert pdf_bytes == b"%PDF-1.4 fake"
        return receipt_record

    monkeypatch.setattr(receipt_extractor, "process_pdf_bytes", fake_process_pdf, raising=True)

    resp = receipt_extractor.main(make_request(b"%PDF-1.4 fake", "application/pdf"))

    assert resp.status_code == 200
    assert json.loads(resp.get_body()) == {"success": True, "extractedData": receipt_record}


def test_receipt_extractor_routes_images_with_content_type(monkeypatch, receipt_record):
    seen = {}

    def fake_process_image(image_bytes: bytes, content_type):
        seen["content_type"] = content_type
        return receipt_record

    monkeypatch.setattr(receipt_extractor, "process_image_bytes", fake_process_image, raising=True)

    resp = receipt_extractor.main(make_request(b"\xff\xd8jpeg", "image/jpeg; charset=binary"))

    assert resp.status_code == 200
    assert seen["content_type"] == "image/jpeg"


def test_receipt_extractor_empty_body_returns_400():
    resp = receipt_extractor.main(make_request(b"", "application/pdf"))

    assert resp.status_code == 400
    assert json.loads(resp.get_body()) == {"error": "No file uploaded"}


def test_receipt_extractor_unsupported_type_returns_400():
    resp = receipt_extractor.main(make_request(b"hello", "text/plain"))

    assert resp.status_code == 400
    assert "Unsupported content type" in json.loads(resp.get_body())["error"]


def test_receipt_extractor_pipeline_error_uses_envelope(monkeypatch):
    def fake_process_pdf(pdf_bytes: bytes):
        raise ParsingError("Expecting value", raw_content="not json")

    monkeypatch.setattr(receipt_extractor, "process_pdf_bytes", fake_process_pdf, raising=True)

    resp = receipt_extractor.main(make_request(b"%PDF", "application/pdf"))

    assert resp.status_code == 500
    body = json.loads(resp.get_body())
    assert body["error"] == "parsing failed"
    assert body["rawContent"] == "not json"


def test_receipt_extractor_unexpected_error_returns_500(monkeypatch):
    def fake_process_pdf(pdf_bytes: bytes):
        raise RuntimeError("boom")

    monkeypatch.setattr(receipt_extractor, "process_pdf_bytes", fake_process_pdf, raising=True)

    resp = receipt_extractor.main(make_request(b"%PDF", "application/pdf"))

    assert resp.status_code == 500
    assert json.loads(resp.get_body())["error"] == "Server error"


def test_receipt_extractor_oversized_body_returns_413(monkeypatch):
    def fail_process_pdf(pdf_bytes: bytes):
        raise AssertionError("oversized bodies must not be processed")

    monkeypatch.setattr(uploads, "MAX_UPLOAD_BYTES", 8, raising=True)
    monkeypatch.setattr(receipt_extractor, "process_pdf_bytes", fail_process_pdf, raising=True)

    resp = receipt_extractor.main(make_request(b"%PDF-1.4 0123456789", "application/pdf"))

    assert resp.status_code == 413
    body = json.loads(resp.get_body())
    assert body["success"] is False
    assert body["error"] == "File too large"


class FakeGetResponse:
    def __init__(self, status_code=200, text=""):
        self.status_code = status_code
        self.text = text


@pytest.fixture
def healthy_env(monkeypatch, tmp_path):
    monkeypatch.setenv("OPENAI_API_KEY", "fake-key")
    monkeypatch.delenv("OPENAI_API_URL", raising=False)
    monkeypatch.setattr(uploads, "UPLOAD_DIR", str(tmp_path / "uploads"), raising=True)


def health_checks(resp) -> dict:
    return {c["name"]: c for c in json.loads(resp.get_body())["checks"]}


def test_health_check_ok(monkeypatch, healthy_env):
    def fake_get(url, headers, timeout):
        assert url == "https://api.openai.com/v1/models"
        assert headers["Authorization"] == "Bearer fake-key"
        return FakeGetResponse(200)

    monkeypatch.setattr(health_check.requests, "get", fake_get, raising=True)

    resp = health_check.main(make_request(b"", "application/json", method="GET"))

    assert resp.status_code == 200
    body = json.loads(resp.get_body())
    assert body["status"] == "ok"
    assert body["service"] == "receipt-extraction-api"


def test_health_check_follows_configured_api_url(monkeypatch, healthy_env):
    monkeypatch.setenv("OPENAI_API_URL", "https://proxy.internal/openai/v1/chat/completions")
    seen = {}

    def fake_get(url, headers, timeout):
        seen["url"] = url
        return FakeGetResponse(200)

    monkeypatch.setattr(health_check.requests, "get", fake_get, raising=True)

    health_check.main(make_request(b"", "application/json", method="GET"))

    assert seen["url"] == "https://proxy.internal/openai/v1/models"


def test_health_check_missing_key_is_degraded(monkeypatch, healthy_env):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    resp = health_check.main(make_request(b"", "application/json", method="GET"))

    assert resp.status_code == 503
    openai_check = health_checks(resp)["openai"]
    assert openai_check["status"] == "error"
    assert "OPENAI_API_KEY" in openai_check["details"]["error"]


def test_health_check_unusable_upload_dir_is_degraded(monkeypatch, healthy_env, tmp_path):
    monkeypatch.setattr(uploads, "UPLOAD_DIR", str(tmp_path / "missing" / "uploads"), raising=True)
    monkeypatch.setattr(
        health_check.requests, "get", lambda url, headers, timeout: FakeGetResponse(200), raising=True,
    )

    resp = health_check.main(make_request(b"", "application/json", method="GET"))

    assert resp.status_code == 503
    assert health_checks(resp)["upload_dir"]["status"] == "error"


def test_health_check_network_error_is_degraded(monkeypatch, healthy_env):
    def fake_get(url, headers, timeout):
        raise requests.ConnectionError("DNS failure")

    monkeypatch.setattr(health_check.requests, "get", fake_get, raising=True)

    resp = health_check.main(make_request(b"", "application/json", method="GET"))

    assert resp.status_code == 503
    assert health_checks(resp)["openai"]["details"] == {"error": "DNS failure"}


def test_health_check_bad_key_is_degraded(monkeypatch, healthy_env):
    monkeypatch.setattr(
        health_check.requests,
        "get",
        lambda url, headers, timeout: FakeGetResponse(401, "Incorrect API key provided"),
        raising=True,
    )

    resp = health_check.main(make_request(b"", "application/json", method="GET"))

    assert resp.status_code == 503
    assert health_checks(resp)["openai"]["details"]["status_code"] == 401
