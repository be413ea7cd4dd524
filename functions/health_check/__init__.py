import datetime as dt
import json
import logging
import os

import azure.functions as func
import requests

from src.extraction import uploads
from src.extraction.errors import UpstreamError
from src.extraction.openai_client import auth_headers, models_url

SERVICE_NAME = "receipt-extraction-api"
CHECK_TIMEOUT_SECONDS = 5


def _result(name: str, ok: bool, details) -> dict:
    return {"name": name, "status": "ok" if ok else "error", "details": details}


def check_upload_dir() -> dict:
    """
    The HTTP API stores uploads on local disk before processing them,
    so the upload directory has to exist or be creatable, and be writable.
    """
    path = os.path.abspath(uploads.UPLOAD_DIR)
    parent = path if os.path.isdir(path) else os.path.dirname(path)
    return _result("upload_dir", os.access(parent, os.W_OK), {"path": path})


def check_openai() -> dict:
    """
    Lists the models with the same credentials the extractor uses.
    Read-only and costs no tokens, so it is safe to run every few minutes.
    """
    try:
        headers = auth_headers()
    except UpstreamError as exc:
        return _result("openai", False, {"error": str(exc)})

    try:
        resp = requests.get(models_url(), headers=headers, timeout=CHECK_TIMEOUT_SECONDS)
    except requests.RequestException as exc:  # network / DNS / SSL, etc.
        logging.exception("OpenAI health check failed with exception.")
        return _result("openai", False, {"error": str(exc)})

    if resp.status_code != 200:
        # 401 is a bad key, 5xx an outage; keep the body short in logs
        logging.error("OpenAI health check returned %s: %s", resp.status_code, resp.text[:200])
        return _result(
            "openai", False, {"status_code": resp.status_code, "body_preview": resp.text[:200]},
        )

    return _result("openai", True, {"status_code": 200})


def main(req: func.HttpRequest) -> func.HttpResponse:
    """
    HTTP GET /api/health

    Reports whether this instance can actually extract receipts: uploads
    can be stored and OpenAI accepts our key. 503 when either fails.
    """
    logging.info("Health check request received.")

    checks = [check_upload_dir(), check_openai()]
    overall_ok = all(c["status"] == "ok" for c in checks)

    body = {
        "status": "ok" if overall_ok else "degraded",
        "service": SERVICE_NAME,
        "timestamp_utc": dt.datetime.now(dt.timezone.utc).isoformat(),
        "version": os.getenv("APP_VERSION", "v0.1.0"),
        "checks": checks,
    }

    return func.HttpResponse(
        body=json.dumps(body, indent=2),
        status_code=200 if overall_ok else 503,
        mimetype="application/json",
    )
