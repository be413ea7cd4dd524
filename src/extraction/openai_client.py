# src/extraction/openai_client.py

import os
import time
import logging
from dataclasses import dataclass
from typing import Optional

import requests
from dotenv import load_dotenv

from src.extraction.errors import UpstreamError
from src.extraction.prompts import ExtractionRequest

# Load environment variables from .env file
load_dotenv()   # <-- This reads OPENAI_API_KEY and friends
logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_MODEL = "gpt-4-turbo"
DEFAULT_TIMEOUT_SECONDS = 60


@dataclass(frozen=True)
class CompletionResult:
    content: str
    total_tokens: Optional[int] = None


def _timeout_seconds() -> float:
    return float(os.getenv("OPENAI_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS))


def _error_detail(response):
    """Upstream error body as JSON when possible, raw text otherwise."""
    try:
        return response.json()
    except ValueError:
        return response.text


def completions_url() -> str:
    return os.getenv("OPENAI_API_URL", DEFAULT_API_URL)


def models_url() -> str:
    """The cheap read-only listing next to the completions endpoint."""
    return completions_url().rsplit("/chat/completions", 1)[0] + "/models"


def auth_headers() -> dict:
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise UpstreamError("Missing OPENAI_API_KEY environment variable.")
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }


def request_completion(request: ExtractionRequest) -> CompletionResult:
    """
    Sends an extraction request to the OpenAI chat completions endpoint
    and returns the raw completion text with the reported token usage.

    Every failure (missing key, network error, non-2xx status, unreadable
    body) is raised as UpstreamError. No retries.
    """
    headers = auth_headers()
    url = completions_url()
    payload = {
        "model": os.getenv("OPENAI_MODEL", DEFAULT_MODEL),
        "messages": request.to_messages(),
        "temperature": 0,
    }
    if request.max_tokens is not None:
        payload["max_tokens"] = request.max_tokens

    logger.info("Sending extraction request to OpenAI (model=%s)...", payload["model"])
    start_time = time.time()

    try:
        response = requests.post(url, headers=headers, json=payload, timeout=_timeout_seconds())
    except requests.RequestException as e:
        logger.error("OpenAI request failed: %s", e)
        raise UpstreamError(f"OpenAI request failed: {e}") from e

    if not 200 <= response.status_code < 300:
        detail = _error_detail(response)
        logger.error("OpenAI API error %s: %s", response.status_code, detail)
        raise UpstreamError(f"OpenAI API error: {response.status_code}", details=detail)

    try:
        body = response.json()
        content = body["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as e:
        logger.error("OpenAI returned an unexpected body: %s", response.text[:200])
        raise UpstreamError(f"Unexpected OpenAI response: {e}") from e

    usage = body.get("usage") or {}
    duration = int((time.time() - start_time) * 1000)
    logger.info("Received structured response from OpenAI in %sms", duration)

    return CompletionResult(content=content, total_tokens=usage.get("total_tokens"))
