from typing import Optional

from src.extraction.image_resize import normalize_image
from src.extraction.normalize_output import parse_receipt_content
from src.extraction.openai_client import request_completion
from src.extraction.pdf_text import extract_pdf_text
from src.extraction.prompts import ExtractionRequest, build_image_request, build_text_request
from src.extraction.usage import usage_stats


def _complete_and_parse(request: ExtractionRequest) -> dict:
    result = request_completion(request)

    if result.total_tokens:
        usage_stats.record_tokens(result.total_tokens)

    return parse_receipt_content(result.content)


def process_pdf_bytes(pdf_bytes: bytes) -> dict:
    """
    Core business logic for PDF receipts:
    - Extracts the embedded text with pypdf
    - Asks OpenAI to turn it into items / tax / total
    - Returns the parsed receipt dict

    This function does NOT know anything about HTTP, status codes,
    request headers, or frameworks.
    """
    if not pdf_bytes:
        raise ValueError("PDF bytes are empty.")

    text = extract_pdf_text(pdf_bytes)
    return _complete_and_parse(build_text_request(text))


def process_image_bytes(image_bytes: bytes, content_type: Optional[str] = None) -> dict:
    """
    Core business logic for receipt images:
    - Downscales the image if it is over the inline budget
    - Sends it to OpenAI as a data URI
    - Returns the parsed receipt dict
    """
    if not image_bytes:
        raise ValueError("Image bytes are empty.")

    image = normalize_image(image_bytes, content_type)
    return _complete_and_parse(build_image_request(image.data, image.mime_type))
