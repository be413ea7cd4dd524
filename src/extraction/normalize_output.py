# src/extraction/normalize_output.py

import json
import logging
from typing import List, TypedDict

from src.extraction.errors import ParsingError

logger = logging.getLogger(__name__)


class ReceiptItem(TypedDict):
    name: str
    price: float


class ReceiptRecord(TypedDict):
    """
    The shape the model is asked to return. It is not enforced here:
    the parsed object is handed back to the caller as-is.
    """
    items: List[ReceiptItem]
    tax: float
    total: float


def parse_receipt_content(content: str) -> ReceiptRecord:
    """
    Parses the completion text as a JSON object.

    Raises ParsingError, carrying the raw content, when the text is not
    JSON. Valid JSON that is not an object (a list, a string, null) is
    rejected the same way as a deliberate tightening over a bare
    json.loads, since the response envelope promises a record.
    """
    try:
        parsed = json.loads(content)
    except (json.JSONDecodeError, TypeError) as e:
        logger.error("JSON parsing failed: %s", e)
        raise ParsingError(str(e), raw_content=content) from e

    if not isinstance(parsed, dict):
        logger.error("Completion decoded to %s, expected an object", type(parsed).__name__)
        raise ParsingError(
            f"Expected a JSON object, got {type(parsed).__name__}",
            raw_content=content,
        )

    return parsed
