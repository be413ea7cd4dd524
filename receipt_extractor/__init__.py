import logging
import json

import azure.functions as func

from src.extraction import uploads
from src.extraction.errors import ExtractionError, FileTooLargeError
from src.extraction.service import process_image_bytes, process_pdf_bytes
from src.extraction.usage import usage_stats


def main(req: func.HttpRequest) -> func.HttpResponse:
    """
    Azure Function HTTP trigger:
    - Accepts a receipt PDF or image as the raw POST body
    - Routes it by Content-Type to the text or the image pipeline
    - Returns the same JSON envelope as the FastAPI app
    """
    logging.info("Receipt Extractor function triggered.")
    usage_stats.record_request()

    try:
        # 1. Basic input validation
        body = req.get_body()

        if not body:
            logging.warning("Request body is empty.")
            return _json_response(
                {"error": "No file uploaded"},
                status_code=400,
            )

        content_type = req.headers.get("Content-Type", "").split(";")[0].strip().lower()

        # 2. Call core service logic
        try:
            if len(body) > uploads.MAX_UPLOAD_BYTES:
                raise FileTooLargeError(
                    f"Upload exceeds the {uploads.MAX_UPLOAD_BYTES} byte limit.",
                )
            if content_type == "application/pdf":
                logging.info("Processing receipt PDF.")
                extracted = process_pdf_bytes(body)
            elif content_type.startswith("image/"):
                logging.info("Processing receipt image (%s).", content_type)
                extracted = process_image_bytes(body, content_type)
            else:
                logging.warning(f"Unexpected Content-Type: {content_type}")
                return _json_response(
                    {
                        "success": False,
                        "error": "Unsupported content type. "
                                 "Please send application/pdf or an image/* body.",
                    },
                    status_code=400,
                )
        except ExtractionError as e:
            logging.error(f"Error during receipt processing: {e}")
            return _json_response(e.to_payload(), status_code=e.status_code)

        # 3. Success response
        logging.info(
            "Receipt extraction completed successfully. "
            f"items={len(extracted.get('items') or [])}, "
            f"total={extracted.get('total')!r}"
        )

        return _json_response({"success": True, "extractedData": extracted}, status_code=200)

    except Exception as e:
        # Catch-all safeguard
        logging.exception(f"Unexpected error in receipt_extractor: {e}")
        return _json_response(
            {"success": False, "error": "Server error", "message": str(e)},
            status_code=500,
        )


def _json_response(payload: dict, status_code: int = 200) -> func.HttpResponse:
    """
    Small helper to return JSON responses consistently.
    """
    return func.HttpResponse(
        json.dumps(payload, indent=2),
        status_code=status_code,
        mimetype="application/json",
    )
