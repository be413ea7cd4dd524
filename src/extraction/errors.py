# src/extraction/errors.py

class ExtractionError(Exception):
    """
    Base class for every failure the receipt pipeline reports to a caller.

    Each subclass carries the HTTP status code and the machine-readable
    `error` label used in the JSON envelope, so the FastAPI app and the
    Azure Function render failures the same way.
    """

    status_code = 500
    error = "Server error"

    def __init__(self, message: str, details=None):
        super().__init__(message)
        self.details = details if details is not None else message

    def to_payload(self) -> dict:
        return {
            "success": False,
            "error": self.error,
            "details": self.details,
        }


class FileTooLargeError(ExtractionError):
    status_code = 413
    error = "File too large"


class EmptyUploadError(ExtractionError):
    status_code = 400
    error = "Uploaded file is empty."


class TextExtractionError(ExtractionError):
    status_code = 400
    error = "Text extraction failed"


class ImageProcessingError(ExtractionError):
    status_code = 400
    error = "Image processing failed"


class UpstreamError(ExtractionError):
    status_code = 500
    error = "OpenAI API failed"


class ParsingError(ExtractionError):
    status_code = 500
    error = "parsing failed"

    def __init__(self, message: str, raw_content=None):
        super().__init__(message)
        self.raw_content = raw_content

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["rawContent"] = self.raw_content
        return payload
