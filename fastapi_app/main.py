import logging
import os
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from src.extraction.errors import EmptyUploadError, ExtractionError
from src.extraction.service import process_image_bytes, process_pdf_bytes
from src.extraction.uploads import stored_upload
from src.extraction.usage import usage_stats

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(levelname)s:%(name)s:%(message)s",
)
logger = logging.getLogger(__name__)

UPLOAD_RATE_LIMIT = os.getenv("UPLOAD_RATE_LIMIT", "5 per 15 minutes")
RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again after 15 minutes"
IS_PRODUCTION = os.getenv("APP_ENV") == "prod"
FRONTEND_BUILD_DIR = Path(os.getenv("FRONTEND_BUILD_DIR", "frontend/build"))

limiter = Limiter(key_func=get_remote_address)

app = FastAPI(
    title="Receipt Extraction API (FastAPI + OpenAI)",
    description="Upload a receipt PDF or image and get its items, tax and total back as JSON.",
    version="1.0.0",
)
app.state.limiter = limiter

origins = os.getenv("CORS_ORIGINS", "*").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in origins],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    logger.warning("Rate limit exceeded for %s on %s", get_remote_address(request), request.url.path)
    return JSONResponse(
        status_code=429,
        content={"success": False, "error": RATE_LIMIT_MESSAGE},
    )


@app.exception_handler(ExtractionError)
async def extraction_error_handler(request: Request, exc: ExtractionError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Server error", "message": str(exc)},
    )


@app.get("/health")
def health_check():
    """
    Simple health endpoint so we can check the service is running.
    """
    return {"status": "ok"}


def _no_file_response() -> JSONResponse:
    logger.info("No file uploaded")
    return JSONResponse(status_code=400, content={"error": "No file uploaded"})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # The only request bodies this API takes are the upload forms, so a body
    # that fails validation (e.g. a plain string under `pdf`) carries no file.
    logger.warning("Rejected upload on %s: %s", request.url.path, exc.errors())
    return _no_file_response()


def _store_and_process(upload: UploadFile, process):
    """
    Runs on a worker thread: stores the upload, reads it back and hands it
    to `process`. The stored file is removed when the block exits, on
    success or error.
    """
    with stored_upload(upload.file, upload.content_type) as uploaded:
        if uploaded.size == 0:
            raise EmptyUploadError("Uploaded file is empty.")
        return process(uploaded.read_bytes(), uploaded.content_type)


@app.post("/upload-pdf")
@limiter.shared_limit(UPLOAD_RATE_LIMIT, scope="upload")
async def upload_pdf(request: Request, pdf: Optional[UploadFile] = File(None)):
    """
    Accepts a receipt PDF under the `pdf` field, extracts its text,
    asks OpenAI for the structured receipt and returns it.
    """
    logger.info("Received request to /upload-pdf")
    usage_stats.record_request()

    if pdf is None:
        return _no_file_response()

    extracted = await run_in_threadpool(
        _store_and_process, pdf, lambda data, content_type: process_pdf_bytes(data),
    )
    return {"success": True, "extractedData": extracted}


@app.post("/upload-image")
@limiter.shared_limit(UPLOAD_RATE_LIMIT, scope="upload")
async def upload_image(request: Request, image: Optional[UploadFile] = File(None)):
    """
    Accepts a receipt image under the `image` field, downscales it if it
    is too large to inline, and returns the structured receipt.
    """
    logger.info("Received request to /upload-image")
    usage_stats.record_request()

    if image is None:
        return _no_file_response()

    extracted = await run_in_threadpool(
        _store_and_process, image, lambda data, content_type: process_image_bytes(data, content_type),
    )
    return {"success": True, "extractedData": extracted}


def register_frontend(target: FastAPI, build_dir: Path) -> None:
    """
    Serves the bundled frontend: existing files under build_dir as-is,
    every other GET path falls back to index.html for client-side routing.
    Must be registered after the API routes.
    """
    root = build_dir.resolve()

    @target.get("/{full_path:path}", include_in_schema=False)
    def serve_frontend(full_path: str):
        candidate = (root / full_path).resolve()
        if full_path and root in candidate.parents and candidate.is_file():
            return FileResponse(candidate)
        return FileResponse(root / "index.html")


if IS_PRODUCTION:
    register_frontend(app, FRONTEND_BUILD_DIR)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "5001")))
