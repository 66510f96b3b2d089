"""
Manuscript analysis endpoint.

POST /analyze: multipart upload (field ``file``: PDF, DOCX or plain text)
                → AnalyzeResponse (schema version 1.0).

Errors use the body ``{"error": "<message>"}``:
  400: not multipart/form-data, no ``file`` field, or too little text
  413: upload larger than MAX_FILE_SIZE
  500: GEMINI_API_KEY missing, or an unexpected failure
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from app.config import settings
from app.dependencies.analyzer import get_manuscript_analyzer
from app.models.schemas import AnalyzeResponse, ErrorResponse
from app.services.manuscript_analyzer import InsufficientTextError, ManuscriptAnalyzer

logger = logging.getLogger(__name__)

router = APIRouter()

_READ_CHUNK_BYTES = 1024 * 1024


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    responses={
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def analyze_manuscript(
    request: Request,
    analyzer: ManuscriptAnalyzer = Depends(get_manuscript_analyzer),
):
    """
    Extract text from the uploaded manuscript, score it, and return the
    full analysis.

    Model failures during evidence extraction or scoring do not fail the
    request: those sections fall back to deterministic defaults.
    """
    if not settings.GEMINI_API_KEY:
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "GEMINI_API_KEY is missing in environment.",
        )

    content_type = request.headers.get("content-type", "")
    if "multipart/form-data" not in content_type:
        return _error(
            status.HTTP_400_BAD_REQUEST,
            "Expected multipart/form-data with field 'file'.",
        )

    try:
        form = await request.form()
    except Exception as exc:
        logger.warning("Could not parse multipart body: %s", exc)
        return _error(status.HTTP_400_BAD_REQUEST, "Malformed multipart/form-data body.")

    upload = form.get("file")
    if not isinstance(upload, UploadFile):
        return _error(status.HTTP_400_BAD_REQUEST, "No file found in 'file' field.")

    file_name = upload.filename or ""

    try:
        # Read in slices while enforcing the size limit
        data = bytearray()
        while True:
            chunk = await upload.read(_READ_CHUNK_BYTES)
            if not chunk:
                break
            data.extend(chunk)
            if len(data) > settings.MAX_FILE_SIZE:
                return _error(
                    status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    f"File exceeds the {settings.MAX_FILE_SIZE // (1024 * 1024)} MB size limit.",
                )

        logger.info("Received %r (%s, %d bytes)", file_name, upload.content_type, len(data))
        return await analyzer.analyze_upload(file_name, upload.content_type, bytes(data))

    except InsufficientTextError as exc:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))
    except Exception as exc:
        logger.exception("manuscript analyze error for %r", file_name)
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            str(exc)
            or "Something went wrong while analyzing the manuscript. Please try again.",
        )
    finally:
        await upload.close()
