"""
Plain-text extraction for uploaded manuscripts.

PDFs are handed to the model (inline base64) with an "extract plain text"
instruction; DOCX files are read with python-docx; anything else is decoded
as UTF-8.
"""
from __future__ import annotations

import enum
import io
import logging
from pathlib import Path
from typing import List, Optional

from docx import Document as DocxDocument

from app.services.gemini_client import inline_data_part, text_part
from app.services.model_invoker import Deadline, ModelInvoker
from app.services.prompts import PDF_EXTRACTION_INSTRUCTION

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


class FileKind(str, enum.Enum):
    PDF = "pdf"
    DOCX = "docx"
    TEXT = "text"


def detect_file_kind(filename: str, content_type: Optional[str], data: bytes = b"") -> FileKind:
    """Classify an upload by declared type, file suffix, then magic bytes."""
    ctype = (content_type or "").split(";")[0].strip().lower()
    suffix = Path(filename or "").suffix.lower()

    if ctype == PDF_MIME or suffix == ".pdf" or data[:5] == b"%PDF-":
        return FileKind.PDF
    if ctype == DOCX_MIME or suffix == ".docx":
        return FileKind.DOCX
    return FileKind.TEXT


class DocumentTextExtractor:
    """Turns uploaded bytes into plain text."""

    def __init__(self, invoker: ModelInvoker) -> None:
        self._invoker = invoker

    async def extract(
        self,
        filename: str,
        content_type: Optional[str],
        data: bytes,
        deadline: Optional[Deadline] = None,
    ) -> str:
        """
        Return the raw text of an uploaded file.

        Raises:
            RuntimeError:         Unreadable DOCX.
            AllModelsFailedError: PDF extraction could not reach any model.
        """
        kind = detect_file_kind(filename, content_type, data)
        logger.info("Extracting text from %r as %s (%d bytes)", filename, kind.value, len(data))

        if kind is FileKind.PDF:
            return await self._extract_pdf(data, deadline)
        if kind is FileKind.DOCX:
            return self._extract_docx(data)
        # utf-8-sig drops a leading byte-order mark
        return data.decode("utf-8-sig", errors="replace")

    # ------------------------------------------------------------------
    # PDF
    # ------------------------------------------------------------------

    async def _extract_pdf(self, data: bytes, deadline: Optional[Deadline]) -> str:
        parts = [inline_data_part(PDF_MIME, data), text_part(PDF_EXTRACTION_INSTRUCTION)]
        return await self._invoker.invoke(parts, {"temperature": 0}, deadline=deadline)

    # ------------------------------------------------------------------
    # DOCX
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_docx(data: bytes) -> str:
        """Paragraph text followed by table rows (cells joined with ' | ')."""
        try:
            doc = DocxDocument(io.BytesIO(data))
        except Exception as exc:
            raise RuntimeError(f"Cannot open DOCX file: {exc}") from exc

        parts: List[str] = [para.text for para in doc.paragraphs if para.text.strip()]

        for table in doc.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells]
                non_empty = [c for c in cells if c]
                if non_empty:
                    parts.append(" | ".join(non_empty))

        return "\n\n".join(parts)
