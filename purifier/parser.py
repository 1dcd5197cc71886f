"""Document loading utilities: turn an uploaded file into plain text."""

from __future__ import annotations

import io
import logging
import os
from typing import BinaryIO, List, Tuple, Union

from docx import Document
from pypdf import PdfReader

from .config import ALLOWED_EXTENSIONS
from .errors import ExtractionFailed, UnsupportedFormat

logger = logging.getLogger(__name__)

SUPPORTED_LABEL = ", ".join(f".{ext}" for ext in ALLOWED_EXTENSIONS)


def _extension(filename: str) -> str:
    return os.path.splitext(filename or "")[1].lstrip(".").lower()


def is_supported(filename: str) -> bool:
    return _extension(filename) in ALLOWED_EXTENSIONS


def _read_bytes(source: Union[bytes, BinaryIO]) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    return source.read()


def _extract_plain(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ExtractionFailed("The text file is not valid UTF-8.") from exc


def _extract_docx(data: bytes) -> str:
    try:
        document = Document(io.BytesIO(data))
    except Exception as exc:
        raise ExtractionFailed("Unable to read the Word document; it may be corrupt.") from exc
    return "\n".join(paragraph.text for paragraph in document.paragraphs)


def _extract_pdf(data: bytes) -> str:
    try:
        reader = PdfReader(io.BytesIO(data))
        pages: List[str] = []
        for page in reader.pages:
            pages.append(page.extract_text() or "")
    except Exception as exc:
        logger.warning("PDF extraction error: %s", exc)
        raise ExtractionFailed(
            "Unable to read the PDF; make sure it is not encrypted or damaged."
        ) from exc

    text = "\n".join(pages)
    if not text.strip():
        raise ExtractionFailed(
            "The PDF looks like a scanned image and contains no recognisable text."
        )
    return text


EXTRACTORS = {
    "txt": _extract_plain,
    "md": _extract_plain,
    "docx": _extract_docx,
    "pdf": _extract_pdf,
}


def load_document(source: Union[bytes, BinaryIO], filename: str) -> Tuple[str, str]:
    """Extract the plain text of an uploaded transcript.

    Returns ``(text, display_name)``. Raises UnsupportedFormat for extensions
    outside the allow-list and ExtractionFailed when the library cannot
    produce text.
    """
    extension = _extension(filename)
    if extension not in EXTRACTORS:
        raise UnsupportedFormat(
            f"Unsupported file format. Please upload one of: {SUPPORTED_LABEL}"
        )

    text = EXTRACTORS[extension](_read_bytes(source))
    logger.info("Loaded %s (%s, %d chars)", filename, extension, len(text))
    return text, filename
