"""
Document Ingestion (Uploads → Plain Text)
=========================================

Purpose
-------
Utilities turning an uploaded source document into the plain text that the
card generation prompts are built from.

Key Functions
-------------
- guess_ext              : Infer file extension from a filename.
- extract_text_from_pdf  : Extract plain text from all PDF pages (pypdf).
- extract_text_from_docx : Extract paragraph text from a Word document (python-docx).
- safe_read_text         : Decode text files robustly (UTF-8 with ignore errors).
- extract_text           : Dispatch on extension; raises UnsupportedDocumentError.

Dependencies
------------
pypdf, python-docx. Image OCR is not supported.
"""

import io
import logging
import os

from docx import Document
from pypdf import PdfReader

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".txt", ".md", ".pdf", ".docx")


class UnsupportedDocumentError(ValueError):
    """The upload cannot be turned into text."""


def guess_ext(filename: str) -> str:
    """
    Extract the file extension from a filename.

    Args:
        filename (str): Input filename.

    Returns:
        str: Lowercased file extension (e.g., ".pdf").
    """
    _, ext = os.path.splitext(filename or "")
    return ext.lower()


def extract_text_from_pdf(data: bytes) -> str:
    """
    Extract plain text from all pages of a PDF.

    Args:
        data (bytes): Raw PDF content.

    Returns:
        str: Page texts separated by blank lines, so each page starts a paragraph.
    """
    reader = PdfReader(io.BytesIO(data))
    parts = []
    for page in reader.pages:
        parts.append(page.extract_text() or "")
    return "\n\n".join(parts)


def extract_text_from_docx(data: bytes) -> str:
    document = Document(io.BytesIO(data))
    return "\n\n".join(p.text for p in document.paragraphs if p.text.strip())


def safe_read_text(data: bytes) -> str:
    return data.decode("utf-8", errors="ignore")


def extract_text(filename: str, data: bytes) -> str:
    """
    Extract text from an uploaded document.

    Args:
        filename (str): Original filename, used to pick the extractor.
        data (bytes): File content.

    Returns:
        str: Extracted text, stripped.

    Raises:
        UnsupportedDocumentError: unknown extension, or a file the parser rejects.
    """
    ext = guess_ext(filename)
    if ext not in SUPPORTED_EXTENSIONS:
        raise UnsupportedDocumentError(
            f"Unsupported file type '{ext or filename}'. Supported: {', '.join(SUPPORTED_EXTENSIONS)}"
        )
    try:
        if ext == ".pdf":
            text = extract_text_from_pdf(data)
        elif ext == ".docx":
            text = extract_text_from_docx(data)
        else:
            text = safe_read_text(data)
    except Exception as e:
        logger.warning("Failed to extract text from %s: %s", filename, e)
        raise UnsupportedDocumentError(f"Could not read {filename}: {e}") from e
    return text.strip()
